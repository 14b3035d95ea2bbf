"""
Kernel Boundary & Invariants Contract.

Tests that enforce the kernel's architectural boundaries:

1. inventory_kernel/** may NOT import inventory_services or
   inventory_config. The kernel never depends upward.

2. inventory_kernel/domain/** stays pure: no SQLAlchemy, no database
   access.

3. The kernel invariants declaration is complete and non-empty.

These tests read source code via AST; they cannot break anything.
"""

import ast
from pathlib import Path

from inventory_kernel.invariants import (
    ALL_KERNEL_INVARIANTS,
    FORBIDDEN_KERNEL_IMPORTS,
    KernelInvariant,
)

REPO_ROOT = Path(__file__).resolve().parents[2]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _python_files(package: str) -> list[Path]:
    """Return all .py files under a top-level package of the repo."""
    return sorted((REPO_ROOT / package).rglob("*.py"))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    try:
        tree = ast.parse(filepath.read_text(), filename=str(filepath))
    except (SyntaxError, UnicodeDecodeError):
        return []

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _violations(package: str, prefixes: tuple[str, ...]) -> list[str]:
    found: list[str] = []
    for filepath in _python_files(package):
        for lineno, module in _extract_imports(filepath):
            for prefix in prefixes:
                if module == prefix or module.startswith(f"{prefix}."):
                    rel = filepath.relative_to(REPO_ROOT)
                    found.append(f"  {rel}:{lineno} imports '{module}'")
    return found


# ---------------------------------------------------------------------------
# Test: Kernel has no upward dependencies
# ---------------------------------------------------------------------------


class TestKernelNoUpwardDependencies:
    """inventory_kernel/** must not import inventory_services or inventory_config."""

    def test_kernel_sources_found(self):
        assert len(_python_files("inventory_kernel")) > 10

    def test_kernel_does_not_import_forbidden_packages(self):
        violations = _violations("inventory_kernel", FORBIDDEN_KERNEL_IMPORTS)

        assert not violations, (
            "Kernel boundary violation: inventory_kernel/** must not import "
            "upward packages:\n" + "\n".join(violations)
        )

    def test_config_does_not_import_services(self):
        violations = _violations("inventory_config", ("inventory_services",))
        assert not violations, "\n".join(violations)


class TestDomainPurity:
    """inventory_kernel/domain/** is pure logic."""

    FORBIDDEN_PREFIXES = (
        "sqlalchemy",
        "psycopg2",
        "inventory_kernel.db",
        "inventory_kernel.services",
        "inventory_kernel.selectors",
    )

    def test_domain_has_no_io_imports(self):
        # dtos.from_model() imports models lazily at the boundary; models
        # themselves are allowed, database machinery is not
        violations = _violations("inventory_kernel/domain", self.FORBIDDEN_PREFIXES)
        assert not violations, (
            "Domain purity violation:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# Test: Invariants declaration
# ---------------------------------------------------------------------------


class TestKernelInvariants:
    def test_invariants_declared(self):
        assert len(ALL_KERNEL_INVARIANTS) == len(KernelInvariant) >= 5

    def test_core_invariants_present(self):
        names = {inv.name for inv in ALL_KERNEL_INVARIANTS}
        assert {
            "NON_NEGATIVE_QUANTITY",
            "RESERVED_WITHIN_QUANTITY",
            "ONE_LOG_ROW_PER_MUTATION",
            "APPEND_ONLY_LOG",
            "NO_OVERSELL",
        } <= names
