"""
Tests for TransactionSelector (transaction history query).

Verifies:
- Newest first, seq breaking timestamp ties
- sku / order_id / type filters combine with AND
- total counts all matches, independent of the page
- Pagination bounds and types are validated
"""

import pytest

from inventory_kernel.exceptions import InvalidPaginationError, ValidationError
from inventory_kernel.models.inventory_transaction import TransactionType
from inventory_kernel.selectors.transaction_selector import (
    DEFAULT_HISTORY_LIMIT,
    MAX_HISTORY_LIMIT,
    TransactionSelector,
)

pytestmark = pytest.mark.postgres


@pytest.fixture
def history(ledger, seed_unit, deterministic_clock):
    """Six log rows across two SKUs and two orders, one second apart."""
    seed_unit("SKU-1", "A-01", quantity=0)
    seed_unit("SKU-2", "B-01", quantity=0)

    ledger.adjust("SKU-1", "A-01", 100, "user-1", "receiving")
    deterministic_clock.tick()
    ledger.adjust("SKU-2", "B-01", 10, "user-1", "receiving")
    deterministic_clock.tick()
    ledger.reserve("SKU-1", "A-01", 50, "ORD-1")
    deterministic_clock.tick()
    ledger.reserve("SKU-2", "B-01", 5, "ORD-1")
    deterministic_clock.tick()
    ledger.reserve("SKU-1", "A-01", 10, "ORD-2")
    deterministic_clock.tick()
    ledger.deduct("SKU-1", "A-01", 50, "ORD-1")


class TestGetHistory:
    def test_reservation_visible_newest_first(self, transaction_selector, history):
        page = transaction_selector.get_history(sku="SKU-1", limit=10, offset=0)

        assert page.total == 4
        timestamps = [t.timestamp for t in page.transactions]
        assert timestamps == sorted(timestamps, reverse=True)
        reservations = [
            t for t in page.transactions
            if t.type == TransactionType.RESERVATION and t.order_id == "ORD-1"
        ]
        assert len(reservations) == 1
        assert reservations[0].quantity == 50

    def test_filter_by_order(self, transaction_selector, history):
        page = transaction_selector.get_history(order_id="ORD-1")
        assert page.total == 3
        assert {t.sku for t in page.transactions} == {"SKU-1", "SKU-2"}

    def test_filters_combine(self, transaction_selector, history):
        page = transaction_selector.get_history(
            sku="SKU-1", order_id="ORD-1", type=TransactionType.DEDUCTION
        )
        assert page.total == 1
        assert page.transactions[0].quantity == -50

    def test_type_as_string(self, transaction_selector, history):
        page = transaction_selector.get_history(type="ADJUSTMENT")
        assert page.total == 2
        assert all(t.user_id == "user-1" for t in page.transactions)

    def test_unknown_type_rejected(self, transaction_selector):
        with pytest.raises(ValueError):
            transaction_selector.get_history(type="TRANSFER")

    def test_pagination(self, transaction_selector, history):
        first = transaction_selector.get_history(limit=4, offset=0)
        second = transaction_selector.get_history(limit=4, offset=4)

        assert first.total == second.total == 6
        assert len(first.transactions) == 4
        assert len(second.transactions) == 2
        assert first.has_more and not second.has_more
        ids = [t.transaction_id for t in first.transactions + second.transactions]
        assert len(set(ids)) == 6

    def test_offset_past_end(self, transaction_selector, history):
        page = transaction_selector.get_history(limit=10, offset=100)
        assert page.transactions == ()
        assert page.total == 6

    def test_same_timestamp_ordered_by_seq(self, ledger, seed_unit, transaction_selector):
        seed_unit("SKU-3", "C-01", quantity=10)
        first = ledger.reserve("SKU-3", "C-01", 1, "ORD-A")
        second = ledger.reserve("SKU-3", "C-01", 1, "ORD-B")

        page = transaction_selector.get_history(sku="SKU-3")
        assert [t.transaction_id for t in page.transactions] == [
            second.transaction.transaction_id,
            first.transaction.transaction_id,
        ]

    def test_empty_history(self, transaction_selector):
        page = transaction_selector.get_history(sku="NOTHING")
        assert page.transactions == ()
        assert page.total == 0
        assert page.limit == DEFAULT_HISTORY_LIMIT


class TestPaginationValidation:
    @pytest.mark.parametrize(
        "limit,offset",
        [(0, 0), (-1, 0), (MAX_HISTORY_LIMIT + 1, 0), (10, -1)],
    )
    def test_out_of_range(self, transaction_selector, limit, offset):
        with pytest.raises(InvalidPaginationError) as exc_info:
            transaction_selector.get_history(limit=limit, offset=offset)
        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.max_limit == MAX_HISTORY_LIMIT

    @pytest.mark.parametrize(
        "limit,offset",
        [(None, 0), ("10", 0), (True, 0), (2.0, 0), (10, None), (10, "5"), (10, False)],
    )
    def test_non_integer_rejected(self, transaction_selector, limit, offset):
        with pytest.raises(InvalidPaginationError) as exc_info:
            transaction_selector.get_history(limit=limit, offset=offset)
        assert (exc_info.value.limit, exc_info.value.offset) == (limit, offset)

    def test_custom_max_limit(self, session):
        selector = TransactionSelector(session, max_limit=5)
        with pytest.raises(InvalidPaginationError):
            selector.get_history(limit=6)


class TestUnitQueries:
    def test_lookup_by_transaction_id(self, ledger, seed_unit, transaction_selector):
        seed_unit("SKU-1", "A-01", quantity=10)
        result = ledger.reserve("SKU-1", "A-01", 3, "ORD-1")

        found = transaction_selector.get_by_transaction_id(result.transaction.transaction_id)
        assert found == result.transaction
        assert transaction_selector.get_by_transaction_id("TXN-NOPE") is None

    def test_counts_and_net_delta(self, transaction_selector, history):
        assert transaction_selector.count_for_unit("SKU-1", "A-01") == 4
        assert transaction_selector.net_delta_for_unit(
            "SKU-1", "A-01", TransactionType.RESERVATION
        ) == 60
        assert transaction_selector.net_delta_for_unit(
            "SKU-1", "A-01", TransactionType.CANCELLATION
        ) == 0
