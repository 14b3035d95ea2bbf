"""
Low-stock notification -- post-commit, fire-and-forget.

Responsibility:
    Deliver LowStockEvents raised by deductions to an external notification
    channel without ever affecting the deduction itself.

Architecture position:
    Kernel > Services.  The notifier is a port (``LowStockNotifier``); the
    channel behind it (websocket broadcast, e-mail, queue) is out of scope.

Invariants enforced:
    - Events staged with ``schedule()`` are delivered only after the
      session's root transaction commits, and discarded if it ends any
      other way.  A rolled-back deduction never notifies.
    - Delivery failures are logged (``low_stock_notification_failed``) and
      never propagated to the ledger caller.
"""

from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import event as sa_event
from sqlalchemy.orm import Session

from inventory_kernel.domain.dtos import LowStockEvent
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.low_stock")

NOTIFICATION_TYPE = "INVENTORY_LOW"
NOTIFICATION_CHANNEL = "IN_APP"
NOTIFICATION_PRIORITY = "HIGH"
NOTIFICATION_TITLE = "Low Stock Alert"

_PENDING_KEY = "inventory_kernel.low_stock_pending"
_HOOKED_KEY = "inventory_kernel.low_stock_hooked"


def build_notification(event: LowStockEvent) -> dict[str, Any]:
    """Render an event in the shape the notification channel consumes."""
    return {
        "type": NOTIFICATION_TYPE,
        "channel": NOTIFICATION_CHANNEL,
        "title": NOTIFICATION_TITLE,
        "message": (
            f"SKU {event.sku} at {event.bin_location} is low on stock "
            f"({event.quantity} remaining)"
        ),
        "priority": NOTIFICATION_PRIORITY,
        "data": event.to_payload(),
    }


@runtime_checkable
class LowStockNotifier(Protocol):
    """Port to the external notification channel."""

    def notify(self, event: LowStockEvent) -> None: ...


class LoggingLowStockNotifier:
    """Default notifier: emits the rendered notification as a WARNING log."""

    def notify(self, event: LowStockEvent) -> None:
        notification = build_notification(event)
        logger.warning(
            "low_stock_alert",
            extra={
                "notification_type": notification["type"],
                "channel": notification["channel"],
                "priority": notification["priority"],
                "alert": notification["data"],
            },
        )


class LowStockDispatcher:
    """
    Hands LowStockEvents to a notifier after commit.

    Contract:
        ``schedule(session, event)`` stages an event on a session.
        ``dispatch(event)`` delivers now: inline, or on ``executor`` when
        one is given.

    Guarantees:
        - Never raises from delivery; failures are logged.
        - ``shutdown()`` only stops an executor this dispatcher created.
    """

    def __init__(
        self,
        notifier: LowStockNotifier | None = None,
        executor: Executor | None = None,
        enabled: bool = True,
    ):
        self._notifier = notifier or LoggingLowStockNotifier()
        self._executor = executor
        self._owns_executor = False
        self._enabled = enabled

    @classmethod
    def with_thread_pool(
        cls,
        notifier: LowStockNotifier | None = None,
        max_workers: int = 2,
        enabled: bool = True,
    ) -> "LowStockDispatcher":
        """Dispatcher that delivers on its own background thread pool."""
        dispatcher = cls(
            notifier,
            ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="low-stock"
            ),
            enabled=enabled,
        )
        dispatcher._owns_executor = True
        return dispatcher

    @property
    def notifier(self) -> LowStockNotifier:
        return self._notifier

    def schedule(self, session: Session, event: LowStockEvent) -> None:
        """Deliver ``event`` once the session's root transaction commits."""
        if not self._enabled:
            logger.debug(
                "low_stock_notification_disabled",
                extra={"sku": event.sku, "bin_location": event.bin_location},
            )
            return

        session.info.setdefault(_PENDING_KEY, []).append((self, event))
        if not session.info.get(_HOOKED_KEY):
            sa_event.listen(session, "after_commit", _deliver_pending)
            sa_event.listen(session, "after_transaction_end", _discard_pending)
            session.info[_HOOKED_KEY] = True

    def dispatch(self, event: LowStockEvent) -> None:
        """Deliver ``event`` now, isolated from the caller."""
        if self._executor is None:
            self._deliver(event)
            return
        try:
            self._executor.submit(self._deliver, event)
        except RuntimeError:
            # Executor already shut down
            logger.error(
                "low_stock_notification_failed",
                exc_info=True,
                extra={"sku": event.sku, "bin_location": event.bin_location},
            )

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=wait)

    def _deliver(self, event: LowStockEvent) -> None:
        try:
            self._notifier.notify(event)
        except Exception:
            logger.error(
                "low_stock_notification_failed",
                exc_info=True,
                extra={
                    "sku": event.sku,
                    "bin_location": event.bin_location,
                    "quantity": event.quantity,
                    "min_threshold": event.min_threshold,
                },
            )


def pending_events(session: Session) -> list[LowStockEvent]:
    """Events staged on ``session`` and not yet delivered."""
    return [event for _, event in session.info.get(_PENDING_KEY, [])]


def _deliver_pending(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, [])
    for dispatcher, event in pending:
        dispatcher.dispatch(event)


def _discard_pending(session: Session, transaction) -> None:
    if transaction.parent is not None:
        return
    discarded = session.info.pop(_PENDING_KEY, [])
    if discarded:
        logger.info(
            "low_stock_notifications_discarded",
            extra={"count": len(discarded)},
        )
