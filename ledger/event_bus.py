"""
Event bus for ledger events.

Synchronous in-process pub/sub. Handlers run in the publisher's thread.
A failing handler is logged and skipped; it never fails the reconciliation
run that published the event.
"""

import logging
from typing import Callable

from ledger.events import LedgerEvent

logger = logging.getLogger(__name__)

Handler = Callable[[LedgerEvent], None]


class EventBus:
    """
    In-process event bus.

    Subscribe with an event class or its name, publish an instance.
    Handlers are called in subscription order.
    """

    def __init__(self):
        self._subscribers: dict[str, list[Handler]] = {}

    @staticmethod
    def _name(event_type: type[LedgerEvent] | str) -> str:
        return event_type if isinstance(event_type, str) else event_type.__name__

    def subscribe(self, event_type: type[LedgerEvent] | str, callback: Handler) -> None:
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Event class, or its name (e.g. 'InvoiceReconciled')
            callback: Called with each published event of that type
        """
        self._subscribers.setdefault(self._name(event_type), []).append(callback)

    def unsubscribe(self, event_type: type[LedgerEvent] | str, callback: Handler) -> None:
        """Remove a callback. Unknown callbacks are ignored."""
        callbacks = self._subscribers.get(self._name(event_type), [])
        if callback in callbacks:
            callbacks.remove(callback)

    def publish(self, event: LedgerEvent) -> None:
        """
        Deliver an event to every subscriber of its type.

        Args:
            event: LedgerEvent instance
        """
        event_type = event.__class__.__name__

        for callback in list(self._subscribers.get(event_type, [])):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                )
