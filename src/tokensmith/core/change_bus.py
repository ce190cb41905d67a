"""
Change bus for tokensmith.

Synchronous publish/subscribe for change events. Subscribers run in
registration order; the subscriber list is snapshotted per dispatch, so
subscribing or unsubscribing from inside a handler takes effect on the next
dispatch.

A publish made while a dispatch is running is queued and coalesced with any
other queued event (names are unioned, a full reset absorbs names), then
delivered once the current dispatch finishes. The number of such follow-up
rounds is capped; overflow is logged and dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .ir import ChangeEvent

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 16

ChangeHandler = Callable[[ChangeEvent], None]


@dataclass
class Subscription:
    """Handle returned by :meth:`ChangeBus.subscribe`."""

    bus: ChangeBus
    handler: ChangeHandler

    def unsubscribe(self) -> None:
        self.bus.unsubscribe(self.handler)


@dataclass
class ChangeBus:
    """Delivers ChangeEvents to subscribers, coalescing re-entrant publishes."""

    max_rounds: int = DEFAULT_MAX_ROUNDS
    _handlers: list[ChangeHandler] = field(default_factory=list)
    _pending: ChangeEvent | None = None
    _dispatching: bool = False

    def subscribe(self, handler: ChangeHandler) -> Subscription:
        """Register a handler. Registering the same handler twice is a no-op."""
        if handler not in self._handlers:
            self._handlers.append(handler)
        return Subscription(self, handler)

    def unsubscribe(self, handler: ChangeHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    # =========================================================================
    # Publishing
    # =========================================================================

    def publish(self, event: ChangeEvent) -> None:
        """
        Deliver an event to every subscriber.

        Called from inside a handler, the event is queued and delivered after
        the current dispatch instead of recursing.
        """
        self._pending = self._pending.merge(event) if self._pending is not None else event
        if self._dispatching:
            logger.debug("Queued re-entrant change event %s", event.as_payload())
            return

        self._dispatching = True
        try:
            rounds = 0
            while self._pending is not None:
                if rounds >= self.max_rounds:
                    logger.warning(
                        "Dropping change event %s: exceeded %d dispatch rounds",
                        self._pending.as_payload(),
                        self.max_rounds,
                    )
                    self._pending = None
                    break
                current, self._pending = self._pending, None
                rounds += 1
                self._dispatch(current)
        finally:
            self._dispatching = False
            self._pending = None

    def _dispatch(self, event: ChangeEvent) -> None:
        handlers = list(self._handlers)
        logger.debug("Dispatching %s to %d subscribers", event.as_payload(), len(handlers))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Change handler %s failed for event %s",
                    getattr(handler, "__name__", handler),
                    event.as_payload(),
                )
