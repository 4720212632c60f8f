"""Typed event bus for engine → observer notifications.

The engine publishes one dataclass per event kind (see
``targetconfig.rules.events``) and observers such as a UI subscribe to
the kinds they care about. Each event class is its own channel; there is
no untyped payload dictionary.
"""

import logging
import uuid
from collections import defaultdict
from threading import RLock
from typing import Callable, Dict, List, Optional, Tuple, Type, TypeVar

from targetconfig.rules.events import (
    BusyChanged,
    EngineEvent,
    RulesReplaced,
    SelectionChanged,
    SourcePathsUpdated,
)

logger = logging.getLogger("targetconfig.eventbus")

E = TypeVar("E", bound=EngineEvent)


class EventBus:
    """Thread-safe publish/subscribe keyed by event class.

    Handlers run outside the lock, on the publishing thread. The engine only
    publishes from its controlling context, so observers see events in the
    order state was applied.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[Type[EngineEvent], List[Tuple[str, Callable, str]]] = defaultdict(list)
        self._lock = RLock()
        logger.debug("Event bus initialized")

    def subscribe(
        self,
        event_type: Type[E],
        handler: Callable[[E], None],
        name: Optional[str] = None,
    ) -> str:
        """Subscribe to events of a specific class.

        Args:
            event_type: Event class to subscribe to.
            handler: Callback invoked with each published event.
            name: Optional handler name for logging.

        Returns:
            str: Subscription ID that can be used to unsubscribe.
        """
        subscription_id = str(uuid.uuid4())
        handler_name = name or getattr(handler, "__name__", "anonymous")

        with self._lock:
            self._subscribers[event_type].append((subscription_id, handler, handler_name))
            logger.debug(
                "Handler %s subscribed to %s (id=%s)",
                handler_name,
                event_type.__name__,
                subscription_id[:8],
            )

        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription.

        Returns:
            bool: True if the subscription was found and removed.
        """
        with self._lock:
            for event_type, handlers in self._subscribers.items():
                for i, (sid, _, handler_name) in enumerate(handlers):
                    if sid == subscription_id:
                        del handlers[i]
                        logger.debug(
                            "Handler %s unsubscribed from %s (id=%s)",
                            handler_name,
                            event_type.__name__,
                            subscription_id[:8],
                        )
                        return True
        return False

    def publish(self, event: EngineEvent) -> None:
        """Deliver ``event`` to every subscriber of its class."""
        with self._lock:
            handlers_snapshot = list(self._subscribers.get(type(event), []))

        if not handlers_snapshot:
            return

        logger.debug(
            "Publishing %s to %d handlers", type(event).__name__, len(handlers_snapshot)
        )

        for _, handler, handler_name in handlers_snapshot:
            self._safe_call_handler(handler, handler_name, event)

    def _safe_call_handler(self, handler: Callable, handler_name: str, event: EngineEvent) -> None:
        try:
            handler(event)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error(
                "Handler %s failed for event %s: %s",
                handler_name,
                type(event).__name__,
                e,
                exc_info=True,
            )

    def clear_subscribers(self, event_type: Optional[Type[EngineEvent]] = None) -> None:
        """Clear subscribers for one event class, or all of them."""
        with self._lock:
            if event_type is None:
                self._subscribers.clear()
            else:
                self._subscribers[event_type].clear()

    def subscriber_count(self, event_type: Optional[Type[EngineEvent]] = None) -> int:
        with self._lock:
            if event_type is None:
                return sum(len(handlers) for handlers in self._subscribers.values())
            return len(self._subscribers.get(event_type, []))


__all__ = [
    "EngineEvent",
    "SelectionChanged",
    "RulesReplaced",
    "SourcePathsUpdated",
    "BusyChanged",
    "EventBus",
]
