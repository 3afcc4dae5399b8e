"""In-process publish/subscribe dispatcher.

Handlers run synchronously on the emitting thread, in registration order.
Payloads are deep-copied once per emit so producers and consumers never share
mutable state.

A Dispatcher is not thread-safe and takes no lock: subscribe and emit from
the thread that owns it. Results from the stats worker process are brought
back to that thread by StatsWorker.poll().
"""

import copy
from dataclasses import dataclass
from typing import Any, Callable, Dict, List
from logger import get_logger

logger = get_logger()

STATE_CHANGED = "state-changed"
STATS_READY = "stats-ready"
DATA_IMPORTED = "data-imported"

Handler = Callable[[Any], None]


@dataclass(eq=False)
class Subscription:
    """Handle returned by Dispatcher.on; cancel() removes exactly this handler."""

    dispatcher: "Dispatcher"
    topic: str
    handler: Handler
    target: Handler = None
    active: bool = True

    def __post_init__(self):
        if self.target is None:
            self.target = self.handler

    def cancel(self) -> None:
        if self.active:
            self.dispatcher._remove(self.topic, self)
            self.active = False


class Dispatcher:
    """Synchronous topic-based event dispatcher."""

    def __init__(self):
        self._subscribers: Dict[str, List[Subscription]] = {}

    def on(self, topic: str, handler: Handler) -> Subscription:
        """Register a handler for a topic.

        Returns:
            Subscription handle that can cancel this registration.
        """
        subscription = Subscription(self, topic, handler)
        self._subscribers.setdefault(topic, []).append(subscription)
        return subscription

    def once(self, topic: str, handler: Handler) -> Subscription:
        """Register a handler that is removed after its first invocation."""
        subscription = None

        def wrapper(payload):
            subscription.cancel()
            handler(payload)

        subscription = self.on(topic, wrapper)
        subscription.target = handler
        return subscription

    def off(self, topic: str, handler: Handler) -> bool:
        """Remove the first registration of a handler on a topic.

        Handlers registered with once() can be removed by passing the original
        callable or through their Subscription.

        Returns:
            True if a registration was removed.
        """
        for subscription in list(self._subscribers.get(topic, [])):
            if subscription.target == handler:
                subscription.cancel()
                return True
        return False

    def off_all(self, topic: str) -> int:
        """Remove every handler registered on a topic.

        Other components may depend on handlers they registered themselves;
        only use this for topics you own.

        Returns:
            Number of handlers removed.
        """
        subscriptions = self._subscribers.pop(topic, [])
        for subscription in subscriptions:
            subscription.active = False
        if subscriptions:
            logger.warning(f"Removed all {len(subscriptions)} handler(s) for '{topic}'")
        return len(subscriptions)

    def emit(self, topic: str, payload: Any = None) -> None:
        """Deliver a deep copy of payload to every handler of a topic.

        A handler that raises is logged and skipped; the remaining handlers
        still run. Emitting to a topic without subscribers is a no-op.
        """
        subscriptions = list(self._subscribers.get(topic, []))
        if not subscriptions:
            return

        payload = _clone(payload)
        for subscription in subscriptions:
            if not subscription.active:
                continue
            try:
                subscription.handler(payload)
            except Exception:
                logger.exception(f"Handler failed for '{topic}'")

    def listener_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    def topics(self) -> List[str]:
        return list(self._subscribers)

    def clear(self) -> None:
        """Remove all handlers for all topics."""
        for subscriptions in self._subscribers.values():
            for subscription in subscriptions:
                subscription.active = False
        self._subscribers.clear()

    def _remove(self, topic: str, subscription: Subscription) -> None:
        subscriptions = self._subscribers.get(topic)
        if not subscriptions or subscription not in subscriptions:
            return
        subscriptions.remove(subscription)
        if not subscriptions:
            del self._subscribers[topic]


def _clone(payload: Any) -> Any:
    if payload is None or isinstance(payload, (str, int, float, bool)):
        return payload
    try:
        return copy.deepcopy(payload)
    except (TypeError, copy.Error) as e:
        # Handles that cannot be copied (open files, locks) fall back to a shallow copy
        logger.warning(f"Payload could not be deep-copied, using shallow copy: {e}")
        return copy.copy(payload)
