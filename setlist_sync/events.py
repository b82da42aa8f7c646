"""
Notifications emitted by the core.

Subscribers register per event name and get a :class:`Subscription`
handle back; services that are re-created unsubscribe through that
handle instead of wiping every listener.
"""

import asyncio
import inspect
from typing import Any, Callable, Dict, List, Set

import structlog

logger = structlog.get_logger()

PLAYBACK_STATE_CHANGED = "playback_state_changed"
REGIONS_CHANGED = "regions_changed"
MARKERS_CHANGED = "markers_changed"
SETLISTS_CHANGED = "setlists_changed"
TRANSITION_FAILED = "transition_failed"
CONNECTIVITY_DEGRADED = "connectivity_degraded"
CONNECTIVITY_RESTORED = "connectivity_restored"
PROJECT_CHANGED = "project_changed"

EVENTS = (
    PLAYBACK_STATE_CHANGED,
    REGIONS_CHANGED,
    MARKERS_CHANGED,
    SETLISTS_CHANGED,
    TRANSITION_FAILED,
    CONNECTIVITY_DEGRADED,
    CONNECTIVITY_RESTORED,
    PROJECT_CHANGED,
)


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""

    def __init__(self, bus: "EventBus", event: str, callback: Callable[[Any], Any]):
        self.bus = bus
        self.event = event
        self.callback = callback
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.bus._remove(self)
            self.active = False


class EventBus:
    """Explicit observer registry for core notifications."""

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = {name: [] for name in EVENTS}
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, event: str, callback: Callable[[Any], Any]) -> Subscription:
        """
        Register a callback for one event.

        Args:
            event: One of the event names in :data:`EVENTS`
            callback: Called with the event payload; may be a coroutine function

        Returns:
            Subscription handle used to unsubscribe
        """
        if event not in self._subscriptions:
            raise ValueError(f"Unknown event: {event}")
        subscription = Subscription(self, event, callback)
        self._subscriptions[event].append(subscription)
        return subscription

    def emit(self, event: str, payload: Any = None):
        """Deliver ``payload`` to every subscriber of ``event``."""
        for subscription in list(self._subscriptions.get(event, [])):
            try:
                result = subscription.callback(payload)
                if inspect.iscoroutine(result):
                    self._schedule(event, result)
            except Exception as e:
                logger.error("Event subscriber failed", event_name=event, error=str(e))

    def _schedule(self, event: str, coroutine):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop for async subscriber", event_name=event)
            coroutine.close()
            return
        task = loop.create_task(coroutine)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def subscriber_count(self, event: str) -> int:
        return len(self._subscriptions.get(event, []))

    def clear(self):
        for subscriptions in self._subscriptions.values():
            for subscription in subscriptions:
                subscription.active = False
            subscriptions.clear()

    def _remove(self, subscription: Subscription):
        subscriptions = self._subscriptions.get(subscription.event, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)
