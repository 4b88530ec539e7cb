from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

log = logging.getLogger(__name__)

# Topics published by sensors and the recording controls.
TOPIC_SENSOR_READING = "sensor_reading"
TOPIC_START_SESSION = "start_session"
TOPIC_END_SESSION = "end_session"
TOPIC_ADD_BOOKMARK = "add_bookmark"
TOPIC_CLOSE_BOOKMARK = "close_bookmark"


class EventBus:
    """
    A small synchronous publish/subscribe channel.

    Callbacks run on the publishing thread, in registration order. A
    callback that raises stops delivery and the error propagates to the
    publisher.
    """

    def __init__(self) -> None:
        self._subscribers: DefaultDict[str, List[Callable[..., Any]]] = defaultdict(list)

    def subscribe(self, topic: str, callback: Callable[..., Any]) -> None:
        self._subscribers[topic].append(callback)

    def unsubscribe(self, topic: str, callback: Callable[..., Any]) -> None:
        if callback in self._subscribers.get(topic, []):
            self._subscribers[topic].remove(callback)

    def subscribers(self, topic: str) -> List[Callable[..., Any]]:
        return list(self._subscribers.get(topic, []))

    def publish(self, topic: str, *args: Any) -> int:
        """Deliver to every subscriber of topic; returns how many were called."""
        # Copy so a callback may unsubscribe itself during delivery
        callbacks = list(self._subscribers.get(topic, []))
        if not callbacks:
            log.debug("No subscribers for topic %s", topic)
        for cb in callbacks:
            cb(*args)
        return len(callbacks)
