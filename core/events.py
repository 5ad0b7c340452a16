#!/usr/bin/env python3
"""In-process notifications (failures, saved settings, daemon state) for SSE clients."""

from __future__ import annotations

import json
import logging
import queue
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator

logger = logging.getLogger("slideshow.events")

LISTENER_QUEUE_SIZE = 64
KEEPALIVE_SECONDS = 15.0


class EventBus:
    """Each subscriber owns a bounded queue; publishing never blocks."""

    def __init__(self, maxsize: int = LISTENER_QUEUE_SIZE) -> None:
        self._subscribers: set[queue.Queue] = set()
        self._guard = threading.Lock()
        self._maxsize = maxsize

    def listen(self) -> queue.Queue:
        inbox: queue.Queue = queue.Queue(maxsize=self._maxsize)
        with self._guard:
            self._subscribers.add(inbox)
        return inbox

    def remove(self, inbox: queue.Queue) -> None:
        with self._guard:
            self._subscribers.discard(inbox)

    @contextmanager
    def subscription(self) -> Iterator[queue.Queue]:
        inbox = self.listen()
        try:
            yield inbox
        finally:
            self.remove(inbox)

    def listener_count(self) -> int:
        with self._guard:
            return len(self._subscribers)

    def publish(self, event_type: str, payload: Dict[str, Any]) -> int:
        """Queue ``payload`` for every subscriber; returns how many received it."""
        event = {"type": event_type, "payload": payload, "ts": time.time()}
        with self._guard:
            targets = tuple(self._subscribers)
        delivered = 0
        for inbox in targets:
            try:
                inbox.put_nowait(event)
            except queue.Full:
                logger.debug({"evt": "event_dropped", "type": event_type})
            else:
                delivered += 1
        return delivered

    def stream(self, keepalive: float = KEEPALIVE_SECONDS) -> Iterator[str]:
        """Yield SSE frames until the consumer closes the generator."""
        with self.subscription() as inbox:
            while True:
                try:
                    event = inbox.get(timeout=keepalive)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                yield format_sse(event)


def format_sse(event: Dict[str, Any]) -> str:
    name = event.get("type", "message")
    data = json.dumps(event.get("payload", {}))
    return f"event: {name}\ndata: {data}\n\n"


event_bus = EventBus()
