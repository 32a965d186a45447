# app/store/notifier.py
#
# Publish-on-write change notification.
#
# Every store write calls publish() AFTER its transaction commits.
# Subscribers get no payload; they re-read whatever they display.
# That keeps the rule simple: if you were notified, the write is visible.
#
#   store.save_order(...)  →  commit  →  notifier.publish()
#                                            ├── staff dashboard callback
#                                            ├── admin dashboard callback
#                                            └── /events SSE queue

import asyncio
import logging
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ChangeNotifier:
    def __init__(self):
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()
        self.published = 0

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a listener and returns the function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
            self.published += 1

        for listener in listeners:
            try:
                listener()
            except Exception:
                # One broken dashboard must not stop the others from refreshing
                logger.exception("❌ Change listener failed")

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    async def stream(self, heartbeat: Optional[float] = None):
        """
        Async generator yielding True once per published change.

        With a heartbeat (seconds), it also yields False whenever that long
        passes without a change, so a consumer gets a regular chance to
        notice its client went away.

        Writes happen on FastAPI's worker threads, so the callback hands the
        signal over to the event loop with call_soon_threadsafe.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        unsubscribe = self.subscribe(lambda: loop.call_soon_threadsafe(queue.put_nowait, None))
        try:
            while True:
                if heartbeat is None:
                    await queue.get()
                    yield True
                    continue
                try:
                    await asyncio.wait_for(queue.get(), timeout=heartbeat)
                except asyncio.TimeoutError:
                    yield False
                else:
                    yield True
        finally:
            unsubscribe()
