"""
Change notification channel between the monitor and presentation surfaces.

Events carry only a type and a timestamp; listeners re-read whatever state
they display. Delivery happens on a dedicated thread and coalesces: if several
events are published before the dispatcher gets to them, only the latest one
is delivered. Listeners must therefore also refresh on their own schedule.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

log = logging.getLogger(__name__)

Listener = Callable[[dict], None]


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime())


class ChangeBroadcaster:
    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()
        self._pending: Optional[dict] = None
        self._wake = threading.Condition(self._lock)
        self._closed = False
        self._thread: Optional[threading.Thread] = None

    def subscribe(self, cb: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        with self._lock:
            self._listeners.append(cb)

        def unsubscribe() -> None:
            with self._lock:
                if cb in self._listeners:
                    self._listeners.remove(cb)

        return unsubscribe

    def publish(self, event_type: str) -> None:
        with self._lock:
            if self._closed:
                return
            self._pending = {"type": event_type, "at": _now_iso()}
            if self._thread is None:
                self._thread = threading.Thread(target=self._run, name="ChangeBroadcaster", daemon=True)
                self._thread.start()
            self._wake.notify()

    def close(self, timeout: float = 2.0) -> None:
        with self._lock:
            self._closed = True
            self._wake.notify()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self) -> None:
        while True:
            with self._lock:
                while self._pending is None and not self._closed:
                    self._wake.wait()
                if self._pending is None:
                    return
                evt, self._pending = self._pending, None
                listeners = list(self._listeners)

            for cb in listeners:
                try:
                    cb(evt)
                except Exception:
                    log.exception("Listener failed on %s", evt.get("type"))
