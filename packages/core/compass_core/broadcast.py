"""Periodic live-sample broadcast with an explicit idle/active state machine."""

from __future__ import annotations

import queue
import threading
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from .logging_setup import get_logger


T = TypeVar("T")

DEFAULT_PERIOD_S = 2.0
DEFAULT_QUEUE_SIZE = 8


class BroadcastState(str, Enum):
    IDLE = "Idle"
    ACTIVE = "Active"


class Subscription(Generic[T]):
    """Per-subscriber bounded mailbox; the oldest sample is dropped when full."""

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE, on_deliver: Callable[[], None] | None = None) -> None:
        self.id = uuid.uuid4().hex
        self._on_deliver = on_deliver
        self._queue: queue.Queue[T] = queue.Queue(maxsize=max(1, maxsize))
        self._lock = threading.Lock()
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, item: T) -> bool:
        with self._lock:
            if self._closed:
                return False
            while True:
                try:
                    self._queue.put_nowait(item)
                    break
                except queue.Full:
                    try:
                        self._queue.get_nowait()
                        self.dropped += 1
                    except queue.Empty:
                        pass
        if self._on_deliver is not None:
            self._on_deliver()
        return True

    def get(self, timeout: float | None = None) -> T | None:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        with self._lock:
            self._closed = True


class BroadcastLoop(Generic[T]):
    def __init__(
        self,
        sample_fn: Callable[[], T | None],
        period_s: float = DEFAULT_PERIOD_S,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._sample_fn = sample_fn
        self.period_s = period_s
        self.queue_size = queue_size

        self._lock = threading.RLock()
        self._subscribers: dict[str, Subscription[T]] = {}
        self._worker: threading.Thread | None = None
        self._stop_event: threading.Event | None = None
        self._events: list[dict[str, Any]] = []
        self._log = get_logger()

    @property
    def state(self) -> BroadcastState:
        with self._lock:
            return BroadcastState.ACTIVE if self._worker is not None else BroadcastState.IDLE

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def recent_events(self, limit: int = 200) -> list[dict[str, Any]]:
        with self._lock:
            return self._events[-limit:]

    def _log_event(self, event: str, **fields: Any) -> None:
        row = {"ts_utc": datetime.now(timezone.utc).isoformat(), "event": event}
        row.update(fields)
        with self._lock:
            self._events.append(row)
            if len(self._events) > 1000:
                self._events = self._events[-1000:]

    def subscribe(self, on_deliver: Callable[[], None] | None = None) -> Subscription[T]:
        """Attach a mailbox. `on_deliver` runs on the poll thread after each delivered sample."""
        sub: Subscription[T] = Subscription(self.queue_size, on_deliver)
        with self._lock:
            self._subscribers[sub.id] = sub
            self._log_event("subscribe", subscription=sub.id, subscribers=len(self._subscribers))
            self._start_locked()
        return sub

    def unsubscribe(self, sub: Subscription[T]) -> None:
        sub.close()
        with self._lock:
            if self._subscribers.pop(sub.id, None) is None:
                return
            self._log_event("unsubscribe", subscription=sub.id, subscribers=len(self._subscribers))
            stopped = self._stop_locked() if not self._subscribers else None
        self._join(stopped)

    def start(self) -> None:
        with self._lock:
            # Active always means at least one subscriber.
            if self._subscribers:
                self._start_locked()

    def stop(self) -> None:
        with self._lock:
            stopped = self._stop_locked()
        self._join(stopped)

    def close(self) -> None:
        with self._lock:
            subs = list(self._subscribers.values())
            self._subscribers.clear()
            stopped = self._stop_locked()
        for sub in subs:
            sub.close()
        self._join(stopped)

    def _start_locked(self) -> None:
        if self._worker is not None:
            return
        stop_event = threading.Event()
        worker = threading.Thread(target=self._run, args=(stop_event,), name="compass-broadcast", daemon=True)
        self._stop_event = stop_event
        self._worker = worker
        self._log_event("start", period_s=self.period_s)
        self._log.info("realtime broadcast started", extra={"event": "realtime_started"})
        worker.start()

    def _stop_locked(self) -> threading.Thread | None:
        worker, stop_event = self._worker, self._stop_event
        if worker is None or stop_event is None:
            return None
        stop_event.set()
        self._worker = None
        self._stop_event = None
        self._log_event("stop")
        self._log.info("realtime broadcast stopped", extra={"event": "realtime_stopped"})
        return worker

    @staticmethod
    def _join(worker: threading.Thread | None) -> None:
        if worker is not None and worker is not threading.current_thread():
            worker.join()

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.period_s):
            self.tick(stop_event)

    def tick(self, stop_event: threading.Event | None = None) -> int:
        """Produce one sample and hand it to every attached subscriber.

        Returns the number of subscribers that received it.
        """
        try:
            sample = self._sample_fn()
        except Exception as exc:
            self._log_event("poll_error", error=str(exc))
            self._log.warning(f"realtime poll failed: {exc}", extra={"event": "realtime_poll_failed"})
            return 0
        if sample is None:
            # The sampler already logged why.
            self._log_event("poll_empty")
            return 0
        if stop_event is not None and stop_event.is_set():
            return 0

        with self._lock:
            targets = list(self._subscribers.values())
        return sum(1 for sub in targets if sub.deliver(sample))
