"""Cooperative command scheduler for one session.

Background work runs in a small thread pool; each unit of work reports back
by posting exactly one event into the session inbox. The control loop is the
only consumer of the inbox, so session state is never touched off-thread.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from queue import Empty, Queue

from .events import Event, TaskFailed

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class PreviewCancelled(Exception):
    """Raised inside a worker once its cancel token has been set."""


class CancelToken:
    """One-shot cancellation flag shared between the loop and a worker."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PreviewCancelled()


class CommandScheduler:
    """Worker pool, timers, and the inbox they all report into."""

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS, name: str = "e6term") -> None:
        self.inbox: Queue[Event] = Queue()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"{name}-task")
        self._lock = threading.Lock()
        self._timers: set[threading.Timer] = set()
        self._preview_token: CancelToken | None = None
        self._closed = False

    def post(self, event: Event) -> None:
        """Queue an event for the control loop; safe from any thread."""
        self.inbox.put(event)

    def next_event(self, timeout: float | None = None) -> Event | None:
        """Block up to ``timeout`` seconds for the next event."""
        try:
            return self.inbox.get(timeout=timeout)
        except Empty:
            return None

    def drain(self) -> list[Event]:
        out: list[Event] = []
        while True:
            try:
                out.append(self.inbox.get_nowait())
            except Empty:
                break
        return out

    def submit(self, task_name: str, fn: Callable[..., Event | None], *args: object) -> Future | None:
        """Run ``fn(*args)`` off-thread and post the event it returns.

        A ``None`` result posts nothing. An exception is logged and posted as
        :class:`TaskFailed` so the loop can surface it without dying.
        """
        with self._lock:
            if self._closed:
                return None

        def run() -> None:
            try:
                event = fn(*args)
            except Exception as exc:
                logger.exception("Background task %s failed", task_name)
                self.post(TaskFailed(task=task_name, message=str(exc) or type(exc).__name__))
                return
            if event is not None:
                self.post(event)

        try:
            return self._executor.submit(run)
        except RuntimeError:
            # Executor already shut down while the session was closing.
            logger.debug("Dropped task %s submitted after shutdown", task_name)
            return None

    def call_later(self, delay: float, event: Event) -> threading.Timer:
        """Post ``event`` after ``delay`` seconds."""

        def fire() -> None:
            with self._lock:
                self._timers.discard(timer)
            self.post(event)

        timer = threading.Timer(delay, fire)
        timer.daemon = True
        with self._lock:
            self._timers.add(timer)
        timer.start()
        return timer

    def new_preview_token(self) -> CancelToken:
        """Cancel the previous preview token and return a fresh one."""
        token = CancelToken()
        with self._lock:
            previous = self._preview_token
            self._preview_token = token
        if previous is not None:
            previous.cancel()
        return token

    def cancel_preview(self) -> None:
        """Cancel the in-flight preview, if any, without starting a new one."""
        with self._lock:
            token = self._preview_token
            self._preview_token = None
        if token is not None:
            token.cancel()

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            timers = list(self._timers)
            self._timers.clear()
            token = self._preview_token
            self._preview_token = None
        for timer in timers:
            timer.cancel()
        if token is not None:
            token.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)


__all__ = [
    "CancelToken",
    "CommandScheduler",
    "PreviewCancelled",
]
