"""
Runs the shell's simulated latency on eventlet green threads.

Scripted replies, analysis results and search results are delivered after a
fixed delay. Each delivery is a green thread spawned with a delay; the
returned handle can be cancelled until it starts running.
"""
import logging
from typing import Any, Callable, Protocol

import eventlet


class ScheduledCall(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ScheduledCall: ...


class EventletScheduler:
    """Schedules deferred callbacks with eventlet.spawn_after."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ScheduledCall:
        return eventlet.spawn_after(delay, self._run, callback, *args)

    @staticmethod
    def _run(callback: Callable[..., Any], *args: Any) -> None:
        # Exceptions are logged here; the hub never sees them.
        try:
            callback(*args)
        except Exception:
            logging.exception(f"Deferred callback {getattr(callback, '__qualname__', callback)} failed.")
