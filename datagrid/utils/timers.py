# datagrid/utils/timers.py
# Cancellable timers on the running asyncio loop

import asyncio
import inspect
from typing import Any, Callable, Optional

from datagrid.utils.logger import log_exception


class TimerHandle:
    """A scheduled call that can be cancelled until it starts running.

    Coroutine callbacks run as a task; `wait()` resolves once the callback has
    finished (or immediately if it was cancelled before firing).
    """

    def __init__(self, delay: float, fn: Callable[[], Any]):
        self._fn = fn
        self._loop = asyncio.get_running_loop()
        self._done = self._loop.create_future()
        self._task: Optional[asyncio.Task] = None
        self._handle = self._loop.call_later(delay, self._fire)

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled() and self._task is None

    @property
    def fired(self) -> bool:
        return self._task is not None or (self._done.done() and not self._handle.cancelled())

    def cancel(self) -> bool:
        """Cancel the pending call. Returns False if it already fired or was cancelled."""
        if self._task is not None or self._done.done():
            return False
        self._handle.cancel()
        self._done.set_result(None)
        return True

    def _fire(self) -> None:
        try:
            result = self._fn()
        except Exception as e:
            log_exception(e, "TimerHandle: callback failed")
            self._done.set_result(None)
            return
        if inspect.isawaitable(result):
            self._task = asyncio.ensure_future(result)
            self._task.add_done_callback(self._finish)
        else:
            self._done.set_result(None)

    def _finish(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            log_exception(task.exception(), "TimerHandle: callback failed")
        if not self._done.done():
            self._done.set_result(None)

    async def wait(self) -> None:
        await asyncio.shield(self._done)


def schedule(delay: float, fn: Callable[[], Any]) -> TimerHandle:
    """Run fn after delay seconds on the running loop."""
    return TimerHandle(delay, fn)


class Debouncer:
    """
    Trailing-edge debounce: only the last call in a burst runs.

    Each `call()` cancels the pending timer and schedules a fresh one, so at
    most one call is pending at a time.
    """

    def __init__(self, delay: float, fn: Callable[[], Any]):
        self.delay = delay
        self._fn = fn
        self._pending: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.fired and not self._pending.cancelled

    def call(self) -> TimerHandle:
        self.cancel()
        self._pending = schedule(self.delay, self._fn)
        return self._pending

    def cancel(self) -> bool:
        if self._pending is None:
            return False
        cancelled = self._pending.cancel()
        self._pending = None
        return cancelled

    async def flush(self) -> None:
        """Wait for the latest scheduled call (if any) to finish."""
        if self._pending is not None:
            await self._pending.wait()
