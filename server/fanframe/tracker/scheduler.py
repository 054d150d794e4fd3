import asyncio
import inspect
import logging
from typing import Callable, Dict

logger = logging.getLogger(__name__)


class TimerScheduler:
    """
    Named, independently cancelable timers running as asyncio tasks

    Scheduling a timer under a name that is already active replaces it.
    A timer may reschedule its own name from its callback: the running
    callback finishes and the new timer takes over the name.
    Callbacks may be plain functions or coroutine functions; their
    exceptions are logged and do not stop a repeating timer.
    """

    def __init__(self):
        self._timers: Dict[str, asyncio.Task] = {}

    def call_later(self, name: str, delay: float, callback: Callable) -> asyncio.Task:
        return self._start(name, self._run_later(name, delay, callback))

    def call_every(self, name: str, interval: float, callback: Callable, run_immediately: bool = False) -> asyncio.Task:
        return self._start(name, self._run_every(name, interval, callback, run_immediately))

    def is_active(self, name: str) -> bool:
        """True while the timer is pending; a timer seen from its own callback is not."""
        task = self._timers.get(name)
        return task is not None and not task.done() and task is not _current_task()

    def cancel(self, name: str) -> bool:
        task = self._timers.pop(name, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_all(self):
        for name in list(self._timers):
            self.cancel(name)

    @property
    def active_names(self):
        return sorted(name for name in self._timers if self.is_active(name))

    async def drain(self):
        """Cancel every timer and wait until all of them have finished."""
        tasks = list(self._timers.values())
        self.cancel_all()
        current = asyncio.current_task()
        pending = [task for task in tasks if task is not current]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _start(self, name, coro):
        existing = self._timers.get(name)
        if existing is not None and existing is _current_task():
            # Rescheduled from its own callback: let it run to completion
            del self._timers[name]
        else:
            self.cancel(name)
        task = asyncio.get_running_loop().create_task(coro, name=f"timer:{name}")
        self._timers[name] = task
        task.add_done_callback(lambda finished: self._forget(name, finished))
        return task

    def _forget(self, name, task):
        if self._timers.get(name) is task:
            del self._timers[name]

    async def _run_later(self, name, delay, callback):
        await asyncio.sleep(delay)
        await self._invoke(name, callback)

    async def _run_every(self, name, interval, callback, run_immediately):
        if run_immediately:
            await self._invoke(name, callback)
        while True:
            await asyncio.sleep(interval)
            await self._invoke(name, callback)

    async def _invoke(self, name, callback):
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Timer '{name}' callback failed")


def _current_task():
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
