"""
Single-flight debounce with a generation counter.

Each ``schedule`` call invalidates whatever came before it: the previous
task is cancelled and its generation token goes stale, so a late result
from a superseded request is dropped instead of overwriting newer state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger("fm_corrections.debounce")

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Run one async job after ``delay`` seconds of quiet.

    Args:
        delay: Quiet period in seconds, restarted by every ``schedule`` call.
        name: Label used in log lines.
    """

    def __init__(self, delay: float, name: str = "debounce") -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self.name = name
        self._generation = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> bool:
        """True while a scheduled job is waiting or running."""
        return self._task is not None and not self._task.done()

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def schedule(
        self,
        factory: Callable[[], Awaitable[T]],
        on_result: Callable[[T], Any],
        *,
        on_start: Callable[[], Any] | None = None,
        on_error: Callable[[BaseException], Any] | None = None,
    ) -> int:
        """Replace any pending job with ``factory`` and return its token.

        Must be called from a running event loop.
        """
        self.cancel()
        token = self._generation
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(token, factory, on_result, on_start, on_error))
        return token

    def cancel(self) -> None:
        """Invalidate the current generation and cancel its task."""
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("[FMCorrections] %s: cancelled pending job.", self.name)

    async def wait(self) -> None:
        """Wait for the current job to settle, whatever its outcome."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def _run(
        self,
        token: int,
        factory: Callable[[], Awaitable[T]],
        on_result: Callable[[T], Any],
        on_start: Callable[[], Any] | None,
        on_error: Callable[[BaseException], Any] | None,
    ) -> None:
        await asyncio.sleep(self.delay)
        if not self.is_current(token):
            return

        if on_start is not None:
            on_start()

        try:
            result = await factory()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not self.is_current(token):
                logger.debug("[FMCorrections] %s: ignoring failure of superseded job.", self.name)
                return
            if on_error is None:
                logger.warning("[FMCorrections] %s: job failed: %s", self.name, exc)
            else:
                on_error(exc)
            return

        if not self.is_current(token):
            logger.debug("[FMCorrections] %s: discarding superseded result.", self.name)
            return
        on_result(result)
