"""Cooperative scheduling helpers for long-running pattern work."""

import asyncio
from typing import Callable, Optional

from ..exceptions import AnalysisAbortedError


AbortCheck = Callable[[], bool]
ProgressCallback = Callable[[str, float], None]


class CooperativeTask:
    """
    Abort polling, event-loop yielding and progress reporting for one analysis.

    Long steps call ``await task.checkpoint()`` between chunks so an abort is
    observed promptly and the progress ticker keeps running.
    """

    def __init__(
        self,
        should_abort: Optional[AbortCheck] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self._should_abort = should_abort
        self._on_progress = on_progress

    def check_abort(self) -> None:
        """Raise AnalysisAbortedError if the caller asked to stop."""
        if self._should_abort is not None and self._should_abort():
            raise AnalysisAbortedError()

    async def checkpoint(self) -> None:
        """Check for abort, yield to the event loop, then check again."""
        self.check_abort()
        await asyncio.sleep(0)
        self.check_abort()

    def report(self, stage: str, fraction: float) -> None:
        """Report progress within this analysis as a 0-1 fraction."""
        if self._on_progress is not None:
            self._on_progress(stage, max(0.0, min(1.0, fraction)))


def chunked(items: list, size: int):
    """Yield (start_index, chunk) pairs of at most ``size`` items."""
    size = max(1, size)
    for start in range(0, len(items), size):
        yield start, items[start:start + size]
