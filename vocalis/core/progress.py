"""
Progress reporting and cancellation for long-running analysis passes.

Progress callbacks are invoked synchronously from the analysis thread;
callers that need the values on another thread (a UI loop, an asyncio
loop) must marshal them themselves.
"""

import threading
from typing import Callable, Optional

from vocalis.utils.errors import AnalysisCancelledError

ProgressCallback = Callable[[float], None]

# Minimum advance between two reports inside one pass
DEFAULT_PROGRESS_STEP = 0.1


class CancellationToken:
    """
    Cooperative cancellation flag.

    Passes call ``raise_if_cancelled`` at every window boundary; a window's
    computation itself is never interrupted.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, analyzer_name: Optional[str] = None) -> None:
        if self._event.is_set():
            raise AnalysisCancelledError(analyzer_name=analyzer_name)


class ProgressReporter:
    """
    Serializes progress values from one analysis into a monotonic stream.

    Values are clamped to [0, 1]; anything below the last reported value is
    dropped. The callback is never invoked concurrently with itself.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self._lock = threading.Lock()
        self._last: Optional[float] = None

    @property
    def last_reported(self) -> Optional[float]:
        return self._last

    def report(self, value: float) -> None:
        value = min(1.0, max(0.0, float(value)))
        with self._lock:
            if self._last is not None and value < self._last:
                return
            self._last = value
            if self._callback is not None:
                self._callback(value)

    def phase(self, start: float, end: float) -> ProgressCallback:
        """Return a callback mapping a phase's [0, 1] into [start, end]."""
        span = end - start

        def scaled(fraction: float) -> None:
            self.report(start + fraction * span)

        return scaled


class PassProgress:
    """
    Throttled progress for one pass over a buffer.

    ``advance`` reports position / total only when it has moved at least
    ``step`` since the previous report; ``finish`` always reports 1.0.
    """

    def __init__(
        self,
        callback: Optional[ProgressCallback],
        total: int,
        step: float = DEFAULT_PROGRESS_STEP,
    ):
        self._callback = callback
        self._total = total
        self._step = step
        self._last = 0.0

    def advance(self, position: int) -> None:
        if self._callback is None or self._total <= 0:
            return
        current = min(1.0, position / self._total)
        if current - self._last >= self._step:
            self._callback(current)
            self._last = current

    def finish(self) -> None:
        if self._callback is not None:
            self._callback(1.0)
