"""Monotonic wall-clock timer with nanosecond resolution."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

_NS_PER_US = 1_000
_NS_PER_MS = 1_000_000
_NS_PER_S = 1_000_000_000


@dataclass
class Timer:
    """Measures the time between :meth:`begin` and :meth:`end`.

    The clock is any callable returning integer nanoseconds; it defaults to
    the monotonic clock. Unit conversions truncate toward zero.
    """

    clock: Callable[[], int] = time.monotonic_ns
    _start: int | None = field(default=None, init=False, repr=False)
    _stop: int | None = field(default=None, init=False, repr=False)
    _elapsed: int | None = field(default=None, init=False, repr=False)

    def begin(self) -> None:
        """Record the starting instant."""
        self._start = self.clock()

    def end(self) -> None:
        """Record the final instant and compute the elapsed time."""
        if self._start is None:
            raise RuntimeError("timer was ended before it was begun")
        self._stop = self.clock()
        self._elapsed = self._stop - self._start

    def nanoseconds(self) -> int:
        """Elapsed time in nanoseconds."""
        if self._elapsed is None:
            raise RuntimeError("timer has not measured an interval yet")
        return self._elapsed

    def microseconds(self) -> int:
        """Elapsed time in whole microseconds."""
        return self.nanoseconds() // _NS_PER_US

    def milliseconds(self) -> int:
        """Elapsed time in whole milliseconds."""
        return self.nanoseconds() // _NS_PER_MS

    def seconds(self) -> int:
        """Elapsed time in whole seconds."""
        return self.nanoseconds() // _NS_PER_S

    def __enter__(self) -> Timer:
        self.begin()
        return self

    def __exit__(self, *args: object) -> None:
        self.end()