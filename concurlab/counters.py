"""Many threads adding to a shared total, with and without synchronisation."""

from __future__ import annotations

import argparse
import logging
import re
import sys
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from concurlab.timing import Timer

DEFAULT_THREADS = 1000
DEFAULT_ITERATIONS = 10000
DEFAULT_VALUE = 1
DEFAULT_POLL_INTERVAL = 0.05

SHARED_VARIABLE = "The value of the shared variable is"
COMPUTED_ARRAY = "The value computed on the array is"

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CounterReport:
    """Outcome of one run: what was computed against what was expected."""

    threads: int
    iterations: int
    value: int
    computed: int
    description: str = SHARED_VARIABLE
    elapsed_ms: int | None = None

    def expected(self) -> int:
        """The total every add would have produced."""
        return self.threads * self.iterations * self.value

    def lost_adds(self) -> int:
        """How many single adds went missing."""
        missing = self.expected() - self.computed
        if missing <= 0 or self.value == 0:
            return 0
        return missing // self.value

    def lines(self) -> list[str]:
        """The human-readable summary of the run."""
        out = [f"{self.description} {self.computed}. It should have been {self.expected()}"]
        if self.expected() > self.computed:
            out.append(f"Number of lost adds: {self.lost_adds()}")
        if self.elapsed_ms is not None:
            out.append(f"It took {self.elapsed_ms} milliseconds")
        return out


class ThreadQueue:
    """FIFO of thread identifiers, safe to share between threads."""

    def __init__(self, idents: Iterable[int] = ()) -> None:
        self._items: deque[int] = deque(idents)
        self._lock = threading.Lock()

    def enqueue(self, ident: int) -> None:
        with self._lock:
            self._items.append(ident)

    def dequeue(self) -> int:
        with self._lock:
            if not self._items:
                raise LookupError("dequeue from an empty queue")
            return self._items.popleft()

    def head(self) -> int | None:
        """The identifier at the front, or None when empty."""
        with self._lock:
            return self._items[0] if self._items else None

    def __contains__(self, ident: object) -> bool:
        with self._lock:
            return ident in self._items

    def __iter__(self) -> Iterator[int]:
        with self._lock:
            snapshot = list(self._items)
        return iter(snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def render(self) -> str:
        return "".join(f"id:{ident}->" for ident in self)


def _check(threads: int, iterations: int) -> None:
    if threads < 0:
        raise ValueError(f"thread count must not be negative: {threads}")
    if iterations < 0:
        raise ValueError(f"iteration count must not be negative: {iterations}")


def _run_all(targets: Iterable[Callable[[], None]]) -> None:
    workers = [threading.Thread(target=target) for target in targets]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()


def run_unsynchronized(threads: int, iterations: int, value: int) -> CounterReport:
    """Every thread updates one shared total with no protection at all."""
    _check(threads, iterations)
    total = 0

    def work() -> None:
        nonlocal total
        for _ in range(iterations):
            current = total
            total = current + value

    _run_all(work for _ in range(threads))
    return CounterReport(threads, iterations, value, total)


def run_with_semaphore(threads: int, iterations: int, value: int) -> CounterReport:
    """Every add is guarded by a binary semaphore; the run is timed."""
    _check(threads, iterations)
    total = 0
    guard = threading.Semaphore(1)

    def work() -> None:
        nonlocal total
        for _ in range(iterations):
            with guard:
                total += value

    timer = Timer()
    timer.begin()
    _run_all(work for _ in range(threads))
    timer.end()
    return CounterReport(
        threads, iterations, value, total, elapsed_ms=timer.milliseconds()
    )


def run_per_thread_slots(threads: int, iterations: int, value: int) -> CounterReport:
    """Each thread owns one slot of a shared list; slots are summed after join."""
    _check(threads, iterations)
    slots = [0] * threads

    def work(index: int) -> Callable[[], None]:
        def add() -> None:
            for _ in range(iterations):
                slots[index] += value

        return add

    _run_all(work(index) for index in range(threads))
    return CounterReport(threads, iterations, value, sum(slots), description=COMPUTED_ARRAY)


def run_thread_results(threads: int, iterations: int, value: int) -> CounterReport:
    """Each thread returns its own partial sum, collected on join."""
    _check(threads, iterations)

    def portion() -> int:
        part = 0
        for _ in range(iterations):
            part += value
        return part

    total = 0
    if threads:
        with ThreadPoolExecutor(max_workers=threads) as pool:
            futures = [pool.submit(portion) for _ in range(threads)]
            total = sum(future.result() for future in futures)
    return CounterReport(threads, iterations, value, total, description=COMPUTED_ARRAY)


def run_ticket_queue(
    threads: int,
    iterations: int,
    value: int,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> CounterReport:
    """Threads queue up and each adds only once it reaches the head.

    A thread leaves the queue before adding, so the next one may start while
    the previous is still adding: the adds themselves stay unprotected.
    """
    _check(threads, iterations)
    queue = ThreadQueue()
    total = 0

    def work() -> None:
        nonlocal total
        me = threading.get_ident()
        while queue.head() != me:
            if me not in queue:
                queue.enqueue(me)
            time.sleep(poll_interval)
        _log.debug("queue: %s", queue.render())
        if queue.dequeue() != me:
            _log.error("Id in head different from self")
        for _ in range(iterations):
            current = total
            total = current + value

    _run_all(work for _ in range(threads))
    return CounterReport(threads, iterations, value, total)


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def parse_arguments(argv: list[str]) -> tuple[int, int, int]:
    """Read thread count, iterations and value, each optional and in order."""
    defaults = [DEFAULT_THREADS, DEFAULT_ITERATIONS, DEFAULT_VALUE]
    for position, text in enumerate(argv[:3]):
        defaults[position] = _atoi(text)
    threads, iterations, value = defaults
    return threads, iterations, value


_STRATEGIES: dict[str, Callable[[int, int, int], CounterReport]] = {
    "unsynchronized": run_unsynchronized,
    "semaphore": run_with_semaphore,
    "slots": run_per_thread_slots,
    "results": run_thread_results,
    "queue": run_ticket_queue,
}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="concurlab-counters",
        description="Start N threads, each adding V to a total M times.",
    )
    parser.add_argument("numbers", nargs="*", metavar="N M V")
    parser.add_argument("--strategy", choices=sorted(_STRATEGIES), default="unsynchronized")
    args = parser.parse_args(argv)
    threads, iterations, value = parse_arguments(args.numbers)

    target = (
        "a shared data structure"
        if args.strategy in ("slots", "results")
        else "a shared variable"
    )
    print(
        f"Going to start {threads} threads, each adding {iterations} times {value} "
        f"to {target} initialized to zero...",
        end="",
        flush=True,
    )
    try:
        report = _STRATEGIES[args.strategy](threads, iterations, value)
    except RuntimeError as exc:
        print(f"Can't create a new thread, error {exc}", file=sys.stderr)
        return 1
    print("ok")
    print(f"Waiting for the termination of all the {threads} threads...ok")
    for line in report.lines():
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())