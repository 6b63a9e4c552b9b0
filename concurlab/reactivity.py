"""Compare how quickly new threads and new processes get work done."""

from __future__ import annotations

import argparse
import multiprocessing
import sys
import threading
from array import array
from typing import MutableSequence

from concurlab.counters import _atoi
from concurlab.timing import Timer

ITEMS = 1 << 24
STEP = 1024


def make_buffer(items: int = ITEMS) -> array:
    """A zero-filled buffer of ``items`` machine integers."""
    if items < 0:
        raise ValueError(f"buffer size must not be negative: {items}")
    return array("i", [0]) * items


def do_work(buffer: MutableSequence[int], step: int = STEP) -> None:
    """Write each visited index into the buffer, visiting one slot every ``step``."""
    if step <= 0:
        raise ValueError(f"step must be positive: {step}")
    indices = range(0, len(buffer), step)
    if isinstance(buffer, array):
        buffer[::step] = array(buffer.typecode, indices)
    else:
        buffer[::step] = list(indices)


def _check_runs(n: int) -> None:
    if n <= 0:
        raise ValueError(f"number of tests must be positive: {n}")


def measure_thread_reactivity(
    n: int, buffer: MutableSequence[int] | None = None, step: int = STEP
) -> int:
    """Start and join ``n`` threads one after another; average microseconds each."""
    _check_runs(n)
    if buffer is None:
        buffer = make_buffer()
    with Timer() as timer:
        for _ in range(n):
            worker = threading.Thread(target=do_work, args=(buffer, step))
            worker.start()
            worker.join()
    return timer.microseconds() // n


def _process_context():
    # Copy-on-write children mirror the behaviour being measured most closely.
    if "fork" in multiprocessing.get_all_start_methods():
        return multiprocessing.get_context("fork")
    return multiprocessing.get_context()


def _run_in_child(context, buffer: MutableSequence[int], step: int) -> None:
    child = context.Process(target=do_work, args=(buffer, step))
    child.start()
    child.join()


def measure_process_reactivity(
    n: int, buffer: MutableSequence[int] | None = None, step: int = STEP
) -> int:
    """Start and wait for ``n`` child processes one after another.

    Each child writes into its own copy of the buffer, so the caller's buffer
    is left untouched. Returns the average microseconds per child.
    """
    _check_runs(n)
    if buffer is None:
        buffer = make_buffer()
    context = _process_context()
    with Timer() as timer:
        for _ in range(n):
            _run_in_child(context, buffer, step)
    return timer.microseconds() // n


def _prepare(args: list[str], prog: str, usage: str, max_args: int) -> tuple[int, array] | None:
    if not 1 <= len(args) <= max_args:
        print(f"Syntax: {prog} {usage}", file=sys.stderr)
        return None
    n = _atoi(args[0])
    if n <= 0:
        print(f"Syntax: {prog} {usage} (N must be positive)", file=sys.stderr)
        return None
    try:
        buffer = make_buffer()
    except MemoryError:
        print("Cannot allocate memory!", file=sys.stderr)
        return None
    return n, buffer


def main_threads(argv: list[str] | None = None) -> int:
    """Measure thread reactivity; expects exactly one argument, N."""
    args = sys.argv[1:] if argv is None else list(argv)
    prepared = _prepare(args, "concurlab-reactivity-threads", "<N>", 1)
    if prepared is None:
        return 1
    n, buffer = prepared
    print(f"Thread reactivity, {n} tests...", flush=True)
    try:
        average = measure_thread_reactivity(n, buffer)
    except RuntimeError as exc:
        print(f"Can't create a new thread, error {exc}", file=sys.stderr)
        return 1
    print(f"Average: {average} microseconds")
    return 0


def main_processes(argv: list[str] | None = None) -> int:
    """Measure process reactivity; expects N and an optional debug flag."""
    args = sys.argv[1:] if argv is None else list(argv)
    parser = argparse.ArgumentParser(prog="concurlab-reactivity-processes", add_help=False)
    parser.add_argument("rest", nargs="*")
    rest = parser.parse_args(args).rest
    prepared = _prepare(rest, parser.prog, "<N> [<debug>]", max(len(rest), 1))
    if prepared is None:
        return 1
    n, buffer = prepared
    print(f"Process reactivity, {n} tests...", flush=True)
    try:
        average = measure_process_reactivity(n, buffer)
    except OSError as exc:
        print(f"Can't fork, error {exc.errno}", file=sys.stderr)
        return 1
    print(f"Average: {average} microseconds")
    return 0


if __name__ == "__main__":
    sys.exit(main_threads())