"""Producers and consumers exchanging transactions through a ring file."""

from __future__ import annotations

import argparse
import os
import random
import sys
import threading
import time
from dataclasses import dataclass
from typing import Callable

from concurlab.ringfile import BUFFER_FILENAME, BUFFER_SIZE, RingFile
from concurlab.transactions import MAX_TRANSACTION, random_transaction

NUM_PRODUCERS = 1
NUM_CONSUMERS = 2
NUM_OPERATIONS = 400
PRNG_SEED = 0
PAUSE = 0.01
_POLL = 0.1


class _Aborted(Exception):
    """Raised in a worker when another worker has failed."""


@dataclass(frozen=True)
class PipelineResult:
    """Local sums reported by every producer and consumer."""

    operations: int
    producer_sums: tuple[int, ...]
    consumer_sums: tuple[int, ...]

    @property
    def produced(self) -> int:
        """Sum of every value written to the file."""
        return sum(self.producer_sums)

    @property
    def consumed(self) -> int:
        """Sum of every value read from the file."""
        return sum(self.consumer_sums)


def run_pipeline(
    path: str | os.PathLike[str] = BUFFER_FILENAME,
    producers: int = NUM_PRODUCERS,
    consumers: int = NUM_CONSUMERS,
    operations: int = NUM_OPERATIONS,
    capacity: int = BUFFER_SIZE,
    seed: int | None = PRNG_SEED,
    pause: float = PAUSE,
) -> PipelineResult:
    """Create the buffer file and run producers and consumers to completion.

    Each producer starts from a generator seeded with ``seed``, as forked
    children sharing the parent's seeded state would.
    """
    if producers <= 0:
        raise ValueError(f"producer count must be positive: {producers}")
    if consumers <= 0:
        raise ValueError(f"consumer count must be positive: {consumers}")
    if operations < 0:
        raise ValueError(f"operation count must not be negative: {operations}")
    if pause < 0:
        raise ValueError(f"pause must not be negative: {pause}")
    ops_per_producer = operations // producers
    ops_per_consumer = operations // consumers
    if ops_per_producer * producers != ops_per_consumer * consumers:
        raise ValueError(
            "Choose consumers and producers so that we get exactly "
            f"{operations} operations"
        )

    ring = RingFile.create(path, capacity)
    filled = threading.Semaphore(0)
    empty = threading.Semaphore(capacity)
    critical = threading.Semaphore(1)
    failed = threading.Event()
    errors: list[BaseException] = []
    out_lock = threading.Lock()
    producer_sums = [0] * producers
    consumer_sums = [0] * consumers

    def acquire(semaphore: threading.Semaphore) -> None:
        while not semaphore.acquire(timeout=_POLL):
            if failed.is_set():
                raise _Aborted

    def produce(worker_id: int) -> None:
        rng = random.Random(seed)
        local_sum = 0
        for _ in range(ops_per_producer):
            acquire(empty)
            acquire(critical)
            try:
                if pause:
                    time.sleep(pause)
                value = random_transaction(rng, MAX_TRANSACTION)
                ring.write(value)
            finally:
                critical.release()
            local_sum += value
            filled.release()
        producer_sums[worker_id] = local_sum
        with out_lock:
            print(f"Producer {worker_id} ended. Local sum is {local_sum}", flush=True)

    def consume(worker_id: int) -> None:
        local_sum = 0
        for _ in range(ops_per_consumer):
            acquire(filled)
            acquire(critical)
            try:
                value = ring.read()
            finally:
                critical.release()
            local_sum += value
            empty.release()
        consumer_sums[worker_id] = local_sum
        with out_lock:
            print(f"Consumer {worker_id} ended. Local sum is {local_sum}", flush=True)

    def guarded(body: Callable[[int], None], worker_id: int) -> Callable[[], None]:
        def run() -> None:
            try:
                body(worker_id)
            except _Aborted:
                pass
            except BaseException as exc:
                errors.append(exc)
                failed.set()

        return run

    workers = [threading.Thread(target=guarded(produce, i)) for i in range(producers)]
    workers += [threading.Thread(target=guarded(consume, i)) for i in range(consumers)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    if errors:
        raise errors[0]

    return PipelineResult(
        operations=ops_per_producer * producers,
        producer_sums=tuple(producer_sums),
        consumer_sums=tuple(consumer_sums),
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="concurlab-filepipeline",
        description="Exchange transactions between producers and consumers through a file.",
    )
    parser.add_argument("--path", default=BUFFER_FILENAME)
    parser.add_argument("--producers", type=int, default=NUM_PRODUCERS)
    parser.add_argument("--consumers", type=int, default=NUM_CONSUMERS)
    parser.add_argument("--operations", type=int, default=NUM_OPERATIONS)
    parser.add_argument("--capacity", type=int, default=BUFFER_SIZE)
    parser.add_argument("--seed", type=int, default=PRNG_SEED)
    parser.add_argument("--pause", type=float, default=PAUSE)
    args = parser.parse_args(argv)

    try:
        result = run_pipeline(
            path=args.path,
            producers=args.producers,
            consumers=args.consumers,
            operations=args.operations,
            capacity=args.capacity,
            seed=args.seed,
            pause=args.pause,
        )
    except (OSError, ValueError, OverflowError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print("Producers have terminated.")
    print("Consumers have terminated. Exiting...")
    print(f"Produced {result.produced}, consumed {result.consumed}")
    return 0


if __name__ == "__main__":
    sys.exit(main())