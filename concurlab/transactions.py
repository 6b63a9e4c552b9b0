"""Producers and consumers sharing a bounded buffer of deposit transactions."""

from __future__ import annotations

import argparse
import contextlib
import random
import sys
import threading
import time
from dataclasses import dataclass
from typing import ContextManager, TextIO

BUFFER_SIZE = 128
INITIAL_DEPOSIT = 0
MAX_TRANSACTION = 1000
NUM_CONSUMERS = 2
NUM_PRODUCERS = 4
NUM_OPERATIONS = 400
PRNG_SEED = 0
PAUSE = 0.01
REPORT_EVERY = 100


class TransactionBuffer:
    """A circular buffer of fixed capacity guarded by counting semaphores.

    Producers wait for a free cell and consumers wait for a filled one.
    When several producers (or consumers) share the buffer, a binary
    semaphore serialises access to the write (or read) index.
    """

    def __init__(
        self,
        capacity: int = BUFFER_SIZE,
        multiple_producers: bool = True,
        multiple_consumers: bool = True,
    ) -> None:
        if capacity <= 0:
            raise ValueError(f"buffer capacity must be positive: {capacity}")
        self.capacity = capacity
        self._slots = [0] * capacity
        self._read_index = 0
        self._write_index = 0
        self._empty = threading.Semaphore(capacity)
        self._filled = threading.Semaphore(0)
        self._write_guard: ContextManager[object] = (
            threading.Semaphore(1) if multiple_producers else contextlib.nullcontext()
        )
        self._read_guard: ContextManager[object] = (
            threading.Semaphore(1) if multiple_consumers else contextlib.nullcontext()
        )

    def put(self, amount: int) -> None:
        """Store one transaction, blocking while the buffer is full."""
        self._empty.acquire()
        with self._write_guard:
            self._slots[self._write_index] = amount
            self._write_index = (self._write_index + 1) % self.capacity
        self._filled.release()

    def get(self) -> int:
        """Take the oldest transaction, blocking while the buffer is empty."""
        self._filled.acquire()
        with self._read_guard:
            amount = self._slots[self._read_index]
            self._read_index = (self._read_index + 1) % self.capacity
        self._empty.release()
        return amount


@dataclass(frozen=True)
class SimulationResult:
    """What a simulation run produced and consumed."""

    deposit: int
    operations: int
    producer_sums: tuple[int, ...]
    consumer_sums: tuple[int, ...]

    @property
    def produced(self) -> int:
        """Sum of every transaction written by the producers."""
        return sum(self.producer_sums)

    @property
    def consumed(self) -> int:
        """Sum of every transaction read by the consumers."""
        return sum(self.consumer_sums)


def random_transaction(rng: random.Random, max_transaction: int = MAX_TRANSACTION) -> int:
    """A non-zero amount between ``-max_transaction`` and ``+max_transaction``."""
    if max_transaction <= 0:
        raise ValueError(f"maximum transaction must be positive: {max_transaction}")
    amount = rng.randrange(2 * max_transaction)
    if amount >= max_transaction:
        return max_transaction - (amount + 1)
    return amount + 1


def simulate(
    producers: int = NUM_PRODUCERS,
    consumers: int = NUM_CONSUMERS,
    operations: int = NUM_OPERATIONS,
    buffer_size: int = BUFFER_SIZE,
    seed: int | None = PRNG_SEED,
    max_transaction: int = MAX_TRANSACTION,
    pause: float = PAUSE,
    out: TextIO | None = None,
) -> SimulationResult:
    """Run producers and consumers to completion and return the final deposit."""
    if producers <= 0:
        raise ValueError(f"producer count must be positive: {producers}")
    if consumers <= 0:
        raise ValueError(f"consumer count must be positive: {consumers}")
    if operations < 0:
        raise ValueError(f"operation count must not be negative: {operations}")
    if max_transaction <= 0:
        raise ValueError(f"maximum transaction must be positive: {max_transaction}")
    if pause < 0:
        raise ValueError(f"pause must not be negative: {pause}")
    ops_per_producer = operations // producers
    ops_per_consumer = operations // consumers
    if ops_per_producer * producers != ops_per_consumer * consumers:
        raise ValueError(
            "Choose consumers and producers so that we get exactly "
            f"{operations} operations"
        )

    stream = out if out is not None else sys.stdout
    buffer = TransactionBuffer(buffer_size, producers > 1, consumers > 1)
    rng = random.Random(seed)
    rng_lock = threading.Lock()
    out_lock = threading.Lock()
    ledger_lock = threading.Lock()
    deposit = INITIAL_DEPOSIT
    consumed = 0
    producer_sums = [0] * producers
    consumer_sums = [0] * consumers

    def emit(line: str) -> None:
        with out_lock:
            print(line, file=stream, flush=True)

    def produce(thread_id: int) -> None:
        emit(f"Starting producer thread {thread_id}")
        for _ in range(ops_per_producer):
            if pause:
                time.sleep(pause)
            with rng_lock:
                amount = random_transaction(rng, max_transaction)
            buffer.put(amount)
            producer_sums[thread_id] += amount

    def consume(thread_id: int) -> None:
        nonlocal deposit, consumed
        emit(f"Starting consumer thread {thread_id}")
        for _ in range(ops_per_consumer):
            amount = buffer.get()
            with ledger_lock:
                deposit += amount
                consumed += 1
                if (consumed % buffer_size) % REPORT_EVERY == 0:
                    emit(f"After the last 100 transactions balance is now {deposit}.")
            consumer_sums[thread_id] += amount

    workers = [threading.Thread(target=produce, args=(i,)) for i in range(producers)]
    workers += [threading.Thread(target=consume, args=(i,)) for i in range(consumers)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    return SimulationResult(
        deposit=deposit,
        operations=ops_per_producer * producers,
        producer_sums=tuple(producer_sums),
        consumer_sums=tuple(consumer_sums),
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="concurlab-transactions",
        description="Simulate financial transactions on a deposit.",
    )
    parser.add_argument("--producers", type=int, default=NUM_PRODUCERS)
    parser.add_argument("--consumers", type=int, default=NUM_CONSUMERS)
    parser.add_argument("--operations", type=int, default=NUM_OPERATIONS)
    parser.add_argument("--buffer-size", type=int, default=BUFFER_SIZE)
    parser.add_argument("--seed", type=int, default=PRNG_SEED)
    parser.add_argument("--max-transaction", type=int, default=MAX_TRANSACTION)
    parser.add_argument("--pause", type=float, default=PAUSE)
    args = parser.parse_args(argv)

    print("Welcome! This program simulates financial transactions on a deposit.")
    print(
        f"\nThe maximum amount of a single transaction is {args.max_transaction} "
        "(negative or positive)."
    )
    print(f"\nInitial balance is {INITIAL_DEPOSIT}. Press CTRL+C to quit.\n", flush=True)
    try:
        result = simulate(
            producers=args.producers,
            consumers=args.consumers,
            operations=args.operations,
            buffer_size=args.buffer_size,
            seed=args.seed,
            max_transaction=args.max_transaction,
            pause=args.pause,
        )
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except RuntimeError as exc:
        print(f"Error in pthread create: {exc}", file=sys.stderr)
        return 1
    print(f"Final value for deposit: {result.deposit}")
    return 0


if __name__ == "__main__":
    sys.exit(main())