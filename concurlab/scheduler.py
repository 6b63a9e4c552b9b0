"""A resource scheduler: bursts of threads competing for a few special resources."""

from __future__ import annotations

import argparse
import enum
import random
import sys
import threading
import time
from typing import Callable, TextIO

NUM_RESOURCES = 3
NUM_TASKS = 3
THREAD_BURST = 5
MAX_SLEEP = 3


class ReleasePolicy(enum.Enum):
    """When a client thread gives its resource back."""

    AT_END = "end"
    """Hold the resource for every task and release it once at the end."""

    ALTERNATE = "alternate"
    """Acquire before each even task, release after each odd task and after the last."""


class Scheduler:
    """Spawns client threads that share ``resources`` slots through a semaphore."""

    def __init__(
        self,
        resources: int = NUM_RESOURCES,
        tasks: int = NUM_TASKS,
        burst: int = THREAD_BURST,
        max_sleep: int = MAX_SLEEP,
        policy: ReleasePolicy = ReleasePolicy.AT_END,
        sleep: Callable[[float], object] = time.sleep,
        rng: random.Random | None = None,
        out: TextIO | None = None,
    ) -> None:
        if resources <= 0:
            raise ValueError(f"resource count must be positive: {resources}")
        if tasks < 0:
            raise ValueError(f"task count must not be negative: {tasks}")
        if burst < 0:
            raise ValueError(f"burst size must not be negative: {burst}")
        if max_sleep < 0:
            raise ValueError(f"maximum sleep must not be negative: {max_sleep}")
        self.resources = resources
        self.tasks = tasks
        self.burst = burst
        self.max_sleep = max_sleep
        self.policy = ReleasePolicy(policy)
        self._sleep = sleep
        self._rng = rng if rng is not None else random.Random()
        self._out = out if out is not None else sys.stdout
        self._semaphore = threading.Semaphore(resources)
        self._rng_lock = threading.Lock()
        self._out_lock = threading.Lock()
        self._state = threading.Condition()
        self._active = 0
        self._spawned = 0

    def _emit(self, line: str) -> None:
        with self._out_lock:
            print(line, file=self._out, flush=True)

    def _work_item(self) -> None:
        with self._rng_lock:
            duration = self._rng.randrange(self.max_sleep + 1)
        self._sleep(duration)

    def _client_at_end(self, ident: int) -> None:
        with self._semaphore:
            self._emit(f"[@Thread{ident}] Resource acquired...")
            for _ in range(self.tasks):
                self._work_item()
            self._emit(f"[@Thread{ident}] Done. Resource released!")

    def _client_alternate(self, ident: int) -> None:
        last = self.tasks - 1
        for task in range(self.tasks):
            if task % 2 == 0:
                self._semaphore.acquire()
                self._emit(f"[@Thread{ident}] Resource acquired...")
            self._emit(f"[@Thread{ident}] Task {task}...")
            try:
                self._work_item()
            except BaseException:
                self._semaphore.release()
                raise
            if task % 2 == 1 or task == last:
                self._emit(f"[@Thread{ident}] Done. Resource released!")
                self._semaphore.release()

    def _client(self, ident: int) -> None:
        try:
            if self.policy is ReleasePolicy.AT_END:
                self._client_at_end(ident)
            else:
                self._client_alternate(ident)
        finally:
            with self._state:
                self._active -= 1
                self._state.notify_all()

    def spawn_burst(self) -> list[int]:
        """Start ``burst`` detached client threads; return their identifiers."""
        started: list[int] = []
        for _ in range(self.burst):
            with self._state:
                ident = self._spawned
                self._active += 1
            worker = threading.Thread(target=self._client, args=(ident,), daemon=True)
            try:
                worker.start()
            except RuntimeError:
                with self._state:
                    self._active -= 1
                    self._state.notify_all()
                raise
            with self._state:
                self._spawned += 1
            started.append(ident)
        return started

    def active(self) -> int:
        """How many client threads have not finished yet."""
        with self._state:
            return self._active

    def spawned(self) -> int:
        """How many client threads have been started in total."""
        with self._state:
            return self._spawned

    def wait_all(self) -> None:
        """Block until every client thread has finished."""
        with self._state:
            self._state.wait_for(lambda: self._active == 0)

    def run(self, stream: TextIO) -> int:
        """Spawn a burst for every complete line read; stop at end of input.

        Waits for all clients before returning the number of threads started.
        """
        prompt = (
            f"[DRIVER] Press ENTER to spawn {self.burst} new threads. "
            "Press CTRL+D to quit!"
        )
        self._emit(prompt)
        while True:
            line = stream.readline()
            if not line.endswith("\n"):
                break
            self._emit(f"==> [DRIVER] Spawning {self.burst} threads now...")
            self.spawn_burst()
            self._emit(f"==> {prompt}")
        self._emit("[Driver] Waiting thread termination...")
        self.wait_all()
        self._emit("[Driver] Exiting...")
        self._emit("[Driver] Done")
        return self.spawned()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="concurlab-scheduler",
        description="Spawn bursts of threads that share a few resources.",
    )
    parser.add_argument("--resources", type=int, default=NUM_RESOURCES)
    parser.add_argument("--tasks", type=int, default=NUM_TASKS)
    parser.add_argument("--burst", type=int, default=THREAD_BURST)
    parser.add_argument("--max-sleep", type=int, default=MAX_SLEEP)
    parser.add_argument(
        "--policy",
        choices=[policy.value for policy in ReleasePolicy],
        default=ReleasePolicy.AT_END.value,
    )
    args = parser.parse_args(argv)

    try:
        scheduler = Scheduler(
            resources=args.resources,
            tasks=args.tasks,
            burst=args.burst,
            max_sleep=args.max_sleep,
            policy=ReleasePolicy(args.policy),
        )
    except ValueError as exc:
        print(f"[FATAL ERROR] Could not create a semaphore: {exc}", file=sys.stderr)
        return 1

    print("Welcome! This is a very simple resource scheduler.\n")
    print(
        f"We are simulating a system with {args.resources} available special resources. "
        f"Hence, no more than {args.resources} threads can get exclusive access to them "
        "at the same time.\n",
        flush=True,
    )
    try:
        scheduler.run(sys.stdin)
    except RuntimeError as exc:
        print(
            f"==> [DRIVER] FATAL ERROR: cannot create thread {scheduler.spawned()}: {exc}\n"
            "Exiting...",
            file=sys.stderr,
        )
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())