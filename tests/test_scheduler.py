import io
import random
import threading
import time

import pytest

from concurlab.scheduler import ReleasePolicy, Scheduler, main


def _no_sleep(_seconds):
    return None


def _make(**kwargs):
    out = io.StringIO()
    params = dict(sleep=_no_sleep, rng=random.Random(7), out=out)
    params.update(kwargs)
    return Scheduler(**params), out


def test_bursts_get_sequential_identifiers():
    sched, _ = _make(burst=5)
    first = sched.spawn_burst()
    second = sched.spawn_burst()
    sched.wait_all()
    assert first == [0, 1, 2, 3, 4]
    assert second == [5, 6, 7, 8, 9]
    assert sched.spawned() == 10
    assert sched.active() == 0


def test_no_more_than_resources_threads_hold_at_once():
    release = threading.Event()
    lock = threading.Lock()
    holders = []

    def blocking_sleep(_seconds):
        with lock:
            holders.append(1)
        release.wait(5)

    sched, _ = _make(resources=3, tasks=1, burst=5, sleep=blocking_sleep)
    sched.spawn_burst()
    deadline = time.monotonic() + 5
    while time.monotonic() < deadline:
        with lock:
            if len(holders) >= 3:
                break
        time.sleep(0.01)
    time.sleep(0.1)
    with lock:
        assert len(holders) == 3
    assert sched.active() == 5
    release.set()
    sched.wait_all()
    assert len(holders) == 5
    assert sched.active() == 0


def test_at_end_policy_output_for_one_thread():
    sched, out = _make(burst=1, tasks=3, policy=ReleasePolicy.AT_END)
    sched.spawn_burst()
    sched.wait_all()
    assert out.getvalue().splitlines() == [
        "[@Thread0] Resource acquired...",
        "[@Thread0] Done. Resource released!",
    ]


def test_alternate_policy_output_for_one_thread():
    sched, out = _make(burst=1, tasks=3, policy=ReleasePolicy.ALTERNATE)
    sched.spawn_burst()
    sched.wait_all()
    assert out.getvalue().splitlines() == [
        "[@Thread0] Resource acquired...",
        "[@Thread0] Task 0...",
        "[@Thread0] Task 1...",
        "[@Thread0] Done. Resource released!",
        "[@Thread0] Resource acquired...",
        "[@Thread0] Task 2...",
        "[@Thread0] Done. Resource released!",
    ]


def test_alternate_policy_balances_acquire_and_release():
    sched, out = _make(burst=4, tasks=4, policy=ReleasePolicy.ALTERNATE)
    sched.spawn_burst()
    sched.wait_all()
    lines = out.getvalue().splitlines()
    acquired = sum(line.endswith("Resource acquired...") for line in lines)
    released = sum(line.endswith("Done. Resource released!") for line in lines)
    assert acquired == released
    assert acquired == sched.spawned() * 2


def test_sleep_durations_stay_within_bounds():
    durations = []
    lock = threading.Lock()

    def record(seconds):
        with lock:
            durations.append(seconds)

    sched, _ = _make(burst=4, tasks=3, max_sleep=2, sleep=record)
    sched.spawn_burst()
    sched.wait_all()
    assert len(durations) == sched.burst * sched.tasks
    assert all(0 <= d <= sched.max_sleep for d in durations)


def test_run_spawns_one_burst_per_line():
    sched, out = _make(burst=5)
    total = sched.run(io.StringIO("\nanything\n"))
    lines = out.getvalue().splitlines()
    assert total == 10
    assert sched.active() == 0
    assert lines.count("==> [DRIVER] Spawning 5 threads now...") == 2
    assert lines[-1] == "[Driver] Done"


def test_run_ignores_unterminated_last_line():
    sched, _ = _make(burst=5)
    assert sched.run(io.StringIO("\npartial")) == 5


def test_run_with_empty_input_spawns_nothing():
    sched, out = _make()
    assert sched.run(io.StringIO("")) == 0
    assert "[Driver] Exiting..." in out.getvalue().splitlines()


@pytest.mark.parametrize(
    "kwargs",
    [{"resources": 0}, {"tasks": -1}, {"burst": -1}, {"max_sleep": -1}],
)
def test_invalid_configuration_is_rejected(kwargs):
    with pytest.raises(ValueError):
        Scheduler(**kwargs)


def test_policy_from_value():
    assert ReleasePolicy("alternate") is ReleasePolicy.ALTERNATE
    with pytest.raises(ValueError):
        ReleasePolicy("sometimes")


def test_main_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("\n"))
    code = main(["--max-sleep", "0", "--burst", "2", "--tasks", "1"])
    captured = capsys.readouterr().out.splitlines()
    assert code == 0
    assert "==> [DRIVER] Spawning 2 threads now..." in captured
    assert sum(line.endswith("Resource acquired...") for line in captured) == 2
    assert captured[-1] == "[Driver] Done"


def test_main_rejects_bad_resources(capsys):
    assert main(["--resources", "0"]) == 1
    assert "Could not create a semaphore" in capsys.readouterr().err