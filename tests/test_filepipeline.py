import pytest

from concurlab.filepipeline import PipelineResult, main, run_pipeline
from concurlab.ringfile import RingFile


def test_everything_produced_is_consumed(tmp_path):
    result = run_pipeline(tmp_path / "buf.bin", 2, 4, 40, 8, 5, 0)
    assert result.operations == 40
    assert len(result.producer_sums) == 2
    assert len(result.consumer_sums) == 4
    assert result.produced == result.consumed


def test_indexes_end_where_operations_leave_them(tmp_path):
    path = tmp_path / "buf.bin"
    run_pipeline(path, 1, 2, 10, 4, 1, 0)
    expected = 10 % 4
    assert RingFile(path, 4).indexes() == (expected, expected)


def test_same_seed_gives_same_producer_sums(tmp_path):
    first = run_pipeline(tmp_path / "a.bin", 1, 2, 20, 4, 9, 0)
    second = run_pipeline(tmp_path / "b.bin", 1, 2, 20, 4, 9, 0)
    assert first.producer_sums == second.producer_sums
    assert first.consumed == second.consumed


def test_producers_share_one_seeded_sequence(tmp_path):
    result = run_pipeline(tmp_path / "buf.bin", 2, 1, 20, 3, 11, 0)
    assert result.producer_sums[0] == result.producer_sums[1]


def test_zero_operations(tmp_path):
    result = run_pipeline(tmp_path / "buf.bin", 1, 1, 0, 4, 0, 0)
    assert result == PipelineResult(0, (0,), (0,))


def test_indivisible_operations_are_rejected(tmp_path):
    with pytest.raises(ValueError):
        run_pipeline(tmp_path / "buf.bin", 3, 2, 10, 4, 0, 0)


def test_non_positive_workers_are_rejected(tmp_path):
    with pytest.raises(ValueError):
        run_pipeline(tmp_path / "buf.bin", 0, 1, 10, 4, 0, 0)


def test_result_sums_are_totals():
    result = PipelineResult(4, (3, -1), (2, 0))
    assert result.produced == result.consumed == 2


def test_main_reports_each_worker(tmp_path, capsys):
    code = main(
        ["--path", str(tmp_path / "buf.bin"), "--operations", "8",
         "--capacity", "4", "--pause", "0"]
    )
    out = capsys.readouterr().out
    assert code == 0
    assert "Producer 0 ended. Local sum is" in out
    assert "Consumer 1 ended. Local sum is" in out
    assert "Consumers have terminated. Exiting..." in out


def test_main_reports_bad_configuration(tmp_path, capsys):
    code = main(["--path", str(tmp_path / "buf.bin"), "--producers", "3",
                 "--operations", "10", "--pause", "0"])
    assert code == 1
    assert "Error" in capsys.readouterr().err