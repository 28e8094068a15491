"""
Planar Classification - Session Tests
"""
import logging
import tempfile
from pathlib import Path

import pytest

from planar_classification.benchmark import BenchmarkRunner
from planar_classification.config import X_MIN, Y_MAX, load_config
from planar_classification.ground_truth import GroundTruthClassifier, GroundTruthRule
from planar_classification.records import Point
from planar_classification.report import format_benchmark, format_classification, format_history
from planar_classification.session import (
    BackendUnavailableError, ClassificationSession, SessionBusyError
)
from planar_classification.test_benchmark import FakeClock, FixedLatencyBackend

logger = logging.getLogger(__name__)


def make_session(cpu_ms=5, gpu_ms=2, npu_ms=3):
    clock = FakeClock()
    backends = {
        "CPU": FixedLatencyBackend("CPU", clock, cpu_ms) if cpu_ms is not None else None,
        "GPU": FixedLatencyBackend("GPU", clock, gpu_ms) if gpu_ms is not None else None,
        "NPU": FixedLatencyBackend("NPU", clock, npu_ms) if npu_ms is not None else None,
    }
    runner = BenchmarkRunner(clock=clock, sleep=lambda seconds: None)
    return ClassificationSession(backends, runner=runner, clock=clock)


def test_classify_appends_history():
    logger.info("TEST: classify entry point")
    session = make_session()
    record = session.classify(Point(x=2.0, y=2.0))

    assert record.backend_name == "CPU"
    assert record.inference_time == 5
    assert record.ground_truth_label is True
    assert record.is_correct
    assert session.history == (record,)
    assert not session.is_running


def test_classify_uses_cursor_by_default():
    session = make_session()
    session.move_cursor('right')
    record = session.classify()
    assert record.point.x == pytest.approx(0.2)
    assert record.point.y == 0.0


def test_accelerator_preference():
    session = make_session()
    assert session.toggle_accelerator() is True
    assert session.classify().backend_name == "NPU"
    assert session.toggle_accelerator() is False
    assert session.classify().backend_name == "CPU"

    session = make_session(npu_ms=None)
    assert session.available_accelerators == ["GPU"]
    session.toggle_accelerator()
    assert session.classify().backend_name == "GPU"

    session = make_session(gpu_ms=None, npu_ms=None)
    session.use_accelerator = True
    assert session.classify().backend_name == "CPU"


def test_accelerator_stays_off_without_gpu_or_npu(caplog):
    caplog.set_level(logging.WARNING, logger="planar_classification.session")
    session = make_session(gpu_ms=None, npu_ms=None)

    assert session.toggle_accelerator() is False
    assert session.use_accelerator is False
    assert session.available_accelerators == []
    assert any("Cannot enable accelerator" in r.getMessage() for r in caplog.records)
    assert session.classify().backend_name == "CPU"


def test_classify_without_backend():
    session = make_session(cpu_ms=None, gpu_ms=None, npu_ms=None)
    with pytest.raises(BackendUnavailableError):
        session.classify()
    assert session.history == ()
    assert not session.is_running

    # accelerators alone do not serve classification with the toggle off
    session = make_session(cpu_ms=None)
    with pytest.raises(BackendUnavailableError):
        session.classify()


def test_overlapping_operations_are_rejected():
    session = make_session()
    session._run_lock.acquire()
    try:
        assert session.is_running
        with pytest.raises(SessionBusyError):
            session.classify()
        with pytest.raises(SessionBusyError):
            session.run_benchmark()
        with pytest.raises(SessionBusyError):
            session.clear_history()
    finally:
        session._run_lock.release()

    session.classify()
    assert len(session.history) == 1


def test_run_benchmark_and_clear_history():
    logger.info("TEST: benchmark entry point")
    session = make_session()
    session.classify(Point(x=0.0, y=0.0))

    result = session.run_benchmark()

    assert result.comparison.winner.backend_name == "GPU"
    assert session.last_benchmark == result
    assert session.reports["CPU"].average_inference_time == 5
    assert len(session.history) == 1 + 3 * 28
    assert session.statistics("NPU").total == 28
    assert session.statistics().accuracy == pytest.approx(100.0)

    session.clear_history()
    assert session.history == ()
    assert session.last_benchmark == result


def test_history_is_a_snapshot():
    session = make_session()
    session.classify()
    snapshot = session.history
    session.classify()
    assert len(snapshot) == 1
    assert len(session.history) == 2


def test_benchmark_result_is_a_snapshot():
    logger.info("TEST: stored benchmark cannot be changed by callers")
    session = make_session()
    returned = session.run_benchmark()

    returned.runs.clear()
    snapshot = session.last_benchmark
    snapshot.runs.pop("GPU")
    with pytest.raises(AttributeError):
        snapshot.comparison.ranking.clear()
    with pytest.raises(AttributeError):
        snapshot.runs["CPU"].records.clear()

    stored = session.last_benchmark
    assert list(stored.runs) == ["CPU", "GPU", "NPU"]
    assert len(stored.runs["CPU"].records) == 28
    assert len(stored.comparison.ranking) == 3
    assert session.reports["GPU"].average_inference_time == 2


def test_statistics_reads_a_snapshot(monkeypatch):
    import planar_classification.session as session_module

    session = make_session()
    extra = session.classify(Point(x=0.0, y=0.0))
    summarize_history = session_module.accuracy_summary

    def append_while_reading(records):
        # a record lands in the history while statistics are computed
        session._history.append(extra)
        return summarize_history(records)

    monkeypatch.setattr(session_module, "accuracy_summary", append_while_reading)
    stats = session.statistics()

    assert stats.total == 1
    assert len(session.history) == 2


def test_cursor_is_clamped_to_domain():
    session = make_session()
    for _ in range(50):
        session.move_cursor('left')
    for _ in range(50):
        session.move_cursor('up')
    assert session.cursor == Point(x=X_MIN, y=Y_MAX)

    with pytest.raises(ValueError):
        session.move_cursor('sideways')


def test_session_from_config_without_model():
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yaml"
        config_path.write_text(
            f"model:\n  path: {Path(tmpdir) / 'missing.tflite'}\n"
            "ground_truth:\n  rule: simple_circle\n"
        )
        config = load_config(str(config_path))

    session = ClassificationSession.from_config(config)
    assert session.available_backends == []
    assert session.classifier.rule is GroundTruthRule.SIMPLE_CIRCLE

    result = session.run_benchmark()
    assert all(run.report.point_count == 0 for run in result.runs.values())
    assert result.comparison.winner is None


def test_load_config_overlays_defaults():
    config = load_config()
    assert config['ground_truth']['rule'] == 'primary'
    assert config['benchmark']['cpu_warmup_runs'] == 3

    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "bad.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            load_config(str(path))


def test_text_reports():
    session = make_session()
    record = session.classify(Point(x=2.0, y=-2.0))
    panel = format_classification(record)
    assert "Point: (2.00, -2.00)" in panel
    assert "Actual: Red" in panel
    assert "(CPU)" in panel

    history = format_history(session.statistics())
    assert "Total Points: 1" in history

    summary = format_benchmark(session.run_benchmark())
    assert "Winner: GPU" in summary
    assert "2.5x faster than CPU" in summary
    assert "#3 CPU: 5ms (2.5x slower)" in summary


def test_custom_rule_flows_into_records():
    clock = FakeClock()
    classifier = GroundTruthClassifier("simple_circle")
    session = ClassificationSession(
        {"CPU": FixedLatencyBackend("CPU", clock, 1)}, classifier=classifier, clock=clock)
    record = session.classify(Point(x=3.5, y=0.0))
    assert record.ground_truth_label is False
