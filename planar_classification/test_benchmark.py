"""
Planar Classification - Benchmark Tests

Uses a fake nanosecond clock and fake backends with fixed latencies so the
timing figures are exact.
"""
import logging
from typing import Optional, Set

import pytest

from planar_classification.backends import CallableBackend, InferenceBackend, timed_inference
from planar_classification.benchmark import BenchmarkRunner, default_probe_points, run_probe_set, warm_up
from planar_classification.config import PROBE_POINTS
from planar_classification.ground_truth import get_ground_truth
from planar_classification.records import Point

logger = logging.getLogger(__name__)


class FakeClock:
    """Nanosecond clock that only moves when told to."""

    def __init__(self):
        self.now = 0

    def __call__(self) -> int:
        return self.now

    def advance_ms(self, ms: float):
        self.now += int(ms * 1_000_000)


class FixedLatencyBackend(InferenceBackend):
    """Answers with the ground truth and takes `latency_ms` on the fake clock."""

    def __init__(self, name: str, clock: FakeClock, latency_ms: float,
                 fail_on: Optional[Set[int]] = None, invert: bool = False):
        self.name = name
        self.clock = clock
        self.latency_ms = latency_ms
        self.fail_on = fail_on or set()
        self.invert = invert
        self.calls = []

    def infer(self, point: Point) -> float:
        self.calls.append(point)
        self.clock.advance_ms(self.latency_ms)
        if len(self.calls) in self.fail_on:
            raise RuntimeError("interpreter crashed")
        label = get_ground_truth(point.x, point.y)
        if self.invert:
            label = not label
        return 0.9 if label else 0.1


def test_probe_set_is_fixed():
    points = default_probe_points()
    assert len(points) == 28
    assert [(p.x, p.y) for p in points] == PROBE_POINTS
    assert points[5] == points[26] == Point(x=3.5, y=0.0)


def test_run_probe_set_all_points():
    logger.info("TEST: probe run with an always-succeeding provider")
    clock = FakeClock()
    backend = FixedLatencyBackend("CPU", clock, 2)
    probes = default_probe_points()

    records = run_probe_set(backend, probes, lambda b, p: timed_inference(b, p, clock))

    assert len(records) == 28
    assert [r.point for r in records] == probes
    assert all(r.inference_time == 2 for r in records)
    assert all(r.is_correct for r in records)
    assert all(r.backend_name == "CPU" for r in records)
    # one warm-up call plus one per probe
    assert len(backend.calls) == 29
    assert backend.calls[0] == Point(x=0.0, y=0.0)


def test_run_probe_set_skips_failing_point(caplog):
    logger.info("TEST: failing point is logged and skipped")
    caplog.set_level(logging.ERROR, logger="planar_classification.benchmark")
    probes = default_probe_points()
    failing_index = 4  # probe point #5

    def classify_fn(backend, point):
        if point == probes[failing_index] and point not in seen:
            seen.append(point)
            raise RuntimeError("inference failed")
        return 0.7, 1

    seen = []
    records = run_probe_set(CallableBackend("GPU", lambda x, y: 0.7), probes, classify_fn)

    assert len(records) == 27
    assert probes[failing_index] not in [r.point for r in records]
    assert [r.point for r in records] == probes[:failing_index] + probes[failing_index + 1:]

    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert errors[0].name == "planar_classification.benchmark"
    assert "GPU benchmark point (3.0, -2.0)" in errors[0].getMessage()
    assert "inference failed" in errors[0].getMessage()


def test_run_probe_set_floors_zero_durations():
    records = run_probe_set(CallableBackend("CPU", lambda x, y: 0.2),
                            default_probe_points(), lambda b, p: (b.infer(p), 0))
    assert {r.inference_time for r in records} == {1}


def test_run_probe_set_unavailable_backend():
    calls = []
    records = run_probe_set(None, default_probe_points(), lambda b, p: calls.append(p),
                            backend_name="NPU")
    assert records == []
    assert calls == []


def test_warm_up_failure_is_not_fatal():
    def broken(backend, point):
        raise RuntimeError("cold start failed")

    assert warm_up(CallableBackend("CPU", lambda x, y: 0.5), broken, runs=4) is False

    calls = []
    ok = warm_up(CallableBackend("CPU", lambda x, y: 0.5),
                 lambda b, p: calls.append(p) or (0.5, 1), runs=4)
    assert ok is True
    assert calls == [Point(x=0.0, y=0.0)] + [Point(x=1.0, y=1.0)] * 3


def make_runner(clock: FakeClock, sleeps: list, **kwargs) -> BenchmarkRunner:
    return BenchmarkRunner(clock=clock, sleep=sleeps.append, **kwargs)


def test_runner_protocol_and_ranking():
    logger.info("TEST: sequential benchmark over three backends")
    clock = FakeClock()
    sleeps = []
    cpu = FixedLatencyBackend("CPU", clock, 5)
    gpu = FixedLatencyBackend("GPU", clock, 2)
    npu = FixedLatencyBackend("NPU", clock, 3)

    result = make_runner(clock, sleeps).run({"NPU": npu, "CPU": cpu, "GPU": gpu})

    # CPU runs first regardless of dict order, with 1 + 3 warm-up calls
    assert list(result.runs) == ["CPU", "GPU", "NPU"]
    assert len(cpu.calls) == 4 + 28
    assert len(gpu.calls) == 1 + 28
    assert len(npu.calls) == 1 + 28

    # settle after each warm-up, pause between backends
    assert sleeps == [0.1, 0.5, 0.1, 0.5, 0.1]

    reports = {name: run.report for name, run in result.runs.items()}
    assert reports["CPU"].average_inference_time == 5
    assert reports["GPU"].average_inference_time == 2
    assert reports["NPU"].average_inference_time == 3
    assert reports["CPU"].total_elapsed_time == 32 * 5
    assert reports["GPU"].total_elapsed_time == 29 * 2
    assert reports["CPU"].blue_count == 21
    assert reports["CPU"].red_count == 7

    comparison = result.comparison
    assert [r.backend_name for r in comparison.ranking] == ["GPU", "NPU", "CPU"]
    assert comparison.winner.backend_name == "GPU"
    assert comparison.speedup == pytest.approx(2.5)
    assert len(result.records) == 84


def test_runner_with_unavailable_backend():
    clock = FakeClock()
    sleeps = []
    cpu = FixedLatencyBackend("CPU", clock, 4)
    npu = FixedLatencyBackend("NPU", clock, 1, invert=True)

    result = make_runner(clock, sleeps).run({"CPU": cpu, "GPU": None, "NPU": npu})

    assert sleeps == [0.1, 0.5, 0.1]
    gpu_run = result.runs["GPU"]
    assert gpu_run.records == ()
    assert gpu_run.report.point_count == 0
    assert gpu_run.report.average_inference_time == 0
    assert gpu_run.report.total_elapsed_time == 0
    assert gpu_run.timings.count == 0

    assert result.comparison.unavailable == ("GPU",)
    assert result.comparison.winner.backend_name == "NPU"
    assert result.comparison.speedup == pytest.approx(4.0)

    assert result.runs["CPU"].accuracy.accuracy == pytest.approx(100.0)
    assert result.runs["NPU"].accuracy.accuracy == pytest.approx(0.0)


def test_runner_with_partial_failures():
    clock = FakeClock()
    # call #6 is probe point #5 after the single GPU warm-up call
    gpu = FixedLatencyBackend("GPU", clock, 2, fail_on={6})
    result = make_runner(clock, []).run({"GPU": gpu})

    run = result.runs["GPU"]
    assert run.report.point_count == 27
    assert run.timings.count == 27
    assert PROBE_POINTS[4] not in [(r.point.x, r.point.y) for r in run.records]


def test_runner_from_config():
    config = {'benchmark': {'cpu_warmup_runs': 2, 'warmup_settle_seconds': 0.0,
                            'backend_pause_seconds': 0.25, 'baseline_backend': 'GPU'}}
    runner = BenchmarkRunner.from_config(config)
    assert runner.warmup_runs_for("CPU") == 3
    assert runner.warmup_runs_for("GPU") == 1
    assert runner.backend_pause_seconds == 0.25
    assert runner.baseline == "GPU"

    clock = FakeClock()
    sleeps = []
    runner.clock = clock
    runner.sleep = sleeps.append
    runner.run({"CPU": FixedLatencyBackend("CPU", clock, 1), "GPU": FixedLatencyBackend("GPU", clock, 1)})
    assert sleeps == [0.25]
