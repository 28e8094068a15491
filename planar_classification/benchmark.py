"""
Planar Classification - Backend Benchmark

Runs the fixed probe set through each backend in turn. Per backend the
procedure is: warm-up calls (untimed), settle pause, timed probe run.
Backends run strictly one after another with a pause in between so their
timings do not interfere. Clock and sleep are injectable for tests.
"""
import logging
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict
from tqdm import tqdm

from .backends import BACKEND_ORDER, CPU, InferenceBackend, timed_inference
from .config import (
    BACKEND_PAUSE_SECONDS, BASELINE_BACKEND, CPU_WARMUP_RUNS,
    PROBE_POINTS, WARMUP_SETTLE_SECONDS
)
from .ground_truth import GroundTruthClassifier
from .records import BenchmarkReport, ClassificationRecord, Point
from .statistics import (
    AccuracyStatistics, BenchmarkComparison, TimingStatistics,
    accuracy_summary, compare, describe_timings, summarize
)

logger = logging.getLogger(__name__)

ClassifyFn = Callable[[InferenceBackend, Point], Tuple[float, int]]

WARMUP_POINT = Point(x=0.0, y=0.0)
CPU_WARMUP_POINT = Point(x=1.0, y=1.0)


def default_probe_points() -> List[Point]:
    return [Point(x=x, y=y) for x, y in PROBE_POINTS]


class BackendRun(BaseModel):
    model_config = ConfigDict(frozen=True)

    records: Tuple[ClassificationRecord, ...]
    report: BenchmarkReport
    timings: TimingStatistics
    accuracy: AccuracyStatistics


class BenchmarkResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    runs: Dict[str, BackendRun]
    comparison: BenchmarkComparison
    probe_count: int

    @property
    def records(self) -> Tuple[ClassificationRecord, ...]:
        """All records, in run order."""
        return tuple(record for run in self.runs.values() for record in run.records)


def warm_up(backend: InferenceBackend, classify_fn: ClassifyFn, runs: int = 1,
            settle_seconds: float = 0.0, sleep: Callable[[float], None] = time.sleep) -> bool:
    """
    Issue untimed calls before measuring. The first call uses the origin,
    any further calls use (1, 1). Failures are logged, never raised.
    """
    name = getattr(backend, 'name', CPU)
    logger.info(f"Performing warm-up run for {name} ({runs} call(s))...")
    try:
        for i in range(max(1, runs)):
            classify_fn(backend, WARMUP_POINT if i == 0 else CPU_WARMUP_POINT)
        if settle_seconds > 0:
            sleep(settle_seconds)
    except Exception as e:
        logger.warning(f"Warm-up failed for {name}: {e}")
        return False

    logger.info(f"Warm-up completed for {name}")
    return True


def run_probe_set(backend: Optional[InferenceBackend], probe_points: Sequence[Point],
                  classify_fn: ClassifyFn = timed_inference,
                  classifier: Optional[GroundTruthClassifier] = None,
                  warmup_runs: int = 1, settle_seconds: float = 0.0,
                  sleep: Callable[[float], None] = time.sleep,
                  backend_name: Optional[str] = None,
                  progress: bool = False) -> List[ClassificationRecord]:
    """
    Classify every probe point with one backend.

    Returns one record per successful probe, in probe order. A failing
    probe is logged and skipped. An unbound backend (None) gives an empty
    list.
    """
    name = backend_name or getattr(backend, 'name', CPU)
    classifier = classifier or GroundTruthClassifier()
    records: List[ClassificationRecord] = []

    if backend is None:
        logger.warning(f"{name} interpreter not available")
        return records

    warm_up(backend, classify_fn, runs=warmup_runs, settle_seconds=settle_seconds, sleep=sleep)

    for index, point in enumerate(tqdm(probe_points, desc=f"{name} benchmark", disable=not progress)):
        try:
            probability, inference_time = classify_fn(backend, point)
            record = ClassificationRecord.create(
                point, probability, inference_time, classifier, backend_name=name)
        except Exception as e:
            logger.error(f"Error processing {name} benchmark point ({point.x}, {point.y}): {e}")
            continue

        records.append(record)
        logger.debug(
            f"{name} point #{index + 1}: ({point.x}, {point.y}) -> {record.predicted_class} "
            f"({record.predicted_probability:.3f}) vs {record.ground_truth_class} "
            f"{'correct' if record.is_correct else 'wrong'} - {record.inference_time}ms"
        )

    logger.info(f"{name} benchmark completed: {len(records)}/{len(probe_points)} points")
    return records


def log_backend_statistics(name: str, run: BackendRun, probe_count: int):
    """Log the detailed statistics of one backend run."""
    if not run.records:
        return

    t = run.timings
    a = run.accuracy
    logger.info(f"{name} detailed statistics:")
    logger.info(f"  Points processed: {len(run.records)}/{probe_count}")
    logger.info(f"  Min time: {t.min}ms")
    logger.info(f"  Max time: {t.max}ms")
    logger.info(f"  Average: {t.mean:.1f}ms")
    logger.info(f"  Median: {t.median:.1f}ms")
    logger.info(f"  Std Dev: {t.std_dev:.1f}ms")
    logger.info(f"  Classification: Blue={a.predicted_blue}, Red={a.predicted_red}")
    logger.info(f"  Accuracy: {a.correct}/{a.total} ({a.accuracy:.1f}%)")
    if a.blue_total:
        logger.info(f"    Blue class accuracy: {a.blue_accuracy:.1f}% ({a.blue_correct}/{a.blue_total})")
    if a.red_total:
        logger.info(f"    Red class accuracy: {a.red_accuracy:.1f}% ({a.red_correct}/{a.red_total})")
    logger.info(f"  Fast (<=1ms): {t.fast_count} points ({t.fast_percent:.1f}%)")
    logger.info(f"  Normal (2-5ms): {t.normal_count} points ({t.normal_percent:.1f}%)")
    logger.info(f"  Slow (>5ms): {t.slow_count} points ({t.slow_percent:.1f}%)")
    logger.info(f"  Performance consistency: {t.consistency_score:.1f}%")
    logger.info(f"  Performance range: {t.range}ms ({t.min}ms ~ {t.max}ms)")


class BenchmarkRunner:
    """Sequential warm-up / timed run / pause protocol over several backends."""

    def __init__(self, classifier: Optional[GroundTruthClassifier] = None,
                 probe_points: Optional[Sequence[Point]] = None,
                 cpu_warmup_runs: int = CPU_WARMUP_RUNS,
                 warmup_settle_seconds: float = WARMUP_SETTLE_SECONDS,
                 backend_pause_seconds: float = BACKEND_PAUSE_SECONDS,
                 baseline: str = BASELINE_BACKEND,
                 clock: Callable[[], int] = time.perf_counter_ns,
                 sleep: Callable[[float], None] = time.sleep,
                 progress: bool = False):
        self.classifier = classifier or GroundTruthClassifier()
        self.probe_points = list(probe_points) if probe_points is not None else default_probe_points()
        self.cpu_warmup_runs = cpu_warmup_runs
        self.warmup_settle_seconds = warmup_settle_seconds
        self.backend_pause_seconds = backend_pause_seconds
        self.baseline = baseline
        self.clock = clock
        self.sleep = sleep
        self.progress = progress

    @classmethod
    def from_config(cls, config: dict, classifier: Optional[GroundTruthClassifier] = None,
                    **kwargs) -> "BenchmarkRunner":
        bench_cfg = config.get('benchmark', {})
        return cls(
            classifier=classifier,
            cpu_warmup_runs=bench_cfg.get('cpu_warmup_runs', CPU_WARMUP_RUNS),
            warmup_settle_seconds=bench_cfg.get('warmup_settle_seconds', WARMUP_SETTLE_SECONDS),
            backend_pause_seconds=bench_cfg.get('backend_pause_seconds', BACKEND_PAUSE_SECONDS),
            baseline=bench_cfg.get('baseline_backend', BASELINE_BACKEND),
            **kwargs
        )

    def classify_fn(self, backend: InferenceBackend, point: Point) -> Tuple[float, int]:
        return timed_inference(backend, point, clock=self.clock)

    def warmup_runs_for(self, name: str) -> int:
        # CPU gets extra calls so JIT-style first-run effects settle
        return 1 + self.cpu_warmup_runs if name == CPU else 1

    def run_backend(self, name: str, backend: Optional[InferenceBackend]) -> BackendRun:
        logger.info(f"Starting {name} benchmark")
        start = self.clock()
        records = run_probe_set(
            backend, self.probe_points, self.classify_fn,
            classifier=self.classifier,
            warmup_runs=self.warmup_runs_for(name),
            settle_seconds=self.warmup_settle_seconds,
            sleep=self.sleep,
            backend_name=name,
            progress=self.progress,
        )
        total_ms = (self.clock() - start) // 1_000_000 if backend is not None else 0

        run = BackendRun(
            records=records,
            report=summarize(records, backend_name=name, total_elapsed_time=int(total_ms)),
            timings=describe_timings(r.inference_time for r in records),
            accuracy=accuracy_summary(records),
        )
        log_backend_statistics(name, run, len(self.probe_points))
        return run

    def ordered(self, backends: Dict[str, Optional[InferenceBackend]]) -> List[str]:
        known = [name for name in BACKEND_ORDER if name in backends]
        return known + [name for name in backends if name not in BACKEND_ORDER]

    def run(self, backends: Dict[str, Optional[InferenceBackend]]) -> BenchmarkResult:
        runs: Dict[str, BackendRun] = {}
        ran_any = False

        for name in self.ordered(backends):
            backend = backends[name]
            if backend is not None and ran_any and self.backend_pause_seconds > 0:
                self.sleep(self.backend_pause_seconds)

            runs[name] = self.run_backend(name, backend)
            ran_any = ran_any or backend is not None

        comparison = compare((run.report for run in runs.values()), baseline=self.baseline)
        if comparison.winner is not None:
            logger.info(
                f"Winner: {comparison.winner.backend_name} "
                f"({comparison.winner.average_inference_time}ms), {comparison.speedup_text}"
            )
        else:
            logger.warning("No backend produced any result")

        return BenchmarkResult(runs=runs, comparison=comparison, probe_count=len(self.probe_points))
