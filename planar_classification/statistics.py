"""
Planar Classification - Benchmark Statistics

Reduces classification records into reports, descriptive timing
statistics and accuracy figures, and ranks backends against each other.
All samples count equally: no outlier trimming is applied anywhere.
"""
import logging
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict

from .config import BASELINE_BACKEND
from .records import BenchmarkReport, ClassificationRecord

logger = logging.getLogger(__name__)

# Speed bands (milliseconds)
FAST_MAX_MS = 1
NORMAL_MAX_MS = 5


class TimingStatistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int = 0
    min: int = 0
    max: int = 0
    mean: float = 0.0
    median: float = 0.0
    std_dev: float = 0.0
    fast_count: int = 0
    normal_count: int = 0
    slow_count: int = 0
    fast_percent: float = 0.0
    normal_percent: float = 0.0
    slow_percent: float = 0.0
    consistency_score: float = 0.0

    @property
    def range(self) -> int:
        return self.max - self.min


class AccuracyStatistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    correct: int = 0
    accuracy: float = 0.0
    predicted_blue: int = 0
    predicted_red: int = 0
    blue_total: int = 0
    blue_correct: int = 0
    blue_accuracy: float = 0.0
    red_total: int = 0
    red_correct: int = 0
    red_accuracy: float = 0.0


class BenchmarkComparison(BaseModel):
    """Backends ranked by ascending average inference time."""

    model_config = ConfigDict(frozen=True)

    ranking: Tuple[BenchmarkReport, ...] = ()
    unavailable: Tuple[str, ...] = ()
    baseline_name: str = BASELINE_BACKEND
    speedup: Optional[float] = None

    @property
    def winner(self) -> Optional[BenchmarkReport]:
        return self.ranking[0] if self.ranking else None

    @property
    def speedup_text(self) -> str:
        if self.speedup is None:
            return "No speedup"
        return f"{self.speedup:.1f}x faster than {self.baseline_name}"

    def slowdown(self, report: BenchmarkReport) -> Optional[float]:
        """Ratio of a report's average time to the winner's."""
        winner = self.winner
        if winner is None or winner.average_inference_time == 0:
            return None
        return report.average_inference_time / winner.average_inference_time


def _percent(part: int, whole: int) -> float:
    return part * 100.0 / whole if whole else 0.0


def summarize(records: Sequence[ClassificationRecord], backend_name: str = "",
              total_elapsed_time: int = 0) -> BenchmarkReport:
    """Build a BenchmarkReport; an empty record list gives a zero report."""
    if not records:
        logger.warning(f"{backend_name or 'Backend'}: no results to calculate average")
        return BenchmarkReport(backend_name=backend_name, total_elapsed_time=total_elapsed_time)

    actual_average = float(np.mean([r.inference_time for r in records]))
    rounded_average = int(round(actual_average))
    logger.info(
        f"{backend_name} final result: actual avg={actual_average:.1f}ms, "
        f"rounded avg={rounded_average}ms (all values included)"
    )

    blue_count = sum(1 for r in records if r.predicted_label)
    return BenchmarkReport(
        backend_name=backend_name,
        point_count=len(records),
        average_inference_time=rounded_average,
        total_elapsed_time=total_elapsed_time,
        blue_count=blue_count,
        red_count=len(records) - blue_count,
    )


def describe_timings(times: Iterable[int]) -> TimingStatistics:
    """Min/max/mean/median/population std dev plus speed bands."""
    values = np.asarray(list(times), dtype=np.float64)
    if values.size == 0:
        return TimingStatistics()

    count = int(values.size)
    mean = float(np.mean(values))
    std_dev = float(np.std(values))  # population (ddof=0)

    fast = int(np.sum(values <= FAST_MAX_MS))
    slow = int(np.sum(values > NORMAL_MAX_MS))
    normal = count - fast - slow

    consistency = max(0.0, 100.0 - std_dev / mean * 100.0) if mean > 0 else 0.0

    return TimingStatistics(
        count=count,
        min=int(np.min(values)),
        max=int(np.max(values)),
        mean=mean,
        median=float(np.median(values)),
        std_dev=std_dev,
        fast_count=fast,
        normal_count=normal,
        slow_count=slow,
        fast_percent=_percent(fast, count),
        normal_percent=_percent(normal, count),
        slow_percent=_percent(slow, count),
        consistency_score=consistency,
    )


def accuracy_summary(records: Sequence[ClassificationRecord]) -> AccuracyStatistics:
    """Overall and class-wise accuracy (classes grouped by ground truth)."""
    total = len(records)
    correct = sum(1 for r in records if r.is_correct)
    predicted_blue = sum(1 for r in records if r.predicted_label)

    blue = [r for r in records if r.ground_truth_label]
    red = [r for r in records if not r.ground_truth_label]
    blue_correct = sum(1 for r in blue if r.is_correct)
    red_correct = sum(1 for r in red if r.is_correct)

    return AccuracyStatistics(
        total=total,
        correct=correct,
        accuracy=_percent(correct, total),
        predicted_blue=predicted_blue,
        predicted_red=total - predicted_blue,
        blue_total=len(blue),
        blue_correct=blue_correct,
        blue_accuracy=_percent(blue_correct, len(blue)),
        red_total=len(red),
        red_correct=red_correct,
        red_accuracy=_percent(red_correct, len(red)),
    )


def compare(reports: Iterable[BenchmarkReport],
            baseline: str = BASELINE_BACKEND) -> BenchmarkComparison:
    """
    Rank reports by ascending average inference time.

    Reports without any point (unavailable backends) are left out of the
    ranking and listed separately. A report is ranked only when it carries
    its point count; BenchmarkReport rejects an average without points.
    The speedup is the baseline's average divided by the winner's, or None
    when the winner is the baseline, the baseline did not run, or either
    average is zero.
    """
    reports = list(reports)
    ranked = sorted((r for r in reports if not r.is_empty),
                    key=lambda r: r.average_inference_time)
    unavailable = [r.backend_name for r in reports if r.is_empty]

    speedup = None
    winner = ranked[0] if ranked else None
    base = next((r for r in ranked if r.backend_name == baseline), None)
    if (winner is not None and base is not None
            and winner.backend_name != baseline
            and base.average_inference_time > 0
            and winner.average_inference_time > 0):
        speedup = base.average_inference_time / winner.average_inference_time

    return BenchmarkComparison(
        ranking=ranked,
        unavailable=unavailable,
        baseline_name=baseline,
        speedup=speedup,
    )


def performance_grade(average_inference_time: int) -> str:
    """Letter grade for an average latency in milliseconds."""
    if average_inference_time <= 1:
        return "A+ (Excellent)"
    if average_inference_time <= 3:
        return "A (Very Good)"
    if average_inference_time <= 5:
        return "B (Good)"
    if average_inference_time <= 10:
        return "C (Fair)"
    return "D (Slow)"
