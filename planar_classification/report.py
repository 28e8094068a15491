"""
Planar Classification - Text Reports

Plain-text panels for a single classification, the session history and a
benchmark comparison.
"""
from typing import Optional

from .benchmark import BenchmarkResult
from .records import ClassificationRecord
from .statistics import AccuracyStatistics, performance_grade

RULE = "=" * 50
THIN_RULE = "-" * 50


def format_classification(record: ClassificationRecord) -> str:
    status = "Correct" if record.is_correct else "Wrong"
    lines = [
        "Latest Classification Result",
        THIN_RULE,
        f"Point: ({record.point.x:.2f}, {record.point.y:.2f})",
        f"Predicted: {record.predicted_class} ({record.confidence * 100:.1f}%)",
        f"Actual: {record.ground_truth_class}",
        f"Result: {status}",
        f"Inference: {record.inference_time}ms ({record.backend_name})",
    ]
    return "\n".join(lines)


def format_history(stats: AccuracyStatistics, backend_name: Optional[str] = None) -> str:
    lines = [
        "Classification History & Statistics",
        THIN_RULE,
        f"Total Points: {stats.total}",
        f"Correct Predictions: {stats.correct}",
        f"Overall Accuracy: {stats.accuracy:.1f}%",
        "",
        f"Blue Predictions: {stats.predicted_blue}",
        f"Red Predictions: {stats.predicted_red}",
        "",
        f"Blue Class: {stats.blue_accuracy:.1f}% ({stats.blue_correct}/{stats.blue_total})",
        f"Red Class: {stats.red_accuracy:.1f}% ({stats.red_correct}/{stats.red_total})",
    ]
    if backend_name:
        lines.append(f"Backend: {backend_name}")
    return "\n".join(lines)


def format_benchmark(result: BenchmarkResult) -> str:
    comparison = result.comparison
    winner = comparison.winner

    lines = [RULE, "PERFORMANCE BENCHMARK RESULTS", RULE]
    if winner is None:
        lines.append("No backend produced any result")
    else:
        lines += [
            f"Winner: {winner.backend_name}",
            f"Best Time: {winner.average_inference_time}ms average",
            f"Speedup: {comparison.speedup_text}",
        ]
    lines += [
        "",
        f"Backends tested: {len(comparison.ranking)}",
        f"Points per backend: {result.probe_count}",
    ]
    if comparison.unavailable:
        lines.append(f"Unavailable: {', '.join(comparison.unavailable)}")

    for name, run in result.runs.items():
        report = run.report
        if report.is_empty:
            continue
        t = run.timings
        a = run.accuracy
        lines += [
            "",
            f"{name} Backend Results:",
            f"  Points processed: {report.point_count}",
            f"  Classifications: Blue={report.blue_count}, Red={report.red_count}",
            f"  Average latency: {report.average_inference_time}ms",
            f"  Median / Std Dev: {t.median:.1f}ms / {t.std_dev:.1f}ms",
            f"  Range: {t.range}ms ({t.min}ms ~ {t.max}ms)",
            f"  Total time: {report.total_elapsed_time}ms",
            f"  Throughput: {report.throughput:.1f} points/sec",
            f"  Accuracy: {a.accuracy:.1f}% ({a.correct}/{a.total})",
            f"  Consistency: {t.consistency_score:.1f}%",
            f"  Performance Grade: {performance_grade(report.average_inference_time)}",
        ]

    if len(comparison.ranking) > 1:
        lines += ["", "Performance Rankings:", THIN_RULE]
        for index, report in enumerate(comparison.ranking):
            if index == 0:
                note = "Fastest"
            else:
                ratio = comparison.slowdown(report)
                note = f"{ratio:.1f}x slower" if ratio is not None else "n/a"
            lines.append(f"  #{index + 1} {report.backend_name}: {report.average_inference_time}ms ({note})")

    lines.append(RULE)
    return "\n".join(lines)
