"""
Plot benchmark latencies.
"""
import logging
from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from .benchmark import BenchmarkResult

logger = logging.getLogger(__name__)


def plot_benchmark(result: BenchmarkResult, output_path: str) -> str:
    """Save average latency bars and per-probe latency lines as a PNG."""
    runs = {name: run for name, run in result.runs.items() if run.records}
    if not runs:
        raise ValueError("Benchmark result has no records to plot")

    fig, axes = plt.subplots(1, 2, figsize=(14, 5))

    # Plot 1: average latency per backend
    ax1 = axes[0]
    names = list(runs)
    averages = [runs[n].report.average_inference_time for n in names]
    bars = ax1.bar(names, averages, color=['tab:blue', 'tab:green', 'tab:purple', 'tab:gray'][:len(names)])
    for bar, v in zip(bars, averages):
        ax1.annotate(f'{v}ms', xy=(bar.get_x() + bar.get_width() / 2, bar.get_height()),
                     xytext=(0, 3), textcoords="offset points", ha='center', fontsize=10)
    ax1.set_ylabel('Average latency (ms)', fontsize=12)
    ax1.set_title('Average Inference Time', fontsize=14, fontweight='bold')
    ax1.grid(axis='y', alpha=0.3)

    # Plot 2: latency of every probe
    ax2 = axes[1]
    for name, run in runs.items():
        times = [r.inference_time for r in run.records]
        ax2.plot(range(1, len(times) + 1), times, '-o', label=name, linewidth=2)
    ax2.set_xlabel('Probe point', fontsize=12)
    ax2.set_ylabel('Latency (ms)', fontsize=12)
    ax2.set_title('Per-Point Latency', fontsize=14, fontweight='bold')
    ax2.legend(fontsize=11)
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output, dpi=150, bbox_inches='tight')
    plt.close(fig)

    logger.info(f"Saved plot to {output}")
    return str(output)
