#!/usr/bin/env python3
"""
Planar Classification - Benchmark Runner

Runs the probe set through every available backend of a TFLite model and
prints the comparison.
"""

import sys
import logging
import argparse

from .benchmark import BenchmarkRunner
from .config import load_config
from .ground_truth import GroundTruthClassifier
from .backends import load_backends
from .report import format_benchmark

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description='Planar classifier backend benchmark')
    parser.add_argument('--config', type=str, default=None, help='Path to YAML config')
    parser.add_argument('--model', type=str, default=None, help='Path to .tflite model')
    parser.add_argument('--rule', type=str, default=None,
                        choices=['primary', 'simple_circle', 'spiral'])
    parser.add_argument('--threads', type=int, default=None, help='CPU interpreter threads')
    parser.add_argument('--plot', type=str, default=None, help='Save latency plot to this PNG')
    parser.add_argument('--verbose', action='store_true', help='Log every probe point')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s - %(levelname)s - %(message)s')

    try:
        config = load_config(args.config)
        model_path = args.model or config['model']['path']
        threads = args.threads or config['model']['num_threads']

        classifier = GroundTruthClassifier(args.rule or config['ground_truth']['rule'])
        backends = load_backends(model_path, threads)
        if not any(backends.values()):
            logger.error(f"No backend available for model: {model_path}")
            logger.error("Train a model first: python -m planar_classification.train_model")
            sys.exit(1)

        runner = BenchmarkRunner.from_config(config, classifier=classifier, progress=True)
        result = runner.run(backends)

        print()
        print(format_benchmark(result))

        if args.plot:
            from .plot_benchmark import plot_benchmark
            plot_benchmark(result, args.plot)

    except Exception as e:
        logger.error(f"Benchmark failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
