"""
Planar Classification - 2D point classifier with ground-truth checking
and backend benchmarking.
"""
from .backends import CallableBackend, InferenceBackend, TFLiteBackend, load_backends, timed_inference
from .benchmark import BenchmarkResult, BenchmarkRunner, BackendRun, run_probe_set
from .ground_truth import GroundTruthClassifier, GroundTruthRule, get_ground_truth
from .records import BenchmarkReport, ClassificationRecord, Point
from .session import BackendUnavailableError, ClassificationSession, SessionBusyError
from .statistics import (
    AccuracyStatistics, BenchmarkComparison, TimingStatistics,
    accuracy_summary, compare, describe_timings, performance_grade, summarize
)

__all__ = [
    'Point',
    'ClassificationRecord',
    'BenchmarkReport',
    'GroundTruthRule',
    'GroundTruthClassifier',
    'get_ground_truth',
    'InferenceBackend',
    'CallableBackend',
    'TFLiteBackend',
    'load_backends',
    'timed_inference',
    'run_probe_set',
    'BenchmarkRunner',
    'BenchmarkResult',
    'BackendRun',
    'summarize',
    'describe_timings',
    'accuracy_summary',
    'compare',
    'performance_grade',
    'TimingStatistics',
    'AccuracyStatistics',
    'BenchmarkComparison',
    'ClassificationSession',
    'SessionBusyError',
    'BackendUnavailableError',
]
