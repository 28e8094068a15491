"""
Planar Classification - Classification Session

Holds the state of one interactive session: the cursor, the accelerator
toggle, the classification history and the latest benchmark result. The
three entry points (classify, run benchmark, clear history) never overlap:
a second call while one is in flight raises SessionBusyError.
"""
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from .backends import (
    ACCELERATOR_PREFERENCE, CPU, InferenceBackend, load_backends, timed_inference
)
from .benchmark import BenchmarkResult, BenchmarkRunner
from .config import MOVE_STEP, X_MAX, X_MIN, Y_MAX, Y_MIN
from .ground_truth import GroundTruthClassifier
from .records import BenchmarkReport, ClassificationRecord, Point
from .statistics import AccuracyStatistics, accuracy_summary

logger = logging.getLogger(__name__)

DIRECTIONS = {
    'up': (0.0, 1.0),
    'down': (0.0, -1.0),
    'left': (-1.0, 0.0),
    'right': (1.0, 0.0),
}


class SessionBusyError(RuntimeError):
    """Raised when an operation starts while another one is running."""


class BackendUnavailableError(RuntimeError):
    """Raised when no inference backend is bound for classification."""


class ClassificationSession:

    def __init__(self, backends: Dict[str, Optional[InferenceBackend]],
                 classifier: Optional[GroundTruthClassifier] = None,
                 runner: Optional[BenchmarkRunner] = None,
                 domain: Optional[dict] = None,
                 clock: Callable[[], int] = time.perf_counter_ns):
        self.backends = dict(backends)
        self.classifier = classifier or GroundTruthClassifier()
        self.runner = runner or BenchmarkRunner(classifier=self.classifier, clock=clock)
        self.clock = clock

        domain = domain or {}
        self.x_min = domain.get('x_min', X_MIN)
        self.x_max = domain.get('x_max', X_MAX)
        self.y_min = domain.get('y_min', Y_MIN)
        self.y_max = domain.get('y_max', Y_MAX)
        self.move_step = domain.get('move_step', MOVE_STEP)

        self.cursor = Point(x=0.0, y=0.0)
        self.use_accelerator = False

        self._history: List[ClassificationRecord] = []
        self._last_benchmark: Optional[BenchmarkResult] = None
        self._run_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: dict) -> "ClassificationSession":
        classifier = GroundTruthClassifier(config['ground_truth']['rule'])
        backends = load_backends(config['model']['path'], config['model']['num_threads'])
        runner = BenchmarkRunner.from_config(config, classifier=classifier)
        return cls(backends, classifier=classifier, runner=runner, domain=config['domain'])

    # State snapshots

    @property
    def history(self) -> Tuple[ClassificationRecord, ...]:
        return tuple(self._history)

    @property
    def last_benchmark(self) -> Optional[BenchmarkResult]:
        """Copy of the latest result; the stored one is never handed out."""
        if self._last_benchmark is None:
            return None
        return self._last_benchmark.model_copy(deep=True)

    @property
    def reports(self) -> Dict[str, BenchmarkReport]:
        if self._last_benchmark is None:
            return {}
        return {name: run.report for name, run in self._last_benchmark.runs.items()}

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    @property
    def available_backends(self) -> List[str]:
        return [name for name, backend in self.backends.items() if backend is not None]

    def statistics(self, backend_name: Optional[str] = None) -> AccuracyStatistics:
        records = tuple(self._history)
        if backend_name is not None:
            records = [r for r in records if r.backend_name == backend_name]
        return accuracy_summary(records)

    # Cursor

    def move_cursor(self, direction: str) -> Point:
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown direction: {direction}")
        dx, dy = DIRECTIONS[direction]
        self.cursor = self.cursor.moved(
            dx * self.move_step, dy * self.move_step,
            self.x_min, self.x_max, self.y_min, self.y_max,
        )
        return self.cursor

    def ground_truth(self, point: Optional[Point] = None) -> bool:
        return self.classifier.classify_point(point if point is not None else self.cursor)

    # Accelerator

    @property
    def available_accelerators(self) -> List[str]:
        return [name for name in ACCELERATOR_PREFERENCE
                if name != CPU and self.backends.get(name) is not None]

    def toggle_accelerator(self) -> bool:
        """
        Flip the accelerator toggle and return its new state. It stays off
        when neither GPU nor NPU is bound.
        """
        if self.use_accelerator:
            self.use_accelerator = False
            logger.info("Accelerator disabled, classifying on CPU")
        elif not self.available_accelerators:
            logger.warning("Cannot enable accelerator: no GPU or NPU interpreter available")
        else:
            self.use_accelerator = True
            logger.info(f"Accelerator enabled, preferring {self.available_accelerators[0]}")
        return self.use_accelerator

    # Entry points

    def select_backend(self) -> Tuple[str, InferenceBackend]:
        """Pick NPU, then GPU, then CPU with the accelerator on; CPU otherwise."""
        order = ACCELERATOR_PREFERENCE if self.use_accelerator else (CPU,)
        for name in order:
            backend = self.backends.get(name)
            if backend is not None:
                return name, backend
        raise BackendUnavailableError("No interpreter available")

    def _acquire(self, operation: str):
        if not self._run_lock.acquire(blocking=False):
            raise SessionBusyError(f"Cannot {operation}: another operation is running")

    def classify(self, point: Optional[Point] = None) -> ClassificationRecord:
        """Classify a point (the cursor by default) and append it to history."""
        point = point if point is not None else self.cursor
        self._acquire("classify")
        try:
            name, backend = self.select_backend()
            logger.info(f"Executing classification on {name} at point ({point.x}, {point.y})")

            probability, inference_time = timed_inference(backend, point, clock=self.clock)
            record = ClassificationRecord.create(
                point, probability, inference_time, self.classifier, backend_name=name)
            self._history.append(record)

            logger.info(
                f"Classification completed - Result: {record.predicted_class}, "
                f"Confidence: {record.confidence:.3f}, Time: {record.inference_time}ms"
            )
            return record
        except BackendUnavailableError:
            logger.error("No interpreter available!")
            raise
        except Exception as e:
            logger.error(f"Error during classification: {e}")
            raise
        finally:
            self._run_lock.release()

    def run_benchmark(self) -> BenchmarkResult:
        """Benchmark every backend and append the records to history."""
        self._acquire("run benchmark")
        try:
            result = self.runner.run(self.backends)
            self._history.extend(result.records)
            self._last_benchmark = result.model_copy(deep=True)
            return result
        finally:
            self._run_lock.release()

    def clear_history(self):
        self._acquire("clear history")
        try:
            self._history.clear()
            logger.info("Classification history cleared")
        finally:
            self._run_lock.release()

    def close(self):
        for backend in self.backends.values():
            if backend is not None:
                backend.close()
