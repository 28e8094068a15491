"""
Planar Classification - Data Model

Immutable value types shared by the classifier, the benchmark and the
service layer.
"""
import math
from typing import Protocol

from pydantic import BaseModel, ConfigDict, model_validator

from .config import MIN_INFERENCE_TIME_MS, PROBABILITY_THRESHOLD

BLUE = "Blue"
RED = "Red"


def label_name(label: bool) -> str:
    return BLUE if label else RED


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    @property
    def distance(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y)

    @property
    def angle(self) -> float:
        return math.atan2(self.y, self.x)

    def moved(self, dx: float, dy: float, x_min: float, x_max: float,
              y_min: float, y_max: float) -> "Point":
        """Return the point shifted by (dx, dy) and clamped to the domain."""
        return Point(
            x=min(max(self.x + dx, x_min), x_max),
            y=min(max(self.y + dy, y_min), y_max),
        )


class LabelSource(Protocol):
    def classify_point(self, point: Point) -> bool: ...


class ClassificationRecord(BaseModel):
    """One inference trial: prediction, timing and the reference label."""

    model_config = ConfigDict(frozen=True)

    point: Point
    predicted_probability: float
    predicted_label: bool
    inference_time: int
    ground_truth_label: bool
    is_correct: bool
    backend_name: str = "CPU"

    @model_validator(mode='after')
    def check_consistency(self) -> "ClassificationRecord":
        if self.predicted_label != (self.predicted_probability >= PROBABILITY_THRESHOLD):
            raise ValueError("predicted_label does not match predicted_probability")
        if self.is_correct != (self.predicted_label == self.ground_truth_label):
            raise ValueError("is_correct does not match predicted and ground truth labels")
        if self.inference_time < MIN_INFERENCE_TIME_MS:
            raise ValueError(f"inference_time must be >= {MIN_INFERENCE_TIME_MS}")
        return self

    @classmethod
    def create(cls, point: Point, probability: float, inference_time: int,
               classifier: LabelSource, backend_name: str = "CPU") -> "ClassificationRecord":
        """Build a record, deriving labels and flooring the duration."""
        probability = float(probability)
        predicted = probability >= PROBABILITY_THRESHOLD
        actual = classifier.classify_point(point)
        return cls(
            point=point,
            predicted_probability=probability,
            predicted_label=predicted,
            inference_time=max(MIN_INFERENCE_TIME_MS, int(inference_time)),
            ground_truth_label=actual,
            is_correct=predicted == actual,
            backend_name=backend_name,
        )

    @property
    def confidence(self) -> float:
        """Probability of the predicted class."""
        if self.predicted_label:
            return self.predicted_probability
        return 1.0 - self.predicted_probability

    @property
    def predicted_class(self) -> str:
        return label_name(self.predicted_label)

    @property
    def ground_truth_class(self) -> str:
        return label_name(self.ground_truth_label)


class BenchmarkReport(BaseModel):
    """Summary of one backend's benchmark records."""

    model_config = ConfigDict(frozen=True)

    backend_name: str
    point_count: int = 0
    average_inference_time: int = 0
    total_elapsed_time: int = 0
    blue_count: int = 0
    red_count: int = 0

    @model_validator(mode='after')
    def check_empty(self) -> "BenchmarkReport":
        # an average needs at least one timed point behind it
        if self.point_count == 0 and self.average_inference_time != 0:
            raise ValueError("average_inference_time must be 0 when point_count is 0")
        return self

    @property
    def is_empty(self) -> bool:
        return self.point_count == 0

    @property
    def throughput(self) -> float:
        """Points per second over the whole run."""
        if self.total_elapsed_time <= 0:
            return 0.0
        return self.point_count * 1000.0 / self.total_elapsed_time
