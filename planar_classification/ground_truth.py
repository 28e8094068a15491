"""
Planar Classification - Ground Truth

Reference labels for points of the plane. True means the "Blue" class,
False the "Red" class. One rule is active per classifier, chosen when the
classifier is built.
"""
import math
from enum import Enum
from typing import Callable, Dict, Union

from .records import Point


class GroundTruthRule(str, Enum):
    PRIMARY = "primary"
    SIMPLE_CIRCLE = "simple_circle"
    SPIRAL = "spiral"


def primary_rule(x: float, y: float) -> bool:
    """
    Inner disk and outer ring are Blue; the middle annulus is Blue only in
    the first/third quadrants within 60 degrees of the positive x axis.
    """
    distance = math.sqrt(x * x + y * y)
    angle = math.atan2(y, x)

    if distance < 1.5:
        return True
    if distance > 3.0:
        return True

    odd_quadrant = (x > 0 and y > 0) or (x < 0 and y < 0)
    if 1.5 <= distance <= 3.0:
        return odd_quadrant and abs(angle) < math.pi / 3

    # NaN coordinates fall through every comparison above
    return False


def simple_circle_rule(x: float, y: float) -> bool:
    """Blue inside the circle of radius 2."""
    return math.sqrt(x * x + y * y) < 2.0


def spiral_rule(x: float, y: float) -> bool:
    distance = math.sqrt(x * x + y * y)
    angle = math.atan2(y, x)
    return distance - 0.5 * angle > 0


RULES: Dict[GroundTruthRule, Callable[[float, float], bool]] = {
    GroundTruthRule.PRIMARY: primary_rule,
    GroundTruthRule.SIMPLE_CIRCLE: simple_circle_rule,
    GroundTruthRule.SPIRAL: spiral_rule,
}


class GroundTruthClassifier:
    """Labels points with a single, fixed ground-truth rule."""

    def __init__(self, rule: Union[GroundTruthRule, str] = GroundTruthRule.PRIMARY):
        self.rule = GroundTruthRule(rule)
        self._rule_fn = RULES[self.rule]

    def classify(self, x: float, y: float) -> bool:
        return bool(self._rule_fn(float(x), float(y)))

    def classify_point(self, point: Point) -> bool:
        return self.classify(point.x, point.y)

    def __call__(self, x: float, y: float) -> bool:
        return self.classify(x, y)

    def __repr__(self) -> str:
        return f"GroundTruthClassifier(rule={self.rule.value!r})"


def get_ground_truth(x: float, y: float) -> bool:
    """Label a point with the primary rule."""
    return primary_rule(x, y)
