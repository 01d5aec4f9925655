"""Intercept classification from a predicted trajectory."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..core.bodies import BodySet
from .intersections import find_closest_approach
from .trajectory import Trajectory

# Miss-distance thresholds (AU).
INTERCEPT_DISTANCE = 0.01
NEAR_MISS_DISTANCE = 0.05
WIDE_MISS_DISTANCE = 0.2


class InterceptStatus(str, Enum):
    INTERCEPT = "intercept"
    NEAR_MISS = "near_miss"
    WIDE_MISS = "wide_miss"
    NO_INTERCEPT = "no_intercept"


@dataclass(frozen=True, slots=True)
class InterceptPrediction:
    target: str
    status: InterceptStatus
    distance: float | None
    time: float | None
    relative_speed: float | None

    @property
    def is_intercept(self) -> bool:
        return self.status is InterceptStatus.INTERCEPT


def classify_miss(distance: float) -> InterceptStatus:
    if distance < 0.0:
        raise ValueError("distance must be >= 0")
    if distance < INTERCEPT_DISTANCE:
        return InterceptStatus.INTERCEPT
    if distance < NEAR_MISS_DISTANCE:
        return InterceptStatus.NEAR_MISS
    if distance < WIDE_MISS_DISTANCE:
        return InterceptStatus.WIDE_MISS
    return InterceptStatus.NO_INTERCEPT


def predict_intercept(
    trajectory: Trajectory,
    bodies: BodySet,
    target: str,
    reference_time: float,
) -> InterceptPrediction:
    """Closest approach to ``target`` after ``reference_time`` and its status."""
    bodies.get(target)
    closest = find_closest_approach(trajectory, bodies, target, reference_time)
    if closest is None:
        return InterceptPrediction(target, InterceptStatus.NO_INTERCEPT, None, None, None)
    return InterceptPrediction(
        target=target,
        status=classify_miss(closest.distance),
        distance=closest.distance,
        time=closest.time,
        relative_speed=closest.relative_speed,
    )
