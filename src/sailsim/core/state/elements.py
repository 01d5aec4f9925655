"""Immutable classical orbital elements."""

from __future__ import annotations

from dataclasses import astuple, dataclass
from math import isfinite, pi, sqrt

from ..errors import NonFiniteStateError


@dataclass(frozen=True, slots=True)
class OrbitalElements:
    """Keplerian elements about a central body with parameter ``mu``.

    ``a`` is negative for hyperbolic orbits. Angles are radians, ``epoch`` is
    the time (days) at which the mean anomaly equals ``M0``.
    """

    a: float
    e: float
    i: float
    raan: float
    argp: float
    M0: float
    epoch: float
    mu: float

    def __post_init__(self) -> None:
        if not all(isfinite(v) for v in astuple(self)):
            raise NonFiniteStateError(f"non-finite orbital elements: {self!r}")
        if self.mu <= 0.0:
            raise ValueError("mu must be > 0")
        if self.e < 0.0:
            raise ValueError("e must be >= 0")
        if self.e == 1.0:
            raise ValueError("e must not be exactly 1")
        if self.a == 0.0:
            raise ValueError("a must be non-zero")
        if (self.a < 0.0) != (self.e > 1.0):
            raise ValueError("a must be negative exactly when e > 1")
        if not 0.0 <= self.i <= pi:
            raise ValueError("i must be in [0, pi]")

    @property
    def is_hyperbolic(self) -> bool:
        return self.e > 1.0

    @property
    def mean_motion(self) -> float:
        return sqrt(self.mu / abs(self.a) ** 3)

    @property
    def semi_latus_rectum(self) -> float:
        return self.a * (1.0 - self.e * self.e)

    @property
    def periapsis(self) -> float:
        return self.a * (1.0 - self.e)

    def mean_anomaly(self, t: float) -> float:
        """Unwrapped mean anomaly at time ``t``."""
        return self.M0 + self.mean_motion * (t - self.epoch)
