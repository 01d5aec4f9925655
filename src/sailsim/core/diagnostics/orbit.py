"""Orbit diagnostics."""

from __future__ import annotations

from math import acos, inf, pi, sqrt

import numpy as np

from ..constants import KM_S_PER_AU_DAY
from ..state.elements import OrbitalElements
from ..state.frames import StateVector

CIRCULAR_THRESHOLD = 1e-3
NEAR_PARABOLIC_BAND = 1e-3


def specific_energy(state: StateVector, mu: float) -> float:
    return 0.5 * state.speed**2 - mu / state.radius


def angular_momentum(state: StateVector) -> np.ndarray:
    return np.cross(state.pos, state.vel)


def periapsis(elements: OrbitalElements) -> float:
    return elements.a * (1.0 - elements.e)


def apoapsis(elements: OrbitalElements) -> float:
    if elements.e >= 1.0:
        return inf
    return elements.a * (1.0 + elements.e)


def period(elements: OrbitalElements) -> float:
    if elements.e >= 1.0:
        return inf
    return 2.0 * pi * sqrt(elements.a**3 / elements.mu)


def mean_motion(elements: OrbitalElements) -> float:
    return elements.mean_motion


def orbit_type(e: float) -> str:
    if abs(e - 1.0) < NEAR_PARABOLIC_BAND:
        return "near_parabolic"
    if e > 1.0:
        return "hyperbolic"
    if e < CIRCULAR_THRESHOLD:
        return "circular"
    return "elliptic"


def asymptotic_true_anomaly(e: float) -> float:
    if e <= 1.0:
        raise ValueError("e must be > 1")
    return acos(-1.0 / e)


def speed_km_s(state: StateVector) -> float:
    return state.speed * KM_S_PER_AU_DAY
