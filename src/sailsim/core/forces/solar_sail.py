"""Flat solar sail radiation-pressure model."""

from __future__ import annotations

from math import atan, cos, pi, sin, sqrt

import numpy as np

from ..constants import ACCEL_CONVERSION, MIN_PRESSURE_RADIUS, MU_SUN, SOLAR_PRESSURE_1AU
from ..math.rotation import rtn_basis
from ..ship import PropulsionConfig, SailSpec, ShipState
from ..state.frames import HELIOCENTRIC, StateVector, require_frame


def solar_pressure(r_au: float) -> float:
    """Radiation pressure (N/m^2) at ``r_au``, clamped near the star."""
    r = max(r_au, MIN_PRESSURE_RADIUS)
    return SOLAR_PRESSURE_1AU / (r * r)


def sail_force(sail: SailSpec, propulsion: PropulsionConfig, r_au: float) -> float:
    """Thrust magnitude in newtons.

    F = 2 P A deployment condition cos^2(yaw) cos^2(pitch) reflectivity count
    """
    cy = cos(propulsion.yaw)
    cp = cos(propulsion.pitch)
    area = sail.area_m2 * propulsion.deployment * sail.condition
    return (
        2.0
        * solar_pressure(r_au)
        * area
        * cy
        * cy
        * cp
        * cp
        * sail.reflectivity
        * sail.sail_count
    )


def sail_direction(propulsion: PropulsionConfig, pos: np.ndarray, vel: np.ndarray) -> np.ndarray:
    """Unit thrust direction in the frame of ``pos``/``vel``."""
    r_hat, t_hat, n_hat = rtn_basis(pos, vel)
    cp = cos(propulsion.pitch)
    d = cp * (cos(propulsion.yaw) * r_hat + sin(propulsion.yaw) * t_hat)
    d = d + sin(propulsion.pitch) * n_hat
    return d / np.linalg.norm(d)


def characteristic_acceleration(sail: SailSpec, mass: float) -> float:
    """Sun-facing, fully deployed acceleration at 1 AU in m/s^2."""
    full = PropulsionConfig(deployment=1.0)
    return sail_force(sail, full, 1.0) / mass


def optimal_sail_angle() -> float:
    """Yaw maximising the transverse thrust component, atan(1/sqrt(2))."""
    return atan(1.0 / sqrt(2.0))


def estimate_delta_a_per_orbit(
    a: float, char_accel: float, yaw: float, mu: float = MU_SUN
) -> float:
    """Semi-major axis gained over one orbit of a near-circular spiral (AU).

    ``char_accel`` is the sun-facing acceleration at 1 AU in AU/day^2. The
    transverse share of the thrust is ``cos^2(yaw) sin(yaw)``, averaged as
    constant around a circle of radius ``a``.
    """
    if a <= 0.0:
        raise ValueError("a must be > 0")
    period = 2.0 * pi * sqrt(a**3 / mu)
    transverse = char_accel / (a * a) * cos(yaw) ** 2 * sin(yaw)
    h = sqrt(mu * a)
    return 2.0 * a * a / h * transverse * period


class SolarSail:
    """Sail thrust from the ship's heliocentric state."""

    def acceleration(
        self, ship: ShipState, propulsion: PropulsionConfig, helio: StateVector
    ) -> np.ndarray:
        require_frame(helio, HELIOCENTRIC, "SolarSail.acceleration")
        if propulsion.deployment <= 0.0:
            return np.zeros(3, dtype=np.float64)
        force = sail_force(ship.sail, propulsion, helio.radius)
        accel_au = force / ship.mass * ACCEL_CONVERSION
        return accel_au * sail_direction(propulsion, helio.pos, helio.vel)
