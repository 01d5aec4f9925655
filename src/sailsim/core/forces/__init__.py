"""Thrust models."""

from .base import NoThrust, ThrustModel  # noqa: F401
from .constant import ConstantThrust  # noqa: F401
from .solar_sail import (  # noqa: F401
    SolarSail,
    characteristic_acceleration,
    estimate_delta_a_per_orbit,
    optimal_sail_angle,
    sail_direction,
    sail_force,
    solar_pressure,
)
