"""Diagnostics namespace."""

from .orbit import (  # noqa: F401
    angular_momentum,
    apoapsis,
    asymptotic_true_anomaly,
    mean_motion,
    orbit_type,
    periapsis,
    period,
    specific_energy,
    speed_km_s,
)
