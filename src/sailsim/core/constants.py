"""Physical constants in engine units (AU, day, AU^3/day^2)."""

from __future__ import annotations

AU_KM = 149_597_870.7
AU_M = AU_KM * 1000.0
DAY_S = 86_400.0

MU_SUN = 2.9591220828559093e-4
J2000 = 2_451_545.0

# 1 AU/day expressed in km/s.
KM_S_PER_AU_DAY = AU_KM / DAY_S
# m/s^2 -> AU/day^2.
ACCEL_CONVERSION = DAY_S * DAY_S / AU_M

# Solar radiation pressure at 1 AU on a perfect absorber, N/m^2.
SOLAR_PRESSURE_1AU = 4.56e-6
# Closest radius (AU) used when evaluating the inverse-square pressure law.
MIN_PRESSURE_RADIUS = 0.01

GRAVITATIONAL_PARAMS: dict[str, float] = {
    "SOL": MU_SUN,
    "MERCURY": 4.9125e-12,
    "VENUS": 7.2435e-10,
    "EARTH": 8.887692445e-10,
    "LUNA": 1.093189565e-11,
    "MARS": 9.549535105e-11,
    "JUPITER": 2.824760519e-7,
    "SATURN": 8.4597151e-8,
    "URANUS": 1.2920249e-8,
    "NEPTUNE": 1.5243596e-8,
}

PHYSICAL_RADII_KM: dict[str, float] = {
    "SOL": 696_000.0,
    "MERCURY": 2440.0,
    "VENUS": 6052.0,
    "EARTH": 6371.0,
    "LUNA": 1737.0,
    "MARS": 3390.0,
    "JUPITER": 69_911.0,
    "SATURN": 58_232.0,
    "URANUS": 25_362.0,
    "NEPTUNE": 24_622.0,
}
