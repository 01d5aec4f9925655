"""Default solar-system body catalog (J2000 mean elements)."""

from __future__ import annotations

from math import radians

from ..core.anomaly import wrap_two_pi
from ..core.bodies import Body, BodySet
from ..core.constants import AU_KM, GRAVITATIONAL_PARAMS, J2000, MU_SUN, PHYSICAL_RADII_KM
from ..core.state.elements import OrbitalElements

# name: (a AU, e, i deg, raan deg, argp deg, M0 deg), heliocentric ecliptic.
PLANET_ELEMENTS: dict[str, tuple[float, float, float, float, float, float]] = {
    "MERCURY": (0.387098, 0.205630, 7.005, 48.331, 29.124, 174.796),
    "VENUS": (0.723332, 0.006772, 3.39458, 76.680, 54.884, 50.115),
    "EARTH": (1.000001018, 0.0167086, 0.00005, -11.26064, 114.20783, 358.617),
    "MARS": (1.523679, 0.0934, 1.850, 49.558, 286.502, 19.373),
    "JUPITER": (5.2044, 0.0489, 1.303, 100.464, 273.867, 20.020),
    "SATURN": (9.5826, 0.0565, 2.485, 113.665, 339.392, 317.020),
    "URANUS": (19.2184, 0.0457, 0.773, 74.006, 96.998, 142.238),
    "NEPTUNE": (30.110387, 0.0113, 1.770, 131.784, 276.336, 256.228),
}

# Geocentric, referred to the ecliptic.
LUNA_ELEMENTS = (0.00257, 0.0549, 5.145, 125.08, 318.15, 135.27)

SOI_RADII: dict[str, float] = {
    "MERCURY": 0.1,
    "VENUS": 0.1,
    "EARTH": 0.1,
    "MARS": 0.1,
    "JUPITER": 0.4,
    "SATURN": 0.5,
    "URANUS": 0.5,
    "NEPTUNE": 0.5,
}


def elements_from_degrees(
    values: tuple[float, float, float, float, float, float],
    mu: float,
    epoch: float = J2000,
) -> OrbitalElements:
    a, e, i, raan, argp, M0 = values
    return OrbitalElements(
        a=a,
        e=e,
        i=radians(i),
        raan=wrap_two_pi(radians(raan)),
        argp=wrap_two_pi(radians(argp)),
        M0=wrap_two_pi(radians(M0)),
        epoch=epoch,
        mu=mu,
    )


def radius_au(name: str) -> float:
    return PHYSICAL_RADII_KM[name] / AU_KM


def default_bodies(include_moon: bool = True) -> BodySet:
    """Sun, the eight planets and (optionally) Luna.

    Luna has no SOI of its own so ships near Earth stay in Earth's frame.
    """
    bodies = [Body("SOL", MU_SUN, radius=radius_au("SOL"))]
    for name, values in PLANET_ELEMENTS.items():
        bodies.append(
            Body(
                name,
                GRAVITATIONAL_PARAMS[name],
                soi_radius=SOI_RADII[name],
                radius=radius_au(name),
                parent="SOL",
                elements=elements_from_degrees(values, MU_SUN),
            )
        )
    if include_moon:
        bodies.append(
            Body(
                "LUNA",
                GRAVITATIONAL_PARAMS["LUNA"],
                radius=radius_au("LUNA"),
                parent="EARTH",
                elements=elements_from_degrees(LUNA_ELEMENTS, GRAVITATIONAL_PARAMS["EARTH"]),
            )
        )
    return BodySet(bodies)
