"""Hyperbolic pass through a planet's SOI and the resulting gravity assist."""

from __future__ import annotations

from math import degrees

import numpy as np

from sailsim.analysis.gravity_assist import analyze_gravity_assist
from sailsim.core.bodies import Body, BodySet
from sailsim.core.constants import GRAVITATIONAL_PARAMS, KM_S_PER_AU_DAY, MU_SUN
from sailsim.core.conversion import circular_elements
from sailsim.core.engine import step_ship
from sailsim.core.ship import ShipState
from sailsim.core.state import StateVector


if __name__ == "__main__":
    mu_planet = GRAVITATIONAL_PARAMS["EARTH"]
    planet = Body(
        "EARTH",
        mu_planet,
        soi_radius=0.01,
        radius=6371.0 / 149_597_870.7,
        parent="SOL",
        elements=circular_elements(1.0, MU_SUN, 0.0),
    )
    bodies = BodySet([Body("SOL", MU_SUN), planet])

    # Start outside the SOI, moving past the planet with a 3e-4 AU offset.
    earth0 = bodies.heliocentric_state("EARTH", 0.0)
    pos = earth0.pos + np.array([0.0, -0.02, 3.0e-4])
    vel = earth0.vel + np.array([0.0, 0.004, 0.0])
    ship = ShipState.from_state(StateVector(pos, vel), MU_SUN, 0.0)

    entry: StateVector | None = None
    exit_state: StateVector | None = None
    dt = 0.05
    for _ in range(400):
        prev = ship
        ship = step_ship(ship, bodies, dt)
        if entry is None and not ship.frame.is_heliocentric:
            entry = ship.state()
            print(f"SOI entry at t={ship.time:.3f} d, e={ship.elements.e:.3f}")
        if entry is not None and exit_state is None and ship.frame.is_heliocentric:
            exit_state = prev.state_at(prev.time)
            print(f"SOI exit at t={ship.time:.3f} d")
            break

    if entry is not None:
        result = analyze_gravity_assist(entry, exit_state, mu_planet)
        print(f"v_inf: {result.v_infinity * KM_S_PER_AU_DAY:.3f} km/s")
        print(f"turning angle: {degrees(result.turning_angle):.3f} deg")
        print(f"delta-v: {result.delta_v_magnitude * KM_S_PER_AU_DAY:.3f} km/s")
        print(f"v_inf conservation error: {result.conservation_error:.2e}")
