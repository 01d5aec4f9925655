"""Solar-sail orbit raising from 1 AU with diagnostics."""

from __future__ import annotations

from math import degrees

from sailsim.core.bodies import Body, BodySet
from sailsim.core.constants import MU_SUN
from sailsim.core.conversion import circular_elements
from sailsim.core.diagnostics import apoapsis, periapsis
from sailsim.core.forces import characteristic_acceleration, optimal_sail_angle
from sailsim.core.ship import PropulsionConfig, SailSpec, ShipState
from sailsim.core.simulation import Simulation


if __name__ == "__main__":
    bodies = BodySet([Body("SOL", MU_SUN)])
    sail = SailSpec(area_m2=3.0e6, reflectivity=0.9)
    ship = ShipState(circular_elements(1.0, MU_SUN, 0.0), time=0.0, mass=10_000.0, sail=sail)
    yaw = optimal_sail_angle()

    sim = Simulation(bodies)
    sim.add_ship("sail", ship, PropulsionConfig(deployment=1.0, yaw=yaw))

    print(f"characteristic accel: {characteristic_acceleration(sail, ship.mass) * 1e3:.4f} mm/s^2")
    print(f"yaw: {degrees(yaw):.2f} deg")

    dt = 1.0
    days = 365
    report_every = 30
    for day in range(1, days + 1):
        sim.advance(dt)
        if day % report_every == 0:
            el = sim.ship("sail").elements
            print(
                f"day {day:4d}  a={el.a:.5f} AU  e={el.e:.5f}"
                f"  q={periapsis(el):.5f}  Q={apoapsis(el):.5f}"
            )
