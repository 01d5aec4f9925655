from __future__ import annotations

from math import degrees, pi

import numpy as np
import pytest

from sailsim.core.bodies import Body, BodySet
from sailsim.core.constants import MU_SUN
from sailsim.core.conversion import circular_elements, true_anomaly_at
from sailsim.core.engine import step_ship
from sailsim.core.errors import NonFiniteStateError
from sailsim.core.forces import ConstantThrust, NoThrust
from sailsim.core.ship import PropulsionConfig, ShipState
from sailsim.core.state import HELIOCENTRIC


class NaNThrust:
    def acceleration(self, ship, propulsion, helio):
        return np.full(3, np.nan)


def _sun_only() -> BodySet:
    return BodySet([Body("SOL", MU_SUN)])


def _circular_ship(radius: float = 1.0) -> ShipState:
    return ShipState(circular_elements(radius, MU_SUN, 0.0), time=0.0)


def test_circular_orbit_year_stays_on_track() -> None:
    bodies = _sun_only()
    ship = _circular_ship()
    for _ in range(365):
        ship = step_ship(ship, bodies, 1.0)
    assert ship.time == pytest.approx(365.0)
    assert ship.frame == HELIOCENTRIC
    assert ship.state().radius == pytest.approx(1.0, rel=1e-9)

    # One orbital period is about 365.257 days.
    period = 2.0 * pi / np.sqrt(MU_SUN)
    expected = 2.0 * pi * 365.0 / period
    nu = true_anomaly_at(ship.elements, ship.time)
    diff = (nu - expected + pi) % (2.0 * pi) - pi
    assert abs(degrees(diff)) < 1.0


def test_step_does_not_modify_input() -> None:
    bodies = _sun_only()
    ship = _circular_ship()
    before = ship.state()
    stepped = step_ship(ship, bodies, 2.0)
    assert ship.time == 0.0
    assert np.array_equal(ship.state().pos, before.pos)
    assert stepped is not ship
    assert stepped.time == 2.0


def test_zero_dt_returns_same_ship() -> None:
    ship = _circular_ship()
    assert step_ship(ship, _sun_only(), 0.0) is ship


@pytest.mark.parametrize("dt", [-1.0, float("nan"), float("inf")])
def test_invalid_dt(dt: float) -> None:
    with pytest.raises(ValueError):
        step_ship(_circular_ship(), _sun_only(), dt)


def test_non_finite_thrust_reports_last_good() -> None:
    ship = _circular_ship()
    with pytest.raises(NonFiniteStateError) as exc:
        step_ship(
            ship,
            _sun_only(),
            1.0,
            PropulsionConfig(deployment=1.0),
            thrust_model=NaNThrust(),
        )
    assert exc.value.last_good is ship


def test_thrust_kick_applied_after_coast() -> None:
    bodies = _sun_only()
    ship = _circular_ship()
    accel = np.array([0.0, 1e-6, 0.0])
    dt = 0.5
    coasted = step_ship(ship, bodies, dt, thrust_model=NoThrust())
    kicked = step_ship(
        ship, bodies, dt, PropulsionConfig(deployment=1.0), thrust_model=ConstantThrust(accel)
    )
    a = coasted.state()
    b = kicked.state()
    assert np.linalg.norm(b.pos - a.pos) < 1e-12
    assert np.allclose(b.vel - a.vel, accel * dt, rtol=0.0, atol=1e-15)
    assert kicked.elements.epoch == dt


def test_sail_raises_orbit() -> None:
    bodies = _sun_only()
    ship = _circular_ship()
    prop = PropulsionConfig(deployment=1.0, yaw=0.6)
    for _ in range(60):
        ship = step_ship(ship, bodies, 1.0, prop)
    assert ship.elements.a > 1.0


def test_below_min_thrust_coasts() -> None:
    bodies = _sun_only()
    ship = _circular_ship()
    tiny = ConstantThrust(np.array([1e-30, 0.0, 0.0]))
    stepped = step_ship(ship, bodies, 1.0, PropulsionConfig(deployment=1.0), thrust_model=tiny)
    assert stepped.elements is ship.elements
