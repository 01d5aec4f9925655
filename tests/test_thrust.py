from __future__ import annotations

from math import cos, radians, sqrt

import numpy as np
import pytest

from sailsim.core.constants import ACCEL_CONVERSION, MU_SUN
from sailsim.core.conversion import circular_elements, elements_to_state
from sailsim.core.errors import FrameMismatchError, NonFiniteStateError
from sailsim.core.forces import (
    ConstantThrust,
    NoThrust,
    SolarSail,
    characteristic_acceleration,
    estimate_delta_a_per_orbit,
    optimal_sail_angle,
    sail_direction,
    sail_force,
    solar_pressure,
)
from sailsim.core.ship import PropulsionConfig, SailSpec, ShipState
from sailsim.core.state import StateVector, body_frame
from sailsim.core.thrust import apply_thrust, to_rtn, variational_rates


def _ship() -> ShipState:
    return ShipState(circular_elements(1.0, MU_SUN, 0.0), time=0.0)


def test_solar_pressure_inverse_square_and_clamp() -> None:
    assert solar_pressure(1.0) == pytest.approx(4.56e-6)
    assert solar_pressure(2.0) == pytest.approx(4.56e-6 / 4.0)
    assert solar_pressure(1e-4) == solar_pressure(0.01)


def test_sail_force_formula() -> None:
    sail = SailSpec(area_m2=3.0e6, reflectivity=0.9)
    full = PropulsionConfig(deployment=1.0)
    assert sail_force(sail, full, 1.0) == pytest.approx(2.0 * 4.56e-6 * 3.0e6 * 0.9)
    tilted = PropulsionConfig(deployment=0.5, yaw=radians(30.0))
    expected = 2.0 * 4.56e-6 * 1.5e6 * 0.9 * cos(radians(30.0)) ** 2
    assert sail_force(sail, tilted, 1.0) == pytest.approx(expected)
    doubled = SailSpec(area_m2=3.0e6, reflectivity=0.9, sail_count=2, condition=0.5)
    assert sail_force(doubled, full, 1.0) == pytest.approx(sail_force(sail, full, 1.0))


def test_characteristic_acceleration() -> None:
    assert characteristic_acceleration(SailSpec(), 10_000.0) == pytest.approx(2.4624e-3)


def test_optimal_sail_angle() -> None:
    assert optimal_sail_angle() == pytest.approx(radians(35.26439), abs=1e-6)


def test_delta_a_per_orbit_estimate() -> None:
    sail = SailSpec(area_m2=1.0e6, reflectivity=0.9)
    char = characteristic_acceleration(sail, 10000.0) * ACCEL_CONVERSION
    yaw = optimal_sail_angle()
    one = estimate_delta_a_per_orbit(1.0, char, yaw)
    assert one > 0.0
    assert estimate_delta_a_per_orbit(1.0, char, -yaw) == pytest.approx(-one)
    assert estimate_delta_a_per_orbit(1.0, char, 0.0) == 0.0
    assert estimate_delta_a_per_orbit(1.0, char, np.pi / 2.0) == pytest.approx(0.0, abs=1e-20)
    assert estimate_delta_a_per_orbit(2.0, char, yaw) == pytest.approx(2.0 * one)
    with pytest.raises(ValueError):
        estimate_delta_a_per_orbit(0.0, char, yaw)


def test_delta_a_estimate_matches_gauss_rate() -> None:
    char = 1.0e-6
    yaw = radians(35.0)
    el = circular_elements(1.0, MU_SUN, 0.0)
    transverse = char * cos(yaw) ** 2 * np.sin(yaw)
    rates = variational_rates(el, 0.0, [0.0, transverse, 0.0])
    period = 2.0 * np.pi * sqrt(1.0 / MU_SUN)
    assert estimate_delta_a_per_orbit(1.0, char, yaw) == pytest.approx(rates.da * period, rel=1e-9)


def test_sail_direction_rtn_components() -> None:
    pos = np.array([1.0, 0.0, 0.0])
    vel = np.array([0.0, 0.017, 0.0])
    d = sail_direction(PropulsionConfig(deployment=1.0, yaw=radians(30.0)), pos, vel)
    assert np.allclose(d, [cos(radians(30.0)), 0.5, 0.0])
    d = sail_direction(PropulsionConfig(deployment=1.0, pitch=radians(90.0)), pos, vel)
    assert np.allclose(d, [0.0, 0.0, 1.0], atol=1e-12)


def test_solar_sail_acceleration() -> None:
    ship = _ship()
    helio = ship.state()
    model = SolarSail()
    stowed = model.acceleration(ship, PropulsionConfig(), helio)
    assert np.array_equal(stowed, np.zeros(3))
    accel = model.acceleration(ship, PropulsionConfig(deployment=1.0), helio)
    expected = 2.4624e-3 * ACCEL_CONVERSION
    assert np.linalg.norm(accel) == pytest.approx(expected, rel=1e-9)
    assert np.allclose(accel / np.linalg.norm(accel), helio.pos / helio.radius)


def test_solar_sail_requires_heliocentric_state() -> None:
    ship = _ship()
    local = StateVector([0.001, 0.0, 0.0], [0.0, 0.001, 0.0], body_frame("EARTH"))
    with pytest.raises(FrameMismatchError):
        SolarSail().acceleration(ship, PropulsionConfig(deployment=1.0), local)


def test_simple_models() -> None:
    ship = _ship()
    helio = ship.state()
    assert np.array_equal(NoThrust().acceleration(ship, PropulsionConfig(), helio), np.zeros(3))
    model = ConstantThrust(np.array([1e-6, 0.0, 0.0]))
    accel = model.acceleration(ship, PropulsionConfig(deployment=0.5), helio)
    assert np.allclose(accel, [5e-7, 0.0, 0.0])
    with pytest.raises(ValueError):
        ConstantThrust(np.zeros(2))


def test_propulsion_validation() -> None:
    with pytest.raises(ValueError):
        PropulsionConfig(deployment=1.5)
    with pytest.raises(ValueError):
        PropulsionConfig(yaw=2.0)
    with pytest.raises(ValueError):
        SailSpec(sail_count=0)
    with pytest.raises(ValueError):
        SailSpec(reflectivity=1.2)


def test_apply_thrust_keeps_position() -> None:
    el = circular_elements(1.0, MU_SUN, 0.0, phase=0.3)
    t = 2.0
    state = elements_to_state(el, t)
    accel = np.array([0.0, 1e-5, 2e-6])
    kicked, new_el = apply_thrust(state, accel, 0.5, MU_SUN, t)
    assert np.array_equal(kicked.pos, state.pos)
    assert np.allclose(kicked.vel, state.vel + accel * 0.5, rtol=0.0, atol=1e-18)
    assert new_el.epoch == t
    again = elements_to_state(new_el, t)
    assert np.linalg.norm(again.pos - state.pos) < 1e-12


def test_apply_thrust_rejects_bad_input() -> None:
    state = elements_to_state(circular_elements(1.0, MU_SUN, 0.0), 0.0)
    with pytest.raises(ValueError):
        apply_thrust(state, np.zeros(3), -1.0, MU_SUN, 0.0)
    with pytest.raises(NonFiniteStateError) as exc:
        apply_thrust(state, np.array([np.inf, 0.0, 0.0]), 1.0, MU_SUN, 0.0)
    assert exc.value.last_good is state


def test_to_rtn() -> None:
    pos = np.array([0.0, 2.0, 0.0])
    vel = np.array([-0.01, 0.0, 0.0])
    assert np.allclose(to_rtn(np.array([0.0, 3.0, 0.0]), pos, vel), [3.0, 0.0, 0.0])
    assert np.allclose(to_rtn(np.array([-1.0, 0.0, 0.0]), pos, vel), [0.0, 1.0, 0.0])


def test_variational_rates_transverse_thrust() -> None:
    el = circular_elements(1.0, MU_SUN, 0.0)
    T = 1e-6
    rates = variational_rates(el, 0.0, np.array([0.0, T, 0.0]))
    assert rates.da == pytest.approx(2.0 * T * sqrt(el.a**3 / MU_SUN), rel=1e-9)
    assert rates.di == 0.0
    assert rates.draan == 0.0


def test_variational_rates_match_finite_kick() -> None:
    el = circular_elements(1.2, MU_SUN, 0.0, inc=0.3, phase=0.8)
    t = 0.0
    state = elements_to_state(el, t)
    accel_rtn = np.array([0.0, 2e-7, 0.0])
    dt = 1e-3
    accel = np.linalg.inv(np.vstack(_rtn_rows(state))) @ accel_rtn
    _, new_el = apply_thrust(state, accel, dt, MU_SUN, t)
    rates = variational_rates(el, t, accel_rtn)
    assert (new_el.a - el.a) / dt == pytest.approx(rates.da, rel=1e-3)


def _rtn_rows(state: StateVector) -> list[np.ndarray]:
    r_hat = state.pos / state.radius
    n_hat = np.cross(state.pos, state.vel)
    n_hat = n_hat / np.linalg.norm(n_hat)
    return [r_hat, np.cross(n_hat, r_hat), n_hat]
