from __future__ import annotations

from math import acos, asin, pi, sqrt

import numpy as np
import pytest

from sailsim.analysis.gravity_assist import (
    analyze_gravity_assist,
    asymptotic_angle,
    b_plane_radius,
    hyperbolic_excess_velocity,
    predict_flyby_exit,
    turning_angle,
)
from sailsim.core.constants import GRAVITATIONAL_PARAMS
from sailsim.core.conversion import elements_to_state, state_to_elements
from sailsim.core.errors import FrameMismatchError
from sailsim.core.state import StateVector, body_frame

MU = GRAVITATIONAL_PARAMS["EARTH"]
EARTH = body_frame("EARTH")


def _angle(a: np.ndarray, b: np.ndarray) -> float:
    c = float(np.dot(a, b) / (np.linalg.norm(a) * np.linalg.norm(b)))
    return acos(max(-1.0, min(1.0, c)))


def _entry() -> StateVector:
    return StateVector([0.01, 0.001, 0.0], [-0.004, 0.0, 0.0], EARTH)


def test_turning_angle_formula() -> None:
    entry = _entry()
    el = state_to_elements(entry.pos, entry.vel, MU, 0.0)
    v_inf = hyperbolic_excess_velocity(el.a, MU)
    delta = turning_angle(v_inf, el.periapsis, MU)
    assert delta == pytest.approx(2.0 * asin(1.0 / el.e), rel=1e-9)


def test_turning_angle_limits() -> None:
    assert turning_angle(1.0, 0.0, MU) == pytest.approx(pi)
    assert turning_angle(1.0, 1e9, MU) < 1e-6
    with pytest.raises(ValueError):
        turning_angle(1.0, -1.0, MU)


def test_excess_velocity_requires_hyperbola() -> None:
    assert hyperbolic_excess_velocity(-2.0, 8.0) == pytest.approx(2.0)
    with pytest.raises(ValueError):
        hyperbolic_excess_velocity(1.0, MU)


def test_asymptotic_angle_and_b_plane() -> None:
    assert asymptotic_angle(2.0) == pytest.approx(2.0 * pi / 3.0)
    with pytest.raises(ValueError):
        asymptotic_angle(0.5)
    v_inf, rp = 0.004, 1e-4
    b = b_plane_radius(v_inf, rp, MU)
    # Angular momentum at infinity equals that at periapsis.
    v_p = sqrt(v_inf * v_inf + 2.0 * MU / rp)
    assert b * v_inf == pytest.approx(rp * v_p, rel=1e-12)


def test_analysis_without_exit_state() -> None:
    entry = _entry()
    result = analyze_gravity_assist(entry, None, MU)
    assert result.eccentricity > 1.0
    assert np.linalg.norm(result.v_inf_in) == pytest.approx(result.v_infinity, rel=1e-12)
    assert np.linalg.norm(result.v_inf_out) == pytest.approx(result.v_infinity, rel=1e-12)
    assert result.conservation_error < 1e-12
    assert _angle(result.v_inf_in, result.v_inf_out) == pytest.approx(result.turning_angle, rel=1e-9)
    # The incoming asymptote is close to the velocity far out on the inbound leg.
    assert _angle(result.v_inf_in, entry.vel) < 0.02
    expected_dv = 2.0 * result.v_infinity * np.sin(0.5 * result.turning_angle)
    assert result.delta_v_magnitude == pytest.approx(expected_dv, rel=1e-9)


def test_analysis_with_exit_state_conserves_v_infinity() -> None:
    entry = _entry()
    el = state_to_elements(entry.pos, entry.vel, MU, 0.0)
    exit_state = elements_to_state(el, 5.0, EARTH)
    assert float(np.dot(exit_state.pos, exit_state.vel)) > 0.0

    result = analyze_gravity_assist(entry, exit_state, MU)
    assert result.conservation_error < 1e-6
    predicted = analyze_gravity_assist(entry, None, MU)
    assert np.allclose(result.v_inf_out, predicted.v_inf_out, rtol=1e-6, atol=1e-12)


def test_analysis_rejects_bad_states() -> None:
    helio = StateVector([0.01, 0.001, 0.0], [-0.004, 0.0, 0.0])
    with pytest.raises(FrameMismatchError):
        analyze_gravity_assist(helio, None, MU)
    bound = StateVector([0.001, 0.0, 0.0], [0.0, 1e-4, 0.0], EARTH)
    with pytest.raises(ValueError):
        analyze_gravity_assist(bound, None, MU)
    other = StateVector([0.01, 0.001, 0.0], [0.004, 0.0, 0.0], body_frame("MARS"))
    with pytest.raises(FrameMismatchError):
        analyze_gravity_assist(_entry(), other, MU)


def test_predict_flyby_exit() -> None:
    v_body = np.array([0.0, 0.0172, 0.0])
    v_approach = v_body + np.array([0.004, 0.001, 0.0])
    normal = np.array([0.0, 0.0, 1.0])
    rp = 1e-4
    out = predict_flyby_exit(v_approach, v_body, rp, MU, normal)
    v_in = v_approach - v_body
    v_out = out.velocity - v_body
    assert np.linalg.norm(v_out) == pytest.approx(np.linalg.norm(v_in), rel=1e-12)
    assert _angle(v_in, v_out) == pytest.approx(out.turning_angle, rel=1e-9)
    assert out.turning_angle == pytest.approx(turning_angle(np.linalg.norm(v_in), rp, MU))
    # Right-handed about +z turns the excess velocity counter-clockwise.
    assert np.cross(v_in, v_out)[2] > 0.0
    assert np.allclose(out.delta_v, v_out - v_in)


def test_predict_flyby_exit_degenerate_inputs() -> None:
    v = np.array([0.0, 0.0172, 0.0])
    with pytest.raises(ValueError):
        predict_flyby_exit(v, v, 1e-4, MU, np.array([0.0, 0.0, 1.0]))
    with pytest.raises(ValueError):
        predict_flyby_exit(v + 0.001, v, 1e-4, MU, np.zeros(3))
