from __future__ import annotations

from math import inf, pi, sqrt

import pytest

from sailsim.core.commands import CommandSchedule, SailCommand
from sailsim.core.constants import MU_SUN
from sailsim.core.conversion import circular_elements, elements_to_state
from sailsim.core.diagnostics import (
    angular_momentum,
    apoapsis,
    asymptotic_true_anomaly,
    orbit_type,
    periapsis,
    period,
    specific_energy,
    speed_km_s,
)
from sailsim.core.ship import PropulsionConfig
from sailsim.core.state import OrbitalElements, StateVector


def test_orbit_type() -> None:
    assert orbit_type(0.0) == "circular"
    assert orbit_type(0.3) == "elliptic"
    assert orbit_type(0.9995) == "near_parabolic"
    assert orbit_type(1.0005) == "near_parabolic"
    assert orbit_type(2.0) == "hyperbolic"


def test_apsides_and_period() -> None:
    el = OrbitalElements(a=2.0, e=0.5, i=0.0, raan=0.0, argp=0.0, M0=0.0, epoch=0.0, mu=MU_SUN)
    assert periapsis(el) == pytest.approx(1.0)
    assert apoapsis(el) == pytest.approx(3.0)
    assert period(circular_elements(1.0, MU_SUN, 0.0)) == pytest.approx(365.2569, abs=1e-3)
    hyp = OrbitalElements(a=-1.0, e=2.0, i=0.0, raan=0.0, argp=0.0, M0=0.0, epoch=0.0, mu=MU_SUN)
    assert apoapsis(hyp) == inf
    assert period(hyp) == inf
    assert periapsis(hyp) == pytest.approx(1.0)


def test_state_diagnostics() -> None:
    state = elements_to_state(circular_elements(1.0, MU_SUN, 0.0), 0.0)
    assert specific_energy(state, MU_SUN) == pytest.approx(-0.5 * MU_SUN)
    assert angular_momentum(state)[2] == pytest.approx(sqrt(MU_SUN))
    assert speed_km_s(state) == pytest.approx(29.78, abs=0.01)
    slow = StateVector([1.0, 0.0, 0.0], [0.0, 0.0, 0.0])
    assert speed_km_s(slow) == 0.0


def test_asymptotic_true_anomaly() -> None:
    assert asymptotic_true_anomaly(2.0) == pytest.approx(2.0 * pi / 3.0)
    with pytest.raises(ValueError):
        asymptotic_true_anomaly(1.0)


def test_command_window_bounds() -> None:
    deploy = PropulsionConfig(deployment=1.0)
    schedule = CommandSchedule(
        [
            SailCommand(2.0, "a", deploy),
            SailCommand(0.0, "a", deploy),
            SailCommand(1.0, "a", deploy),
        ]
    )
    assert [c.t for c in schedule.commands] == [0.0, 1.0, 2.0]

    due, idx = schedule.window(0.0, 1.0)
    assert [c.t for c in due] == [1.0]
    assert schedule.next_index == 0

    due = schedule.fire_for_window(0.0, 1.0, include_start=True)
    assert [c.t for c in due] == [0.0, 1.0]
    assert schedule.next_index == 2
    assert schedule.fire_for_window(1.0, 1.5) == []
    assert [c.t for c in schedule.fire_for_window(1.5, 2.0)] == [2.0]

    schedule.reset()
    assert schedule.next_index == 0
