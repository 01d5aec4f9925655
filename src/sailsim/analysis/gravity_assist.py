"""Hyperbolic flyby geometry: excess velocity, turning angle and delta-v."""

from __future__ import annotations

from dataclasses import dataclass
from math import acos, asin, sqrt

import numpy as np

from ..core.conversion import state_to_elements
from ..core.errors import FrameMismatchError
from ..core.math.rotation import perifocal_to_inertial, rotate_about_axis
from ..core.math.vector import DEGENERATE_TOL, ArrayF, vec3
from ..core.state.elements import OrbitalElements
from ..core.state.frames import StateVector, require_same_frame


@dataclass(frozen=True, slots=True, eq=False)
class GravityAssistResult:
    v_infinity: float
    v_infinity_exit: float
    turning_angle: float
    periapsis: float
    eccentricity: float
    v_inf_in: ArrayF
    v_inf_out: ArrayF
    delta_v: ArrayF

    @property
    def delta_v_magnitude(self) -> float:
        return float(np.linalg.norm(self.delta_v))

    @property
    def conservation_error(self) -> float:
        """Relative change of |v_inf| between entry and exit."""
        return abs(self.v_infinity_exit - self.v_infinity) / self.v_infinity


@dataclass(frozen=True, slots=True, eq=False)
class FlybyExit:
    velocity: ArrayF
    delta_v: ArrayF
    turning_angle: float


def hyperbolic_excess_velocity(a: float, mu: float) -> float:
    if mu <= 0.0:
        raise ValueError("mu must be > 0")
    if a >= 0.0:
        raise ValueError("a must be < 0 for a hyperbolic orbit")
    return sqrt(-mu / a)


def turning_angle(v_inf: float, periapsis: float, mu: float) -> float:
    """delta = 2 asin(1 / (1 + r_p v_inf^2 / mu)), argument clipped to [-1, 1]."""
    if mu <= 0.0:
        raise ValueError("mu must be > 0")
    if periapsis < 0.0:
        raise ValueError("periapsis must be >= 0")
    arg = 1.0 / (1.0 + periapsis * v_inf * v_inf / mu)
    return 2.0 * asin(float(np.clip(arg, -1.0, 1.0)))


def asymptotic_angle(e: float) -> float:
    """True anomaly of the outgoing asymptote, arccos(-1/e)."""
    if e <= 1.0:
        raise ValueError("e must be > 1")
    return acos(-1.0 / e)


def b_plane_radius(v_inf: float, periapsis: float, mu: float) -> float:
    """Impact parameter that produces ``periapsis`` at speed ``v_inf``."""
    if v_inf <= 0.0:
        raise ValueError("v_inf must be > 0")
    return sqrt(periapsis * periapsis + 2.0 * periapsis * mu / (v_inf * v_inf))


def _asymptote(elements: OrbitalElements, outgoing: bool) -> ArrayF:
    """v_inf vector along the incoming or outgoing asymptote."""
    e = elements.e
    s = sqrt(1.0 - 1.0 / (e * e))
    direction_pf = np.array([-s if outgoing else s, e - 1.0 / e, 0.0]) / sqrt(e * e - 1.0)
    rot = perifocal_to_inertial(elements.i, elements.raan, elements.argp)
    return hyperbolic_excess_velocity(elements.a, elements.mu) * (rot @ direction_pf)


def _hyperbolic_elements(state: StateVector, mu: float, epoch: float, ctx: str) -> OrbitalElements:
    if state.frame.is_heliocentric:
        raise FrameMismatchError("body frame", state.frame, ctx)
    elements = state_to_elements(state.pos, state.vel, mu, epoch)
    if elements.e <= 1.0:
        raise ValueError(f"{ctx} state must be hyperbolic (e={elements.e:.6g})")
    return elements


def analyze_gravity_assist(
    entry_state: StateVector,
    exit_state: StateVector | None,
    mu: float,
    epoch: float = 0.0,
) -> GravityAssistResult:
    """Flyby summary from a hyperbolic body-frame state.

    Without ``exit_state`` the outgoing excess velocity is the incoming one
    rotated by the turning angle about the orbit normal. With it, the outgoing
    asymptote comes from the exit state's own conic.
    """
    if mu <= 0.0:
        raise ValueError("mu must be > 0")
    entry = _hyperbolic_elements(entry_state, mu, epoch, "entry")
    v_inf = hyperbolic_excess_velocity(entry.a, mu)
    rp = entry.periapsis
    delta = turning_angle(v_inf, rp, mu)
    v_in = _asymptote(entry, outgoing=False)

    if exit_state is None:
        normal = perifocal_to_inertial(entry.i, entry.raan, entry.argp)[:, 2]
        v_out = rotate_about_axis(v_in, normal, delta)
        v_inf_exit = float(np.linalg.norm(v_out))
    else:
        require_same_frame(entry_state, exit_state, "analyze_gravity_assist")
        leaving = _hyperbolic_elements(exit_state, mu, epoch, "exit")
        v_inf_exit = hyperbolic_excess_velocity(leaving.a, mu)
        v_out = _asymptote(leaving, outgoing=True)

    return GravityAssistResult(
        v_infinity=v_inf,
        v_infinity_exit=v_inf_exit,
        turning_angle=delta,
        periapsis=rp,
        eccentricity=entry.e,
        v_inf_in=v_in,
        v_inf_out=v_out,
        delta_v=v_out - v_in,
    )


def predict_flyby_exit(
    v_approach: ArrayF,
    v_body: ArrayF,
    periapsis: float,
    mu: float,
    normal: ArrayF,
) -> FlybyExit:
    """Heliocentric exit velocity for a flyby at ``periapsis``.

    The excess velocity is rotated by the turning angle about ``normal``
    (right-handed), which fixes the side of the body the ship passes.
    """
    body_vel = vec3(v_body, "v_body")
    v_in = vec3(v_approach, "v_approach") - body_vel
    n = vec3(normal, "normal")
    v_inf = float(np.linalg.norm(v_in))
    if v_inf < DEGENERATE_TOL:
        raise ValueError("approach velocity must differ from the body velocity")
    if float(np.linalg.norm(n)) < DEGENERATE_TOL:
        raise ValueError("normal must be non-zero")
    delta = turning_angle(v_inf, periapsis, mu)
    v_out = rotate_about_axis(v_in, n, delta)
    return FlybyExit(velocity=body_vel + v_out, delta_v=v_out - v_in, turning_angle=delta)
