"""Conversion between Cartesian state vectors and orbital elements."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from math import acos, atan2, cos, pi, sin, sqrt

import numpy as np

from .anomaly import (
    CIRCULAR_E,
    KEPLER_MAX_ITER,
    KEPLER_TOL,
    mean_to_true_anomaly,
    true_to_mean_anomaly,
    wrap_two_pi,
)
from .errors import NonFiniteStateError
from .math.rotation import perifocal_to_inertial
from .math.vector import DEGENERATE_TOL, ArrayF, is_finite, unit_or, vec3
from .state.elements import OrbitalElements
from .state.frames import HELIOCENTRIC, Frame, StateVector

logger = logging.getLogger(__name__)

X_AXIS = np.array([1.0, 0.0, 0.0])
Z_AXIS = np.array([0.0, 0.0, 1.0])

# |energy| below this fraction of mu/r is treated as parabolic.
NEAR_PARABOLIC_ENERGY = 1e-12
# Near-parabolic orbits get a = -NEAR_PARABOLIC_A_FACTOR * r.
NEAR_PARABOLIC_A_FACTOR = 1000.0
# Keeps e off exactly 1 when energy and eccentricity disagree.
PARABOLIC_E_MARGIN = 1e-9
MIN_SEMI_LATUS = 1e-12
# States with p below this fraction of |r| are treated as rectilinear.
RADIAL_P_FRACTION = 1e-6


@dataclass(frozen=True, slots=True)
class Propagation:
    state: StateVector
    true_anomaly: float
    converged: bool


def state_to_elements(
    pos: ArrayF, vel: ArrayF, mu: float, epoch: float
) -> OrbitalElements:
    """Return the osculating elements of (pos, vel) about ``mu`` at ``epoch``."""
    r = vec3(pos, "pos")
    v = vec3(vel, "vel")
    if mu <= 0.0:
        raise ValueError("mu must be > 0")
    if not is_finite(r, v):
        raise NonFiniteStateError("non-finite state vector", last_good=None)
    rmag = float(np.linalg.norm(r))
    if rmag <= 0.0:
        raise ValueError("pos must be non-zero")

    h = np.cross(r, v)
    hmag = float(np.linalg.norm(h))
    energy = 0.5 * float(np.dot(v, v)) - mu / rmag
    rdotv = float(np.dot(r, v))
    p = hmag * hmag / mu
    if p < RADIAL_P_FRACTION * rmag:
        return _rectilinear_elements(r, rmag, rdotv, energy, mu, float(epoch))

    w_hat = unit_or(h, Z_AXIS)
    e_vec = np.cross(v, h) / mu - r / rmag
    e = float(np.linalg.norm(e_vec))

    a, near_parabolic = _semi_major_axis(energy, mu, rmag)
    if near_parabolic:
        # Treated as slightly unbound so the current radius stays on the conic.
        e = sqrt(1.0 + p / (NEAR_PARABOLIC_A_FACTOR * rmag))
        logger.debug("near-parabolic state clamped: r=%.6g a=%.6g e=%.12g", rmag, a, e)
    e = _clamp_eccentricity(a, e)

    inc = acos(float(np.clip(w_hat[2], -1.0, 1.0)))
    n_hat, raan = _node(w_hat)

    if e > CIRCULAR_E:
        p_hat = e_vec / float(np.linalg.norm(e_vec))
        nu = atan2(rdotv * hmag / (mu * rmag), hmag * hmag / (mu * rmag) - 1.0)
    else:
        # Periapsis undefined: measure from the node, or +x for equatorial orbits.
        p_hat = n_hat
        q_hat = np.cross(w_hat, p_hat)
        nu = atan2(float(np.dot(r, q_hat)), float(np.dot(r, p_hat)))

    argp = _argument_of_periapsis(p_hat, w_hat, n_hat)
    if near_parabolic and e > CIRCULAR_E:
        # Refit nu to the clamped e so |r| is kept; argp + nu is unchanged.
        nu_fit = _true_anomaly_at_radius(p, e, rmag, rdotv)
        argp = wrap_two_pi(argp + nu - nu_fit)
        nu = nu_fit
    if e < 1.0:
        nu = wrap_two_pi(nu)
    M0 = true_to_mean_anomaly(nu, e)

    return OrbitalElements(
        a=a, e=e, i=inc, raan=raan, argp=argp, M0=M0, epoch=float(epoch), mu=mu
    )


def _rectilinear_elements(
    r: ArrayF, rmag: float, rdotv: float, energy: float, mu: float, epoch: float
) -> OrbitalElements:
    """Elements for a radial (or nearly radial) state.

    The orbit plane is taken through ``r`` and the reference normal, and the
    semi-latus rectum is floored at ``RADIAL_P_FRACTION * |r|``. Energy and
    ``|r|`` are kept; the velocity gains a small transverse component.
    """
    r_hat = r / rmag
    ref = Z_AXIS if abs(float(r_hat[2])) < 0.9 else X_AXIS
    w_hat = unit_or(ref - float(np.dot(ref, r_hat)) * r_hat, Z_AXIS)

    a, _ = _semi_major_axis(energy, mu, rmag)
    e = _clamp_eccentricity(a, sqrt(max(1.0 - RADIAL_P_FRACTION * rmag / a, 0.0)))
    p = a * (1.0 - e * e)
    nu = _true_anomaly_at_radius(p, e, rmag, rdotv)
    logger.debug("rectilinear state: r=%.6g a=%.6g e=%.12g nu=%.6g", rmag, a, e, nu)

    # Rotate r_hat back by nu in the orbit plane to get the periapsis direction.
    p_hat = cos(nu) * r_hat - sin(nu) * np.cross(w_hat, r_hat)
    inc = acos(float(np.clip(w_hat[2], -1.0, 1.0)))
    n_hat, raan = _node(w_hat)
    argp = _argument_of_periapsis(p_hat, w_hat, n_hat)
    if e < 1.0:
        nu = wrap_two_pi(nu)
    M0 = true_to_mean_anomaly(nu, e)

    return OrbitalElements(a=a, e=e, i=inc, raan=raan, argp=argp, M0=M0, epoch=epoch, mu=mu)


def _semi_major_axis(energy: float, mu: float, rmag: float) -> tuple[float, bool]:
    if abs(energy) < NEAR_PARABOLIC_ENERGY * mu / rmag:
        return -NEAR_PARABOLIC_A_FACTOR * rmag, True
    return -mu / (2.0 * energy), False


def _clamp_eccentricity(a: float, e: float) -> float:
    if a > 0.0 and e >= 1.0:
        logger.debug("eccentricity clamped below 1 for bound orbit")
        return 1.0 - PARABOLIC_E_MARGIN
    if a < 0.0 and e <= 1.0:
        logger.debug("eccentricity clamped above 1 for unbound orbit")
        return 1.0 + PARABOLIC_E_MARGIN
    return e


def _true_anomaly_at_radius(p: float, e: float, rmag: float, rdotv: float) -> float:
    nu = acos(float(np.clip((p / rmag - 1.0) / e, -1.0, 1.0)))
    return -nu if rdotv < 0.0 else nu


def _node(w_hat: ArrayF) -> tuple[ArrayF, float]:
    node = np.cross(Z_AXIS, w_hat)
    node_mag = float(np.linalg.norm(node))
    if node_mag > DEGENERATE_TOL:
        n_hat = node / node_mag
        return n_hat, wrap_two_pi(atan2(n_hat[1], n_hat[0]))
    return X_AXIS, 0.0


def _argument_of_periapsis(p_hat: ArrayF, w_hat: ArrayF, n_hat: ArrayF) -> float:
    return wrap_two_pi(
        atan2(float(np.dot(p_hat, np.cross(w_hat, n_hat))), float(np.dot(p_hat, n_hat)))
    )


def state_at_true_anomaly(
    elements: OrbitalElements, nu: float, frame: Frame = HELIOCENTRIC
) -> StateVector:
    e = elements.e
    p = max(elements.semi_latus_rectum, MIN_SEMI_LATUS)
    cnu, snu = cos(nu), sin(nu)
    denom = 1.0 + e * cnu
    if denom <= 0.0:
        raise NonFiniteStateError(
            f"true anomaly {nu:.6g} unreachable for e={e:.6g}", last_good=None
        )
    r = p / denom
    vfac = sqrt(elements.mu / p)
    pos_pf = np.array([r * cnu, r * snu, 0.0])
    vel_pf = np.array([-vfac * snu, vfac * (e + cnu), 0.0])
    rot = perifocal_to_inertial(elements.i, elements.raan, elements.argp)
    pos = rot @ pos_pf
    vel = rot @ vel_pf
    if not is_finite(pos, vel):
        raise NonFiniteStateError("non-finite state from elements", last_good=None)
    return StateVector(pos, vel, frame)


def propagate(
    elements: OrbitalElements,
    t: float,
    frame: Frame = HELIOCENTRIC,
    tol: float = KEPLER_TOL,
    max_iter: int = KEPLER_MAX_ITER,
) -> Propagation:
    """Evaluate the conic at time ``t``.

    ``converged`` is False when the anomaly solver hit its iteration cap and
    the state is a best estimate.
    """
    M = elements.mean_anomaly(t)
    nu, converged = mean_to_true_anomaly(M, elements.e, tol, max_iter)
    state = state_at_true_anomaly(elements, nu, frame)
    return Propagation(state=state, true_anomaly=nu, converged=converged)


def elements_to_state(
    elements: OrbitalElements, t: float, frame: Frame = HELIOCENTRIC
) -> StateVector:
    return propagate(elements, t, frame).state


def true_anomaly_at(elements: OrbitalElements, t: float) -> float:
    nu, _ = mean_to_true_anomaly(elements.mean_anomaly(t), elements.e)
    return nu


def circular_elements(
    radius: float,
    mu: float,
    epoch: float,
    inc: float = 0.0,
    raan: float = 0.0,
    phase: float = 0.0,
) -> OrbitalElements:
    """Circular orbit of ``radius`` with argument of latitude ``phase`` at epoch."""
    if radius <= 0.0:
        raise ValueError("radius must be > 0")
    if not 0.0 <= inc <= pi:
        raise ValueError("inc must be in [0, pi]")
    return OrbitalElements(
        a=radius,
        e=0.0,
        i=inc,
        raan=wrap_two_pi(raan),
        argp=0.0,
        M0=wrap_two_pi(phase),
        epoch=epoch,
        mu=mu,
    )
