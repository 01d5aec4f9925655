"""Kepler equation solvers and anomaly conversions.

Elliptic true anomaly is reported in [0, 2pi). Hyperbolic true anomaly is signed
and never wrapped: negative before periapsis, positive after, bounded by
+-arccos(-1/e).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from math import asinh, atan, atan2, cos, cosh, pi, sin, sinh, sqrt, tanh

from .errors import AsymptoticLimitError

logger = logging.getLogger(__name__)

TWO_PI = 2.0 * pi

KEPLER_TOL = 1e-12
KEPLER_MAX_ITER = 50
# cosh/sinh stay far from overflow (~710) below this.
MAX_HYPERBOLIC_ANOMALY = 100.0
# |tanh(H/2)| at or above 1 - ASYMPTOTE_EPS is treated as the asymptote.
ASYMPTOTE_EPS = 1e-10
# Eccentricity below this is handled as a circle.
CIRCULAR_E = 1e-10


@dataclass(frozen=True, slots=True)
class AnomalySolution:
    value: float
    iterations: int
    converged: bool


def wrap_two_pi(angle: float) -> float:
    wrapped = angle % TWO_PI
    # float modulo can return exactly 2pi for tiny negative inputs
    return 0.0 if wrapped >= TWO_PI else wrapped


def solve_elliptic_kepler(
    M: float,
    e: float,
    tol: float = KEPLER_TOL,
    max_iter: int = KEPLER_MAX_ITER,
) -> AnomalySolution:
    """Solve M = E - e sin E for E in [0, 2pi).

    Non-convergence returns the last iterate with ``converged=False``.
    """
    if not 0.0 <= e < 1.0:
        raise ValueError("e must be in [0, 1) for elliptic orbits")
    M = wrap_two_pi(M)
    if e < CIRCULAR_E:
        return AnomalySolution(M, 0, True)

    E = M if e < 0.8 else pi
    for it in range(1, max_iter + 1):
        f = E - e * sin(E) - M
        fp = 1.0 - e * cos(E)
        delta = f / fp
        E -= delta
        if abs(delta) < tol:
            return AnomalySolution(wrap_two_pi(E), it, True)

    logger.debug("elliptic Kepler not converged: M=%.6g e=%.6g E=%.12g", M, e, E)
    return AnomalySolution(wrap_two_pi(E), max_iter, False)


def solve_hyperbolic_kepler(
    M: float,
    e: float,
    tol: float = KEPLER_TOL,
    max_iter: int = KEPLER_MAX_ITER,
) -> AnomalySolution:
    """Solve M = e sinh H - H for H.

    The iterate is clamped to +-MAX_HYPERBOLIC_ANOMALY so sinh/cosh never
    overflow. Non-convergence returns the last iterate with ``converged=False``.
    """
    if e <= 1.0:
        raise ValueError("e must be > 1 for hyperbolic orbits")

    H = _clamp_h(asinh(M / e))
    for it in range(1, max_iter + 1):
        f = e * sinh(H) - H - M
        fp = e * cosh(H) - 1.0
        delta = f / fp
        H_next = _clamp_h(H - delta)
        step = H_next - H
        H = H_next
        if abs(step) < tol * max(1.0, abs(H)):
            return AnomalySolution(H, it, True)

    logger.debug("hyperbolic Kepler not converged: M=%.6g e=%.6g H=%.12g", M, e, H)
    return AnomalySolution(H, max_iter, False)


def _clamp_h(H: float) -> float:
    return max(-MAX_HYPERBOLIC_ANOMALY, min(MAX_HYPERBOLIC_ANOMALY, H))


def eccentric_to_true_anomaly(E: float, e: float) -> float:
    return wrap_two_pi(atan2(sqrt(1.0 - e * e) * sin(E), cos(E) - e))


def true_to_eccentric_anomaly(nu: float, e: float) -> float:
    return wrap_two_pi(atan2(sqrt(1.0 - e * e) * sin(nu), e + cos(nu)))


def hyperbolic_to_true_anomaly(H: float, e: float, *, clamp: bool = False) -> float:
    """Return the signed true anomaly for hyperbolic anomaly ``H``.

    At the asymptote the result is undefined. Physics callers get
    ``AsymptoticLimitError``. Rendering callers may pass ``clamp=True`` to
    receive the limiting angle instead.
    """
    factor = sqrt((e + 1.0) / (e - 1.0))
    t = tanh(0.5 * H)
    if abs(t) >= 1.0 - ASYMPTOTE_EPS:
        if not clamp:
            raise AsymptoticLimitError(
                f"hyperbolic anomaly H={H:.6g} reached the asymptote (e={e:.6g})"
            )
        t = (1.0 - ASYMPTOTE_EPS) if t > 0.0 else -(1.0 - ASYMPTOTE_EPS)
    return 2.0 * atan(factor * t)


def true_to_hyperbolic_anomaly(nu: float, e: float) -> float:
    denom = 1.0 + e * cos(nu)
    if denom <= 0.0:
        raise AsymptoticLimitError(
            f"true anomaly {nu:.6g} outside hyperbola limits for e={e:.6g}"
        )
    return asinh(sqrt(e * e - 1.0) * sin(nu) / denom)


def mean_to_true_anomaly(
    M: float,
    e: float,
    tol: float = KEPLER_TOL,
    max_iter: int = KEPLER_MAX_ITER,
) -> tuple[float, bool]:
    """Return ``(nu, converged)`` for mean anomaly ``M``."""
    if e < 1.0:
        sol = solve_elliptic_kepler(M, e, tol, max_iter)
        return eccentric_to_true_anomaly(sol.value, e), sol.converged
    sol = solve_hyperbolic_kepler(M, e, tol, max_iter)
    return hyperbolic_to_true_anomaly(sol.value, e), sol.converged


def true_to_mean_anomaly(nu: float, e: float) -> float:
    if e < 1.0:
        E = true_to_eccentric_anomaly(nu, e)
        return wrap_two_pi(E - e * sin(E))
    H = true_to_hyperbolic_anomaly(nu, e)
    return e * sinh(H) - H
