"""Low-thrust integration by the state-vector method.

The velocity is kicked by ``a * dt`` with the position held fixed, and the
new state is converted back to elements. The Gauss variational rates below are
for display only and never drive propagation.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import cos, sin, sqrt

import numpy as np

from .anomaly import CIRCULAR_E
from .conversion import state_to_elements, true_anomaly_at
from .errors import NonFiniteStateError
from .math.rotation import rtn_basis
from .math.vector import DEGENERATE_TOL, ArrayF, is_finite, vec3
from .state.elements import OrbitalElements
from .state.frames import StateVector


def apply_thrust(
    state: StateVector, accel: ArrayF, dt: float, mu: float, t: float
) -> tuple[StateVector, OrbitalElements]:
    """Return the kicked state and its elements with epoch ``t``."""
    if dt < 0.0:
        raise ValueError("dt must be >= 0")
    a = vec3(accel, "accel")
    kicked = StateVector(state.pos, state.vel + a * dt, state.frame)
    if not kicked.is_finite():
        raise NonFiniteStateError("thrust produced a non-finite velocity", last_good=state)
    return kicked, state_to_elements(kicked.pos, kicked.vel, mu, t)


def to_rtn(accel: ArrayF, pos: ArrayF, vel: ArrayF) -> ArrayF:
    """Project an inertial vector onto the radial/transverse/normal axes."""
    return rtn_basis(pos, vel) @ np.asarray(accel, dtype=np.float64)


@dataclass(frozen=True, slots=True)
class ElementRates:
    da: float
    de: float
    di: float
    draan: float
    dargp: float


def variational_rates(
    elements: OrbitalElements, t: float, accel_rtn: ArrayF
) -> ElementRates:
    """Gauss planetary equations for an RTN acceleration (per day)."""
    R, T, N = (float(x) for x in vec3(accel_rtn, "accel_rtn"))
    a, e, i, mu = elements.a, elements.e, elements.i, elements.mu
    nu = true_anomaly_at(elements, t)
    p = abs(elements.semi_latus_rectum)
    h = sqrt(mu * p)
    r = p / (1.0 + e * cos(nu))
    theta = elements.argp + nu
    sin_nu, cos_nu = sin(nu), cos(nu)

    da = 2.0 * a * a / h * (e * sin_nu * R + p / r * T)
    de = (p * sin_nu * R + ((p + r) * cos_nu + r * e) * T) / h
    di = r * cos(theta) / h * N
    if abs(sin(i)) > DEGENERATE_TOL:
        draan = r * sin(theta) / (h * sin(i)) * N
    else:
        draan = 0.0
    if e > CIRCULAR_E:
        dargp = (-p * cos_nu * R + (p + r) * sin_nu * T) / (h * e)
    else:
        dargp = 0.0
    dargp -= cos(i) * draan

    rates = ElementRates(da=da, de=de, di=di, draan=draan, dargp=dargp)
    if not is_finite(np.array([da, de, di, draan, dargp])):
        raise NonFiniteStateError("non-finite variational rates", last_good=elements)
    return rates
