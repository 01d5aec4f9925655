"""Pure single-ship step: coast, frame transitions, then thrust."""

from __future__ import annotations

import logging
from dataclasses import replace
from math import isfinite

import numpy as np

from .bodies import BodySet
from .config import DEFAULT_CONFIG, EngineConfig
from .conversion import state_to_elements
from .errors import NonFiniteStateError
from .forces.base import ThrustModel
from .forces.solar_sail import SolarSail
from .ship import SAIL_STOWED, PropulsionConfig, ShipState
from .soi import SOITransitionManager
from .state.frames import StateVector
from .thrust import apply_thrust

logger = logging.getLogger(__name__)

DEFAULT_THRUST_MODEL = SolarSail()


def step_ship(
    ship: ShipState,
    bodies: BodySet,
    dt: float,
    propulsion: PropulsionConfig = SAIL_STOWED,
    config: EngineConfig = DEFAULT_CONFIG,
    thrust_model: ThrustModel | None = None,
) -> ShipState:
    """Return the ship advanced by ``dt`` days.

    The input is never modified. On a non-finite result the raised
    ``NonFiniteStateError`` carries the input ship as ``last_good``.
    """
    if not isfinite(dt) or dt < 0.0:
        raise ValueError("dt must be finite and >= 0")
    if dt == 0.0:
        return ship
    model = thrust_model if thrust_model is not None else DEFAULT_THRUST_MODEL
    try:
        return _step(ship, bodies, dt, propulsion, config, model)
    except NonFiniteStateError as exc:
        exc.last_good = ship
        raise


def _step(
    ship: ShipState,
    bodies: BodySet,
    dt: float,
    propulsion: PropulsionConfig,
    config: EngineConfig,
    model: ThrustModel,
) -> ShipState:
    soi = SOITransitionManager(bodies, config)
    t0 = ship.time
    t1 = t0 + dt
    start = ship.state_at(t0)
    end = ship.state_at(t1)
    current = replace(ship, time=t1)

    entry = soi.detect_entry(ship, start, end, t0, t1)
    if entry is not None:
        current = replace(soi.enter(ship, entry), time=t1)
        end = current.state_at(t1)
    elif not ship.frame.is_heliocentric:
        leave, pending = soi.exit_status(ship, end)
        if leave:
            current = replace(soi.exit(ship, end, t1), time=t1)
            end = current.state_at(t1)
        elif pending != ship.soi.exit_pending:
            current = replace(current, soi=replace(current.soi, exit_pending=pending))

    if current.flyby is None:
        current, end = _apply_propulsion(current, end, bodies, dt, propulsion, config, model, soi)

    if not end.is_finite():
        raise NonFiniteStateError(f"non-finite ship state at t={t1:.6f}")
    return current


def _apply_propulsion(
    ship: ShipState,
    state: StateVector,
    bodies: BodySet,
    dt: float,
    propulsion: PropulsionConfig,
    config: EngineConfig,
    model: ThrustModel,
    soi: SOITransitionManager,
) -> tuple[ShipState, StateVector]:
    t = ship.time
    helio = bodies.to_heliocentric(state, t)
    accel = np.asarray(model.acceleration(ship, propulsion, helio), dtype=np.float64)
    if float(np.linalg.norm(accel)) <= config.min_thrust:
        return ship, state

    mu = bodies.frame_mu(ship.frame)
    kicked, elements = apply_thrust(state, accel, dt, mu, t)
    if not ship.frame.is_heliocentric:
        body = bodies.get(ship.frame.body)
        safe = soi.collision_guard(kicked, body)
        if safe is not None:
            kicked = safe
            elements = state_to_elements(safe.pos, safe.vel, mu, t)
    return replace(ship, elements=elements), kicked
