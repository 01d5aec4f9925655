"""Forward trajectory prediction on a copy of the ship."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from math import isfinite
from typing import Any, Callable

import numpy as np

from ..core.anomaly import wrap_two_pi
from ..core.bodies import BodySet
from ..core.config import DEFAULT_CONFIG, EngineConfig
from ..core.engine import step_ship
from ..core.errors import NonFiniteStateError
from ..core.forces.base import ThrustModel
from ..core.math.vector import ArrayF
from ..core.ship import PropulsionConfig, ShipState
from ..core.state.frames import HELIOCENTRIC, Frame
from .cache import TrajectoryCache

logger = logging.getLogger(__name__)


class TruncationReason(str, Enum):
    NON_FINITE = "non_finite"
    MAX_RANGE = "max_range"
    SUN_APPROACH = "sun_approach"
    TIME_BUDGET = "time_budget"


@dataclass(frozen=True, slots=True, eq=False)
class TrajectorySample:
    """Heliocentric position/velocity at ``time``; ``frame`` is the governing frame."""

    time: float
    position: ArrayF
    velocity: ArrayF
    frame: Frame


@dataclass(frozen=True, slots=True, eq=False)
class Trajectory:
    samples: tuple[TrajectorySample, ...]
    cache_hash: str
    start_time: float
    duration: float
    steps: int
    truncated: bool = False
    reason: TruncationReason | None = None
    last_good: ShipState | None = None
    coordinate_frame: Frame = HELIOCENTRIC

    def __len__(self) -> int:
        return len(self.samples)

    def times(self) -> np.ndarray:
        return np.array([s.time for s in self.samples], dtype=np.float64)

    def positions(self) -> np.ndarray:
        if not self.samples:
            return np.zeros((0, 3), dtype=np.float64)
        return np.array([s.position for s in self.samples], dtype=np.float64)

    def velocities(self) -> np.ndarray:
        if not self.samples:
            return np.zeros((0, 3), dtype=np.float64)
        return np.array([s.velocity for s in self.samples], dtype=np.float64)


def step_count(duration: float, config: EngineConfig = DEFAULT_CONFIG) -> int:
    steps = int(round(duration * config.prediction_samples_per_day))
    return max(config.prediction_min_steps, min(config.prediction_max_steps, steps))


def _round_sig(x: float, digits: int) -> float:
    if x == 0.0 or not isfinite(x):
        return x
    return float(f"{x:.{digits - 1}e}")


# Engine settings that change the propagated path.
PATH_SETTINGS = (
    "soi_hysteresis",
    "soi_cooldown_days",
    "extreme_eccentricity",
    "collision_margin",
    "max_heliocentric_radius",
    "min_heliocentric_radius",
    "min_thrust",
)


def _digest(payload: Any) -> str:
    text = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def bodies_fingerprint(
    bodies: BodySet, digits: int = DEFAULT_CONFIG.hash_significant_digits
) -> str:
    """Digest of the body set. Ephemeris callables are keyed by identity."""
    rows: list[list[Any]] = []
    for body in bodies:
        row: list[Any] = [
            body.name,
            body.parent,
            _round_sig(body.mu, digits),
            _round_sig(body.soi_radius, digits),
            _round_sig(body.radius, digits),
        ]
        el = body.elements
        if el is not None:
            values = (el.a, el.e, el.i, el.raan, el.argp, el.M0, el.epoch, el.mu)
            row.append([_round_sig(x, digits) for x in values])
        if body.ephemeris is not None:
            fn = body.ephemeris
            row.append(f"{getattr(fn, '__qualname__', type(fn).__name__)}@{id(fn):x}")
        rows.append(row)
    return _digest(rows)


def trajectory_hash(
    ship: ShipState,
    propulsion: PropulsionConfig,
    start_time: float,
    duration: float,
    steps: int,
    config: EngineConfig = DEFAULT_CONFIG,
    thrust_model: ThrustModel | None = None,
    bodies: BodySet | None = None,
) -> str:
    """Digest of every input that shapes the path, rounded to fixed precision."""
    sig = config.hash_significant_digits
    dec = config.hash_time_decimals
    el = ship.elements
    M = el.mean_anomaly(start_time)
    if el.e < 1.0:
        M = wrap_two_pi(M)

    def r(x: float) -> float:
        return _round_sig(float(x), sig)

    payload: dict[str, Any] = {
        "elements": [r(el.a), r(el.e), r(el.i), r(el.raan), r(el.argp), r(M), r(el.mu)],
        "frame": str(ship.frame),
        "mass": r(ship.mass),
        "sail": [r(ship.sail.area_m2), r(ship.sail.reflectivity), ship.sail.sail_count, r(ship.sail.condition)],
        "propulsion": [r(propulsion.deployment), r(propulsion.yaw), r(propulsion.pitch)],
        "start": round(start_time, dec),
        "duration": r(duration),
        "steps": steps,
        "cooldowns": [[name, round(until, dec)] for name, until in ship.soi.cooldowns],
        "flyby": None,
        "model": "default" if thrust_model is None else type(thrust_model).__name__,
        "bodies": None if bodies is None else bodies_fingerprint(bodies, sig),
        "engine": [r(getattr(config, name)) for name in PATH_SETTINGS],
    }
    if ship.flyby is not None:
        payload["flyby"] = [round(ship.flyby.entry_time, dec)] + [
            r(v) for v in np.concatenate([ship.flyby.pos, ship.flyby.vel])
        ]
    return _digest(payload)


def predict_trajectory(
    ship: ShipState,
    bodies: BodySet,
    propulsion: PropulsionConfig,
    start_time: float,
    duration_days: float | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
    thrust_model: ThrustModel | None = None,
    cache: TrajectoryCache | None = None,
    clock: Callable[[], float] = time.perf_counter,
) -> Trajectory:
    """Predict the ship's path from ``start_time`` for ``duration_days``.

    The ship is treated as a value and never modified. ``start_time`` is
    authoritative for the whole call.
    """
    duration = config.prediction_duration_days if duration_days is None else duration_days
    if not isfinite(duration) or duration <= 0.0:
        raise ValueError("duration_days must be > 0")
    steps = step_count(duration, config)
    key = trajectory_hash(
        ship, propulsion, start_time, duration, steps, config, thrust_model, bodies
    )
    if cache is not None:
        hit = cache.get(key)
        if hit is not None:
            return hit
    trajectory = _propagate(
        ship, bodies, propulsion, start_time, duration, steps, key, config, thrust_model, clock
    )
    # A budget cut depends on wall-clock load, not on the inputs.
    if cache is not None and trajectory.reason is not TruncationReason.TIME_BUDGET:
        cache.put(key, trajectory)
    return trajectory


def _sample(ship: ShipState, bodies: BodySet) -> TrajectorySample:
    helio = bodies.to_heliocentric(ship.state(), ship.time)
    if not helio.is_finite():
        raise NonFiniteStateError(f"non-finite sample at t={ship.time:.6f}", last_good=ship)
    return TrajectorySample(ship.time, helio.pos, helio.vel, ship.frame)


def _bounds_violation(sample: TrajectorySample, config: EngineConfig) -> TruncationReason | None:
    r = float(np.linalg.norm(sample.position))
    if r > config.max_heliocentric_radius:
        return TruncationReason.MAX_RANGE
    if r < config.min_heliocentric_radius:
        return TruncationReason.SUN_APPROACH
    return None


def _propagate(
    ship: ShipState,
    bodies: BodySet,
    propulsion: PropulsionConfig,
    start_time: float,
    duration: float,
    steps: int,
    key: str,
    config: EngineConfig,
    thrust_model: ThrustModel | None,
    clock: Callable[[], float],
) -> Trajectory:
    deadline = clock() + config.prediction_time_budget_s
    current = ship if ship.time == start_time else replace(ship, time=start_time)
    dt = duration / steps
    samples: list[TrajectorySample] = []
    reason: TruncationReason | None = None
    last_good: ShipState | None = None

    try:
        first = _sample(current, bodies)
    except NonFiniteStateError:
        reason = TruncationReason.NON_FINITE
    else:
        reason = _bounds_violation(first, config)
        if reason is None:
            samples.append(first)
            last_good = current

    if reason is None:
        for _ in range(steps):
            if clock() > deadline:
                reason = TruncationReason.TIME_BUDGET
                break
            try:
                nxt = step_ship(current, bodies, dt, propulsion, config, thrust_model)
                sample = _sample(nxt, bodies)
            except NonFiniteStateError:
                reason = TruncationReason.NON_FINITE
                break
            reason = _bounds_violation(sample, config)
            if reason is not None:
                break
            samples.append(sample)
            current = nxt
            last_good = current

    if reason is not None:
        logger.warning(
            "trajectory truncated (%s) after %d of %d steps",
            reason.value,
            max(len(samples) - 1, 0),
            steps,
        )
    return Trajectory(
        samples=tuple(samples),
        cache_hash=key,
        start_time=start_time,
        duration=duration,
        steps=steps,
        truncated=reason is not None,
        reason=reason,
        last_good=last_good,
    )
