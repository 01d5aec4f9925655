"""Sail strategy planning: sweep, capture and escape advice."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from math import atan2, degrees, inf, pi, radians
from typing import Callable, Iterable

from ..core.anomaly import wrap_two_pi
from ..core.bodies import BodySet
from ..core.config import DEFAULT_CONFIG, EngineConfig
from ..core.diagnostics.orbit import apoapsis, periapsis
from ..core.forces.base import ThrustModel
from ..core.ship import PropulsionConfig, ShipState
from .cache import TrajectoryCache
from .intercept import InterceptPrediction, predict_intercept
from .trajectory import predict_trajectory

logger = logging.getLogger(__name__)

DEFAULT_PLAN_DAYS = 365.0
# Below this eccentricity a captured orbit counts as stable.
STABLE_E = 0.1
# From this eccentricity an orbit inside an SOI is treated as escaping.
ESCAPE_E = 0.9


@dataclass(frozen=True, slots=True)
class SailStrategy:
    name: str
    yaw_deg: float
    pitch_deg: float = 0.0
    deployment: float = 1.0

    def propulsion(self) -> PropulsionConfig:
        return PropulsionConfig(
            deployment=self.deployment,
            yaw=radians(self.yaw_deg),
            pitch=radians(self.pitch_deg),
        )


NAV_STRATEGIES: tuple[SailStrategy, ...] = (
    SailStrategy("RAISE ORBIT", 35.0),
    SailStrategy("LOWER ORBIT", -35.0),
    SailStrategy("COAST", 0.0, deployment=0.0),
    SailStrategy("RADIAL OUT", 0.0),
    SailStrategy("STEEP RAISE", 55.0),
    SailStrategy("STEEP LOWER", -55.0),
    SailStrategy("INCLINE NORTH", 0.0, 45.0),
    SailStrategy("INCLINE SOUTH", 0.0, -45.0),
    SailStrategy("RAISE + NORTH", 35.0, 30.0),
    SailStrategy("RAISE + SOUTH", 35.0, -30.0),
)


class Deviation(str, Enum):
    OPTIMAL = "optimal"
    ACCEPTABLE = "acceptable"
    ADJUST_SAIL = "adjust_sail"


@dataclass(frozen=True, slots=True)
class StrategyOutcome:
    strategy: SailStrategy
    intercept: InterceptPrediction
    truncated: bool

    @property
    def achieves_intercept(self) -> bool:
        return self.intercept.is_intercept


@dataclass(frozen=True, slots=True)
class NavigationPlan:
    target: str
    outcomes: tuple[StrategyOutcome, ...]
    deviation: Deviation
    phase_angle: float
    progress: float | None

    @property
    def best(self) -> StrategyOutcome:
        return self.outcomes[0]

    @property
    def recommended(self) -> PropulsionConfig:
        return self.best.strategy.propulsion()


@dataclass(frozen=True, slots=True)
class ManeuverPlan:
    """Sail advice for a ship orbiting ``parent``.

    ``ready`` means a stable orbit for capture plans and an escaping orbit
    for escape plans.
    """

    strategy: SailStrategy
    parent: str
    eccentricity: float
    semi_major_axis: float
    periapsis: float
    apoapsis: float
    near_periapsis: bool
    near_apoapsis: bool
    ready: bool


def rank_key(outcome: StrategyOutcome) -> tuple[int, float, float]:
    """Intercepts first (soonest wins), then the closest misses."""
    pred = outcome.intercept
    if pred.distance is None or pred.time is None:
        return (2, inf, inf)
    if outcome.achieves_intercept:
        return (0, pred.time, pred.distance)
    return (1, pred.distance, pred.time)


def classify_deviation(current: PropulsionConfig, strategy: SailStrategy) -> Deviation:
    d_yaw = abs(degrees(current.yaw) - strategy.yaw_deg)
    d_pitch = abs(degrees(current.pitch) - strategy.pitch_deg)
    d_deploy = abs(current.deployment - strategy.deployment) * 100.0
    if d_yaw <= 5.0 and d_pitch <= 5.0 and d_deploy <= 10.0:
        return Deviation.OPTIMAL
    if d_yaw <= 15.0 and d_pitch <= 15.0 and d_deploy <= 25.0:
        return Deviation.ACCEPTABLE
    return Deviation.ADJUST_SAIL


def phase_angle(ship: ShipState, bodies: BodySet, target: str, t: float) -> float:
    """Ecliptic longitude of ``target`` minus the ship's, in (-pi, pi]."""
    ship_pos = bodies.to_heliocentric(ship.state_at(t), t).pos
    target_pos = bodies.heliocentric_state(target, t).pos
    diff = atan2(target_pos[1], target_pos[0]) - atan2(ship_pos[1], ship_pos[0])
    diff = wrap_two_pi(diff)
    return diff - 2.0 * pi if diff > pi else diff


def transfer_progress(initial_a: float, current_a: float, target_a: float) -> float:
    """Fraction of the semi-major axis gap closed, clipped to [0, 1]."""
    if target_a == initial_a:
        return 1.0
    return min(1.0, max(0.0, (current_a - initial_a) / (target_a - initial_a)))


def compute_navigation_plan(
    ship: ShipState,
    bodies: BodySet,
    target: str,
    current: PropulsionConfig,
    start_time: float,
    duration_days: float = DEFAULT_PLAN_DAYS,
    strategies: Iterable[SailStrategy] = NAV_STRATEGIES,
    initial_a: float | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
    thrust_model: ThrustModel | None = None,
    cache: TrajectoryCache | None = None,
    clock: Callable[[], float] = time.perf_counter,
) -> NavigationPlan:
    """Predict every strategy held fixed for ``duration_days`` and rank them.

    Strategies that intercept ``target`` come first, soonest arrival wins;
    the rest are ordered by closest approach. Ties keep the input order.
    """
    target_body = bodies.get(target)
    if target_body.is_star:
        raise ValueError(f"target must not be the star: {target}")
    outcomes = []
    for strategy in strategies:
        traj = predict_trajectory(
            ship,
            bodies,
            strategy.propulsion(),
            start_time,
            duration_days,
            config=config,
            thrust_model=thrust_model,
            cache=cache,
            clock=clock,
        )
        pred = predict_intercept(traj, bodies, target, start_time)
        logger.debug(
            "strategy %s: %s at %s AU (truncated=%s)",
            strategy.name,
            pred.status.value,
            pred.distance,
            traj.truncated,
        )
        outcomes.append(StrategyOutcome(strategy, pred, traj.truncated))
    if not outcomes:
        raise ValueError("strategies must not be empty")

    outcomes.sort(key=rank_key)
    best = outcomes[0]
    progress = None
    if initial_a is not None and target_body.elements is not None:
        progress = transfer_progress(initial_a, ship.elements.a, target_body.elements.a)
    logger.info(
        "navigation to %s: %s (%s)", target, best.strategy.name, best.intercept.status.value
    )
    return NavigationPlan(
        target=target,
        outcomes=tuple(outcomes),
        deviation=classify_deviation(current, best.strategy),
        phase_angle=phase_angle(ship, bodies, target, start_time),
        progress=progress,
    )


def _orbit_phase(ship: ShipState) -> tuple[bool, bool]:
    el = ship.elements
    if el.is_hyperbolic:
        return abs(el.mean_anomaly(ship.time)) < pi / 4.0, False
    m = wrap_two_pi(el.mean_anomaly(ship.time))
    near_peri = m < pi / 4.0 or m > 7.0 * pi / 4.0
    near_apo = 3.0 * pi / 4.0 < m < 5.0 * pi / 4.0
    return near_peri, near_apo


def _maneuver_plan(ship: ShipState, strategy: SailStrategy, ready: bool) -> ManeuverPlan:
    near_peri, near_apo = _orbit_phase(ship)
    el = ship.elements
    return ManeuverPlan(
        strategy=strategy,
        parent=ship.frame.body,
        eccentricity=el.e,
        semi_major_axis=el.a,
        periapsis=periapsis(el),
        apoapsis=apoapsis(el),
        near_periapsis=near_peri,
        near_apoapsis=near_apo,
        ready=ready,
    )


def compute_capture_plan(ship: ShipState) -> ManeuverPlan | None:
    """Circularisation advice inside a planetary SOI, None when heliocentric."""
    if ship.frame.is_heliocentric:
        return None
    e = ship.elements.e
    near_peri, near_apo = _orbit_phase(ship)
    if e > ESCAPE_E:
        strategy = SailStrategy("EMERGENCY BRAKE", -55.0)
    elif e > 0.5:
        if near_peri:
            strategy = SailStrategy("RAISE APOAPSIS", 35.0)
        elif near_apo:
            strategy = SailStrategy("LOWER PERIAPSIS", -35.0)
        else:
            strategy = SailStrategy("CIRCULARIZING", -25.0 if e > 0.7 else 0.0, deployment=0.75)
    elif e > STABLE_E:
        strategy = SailStrategy("FINE TUNING", 15.0 if near_peri else -15.0, deployment=0.5)
    else:
        strategy = SailStrategy("STABLE ORBIT", 0.0, deployment=0.0)
    return _maneuver_plan(ship, strategy, e < STABLE_E)


def compute_escape_plan(ship: ShipState) -> ManeuverPlan | None:
    """Energy-raising advice to leave the current SOI, None when heliocentric."""
    if ship.frame.is_heliocentric:
        return None
    e = ship.elements.e
    if e >= ESCAPE_E:
        strategy = SailStrategy("ESCAPE IMMINENT", 35.0)
    elif e >= 0.5:
        strategy = SailStrategy("RAISING ORBIT", 45.0)
    else:
        strategy = SailStrategy("BUILDING ENERGY", 35.0)
    return _maneuver_plan(ship, strategy, e >= ESCAPE_E)
