"""Explicit simulation context with a single time-advancing entry point."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from math import isfinite
from pathlib import Path
from time import perf_counter
from types import MappingProxyType
from typing import Any, Callable, Hashable, Iterable, Mapping

import numpy as np

from ..analysis.cache import IntersectionCache, TrajectoryCache
from ..analysis.intercept import InterceptPrediction, predict_intercept
from ..analysis.intersections import IntersectionReport, detect_intersections
from ..analysis.navigation import (
    DEFAULT_PLAN_DAYS,
    ManeuverPlan,
    NavigationPlan,
    compute_capture_plan,
    compute_escape_plan,
    compute_navigation_plan,
)
from ..analysis.trajectory import Trajectory, predict_trajectory
from ..io.scenario import load_scenario, scenario_to_runtime
from .bodies import BodySet
from .commands import CommandSchedule, SailCommand
from .config import DEFAULT_CONFIG, EngineConfig
from .diagnostics.orbit import orbit_type, speed_km_s
from .engine import step_ship
from .errors import DuplicateTickError, ReentrantStepError
from .forces.base import ThrustModel
from .ship import SAIL_STOWED, PropulsionConfig, ShipState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SimulationSnapshot:
    time: float
    tick: int
    ships: Mapping[str, ShipState]
    propulsion: Mapping[str, PropulsionConfig]


@dataclass(slots=True)
class ScenarioRuntime:
    dt: float
    steps: int
    aux: dict[str, Any] = field(default_factory=dict)


class Simulation:
    """Owns time, ships and propulsion for one run.

    ``advance`` is the only call that moves time forward. Every ship's next
    state is computed before any of them is committed, so a failure leaves
    the previous tick intact.
    """

    def __init__(
        self,
        bodies: BodySet,
        config: EngineConfig = DEFAULT_CONFIG,
        start_time: float = 0.0,
        thrust_model: ThrustModel | None = None,
        commands: Iterable[SailCommand] = (),
    ) -> None:
        if not isfinite(start_time):
            raise ValueError("start_time must be finite")
        self.bodies = bodies
        self.config = config
        self.start_time = float(start_time)
        self.thrust_model = thrust_model
        self.commands = CommandSchedule(list(commands))
        self.trajectory_cache = TrajectoryCache(config.cache_ttl_s)
        self.intersection_cache = IntersectionCache(config.cache_ttl_s)
        self.runtime: ScenarioRuntime | None = None
        self._time = self.start_time
        self._tick = 0
        self._ships: dict[str, ShipState] = {}
        self._propulsion: dict[str, PropulsionConfig] = {}
        self._initial: dict[str, tuple[ShipState, PropulsionConfig]] = {}
        self._advancing = False
        self._last_tick: Hashable | None = None

    @classmethod
    def from_definition(cls, defn: dict[str, Any]) -> Simulation:
        bodies, ships, propulsion, config, dt, steps, aux = scenario_to_runtime(defn)
        sim = cls(
            bodies,
            config=config,
            start_time=aux["start_time"],
            thrust_model=aux["thrust_model"],
            commands=aux["commands"],
        )
        for ship_id, ship in ships.items():
            sim.add_ship(ship_id, ship, propulsion.get(ship_id, SAIL_STOWED))
        sim.runtime = ScenarioRuntime(dt=dt, steps=steps, aux=aux)
        return sim

    @classmethod
    def load_scenario(cls, path: str | Path) -> Simulation:
        return cls.from_definition(load_scenario(path))

    @property
    def time(self) -> float:
        return self._time

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def ship_ids(self) -> tuple[str, ...]:
        return tuple(self._ships)

    def add_ship(
        self,
        ship_id: str,
        ship: ShipState,
        propulsion: PropulsionConfig = SAIL_STOWED,
    ) -> None:
        self._require_idle("add_ship")
        if not ship_id:
            raise ValueError("ship_id must be non-empty")
        if ship_id in self._ships:
            raise ValueError(f"duplicate ship id: {ship_id}")
        if ship.time != self._time:
            raise ValueError("ship time must equal the simulation time")
        self._ships[ship_id] = ship
        self._propulsion[ship_id] = propulsion
        if self._tick == 0:
            self._initial[ship_id] = (ship, propulsion)

    def ship(self, ship_id: str) -> ShipState:
        try:
            return self._ships[ship_id]
        except KeyError:
            raise ValueError(f"unknown ship: {ship_id}") from None

    def propulsion(self, ship_id: str) -> PropulsionConfig:
        self.ship(ship_id)
        return self._propulsion[ship_id]

    def set_propulsion(self, ship_id: str, propulsion: PropulsionConfig) -> None:
        self._require_idle("set_propulsion")
        self.ship(ship_id)
        self._propulsion[ship_id] = propulsion

    def advance(self, dt: float, tick: Hashable | None = None) -> SimulationSnapshot:
        """Advance every ship by ``dt`` days.

        Commands due in (t, t + dt] take effect for the whole step. Passing
        the same ``tick`` token twice in a row raises ``DuplicateTickError``.
        """
        if self._advancing:
            raise ReentrantStepError("advance() called while a step is in progress")
        if tick is not None and tick == self._last_tick:
            raise DuplicateTickError(f"tick {tick!r} was already advanced")
        if not isfinite(dt) or dt <= 0.0:
            raise ValueError("dt must be > 0")

        self._advancing = True
        try:
            t0 = self._time
            t1 = t0 + dt
            due, next_index = self.commands.window(t0, t1, include_start=self._tick == 0)
            propulsion = dict(self._propulsion)
            for cmd in due:
                if cmd.ship_id not in self._ships:
                    raise ValueError(f"command for unknown ship: {cmd.ship_id}")
                propulsion[cmd.ship_id] = cmd.propulsion
            ships = {
                ship_id: step_ship(
                    ship,
                    self.bodies,
                    dt,
                    propulsion[ship_id],
                    self.config,
                    self.thrust_model,
                )
                for ship_id, ship in self._ships.items()
            }

            self._ships = ships
            self._propulsion = propulsion
            self.commands.next_index = next_index
            self._time = t1
            self._tick += 1
            if tick is not None:
                self._last_tick = tick
        finally:
            self._advancing = False

        for cmd in due:
            logger.info(
                "command %s for %s at t=%.6f", cmd.label or "sail", cmd.ship_id, cmd.t
            )
        return self.snapshot()

    def snapshot(self) -> SimulationSnapshot:
        return SimulationSnapshot(
            time=self._time,
            tick=self._tick,
            ships=MappingProxyType(dict(self._ships)),
            propulsion=MappingProxyType(dict(self._propulsion)),
        )

    def reset(self) -> bool:
        self._require_idle("reset")
        if not self._initial:
            return False
        self._ships = {k: v[0] for k, v in self._initial.items()}
        self._propulsion = {k: v[1] for k, v in self._initial.items()}
        self._time = self.start_time
        self._tick = 0
        self._last_tick = None
        self.commands.reset()
        self.trajectory_cache.invalidate()
        self.intersection_cache.invalidate()
        return True

    def predict(
        self,
        ship_id: str,
        duration_days: float | None = None,
        propulsion: PropulsionConfig | None = None,
        start_time: float | None = None,
        clock: Callable[[], float] = perf_counter,
    ) -> Trajectory:
        ship = self.ship(ship_id)
        return predict_trajectory(
            ship,
            self.bodies,
            propulsion if propulsion is not None else self._propulsion[ship_id],
            self._time if start_time is None else start_time,
            duration_days,
            config=self.config,
            thrust_model=self.thrust_model,
            cache=self.trajectory_cache,
            clock=clock,
        )

    def intersections(
        self,
        ship_id: str,
        duration_days: float | None = None,
        targets: Iterable[str] | None = None,
        include_apsides: bool = False,
        clock: Callable[[], float] = perf_counter,
    ) -> IntersectionReport:
        trajectory = self.predict(ship_id, duration_days, clock=clock)
        frame = self.ship(ship_id).frame
        return detect_intersections(
            trajectory,
            self.bodies,
            self._time,
            targets=targets,
            include_apsides=include_apsides,
            soi_body=None if frame.is_heliocentric else frame.body,
            config=self.config,
            cache=self.intersection_cache,
            clock=clock,
        )

    def intercept(
        self,
        ship_id: str,
        target: str,
        duration_days: float | None = None,
        clock: Callable[[], float] = perf_counter,
    ) -> InterceptPrediction:
        trajectory = self.predict(ship_id, duration_days, clock=clock)
        return predict_intercept(trajectory, self.bodies, target, self._time)

    def navigation_plan(
        self,
        ship_id: str,
        target: str,
        duration_days: float = DEFAULT_PLAN_DAYS,
        initial_a: float | None = None,
        clock: Callable[[], float] = perf_counter,
    ) -> NavigationPlan:
        return compute_navigation_plan(
            self.ship(ship_id),
            self.bodies,
            target,
            self._propulsion[ship_id],
            self._time,
            duration_days,
            initial_a=initial_a,
            config=self.config,
            thrust_model=self.thrust_model,
            cache=self.trajectory_cache,
            clock=clock,
        )

    def capture_plan(self, ship_id: str) -> ManeuverPlan | None:
        return compute_capture_plan(self.ship(ship_id))

    def escape_plan(self, ship_id: str) -> ManeuverPlan | None:
        return compute_escape_plan(self.ship(ship_id))

    def diagnostics(self) -> dict[str, Any]:
        info: dict[str, Any] = {"tick": self._tick, "time": self._time, "ships": {}}
        for ship_id, ship in self._ships.items():
            state = ship.state()
            helio = self.bodies.to_heliocentric(state, ship.time)
            info["ships"][ship_id] = {
                "frame": str(ship.frame),
                "a": ship.elements.a,
                "e": ship.elements.e,
                "orbit_type": orbit_type(ship.elements.e),
                "heliocentric_radius": helio.radius,
                "speed_km_s": speed_km_s(state),
            }
        return info

    def ship_positions(self) -> np.ndarray:
        """Heliocentric positions in ship insertion order, shape (N, 3)."""
        if not self._ships:
            return np.zeros((0, 3), dtype=np.float64)
        return np.array(
            [
                self.bodies.to_heliocentric(ship.state(), ship.time).pos
                for ship in self._ships.values()
            ],
            dtype=np.float64,
        )

    def _require_idle(self, what: str) -> None:
        if self._advancing:
            raise ReentrantStepError(f"{what}() called while a step is in progress")
