"""Orbit-crossing and closest-approach search over a predicted trajectory."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from math import hypot
from typing import Callable, Iterable, Iterator

import numpy as np

from ..core.bodies import Body, BodySet
from ..core.config import DEFAULT_CONFIG, EngineConfig
from ..core.errors import FrameMismatchError
from ..core.math.vector import ArrayF, unit_or
from ..core.state.frames import HELIOCENTRIC
from .cache import IntersectionCache
from .trajectory import Trajectory, bodies_fingerprint

logger = logging.getLogger(__name__)

_Z_AXIS = np.array([0.0, 0.0, 1.0])
# Apsides are checked only for orbits at least this eccentric.
APSIDES_MIN_E = 0.05
# ... and only when they differ from the semi-major axis by this much (AU).
APSIDES_MIN_OFFSET = 0.01
# Crossings of one target closer in time than this many decimals (days) are
# the same event seen at two radii.
CROSSING_TIME_DECIMALS = 3


class EventKind(str, Enum):
    APPROACHING = "approaching"
    RECEDING = "receding"
    CLOSEST_APPROACH = "closest_approach"


_KIND_ORDER = {
    EventKind.APPROACHING: 0,
    EventKind.RECEDING: 1,
    EventKind.CLOSEST_APPROACH: 2,
}


@dataclass(frozen=True, slots=True, eq=False)
class IntersectionEvent:
    target: str
    time: float
    ship_position: ArrayF
    body_position: ArrayF
    in_plane_distance: float
    out_of_plane_distance: float
    kind: EventKind
    crossing_radius: float | None = None

    @property
    def distance(self) -> float:
        return hypot(self.in_plane_distance, self.out_of_plane_distance)


@dataclass(frozen=True, slots=True)
class IntersectionReport:
    events: tuple[IntersectionEvent, ...]
    partial: bool
    trajectory_hash: str

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[IntersectionEvent]:
        return iter(self.events)

    def __getitem__(self, idx: int) -> IntersectionEvent:
        return self.events[idx]


@dataclass(frozen=True, slots=True, eq=False)
class ClosestApproach:
    target: str
    time: float
    distance: float
    ship_position: ArrayF
    ship_velocity: ArrayF
    body_position: ArrayF
    body_velocity: ArrayF

    @property
    def relative_speed(self) -> float:
        return float(np.linalg.norm(self.ship_velocity - self.body_velocity))


def radius_crossing_fraction(r0: float, r1: float, radius: float) -> float | None:
    """Segment parameter where the radius reaches ``radius`` (inclusive ends)."""
    if not (r0 <= radius <= r1 or r0 >= radius >= r1):
        return None
    if r1 == r0:
        return 0.5
    return (radius - r0) / (r1 - r0)


def closest_approach_fraction(w0: ArrayF, dv: ArrayF) -> float:
    """Minimise |w0 + s dv|^2 over s in [0, 1]; degenerate motion gives 0."""
    vv = float(np.dot(dv, dv))
    if vv < 1e-20:
        return 0.0
    return min(1.0, max(0.0, -float(np.dot(w0, dv)) / vv))


def target_radii(body: Body, include_apsides: bool = False) -> list[float]:
    el = body.elements
    if el is None:
        return []
    radii = [el.a]
    if include_apsides and APSIDES_MIN_E < el.e < 1.0:
        for r in (el.a * (1.0 - el.e), el.a * (1.0 + el.e)):
            if abs(r - el.a) > APSIDES_MIN_OFFSET:
                radii.append(r)
    return radii


def _star_orbiting_ancestor(bodies: BodySet, name: str) -> Body:
    body = bodies.get(name)
    if body.is_star:
        raise ValueError(f"soi_body must not be the star: {name}")
    while body.parent != bodies.star.name:
        assert body.parent is not None
        body = bodies.get(body.parent)
    return body


def _resolve_targets(
    bodies: BodySet, targets: Iterable[str] | None, soi_body: str | None = None
) -> list[Body]:
    if soi_body is not None:
        return [_star_orbiting_ancestor(bodies, soi_body)]
    orbiting = {b.name: b for b in bodies.orbiting_star()}
    if targets is None:
        return sorted(orbiting.values(), key=lambda b: b.name)
    chosen = []
    for name in targets:
        bodies.get(name)
        if name not in orbiting:
            raise ValueError(f"target must orbit the star directly: {name}")
        chosen.append(orbiting[name])
    return sorted(chosen, key=lambda b: b.name)


def _split_distance(ship_pos: ArrayF, body_pos: ArrayF, body_vel: ArrayF) -> tuple[float, float]:
    """In-plane and out-of-plane separation relative to the target's orbit plane."""
    normal = unit_or(np.cross(body_pos, body_vel), _Z_AXIS)
    sep = ship_pos - body_pos
    out = float(np.dot(sep, normal))
    return float(np.linalg.norm(sep - out * normal)), abs(out)


def _check_frame(trajectory: Trajectory) -> None:
    if trajectory.coordinate_frame != HELIOCENTRIC:
        raise FrameMismatchError(HELIOCENTRIC, trajectory.coordinate_frame, "intersections")


def find_closest_approach(
    trajectory: Trajectory,
    bodies: BodySet,
    target: str,
    reference_time: float,
) -> ClosestApproach | None:
    """Global minimum separation between the sampled path and ``target``."""
    _check_frame(trajectory)
    samples = trajectory.samples
    best: ClosestApproach | None = None
    prev = None
    for k in range(len(samples) - 1):
        s0, s1 = samples[k], samples[k + 1]
        if s1.time < reference_time:
            continue
        b0 = prev if prev is not None and prev[0] == k else (k, bodies.heliocentric_state(target, s0.time))
        b1 = (k + 1, bodies.heliocentric_state(target, s1.time))
        prev = b1
        w0 = s0.position - b0[1].pos
        dv = (s1.position - s0.position) - (b1[1].pos - b0[1].pos)
        s = closest_approach_fraction(w0, dv)
        dist = float(np.linalg.norm(w0 + s * dv))
        if best is None or dist < best.distance:
            best = ClosestApproach(
                target=target,
                time=s0.time + s * (s1.time - s0.time),
                distance=dist,
                ship_position=s0.position + s * (s1.position - s0.position),
                ship_velocity=s0.velocity + s * (s1.velocity - s0.velocity),
                body_position=b0[1].pos + s * (b1[1].pos - b0[1].pos),
                body_velocity=b0[1].vel + s * (b1[1].vel - b0[1].vel),
            )
    return best


def _crossings(
    trajectory: Trajectory,
    bodies: BodySet,
    body: Body,
    radius: float,
    reference_time: float,
) -> list[IntersectionEvent]:
    events: list[IntersectionEvent] = []
    samples = trajectory.samples
    hit_at_end = False
    for k in range(len(samples) - 1):
        s0, s1 = samples[k], samples[k + 1]
        if s1.time < reference_time:
            hit_at_end = False
            continue
        r0 = float(np.linalg.norm(s0.position))
        r1 = float(np.linalg.norm(s1.position))
        f = radius_crossing_fraction(r0, r1, radius)
        if f is None or (f == 0.0 and hit_at_end):
            hit_at_end = f == 1.0
            continue
        hit_at_end = f == 1.0
        t = s0.time + f * (s1.time - s0.time)
        if t < reference_time:
            continue
        ship_pos = s0.position + f * (s1.position - s0.position)
        ship_vel = s0.velocity + f * (s1.velocity - s0.velocity)
        target = bodies.heliocentric_state(body.name, t)
        in_plane, out_of_plane = _split_distance(ship_pos, target.pos, target.vel)
        range_rate = float(np.dot(ship_pos - target.pos, ship_vel - target.vel))
        kind = EventKind.APPROACHING if range_rate < 0.0 else EventKind.RECEDING
        events.append(
            IntersectionEvent(
                target=body.name,
                time=t,
                ship_position=ship_pos,
                body_position=target.pos,
                in_plane_distance=in_plane,
                out_of_plane_distance=out_of_plane,
                kind=kind,
                crossing_radius=radius,
            )
        )
    return events


def _query_key(
    trajectory: Trajectory,
    bodies: BodySet,
    reference_time: float,
    targets: list[Body],
    include_apsides: bool,
    config: EngineConfig,
) -> str:
    names = ",".join(b.name for b in targets)
    ref = round(reference_time, config.hash_time_decimals)
    fingerprint = bodies_fingerprint(bodies, config.hash_significant_digits)
    return f"{trajectory.cache_hash}:{fingerprint}:{ref}:{names}:{int(include_apsides)}"


def detect_intersections(
    trajectory: Trajectory,
    bodies: BodySet,
    reference_time: float,
    targets: Iterable[str] | None = None,
    include_apsides: bool = False,
    soi_body: str | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
    cache: IntersectionCache | None = None,
    clock: Callable[[], float] = time.perf_counter,
) -> IntersectionReport:
    """Find orbit crossings and closest approaches after ``reference_time``.

    Events are ordered by (time, target name, kind). When the wall-clock
    budget runs out the report is returned with ``partial=True``. While the ship
    is inside ``soi_body`` only that body (or the planet it orbits) is searched
    and ``targets`` is ignored.
    """
    _check_frame(trajectory)
    chosen = _resolve_targets(bodies, targets, soi_body)
    key = _query_key(trajectory, bodies, reference_time, chosen, include_apsides, config)
    if cache is not None:
        hit = cache.get(key)
        if hit is not None:
            return hit

    deadline = clock() + config.intersection_time_budget_s
    events: list[IntersectionEvent] = []
    partial = False
    for body in chosen:
        if clock() > deadline:
            partial = True
            break
        seen: set[float] = set()
        for radius in target_radii(body, include_apsides):
            for event in _crossings(trajectory, bodies, body, radius, reference_time):
                key = round(event.time, CROSSING_TIME_DECIMALS)
                if key in seen:
                    continue
                seen.add(key)
                events.append(event)
        closest = find_closest_approach(trajectory, bodies, body.name, reference_time)
        if closest is not None:
            in_plane, out_of_plane = _split_distance(
                closest.ship_position, closest.body_position, closest.body_velocity
            )
            events.append(
                IntersectionEvent(
                    target=body.name,
                    time=closest.time,
                    ship_position=closest.ship_position,
                    body_position=closest.body_position,
                    in_plane_distance=in_plane,
                    out_of_plane_distance=out_of_plane,
                    kind=EventKind.CLOSEST_APPROACH,
                )
            )

    events.sort(key=lambda ev: (ev.time, ev.target, _KIND_ORDER[ev.kind]))
    report = IntersectionReport(
        events=tuple(events[: config.max_intersection_events]),
        partial=partial,
        trajectory_hash=trajectory.cache_hash,
    )
    if partial:
        logger.warning(
            "intersection search hit its time budget; %d events returned", len(report)
        )
    elif cache is not None:
        cache.put(key, report)
    return report
