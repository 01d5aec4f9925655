"""Sphere-of-influence transitions between a frame and its child bodies.

A ship in frame F can enter the SOI of any body whose parent frame is F, and
leaves its current body for that body's parent frame. The same instant is used
on both sides of a transition, so position is continuous.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from math import sqrt

import numpy as np

from .bodies import Body, BodySet
from .config import DEFAULT_CONFIG, EngineConfig
from .conversion import state_to_elements
from .diagnostics.orbit import orbit_type
from .errors import FrameMismatchError
from .math.rotation import rtn_basis
from .math.vector import ArrayF, unit_or
from .ship import LinearFlyby, ShipState
from .state.frames import StateVector, body_frame, require_frame, require_same_frame

logger = logging.getLogger(__name__)

_X_AXIS = np.array([1.0, 0.0, 0.0])


@dataclass(frozen=True, slots=True)
class SOIEntry:
    body: str
    time: float
    fraction: float
    min_distance: float


def swept_entry_fraction(rel0: ArrayF, rel1: ArrayF, radius: float) -> float | None:
    """First segment parameter s in [0, 1] at which |rel0 + s (rel1 - rel0)| = radius.

    Returns 0 when the segment starts inside the sphere and None when it never
    reaches it.
    """
    c = float(np.dot(rel0, rel0)) - radius * radius
    if c <= 0.0:
        return 0.0
    d = rel1 - rel0
    a = float(np.dot(d, d))
    if a <= 0.0:
        return None
    b = 2.0 * float(np.dot(rel0, d))
    disc = b * b - 4.0 * a * c
    if disc < 0.0:
        return None
    s = (-b - sqrt(disc)) / (2.0 * a)
    if 0.0 <= s <= 1.0:
        return s
    return None


def segment_min_distance(rel0: ArrayF, rel1: ArrayF) -> float:
    d = rel1 - rel0
    dd = float(np.dot(d, d))
    s = 0.0 if dd < 1e-20 else min(1.0, max(0.0, -float(np.dot(rel0, d)) / dd))
    return float(np.linalg.norm(rel0 + s * d))


def _outside_orbit_shell(body: Body, start: StateVector, end: StateVector) -> bool:
    """True when the step cannot reach the shell swept by the body's SOI."""
    el = body.elements
    if el is None or el.e >= 1.0:
        return False
    r_lo = segment_min_distance(start.pos, end.pos)
    r_hi = max(start.radius, end.radius)
    outer = el.a * (1.0 + el.e) + body.soi_radius
    inner = el.a * (1.0 - el.e) - body.soi_radius
    return r_lo > outer or r_hi < inner


def periapsis_radius(state: StateVector, mu: float) -> float:
    """Periapsis from h^2 / (mu (1 + e)); zero for radial motion."""
    r = state.radius
    h = np.cross(state.pos, state.vel)
    e_vec = np.cross(state.vel, h) / mu - state.pos / r
    e = float(np.linalg.norm(e_vec))
    return float(np.dot(h, h)) / (mu * (1.0 + e))


class SOITransitionManager:
    def __init__(self, bodies: BodySet, config: EngineConfig = DEFAULT_CONFIG) -> None:
        self.bodies = bodies
        self.config = config

    def children_of(self, ship: ShipState) -> list[Body]:
        return [
            b
            for b in self.bodies.soi_candidates()
            if self.bodies.parent_frame(b.name) == ship.frame
        ]

    def detect_entry(
        self,
        ship: ShipState,
        start: StateVector,
        end: StateVector,
        t0: float,
        t1: float,
    ) -> SOIEntry | None:
        """Swept test of the step (t0 -> t1) against every child SOI.

        Overlaps resolve to the largest mu / r^2, with r the closest distance
        reached on the step. Bodies still in cooldown are skipped.
        """
        require_frame(start, ship.frame, "detect_entry")
        require_same_frame(start, end, "detect_entry")
        found: list[tuple[float, str, SOIEntry]] = []
        for body in self.children_of(ship):
            if _outside_orbit_shell(body, start, end):
                continue
            b0 = self.bodies.state_relative_to_parent(body.name, t0)
            b1 = self.bodies.state_relative_to_parent(body.name, t1)
            require_same_frame(start, b0, "detect_entry")
            rel0 = start.pos - b0.pos
            rel1 = end.pos - b1.pos
            s = swept_entry_fraction(rel0, rel1, body.soi_radius)
            if s is None:
                continue
            t_entry = t0 + s * (t1 - t0)
            if ship.soi.cooldown_active(body.name, t_entry):
                continue
            r_min = max(segment_min_distance(rel0, rel1), 1e-12)
            entry = SOIEntry(body=body.name, time=t_entry, fraction=s, min_distance=r_min)
            found.append((body.mu / (r_min * r_min), body.name, entry))
        if not found:
            return None
        found.sort(key=lambda item: (-item[0], item[1]))
        return found[0][2]

    def enter(self, ship: ShipState, entry: SOIEntry) -> ShipState:
        """Re-express the ship in the entered body's frame at the entry instant."""
        body = self.bodies.get(entry.body)
        if self.bodies.parent_frame(body.name) != ship.frame:
            raise FrameMismatchError(self.bodies.parent_frame(body.name), ship.frame, "enter")
        t = entry.time
        outer = ship.state_at(t)
        origin = self.bodies.state_relative_to_parent(body.name, t)
        rel = outer.relative_to(origin, body_frame(body.name))

        flyby = None
        safe = self.collision_guard(rel, body)
        if safe is not None:
            rel = safe
        elements = state_to_elements(rel.pos, rel.vel, body.mu, t)
        if safe is None and elements.e > self.config.extreme_eccentricity:
            logger.warning(
                "extreme eccentricity %.1f entering %s; using straight-line flyby",
                elements.e,
                body.name,
            )
            flyby = LinearFlyby(entry_time=t, pos=rel.pos, vel=rel.vel)

        logger.info(
            "SOI entry: %s at t=%.6f (%s, e=%.6g)",
            body.name,
            t,
            orbit_type(elements.e),
            elements.e,
        )
        return replace(
            ship,
            elements=elements,
            frame=rel.frame,
            soi=ship.soi.after_transition(body.name, t, self.config.soi_cooldown_days),
            flyby=flyby,
        )

    def exit_status(self, ship: ShipState, state: StateVector) -> tuple[bool, bool]:
        """Return ``(should_exit, inside_hysteresis_band)``."""
        require_frame(state, ship.frame, "exit_status")
        if ship.frame.is_heliocentric:
            return False, False
        body = self.bodies.get(ship.frame.body)
        r = state.radius
        if r > body.soi_radius * self.config.soi_hysteresis:
            return True, False
        return False, r > body.soi_radius

    def exit(self, ship: ShipState, state: StateVector, t: float) -> ShipState:
        """Move the ship to the parent frame of its current body at ``t``."""
        require_frame(state, ship.frame, "exit")
        name = ship.frame.body
        if name is None:
            raise FrameMismatchError("body frame", ship.frame, "exit")
        origin = self.bodies.state_relative_to_parent(name, t)
        outer = state.to_parent(origin)
        mu = self.bodies.frame_mu(outer.frame)
        elements = state_to_elements(outer.pos, outer.vel, mu, t)
        logger.info("SOI exit: %s at t=%.6f -> %s", name, t, outer.frame)
        return replace(
            ship,
            elements=elements,
            frame=outer.frame,
            soi=ship.soi.after_transition(name, t, self.config.soi_cooldown_days),
            flyby=None,
        )

    def collision_guard(self, state: StateVector, body: Body) -> StateVector | None:
        """Return a circular state at radius * margin if the orbit would hit the body.

        The new state keeps the current radial direction and sense of motion.
        Returns None when no correction is needed.
        """
        require_frame(state, body_frame(body.name), "collision_guard")
        if body.radius <= 0.0:
            return None
        r_safe = body.radius * self.config.collision_margin
        rp = periapsis_radius(state, body.mu)
        energy = 0.5 * state.speed**2 - body.mu / state.radius
        approaching = float(np.dot(state.pos, state.vel)) < 0.0 or energy < 0.0
        if state.radius >= r_safe and (rp >= r_safe or not approaching):
            return None

        r_hat = unit_or(state.pos, _X_AXIS)
        t_hat = rtn_basis(r_hat, state.vel)[1]
        v_circ = sqrt(body.mu / r_safe)
        logger.warning(
            "collision guard at %s: periapsis %.3e AU below %.3e AU; circularising",
            body.name,
            rp,
            r_safe,
        )
        return StateVector(r_hat * r_safe, t_hat * v_circ, state.frame)
