"""Celestial bodies and the explicit body set passed to every engine call."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

import numpy as np

from .conversion import elements_to_state
from .math.vector import ArrayF
from .state.elements import OrbitalElements
from .state.frames import HELIOCENTRIC, Frame, StateVector, body_frame, require_frame

# t -> (pos, vel) relative to the parent body, engine units.
Ephemeris = Callable[[float], tuple[ArrayF, ArrayF]]


@dataclass(frozen=True, slots=True, eq=False)
class Body:
    name: str
    mu: float
    soi_radius: float = 0.0
    radius: float = 0.0
    parent: str | None = None
    elements: OrbitalElements | None = None
    ephemeris: Ephemeris | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("body name must be non-empty")
        if self.mu <= 0.0:
            raise ValueError(f"{self.name}: mu must be > 0")
        if self.soi_radius < 0.0:
            raise ValueError(f"{self.name}: soi_radius must be >= 0")
        if self.radius < 0.0:
            raise ValueError(f"{self.name}: radius must be >= 0")
        if self.parent is not None and self.elements is None and self.ephemeris is None:
            raise ValueError(f"{self.name}: orbiting bodies need elements or an ephemeris")

    @property
    def is_star(self) -> bool:
        return self.parent is None


class BodySet:
    """Immutable collection of bodies with exactly one star at the root."""

    def __init__(self, bodies: Iterable[Body]) -> None:
        self._bodies: tuple[Body, ...] = tuple(bodies)
        self._by_name: dict[str, Body] = {}
        for body in self._bodies:
            if body.name in self._by_name:
                raise ValueError(f"duplicate body name: {body.name}")
            self._by_name[body.name] = body
        stars = [b for b in self._bodies if b.is_star]
        if len(stars) != 1:
            raise ValueError("body set must contain exactly one star (parent=None)")
        self._star = stars[0]
        for body in self._bodies:
            self._chain(body.name)

    def __iter__(self) -> Iterator[Body]:
        return iter(self._bodies)

    def __len__(self) -> int:
        return len(self._bodies)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    @property
    def star(self) -> Body:
        return self._star

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(b.name for b in self._bodies)

    def get(self, name: str) -> Body:
        try:
            return self._by_name[name]
        except KeyError:
            raise ValueError(f"unknown body: {name}") from None

    def _chain(self, name: str) -> list[Body]:
        chain: list[Body] = []
        body = self.get(name)
        while body.parent is not None:
            if len(chain) > len(self._bodies):
                raise ValueError(f"parent cycle through body: {name}")
            chain.append(body)
            body = self.get(body.parent)
        return chain

    def parent_frame(self, name: str) -> Frame:
        body = self.get(name)
        if body.parent is None or body.parent == self._star.name:
            return HELIOCENTRIC
        return body_frame(body.parent)

    def frame_mu(self, frame: Frame) -> float:
        if frame.is_heliocentric:
            return self._star.mu
        return self.get(frame.body).mu

    def soi_candidates(self) -> tuple[Body, ...]:
        return tuple(b for b in self._bodies if not b.is_star and b.soi_radius > 0.0)

    def orbiting_star(self) -> tuple[Body, ...]:
        return tuple(b for b in self._bodies if b.parent == self._star.name)

    def state_relative_to_parent(self, name: str, t: float) -> StateVector:
        body = self.get(name)
        frame = self.parent_frame(name)
        if body.parent is None:
            return StateVector(np.zeros(3), np.zeros(3), frame)
        if body.ephemeris is not None:
            pos, vel = body.ephemeris(t)
            return StateVector(pos, vel, frame)
        assert body.elements is not None
        return elements_to_state(body.elements, t, frame)

    def heliocentric_state(self, name: str, t: float) -> StateVector:
        pos = np.zeros(3)
        vel = np.zeros(3)
        for body in self._chain(name):
            rel = self.state_relative_to_parent(body.name, t)
            pos = pos + rel.pos
            vel = vel + rel.vel
        return StateVector(pos, vel, HELIOCENTRIC)

    def to_heliocentric(self, state: StateVector, t: float) -> StateVector:
        if state.frame.is_heliocentric:
            return state
        origin = self.heliocentric_state(state.frame.body, t)
        return state.to_parent(origin)

    def to_frame(self, state: StateVector, frame: Frame, t: float) -> StateVector:
        """Re-express a heliocentric state in ``frame`` at time ``t``."""
        require_frame(state, HELIOCENTRIC, "to_frame")
        if frame.is_heliocentric:
            return state
        origin = self.heliocentric_state(frame.body, t)
        return state.relative_to(origin, frame)
