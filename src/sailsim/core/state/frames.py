"""Reference frame tags and frame-checked state vectors."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..errors import FrameMismatchError
from ..math.vector import ArrayF, is_finite, vec3


@dataclass(frozen=True, slots=True)
class Frame:
    """Either the heliocentric frame (``body=None``) or a body-centred frame."""

    body: str | None = None

    @property
    def is_heliocentric(self) -> bool:
        return self.body is None

    def __str__(self) -> str:
        return "heliocentric" if self.body is None else f"soi:{self.body}"


HELIOCENTRIC = Frame()


def body_frame(name: str) -> Frame:
    if not name:
        raise ValueError("body name must be non-empty")
    return Frame(body=name)


@dataclass(frozen=True, slots=True, eq=False)
class StateVector:
    pos: ArrayF
    vel: ArrayF
    frame: Frame = HELIOCENTRIC

    def __post_init__(self) -> None:
        pos = vec3(self.pos, "pos")
        vel = vec3(self.vel, "vel")
        pos.setflags(write=False)
        vel.setflags(write=False)
        object.__setattr__(self, "pos", pos)
        object.__setattr__(self, "vel", vel)

    @property
    def radius(self) -> float:
        return float(np.linalg.norm(self.pos))

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.vel))

    def is_finite(self) -> bool:
        return is_finite(self.pos, self.vel)

    def relative_to(self, origin: StateVector, frame: Frame) -> StateVector:
        """Express this state relative to ``origin`` and tag it with ``frame``."""
        require_same_frame(self, origin, "relative_to")
        return StateVector(self.pos - origin.pos, self.vel - origin.vel, frame)

    def to_parent(self, origin: StateVector) -> StateVector:
        """Add ``origin``, the frame body's state in its parent frame."""
        if self.frame.is_heliocentric:
            raise FrameMismatchError("body frame", self.frame, "to_parent")
        return StateVector(self.pos + origin.pos, self.vel + origin.vel, origin.frame)


def require_frame(state: StateVector, frame: Frame, ctx: str = "") -> None:
    if state.frame != frame:
        raise FrameMismatchError(frame, state.frame, ctx)


def require_same_frame(a: StateVector, b: StateVector, ctx: str = "") -> None:
    if a.frame != b.frame:
        raise FrameMismatchError(a.frame, b.frame, ctx)
