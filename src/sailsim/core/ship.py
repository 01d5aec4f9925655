"""Ship state, sail hardware and propulsion settings."""

from __future__ import annotations

from dataclasses import dataclass
from math import isfinite, pi

from .conversion import elements_to_state, state_to_elements
from .math.vector import ArrayF, vec3
from .state.elements import OrbitalElements
from .state.frames import HELIOCENTRIC, Frame, StateVector

DEFAULT_SHIP_MASS = 10_000.0
MAX_SAIL_COUNT = 20


@dataclass(frozen=True, slots=True)
class PropulsionConfig:
    """Sail orientation and deployment, owned by the caller.

    ``deployment`` is a fraction in [0, 1]; ``yaw`` and ``pitch`` are radians
    measured from the sun line in and out of the orbital plane.
    """

    deployment: float = 0.0
    yaw: float = 0.0
    pitch: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.deployment <= 1.0:
            raise ValueError("deployment must be in [0, 1]")
        for name in ("yaw", "pitch"):
            value = getattr(self, name)
            if not isfinite(value) or abs(value) > pi / 2:
                raise ValueError(f"{name} must be in [-pi/2, pi/2]")


SAIL_STOWED = PropulsionConfig()


@dataclass(frozen=True, slots=True)
class SailSpec:
    area_m2: float = 3.0e6
    reflectivity: float = 0.9
    sail_count: int = 1
    condition: float = 1.0

    def __post_init__(self) -> None:
        if self.area_m2 < 0.0:
            raise ValueError("area_m2 must be >= 0")
        if not 0.0 <= self.reflectivity <= 1.0:
            raise ValueError("reflectivity must be in [0, 1]")
        if not 1 <= self.sail_count <= MAX_SAIL_COUNT:
            raise ValueError(f"sail_count must be in [1, {MAX_SAIL_COUNT}]")
        if not 0.0 <= self.condition <= 1.0:
            raise ValueError("condition must be in [0, 1]")


@dataclass(frozen=True, slots=True, eq=False)
class LinearFlyby:
    """Straight-line motion used for extreme-eccentricity passes."""

    entry_time: float
    pos: ArrayF
    vel: ArrayF

    def __post_init__(self) -> None:
        object.__setattr__(self, "pos", vec3(self.pos, "pos"))
        object.__setattr__(self, "vel", vec3(self.vel, "vel"))

    def state_at(self, t: float, frame: Frame) -> StateVector:
        return StateVector(self.pos + self.vel * (t - self.entry_time), self.vel, frame)


@dataclass(frozen=True, slots=True)
class SOIBookkeeping:
    """Transition history used for cooldowns and the hysteresis band.

    ``cooldowns`` holds ``(body, suppressed_until)`` pairs. ``exit_pending`` is
    set while the ship is past the SOI radius but inside the hysteresis band.
    """

    last_transition_time: float | None = None
    cooldowns: tuple[tuple[str, float], ...] = ()
    exit_pending: bool = False

    def cooldown_active(self, body: str, t: float) -> bool:
        return any(name == body and t < until for name, until in self.cooldowns)

    def after_transition(self, body: str, t: float, cooldown: float) -> SOIBookkeeping:
        kept = tuple((n, u) for n, u in self.cooldowns if n != body and u > t)
        return SOIBookkeeping(
            last_transition_time=t,
            cooldowns=tuple(sorted(kept + ((body, t + cooldown),))),
            exit_pending=False,
        )


@dataclass(frozen=True, slots=True, eq=False)
class ShipState:
    """Complete, immutable ship state at ``time``.

    ``elements`` are relative to ``frame``. While ``flyby`` is set the position
    follows the straight line instead of the conic.
    """

    elements: OrbitalElements
    time: float
    frame: Frame = HELIOCENTRIC
    mass: float = DEFAULT_SHIP_MASS
    sail: SailSpec = SailSpec()
    soi: SOIBookkeeping = SOIBookkeeping()
    flyby: LinearFlyby | None = None

    def __post_init__(self) -> None:
        if self.mass <= 0.0:
            raise ValueError("mass must be > 0")
        if self.flyby is not None and self.frame.is_heliocentric:
            raise ValueError("linear flyby requires a body frame")

    def state_at(self, t: float) -> StateVector:
        if self.flyby is not None:
            return self.flyby.state_at(t, self.frame)
        return elements_to_state(self.elements, t, self.frame)

    def state(self) -> StateVector:
        return self.state_at(self.time)

    @classmethod
    def from_state(
        cls,
        state: StateVector,
        mu: float,
        t: float,
        mass: float = DEFAULT_SHIP_MASS,
        sail: SailSpec | None = None,
    ) -> ShipState:
        return cls(
            elements=state_to_elements(state.pos, state.vel, mu, t),
            time=t,
            frame=state.frame,
            mass=mass,
            sail=sail if sail is not None else SailSpec(),
        )
