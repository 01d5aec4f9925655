"""Engine tunables."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class EngineConfig:
    # SOI transitions
    soi_hysteresis: float = 1.01
    soi_cooldown_days: float = 0.1
    extreme_eccentricity: float = 50.0
    collision_margin: float = 1.1
    # propagation bounds (AU)
    max_heliocentric_radius: float = 10.0
    min_heliocentric_radius: float = 0.02
    # AU/day^2
    min_thrust: float = 1e-20
    # prediction
    prediction_duration_days: float = 60.0
    prediction_samples_per_day: float = 200.0 / 60.0
    prediction_min_steps: int = 20
    prediction_max_steps: int = 2000
    prediction_time_budget_s: float = 0.5
    cache_ttl_s: float = 0.5
    hash_significant_digits: int = 8
    hash_time_decimals: int = 3
    # intersections
    intersection_time_budget_s: float = 0.25
    max_intersection_events: int = 20

    def __post_init__(self) -> None:
        if self.soi_hysteresis <= 1.0:
            raise ValueError("soi_hysteresis must be > 1")
        if self.soi_cooldown_days < 0.0:
            raise ValueError("soi_cooldown_days must be >= 0")
        if self.extreme_eccentricity <= 1.0:
            raise ValueError("extreme_eccentricity must be > 1")
        if self.collision_margin < 1.0:
            raise ValueError("collision_margin must be >= 1")
        if not 0.0 < self.min_heliocentric_radius < self.max_heliocentric_radius:
            raise ValueError(
                "min_heliocentric_radius must be > 0 and below max_heliocentric_radius"
            )
        if self.min_thrust < 0.0:
            raise ValueError("min_thrust must be >= 0")
        if self.prediction_duration_days <= 0.0:
            raise ValueError("prediction_duration_days must be > 0")
        if self.prediction_samples_per_day <= 0.0:
            raise ValueError("prediction_samples_per_day must be > 0")
        if not 1 <= self.prediction_min_steps <= self.prediction_max_steps:
            raise ValueError("prediction_min_steps must be in [1, prediction_max_steps]")
        for name in ("prediction_time_budget_s", "cache_ttl_s", "intersection_time_budget_s"):
            if getattr(self, name) <= 0.0:
                raise ValueError(f"{name} must be > 0")
        if self.hash_significant_digits < 1:
            raise ValueError("hash_significant_digits must be >= 1")
        if self.hash_time_decimals < 0:
            raise ValueError("hash_time_decimals must be >= 0")
        if self.max_intersection_events < 1:
            raise ValueError("max_intersection_events must be >= 1")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"unknown engine settings: {', '.join(unknown)}")
        values: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"engine.{key} must be a number")
            values[key] = int(value) if known[key].type == "int" else float(value)
        return replace(DEFAULT_CONFIG, **values)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_CONFIG = EngineConfig()
