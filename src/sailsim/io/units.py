"""Unit presets for scenario files.

The engine works in AU, days and kilograms (``ASTRO``). A preset records how
large its own length and time units are in engine units; every supported kind
is a product of powers of those two plus mass.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from ..core.constants import AU_KM, AU_M, DAY_S


@dataclass(frozen=True, slots=True)
class UnitPreset:
    name: str
    length_au: float
    time_days: float
    length_label: str
    time_label: str
    mass_label: str = "kg"

    def scale(self, kind: str) -> float:
        """Engine units per preset unit for ``kind``."""
        p_len, _, p_time = _dimensions(kind)
        return self.length_au**p_len * self.time_days**p_time

    def label(self, kind: str) -> str:
        p_len, p_mass, p_time = _dimensions(kind)
        parts = [
            _power_label(self.length_label, p_len),
            _power_label(self.mass_label, p_mass),
            _power_label(self.time_label, max(p_time, 0)),
        ]
        num = "*".join(p for p in parts if p)
        if p_time >= 0:
            return num
        return f"{num}/{_power_label(self.time_label, -p_time)}"


@dataclass(frozen=True, slots=True)
class UnitsConfig:
    preset: str
    enabled: bool = True


ENGINE_PRESET = "ASTRO"

PRESETS: dict[str, UnitPreset] = {
    "SI": UnitPreset("SI", 1.0 / AU_M, 1.0 / DAY_S, "m", "s"),
    "KM": UnitPreset("KM", 1.0 / AU_KM, 1.0 / DAY_S, "km", "s"),
    ENGINE_PRESET: UnitPreset(ENGINE_PRESET, 1.0, 1.0, "AU", "day"),
}

# kind: (length, mass, time) exponents
KIND_DIMENSIONS: dict[str, tuple[int, int, int]] = {
    "length": (1, 0, 0),
    "mass": (0, 1, 0),
    "time": (0, 0, 1),
    "velocity": (1, 0, -1),
    "accel": (1, 0, -2),
    "mu": (3, 0, -2),
}


def preset_names() -> list[str]:
    return list(PRESETS)


def get_preset(name: str) -> UnitPreset:
    try:
        return PRESETS[name]
    except KeyError:
        raise ValueError(f"unknown units preset: {name}") from None


def config_from_defn(defn: dict[str, Any]) -> UnitsConfig:
    """Read the ``units`` block, falling back to engine units."""
    units = defn.get("units")
    if not isinstance(units, dict):
        return UnitsConfig(preset=ENGINE_PRESET)
    preset = str(units.get("preset", ENGINE_PRESET)).upper()
    if preset not in PRESETS:
        preset = ENGINE_PRESET
    return UnitsConfig(preset=preset, enabled=bool(units.get("enabled", True)))


def label_for(kind: str, cfg: UnitsConfig) -> str:
    if kind not in KIND_DIMENSIONS:
        return ""
    return _preset_for(cfg).label(kind)


def to_internal(value: Any, kind: str, cfg: UnitsConfig) -> Any:
    return _scaled(value, _preset_for(cfg).scale(kind))


def from_internal(value: Any, kind: str, cfg: UnitsConfig) -> Any:
    return _scaled(value, 1.0 / _preset_for(cfg).scale(kind))


def convert_value(
    value: Any, kind: str, from_cfg: UnitsConfig, to_cfg: UnitsConfig
) -> Any:
    if from_cfg == to_cfg:
        return value
    ratio = _preset_for(from_cfg).scale(kind) / _preset_for(to_cfg).scale(kind)
    return _scaled(value, ratio)


def _preset_for(cfg: UnitsConfig) -> UnitPreset:
    return get_preset(cfg.preset if cfg.enabled else ENGINE_PRESET)


def _dimensions(kind: str) -> tuple[int, int, int]:
    try:
        return KIND_DIMENSIONS[kind]
    except KeyError:
        raise ValueError(f"unsupported unit kind: {kind}") from None


def _power_label(unit: str, power: int) -> str:
    if power == 0:
        return ""
    return unit if power == 1 else f"{unit}^{power}"


def _scaled(value: Any, scale: float) -> Any:
    if isinstance(value, (list, tuple, np.ndarray)):
        return np.asarray(value, dtype=np.float64) * scale
    return float(value) * scale
