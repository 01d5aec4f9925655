"""Scenario I/O and adapters."""

from __future__ import annotations

import json
from dataclasses import fields
from math import radians
from pathlib import Path
from typing import Any

import numpy as np

from ..core.anomaly import wrap_two_pi
from ..core.bodies import Body, BodySet
from ..core.commands import SailCommand
from ..core.config import EngineConfig
from ..core.constants import J2000
from ..core.conversion import circular_elements
from ..core.forces import ConstantThrust, NoThrust, SolarSail, ThrustModel
from ..core.ship import DEFAULT_SHIP_MASS, SAIL_STOWED, PropulsionConfig, SailSpec, ShipState
from ..core.state import HELIOCENTRIC, Frame, OrbitalElements, StateVector, body_frame
from .catalog import default_bodies
from .units import PRESETS, UnitsConfig, config_from_defn, to_internal


ScenarioDefinition = dict[str, Any]

_ELEMENT_KEYS = ("a", "e", "i_deg", "raan_deg", "argp_deg", "M0_deg")
_THRUST_MODELS = {"solar_sail", "none"}
_SAIL_KEYS = {f.name for f in fields(SailSpec)}


def load_scenario(path: str | Path) -> ScenarioDefinition:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return _validate_scenario_v1(data)


def save_scenario(path: str | Path, defn: ScenarioDefinition) -> None:
    Path(path).write_text(
        json.dumps(defn, indent=2, sort_keys=True),
        encoding="utf-8",
    )


def scenario_to_runtime(
    defn: ScenarioDefinition,
) -> tuple[
    BodySet,
    dict[str, ShipState],
    dict[str, PropulsionConfig],
    EngineConfig,
    float,
    int,
    dict[str, Any],
]:
    sim = defn["simulation"]
    units_cfg = config_from_defn(defn)
    dt = float(to_internal(sim["dt"], "time", units_cfg))
    steps = int(sim["steps"])
    start_time = float(sim.get("start_time", J2000))
    config = EngineConfig.from_dict(defn.get("engine", {}))

    if defn.get("catalog") == "default":
        bodies = default_bodies()
    else:
        bodies = _parse_bodies(defn["bodies"], units_cfg, start_time)

    ships: dict[str, ShipState] = {}
    propulsion: dict[str, PropulsionConfig] = {}
    for entry in defn.get("ships", []):
        ship_id = str(entry["id"])
        ships[ship_id] = _parse_ship(entry, bodies, units_cfg, start_time)
        propulsion[ship_id] = _parse_propulsion(entry.get("propulsion"))

    commands = [
        SailCommand(
            t=float(cmd["t"]),
            ship_id=str(cmd["ship"]),
            propulsion=_parse_propulsion(cmd["propulsion"]),
            label=cmd.get("label"),
        )
        for cmd in defn.get("commands", [])
    ]
    aux = {
        "start_time": start_time,
        "thrust_model": _parse_thrust_model(defn.get("thrust_model", "solar_sail"), units_cfg),
        "commands": sorted(commands, key=lambda c: c.t),
        "sample_every": defn.get("sampling", {}).get("every"),
        "units": units_cfg,
    }
    return bodies, ships, propulsion, config, dt, steps, aux


def _require(obj: dict[str, Any], key: str, ctx: str) -> Any:
    if key not in obj:
        raise ValueError(f"missing required field: {ctx}.{key}")
    return obj[key]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_vec3(value: Any, ctx: str) -> None:
    if not isinstance(value, list) or len(value) != 3 or not all(_is_number(v) for v in value):
        raise ValueError(f"{ctx} must be a list of 3 numbers")


def _validate_elements(block: Any, ctx: str) -> None:
    if not isinstance(block, dict):
        raise ValueError(f"{ctx} must be an object")
    for key in _ELEMENT_KEYS:
        if not _is_number(_require(block, key, ctx)):
            raise ValueError(f"{ctx}.{key} must be a number")
    if "epoch" in block and not _is_number(block["epoch"]):
        raise ValueError(f"{ctx}.epoch must be a number")


def _validate_propulsion(block: Any, ctx: str) -> None:
    if not isinstance(block, dict):
        raise ValueError(f"{ctx} must be an object")
    unknown = sorted(set(block) - {"deployment", "yaw_deg", "pitch_deg"})
    if unknown:
        raise ValueError(f"{ctx} has unknown fields: {', '.join(unknown)}")
    for key, value in block.items():
        if not _is_number(value):
            raise ValueError(f"{ctx}.{key} must be a number")
    if not 0.0 <= block.get("deployment", 0.0) <= 1.0:
        raise ValueError(f"{ctx}.deployment must be in [0, 1]")
    for key in ("yaw_deg", "pitch_deg"):
        if abs(block.get(key, 0.0)) > 90.0:
            raise ValueError(f"{ctx}.{key} must be in [-90, 90]")


def _validate_sail(block: Any, ctx: str) -> None:
    if not isinstance(block, dict):
        raise ValueError(f"{ctx} must be an object")
    unknown = sorted(set(block) - _SAIL_KEYS)
    if unknown:
        raise ValueError(f"{ctx} has unknown fields: {', '.join(unknown)}")
    for key, value in block.items():
        if not _is_number(value):
            raise ValueError(f"{ctx}.{key} must be a number")
    if "sail_count" in block and not isinstance(block["sail_count"], int):
        raise ValueError(f"{ctx}.sail_count must be an integer")
    SailSpec(**block)


def _validate_scenario_v1(data: dict[str, Any]) -> ScenarioDefinition:
    if not isinstance(data, dict):
        raise ValueError("scenario must be a JSON object")
    if data.get("schema_version") != 1:
        raise ValueError("schema_version must be 1")

    sim = _require(data, "simulation", "scenario")
    _require(sim, "dt", "simulation")
    _require(sim, "steps", "simulation")
    if not _is_number(sim["dt"]) or sim["dt"] <= 0:
        raise ValueError("simulation.dt must be > 0")
    if not isinstance(sim["steps"], int) or isinstance(sim["steps"], bool) or sim["steps"] < 0:
        raise ValueError("simulation.steps must be an integer >= 0")
    if "start_time" in sim and not _is_number(sim["start_time"]):
        raise ValueError("simulation.start_time must be a number")

    if "sampling" in data:
        if not isinstance(data["sampling"], dict):
            raise ValueError("sampling must be an object")
        every = data["sampling"].get("every")
        if every is not None and (
            not isinstance(every, int) or isinstance(every, bool) or every <= 0
        ):
            raise ValueError("sampling.every must be an integer > 0")

    if "units" in data:
        units = data["units"]
        if not isinstance(units, dict):
            raise ValueError("units must be an object")
        preset = str(units.get("preset", "ASTRO"))
        if preset.upper() not in PRESETS:
            raise ValueError("units.preset is not supported")
        if "enabled" in units and not isinstance(units["enabled"], bool):
            raise ValueError("units.enabled must be boolean")

    if "engine" in data:
        if not isinstance(data["engine"], dict):
            raise ValueError("engine must be an object")
        EngineConfig.from_dict(data["engine"])

    body_names = _validate_bodies(data)

    model = data.get("thrust_model", "solar_sail")
    if isinstance(model, dict):
        if set(model) != {"constant"} or not isinstance(model["constant"], dict):
            raise ValueError("thrust_model object must be {'constant': {...}}")
        accel = _require(model["constant"], "accel", "thrust_model.constant")
        _validate_vec3(accel, "thrust_model.constant.accel")
    elif not isinstance(model, str) or model not in _THRUST_MODELS:
        raise ValueError("thrust_model must be 'solar_sail', 'none' or {'constant': {...}}")

    ships = data.get("ships", [])
    if not isinstance(ships, list):
        raise ValueError("ships must be a list")
    ship_ids: set[str] = set()
    for idx, ship in enumerate(ships):
        ctx = f"ships[{idx}]"
        if not isinstance(ship, dict):
            raise ValueError(f"{ctx} must be an object")
        ship_id = _require(ship, "id", ctx)
        if not isinstance(ship_id, str) or not ship_id:
            raise ValueError(f"{ctx}.id must be a non-empty string")
        if ship_id in ship_ids:
            raise ValueError(f"duplicate ship id: {ship_id}")
        ship_ids.add(ship_id)
        frame = ship.get("frame", "heliocentric")
        if frame != "heliocentric" and body_names is not None and frame not in body_names:
            raise ValueError(f"{ctx}.frame references unknown body: {frame}")
        orbit_keys = [k for k in ("elements", "state", "circular") if k in ship]
        if len(orbit_keys) != 1:
            raise ValueError(f"{ctx} needs exactly one of elements, state or circular")
        if "elements" in ship:
            _validate_elements(ship["elements"], f"{ctx}.elements")
        elif "state" in ship:
            state = ship["state"]
            if not isinstance(state, dict):
                raise ValueError(f"{ctx}.state must be an object")
            _validate_vec3(_require(state, "pos", f"{ctx}.state"), f"{ctx}.state.pos")
            _validate_vec3(_require(state, "vel", f"{ctx}.state"), f"{ctx}.state.vel")
        else:
            circ = ship["circular"]
            if not isinstance(circ, dict) or not _is_number(circ.get("radius")) or circ["radius"] <= 0:
                raise ValueError(f"{ctx}.circular.radius must be > 0")
        if "mass" in ship and (not _is_number(ship["mass"]) or ship["mass"] <= 0):
            raise ValueError(f"{ctx}.mass must be > 0")
        if "sail" in ship:
            _validate_sail(ship["sail"], f"{ctx}.sail")
        if "propulsion" in ship:
            _validate_propulsion(ship["propulsion"], f"{ctx}.propulsion")

    if "commands" in data:
        _validate_commands(data["commands"], ship_ids)

    return data


def _validate_bodies(data: dict[str, Any]) -> set[str] | None:
    if "catalog" in data:
        if data["catalog"] != "default":
            raise ValueError("catalog must be 'default'")
        if "bodies" in data:
            raise ValueError("use either catalog or bodies, not both")
        return None
    bodies = _require(data, "bodies", "scenario")
    if not isinstance(bodies, list) or not bodies:
        raise ValueError("bodies must be a non-empty list")
    names: set[str] = set()
    for idx, body in enumerate(bodies):
        ctx = f"bodies[{idx}]"
        if not isinstance(body, dict):
            raise ValueError(f"{ctx} must be an object")
        name = _require(body, "name", ctx)
        if not isinstance(name, str) or not name:
            raise ValueError(f"{ctx}.name must be a non-empty string")
        if name in names:
            raise ValueError(f"duplicate body name: {name}")
        names.add(name)
        mu = _require(body, "mu", ctx)
        if not _is_number(mu) or mu <= 0:
            raise ValueError(f"{ctx}.mu must be > 0")
        for key in ("soi_radius", "radius"):
            if key in body and (not _is_number(body[key]) or body[key] < 0):
                raise ValueError(f"{ctx}.{key} must be >= 0")
        if body.get("parent") is not None:
            _validate_elements(_require(body, "elements", ctx), f"{ctx}.elements")
    for idx, body in enumerate(bodies):
        parent = body.get("parent")
        if parent is not None and parent not in names:
            raise ValueError(f"bodies[{idx}].parent not found: {parent}")
    return names


def _validate_commands(commands: Any, ship_ids: set[str]) -> None:
    if not isinstance(commands, list):
        raise ValueError("commands must be a list")
    for idx, cmd in enumerate(commands):
        ctx = f"commands[{idx}]"
        if not isinstance(cmd, dict):
            raise ValueError(f"{ctx} must be an object")
        if not _is_number(_require(cmd, "t", ctx)):
            raise ValueError(f"{ctx}.t must be a number")
        ship = _require(cmd, "ship", ctx)
        if ship not in ship_ids:
            raise ValueError(f"{ctx}.ship not found in scenario ships")
        _validate_propulsion(_require(cmd, "propulsion", ctx), f"{ctx}.propulsion")
        label = cmd.get("label")
        if label is not None and not isinstance(label, str):
            raise ValueError(f"{ctx}.label must be a string")


def _parse_elements(
    block: dict[str, Any], mu: float, units_cfg: UnitsConfig, default_epoch: float
) -> OrbitalElements:
    e = float(block["e"])
    return OrbitalElements(
        a=float(to_internal(block["a"], "length", units_cfg)),
        e=e,
        i=radians(block["i_deg"]),
        raan=wrap_two_pi(radians(block["raan_deg"])),
        argp=wrap_two_pi(radians(block["argp_deg"])),
        M0=radians(block["M0_deg"]) if e > 1.0 else wrap_two_pi(radians(block["M0_deg"])),
        epoch=float(block.get("epoch", default_epoch)),
        mu=mu,
    )


def _parse_bodies(
    entries: list[dict[str, Any]], units_cfg: UnitsConfig, start_time: float
) -> BodySet:
    mus = {e["name"]: float(to_internal(e["mu"], "mu", units_cfg)) for e in entries}
    return BodySet(_parse_body(e, mus, units_cfg, start_time) for e in entries)


def _parse_body(
    entry: dict[str, Any],
    mus: dict[str, float],
    units_cfg: UnitsConfig,
    start_time: float,
) -> Body:
    parent = entry.get("parent")
    elements = None
    if parent is not None:
        # Elements are about the parent body.
        elements = _parse_elements(entry["elements"], mus[parent], units_cfg, start_time)
    return Body(
        name=entry["name"],
        mu=mus[entry["name"]],
        soi_radius=float(to_internal(entry.get("soi_radius", 0.0), "length", units_cfg)),
        radius=float(to_internal(entry.get("radius", 0.0), "length", units_cfg)),
        parent=parent,
        elements=elements,
    )


def _parse_ship(
    entry: dict[str, Any], bodies: BodySet, units_cfg: UnitsConfig, start_time: float
) -> ShipState:
    frame = _frame_for(entry.get("frame", "heliocentric"), bodies)
    mu = bodies.frame_mu(frame)
    mass = float(entry.get("mass", DEFAULT_SHIP_MASS))
    sail = SailSpec(**entry["sail"]) if "sail" in entry else SailSpec()
    if "state" in entry:
        state = StateVector(
            to_internal(entry["state"]["pos"], "length", units_cfg),
            to_internal(entry["state"]["vel"], "velocity", units_cfg),
            frame,
        )
        return ShipState.from_state(state, mu, start_time, mass=mass, sail=sail)
    if "circular" in entry:
        circ = entry["circular"]
        elements = circular_elements(
            float(to_internal(circ["radius"], "length", units_cfg)),
            mu,
            start_time,
            inc=radians(circ.get("inc_deg", 0.0)),
            raan=radians(circ.get("raan_deg", 0.0)),
            phase=radians(circ.get("phase_deg", 0.0)),
        )
    else:
        elements = _parse_elements(entry["elements"], mu, units_cfg, start_time)
    return ShipState(elements=elements, time=start_time, frame=frame, mass=mass, sail=sail)


def _frame_for(name: str, bodies: BodySet) -> Frame:
    if name == "heliocentric":
        return HELIOCENTRIC
    body = bodies.get(name)
    if body.is_star:
        return HELIOCENTRIC
    return body_frame(name)


def _parse_propulsion(block: dict[str, Any] | None) -> PropulsionConfig:
    if not block:
        return SAIL_STOWED
    return PropulsionConfig(
        deployment=float(block.get("deployment", 0.0)),
        yaw=radians(block.get("yaw_deg", 0.0)),
        pitch=radians(block.get("pitch_deg", 0.0)),
    )


def _parse_thrust_model(model: Any, units_cfg: UnitsConfig) -> ThrustModel:
    if model == "solar_sail":
        return SolarSail()
    if model == "none":
        return NoThrust()
    accel = np.asarray(to_internal(model["constant"]["accel"], "accel", units_cfg))
    return ConstantThrust(accel)
