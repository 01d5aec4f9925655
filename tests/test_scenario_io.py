from __future__ import annotations

import copy
import json
from math import radians
from pathlib import Path

import numpy as np
import pytest

from sailsim.core.constants import AU_KM, J2000, MU_SUN
from sailsim.core.forces import ConstantThrust, NoThrust, SolarSail
from sailsim.core.state import HELIOCENTRIC, body_frame
from sailsim.io.scenario import load_scenario, save_scenario, scenario_to_runtime
from sailsim.io.units import UnitsConfig

INNER = Path("examples/scenarios/inner_system_v1.json")
TWO_BODY = Path("examples/scenarios/two_body_km_v1.json")


def _minimal() -> dict:
    return {
        "schema_version": 1,
        "simulation": {"start_time": 0.0, "dt": 1.0, "steps": 10},
        "thrust_model": "none",
        "bodies": [
            {"name": "SOL", "mu": MU_SUN},
            {
                "name": "EARTH",
                "mu": 8.887692445e-10,
                "soi_radius": 0.01,
                "parent": "SOL",
                "elements": {"a": 1.0, "e": 0.0, "i_deg": 0.0, "raan_deg": 0.0, "argp_deg": 0.0, "M0_deg": 0.0},
            },
        ],
        "ships": [
            {"id": "s1", "circular": {"radius": 1.3}},
            {"id": "s2", "frame": "EARTH", "state": {"pos": [0.005, 0.0, 0.0], "vel": [0.0, 4e-4, 0.0]}},
        ],
    }


def _write(tmp_path: Path, defn: dict) -> Path:
    path = tmp_path / "scenario.json"
    path.write_text(json.dumps(defn), encoding="utf-8")
    return path


def test_examples_load() -> None:
    for path in (INNER, TWO_BODY):
        defn = load_scenario(path)
        bodies, ships, propulsion, config, dt, steps, aux = scenario_to_runtime(defn)
        assert len(ships) >= 1
        assert dt > 0.0
        assert steps > 0
        assert set(propulsion) == set(ships)


def test_round_trip(tmp_path: Path) -> None:
    defn = load_scenario(INNER)
    out = tmp_path / "roundtrip.json"
    save_scenario(out, defn)
    assert load_scenario(out) == defn


def test_inner_system_runtime() -> None:
    bodies, ships, propulsion, config, dt, steps, aux = scenario_to_runtime(load_scenario(INNER))
    assert "EARTH" in bodies and "LUNA" in bodies
    assert config.prediction_duration_days == 120.0
    assert dt == 0.5
    assert aux["start_time"] == J2000
    assert aux["sample_every"] == 4
    assert isinstance(aux["thrust_model"], SolarSail)
    assert [c.label for c in aux["commands"]] == ["raise", "coast"]
    assert aux["commands"][0].propulsion.yaw == pytest.approx(radians(35.26))
    pathfinder = ships["pathfinder"]
    assert pathfinder.time == J2000
    assert pathfinder.state().radius == pytest.approx(1.0)
    drifter = ships["drifter"]
    assert drifter.elements.a == 1.2
    assert drifter.elements.epoch == J2000


def test_km_units_are_converted() -> None:
    bodies, ships, _, _, dt, _, aux = scenario_to_runtime(load_scenario(TWO_BODY))
    assert dt == pytest.approx(0.5)
    assert bodies.star.mu == pytest.approx(MU_SUN, rel=1e-6)
    planet = bodies.get("PLANET")
    assert planet.soi_radius == pytest.approx(924000.0 / AU_KM)
    assert planet.elements is not None
    assert planet.elements.a == pytest.approx(1.0)
    assert planet.elements.mu == bodies.star.mu
    probe = ships["probe"]
    state = probe.state()
    assert np.allclose(state.pos, [0.0, 1.0, 0.0])
    assert state.speed == pytest.approx(29.78 * 86400.0 / AU_KM)
    assert isinstance(aux["thrust_model"], NoThrust)
    assert aux["units"] == UnitsConfig(preset="KM")


def test_ship_frames_and_parent_mu(tmp_path: Path) -> None:
    bodies, ships, *_ = scenario_to_runtime(load_scenario(_write(tmp_path, _minimal())))
    assert ships["s1"].frame == HELIOCENTRIC
    assert ships["s2"].frame == body_frame("EARTH")
    assert ships["s2"].elements.mu == bodies.get("EARTH").mu
    assert bodies.get("EARTH").elements.mu == MU_SUN


def test_constant_thrust_model(tmp_path: Path) -> None:
    defn = _minimal()
    defn["thrust_model"] = {"constant": {"accel": [1e-6, 0.0, 0.0]}}
    *_, aux = scenario_to_runtime(load_scenario(_write(tmp_path, defn)))
    assert isinstance(aux["thrust_model"], ConstantThrust)
    assert np.allclose(aux["thrust_model"].accel, [1e-6, 0.0, 0.0])


def _broken(mutate) -> dict:
    defn = copy.deepcopy(_minimal())
    mutate(defn)
    return defn


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: d.update(schema_version=2),
        lambda d: d["simulation"].pop("dt"),
        lambda d: d["simulation"].update(steps=-1),
        lambda d: d["simulation"].update(steps=1.5),
        lambda d: d.update(units={"preset": "FURLONG"}),
        lambda d: d.update(engine={"warp_factor": 9}),
        lambda d: d.update(engine={"soi_hysteresis": 0.5}),
        lambda d: d.update(sampling={"every": 0}),
        lambda d: d.update(sampling=4),
        lambda d: d.update(thrust_model="ion"),
        lambda d: d.update(thrust_model=["solar_sail"]),
        lambda d: d["ships"].append({"id": "s1", "circular": {"radius": 2.0}}),
        lambda d: d["ships"].append({"id": "s3"}),
        lambda d: d["ships"].append(
            {"id": "s3", "circular": {"radius": 2.0}, "state": {"pos": [1, 0, 0], "vel": [0, 1, 0]}}
        ),
        lambda d: d["ships"].append({"id": "s3", "frame": "MARS", "circular": {"radius": 2.0}}),
        lambda d: d["ships"].append({"id": "s3", "circular": {"radius": 2.0}, "mass": 0}),
        lambda d: d["ships"][0].update(propulsion={"deployment": 2.0}),
        lambda d: d["ships"][0].update(propulsion={"yaw_deg": 120.0}),
        lambda d: d["ships"][0].update(propulsion={"thrust": 1.0}),
        lambda d: d["ships"][0].update(sail={"area": 1.0e6}),
        lambda d: d["ships"][0].update(sail={"area_m2": "big"}),
        lambda d: d["ships"][0].update(sail={"sail_count": 1.5}),
        lambda d: d["ships"][0].update(sail={"reflectivity": 1.5}),
        lambda d: d["ships"][0].update(sail=[1.0]),
        lambda d: d["bodies"].append({"name": "SOL", "mu": 1.0}),
        lambda d: d["bodies"][1].update(parent="VULCAN"),
        lambda d: d["bodies"][1].pop("elements"),
        lambda d: d["bodies"][1].update(mu=-1.0),
        lambda d: d.update(catalog="default"),
        lambda d: d.update(commands=[{"t": 1.0, "ship": "ghost", "propulsion": {}}]),
        lambda d: d.update(commands=[{"t": "soon", "ship": "s1", "propulsion": {}}]),
    ],
)
def test_invalid_scenarios(tmp_path: Path, mutate) -> None:
    with pytest.raises(ValueError):
        load_scenario(_write(tmp_path, _broken(mutate)))


def test_catalog_scenario(tmp_path: Path) -> None:
    defn = _minimal()
    del defn["bodies"]
    defn["catalog"] = "default"
    defn["ships"] = [{"id": "s1", "circular": {"radius": 1.3}}]
    bodies, *_ = scenario_to_runtime(load_scenario(_write(tmp_path, defn)))
    assert bodies.star.name == "SOL"
    assert len(bodies) == 10
