"""Run a scenario JSON and print the final ship states."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import numpy as np

from . import __version__
from .core.diagnostics import orbit_type, speed_km_s
from .core.run import run
from .core.simulation import Simulation


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="sailsim")
    parser.add_argument("scenario", type=Path)
    parser.add_argument("--steps", type=int, default=None)
    parser.add_argument("--predict-days", type=float, default=None)
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--out", type=Path, default=None)
    parser.add_argument("--version", action="version", version=f"sailsim v{__version__}")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    sim = Simulation.load_scenario(args.scenario)
    runtime = sim.runtime
    assert runtime is not None
    steps = runtime.steps if args.steps is None else args.steps
    sample_every = runtime.aux.get("sample_every")
    if args.out is not None and sample_every is None:
        sample_every = 1

    result = run(sim, runtime.dt, steps, sample_every=sample_every)

    print("steps:", steps)
    print("dt (days):", runtime.dt)
    print("final time:", result.final.time)
    for ship_id, ship in result.final.ships.items():
        state = ship.state()
        helio = sim.bodies.to_heliocentric(state, ship.time)
        print(f"ship {ship_id}:")
        print("  frame:", ship.frame)
        print("  position (AU):", np.array2string(helio.pos, precision=6))
        print(f"  speed: {speed_km_s(state):.3f} km/s ({ship.frame})")
        print(f"  orbit: {orbit_type(ship.elements.e)} (e={ship.elements.e:.6f})")

    if args.predict_days is not None:
        for ship_id in sim.ship_ids:
            trajectory = sim.predict(ship_id, args.predict_days)
            status = f"truncated ({trajectory.reason.value})" if trajectory.truncated else "complete"
            print(f"prediction {ship_id}: {len(trajectory)} samples, {status}")
            report = sim.intersections(ship_id, args.predict_days)
            for event in report:
                print(
                    f"  {event.kind.value:16s} {event.target:8s} t={event.time:.3f}"
                    f" d={event.distance:.4f} AU"
                )
            if report.partial:
                print("  (partial results)")

    if args.out is not None and result.time is not None:
        assert result.positions is not None
        np.savez_compressed(
            args.out,
            time=result.time,
            ship_ids=np.array(list(result.positions), dtype=str),
            **{f"pos_{ship_id}": pos for ship_id, pos in result.positions.items()},
        )
        print("saved samples to:", args.out)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
