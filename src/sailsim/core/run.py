"""Simulation run loop with optional sampling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

from .simulation import Simulation, SimulationSnapshot


@dataclass(slots=True)
class RunResult:
    final: SimulationSnapshot
    time: np.ndarray | None = None
    positions: dict[str, np.ndarray] | None = None
    frames: dict[str, list[str]] | None = None


def run(
    simulation: Simulation,
    dt: float,
    steps: int,
    sample_every: int | None = None,
    callback: Callable[[int, SimulationSnapshot], None] | None = None,
) -> RunResult:
    """Advance ``simulation`` ``steps`` times by ``dt`` days.

    When ``sample_every`` is set, heliocentric ship positions (AU) and frames
    are recorded at step 0 and every ``sample_every`` steps.
    """
    if sample_every is not None and sample_every <= 0:
        raise ValueError("sample_every must be > 0")
    if steps < 0:
        raise ValueError("steps must be >= 0")

    ids = simulation.ship_ids
    times: list[float] = []
    positions: dict[str, list[np.ndarray]] = {ship_id: [] for ship_id in ids}
    frames: dict[str, list[str]] = {ship_id: [] for ship_id in ids}

    def sample() -> None:
        times.append(simulation.time)
        pos = simulation.ship_positions()
        for idx, ship_id in enumerate(ids):
            positions[ship_id].append(pos[idx].copy())
            frames[ship_id].append(str(simulation.ship(ship_id).frame))

    if sample_every is not None:
        sample()

    snapshot = simulation.snapshot()
    for step in range(1, steps + 1):
        snapshot = simulation.advance(dt)
        if callback is not None:
            callback(step, snapshot)
        if sample_every is not None and step % sample_every == 0:
            sample()

    if sample_every is None:
        return RunResult(final=snapshot)

    return RunResult(
        final=snapshot,
        time=np.asarray(times, dtype=np.float64),
        positions={
            ship_id: np.asarray(values, dtype=np.float64).reshape(-1, 3)
            for ship_id, values in positions.items()
        },
        frames=frames,
    )
