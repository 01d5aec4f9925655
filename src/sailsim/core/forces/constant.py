"""Constant thrust acceleration, scaled by sail deployment."""

from __future__ import annotations

import numpy as np

from ..ship import PropulsionConfig, ShipState
from ..state.frames import StateVector


class ConstantThrust:
    def __init__(self, accel: np.ndarray) -> None:
        self.accel = np.asarray(accel, dtype=np.float64)
        if self.accel.shape != (3,):
            raise ValueError("accel must have shape (3,)")

    def acceleration(
        self, ship: ShipState, propulsion: PropulsionConfig, helio: StateVector
    ) -> np.ndarray:
        return self.accel * propulsion.deployment
