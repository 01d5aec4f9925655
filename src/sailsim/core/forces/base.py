"""Thrust model interfaces."""

from __future__ import annotations

from typing import Protocol

import numpy as np

from ..math.vector import ArrayF
from ..ship import PropulsionConfig, ShipState
from ..state.frames import StateVector


class ThrustModel(Protocol):
    def acceleration(
        self, ship: ShipState, propulsion: PropulsionConfig, helio: StateVector
    ) -> ArrayF:
        """Return thrust acceleration (AU/day^2, heliocentric axes) as (3,)."""


class NoThrust:
    """Ballistic coasting."""

    def acceleration(
        self, ship: ShipState, propulsion: PropulsionConfig, helio: StateVector
    ) -> ArrayF:
        return np.zeros(3, dtype=np.float64)
