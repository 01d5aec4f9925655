"""Vector utilities for NumPy arrays.

All vectors are expected to be shaped (..., 3).
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


ArrayF = NDArray[np.float64]

# Below this magnitude a direction is treated as undefined.
DEGENERATE_TOL = 1e-10


def vec3(v: object, ctx: str = "vector") -> ArrayF:
    """Return a float64 copy of ``v`` validated to shape (3,)."""
    arr = np.array(v, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"{ctx} must have shape (3,)")
    return arr


def unit(v: ArrayF, axis: int = -1) -> ArrayF:
    """Return unit vectors with safe handling of zero vectors."""
    v = np.asarray(v, dtype=np.float64)
    n = np.linalg.norm(v, axis=axis, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        u = np.where(n > 0.0, v / n, 0.0)
    return u


def unit_or(v: ArrayF, fallback: ArrayF, tol: float = DEGENERATE_TOL) -> ArrayF:
    """Return the unit vector of ``v`` or ``fallback`` when ``|v| < tol``."""
    n = float(np.linalg.norm(v))
    if n < tol:
        return np.asarray(fallback, dtype=np.float64)
    return np.asarray(v, dtype=np.float64) / n


def is_finite(*arrays: ArrayF) -> bool:
    return all(bool(np.all(np.isfinite(a))) for a in arrays)
