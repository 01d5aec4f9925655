"""Rotation helpers for orbital frames."""

from __future__ import annotations

from math import cos, sin

import numpy as np

from .vector import DEGENERATE_TOL, ArrayF, unit


def rot_x(angle: float) -> ArrayF:
    c, s = cos(angle), sin(angle)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]], dtype=np.float64)


def rot_z(angle: float) -> ArrayF:
    c, s = cos(angle), sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]], dtype=np.float64)


def perifocal_to_inertial(inc: float, raan: float, argp: float) -> ArrayF:
    """Return R = Rz(raan) @ Rx(inc) @ Rz(argp).

    Columns are the periapsis direction P, the in-plane normal Q and the orbit
    normal W expressed in the parent frame.
    """
    return rot_z(raan) @ rot_x(inc) @ rot_z(argp)


def rotate_about_axis(v: ArrayF, axis: ArrayF, angle: float) -> ArrayF:
    """Rotate ``v`` by ``angle`` about ``axis`` (right-handed, Rodrigues)."""
    v = np.asarray(v, dtype=np.float64)
    k = unit(np.asarray(axis, dtype=np.float64))
    c, s = cos(angle), sin(angle)
    return v * c + np.cross(k, v) * s + k * float(np.dot(k, v)) * (1.0 - c)


def rtn_basis(pos: ArrayF, vel: ArrayF) -> ArrayF:
    """Return rows (R, T, N): radial, transverse and orbit-normal unit vectors.

    A degenerate angular momentum falls back to +z for N.
    """
    r_hat = unit(np.asarray(pos, dtype=np.float64))
    h = np.cross(pos, vel)
    hmag = float(np.linalg.norm(h))
    if hmag < DEGENERATE_TOL:
        n_hat = np.array([0.0, 0.0, 1.0])
        if abs(float(np.dot(r_hat, n_hat))) > 1.0 - DEGENERATE_TOL:
            n_hat = np.array([0.0, 1.0, 0.0])
        n_hat = unit(n_hat - r_hat * float(np.dot(r_hat, n_hat)))
    else:
        n_hat = h / hmag
    t_hat = np.cross(n_hat, r_hat)
    return np.vstack([r_hat, t_hat, n_hat])
