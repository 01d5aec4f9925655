from __future__ import annotations

import numpy as np
import pytest

from sailsim.core.constants import J2000
from sailsim.core.state import HELIOCENTRIC, body_frame
from sailsim.io.catalog import SOI_RADII, default_bodies, elements_from_degrees, radius_au


def test_default_bodies() -> None:
    bodies = default_bodies()
    assert bodies.names[0] == "SOL"
    assert len(bodies) == 10
    assert "LUNA" in bodies
    assert len(default_bodies(include_moon=False)) == 9
    names = {b.name for b in bodies.soi_candidates()}
    assert names == set(SOI_RADII)


def test_earth_at_j2000() -> None:
    bodies = default_bodies()
    earth = bodies.heliocentric_state("EARTH", J2000)
    assert 0.98 < earth.radius < 1.02
    assert earth.frame == HELIOCENTRIC
    # Near perihelion in early January.
    assert earth.radius < 0.99


def test_luna_is_geocentric() -> None:
    bodies = default_bodies()
    assert bodies.parent_frame("LUNA") == body_frame("EARTH")
    earth = bodies.heliocentric_state("EARTH", J2000 + 3.0)
    luna = bodies.heliocentric_state("LUNA", J2000 + 3.0)
    d = float(np.linalg.norm(luna.pos - earth.pos))
    assert 0.00257 * (1 - 0.0549) - 1e-9 <= d <= 0.00257 * (1 + 0.0549) + 1e-9
    assert bodies.get("LUNA").soi_radius == 0.0


def test_elements_from_degrees_wraps_angles() -> None:
    el = elements_from_degrees((1.0, 0.1, 0.0, -90.0, 450.0, 390.0), 1.0)
    assert el.raan == pytest.approx(1.5 * np.pi)
    assert el.argp == pytest.approx(0.5 * np.pi)
    assert el.M0 == pytest.approx(np.pi / 6.0)
    assert el.epoch == J2000


def test_radius_au() -> None:
    assert radius_au("EARTH") == pytest.approx(6371.0 / 149_597_870.7)
