"""State containers."""

from .elements import OrbitalElements  # noqa: F401
from .frames import (  # noqa: F401
    HELIOCENTRIC,
    Frame,
    StateVector,
    body_frame,
    require_frame,
    require_same_frame,
)
