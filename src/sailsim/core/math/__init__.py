"""Math utilities namespace."""

from .rotation import (  # noqa: F401
    perifocal_to_inertial,
    rot_x,
    rot_z,
    rotate_about_axis,
    rtn_basis,
)
from .vector import is_finite, unit, unit_or, vec3  # noqa: F401
