#termination.py
import math
from enum import IntEnum
from numba.extending import register_jitable
from .ray import X, Y, Z, R

# Status codes as plain ints so kernels can compare them directly
ALIVE = 0
CAPTURED = 1
DISK_HIT = 2
ESCAPED = 3
STEP_EXHAUSTED = 4


class RayStatus(IntEnum):
    ALIVE = ALIVE
    CAPTURED = CAPTURED
    DISK_HIT = DISK_HIT
    ESCAPED = ESCAPED
    STEP_EXHAUSTED = STEP_EXHAUSTED

    @property
    def label(self):
        return self.name.lower()


@register_jitable
def crossing_point(prev_x, prev_y, prev_z, ray):
    """(x, z) where the segment from the previous position to *ray* pierces y = 0."""
    dy = prev_y - ray[Y]
    if dy == 0.0:
        return ray[X], ray[Z]
    t = prev_y / dy
    return prev_x + t * (ray[X] - prev_x), prev_z + t * (ray[Z] - prev_z)


@register_jitable
def classify(ray, prev_x, prev_y, prev_z, rs, disk_inner, disk_outer, escape_radius):
    """
    Terminal-state test for one marching iteration, in priority order:
    horizon capture, disk crossing, escape.  Returns (status, crossing radius).
    A NaN radius counts as captured.
    """
    r = ray[R]
    if not (r > rs):
        return CAPTURED, -1.0
    if prev_y * ray[Y] < 0.0:
        cx, cz = crossing_point(prev_x, prev_y, prev_z, ray)
        rho = math.sqrt(cx * cx + cz * cz)
        if rho >= disk_inner and rho <= disk_outer:
            return DISK_HIT, rho
    if r > escape_radius:
        return ESCAPED, -1.0
    return ALIVE, -1.0
