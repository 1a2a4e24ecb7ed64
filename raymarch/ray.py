#ray.py
import math
import numpy as np
from numba.extending import register_jitable

# ----------------------------------------------------------------------------
# Ray record layout.  A ray is a (RAY_SIZE,) float64 array so the same
# functions run in the interpreter, under numba.njit and inside CUDA kernels.
# ----------------------------------------------------------------------------
X = 0
Y = 1
Z = 2
R = 3
THETA = 4
PHI = 5
DR = 6
DTHETA = 7
DPHI = 8
E = 9
L = 10
D2R = 11
D2PHI = 12
# orbital frame: world-space axes of the ray's own spherical coordinates.
# U points at the launch position, N along the launch angular momentum
# (the local polar axis) and V = N x U, so the photon moves on theta = pi/2.
UX = 13
VX = 16
NX = 19
RAY_SIZE = 22

RAY_FIELDS = ('x', 'y', 'z', 'r', 'theta', 'phi', 'dr', 'dtheta', 'dphi', 'E', 'L', 'd2r', 'd2phi',
              'ux', 'uy', 'uz', 'vx', 'vy', 'vz', 'nx', 'ny', 'nz')

# |sin(theta)| never drops below this before it is used as a divisor
SIN_EPSILON = 1e-6


@register_jitable
def clamp_sin(s):
    if abs(s) < SIN_EPSILON:
        if s < 0.0:
            return -SIN_EPSILON
        return SIN_EPSILON
    return s


@register_jitable
def to_world(ray, lx, ly, lz):
    """Rotate a vector from the ray's orbital frame into world coordinates."""
    wx = lx * ray[UX] + ly * ray[VX] + lz * ray[NX]
    wy = lx * ray[UX + 1] + ly * ray[VX + 1] + lz * ray[NX + 1]
    wz = lx * ray[UX + 2] + ly * ray[VX + 2] + lz * ray[NX + 2]
    return wx, wy, wz


@register_jitable
def sync_cartesian(ray):
    """Recompute the world-space Cartesian mirror from (r, theta, phi)."""
    r = ray[R]
    st = math.sin(ray[THETA])
    x, y, z = to_world(ray, r * st * math.cos(ray[PHI]), r * st * math.sin(ray[PHI]), r * math.cos(ray[THETA]))
    ray[X] = x
    ray[Y] = y
    ray[Z] = z


@register_jitable
def _set_frame(ray, ux, uy, uz, nx, ny, nz):
    ray[UX] = ux
    ray[UX + 1] = uy
    ray[UX + 2] = uz
    ray[NX] = nx
    ray[NX + 1] = ny
    ray[NX + 2] = nz
    # V = N x U
    ray[VX] = ny * uz - nz * uy
    ray[VX + 1] = nz * ux - nx * uz
    ray[VX + 2] = nx * uy - ny * ux


@register_jitable
def init_ray(ray, px, py, pz, dx, dy, dz, rs):
    """
    Fill *ray* for a photon at (px, py, pz) travelling along the unit vector
    (dx, dy, dz).  Returns False when the start point is inside the horizon;
    the conserved quantities are then left at zero.

    The spherical coordinates are taken in the ray's orbital frame: the photon
    starts at theta = pi/2, phi = 0 and never comes near the coordinate pole.
    """
    for k in range(RAY_SIZE):
        ray[k] = 0.0
    ray[X] = px
    ray[Y] = py
    ray[Z] = pz

    r = math.sqrt(px * px + py * py + pz * pz)
    ray[R] = r
    if r <= rs:
        _set_frame(ray, 1.0, 0.0, 0.0, 0.0, 0.0, 1.0)
        if r > 0.0:
            ray[THETA] = math.acos(max(-1.0, min(1.0, pz / r)))
            ray[PHI] = math.atan2(py, px)
        return False

    ux = px / r
    uy = py / r
    uz = pz / r
    nx = py * dz - pz * dy
    ny = pz * dx - px * dz
    nz = px * dy - py * dx
    nn = math.sqrt(nx * nx + ny * ny + nz * nz)
    if nn <= 1e-12 * r:
        # radial launch: any plane through the position will do
        ax = abs(ux)
        ay = abs(uy)
        az = abs(uz)
        if ax <= ay and ax <= az:
            nx, ny, nz = 0.0, uz, -uy
        elif ay <= az:
            nx, ny, nz = -uz, 0.0, ux
        else:
            nx, ny, nz = uy, -ux, 0.0
        nn = math.sqrt(nx * nx + ny * ny + nz * nz)
    nx /= nn
    ny /= nn
    nz /= nn
    _set_frame(ray, ux, uy, uz, nx, ny, nz)

    theta = 0.5 * math.pi
    st = math.sin(theta)
    dr = ux * dx + uy * dy + uz * dz
    # at (pi/2, 0) the theta unit vector is -N and the phi unit vector is V
    dtheta = -(nx * dx + ny * dy + nz * dz) / r
    dphi = (ray[VX] * dx + ray[VX + 1] * dy + ray[VX + 2] * dz) / r

    ray[THETA] = theta
    ray[PHI] = 0.0
    ray[DR] = dr
    ray[DTHETA] = dtheta
    ray[DPHI] = dphi

    # null condition: -f t'^2 + r'^2/f + r^2 (theta'^2 + sin^2 theta phi'^2) = 0
    f = 1.0 - rs / r
    dt_dlam = math.sqrt(dr * dr / (f * f) + r * r * (dtheta * dtheta + st * st * dphi * dphi) / f)
    ray[E] = f * dt_dlam
    ray[L] = r * r * st * st * dphi
    return True


@register_jitable
def cartesian_velocity(ray):
    """World-space d(x, y, z)/dlambda from the spherical derivatives."""
    r = ray[R]
    st = math.sin(ray[THETA])
    ct = math.cos(ray[THETA])
    sp = math.sin(ray[PHI])
    cp = math.cos(ray[PHI])
    dr = ray[DR]
    dth = ray[DTHETA]
    dph = ray[DPHI]
    lx = st * cp * dr + r * ct * cp * dth - r * st * sp * dph
    ly = st * sp * dr + r * ct * sp * dth + r * st * cp * dph
    lz = ct * dr - r * st * dth
    return to_world(ray, lx, ly, lz)


@register_jitable
def conserved_quantities(ray, rs):
    """Recompute (E, L) from the current state; drift against ray[E], ray[L] measures integration error."""
    r = ray[R]
    if not (r > rs):
        return math.nan, math.nan
    st = math.sin(ray[THETA])
    f = 1.0 - rs / r
    dr = ray[DR]
    dth = ray[DTHETA]
    dph = ray[DPHI]
    dt_dlam = math.sqrt(dr * dr / (f * f) + r * r * (dth * dth + st * st * dph * dph) / f)
    return f * dt_dlam, r * r * st * st * dph


def new_ray():
    return np.zeros(RAY_SIZE, dtype=np.float64)


def make_ray(position, direction, rs):
    """Convenience wrapper: returns (ray, alive) for numpy 3-vectors."""
    ray = new_ray()
    alive = init_ray(ray, float(position[0]), float(position[1]), float(position[2]),
                     float(direction[0]), float(direction[1]), float(direction[2]), rs)
    return ray, alive


def _field(index, doc):
    def getter(self):
        return float(self.data[index])
    return property(getter, doc=doc)


class RayState:
    """
    Read-only view of one ray record.
    data: (RAY_SIZE,) float64 array laid out as RAY_FIELDS
    rs: Schwarzschild radius the ray was traced against
    """
    x = _field(X, "Cartesian x")
    y = _field(Y, "Cartesian y (disk normal)")
    z = _field(Z, "Cartesian z")
    r = _field(R, "radial coordinate")
    theta = _field(THETA, "polar angle from the orbital normal")
    phi = _field(PHI, "azimuth in the orbital plane, from the launch direction")
    dr = _field(DR, "dr/dlambda")
    dtheta = _field(DTHETA, "dtheta/dlambda")
    dphi = _field(DPHI, "dphi/dlambda")
    E = _field(E, "conserved energy")
    L = _field(L, "conserved angular momentum about the orbital normal")
    d2r = _field(D2R, "k1 radial acceleration of the last step")
    d2phi = _field(D2PHI, "k1 azimuthal acceleration of the last step")

    def __init__(self, data, rs):
        self.data = np.asarray(data, dtype=np.float64)
        self.rs = rs

    @property
    def position(self):
        return self.data[X:Z + 1].copy()

    @property
    def spherical_position(self):
        return self.data[R:PHI + 1].copy()

    @property
    def frame(self):
        """Rows U, V, N of the orbital frame in world coordinates."""
        return self.data[UX:NX + 3].reshape(3, 3).copy()

    @property
    def first_derivatives(self):
        return self.data[DR:DPHI + 1].copy()

    @property
    def second_derivatives(self):
        return np.array([self.data[D2R], self.data[D2PHI]])

    @property
    def crossed_event_horizon(self):
        return not (self.data[R] > self.rs)

    def as_dict(self):
        return {name: float(self.data[k]) for k, name in enumerate(RAY_FIELDS)}

    def __repr__(self):
        return f"RayState(r={self.r:.6g}, theta={self.theta:.6g}, phi={self.phi:.6g}, E={self.E:.6g}, L={self.L:.6g})"
