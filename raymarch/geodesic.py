#geodesic.py
import math
from numba.extending import register_jitable
from .ray import R, THETA, PHI, DR, DTHETA, DPHI, E, D2R, D2PHI, clamp_sin, sync_cartesian

# ---
# Schwarzschild null geodesics in (r, theta, phi) with the affine parameter
# lambda.  t is eliminated through the conserved energy: dt/dlambda = E / f.
# ---

# squared radial speed, in units of E^2, beyond which a step is treated as blown up
BLOWUP_FACTOR = 4.0


@register_jitable
def schwarzschild_rhs(r, theta, dr, dtheta, dphi, energy, rs):
    """
    Right-hand side of the geodesic ODE at one state.

    Returns (dr, dtheta, dphi, d2r, d2theta, d2phi).  sin(theta) is clamped
    by clamp_sin before it divides anything.
    """
    if not (math.isfinite(r) and math.isfinite(theta)):
        return math.nan, math.nan, math.nan, math.nan, math.nan, math.nan
    if r <= rs * (1.0 + 1e-12):
        # stage landed on or inside the horizon; keep f away from zero
        r = rs * (1.0 + 1e-12)
    f = 1.0 - rs / r
    dt_dlam = energy / f
    st = math.sin(theta)
    ct = math.cos(theta)
    angular = dtheta * dtheta + st * st * dphi * dphi

    d2r = (-(rs / (2.0 * r * r)) * f * dt_dlam * dt_dlam
           + (rs / (2.0 * r * r * f)) * dr * dr
           + (r - rs) * angular)
    d2theta = -2.0 * dr * dtheta / r + st * ct * dphi * dphi
    d2phi = -2.0 * dr * dphi / r - 2.0 * ct / clamp_sin(st) * dtheta * dphi
    return dr, dtheta, dphi, d2r, d2theta, d2phi


@register_jitable
def geodesic_rhs(ray, rs):
    """schwarzschild_rhs evaluated at a ray record."""
    return schwarzschild_rhs(ray[R], ray[THETA], ray[DR], ray[DTHETA], ray[DPHI], ray[E], rs)


@register_jitable
def _land(ray, r, theta, phi, k1):
    """Finish a step at an intermediate stage that reached the horizon."""
    ray[R] = r
    ray[THETA] = theta
    ray[PHI] = phi
    sync_cartesian(ray)
    ray[D2R] = k1[3]
    ray[D2PHI] = k1[5]


@register_jitable
def rk4_step(ray, dlam, rs):
    """
    Advance *ray* in place by one classical RK4 step of size dlam.

    When an intermediate stage lands on or inside the horizon the ray is
    parked at that stage instead, so the classifier sees the capture.
    """
    r0 = ray[R]
    th0 = ray[THETA]
    ph0 = ray[PHI]
    dr0 = ray[DR]
    dth0 = ray[DTHETA]
    dph0 = ray[DPHI]
    energy = ray[E]

    k1 = schwarzschild_rhs(r0, th0, dr0, dth0, dph0, energy, rs)

    h = 0.5 * dlam
    r = r0 + h * k1[0]
    if r <= rs:
        _land(ray, r, th0 + h * k1[1], ph0 + h * k1[2], k1)
        return
    k2 = schwarzschild_rhs(r, th0 + h * k1[1],
                           dr0 + h * k1[3], dth0 + h * k1[4], dph0 + h * k1[5], energy, rs)
    r = r0 + h * k2[0]
    if r <= rs:
        _land(ray, r, th0 + h * k2[1], ph0 + h * k2[2], k1)
        return
    k3 = schwarzschild_rhs(r, th0 + h * k2[1],
                           dr0 + h * k2[3], dth0 + h * k2[4], dph0 + h * k2[5], energy, rs)
    r = r0 + dlam * k3[0]
    if r <= rs:
        _land(ray, r, th0 + dlam * k3[1], ph0 + dlam * k3[2], k1)
        return
    k4 = schwarzschild_rhs(r, th0 + dlam * k3[1],
                           dr0 + dlam * k3[3], dth0 + dlam * k3[4], dph0 + dlam * k3[5], energy, rs)

    w = dlam / 6.0
    ray[R] = r0 + w * (k1[0] + 2.0 * k2[0] + 2.0 * k3[0] + k4[0])
    ray[THETA] = th0 + w * (k1[1] + 2.0 * k2[1] + 2.0 * k3[1] + k4[1])
    ray[PHI] = ph0 + w * (k1[2] + 2.0 * k2[2] + 2.0 * k3[2] + k4[2])
    ray[DR] = dr0 + w * (k1[3] + 2.0 * k2[3] + 2.0 * k3[3] + k4[3])
    ray[DTHETA] = dth0 + w * (k1[4] + 2.0 * k2[4] + 2.0 * k3[4] + k4[4])
    ray[DPHI] = dph0 + w * (k1[5] + 2.0 * k2[5] + 2.0 * k3[5] + k4[5])

    # outside the horizon the null condition bounds dr^2 by E^2, so a larger
    # radial speed means the step blew up
    blown_up = ray[DR] * ray[DR] > BLOWUP_FACTOR * energy * energy
    if blown_up or not (math.isfinite(ray[R]) and math.isfinite(ray[THETA]) and math.isfinite(ray[PHI])):
        # the classifier treats a NaN radius as captured
        ray[R] = math.nan
        ray[THETA] = math.nan
        ray[PHI] = math.nan
    sync_cartesian(ray)
    # k1 accelerations belong to the pre-step state; diagnostics only
    ray[D2R] = k1[3]
    ray[D2PHI] = k1[5]
