#shading.py
import math
from numba.extending import register_jitable
from .ray import X, Z, R, cartesian_velocity
from .termination import CAPTURED, DISK_HIT, ESCAPED, STEP_EXHAUSTED, crossing_point

# ----------------------------------------------------------------------------
# Calibration constants.  They are tuned for a plausible picture, not derived
# from radiative transfer; only the qualitative trends matter (hotter and
# brighter inwards, darker towards the horizon).
# ----------------------------------------------------------------------------

# thin-disk temperature profile T = T0 (rs/r)^0.75, clamped
T_MIN = 1000.0
T_MAX = 100000.0
# blackbody approximation: channel = 1 - exp(-T / T_REF)
T_REF_R = 2000.0
T_REF_G = 6000.0
T_REF_B = 12000.0

REDSHIFT_EPSILON = 1e-4
DOPPLER_STRENGTH = 0.6

TURBULENCE_SCALE = 1.5        # noise cells per rs
TURBULENCE_OCTAVES = 3
TURBULENCE_AMPLITUDE = 0.5
TURBULENCE_DRIFT = 0.25       # noise drift per unit of disk time
KEPLER_SPIN = 0.5             # pattern rotation rate at r = rs

DISK_OPACITY = 20.0           # optical depth per rs of slab thickness
MIN_INCIDENCE = 0.05

GLOW_R = 0.03
GLOW_G = 0.008
GLOW_B = 0.002
GLOW_SCALE = 10.0             # e-folding travel distance, in rs

BACKGROUND_R = 0.002
BACKGROUND_G = 0.003
BACKGROUND_B = 0.008

STAR_SCALE_0 = 80.0
STAR_SCALE_1 = 200.0
STAR_SCALE_2 = 500.0
STAR_THRESHOLD = 0.996
STAR_RADIUS = 0.35

BEAM_INTENSITY = 0.01
BEAM_FALLOFF = 2.0
BEAM_LENSING_MAX = 8.0
BEAM_FREQUENCY = 2.0
BEAM_MAX = 1.5
BEAM_R = 1.0
BEAM_G = 0.55
BEAM_B = 0.25


# ------------------------------ helpers ------------------------------------

@register_jitable
def fract(v):
    return v - math.floor(v)


@register_jitable
def smoothstep(edge0, edge1, v):
    if edge1 <= edge0:
        if v < edge0:
            return 0.0
        return 1.0
    t = (v - edge0) / (edge1 - edge0)
    t = max(0.0, min(1.0, t))
    return t * t * (3.0 - 2.0 * t)


@register_jitable
def hash3(ix, iy, iz):
    """Deterministic pseudo-random value in [0, 1) for an integer lattice point."""
    return fract(math.sin(ix * 127.1 + iy * 311.7 + iz * 74.7) * 43758.5453)


@register_jitable
def value_noise(px, py, pz):
    """Smooth 3-D value noise in [0, 1)."""
    ix = math.floor(px)
    iy = math.floor(py)
    iz = math.floor(pz)
    fx = px - ix
    fy = py - iy
    fz = pz - iz
    ux = fx * fx * (3.0 - 2.0 * fx)
    uy = fy * fy * (3.0 - 2.0 * fy)
    uz = fz * fz * (3.0 - 2.0 * fz)

    c000 = hash3(ix, iy, iz)
    c100 = hash3(ix + 1.0, iy, iz)
    c010 = hash3(ix, iy + 1.0, iz)
    c110 = hash3(ix + 1.0, iy + 1.0, iz)
    c001 = hash3(ix, iy, iz + 1.0)
    c101 = hash3(ix + 1.0, iy, iz + 1.0)
    c011 = hash3(ix, iy + 1.0, iz + 1.0)
    c111 = hash3(ix + 1.0, iy + 1.0, iz + 1.0)

    x00 = c000 + (c100 - c000) * ux
    x10 = c010 + (c110 - c010) * ux
    x01 = c001 + (c101 - c001) * ux
    x11 = c011 + (c111 - c011) * ux
    y0 = x00 + (x10 - x00) * uy
    y1 = x01 + (x11 - x01) * uy
    return y0 + (y1 - y0) * uz


@register_jitable
def fbm(px, py, pz):
    total = 0.0
    amp = 0.5
    norm = 0.0
    freq = 1.0
    for _ in range(TURBULENCE_OCTAVES):
        total += amp * value_noise(px * freq, py * freq, pz * freq)
        norm += amp
        freq *= 2.0
        amp *= 0.5
    return total / norm


@register_jitable
def redshift_factor(r, rs):
    """sqrt(1 - rs/r), floored at sqrt(REDSHIFT_EPSILON)."""
    return math.sqrt(max(REDSHIFT_EPSILON, 1.0 - rs / r))


# ------------------------------ accretion disk -----------------------------

@register_jitable
def disk_temperature(r, rs, t0):
    t = t0 * (rs / r) ** 0.75
    return max(T_MIN, min(T_MAX, t))


@register_jitable
def blackbody_rgb(temperature):
    """Monotonic per-channel saturation curves; red saturates first, blue last."""
    return (1.0 - math.exp(-temperature / T_REF_R),
            1.0 - math.exp(-temperature / T_REF_G),
            1.0 - math.exp(-temperature / T_REF_B))


@register_jitable
def doppler_factor(cx, cz, rho, nx, ny, nz, rs):
    """
    Brightening of the approaching side of the disk.  The gas orbits +y with
    Keplerian speed sqrt(rs/rho); (nx, ny, nz) is the unit ray direction, so
    the light travels along its negative.
    """
    if rho <= 0.0:
        return 1.0
    speed = math.sqrt(rs / rho)
    vx = -cz / rho
    vz = cx / rho
    mu = -(vx * nx + vz * nz)
    return max(0.0, 1.0 + DOPPLER_STRENGTH * speed * mu)


@register_jitable
def turbulence(cx, cz, rho, rs, disk_time):
    """Slowly rotating, deterministic brightness modulation around 1."""
    spin = KEPLER_SPIN * disk_time * (rs / rho) ** 1.5
    cs = math.cos(spin)
    sn = math.sin(spin)
    qx = (cx * cs - cz * sn) / rs * TURBULENCE_SCALE
    qz = (cx * sn + cz * cs) / rs * TURBULENCE_SCALE
    n = fbm(qx, qz, TURBULENCE_DRIFT * disk_time)
    return 1.0 - 0.5 * TURBULENCE_AMPLITUDE + TURBULENCE_AMPLITUDE * n


@register_jitable
def slab_opacity(thickness, ny, rs):
    """Fraction of light emitted along a path crossing the disk slab at incidence |ny|."""
    incidence = max(abs(ny), MIN_INCIDENCE)
    return 1.0 - math.exp(-DISK_OPACITY * (thickness / rs) / incidence)


@register_jitable
def disk_color(cx, cz, nx, ny, nz, rs, inner, outer, thickness, t0, disk_time):
    rho = math.sqrt(cx * cx + cz * cz)
    if rho <= 0.0:
        return 0.0, 0.0, 0.0
    cr, cg, cb = blackbody_rgb(disk_temperature(rho, rs, t0))
    scale = redshift_factor(rho, rs)
    scale *= doppler_factor(cx, cz, rho, nx, ny, nz, rs)
    scale *= turbulence(cx, cz, rho, rs, disk_time)
    scale *= 1.0 - smoothstep(inner, outer, rho)
    scale *= slab_opacity(thickness, ny, rs)
    return cr * scale, cg * scale, cb * scale


# ------------------------------ horizon ------------------------------------

@register_jitable
def horizon_glow(travelled, rs):
    k = math.exp(-travelled / (GLOW_SCALE * rs))
    return GLOW_R * k, GLOW_G * k, GLOW_B * k


# ------------------------------ background ---------------------------------

@register_jitable
def star_layer(dx, dy, dz, scale):
    px = dx * scale
    py = dy * scale
    pz = dz * scale
    ix = math.floor(px)
    iy = math.floor(py)
    iz = math.floor(pz)
    h = hash3(ix, iy, iz)
    if h <= STAR_THRESHOLD:
        return 0.0
    # jittered star centre inside the cell
    ox = ix + 0.5 + 0.6 * (hash3(iy, iz, ix) - 0.5)
    oy = iy + 0.5 + 0.6 * (hash3(iz, ix, iy) - 0.5)
    oz = iz + 0.5 + 0.6 * (hash3(ix + 17.0, iy, iz) - 0.5)
    d = math.sqrt((px - ox) ** 2 + (py - oy) ** 2 + (pz - oz) ** 2)
    if d >= STAR_RADIUS:
        return 0.0
    falloff = 1.0 - d / STAR_RADIUS
    return falloff * falloff * (h - STAR_THRESHOLD) / (1.0 - STAR_THRESHOLD)


@register_jitable
def starfield(dx, dy, dz):
    """Sparse point stars for a unit direction; zero for most directions."""
    s = star_layer(dx, dy, dz, STAR_SCALE_0)
    s += 0.6 * star_layer(dx, dy, dz, STAR_SCALE_1)
    s += 0.35 * star_layer(dx, dy, dz, STAR_SCALE_2)
    return s


@register_jitable
def background_color(dx, dy, dz, r_min, rs):
    s = starfield(dx, dy, dz)
    g = redshift_factor(r_min, rs)
    # slightly blue-white stars
    return ((BACKGROUND_R + 0.9 * s) * g,
            (BACKGROUND_G + 0.95 * s) * g,
            (BACKGROUND_B + s) * g)


# ------------------------------ light beam ---------------------------------

@register_jitable
def beam_weight(ray, rs, beam_radius, dlam, time):
    """Light-beam energy picked up during one marching step near the horizon."""
    r = ray[R]
    if not (r < beam_radius) or not (r > rs):
        return 0.0
    proximity = (r - rs) / rs
    attenuation = math.exp(-BEAM_FALLOFF * proximity)
    lensing = min(1.0 + 1.0 / max(proximity, 1e-6), BEAM_LENSING_MAX)
    animation = 0.75 + 0.25 * math.sin(BEAM_FREQUENCY * time + 3.0 * math.atan2(ray[Z], ray[X]))
    return BEAM_INTENSITY * attenuation * lensing * animation * dlam / rs


@register_jitable
def beam_rgb(energy):
    if not math.isfinite(energy):
        return 0.0, 0.0, 0.0
    e = min(max(energy, 0.0), BEAM_MAX)
    return BEAM_R * e, BEAM_G * e, BEAM_B * e


# ------------------------------ dispatcher ---------------------------------

@register_jitable
def _safe(v):
    if not math.isfinite(v) or v < 0.0:
        return 0.0
    return v


@register_jitable
def shade(status, ray, prev_x, prev_y, prev_z, steps, r_min, beam, scene_rs, dlam,
          inner, outer, thickness, t0, disk_time):
    """
    Final RGB for a terminated ray.  Every channel comes back finite and
    non-negative.
    """
    br, bg, bb = beam_rgb(beam)
    if status == DISK_HIT:
        cx, cz = crossing_point(prev_x, prev_y, prev_z, ray)
        vx, vy, vz = cartesian_velocity(ray)
        n = math.sqrt(vx * vx + vy * vy + vz * vz)
        if n > 0.0 and math.isfinite(n):
            vx /= n
            vy /= n
            vz /= n
        else:
            vx, vy, vz = 0.0, -1.0, 0.0
        cr, cg, cb = disk_color(cx, cz, vx, vy, vz, scene_rs, inner, outer, thickness, t0, disk_time)
    elif status == ESCAPED or status == STEP_EXHAUSTED:
        vx, vy, vz = cartesian_velocity(ray)
        n = math.sqrt(vx * vx + vy * vy + vz * vz)
        if n > 0.0 and math.isfinite(n):
            cr, cg, cb = background_color(vx / n, vy / n, vz / n, r_min, scene_rs)
        else:
            cr, cg, cb = background_color(0.0, 0.0, 0.0, r_min, scene_rs)
    else:
        cr, cg, cb = horizon_glow(steps * dlam, scene_rs)
    return _safe(cr + br), _safe(cg + bg), _safe(cb + bb)
