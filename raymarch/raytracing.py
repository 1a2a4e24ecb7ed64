# raytracing.py
import math
import time as _time
import logging
import numpy as np
import pandas as pd
from concurrent.futures import ProcessPoolExecutor, as_completed
from numba.extending import register_jitable
from tqdm import tqdm

from .constants import EngineConfig
from .ray import X, Y, Z, R, RAY_SIZE, RAY_FIELDS, RayState, init_ray
from .geodesic import rk4_step
from .termination import ALIVE, CAPTURED, ESCAPED, STEP_EXHAUSTED, RayStatus, classify
from .shading import shade, beam_weight
from .scene import (C_POS, C_RIGHT, C_UP, C_FORWARD, C_TAN_HALF_FOV, C_ASPECT,
                    S_RS, S_DLAMBDA, S_ESCAPE_R, S_DISK_INNER, S_DISK_OUTER, S_DISK_THICKNESS,
                    S_DISK_TEMPERATURE, S_DISK_TIME, S_TIME, S_BEAM_RADIUS,
                    pack_camera, pack_scene)

BACKENDS = ('python', 'cpu', 'cuda')
NO_TRAIL = np.empty((0, 3), dtype=np.float64)


# =============================================================================
# Per-pixel core (shared by every backend)
# =============================================================================

@register_jitable
def pixel_direction(camera, width, height, col, row):
    """Unit ray direction through the centre of pixel (row, col); row 0 is the top."""
    u = (2.0 * (col + 0.5) / width - 1.0) * camera[C_ASPECT] * camera[C_TAN_HALF_FOV]
    v = (1.0 - 2.0 * (row + 0.5) / height) * camera[C_TAN_HALF_FOV]
    dx = u * camera[C_RIGHT] + v * camera[C_UP] + camera[C_FORWARD]
    dy = u * camera[C_RIGHT + 1] + v * camera[C_UP + 1] + camera[C_FORWARD + 1]
    dz = u * camera[C_RIGHT + 2] + v * camera[C_UP + 2] + camera[C_FORWARD + 2]
    n = math.sqrt(dx * dx + dy * dy + dz * dz)
    return dx / n, dy / n, dz / n


@register_jitable
def march(ray, scene, max_steps, trail):
    """
    Integrate an initialised ray until it terminates.

    Each iteration takes one RK4 step, classifies the new state and, while the
    ray is still alive, adds the light-beam contribution.  The first
    trail.shape[0] positions are written to *trail* (pass a (0, 3) array to skip).

    Returns (status, steps, r_min, beam, prev_x, prev_y, prev_z) where prev_*
    is the position before the final step.
    """
    rs = scene[S_RS]
    dlam = scene[S_DLAMBDA]
    inner = scene[S_DISK_INNER]
    outer = scene[S_DISK_OUTER]
    escape_radius = scene[S_ESCAPE_R]
    beam_radius = scene[S_BEAM_RADIUS]
    anim_time = scene[S_TIME]
    n_trail = trail.shape[0]

    r_min = ray[R]
    beam = 0.0
    px = ray[X]
    py = ray[Y]
    pz = ray[Z]
    if n_trail > 0:
        trail[0, 0] = px
        trail[0, 1] = py
        trail[0, 2] = pz
    if not (ray[R] > rs):
        return CAPTURED, 0, r_min, beam, px, py, pz

    steps = 0
    while steps < max_steps:
        px = ray[X]
        py = ray[Y]
        pz = ray[Z]
        rk4_step(ray, dlam, rs)
        steps += 1
        if steps < n_trail:
            trail[steps, 0] = ray[X]
            trail[steps, 1] = ray[Y]
            trail[steps, 2] = ray[Z]
        if ray[R] < r_min:
            r_min = ray[R]
        status, _ = classify(ray, px, py, pz, rs, inner, outer, escape_radius)
        if status != ALIVE:
            return status, steps, r_min, beam, px, py, pz
        beam += beam_weight(ray, rs, beam_radius, dlam, anim_time)
    return STEP_EXHAUSTED, steps, r_min, beam, px, py, pz


@register_jitable
def trace_pixel(camera, scene, width, height, max_steps, idx, ray, color, trail):
    """Initialise, march and shade the ray of flat pixel index *idx* (row-major)."""
    row = idx // width
    col = idx - row * width
    dx, dy, dz = pixel_direction(camera, width, height, col, row)
    init_ray(ray, camera[C_POS], camera[C_POS + 1], camera[C_POS + 2], dx, dy, dz, scene[S_RS])
    status, steps, r_min, beam, px, py, pz = march(ray, scene, max_steps, trail)
    cr, cg, cb = shade(status, ray, px, py, pz, steps, r_min, beam,
                       scene[S_RS], scene[S_DLAMBDA], scene[S_DISK_INNER], scene[S_DISK_OUTER],
                       scene[S_DISK_THICKNESS], scene[S_DISK_TEMPERATURE], scene[S_DISK_TIME])
    color[0] = cr
    color[1] = cg
    color[2] = cb
    color[3] = 1.0
    return status, steps, r_min


# =============================================================================
# Frame result
# =============================================================================

class FrameResult:
    """
    Output of one frame.
    colors: (H, W, 4) float64 RGBA
    rays: (H, W, RAY_SIZE) final ray records
    status: (H, W) int8 RayStatus codes
    steps: (H, W) int32 marching iterations
    r_min: (H, W) closest approach radius
    """
    def __init__(self, colors, rays, status, steps, r_min, rs):
        self.colors = colors
        self.rays = rays
        self.status = status
        self.steps = steps
        self.r_min = r_min
        self.rs = rs

    @property
    def image_size(self):
        return self.colors.shape[:2]

    def ray_state(self, row, col):
        return RayState(self.rays[row, col], self.rs)

    def status_counts(self):
        return {s.label: int(np.count_nonzero(self.status == s)) for s in RayStatus if s != RayStatus.ALIVE}

    def black_hole_hits(self):
        return int(np.count_nonzero(self.status == CAPTURED))

    def average_escape_distance(self):
        """Mean final radius of rays that left towards the sky (escaped or out of steps)."""
        mask = (self.status == ESCAPED) | (self.status == STEP_EXHAUSTED)
        if not np.any(mask):
            return 0.0
        return float(np.mean(self.rays[..., R][mask]))

    def to_dataframe(self):
        """One row per pixel: indices, termination, marching stats, final ray state and colour."""
        h, w = self.image_size
        rows, cols = np.indices((h, w))
        data = {
            'i': rows.ravel(),
            'j': cols.ravel(),
            'collision': [RayStatus(int(s)).label for s in self.status.ravel()],
            'steps': self.steps.ravel(),
            'r_min': self.r_min.ravel(),
        }
        flat_rays = self.rays.reshape(-1, RAY_SIZE)
        for k, name in enumerate(RAY_FIELDS):
            data[name] = flat_rays[:, k]
        flat_colors = self.colors.reshape(-1, 4)
        for k, name in enumerate(('red', 'green', 'blue')):
            data[name] = flat_colors[:, k]
        return pd.DataFrame(data)


def allocate_buffers(n_pixels):
    colors = np.zeros((n_pixels, 4), dtype=np.float64)
    rays = np.zeros((n_pixels, RAY_SIZE), dtype=np.float64)
    status = np.zeros(n_pixels, dtype=np.int8)
    steps = np.zeros(n_pixels, dtype=np.int32)
    r_min = np.zeros(n_pixels, dtype=np.float64)
    return colors, rays, status, steps, r_min


# =============================================================================
# Interpreter backend
# =============================================================================

def trace_rows(camera_block, scene_block, width, height, max_steps, rows):
    """Trace whole image rows in the interpreter. Returns buffers covering *rows* only."""
    n = len(rows) * width
    colors, rays, status, steps, r_min = allocate_buffers(n)
    k = 0
    for row in rows:
        for col in range(width):
            st, ns, rm = trace_pixel(camera_block, scene_block, width, height, max_steps,
                                     row * width + col, rays[k], colors[k], NO_TRAIL)
            status[k] = st
            steps[k] = ns
            r_min[k] = rm
            k += 1
    return colors, rays, status, steps, r_min


def render_python(camera_block, scene_block, width, height, max_steps, workers=1, show_progress=True):
    colors, rays, status, steps, r_min = allocate_buffers(width * height)

    def _store(rows, chunk):
        lo = rows[0] * width
        hi = (rows[-1] + 1) * width
        for dst, src in zip((colors, rays, status, steps, r_min), chunk):
            dst[lo:hi] = src

    if workers <= 1:
        for row in tqdm(range(height), desc="Tracing rows", unit="row", disable=not show_progress):
            _store([row], trace_rows(camera_block, scene_block, width, height, max_steps, [row]))
    else:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(trace_rows, camera_block, scene_block, width, height, max_steps, [row]): row
                       for row in range(height)}
            for fut in tqdm(as_completed(futures), total=height, desc="Tracing rows", unit="row",
                            disable=not show_progress):
                _store([futures[fut]], fut.result())
    return colors, rays, status, steps, r_min


# =============================================================================
# Public entry points
# =============================================================================

def render_frame(camera, black_hole, disk, config=None, time=0.0, backend='python',
                 workers=1, show_progress=True):
    """
    Render one frame.  Every pixel is independent; the parameter blocks are
    packed once and never written while the frame is in flight.

    backend: 'python' (interpreter, optional process pool), 'cpu' (numba
    parallel) or 'cuda' (numba CUDA).
    Returns a FrameResult.
    """
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend '{backend}' (expected one of {BACKENDS})")
    if config is None:
        config = EngineConfig(rs=black_hole.rs)
    camera_block = pack_camera(camera)
    scene_block = pack_scene(black_hole, disk, config, time)
    width, height = camera.width, camera.height
    max_steps = config.step_budget(camera.moving)
    if np.linalg.norm(camera.position) + config.affine_reach(camera.moving) < config.escape_radius:
        logging.warning(f"Step budget covers {config.affine_reach(camera.moving):.4g} of affine path; "
                        f"no ray from this camera can reach escape_radius={config.escape_radius:.4g}")

    logging.info(f"Rendering {width}x{height} frame on '{backend}' backend (max_steps={max_steps}, moving={camera.moving})")
    start = _time.perf_counter()
    if backend == 'python':
        buffers = render_python(camera_block, scene_block, width, height, max_steps,
                                workers=workers, show_progress=show_progress)
    elif backend == 'cpu':
        from .cpu_backend import render_cpu
        buffers = render_cpu(camera_block, scene_block, width, height, max_steps)
    else:
        from .cuda_geodesic import render_cuda
        buffers = render_cuda(camera_block, scene_block, width, height, max_steps)
    elapsed = _time.perf_counter() - start

    colors, rays, status, steps, r_min = buffers
    result = FrameResult(colors.reshape(height, width, 4), rays.reshape(height, width, RAY_SIZE),
                         status.reshape(height, width), steps.reshape(height, width),
                         r_min.reshape(height, width), config.rs)
    logging.info(f"Frame done in {elapsed:.2f}s: {result.status_counts()}")
    return result


def trace_trajectory(camera, black_hole, disk, row, col, config=None, time=0.0, max_points=1000):
    """
    March the ray of pixel (row, col) in the interpreter and keep its path.
    Returns (points (N, 3), RayStatus).  Long paths are down-sampled to at
    most *max_points* evenly spaced samples.
    """
    if config is None:
        config = EngineConfig(rs=black_hole.rs)
    camera_block = pack_camera(camera)
    scene_block = pack_scene(black_hole, disk, config, time)
    max_steps = config.step_budget(camera.moving)

    ray = np.zeros(RAY_SIZE, dtype=np.float64)
    color = np.zeros(4, dtype=np.float64)
    trail = np.full((max_steps + 1, 3), np.nan, dtype=np.float64)
    status, steps, _ = trace_pixel(camera_block, scene_block, camera.width, camera.height, max_steps,
                                   row * camera.width + col, ray, color, trail)
    points = trail[:steps + 1]
    points = points[np.all(np.isfinite(points), axis=1)]
    if points.shape[0] > max_points:
        keep = np.linspace(0, points.shape[0] - 1, num=max_points, dtype=np.int64)
        points = points[keep]
    return points, RayStatus(int(status))
