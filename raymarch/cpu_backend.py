# cpu_backend.py
import logging
import numpy as np
from numba import njit, prange

from .raytracing import trace_pixel, allocate_buffers

logging.getLogger('numba').setLevel(logging.ERROR)


@njit(parallel=True)
def _render_kernel(camera, scene, width, height, max_steps, colors, rays, status, steps, r_min):
    n = width * height
    for idx in prange(n):
        # one-slot scratch trail per pixel; the frame path keeps no trajectory
        trail = np.empty((1, 3), dtype=np.float64)
        st, ns, rm = trace_pixel(camera, scene, width, height, max_steps, idx, rays[idx], colors[idx], trail)
        status[idx] = st
        steps[idx] = ns
        r_min[idx] = rm


def render_cpu(camera_block, scene_block, width, height, max_steps):
    """Trace every pixel with numba's parallel CPU loop. Returns flat buffers."""
    colors, rays, status, steps, r_min = allocate_buffers(width * height)
    _render_kernel(np.ascontiguousarray(camera_block, dtype=np.float64),
                   np.ascontiguousarray(scene_block, dtype=np.float64),
                   int(width), int(height), int(max_steps),
                   colors, rays, status, steps, r_min)
    return colors, rays, status, steps, r_min
