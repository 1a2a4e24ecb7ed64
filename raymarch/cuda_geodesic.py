# cuda_geodesic.py
import numpy as np
from numba import cuda, float64
import logging

from .raytracing import trace_pixel, allocate_buffers
from .ray import RAY_SIZE

logging.getLogger('numba').setLevel(logging.ERROR)

# ----------------------------------------------------------------------------
# GPU frame kernel.  One thread per pixel; the ray record and the one-slot
# trail live in thread-local memory and the same register_jitable core as the
# CPU paths does the integration, termination and shading.
# ----------------------------------------------------------------------------

THREADS_PER_BLOCK = 32


@cuda.jit
def _render_kernel(camera, scene, width, height, max_steps, colors, rays, status, steps, r_min):
    """
    * camera  : (CAMERA_SIZE,) packed camera block
    * scene   : (SCENE_SIZE,) packed scene block
    * colors  : (N, 4) float64 RGBA out
    * rays    : (N, RAY_SIZE) final ray records out
    * status, steps, r_min : (N,) per-pixel diagnostics out
    """
    idx = cuda.grid(1)
    if idx >= width * height:
        return
    ray = cuda.local.array(RAY_SIZE, dtype=float64)
    color = cuda.local.array(4, dtype=float64)
    trail = cuda.local.array((1, 3), dtype=float64)
    st, ns, rm = trace_pixel(camera, scene, width, height, max_steps, idx, ray, color, trail)
    for k in range(RAY_SIZE):
        rays[idx, k] = ray[k]
    for k in range(4):
        colors[idx, k] = color[k]
    status[idx] = st
    steps[idx] = ns
    r_min[idx] = rm


def cuda_available():
    return cuda.is_available()


def render_cuda(camera_block, scene_block, width, height, max_steps):
    """Trace every pixel on the GPU. Returns flat host buffers."""
    if not cuda_available():
        raise RuntimeError("CUDA backend requested but no CUDA device is available")
    n = width * height
    colors, rays, status, steps, r_min = allocate_buffers(n)

    # Copy arrays to device
    d_camera = cuda.to_device(np.asarray(camera_block, dtype=np.float64))
    d_scene = cuda.to_device(np.asarray(scene_block, dtype=np.float64))
    d_colors = cuda.to_device(colors)
    d_rays = cuda.to_device(rays)
    d_status = cuda.to_device(status)
    d_steps = cuda.to_device(steps)
    d_r_min = cuda.to_device(r_min)

    blockspergrid = (n + (THREADS_PER_BLOCK - 1)) // THREADS_PER_BLOCK
    logging.debug(f"Launching CUDA kernel: {blockspergrid} blocks x {THREADS_PER_BLOCK} threads")
    _render_kernel[blockspergrid, THREADS_PER_BLOCK](
        d_camera, d_scene, width, height, max_steps,
        d_colors, d_rays, d_status, d_steps, d_r_min
    )
    cuda.synchronize()

    d_colors.copy_to_host(colors)
    d_rays.copy_to_host(rays)
    d_status.copy_to_host(status)
    d_steps.copy_to_host(steps)
    d_r_min.copy_to_host(r_min)
    return colors, rays, status, steps, r_min
