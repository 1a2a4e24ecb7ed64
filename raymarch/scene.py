#scene.py
import numpy as np

# ----------------------------------------------------------------------------
# Flat float64 parameter blocks handed to every backend.  Kernels index them
# with the constants below; they are read-only for the whole frame.
# ----------------------------------------------------------------------------

# camera block
C_POS = 0
C_RIGHT = 3
C_UP = 6
C_FORWARD = 9
C_TAN_HALF_FOV = 12
C_ASPECT = 13
CAMERA_SIZE = 14

# scene block
S_RS = 0
S_DLAMBDA = 1
S_ESCAPE_R = 2
S_DISK_INNER = 3
S_DISK_OUTER = 4
S_DISK_THICKNESS = 5
S_DISK_TEMPERATURE = 6
S_DISK_TIME = 7
S_TIME = 8
S_BEAM_RADIUS = 9
SCENE_SIZE = 10


def pack_camera(camera):
    """Camera -> (CAMERA_SIZE,) float64 array."""
    block = np.zeros(CAMERA_SIZE, dtype=np.float64)
    block[C_POS:C_POS + 3] = camera.position
    block[C_RIGHT:C_RIGHT + 3] = camera.right
    block[C_UP:C_UP + 3] = camera.up
    block[C_FORWARD:C_FORWARD + 3] = camera.forward
    block[C_TAN_HALF_FOV] = camera.tan_half_fov
    block[C_ASPECT] = camera.aspect
    return block


def pack_scene(black_hole, disk, config, time=0.0):
    """Black hole, disk, engine constants and animation time -> (SCENE_SIZE,) float64 array."""
    config.validate()
    if not np.isclose(black_hole.rs, config.rs):
        raise ValueError(f"BlackHole.rs ({black_hole.rs}) and EngineConfig.rs ({config.rs}) disagree")
    block = np.zeros(SCENE_SIZE, dtype=np.float64)
    block[S_RS] = config.rs
    block[S_DLAMBDA] = config.d_lambda
    block[S_ESCAPE_R] = config.escape_radius
    block[S_DISK_INNER] = disk.inner_radius
    block[S_DISK_OUTER] = disk.outer_radius
    block[S_DISK_THICKNESS] = disk.thickness
    block[S_DISK_TEMPERATURE] = disk.temperature
    block[S_DISK_TIME] = disk.time
    block[S_TIME] = time
    block[S_BEAM_RADIUS] = config.beam_radius * config.rs
    return block
