import numpy as np
import pandas as pd
from einsteinpy.coordinates.utils import cartesian_to_spherical_fast
from raymarch.ray import RAY_SIZE, RAY_FIELDS, R, make_ray
from raymarch.raytracing import FrameResult, trace_trajectory
from raymarch.termination import RayStatus, CAPTURED, DISK_HIT, ESCAPED, STEP_EXHAUSTED
from raymarch.blackhole import BlackHole, AccretionDisk, Camera
from raymarch.constants import EngineConfig
from raymarch.utils import (to_spherical, to_cartesian, trajectory_radii, sample_pixels,
                            trajectories_dataframe, save_ray_data)


def _fake_result():
    h, w = 2, 3
    colors = np.zeros((h, w, 4))
    colors[..., 3] = 1.0
    rays = np.zeros((h, w, RAY_SIZE))
    rays[..., R] = [[0.5, 10.0, 20.0], [30.0, 0.9, 40.0]]
    status = np.array([[CAPTURED, DISK_HIT, ESCAPED], [ESCAPED, CAPTURED, STEP_EXHAUSTED]], dtype=np.int8)
    steps = np.array([[5, 10, 20], [30, 7, 100]], dtype=np.int32)
    r_min = np.ones((h, w)) * 3.0
    return FrameResult(colors, rays, status, steps, r_min, 1.0)


def test_frame_result_summaries():
    result = _fake_result()
    assert result.image_size == (2, 3)
    assert result.status_counts() == {'captured': 2, 'disk_hit': 1, 'escaped': 2, 'step_exhausted': 1}
    assert result.black_hole_hits() == 2
    # disk hits end on the disk, not at an escape distance
    assert np.isclose(result.average_escape_distance(), (20.0 + 30.0 + 40.0) / 3)
    state = result.ray_state(1, 2)
    assert state.r == 40.0


def test_frame_result_dataframe():
    df = _fake_result().to_dataframe()
    assert isinstance(df, pd.DataFrame)
    assert len(df) == 6
    assert set(RAY_FIELDS) <= set(df.columns)
    assert {'i', 'j', 'collision', 'steps', 'r_min', 'red', 'green', 'blue'} <= set(df.columns)
    # row-major: pixel (1, 1) is the fifth row
    assert df.loc[4, 'i'] == 1 and df.loc[4, 'j'] == 1
    assert df.loc[4, 'collision'] == 'captured'


def test_save_ray_data(tmp_path):
    path = tmp_path / "photon_data.csv"
    save_ray_data(_fake_result(), str(path))
    df = pd.read_csv(path)
    assert len(df) == 6
    assert (df['collision'] == 'escaped').sum() == 2


def test_coordinate_helpers_match_einsteinpy():
    point = np.array([1.0, -2.0, 2.0])
    r, theta, phi = to_spherical(point)
    assert np.isclose(r, 3.0)
    assert np.allclose((r, theta, phi), cartesian_to_spherical_fast(0, 1.0, -2.0, 2.0)[1:])
    assert np.allclose(to_cartesian(r, theta, phi), point)
    ray, _ = make_ray(point, np.array([0.0, 0.0, -1.0]), 1.0)
    assert np.isclose(ray[R], r)
    assert np.allclose(ray[0:3], point)


def test_sample_pixels():
    pixels = sample_pixels((4, 5), 6, seed=3)
    assert len(pixels) == 6 and len(set(pixels)) == 6
    assert all(0 <= i < 4 and 0 <= j < 5 for i, j in pixels)
    assert pixels == sample_pixels((4, 5), 6, seed=3)
    assert len(sample_pixels((2, 2), 10)) == 4


def test_trajectory_table():
    bh = BlackHole(1.0)
    disk = AccretionDisk(3.0, 20.0, 0.1, 50000.0)
    config = EngineConfig(rs=1.0, d_lambda=0.1, escape_radius=30.0, max_steps=2000)
    cam = Camera([0.0, 4.0, 20.0], width=3, height=3)
    points, status = trace_trajectory(cam, bh, disk, 0, 0, config=config, max_points=50)
    assert points.shape[1] == 3 and 2 <= points.shape[0] <= 50
    assert np.allclose(points[0], cam.position)
    assert np.all(trajectory_radii(points) > 0.0)
    df = trajectories_dataframe([((0, 0), points, status)], cam.forward)
    assert len(df) == points.shape[0]
    assert df['collision'].iloc[0] == status.label
    assert np.all(df['angle_deg'] < 40.0)
    assert isinstance(status, RayStatus)
