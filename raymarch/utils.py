#utils.py
import random
import logging
import numpy as np
import pandas as pd
from einsteinpy.coordinates.utils import spherical_to_cartesian_fast, cartesian_to_spherical_fast


def to_spherical(point):
    """(r, theta, phi) of a Cartesian point, theta measured from +z."""
    return cartesian_to_spherical_fast(0, float(point[0]), float(point[1]), float(point[2]))[1:]


def to_cartesian(r, theta, phi):
    return np.array(spherical_to_cartesian_fast(0, r, theta, phi)[1:])


def trajectory_radii(points):
    """Radial coordinate of every point on a trajectory."""
    return np.array([to_spherical(p)[0] for p in points])


def sample_pixels(image_size, n_samples, seed=None):
    """Up to *n_samples* distinct (row, col) pixels, drawn at random."""
    h, w = image_size
    n_samples = min(n_samples, h * w)
    rng = random.Random(seed)
    sampled = set()
    while len(sampled) < n_samples:
        sampled.add((rng.randint(0, h - 1), rng.randint(0, w - 1)))
    return sorted(sampled)


def trajectories_dataframe(trajectories, forward):
    """
    Long-format table of sampled trajectories.
    trajectories: list of ((row, col), points (N, 3), RayStatus)
    forward: camera optical axis; angle_deg is the initial deviation from it
    """
    forward = np.asarray(forward, dtype=np.float64)
    rows = []
    for ridx, ((i, j), traj, status) in enumerate(trajectories):
        if traj.shape[0] >= 2:
            dvec = traj[1] - traj[0]
            dvec = dvec / np.linalg.norm(dvec)
            cosang = np.clip(np.dot(dvec, forward), -1.0, 1.0)
            ang_deg = np.degrees(np.arccos(cosang))
        else:
            ang_deg = np.nan
        for pidx, (px, py, pz) in enumerate(traj):
            rows.append({'ray_id': ridx, 'i': i, 'j': j, 'point_idx': pidx,
                         'x': px, 'y': py, 'z': pz, 'angle_deg': ang_deg, 'collision': status.label})
    return pd.DataFrame(rows)


def save_ray_data(result, path):
    """Write the per-pixel table of a FrameResult to CSV."""
    df = result.to_dataframe()
    df.to_csv(path, index=False)
    logging.info(f"Saved per-pixel ray data ({len(df)} rows) to {path}")
    return df
