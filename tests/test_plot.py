import matplotlib
matplotlib.use('Agg')
import numpy as np
from PIL import Image
from raymarch.blackhole import BlackHole, AccretionDisk, Camera
from raymarch.termination import RayStatus
from visualization.plot import tone_map, save_frame, plot_scene_topdown, plot_trajectories_3d


def test_tone_map_clamps_and_sanitises():
    colors = np.zeros((2, 2, 4))
    colors[0, 0, :3] = 1.0
    colors[0, 1, :3] = 5.0
    colors[1, 0, :3] = np.nan
    img = tone_map(colors)
    assert img.dtype == np.uint8 and img.shape == (2, 2, 3)
    assert np.all(img[0, 0] == 255) and np.all(img[0, 1] == 255)
    assert np.all(img[1, 0] == 0) and np.all(img[1, 1] == 0)
    # gamma brightens mid-tones
    mid = tone_map(np.full((1, 1, 4), 0.25))
    assert mid[0, 0, 0] > 64


def test_save_frame(tmp_path):
    colors = np.random.default_rng(1).random((3, 5, 4))
    out = tmp_path / "frames" / "frame.png"
    save_frame(colors, str(out))
    with Image.open(out) as img:
        assert img.size == (5, 3)
        assert img.mode == 'RGB'


def _scene():
    bh = BlackHole(1.0)
    disk = AccretionDisk(3.0, 20.0, 0.1, 50000.0)
    cam = Camera.orbit(radius=25.0, azimuth=0.5, elevation=np.radians(70), width=4, height=3)
    t = np.linspace(0, 1, 20)[:, None]
    traj = cam.position * (1 - t) + np.array([1.5, 0.0, 0.0]) * t
    return bh, disk, cam, [(traj, RayStatus.CAPTURED), (traj[::2], RayStatus.ESCAPED)]


def test_plot_scene_topdown(tmp_path):
    bh, disk, cam, trajectories = _scene()
    out = tmp_path / "scene_topdown.png"
    plot_scene_topdown(bh, disk, cam, trajectories, escape_radius=30.0, out_path=str(out))
    assert out.exists()


def test_plot_trajectories_3d(tmp_path):
    bh, disk, cam, trajectories = _scene()
    saved = plot_trajectories_3d(bh, disk, cam, trajectories, out_path=str(tmp_path / "traj.png"), azimuths=(0, 90))
    assert len(saved) == 2
    assert all((tmp_path / name).exists() for name in ("traj_azim0.png", "traj_azim90.png"))
