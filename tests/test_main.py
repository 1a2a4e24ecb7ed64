import matplotlib
matplotlib.use('Agg')
import pandas as pd
import pytest
from config import parse_args
from main import main, build_scene


def test_parse_args_size_overrides_dimensions():
    args = parse_args(['--size', '16', '--quality', 'low'])
    assert args.width == 16 and args.height == 16
    assert args.quality == 'low'
    assert args.backend == 'cpu'


def test_build_scene_defaults_to_sagittarius():
    bh, disk, camera, config = build_scene(parse_args([]))
    assert bh.rs == 1.269e10
    assert disk.inner_radius == 3.0 * bh.rs and disk.outer_radius == 20.0 * bh.rs
    assert config.d_lambda == pytest.approx(bh.rs / 100.0)
    assert config.escape_radius == pytest.approx(1e12)
    assert camera.width == 800 and camera.height == 600


def test_main_renders_small_frame(tmp_path, capsys):
    out = tmp_path / "bh.png"
    rays = tmp_path / "photon_data.csv"
    result = main(['--size', '3', '--backend', 'python', '--quality', 'low', '--d-lambda', '0.1',
                   '--out', str(out), '--ray-data', str(rays), '--samples', '2', '--seed', '1'])
    assert out.exists()
    assert len(pd.read_csv(rays)) == 9
    assert (tmp_path / "scene_topdown.png").exists()
    assert (tmp_path / "sampled_rays.csv").exists()
    assert sum(result.status_counts().values()) == 9
    assert "Photon summary" in capsys.readouterr().out
