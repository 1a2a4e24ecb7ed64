import numpy as np
from raymarch.ray import new_ray, make_ray
from raymarch import shading
from raymarch.shading import (blackbody_rgb, disk_temperature, redshift_factor, doppler_factor,
                              starfield, shade, smoothstep, slab_opacity, beam_weight, beam_rgb)
from raymarch.termination import CAPTURED, ESCAPED


def test_blackbody_is_monotonic_and_reddish_when_cool():
    cool = blackbody_rgb(3000.0)
    hot = blackbody_rgb(30000.0)
    assert all(h > c for h, c in zip(hot, cool))
    assert cool[0] > cool[1] > cool[2]
    assert all(0.0 <= v <= 1.0 for v in hot)


def test_disk_temperature_falls_with_radius_and_is_clamped():
    rs, t0 = 1.0, 50000.0
    temps = [disk_temperature(r, rs, t0) for r in (3.0, 6.0, 12.0, 20.0)]
    assert all(a > b for a, b in zip(temps, temps[1:]))
    assert disk_temperature(1e9, rs, t0) == shading.T_MIN
    assert disk_temperature(1e-9, rs, t0) == shading.T_MAX


def test_redshift_factor_bounds():
    rs = 1.0
    assert np.isclose(redshift_factor(rs, rs), np.sqrt(shading.REDSHIFT_EPSILON))
    assert 0.0 < redshift_factor(3.0, rs) < redshift_factor(30.0, rs) < 1.0
    assert redshift_factor(1e12, rs) > 0.999


def test_doppler_brightens_approaching_side():
    # gas at (x, z) = (5, 0) orbits towards +z
    rs = 1.0
    toward_camera = doppler_factor(5.0, 0.0, 5.0, 0.0, 0.0, -1.0, rs)
    away = doppler_factor(5.0, 0.0, 5.0, 0.0, 0.0, 1.0, rs)
    side = doppler_factor(5.0, 0.0, 5.0, 1.0, 0.0, 0.0, rs)
    assert toward_camera > side > away
    assert np.isclose(side, 1.0)


def test_smoothstep_and_opacity():
    assert smoothstep(3.0, 20.0, 2.0) == 0.0
    assert smoothstep(3.0, 20.0, 25.0) == 1.0
    assert 0.0 < smoothstep(3.0, 20.0, 10.0) < 1.0
    assert 0.0 < slab_opacity(0.1, 0.9, 1.0) < slab_opacity(0.1, 0.1, 1.0) <= 1.0


def test_starfield_is_sparse():
    rng = np.random.default_rng(0)
    dirs = rng.normal(size=(2000, 3))
    dirs /= np.linalg.norm(dirs, axis=1)[:, None]
    lit = sum(1 for d in dirs if starfield(d[0], d[1], d[2]) > 0.0)
    assert lit < 0.05 * len(dirs)


def test_escaped_colour_includes_redshifted_base():
    rs = 1.0
    ray, _ = make_ray(np.array([100.0, 0.0, 0.0]), np.array([0.6, 0.0, 0.8]), rs)
    r_min = 100.0
    color = shade(ESCAPED, ray, 100.0, 0.0, 0.0, 10, r_min, 0.0, rs, 0.1, 3.0, 20.0, 0.1, 50000.0, 0.0)
    g = redshift_factor(r_min, rs)
    assert color[0] >= shading.BACKGROUND_R * g - 1e-12
    assert color[1] >= shading.BACKGROUND_G * g - 1e-12
    assert color[2] >= shading.BACKGROUND_B * g - 1e-12


def test_captured_nan_state_shades_finite():
    ray = new_ray()
    ray[:] = np.nan
    color = shade(CAPTURED, ray, np.nan, np.nan, np.nan, 50, np.nan, np.nan,
                  1.0, 0.1, 3.0, 20.0, 0.1, 50000.0, 0.0)
    assert all(np.isfinite(c) and c >= 0.0 for c in color)


def test_beam_only_inside_beam_radius():
    rs = 1.0
    near, _ = make_ray(np.array([1.5, 0.0, 0.0]), np.array([0.0, 1.0, 0.0]), rs)
    far, _ = make_ray(np.array([5.0, 0.0, 0.0]), np.array([0.0, 1.0, 0.0]), rs)
    assert beam_weight(near, rs, 3.0, 0.1, 0.0) > 0.0
    assert beam_weight(far, rs, 3.0, 0.1, 0.0) == 0.0
    assert beam_rgb(10.0)[0] == shading.BEAM_MAX * shading.BEAM_R
