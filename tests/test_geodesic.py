import numpy as np
from raymarch.ray import R, THETA, DR, E, L, make_ray, conserved_quantities
from raymarch.geodesic import schwarzschild_rhs, rk4_step
from raymarch.termination import classify, CAPTURED


def test_rhs_radial_null_ray_is_unaccelerated():
    # dr/dlambda = -E exactly for a radial photon, so d2r vanishes
    dr, dth, dph, d2r, d2th, d2ph = schwarzschild_rhs(4.0, np.pi / 2, -1.0, 0.0, 0.0, 1.0, 1.0)
    assert dr == -1.0 and dth == 0.0 and dph == 0.0
    assert abs(d2r) < 1e-14
    assert abs(d2th) < 1e-14
    assert abs(d2ph) < 1e-14


def test_rhs_is_finite_at_the_pole():
    out = schwarzschild_rhs(5.0, 0.0, -0.5, 0.1, 0.2, 0.9, 1.0)
    assert np.all(np.isfinite(out))


def test_rhs_nan_state_propagates():
    out = schwarzschild_rhs(np.nan, np.pi / 2, -1.0, 0.0, 0.0, 1.0, 1.0)
    assert np.all(np.isnan(out))


def test_conserved_quantities_drift_small():
    rs = 1.0
    beta = 0.35
    ray, _ = make_ray(np.array([10.0, 0.0, 0.0]), np.array([-np.cos(beta), np.sin(beta), 0.0]), rs)
    e0, l0 = ray[E], ray[L]
    for _ in range(1500):
        rk4_step(ray, 0.01, rs)
        if ray[R] > 20.0:
            break
    e1, l1 = conserved_quantities(ray, rs)
    assert ray[R] > rs
    assert abs(e1 - e0) / e0 < 1e-5
    assert abs(l1 - l0) / abs(l0) < 1e-5
    # equatorial rays stay in their plane
    assert np.isclose(ray[THETA], np.pi / 2, atol=1e-9)


def test_step_through_horizon_is_captured():
    rs = 1.0
    ray, _ = make_ray(np.array([1.001, 0.0, 0.0]), np.array([-1.0, 0.0, 0.0]), rs)
    prev = ray[0:3].copy()
    rk4_step(ray, 0.01, rs)
    status, _ = classify(ray, prev[0], prev[1], prev[2], rs, 3.0, 20.0, 100.0)
    assert status == CAPTURED


def _follow(ray, rs, dlam, escape_radius, max_steps):
    """Step until capture or escape; returns (outcome, worst relative drift of E and L)."""
    e0, l0 = ray[E], ray[L]
    drift = 0.0
    for _ in range(max_steps):
        rk4_step(ray, dlam, rs)
        if not ray[R] > rs:
            return 'captured', drift
        if ray[R] > 1.2 * rs:
            e1, l1 = conserved_quantities(ray, rs)
            drift = max(drift, abs(e1 - e0) / e0, abs(l1 - l0) / max(abs(l0), 1.0))
        if ray[R] > escape_radius:
            return 'escaped', drift
    return 'exhausted', drift


def test_nearly_polar_rays_below_critical_impact_parameter_are_captured():
    # b = 10 sin(0.25) ~ 2.47 rs, below the critical 3 sqrt(3) / 2 rs
    rs = 1.0
    for eps in (0.0, 1e-7, 1e-5, 1e-3, 1e-2):
        direction = np.array([-np.cos(0.25), eps, np.sin(0.25)])
        ray, _ = make_ray(np.array([10.0, 0.0, 0.0]), direction / np.linalg.norm(direction), rs)
        outcome, drift = _follow(ray, rs, 0.01, 30.0, 5000)
        assert outcome == 'captured', eps
        assert np.isfinite(ray[R])
        assert drift < 1e-4, eps


def test_nearly_polar_rays_above_critical_impact_parameter_escape():
    rs = 1.0
    for eps in (1e-7, 1e-3):
        direction = np.array([-np.cos(0.3), eps, np.sin(0.3)])
        ray, _ = make_ray(np.array([10.0, 0.0, 0.0]), direction / np.linalg.norm(direction), rs)
        outcome, drift = _follow(ray, rs, 0.02, 30.0, 5000)
        assert outcome == 'escaped', eps
        assert drift < 1e-4, eps
        # the photon never leaves its orbital plane
        assert np.isclose(ray[THETA], np.pi / 2, atol=1e-9)


def test_blown_up_step_is_captured():
    rs = 1.0
    ray, _ = make_ray(np.array([10.0, 0.0, 0.0]), np.array([-1.0, 0.0, 0.0]), rs)
    prev = ray[0:3].copy()
    ray[DR] = -10.0 * ray[E]
    rk4_step(ray, 0.01, rs)
    assert np.isnan(ray[R])
    status, _ = classify(ray, prev[0], prev[1], prev[2], rs, 3.0, 20.0, 100.0)
    assert status == CAPTURED
