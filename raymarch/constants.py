#constants.py
import math
from dataclasses import dataclass, replace

# ---
# SI units throughout. The default scene is Sagittarius A*.
# ---
SAGA_MASS = 8.54e36            # kg
SAGA_RS = 1.269e10             # m, Schwarzschild radius of SAGA_MASS
CAMERA_DISTANCE = 6.34194e10   # m, default orbit radius (= 5 rs)
FOV_DEG = 60.0

DISK_INNER = 3.0 * SAGA_RS
DISK_OUTER = 20.0 * SAGA_RS
DISK_THICKNESS = 0.1 * SAGA_RS
DISK_TEMPERATURE = 50000.0     # K

D_LAMBDA = SAGA_RS / 100.0
ESCAPE_R = 1e12
BEAM_RADIUS = 3.0              # in units of rs

QUALITY_STEPS = {
    'low': 5000,
    'medium': 8000,
    'high': 12000,
    'ultra': 15000,
}


@dataclass(frozen=True)
class EngineConfig:
    """
    Fixed integration constants for one frame.
    rs: Schwarzschild radius
    d_lambda: affine step of the RK4 integrator
    escape_radius: radius treated as infinity
    max_steps / moving_max_steps: marching budget for still / interactive frames
    beam_radius: light-beam accumulation zone, in units of rs

    A frame can only produce ESCAPED rays when step_budget * d_lambda covers
    the path from the camera out to escape_radius.  With the defaults the
    moving budget reaches 50 rs of affine path while the escape radius sits
    near 79 rs, so every non-captured, non-disk pixel of a moving frame ends
    STEP_EXHAUSTED and is shaded from its final direction.
    """
    rs: float = SAGA_RS
    d_lambda: float = D_LAMBDA
    escape_radius: float = ESCAPE_R
    max_steps: int = QUALITY_STEPS['high']
    moving_max_steps: int = QUALITY_STEPS['low']
    beam_radius: float = BEAM_RADIUS

    def step_budget(self, moving):
        return self.moving_max_steps if moving else self.max_steps

    def affine_reach(self, moving):
        """Affine path length one ray can cover within its step budget."""
        return self.step_budget(moving) * self.d_lambda

    def with_quality(self, quality):
        if quality not in QUALITY_STEPS:
            raise ValueError(f"Unknown quality preset '{quality}' (expected one of {sorted(QUALITY_STEPS)})")
        return replace(self, max_steps=QUALITY_STEPS[quality])

    def validate(self):
        for name in ('rs', 'd_lambda', 'escape_radius', 'beam_radius'):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0.0:
                raise ValueError(f"EngineConfig.{name} must be positive and finite, got {value}")
        if self.escape_radius <= self.rs:
            raise ValueError("EngineConfig.escape_radius must lie outside the event horizon.")
        if self.max_steps < 1 or self.moving_max_steps < 1:
            raise ValueError("Step budgets must be at least 1.")
        return self
