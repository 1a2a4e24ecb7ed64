#blackhole.py
import math
import numpy as np
from astropy import constants as const
from astropy import units as u
from .constants import (SAGA_RS, CAMERA_DISTANCE, FOV_DEG,
                        DISK_INNER, DISK_OUTER, DISK_THICKNESS, DISK_TEMPERATURE)


class BlackHole:
    """
    Represents a Schwarzschild black hole.
    rs: Schwarzschild radius in metres
    position: 3-vector, fixed at the origin
    """
    def __init__(self, rs=SAGA_RS):
        if not math.isfinite(rs) or rs <= 0.0:
            raise ValueError(f"Schwarzschild radius must be positive, got {rs}")
        self.rs = float(rs)
        self.position = np.zeros(3)

    @classmethod
    def from_mass(cls, mass):
        """Build from a mass in kg (or an astropy Quantity) via r_s = 2GM/c^2."""
        mass = u.Quantity(mass, u.kg)
        rs = (2.0 * const.G * mass / const.c**2).to(u.m).value
        return cls(rs=rs)

    @property
    def photon_sphere(self):
        return 1.5 * self.rs


class AccretionDisk:
    """
    Thin emissive annulus in the y = 0 plane.
    inner_radius, outer_radius, thickness: metres
    temperature: base temperature scale T0 in kelvin
    time: animation time driving the turbulence pattern
    """
    def __init__(self, inner_radius=DISK_INNER, outer_radius=DISK_OUTER,
                 thickness=DISK_THICKNESS, temperature=DISK_TEMPERATURE, time=0.0):
        if not (0.0 <= inner_radius <= outer_radius):
            raise ValueError(f"Disk radii must satisfy 0 <= inner <= outer, got ({inner_radius}, {outer_radius})")
        if thickness <= 0.0 or temperature <= 0.0:
            raise ValueError("Disk thickness and temperature must be positive.")
        self.inner_radius = float(inner_radius)
        self.outer_radius = float(outer_radius)
        self.thickness = float(thickness)
        self.temperature = float(temperature)
        self.time = float(time)


def _normalize(v):
    n = np.linalg.norm(v)
    if not np.isfinite(n) or n < 1e-12:
        raise ValueError(f"Cannot normalise vector {v}")
    return v / n


class Camera:
    """
    Pinhole camera frame.
    position: 3-vector
    right, up, forward: orthonormal basis
    tan_half_fov: tangent of half the vertical field of view
    aspect: width / height
    moving: selects the reduced step budget for interactive frames
    """
    def __init__(self, position, target=(0.0, 0.0, 0.0), up=(0.0, 1.0, 0.0),
                 fov=np.radians(FOV_DEG), width=800, height=600, moving=False):
        if width < 1 or height < 1:
            raise ValueError(f"Image size must be positive, got {width}x{height}")
        if not (0.0 < fov < np.pi):
            raise ValueError(f"Field of view must lie in (0, pi), got {fov}")
        self.position = np.array(position, dtype=np.float64)
        self.forward = _normalize(np.asarray(target, dtype=np.float64) - self.position)
        self.right = _normalize(np.cross(self.forward, np.asarray(up, dtype=np.float64)))
        self.up = np.cross(self.right, self.forward)
        self.fov = fov
        self.tan_half_fov = np.tan(fov * 0.5)
        self.width = int(width)
        self.height = int(height)
        self.aspect = self.width / self.height
        self.moving = bool(moving)

    @property
    def image_size(self):
        return (self.height, self.width)

    @classmethod
    def orbit(cls, radius=CAMERA_DISTANCE, azimuth=0.0, elevation=np.pi / 2, **kwargs):
        """Camera on a sphere around the origin (y-up), looking at the black hole."""
        elevation = float(np.clip(elevation, 0.01, np.pi - 0.01))
        position = np.array([
            radius * np.sin(elevation) * np.cos(azimuth),
            radius * np.cos(elevation),
            radius * np.sin(elevation) * np.sin(azimuth),
        ])
        return cls(position, target=(0.0, 0.0, 0.0), up=(0.0, 1.0, 0.0), **kwargs)
