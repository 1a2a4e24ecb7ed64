import argparse
from raymarch.constants import (CAMERA_DISTANCE, FOV_DEG, QUALITY_STEPS, DISK_TEMPERATURE)

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Schwarzschild Black Hole Ray Marching Renderer")
    parser.add_argument('--width', type=int, default=800, help='Image width in pixels (default: 800)')
    parser.add_argument('--height', type=int, default=600, help='Image height in pixels (default: 600)')
    parser.add_argument('--size', type=int, default=None, help='Square image size (NxN), overrides --width/--height')
    parser.add_argument('--fov', type=float, default=FOV_DEG, help='Vertical field of view in degrees (default: 60)')
    # Camera orbit
    parser.add_argument('--distance', type=float, default=None, help=f'Camera distance from the black hole in metres (default: {CAMERA_DISTANCE:g})')
    parser.add_argument('--azimuth', type=float, default=0.0, help='Camera azimuth in degrees (default: 0)')
    parser.add_argument('--elevation', type=float, default=80.0, help='Camera polar angle from +y in degrees (default: 80)')
    parser.add_argument('--moving', action='store_true', help='Render with the reduced interactive step budget')
    # Black hole and integration
    parser.add_argument('--bh-mass', type=float, default=None, help='Black hole mass in kg; default is Sagittarius A* (rs = 1.269e10 m)')
    parser.add_argument('--quality', type=str, default='high', choices=sorted(QUALITY_STEPS), help='Step budget preset (default: high)')
    parser.add_argument('--d-lambda', type=float, default=None, help='Affine step size in units of rs (default: 0.01)')
    parser.add_argument('--escape-radius', type=float, default=None, help='Escape radius in metres (default: 1e12)')
    # Accretion disk (radii in units of rs)
    parser.add_argument('--disk-inner', type=float, default=3.0, help='Disk inner radius in rs (default: 3)')
    parser.add_argument('--disk-outer', type=float, default=20.0, help='Disk outer radius in rs (default: 20)')
    parser.add_argument('--disk-thickness', type=float, default=0.1, help='Disk thickness in rs (default: 0.1)')
    parser.add_argument('--disk-temperature', type=float, default=DISK_TEMPERATURE, help='Disk base temperature in K (default: 50000)')
    parser.add_argument('--time', type=float, default=0.0, help='Animation time driving the disk and the light beam (default: 0)')
    # Execution
    parser.add_argument('--backend', type=str, default='cpu', choices=['python', 'cpu', 'cuda'], help='Execution backend (default: cpu)')
    parser.add_argument('--workers', type=int, default=1, help='Worker processes for the python backend (default: 1)')
    # Output
    parser.add_argument('--out', type=str, default='images/blackhole.png', help='Output image path')
    parser.add_argument('--gamma', type=float, default=2.2, help='Display gamma (default: 2.2)')
    parser.add_argument('--exposure', type=float, default=1.0, help='Exposure multiplier (default: 1.0)')
    parser.add_argument('--ray-data', type=str, default=None, help='Write the per-pixel photon table to this CSV path')
    parser.add_argument('--samples', type=int, default=0, help='Number of sampled geodesics to trace and plot (default: 0)')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for sampled pixels')
    args = parser.parse_args(argv)
    if args.size is not None:
        args.width = args.height = args.size
    return args
