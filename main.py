#main.py
import os
import logging
import numpy as np
from config import parse_args
from raymarch.constants import EngineConfig, CAMERA_DISTANCE, ESCAPE_R, SAGA_RS
from raymarch.blackhole import BlackHole, AccretionDisk, Camera
from raymarch.raytracing import render_frame, trace_trajectory
from raymarch.utils import sample_pixels, save_ray_data, trajectories_dataframe
from visualization.plot import save_frame, plot_scene_topdown, plot_trajectories_3d

# ---
# SI UNITS: lengths in metres, mass in kg, temperature in kelvin.
# The black hole sits at the origin, the disk lies in the y = 0 plane.
# ---

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s')
logging.getLogger('numba').setLevel(logging.ERROR)


def build_scene(args):
    """Black hole, disk, camera and engine configuration from parsed arguments."""
    bh = BlackHole.from_mass(args.bh_mass) if args.bh_mass is not None else BlackHole(SAGA_RS)
    rs = bh.rs
    distance = args.distance if args.distance is not None else CAMERA_DISTANCE * rs / SAGA_RS
    disk = AccretionDisk(
        inner_radius=args.disk_inner * rs,
        outer_radius=args.disk_outer * rs,
        thickness=args.disk_thickness * rs,
        temperature=args.disk_temperature,
        time=args.time,
    )
    camera = Camera.orbit(
        radius=distance,
        azimuth=np.radians(args.azimuth),
        elevation=np.radians(args.elevation),
        fov=np.radians(args.fov),
        width=args.width,
        height=args.height,
        moving=args.moving,
    )
    d_lambda = args.d_lambda if args.d_lambda is not None else 0.01
    escape_radius = args.escape_radius if args.escape_radius is not None else ESCAPE_R * rs / SAGA_RS
    config = EngineConfig(rs=rs, d_lambda=d_lambda * rs, escape_radius=escape_radius).with_quality(args.quality)
    return bh, disk, camera, config.validate()


def main(argv=None):
    args = parse_args(argv)
    bh, disk, camera, config = build_scene(args)
    logging.info(f"Black hole rs = {bh.rs:.4g} m, camera at {np.linalg.norm(camera.position):.4g} m, "
                 f"disk {disk.inner_radius / bh.rs:g}-{disk.outer_radius / bh.rs:g} rs")

    result = render_frame(camera, bh, disk, config, time=args.time,
                          backend=args.backend, workers=args.workers)
    save_frame(result.colors, args.out, gamma=args.gamma, exposure=args.exposure)

    if args.ray_data:
        save_ray_data(result, args.ray_data)

    # --- Sampled geodesics for the scene plots ---
    if args.samples > 0:
        pixels = sample_pixels(camera.image_size, args.samples, seed=args.seed)
        sampled = []
        for (i, j) in pixels:
            points, status = trace_trajectory(camera, bh, disk, i, j, config=config, time=args.time)
            sampled.append(((i, j), points, status))
        out_dir = os.path.dirname(args.out) or '.'
        trajectories = [(points, status) for _, points, status in sampled]
        plot_scene_topdown(bh, disk, camera, trajectories, escape_radius=None,
                           out_path=os.path.join(out_dir, 'scene_topdown.png'))
        plot_trajectories_3d(bh, disk, camera, trajectories,
                             out_path=os.path.join(out_dir, 'trajectories_3d.png'))
        trajectories_dataframe(sampled, camera.forward).to_csv(os.path.join(out_dir, 'sampled_rays.csv'), index=False)
        logging.info(f"Saved {len(sampled)} sampled rays to {os.path.join(out_dir, 'sampled_rays.csv')}")

    # --- Photon summary ---
    counts = result.status_counts()
    print(f"\nPhoton summary:")
    print(f"  Captured by BH: {counts['captured']}")
    print(f"  Hit disk: {counts['disk_hit']}")
    print(f"  Escaped: {counts['escaped']}")
    print(f"  Step budget exhausted: {counts['step_exhausted']}")
    print(f"  Average final radius of sky rays: {result.average_escape_distance():.4g} m")
    return result

if __name__ == "__main__":
    main()
