import os
import logging
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.lines import Line2D
from PIL import Image

DEFAULT_GAMMA = 2.2


def _ensure_dir(out_path):
    folder = os.path.dirname(out_path)
    if folder:
        os.makedirs(folder, exist_ok=True)


def tone_map(colors, gamma=DEFAULT_GAMMA, exposure=1.0):
    """Float RGBA frame -> uint8 RGB image with exposure and gamma correction."""
    rgb = np.nan_to_num(np.asarray(colors)[..., :3], nan=0.0, posinf=0.0, neginf=0.0)
    rgb = np.clip(rgb * exposure, 0.0, 1.0) ** (1.0 / gamma)
    return (rgb * 255.0 + 0.5).astype(np.uint8)


def save_frame(colors, out_path='images/frame.png', gamma=DEFAULT_GAMMA, exposure=1.0):
    """Write a rendered frame to disk; returns the uint8 image that was saved."""
    img = tone_map(colors, gamma=gamma, exposure=exposure)
    _ensure_dir(out_path)
    Image.fromarray(img).save(out_path)
    logging.info(f"Saved frame to {out_path}")
    return img


def plot_scene_topdown(black_hole, disk, camera, trajectories=None, escape_radius=None,
                       out_path='images/scene_topdown.png'):
    """
    Top-down (x-z) view of the disk plane:
    - event horizon (filled) and photon sphere (dashed)
    - accretion disk band between the inner and outer radius
    - escape boundary, if given
    - camera position and the horizontal extent of its field of view
    - sampled trajectories projected on the disk plane
    """
    rs = black_hole.rs
    fig, ax = plt.subplots(figsize=(8, 8))
    ax.add_patch(plt.Circle((0, 0), disk.outer_radius, color='orange', alpha=0.25, label='Accretion Disk'))
    ax.add_patch(plt.Circle((0, 0), disk.inner_radius, color='white'))
    ax.add_patch(plt.Circle((0, 0), black_hole.photon_sphere, color='gray', fill=False, linestyle='--',
                            label='Photon Sphere'))
    ax.add_patch(plt.Circle((0, 0), rs, color='black', label='Event Horizon'))
    if escape_radius is not None:
        ax.add_patch(plt.Circle((0, 0), escape_radius, color='gray', fill=False, linestyle=':',
                                label='Escape Radius'))

    cam_x, cam_z = camera.position[0], camera.position[2]
    ax.plot(cam_x, cam_z, 'ro', label='Camera', markersize=10)
    # horizontal half-angle of the view
    half = np.arctan(camera.aspect * camera.tan_half_fov)
    heading = np.arctan2(camera.forward[2], camera.forward[0])
    reach = 2.0 * max(np.linalg.norm(camera.position), disk.outer_radius)
    for t in (heading - half, heading + half):
        ax.plot([cam_x, cam_x + reach * np.cos(t)], [cam_z, cam_z + reach * np.sin(t)], 'k--', lw=1, alpha=0.7)

    if trajectories:
        for points, status in trajectories:
            ax.plot(points[:, 0], points[:, 2], lw=1, alpha=0.8,
                    label=status.label if status.label not in ax.get_legend_handles_labels()[1] else None)
            ax.scatter(points[-1, 0], points[-1, 2], s=10, color='red', zorder=5)

    ax.set_aspect('equal')
    ax.set_xlabel('x')
    ax.set_ylabel('z')
    ax.set_title('Top-Down Scene View (disk plane)')
    handles, labels = ax.get_legend_handles_labels()
    by_label = dict(zip(labels, handles))
    ax.legend(by_label.values(), by_label.keys())
    lim = max(np.linalg.norm(camera.position), disk.outer_radius) * 1.1
    ax.set_xlim(-lim, lim)
    ax.set_ylim(-lim, lim)
    _ensure_dir(out_path)
    plt.savefig(out_path, bbox_inches='tight')
    plt.close(fig)
    logging.info(f"Saved top-down scene image to {out_path}")


def plot_trajectories_3d(black_hole, disk, camera, trajectories, out_path='images/trajectories_3d.png',
                         azimuths=(0, 90, 180, 270)):
    """
    3D view of sampled geodesics around the horizon sphere and the disk ring.
    One image per azimuth, saved as <base>_azim<angle><ext>.
    """
    rs = black_hole.rs
    u_sphere, v_sphere = np.mgrid[0:2*np.pi:40j, 0:np.pi:20j]
    x_s = rs * np.cos(u_sphere) * np.sin(v_sphere)
    y_s = rs * np.cos(v_sphere)
    z_s = rs * np.sin(u_sphere) * np.sin(v_sphere)

    fig = plt.figure(figsize=(8, 8))
    ax = fig.add_subplot(111, projection='3d')
    # plot y (the disk normal) on the vertical axis
    ring = np.linspace(0, 2*np.pi, 200)
    for radius in (disk.inner_radius, disk.outer_radius):
        ax.plot(radius * np.cos(ring), radius * np.sin(ring), np.zeros_like(ring), color='orange', lw=1)
    cam = camera.position
    ax.scatter([cam[0]], [cam[2]], [cam[1]], color='red', s=60)
    for points, status in trajectories:
        ax.plot(points[:, 0], points[:, 2], points[:, 1], lw=1, alpha=0.9)
        ax.scatter(points[-1, 0], points[-1, 2], points[-1, 1], color='red', s=10)
    ax.plot_surface(x_s, z_s, y_s, color='black', alpha=1.0, zorder=20)
    ax.plot_wireframe(x_s, z_s, y_s, color='yellow', linewidth=0.1, zorder=21)

    ax.set_xlabel('x')
    ax.set_ylabel('z')
    ax.set_zlabel('y')
    ax.set_title('Sampled Null Geodesics')
    max_range = max(np.linalg.norm(cam), disk.outer_radius) * 1.1
    for axis in 'xyz':
        getattr(ax, f'set_{axis}lim')([-max_range, max_range])
    legend_elements = [
        Line2D([0], [0], marker='o', color='w', label='Camera', markerfacecolor='red', markersize=10),
        Line2D([0], [0], color='black', lw=4, label='Event Horizon'),
        Line2D([0], [0], color='orange', lw=2, label='Accretion Disk'),
    ]
    ax.legend(handles=legend_elements)
    _ensure_dir(out_path)
    plt.tight_layout()

    base, ext = os.path.splitext(out_path)
    saved = []
    for azim in azimuths:
        ax.view_init(elev=30, azim=azim)
        out_path_rot = f"{base}_azim{azim}{ext}"
        fig.savefig(out_path_rot)
        saved.append(out_path_rot)
        logging.info(f"Saved 3D trajectory image to {out_path_rot}")
    plt.close(fig)
    return saved
