#!/usr/bin/env python3
"""
Matplotlib 3D viewer for the interactive reach controller.

Draws the robot as a chain of link segments, named axis-frame markers and
obstacle wireframes, and collects key presses for the controller to drain.
Matplotlib's default key shortcuts that clash with the controller's bindings
are released while the viewer is open.

Author: Robot Control Team
"""

import numpy as np
import logging
from collections import deque
from typing import Any, Dict, Iterable, List, Optional, Tuple

import matplotlib
import matplotlib.pyplot as plt
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401  (registers the 3d projection)

from .interfaces import KeyPress, Viewer

logger = logging.getLogger(__name__)

MODIFIER_KEYS = ('shift', 'control', 'ctrl', 'alt', 'super', 'cmd')


def normalize_key(key: Optional[str]) -> Optional[KeyPress]:
    """
    Map a matplotlib key string to a KeyPress.

    ``'shift+up'`` -> ('up', shift), ``'F'`` -> ('f', shift). Bare modifier
    presses give None.
    """
    if not key:
        return None
    parts = key.split('+')
    base, modifiers = parts[-1], parts[:-1]
    if not base or base in MODIFIER_KEYS:
        return None
    shift = 'shift' in modifiers
    if len(base) == 1 and base.isupper():
        shift, base = True, base.lower()
    return KeyPress(base, shift)


def _circle(radius: float, n: int = 24) -> np.ndarray:
    t = np.linspace(0, 2 * np.pi, n)
    return np.stack([radius * np.cos(t), radius * np.sin(t), np.zeros(n)], axis=1)


def obstacle_wireframe(shape: str, dims: np.ndarray, pose: np.ndarray) -> List[np.ndarray]:
    """Polylines (each N x 3, world frame) outlining a box, sphere or cylinder."""
    local: List[np.ndarray] = []
    if shape == 'box':
        hx, hy, hz = np.asarray(dims) / 2.0
        bottom = np.array([[-hx, -hy, -hz], [hx, -hy, -hz], [hx, hy, -hz], [-hx, hy, -hz], [-hx, -hy, -hz]])
        top = bottom * np.array([1, 1, -1])
        local = [bottom, top] + [np.array([bottom[i], top[i]]) for i in range(4)]
    elif shape == 'sphere':
        c = _circle(dims[0])
        local = [c, c[:, [0, 2, 1]], c[:, [2, 0, 1]]]
    elif shape == 'cylinder':
        radius, length = dims
        c = _circle(radius)
        local = [c + [0, 0, -length / 2], c + [0, 0, length / 2]]
        local += [np.array([[x, y, -length / 2], [x, y, length / 2]])
                  for x, y in ((radius, 0), (-radius, 0), (0, radius), (0, -radius))]
    return [line @ pose[:3, :3].T + pose[:3, 3] for line in local]


class ReachViewer(Viewer):
    """Interactive matplotlib window. Create once, ``close()`` when done."""

    LINK_COLOR = (0.25, 0.35, 0.6)
    OBSTACLE_COLOR = (0.55, 0.55, 0.55)
    AXIS_COLORS = ('red', 'green', 'blue')

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 bound_keys: Iterable[str] = (), title: str = "Interactive Reach"):
        """
        Args:
            config: ``viewer`` configuration section
            bound_keys: keys handled by the controller, removed from matplotlib keymaps
            title: window title
        """
        config = config or {}
        self.frame_interval = float(config.get('frame_interval', 0.03))
        self.axis_limits = config.get('axis_limits', {})
        self.link_radius = float(config.get('link_radius', 0.03))
        self.bound_keys = set(bound_keys)
        self.title = title

        self.fig = None
        self.ax = None
        self._closed = False
        self._events: deque = deque()
        self._saved_keymaps: Dict[str, List[str]] = {}
        self._link_lines: Dict[str, Any] = {}
        self._collision_lines: Dict[str, Any] = {}
        self._frames: Dict[str, Tuple[float, List[Any]]] = {}
        self._collision_visible = False

    # --- window ------------------------------------------------------------

    def _release_keymaps(self):
        for name in list(matplotlib.rcParams):
            if not name.startswith('keymap.') or name == 'keymap.quit':
                continue
            keys = list(matplotlib.rcParams[name])
            kept = [k for k in keys if k not in self.bound_keys]
            if kept != keys:
                self._saved_keymaps[name] = keys
                matplotlib.rcParams[name] = kept
        if self._saved_keymaps:
            logger.debug(f"Released matplotlib keymaps: {sorted(self._saved_keymaps)}")

    def _restore_keymaps(self):
        for name, keys in self._saved_keymaps.items():
            matplotlib.rcParams[name] = keys
        self._saved_keymaps = {}

    def _configure_axes(self):
        ax = self.ax
        ax.set_title(self.title)
        ax.set_xlabel("X (m)"); ax.set_ylabel("Y (m)"); ax.set_zlabel("Z (m)")
        x_lim = tuple(self.axis_limits.get('x', (-0.6, 0.9)))
        y_lim = tuple(self.axis_limits.get('y', (-0.7, 0.7)))
        z_lim = tuple(self.axis_limits.get('z', (0.0, 1.2)))
        ax.set_xlim(x_lim); ax.set_ylim(y_lim); ax.set_zlim(z_lim)
        ax.set_box_aspect([x_lim[1] - x_lim[0], y_lim[1] - y_lim[0], z_lim[1] - z_lim[0]])

    def setup(self, robot, obstacles=None):
        self._release_keymaps()
        self.fig = plt.figure(figsize=(9, 8))
        self.ax = self.fig.add_subplot(111, projection='3d')
        self._configure_axes()

        for name in robot.link_names[1:]:
            line, = self.ax.plot([], [], [], '-o', color=self.LINK_COLOR, lw=4, ms=4)
            self._link_lines[name] = line
            shell, = self.ax.plot([], [], [], '-', color=self.LINK_COLOR, alpha=0.5,
                                  lw=max(6.0, self.link_radius * 400), solid_capstyle='round')
            shell.set_visible(False)
            self._collision_lines[name] = shell

        for obstacle in obstacles or []:
            for line in obstacle_wireframe(obstacle.shape.value, obstacle.dimensions, obstacle.pose):
                self.ax.plot(line[:, 0], line[:, 1], line[:, 2], color=self.OBSTACLE_COLOR, lw=1)

        self.fig.canvas.mpl_connect('key_press_event', self._on_key_press)
        self.fig.canvas.mpl_connect('close_event', self._on_close)
        self.update_robot(robot)
        logger.info(f"Viewer ready: {len(self._link_lines)} links, "
                    f"{len(obstacles) if obstacles is not None else 0} obstacles")

    def _on_key_press(self, event):
        press = normalize_key(event.key)
        if press is not None:
            self._events.append(press)

    def _on_close(self, event):
        self._closed = True

    # --- scene -------------------------------------------------------------

    def add_axis_frame(self, name: str, size: float):
        lines = [self.ax.plot([], [], [], color=c, lw=2)[0] for c in self.AXIS_COLORS]
        self._frames[name] = (size, lines)
        self.set_object_transform(name, np.eye(4))

    def set_object_transform(self, name: str, transform: np.ndarray):
        if name not in self._frames:
            logger.warning(f"Unknown viewer object: {name}")
            return
        size, lines = self._frames[name]
        origin = transform[:3, 3]
        for i, line in enumerate(lines):
            end = origin + size * transform[:3, i]
            line.set_data_3d([origin[0], end[0]], [origin[1], end[1]], [origin[2], end[2]])

    def update_robot(self, robot):
        frames = robot.link_frames()
        for (_, T_prev), (name, T) in zip(frames[:-1], frames[1:]):
            xs, ys, zs = np.stack([T_prev[:3, 3], T[:3, 3]], axis=1)
            for lines in (self._link_lines, self._collision_lines):
                if name in lines:
                    lines[name].set_data_3d(xs, ys, zs)

    def set_temporal_color(self, link_name: str, rgb: Tuple[float, float, float]):
        for lines in (self._link_lines, self._collision_lines):
            if link_name in lines:
                lines[link_name].set_color(rgb)

    def reset_temporal_color(self, link_name: str):
        for lines in (self._link_lines, self._collision_lines):
            if link_name in lines:
                lines[link_name].set_color(self.LINK_COLOR)

    def set_collision_geometry_visible(self, visible: bool):
        """Swap the link lines for their collision shells (or back)."""
        self._collision_visible = bool(visible)
        for shell in self._collision_lines.values():
            shell.set_visible(self._collision_visible)
        for line in self._link_lines.values():
            line.set_visible(not self._collision_visible)

    # --- loop --------------------------------------------------------------

    def events(self) -> List[KeyPress]:
        events = list(self._events)
        self._events.clear()
        return events

    def render(self) -> bool:
        if self._closed or self.fig is None or not plt.fignum_exists(self.fig.number):
            return False
        self.fig.canvas.draw_idle()
        plt.pause(self.frame_interval)
        return not self._closed

    def close(self):
        if self.fig is not None and not self._closed:
            plt.close(self.fig)
        self._closed = True
        self._restore_keymaps()
