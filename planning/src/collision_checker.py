#!/usr/bin/env python3
"""
Collision Checker Module for Serial Robot Chains

Obstacle-aware collision detection for interactive reaching and planning:
- Box, sphere and cylinder obstacles with signed distance queries
- Obstacle sets loaded from YAML or from URDF <collision> primitives
- Links modelled as capsules between consecutive link origins

Author: Robot Control Team
"""

import os
import numpy as np
import logging
from typing import Any, Dict, Iterator, List, Optional
from dataclasses import dataclass, field
from enum import Enum
import xml.etree.ElementTree as ET
import yaml
from scipy.spatial.transform import Rotation as R

from reach.errors import CollisionQueryError, ModelLoadError
from reach.interfaces import CollisionChecker, ObstacleLoader

from kinematics.src.forward_kinematic import parse_origin, parse_urdf

logger = logging.getLogger(__name__)


class ObstacleShape(Enum):
    """Supported obstacle primitives."""
    BOX = "box"
    SPHERE = "sphere"
    CYLINDER = "cylinder"


@dataclass
class Obstacle:
    """
    One collidable primitive.

    ``dimensions`` holds the full box size (x, y, z), the sphere radius, or
    the cylinder (radius, length) along its local z axis.
    """
    name: str
    shape: ObstacleShape
    dimensions: np.ndarray
    pose: np.ndarray = field(default_factory=lambda: np.eye(4))

    def __post_init__(self):
        self.dimensions = np.atleast_1d(np.asarray(self.dimensions, dtype=float))
        self.pose = np.asarray(self.pose, dtype=float)
        expected = {ObstacleShape.BOX: 3, ObstacleShape.SPHERE: 1, ObstacleShape.CYLINDER: 2}
        if self.dimensions.shape != (expected[self.shape],):
            raise CollisionQueryError(
                f"Obstacle '{self.name}': {self.shape.value} needs {expected[self.shape]} "
                f"dimensions, got {self.dimensions.tolist()}")
        if not np.all(np.isfinite(self.dimensions)):
            raise CollisionQueryError(
                f"Obstacle '{self.name}' has missing or non-finite dimensions: "
                f"{self.dimensions.tolist()}")
        if np.any(self.dimensions <= 0):
            raise CollisionQueryError(f"Obstacle '{self.name}' has non-positive dimensions")

    def signed_distance(self, points: np.ndarray) -> np.ndarray:
        """Signed distance from each point (N x 3) to the surface, negative inside."""
        points = np.atleast_2d(points)
        local = (points - self.pose[:3, 3]) @ self.pose[:3, :3]

        if self.shape == ObstacleShape.SPHERE:
            return np.linalg.norm(local, axis=1) - self.dimensions[0]

        if self.shape == ObstacleShape.BOX:
            d = np.abs(local) - self.dimensions / 2.0
        else:
            radius, length = self.dimensions
            d = np.stack([np.linalg.norm(local[:, :2], axis=1) - radius,
                          np.abs(local[:, 2]) - length / 2.0], axis=1)

        outside = np.linalg.norm(np.maximum(d, 0.0), axis=1)
        inside = np.minimum(d.max(axis=1), 0.0)
        return outside + inside


class ObstacleSet:
    """Ordered collection of obstacles."""

    def __init__(self, obstacles: Optional[List[Obstacle]] = None):
        self.obstacles: List[Obstacle] = list(obstacles or [])

    @property
    def names(self) -> List[str]:
        return [o.name for o in self.obstacles]

    def add(self, obstacle: Obstacle):
        self.obstacles.append(obstacle)

    def min_distance(self, points: np.ndarray) -> np.ndarray:
        """Smallest signed distance over all obstacles for each point."""
        points = np.atleast_2d(points)
        if not self.obstacles:
            return np.full(len(points), np.inf)
        return np.min([o.signed_distance(points) for o in self.obstacles], axis=0)

    def __iter__(self) -> Iterator[Obstacle]:
        return iter(self.obstacles)

    def __len__(self) -> int:
        return len(self.obstacles)

    def __repr__(self):
        return f"ObstacleSet({self.names})"


def _pose_from_center_rpy(center, rpy) -> np.ndarray:
    T = np.eye(4)
    T[:3, :3] = R.from_euler('xyz', rpy).as_matrix()
    T[:3, 3] = center
    return T


def obstacle_from_dict(entry: Dict[str, Any], index: int = 0) -> Obstacle:
    """Build an Obstacle from one YAML entry."""
    if not isinstance(entry, dict):
        raise CollisionQueryError(f"Obstacle #{index} is not a mapping: {entry!r}")
    name = str(entry.get('name', f"obstacle_{index}"))
    try:
        shape = ObstacleShape(entry['type'])
    except (KeyError, ValueError) as e:
        raise CollisionQueryError(f"Obstacle '{name}' has an invalid type: {e}") from e

    if shape == ObstacleShape.BOX:
        dims = entry.get('size')
    elif shape == ObstacleShape.SPHERE:
        dims = entry.get('radius')
    else:
        dims = [entry.get('radius'), entry.get('length')]
    if dims is None or (isinstance(dims, list) and None in dims):
        raise CollisionQueryError(f"Obstacle '{name}': {shape.value} is missing dimensions")
    try:
        dims = np.asarray(dims, dtype=float)
        pose = _pose_from_center_rpy(np.asarray(entry.get('center', [0, 0, 0]), dtype=float),
                                     entry.get('rpy', [0, 0, 0]))
    except (TypeError, ValueError) as e:
        raise CollisionQueryError(f"Obstacle '{name}' is malformed: {e}") from e
    return Obstacle(name, shape, dims, pose)


class ObstacleFileLoader(ObstacleLoader):
    """Loads obstacle sets from ``.yaml``/``.yml`` or ``.urdf`` files."""

    def load(self, path: str) -> ObstacleSet:
        if not os.path.exists(path):
            raise ModelLoadError(f"Obstacle file not found: {path}")

        if path.endswith('.urdf'):
            obstacles = self._load_urdf(path)
        else:
            obstacles = self._load_yaml(path)

        logger.info(f"Loaded {len(obstacles)} obstacles from {path}")
        return obstacles

    def _load_yaml(self, path: str) -> ObstacleSet:
        try:
            with open(path, 'r') as file:
                data = yaml.safe_load(file) or {}
        except yaml.YAMLError as e:
            raise CollisionQueryError(f"Invalid obstacle file {path}: {e}") from e

        entries = data.get('obstacles', []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise CollisionQueryError(f"Invalid obstacle file {path}: expected a list of obstacles")
        return ObstacleSet([obstacle_from_dict(e, i) for i, e in enumerate(entries)])

    def _load_urdf(self, path: str) -> ObstacleSet:
        try:
            root, links, joints = parse_urdf(path)
        except ModelLoadError as e:
            raise CollisionQueryError(str(e)) from e

        # World pose of every link, following joints at their zero position
        child_to_joint = {j['child']: j for j in joints.values()}
        link_pose: Dict[str, np.ndarray] = {}

        def world_pose(link: str) -> np.ndarray:
            if link not in link_pose:
                joint = child_to_joint.get(link)
                link_pose[link] = (np.eye(4) if joint is None
                                   else world_pose(joint['parent']) @ joint['origin'])
            return link_pose[link]

        obstacles = ObstacleSet()
        for link_elem in root.findall('link'):
            link_name = link_elem.attrib['name']
            for k, collision in enumerate(link_elem.findall('collision')):
                geometry = collision.find('geometry')
                if geometry is None or len(geometry) == 0:
                    raise CollisionQueryError(f"Link '{link_name}' has a collision without geometry")
                obstacles.add(self._primitive(
                    f"{link_name}_{k}" if k else link_name, geometry[0],
                    world_pose(link_name) @ parse_origin(collision.find('origin'))))
        return obstacles

    @staticmethod
    def _primitive(name: str, elem: ET.Element, pose: np.ndarray) -> Obstacle:
        try:
            if elem.tag == 'box':
                return Obstacle(name, ObstacleShape.BOX,
                                [float(v) for v in elem.attrib['size'].split()], pose)
            if elem.tag == 'sphere':
                return Obstacle(name, ObstacleShape.SPHERE, [float(elem.attrib['radius'])], pose)
            if elem.tag == 'cylinder':
                return Obstacle(name, ObstacleShape.CYLINDER,
                                [float(elem.attrib['radius']), float(elem.attrib['length'])], pose)
        except (KeyError, ValueError) as e:
            raise CollisionQueryError(f"Collision geometry of '{name}' is malformed: {e}") from e
        raise CollisionQueryError(f"Unsupported collision geometry <{elem.tag}> on '{name}'")


class CapsuleCollisionChecker(CollisionChecker):
    """
    Link-versus-environment collision checker.

    Every link after the root is a capsule from its parent's origin to its own
    origin. A link collides when a sample on its axis comes closer to an
    obstacle than ``link_radius + margin``.
    """

    def __init__(self, margin: float = 0.01, link_radius: float = 0.03,
                 samples_per_link: int = 6):
        self.margin = margin
        self.link_radius = link_radius
        self.samples_per_link = max(2, int(samples_per_link))
        self.stats = {'queries': 0, 'collisions': 0}

        logger.info(f"Capsule collision checker: margin {margin} m, link radius {link_radius} m")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'CapsuleCollisionChecker':
        return cls(margin=config.get('margin', 0.01),
                   link_radius=config.get('link_radius', 0.03),
                   samples_per_link=config.get('samples_per_link', 6))

    def link_segments(self, robot, q: Optional[np.ndarray] = None):
        """(link name, start point, end point) for every link after the root."""
        frames = robot.link_frames(q)
        return [(name, frames[i - 1][1][:3, 3], T[:3, 3])
                for i, (name, T) in enumerate(frames) if i > 0]

    def link_clearances(self, robot, obstacles, q: Optional[np.ndarray] = None) -> Dict[str, float]:
        """Distance between each link capsule surface and the nearest obstacle."""
        if not isinstance(obstacles, ObstacleSet):
            raise CollisionQueryError(f"Cannot query obstacles of type {type(obstacles).__name__}")

        t = np.linspace(0.0, 1.0, self.samples_per_link)[:, None]
        clearances = {}
        for name, p0, p1 in self.link_segments(robot, q):
            points = p0 + t * (p1 - p0)
            clearances[name] = float(obstacles.min_distance(points).min()) - self.link_radius
        return clearances

    def colliding_link_names(self, robot, obstacles, q: Optional[np.ndarray] = None) -> List[str]:
        self.stats['queries'] += 1
        names = [name for name, clearance in self.link_clearances(robot, obstacles, q).items()
                 if clearance < self.margin]
        if names:
            self.stats['collisions'] += 1
            logger.debug(f"Colliding links: {names}")
        return names

    def get_collision_summary(self) -> Dict[str, Any]:
        """Get collision checker configuration summary."""
        return {
            'margin': self.margin,
            'link_radius': self.link_radius,
            'samples_per_link': self.samples_per_link,
            'stats': self.stats.copy(),
        }
