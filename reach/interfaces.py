#!/usr/bin/env python3
"""
Collaborator interfaces for the interactive reach controller.

The controller only talks to these abstractions. The kinematics and planning
packages provide reference implementations; any other backend that honours
the same contracts (and raises the exceptions from ``reach.errors``) can be
injected instead.

Author: Robot Control Team
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class KeyPress:
    """Normalized key press event produced by a viewer."""
    key: str
    shift: bool = False


@dataclass
class Constraints:
    """Per-axis switches for the IK error. A False axis is ignored."""
    position_x: bool = True
    position_y: bool = True
    position_z: bool = True
    rotation_x: bool = True
    rotation_y: bool = True
    rotation_z: bool = True

    def error_mask(self) -> np.ndarray:
        """Boolean mask over [wx, wy, wz, vx, vy, vz] error components."""
        return np.array([self.rotation_x, self.rotation_y, self.rotation_z,
                         self.position_x, self.position_y, self.position_z], dtype=bool)


class RobotModel(ABC):
    """Stateful serial kinematic chain targeted by IK."""

    @property
    @abstractmethod
    def link_names(self) -> List[str]:
        ...

    @property
    @abstractmethod
    def dof(self) -> int:
        ...

    @property
    @abstractmethod
    def joint_limits(self) -> np.ndarray:
        """Joint limits as a (2, dof) array of [lower; upper]."""
        ...

    @abstractmethod
    def joint_positions(self) -> np.ndarray:
        ...

    @abstractmethod
    def set_joint_positions(self, q: np.ndarray) -> None:
        ...

    @abstractmethod
    def end_link_pose(self, q: Optional[np.ndarray] = None) -> np.ndarray:
        """4x4 pose of the end link at ``q`` (current configuration if None)."""
        ...

    @abstractmethod
    def link_frames(self, q: Optional[np.ndarray] = None) -> List[Tuple[str, np.ndarray]]:
        """(link name, 4x4 pose) for every link of the chain, base first."""
        ...

    @abstractmethod
    def random_configuration(self, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Uniformly sampled configuration within the joint limits."""
        ...


class KinematicModelLoader(ABC):

    @abstractmethod
    def load(self, path: str, end_link: str) -> RobotModel:
        """Load a robot description and extract the chain ending at ``end_link``.

        Raises:
            ModelLoadError: file missing or chain invalid
        """
        ...


class IKSolver(ABC):

    @abstractmethod
    def solve(self, robot: RobotModel, target: np.ndarray,
              constraints: Optional[Constraints] = None,
              q_init: Optional[np.ndarray] = None) -> np.ndarray:
        """Return joint values placing the end link at ``target``.

        Iteration starts from ``q_init`` (the current configuration if None).
        Does not modify ``robot``.

        Raises:
            SolveFailure: target unreachable
        """
        ...


class ObstacleLoader(ABC):

    @abstractmethod
    def load(self, path: str):
        """Load a collidable obstacle set.

        Raises:
            ModelLoadError: file missing
            CollisionQueryError: obstacle description malformed
        """
        ...


class CollisionChecker(ABC):

    @abstractmethod
    def colliding_link_names(self, robot: RobotModel, obstacles,
                             q: Optional[np.ndarray] = None) -> List[str]:
        """Names of links in contact with ``obstacles``, in chain order.

        Raises:
            CollisionQueryError: obstacle set cannot be queried
        """
        ...

    def is_collision_free(self, robot: RobotModel, obstacles,
                          q: Optional[np.ndarray] = None) -> bool:
        return not self.colliding_link_names(robot, obstacles, q)


class MotionPlanner(ABC):

    @abstractmethod
    def plan_with_ik(self, robot: RobotModel, target: np.ndarray, obstacles,
                     constraints: Optional[Constraints] = None) -> List[np.ndarray]:
        """Waypoints from the current configuration to one reaching ``target``.

        Raises:
            PlanFailure: no collision-free path
        """
        ...


# (waypoints, max_step) -> densified waypoints, endpoint order preserved
Interpolator = Callable[[Sequence[np.ndarray], float], List[np.ndarray]]


class Viewer(ABC):
    """Window handle owned by the caller: create at startup, ``close()`` at shutdown."""

    @abstractmethod
    def setup(self, robot: RobotModel, obstacles=None) -> None:
        ...

    @abstractmethod
    def add_axis_frame(self, name: str, size: float) -> None:
        ...

    @abstractmethod
    def set_object_transform(self, name: str, transform: np.ndarray) -> None:
        ...

    @abstractmethod
    def update_robot(self, robot: RobotModel) -> None:
        ...

    @abstractmethod
    def set_temporal_color(self, link_name: str, rgb: Tuple[float, float, float]) -> None:
        ...

    @abstractmethod
    def reset_temporal_color(self, link_name: str) -> None:
        ...

    @abstractmethod
    def set_collision_geometry_visible(self, visible: bool) -> None:
        ...

    @abstractmethod
    def events(self) -> List[KeyPress]:
        """Drain key presses received since the previous call."""
        ...

    @abstractmethod
    def render(self) -> bool:
        """Refresh the window. Returns False once it has been closed."""
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
