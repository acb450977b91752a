#!/usr/bin/env python3
"""
Stateful serial-chain robot model built on ForwardKinematics.

Author: Robot Control Team
"""

import numpy as np
import logging
from typing import List, Optional, Tuple

from reach.interfaces import KinematicModelLoader, RobotModel

from .forward_kinematic import ForwardKinematics

logger = logging.getLogger(__name__)


class SerialChainRobot(RobotModel):
    """Current joint state of one kinematic chain."""

    def __init__(self, fk: ForwardKinematics, q: Optional[np.ndarray] = None,
                 rng: Optional[np.random.Generator] = None):
        self.fk = fk
        self._rng = rng or np.random.default_rng()
        self._q = np.zeros(fk.n_joints) if q is None else np.array(q, dtype=float)
        self._q = np.clip(self._q, fk.joint_limits[0], fk.joint_limits[1])

    @property
    def link_names(self) -> List[str]:
        return list(self.fk.link_names)

    @property
    def joint_names(self) -> List[str]:
        return list(self.fk.joint_names)

    @property
    def dof(self) -> int:
        return self.fk.n_joints

    @property
    def joint_limits(self) -> np.ndarray:
        return self.fk.get_joint_limits()

    def joint_positions(self) -> np.ndarray:
        return self._q.copy()

    def set_joint_positions(self, q: np.ndarray):
        q = np.asarray(q, dtype=float)
        if q.shape != (self.dof,):
            raise ValueError(f"Expected {self.dof} joint positions, got shape {q.shape}")
        self._q = q.copy()

    def _resolve(self, q: Optional[np.ndarray]) -> np.ndarray:
        return self._q if q is None else np.asarray(q, dtype=float)

    def end_link_pose(self, q: Optional[np.ndarray] = None) -> np.ndarray:
        return self.fk.compute_forward_kinematics(self._resolve(q))

    def link_frames(self, q: Optional[np.ndarray] = None) -> List[Tuple[str, np.ndarray]]:
        frames = self.fk.compute_link_frames(self._resolve(q))
        return list(zip(self.fk.link_names, frames))

    def random_configuration(self, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        rng = rng or self._rng
        lower, upper = self.fk.joint_limits
        return rng.uniform(lower, upper)


class URDFModelLoader(KinematicModelLoader):
    """Loads SerialChainRobot models from URDF files."""

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng

    def load(self, path: str, end_link: str) -> SerialChainRobot:
        fk = ForwardKinematics.from_urdf(path, end_link)
        robot = SerialChainRobot(fk, rng=self.rng)
        logger.info(f"Robot model ready: {robot.dof} DoF, joints {robot.joint_names}")
        return robot
