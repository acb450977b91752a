#!/usr/bin/env python3
"""
Target pose accumulator for keyboard-driven IK targets.

Author: Robot Control Team
"""

import numpy as np
import logging
from typing import Sequence, Union
from scipy.spatial.transform import Rotation as R

logger = logging.getLogger(__name__)

AXIS_INDEX = {'x': 0, 'y': 1, 'z': 2}

AxisLike = Union[int, str]


def _axis_index(axis: AxisLike) -> int:
    if isinstance(axis, str):
        if axis.lower() not in AXIS_INDEX:
            raise ValueError(f"Unknown axis '{axis}', expected one of x, y, z")
        return AXIS_INDEX[axis.lower()]
    if axis not in (0, 1, 2):
        raise ValueError(f"Unknown axis {axis}, expected 0, 1 or 2")
    return int(axis)


class PoseAccumulator:
    """
    Holds the IK target pose and applies incremental edits.

    Translation is unbounded. Rotation edits right-multiply the current
    orientation, so they act about the target's own axes.
    """

    def __init__(self, translation: Sequence[float] = (0.0, 0.0, 0.0),
                 rpy: Sequence[float] = (0.0, 0.0, 0.0)):
        self.translation = np.array(translation, dtype=float)
        self.rotation = R.from_euler('xyz', rpy)
        # Marker must be placed before the first render
        self._dirty = True

    def apply_translation(self, axis: AxisLike, delta: float):
        self.translation[_axis_index(axis)] += delta
        self._dirty = True

    def apply_rotation(self, axis: AxisLike, angle: float):
        rotvec = np.zeros(3)
        rotvec[_axis_index(axis)] = angle
        self.rotation = self.rotation * R.from_rotvec(rotvec)
        # Rotation keeps a unit quaternion; re-create from it to stop drift
        self.rotation = R.from_quat(self.rotation.as_quat())
        self._dirty = True

    @property
    def quaternion(self) -> np.ndarray:
        """Unit quaternion [x, y, z, w]."""
        return self.rotation.as_quat()

    @property
    def dirty(self) -> bool:
        return self._dirty

    def consume_dirty(self) -> bool:
        """Return whether the pose changed since the last call, and clear the flag."""
        dirty = self._dirty
        self._dirty = False
        return dirty

    def as_matrix(self) -> np.ndarray:
        """4x4 homogeneous transform of the target."""
        T = np.eye(4)
        T[:3, :3] = self.rotation.as_matrix()
        T[:3, 3] = self.translation
        return T

    def snapshot(self):
        """Copy of (translation, quaternion), for comparisons."""
        return self.translation.copy(), self.quaternion.copy()

    def __repr__(self):
        rpy = np.degrees(self.rotation.as_euler('xyz'))
        return (f"PoseAccumulator(translation=[{self.translation[0]:.3f}, {self.translation[1]:.3f}, "
                f"{self.translation[2]:.3f}], rpy_deg=[{rpy[0]:.1f}, {rpy[1]:.1f}, {rpy[2]:.1f}])")
