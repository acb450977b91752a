#!/usr/bin/env python3
"""
Inverse Kinematics Module for Serial Robot Chains

Damped least squares (DLS) solver on the geometric Jacobian, with per-axis
constraint masking, plus a random-restart wrapper for targets the current
configuration cannot reach by local iteration.

Key Features:
- Damped Least Squares update with step clamping
- Axis masking (ignore rotation about selected world axes)
- Joint limit projection after every step
- Random re-initialization within joint limits

Author: Robot Control Team
"""

import time
import logging
from typing import Any, Dict, Optional, Tuple

import numpy as np
from numpy.linalg import norm
from scipy.spatial.transform import Rotation as R

from reach.errors import SolveFailure
from reach.interfaces import Constraints, IKSolver

from .forward_kinematic import ForwardKinematics
from .robot_model import SerialChainRobot

logger = logging.getLogger(__name__)


def _chain_of(robot) -> ForwardKinematics:
    """PoE chain of a SerialChainRobot; other RobotModel backends are rejected."""
    if not isinstance(robot, SerialChainRobot):
        raise TypeError(f"PoE IK solvers require a SerialChainRobot, got {type(robot).__name__}")
    return robot.fk


class JacobianIKSolver(IKSolver):
    """
    Local DLS solver. Starts from the robot's current configuration
    (or ``q_init``) and never modifies the robot.
    """

    def __init__(self, params: Optional[Dict[str, Any]] = None):
        """
        Args:
            params: overrides for max_iterations, allowable_target_distance,
                allowable_target_angle, move_epsilon, damping, max_joint_step
        """
        self.params = {
            'max_iterations': 300,
            'allowable_target_distance': 0.01,  # meters
            'allowable_target_angle': 0.02,     # radians
            'move_epsilon': 1e-5,               # stop when the update stalls
            'damping': 0.05,
            'max_joint_step': 0.3,              # radians per iteration
        }
        if params:
            self.params.update({k: v for k, v in params.items() if k in self.params})

        self.stats = {
            'total_calls': 0,
            'successful_calls': 0,
            'total_iterations': 0,
        }

    @staticmethod
    def pose_error(T_target: np.ndarray, T_current: np.ndarray) -> np.ndarray:
        """World-frame error [w; v] from current to target."""
        rot_err = R.from_matrix(T_target[:3, :3] @ T_current[:3, :3].T).as_rotvec()
        pos_err = T_target[:3, 3] - T_current[:3, 3]
        return np.concatenate([rot_err, pos_err])

    @staticmethod
    def geometric_jacobian(fk: ForwardKinematics, q: np.ndarray, p_end: np.ndarray) -> np.ndarray:
        """Jacobian of [angular velocity; end point linear velocity]."""
        Js = fk.compute_space_jacobian(q)
        J = Js.copy()
        J[3:] = Js[3:] - ForwardKinematics.skew_symmetric(p_end) @ Js[:3]
        return J

    def _converged(self, err: np.ndarray, mask: np.ndarray) -> Tuple[bool, float, float]:
        rot = err[:3][mask[:3]]
        pos = err[3:][mask[3:]]
        rot_err = norm(rot) if rot.size else 0.0
        pos_err = norm(pos) if pos.size else 0.0
        ok = (pos_err < self.params['allowable_target_distance'] and
              rot_err < self.params['allowable_target_angle'])
        return ok, pos_err, rot_err

    def solve_from(self, fk: ForwardKinematics, T_target: np.ndarray, q_init: np.ndarray,
                   constraints: Optional[Constraints] = None) -> Tuple[np.ndarray, bool, Dict[str, Any]]:
        """
        Iterate DLS from ``q_init``.

        Returns:
            (q, converged, info) with info holding iterations and final errors
        """
        mask = (constraints or Constraints()).error_mask()
        lower, upper = fk.joint_limits
        damping2 = self.params['damping'] ** 2
        q = np.clip(np.asarray(q_init, dtype=float), lower, upper)
        info = {'iterations': 0, 'pos_error': np.inf, 'rot_error': np.inf}

        for iteration in range(self.params['max_iterations']):
            T = fk.compute_forward_kinematics(q)
            err = self.pose_error(T_target, T)
            ok, info['pos_error'], info['rot_error'] = self._converged(err, mask)
            info['iterations'] = iteration
            if ok:
                return q, True, info

            J = self.geometric_jacobian(fk, q, T[:3, 3])[mask]
            e = err[mask]
            dq = J.T @ np.linalg.solve(J @ J.T + damping2 * np.eye(J.shape[0]), e)

            step = norm(dq)
            if step > self.params['max_joint_step']:
                dq *= self.params['max_joint_step'] / step
            q_next = np.clip(q + dq, lower, upper)
            if norm(q_next - q) < self.params['move_epsilon']:
                logger.debug(f"DLS stalled at iteration {iteration}")
                break
            q = q_next

        T = fk.compute_forward_kinematics(q)
        ok, info['pos_error'], info['rot_error'] = self._converged(self.pose_error(T_target, T), mask)
        return q, ok, info

    def solve(self, robot: SerialChainRobot, target: np.ndarray,
              constraints: Optional[Constraints] = None,
              q_init: Optional[np.ndarray] = None) -> np.ndarray:
        self.stats['total_calls'] += 1
        seed = robot.joint_positions() if q_init is None else q_init
        q, ok, info = self.solve_from(_chain_of(robot), target, seed, constraints)
        self.stats['total_iterations'] += info['iterations']
        if not ok:
            raise SolveFailure(f"no convergence after {info['iterations']} iterations "
                               f"(position error {info['pos_error']:.4f} m, "
                               f"rotation error {info['rot_error']:.4f} rad)")
        self.stats['successful_calls'] += 1
        return q

    def get_statistics(self) -> Dict[str, Any]:
        return self.stats.copy()


class RandomInitializeIKSolver(IKSolver):
    """Retries a local solver from random configurations within joint limits."""

    def __init__(self, solver: JacobianIKSolver, num_restarts: int = 20,
                 rng: Optional[np.random.Generator] = None):
        self.solver = solver
        self.num_restarts = num_restarts
        self.rng = rng or np.random.default_rng()

    def solve(self, robot: SerialChainRobot, target: np.ndarray,
              constraints: Optional[Constraints] = None,
              q_init: Optional[np.ndarray] = None) -> np.ndarray:
        start_time = time.time()
        seed = robot.joint_positions() if q_init is None else np.asarray(q_init, dtype=float)
        best_pos_error = np.inf

        for attempt in range(self.num_restarts + 1):
            if attempt > 0:
                seed = robot.random_configuration(self.rng)
            q, ok, info = self.solver.solve_from(_chain_of(robot), target, seed, constraints)
            if ok:
                if attempt > 0:
                    logger.debug(f"IK converged from random seed #{attempt}")
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(f"IK solved in {(time.time() - start_time) * 1000:.1f}ms")
                return q
            best_pos_error = min(best_pos_error, info['pos_error'])

        raise SolveFailure(f"no solution after {self.num_restarts + 1} attempts "
                           f"(best position error {best_pos_error:.4f} m)")
