#!/usr/bin/env python3
"""
Path Planning Module

Joint-space path planning between two collision-free configurations:
- RRT-Connect (bidirectional trees with greedy connection)
- Edge validation by dense interpolation
- Shortcut smoothing of the found path
- Waypoint interpolation for playback

The planner only sees a validity callback and the joint limits, so it stays
independent of the robot model and collision backend.

Author: Robot Control Team
"""

import math
import time
import logging
import numpy as np
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass
from scipy.spatial import cKDTree

from reach.errors import PlanFailure

logger = logging.getLogger(__name__)

TRAPPED, ADVANCED, REACHED = 'trapped', 'advanced', 'reached'


def interpolate(q_from: np.ndarray, q_to: np.ndarray, unit_length: float) -> List[np.ndarray]:
    """
    Straight joint-space segment split so that no joint moves more than
    ``unit_length`` per step. Both endpoints are included.
    """
    if unit_length <= 0:
        raise ValueError(f"unit_length must be positive, got {unit_length}")
    q_from = np.asarray(q_from, dtype=float)
    q_to = np.asarray(q_to, dtype=float)
    span = float(np.max(np.abs(q_to - q_from))) if q_from.size else 0.0
    div = max(1, math.ceil(span / unit_length - 1e-9))
    return [q_from + (q_to - q_from) * (i / div) for i in range(div + 1)]


def interpolate_path(waypoints: Sequence[np.ndarray], max_step: float) -> List[np.ndarray]:
    """Densify a waypoint list, keeping its order and dropping repeated joins."""
    waypoints = [np.asarray(q, dtype=float) for q in waypoints]
    if len(waypoints) < 2:
        return [q.copy() for q in waypoints]

    path = [waypoints[0].copy()]
    for q_from, q_to in zip(waypoints[:-1], waypoints[1:]):
        path.extend(interpolate(q_from, q_to, max_step)[1:])
    return path


@dataclass
class PlanningResult:
    """Result container for planning operations."""
    success: bool
    path: Optional[List[np.ndarray]] = None
    error_message: Optional[str] = None
    computation_time: Optional[float] = None
    iterations: int = 0


class RRTConnectPlanner:
    """Bidirectional RRT with greedy connect and shortcut smoothing."""

    def __init__(self, is_valid: Callable[[np.ndarray], bool], joint_limits: np.ndarray,
                 config: Optional[Dict[str, Any]] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        Args:
            is_valid: returns True for collision-free configurations
            joint_limits: (2, n_joints) lower/upper limits
            config: max_iterations, step_size, edge_resolution, smoothing_iterations
            rng: random generator for sampling and smoothing
        """
        self.is_valid = is_valid
        self.joint_limits = np.asarray(joint_limits, dtype=float)
        self.rng = rng or np.random.default_rng()

        config = config or {}
        self.max_iterations = int(config.get('max_iterations', 2000))
        self.step_size = float(config.get('step_size', 0.2))
        self.edge_resolution = float(config.get('edge_resolution', 0.05))
        self.smoothing_iterations = int(config.get('smoothing_iterations', 50))

        self.planning_stats = {'total_plans': 0, 'successful_plans': 0, 'total_time': 0.0}

    def _sample_random(self) -> np.ndarray:
        lower_limits, upper_limits = self.joint_limits
        return self.rng.uniform(lower_limits, upper_limits)

    def is_edge_valid(self, q1: np.ndarray, q2: np.ndarray) -> bool:
        """Check every interpolated configuration of a straight segment (excluding q1)."""
        return all(self.is_valid(q) for q in interpolate(q1, q2, self.edge_resolution)[1:])

    def _extend(self, tree: Dict[str, List], target: np.ndarray) -> Tuple[str, int]:
        """Grow ``tree`` one step toward ``target``."""
        _, nearest_idx = cKDTree(tree['points']).query(target)
        nearest_point = tree['points'][nearest_idx]

        direction = target - nearest_point
        dist = np.linalg.norm(direction)
        if dist <= self.step_size:
            new_point, status = target.copy(), REACHED
        else:
            new_point, status = nearest_point + direction / dist * self.step_size, ADVANCED

        if not self.is_edge_valid(nearest_point, new_point):
            return TRAPPED, nearest_idx

        tree['points'].append(new_point)
        tree['parents'].append(nearest_idx)
        return status, len(tree['points']) - 1

    def _connect(self, tree: Dict[str, List], target: np.ndarray) -> Tuple[str, int]:
        status, idx = ADVANCED, -1
        while status == ADVANCED:
            status, idx = self._extend(tree, target)
        return status, idx

    @staticmethod
    def _get_tree_path(tree: Dict[str, List], node_idx: int) -> List[np.ndarray]:
        """Path from the node back to the tree root."""
        path = []
        current = node_idx
        while current != -1:
            path.append(tree['points'][current].copy())
            current = tree['parents'][current]
        return path

    def _rrt_connect(self, q_start: np.ndarray, q_goal: np.ndarray) -> PlanningResult:
        start_tree = {'points': [q_start.copy()], 'parents': [-1]}
        goal_tree = {'points': [q_goal.copy()], 'parents': [-1]}
        tree_a, tree_b = start_tree, goal_tree

        for i in range(self.max_iterations):
            q_rand = self._sample_random()
            status, idx_a = self._extend(tree_a, q_rand)
            if status != TRAPPED:
                q_new = tree_a['points'][idx_a]
                status, idx_b = self._connect(tree_b, q_new)
                if status == REACHED:
                    path_a = self._get_tree_path(tree_a, idx_a)
                    path_b = self._get_tree_path(tree_b, idx_b)
                    if tree_a is start_tree:
                        path = path_a[::-1] + path_b[1:]
                    else:
                        path = path_b[::-1] + path_a[1:]
                    logger.debug(f"RRT-Connect joined trees at iteration {i} "
                                 f"({len(start_tree['points'])}/{len(goal_tree['points'])} nodes)")
                    return PlanningResult(success=True, path=path, iterations=i + 1)
            tree_a, tree_b = tree_b, tree_a

        return PlanningResult(success=False, error_message="no valid path found",
                              iterations=self.max_iterations)

    def smooth_path(self, path: List[np.ndarray]) -> List[np.ndarray]:
        """Random shortcutting: replace sub-paths by valid straight segments."""
        path = [q.copy() for q in path]
        for _ in range(self.smoothing_iterations):
            if len(path) < 3:
                break
            i, j = sorted(self.rng.choice(len(path), size=2, replace=False))
            if j - i < 2:
                continue
            if self.is_edge_valid(path[i], path[j]):
                path = path[:i + 1] + path[j:]
        return path

    def plan(self, q_start: np.ndarray, q_goal: np.ndarray) -> List[np.ndarray]:
        """
        Plan a collision-free joint path.

        Returns:
            waypoints from ``q_start`` to ``q_goal`` inclusive

        Raises:
            PlanFailure: endpoints invalid or no path within the iteration budget
        """
        start_time = time.time()
        q_start = np.asarray(q_start, dtype=float)
        q_goal = np.asarray(q_goal, dtype=float)
        self.planning_stats['total_plans'] += 1

        if not self.is_valid(q_start):
            raise PlanFailure("start configuration is in collision")
        if not self.is_valid(q_goal):
            raise PlanFailure("goal configuration is in collision")

        if self.is_edge_valid(q_start, q_goal):
            result = PlanningResult(success=True, path=[q_start.copy(), q_goal.copy()])
        else:
            result = self._rrt_connect(q_start, q_goal)
        result.computation_time = time.time() - start_time
        self.planning_stats['total_time'] += result.computation_time

        if not result.success:
            logger.debug(f"RRT-Connect gave up after {result.iterations} iterations")
            raise PlanFailure(result.error_message)

        path = self.smooth_path(result.path)
        self.planning_stats['successful_plans'] += 1
        logger.info(f"Path found: {len(result.path)} nodes, {len(path)} after smoothing "
                    f"({result.computation_time * 1000:.0f}ms)")
        return path

    def get_planning_stats(self) -> Dict[str, Any]:
        """Get planning performance statistics."""
        stats = self.planning_stats.copy()
        if stats['total_plans'] > 0:
            stats['success_rate'] = stats['successful_plans'] / stats['total_plans']
        return stats
