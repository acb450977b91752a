#!/usr/bin/env python3
"""
Motion Planning Module

Collision-aware planning to a Cartesian target: the start configuration is
checked, IK is solved for the target (retrying seeds until the goal is
collision-free), then a joint-space path is planned between the two.

Author: Robot Control Team
"""

import numpy as np
import logging
import time
from typing import Any, Dict, List, Optional
from enum import Enum

from reach.errors import CollisionQueryError, PlanFailure, SolveFailure
from reach.interfaces import CollisionChecker, Constraints, IKSolver, MotionPlanner

from .path_planner import RRTConnectPlanner

logger = logging.getLogger(__name__)


class PlanningStatus(Enum):
    """Outcome of the last planning request."""
    SUCCESS = "success"
    START_IN_COLLISION = "start_in_collision"
    IK_FAILED = "ik_failed"
    GOAL_IN_COLLISION = "goal_in_collision"
    NO_PATH = "no_path"
    COLLISION_QUERY_FAILED = "collision_query_failed"


class CollisionAwarePlanner(MotionPlanner):
    """plan_with_ik on top of an IK solver, a collision checker and RRT-Connect."""

    def __init__(self, ik_solver: IKSolver, collision_checker: CollisionChecker,
                 config: Optional[Dict[str, Any]] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        Args:
            ik_solver: solver used for the goal configuration
            collision_checker: checker used for start, goal and path edges
            config: ``planner`` configuration section
            rng: random generator for IK seeds and sampling
        """
        self.ik_solver = ik_solver
        self.collision_checker = collision_checker
        self.config = config or {}
        self.rng = rng or np.random.default_rng()
        self.goal_attempts = max(1, int(self.config.get('goal_attempts', 5)))

        self.last_status: Optional[PlanningStatus] = None
        self.stats = {'total_requests': 0, 'successful_requests': 0, 'total_time': 0.0}

        logger.info(f"Collision-aware planner initialized ({self.goal_attempts} goal attempts)")

    def _fail(self, status: PlanningStatus, message: str):
        self.last_status = status
        raise PlanFailure(message)

    def _collision_free_goal(self, robot, target: np.ndarray, obstacles,
                             constraints: Optional[Constraints]) -> np.ndarray:
        """IK for ``target`` from several seeds until the solution is collision-free."""
        last_error = None
        colliding: List[str] = []
        for attempt in range(self.goal_attempts):
            seed = robot.joint_positions() if attempt == 0 else robot.random_configuration(self.rng)
            try:
                q_goal = self.ik_solver.solve(robot, target, constraints, q_init=seed)
            except SolveFailure as e:
                last_error = e
                continue
            colliding = self.collision_checker.colliding_link_names(robot, obstacles, q_goal)
            if not colliding:
                return q_goal
            logger.debug(f"IK solution #{attempt} collides with {colliding}")

        if colliding:
            self._fail(PlanningStatus.GOAL_IN_COLLISION,
                       f"every IK solution collides ({', '.join(colliding)})")
        self._fail(PlanningStatus.IK_FAILED, f"IK failed: {last_error}")

    def plan_with_ik(self, robot, target: np.ndarray, obstacles,
                     constraints: Optional[Constraints] = None) -> List[np.ndarray]:
        start_time = time.time()
        self.stats['total_requests'] += 1
        q_start = robot.joint_positions()

        try:
            colliding = self.collision_checker.colliding_link_names(robot, obstacles, q_start)
            if colliding:
                self._fail(PlanningStatus.START_IN_COLLISION,
                           f"start configuration collides ({', '.join(colliding)})")

            q_goal = self._collision_free_goal(robot, target, obstacles, constraints)

            planner = RRTConnectPlanner(
                lambda q: self.collision_checker.is_collision_free(robot, obstacles, q),
                robot.joint_limits, self.config, self.rng)
            try:
                path = planner.plan(q_start, q_goal)
            except PlanFailure:
                self.last_status = PlanningStatus.NO_PATH
                raise
        except CollisionQueryError as e:
            self.last_status = PlanningStatus.COLLISION_QUERY_FAILED
            raise PlanFailure(f"collision query failed: {e}") from e
        finally:
            self.stats['total_time'] += time.time() - start_time

        self.last_status = PlanningStatus.SUCCESS
        self.stats['successful_requests'] += 1
        return path

    def get_statistics(self) -> Dict[str, Any]:
        return self.stats.copy()
