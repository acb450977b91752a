#!/usr/bin/env python3
"""
Interactive Reach Controller

Keyboard-driven IK target control with collision-aware planning and
waypoint playback. One render tick:

1. pop one planned waypoint (if any) and show it
2. apply every pending key press
3. redraw

All collaborators are injected, so the controller works with any
robot model, IK solver, planner, collision checker and viewer that follow
the interfaces in ``reach.interfaces``.

Author: Robot Control Team
"""

import numpy as np
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import CollisionQueryError, PlanFailure, ReachError, SolveFailure
from .highlight_tracker import CollisionHighlightTracker
from .interfaces import Constraints, KeyPress
from .key_bindings import KeyBindings, build_key_bindings
from .plan_queue import PlanQueue
from .pose_target import PoseAccumulator

logger = logging.getLogger(__name__)

TARGET_MARKER = "ik_target"
ORIGIN_MARKER = "origin"


class ControllerState(Enum):
    """Playback state of the controller."""
    IDLE = "idle"
    PLAYING = "playing"


class InteractiveController:
    """Owns the target pose, highlight set and plan queue for one viewer."""

    def __init__(self, robot, ik_solver, planner, collision_checker, viewer,
                 obstacles, interpolator, config: Dict[str, Any],
                 constraints: Optional[Constraints] = None,
                 key_bindings: Optional[KeyBindings] = None):
        """
        Args:
            robot: RobotModel driven by the controller
            ik_solver: IKSolver for single-shot solves
            planner: MotionPlanner for collision-aware plans
            collision_checker: CollisionChecker for collision probes
            viewer: Viewer handle (owned by the caller)
            obstacles: obstacle set passed to planner and checker
            interpolator: callable (waypoints, max_step) -> waypoints
            config: reach configuration dict
            constraints: IK constraints for plan requests
            key_bindings: (key, shift) table, built from config if None
        """
        self.robot = robot
        self.ik_solver = ik_solver
        self.planner = planner
        self.collision_checker = collision_checker
        self.viewer = viewer
        self.obstacles = obstacles
        self.interpolator = interpolator
        self.config = config
        self.constraints = constraints or Constraints()
        self.key_bindings = key_bindings or build_key_bindings(config['controls'])

        target_cfg = config['target']
        self.pose = PoseAccumulator(target_cfg['translation'], target_cfg['rpy'])
        self.highlights = CollisionHighlightTracker(
            viewer, tuple(config['viewer']['highlight_color']))
        self.plan_queue = PlanQueue()
        self.interpolation_step = float(config['playback']['interpolation_step'])
        self.show_collision_geometry = False

        logger.info(f"Interactive controller initialized: {robot.dof} DoF, "
                    f"{len(self.key_bindings)} key bindings")

    @property
    def state(self) -> ControllerState:
        return ControllerState.IDLE if self.plan_queue.is_empty else ControllerState.PLAYING

    # --- viewer sync -------------------------------------------------------

    def _update_robot(self):
        self.viewer.update_robot(self.robot)

    def _update_ik_target(self):
        if self.pose.consume_dirty():
            self.viewer.set_object_transform(TARGET_MARKER, self.pose.as_matrix())

    # --- pose edits --------------------------------------------------------

    def translate(self, axis, delta: float):
        self.pose.apply_translation(axis, delta)
        self._update_ik_target()

    def rotate(self, axis, angle: float):
        self.pose.apply_rotation(axis, angle)
        self._update_ik_target()

    # --- collaborator requests ---------------------------------------------

    def solve_ik(self) -> bool:
        """Single IK solve on the current target; shown immediately on success."""
        self.highlights.reset()
        try:
            q = self.ik_solver.solve(self.robot, self.pose.as_matrix())
        except SolveFailure as e:
            logger.warning(f"IK target unreachable: {e}")
            return False
        self.robot.set_joint_positions(q)
        self._update_robot()
        logger.info(f"IK solved: {np.round(q, 3).tolist()}")
        return True

    def request_plan(self) -> bool:
        """Plan to the current target and queue the densified waypoints."""
        self.highlights.reset()
        try:
            plan = self.planner.plan_with_ik(
                self.robot, self.pose.as_matrix(), self.obstacles, self.constraints)
            if len(plan) == 0:
                raise PlanFailure("planner returned no waypoints")
        except PlanFailure as e:
            logger.warning(f"planning failed: {e}")
            return False

        reversed_plan = list(plan)[::-1]
        waypoints = self.interpolator(reversed_plan, self.interpolation_step)
        self.plan_queue.enqueue(waypoints)
        logger.info(f"Plan queued: {len(plan)} waypoints, {len(waypoints)} playback steps")
        return True

    def randomize(self) -> bool:
        """Jump to a uniformly sampled configuration within joint limits."""
        self.highlights.reset()
        try:
            q = self.robot.random_configuration()
        except ReachError as e:
            logger.warning(f"randomize failed: {e}")
            return False
        self.robot.set_joint_positions(q)
        self._update_robot()
        logger.info(f"Random configuration: {np.round(q, 3).tolist()}")
        return True

    def probe_collisions(self) -> List[str]:
        """Highlight and report every link colliding with the obstacles."""
        self.highlights.reset()
        try:
            names = self.collision_checker.colliding_link_names(self.robot, self.obstacles)
        except CollisionQueryError as e:
            logger.warning(f"collision probe failed: {e}")
            return []
        self.highlights.set(names)
        for name in self.highlights.names:
            logger.info(name)
        return list(self.highlights.names)

    def toggle_collision_geometry(self):
        self.show_collision_geometry = not self.show_collision_geometry
        self.viewer.set_collision_geometry_visible(self.show_collision_geometry)
        logger.debug(f"Collision geometry visible: {self.show_collision_geometry}")

    def quit(self):
        logger.info("Quit requested")
        self.viewer.close()

    # --- loop --------------------------------------------------------------

    def handle_key(self, event: KeyPress) -> bool:
        """Dispatch one key press through the binding table. Returns True if bound."""
        binding = self.key_bindings.get((event.key, event.shift))
        if binding is None:
            logger.debug(f"Unbound key: {event}")
            return False
        operation, args = binding
        getattr(self, operation)(*args)
        return True

    def step_playback(self) -> bool:
        """Show the next queued waypoint, if any."""
        q = self.plan_queue.pop_next()
        if q is None:
            return False
        self.robot.set_joint_positions(q)
        self._update_robot()
        if self.plan_queue.is_empty:
            logger.info("Plan playback finished")
        return True

    def tick(self):
        self.step_playback()
        for event in self.viewer.events():
            self.handle_key(event)
        self._update_ik_target()

    def start(self):
        """Place the robot and markers before the first render."""
        self.viewer.add_axis_frame(ORIGIN_MARKER, 1.0)
        self.viewer.add_axis_frame(TARGET_MARKER, float(self.config['target']['marker_size']))
        self._update_robot()
        self._update_ik_target()

    def run(self):
        self.start()
        while self.viewer.render():
            self.tick()
        logger.info("Viewer closed")
