#!/usr/bin/env python3
"""
Unit Tests for the Interactive Reach Controller

Test suite covering:
- Target pose edits from key presses
- IK solve, plan request, randomize and collision probe outcomes
- Failure handling (state left untouched, one log line)
- Plan playback through the render tick

Author: Robot Control Team
"""

import sys
import os
import copy
import unittest
import numpy as np
from unittest.mock import Mock

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from reach.errors import CollisionQueryError, PlanFailure, SolveFailure
from reach.interfaces import Constraints, KeyPress
from reach.reach_config import DEFAULT_CONFIG
from reach.reach_controller import (
    InteractiveController, ControllerState, TARGET_MARKER, ORIGIN_MARKER
)

LOGGER_NAME = 'reach.reach_controller'


class MockViewer:
    """Mock viewer recording every call."""

    def __init__(self, renders=0):
        self.calls = []
        self.colors = {}
        self.transforms = {}
        self.pending = []
        self.renders = renders
        self.closed = False

    def setup(self, robot, obstacles=None):
        self.calls.append(('setup',))

    def add_axis_frame(self, name, size):
        self.calls.append(('add_axis_frame', name, size))

    def set_object_transform(self, name, transform):
        self.calls.append(('set_object_transform', name))
        self.transforms[name] = np.array(transform)

    def update_robot(self, robot):
        self.calls.append(('update_robot', tuple(robot.joint_positions())))

    def set_temporal_color(self, link_name, rgb):
        self.calls.append(('set_temporal_color', link_name))
        self.colors[link_name] = rgb

    def reset_temporal_color(self, link_name):
        self.calls.append(('reset_temporal_color', link_name))
        self.colors.pop(link_name, None)

    def set_collision_geometry_visible(self, visible):
        self.calls.append(('set_collision_geometry_visible', visible))

    def events(self):
        events, self.pending = self.pending, []
        return events

    def render(self):
        if self.closed or self.renders <= 0:
            return False
        self.renders -= 1
        return True

    def close(self):
        self.closed = True

    def count(self, name):
        return sum(1 for c in self.calls if c[0] == name)


class MockRobot:
    """Mock 3-DoF robot."""

    def __init__(self):
        self.q = np.zeros(3)
        self.dof = 3
        self.link_names = ['base', 'link1', 'link2', 'link3']
        self.random_q = np.array([0.3, -0.2, 0.1])

    def joint_positions(self):
        return self.q.copy()

    def set_joint_positions(self, q):
        self.q = np.asarray(q, dtype=float).copy()

    def random_configuration(self, rng=None):
        return self.random_q.copy()


def identity_interpolator(waypoints, max_step):
    return [np.asarray(q, dtype=float) for q in waypoints]


class ControllerTestBase(unittest.TestCase):

    def setUp(self):
        self.config = copy.deepcopy(DEFAULT_CONFIG)
        self.config['target']['translation'] = [0.0, 0.0, 0.0]
        self.config['target']['rpy'] = [0.0, 0.0, 0.0]
        self.robot = MockRobot()
        self.viewer = MockViewer()
        self.ik_solver = Mock()
        self.planner = Mock()
        self.collision_checker = Mock()
        self.interpolator = Mock(side_effect=identity_interpolator)
        self.obstacles = object()
        self.constraints = Constraints(rotation_z=False)
        self.controller = InteractiveController(
            self.robot, self.ik_solver, self.planner, self.collision_checker,
            self.viewer, self.obstacles, self.interpolator, self.config,
            constraints=self.constraints)


class TestPoseEdits(ControllerTestBase):

    def test_three_up_presses_from_origin(self):
        for _ in range(3):
            self.controller.handle_key(KeyPress('up'))
        np.testing.assert_allclose(self.controller.pose.translation, [0.0, 0.0, 0.15])
        np.testing.assert_allclose(self.controller.pose.quaternion, [0, 0, 0, 1])

    def test_direction_keys_map_to_axes(self):
        for key in ('f', 'left', 'down'):
            self.controller.handle_key(KeyPress(key))
        np.testing.assert_allclose(self.controller.pose.translation, [0.05, 0.05, -0.05])

    def test_shift_rotates_instead_of_translating(self):
        self.controller.handle_key(KeyPress('up', shift=True))
        np.testing.assert_allclose(self.controller.pose.translation, [0, 0, 0])
        T = self.controller.pose.as_matrix()
        expected = np.array([[np.cos(0.2), -np.sin(0.2)], [np.sin(0.2), np.cos(0.2)]])
        np.testing.assert_allclose(T[:2, :2], expected, atol=1e-12)

    def test_target_marker_updated_only_when_changed(self):
        self.controller.start()
        self.assertEqual(self.viewer.count('set_object_transform'), 1)
        self.controller.tick()
        self.assertEqual(self.viewer.count('set_object_transform'), 1)

        self.controller.translate('x', 0.1)
        self.assertEqual(self.viewer.count('set_object_transform'), 2)
        self.assertAlmostEqual(self.viewer.transforms[TARGET_MARKER][0, 3], 0.1)

    def test_unbound_key_is_ignored(self):
        self.assertFalse(self.controller.handle_key(KeyPress('z')))
        np.testing.assert_allclose(self.controller.pose.translation, [0, 0, 0])

    def test_start_adds_markers(self):
        self.controller.start()
        self.assertIn(('add_axis_frame', ORIGIN_MARKER, 1.0), self.viewer.calls)
        self.assertIn(('add_axis_frame', TARGET_MARKER, 0.3), self.viewer.calls)
        self.assertEqual(self.viewer.count('update_robot'), 1)


class TestSolveIK(ControllerTestBase):

    def test_success_moves_robot(self):
        q = np.array([0.1, 0.2, 0.3])
        self.ik_solver.solve.return_value = q
        self.assertTrue(self.controller.handle_key(KeyPress('i')))
        np.testing.assert_allclose(self.robot.q, q)
        self.assertEqual(self.viewer.count('update_robot'), 1)

    def test_single_solve_uses_no_constraints(self):
        self.ik_solver.solve.return_value = np.zeros(3)
        self.controller.solve_ik()
        args, kwargs = self.ik_solver.solve.call_args
        self.assertIs(args[0], self.robot)
        self.assertEqual(len(args), 2)
        self.assertEqual(kwargs, {})

    def test_failure_leaves_robot_and_pose(self):
        self.ik_solver.solve.side_effect = SolveFailure("out of reach")
        before = self.controller.pose.snapshot()
        with self.assertLogs(LOGGER_NAME, level='INFO') as logs:
            self.assertFalse(self.controller.solve_ik())
        self.assertEqual(logs.output, [f"WARNING:{LOGGER_NAME}:IK target unreachable: out of reach"])
        np.testing.assert_allclose(self.robot.q, np.zeros(3))
        np.testing.assert_allclose(self.controller.pose.snapshot()[0], before[0])
        self.assertEqual(self.viewer.count('update_robot'), 0)

    def test_solve_clears_previous_highlights(self):
        self.collision_checker.colliding_link_names.return_value = ['link1']
        self.controller.probe_collisions()
        self.ik_solver.solve.return_value = np.zeros(3)
        self.controller.solve_ik()
        self.assertEqual(len(self.controller.highlights), 0)
        self.assertEqual(self.viewer.colors, {})


class TestRequestPlan(ControllerTestBase):

    def test_plan_is_queued_for_playback_in_order(self):
        q0, q1, q2 = np.zeros(3), np.full(3, 0.1), np.full(3, 0.2)
        self.planner.plan_with_ik.return_value = [q0, q1, q2]
        self.assertTrue(self.controller.handle_key(KeyPress('g')))

        args, _ = self.planner.plan_with_ik.call_args
        self.assertIs(args[0], self.robot)
        self.assertIs(args[2], self.obstacles)
        self.assertIs(args[3], self.constraints)
        self.interpolator.assert_called_once()
        self.assertEqual(self.interpolator.call_args[0][1], 0.1)

        self.assertEqual(self.controller.state, ControllerState.PLAYING)
        played = []
        while self.controller.step_playback():
            played.append(self.robot.q.copy())
        np.testing.assert_allclose(played, [q0, q1, q2])
        self.assertEqual(self.controller.state, ControllerState.IDLE)

    def test_plan_failure_logs_cause_once(self):
        self.planner.plan_with_ik.side_effect = PlanFailure("no valid path found")
        before = self.controller.pose.snapshot()
        with self.assertLogs(LOGGER_NAME, level='INFO') as logs:
            self.assertFalse(self.controller.request_plan())
        self.assertEqual(len(logs.output), 1)
        self.assertIn("no valid path found", logs.output[0])
        self.assertTrue(self.controller.plan_queue.is_empty)
        after = self.controller.pose.snapshot()
        np.testing.assert_allclose(after[0], before[0])
        np.testing.assert_allclose(after[1], before[1])

    def test_empty_plan_is_a_failure(self):
        self.planner.plan_with_ik.return_value = []
        with self.assertLogs(LOGGER_NAME, level='WARNING'):
            self.assertFalse(self.controller.request_plan())
        self.assertTrue(self.controller.plan_queue.is_empty)
        self.interpolator.assert_not_called()

    def test_failure_keeps_running_playback(self):
        self.planner.plan_with_ik.return_value = [np.zeros(3), np.ones(3)]
        self.controller.request_plan()
        self.planner.plan_with_ik.side_effect = PlanFailure("no valid path found")
        with self.assertLogs(LOGGER_NAME, level='WARNING'):
            self.controller.request_plan()
        self.assertEqual(len(self.controller.plan_queue), 2)

    def test_new_plan_replaces_queue(self):
        self.planner.plan_with_ik.return_value = [np.zeros(3), np.ones(3)]
        self.controller.request_plan()
        self.planner.plan_with_ik.return_value = [np.full(3, 2.0)]
        self.controller.request_plan()
        self.assertEqual(len(self.controller.plan_queue), 1)


class TestCollisionProbe(ControllerTestBase):

    def test_probe_highlights_and_logs_each_link(self):
        self.collision_checker.colliding_link_names.return_value = ['link3', 'link7']
        with self.assertLogs(LOGGER_NAME, level='INFO') as logs:
            self.assertTrue(self.controller.handle_key(KeyPress('c')))
        self.assertEqual(self.controller.highlights.names, ('link3', 'link7'))
        self.assertEqual(logs.output, [f"INFO:{LOGGER_NAME}:link3", f"INFO:{LOGGER_NAME}:link7"])
        self.assertEqual(set(self.viewer.colors), {'link3', 'link7'})
        self.assertEqual(self.viewer.colors['link3'], (0.8, 0.8, 0.6))

    def test_second_probe_replaces_highlights(self):
        self.collision_checker.colliding_link_names.return_value = ['link1', 'link2']
        self.controller.probe_collisions()
        self.collision_checker.colliding_link_names.return_value = ['link3']
        self.assertEqual(self.controller.probe_collisions(), ['link3'])
        self.assertEqual(set(self.viewer.colors), {'link3'})

    def test_probe_error_clears_set(self):
        self.collision_checker.colliding_link_names.return_value = ['link1']
        self.controller.probe_collisions()
        self.collision_checker.colliding_link_names.side_effect = CollisionQueryError("bad obstacles")
        with self.assertLogs(LOGGER_NAME, level='WARNING') as logs:
            self.assertEqual(self.controller.probe_collisions(), [])
        self.assertIn("bad obstacles", logs.output[0])
        self.assertEqual(len(self.controller.highlights), 0)


class TestOtherActions(ControllerTestBase):

    def test_randomize_sets_sampled_configuration(self):
        self.controller.handle_key(KeyPress('r'))
        np.testing.assert_allclose(self.robot.q, self.robot.random_q)
        self.assertEqual(self.viewer.count('update_robot'), 1)

    def test_toggle_collision_geometry(self):
        self.controller.handle_key(KeyPress('v'))
        self.controller.handle_key(KeyPress('v'))
        self.assertEqual([c for c in self.viewer.calls if c[0] == 'set_collision_geometry_visible'],
                         [('set_collision_geometry_visible', True),
                          ('set_collision_geometry_visible', False)])

    def test_quit_closes_viewer(self):
        self.controller.handle_key(KeyPress('escape'))
        self.assertTrue(self.viewer.closed)


class TestRenderLoop(ControllerTestBase):

    def test_one_waypoint_per_tick_then_keys(self):
        self.planner.plan_with_ik.return_value = [np.zeros(3), np.ones(3)]
        self.controller.request_plan()
        self.viewer.pending = [KeyPress('up')]

        self.controller.tick()
        np.testing.assert_allclose(self.robot.q, np.zeros(3))
        self.assertEqual(len(self.controller.plan_queue), 1)
        self.assertAlmostEqual(self.controller.pose.translation[2], 0.05)

        self.controller.tick()
        np.testing.assert_allclose(self.robot.q, np.ones(3))
        self.assertEqual(self.controller.state, ControllerState.IDLE)

    def test_run_stops_when_viewer_closes(self):
        self.viewer.renders = 3
        self.viewer.pending = [KeyPress('q')]
        self.controller.run()
        self.assertTrue(self.viewer.closed)


if __name__ == "__main__":
    unittest.main(verbosity=2)
