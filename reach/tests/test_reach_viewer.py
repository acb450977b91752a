#!/usr/bin/env python3
"""
Unit Tests for the matplotlib reach viewer (headless, Agg backend).

Author: Robot Control Team
"""

import sys
import os
import unittest
from types import SimpleNamespace

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from reach.interfaces import KeyPress
from reach.reach_viewer import ReachViewer, normalize_key, obstacle_wireframe


def translation(x, y, z):
    T = np.eye(4)
    T[:3, 3] = [x, y, z]
    return T


class MockRobot:
    """Mock planar chain whose link frames follow joint 0."""

    link_names = ['base', 'link1', 'link2']

    def __init__(self):
        self.q = np.zeros(2)

    def joint_positions(self):
        return self.q.copy()

    def link_frames(self, q=None):
        reach = 0.3 + self.q[0]
        return [('base', np.eye(4)), ('link1', translation(0, 0, 0.3)),
                ('link2', translation(reach, 0, 0.3))]


class TestNormalizeKey(unittest.TestCase):

    def test_plain_keys(self):
        self.assertEqual(normalize_key('up'), KeyPress('up'))
        self.assertEqual(normalize_key('g'), KeyPress('g'))

    def test_shift_variants(self):
        self.assertEqual(normalize_key('shift+up'), KeyPress('up', True))
        self.assertEqual(normalize_key('F'), KeyPress('f', True))
        self.assertEqual(normalize_key('shift+F'), KeyPress('f', True))

    def test_modifier_only(self):
        self.assertIsNone(normalize_key('shift'))
        self.assertIsNone(normalize_key(None))
        self.assertIsNone(normalize_key('ctrl+control'))


class TestObstacleWireframe(unittest.TestCase):

    def test_box_corners(self):
        lines = obstacle_wireframe('box', np.array([0.2, 0.4, 0.6]), translation(1, 0, 0))
        points = np.vstack(lines)
        np.testing.assert_allclose(points.min(axis=0), [0.9, -0.2, -0.3])
        np.testing.assert_allclose(points.max(axis=0), [1.1, 0.2, 0.3])

    def test_sphere_radius(self):
        lines = obstacle_wireframe('sphere', np.array([0.1]), translation(0, 0, 1))
        for line in lines:
            np.testing.assert_allclose(np.linalg.norm(line - [0, 0, 1], axis=1), 0.1)

    def test_unknown_shape_draws_nothing(self):
        self.assertEqual(obstacle_wireframe('mesh', np.array([1.0]), np.eye(4)), [])


class TestReachViewer(unittest.TestCase):

    def setUp(self):
        self.robot = MockRobot()
        self.obstacles = [SimpleNamespace(shape=SimpleNamespace(value='box'),
                                          dimensions=np.array([0.1, 0.1, 0.1]),
                                          pose=translation(0.5, 0, 0.2))]
        self.viewer = ReachViewer(bound_keys={'f', 'g', 'left', 'q'})
        self.viewer.setup(self.robot, self.obstacles)

    def tearDown(self):
        self.viewer.close()
        plt.close('all')

    def test_links_follow_robot(self):
        line = self.viewer._link_lines['link2']
        xs, _, _ = line.get_data_3d()
        np.testing.assert_allclose(xs, [0.0, 0.3])

        self.robot.q[0] = 0.2
        self.viewer.update_robot(self.robot)
        xs, _, zs = line.get_data_3d()
        np.testing.assert_allclose(xs, [0.0, 0.5])
        np.testing.assert_allclose(zs, [0.3, 0.3])

    def test_temporal_color(self):
        line = self.viewer._link_lines['link1']
        self.viewer.set_temporal_color('link1', (0.8, 0.8, 0.6))
        self.assertEqual(matplotlib.colors.to_rgb(line.get_color()), (0.8, 0.8, 0.6))
        self.viewer.reset_temporal_color('link1')
        self.assertEqual(matplotlib.colors.to_rgb(line.get_color()), ReachViewer.LINK_COLOR)

    def test_axis_frame_transform(self):
        self.viewer.add_axis_frame('target', 0.3)
        self.viewer.set_object_transform('target', translation(0.4, 0.2, 0.3))
        _, lines = self.viewer._frames['target']
        xs, ys, zs = lines[0].get_data_3d()
        np.testing.assert_allclose(xs, [0.4, 0.7])
        np.testing.assert_allclose(ys, [0.2, 0.2])

    def test_unknown_object_is_reported(self):
        with self.assertLogs('reach.reach_viewer', level='WARNING'):
            self.viewer.set_object_transform('missing', np.eye(4))

    def test_collision_geometry_toggle(self):
        self.viewer.set_collision_geometry_visible(True)
        self.assertTrue(all(s.get_visible() for s in self.viewer._collision_lines.values()))
        self.assertFalse(any(l.get_visible() for l in self.viewer._link_lines.values()))
        self.viewer.set_collision_geometry_visible(False)
        self.assertFalse(any(s.get_visible() for s in self.viewer._collision_lines.values()))
        self.assertTrue(all(l.get_visible() for l in self.viewer._link_lines.values()))

    def test_highlight_survives_geometry_swap(self):
        self.viewer.set_temporal_color('link2', (0.8, 0.8, 0.6))
        self.viewer.set_collision_geometry_visible(True)
        shell = self.viewer._collision_lines['link2']
        self.assertEqual(matplotlib.colors.to_rgb(shell.get_color()), (0.8, 0.8, 0.6))

    def test_key_events_are_drained(self):
        self.viewer._on_key_press(SimpleNamespace(key='shift+up'))
        self.viewer._on_key_press(SimpleNamespace(key='shift'))
        self.viewer._on_key_press(SimpleNamespace(key='g'))
        self.assertEqual(self.viewer.events(), [KeyPress('up', True), KeyPress('g')])
        self.assertEqual(self.viewer.events(), [])

    def test_bound_keys_released_and_restored(self):
        self.assertNotIn('f', matplotlib.rcParams['keymap.fullscreen'])
        self.assertNotIn('g', matplotlib.rcParams['keymap.grid'])
        self.viewer.close()
        self.assertIn('f', matplotlib.rcParams['keymap.fullscreen'])
        self.assertIn('g', matplotlib.rcParams['keymap.grid'])

    def test_render_false_after_close(self):
        self.assertTrue(self.viewer.render())
        self.viewer.close()
        self.assertFalse(self.viewer.render())

    def test_context_manager_closes(self):
        with ReachViewer() as viewer:
            viewer.setup(self.robot)
        self.assertFalse(viewer.render())


if __name__ == "__main__":
    unittest.main(verbosity=2)
