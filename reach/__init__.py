#!/usr/bin/env python3
"""
Interactive Reach Package

Keyboard-driven control of an IK target for a serial robot arm, with
collision probing and collision-aware motion planning.

This package provides:
- Target pose accumulation from discrete key presses
- Collision highlight bookkeeping
- Planned waypoint playback queue
- The interactive controller and its collaborator interfaces

The matplotlib viewer lives in ``reach.reach_viewer`` and is imported on demand.

Author: Robot Control Team
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Robot Control Team"

from .errors import ReachError, ModelLoadError, SolveFailure, PlanFailure, CollisionQueryError
from .interfaces import Constraints, KeyPress
from .pose_target import PoseAccumulator
from .highlight_tracker import CollisionHighlightTracker
from .plan_queue import PlanQueue
from .key_bindings import build_key_bindings
from .reach_config import load_reach_config, constraints_from_config
from .reach_controller import InteractiveController, ControllerState

__all__ = [
    'ReachError',
    'ModelLoadError',
    'SolveFailure',
    'PlanFailure',
    'CollisionQueryError',
    'Constraints',
    'KeyPress',
    'PoseAccumulator',
    'CollisionHighlightTracker',
    'PlanQueue',
    'build_key_bindings',
    'load_reach_config',
    'constraints_from_config',
    'InteractiveController',
    'ControllerState',
]
