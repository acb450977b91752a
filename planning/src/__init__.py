#!/usr/bin/env python3
"""
Robot Motion Planning Package

Collision and planning backend for the interactive reach controller.

This package provides:
- Obstacle sets loaded from YAML or URDF collision primitives
- Capsule-based link collision checking
- RRT-Connect joint-space planning with shortcut smoothing
- Collision-aware planning to a Cartesian target via IK

Author: Robot Control Team
Version: 1.1.0
"""

__version__ = "1.1.0"
__author__ = "Robot Control Team"

# Base modules first, the IK-aware planner depends on them
from .collision_checker import (
    CapsuleCollisionChecker, Obstacle, ObstacleFileLoader, ObstacleSet, ObstacleShape
)
from .path_planner import RRTConnectPlanner, PlanningResult, interpolate, interpolate_path
from .motion_planner import CollisionAwarePlanner, PlanningStatus

__all__ = [
    'CapsuleCollisionChecker',
    'Obstacle',
    'ObstacleFileLoader',
    'ObstacleSet',
    'ObstacleShape',
    'RRTConnectPlanner',
    'PlanningResult',
    'interpolate',
    'interpolate_path',
    'CollisionAwarePlanner',
    'PlanningStatus',
]

# Package metadata
__title__ = "reach_planning"
__description__ = "Collision checking and motion planning for serial robot chains"
__license__ = "MIT"
