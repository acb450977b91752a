#!/usr/bin/env python3
"""
Configuration loading for the interactive reach demo.

Values come from ``config/reach.yaml`` when present and fall back to the
built-in defaults below. A partial file only overrides the keys it names.

Author: Robot Control Team
"""

import copy
import os
import logging
from typing import Any, Dict, Optional

import yaml

from .interfaces import Constraints

logger = logging.getLogger(__name__)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

DEFAULT_CONFIG: Dict[str, Any] = {
    'robot': {
        'urdf': os.path.join(PROJECT_ROOT, 'assets', 'sample.urdf'),
        'end_link': 'l_wrist2',
    },
    'obstacles': {
        'path': os.path.join(PROJECT_ROOT, 'assets', 'obstacles.yaml'),
    },
    'target': {
        'translation': [0.40, 0.20, 0.30],
        'rpy': [0.0, -0.1, 0.0],
        'marker_size': 0.3,
    },
    'controls': {
        'translation_step': 0.05,   # meters per key press
        'rotation_step': 0.2,       # radians per shift+key press
        'keys': {
            'up': ['z', 1.0],
            'down': ['z', -1.0],
            'left': ['y', 1.0],
            'right': ['y', -1.0],
            'f': ['x', 1.0],
            'b': ['x', -1.0],
        },
        'actions': {
            'i': 'solve_ik',
            'g': 'request_plan',
            'r': 'randomize',
            'c': 'probe_collisions',
            'v': 'toggle_collision_geometry',
            'q': 'quit',
            'escape': 'quit',
        },
    },
    'playback': {
        'interpolation_step': 0.1,  # max joint displacement (rad) per tick
    },
    'constraints': {
        'ignore_rotation_x': False,
        'ignore_rotation_y': False,
        'ignore_rotation_z': False,
    },
    'ik': {
        'max_iterations': 300,
        'allowable_target_distance': 0.01,
        'allowable_target_angle': 0.02,
        'move_epsilon': 1e-5,
        'damping': 0.05,
        'max_joint_step': 0.3,
        'num_restarts': 20,
    },
    'planner': {
        'max_iterations': 2000,
        'step_size': 0.2,
        'edge_resolution': 0.05,
        'smoothing_iterations': 50,
        'goal_attempts': 5,
    },
    'collision': {
        'margin': 0.01,
        'link_radius': 0.03,
        'samples_per_link': 6,
    },
    'viewer': {
        'frame_interval': 0.03,
        'highlight_color': [0.8, 0.8, 0.6],
        'axis_limits': {
            'x': [-0.6, 0.9],
            'y': [-0.7, 0.7],
            'z': [0.0, 1.2],
        },
    },
    'logging': {
        'level': 'INFO',
    },
}


def _get_default_config_path() -> str:
    """Find config/reach.yaml next to the package or in the working directory."""
    possible_paths = [
        os.path.join(PROJECT_ROOT, 'config', 'reach.yaml'),
        os.path.join(os.getcwd(), 'config', 'reach.yaml'),
    ]
    for path in possible_paths:
        if os.path.exists(path):
            return path
    return possible_paths[0]


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _resolve_path(value: str, config_dir: str) -> str:
    if os.path.isabs(value):
        return value
    candidate = os.path.join(config_dir, value)
    if os.path.exists(candidate):
        return os.path.abspath(candidate)
    return os.path.abspath(os.path.join(PROJECT_ROOT, value))


def load_reach_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the demo configuration.

    Args:
        config_path: YAML file to read (default: config/reach.yaml)

    Returns:
        Nested configuration dict with every default key present
    """
    path = config_path or _get_default_config_path()

    if not os.path.exists(path):
        if config_path is not None:
            logger.warning(f"Config file not found: {path}, using defaults")
        else:
            logger.info("No config file found, using default reach configuration")
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(path, 'r') as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(loaded).__name__}")

    # Relative asset paths are taken relative to the config file's directory
    config_dir = os.path.dirname(os.path.abspath(path))
    if 'urdf' in loaded.get('robot', {}):
        loaded['robot']['urdf'] = _resolve_path(loaded['robot']['urdf'], config_dir)
    if 'path' in loaded.get('obstacles', {}):
        loaded['obstacles']['path'] = _resolve_path(loaded['obstacles']['path'], config_dir)

    config = _deep_merge(DEFAULT_CONFIG, loaded)
    logger.info(f"Reach configuration loaded from: {path}")
    return config


def constraints_from_config(config: Dict[str, Any]) -> Constraints:
    """Build IK constraints from the ``constraints`` section."""
    section = config.get('constraints', {})
    return Constraints(
        rotation_x=not section.get('ignore_rotation_x', False),
        rotation_y=not section.get('ignore_rotation_y', False),
        rotation_z=not section.get('ignore_rotation_z', False),
    )
