#!/usr/bin/env python3
"""
Interactive reach demo.

Usage:
    python -m reach [robot.urdf] [end_link] [options]

Keys (in the viewer window):
    up/down, left/right, f/b    move the IK target along z, y, x
    shift + the same keys       rotate the IK target about the same axes
    i                           solve IK and jump to the solution
    g                           plan a collision-free motion and play it back
    r                           random configuration
    c                           highlight links in collision
    v                           toggle link collision geometry
    q / escape                  quit
"""

import argparse
import logging
import sys

import numpy as np

from .errors import ModelLoadError, ReachError
from .key_bindings import build_key_bindings, describe_bindings
from .reach_config import load_reach_config, constraints_from_config
from .reach_controller import InteractiveController

logger = logging.getLogger("reach")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m reach",
        description="Keyboard-driven IK target control with collision-aware planning")
    parser.add_argument("robot", nargs="?", default=None,
                        help="robot URDF file (default from config)")
    parser.add_argument("end_link", nargs="?", default=None,
                        help="end link of the IK chain (default from config)")
    parser.add_argument("--obstacles", default=None,
                        help="obstacle YAML or URDF file (default from config)")
    parser.add_argument("--config", default=None, help="reach YAML configuration file")
    parser.add_argument("--ignore-rotation-x", action="store_true",
                        help="ignore rotation about x when planning")
    parser.add_argument("--ignore-rotation-y", action="store_true",
                        help="ignore rotation about y when planning")
    parser.add_argument("--ignore-rotation-z", action="store_true",
                        help="ignore rotation about z when planning")
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument("--log-level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="logging level (default from config)")
    return parser.parse_args(argv)


def apply_cli_overrides(config, args: argparse.Namespace):
    """CLI flags take precedence over configuration file values."""
    if args.robot:
        config['robot']['urdf'] = args.robot
    if args.end_link:
        config['robot']['end_link'] = args.end_link
    if args.obstacles:
        config['obstacles']['path'] = args.obstacles
    for axis in 'xyz':
        if getattr(args, f"ignore_rotation_{axis}"):
            config['constraints'][f"ignore_rotation_{axis}"] = True
    if args.log_level:
        config['logging']['level'] = args.log_level
    return config


def main(argv=None) -> int:
    args = parse_args(argv)
    config = apply_cli_overrides(load_reach_config(args.config), args)

    logging.basicConfig(
        level=getattr(logging, str(config['logging']['level']).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Backends are imported here so the core package stays free of them
    from kinematics.src import JacobianIKSolver, RandomInitializeIKSolver, URDFModelLoader
    from planning.src import (
        CapsuleCollisionChecker, CollisionAwarePlanner, ObstacleFileLoader, interpolate_path
    )
    from .reach_viewer import ReachViewer

    rng = np.random.default_rng(args.seed)
    try:
        robot = URDFModelLoader(rng).load(config['robot']['urdf'], config['robot']['end_link'])
        obstacles = ObstacleFileLoader().load(config['obstacles']['path'])
    except ModelLoadError as e:
        logger.error(f"Startup failed: {e}")
        return 1
    except ReachError as e:
        logger.error(f"Invalid obstacle description: {e}")
        return 1

    ik_config = config['ik']
    local_solver = JacobianIKSolver(ik_config)
    ik_solver = RandomInitializeIKSolver(local_solver, ik_config.get('num_restarts', 20), rng)
    collision_checker = CapsuleCollisionChecker.from_config(config['collision'])
    planner = CollisionAwarePlanner(ik_solver, collision_checker, config['planner'], rng)

    try:
        key_bindings = build_key_bindings(config['controls'])
    except ValueError as e:
        logger.error(f"Invalid key bindings: {e}")
        return 1
    logger.info("Key bindings:\n" + describe_bindings(key_bindings))

    viewer_config = dict(config['viewer'], link_radius=config['collision']['link_radius'])
    with ReachViewer(viewer_config, bound_keys={key for key, _ in key_bindings}) as viewer:
        viewer.setup(robot, obstacles)
        controller = InteractiveController(
            robot, ik_solver, planner, collision_checker, viewer, obstacles,
            interpolate_path, config,
            constraints=constraints_from_config(config),
            key_bindings=key_bindings)
        try:
            controller.run()
        except KeyboardInterrupt:
            logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
