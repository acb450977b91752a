#!/usr/bin/env python3
"""
Robot Kinematics Package - Source Module

Kinematics backend for the interactive reach controller, using the
Product of Exponentials (PoE) formulation.

This package provides:
- URDF chain extraction and forward kinematics
- Stateful serial-chain robot model
- Damped least squares inverse kinematics with random restarts

Author: Robot Control Team
Version: 2.1.0
"""

__version__ = "2.1.0"
__author__ = "Robot Control Team"

# Core kinematics classes
from .forward_kinematic import ForwardKinematics
from .inverse_kinematic import JacobianIKSolver, RandomInitializeIKSolver
from .robot_model import SerialChainRobot, URDFModelLoader

__all__ = [
    'ForwardKinematics',
    'JacobianIKSolver',
    'RandomInitializeIKSolver',
    'SerialChainRobot',
    'URDFModelLoader',
]

# Package metadata
__title__ = "reach_kinematics"
__description__ = "PoE kinematics and IK backend for serial robot chains"
__license__ = "MIT"
