"""Kinematics backend: URDF chains, forward and inverse kinematics."""
