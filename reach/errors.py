#!/usr/bin/env python3
"""
Error taxonomy for the interactive reach controller.

Every backend (model loader, IK solver, planner, collision checker) reports
failures with one of these exceptions. The controller catches them at the
user action that triggered the call and reports them without stopping the
render loop.

Author: Robot Control Team
"""


class ReachError(Exception):
    """Base class for recoverable reach-demo errors."""
    pass


class ModelLoadError(ReachError):
    """Robot or obstacle description is missing or invalid."""
    pass


class SolveFailure(ReachError):
    """IK target unreachable within the iteration/tolerance budget."""
    pass


class PlanFailure(ReachError):
    """No collision-free path to the target was found."""
    pass


class CollisionQueryError(ReachError):
    """Obstacle set is malformed or cannot be queried."""
    pass
