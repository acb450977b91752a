#!/usr/bin/env python3
"""
Declarative keyboard table for the reach controller.

Maps (key, shift) to a controller operation name plus its arguments.

Author: Robot Control Team
"""

from typing import Any, Dict, Tuple

from .pose_target import _axis_index

Binding = Tuple[str, Tuple[Any, ...]]
KeyBindings = Dict[Tuple[str, bool], Binding]

# Controller operations that take no arguments
ACTION_OPERATIONS = (
    "solve_ik", "request_plan", "randomize", "probe_collisions",
    "toggle_collision_geometry", "quit",
)


def build_key_bindings(controls: Dict[str, Any]) -> KeyBindings:
    """
    Build the dispatch table from the ``controls`` config section.

    Direction keys translate without shift and rotate with shift, by
    ``translation_step`` / ``rotation_step`` times the key's sign. Action keys
    fire regardless of shift.
    """
    translation_step = float(controls['translation_step'])
    rotation_step = float(controls['rotation_step'])

    bindings: KeyBindings = {}
    for key, (axis, sign) in controls.get('keys', {}).items():
        axis_idx = _axis_index(axis)
        bindings[(key, False)] = ('translate', (axis_idx, float(sign) * translation_step))
        bindings[(key, True)] = ('rotate', (axis_idx, float(sign) * rotation_step))

    for key, operation in controls.get('actions', {}).items():
        if operation not in ACTION_OPERATIONS:
            raise ValueError(f"Unknown action '{operation}' for key '{key}', "
                             f"expected one of {', '.join(ACTION_OPERATIONS)}")
        bindings[(key, False)] = (operation, ())
        bindings[(key, True)] = (operation, ())

    return bindings


def describe_bindings(bindings: KeyBindings) -> str:
    """Human readable help text, one binding per line."""
    lines = []
    for (key, shift), (operation, args) in sorted(bindings.items()):
        if operation not in ('translate', 'rotate') and shift:
            continue
        label = f"shift+{key}" if shift else key
        if args:
            axis = 'xyz'[args[0]]
            lines.append(f"  {label:<12} {operation} {axis} {args[1]:+.3f}")
        else:
            lines.append(f"  {label:<12} {operation}")
    return "\n".join(lines)
