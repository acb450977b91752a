#!/usr/bin/env python3
"""
Playback queue for planned joint waypoints.

Author: Robot Control Team
"""

import numpy as np
from typing import List, Optional, Sequence


class PlanQueue:
    """
    Waypoints waiting for playback, consumed from the end.

    Callers enqueue the plan already reversed, so popping from the end plays
    it from start to goal. Playback pops at most one entry per render tick.
    """

    def __init__(self):
        self._waypoints: List[np.ndarray] = []

    def enqueue(self, waypoints: Sequence[np.ndarray]):
        """Replace the queue contents."""
        self._waypoints = [np.asarray(q, dtype=float) for q in waypoints]

    def pop_next(self) -> Optional[np.ndarray]:
        """Remove and return the last entry, or None when empty."""
        if not self._waypoints:
            return None
        return self._waypoints.pop()

    def clear(self):
        self._waypoints = []

    @property
    def is_empty(self) -> bool:
        return not self._waypoints

    def __len__(self):
        return len(self._waypoints)
