#!/usr/bin/env python3
"""
Collision highlight tracking.

Author: Robot Control Team
"""

import logging
from typing import Iterable, Tuple

logger = logging.getLogger(__name__)

DEFAULT_HIGHLIGHT_COLOR = (0.8, 0.8, 0.6)


class CollisionHighlightTracker:
    """Set of links currently drawn with the collision highlight colour."""

    def __init__(self, viewer, color: Tuple[float, float, float] = DEFAULT_HIGHLIGHT_COLOR):
        self.viewer = viewer
        self.color = tuple(color)
        self._names = []

    def reset(self):
        """Restore the default colour of every flagged link and forget them."""
        for name in self._names:
            self.viewer.reset_temporal_color(name)
        self._names = []

    def set(self, names: Iterable[str]):
        """Replace the flagged set with ``names`` and highlight each."""
        self.reset()
        flagged = []
        for name in names:
            if name not in flagged:
                flagged.append(name)
        for name in flagged:
            self.viewer.set_temporal_color(name, self.color)
        self._names = flagged
        logger.debug(f"Highlighted links: {flagged}")

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._names)

    def __contains__(self, name):
        return name in self._names

    def __len__(self):
        return len(self._names)
