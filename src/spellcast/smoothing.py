"""Jitter removal for the raw tip stream.

A moving average over the last ``k`` samples plus a velocity gate that
rejects single-frame jumps (usually a landmark swapping fingers for a frame).

Usage:
    smoother = PointSmoother(window=3)
    x, y = smoother.smooth(Sample(x=120.0, y=80.0, t=now))
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from typing import Optional

MIN_WINDOW = 1
MAX_WINDOW = 10


@dataclass(frozen=True)
class Sample:
    """One observed tip position in tracked (pixel) coordinates."""
    x: float
    y: float
    t: float


def is_valid_movement(
    point: tuple[float, float],
    last_point: Optional[tuple[float, float]],
    max_velocity: float,
) -> bool:
    """Return False if ``point`` jumped farther than ``max_velocity`` from the last accepted point."""
    if last_point is None:
        return True
    dist = math.hypot(point[0] - last_point[0], point[1] - last_point[1])
    return dist <= max_velocity


class PointSmoother:
    """Moving-average smoother over the last ``window`` samples.

    A window of 1 passes samples through unchanged.
    """

    def __init__(self, window: int = 3):
        if not MIN_WINDOW <= window <= MAX_WINDOW:
            raise ValueError(
                f"smoothing window must be in [{MIN_WINDOW}, {MAX_WINDOW}], got {window}"
            )
        self.window = window
        self._buffer: deque[Sample] = deque(maxlen=window)

    def smooth(self, sample: Sample) -> tuple[float, float]:
        self._buffer.append(sample)
        n = len(self._buffer)
        return (
            sum(s.x for s in self._buffer) / n,
            sum(s.y for s in self._buffer) / n,
        )

    def reset(self):
        """Drop buffered history (called when tracking is lost)."""
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)
