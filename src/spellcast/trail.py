"""Fading wand trail.

Keeps recent smoothed tip positions and turns them into line segments whose
opacity decays linearly with age. Rendering is time-driven: call ``render``
once per display refresh, even when no tracking event arrived, so the trail
keeps fading after the hand disappears.

Usage:
    trail = TrailBuffer()
    trail.push(x, y, now)
    for seg in trail.render(now, ttl=4.0):
        draw_line(seg.x1, seg.y1, seg.x2, seg.y2, alpha=seg.opacity)
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass


@dataclass
class TrailPoint:
    """A rendered trail vertex."""
    x: float
    y: float
    created_at: float

    def age(self, now: float) -> float:
        return now - self.created_at

    def opacity(self, now: float, ttl: float) -> float:
        return max(0.0, 1.0 - self.age(now) / ttl)


@dataclass
class TrailSegment:
    """A line between two consecutive trail points, ready to draw."""
    x1: float
    y1: float
    x2: float
    y2: float
    opacity: float
    width: float = 3.0

    def to_dict(self) -> dict:
        return {
            "type": "segment",
            "x1": round(self.x1, 1),
            "y1": round(self.y1, 1),
            "x2": round(self.x2, 1),
            "y2": round(self.y2, 1),
            "opacity": round(self.opacity, 3),
            "width": round(self.width, 2),
        }


class TrailBuffer:
    """Time-decaying queue of trail points. No recognition logic lives here."""

    def __init__(self, base_width: float = 3.0, max_points: int = 2048):
        self.base_width = base_width
        self._points: deque[TrailPoint] = deque(maxlen=max_points)

    def push(self, x: float, y: float, now: float):
        self._points.append(TrailPoint(x, y, now))

    def prune(self, now: float, ttl: float) -> int:
        """Drop every point whose age has reached ``ttl``. Returns the number removed."""
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        # Points are pushed in time order, so expired ones sit at the front
        removed = 0
        while self._points and self._points[0].age(now) >= ttl:
            self._points.popleft()
            removed += 1
        return removed

    def render(self, now: float, ttl: float) -> list[TrailSegment]:
        """Prune, then build fading segments for consecutive point pairs."""
        self.prune(now, ttl)

        segments: list[TrailSegment] = []
        prev = None
        prev_opacity = 0.0
        for point in self._points:
            opacity = point.opacity(now, ttl)
            if prev is not None and prev_opacity > 0 and opacity > 0:
                avg = (prev_opacity + opacity) / 2
                segments.append(TrailSegment(
                    x1=prev.x, y1=prev.y,
                    x2=point.x, y2=point.y,
                    opacity=avg,
                    width=self.base_width * avg,
                ))
            prev, prev_opacity = point, opacity
        return segments

    def clear(self):
        self._points.clear()

    @property
    def points(self) -> list[TrailPoint]:
        return list(self._points)

    def __len__(self) -> int:
        return len(self._points)
