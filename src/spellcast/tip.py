"""Tip selection: pick the most trustworthy fingertip landmark.

Hand-pose models report a visibility/confidence per landmark. The index
fingertip is the preferred drawing instrument; when it is occluded we fall
back to the other fingertips in priority order. Every accepted point passes
the velocity gate so a one-frame landmark swap cannot yank the stroke across
the screen.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np

from spellcast.smoothing import is_valid_movement

logger = logging.getLogger("spellcast.tip")

# MediaPipe hand landmark indices: index, middle, thumb, ring, pinky tips
INDEX_TIP = 8
DEFAULT_TIP_PRIORITY = (INDEX_TIP, 12, 4, 16, 20)


@dataclass(frozen=True)
class Landmark:
    """A candidate tip position reported by the tracking source."""
    index: int
    x: float
    y: float
    confidence: float = 1.0

    def scaled(self, width: float, height: float) -> Landmark:
        """Map normalized [0, 1] coordinates into viewport pixels."""
        return Landmark(self.index, self.x * width, self.y * height, self.confidence)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "x": self.x,
            "y": self.y,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Landmark:
        return cls(
            index=int(data["index"]),
            x=float(data["x"]),
            y=float(data["y"]),
            confidence=float(data.get("confidence", 1.0)),
        )

    @classmethod
    def from_array(
        cls,
        landmarks: np.ndarray,
        visibility: Optional[Sequence[float]] = None,
    ) -> list[Landmark]:
        """Build candidates from a (21, 2) or (21, 3) landmark array.

        Args:
            landmarks: Normalized hand landmarks; only x and y are used.
            visibility: Optional per-landmark confidence. Defaults to 1.0.
        """
        out = []
        for i, row in enumerate(landmarks):
            conf = float(visibility[i]) if visibility is not None else 1.0
            out.append(cls(i, float(row[0]), float(row[1]), conf))
        return out


@dataclass(frozen=True)
class TipReading:
    """Result of a tip selection for one tracking tick."""
    point: Optional[tuple[float, float]]
    confidence: float
    landmark: Optional[int] = None
    gated: bool = False  # velocity gate rejected the candidate

    @property
    def visible(self) -> bool:
        return self.point is not None


class TipSelector:
    """Chooses the drawing tip from landmark candidates.

    Candidates are tried in ``priority`` order; the first whose confidence
    clears the threshold is run through the velocity gate relative to the last
    accepted point. A gated candidate yields the previous point with degraded
    confidence instead of a jump.
    """

    def __init__(
        self,
        priority: Iterable[int] = DEFAULT_TIP_PRIORITY,
        max_velocity: float = 250.0,
        degraded_factor: float = 0.7,
        max_rejections: int = 5,
    ):
        self.priority = tuple(priority)
        self.max_velocity = max_velocity
        self.degraded_factor = degraded_factor
        self.max_rejections = max_rejections

        self._last_point: Optional[tuple[float, float]] = None
        self._rejections = 0

    def select(
        self, landmarks: Iterable[Landmark], confidence_threshold: float
    ) -> TipReading:
        by_index = {lm.index: lm for lm in landmarks}

        for idx in self.priority:
            candidate = by_index.get(idx)
            if candidate is None or candidate.confidence <= confidence_threshold:
                continue

            point = (candidate.x, candidate.y)
            if is_valid_movement(point, self._last_point, self.max_velocity):
                self._accept(point)
                return TipReading(point, candidate.confidence, landmark=idx)

            self._rejections += 1
            if self._rejections > self.max_rejections:
                # The tip really moved; re-anchor instead of staying frozen
                logger.debug("Re-anchoring tip after %d gated frames", self._rejections - 1)
                self._accept(point)
                return TipReading(point, candidate.confidence, landmark=idx)

            logger.debug(
                "Velocity gate rejected landmark %d (%d consecutive)", idx, self._rejections
            )
            return TipReading(
                self._last_point,
                candidate.confidence * self.degraded_factor,
                landmark=idx,
                gated=True,
            )

        return TipReading(None, 0.0)

    def _accept(self, point: tuple[float, float]):
        self._last_point = point
        self._rejections = 0

    def reset(self):
        self._last_point = None
        self._rejections = 0

    @property
    def last_point(self) -> Optional[tuple[float, float]]:
        return self._last_point
