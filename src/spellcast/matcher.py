"""Spell recognition against the template library.

Two strategies share one scoring scheme and one threshold:

- ROTATION_INVARIANT: full $1 normalization (resample, rotate, scale,
  translate), scored on the 250-unit reference square. Authoritative.
- BOUNDING_BOX: resample and fit into a 0–100 box without rotation, scored on
  the 100-unit square. Cheaper and orientation sensitive, meant for live
  feedback while the stroke is still being drawn.

Usage:
    matcher = GestureMatcher(library)
    result = matcher.match(points)
    if result:
        print(f"Cast {result.name} ({result.score:.2f})")
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from spellcast.normalizer import (
    BOX_SIZE,
    REFERENCE_SIZE,
    NormalizedPath,
    PathLike,
    as_points,
    normalize,
    normalize_box,
    similarity,
)
from spellcast.templates import GestureTemplate, TemplateLibrary

DEFAULT_THRESHOLD = 0.7
MIN_MATCH_POINTS = 5


class MatchStrategy(Enum):
    ROTATION_INVARIANT = "rotation"
    BOUNDING_BOX = "bbox"


@dataclass(frozen=True)
class MatchResult:
    """Best template for a stroke."""
    name: str
    score: float  # 0–1, higher = better match
    strategy: MatchStrategy = MatchStrategy.ROTATION_INVARIANT


class GestureMatcher:
    """Scores strokes against every template and returns the best above threshold."""

    def __init__(
        self,
        library: TemplateLibrary,
        threshold: float = DEFAULT_THRESHOLD,
        min_points: int = MIN_MATCH_POINTS,
        strategy: MatchStrategy = MatchStrategy.ROTATION_INVARIANT,
    ):
        self.library = library
        self.threshold = threshold
        self.min_points = min_points
        self.strategy = strategy

    def match(
        self, path: PathLike, strategy: Optional[MatchStrategy] = None
    ) -> Optional[MatchResult]:
        """Return the best-scoring template if its score exceeds the threshold."""
        strategy = strategy or self.strategy
        scores = self.scores(path, strategy)
        if not scores:
            return None

        best = max(scores, key=scores.get)  # type: ignore
        if scores[best] > self.threshold:
            return MatchResult(name=best, score=scores[best], strategy=strategy)
        return None

    def scores(
        self, path: PathLike, strategy: Optional[MatchStrategy] = None
    ) -> dict[str, float]:
        """Similarity of ``path`` to every template. Empty if the stroke is unusable."""
        strategy = strategy or self.strategy
        points = as_points(path)
        if len(points) < self.min_points:
            return {}

        candidate = self._prepare(points, strategy)
        if candidate is None:
            return {}

        reference = REFERENCE_SIZE if strategy is MatchStrategy.ROTATION_INVARIANT else BOX_SIZE
        result = {}
        # Snapshot so a concurrent commit cannot change templates mid-scan
        for name, template in self.library.snapshot().items():
            prepared = self._prepare_template(template, strategy)
            if prepared is None:
                continue
            result[name] = similarity(candidate, prepared, reference)
        return result

    @staticmethod
    def _prepare(points: PathLike, strategy: MatchStrategy) -> Optional[NormalizedPath]:
        if strategy is MatchStrategy.BOUNDING_BOX:
            return normalize_box(points)
        return normalize(points)

    @staticmethod
    def _prepare_template(
        template: GestureTemplate, strategy: MatchStrategy
    ) -> Optional[NormalizedPath]:
        if strategy is MatchStrategy.BOUNDING_BOX:
            source = template.raw if template.raw is not None else template.path.points
            return normalize_box(source)
        return normalize(template.path.points)
