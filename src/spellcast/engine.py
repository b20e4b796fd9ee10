"""Per-tick spell engine: tracking event → trail segments + recognized spell.

One SpellEngine owns all per-session state (tip history, smoothing buffer,
trail, capture buffer, learner), so several engines can coexist, e.g. one per
tracked hand or one per test.

Features:
- Tip selection with confidence fallback and velocity gating
- Moving-average smoothing for the rendered trail
- Time-driven trail fading (``render`` works without tracking events)
- Rate-limited recognition with a cooldown after each cast
- Tracking-loss handling that never touches an active learning session
- Callback system for recognized spells

Usage:
    engine = SpellEngine(library=TemplateLibrary.with_defaults())
    engine.on_spell(lambda r: print(r.name))
    # In the frame loop:
    result = engine.on_tracking_event(candidates, now)
    draw(result.segments)
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

from spellcast.config import EngineConfig, update_config
from spellcast.learner import GestureLearner, LearnerEvent, LearnerOutcome
from spellcast.matcher import GestureMatcher, MatchResult, MatchStrategy
from spellcast.metrics import MetricsCollector
from spellcast.smoothing import PointSmoother, Sample
from spellcast.templates import GestureTemplate, TemplateLibrary
from spellcast.tip import Landmark, TipReading, TipSelector
from spellcast.trail import TrailBuffer, TrailSegment

logger = logging.getLogger("spellcast.engine")


@dataclass
class TrackingResult:
    """Everything the host needs after one tracking event."""
    segments: list[TrailSegment]
    tip: TipReading
    recognized: Optional[MatchResult] = None
    preview: Optional[MatchResult] = None  # coarse live match, if enabled

    def to_dict(self) -> dict:
        return {
            "segments": [s.to_dict() for s in self.segments],
            "tip": {
                "visible": self.tip.visible,
                "x": self.tip.point[0] if self.tip.point else None,
                "y": self.tip.point[1] if self.tip.point else None,
                "confidence": round(self.tip.confidence, 3),
            },
            "recognized": self.recognized.name if self.recognized else None,
            "score": round(self.recognized.score, 3) if self.recognized else None,
        }


class SpellEngine:
    """Tracking events in, fading trail and recognized spells out."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        library: Optional[TemplateLibrary] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = (config or EngineConfig()).validate()
        self.library = library if library is not None else TemplateLibrary()
        self.metrics = metrics or MetricsCollector()

        cfg = self.config
        self._selector = TipSelector(
            priority=cfg.tip_priority,
            max_velocity=cfg.max_velocity,
            degraded_factor=cfg.degraded_factor,
        )
        self._smoother = PointSmoother(cfg.smoothing_window)
        self._trail = TrailBuffer(base_width=cfg.trail_width, max_points=cfg.max_trail_points)
        self._matcher = GestureMatcher(
            self.library,
            threshold=cfg.recognition_threshold,
            min_points=cfg.min_capture_points,
            strategy=MatchStrategy(cfg.match_strategy),
        )
        self._learner = GestureLearner(
            self.library,
            consistency_threshold=cfg.consistency_threshold,
            min_points=cfg.min_capture_points,
        )

        self._capture: deque[tuple[float, float]] = deque(maxlen=cfg.capture_window)
        self._callbacks: list[Callable[[MatchResult], None]] = []
        self._last_seen: Optional[float] = None
        self._history_reset = False
        self._last_attempt = float("-inf")
        self._last_recognition = float("-inf")

    def on_spell(self, callback: Callable[[MatchResult], None]):
        """Register a callback for recognized spells."""
        self._callbacks.append(callback)

    def on_tracking_event(
        self, landmarks: Sequence[Landmark], now: float
    ) -> TrackingResult:
        """Process one tracking tick.

        Args:
            landmarks: Candidate landmarks in normalized [0, 1] coordinates.
                       May be empty when the tracker sees no hand.
            now: Event timestamp in seconds, non-decreasing across calls.
        """
        t0 = time.perf_counter()
        cfg = self.config

        scaled = [lm.scaled(cfg.viewport_width, cfg.viewport_height) for lm in landmarks]
        tip = self._selector.select(scaled, cfg.confidence_threshold)

        recognized = None
        preview = None
        if tip.visible:
            self._last_seen = now
            self._history_reset = False

            x, y = self._smoother.smooth(Sample(tip.point[0], tip.point[1], now))
            self._trail.push(x, y, now)
            if not tip.gated:
                self._capture.append(tip.point)

            recognized = self._maybe_recognize(now)
            if recognized is None and cfg.live_feedback and not self._learner.active:
                preview = self._matcher.match(self._capture, MatchStrategy.BOUNDING_BOX)
        else:
            self._handle_loss(now)

        segments = self.render(now)
        self.metrics.record_event(time.perf_counter() - t0, tip.visible, tip.gated)
        return TrackingResult(segments, tip, recognized, preview)

    def render(self, now: float) -> list[TrailSegment]:
        """Fading trail segments at ``now``. Call once per display refresh."""
        return self._trail.render(now, self.config.trail_ttl)

    def _handle_loss(self, now: float):
        if self._last_seen is None:
            return
        cfg = self.config
        gone = now - self._last_seen

        if gone > cfg.tracking_reset_grace and not self._history_reset:
            self._selector.reset()
            self._smoother.reset()
            self._history_reset = True
            self.metrics.record_tracking_loss()
            logger.debug("Tip lost for %.2fs, tracking history reset", gone)

        # While learning, the buffer is the stroke waiting for capture_pattern
        if gone > cfg.capture_clear_timeout and self._capture and not self._learner.active:
            self._capture.clear()
            logger.debug("Tip lost for %.2fs, capture buffer cleared", gone)

    def _maybe_recognize(self, now: float) -> Optional[MatchResult]:
        cfg = self.config
        if self._learner.active:
            return None
        if now - self._last_recognition < cfg.recognition_cooldown:
            return None
        if now - self._last_attempt < cfg.match_interval:
            return None
        if len(self._capture) < cfg.min_capture_points:
            return None

        self._last_attempt = now
        result = self._matcher.match(self._capture)
        if result is None:
            return None

        self._last_recognition = now
        self._capture.clear()
        self.metrics.record_spell(result.name)
        logger.info("Recognized spell '%s' (score=%.2f)", result.name, result.score)

        for cb in self._callbacks:
            try:
                cb(result)
            except Exception as e:
                logger.error("Spell callback error: %s", e)
        return result

    # Learning

    def start_learning(self, name: str) -> LearnerEvent:
        event = self._learner.start(name)
        if event.ok:
            self._capture.clear()
        return event

    def capture_pattern(self, path: Optional[Sequence[tuple[float, float]]] = None) -> LearnerEvent:
        """Hand the current capture buffer (or an explicit path) to the learner."""
        stroke = list(self._capture) if path is None else path
        event = self._learner.capture_pattern(stroke)
        if event.outcome not in (LearnerOutcome.INVALID, LearnerOutcome.TOO_SHORT):
            self._capture.clear()
        if event.outcome in (LearnerOutcome.COMMITTED, LearnerOutcome.REJECTED):
            self.metrics.record_learning(event.outcome.value)
        return event

    def cancel_learning(self) -> LearnerEvent:
        return self._learner.cancel()

    # Templates

    def list_templates(self) -> list[str]:
        return self.library.names

    def delete_template(self, name: str) -> bool:
        return self.library.remove(name)

    def import_templates(self, mapping: Mapping[str, Any]) -> int:
        """Bulk-load templates.

        Values may be GestureTemplate objects, template dicts (as produced by
        ``export_templates``) or raw strokes, which are normalized on import.
        Degenerate strokes are skipped with a warning.
        """
        templates = {}
        for name, value in mapping.items():
            if isinstance(value, GestureTemplate):
                templates[name] = value
            elif isinstance(value, dict):
                templates[name] = GestureTemplate.from_dict({"name": name, **value})
            else:
                try:
                    templates[name] = GestureTemplate.from_stroke(name, value)
                except ValueError as e:
                    logger.warning("Skipping template '%s': %s", name, e)
        return self.library.import_templates(templates)

    def export_templates(self) -> dict:
        return self.library.to_dict()

    # Settings

    def settings(self) -> dict:
        return self.config.to_dict()

    def apply_settings(self, **changes) -> EngineConfig:
        """Validate and apply new settings. Tracking history is kept unless its shape changes."""
        new = update_config(self.config, **changes)
        old, self.config = self.config, new

        self._selector.priority = tuple(new.tip_priority)
        self._selector.max_velocity = new.max_velocity
        self._selector.degraded_factor = new.degraded_factor
        if new.smoothing_window != old.smoothing_window:
            self._smoother = PointSmoother(new.smoothing_window)

        self._trail.base_width = new.trail_width
        if new.max_trail_points != old.max_trail_points:
            trail = TrailBuffer(base_width=new.trail_width, max_points=new.max_trail_points)
            for p in self._trail.points:
                trail.push(p.x, p.y, p.created_at)
            self._trail = trail

        self._matcher.threshold = new.recognition_threshold
        self._matcher.min_points = new.min_capture_points
        self._matcher.strategy = MatchStrategy(new.match_strategy)
        self._learner.consistency_threshold = new.consistency_threshold
        self._learner.min_points = new.min_capture_points

        if new.capture_window != old.capture_window:
            self._capture = deque(self._capture, maxlen=new.capture_window)

        logger.info("Applied settings: %s", ", ".join(sorted(changes)))
        return new

    # State

    def clear_trail(self):
        self._trail.clear()

    def reset(self):
        """Clear tracking, trail and capture state. Templates and learning sessions survive."""
        self._selector.reset()
        self._smoother.reset()
        self._trail.clear()
        self._capture.clear()
        self._last_seen = None
        self._history_reset = False
        self._last_attempt = float("-inf")
        self._last_recognition = float("-inf")

    @property
    def capture(self) -> list[tuple[float, float]]:
        return list(self._capture)

    @property
    def learner(self) -> GestureLearner:
        return self._learner

    @property
    def matcher(self) -> GestureMatcher:
        return self._matcher

    @property
    def trail(self) -> TrailBuffer:
        return self._trail

    @property
    def selector(self) -> TipSelector:
        return self._selector

    @property
    def smoother(self) -> PointSmoother:
        return self._smoother
