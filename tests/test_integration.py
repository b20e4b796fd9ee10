"""Integration tests — full flows across learner, library, matcher and engine."""

import math

import numpy as np

from spellcast.config import EngineConfig
from spellcast.engine import SpellEngine
from spellcast.learner import GestureLearner, LearnerOutcome
from spellcast.matcher import GestureMatcher, MatchStrategy
from spellcast.recorder import TrackingPlayer, TrackingRecorder
from spellcast.templates import TemplateLibrary
from spellcast.tip import Landmark


def approx_circle(seed, n=12):
    """A unit circle, slightly rotated, scaled, shifted and jittered."""
    rng = np.random.default_rng(seed)
    phase = rng.uniform(-0.3, 0.3)
    scale = rng.uniform(0.8, 1.25)
    angles = phase + np.arange(n) * 2 * math.pi / n
    pts = np.column_stack([np.cos(angles), np.sin(angles)])
    pts += rng.uniform(-0.03, 0.03, pts.shape)
    return pts * scale + rng.uniform(-2, 2, 2)


def circle_landmarks(n=24, radius=0.1, center=(0.5, 0.5)):
    """Normalized tip candidates tracing a circle (y scaled for a 16:9 viewport)."""
    frames = []
    for i in range(n + 1):
        a = 2 * math.pi * i / n
        x = center[0] + radius * math.cos(a) * 720 / 1280
        y = center[1] + radius * math.sin(a)
        frames.append([Landmark(8, x, y, 0.95), Landmark(12, x + 0.02, y, 0.9)])
    return frames


class TestLearnThenMatch:
    """Learn a spell from three repetitions, then recognize a fresh one."""

    def test_learn_circle_and_match(self):
        library = TemplateLibrary()
        learner = GestureLearner(library)
        assert learner.start("Circle").ok

        for seed in (1, 2, 3):
            event = learner.capture_pattern(approx_circle(seed))
        assert event.outcome == LearnerOutcome.COMMITTED

        result = GestureMatcher(library).match(approx_circle(99))
        assert result is not None
        assert result.name == "Circle"
        assert result.score > 0.7

    def test_line_does_not_match_learned_circle(self):
        library = TemplateLibrary()
        learner = GestureLearner(library)
        learner.start("Circle")
        for seed in (4, 5, 6):
            learner.capture_pattern(approx_circle(seed))
        assert "Circle" in library

        line = [(i * 0.2, 0.0) for i in range(12)]
        assert GestureMatcher(library).match(line) is None

    def test_learned_library_survives_save_and_load(self, tmp_path):
        library = TemplateLibrary()
        learner = GestureLearner(library)
        learner.start("Circle")
        for seed in (7, 8, 9):
            learner.capture_pattern(approx_circle(seed))

        path = tmp_path / "spells.json"
        library.save_to_file(path)
        loaded = TemplateLibrary()
        loaded.load_from_file(path)

        result = GestureMatcher(loaded).match(approx_circle(10))
        assert result is not None and result.name == "Circle"
        assert result.strategy is MatchStrategy.ROTATION_INVARIANT


class TestEngineFlow:
    """Tracking events → learning → live recognition, all through one engine."""

    def _draw(self, engine, frames, start):
        t = start
        results = []
        for landmarks in frames:
            results.append(engine.on_tracking_event(landmarks, t))
            t += 1 / 30
        return results, t

    def test_learn_and_cast_through_engine(self):
        engine = SpellEngine(EngineConfig(match_interval=0.0))
        cast = []
        engine.on_spell(cast.append)

        engine.start_learning("Circle")
        t = 0.0
        for _ in range(3):
            _, t = self._draw(engine, circle_landmarks(), t)
            event = engine.capture_pattern()
        assert event.outcome == LearnerOutcome.COMMITTED
        assert not engine.learner.active
        assert cast == []

        # Hand leaves the frame, then a new circle is drawn
        engine.on_tracking_event([], t + 1.5)
        results, _ = self._draw(engine, circle_landmarks(radius=0.15), t + 2.0)

        assert [r.name for r in cast] == ["Circle"]
        assert any(r.recognized for r in results)
        assert engine.metrics.spell_counts == {"Circle": 1}
        assert engine.metrics.learning_counts == {"committed": 1}

    def test_trail_fades_after_casting(self):
        engine = SpellEngine()
        results, t = self._draw(engine, circle_landmarks(), 0.0)
        assert len(results[-1].segments) == 24
        assert engine.render(t + engine.config.trail_ttl) == []


class TestRecordAndReplay:
    def test_replay_recognizes_same_spell(self, tmp_path):
        library = TemplateLibrary()
        learner = GestureLearner(library)
        learner.start("Circle")
        for seed in (11, 12, 13):
            learner.capture_pattern(approx_circle(seed))

        rec = TrackingRecorder()
        rec.start()
        for i, landmarks in enumerate(circle_landmarks()):
            rec.add_frame(landmarks, timestamp=i / 30)
        rec.stop()
        path = tmp_path / "session.json"
        rec.save(path)

        engine = SpellEngine(EngineConfig(match_interval=0.0), library=library)
        cast = []
        engine.on_spell(cast.append)
        recognized = TrackingPlayer.load(path).replay(engine)

        assert [r.name for r in cast] == ["Circle"]
        assert recognized == cast
        assert cast[0].score > 0.7
