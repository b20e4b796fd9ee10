"""Tests for tracking session recording and replay."""

import json

import pytest

from spellcast.engine import SpellEngine
from spellcast.recorder import TrackingFrame, TrackingPlayer, TrackingRecorder
from spellcast.tip import Landmark


def make_candidates(x=0.5, y=0.5):
    return [Landmark(8, x, y, 0.9), Landmark(12, x + 0.01, y, 0.8)]


class TestRecorder:
    def test_record_and_count(self):
        rec = TrackingRecorder()
        rec.start()
        for i in range(10):
            rec.add_frame(make_candidates(), timestamp=i * 0.03)
        assert rec.is_recording
        assert rec.stop() == 10
        assert not rec.is_recording
        assert rec.duration == pytest.approx(0.27)

    def test_not_recording_ignores_frames(self):
        rec = TrackingRecorder()
        rec.add_frame(make_candidates())
        assert rec.frame_count == 0

    def test_default_timestamps_increase(self):
        rec = TrackingRecorder()
        rec.start()
        rec.add_frame(make_candidates())
        rec.add_frame(make_candidates())
        rec.stop()
        assert rec.frame_count == 2
        assert rec.duration >= 0.0

    def test_restart_clears_frames(self):
        rec = TrackingRecorder()
        rec.start()
        rec.add_frame(make_candidates(), timestamp=0.0)
        rec.start()
        assert rec.frame_count == 0

    def test_save_and_load(self, tmp_path):
        rec = TrackingRecorder()
        rec.start()
        rec.add_frame(make_candidates(0.2, 0.3), timestamp=0.0)
        rec.add_frame([], timestamp=0.05)
        rec.stop()

        path = tmp_path / "session.json"
        rec.save(path)
        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert data["frame_count"] == 2

        player = TrackingPlayer.load(path)
        assert player.frame_count == 2
        assert player.duration == pytest.approx(0.05)
        first = player.get_frame(0)
        assert first.landmarks[0] == Landmark(8, 0.2, 0.3, 0.9)
        assert player.get_frame(1).landmarks == []


class TestTrackingFrame:
    def test_from_dict_defaults_confidence(self):
        frame = TrackingFrame.from_dict({
            "timestamp": 1.5,
            "landmarks": [{"index": 8, "x": 0.1, "y": 0.2}],
        })
        assert frame.timestamp == 1.5
        assert frame.landmarks[0].confidence == 1.0


class TestPlayer:
    def _player(self, n=5, dt=0.01):
        return TrackingPlayer([
            TrackingFrame(timestamp=i * dt, landmarks=make_candidates()) for i in range(n)
        ])

    def test_play(self):
        frames = list(self._player().play())
        assert len(frames) == 5

    def test_get_frame_out_of_range(self):
        player = self._player()
        assert player.get_frame(-1) is None
        assert player.get_frame(5) is None

    def test_play_realtime_fast(self):
        frames = list(self._player(n=3, dt=0.01).play_realtime(speed=10.0))
        assert len(frames) == 3

    def test_empty(self):
        player = TrackingPlayer([])
        assert player.duration == 0.0
        assert list(player.play_realtime()) == []

    def test_replay_through_engine(self):
        engine = SpellEngine()
        player = self._player(n=10)
        assert player.replay(engine) == []
        assert engine.metrics.events_total == 10
        assert len(engine.trail) > 0
