"""Tracking session recording and replay.

Record the landmark candidates a tracker delivered so spells can be replayed
through the engine for:
- Reproducible tests without a camera
- Tuning thresholds against real strokes
- Demo sessions that play back deterministically
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Optional, Sequence

from spellcast.tip import Landmark

if TYPE_CHECKING:
    from spellcast.engine import SpellEngine
    from spellcast.matcher import MatchResult

RECORDING_VERSION = 1


@dataclass
class TrackingFrame:
    """One tracking tick in a recording."""
    timestamp: float  # seconds from recording start
    landmarks: list[Landmark]

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "landmarks": [lm.to_dict() for lm in self.landmarks],
        }

    @classmethod
    def from_dict(cls, data: dict) -> TrackingFrame:
        return cls(
            timestamp=float(data["timestamp"]),
            landmarks=[Landmark.from_dict(lm) for lm in data.get("landmarks", [])],
        )


class TrackingRecorder:
    """Records tracking ticks to a JSON file.

    Usage:
        recorder = TrackingRecorder()
        recorder.start()
        # In your frame loop:
        recorder.add_frame(candidates)
        # When done:
        recorder.save("session.json")
    """

    def __init__(self):
        self._frames: list[TrackingFrame] = []
        self._start_time: Optional[float] = None
        self._recording = False

    def start(self):
        """Begin a new recording session."""
        self._frames = []
        self._start_time = time.monotonic()
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    def add_frame(self, landmarks: Sequence[Landmark], timestamp: Optional[float] = None):
        """Add a tick. ``timestamp`` defaults to seconds since ``start``."""
        if not self._recording:
            return
        if timestamp is None:
            timestamp = time.monotonic() - self._start_time
        self._frames.append(TrackingFrame(timestamp=timestamp, landmarks=list(landmarks)))

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def save(self, path: str | Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": RECORDING_VERSION,
            "frame_count": len(self._frames),
            "duration": self.duration,
            "frames": [f.to_dict() for f in self._frames],
        }
        with open(path, "w") as f:
            json.dump(data, f)


class TrackingPlayer:
    """Replays a recorded tracking session.

    Usage:
        player = TrackingPlayer.load("session.json")
        cast = player.replay(engine)
    """

    def __init__(self, frames: list[TrackingFrame]):
        self._frames = frames

    @classmethod
    def load(cls, path: str | Path) -> TrackingPlayer:
        with open(path) as f:
            data = json.load(f)
        return cls([TrackingFrame.from_dict(f) for f in data["frames"]])

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def play(self) -> Iterator[TrackingFrame]:
        """Iterate through all frames instantly (no timing)."""
        yield from self._frames

    def play_realtime(self, speed: float = 1.0) -> Iterator[TrackingFrame]:
        """Replay at original timing (or scaled by speed factor).

        Args:
            speed: Playback speed multiplier (2.0 = double speed).
        """
        if not self._frames:
            return

        start = time.monotonic()
        for frame in self._frames:
            target_time = frame.timestamp / speed
            elapsed = time.monotonic() - start
            if target_time > elapsed:
                time.sleep(target_time - elapsed)
            yield frame

    def get_frame(self, index: int) -> Optional[TrackingFrame]:
        if 0 <= index < len(self._frames):
            return self._frames[index]
        return None

    def replay(
        self, engine: SpellEngine, realtime: bool = False, speed: float = 1.0
    ) -> list[MatchResult]:
        """Feed every frame through ``engine``. Returns the spells it recognized."""
        frames = self.play_realtime(speed) if realtime else self.play()
        cast = []
        for frame in frames:
            result = engine.on_tracking_event(frame.landmarks, frame.timestamp)
            if result.recognized is not None:
                cast.append(result.recognized)
        return cast
