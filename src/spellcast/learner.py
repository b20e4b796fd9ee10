"""Teaching new spells by repetition.

The user draws the same stroke three times. The three captures are normalized
and compared pairwise; only a self-consistent set becomes a template, so one
sloppy repetition cannot poison the library.

    IDLE → CAPTURING(step 1..3) → VALIDATING → COMMITTED (back to IDLE)
                                            ↘ REJECTED (back to step 1)

Every call returns a LearnerEvent describing what happened; nothing raises.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from spellcast.normalizer import PathLike, as_points, normalize, similarity
from spellcast.templates import GestureTemplate, TemplateLibrary

logger = logging.getLogger("spellcast.learner")

REQUIRED_CAPTURES = 3
DEFAULT_CONSISTENCY = 0.7
MIN_PATTERN_POINTS = 5

INCONSISTENT_MESSAGE = "patterns too inconsistent, retry"


class LearnerState(Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    VALIDATING = "validating"


class LearnerOutcome(Enum):
    STARTED = "started"
    CAPTURED = "captured"
    TOO_SHORT = "too_short"
    COMMITTED = "committed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    INVALID = "invalid"


@dataclass
class LearnerEvent:
    """What a learner call did, for the UI to display."""
    outcome: LearnerOutcome
    state: LearnerState
    step: int
    message: str = ""
    template: Optional[GestureTemplate] = None
    similarities: tuple[float, ...] = ()

    @property
    def ok(self) -> bool:
        return self.outcome not in (
            LearnerOutcome.INVALID, LearnerOutcome.TOO_SHORT, LearnerOutcome.REJECTED
        )


@dataclass
class LearningSession:
    target_name: str
    captured: list[np.ndarray] = field(default_factory=list)

    @property
    def step(self) -> int:
        return len(self.captured) + 1


class GestureLearner:
    """Captures repetitions of a new stroke and commits a template when consistent."""

    def __init__(
        self,
        library: TemplateLibrary,
        consistency_threshold: float = DEFAULT_CONSISTENCY,
        min_points: int = MIN_PATTERN_POINTS,
    ):
        self.library = library
        self.consistency_threshold = consistency_threshold
        self.min_points = min_points

        self._session: Optional[LearningSession] = None
        self._state = LearnerState.IDLE

    def start(self, name: str) -> LearnerEvent:
        """Begin a session for ``name``. An active session is cancelled first."""
        name = (name or "").strip()
        if not name:
            return self._event(LearnerOutcome.INVALID, "spell name must not be empty")

        if self._session is not None:
            logger.info("Cancelling session '%s' to start '%s'", self._session.target_name, name)

        self._session = LearningSession(target_name=name)
        self._state = LearnerState.CAPTURING
        logger.info("Learning session started: %s", name)
        return self._event(LearnerOutcome.STARTED, f"draw '{name}' ({REQUIRED_CAPTURES} times)")

    def capture_pattern(self, raw_path: PathLike) -> LearnerEvent:
        """Store one repetition; the third one triggers validation."""
        if self._session is None:
            return self._event(LearnerOutcome.INVALID, "no learning session in progress")

        points = as_points(raw_path)
        if len(points) < self.min_points:
            return self._event(
                LearnerOutcome.TOO_SHORT,
                f"pattern too short ({len(points)} points, need {self.min_points})",
            )

        self._session.captured.append(points.copy())
        logger.debug(
            "Captured pattern %d/%d for '%s'",
            len(self._session.captured), REQUIRED_CAPTURES, self._session.target_name,
        )

        if len(self._session.captured) < REQUIRED_CAPTURES:
            return self._event(
                LearnerOutcome.CAPTURED,
                f"captured {len(self._session.captured)}/{REQUIRED_CAPTURES}",
            )

        return self._validate()

    def cancel(self) -> LearnerEvent:
        if self._session is None:
            return self._event(LearnerOutcome.INVALID, "no learning session in progress")
        logger.info("Learning session cancelled: %s", self._session.target_name)
        self._session = None
        self._state = LearnerState.IDLE
        return self._event(LearnerOutcome.CANCELLED, "learning cancelled")

    def _validate(self) -> LearnerEvent:
        session = self._session
        self._state = LearnerState.VALIDATING

        normalized = [normalize(p) for p in session.captured]
        if any(n is None for n in normalized):
            return self._reject(session, (), "a pattern had no length, retry")

        sims = tuple(
            similarity(a, b) for a, b in itertools.combinations(normalized, 2)
        )
        mean = sum(sims) / len(sims)

        if not all(s > self.consistency_threshold for s in sims):
            return self._reject(session, sims, INCONSISTENT_MESSAGE)

        first = session.captured[0]
        template = GestureTemplate(
            name=session.target_name, path=normalized[0], raw=first.copy()
        )
        self.library.add(template)
        logger.info(
            "Learned spell '%s' (consistency=%.2f)", session.target_name, mean
        )

        self._session = None
        self._state = LearnerState.IDLE
        return self._event(
            LearnerOutcome.COMMITTED,
            f"learned '{template.name}'",
            template=template,
            similarities=sims,
        )

    def _reject(
        self, session: LearningSession, sims: tuple[float, ...], message: str
    ) -> LearnerEvent:
        logger.warning(
            "Rejected patterns for '%s': similarities=%s",
            session.target_name, [round(s, 3) for s in sims],
        )
        session.captured.clear()
        self._state = LearnerState.CAPTURING
        return self._event(LearnerOutcome.REJECTED, message, similarities=sims)

    def _event(self, outcome: LearnerOutcome, message: str, **kwargs) -> LearnerEvent:
        return LearnerEvent(
            outcome=outcome,
            state=self._state,
            step=self.step,
            message=message,
            **kwargs,
        )

    @property
    def state(self) -> LearnerState:
        return self._state

    @property
    def active(self) -> bool:
        return self._session is not None

    @property
    def step(self) -> int:
        """Current capture step (1..3), or 0 when idle."""
        return self._session.step if self._session else 0

    @property
    def target_name(self) -> Optional[str]:
        return self._session.target_name if self._session else None

    @property
    def progress(self) -> float:
        if self._session is None:
            return 0.0
        return len(self._session.captured) / REQUIRED_CAPTURES

    def status(self) -> dict:
        return {
            "state": self._state.value,
            "step": self.step,
            "target_name": self.target_name,
            "captured": len(self._session.captured) if self._session else 0,
            "required": REQUIRED_CAPTURES,
            "progress": round(self.progress, 3),
        }
