"""spellcast - Air-drawn spell recognition from fingertip tracking."""

__version__ = "0.1.0"

from spellcast.smoothing import PointSmoother, Sample, is_valid_movement
from spellcast.tip import Landmark, TipReading, TipSelector
from spellcast.trail import TrailBuffer, TrailPoint, TrailSegment
from spellcast.normalizer import NormalizedPath, normalize, normalize_box, similarity
from spellcast.templates import GestureTemplate, TemplateLibrary
from spellcast.matcher import GestureMatcher, MatchResult, MatchStrategy
from spellcast.learner import GestureLearner, LearnerEvent, LearnerOutcome, LearnerState
from spellcast.config import ConfigError, EngineConfig, load_config, save_config
from spellcast.engine import SpellEngine, TrackingResult
from spellcast.recorder import TrackingPlayer, TrackingRecorder
from spellcast.metrics import MetricsCollector
