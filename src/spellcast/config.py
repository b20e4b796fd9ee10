"""Engine configuration.

All tunables live in one dataclass so the host application can persist them
as plain data. Files may be JSON or YAML, chosen by suffix.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path

import yaml

from spellcast.smoothing import MAX_WINDOW, MIN_WINDOW

logger = logging.getLogger("spellcast.config")

MATCH_STRATEGIES = ("rotation", "bbox")
MIN_TRAIL_TTL = 1.0
MAX_TRAIL_TTL = 8.0


class ConfigError(ValueError):
    """A configuration file could not be read or holds invalid values."""


@dataclass
class EngineConfig:
    # Tracking source → pixel space
    viewport_width: int = 1280
    viewport_height: int = 720

    # Tip selection and smoothing
    smoothing_window: int = 3
    max_velocity: float = 250.0
    confidence_threshold: float = 0.5
    degraded_factor: float = 0.7
    tip_priority: list[int] = field(default_factory=lambda: [8, 12, 4, 16, 20])

    # Trail rendering
    trail_ttl: float = 4.0
    trail_width: float = 3.0
    max_trail_points: int = 2048

    # Recognition
    recognition_threshold: float = 0.7
    consistency_threshold: float = 0.7
    min_capture_points: int = 5
    capture_window: int = 128
    match_strategy: str = "rotation"
    match_interval: float = 0.25
    live_feedback: bool = False
    recognition_cooldown: float = 2.0

    # Tracking loss
    tracking_reset_grace: float = 0.4
    capture_clear_timeout: float = 1.0

    def validate(self) -> EngineConfig:
        """Raise ConfigError on out-of-range values. Returns self for chaining."""
        problems = []
        if self.viewport_width <= 0 or self.viewport_height <= 0:
            problems.append("viewport dimensions must be positive")
        if not MIN_WINDOW <= self.smoothing_window <= MAX_WINDOW:
            problems.append(f"smoothing_window must be in [{MIN_WINDOW}, {MAX_WINDOW}]")
        if not MIN_TRAIL_TTL <= self.trail_ttl <= MAX_TRAIL_TTL:
            problems.append(f"trail_ttl must be in [{MIN_TRAIL_TTL}, {MAX_TRAIL_TTL}] seconds")
        if self.max_velocity <= 0:
            problems.append("max_velocity must be positive")
        for name in ("confidence_threshold", "degraded_factor"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                problems.append(f"{name} must be in [0, 1]")
        for name in ("recognition_threshold", "consistency_threshold"):
            if not 0.0 < getattr(self, name) <= 1.0:
                problems.append(f"{name} must be in (0, 1]")
        if not self.tip_priority:
            problems.append("tip_priority must list at least one landmark")
        if self.min_capture_points < 2:
            problems.append("min_capture_points must be at least 2")
        if self.capture_window < self.min_capture_points:
            problems.append("capture_window must hold at least min_capture_points")
        if self.max_trail_points < 2:
            problems.append("max_trail_points must be at least 2")
        if self.match_strategy not in MATCH_STRATEGIES:
            problems.append(f"match_strategy must be one of {MATCH_STRATEGIES}")
        if self.match_interval < 0 or self.recognition_cooldown < 0:
            problems.append("match_interval and recognition_cooldown must be >= 0")
        if not 0 < self.tracking_reset_grace <= self.capture_clear_timeout:
            problems.append("need 0 < tracking_reset_grace <= capture_clear_timeout")

        if problems:
            raise ConfigError("; ".join(problems))
        return self

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> EngineConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known}).validate()


def load_config(path: str | Path) -> EngineConfig:
    """Load a config from a .json, .yaml or .yml file."""
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot parse config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a mapping")
    return EngineConfig.from_dict(data)


def save_config(config: EngineConfig, path: str | Path):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        if path.suffix in (".yaml", ".yml"):
            yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(config.to_dict(), f, indent=2)


def update_config(config: EngineConfig, **kwargs) -> EngineConfig:
    """Return a validated copy with ``kwargs`` applied. Unknown keys raise ConfigError."""
    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(kwargs) - known)
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(unknown)}")
    return replace(config, **kwargs).validate()
