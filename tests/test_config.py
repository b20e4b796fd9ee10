"""Tests for engine configuration loading and validation."""

import json

import pytest
import yaml

from spellcast.config import (
    ConfigError,
    EngineConfig,
    load_config,
    save_config,
    update_config,
)


class TestEngineConfig:
    def test_defaults_are_valid(self):
        cfg = EngineConfig().validate()
        assert cfg.smoothing_window == 3
        assert cfg.trail_ttl == 4.0
        assert cfg.recognition_threshold == 0.7
        assert cfg.tip_priority == [8, 12, 4, 16, 20]

    @pytest.mark.parametrize("changes", [
        {"smoothing_window": 0},
        {"smoothing_window": 11},
        {"trail_ttl": 0.5},
        {"trail_ttl": 9.0},
        {"max_velocity": 0},
        {"confidence_threshold": 1.5},
        {"recognition_threshold": 0.0},
        {"tip_priority": []},
        {"match_strategy": "dtw"},
        {"capture_window": 3},
        {"tracking_reset_grace": 2.0},
        {"viewport_width": 0},
    ])
    def test_invalid_values(self, changes):
        with pytest.raises(ConfigError):
            EngineConfig(**changes).validate()

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            EngineConfig(trail_ttl=100.0).validate()

    def test_from_dict_ignores_unknown_keys(self, caplog):
        cfg = EngineConfig.from_dict({"trail_ttl": 2.5, "sparkles": True})
        assert cfg.trail_ttl == 2.5
        assert "sparkles" in caplog.text

    def test_to_dict_round_trip(self):
        cfg = EngineConfig(smoothing_window=5, match_strategy="bbox")
        assert EngineConfig.from_dict(cfg.to_dict()) == cfg


class TestUpdateConfig:
    def test_returns_new_config(self):
        cfg = EngineConfig()
        new = update_config(cfg, trail_ttl=6.0)
        assert new.trail_ttl == 6.0
        assert cfg.trail_ttl == 4.0

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="sparkles"):
            update_config(EngineConfig(), sparkles=True)

    def test_invalid_value(self):
        with pytest.raises(ConfigError):
            update_config(EngineConfig(), smoothing_window=42)


class TestFiles:
    def test_yaml_round_trip(self, tmp_path):
        path = tmp_path / "engine.yaml"
        save_config(EngineConfig(trail_ttl=3.0), path)
        assert yaml.safe_load(path.read_text())["trail_ttl"] == 3.0
        assert load_config(path).trail_ttl == 3.0

    def test_json_round_trip(self, tmp_path):
        path = tmp_path / "engine.json"
        save_config(EngineConfig(live_feedback=True), path)
        assert json.loads(path.read_text())["live_feedback"] is True
        assert load_config(path).live_feedback is True

    def test_partial_yaml(self, tmp_path):
        path = tmp_path / "engine.yml"
        path.write_text("smoothing_window: 7\n")
        cfg = load_config(path)
        assert cfg.smoothing_window == 7
        assert cfg.trail_ttl == 4.0

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("")
        assert load_config(path) == EngineConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="cannot read"):
            load_config(tmp_path / "nope.yaml")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "engine.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="cannot parse"):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_invalid_values_in_file(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("trail_ttl: 30\n")
        with pytest.raises(ConfigError):
            load_config(path)
