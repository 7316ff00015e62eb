"""Tests for telemetry_core.config module."""

from __future__ import annotations

import json
import os
from unittest.mock import patch

import pytest

from telemetry_core.config import (
    DEFAULT_TELEMETRY_CONFIG,
    EnvReader,
    TelemetryConfig,
    find_config_file,
    load_config_file,
)
from telemetry_core.exceptions import ConfigurationError, InvalidConfigValueError
from telemetry_core.metrics import DEFAULT_HISTOGRAM_BUCKETS


class TestEnvReader:
    """Tests for EnvReader."""

    def test_get_with_prefix(self):
        """Test prefixed lookup."""
        with patch.dict(os.environ, {"APP_NAME": "orders"}):
            reader = EnvReader(prefix="APP")
            assert reader.get("NAME") == "orders"
            assert reader.get("MISSING", "fallback") == "fallback"

    def test_get_without_prefix(self):
        """Test an empty prefix reads names as-is."""
        with patch.dict(os.environ, {"PLAIN_NAME": "x"}):
            assert EnvReader(prefix="").get("PLAIN_NAME") == "x"

    def test_get_int(self):
        """Test integer parsing."""
        with patch.dict(os.environ, {"APP_COUNT": "42", "APP_BAD": "x"}):
            reader = EnvReader(prefix="APP")
            assert reader.get_int("COUNT") == 42
            assert reader.get_int("UNSET", 7) == 7
            with pytest.raises(InvalidConfigValueError):
                reader.get_int("BAD")

    def test_get_float(self):
        """Test float parsing."""
        with patch.dict(os.environ, {"APP_RATE": "0.25", "APP_BAD": "abc"}):
            reader = EnvReader(prefix="APP")
            assert reader.get_float("RATE") == 0.25
            with pytest.raises(InvalidConfigValueError):
                reader.get_float("BAD")

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1", True), ("TRUE", True), ("yes", True), ("on", True),
         ("0", False), ("false", False), ("No", False), ("off", False)],
    )
    def test_get_bool(self, raw, expected):
        """Test boolean parsing."""
        with patch.dict(os.environ, {"APP_FLAG": raw}):
            assert EnvReader(prefix="APP").get_bool("FLAG") is expected

    def test_get_bool_invalid(self):
        """Test unknown boolean values are rejected."""
        with patch.dict(os.environ, {"APP_FLAG": "maybe"}):
            with pytest.raises(InvalidConfigValueError):
                EnvReader(prefix="APP").get_bool("FLAG")

    def test_get_float_list(self):
        """Test float list parsing."""
        with patch.dict(os.environ, {"APP_B": "0.1,1,10", "APP_BAD": "1,x", "APP_BLANK": " "}):
            reader = EnvReader(prefix="APP")
            assert reader.get_float_list("B") == [0.1, 1.0, 10.0]
            assert reader.get_float_list("BLANK") == []
            assert reader.get_float_list("UNSET") is None
            with pytest.raises(InvalidConfigValueError):
                reader.get_float_list("BAD")


class TestConfigFiles:
    """Tests for file loading and discovery."""

    def test_load_json(self, tmp_path):
        """Test JSON files."""
        path = tmp_path / "telemetry.json"
        path.write_text(json.dumps({"service_name": "api"}))
        assert load_config_file(path) == {"service_name": "api"}

    def test_load_yaml(self, tmp_path):
        """Test YAML files."""
        path = tmp_path / "telemetry.yaml"
        path.write_text("service_name: api\nsample_rate: 0.5\n")
        assert load_config_file(path) == {"service_name": "api", "sample_rate": 0.5}

    def test_load_empty_yaml(self, tmp_path):
        """Test an empty YAML document loads as an empty mapping."""
        path = tmp_path / "telemetry.yml"
        path.write_text("")
        assert load_config_file(path) == {}

    def test_missing_file(self, tmp_path):
        """Test missing files raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            load_config_file(tmp_path / "nope.json")

    def test_unsupported_suffix(self, tmp_path):
        """Test unknown formats are rejected."""
        path = tmp_path / "telemetry.toml"
        path.write_text("")
        with pytest.raises(ConfigurationError):
            load_config_file(path)

    def test_malformed_json(self, tmp_path):
        """Test malformed JSON raises ConfigurationError."""
        path = tmp_path / "telemetry.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_config_file(path)

    def test_malformed_yaml(self, tmp_path):
        """Test malformed YAML raises ConfigurationError."""
        path = tmp_path / "telemetry.yaml"
        path.write_text("key: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config_file(path)

    def test_find_config_file(self, tmp_path):
        """Test discovery walks up the directory tree."""
        config_path = tmp_path / "telemetry.yaml"
        config_path.write_text("service_name: api\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == config_path

    def test_find_config_file_depth_limit(self, tmp_path):
        """Test discovery stops after max_depth directories."""
        (tmp_path / "telemetry.json").write_text("{}")
        nested = tmp_path / "a" / "b" / "c"
        nested.mkdir(parents=True)
        assert find_config_file(nested, max_depth=2) is None


class TestTelemetryConfig:
    """Tests for TelemetryConfig."""

    def test_defaults(self):
        """Test default values."""
        config = DEFAULT_TELEMETRY_CONFIG
        assert config.service_name == "telemetry-core"
        assert config.sampler == "probability"
        assert config.sample_rate == 1.0
        assert config.max_spans_per_trace == 1000
        assert config.health_check_timeout_seconds == 5.0
        assert config.histogram_buckets == DEFAULT_HISTOGRAM_BUCKETS

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"service_name": ""},
            {"sampler": "sometimes"},
            {"sample_rate": 1.5},
            {"sample_rate": -0.1},
            {"max_spans_per_trace": 0},
            {"health_check_timeout_seconds": 0},
            {"histogram_buckets": (1.0, float("nan"))},
            {"log_level": "LOUD"},
            {"log_format": "xml"},
        ],
    )
    def test_validation(self, kwargs):
        """Test invalid values are rejected."""
        with pytest.raises(InvalidConfigValueError):
            TelemetryConfig(**kwargs)

    def test_builders(self):
        """Test with_* builders return modified copies."""
        config = TelemetryConfig()
        updated = (
            config.with_service_name("api")
            .with_sampler("trace_id_ratio", 0.1)
            .with_health_check_timeout(2.0)
            .with_histogram_buckets(1, 5)
        )
        assert updated.service_name == "api"
        assert updated.sampler == "trace_id_ratio"
        assert updated.sample_rate == 0.1
        assert updated.health_check_timeout_seconds == 2.0
        assert updated.histogram_buckets == (1, 5)
        assert config == TelemetryConfig()

    def test_with_sampler_keeps_rate(self):
        """Test the rate is kept when not given."""
        config = TelemetryConfig(sample_rate=0.3).with_sampler("parent_based")
        assert config.sample_rate == 0.3

    def test_dict_roundtrip(self):
        """Test to_dict/from_dict."""
        config = TelemetryConfig(service_name="api", log_spans=True, histogram_buckets=(1.0, 2.0))
        assert TelemetryConfig.from_dict(config.to_dict()) == config

    def test_from_dict_partial(self):
        """Test missing keys fall back to defaults."""
        config = TelemetryConfig.from_dict({"sample_rate": "0.5"})
        assert config.sample_rate == 0.5
        assert config.service_name == "telemetry-core"

    def test_from_env(self):
        """Test environment loading."""
        env = {
            "TELEMETRY_SERVICE_NAME": "env-service",
            "TELEMETRY_SAMPLER": "trace_id_ratio",
            "TELEMETRY_SAMPLE_RATE": "0.2",
            "TELEMETRY_MAX_SPANS_PER_TRACE": "50",
            "TELEMETRY_HEALTH_CHECK_TIMEOUT": "1.5",
            "TELEMETRY_HISTOGRAM_BUCKETS": "0.1,1,10",
            "TELEMETRY_LOG_SPANS": "true",
            "TELEMETRY_RECORD_HEALTH_METRICS": "false",
        }
        with patch.dict(os.environ, env, clear=True):
            config = TelemetryConfig.from_env()
        assert config.service_name == "env-service"
        assert config.sampler == "trace_id_ratio"
        assert config.sample_rate == 0.2
        assert config.max_spans_per_trace == 50
        assert config.health_check_timeout_seconds == 1.5
        assert config.histogram_buckets == (0.1, 1.0, 10.0)
        assert config.log_spans is True
        assert config.record_health_metrics is False

    def test_from_env_custom_prefix(self):
        """Test a custom prefix."""
        with patch.dict(os.environ, {"OBS_SERVICE_NAME": "custom"}, clear=True):
            assert TelemetryConfig.from_env(prefix="OBS").service_name == "custom"

    def test_from_file(self, tmp_path):
        """Test file loading."""
        path = tmp_path / "telemetry.yaml"
        path.write_text("service_name: file-service\nsampler: always_off\n")
        config = TelemetryConfig.from_file(path)
        assert config.service_name == "file-service"
        assert config.sampler == "always_off"

    def test_load_env_overrides_file(self, tmp_path):
        """Test environment values win over file values."""
        path = tmp_path / "telemetry.json"
        path.write_text(json.dumps({"service_name": "file", "sample_rate": 0.5}))
        with patch.dict(os.environ, {"TELEMETRY_SERVICE_NAME": "env"}, clear=True):
            config = TelemetryConfig.load(path)
        assert config.service_name == "env"
        assert config.sample_rate == 0.5

    def test_load_searches_cwd(self, tmp_path, monkeypatch):
        """Test load discovers a config file from the working directory."""
        (tmp_path / "telemetry.json").write_text(json.dumps({"service_name": "found"}))
        monkeypatch.chdir(tmp_path)
        with patch.dict(os.environ, {}, clear=True):
            assert TelemetryConfig.load().service_name == "found"
            assert TelemetryConfig.load(search_config=False).service_name == "telemetry-core"

    def test_load_invalid_env(self):
        """Test invalid environment values surface as configuration errors."""
        with patch.dict(os.environ, {"TELEMETRY_SAMPLE_RATE": "lots"}, clear=True):
            with pytest.raises(InvalidConfigValueError):
                TelemetryConfig.load(search_config=False)

    def test_empty_histogram_buckets_allowed(self):
        """Test an empty bucket default is accepted from the environment."""
        with patch.dict(os.environ, {"TELEMETRY_HISTOGRAM_BUCKETS": ""}, clear=True):
            config = TelemetryConfig.from_env()
        assert config.histogram_buckets == ()

    def test_from_dict_bool_strings(self):
        """Test boolean strings from files are parsed, not truth-tested."""
        config = TelemetryConfig.from_dict({"log_spans": "false", "record_health_metrics": "yes"})
        assert config.log_spans is False
        assert config.record_health_metrics is True
