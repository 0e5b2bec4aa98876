"""
Tests for settings, logging, YAML loading and the exception hierarchy.
"""

import logging

import pytest

from config import SafeSettings, Settings, load_yaml_file, settings
from exceptions import (
    ErrorSeverity,
    InvalidConfiguration,
    InvalidEncoding,
    PartialEvaluationFailure,
    PatternCompileError
)
from logger import get_logger


class TestSettings:
    """Tests for Settings validation"""

    def test_defaults(self):
        settings = Settings()

        assert settings.app_name == "lexiscan"
        assert settings.default_reduction == "sum"
        assert settings.strict_compile is False

    @pytest.mark.parametrize("overrides", [
        {"environment": "staging"},
        {"log_level": "LOUD"},
        {"default_reduction": "median"},
        {"default_step_budget": 0},
        {"detection_threshold": 2.0},
        {"context_window": -1},
    ])
    def test_invalid_settings_rejected(self, overrides):
        with pytest.raises(ValueError):
            Settings(**overrides)

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("LEXISCAN_DEFAULT_REDUCTION", "max")

        assert Settings().default_reduction == "max"

    def test_safe_settings_fallback(self):
        safe = SafeSettings(Settings())

        assert safe.context_window == 50
        assert safe.get("not_a_setting", "fallback") == "fallback"
        assert safe.pattern_catalog_path is None


class TestLoadYamlFile:
    """Tests for load_yaml_file"""

    def test_reads_document(self, tmp_path):
        path = tmp_path / "doc.yaml"
        path.write_text("key: value\n")

        assert load_yaml_file(path) == {"key": "value"}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_yaml_file(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidConfiguration) as exc_info:
            load_yaml_file(tmp_path / "missing.yaml")

        assert isinstance(exc_info.value.original_error, OSError)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("key: [unclosed\n")

        with pytest.raises(InvalidConfiguration):
            load_yaml_file(path)


class TestExceptions:
    """Tests for error types"""

    def test_severities(self):
        assert InvalidEncoding("bad").severity is ErrorSeverity.INPUT
        assert InvalidConfiguration("bad").severity is ErrorSeverity.CONFIGURATION

    def test_compile_error_names_pattern(self):
        error = PatternCompileError("Invalid regex", label="year", pattern_text="(")

        assert str(error) == "CONFIGURATION: Invalid regex (pattern: year)"

    def test_failure_record(self):
        failure = PartialEvaluationFailure("criterion", "kw", "Missing parameter")

        assert failure.to_dict() == {"source": "criterion", "name": "kw", "message": "Missing parameter"}


class TestGetLogger:
    """Tests for logger configuration"""

    def test_level_follows_settings(self):
        assert get_logger("tests.level_from_settings").level == getattr(logging, settings.log_level.upper())

    def test_debug_mode_forces_debug_level(self, monkeypatch):
        monkeypatch.setattr(settings, "debug", True)

        assert get_logger("tests.debug_mode").level == logging.DEBUG

    def test_loggers_do_not_propagate(self):
        assert get_logger("tests.no_propagation").propagate is False
