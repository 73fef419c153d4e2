"""Tests for scriptflow utilities and configuration."""

import pytest
from pathlib import Path

from scriptflow.config import Config
from scriptflow.utils import (
    CircularDependencyError,
    ConfigurationError,
    UnknownStepError,
    ValidationError,
    cleanup_intermediates,
    format_duration,
    is_empty,
)


class TestIsEmpty:
    def test_none(self):
        assert is_empty(None)

    def test_empty_string(self):
        assert is_empty("")

    def test_zero_is_a_value(self):
        assert not is_empty(0)

    def test_false_is_a_value(self):
        assert not is_empty(False)


class TestFormatDuration:
    def test_seconds(self):
        assert format_duration(45) == "45s"

    def test_minutes(self):
        assert format_duration(125) == "2m 5s"

    def test_hours(self):
        assert format_duration(3725) == "1h 2m 5s"


class TestErrors:
    def test_unknown_step_is_configuration_error(self):
        error = UnknownStepError("ff_nope", ["ff_scale", "ff_crop"])
        assert isinstance(error, ConfigurationError)
        assert "ff_nope" in str(error)
        assert "ff_crop, ff_scale" in str(error)

    def test_circular_dependency_message(self):
        error = CircularDependencyError("b", ["b", "c", "b"])
        assert error.node_id == "b"
        assert "Circular dependency detected involving node b" in str(error)
        assert "b -> c -> b" in str(error)

    def test_validation_error_keeps_messages(self):
        error = ValidationError(["first", "second"])
        assert error.errors == ["first", "second"]
        assert "first; second" == str(error)


class TestCleanupIntermediates:
    def test_removes_videos_but_keeps_final(self, tmp_path):
        a = tmp_path / "ff_scale.mp4"
        b = tmp_path / "output.mp4"
        a.write_bytes(b"a")
        b.write_bytes(b"b")

        removed = cleanup_intermediates([a, b], keep=[b])

        assert removed == [a]
        assert not a.exists()
        assert b.exists()

    def test_ignores_non_video_and_missing_files(self, tmp_path):
        image = tmp_path / "thumbnail.jpg"
        image.write_bytes(b"x")

        removed = cleanup_intermediates([image, tmp_path / "gone.mp4"])

        assert removed == []
        assert image.exists()


class TestConfig:
    def test_defaults(self):
        config = Config()
        assert config.scripts_dir == Path("./js")
        assert config.output_filename == "output.mp4"
        assert config.tidy is True
        assert config.step_timeout is None

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SCRIPTFLOW_SCRIPTS_DIR", str(tmp_path))
        monkeypatch.setenv("SCRIPTFLOW_OUTPUT", "final.mp4")
        monkeypatch.setenv("SCRIPTFLOW_TIDY", "false")
        monkeypatch.setenv("SCRIPTFLOW_STEP_TIMEOUT", "30")

        config = Config.from_env()

        assert config.scripts_dir == tmp_path
        assert config.output_filename == "final.mp4"
        assert config.tidy is False
        assert config.step_timeout == 30.0

    def test_validate_warns_about_missing_scripts_dir(self, tmp_path):
        config = Config(scripts_dir=tmp_path / "missing")
        warnings = config.validate()
        assert any("Scripts directory not found" in w for w in warnings)

    def test_validate_drops_bad_timeout(self, tmp_path):
        config = Config(scripts_dir=tmp_path, step_timeout=-5)
        warnings = config.validate()
        assert config.step_timeout is None
        assert any("SCRIPTFLOW_STEP_TIMEOUT" in w for w in warnings)
