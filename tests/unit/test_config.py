# pyright: reportAny=false
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from strtemplate import (
    Delimiters,
    LogFormat,
    LogLevel,
    SettingsLoadError,
    TemplateSettings,
    load_settings,
)
from strtemplate._config import deep_merge, parse_env_vars, set_nested_key

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


class TestTemplateSettings:
    def test_defaults(self) -> None:
        settings = TemplateSettings()

        assert settings.delimiters is Delimiters.ANGLE
        assert settings.lint is False
        assert settings.refresh_interval is None
        assert settings.line_width is None
        assert settings.newline == "\n"
        assert settings.logging.level is LogLevel.WARNING
        assert settings.logging.format is LogFormat.TEXT

    def test_is_frozen(self) -> None:
        settings = TemplateSettings()

        with pytest.raises(ValidationError):
            settings.lint = True  # pyright: ignore[reportAttributeAccessIssue]

    def test_ignores_unknown_keys(self) -> None:
        settings = TemplateSettings.model_validate({"lint": True, "colour": "blue"})

        assert settings.lint is True

    def test_rejects_non_positive_line_width(self) -> None:
        with pytest.raises(ValidationError):
            _ = TemplateSettings(line_width=0)

    def test_rejects_negative_refresh_interval(self) -> None:
        with pytest.raises(ValidationError):
            _ = TemplateSettings(refresh_interval=-1)


class TestLoadSettings:
    def test_defaults_without_file(self) -> None:
        assert load_settings() == TemplateSettings()

    def test_reads_strtemplate_table(self, fs: "FakeFilesystem") -> None:
        content = """
[tool.other]
lint = false

[strtemplate]
delimiters = "dollar"
lint = true
line_width = 72

[strtemplate.logging]
level = "debug"
format = "json"
"""
        path = Path("/project/pyproject.toml")
        fs.create_file(path, contents=content)

        settings = load_settings(path)

        assert settings.delimiters is Delimiters.DOLLAR
        assert settings.lint is True
        assert settings.line_width == 72
        assert settings.logging.level is LogLevel.DEBUG
        assert settings.logging.format is LogFormat.JSON

    def test_reads_top_level_keys(self, fs: "FakeFilesystem") -> None:
        path = Path("/project/strtemplate.toml")
        fs.create_file(path, contents='refresh_interval = 2.5\nnewline = "\\r\\n"\n')

        settings = load_settings(path)

        assert settings.refresh_interval == 2.5
        assert settings.newline == "\r\n"

    def test_environment_overrides_file(
        self, fs: "FakeFilesystem", monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = Path("/project/strtemplate.toml")
        fs.create_file(path, contents="lint = false\nline_width = 40\n")
        monkeypatch.setenv("STRTEMPLATE_LINT", "true")
        monkeypatch.setenv("STRTEMPLATE_LINE_WIDTH", "none")
        monkeypatch.setenv("STRTEMPLATE_LOGGING__LEVEL", "error")

        settings = load_settings(path)

        assert settings.lint is True
        assert settings.line_width is None
        assert settings.logging.level is LogLevel.ERROR

    def test_missing_file_raises(self, fs: "FakeFilesystem") -> None:
        path = Path("/project/missing.toml")

        with pytest.raises(SettingsLoadError, match="not found") as exc_info:
            _ = load_settings(path)

        assert exc_info.value.path == path

    def test_invalid_toml_raises(self, fs: "FakeFilesystem") -> None:
        path = Path("/project/bad.toml")
        fs.create_file(path, contents="[strtemplate\nlint = true\n")

        with pytest.raises(SettingsLoadError, match="Failed to parse") as exc_info:
            _ = load_settings(path)

        assert exc_info.value.path == path
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_invalid_values_raise(self, fs: "FakeFilesystem") -> None:
        path = Path("/project/bad.toml")
        fs.create_file(path, contents='delimiters = "braces"\n')

        with pytest.raises(SettingsLoadError, match="Invalid settings"):
            _ = load_settings(path)


class TestParseEnvVars:
    def test_nests_double_underscore_keys(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STRTEMPLATE_LOGGING__FORMAT", "json")

        assert parse_env_vars() == {"logging": {"format": "json"}}

    def test_infers_value_types(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STRTEMPLATE_LINT", "FALSE")
        monkeypatch.setenv("STRTEMPLATE_LINE_WIDTH", "80")
        monkeypatch.setenv("STRTEMPLATE_REFRESH_INTERVAL", "0.5")
        monkeypatch.setenv("STRTEMPLATE_DELIMITERS", "dollar")

        assert parse_env_vars() == {
            "lint": False,
            "line_width": 80,
            "refresh_interval": 0.5,
            "delimiters": "dollar",
        }

    def test_skips_logger_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STRTEMPLATE_DEBUG", "1")
        monkeypatch.setenv("STRTEMPLATE_LOG_LEVEL", "debug")

        assert parse_env_vars() == {}


class TestMergeHelpers:
    def test_set_nested_key_creates_tables(self) -> None:
        target: dict[str, object] = {}

        set_nested_key(target, "a.b.c", 1)

        assert target == {"a": {"b": {"c": 1}}}

    def test_deep_merge_merges_nested_tables(self) -> None:
        base = {"logging": {"level": "info", "format": "text"}, "lint": False}
        override = {"logging": {"level": "debug"}}

        merged = deep_merge(base, override)

        assert merged == {"logging": {"level": "debug", "format": "text"}, "lint": False}
        assert base["logging"] == {"level": "info", "format": "text"}
