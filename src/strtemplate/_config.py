"""Engine settings.

Settings are read from an optional TOML file and overlaid with
``STRTEMPLATE_*`` environment variables. A file may keep its values under a
``[strtemplate]`` table (handy inside ``pyproject.toml``) or at the top level.
Nested keys are addressed in the environment with a double underscore, so
``logging.level`` becomes ``STRTEMPLATE_LOGGING__LEVEL``.
"""

import os
import tomllib
from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from strtemplate.exceptions import SettingsLoadError

ENV_PREFIX = "STRTEMPLATE_"


class Delimiters(StrEnum):
    """Expression delimiter styles understood by the template lexer."""

    ANGLE = "angle"
    DOLLAR = "dollar"


class LogLevel(StrEnum):
    """Log level threshold values."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class LoggingSettings(BaseModel):
    """Logging section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.WARNING
    format: LogFormat = LogFormat.TEXT


class TemplateSettings(BaseModel):
    """Settings shared by a group and every template it produces.

    Attributes:
        delimiters: Expression delimiters used when compiling template text.
        lint: Enables recursion detection and unused-attribute warnings.
        refresh_interval: Seconds between cache flushes for loader-backed groups,
            or None to never refresh.
        line_width: Default wrap width for ``str(template)``, or None.
        newline: Newline sequence emitted by the writer.
        logging: Logging section.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    delimiters: Delimiters = Delimiters.ANGLE
    lint: bool = False
    refresh_interval: float | None = Field(default=None, ge=0)
    line_width: int | None = Field(default=None, ge=1)
    newline: str = "\n"
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read and parse a TOML file.

    Args:
        path: Path to the TOML file.

    Returns:
        Parsed TOML content as dictionary.

    Raises:
        SettingsLoadError: If the file is missing or cannot be parsed.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        msg = f"Settings file not found: {path}"
        raise SettingsLoadError(msg, path=path) from e
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse TOML file: {e}"
        raise SettingsLoadError(
            msg,
            path=path,
            line=getattr(e, "lineno", None),  # set on Python 3.14+
            column=getattr(e, "colno", None),
        ) from e


def set_nested_key(
    target: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    dotted_key: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Set ``value`` at a dotted path, creating intermediate tables."""
    parts = dotted_key.split(".")
    current = target
    for part in parts[:-1]:
        nested = current.get(part)
        if not isinstance(nested, dict):
            nested = {}
            current[part] = nested
        current = nested  # pyright: ignore[reportUnknownVariableType]
    current[parts[-1]] = value


def deep_merge(
    base: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    override: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Merge ``override`` into a copy of ``base``; nested tables merge recursively."""
    result = dict(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)  # pyright: ignore[reportUnknownArgumentType]
        else:
            result[key] = value
    return result


def parse_env_vars(
    prefix: str = ENV_PREFIX,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Parse environment variables into a settings dictionary.

    Args:
        prefix: Environment variable prefix (default: "STRTEMPLATE_").

    Returns:
        Dictionary of parsed values with nested structure.

    Environment variable naming:
        - Add prefix (STRTEMPLATE_)
        - Convert to uppercase
        - Replace dots with double underscores
        - Example: logging.level -> STRTEMPLATE_LOGGING__LEVEL
    """
    result: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        config_key = key[len(prefix) :]
        # STRTEMPLATE_DEBUG and STRTEMPLATE_LOG_LEVEL drive the logger directly
        if not config_key or config_key in ("DEBUG", "LOG_LEVEL"):
            continue
        config_path = config_key.replace("__", ".").lower()
        set_nested_key(result, config_path, _parse_env_value(value))

    return result


def _parse_env_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Parse an environment variable value with type inference.

    Order of type inference:
        1. Boolean: true/false (case-insensitive)
        2. Integer
        3. Float (must contain a decimal point)
        4. Null: "null" or "none" clears an optional setting
        5. String: anything else
    """
    lower_value = value.lower()
    if lower_value in ("true", "false"):
        return lower_value == "true"

    try:
        return int(value)
    except ValueError:
        pass

    if "." in value:
        try:
            return float(value)
        except ValueError:
            pass

    if lower_value in ("null", "none"):
        return None

    return value


def load_settings(path: Path | None = None) -> TemplateSettings:
    """Load settings from a TOML file and the environment.

    Args:
        path: Optional TOML file. Values under a ``[strtemplate]`` table win over
            top-level keys when the table is present.

    Returns:
        Validated, frozen settings.

    Raises:
        SettingsLoadError: If the file cannot be read or the values are invalid.
    """
    values: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    if path is not None:
        document = read_toml_file(path)
        section = document.get("strtemplate")
        values = section if isinstance(section, dict) else document  # pyright: ignore[reportUnknownVariableType]

    values = deep_merge(values, parse_env_vars())

    try:
        return TemplateSettings.model_validate(values)
    except ValidationError as e:
        msg = f"Invalid settings: {e}"
        raise SettingsLoadError(msg, path=path) from e
