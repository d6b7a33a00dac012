# pyright: reportExplicitAny=false
"""Exit codes, output helpers and file access shared by the commands."""

from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING, Any, Never

if TYPE_CHECKING:
    from pathlib import Path

    from rich.console import Console

    from strtemplate._listener import ErrorBuffer

type Report = dict[str, Any]

__all__ = [
    "ExitCode",
    "OutputFormat",
    "Report",
    "exit_with_error",
    "format_json",
    "get_error_console",
    "print_diagnostics",
    "read_source",
]


class ExitCode(IntEnum):
    """Process exit codes of the ``strtemplate`` commands."""

    SUCCESS = 0
    SETTINGS_ERROR = 1
    TEMPLATE_ERROR = 2
    NOT_FOUND = 3
    IO_ERROR = 4
    INTERNAL_ERROR = 5


class OutputFormat(StrEnum):
    TEXT = "text"
    JSON = "json"


def format_json(report: Report, *, indent: bool = True) -> str:
    """Serialize a command report with orjson."""
    import orjson

    return orjson.dumps(report, option=orjson.OPT_INDENT_2 if indent else 0).decode("utf-8")


def get_error_console() -> "Console":
    from rich.console import Console

    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: "Console | None" = None,
) -> Never:
    """Print ``message`` as an error and leave with ``code``.

    The message is escaped, so template text such as ``[price]`` prints
    as written.

    Raises:
        SystemExit: Always, carrying ``code``.
    """
    from rich.markup import escape

    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {escape(message)}")
    raise SystemExit(code)


def read_source(path: "Path", console: "Console") -> str:
    """Return the text of a group or interface file, exiting when it is unreadable."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        exit_with_error(f"File not found: {path}", ExitCode.NOT_FOUND, console=console)
    except OSError as e:
        exit_with_error(f"Failed to read {path}: {e}", ExitCode.IO_ERROR, console=console)


def print_diagnostics(listener: "ErrorBuffer", console: "Console") -> None:
    """Print every collected diagnostic as a warning line."""
    from rich.markup import escape

    for message in listener.errors:
        console.print(f"[yellow]Warning:[/yellow] {escape(message)}", soft_wrap=True)
