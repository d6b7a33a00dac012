# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003, A002  # Path needed at runtime for cyclopts parameter parsing
"""The ``render`` and ``check`` commands."""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

from cyclopts import Parameter
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from strtemplate._config import TemplateSettings, load_settings
from strtemplate._group import TemplateGroup
from strtemplate._interface import GroupInterface
from strtemplate._listener import ErrorBuffer
from strtemplate._registry import GroupRegistry
from strtemplate.exceptions import (
    SettingsLoadError,
    TemplateError,
    TemplateNotFoundError,
)

from ._shared import (
    ExitCode,
    OutputFormat,
    exit_with_error,
    format_json,
    get_error_console,
    print_diagnostics,
    read_source,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cyclopts import App

__all__ = ["check", "register_commands", "render"]


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------


def _load_settings(config: Path | None, console: Console) -> TemplateSettings:
    try:
        return load_settings(config)
    except SettingsLoadError as e:
        exit_with_error(str(e), ExitCode.SETTINGS_ERROR, console=console)


def _load_group(
    group_file: Path,
    *,
    groups: "Sequence[Path]",
    interfaces: "Sequence[Path]",
    settings: TemplateSettings,
    listener: ErrorBuffer,
    console: Console,
) -> tuple[TemplateGroup, list[GroupInterface]]:
    """Load ``group_file`` after the groups and interfaces it may name.

    Returns:
        The group and the interfaces read from ``interfaces``, in order.
    """
    registry = GroupRegistry()
    loaded: list[GroupInterface] = []
    for path in interfaces:
        interface = GroupInterface.from_source(
            read_source(path, console), error_listener=listener
        )
        registry.register_interface(interface)
        loaded.append(interface)
    for path in groups:
        TemplateGroup.from_source(
            read_source(path, console),
            settings=settings,
            error_listener=listener,
            registry=registry,
        )
    group = TemplateGroup.from_source(
        read_source(group_file, console),
        settings=settings,
        error_listener=listener,
        registry=registry,
    )
    return group, loaded


def _parse_assignments(assignments: "Sequence[str]", console: Console) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for assignment in assignments:
        name, sep, value = assignment.partition("=")
        if not sep or not name:
            exit_with_error(
                f"Invalid attribute '{assignment}': expected name=value",
                ExitCode.TEMPLATE_ERROR,
                console=console,
            )
        pairs.append((name.strip(), value))
    return pairs


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


def render(
    group_file: Path,
    template: str,
    *,
    attribute: Annotated[
        list[str] | None,
        Parameter(name=["--attribute", "-a"], help="Attribute as name=value (repeatable)"),
    ] = None,
    width: Annotated[
        int | None, Parameter(name=["--width", "-w"], help="Wrap output at this column")
    ] = None,
    lint: Annotated[
        bool, Parameter(help="Detect recursion and report unused attributes")
    ] = False,
    group: Annotated[
        list[Path] | None,
        Parameter(name=["--group", "-g"], help="Group file loaded first, e.g. a super group"),
    ] = None,
    interface: Annotated[
        list[Path] | None,
        Parameter(name=["--interface", "-i"], help="Interface file the group may implement"),
    ] = None,
    config: Annotated[
        Path | None, Parameter(name="--config", help="Path to settings file")
    ] = None,
) -> None:
    """Render a template from a group file.

    Repeating an attribute name builds a multi-valued attribute, so
    ``-a x=1 -a x=2`` behaves like two ``set_attribute`` calls.

    Examples:
        strtemplate render page.stg main -a title=Home
        strtemplate render page.stg list -a item=a -a item=b --width 40

    Exit codes:
        0: Template rendered (diagnostics, if any, go to stderr)
        1: Settings could not be loaded
        2: Invalid attribute or render failure
        3: File or template not found
        4: File could not be read
    """
    error_console = get_error_console()
    settings = _load_settings(config, error_console)
    if lint:
        settings = settings.model_copy(update={"lint": True})
    pairs = _parse_assignments(attribute or [], error_console)

    listener = ErrorBuffer()
    loaded, _ = _load_group(
        group_file,
        groups=group or [],
        interfaces=interface or [],
        settings=settings,
        listener=listener,
        console=error_console,
    )

    try:
        instance = loaded.get_instance_of(template)
        for name, value in pairs:
            instance.set_attribute(name, value)
        output = instance.render(line_width=width)
    except TemplateNotFoundError as e:
        print_diagnostics(listener, error_console)
        exit_with_error(str(e), ExitCode.NOT_FOUND, console=error_console)
    except TemplateError as e:
        print_diagnostics(listener, error_console)
        exit_with_error(str(e), ExitCode.TEMPLATE_ERROR, console=error_console)

    print(output)
    print_diagnostics(listener, error_console)
    raise SystemExit(ExitCode.SUCCESS)


def check(
    group_file: Path,
    *,
    interface: Annotated[
        list[Path] | None,
        Parameter(name=["--interface", "-i"], help="Interface file to check against"),
    ] = None,
    group: Annotated[
        list[Path] | None,
        Parameter(name=["--group", "-g"], help="Group file loaded first, e.g. a super group"),
    ] = None,
    format: Annotated[
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format (text, json)"),
    ] = OutputFormat.TEXT,
    config: Annotated[
        Path | None, Parameter(name="--config", help="Path to settings file")
    ] = None,
) -> None:
    """Parse a group file and report its problems.

    Every interface given with ``--interface`` is checked, whether or not the
    group declares that it implements it.

    Examples:
        strtemplate check page.stg
        strtemplate check page.stg -i html.sti -f json

    Exit codes:
        0: No problems found
        1: Settings could not be loaded
        2: The group has problems
        3: File not found
        4: File could not be read
    """
    error_console = get_error_console()
    settings = _load_settings(config, error_console)

    listener = ErrorBuffer()
    loaded, interfaces = _load_group(
        group_file,
        groups=group or [],
        interfaces=interface or [],
        settings=settings,
        listener=listener,
        console=error_console,
    )
    declared = {implemented.name for implemented in loaded.interfaces}
    loaded.verify_interface_implementations(
        [extra for extra in interfaces if extra.name not in declared]
    )
    checked = sorted(declared | {extra.name for extra in interfaces})
    code = ExitCode.TEMPLATE_ERROR if listener else ExitCode.SUCCESS

    if format == OutputFormat.JSON:
        print(
            format_json(
                {
                    "group": loaded.name,
                    "super_group": loaded.super_group.name if loaded.super_group else None,
                    "interfaces": checked,
                    "templates": loaded.template_names(),
                    "problems": listener.errors,
                    "ok": not listener,
                }
            )
        )
        raise SystemExit(code)

    console = Console()
    console.print(
        f"[bold]group {escape(loaded.name)}[/bold]: "
        f"{len(loaded.template_names())} templates, "
        f"{len(checked)} interfaces"
    )
    if not listener:
        console.print("[green]No problems found.[/green]")
        raise SystemExit(code)

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Problem")
    for index, message in enumerate(listener.errors, start=1):
        table.add_row(str(index), escape(message))
    console.print(table)
    raise SystemExit(code)


def register_commands(app: "App") -> None:
    app.command(render)
    app.command(check)
