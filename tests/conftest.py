"""Shared test fixtures for strtemplate tests."""

import os
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from rich.console import Console

from strtemplate import (
    ErrorBuffer,
    GroupRegistry,
    TemplateGroup,
    TemplateSettings,
    reset_template_counter,
)
from strtemplate._config import ENV_PREFIX

GroupFactory = Callable[..., TemplateGroup]


@pytest.fixture(autouse=True)
def _reset_template_ids() -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    reset_template_counter()
    yield
    reset_template_counter()


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:  # pyright: ignore[reportUnusedFunction]
    """Keep STRTEMPLATE_* variables from the outer shell out of the tests."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key)


@pytest.fixture
def error_buffer() -> ErrorBuffer:
    """Listener that keeps every diagnostic for assertions."""
    return ErrorBuffer()


@pytest.fixture
def registry() -> GroupRegistry:
    return GroupRegistry()


@pytest.fixture
def make_group(error_buffer: ErrorBuffer, registry: GroupRegistry) -> GroupFactory:
    """Return a factory that parses group source into a registered group.

    Diagnostics go to the shared ``error_buffer`` fixture.
    """

    def _make(source: str, **kwargs: Any) -> TemplateGroup:  # pyright: ignore[reportExplicitAny]
        kwargs.setdefault("error_listener", error_buffer)
        kwargs.setdefault("registry", registry)
        return TemplateGroup.from_source(source, **kwargs)  # pyright: ignore[reportAny]

    return _make


@pytest.fixture
def lint_group(error_buffer: ErrorBuffer) -> TemplateGroup:
    """An empty group with lint mode on."""
    return TemplateGroup(
        "lint", settings=TemplateSettings(lint=True), error_listener=error_buffer
    )


@pytest.fixture
def console() -> Console:
    return Console(
        width=70,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )
