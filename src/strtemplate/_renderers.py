"""Attribute renderers: per-type formatting hooks."""

from typing import Any, Protocol, runtime_checkable

__all__ = [
    "AttributeRenderer",
    "RendererTable",
]


@runtime_checkable
class AttributeRenderer(Protocol):
    """Formats values of a registered type.

    ``format_string`` carries the ``format`` option of the expression being
    written, or None when the expression has none.
    """

    def format(self, value: Any, format_string: str | None = None) -> str: ...  # pyright: ignore[reportExplicitAny]


class RendererTable:
    """Type to renderer registrations for one scope.

    Lookup walks the value type's MRO so a renderer registered for a base
    class also formats its subclasses; the most specific registration wins.
    """

    __slots__ = ("_renderers",)

    def __init__(self) -> None:
        self._renderers: dict[type, AttributeRenderer] = {}

    def register(self, value_type: type, renderer: AttributeRenderer) -> None:
        self._renderers[value_type] = renderer

    def lookup(self, value_type: type) -> AttributeRenderer | None:
        if not self._renderers:
            return None
        for klass in value_type.__mro__:
            renderer = self._renderers.get(klass)
            if renderer is not None:
                return renderer
        return None

    def copy(self) -> "RendererTable":
        table = RendererTable()
        table._renderers.update(self._renderers)  # noqa: SLF001
        return table

    def __bool__(self) -> bool:
        return bool(self._renderers)
