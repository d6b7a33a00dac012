"""Attribute value variants and the helpers that walk them.

Attribute values are one of a closed set of shapes:

- scalars (anything not listed below), rendered with a registered renderer or ``str``
- sequences and sets, including the engine-owned ``AttributeList``
- mappings, iterated by value and indexed by key from ``a.key`` references
- iterators and generators, consumed once
- nested templates, rendered in the context of the template that writes them
- ``Aggregate`` records created by ``set_attribute("a.{x,y}", ...)``

Strings and bytes are scalars even though Python can iterate them.
"""

from collections.abc import Iterable, Iterator, Mapping, Sized
from itertools import chain
from typing import Any, Final, Protocol, final, override, runtime_checkable

__all__ = [
    "DEFAULT_KEY",
    "KEY_VALUE",
    "Aggregate",
    "AttributeList",
    "PropertyProvider",
    "first",
    "is_multi_valued",
    "is_true",
    "iterate",
    "last",
    "length",
    "rest",
    "strip",
    "trunc",
]


class AttributeList(list[Any]):  # pyright: ignore[reportExplicitAny]
    """A list built by the engine rather than supplied by the caller.

    Multi-valued attributes and template applications produce these; the
    engine may append to them freely, while caller-supplied lists are copied
    before they are extended.
    """


@final
class _MapMarker:
    def __init__(self, name: str) -> None:
        self._name = name

    @override
    def __repr__(self) -> str:
        return self._name


# Key of the fallback entry in a group map (``default:`` in group source).
DEFAULT_KEY: Final = _MapMarker("DEFAULT_KEY")

# Fallback value meaning "answer with the key that was looked up" (``default:key``).
KEY_VALUE: Final = _MapMarker("KEY_VALUE")


@runtime_checkable
class PropertyProvider(Protocol):
    """Capability for objects that expose properties to templates by name."""

    def get_property(self, name: str) -> Any: ...  # pyright: ignore[reportExplicitAny]


class Aggregate:
    """A record of named values set together through an aggregate attribute spec.

    ``template.set_attribute("items.{name,price}", "Book", 10)`` stores one
    ``Aggregate`` whose ``name`` and ``price`` properties are readable from the
    template as ``it.name`` and ``it.price``.
    """

    __slots__ = ("properties",)

    def __init__(self, properties: Mapping[str, Any] | None = None) -> None:  # pyright: ignore[reportExplicitAny]
        self.properties: dict[str, Any] = dict(properties or {})  # pyright: ignore[reportExplicitAny]

    def get(self, name: str) -> Any:  # pyright: ignore[reportExplicitAny]
        return self.properties.get(name)

    @override
    def __str__(self) -> str:
        return str(self.properties)

    @override
    def __repr__(self) -> str:
        return f"Aggregate({self.properties!r})"


def is_multi_valued(value: object) -> bool:
    """Return True for values the engine iterates instead of writing whole."""
    if isinstance(value, (str, bytes, bytearray)):
        return False
    return isinstance(value, Iterable)


def iterate(value: object) -> Iterator[Any]:  # pyright: ignore[reportExplicitAny]
    """Iterate a multi-valued attribute; mappings yield their values.

    Single values are wrapped so callers can treat everything uniformly.
    """
    if isinstance(value, Mapping):
        return iter(value.values())  # pyright: ignore[reportUnknownArgumentType,reportUnknownMemberType]
    if is_multi_valued(value):
        return iter(value)  # pyright: ignore[reportArgumentType,reportUnknownArgumentType]
    return iter((value,))


def is_true(value: object) -> bool:
    """Evaluate an attribute as an ``if`` condition.

    None is false, booleans are themselves and empty collections are false.
    An iterator is true when it yields a first element, which it consumes.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if not is_multi_valued(value):
        return True
    if isinstance(value, Iterator):
        return next(value, _EXHAUSTED) is not _EXHAUSTED  # pyright: ignore[reportUnknownArgumentType]
    if isinstance(value, Sized):
        return len(value) > 0
    return next(iterate(value), _EXHAUSTED) is not _EXHAUSTED


_EXHAUSTED: Final = object()


def first(value: object) -> Any:  # pyright: ignore[reportExplicitAny]
    """Return the first element of a multi-valued attribute, or the value itself."""
    if not is_multi_valued(value):
        return value
    return next(iterate(value), None)


def rest(value: object) -> Any:  # pyright: ignore[reportExplicitAny]
    """Return everything but the first element; None unless two or more exist."""
    if not is_multi_valued(value):
        return None
    items = iterate(value)
    if next(items, _EXHAUSTED) is _EXHAUSTED:
        return None
    second = next(items, _EXHAUSTED)
    if second is _EXHAUSTED:
        return None
    return AttributeList(chain((second,), items))


def last(value: object) -> Any:  # pyright: ignore[reportExplicitAny]
    """Return the last element of a multi-valued attribute, or the value itself."""
    if not is_multi_valued(value):
        return value
    result = None
    for result in iterate(value):  # noqa: B007
        pass
    return result


def length(value: object) -> int:
    """Count the elements of an attribute; None counts 0 and a scalar counts 1."""
    if value is None:
        return 0
    if not is_multi_valued(value):
        return 1
    return sum(1 for _ in iterate(value))


def strip(value: object) -> Any:  # pyright: ignore[reportExplicitAny]
    """Drop None elements from a multi-valued attribute."""
    if not is_multi_valued(value):
        return value
    return AttributeList(item for item in iterate(value) if item is not None)


def trunc(value: object) -> Any:  # pyright: ignore[reportExplicitAny]
    """Drop the last element of a multi-valued attribute; a scalar becomes None."""
    if not is_multi_valued(value):
        return None
    items = list(iterate(value))
    return AttributeList(items[:-1]) if len(items) > 1 else None
