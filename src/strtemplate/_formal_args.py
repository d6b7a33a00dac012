"""Formal argument declarations."""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, override

if TYPE_CHECKING:
    from strtemplate._template import StringTemplate

__all__ = [
    "UNKNOWN_ARGS",
    "FormalArgument",
    "FormalArguments",
    "format_formal_arguments",
]


@dataclass(slots=True)
class FormalArgument:
    """A declared template parameter.

    Attributes:
        name: Parameter name.
        default_value: Template evaluated when no value is bound, or None.
    """

    name: str
    default_value: "StringTemplate | None" = None

    @property
    def has_default(self) -> bool:
        return self.default_value is not None

    @override
    def __str__(self) -> str:
        if self.default_value is None:
            return self.name
        return f'{self.name}="{self.default_value.pattern}"'


type FormalArguments = Mapping[str, FormalArgument]

# Marks a template whose parameter list was never declared. Attribute names
# are not checked against it. Compare by identity.
UNKNOWN_ARGS: Final[FormalArguments] = MappingProxyType({})


def format_formal_arguments(arguments: FormalArguments, separator: str = ", ") -> str:
    """Render a parameter list as ``a, b=\"x\"`` for listings and declarators."""
    return separator.join(str(arg) for arg in arguments.values())
