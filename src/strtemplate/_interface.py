"""Group interfaces: required template signatures a group can promise."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, override

from strtemplate._formal_args import UNKNOWN_ARGS
from strtemplate._group_parser import parse_interface
from strtemplate._listener import ErrorListener, LoggingErrorListener

if TYPE_CHECKING:
    from collections.abc import Sequence

    from strtemplate._group import TemplateGroup

__all__ = [
    "GroupInterface",
    "TemplateSignature",
]


@dataclass(frozen=True, slots=True)
class TemplateSignature:
    """One template required by an interface.

    Attributes:
        name: Template name.
        arguments: Formal argument names, in order.
        optional: True if a group may leave the template out.
    """

    name: str
    arguments: tuple[str, ...] = ()
    optional: bool = False

    @override
    def __str__(self) -> str:
        prefix = "optional " if self.optional else ""
        return f"{prefix}{self.name}({', '.join(self.arguments)})"


class GroupInterface:
    """A named set of template signatures.

    A group that implements an interface must define every non-optional
    template, and every template it defines must declare the same formal
    argument names. Default values are not compared.

    Interface source looks like::

        interface javaTarget;
        method(name, body);
        optional comment(text);
    """

    def __init__(self, name: str, *, error_listener: ErrorListener | None = None) -> None:
        self.name: str = name
        self.templates: dict[str, TemplateSignature] = {}
        self._listener: ErrorListener | None = error_listener

    @classmethod
    def from_source(
        cls, text: str, *, error_listener: ErrorListener | None = None
    ) -> "GroupInterface":
        """Parse interface source; syntax errors go to the error listener."""
        interface = cls("unnamed", error_listener=error_listener)
        parse_interface(interface, text)
        return interface

    @property
    def error_listener(self) -> ErrorListener:
        if self._listener is None:
            self._listener = LoggingErrorListener()
        return self._listener

    def error(self, message: str, cause: BaseException | None = None) -> None:
        self.error_listener.error(message, cause)

    def define_template(
        self, name: str, arguments: "Sequence[str]" = (), *, optional: bool = False
    ) -> None:
        self.templates[name] = TemplateSignature(name, tuple(arguments), optional)

    def get_missing_templates(self, group: "TemplateGroup") -> list[str]:
        return [
            signature.name
            for signature in self.templates.values()
            if not signature.optional and not group.is_defined(signature.name)
        ]

    def get_mismatched_templates(self, group: "TemplateGroup") -> list[str]:
        """Return the signatures whose definitions in ``group`` differ."""
        mismatched: list[str] = []
        for signature in self.templates.values():
            if not group.is_defined(signature.name):
                continue
            defined = group.lookup_template(signature.name).formal_arguments
            if defined is UNKNOWN_ARGS:
                matches = not signature.arguments
            else:
                # same names and count; declaration order does not matter
                matches = len(defined) == len(signature.arguments) and all(
                    name in defined for name in signature.arguments
                )
            if not matches:
                mismatched.append(str(signature))
        return mismatched

    @override
    def __str__(self) -> str:
        lines = [f"interface {self.name};"]
        lines.extend(f"{signature};" for signature in self.templates.values())
        return "\n".join(lines) + "\n"
