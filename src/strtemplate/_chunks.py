"""Chunk contract shared by the compiler and the render loop.

A compiled template body is a list of chunks. Each chunk writes itself
through a ``TemplateWriter`` in the context of the template being rendered
and returns the number of characters it emitted, or ``MISSING`` when it had
nothing to emit at all (a false conditional, a null attribute). The render
loop uses the difference to collapse lines left blank by empty expressions.
"""

from typing import TYPE_CHECKING, Final, override

if TYPE_CHECKING:
    from strtemplate._template import StringTemplate
    from strtemplate._writer import TemplateWriter

__all__ = [
    "MISSING",
    "Chunk",
    "LiteralChunk",
    "NewlineChunk",
]

MISSING: Final = -1


class Chunk:
    """Base class for compiled template pieces.

    Attributes:
        indentation: Whitespace that preceded the chunk at the start of its
            line, pushed on the writer while the chunk renders.
        is_conditional: True for ``if`` blocks, which may produce nothing.
        is_inline_value: True for an action whose value a default argument
            takes directly instead of rendering it as a nested template.
    """

    __slots__ = ("indentation",)

    is_conditional: bool = False
    is_inline_value: bool = False

    def __init__(self, indentation: str | None = None) -> None:
        self.indentation: str | None = indentation

    def write(self, template: "StringTemplate", writer: "TemplateWriter") -> int:
        raise NotImplementedError


class LiteralChunk(Chunk):
    """Literal template text."""

    __slots__ = ("text",)

    def __init__(self, text: str) -> None:
        super().__init__()
        self.text: str = text

    @override
    def write(self, template: "StringTemplate", writer: "TemplateWriter") -> int:
        return writer.write(self.text)

    @override
    def __str__(self) -> str:
        return self.text

    @override
    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.text!r})"


class NewlineChunk(LiteralChunk):
    """A newline from the template source, tracked for blank-line collapsing."""

    __slots__ = ()

    def __init__(self) -> None:
        super().__init__("\n")
