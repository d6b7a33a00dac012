"""Indentation and width aware output writers.

Templates never write to a stream directly. Every chunk goes through a
``TemplateWriter``, which tracks the indentation stack pushed by nested
expressions, the anchor columns recorded by ``anchor`` options and, when a
line width is configured, decides where wrapped values break.

Example:
    >>> writer = AutoIndentWriter(line_width=3)
    >>> for ch in "abcde":
    ...     _ = writer.write(ch, "\\n")
    >>> writer.getvalue()
    'abc\\nde'
"""

import io
from typing import Protocol, Self, TextIO, runtime_checkable

__all__ = [
    "AutoIndentWriter",
    "NoIndentWriter",
    "TemplateWriter",
]


@runtime_checkable
class TemplateWriter(Protocol):
    """Output sink used by templates while rendering.

    Every write returns the number of characters emitted, including
    indentation, so callers can tell an empty expression from one that
    produced text.
    """

    line_width: int | None

    def push_indentation(self, indent: str | None) -> None: ...

    def pop_indentation(self) -> str | None: ...

    def push_anchor_point(self) -> None: ...

    def pop_anchor_point(self) -> None: ...

    def write(self, text: str, wrap: str | None = None) -> int: ...

    def write_wrap(self, wrap: str) -> int: ...

    def write_separator(self, text: str) -> int: ...

    def fork(self) -> "TemplateWriter": ...

    def getvalue(self) -> str: ...


class AutoIndentWriter:
    """Writer that re-applies the indentation stack after every newline.

    Indentation strings are pushed and popped by expressions as they render.
    ``None`` entries still occupy a slot so that push and pop stay balanced.
    The indentation is written lazily: a newline only marks the writer as
    being at the start of a line, and the next non-newline character triggers
    the concatenation of all non-``None`` entries.

    When ``line_width`` is set, values written with a wrap string break onto a
    new line once the current column reaches the width. Continuation lines
    are indented to the innermost anchor column when it lies beyond the
    ambient indentation.

    Attributes:
        out: Text stream receiving the output.
        newline: Newline sequence emitted for every ``\\n``, ``\\r\\n`` or ``\\r``.
        line_width: Maximum line width, or None to disable wrapping.
        char_position: Column of the next character on the current line.
        at_start_of_line: True until a non-newline character is written.
    """

    def __init__(
        self,
        out: TextIO | None = None,
        *,
        newline: str = "\n",
        line_width: int | None = None,
    ) -> None:
        self.out: TextIO = out if out is not None else io.StringIO()
        self.newline: str = newline
        self.line_width: int | None = line_width
        self.indents: list[str | None] = [None]
        self.anchors: list[int] = []
        self.char_position: int = 0
        self.at_start_of_line: bool = True

    def push_indentation(self, indent: str | None) -> None:
        self.indents.append(indent)

    def pop_indentation(self) -> str | None:
        return self.indents.pop()

    def push_anchor_point(self) -> None:
        """Remember the current column as the wrap column for nested output."""
        self.anchors.append(self.char_position)

    def pop_anchor_point(self) -> None:
        self.anchors.pop()

    def write(self, text: str, wrap: str | None = None) -> int:
        """Write text, indenting at the start of each line.

        Args:
            text: Text to emit. Any newline convention is normalized.
            wrap: Optional wrap string consulted before the text is written.

        Returns:
            Number of characters emitted, including indentation and any wrap.
        """
        # a unit that starts with a newline already breaks the line
        n = self.write_wrap(wrap) if wrap is not None and text[:1] not in ("\n", "\r") else 0
        i = 0
        length = len(text)
        while i < length:
            c = text[i]
            if c in "\r\n":
                if c == "\r" and i + 1 < length and text[i + 1] == "\n":
                    i += 1
                n += self._newline()
            else:
                if self.at_start_of_line:
                    n += self.indent()
                    self.at_start_of_line = False
                self.out.write(c)
                self.char_position += 1
                n += 1
            i += 1
        return n

    def write_separator(self, text: str) -> int:
        """Write a separator; separators never trigger a wrap."""
        return self.write(text)

    def write_wrap(self, wrap: str) -> int:
        """Emit ``wrap`` if the current line has reached the line width.

        Each newline inside ``wrap`` is followed by the current indentation
        (or the innermost anchor column, whichever is farther right); the
        other characters are written as they are.

        Args:
            wrap: The wrap string, usually ``"\\n"``.

        Returns:
            Number of characters emitted, zero when no wrap was needed.
        """
        if (
            self.line_width is None
            or self.at_start_of_line
            or self.char_position < self.line_width
        ):
            return 0
        n = 0
        i = 0
        length = len(wrap)
        while i < length:
            c = wrap[i]
            if c in "\r\n":
                if c == "\r" and i + 1 < length and wrap[i + 1] == "\n":
                    i += 1
                n += self._newline()
                n += self.indent()
                self.at_start_of_line = False
            else:
                self.out.write(c)
                self.char_position += 1
                n += 1
            i += 1
        return n

    def indent(self) -> int:
        """Write the indentation stack, then pad out to the innermost anchor."""
        n = 0
        for indent in self.indents:
            if indent:
                self.out.write(indent)
                n += len(indent)
        if self.anchors and self.anchors[-1] > n:
            remainder = self.anchors[-1] - n
            self.out.write(" " * remainder)
            n += remainder
        self.char_position += n
        return n

    def fork(self) -> Self:
        """Return an empty writer of the same kind over a new buffer."""
        return type(self)(newline=self.newline)

    def getvalue(self) -> str:
        """Return everything written so far when the target is a StringIO."""
        if isinstance(self.out, io.StringIO):
            return self.out.getvalue()
        msg = f"{type(self.out).__name__} does not buffer its output"
        raise TypeError(msg)

    def _newline(self) -> int:
        self.out.write(self.newline)
        self.at_start_of_line = True
        self.char_position = 0
        return len(self.newline)


class NoIndentWriter(AutoIndentWriter):
    """Writer that passes text straight through, ignoring indentation."""

    def write(self, text: str, wrap: str | None = None) -> int:  # noqa: ARG002
        self.out.write(text)
        return len(text)
