"""Template compiler: splits template text into literal and action chunks.

Two delimiter styles are supported, ``<name>`` and ``$name$``. The scanner
produces a flat token stream (literal text, newlines, actions and the
``if``/``elseif``/``else``/``endif`` tags); the builder then folds the
conditional tags into ``ConditionalExpr`` chunks whose branches are
subtemplates of the template being compiled.

Whitespace rules:

* spaces and tabs that start a line and are directly followed by an action
  become that action's indentation rather than literal text;
* a newline right after an ``if``, ``elseif`` or ``else`` tag is dropped, as
  is the newline right before ``elseif``, ``else`` and ``endif``;
* a newline right after ``endif`` is dropped only when the tag starts a line;
* a comment that fills a whole line takes its newline with it.
"""

import bisect
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from strtemplate._action import parse_action, parse_condition
from strtemplate._chunks import Chunk, LiteralChunk, NewlineChunk
from strtemplate._config import Delimiters
from strtemplate._expr import ASTExpr, ConditionalExpr
from strtemplate._template import (
    RegionType,
    StringTemplate,
    is_mangled_region_name,
    mangle_region_name,
    unmangle_region_name,
)
from strtemplate.exceptions import TemplateNotFoundError, TemplateSyntaxError

__all__ = [
    "compile_template",
]

_LITERAL: Final = "literal"
_NEWLINE: Final = "newline"
_ACTION: Final = "action"
_IF: Final = "if"
_ELSEIF: Final = "elseif"
_ELSE: Final = "else"
_ENDIF: Final = "endif"

_CLOSES_BLOCK: Final = frozenset({_ELSEIF, _ELSE, _ENDIF})

_IF_TAG = re.compile(r"(if|elseif) *\((.*)\)", re.DOTALL)
_CHAR_ACTION = re.compile(r"(?:\\[nrt ])+")
_CHAR_ESCAPES: Final = {"n": "\n", "r": "\r", "t": "\t", " ": " "}
_REGION_REF = re.compile(r"@(super\.)?(\w+)\(\)")
_REGION_DEF = re.compile(r"@(\w+)")
_CONTINUATION: Final = "\\\\"


@dataclass(slots=True)
class _Token:
    kind: str
    text: str = ""
    index: int = 0
    indent: str | None = None


class _Scanner:
    """Turns template text into a token stream."""

    def __init__(self, template: StringTemplate, text: str) -> None:
        self.template: StringTemplate = template
        self.text: str = text
        if template.effective_delimiters == Delimiters.DOLLAR:
            self.start, self.stop = "$", "$"
            self.escapable: frozenset[str] = frozenset("$")
        else:
            self.start, self.stop = "<", ">"
            self.escapable = frozenset("<>")
        self.line_starts: list[int] = [0]
        self.line_starts.extend(m.end() for m in re.finditer("\n", text))
        self.tokens: list[_Token] = []
        self.buffer: list[str] = []
        self.pos: int = 0

    # -- positions ------------------------------------------------------------

    def location(self, index: int) -> tuple[int, int]:
        """Return the 1-based ``(line, column)`` of ``index``."""
        line = bisect.bisect_right(self.line_starts, index)
        return line, index - self.line_starts[line - 1] + 1

    def error(self, message: str, index: int) -> TemplateSyntaxError:
        line, column = self.location(index)
        return TemplateSyntaxError(
            f"line {line}:{column}: {message}",
            line=line,
            column=column,
            source_name=self.template.name,
        )

    def line_start(self, index: int) -> int:
        return self.line_starts[bisect.bisect_right(self.line_starts, index) - 1]

    # -- token stream ---------------------------------------------------------

    def flush(self) -> None:
        if self.buffer:
            self.tokens.append(_Token(_LITERAL, "".join(self.buffer)))
            self.buffer.clear()

    def emit(self, kind: str, text: str = "", index: int = 0, indent: str | None = None) -> None:
        self.flush()
        self.tokens.append(_Token(kind, text, index, indent))

    def skip_newline(self) -> None:
        if self.text.startswith("\n", self.pos):
            self.pos += 1

    def scan(self) -> list[_Token]:
        text = self.text
        while self.pos < len(text):
            char = text[self.pos]
            if char == "\n":
                self.emit(_NEWLINE)
                self.pos += 1
            elif char == "\\" and text[self.pos + 1 : self.pos + 2] in self.escapable:
                self.buffer.append(text[self.pos + 1])
                self.pos += 2
            elif char == self.start:
                self.scan_tag()
            else:
                self.buffer.append(char)
                self.pos += 1
        self.flush()
        return self.tokens

    def scan_tag(self) -> None:
        begin = self.pos
        prefix = self.text[self.line_start(begin) : begin]
        at_line_start = prefix.strip(" \t") == ""
        indent = prefix if prefix and at_line_start else None
        if indent is not None:
            # the buffer holds exactly the leading whitespace of this line
            self.buffer.clear()

        if self.text.startswith(self.start + "!", begin):
            self.scan_comment(begin, indent, at_line_start=at_line_start)
            return

        end = self.find_tag_end(begin + len(self.start))
        body = self.text[begin + len(self.start) : end]
        self.pos = end + len(self.stop)

        if _CHAR_ACTION.fullmatch(body):
            self.buffer.extend(indent or "")
            self.buffer.extend(_CHAR_ESCAPES[c] for c in body[1::2])
        elif body == _CONTINUATION:
            self.buffer.extend(indent or "")
            self.skip_continuation()
        elif body in {_ELSE, _ENDIF}:
            self.emit(body, index=begin)
            if body == _ELSE or (at_line_start and indent is None):
                self.skip_newline()
        elif (match := _IF_TAG.fullmatch(body)) is not None:
            kind, condition = match.groups()
            if kind == _IF and not self.text.startswith("\n", self.pos):
                self.emit(_IF, condition, begin + len(self.start) + match.start(2), indent)
            else:
                self.emit(kind, condition, begin + len(self.start) + match.start(2))
            self.skip_newline()
        elif body.startswith("@"):
            self.scan_region(body, begin, indent)
        else:
            self.emit(_ACTION, body, begin + len(self.start), indent)

    def find_tag_end(self, index: int) -> int:
        """Return the index of the delimiter closing the tag opened before ``index``."""
        text = self.text
        depth = 0
        while index < len(text):
            char = text[index]
            if char == "\\":
                index += 2
                continue
            if char == '"' and depth == 0:
                index = self.skip_string(index + 1)
                continue
            if char == "{":
                depth += 1
            elif char == "}" and depth > 0:
                depth -= 1
            elif depth == 0 and text.startswith(self.stop, index):
                return index
            index += 1
        raise self.error(f"expecting '{self.stop}', found '<EOF>'", len(text))

    def skip_string(self, index: int) -> int:
        text = self.text
        while index < len(text):
            if text[index] == "\\":
                index += 2
            elif text[index] == '"':
                return index + 1
            else:
                index += 1
        return index

    def scan_comment(self, begin: int, indent: str | None, *, at_line_start: bool) -> None:
        close = "!" + self.stop
        end = self.text.find(close, begin + len(self.start) + 1)
        if end < 0:
            raise self.error(f"expecting '{close}', found '<EOF>'", len(self.text))
        self.pos = end + len(close)
        whole_line = at_line_start and self.text.startswith("\n", self.pos)
        if whole_line:
            self.skip_newline()
        elif indent is not None:
            self.buffer.append(indent)

    def skip_continuation(self) -> None:
        text = self.text
        while text[self.pos : self.pos + 1] in {" ", "\t"}:
            self.pos += 1
        self.skip_newline()
        while text[self.pos : self.pos + 1] in {" ", "\t"}:
            self.pos += 1

    # -- regions --------------------------------------------------------------

    def scan_region(self, body: str, begin: int, indent: str | None) -> None:
        template = self.template
        group = template.group
        if (match := _REGION_REF.fullmatch(body)) is not None:
            is_super, region = match.groups()
            if is_super:
                enclosing = template.outermost_name
                if is_mangled_region_name(enclosing):
                    enclosing = unmangle_region_name(enclosing)
                try:
                    enclosing_template = group.lookup_template(enclosing)
                except TemplateNotFoundError:
                    enclosing_template = None
                if enclosing_template is None or region not in enclosing_template.regions:
                    template.error(f"template {enclosing} has no region called {region}")
                    return
                reference = "super." + mangle_region_name(enclosing, region)
            else:
                enclosing = template.outermost_name
                reference = group.define_implicit_region_template(enclosing, region).name
                _outermost(template).regions.add(region)
            self.emit(_ACTION, f"{reference}()", begin + len(self.start), indent)
            return

        if (match := _REGION_DEF.fullmatch(body)) is None or body == "@end":
            raise self.error(f"invalid region tag: {body}", begin)
        region = match.group(1)
        end_tag = f"{self.start}@end{self.stop}"
        end = self.text.find(end_tag, self.pos)
        if end < 0:
            template.error(f"missing region {region} {end_tag} tag")
            return
        content = self.text[self.pos : end]
        content = content.removeprefix("\n").removesuffix("\n")
        self.pos = end + len(end_tag)
        self.skip_newline()

        enclosing = template.outermost_name
        defined = group.define_region_template(
            enclosing, region, content, RegionType.EMBEDDED
        )
        _outermost(template).regions.add(region)
        self.emit(_ACTION, f"{defined.name}()", begin + len(self.start), indent)


def _outermost(template: StringTemplate) -> StringTemplate:
    while template.enclosing_instance is not None:
        template = template.enclosing_instance
    return template


@dataclass(slots=True)
class _Block:
    """An ``if`` block whose branches are still being collected."""

    conditional: ConditionalExpr
    subtemplate: StringTemplate
    chunks: list[Chunk]
    outer: list[Chunk]
    seen_else: bool = False


def _subtemplate(owner: StringTemplate, name: str) -> StringTemplate:
    subtemplate = StringTemplate(group=owner.group, name=name, delimiters=owner.delimiters)
    subtemplate.native_group = owner.native_group
    subtemplate.enclosing_instance = owner
    return subtemplate


def _build(scanner: _Scanner, tokens: list[_Token]) -> list[Chunk]:
    template = scanner.template
    chunks: list[Chunk] = []
    blocks: list[_Block] = []

    def parse(token: _Token, parser: Callable[[str, StringTemplate], ASTExpr]) -> ASTExpr:
        try:
            return parser(token.text, template)
        except TemplateSyntaxError as exc:
            offset = (exc.column or 1) - 1
            raise scanner.error(str(exc), token.index + offset) from exc

    for position, token in enumerate(tokens):
        kind = token.kind
        if kind == _LITERAL:
            chunks.append(LiteralChunk(token.text))
        elif kind == _NEWLINE:
            following = tokens[position + 1].kind if position + 1 < len(tokens) else None
            if following not in _CLOSES_BLOCK:
                chunks.append(NewlineChunk())
        elif kind == _ACTION:
            chunk = parse(token, parse_action)
            chunk.indentation = token.indent
            chunks.append(chunk)
        elif kind == _IF:
            condition = parse(token, parse_condition)
            subtemplate = _subtemplate(template, f"if({token.text}) subtemplate")
            conditional = ConditionalExpr(condition, subtemplate)
            conditional.indentation = token.indent
            chunks.append(conditional)
            blocks.append(_Block(conditional, subtemplate, [], chunks))
            chunks = blocks[-1].chunks
        else:
            if not blocks or (kind != _ENDIF and blocks[-1].seen_else):
                raise scanner.error(f"unexpected {kind}", token.index)
            block = blocks[-1]
            block.subtemplate.set_chunks(block.chunks)
            if kind == _ENDIF:
                chunks = blocks.pop().outer
                continue
            if kind == _ELSEIF:
                condition = parse(token, parse_condition)
                block.subtemplate = _subtemplate(template, f"elseif({token.text}) subtemplate")
                block.conditional.add_elseif(condition, block.subtemplate)
            else:
                block.subtemplate = _subtemplate(template, "else subtemplate")
                block.conditional.set_else(block.subtemplate)
                block.seen_else = True
            block.chunks = []
            chunks = block.chunks

    if blocks:
        raise scanner.error("expecting 'endif', found '<EOF>'", len(scanner.text))
    return chunks


def compile_template(template: StringTemplate, text: str) -> list[Chunk]:
    """Compile ``text`` into the chunk list of ``template``.

    Region tags define region templates in the template's group as a side
    effect.

    Raises:
        TemplateSyntaxError: If the text is malformed. The message starts
            with ``line L:C:``.
    """
    text = text.replace("\r\n", "\n")
    scanner = _Scanner(template, text)
    return _build(scanner, scanner.scan())
