"""Parsers for group source and interface source.

Group source::

    group NAME (: SUPER)? (implements IFACE (, IFACE)*)? ;
    name(arg, arg="default", arg={default template}) ::= "body"
    name() ::= <<
    multi-line body
    >>
    @name.region() ::= "region body"
    alias ::= name
    map ::= ["key":"value", "other":<<template>>, default:key]

Interface source::

    interface NAME;
    name(arg, arg);
    optional name();

``//`` and ``/* */`` comments may appear between definitions. Inside
``"..."`` a ``\\"`` stands for a quote; inside ``<<...>>`` a ``\\>`` stands
for ``>``, and one newline right after ``<<`` and one right before ``>>``
are dropped.
"""

import re
from typing import TYPE_CHECKING, Final, NamedTuple

from strtemplate._chunks import LiteralChunk
from strtemplate._template import RegionType, StringTemplate, mangle_region_name
from strtemplate._values import DEFAULT_KEY, KEY_VALUE
from strtemplate.exceptions import (
    RegionRedefinitionError,
    TemplateNotFoundError,
    TemplateSyntaxError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from strtemplate._group import TemplateGroup
    from strtemplate._interface import GroupInterface

__all__ = [
    "parse_group",
    "parse_interface",
]

_ID: Final = "ID"
_STRING: Final = "STRING"
_BIGSTRING: Final = "BIGSTRING"
_ANON: Final = "ANON"
_EOF: Final = "EOF"

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")
_PUNCTUATION: Final = frozenset("(),;:.@[]=")


class Token(NamedTuple):
    kind: str
    text: str
    line: int
    column: int


class _Source:
    """Character cursor that keeps track of line and column."""

    def __init__(self, text: str) -> None:
        self.text: str = text.replace("\r\n", "\n")
        self.pos: int = 0
        self.line: int = 1
        self.column: int = 1

    def peek(self, offset: int = 0) -> str:
        return self.text[self.pos + offset : self.pos + offset + 1]

    def startswith(self, prefix: str) -> bool:
        return self.text.startswith(prefix, self.pos)

    def advance(self, count: int = 1) -> str:
        consumed = self.text[self.pos : self.pos + count]
        for char in consumed:
            if char == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        self.pos += len(consumed)
        return consumed

    def error(
        self, message: str, line: int | None = None, column: int | None = None
    ) -> TemplateSyntaxError:
        line = self.line if line is None else line
        column = self.column if column is None else column
        return TemplateSyntaxError(f"line {line}:{column}: {message}", line=line, column=column)


def _tokenize(text: str) -> "Iterator[Token]":
    source = _Source(text)
    while True:
        _skip_blanks(source)
        line, column = source.line, source.column
        char = source.peek()
        if not char:
            yield Token(_EOF, "<EOF>", line, column)
            return
        if source.startswith("::="):
            yield Token("::=", source.advance(3), line, column)
        elif source.startswith("<<"):
            yield Token(_BIGSTRING, _scan_bigstring(source), line, column)
        elif char == '"':
            yield Token(_STRING, _scan_string(source), line, column)
        elif char == "{":
            yield Token(_ANON, _scan_anonymous(source), line, column)
        elif char in _PUNCTUATION:
            yield Token(char, source.advance(), line, column)
        elif (match := _IDENTIFIER.match(source.text, source.pos)) is not None:
            yield Token(_ID, source.advance(match.end() - match.start()), line, column)
        else:
            msg = f"unexpected char: '{char}'"
            raise source.error(msg)


def _skip_blanks(source: _Source) -> None:
    while True:
        if source.peek().isspace():
            _ = source.advance()
        elif source.startswith("//"):
            while source.peek() and source.peek() != "\n":
                _ = source.advance()
        elif source.startswith("/*"):
            line, column = source.line, source.column
            end = source.text.find("*/", source.pos + 2)
            if end < 0:
                msg = "unterminated comment"
                raise source.error(msg, line, column)
            _ = source.advance(end + 2 - source.pos)
        else:
            return


def _scan_string(source: _Source) -> str:
    line, column = source.line, source.column
    _ = source.advance()
    chars: list[str] = []
    while source.peek():
        if source.startswith('\\"'):
            chars.append('"')
            _ = source.advance(2)
        elif source.peek() == "\\":
            chars.append(source.advance(2))
        elif source.peek() == '"':
            _ = source.advance()
            return "".join(chars)
        else:
            chars.append(source.advance())
    msg = "unterminated string"
    raise source.error(msg, line, column)


def _scan_bigstring(source: _Source) -> str:
    line, column = source.line, source.column
    _ = source.advance(2)
    if source.peek() == "\n":
        _ = source.advance()
    chars: list[str] = []
    while source.peek():
        if source.startswith("\\>"):
            chars.append(">")
            _ = source.advance(2)
        elif source.startswith(">>"):
            _ = source.advance(2)
            body = "".join(chars)
            return body.removesuffix("\n")
        else:
            chars.append(source.advance())
    msg = "unterminated <<...>> template"
    raise source.error(msg, line, column)


def _scan_anonymous(source: _Source) -> str:
    line, column = source.line, source.column
    _ = source.advance()
    depth = 1
    chars: list[str] = []
    while source.peek():
        char = source.peek()
        if char == "\\" and source.peek(1) in {"{", "}"}:
            chars.append(source.advance(2))
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                _ = source.advance()
                return "".join(chars)
        chars.append(source.advance())
    msg = "unterminated anonymous template"
    raise source.error(msg, line, column)


class _Parser:
    """Token cursor shared by the group and interface parsers."""

    def __init__(self, text: str) -> None:
        self.tokens: list[Token] = list(_tokenize(text))
        self.pos: int = 0

    def peek(self, offset: int = 0) -> Token:
        return self.tokens[min(self.pos + offset, len(self.tokens) - 1)]

    def at(self, kind: str, offset: int = 0) -> bool:
        return self.peek(offset).kind == kind

    def at_keyword(self, keyword: str) -> bool:
        token = self.peek()
        return token.kind == _ID and token.text == keyword

    def accept(self, kind: str) -> Token | None:
        if self.at(kind):
            self.pos += 1
            return self.tokens[self.pos - 1]
        return None

    def expect(self, kind: str) -> Token:
        token = self.accept(kind)
        if token is None:
            named = kind in {_ID, _STRING, _BIGSTRING, _ANON}
            raise self.unexpected(kind if named else f"'{kind}'")
        return token

    def expect_keyword(self, keyword: str) -> Token:
        if not self.at_keyword(keyword):
            raise self.unexpected(f"'{keyword}'")
        return self.expect(_ID)

    def unexpected(self, expected: str) -> TemplateSyntaxError:
        found = self.peek()
        return TemplateSyntaxError(
            f"line {found.line}:{found.column}: expecting {expected}, found '{found.text}'",
            line=found.line,
            column=found.column,
        )


class _GroupParser(_Parser):
    def __init__(self, group: "TemplateGroup", text: str) -> None:
        super().__init__(text)
        self.group: TemplateGroup = group

    def parse(self) -> None:
        self.header()
        while not self.at(_EOF):
            start = self.pos
            try:
                self.definition()
            except TemplateSyntaxError as exc:
                self.group.error(f"template group parse error: {exc}", exc)
                self.recover(start)

    def recover(self, start: int) -> None:
        """Skip to the next token that can start a definition."""
        self.pos = max(self.pos, start + 1)
        while not self.at(_EOF):
            if self.at("@") or (self.at(_ID) and (self.at("(", 1) or self.at("::=", 1))):
                return
            self.pos += 1

    def header(self) -> None:
        _ = self.expect_keyword("group")
        self.group.name = self.expect(_ID).text
        while not self.at(";"):
            if self.accept(":"):
                self.group.set_super_group(self.expect(_ID).text)
            elif self.at_keyword("implements"):
                self.pos += 1
                self.group.implement_interface(self.expect(_ID).text)
                while self.accept(","):
                    self.group.implement_interface(self.expect(_ID).text)
            else:
                raise self.unexpected("';'")
        _ = self.expect(";")

    def definition(self) -> None:
        if self.at("@"):
            self.region_definition()
        else:
            name = self.expect(_ID)
            if self.at("("):
                self.template_definition(name)
            else:
                _ = self.expect("::=")
                if self.at("["):
                    self.map_definition(name.text)
                else:
                    _ = self.group.define_template_alias(name.text, self.expect(_ID).text)
        _ = self.accept(";")

    def template_body(self) -> str:
        _ = self.expect("::=")
        if self.at(_BIGSTRING):
            return self.expect(_BIGSTRING).text
        return self.expect(_STRING).text

    def template_definition(self, name: Token) -> None:
        group = self.group
        if group.is_defined_in_this_group(name.text):
            group.error(f"redefinition of template: {name.text}")
            template = StringTemplate(group=group, name=name.text)
        else:
            template = group.define_template(name.text)
        template.group_file_line = name.line

        _ = self.expect("(")
        if self.at(")"):
            template.define_empty_formal_arguments()
        else:
            self.formal_argument(template)
            while self.accept(","):
                self.formal_argument(template)
        _ = self.expect(")")
        template.set_template(self.template_body())

    def formal_argument(self, template: StringTemplate) -> None:
        name = self.expect(_ID).text
        default: StringTemplate | None = None
        if self.accept("="):
            label = f"<{template.name}'s arg {name} default value subtemplate>"
            if self.at(_ANON):
                default = StringTemplate(group=self.group, name=label)
                default.set_template(self.expect(_ANON).text)
            else:
                text = self.expect(_STRING).text
                default = StringTemplate(group=self.group, name=label)
                default.set_chunks([LiteralChunk(text)], pattern=text)
        template.define_formal_argument(name, default)

    def region_definition(self) -> None:
        group = self.group
        at = self.expect("@")
        scope = self.expect(_ID).text
        _ = self.expect(".")
        region = self.expect(_ID).text
        _ = self.expect("(")
        _ = self.expect(")")
        body = self.template_body()

        prefix = f"group {group.name} line {at.line}"
        if group.is_defined_in_this_group(mangle_region_name(scope, region)):
            message = f"{prefix}: redefinition of template region: @{scope}.{region}"
            group.error(message, RegionRedefinitionError(message, template=scope, region=region))
            return
        try:
            enclosing = group.lookup_template(scope)
        except TemplateNotFoundError:
            group.error(f"{prefix}: reference to region within undefined template: {scope}")
            return
        if region not in enclosing.regions:
            group.error(f"{prefix}: template {scope} has no region called {region}")
            return
        template = group.define_region_template(scope, region, body, RegionType.EXPLICIT)
        template.group_file_line = at.line

    def map_definition(self, name: str) -> None:
        _ = self.expect("[")
        mapping: dict[object, object] = {}
        if not self.at("]"):
            self.map_entry(mapping)
            while self.accept(","):
                self.map_entry(mapping)
        _ = self.expect("]")
        self.group.define_map(name, mapping)

    def map_entry(self, mapping: dict[object, object]) -> None:
        if self.at_keyword("default"):
            self.pos += 1
            key: object = DEFAULT_KEY
        else:
            key = self.expect(_STRING).text
        _ = self.expect(":")
        value: object = None
        if self.at(_STRING):
            value = self.expect(_STRING).text
        elif self.at(_BIGSTRING):
            value = StringTemplate(self.expect(_BIGSTRING).text, group=self.group)
        elif self.at_keyword("key"):
            self.pos += 1
            value = KEY_VALUE
        elif not (self.at(",") or self.at("]")):
            raise self.unexpected("map value")
        mapping[key] = value


class _InterfaceParser(_Parser):
    def __init__(self, interface: "GroupInterface", text: str) -> None:
        super().__init__(text)
        self.interface: GroupInterface = interface

    def parse(self) -> None:
        _ = self.expect_keyword("interface")
        self.interface.name = self.expect(_ID).text
        _ = self.expect(";")
        while not self.at(_EOF):
            optional = False
            if self.at_keyword("optional") and self.at(_ID, 1):
                self.pos += 1
                optional = True
            name = self.expect(_ID).text
            _ = self.expect("(")
            arguments: list[str] = []
            if not self.at(")"):
                arguments.append(self.expect(_ID).text)
                while self.accept(","):
                    arguments.append(self.expect(_ID).text)
            _ = self.expect(")")
            _ = self.expect(";")
            self.interface.define_template(name, arguments, optional=optional)


def parse_group(group: "TemplateGroup", text: str) -> None:
    """Populate ``group`` from group source; errors go to its listener."""
    try:
        _GroupParser(group, text).parse()
    except TemplateSyntaxError as exc:
        group.error(f"template group parse error: {exc}", exc)


def parse_interface(interface: "GroupInterface", text: str) -> None:
    """Populate ``interface`` from interface source; errors go to its listener."""
    try:
        _InterfaceParser(interface, text).parse()
    except TemplateSyntaxError as exc:
        interface.error(f"interface parse error: {exc}", exc)
