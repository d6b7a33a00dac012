"""Parser for the expression language inside ``<...>`` actions.

The grammar, informally::

    action       := templates (';' option (',' option)*)?
    templates    := expr (',' expr)+ ':' ANON          parallel application
                  | expr (':' ref (',' ref)*)*         (alternating) application
    nonalt       := expr (':' ref)*
    expr         := primary ('+' primary)*
    primary      := ID '(' args ')' | 'super' '.' ID '(' args ')'
                  | FUNC '(' nonalt ')' postfix
                  | '(' templates ')' '(' args ')'     indirect include
                  | '(' templates ')' postfix          value expression
                  | (ID | STRING | INT) postfix | ANON | '[' nonalt? (',' nonalt?)* ']'
    postfix      := ('.' (ID | '(' templates ')'))*
    ref          := ID '(' args ')' | 'super' '.' ID '(' args ')'
                  | '(' templates ')' '(' args ')' | ANON
    args         := nothing | nonalt | (ID '=' nonalt | '...') (',' ...)*

``ANON`` is an anonymous template ``{args | body}``, compiled as a
subtemplate of the template that owns the action.
"""

import re
from typing import TYPE_CHECKING, Final, NamedTuple

from strtemplate._expr import (
    FUNCTIONS,
    AnonymousTemplate,
    AnonymousTemplateRef,
    Apply,
    ArgumentList,
    ASTExpr,
    AttributeRef,
    Concat,
    Constant,
    Expression,
    FunctionCall,
    Include,
    IndirectInclude,
    IndirectTemplateRef,
    ListLiteral,
    NamedTemplateRef,
    Not,
    ParallelApply,
    PropertyRef,
    TemplateRef,
    ValueExpression,
)
from strtemplate._template import ANONYMOUS_NAME, StringTemplate
from strtemplate.exceptions import TemplateSyntaxError

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = [
    "OPTIONS",
    "parse_action",
    "parse_condition",
]

OPTIONS: Final = frozenset({"separator", "null", "format", "wrap", "anchor"})

_ID: Final = "ID"
_INT: Final = "INT"
_STRING: Final = "STRING"
_ANON: Final = "ANON"
_EOF: Final = "<EOF>"

_PUNCTUATION: Final = {
    "...": "...",
    "(": "(",
    ")": ")",
    "[": "[",
    "]": "]",
    ",": ",",
    ".": ".",
    ":": ":",
    ";": ";",
    "=": "=",
    "+": "+",
    "!": "!",
}

_SIMPLE_TOKEN = re.compile(
    r"(?P<ws>\s+)|(?P<id>[A-Za-z_][\w/]*)|(?P<int>\d+)|(?P<punct>\.\.\.|[()\[\],.:;=+!])"
)

_ANONYMOUS_ARGS = re.compile(r"\s*([A-Za-z_]\w*(?:\s*,\s*[A-Za-z_]\w*)*)\s*\|")

_STRING_ESCAPES: Final = {'"': '"', "\\": "\\", "n": "\n", "r": "\r", "t": "\t"}


class Token(NamedTuple):
    kind: str
    text: str
    column: int


def _tokenize(text: str) -> "Iterator[Token]":
    i = 0
    length = len(text)
    while i < length:
        c = text[i]
        if c == '"':
            start = i
            i, value = _scan_string(text, i)
            yield Token(_STRING, value, start)
            continue
        if c == "{":
            start = i
            i, value = _scan_anonymous_template(text, i)
            yield Token(_ANON, value, start)
            continue
        match = _SIMPLE_TOKEN.match(text, i)
        if match is None:
            msg = f"unexpected char: '{c}'"
            raise TemplateSyntaxError(msg, column=i + 1)
        if match.lastgroup == "id":
            yield Token(_ID, match.group(), i)
        elif match.lastgroup == "int":
            yield Token(_INT, match.group(), i)
        elif match.lastgroup == "punct":
            yield Token(_PUNCTUATION[match.group()], match.group(), i)
        i = match.end()
    yield Token(_EOF, _EOF, length)


def _scan_string(text: str, start: int) -> tuple[int, str]:
    chars: list[str] = []
    i = start + 1
    length = len(text)
    while i < length:
        c = text[i]
        if c == '"':
            return i + 1, "".join(chars)
        if c == "\\" and i + 1 < length:
            nxt = text[i + 1]
            chars.append(_STRING_ESCAPES.get(nxt, c + nxt))
            i += 2
            continue
        chars.append(c)
        i += 1
    msg = "unterminated string literal"
    raise TemplateSyntaxError(msg, column=start + 1)


def _scan_anonymous_template(text: str, start: int) -> tuple[int, str]:
    chars: list[str] = []
    depth = 0
    i = start
    length = len(text)
    while i < length:
        c = text[i]
        if c == "\\" and i + 1 < length and text[i + 1] in "{}":
            chars.append(text[i + 1])
            i += 2
            continue
        if c == "{":
            depth += 1
            if depth == 1:
                i += 1
                continue
        elif c == "}":
            depth -= 1
            if depth == 0:
                return i + 1, "".join(chars)
        chars.append(c)
        i += 1
    msg = "unterminated anonymous template"
    raise TemplateSyntaxError(msg, column=start + 1)


class _Parser:
    def __init__(self, text: str, owner: StringTemplate) -> None:
        self.text: str = text
        self.owner: StringTemplate = owner
        self.tokens: list[Token] = list(_tokenize(text))
        self.pos: int = 0

    # -- token helpers --------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _at(self, kind: str, offset: int = 0) -> bool:
        return self._peek(offset).kind == kind

    def _accept(self, kind: str) -> Token | None:
        if self._at(kind):
            token = self.tokens[self.pos]
            self.pos += 1
            return token
        return None

    def _expect(self, kind: str) -> Token:
        token = self._accept(kind)
        if token is None:
            found = self._peek()
            msg = f"expecting {_describe(kind)}, found '{found.text}'"
            raise TemplateSyntaxError(msg, column=found.column + 1)
        return token

    def _fail(self, message: str) -> TemplateSyntaxError:
        return TemplateSyntaxError(message, column=self._peek().column + 1)

    # -- rules ----------------------------------------------------------------

    def action(self) -> ASTExpr:
        expression = self.templates()
        options: dict[str, Expression | None] = {}
        if self._accept(";"):
            while True:
                name = self._expect(_ID).text
                if name not in OPTIONS:
                    msg = f"no such option: {name}"
                    raise self._fail(msg)
                if self._accept("="):
                    options[name] = self.nonalternating()
                elif name == "wrap":
                    options[name] = Constant("\n")
                elif name == "anchor":
                    options[name] = None
                else:
                    msg = f"option {name} requires a value"
                    raise self._fail(msg)
                if not self._accept(","):
                    break
        _ = self._expect(_EOF)
        return ASTExpr(expression, options, source=self.text)

    def condition(self) -> ASTExpr:
        if self._accept("!"):
            expression: Expression = Not(self.templates())
        else:
            expression = self.templates()
        _ = self._expect(_EOF)
        return ASTExpr(expression, source=self.text)

    def templates(self) -> Expression:
        expression = self.expr()
        if self._at(","):
            targets = [expression]
            while self._accept(","):
                targets.append(self.expr())
            _ = self._expect(":")
            token = self._expect(_ANON)
            return ParallelApply(tuple(targets), AnonymousTemplateRef(self._subtemplate(token)))
        while self._accept(":"):
            refs = [self.template_ref()]
            while self._accept(","):
                refs.append(self.template_ref())
            expression = Apply(expression, tuple(refs))
        return expression

    def nonalternating(self) -> Expression:
        expression = self.expr()
        while self._accept(":"):
            expression = Apply(expression, (self.template_ref(),))
        return expression

    def expr(self) -> Expression:
        expression = self.primary()
        while self._accept("+"):
            expression = Concat(expression, self.primary())
        return expression

    def primary(self) -> Expression:
        token = self._peek()
        if token.kind == _ID:
            if token.text == "super" and self._at(".", 1):
                return Include(self._super_name(), self.arguments())
            if self._at("(", 1):
                self.pos += 1
                if token.text in FUNCTIONS:
                    _ = self._expect("(")
                    argument = self.nonalternating()
                    _ = self._expect(")")
                    return self.postfix(FunctionCall(token.text, argument))
                return Include(token.text, self.arguments())
            self.pos += 1
            return self.postfix(AttributeRef(token.text))
        if token.kind == _STRING:
            self.pos += 1
            return self.postfix(Constant(token.text))
        if token.kind == _INT:
            self.pos += 1
            return self.postfix(Constant(int(token.text)))
        if token.kind == _ANON:
            self.pos += 1
            return AnonymousTemplate(self._subtemplate(token))
        if token.kind == "[":
            return self.list_literal()
        if token.kind == "(":
            self.pos += 1
            inner = self.templates()
            _ = self._expect(")")
            if self._at("("):
                return IndirectInclude(inner, self.arguments())
            return self.postfix(ValueExpression(inner))
        msg = f"unexpected token: '{token.text}'"
        raise self._fail(msg)

    def postfix(self, expression: Expression) -> Expression:
        while self._accept("."):
            if (name := self._accept(_ID)) is not None:
                expression = PropertyRef(expression, name=name.text)
            else:
                _ = self._expect("(")
                key = self.templates()
                _ = self._expect(")")
                expression = PropertyRef(expression, key=key)
        return expression

    def list_literal(self) -> Expression:
        _ = self._expect("[")
        elements: list[Expression] = []
        while not self._at("]"):
            if self._at(","):
                self.pos += 1  # empty element
                continue
            elements.append(self.nonalternating())
            if not self._accept(","):
                break
        _ = self._expect("]")
        return ListLiteral(tuple(elements))

    def template_ref(self) -> TemplateRef:
        token = self._peek()
        if token.kind == _ANON:
            self.pos += 1
            return AnonymousTemplateRef(self._subtemplate(token))
        if token.kind == _ID:
            if token.text == "super" and self._at(".", 1):
                return NamedTemplateRef(self._super_name(), self.arguments())
            self.pos += 1
            return NamedTemplateRef(token.text, self.arguments())
        if token.kind == "(":
            self.pos += 1
            name = self.templates()
            _ = self._expect(")")
            return IndirectTemplateRef(name, self.arguments())
        msg = f"expecting template, found '{token.text}'"
        raise self._fail(msg)

    def arguments(self) -> ArgumentList:
        _ = self._expect("(")
        if self._accept(")"):
            return ArgumentList()
        if not (self._at("...") or (self._at(_ID) and self._at("=", 1))):
            positional = self.nonalternating()
            _ = self._expect(")")
            return ArgumentList(positional=positional)
        assignments: list[tuple[str, Expression]] = []
        pass_through = False
        while True:
            if self._accept("..."):
                pass_through = True
            else:
                name = self._expect(_ID).text
                _ = self._expect("=")
                assignments.append((name, self.nonalternating()))
            if not self._accept(","):
                break
        _ = self._expect(")")
        return ArgumentList(tuple(assignments), pass_through=pass_through)

    def _super_name(self) -> str:
        self.pos += 2
        return "super." + self._expect(_ID).text

    def _subtemplate(self, token: Token) -> StringTemplate:
        owner = self.owner
        subtemplate = StringTemplate(
            group=owner.group, name=ANONYMOUS_NAME, delimiters=owner.delimiters
        )
        subtemplate.native_group = owner.native_group
        subtemplate.enclosing_instance = owner
        body = token.text
        match = _ANONYMOUS_ARGS.match(body)
        if match is not None:
            for name in match.group(1).split(","):
                subtemplate.define_formal_argument(name.strip())
            body = _drop_leading_blank(body[match.end() :])
        subtemplate.set_template(body)
        return subtemplate


def _drop_leading_blank(body: str) -> str:
    if body.startswith("\r\n"):
        return body[2:]
    if body[:1] in {" ", "\t", "\n", "\r"}:
        return body[1:]
    return body


def _describe(kind: str) -> str:
    if kind in {_ID, _INT, _STRING, _ANON}:
        return kind
    return f"'{kind}'"


def parse_action(text: str, owner: StringTemplate) -> ASTExpr:
    """Parse the body of an action such as ``names:bold(); separator=", "``.

    Raises:
        TemplateSyntaxError: If the action is malformed; ``column`` is
            relative to the start of ``text``.
    """
    return _Parser(text, owner).action()


def parse_condition(text: str, owner: StringTemplate) -> ASTExpr:
    """Parse the parenthesized condition of an ``if`` or ``elseif`` tag."""
    return _Parser(text, owner).condition()
