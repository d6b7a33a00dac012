"""Expression chunks and the expression tree they evaluate.

``ASTExpr`` is the chunk for a ``<...>`` action: it evaluates its expression
tree in the context of the template being rendered, then writes the value
with the action's options (``separator``, ``null``, ``format``, ``wrap`` and
``anchor``). ``ConditionalExpr`` is the chunk for an ``if`` block.

Expression nodes are small immutable objects with an
``evaluate(template, chunk)`` method. ``chunk`` is the action being written,
which lets value expressions and applications reuse its options and report
errors against it.
"""

from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, override

from strtemplate._chunks import MISSING, Chunk
from strtemplate._formal_args import UNKNOWN_ARGS
from strtemplate._template import ANONYMOUS_NAME, StringTemplate
from strtemplate._values import (
    DEFAULT_KEY,
    KEY_VALUE,
    Aggregate,
    AttributeList,
    PropertyProvider,
    first,
    is_multi_valued,
    is_true,
    iterate,
    last,
    length,
    rest,
    strip,
    trunc,
)
from strtemplate.exceptions import (
    ArityMismatchError,
    UnknownAttributeError,
)

if TYPE_CHECKING:
    from strtemplate._writer import TemplateWriter

__all__ = [
    "FUNCTIONS",
    "ASTExpr",
    "AnonymousTemplate",
    "AnonymousTemplateRef",
    "Apply",
    "ArgumentList",
    "AttributeRef",
    "Concat",
    "ConditionalExpr",
    "Constant",
    "Expression",
    "FunctionCall",
    "Include",
    "IndirectInclude",
    "IndirectTemplateRef",
    "ListLiteral",
    "NamedTemplateRef",
    "Not",
    "ParallelApply",
    "PropertyRef",
    "TemplateRef",
    "ValueExpression",
    "WriteOptions",
]

IT: Final = "it"
ATTR: Final = "attr"
INDEX: Final = "i"
INDEX0: Final = "i0"

FUNCTIONS: Final[Mapping[str, Callable[[Any], Any]]] = {  # pyright: ignore[reportExplicitAny]
    "first": first,
    "rest": rest,
    "last": last,
    "length": length,
    "strip": strip,
    "trunc": trunc,
}


# =============================================================================
# Expression tree
# =============================================================================


class Expression:
    """Base class for nodes of an action's expression tree."""

    __slots__ = ()

    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class Constant(Expression):
    """A string or integer literal."""

    value: str | int

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        return self.value

    @override
    def __str__(self) -> str:
        return repr(self.value) if isinstance(self.value, str) else str(self.value)


@dataclass(frozen=True, slots=True)
class AttributeRef(Expression):
    name: str

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        return template.get_attribute(self.name)

    @override
    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class PropertyRef(Expression):
    """``target.name`` or the computed form ``target.(key)``."""

    target: Expression
    name: str | None = None
    key: Expression | None = None

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        obj = self.target.evaluate(template, chunk)
        if obj is None:
            return None
        if self.key is not None:
            key = self.key.evaluate(template, chunk)
            if key is None:
                return None
            if isinstance(key, StringTemplate):
                key = render_to_text(template, key)
        else:
            key = self.name
        return get_object_property(template, obj, key)

    @override
    def __str__(self) -> str:
        if self.key is not None:
            return f"{self.target}.({self.key})"
        return f"{self.target}.{self.name}"


@dataclass(frozen=True, slots=True)
class Concat(Expression):
    """``a + b``; a missing operand yields the other operand."""

    left: Expression
    right: Expression

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        left = self.left.evaluate(template, chunk)
        right = self.right.evaluate(template, chunk)
        if left is None:
            return right
        if right is None:
            return left
        return render_to_text(template, left) + render_to_text(template, right)

    @override
    def __str__(self) -> str:
        return f"{self.left}+{self.right}"


@dataclass(frozen=True, slots=True)
class ListLiteral(Expression):
    """``[a, b, ...]``: concatenates its elements, flattening multi-valued ones."""

    elements: tuple[Expression, ...]

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        result = AttributeList()
        for element in self.elements:
            value = element.evaluate(template, chunk)
            if value is None:
                continue
            if is_multi_valued(value):
                result.extend(iterate(value))
            else:
                result.append(value)
        return result

    @override
    def __str__(self) -> str:
        return "[" + ",".join(str(element) for element in self.elements) + "]"


@dataclass(frozen=True, slots=True)
class ValueExpression(Expression):
    """``(expr)``: evaluates eagerly to text written with the action's options."""

    inner: Expression

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        value = self.inner.evaluate(template, chunk)
        writer = template.group.create_writer()
        n = chunk.write_attribute(template, value, writer, chunk.evaluate_options(template))
        if n > 0:
            return writer.getvalue()
        return None

    @override
    def __str__(self) -> str:
        return f"({self.inner})"


@dataclass(frozen=True, slots=True)
class FunctionCall(Expression):
    name: str
    argument: Expression

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        value = self.argument.evaluate(template, chunk)
        if value is None and self.name != "length":
            return None
        return FUNCTIONS[self.name](value)

    @override
    def __str__(self) -> str:
        return f"{self.name}({self.argument})"


@dataclass(frozen=True, slots=True)
class Not(Expression):
    """``!expr``, only valid as a condition."""

    operand: Expression

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        return not is_true(self.operand.evaluate(template, chunk))

    @override
    def __str__(self) -> str:
        return f"!{self.operand}"


@dataclass(frozen=True, slots=True)
class AnonymousTemplate(Expression):
    """``{...}`` used as a value; evaluates to a fresh instance."""

    prototype: StringTemplate

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        instance = self.prototype.get_instance_of()
        instance.group = template.group
        instance.enclosing_instance = template
        return instance

    @override
    def __str__(self) -> str:
        return "{" + (self.prototype.pattern or "") + "}"


# =============================================================================
# Template invocation
# =============================================================================


@dataclass(frozen=True, slots=True)
class ArgumentList:
    """Arguments of a template invocation.

    Attributes:
        assignments: ``name=expr`` pairs in source order.
        positional: The single unnamed argument, if any.
        pass_through: True when the list contains ``...``.
    """

    assignments: tuple[tuple[str, Expression], ...] = ()
    positional: Expression | None = None
    pass_through: bool = False

    def __bool__(self) -> bool:
        return bool(self.assignments) or self.positional is not None or self.pass_through

    @override
    def __str__(self) -> str:
        parts = [f"{name}={value}" for name, value in self.assignments]
        if self.positional is not None:
            parts.insert(0, str(self.positional))
        if self.pass_through:
            parts.append("...")
        return ", ".join(parts)


def evaluate_arguments(embedded: StringTemplate, chunk: "ASTExpr") -> None:
    """Evaluate ``embedded.arguments`` in the invoker's scope.

    Values land in ``embedded``'s argument context. The expressions run in a
    synthetic template that sits between the invoker and ``embedded`` and
    shares the latter's argument context, so ``it`` and ``i`` are visible.

    Raises:
        UnknownAttributeError: If an argument names an undeclared parameter.
    """
    arguments: ArgumentList | None = embedded.arguments  # pyright: ignore[reportAny]
    if not arguments:
        return
    if arguments.pass_through:
        embedded.pass_through = True

    context = StringTemplate(
        group=embedded.group, name=f"<invoke {embedded.name} arg context>"
    )
    context.enclosing_instance = embedded.enclosing_instance
    if embedded.argument_context is None:
        embedded.argument_context = {}
    context.argument_context = embedded.argument_context

    if arguments.positional is not None:
        value = arguments.positional.evaluate(context, chunk)
        if value is not None:
            formal = embedded.formal_arguments
            if formal is UNKNOWN_ARGS or len(formal) != 1:
                context.error(
                    f"template {embedded.name} must have exactly one formal arg in "
                    f"template context {context.get_enclosing_instance_stack_string()}"
                )
            else:
                embedded.argument_context[next(iter(formal))] = value

    for name, expression in arguments.assignments:
        value = expression.evaluate(context, chunk)
        if value is None:
            continue
        formal = embedded.formal_arguments
        if formal is not UNKNOWN_ARGS and name not in formal:
            stack = context.get_enclosing_instance_stack_string()
            msg = (
                f"template {embedded.name} has no such attribute: {name} "
                f"in template context {stack}"
            )
            raise UnknownAttributeError(msg, name=name, context=stack)
        embedded.argument_context[name] = value


@dataclass(frozen=True, slots=True)
class Include(Expression):
    """``name(args)`` or ``super.name(args)``."""

    name: str
    arguments: ArgumentList = ArgumentList()

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        return include(template, self.name, self.arguments, chunk)

    @override
    def __str__(self) -> str:
        return f"{self.name}({self.arguments})"


@dataclass(frozen=True, slots=True)
class IndirectInclude(Expression):
    """``(expr)(args)``: the template name is computed."""

    name: Expression
    arguments: ArgumentList = ArgumentList()

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        name = self.name.evaluate(template, chunk)
        if name is None:
            return None
        return include(template, render_to_text(template, name), self.arguments, chunk)

    @override
    def __str__(self) -> str:
        return f"({self.name})({self.arguments})"


def include(
    template: StringTemplate, name: str, arguments: ArgumentList, chunk: "ASTExpr"
) -> StringTemplate:
    embedded = template.group.get_embedded_instance_of(template, name)
    embedded.arguments = arguments
    evaluate_arguments(embedded, chunk)
    return embedded


class TemplateRef:
    """A template to apply in ``value:t()``."""

    __slots__ = ()

    def resolve(self, template: StringTemplate, chunk: "ASTExpr") -> StringTemplate | None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class NamedTemplateRef(TemplateRef):
    name: str
    arguments: ArgumentList = ArgumentList()

    @override
    def resolve(self, template: StringTemplate, chunk: "ASTExpr") -> StringTemplate | None:
        exemplar = template.group.get_embedded_instance_of(template, self.name)
        exemplar.arguments = self.arguments
        return exemplar

    @override
    def __str__(self) -> str:
        return f"{self.name}({self.arguments})"


@dataclass(frozen=True, slots=True)
class IndirectTemplateRef(TemplateRef):
    name: Expression
    arguments: ArgumentList = ArgumentList()

    @override
    def resolve(self, template: StringTemplate, chunk: "ASTExpr") -> StringTemplate | None:
        name = self.name.evaluate(template, chunk)
        if name is None:
            return None
        exemplar = template.group.get_embedded_instance_of(
            template, render_to_text(template, name)
        )
        exemplar.arguments = self.arguments
        return exemplar

    @override
    def __str__(self) -> str:
        return f"({self.name})({self.arguments})"


@dataclass(frozen=True, slots=True)
class AnonymousTemplateRef(TemplateRef):
    prototype: StringTemplate

    @override
    def resolve(self, template: StringTemplate, chunk: "ASTExpr") -> StringTemplate | None:
        return self.prototype

    @override
    def __str__(self) -> str:
        return "{" + (self.prototype.pattern or "") + "}"


@dataclass(frozen=True, slots=True)
class Apply(Expression):
    """``value:t1(),t2()``: applies the templates to each value in turn."""

    target: Expression
    templates: tuple[TemplateRef, ...]

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        value = self.target.evaluate(template, chunk)
        if value is None:
            return None
        exemplars = [
            exemplar
            for ref in self.templates
            if (exemplar := ref.resolve(template, chunk)) is not None
        ]
        if not exemplars:
            return None
        return apply_templates(template, value, exemplars, chunk)

    @override
    def __str__(self) -> str:
        return f"{self.target}:" + ",".join(str(t) for t in self.templates)


@dataclass(frozen=True, slots=True)
class ParallelApply(Expression):
    """``a,b:{x,y | ...}``: walks several attributes in lock step."""

    targets: tuple[Expression, ...]
    template: AnonymousTemplateRef

    @override
    def evaluate(self, template: StringTemplate, chunk: "ASTExpr") -> Any:  # pyright: ignore[reportExplicitAny]
        values = [target.evaluate(template, chunk) for target in self.targets]
        return apply_in_parallel(template, values, self.template.prototype)

    @override
    def __str__(self) -> str:
        return ",".join(str(t) for t in self.targets) + f":{self.template}"


def _instantiate(exemplar: StringTemplate, enclosing: StringTemplate) -> StringTemplate:
    embedded = exemplar.get_instance_of()
    if exemplar.name == ANONYMOUS_NAME:
        embedded.group = enclosing.group
    embedded.enclosing_instance = enclosing
    embedded.arguments = exemplar.arguments
    return embedded


def _bind_iteration_value(
    embedded: StringTemplate, context: dict[str, Any], value: Any  # pyright: ignore[reportExplicitAny]
) -> None:
    formal = embedded.formal_arguments
    anonymous = embedded.name == ANONYMOUS_NAME
    if formal is not UNKNOWN_ARGS and (len(formal) == 1 or (anonymous and formal)):
        if anonymous and len(formal) > 1:
            embedded.error(
                f"too many arguments on {{...}} template: [{', '.join(formal)}]"
            )
        context[next(iter(formal))] = value
    if not (anonymous and formal):
        context[IT] = value
        context[ATTR] = value


def apply_templates(
    template: StringTemplate,
    value: Any,  # pyright: ignore[reportExplicitAny]
    exemplars: Sequence[StringTemplate],
    chunk: "ASTExpr",
) -> Any:  # pyright: ignore[reportExplicitAny]
    """Apply ``exemplars`` round-robin to the elements of ``value``.

    A single-valued ``value`` gets one application with ``i`` set to 1.
    None elements stay in the result so the ``null`` option can fill them.

    Returns:
        The applied instance for a scalar, an ``AttributeList`` of instances
        for a multi-valued attribute, or None when nothing was applied.
    """
    if not is_multi_valued(value):
        embedded = _instantiate(exemplars[0], template)
        context: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
        _bind_iteration_value(embedded, context, value)
        context[INDEX] = 1
        embedded.argument_context = context
        evaluate_arguments(embedded, chunk)
        return embedded

    results = AttributeList()
    i = 0
    for item in iterate(value):  # pyright: ignore[reportAny]
        if item is None:
            results.append(None)
            continue
        embedded = _instantiate(exemplars[i % len(exemplars)], template)
        context = {}
        _bind_iteration_value(embedded, context, item)
        context[INDEX] = i + 1
        context[INDEX0] = i
        embedded.argument_context = context
        evaluate_arguments(embedded, chunk)
        results.append(embedded)
        i += 1
    return results or None


def apply_in_parallel(
    template: StringTemplate,
    values: list[Any],  # pyright: ignore[reportExplicitAny]
    prototype: StringTemplate,
) -> AttributeList | None:
    """Apply ``prototype`` to tuples drawn from ``values`` in lock step.

    Iteration continues while any attribute has elements left; exhausted
    ones simply leave their parameter unset.
    """
    if not values:
        return None
    formal = prototype.formal_arguments
    if formal is UNKNOWN_ARGS or not formal:
        template.error(
            "missing arguments in anonymous template in context "
            f"{template.get_enclosing_instance_stack_string()}"
        )
        return None

    names = list(formal)
    if len(names) != len(values):
        msg = (
            f"number of arguments [{', '.join(names)}] mismatch between attribute "
            "list and anonymous template in context "
            f"{template.get_enclosing_instance_stack_string()}"
        )
        template.error(msg, ArityMismatchError(msg, expected=len(names), actual=len(values)))
        count = min(len(names), len(values))
        names = names[:count]
        values = values[:count]

    iterators: list[Iterator[Any] | None] = [  # pyright: ignore[reportExplicitAny]
        iterate(value) if value is not None else None for value in values
    ]
    results = AttributeList()
    i = 0
    while True:
        context: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
        exhausted = 0
        for name, iterator in zip(names, iterators, strict=True):
            item = next(iterator, _DONE) if iterator is not None else _DONE
            if item is _DONE:
                exhausted += 1
            else:
                context[name] = item
        if exhausted == len(names):
            break
        context[INDEX] = i + 1
        context[INDEX0] = i
        embedded = prototype.get_instance_of()
        embedded.group = template.group
        embedded.enclosing_instance = template
        embedded.argument_context = context
        results.append(embedded)
        i += 1
    return results


_DONE: Final = object()


# =============================================================================
# Property access
# =============================================================================


def get_object_property(template: StringTemplate, obj: Any, key: Any) -> Any:  # pyright: ignore[reportExplicitAny]
    """Read property ``key`` of ``obj`` for ``obj.key`` references.

    Aggregates, templates and mappings are looked up by key; other objects go
    through ``PropertyProvider`` and then public attributes. A missing
    property is reported to the error listener and reads as None.
    """
    if isinstance(obj, Aggregate):
        return obj.get(str(key))
    if isinstance(obj, StringTemplate):
        return obj.attributes.get(str(key))
    if isinstance(obj, Mapping):
        if key in obj:
            value = obj[key]  # pyright: ignore[reportUnknownVariableType]
        elif str(key) in obj:
            value = obj[str(key)]  # pyright: ignore[reportUnknownVariableType]
        else:
            value = obj.get(DEFAULT_KEY)  # pyright: ignore[reportUnknownVariableType, reportUnknownMemberType]
        if value is KEY_VALUE:
            return key
        if isinstance(value, StringTemplate):
            return value.get_instance_of()
        return value  # pyright: ignore[reportUnknownVariableType]

    name = str(key)
    if isinstance(obj, PropertyProvider):
        return obj.get_property(name)
    if not name.startswith("_"):
        try:
            return getattr(obj, name)
        except AttributeError:
            pass
    template.error(
        f"Class {type(obj).__name__} has no such attribute: {name} in template "
        f"context {template.get_enclosing_instance_stack_string()}"
    )
    return None


def render_to_text(template: StringTemplate, value: Any) -> str:  # pyright: ignore[reportExplicitAny]
    """Return ``value`` as text; templates render in ``template``'s scope."""
    if isinstance(value, StringTemplate):
        if value is not template:
            value.enclosing_instance = template
        writer = template.group.create_writer()
        _ = value.write(writer)
        return writer.getvalue()
    return str(value)


# =============================================================================
# Chunks
# =============================================================================


@dataclass(slots=True)
class WriteOptions:
    """Evaluated options of one action."""

    separator: str | None = None
    null: str | None = None
    format: str | None = None
    wrap: str | None = None


class ASTExpr(Chunk):
    """An action chunk: evaluates its expression and writes the value.

    Attributes:
        expression: Root of the expression tree.
        options: Option name to expression; ``anchor`` maps to None.
        source: Action text, used in diagnostics.
    """

    __slots__ = ("expression", "options", "source")

    def __init__(
        self,
        expression: Expression,
        options: Mapping[str, Expression | None] | None = None,
        source: str = "",
    ) -> None:
        super().__init__()
        self.expression: Expression = expression
        self.options: dict[str, Expression | None] = dict(options or {})
        self.source: str = source

    @property
    def is_inline_value(self) -> bool:  # pyright: ignore[reportIncompatibleVariableOverride]
        """True without options, or for an ``(expr)`` that already yields text."""
        return not self.options or isinstance(self.expression, ValueExpression)

    def evaluate(self, template: StringTemplate) -> Any:  # pyright: ignore[reportExplicitAny]
        return self.expression.evaluate(template, self)

    def evaluate_options(self, template: StringTemplate) -> WriteOptions:
        options = WriteOptions()
        for name in ("separator", "null", "format", "wrap"):
            expression = self.options.get(name)
            if expression is not None:
                value = expression.evaluate(template, self)
                if value is not None:
                    setattr(options, name, render_to_text(template, value))
        return options

    @override
    def write(self, template: StringTemplate, writer: "TemplateWriter") -> int:
        anchored = "anchor" in self.options
        if anchored:
            writer.push_anchor_point()
        writer.push_indentation(self.indentation)
        try:
            value = self.expression.evaluate(template, self)
            return self.write_attribute(
                template, value, writer, self.evaluate_options(template)
            )
        finally:
            _ = writer.pop_indentation()
            if anchored:
                writer.pop_anchor_point()

    def write_attribute(
        self,
        template: StringTemplate,
        value: Any,  # pyright: ignore[reportExplicitAny]
        writer: "TemplateWriter",
        options: WriteOptions,
    ) -> int:
        """Write one evaluated value.

        Returns:
            Characters written, or ``MISSING`` for None without a ``null``
            option.
        """
        if value is None:
            if options.null is None:
                return MISSING
            value = options.null
        if isinstance(value, StringTemplate):
            return self._write_template(template, value, writer, options)
        if is_multi_valued(value):
            return self._write_iterable(template, value, writer, options)
        renderer = template.get_attribute_renderer(type(value))  # pyright: ignore[reportAny]
        text = renderer.format(value, options.format) if renderer is not None else str(value)  # pyright: ignore[reportAny]
        return writer.write(text, options.wrap)

    def _write_template(
        self,
        template: StringTemplate,
        value: StringTemplate,
        writer: "TemplateWriter",
        options: WriteOptions,
    ) -> int:
        value.enclosing_instance = template
        if template.lint:
            value.check_enclosing_recursion()
        n = writer.write_wrap(options.wrap) if options.wrap is not None else 0
        if options.format is not None:
            renderer = template.get_attribute_renderer(str)
            if renderer is not None:
                scratch = template.group.create_writer()
                _ = value.write(scratch)
                return n + writer.write(renderer.format(scratch.getvalue(), options.format))
        return n + value.write(writer)

    def _write_iterable(
        self,
        template: StringTemplate,
        value: Any,  # pyright: ignore[reportExplicitAny]
        writer: "TemplateWriter",
        options: WriteOptions,
    ) -> int:
        n = 0
        seen_value = False
        separator = options.separator
        for item in iterate(value):  # pyright: ignore[reportAny]
            if item is None:
                item = options.null
                if item is None:
                    continue
            if separator is None:
                written = self.write_attribute(template, item, writer, options)
                if written != MISSING:
                    n += written
                continue
            if (isinstance(item, StringTemplate) and not _is_nullable(item)) or (
                not isinstance(item, StringTemplate) and not is_multi_valued(item)
            ):
                if seen_value:
                    n += writer.write_separator(separator)
                n += self.write_attribute(template, item, writer, options)
                seen_value = True
                continue
            # Might render to nothing, in which case it gets no separator.
            scratch = writer.fork()
            if self.write_attribute(template, item, scratch, options) != MISSING:
                if seen_value:
                    n += writer.write_separator(separator)
                n += writer.write(scratch.getvalue())
                seen_value = True
        return n

    @override
    def __str__(self) -> str:
        return self.source or str(self.expression)


def _is_nullable(template: StringTemplate) -> bool:
    return all(chunk.is_conditional for chunk in template.chunks)


class ConditionalExpr(Chunk):
    """An ``if``/``elseif``/``else`` block.

    Attributes:
        branches: ``(condition, subtemplate)`` pairs tried in order.
        else_template: Subtemplate written when no condition holds.
    """

    __slots__ = ("branches", "else_template")

    is_conditional = True

    def __init__(self, condition: ASTExpr, subtemplate: StringTemplate) -> None:
        super().__init__()
        self.branches: list[tuple[ASTExpr, StringTemplate]] = [(condition, subtemplate)]
        self.else_template: StringTemplate | None = None

    def add_elseif(self, condition: ASTExpr, subtemplate: StringTemplate) -> None:
        self.branches.append((condition, subtemplate))

    def set_else(self, subtemplate: StringTemplate) -> None:
        self.else_template = subtemplate

    @override
    def write(self, template: StringTemplate, writer: "TemplateWriter") -> int:
        writer.push_indentation(self.indentation)
        try:
            for condition, subtemplate in self.branches:
                if is_true(condition.evaluate(template)):
                    return self._write_subtemplate(template, subtemplate, writer)
            if self.else_template is not None:
                return self._write_subtemplate(template, self.else_template, writer)
            return MISSING
        finally:
            _ = writer.pop_indentation()

    @staticmethod
    def _write_subtemplate(
        template: StringTemplate, subtemplate: StringTemplate, writer: "TemplateWriter"
    ) -> int:
        instance = subtemplate.get_instance_of()
        instance.enclosing_instance = template
        instance.group = template.group
        instance.native_group = template.native_group
        return instance.write(writer)

    @override
    def __str__(self) -> str:
        return f"if({self.branches[0][0]})"
