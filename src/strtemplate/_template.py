"""Template instances: attribute binding, scope resolution and rendering.

A ``StringTemplate`` couples a compiled chunk list with per-instance
attribute bindings. Group prototypes are never rendered directly; callers ask
for ``get_instance_of()`` copies that share the chunks, formal arguments and
region metadata of the prototype but start with empty attributes.

Attribute references resolve dynamically along the chain of enclosing
instances (the templates that invoked this one), consulting each level's
attributes and argument context before finally falling back to the group's
named maps.
"""

import itertools
import re
from collections.abc import Iterator, Mapping, Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final, override

from strtemplate._chunks import MISSING, Chunk, NewlineChunk
from strtemplate._formal_args import UNKNOWN_ARGS, FormalArgument, FormalArguments
from strtemplate._renderers import AttributeRenderer, RendererTable
from strtemplate._values import Aggregate, AttributeList
from strtemplate._writer import TemplateWriter
from strtemplate.exceptions import (
    InvalidAttributeNameError,
    RecursiveApplicationError,
    TemplateSyntaxError,
    UnknownAttributeError,
)

if TYPE_CHECKING:
    from strtemplate._config import Delimiters
    from strtemplate._group import TemplateGroup
    from strtemplate._listener import ErrorListener

__all__ = [
    "ANONYMOUS_NAME",
    "RegionType",
    "StringTemplate",
    "is_mangled_region_name",
    "mangle_region_name",
    "reset_template_counter",
    "unmangle_region_name",
]

ANONYMOUS_NAME: Final = "anonymous"

_REGION_PREFIX: Final = "region__"

_AGGREGATE_SPEC = re.compile(r"^(\w+)\.\{\s*(\w+(?:\s*,\s*\w+)*)\s*\}$")

_template_ids: Iterator[int] = itertools.count(1)


def reset_template_counter() -> None:
    """Restart template IDs at 1, so diagnostics are reproducible in tests."""
    global _template_ids  # noqa: PLW0603
    _template_ids = itertools.count(1)


def mangle_region_name(enclosing: str, region: str) -> str:
    """Return the group-wide template name of region ``region`` in ``enclosing``."""
    return f"{_REGION_PREFIX}{enclosing}__{region}"


def is_mangled_region_name(name: str) -> bool:
    return name.startswith(_REGION_PREFIX)


def unmangle_region_name(name: str) -> str:
    """Return the enclosing template name encoded in a mangled region name."""
    return name[len(_REGION_PREFIX) : name.rindex("__")]


class RegionType(StrEnum):
    """How a region template came to exist."""

    IMPLICIT = "implicit"  # <@r()> with no definition yet
    EMBEDDED = "embedded"  # <@r>...<@end>
    EXPLICIT = "explicit"  # @t.r() ::= "..."


class StringTemplate:
    """A compiled template plus its attribute bindings.

    Attributes:
        template_id: Unique, increasing ID used in diagnostics.
        name: Template name; ``"anonymous"`` for templates built from text.
        group: Group used for template lookups made while rendering.
        native_group: Group that defined this template's body, the base of
            ``super.`` lookups.
        pattern: Source text, or None for templates built from chunks.
        chunks: Compiled body, shared with every instance of the prototype.
        formal_arguments: Declared parameters, or ``UNKNOWN_ARGS``.
        argument_context: Values bound at the invocation site.
        arguments: Argument list to evaluate when this instance is invoked.
        pass_through: True when the invocation used ``...``.
        regions: Region names referenced by this template's body.
        is_region: True for region templates.
        region_def_type: How the region was defined, for region templates.
        group_file_line: Line of the definition in its group source.
    """

    def __init__(
        self,
        template: str | None = None,
        group: "TemplateGroup | None" = None,
        *,
        name: str = ANONYMOUS_NAME,
        delimiters: "Delimiters | None" = None,
        attributes: Mapping[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
    ) -> None:
        if group is None:
            from strtemplate._config import TemplateSettings  # noqa: PLC0415
            from strtemplate._group import TemplateGroup  # noqa: PLC0415

            settings = (
                TemplateSettings(delimiters=delimiters)
                if delimiters is not None
                else TemplateSettings()
            )
            group = TemplateGroup("default", settings=settings)

        self.template_id: int = next(_template_ids)
        self.name: str = name
        self.group: TemplateGroup = group
        self.native_group: TemplateGroup = group
        self.delimiters: Delimiters | None = delimiters
        self.pattern: str | None = None
        self.chunks: list[Chunk] = []
        self.formal_arguments: FormalArguments = UNKNOWN_ARGS
        self.argument_context: dict[str, Any] | None = None  # pyright: ignore[reportExplicitAny]
        self.arguments: Any = None  # pyright: ignore[reportExplicitAny]
        self.pass_through: bool = False
        self.regions: set[str] = set()
        self.is_region: bool = False
        self.region_def_type: RegionType | None = None
        self.group_file_line: int = 0
        self._enclosing_instance: StringTemplate | None = None
        self._attributes: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
        self._renderers: RendererTable | None = None
        self._referenced: dict[str, None] | None = None
        self._listener: ErrorListener | None = None

        if template is not None:
            self.set_template(template)
        if attributes:
            for key, value in attributes.items():  # pyright: ignore[reportAny]
                self.set_attribute(key, value)

    # =========================================================================
    # Compilation
    # =========================================================================

    def set_template(self, template: str) -> None:
        """Compile ``template`` into this template's chunk list.

        Syntax errors are reported to the error listener and leave the
        template empty.
        """
        from strtemplate._lexer import compile_template  # noqa: PLC0415

        self.pattern = template
        try:
            self.chunks = compile_template(self, template)
        except TemplateSyntaxError as exc:
            self.chunks = []
            name = self.name
            outer = self.outermost_name
            if outer != name:
                name = f"{name} nested in {outer}"
            self.error(f"problem parsing template '{name}': {exc}", exc)

    def set_chunks(self, chunks: Sequence[Chunk], pattern: str | None = None) -> None:
        """Install an already compiled body."""
        self.chunks = list(chunks)
        self.pattern = pattern

    @property
    def effective_delimiters(self) -> "Delimiters":
        if self.delimiters is not None:
            return self.delimiters
        return self.group.settings.delimiters

    @property
    def outermost_name(self) -> str:
        """Name of the outermost enclosing template, used to name regions."""
        if self._enclosing_instance is not None:
            return self._enclosing_instance.outermost_name
        return self.name

    # =========================================================================
    # Instances
    # =========================================================================

    def get_instance_of(self) -> "StringTemplate":
        """Return a fresh instance sharing this template's compiled definition."""
        instance = StringTemplate.__new__(StringTemplate)
        instance.template_id = next(_template_ids)
        instance.name = self.name
        instance.group = self.group
        instance.native_group = self.native_group
        instance.delimiters = self.delimiters
        instance.pattern = self.pattern
        instance.chunks = self.chunks
        instance.formal_arguments = self.formal_arguments
        instance.argument_context = None
        instance.arguments = None
        instance.pass_through = False
        instance.regions = self.regions
        instance.is_region = self.is_region
        instance.region_def_type = self.region_def_type
        instance.group_file_line = self.group_file_line
        instance._enclosing_instance = None  # noqa: SLF001
        instance._attributes = {}  # noqa: SLF001
        instance._renderers = self._renderers.copy() if self._renderers else None  # noqa: SLF001
        instance._referenced = None  # noqa: SLF001
        instance._listener = self._listener  # noqa: SLF001
        return instance

    @property
    def enclosing_instance(self) -> "StringTemplate | None":
        return self._enclosing_instance

    @enclosing_instance.setter
    def enclosing_instance(self, value: "StringTemplate | None") -> None:
        if value is self:
            msg = f"cannot embed template {self.name} in itself"
            raise ValueError(msg)
        self._enclosing_instance = value

    # =========================================================================
    # Attributes
    # =========================================================================

    def set_attribute(self, name: str, value: Any, *values: Any) -> None:  # pyright: ignore[reportExplicitAny, reportAny]
        """Bind ``value`` to ``name``, promoting repeated names to lists.

        ``name`` may be an aggregate spec such as ``"items.{name,price}"``,
        in which case one value per property is expected and a single
        ``Aggregate`` is added to ``items``.

        Raises:
            InvalidAttributeNameError: If ``name`` contains a dot outside an
                aggregate spec, or an aggregate spec is malformed.
            UnknownAttributeError: If the template declares formal arguments
                and ``name`` is not one of them.
        """
        if "{" in name:
            self._set_aggregate(name, (value, *values))
            return
        if values:
            msg = f"only aggregate attribute specs take several values: {name}"
            raise InvalidAttributeNameError(msg)
        if value is None:
            return
        if "." in name:
            msg = "cannot have '.' in attribute names"
            raise InvalidAttributeNameError(msg)

        if isinstance(value, StringTemplate):
            value.enclosing_instance = self
        elif isinstance(value, Iterator):
            value = AttributeList(value)  # pyright: ignore[reportUnknownArgumentType]

        existing = self._attributes.get(name)
        if existing is None:
            self._check_formal_argument(name)
            self._attributes[name] = value
            return

        if type(existing) is AttributeList:  # pyright: ignore[reportUnknownArgumentType]
            target: AttributeList = existing
        elif isinstance(existing, (list, tuple)):
            target = AttributeList(existing)  # pyright: ignore[reportUnknownArgumentType]
            self._attributes[name] = target
        else:
            target = AttributeList([existing])
            self._attributes[name] = target

        if isinstance(value, (list, tuple)):
            if value is not target:
                target.extend(value)  # pyright: ignore[reportUnknownArgumentType]
        else:
            target.append(value)

    def _set_aggregate(self, spec: str, values: tuple[Any, ...]) -> None:  # pyright: ignore[reportExplicitAny]
        match = _AGGREGATE_SPEC.match(spec.strip())
        if match is None:
            msg = f"invalid aggregate attribute format: {spec}"
            raise InvalidAttributeNameError(msg)
        name = match.group(1)
        properties = [p.strip() for p in match.group(2).split(",")]
        if len(properties) != len(values):
            msg = (
                f"number of properties and values mismatch for aggregate "
                f"attribute {name}: {len(properties)} != {len(values)}"
            )
            raise InvalidAttributeNameError(msg)
        self.set_attribute(name, Aggregate(dict(zip(properties, values, strict=True))))

    def _check_formal_argument(self, name: str) -> None:
        if self.formal_arguments is not UNKNOWN_ARGS and name not in self.formal_arguments:
            msg = (
                f"no such attribute: {name} in template context "
                f"{self.get_enclosing_instance_stack_string()}"
            )
            raise UnknownAttributeError(
                msg, name=name, context=self.get_enclosing_instance_stack_string()
            )

    def remove_attribute(self, name: str) -> None:
        _ = self._attributes.pop(name, None)

    @property
    def attributes(self) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """A copy of the attributes set directly on this instance."""
        return dict(self._attributes)

    def get_attribute(self, name: str) -> Any:  # pyright: ignore[reportExplicitAny]
        """Resolve ``name`` as a reference inside this template would.

        Raises:
            UnknownAttributeError: If the value is unset and no template on the
                enclosing chain declares ``name``.
        """
        if self.lint:
            self._track_reference(name)

        value = self._attributes.get(name)
        if value is None and self.argument_context is not None:
            value = self.argument_context.get(name)

        # A declared but unbound parameter hides same-named outer values.
        if value is None and not self.pass_through and name in self.formal_arguments:
            return None

        if value is None:
            enclosing = self._enclosing_instance
            if enclosing is not None:
                value = enclosing.get_attribute(name)
                if value is None:
                    self._check_null_attribute(name)
            else:
                value = self.group.get_map(name)
        return value

    def _check_null_attribute(self, name: str) -> None:
        if self.formal_arguments is UNKNOWN_ARGS:
            if self._enclosing_instance is not None:
                self._enclosing_instance._check_null_attribute(name)  # noqa: SLF001
            return
        if self.lookup_formal_argument(name) is None:
            context = self.get_enclosing_instance_stack_string()
            msg = f"no such attribute: {name} in template context {context}"
            raise UnknownAttributeError(msg, name=name, context=context)

    def _track_reference(self, name: str) -> None:
        if self._referenced is None:
            self._referenced = {}
        self._referenced[name] = None

    # =========================================================================
    # Formal arguments
    # =========================================================================

    def get_formal_argument(self, name: str) -> FormalArgument | None:
        return self.formal_arguments.get(name)

    def lookup_formal_argument(self, name: str) -> FormalArgument | None:
        """Find ``name`` among the formal arguments of this or any enclosing template."""
        argument = self.formal_arguments.get(name)
        if argument is None and self._enclosing_instance is not None:
            return self._enclosing_instance.lookup_formal_argument(name)
        return argument

    def define_empty_formal_arguments(self) -> None:
        self.formal_arguments = {}

    def define_formal_argument(
        self, name: str, default_value: "StringTemplate | None" = None
    ) -> None:
        if self.formal_arguments is UNKNOWN_ARGS:
            self.formal_arguments = {}
        arguments = self.formal_arguments
        if not isinstance(arguments, dict):
            arguments = dict(arguments)
            self.formal_arguments = arguments
        arguments[name] = FormalArgument(name, default_value)

    def define_formal_arguments(self, names: Sequence[str]) -> None:
        for name in names:
            self.define_formal_argument(name)

    def _set_default_argument_values(self) -> None:
        defaults = [
            argument
            for argument in self.formal_arguments.values()
            if argument.default_value is not None
        ]
        if not defaults:
            return
        if self.argument_context is None:
            self.argument_context = {}
        for argument in defaults:
            if self.get_attribute(argument.name) is not None:
                continue
            default = argument.default_value
            assert default is not None  # noqa: S101
            chunks = default.chunks
            if len(chunks) == 1 and chunks[0].is_inline_value:
                # a lone action such as {<names>} yields the value itself
                value = chunks[0].evaluate(self)  # pyright: ignore[reportAttributeAccessIssue, reportUnknownMemberType]
            else:
                value = default.get_instance_of()
                value.enclosing_instance = self
                value.group = self.group
            self.argument_context[argument.name] = value

    # =========================================================================
    # Renderers
    # =========================================================================

    def register_renderer(self, value_type: type, renderer: AttributeRenderer) -> None:
        """Register a renderer local to this instance and the templates it embeds."""
        if self._renderers is None:
            self._renderers = RendererTable()
        self._renderers.register(value_type, renderer)

    def get_attribute_renderer(self, value_type: type) -> AttributeRenderer | None:
        if self._renderers is not None:
            renderer = self._renderers.lookup(value_type)
            if renderer is not None:
                return renderer
        if self._enclosing_instance is not None:
            return self._enclosing_instance.get_attribute_renderer(value_type)
        return self.group.get_attribute_renderer(value_type)

    # =========================================================================
    # Rendering
    # =========================================================================

    def write(self, writer: TemplateWriter) -> int:
        """Render into ``writer``.

        Returns:
            Characters written, or ``MISSING`` when every chunk was missing.
        """
        if self.lint and self._enclosing_instance is None:
            self._check_attribute_cycles([self], set())
        self._set_default_argument_values()
        chunks = self.chunks
        count = len(chunks)
        n = 0
        missing = True
        i = 0
        while i < count:
            chunk_n = chunks[i].write(self, writer)
            next_is_newline = i + 1 < count and isinstance(chunks[i + 1], NewlineChunk)
            if chunk_n <= 0 and next_is_newline:
                # An empty expression alone on its line takes the newline with it.
                if i == 0:
                    i += 2
                    continue
                if isinstance(chunks[i - 1], NewlineChunk):
                    i += 1
            if chunk_n != MISSING:
                n += chunk_n
                missing = False
            i += 1

        if self.lint:
            self._check_for_unused_attributes()
        if missing and count:
            return MISSING
        return n

    def render(self, line_width: int | None = None) -> str:
        """Render to a string, wrapping at ``line_width`` when given."""
        writer = self.group.create_writer(line_width=line_width)
        _ = self.write(writer)
        return writer.getvalue()

    @override
    def __str__(self) -> str:
        return self.render()

    @override
    def __repr__(self) -> str:
        return self.get_template_declarator_string()

    def _check_for_unused_attributes(self) -> None:
        if self._referenced is None:
            return
        for name in self._attributes:
            if name not in self._referenced:
                self.warning(f"{self.name}: set but not used: {name}")

    # =========================================================================
    # Diagnostics
    # =========================================================================

    @property
    def lint(self) -> bool:
        return self.group.settings.lint

    @property
    def error_listener(self) -> "ErrorListener":
        if self._listener is not None:
            return self._listener
        return self.group.error_listener

    @error_listener.setter
    def error_listener(self, listener: "ErrorListener | None") -> None:
        self._listener = listener

    def error(self, message: str, cause: BaseException | None = None) -> None:
        self.error_listener.error(message, cause)

    def warning(self, message: str) -> None:
        self.error_listener.warning(message)

    def get_enclosing_instance_stack_string(self) -> str:
        """Return the enclosing chain outermost first, e.g. ``[page bold]``."""
        names: list[str] = []
        template: StringTemplate | None = self
        while template is not None:
            names.append(template.name + ("(...)" if template.pass_through else ""))
            template = template.enclosing_instance
        return "[" + " ".join(reversed(names)) + "]"

    def get_template_declarator_string(self) -> str:
        return f"<{self.name}([{', '.join(self.formal_arguments)}])@{self.template_id}>"

    def get_enclosing_instance_stack_trace(self) -> str:
        """Describe each enclosing instance, innermost first, with its attributes.

        A template that reappears in the chain is marked as the start of a
        recursive cycle and ends the trace.
        """
        lines: list[str] = []
        seen: set[int] = set()
        template: StringTemplate | None = self
        while template is not None:
            declarator = template.get_template_declarator_string()
            if id(template) in seen:
                lines.append(f"{declarator} (start of recursive cycle)\n...")
                break
            seen.add(id(template))
            line = declarator
            if template._attributes:  # noqa: SLF001
                described = ", ".join(
                    _describe_attribute(name, value)
                    for name, value in template._attributes.items()  # noqa: SLF001
                )
                line += f", attributes=[{described}]"
            if template._referenced is not None:  # noqa: SLF001
                line += f", references=[{', '.join(template._referenced)}]"  # noqa: SLF001
            lines.append(line + ">\n")
            template = template.enclosing_instance
        return "".join(lines)

    def is_recursive_enclosing_instance(self) -> bool:
        """Return True if this instance appears in its own enclosing chain."""
        seen: set[int] = set()
        template = self._enclosing_instance
        while template is not None and id(template) not in seen:
            if template is self:
                return True
            seen.add(id(template))
            template = template.enclosing_instance
        return False

    def check_enclosing_recursion(self) -> None:
        """Raise if this instance appears in its own enclosing chain.

        Raises:
            RecursiveApplicationError: With the enclosing stack trace.
        """
        if not self.is_recursive_enclosing_instance():
            return
        enclosing = self._enclosing_instance
        assert enclosing is not None  # noqa: S101
        trace = self.get_enclosing_instance_stack_trace()
        msg = (
            f"infinite recursion to {self.get_template_declarator_string()} "
            f"referenced in {enclosing.get_template_declarator_string()}; "
            f"stack trace:\n{trace}"
        )
        raise RecursiveApplicationError(msg, trace=trace)

    def _check_attribute_cycles(self, path: list["StringTemplate"], done: set[int]) -> None:
        # path is the chain of instances that would enclose self while writing
        for value in self._attributes.values():  # pyright: ignore[reportAny]
            items = value if isinstance(value, (list, tuple)) else (value,)  # pyright: ignore[reportUnknownVariableType]
            for item in items:  # pyright: ignore[reportUnknownVariableType]
                if not isinstance(item, StringTemplate) or id(item) in done:
                    continue
                if any(item is outer for outer in path):
                    for outer, inner in itertools.pairwise(path):
                        inner.enclosing_instance = outer
                    item.enclosing_instance = path[-1]
                    item.check_enclosing_recursion()
                    continue
                path.append(item)
                item._check_attribute_cycles(path, done)  # noqa: SLF001
                _ = path.pop()
        done.add(id(self))


def _describe_attribute(name: str, value: Any) -> str:  # pyright: ignore[reportExplicitAny]
    if isinstance(value, StringTemplate):
        return f"{name}=<{value.name}()@{value.template_id}>"
    if isinstance(value, list):
        nested = ", ".join(
            f"<{item.name}()@{item.template_id}>"
            for item in value  # pyright: ignore[reportUnknownVariableType]
            if isinstance(item, StringTemplate)
        )
        return f"{name}=List[..{nested}..]"
    return name
