"""Template groups: named template tables with inheritance.

A group owns the prototypes of its templates, its named maps and its
renderer registrations. Lookups fall back along the super group chain; a
template found in a super group is copied into the local table with its
``group`` switched to the local group, so unqualified calls made from its
body dispatch to local overrides while ``super.`` calls still start from
the group that defined it.
"""

import threading
import time
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Final, override

from strtemplate._config import TemplateSettings
from strtemplate._formal_args import format_formal_arguments
from strtemplate._group_parser import parse_group
from strtemplate._listener import ErrorListener, LoggingErrorListener
from strtemplate._logging import create_logger
from strtemplate._renderers import AttributeRenderer, RendererTable
from strtemplate._template import (
    RegionType,
    StringTemplate,
    is_mangled_region_name,
    mangle_region_name,
    unmangle_region_name,
)
from strtemplate._writer import AutoIndentWriter
from strtemplate.exceptions import InterfaceViolationError, TemplateNotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from structlog.typing import FilteringBoundLogger

    from strtemplate._interface import GroupInterface
    from strtemplate._registry import GroupRegistry

__all__ = [
    "TemplateGroup",
    "TemplateLoader",
]

type TemplateLoader = Callable[[str], str | None]
"""Returns the source text of a named template, or None when it does not exist."""

_SUPER_PREFIX: Final = "super."

# Cached result of a failed lookup.
_NOT_FOUND: Final = object()


class TemplateGroup:
    """A named collection of templates, maps and renderers.

    Attributes:
        name: Group name, used in diagnostics and by the registry.
        super_group: Group consulted when a name is not defined here.
        settings: Settings shared by every template of the group.
        template_loader: Source of templates not defined programmatically,
            or None. Only loader-backed groups refresh.
        registry: Registry used to resolve super groups and interfaces by name.
        interfaces: Interfaces this group claims to implement.
    """

    def __init__(
        self,
        name: str,
        *,
        super_group: "TemplateGroup | None" = None,
        settings: TemplateSettings | None = None,
        error_listener: ErrorListener | None = None,
        template_loader: TemplateLoader | None = None,
        registry: "GroupRegistry | None" = None,
    ) -> None:
        self.name: str = name
        self.super_group: TemplateGroup | None = super_group
        self.settings: TemplateSettings = settings if settings is not None else TemplateSettings()
        self.template_loader: TemplateLoader | None = template_loader
        self.registry: GroupRegistry | None = registry
        self.interfaces: list[GroupInterface] = []
        self._templates: dict[str, object] = {}
        # names filled in by lookup rather than define_template; refresh drops only these
        self._cached: set[str] = set()
        self._maps: dict[str, Mapping[Any, Any]] = {}  # pyright: ignore[reportExplicitAny]
        self._renderers: RendererTable = RendererTable()
        self._listener: ErrorListener | None = error_listener
        self._logger: FilteringBoundLogger | None = None
        self._lock: threading.RLock = threading.RLock()
        self._last_checked: float = time.monotonic()

    @classmethod
    def from_source(
        cls,
        text: str,
        *,
        settings: TemplateSettings | None = None,
        error_listener: ErrorListener | None = None,
        registry: "GroupRegistry | None" = None,
        super_group: "TemplateGroup | None" = None,
    ) -> "TemplateGroup":
        """Build a group from group source text.

        The source names the group, its super group and the interfaces it
        implements; super groups and interfaces given by name are resolved
        through ``registry``. Problems are reported to the error listener.
        The new group is registered in ``registry`` when one is given.
        """
        group = cls(
            "unnamed",
            super_group=super_group,
            settings=settings,
            error_listener=error_listener,
            registry=registry,
        )
        parse_group(group, text)
        group.verify_interface_implementations()
        if registry is not None:
            registry.register_group(group)
        return group

    # =========================================================================
    # Diagnostics
    # =========================================================================

    @property
    def logger(self) -> "FilteringBoundLogger":
        if self._logger is None:
            self._logger = create_logger(
                self.settings.logging.level,
                log_format=self.settings.logging.format,
            ).bind(group=self.name)
        return self._logger

    @property
    def error_listener(self) -> ErrorListener:
        if self._listener is None:
            self._listener = LoggingErrorListener(self.logger)
        return self._listener

    @error_listener.setter
    def error_listener(self, listener: ErrorListener | None) -> None:
        self._listener = listener

    def error(self, message: str, cause: BaseException | None = None) -> None:
        self.error_listener.error(message, cause)

    def warning(self, message: str) -> None:
        self.error_listener.warning(message)

    def get_group_hierarchy_stack_string(self) -> str:
        """Return the super group chain topmost first, e.g. ``[base sub]``."""
        names: list[str] = []
        group: TemplateGroup | None = self
        while group is not None:
            names.append(group.name)
            group = group.super_group
        return "[" + " ".join(reversed(names)) + "]"

    # =========================================================================
    # Super groups and interfaces
    # =========================================================================

    def set_super_group(self, super_group: "TemplateGroup | str") -> None:
        """Set the super group, resolving a name through the registry."""
        if not isinstance(super_group, str):
            self.super_group = super_group
            return
        resolved = self.registry.lookup_group(super_group) if self.registry else None
        if resolved is not None:
            self.super_group = resolved
        elif self.registry is None or self.registry.loader is None:
            self.error("no group loader registered")
        else:
            self.error(f"no such group: {super_group}")

    def implement_interface(self, interface: "GroupInterface | str") -> None:
        """Declare that this group implements ``interface``.

        Conformance is checked by ``verify_interface_implementations``.
        """
        if not isinstance(interface, str):
            self.interfaces.append(interface)
            return
        resolved = self.registry.lookup_interface(interface) if self.registry else None
        if resolved is not None:
            self.interfaces.append(resolved)
        elif self.registry is None or self.registry.loader is None:
            self.error("no group loader registered")
        else:
            self.error(f"no such interface: {interface}")

    def verify_interface_implementations(
        self, interfaces: "Sequence[GroupInterface] | None" = None
    ) -> None:
        """Report every interface template this group lacks or mismatches.

        Checks ``interfaces`` when given, otherwise every interface the group
        declares it implements.
        """
        for interface in self.interfaces if interfaces is None else interfaces:
            missing = interface.get_missing_templates(self)
            mismatched = interface.get_mismatched_templates(self)
            prefix = f"group {self.name} does not satisfy interface {interface.name}"
            if missing:
                message = f"{prefix}: missing templates [{', '.join(missing)}]"
                self.error(
                    message,
                    InterfaceViolationError(
                        message, interface=interface.name, missing=missing
                    ),
                )
            if mismatched:
                message = (
                    f"{prefix}: mismatched arguments on these templates "
                    f"[{', '.join(mismatched)}]"
                )
                self.error(
                    message,
                    InterfaceViolationError(
                        message, interface=interface.name, mismatched=mismatched
                    ),
                )

    # =========================================================================
    # Lookup
    # =========================================================================

    def lookup_template(
        self, name: str, enclosing: StringTemplate | None = None
    ) -> StringTemplate:
        """Return the prototype of ``name``.

        ``super.name`` is looked up starting at the super group. A name
        found only in a super group is copied into this group. Failed
        lookups are cached until the next refresh.

        Raises:
            TemplateNotFoundError: If neither this group nor a super group
                defines ``name``.
        """
        if name.startswith(_SUPER_PREFIX):
            if self.super_group is None:
                msg = f"{self.name} has no super group; invalid template: {name}"
                raise TemplateNotFoundError(msg, name=name)
            return self.super_group.lookup_template(name[len(_SUPER_PREFIX) :], enclosing)

        with self._lock:
            self._check_refresh_interval()
            found = self._templates.get(name)
            if isinstance(found, StringTemplate):
                return found
            if found is None:
                found = self._load_template(name)
                if found is None and self.super_group is not None:
                    found = self._inherit_template(name, enclosing)
                self._templates[name] = found if found is not None else _NOT_FOUND
                self._cached.add(name)
            if isinstance(found, StringTemplate):
                return found

        context = enclosing.get_enclosing_instance_stack_string() if enclosing else ""
        hierarchy = self.get_group_hierarchy_stack_string()
        msg = f"Can't find template {name}"
        if context:
            msg += f"; context is {context}"
        msg += f"; group hierarchy is {hierarchy}"
        raise TemplateNotFoundError(msg, name=name, context=context, hierarchy=hierarchy)

    def _load_template(self, name: str) -> StringTemplate | None:
        if self.template_loader is None:
            return None
        text = self.template_loader(name)
        if text is None:
            return None
        self.logger.debug("template_loaded", template=name)
        before = set(self._templates)
        prototype = self.define_template(name, text)
        self._cached.update(self._templates.keys() - before)
        return prototype

    def _inherit_template(
        self, name: str, enclosing: StringTemplate | None
    ) -> StringTemplate | None:
        assert self.super_group is not None  # noqa: S101
        try:
            inherited = self.super_group.lookup_template(name, enclosing).get_instance_of()
        except TemplateNotFoundError:
            return None
        # native_group keeps pointing at the defining group
        inherited.group = self
        return inherited

    def _check_refresh_interval(self) -> None:
        interval = self.settings.refresh_interval
        if self.template_loader is None or interval is None:
            return
        now = time.monotonic()
        if interval == 0 or now - self._last_checked >= interval:
            self._drop_cached(now)

    def refresh(self) -> None:
        """Drop every template this group filled in during lookup.

        Templates added with :meth:`define_template` stay defined. Groups
        without a template loader are left untouched.
        """
        if self.template_loader is None:
            return
        with self._lock:
            self._drop_cached(time.monotonic())

    def _drop_cached(self, now: float) -> None:
        for name in self._cached:
            _ = self._templates.pop(name, None)
        self._cached.clear()
        self._last_checked = now
        self.logger.debug("template_cache_refreshed")

    def get_instance_of(
        self,
        name: str,
        attributes: Mapping[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
    ) -> StringTemplate:
        """Return a fresh instance of template ``name``, optionally with attributes."""
        instance = self.lookup_template(name).get_instance_of()
        if attributes:
            for key, value in attributes.items():  # pyright: ignore[reportAny]
                instance.set_attribute(key, value)
        return instance

    def get_embedded_instance_of(
        self, enclosing: StringTemplate, name: str
    ) -> StringTemplate:
        """Return an instance of ``name`` invoked from within ``enclosing``.

        ``super.`` names resolve from the group that defined ``enclosing``.
        The instance renders in this group so its own unqualified calls see
        this group's overrides.
        """
        if name.startswith(_SUPER_PREFIX):
            prototype = enclosing.native_group.lookup_template(name, enclosing)
        else:
            prototype = self.lookup_template(name, enclosing)
        instance = prototype.get_instance_of()
        instance.group = self
        instance.enclosing_instance = enclosing
        return instance

    def is_defined(self, name: str) -> bool:
        try:
            _ = self.lookup_template(name)
        except TemplateNotFoundError:
            return False
        return True

    def is_defined_in_this_group(self, name: str) -> bool:
        """True if ``name`` is defined here; implicit region stubs do not count."""
        found = self._templates.get(name)
        if not isinstance(found, StringTemplate):
            return False
        return not (found.is_region and found.region_def_type is RegionType.IMPLICIT)

    def get_template_definition(self, name: str) -> StringTemplate | None:
        """Return the prototype stored in this group's own table, if any."""
        found = self._templates.get(name)
        return found if isinstance(found, StringTemplate) else None

    def template_names(self) -> list[str]:
        """Names of the templates in this group's table, sorted."""
        return sorted(
            name for name, found in self._templates.items() if isinstance(found, StringTemplate)
        )

    # =========================================================================
    # Definitions
    # =========================================================================

    def define_template(self, name: str, template: str | None = None) -> StringTemplate:
        """Define (or replace) template ``name`` with body ``template``.

        The template is registered before its body is compiled, so the body
        may refer to the template itself.

        Raises:
            ValueError: If ``name`` contains a dot.
        """
        if "." in name:
            msg = f"cannot have '.' in template names: {name}"
            raise ValueError(msg)
        prototype = StringTemplate(group=self, name=name)
        with self._lock:
            self._templates[name] = prototype
            self._cached.discard(name)
            if template is not None:
                prototype.set_template(template)
        self.logger.debug("template_defined", template=name)
        return prototype

    def define_region_template(
        self,
        enclosing: str,
        region: str,
        template: str | None,
        region_type: RegionType,
    ) -> StringTemplate:
        """Define region ``region`` of template ``enclosing``."""
        prototype = self.define_template(mangle_region_name(enclosing, region), template)
        prototype.is_region = True
        prototype.region_def_type = region_type
        return prototype

    def define_implicit_region_template(self, enclosing: str, region: str) -> StringTemplate:
        """Define the empty stub behind a ``<@r()>`` reference.

        An existing embedded or explicit definition is kept.
        """
        with self._lock:
            existing = self._templates.get(mangle_region_name(enclosing, region))
            if (
                isinstance(existing, StringTemplate)
                and existing.region_def_type is not RegionType.IMPLICIT
            ):
                return existing
            return self.define_region_template(enclosing, region, "", RegionType.IMPLICIT)

    def define_template_alias(self, name: str, target: str) -> StringTemplate | None:
        """Make ``name`` refer to the definition of ``target``."""
        with self._lock:
            prototype = self.get_template_definition(target)
            if prototype is None:
                self.error(f"cannot alias {name} to undefined template: {target}")
                return None
            self._templates[name] = prototype
        return prototype

    def define_map(self, name: str, mapping: Mapping[Any, Any]) -> None:  # pyright: ignore[reportExplicitAny]
        """Define a named map; use ``DEFAULT_KEY`` for the fallback entry."""
        self._maps[name] = mapping

    def get_map(self, name: str) -> Mapping[Any, Any] | None:  # pyright: ignore[reportExplicitAny]
        mapping = self._maps.get(name)
        if mapping is None and self.super_group is not None:
            return self.super_group.get_map(name)
        return mapping

    # =========================================================================
    # Rendering
    # =========================================================================

    def register_renderer(self, value_type: type, renderer: AttributeRenderer) -> None:
        self._renderers.register(value_type, renderer)

    def get_attribute_renderer(self, value_type: type) -> AttributeRenderer | None:
        renderer = self._renderers.lookup(value_type)
        if renderer is None and self.super_group is not None:
            return self.super_group.get_attribute_renderer(value_type)
        return renderer

    def create_writer(self, line_width: int | None = None) -> AutoIndentWriter:
        """Return a writer configured from this group's settings."""
        return AutoIndentWriter(
            newline=self.settings.newline,
            line_width=line_width if line_width is not None else self.settings.line_width,
        )

    @override
    def __str__(self) -> str:
        lines = [f"group {self.name};"]
        for name in self.template_names():
            prototype = self._templates[name]
            assert isinstance(prototype, StringTemplate)  # noqa: S101
            body = prototype.pattern or ""
            if prototype.is_region and is_mangled_region_name(name):
                region = name.rpartition("__")[2]
                lines.append(f"@{unmangle_region_name(name)}.{region}() ::= <<{body}>>")
            else:
                arguments = format_formal_arguments(prototype.formal_arguments, ",")
                lines.append(f"{name}({arguments}) ::= <<{body}>>")
        return "\n".join(lines) + "\n"

    @override
    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
