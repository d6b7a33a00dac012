"""Registry of groups and interfaces resolvable by name.

Group source refers to super groups and interfaces by name. Those names are
resolved through a ``GroupRegistry`` that the caller creates and passes to
``TemplateGroup.from_source``; a registry resolves a name from what has been
registered and otherwise asks its ``GroupLoader``. Loaded groups and
interfaces are registered so each is loaded once.

Example:
    >>> loader = MappingGroupLoader(groups={"base": "group base; b(x) ::= <<*<x>*>>"})
    >>> registry = GroupRegistry(loader)
    >>> group = TemplateGroup.from_source(
    ...     'group page : base; main(x) ::= "<b(x)>"', registry=registry
    ... )
    >>> group.get_instance_of("main", {"x": "hi"}).render()
    '*hi*'
"""

import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from strtemplate._group import TemplateGroup
from strtemplate._interface import GroupInterface
from strtemplate._logging import get_logger

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from strtemplate._config import TemplateSettings
    from strtemplate._listener import ErrorListener

__all__ = [
    "GroupLoader",
    "GroupRegistry",
    "MappingGroupLoader",
]


@runtime_checkable
class GroupLoader(Protocol):
    """Finds groups and interfaces that are not registered yet."""

    def load_group(self, name: str, registry: "GroupRegistry") -> TemplateGroup | None: ...

    def load_interface(self, name: str) -> GroupInterface | None: ...


class MappingGroupLoader:
    """Loader over group and interface sources held in memory.

    Attributes:
        groups: Group name to group source.
        interfaces: Interface name to interface source.
    """

    def __init__(
        self,
        groups: Mapping[str, str] | None = None,
        interfaces: Mapping[str, str] | None = None,
        *,
        settings: "TemplateSettings | None" = None,
        error_listener: "ErrorListener | None" = None,
    ) -> None:
        self.groups: dict[str, str] = dict(groups or {})
        self.interfaces: dict[str, str] = dict(interfaces or {})
        self._settings: TemplateSettings | None = settings
        self._listener: ErrorListener | None = error_listener

    def load_group(self, name: str, registry: "GroupRegistry") -> TemplateGroup | None:
        source = self.groups.get(name)
        if source is None:
            return None
        return TemplateGroup.from_source(
            source,
            settings=self._settings,
            error_listener=self._listener,
            registry=registry,
        )

    def load_interface(self, name: str) -> GroupInterface | None:
        source = self.interfaces.get(name)
        if source is None:
            return None
        return GroupInterface.from_source(source, error_listener=self._listener)


class GroupRegistry:
    """Thread-safe name to group and name to interface tables.

    Attributes:
        loader: Consulted for names that are not registered, or None.
    """

    def __init__(self, loader: GroupLoader | None = None) -> None:
        self.loader: GroupLoader | None = loader
        self._groups: dict[str, TemplateGroup] = {}
        self._interfaces: dict[str, GroupInterface] = {}
        # Reentrant: loading a group registers it, and may load its super group.
        self._lock: threading.RLock = threading.RLock()
        self._logger: FilteringBoundLogger = get_logger("registry")

    def register_group(self, group: TemplateGroup) -> None:
        with self._lock:
            self._groups[group.name] = group

    def register_interface(self, interface: GroupInterface) -> None:
        with self._lock:
            self._interfaces[interface.name] = interface

    def lookup_group(self, name: str) -> TemplateGroup | None:
        """Return the group called ``name``, loading it if needed."""
        with self._lock:
            group = self._groups.get(name)
            if group is None and self.loader is not None:
                group = self.loader.load_group(name, self)
                if group is not None:
                    self._logger.debug("group_loaded", name=name)
                    self._groups[name] = group
            return group

    def lookup_interface(self, name: str) -> GroupInterface | None:
        """Return the interface called ``name``, loading it if needed."""
        with self._lock:
            interface = self._interfaces.get(name)
            if interface is None and self.loader is not None:
                interface = self.loader.load_interface(name)
                if interface is not None:
                    self._logger.debug("interface_loaded", name=name)
                    self._interfaces[name] = interface
            return interface

    def clear(self) -> None:
        """Forget every registered group and interface."""
        with self._lock:
            self._groups.clear()
            self._interfaces.clear()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._groups
