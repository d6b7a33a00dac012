"""strtemplate exceptions."""

from pathlib import Path


class TemplateError(Exception):
    """Base exception for strtemplate errors."""


# =============================================================================
# Hard errors (raised at the call site)
# =============================================================================


class UnknownAttributeError(TemplateError, LookupError):
    """Raised when an attribute name is absent from a declared formal argument list.

    Attributes:
        name: The attribute name that could not be matched.
        context: The enclosing instance stack string at the failure point.
    """

    def __init__(self, message: str, *, name: str, context: str = "") -> None:
        """Initialize with error message and attribute context."""
        super().__init__(message)
        self.name: str = name
        self.context: str = context


class InvalidAttributeNameError(TemplateError, ValueError):
    """Raised when an attribute name or aggregate spec is malformed."""


class TemplateNotFoundError(TemplateError, LookupError):
    """Raised when a template cannot be found in a group or any super group.

    Attributes:
        name: The template name that was looked up.
        context: Enclosing instance stack string of the invoking template.
        hierarchy: Group hierarchy string, topmost super group first.
    """

    def __init__(
        self,
        message: str,
        *,
        name: str,
        context: str = "",
        hierarchy: str = "",
    ) -> None:
        """Initialize with error message and lookup context."""
        super().__init__(message)
        self.name: str = name
        self.context: str = context
        self.hierarchy: str = hierarchy


class RecursiveApplicationError(TemplateError, RuntimeError):
    """Raised in lint mode when an instance reappears in its own enclosing chain.

    Attributes:
        trace: The rendered enclosing instance stack trace.
    """

    def __init__(self, message: str, *, trace: str) -> None:
        """Initialize with error message and the enclosing stack trace."""
        super().__init__(message)
        self.trace: str = trace


class TemplateSyntaxError(TemplateError, ValueError):
    """Raised when template, group or interface source cannot be parsed.

    Attributes:
        line: 1-based line number of the problem, if known.
        column: 1-based column number of the problem, if known.
        source_name: Name of the template, group or interface being parsed.
    """

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        column: int | None = None,
        source_name: str | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.line: int | None = line
        self.column: int | None = column
        self.source_name: str | None = source_name


# =============================================================================
# Diagnostics (passed as the cause to ErrorListener.error)
# =============================================================================


class ArityMismatchError(TemplateError):
    """An application whose parameter count does not match its attribute lists."""

    def __init__(self, message: str, *, expected: int, actual: int) -> None:
        """Initialize with error message and both counts."""
        super().__init__(message)
        self.expected: int = expected
        self.actual: int = actual


class RegionRedefinitionError(TemplateError):
    """A region defined more than once for the same enclosing template."""

    def __init__(self, message: str, *, template: str, region: str) -> None:
        """Initialize with error message and the region coordinates."""
        super().__init__(message)
        self.template: str = template
        self.region: str = region


class InterfaceViolationError(TemplateError):
    """A group is missing or mismatching templates required by an interface.

    Attributes:
        interface: Name of the violated interface.
        missing: Names of required templates the group lacks.
        mismatched: Signatures whose formal arguments differ.
    """

    def __init__(
        self,
        message: str,
        *,
        interface: str,
        missing: list[str] | None = None,
        mismatched: list[str] | None = None,
    ) -> None:
        """Initialize with error message and violation details."""
        super().__init__(message)
        self.interface: str = interface
        self.missing: list[str] = missing or []
        self.mismatched: list[str] = mismatched or []


# =============================================================================
# Settings Exceptions
# =============================================================================


class SettingsLoadError(TemplateError):
    """Raised when a settings file cannot be read or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column
