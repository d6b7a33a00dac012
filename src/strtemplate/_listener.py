"""Diagnostic sinks for recoverable template problems."""

from typing import TYPE_CHECKING, Protocol, override, runtime_checkable

from strtemplate._logging import create_logger

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

__all__ = [
    "ErrorBuffer",
    "ErrorListener",
    "LoggingErrorListener",
]


@runtime_checkable
class ErrorListener(Protocol):
    """Receives errors and warnings that do not abort rendering."""

    def error(self, message: str, cause: BaseException | None = None) -> None: ...

    def warning(self, message: str) -> None: ...


class LoggingErrorListener:
    """Default listener that forwards diagnostics to a structlog logger."""

    def __init__(self, logger: "FilteringBoundLogger | None" = None) -> None:
        self._logger: FilteringBoundLogger = (
            logger if logger is not None else create_logger()
        )

    def error(self, message: str, cause: BaseException | None = None) -> None:
        if cause is not None:
            self._logger.error(
                "template_error",
                message=message,
                cause=f"{type(cause).__name__}: {cause}",
            )
        else:
            self._logger.error("template_error", message=message)

    def warning(self, message: str) -> None:
        self._logger.warning("template_warning", message=message)


class ErrorBuffer:
    """Listener that collects messages in memory.

    Errors and warnings are kept in arrival order. ``str(buffer)`` joins them
    with newlines, which makes the buffer convenient in tests and in tools that
    want to report every problem from a single pass.

    Attributes:
        errors: Every message received, in order.
        causes: Exceptions passed along with ``error`` calls, in order.
    """

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.causes: list[BaseException] = []

    def error(self, message: str, cause: BaseException | None = None) -> None:
        self.errors.append(message)
        if cause is not None:
            self.causes.append(cause)

    def warning(self, message: str) -> None:
        self.errors.append(message)

    def __bool__(self) -> bool:
        return bool(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    @override
    def __str__(self) -> str:
        return "\n".join(self.errors)
