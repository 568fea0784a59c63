from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from depgraph_notify.utils.log import logger

from .base import NotificationType


@dataclass(frozen=True, slots=True)
class DisplayOptions:
    type: NotificationType = NotificationType.info
    modal: bool = False
    detail: str | None = None
    actions: Sequence[str] = ()
    duration: float | None = None  # ms, advisory


@dataclass(frozen=True, slots=True)
class ProgressReport:
    message: str | None = None
    increment: float | None = None


class ProgressReporter(Protocol):
    def report(self, value: ProgressReport) -> None: ...


class CancellationToken:
    """Set by the host surface when the user cancels a progress operation."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


ProgressTask = Callable[[ProgressReporter, CancellationToken], Awaitable[Any]]


@dataclass(slots=True)
class StatusBarMessage:
    """Handle for a transient status-bar message; `dispose()` hides it early."""

    text: str
    duration_ms: int
    disposed: bool = False

    def dispose(self) -> None:
        self.disposed = True


class DisplayAdapter(Protocol):
    """
    Host notification surface (toast / dialog / status line).

    `show()` resolves to the label of the action the user picked, or None if
    the notification was dismissed without a choice.
    """

    async def show(self, message: str, options: DisplayOptions) -> str | None: ...

    async def with_progress(self, title: str, task: ProgressTask, *, cancellable: bool = False) -> Any: ...

    def set_status_bar_message(self, message: str, duration_ms: int) -> StatusBarMessage: ...


class _LogProgress:
    def __init__(self, title: str) -> None:
        self.title = title
        self.done = 0.0

    def report(self, value: ProgressReport) -> None:
        if value.increment:
            self.done += float(value.increment)
        logger.info("notify_progress", title=self.title, message=value.message, done=self.done)


class LogDisplayAdapter:
    """
    Headless display surface: writes every notification to the log and never
    returns a user choice. Used when no host surface has been installed.
    """

    async def show(self, message: str, options: DisplayOptions) -> str | None:
        level = "warning" if options.type in {NotificationType.warning, NotificationType.error} else "info"
        getattr(logger, level)(
            "notify_display",
            kind=NotificationType(options.type).value,
            text=message,
            detail=options.detail,
            modal=bool(options.modal),
            actions=list(options.actions),
        )
        return None

    async def with_progress(self, title: str, task: ProgressTask, *, cancellable: bool = False) -> Any:
        token = CancellationToken()
        logger.info("notify_progress_start", title=title, cancellable=bool(cancellable))
        try:
            return await task(_LogProgress(title), token)
        finally:
            logger.info("notify_progress_end", title=title)

    def set_status_bar_message(self, message: str, duration_ms: int) -> StatusBarMessage:
        logger.info("notify_status_bar", text=message, duration_ms=int(duration_ms))
        return StatusBarMessage(text=message, duration_ms=int(duration_ms))
