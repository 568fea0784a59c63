from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"
    progress = "progress"


class NotificationPriority(str, Enum):
    low = "low"
    normal = "normal"
    high = "high"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    NotificationPriority.low: 1,
    NotificationPriority.normal: 2,
    NotificationPriority.high: 3,
}


@dataclass(frozen=True, slots=True)
class NotificationRequest:
    """
    One notification to show.

    Only `priority` matters to the queue; `type`, `modal`, `detail` and
    `duration` are passed through to the display adapter untouched.
    `duration` is an auto-dismiss hint in milliseconds.
    """

    message: str
    type: NotificationType = NotificationType.info
    priority: NotificationPriority = NotificationPriority.normal
    actions: tuple[str, ...] = ()
    duration: float | None = None
    detail: str | None = None
    modal: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "message", str(self.message))
        object.__setattr__(self, "type", NotificationType(self.type))
        object.__setattr__(self, "priority", NotificationPriority(self.priority))
        actions: Iterable[Any] = self.actions or ()
        if isinstance(actions, str):
            actions = (actions,)
        object.__setattr__(self, "actions", tuple(str(a) for a in actions))
        if self.duration is not None:
            object.__setattr__(self, "duration", float(self.duration))
        object.__setattr__(self, "modal", bool(self.modal))


ActionCallback = Callable[[], Any]


@dataclass(frozen=True, slots=True)
class NotificationAction:
    """An action button: `text` is the label shown, `callback` runs when the user picks it."""

    text: str
    callback: ActionCallback | None = None
