from __future__ import annotations

import asyncio
import inspect
import threading
from collections.abc import Awaitable, Callable
from typing import Any

from depgraph_notify.config import get_settings
from depgraph_notify.utils.log import logger

from .adapter import DisplayAdapter, LogDisplayAdapter, ProgressTask, StatusBarMessage
from .base import (
    NotificationAction,
    NotificationPriority,
    NotificationRequest,
    NotificationType,
)
from .dispatcher import Dispatcher, QueuedNotification
from .queue import PriorityQueue

ActionLike = str | NotificationAction


def _retrieve_exception(fut: asyncio.Future) -> None:
    # a cancelled caller never awaits its request; keep asyncio from warning about it
    if not fut.cancelled():
        fut.exception()


def _split_actions(actions: tuple[ActionLike, ...]) -> tuple[tuple[str, ...], dict[str, NotificationAction]]:
    labels: list[str] = []
    callbacks: dict[str, NotificationAction] = {}
    for a in actions:
        if isinstance(a, NotificationAction):
            labels.append(str(a.text))
            if a.callback is not None:
                callbacks[str(a.text)] = a
        else:
            labels.append(str(a))
    return tuple(labels), callbacks


class NotificationService:
    """
    Facade over the notification queue and its dispatcher.

    Built by the host's composition root and handed to callers; `install()`
    / `get_instance()` / `reset_instance()` remain for code that wants a
    process-wide accessor.

    Every `show_*` call resolves with the response to *its own* request:
    the chosen action label, or None when dismissed, evicted or cleared.
    """

    _singleton: "NotificationService | None" = None
    _singleton_lock = threading.Lock()

    def __init__(
        self,
        adapter: DisplayAdapter | None = None,
        *,
        max_queue_size: int | None = None,
        cooldown_ms: float | None = None,
        status_bar_ms: int | None = None,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        s = get_settings()
        self.adapter: DisplayAdapter = adapter if adapter is not None else LogDisplayAdapter()
        self.status_bar_ms = int(status_bar_ms if status_bar_ms is not None else s.notify_status_bar_ms)
        size = int(max_queue_size if max_queue_size is not None else s.notify_max_queue_size)
        cooldown_s = (
            float(cooldown_ms) / 1000.0 if cooldown_ms is not None else float(s.notify_cooldown_s)
        )
        self._queue: PriorityQueue[QueuedNotification] = PriorityQueue(max_queue_size=size)
        kw: dict[str, Any] = {}
        if clock is not None:
            kw["clock"] = clock
        if sleep is not None:
            kw["sleep"] = sleep
        self._dispatcher = Dispatcher(queue=self._queue, adapter=self.adapter, cooldown_s=cooldown_s, **kw)

    # --- process-wide accessor ---

    @classmethod
    def install(cls, service: "NotificationService") -> None:
        with cls._singleton_lock:
            prev = cls._singleton
            cls._singleton = service
        if prev is not None and prev is not service:
            prev.dispose()

    @classmethod
    def instance_optional(cls) -> "NotificationService | None":
        return cls._singleton

    @classmethod
    def get_instance(cls) -> "NotificationService":
        with cls._singleton_lock:
            if cls._singleton is None:
                cls._singleton = cls()
                logger.info("notify_service_created", max_queue_size=cls._singleton.max_queue_size)
            return cls._singleton

    @classmethod
    def reset_instance(cls) -> None:
        """Dispose and drop the process-wide instance (for tests). Safe with no instance."""
        with cls._singleton_lock:
            inst, cls._singleton = cls._singleton, None
        if inst is not None:
            inst.dispose()

    # --- state ---

    @property
    def max_queue_size(self) -> int:
        return self._queue.max_queue_size

    @property
    def cooldown_ms(self) -> float:
        return self._dispatcher.cooldown_s * 1000.0

    @property
    def is_processing(self) -> bool:
        return self._dispatcher.is_processing

    def get_queue_size(self) -> int:
        return len(self._queue)

    def pending(self) -> list[NotificationRequest]:
        """Queued requests, front first."""
        return [e.request for e in self._queue]

    # --- entry points ---

    async def show_notification(
        self,
        request: NotificationRequest,
        *,
        callbacks: dict[str, NotificationAction] | None = None,
    ) -> str | None:
        loop = asyncio.get_running_loop()
        entry = QueuedNotification(request=request, future=loop.create_future())
        entry.future.add_done_callback(_retrieve_exception)
        evicted = self._queue.insert(entry)
        if evicted:
            logger.info("notify_evicted", count=len(evicted), queued=len(self._queue))
            for e in evicted:
                e.resolve(None)
        logger.debug(
            "notify_enqueued",
            kind=request.type.value,
            priority=request.priority.value,
            queued=len(self._queue),
        )
        self._dispatcher.kick()

        # shielded: a cancelled caller does not withdraw an already queued request
        response = await asyncio.shield(entry.future)
        if response is not None and callbacks:
            action = callbacks.get(response)
            if action is not None:
                await self._run_action(action)
        return response

    async def show_info(
        self,
        message: str,
        *actions: ActionLike,
        timeout_ms: float | None = None,
        detail: str | None = None,
        modal: bool = False,
        priority: NotificationPriority | str = NotificationPriority.normal,
    ) -> str | None:
        return await self._show_typed(
            NotificationType.info, message, actions, duration=timeout_ms, detail=detail, modal=modal, priority=priority
        )

    async def show_warning(
        self,
        message: str,
        *actions: ActionLike,
        timeout_ms: float | None = None,
        detail: str | None = None,
        modal: bool = False,
        priority: NotificationPriority | str = NotificationPriority.normal,
    ) -> str | None:
        return await self._show_typed(
            NotificationType.warning, message, actions, duration=timeout_ms, detail=detail, modal=modal, priority=priority
        )

    async def show_error(
        self,
        message: str,
        *actions: ActionLike,
        detail: str | None = None,
        modal: bool = False,
        priority: NotificationPriority | str = NotificationPriority.high,
    ) -> str | None:
        return await self._show_typed(
            NotificationType.error, message, actions, duration=None, detail=detail, modal=modal, priority=priority
        )

    async def show_progress(self, title: str, task: ProgressTask, *, cancellable: bool = False) -> Any:
        """
        Run `task` under the host's progress surface.

        Progress is a long-lived operation rather than a point-in-time event,
        so it bypasses the queue and the cooldown entirely.
        """
        return await self.adapter.with_progress(title, task, cancellable=bool(cancellable))

    def show_status_bar_message(self, message: str, duration_ms: int | None = None) -> StatusBarMessage:
        ms = int(duration_ms if duration_ms is not None else self.status_bar_ms)
        return self.adapter.set_status_bar_message(message, ms)

    # --- maintenance ---

    def clear_queue(self) -> int:
        """Drop every queued request (waiters get None). Returns how many were dropped."""
        removed = self._queue.clear()
        for e in removed:
            e.resolve(None)
        if removed:
            logger.info("notify_queue_cleared", count=len(removed))
        return len(removed)

    async def flush(self) -> None:
        """Wait until the current drain pass (if any) has finished."""
        await self._dispatcher.join()

    def dispose(self) -> None:
        self.clear_queue()
        self._dispatcher.close()

    # --- internals ---

    async def _show_typed(
        self,
        kind: NotificationType,
        message: str,
        actions: tuple[ActionLike, ...],
        *,
        duration: float | None,
        detail: str | None,
        modal: bool,
        priority: NotificationPriority | str,
    ) -> str | None:
        labels, callbacks = _split_actions(actions)
        req = NotificationRequest(
            message=message,
            type=kind,
            priority=NotificationPriority(priority),
            actions=labels,
            duration=duration,
            detail=detail,
            modal=modal,
        )
        return await self.show_notification(req, callbacks=callbacks)

    async def _run_action(self, action: NotificationAction) -> None:
        try:
            res = action.callback() if action.callback is not None else None
            if inspect.isawaitable(res):
                await res
        except Exception:
            logger.exception("notify_action_failed", action=action.text)
