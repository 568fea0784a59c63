from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from depgraph_notify.utils.log import logger

from .adapter import DisplayAdapter, DisplayOptions
from .base import NotificationPriority, NotificationRequest, NotificationType
from .queue import PriorityQueue


class DeliveryFailed(RuntimeError):
    """The display adapter raised while showing `request`. Not retried."""

    def __init__(self, request: NotificationRequest, error: BaseException) -> None:
        super().__init__(f"notification delivery failed: {error}")
        self.request = request


@dataclass(slots=True)
class QueuedNotification:
    request: NotificationRequest
    future: asyncio.Future | None = None

    @property
    def priority(self) -> NotificationPriority:
        return self.request.priority

    def resolve(self, value: str | None) -> None:
        if self.future is not None and not self.future.done():
            self.future.set_result(value)

    def fail(self, error: BaseException) -> None:
        if self.future is not None and not self.future.done():
            self.future.set_exception(error)


class Dispatcher:
    """
    Single-flight drain loop.

    - kick() starts one drain task if idle; while draining, further kicks are
      no-ops because the loop re-checks the queue before going idle
    - non-high entries are spaced at least `cooldown_s` after the previous
      delivery; high entries skip the cooldown
    - an adapter failure fails only that entry, the loop moves on
    - drain() runs a pass through the same guard, or waits for the running one

    `is_processing` is a cooperative guard; everything runs on one event loop.
    """

    def __init__(
        self,
        *,
        queue: PriorityQueue[QueuedNotification],
        adapter: DisplayAdapter,
        cooldown_s: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.queue = queue
        self.adapter = adapter
        self.cooldown_s = max(0.0, float(cooldown_s))
        self._clock = clock
        self._sleep = sleep
        self.is_processing = False
        self.last_delivery_at: float | None = None
        self._task: asyncio.Task | None = None
        self._inflight: QueuedNotification | None = None
        self._last_result: str | None = None

    def kick(self) -> bool:
        """Start draining if idle. Returns True when this call started the drain."""
        if self.is_processing:
            return False
        self.is_processing = True
        self._task = asyncio.create_task(self._run(), name="notify.drain")
        return True

    async def join(self) -> None:
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def drain(self) -> str | None:
        """
        Run a drain pass now, or wait for the one already running.
        Returns the response of the last entry delivered by that pass.
        """
        self.kick()
        await self.join()
        return self._last_result

    def close(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        if self._inflight is not None:
            self._inflight.resolve(None)
            self._inflight = None
        self.is_processing = False

    async def _run(self) -> None:
        me = asyncio.current_task()
        crashed = False
        try:
            self._last_result = await self._drain()
        except asyncio.CancelledError:
            logger.info("task stopped", task="notify.drain")
            if self._inflight is not None:
                self._inflight.resolve(None)
                self._inflight = None
        except Exception:
            crashed = True
            logger.exception("notify_drain_crashed", queued=len(self.queue))
            # the entry being handled is dropped as not shown
            if self._inflight is not None:
                self._inflight.resolve(None)
                self._inflight = None
        finally:
            # close() may have handed the guard to a newer drain already
            if self._task is me:
                self._task = None
                self.is_processing = False
                # every crash consumes the entry it was on, so this terminates
                if crashed and len(self.queue) > 0:
                    self.kick()

    async def _drain(self) -> str | None:
        result: str | None = None
        while len(self.queue) > 0:
            entry = self.queue.dequeue_front()
            req = entry.request
            self._inflight = entry

            if req.priority != NotificationPriority.high and self.last_delivery_at is not None:
                elapsed = self._clock() - self.last_delivery_at
                if elapsed < self.cooldown_s:
                    wait_s = self.cooldown_s - elapsed
                    logger.debug("notify_cooldown", wait_s=round(wait_s, 3), queued=len(self.queue))
                    await self._sleep(wait_s)

            try:
                result = await self._deliver(req)
            except Exception as ex:
                logger.warning(
                    "notify_delivery_failed",
                    kind=req.type.value,
                    priority=req.priority.value,
                    error=str(ex),
                )
                err = DeliveryFailed(req, ex)
                err.__cause__ = ex
                entry.fail(err)
                continue
            finally:
                self._inflight = None

            self.last_delivery_at = self._clock()
            entry.resolve(result)
            logger.info(
                "notify_delivered",
                kind=req.type.value,
                priority=req.priority.value,
                response=result,
                queued=len(self.queue),
            )
        return result

    async def _deliver(self, req: NotificationRequest) -> str | None:
        if req.type == NotificationType.progress:
            # progress is shown through show_progress(), never through the queue
            return None
        opts = DisplayOptions(
            type=req.type,
            modal=req.modal,
            detail=req.detail,
            actions=req.actions,
            duration=req.duration,
        )
        return await self.adapter.show(req.message, opts)
