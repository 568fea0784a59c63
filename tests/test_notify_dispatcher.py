from __future__ import annotations

import asyncio

import pytest

from depgraph_notify.notify.base import NotificationRequest
from depgraph_notify.notify.dispatcher import DeliveryFailed, Dispatcher, QueuedNotification
from depgraph_notify.notify.queue import PriorityQueue
from tests._helpers.display import FakeClock, RecordingDisplay


def _setup(cooldown_s: float = 1.0) -> tuple[Dispatcher, RecordingDisplay, FakeClock]:
    clock = FakeClock()
    display = RecordingDisplay(clock=clock)
    q: PriorityQueue[QueuedNotification] = PriorityQueue(max_queue_size=10)
    d = Dispatcher(queue=q, adapter=display, cooldown_s=cooldown_s, clock=clock, sleep=clock.sleep)
    return d, display, clock


def _entry(msg: str, priority: str = "normal", kind: str = "info", *, fut: bool = False) -> QueuedNotification:
    req = NotificationRequest(message=msg, type=kind, priority=priority)
    future = asyncio.get_running_loop().create_future() if fut else None
    return QueuedNotification(request=req, future=future)


def test_normal_deliveries_are_spaced_by_cooldown() -> None:
    d, display, clock = _setup(cooldown_s=1.0)

    async def run() -> None:
        d.queue.insert(_entry("a"))
        d.queue.insert(_entry("b"))
        await d.drain()

    asyncio.run(run())
    assert display.messages == ["a", "b"]
    assert display.shown[1].at - display.shown[0].at >= 1.0
    assert clock.sleeps == [pytest.approx(1.0)]


def test_first_delivery_is_not_delayed() -> None:
    d, display, clock = _setup()

    async def run() -> None:
        d.queue.insert(_entry("only"))
        await d.drain()

    asyncio.run(run())
    assert clock.sleeps == []
    assert d.last_delivery_at == clock.now


def test_high_priority_skips_cooldown() -> None:
    d, display, clock = _setup(cooldown_s=1.0)

    async def run() -> None:
        d.queue.insert(_entry("n"))
        await d.drain()
        d.queue.insert(_entry("h", "high", "error"))
        await d.drain()

    asyncio.run(run())
    assert display.messages == ["n", "h"]
    assert clock.sleeps == []
    assert display.shown[1].at == display.shown[0].at


def test_only_remaining_cooldown_is_waited() -> None:
    d, display, clock = _setup(cooldown_s=1.0)

    async def run() -> None:
        d.queue.insert(_entry("a"))
        await d.drain()
        clock.now += 0.4
        d.queue.insert(_entry("b"))
        await d.drain()

    asyncio.run(run())
    assert clock.sleeps == [pytest.approx(0.6)]


def test_drain_returns_last_response() -> None:
    d, display, _ = _setup(cooldown_s=0)
    display.responses = {"a": "Open", "b": "Retry"}

    async def run() -> str | None:
        d.queue.insert(_entry("a"))
        d.queue.insert(_entry("b"))
        return await d.drain()

    assert asyncio.run(run()) == "Retry"


def test_failed_delivery_fails_entry_and_loop_continues() -> None:
    d, display, _ = _setup(cooldown_s=0)
    boom = RuntimeError("surface gone")
    display.failures = {"bad": boom}
    display.responses = {"good": "OK"}

    async def run() -> tuple[QueuedNotification, QueuedNotification, str | None]:
        bad = _entry("bad", fut=True)
        good = _entry("good", fut=True)
        d.queue.insert(bad)
        d.queue.insert(good)
        last = await d.drain()
        return bad, good, last

    bad, good, last = asyncio.run(run())
    assert display.messages == ["bad", "good"]
    assert last == "OK"
    assert good.future.result() == "OK"
    err = bad.future.exception()
    assert isinstance(err, DeliveryFailed)
    assert err.__cause__ is boom
    assert err.request.message == "bad"


def test_failed_delivery_does_not_advance_last_delivery() -> None:
    d, display, _ = _setup()
    display.failures = {"bad": RuntimeError("x")}

    async def run() -> None:
        d.queue.insert(_entry("bad"))
        await d.drain()

    asyncio.run(run())
    assert d.last_delivery_at is None


def test_progress_requests_do_not_reach_adapter() -> None:
    d, display, _ = _setup(cooldown_s=0)

    async def run() -> str | None:
        d.queue.insert(_entry("working", kind="progress"))
        return await d.drain()

    assert asyncio.run(run()) is None
    assert display.messages == []


def test_kick_is_single_flight_and_picks_up_late_entries() -> None:
    d, display, _ = _setup(cooldown_s=0.5)

    async def run() -> list[bool]:
        d.queue.insert(_entry("a"))
        d.queue.insert(_entry("b"))
        started = [d.kick(), d.kick()]
        await asyncio.sleep(0)
        assert d.is_processing is True
        # arrives while the loop waits out the cooldown
        d.queue.insert(_entry("c"))
        started.append(d.kick())
        await d.join()
        return started

    started = asyncio.run(run())
    assert started == [True, False, False]
    assert display.messages == ["a", "b", "c"]
    assert d.is_processing is False
    assert len(d.queue) == 0


def test_close_cancels_drain_and_resolves_inflight() -> None:
    d, display, _ = _setup(cooldown_s=0)

    async def run() -> QueuedNotification:
        display.gate = asyncio.Event()
        e = _entry("stuck", fut=True)
        d.queue.insert(e)
        d.kick()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert display.messages == ["stuck"]
        d.close()
        await asyncio.sleep(0)
        return e

    e = asyncio.run(run())
    assert e.future.result() is None
    assert d.is_processing is False


def test_concurrent_drain_calls_do_not_overlap_deliveries() -> None:
    d, display, _ = _setup(cooldown_s=0)
    display.yield_in_show = True

    async def run() -> None:
        for msg in ("a", "b", "c", "d"):
            d.queue.insert(_entry(msg))
        assert d.kick() is True
        await asyncio.gather(d.drain(), d.drain(), d.join())

    asyncio.run(run())
    assert display.max_in_flight == 1
    assert display.messages == ["a", "b", "c", "d"]
    assert d.is_processing is False


def test_drain_waits_for_running_pass_and_returns_its_last_response() -> None:
    d, display, _ = _setup(cooldown_s=0)
    display.yield_in_show = True
    display.responses = {"x": "First", "y": "Second"}

    async def run() -> str | None:
        d.queue.insert(_entry("x"))
        d.queue.insert(_entry("y"))
        d.kick()
        await asyncio.sleep(0)
        return await d.drain()

    assert asyncio.run(run()) == "Second"
    assert display.messages == ["x", "y"]
