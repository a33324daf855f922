"""Wizard event stream.

Wizard, resolver, capture and API client publish SystemEvents here; the
host application subscribes whatever it needs (audit trail, analytics,
UI notifications). Publishing never waits for subscribers: events are
queued and fanned out by a background task on the running loop.

Usage:
    from loanwizard.events import subscribe

    async def on_blocked(event: SystemEvent) -> None:
        ...

    subscribe(on_blocked, event_types=[EventType.WIZARD_STEP_BLOCKED])
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from loanwizard.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]

# Handlers with no type filter see every event.
_catch_all: list[EventHandler] = []
_by_type: dict[EventType, list[EventHandler]] = {}

_queue: asyncio.Queue[SystemEvent] | None = None
_pump: asyncio.Task[None] | None = None


# ── Subscriptions ────────────────────────────────────────────────────


def subscribe(handler: EventHandler, event_types: list[EventType] | None = None) -> None:
    """Register ``handler`` for ``event_types``, or for everything when None."""
    if event_types is None:
        _catch_all.append(handler)
    else:
        for event_type in event_types:
            _by_type.setdefault(event_type, []).append(handler)
    logger.info(
        "Subscribed %s to %s",
        handler.__name__,
        "all events" if event_types is None else [t.value for t in event_types],
    )


def unsubscribe(handler: EventHandler) -> None:
    if handler in _catch_all:
        _catch_all.remove(handler)
    for handlers in _by_type.values():
        if handler in handlers:
            handlers.remove(handler)


def handlers_for(event_type: EventType) -> list[EventHandler]:
    return [*_catch_all, *_by_type.get(event_type, ())]


# ── Publishing ───────────────────────────────────────────────────────


async def emit(event: SystemEvent) -> None:
    """Queue ``event`` for delivery; returns without waiting for handlers."""
    queue = _ensure_pump()
    queue.put_nowait(event)
    logger.debug("Queued %s (wizard=%s)", event.event_type.value, event.wizard_id)


async def emit_nowait(event: SystemEvent) -> None:
    """Deliver ``event`` immediately, bypassing the queue."""
    await _deliver(event)


def _pump_alive() -> bool:
    # A pump created on an earlier (now closed) loop cannot deliver anything.
    return (
        _queue is not None
        and _pump is not None
        and not _pump.done()
        and _pump.get_loop() is asyncio.get_running_loop()
    )


def _ensure_pump() -> asyncio.Queue[SystemEvent]:
    global _queue, _pump
    if _queue is not None and _pump_alive():
        return _queue
    queue: asyncio.Queue[SystemEvent] = asyncio.Queue()
    _queue = queue
    _pump = asyncio.create_task(_run_pump(queue), name="loanwizard-events")
    logger.debug("Event pump started")
    return queue


async def _run_pump(queue: asyncio.Queue[SystemEvent]) -> None:
    while True:
        event = await queue.get()
        try:
            await _deliver(event)
        except Exception:
            logger.exception("Delivery of %s failed", event.event_type.value)
        finally:
            queue.task_done()


async def _deliver(event: SystemEvent) -> None:
    handlers = handlers_for(event.event_type)
    if not handlers:
        return
    outcomes = await asyncio.gather(*(handler(event) for handler in handlers), return_exceptions=True)
    for handler, outcome in zip(handlers, outcomes):
        if isinstance(outcome, Exception):
            logger.error(
                "Handler %s failed on %s: %s",
                handler.__name__,
                event.event_type.value,
                outcome,
                exc_info=outcome,
            )


# ── Lifecycle ────────────────────────────────────────────────────────


async def start_event_system() -> None:
    """Start the pump on the running loop (``emit`` also starts it lazily)."""
    _ensure_pump()
    logger.info(
        "Event system started (%d catch-all, %d typed subscribers)",
        len(_catch_all),
        sum(len(handlers) for handlers in _by_type.values()),
    )


async def stop_event_system() -> None:
    """Deliver everything already queued, then stop the pump."""
    global _queue, _pump
    queue, pump = _queue, _pump
    if queue is not None and pump is not None and _pump_alive():
        await queue.join()
        pump.cancel()
        try:
            await pump
        except asyncio.CancelledError:
            pass
    _queue = None
    _pump = None
    logger.info("Event system stopped")
