"""
Single cooperative event loop.

Waits on the next transport event, the reload trigger and an optional stop
event, and fully handles whichever completes first before waiting again.
All FileHandleManager access happens from here, one step at a time.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Optional

from core.dispatcher import EventDispatcher
from core.reload import ReloadController
from services.twitch.models.message import IrcEvent
from shared.logging.logger import get_logger

log = get_logger("core.runtime")


class GhostRuntime:
    def __init__(
        self,
        *,
        events: AsyncIterator[IrcEvent],
        controller: ReloadController,
        reload_trigger: asyncio.Event,
        dispatcher: Optional[EventDispatcher] = None,
        stop_event: Optional[asyncio.Event] = None,
    ) -> None:
        self._events = events
        self._controller = controller
        self._reload_trigger = reload_trigger
        self._dispatcher = dispatcher or EventDispatcher()
        self._stop_event = stop_event or asyncio.Event()
        self.events_handled = 0

    async def _next_event(self) -> Optional[IrcEvent]:
        try:
            return await self._events.__anext__()
        except StopAsyncIteration:
            return None

    async def _handle(self, event: Optional[IrcEvent]) -> bool:
        """Dispatch one event; False marks the end of the stream."""
        if event is None:
            return False
        await self._dispatcher.dispatch(event, self._controller.handles)
        self.events_handled += 1
        return True

    async def run(self) -> None:
        """Run until the transport stream ends or the stop event is set."""
        next_event = asyncio.ensure_future(self._next_event())
        reload_wait = asyncio.ensure_future(self._reload_trigger.wait())
        stop_wait = asyncio.ensure_future(self._stop_event.wait())

        try:
            while True:
                done, _ = await asyncio.wait(
                    {next_event, reload_wait, stop_wait},
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if stop_wait in done:
                    # an event received in the same wake-up is still logged
                    if next_event in done:
                        await self._handle(next_event.result())
                    log.info("Stop requested; leaving event loop")
                    break

                if reload_wait in done:
                    self._reload_trigger.clear()
                    log.info("Reload triggered")
                    await self._controller.reload()
                    reload_wait = asyncio.ensure_future(self._reload_trigger.wait())

                if next_event in done:
                    if not await self._handle(next_event.result()):
                        log.info("Transport stream ended")
                        break
                    next_event = asyncio.ensure_future(self._next_event())
        finally:
            for waiter in (next_event, reload_wait, stop_wait):
                if not waiter.done():
                    waiter.cancel()
            await asyncio.gather(
                next_event, reload_wait, stop_wait, return_exceptions=True
            )
