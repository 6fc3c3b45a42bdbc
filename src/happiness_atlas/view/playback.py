from __future__ import annotations

import asyncio
import logging
from typing import Callable, Literal, Protocol

LOGGER = logging.getLogger(__name__)

PlaybackStatus = Literal["stopped", "playing"]
CancelHandle = Callable[[], None]


class Scheduler(Protocol):
    def call_every(self, interval: float, callback: Callable[[], None]) -> CancelHandle:
        """Run ``callback`` every ``interval`` seconds until the returned handle is called."""
        ...


class AsyncioScheduler:
    """Recurring callbacks on an asyncio event loop; cancelling takes effect immediately."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_every(self, interval: float, callback: Callable[[], None]) -> CancelHandle:
        loop = self._loop or asyncio.get_running_loop()
        cancelled = False
        handle: asyncio.TimerHandle | None = None

        def _fire() -> None:
            nonlocal handle
            if cancelled:
                return
            handle = loop.call_later(interval, _fire)
            callback()

        def _cancel() -> None:
            nonlocal cancelled
            cancelled = True
            if handle is not None:
                handle.cancel()

        handle = loop.call_later(interval, _fire)
        return _cancel


class PlaybackDriver:
    """Two-state play/pause machine driving a recurring tick."""

    def __init__(
        self,
        on_tick: Callable[[], None],
        scheduler: Scheduler,
        interval_seconds: float = 1.2,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._on_tick = on_tick
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._cancel: CancelHandle | None = None

    @property
    def status(self) -> PlaybackStatus:
        return "playing" if self._cancel is not None else "stopped"

    @property
    def playing(self) -> bool:
        return self._cancel is not None

    def toggle(self) -> PlaybackStatus:
        if self._cancel is None:
            self._cancel = self._scheduler.call_every(self._interval, self._tick)
            LOGGER.debug("Playback started (interval=%.3fs)", self._interval)
        else:
            cancel, self._cancel = self._cancel, None
            cancel()
            LOGGER.debug("Playback stopped")
        return self.status

    def _tick(self) -> None:
        # A tick queued before stop must not advance anything.
        if self._cancel is None:
            return
        self._on_tick()
