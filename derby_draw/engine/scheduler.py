"""
Clocks that drive the draw loop.

A scheduled callback receives the real interval since its previous call (in
seconds) and returns ``True`` to keep ticking. The next tick is only armed
after the current callback has returned, so ticks never overlap.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

TickCallback = Callable[[float], bool]

DEFAULT_FRAME_INTERVAL = 1.0 / 60.0


class TickHandle:
    """Returned by ``schedule``; cancelling stops any further ticks."""

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None) -> None:
        self._on_cancel = on_cancel
        self.cancelled = False
        self.finished = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.finished)

    def cancel(self) -> None:
        if not self.active:
            return
        self.cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()

    def _finish(self) -> None:
        self.finished = True


class TickScheduler:
    def schedule(self, callback: TickCallback) -> TickHandle:
        raise NotImplementedError


class ManualTickScheduler(TickScheduler):
    """Headless clock advanced explicitly by the caller."""

    def __init__(self) -> None:
        self._callback: Optional[TickCallback] = None
        self._handle: Optional[TickHandle] = None
        self.ticks = 0

    def schedule(self, callback: TickCallback) -> TickHandle:
        if self._handle is not None:
            self._handle.cancel()
        self._callback = callback
        self._handle = TickHandle(on_cancel=self._drop)
        return self._handle

    @property
    def pending(self) -> bool:
        return self._handle is not None and self._handle.active

    def advance(self, interval: float = DEFAULT_FRAME_INTERVAL) -> bool:
        """Fire one tick. Returns whether another tick is still scheduled."""
        if not self.pending or self._callback is None:
            return False
        handle = self._handle
        keep_going = self._callback(interval)
        self.ticks += 1
        if not keep_going and handle is self._handle and handle.active:
            handle._finish()
        return self.pending

    def run(self, interval: float = DEFAULT_FRAME_INTERVAL, max_ticks: int = 100_000) -> int:
        fired = 0
        while fired < max_ticks and self.pending:
            self.advance(interval)
            fired += 1
        return fired

    def _drop(self) -> None:
        self._callback = None


class AsyncioTickScheduler(TickScheduler):
    """Interactive clock built on ``loop.call_later``, measured with the loop's own clock."""

    def __init__(
        self,
        frame_interval: float = DEFAULT_FRAME_INTERVAL,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if frame_interval <= 0:
            raise ValueError(f"Frame interval must be positive, got {frame_interval}")
        self.frame_interval = frame_interval
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, callback: TickCallback) -> "AsyncioTickHandle":
        handle = AsyncioTickHandle(self.loop)
        last_fired = self.loop.time()

        def fire() -> None:
            nonlocal last_fired
            if not handle.active:
                return
            now = self.loop.time()
            interval = now - last_fired
            last_fired = now
            try:
                keep_going = callback(interval)
            except Exception:
                handle._finish()
                raise
            if keep_going and handle.active:
                handle._arm(self.frame_interval, fire)
            elif handle.active:
                handle._finish()

        handle._arm(self.frame_interval, fire)
        return handle


class AsyncioTickHandle(TickHandle):
    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__(on_cancel=self._stop)
        self._loop = loop
        self._timer: Optional[asyncio.TimerHandle] = None
        self._done = asyncio.Event()

    def _arm(self, delay: float, fire: Callable[[], None]) -> None:
        self._timer = self._loop.call_later(delay, fire)

    def _stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._done.set()

    def _finish(self) -> None:
        super()._finish()
        self._timer = None
        self._done.set()

    async def wait(self) -> None:
        """Block until the callback stops ticking or the handle is cancelled."""
        await self._done.wait()
