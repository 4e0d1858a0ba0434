from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Optional, Protocol


class CancellationHandle(Protocol):
    def cancel(self) -> None: ...


class Timer(ABC):
    @abstractmethod
    def arm(self, delay_s: float, callback: Callable[[], None]) -> CancellationHandle:
        """Run `callback` once after `delay_s` seconds; the handle cancels it."""
        raise NotImplementedError


class AsyncioTimer(Timer):
    """Timers on the running event loop (`loop.call_later`)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def arm(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay_s), callback)
