"""Base class for long-running background loops.

BaseLoop owns the run/sleep/error cycle so subclasses only implement
`_run_once()`. An exception escaping `_run_once()` never ends the loop: it
is logged, recorded in LoopStats, passed to error callbacks, and the loop
sleeps its normal interval before the next run. There is no backoff; the
retry interval is always the poll interval.

Usage:
    class MyLoop(BaseLoop):
        async def _run_once(self) -> None:
            ...

    loop = MyLoop(name="my_loop", interval=10.0)
    await loop.run_forever()   # until loop.stop()
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class LoopStats:
    """Run statistics for a loop."""

    name: str
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    consecutive_errors: int = 0
    last_run_time: float = 0.0
    last_success_time: float = 0.0
    last_error_time: float = 0.0
    last_error_message: str = ""
    total_run_duration: float = 0.0
    last_run_duration: float = 0.0

    @property
    def success_rate(self) -> float:
        """Percentage of successful runs (100 when nothing has run yet)."""
        if self.total_runs == 0:
            return 100.0
        return (self.successful_runs / self.total_runs) * 100

    @property
    def avg_run_duration(self) -> float:
        """Average duration of successful runs in seconds."""
        if self.successful_runs == 0:
            return 0.0
        return self.total_run_duration / self.successful_runs

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "total_runs": self.total_runs,
            "successful_runs": self.successful_runs,
            "failed_runs": self.failed_runs,
            "consecutive_errors": self.consecutive_errors,
            "last_run_time": self.last_run_time,
            "last_success_time": self.last_success_time,
            "last_error_time": self.last_error_time,
            "last_error_message": self.last_error_message,
            "success_rate": self.success_rate,
            "avg_run_duration_ms": self.avg_run_duration * 1000,
            "last_run_duration_ms": self.last_run_duration * 1000,
        }


class BaseLoop(ABC):
    """Abstract background loop with error handling and statistics."""

    def __init__(
        self,
        name: str,
        interval: float,
        enabled: bool = True,
    ):
        """Initialize the loop.

        Args:
            name: Loop name used in logs and stats
            interval: Seconds to sleep after every run, successful or not
            enabled: If False, run_forever() sleeps without calling _run_once()
        """
        self.name = name
        self.interval = interval
        self.enabled = enabled
        self._running = False
        self._stop_event: asyncio.Event | None = None
        self._stats = LoopStats(name=name)
        self._error_callbacks: list[Callable[[Exception], Any]] = []

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stats(self) -> LoopStats:
        return self._stats

    def add_error_callback(self, callback: Callable[[Exception], Any]) -> None:
        """Register a callback invoked with every exception from _run_once()."""
        self._error_callbacks.append(callback)

    def remove_error_callback(self, callback: Callable[[Exception], Any]) -> None:
        if callback in self._error_callbacks:
            self._error_callbacks.remove(callback)

    @abstractmethod
    async def _run_once(self) -> None:
        """One iteration of the loop's work."""
        ...

    async def _on_start(self) -> None:
        """Hook called once before the first run."""

    async def _on_stop(self) -> None:
        """Hook called once after the loop ends."""

    async def _on_error(self, error: Exception) -> None:
        """Hook called after a failed run."""

    async def run_once(self) -> bool:
        """Run one iteration and record its outcome.

        Returns:
            True if _run_once() completed without raising
        """
        start = time.time()
        self._stats.total_runs += 1
        self._stats.last_run_time = start
        try:
            await self._run_once()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            duration = time.time() - start
            self._stats.failed_runs += 1
            self._stats.consecutive_errors += 1
            self._stats.last_error_time = time.time()
            self._stats.last_error_message = str(e)
            self._stats.last_run_duration = duration
            logger.exception(f"[{self.name}] Error in loop iteration: {e}")
            for callback in list(self._error_callbacks):
                try:
                    callback(e)
                except Exception as cb_error:
                    logger.warning(f"[{self.name}] Error callback failed: {cb_error}")
            await self._on_error(e)
            return False

        duration = time.time() - start
        self._stats.successful_runs += 1
        self._stats.consecutive_errors = 0
        self._stats.last_success_time = time.time()
        self._stats.last_run_duration = duration
        self._stats.total_run_duration += duration
        return True

    async def run_forever(self) -> None:
        """Run until stop() is called."""
        if self._running:
            logger.warning(f"[{self.name}] Loop already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        logger.info(f"[{self.name}] Loop starting (interval={self.interval}s)")
        await self._on_start()
        try:
            while self._running:
                if self.enabled:
                    await self.run_once()
                await self._sleep(self.interval)
        finally:
            self._running = False
            await self._on_stop()
            logger.info(f"[{self.name}] Loop stopped")

    async def _sleep(self, seconds: float) -> None:
        """Sleep, waking early if stop() is called."""
        if self._stop_event is None:
            await asyncio.sleep(seconds)
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def stop(self) -> None:
        """Ask the loop to end after the current iteration."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
