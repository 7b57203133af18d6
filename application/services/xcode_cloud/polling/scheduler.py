"""
Poll scheduler for background build refreshes.

A self-rescheduling delayed task with visibility gating and exponential
backoff on failure. Each tick awaits the injected refresh callback and then
schedules the next tick; failures lengthen the delay, success resets it.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from common.constants import POLL_MAX_BACKOFF_MS, POLL_MINIMUM_INTERVAL_MS

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    """Lifecycle states of a PollScheduler."""

    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    DISPOSED = "disposed"


def compute_delay_ms(interval_seconds: float, consecutive_failures: int) -> int:
    """
    Compute the delay before the next poll.

    Args:
        interval_seconds: Configured polling interval
        consecutive_failures: Failed polls since the last success

    Returns:
        Delay in milliseconds: the interval (at least 10s), doubled per
        failure and capped at 5 minutes
    """
    base_ms = max(int(interval_seconds * 1000), POLL_MINIMUM_INTERVAL_MS)
    if consecutive_failures <= 0:
        return base_ms
    return min(base_ms * 2 ** consecutive_failures, POLL_MAX_BACKOFF_MS)


class PollScheduler:
    """Runs a refresh callback periodically while the host view is visible."""

    def __init__(
        self,
        callback: Callable[[], Awaitable[None]],
        get_interval_seconds: Callable[[], float],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the scheduler.

        Args:
            callback: Refresh coroutine invoked on every tick
            get_interval_seconds: Returns the configured interval; read at each scheduling
            sleep: Timer primitive (replaced in tests)
        """
        self._callback = callback
        self._get_interval_seconds = get_interval_seconds
        self._sleep = sleep

        self.consecutive_failures = 0
        self.last_delay_ms: Optional[int] = None
        self._visible = True
        self._disposed = False
        self._task: Optional[asyncio.Task] = None
        self._running_task: Optional[asyncio.Task] = None

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def state(self) -> SchedulerState:
        if self._disposed:
            return SchedulerState.DISPOSED
        if self._task is None or self._task.done():
            return SchedulerState.IDLE
        if self._task is self._running_task:
            return SchedulerState.RUNNING
        return SchedulerState.SCHEDULED

    def start(self) -> None:
        """Cancel any pending tick and schedule the next one."""
        self.stop()
        self._schedule_next()

    def stop(self) -> None:
        """Cancel the pending tick.

        A tick whose callback is already in flight is left to finish; its
        outcome is discarded because the scheduler no longer owns it.
        """
        task = self._task
        self._task = None
        if task is None or task.done() or task is self._running_task:
            return
        task.cancel()

    def set_visible(self, visible: bool) -> None:
        """Gate polling on host visibility.

        Becoming visible clears the backoff and restarts the loop; becoming
        hidden stops it. Visibility changes are the only restart trigger.
        """
        self._visible = visible
        if visible:
            self.consecutive_failures = 0
            self.start()
        else:
            self.stop()

    def reset_backoff(self) -> None:
        """Forget past failures without touching the current schedule."""
        self.consecutive_failures = 0

    def dispose(self) -> None:
        """Stop permanently. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self.stop()
        logger.debug("Poll scheduler disposed")

    def _schedule_next(self) -> None:
        if self._disposed:
            return

        delay_ms = compute_delay_ms(self._get_interval_seconds(), self.consecutive_failures)
        self.last_delay_ms = delay_ms
        logger.debug(
            f"Next poll in {delay_ms}ms (consecutive_failures={self.consecutive_failures})"
        )
        self._task = asyncio.get_running_loop().create_task(self._tick(delay_ms))

    async def _tick(self, delay_ms: int) -> None:
        await self._sleep(delay_ms / 1000)

        current = asyncio.current_task()
        if self._disposed or not self._visible or self._task is not current:
            return

        self._running_task = current
        error: Optional[Exception] = None
        try:
            await self._callback()
        except Exception as e:
            error = e
        finally:
            # A newer tick may already own the marker after a restart.
            if self._running_task is current:
                self._running_task = None

        if self._disposed or self._task is not current:
            logger.debug("Discarding poll result: scheduler stopped during refresh")
            return

        if error is not None:
            self.consecutive_failures += 1
            logger.warning(f"Poll failed (attempt {self.consecutive_failures}): {error}")
        else:
            self.consecutive_failures = 0

        self._schedule_next()
