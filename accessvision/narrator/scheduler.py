"""
Narration Scheduler

Decides when a frame is captured and analysed:
- manual trigger: always runs (if a frame is available)
- auto trigger: fires immediately, then every interval; skipped while any
  analysis is in flight
- mode-switch trigger: one manual-equivalent shot after a settling delay

Timers are asyncio tasks owned by the scheduler. Starting a schedule
always cancels the one it replaces.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)

# Lets the user reposition the camera after switching modes
MODE_SETTLE_DELAY = 0.5


class Trigger(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"
    MODE_SWITCH = "mode_switch"


CaptureFn = Callable[[], Optional[bytes]]
ProcessFn = Callable[[bytes, Trigger], Awaitable[None]]
SleepFn = Callable[[float], Awaitable[None]]


class NarrationScheduler:
    """Timing and single-flight policy for analysis requests.

    Args:
        capture: returns the current frame, or None to skip the cycle
        process: analyses a frame and applies the result
        sleep: awaitable delay, injectable for tests
    """

    def __init__(self, capture: CaptureFn, process: ProcessFn, sleep: SleepFn = asyncio.sleep):
        self._capture = capture
        self._process = process
        self._sleep = sleep

        self._in_flight = 0
        self._requests: Set[asyncio.Task] = set()
        self._auto_task: Optional[asyncio.Task] = None
        self._auto_interval: Optional[float] = None
        self._settle_task: Optional[asyncio.Task] = None
        self.skipped_ticks = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight > 0

    @property
    def auto_running(self) -> bool:
        return self._auto_task is not None and not self._auto_task.done()

    @property
    def auto_interval(self) -> Optional[float]:
        return self._auto_interval if self.auto_running else None

    @property
    def settle_pending(self) -> bool:
        return self._settle_task is not None and not self._settle_task.done()

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------
    def trigger(self, trigger: Trigger = Trigger.MANUAL) -> Optional[asyncio.Task]:
        """User-initiated request; runs regardless of in-flight state."""
        return self._launch(trigger)

    def tick(self) -> Optional[asyncio.Task]:
        """Auto request; a no-op while another analysis is outstanding."""
        if self.in_flight:
            self.skipped_ticks += 1
            logger.debug("Auto tick skipped: analysis in flight")
            return None
        return self._launch(Trigger.AUTO)

    def _launch(self, trigger: Trigger) -> Optional[asyncio.Task]:
        frame = self._capture()
        if frame is None:
            logger.debug(f"{trigger.value} trigger skipped: no frame")
            return None

        self._in_flight += 1
        task = asyncio.get_running_loop().create_task(self._run(frame, trigger))
        self._requests.add(task)
        task.add_done_callback(self._requests.discard)
        return task

    async def _run(self, frame: bytes, trigger: Trigger) -> None:
        try:
            await self._process(frame, trigger)
        except Exception:
            logger.exception(f"Narration after {trigger.value} trigger failed")
        finally:
            self._in_flight -= 1

    # ------------------------------------------------------------------
    # Schedules
    # ------------------------------------------------------------------
    def start_auto(self, interval: float) -> None:
        """Replace any recurring schedule; first tick fires now."""
        self.stop_auto()
        self._auto_interval = interval
        logger.info(f"Auto-narration every {interval:g}s")
        self.tick()
        self._auto_task = asyncio.get_running_loop().create_task(self._auto_loop(interval))

    async def _auto_loop(self, interval: float) -> None:
        while True:
            await self._sleep(interval)
            self.tick()

    def stop_auto(self) -> None:
        if self._auto_task is not None:
            self._auto_task.cancel()
            logger.info("Auto-narration stopped")
        self._auto_task = None
        self._auto_interval = None

    def schedule_settle(self, delay: float = MODE_SETTLE_DELAY) -> None:
        """One mode-switch shot after ``delay``; replaces a pending one."""
        self.cancel_settle()
        self._settle_task = asyncio.get_running_loop().create_task(self._settle(delay))

    async def _settle(self, delay: float) -> None:
        await self._sleep(delay)
        self._settle_task = None
        self.trigger(Trigger.MODE_SWITCH)

    def cancel_settle(self) -> None:
        if self._settle_task is not None:
            self._settle_task.cancel()
        self._settle_task = None

    def cancel_all(self) -> None:
        """Cancel timers; analyses already issued keep running."""
        self.stop_auto()
        self.cancel_settle()

    async def drain(self) -> None:
        """Wait until every outstanding analysis has been applied."""
        while self._requests:
            await asyncio.gather(*list(self._requests), return_exceptions=True)
