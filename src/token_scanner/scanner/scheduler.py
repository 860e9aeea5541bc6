"""Periodic scan scheduler with start/stop control."""

import asyncio
import inspect
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..core.enums import ScannerState
from ..core.errors import PreconditionUnmet
from ..core.models import TokenRecord
from .service import TokenScanner

logger = logging.getLogger(__name__)

ResultCallback = Callable[[List[TokenRecord]], Any]


class ScanScheduler:
    """Runs scan cycles on a fixed interval.

    ``start()`` runs one cycle immediately and then arms a periodic task.
    Ticks fire at a fixed rate. ``stop()`` disarms the timer; a cycle already
    in flight runs to completion. A tick that arrives while a cycle is still
    in flight is skipped.
    """

    def __init__(
        self,
        scanner: TokenScanner,
        connection_status: Callable[[], Dict[str, bool]],
        config: Optional[Dict] = None,
        on_result: Optional[ResultCallback] = None,
    ):
        defaults = self._default_config()
        if config:
            defaults.update(config)
        self.config = defaults
        self.scanner = scanner
        self.connection_status = connection_status
        self.on_result = on_result

        self._state = ScannerState.IDLE
        self._timer_task: Optional[asyncio.Task] = None
        self._cycle_task: Optional[asyncio.Future] = None
        self._busy = False
        self._latest_result: List[TokenRecord] = []

        self.cycles_completed = 0
        self.cycles_failed = 0
        self.cycles_skipped = 0
        self.last_scan_time: Optional[datetime] = None

    @staticmethod
    def _default_config() -> Dict:
        return {
            "check_interval_ms": 5000,
            "required_providers": ["dexscreener", "birdeye"],
        }

    @property
    def state(self) -> ScannerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == ScannerState.RUNNING

    @property
    def latest_result(self) -> List[TokenRecord]:
        return list(self._latest_result)

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    async def start(self):
        """Start scanning; raises PreconditionUnmet if providers are not connected."""
        if self._state == ScannerState.RUNNING:
            return

        status = self.connection_status() or {}
        missing = [p for p in self.config["required_providers"] if not status.get(p, False)]
        if missing:
            raise PreconditionUnmet(missing)

        self._state = ScannerState.RUNNING
        logger.info(f"Scanner started (interval={self.config['check_interval_ms']}ms)")

        await self.run_once()

        # stop() may have been called during the first cycle
        if self._state == ScannerState.RUNNING:
            self._timer_task = asyncio.create_task(self._timer_loop())

    async def stop(self):
        """Stop scanning. Safe to call when already idle."""
        if self._state == ScannerState.IDLE and self._timer_task is None:
            return

        self._state = ScannerState.IDLE
        task, self._timer_task = self._timer_task, None
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.info("Scanner stopped")

    async def wait_for_cycle(self):
        """Wait for a timer-started cycle that is still in flight."""
        if self._cycle_task is not None and not self._cycle_task.done():
            await self._cycle_task

    async def _timer_loop(self):
        # Ticks follow fixed deadlines regardless of cycle duration
        loop = asyncio.get_running_loop()
        interval = self.config["check_interval_ms"] / 1000
        next_tick = loop.time()
        while self._state == ScannerState.RUNNING:
            next_tick += interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            if self._state != ScannerState.RUNNING:
                break
            if self._busy:
                await self.run_once()
                continue
            # Cycle tasks outlive the timer task
            self._cycle_task = asyncio.ensure_future(self.run_once())

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    async def run_once(self) -> Optional[List[TokenRecord]]:
        """Run one scan cycle.

        Returns the new result, or None when the cycle was skipped or failed;
        in both cases the previous result is kept.
        """
        if self._busy:
            self.cycles_skipped += 1
            logger.warning("Previous scan cycle still running, skipping this one")
            return None

        self._busy = True
        started = time.monotonic()
        try:
            result = await self.scanner.scan()
        except Exception as e:
            self.cycles_failed += 1
            logger.error(f"Scan cycle failed: {e}")
            return None
        finally:
            self._busy = False

        self._latest_result = result
        self.cycles_completed += 1
        self.last_scan_time = datetime.now()
        logger.info(
            f"Scan cycle complete: {len(result)} tokens in {time.monotonic() - started:.2f}s"
        )

        await self._notify(result)
        return result

    async def _notify(self, result: List[TokenRecord]):
        if self.on_result is None:
            return
        try:
            outcome = self.on_result(list(result))
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(f"Result callback failed: {e}")

    def get_status(self) -> Dict:
        return {
            "state": self._state.value,
            "busy": self._busy,
            "tokens": len(self._latest_result),
            "cycles_completed": self.cycles_completed,
            "cycles_failed": self.cycles_failed,
            "cycles_skipped": self.cycles_skipped,
            "last_scan_time": self.last_scan_time.isoformat() if self.last_scan_time else None,
        }
