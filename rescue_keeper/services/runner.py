"""Fixed-cadence forever loop driving the tick orchestrator."""
from __future__ import annotations

import asyncio
import logging
import signal
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from ..models import CycleResult

logger = logging.getLogger(__name__)

TickFn = Callable[[], Awaitable[CycleResult]]

STATS_EVERY_TICKS = 10


@dataclass
class RunnerStats:
    ticks: int = 0
    rescues_succeeded: int = 0
    errors: int = 0
    skipped: int = 0
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self.started_at

    def add(self, result: CycleResult) -> None:
        self.rescues_succeeded += result.succeeded
        self.errors += len(result.errors_by_user)
        self.skipped += result.skipped


class Runner:
    """Runs a tick function sequentially at a fixed wall-clock cadence.

    A slow tick delays the next one; ticks never overlap. Shutdown is
    cooperative: the flag is checked between ticks, so an in-flight tick
    (and any transaction it is submitting) always runs to completion.
    """

    def __init__(self) -> None:
        self._shutdown = asyncio.Event()
        self.stats = RunnerStats()

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    def request_shutdown(self) -> None:
        if not self._shutdown.is_set():
            logger.info("Shutdown requested — exiting after the current tick")
        self._shutdown.set()

    def install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError):
                # Windows event loops do not support signal handlers.
                logger.debug("Signal handler for %s not installed", sig.name)

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info("Received %s", sig.name)
        self.request_shutdown()

    async def run_forever(self, poll_interval: float, tick_fn: TickFn) -> RunnerStats:
        """Run ``tick_fn`` every ``poll_interval`` seconds until shutdown."""
        self.stats = RunnerStats()
        logger.info("Runner started — interval=%.1fs", poll_interval)

        while not self._shutdown.is_set():
            tick_start = time.monotonic()
            try:
                result = await tick_fn()
                self.stats.add(result)
            except Exception as e:
                self.stats.errors += 1
                logger.exception("Unexpected tick error (tick %d): %s", self.stats.ticks + 1, e)
            self.stats.ticks += 1

            if self.stats.ticks % STATS_EVERY_TICKS == 0:
                self._log_stats("Runner stats")

            elapsed = time.monotonic() - tick_start
            sleep_for = poll_interval - elapsed
            if sleep_for < 0:
                logger.warning(
                    "Tick took longer than poll interval — elapsed=%.3fs interval=%.3fs overrun=%.3fs",
                    elapsed,
                    poll_interval,
                    -sleep_for,
                )
            await self._sleep(max(0.0, sleep_for))

        self._log_stats("Runner stopped gracefully")
        return self.stats

    async def _sleep(self, seconds: float) -> None:
        """Sleep between ticks; wakes early when shutdown is requested."""
        if self._shutdown.is_set():
            return
        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def _log_stats(self, message: str) -> None:
        logger.info(
            "%s — ticks=%d rescues=%d errors=%d skipped=%d uptime=%.1fmin",
            message,
            self.stats.ticks,
            self.stats.rescues_succeeded,
            self.stats.errors,
            self.stats.skipped,
            self.stats.uptime_seconds / 60,
        )


async def run_forever(poll_interval: float, tick_fn: TickFn) -> RunnerStats:
    """Convenience wrapper: run with SIGINT/SIGTERM wired to shutdown."""
    runner = Runner()
    runner.install_signal_handlers()
    return await runner.run_forever(poll_interval, tick_fn)
