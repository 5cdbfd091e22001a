"""
Drives remediation cycles, once or on a fixed interval
"""

import time
from threading import Event
from typing import Callable, Optional

from .errors import CacheSyncError
from .logger import get_logger

logger = get_logger(__name__)


def wait_for_cache_sync(has_synced: Callable[[], bool], stop_event: Event,
                        timeout: Optional[float] = None, poll_interval: float = 0.1) -> None:
    """Block until has_synced() is true; raises CacheSyncError on timeout or cancellation"""
    logger.info("Waiting for pod cache to sync")
    deadline = None if not timeout else time.monotonic() + timeout

    while not has_synced():
        wait = poll_interval
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise CacheSyncError(f"pod cache not synced after {timeout}s")
            wait = min(wait, remaining)
        if stop_event.wait(wait):
            raise CacheSyncError("cancelled while waiting for pod cache to sync")

    logger.info("Pod cache synced")


class Scheduler:
    """Runs a PodCleaner once (interval 0) or every ``interval`` seconds until stopped"""

    def __init__(self, cleaner, has_synced: Callable[[], bool], interval: float = 0,
                 sync_timeout: Optional[float] = None, poll_interval: float = 0.1):
        self.cleaner = cleaner
        self.has_synced = has_synced
        self.interval = interval
        self.sync_timeout = sync_timeout
        self.poll_interval = poll_interval
        self.cycle_count = 0

    def run(self, stop_event: Event) -> None:
        logger.info("Starting cleaner")
        wait_for_cache_sync(self.has_synced, stop_event, self.sync_timeout, self.poll_interval)

        if not self.interval:
            logger.info("Mode: one-shot")
            self._run_once(stop_event)
            return

        logger.info("Mode: interval loop", interval_seconds=self.interval)
        self._loop(stop_event)

    def _loop(self, stop_event: Event) -> None:
        next_start = time.monotonic()
        while not stop_event.is_set():
            self._run_once(stop_event)

            # Ticks are wall-clock periodic; an overrun starts the next cycle
            # at once and re-anchors the schedule on it
            next_start += self.interval
            now = time.monotonic()
            if next_start <= now:
                logger.warning("Cycle overran the interval", interval_seconds=self.interval,
                               late_seconds=round(now - next_start, 3))
                next_start = now
                continue

            if stop_event.wait(next_start - now):
                break

        logger.info("Cleaner stopped", cycles=self.cycle_count)

    def _run_once(self, stop_event: Event) -> None:
        self.cycle_count += 1
        try:
            self.cleaner.run_cycle(stop_event)
        except Exception as e:
            logger.error("Remediation cycle failed", cycle=self.cycle_count,
                         error=str(e), exc_info=True)
