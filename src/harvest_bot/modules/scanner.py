from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, Collection, Optional, Tuple

from harvest_bot.core.config import ScanSettings
from harvest_bot.core.interfaces import WorldScanner
from harvest_bot.core.world import Block, Position

logger = logging.getLogger(__name__)

Snapshot = Tuple[Position, ...]


class ScanScheduler:
    """Runs world scans on a single background worker and publishes the result.

    The tick loop only ever reads :attr:`snapshot`; a finished scan swaps
    in a new tuple under a lock, so readers see either the old snapshot or
    the new one, never a partial list.
    """

    def __init__(
        self,
        scanner: WorldScanner,
        settings: Optional[ScanSettings] = None,
        is_active: Optional[Callable[[], bool]] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        self._scanner = scanner
        self._settings = settings or ScanSettings()
        self._is_active = is_active or (lambda: True)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="world-scan")

        self._lock = threading.Lock()
        self._snapshot: Optional[Snapshot] = None
        self._generation = 0
        self._pending: Optional[Future] = None

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    @property
    def interval(self) -> int:
        return self._settings.interval

    @property
    def scan_in_flight(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def reset(self) -> None:
        """Forget the current snapshot and ignore scans dispatched before now."""

        with self._lock:
            self._generation += 1
            self._snapshot = None
        logger.debug("ScanScheduler.reset: generation=%d", self._generation)

    def maybe_trigger(self, tick_counter: int, kinds: Collection[Block]) -> Optional[Future]:
        """Launch a scan when *tick_counter* falls on the configured interval.

        Returns the submitted future, or ``None`` when no scan was started.
        """

        interval = self._settings.interval
        if interval <= 0 or tick_counter % interval != 0:
            return None

        if self.scan_in_flight:
            logger.debug("ScanScheduler: previous scan still running at tick %d, skipping", tick_counter)
            return None

        generation = self._generation
        kinds = tuple(kinds)
        logger.debug("ScanScheduler: dispatching scan at tick %d (%d kinds)", tick_counter, len(kinds))
        self._pending = self._executor.submit(self._run_scan, generation, kinds)
        return self._pending

    def _run_scan(self, generation: int, kinds: Tuple[Block, ...]) -> Optional[Snapshot]:
        settings = self._settings
        try:
            positions = self._scanner.scan(kinds, settings.max_results, settings.radius_xz, settings.radius_y)
        except Exception:
            logger.exception("ScanScheduler: world scan failed")
            return None

        snapshot: Snapshot = tuple(positions)
        if self._publish(generation, snapshot):
            return snapshot
        return None

    def _publish(self, generation: int, snapshot: Snapshot) -> bool:
        if not self._is_active():
            logger.debug("ScanScheduler: task inactive, discarding scan of %d positions", len(snapshot))
            return False
        with self._lock:
            if generation != self._generation:
                logger.debug("ScanScheduler: discarding stale scan (generation %d)", generation)
                return False
            self._snapshot = snapshot
        logger.debug("ScanScheduler: published snapshot with %d positions", len(snapshot))
        return True

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
