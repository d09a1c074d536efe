"""Fixed-interval scheduling of refresh cycles."""
import threading
from typing import Optional

import structlog

from config.logging import log_error
from monitoring.refresh_metrics import REFRESH_SKIPPED
from .refresh import RefreshOrchestrator, RefreshResult

logger = structlog.get_logger()


class RefreshScheduler:
    """
    Runs a refresh orchestrator every ``interval`` seconds.

    Ticks are single-flight: a tick that fires while the previous cycle is
    still running is skipped, so two cycles never race on the cache key.
    """

    def __init__(self, orchestrator: RefreshOrchestrator, interval: float):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.orchestrator = orchestrator
        self.interval = interval
        self._in_flight = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> Optional[RefreshResult]:
        """Run one cycle unless another one is in flight."""
        if not self._in_flight.acquire(blocking=False):
            REFRESH_SKIPPED.inc()
            logger.warning("refresh_skipped_in_flight")
            return None
        try:
            return self.orchestrator.refresh()
        finally:
            self._in_flight.release()

    def run_forever(self) -> None:
        """Tick until ``stop`` is called."""
        logger.info("refresh_scheduler_started", interval=self.interval)
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception as e:
                # Keep ticking; the next cycle starts from a clean state
                log_error(logger, e, {"component": "refresh_scheduler"})
            self._stop.wait(self.interval)
        logger.info("refresh_scheduler_stopped")

    def start(self) -> threading.Thread:
        """Run the scheduler on a background daemon thread."""
        if self._thread and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, name="chainstats-refresh", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
