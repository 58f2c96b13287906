"""
Scheduler for periodic poll cycles with graceful shutdown support.

Cycles run one after another in a single background thread, so two cycles
of this process never touch the watermark at the same time. Separate
processes sharing one watermark are not coordinated.
"""

from __future__ import annotations
import signal
import threading
import time
from typing import Any, Callable, Dict, Optional

from parcel_notifier.logging import cycle_context, logger


class PipelineScheduler:
    """
    Runs `pipeline_func` every `interval_seconds` until stopped.

    A failed cycle is logged and recorded in `stats`; the next cycle starts
    from whatever watermark the failed one left untouched.
    """

    def __init__(
        self,
        pipeline_func: Callable[[], Any],
        interval_seconds: int = 300,
        install_signal_handlers: bool = True,
    ) -> None:
        """
        Args:
            pipeline_func: Function to execute on each cycle
            interval_seconds: Pause between the end of one cycle and the next, in seconds
            install_signal_handlers: Stop on SIGTERM/SIGINT (main thread only)
        """
        self.pipeline_func = pipeline_func
        self.interval_seconds = interval_seconds
        self.running = False
        self._stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None
        self.stats: Dict[str, Any] = {
            "runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "last_run_time": None,
            "last_success_time": None,
            "last_error": None,
        }

        if install_signal_handlers:
            signal.signal(signal.SIGTERM, self._signal_handler)
            signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum: int, frame) -> None:
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        self._stop_event.set()

    def run_cycle(self) -> bool:
        """Execute one cycle, recording the outcome. Returns True on success."""
        start_time = time.time()
        with cycle_context(self.stats["runs"] + 1):
            try:
                self.pipeline_func()
            except Exception as e:
                duration = time.time() - start_time
                self.stats["runs"] += 1
                self.stats["failed_runs"] += 1
                self.stats["last_run_time"] = time.time()
                self.stats["last_error"] = str(e)
                logger.exception(f"Cycle failed after {duration:.2f}s: {e}")
                return False

        self.stats["runs"] += 1
        self.stats["successful_runs"] += 1
        self.stats["last_run_time"] = time.time()
        self.stats["last_success_time"] = self.stats["last_run_time"]
        self.stats["last_error"] = None
        return True

    def _scheduler_loop(self) -> None:
        logger.info(f"Scheduler loop started with interval {self.interval_seconds}s")
        while not self._stop_event.is_set():
            self.run_cycle()
            self._stop_event.wait(self.interval_seconds)
        self.running = False
        logger.info("Scheduler loop ended")

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self.running:
            logger.warning("Scheduler is already running")
            return

        self.running = True
        self._stop_event.clear()
        self.thread = threading.Thread(target=self._scheduler_loop, daemon=False)
        self.thread.start()

    def stop(self, timeout: float = 30.0) -> None:
        """
        Stop the scheduler, letting a cycle in progress finish.

        Args:
            timeout: Maximum time to wait for the current cycle to complete
        """
        self._stop_event.set()
        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=timeout)
            if self.thread.is_alive():
                logger.warning(f"Scheduler thread did not stop within {timeout}s")
            else:
                logger.info("Scheduler stopped gracefully")
        self.running = False

    def wait(self) -> None:
        """Block until the scheduler thread ends (after a signal or stop())."""
        while self.thread and self.thread.is_alive():
            self.thread.join(timeout=1.0)
