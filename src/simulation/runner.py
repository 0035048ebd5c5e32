"""
Unattended stepping of a SimulationEngine on a background thread.

The worker calls `engine.step()` repeatedly with `run.sim_delay_ms` between
ticks. Cancellation is cooperative: `stop()` is honoured between ticks,
never in the middle of one. The worker also exits on its own once the
ecosystem is no longer viable.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from src.simulation.engine import SimulationEngine

logger = logging.getLogger(__name__)


class ContinuousRunner:
    """
    Start/stop control over a single stepping thread.

    Attributes:
        engine: The engine being stepped.
        max_steps: Optional cap on ticks per start() (None = unbounded).
        steps_run: Ticks executed since the last start().
        error: Exception that terminated the worker, if any.
    """

    def __init__(self, engine: SimulationEngine, max_steps: Optional[int] = None):
        self.engine = engine
        self.max_steps = max_steps
        self.steps_run = 0
        self.error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None
        self._running = threading.Event()
        self._stop_requested = threading.Event()

    @property
    def running(self) -> bool:
        return self._running.is_set()

    def start(self) -> None:
        """Start stepping. No-op if already running."""
        if self._running.is_set():
            return
        self._stop_requested.clear()
        self.steps_run = 0
        self.error = None
        self._running.set()
        self._thread = threading.Thread(target=self._run_loop, name="sim-runner", daemon=True)
        self._thread.start()
        logger.info("Runner started at step %d", self.engine.current_step)

    def stop(self, timeout: float = 5.0) -> None:
        """Request cancellation and wait for the current tick to finish."""
        self._stop_requested.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._running.clear()
        logger.info("Runner stopped at step %d", self.engine.current_step)

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the worker to exit on its own (extinction or max_steps)."""
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def _run_loop(self) -> None:
        try:
            while not self._stop_requested.is_set():
                if not self.engine.is_viable:
                    logger.info("Runner halting: ecosystem not viable at step %d",
                                self.engine.current_step)
                    break
                if self.max_steps is not None and self.steps_run >= self.max_steps:
                    break

                self.engine.step()
                self.steps_run += 1

                delay = self.engine.config.run.sim_delay_ms / 1000.0
                if delay > 0:
                    self._stop_requested.wait(delay)
        except Exception as exc:
            self.error = exc
            logger.exception("Runner aborted at step %d", self.engine.current_step)
        finally:
            self._running.clear()
