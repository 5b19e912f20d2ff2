"""
Per-frame timing for diagnostic overlays and logs.
"""

import logging
import time

logger = logging.getLogger(__name__)


class FrameTimer:
    """
    Accumulates elapsed time of a repeated operation.

    Every ``interval`` measurements the mean duration and rate are logged
    at INFO level and the accumulator restarts.

    Example:
        >>> timer = FrameTimer("advance", interval=100)
        >>> timer.start()
        >>> ...
        >>> timer.stop()
    """

    def __init__(self, label: str, interval: int = 100):
        self.label = label
        self.interval = interval
        self.count = 0
        self.last_elapsed = 0.0
        self._started: float | None = None
        self._window_total = 0.0
        self._window_count = 0
        self._mean = 0.0

    def start(self) -> None:
        """Mark the beginning of a measurement."""
        self._started = time.perf_counter()

    def stop(self) -> float:
        """
        End the current measurement.

        Returns:
            Elapsed seconds since start()

        Raises:
            RuntimeError: If start() was not called first
        """
        if self._started is None:
            raise RuntimeError(f"Timer '{self.label}' stopped before it was started")

        elapsed = time.perf_counter() - self._started
        self._started = None
        self.record(elapsed)
        return elapsed

    def record(self, elapsed: float) -> None:
        """Add an externally measured duration in seconds."""
        self.last_elapsed = elapsed
        self.count += 1
        self._window_total += elapsed
        self._window_count += 1

        if self._window_count >= self.interval:
            self._mean = self._window_total / self._window_count
            logger.info(
                "%s: %.2f ms/frame (%.1f fps) over %d frames",
                self.label, self.mean_ms, self.fps, self._window_count,
            )
            self._window_total = 0.0
            self._window_count = 0

    @property
    def mean_ms(self) -> float:
        """Mean duration in milliseconds over the last complete window."""
        if self._mean == 0.0 and self._window_count:
            return 1000.0 * self._window_total / self._window_count
        return 1000.0 * self._mean

    @property
    def fps(self) -> float:
        """Rate corresponding to mean_ms, or 0 when nothing is measured yet."""
        ms = self.mean_ms
        return 1000.0 / ms if ms > 0 else 0.0

    def summary(self) -> str:
        """Short text for overlays."""
        return f"{self.label}: {self.mean_ms:.1f}ms ({self.fps:.1f} fps)"

    def reset(self) -> None:
        self.count = 0
        self.last_elapsed = 0.0
        self._started = None
        self._window_total = 0.0
        self._window_count = 0
        self._mean = 0.0
