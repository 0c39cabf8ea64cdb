"""
Progress helpers for displaying crawl status.

The crawler only reports counts; estimating the remaining time is left to
whoever listens on the progress channel.
"""

import time
from typing import Callable, Optional

from .constants import ETA_SMOOTHING_FACTOR, ETA_WARMUP_ITEMS


def format_duration(seconds: float) -> str:
    """
    Format a duration for display.

    Args:
        seconds: Duration in seconds

    Returns:
        String such as ``"1m 05s"`` or ``"12s"``
    """
    seconds = int(round(seconds))
    minutes, secs = divmod(seconds, 60)
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


class EtaEstimator:
    """
    Estimates remaining crawl time from progress updates.

    Uses an exponential moving average of the per-item duration so that the
    estimate does not jump around while the total keeps growing.
    """

    def __init__(
        self,
        smoothing: float = ETA_SMOOTHING_FACTOR,
        warmup: int = ETA_WARMUP_ITEMS,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the estimator.

        Args:
            smoothing: Weight of the newest sample in the moving average
            warmup: Number of completions required before estimating
            clock: Time source in seconds
        """
        self.smoothing = smoothing
        self.warmup = warmup
        self._clock = clock
        self._started: Optional[float] = None
        self._average: float = 0.0

    def start(self) -> None:
        """Reset the estimator and start timing."""
        self._started = self._clock()
        self._average = 0.0

    def update(self, downloaded: int, total: int) -> Optional[float]:
        """
        Feed a progress update.

        Args:
            downloaded: Items completed so far
            total: Items known so far

        Returns:
            Estimated seconds remaining, or None while warming up
        """
        if self._started is None:
            self.start()

        if downloaded <= self.warmup or total <= 0:
            return None

        elapsed = self._clock() - self._started
        current = elapsed / downloaded

        if self._average == 0.0:
            self._average = current
        else:
            self._average = (
                current * self.smoothing + self._average * (1 - self.smoothing)
            )

        return max(self._average * total - elapsed, 0.0)

    def describe(self, downloaded: int, total: int) -> str:
        """
        Build an ETA label for a progress update.

        Returns:
            Human readable remaining time, ``"Finishing up..."`` near the end,
            or an empty string while warming up
        """
        remaining = self.update(downloaded, total)
        if remaining is None:
            return ""
        if remaining > 1:
            return f"ETA {format_duration(remaining)}"
        if downloaded < total:
            return "Finishing up..."
        return ""
