"""Minimum-interval gate for accepted detections."""

import time
from typing import Callable, Optional

DEFAULT_INTERVAL_MS = 8000


class Debouncer:
    """Lets a trigger through at most once per interval.

    The interval is measured from the last accepted trigger; rejected
    attempts do not extend it. Only the pipeline's worker thread calls
    ``should_trigger``.
    """

    def __init__(self, interval_ms: int = DEFAULT_INTERVAL_MS,
                 clock: Callable[[], float] = time.monotonic):
        if interval_ms < 0:
            raise ValueError(f"Debounce interval must be non-negative, got {interval_ms}")
        self.interval_ms = interval_ms
        self._clock = clock
        self._last_trigger: Optional[float] = None

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0

    def should_trigger(self) -> bool:
        now = self._clock()
        if self._last_trigger is None or now - self._last_trigger >= self.interval_seconds:
            self._last_trigger = now
            return True
        return False

    def remaining_ms(self) -> int:
        """Milliseconds until a trigger would be accepted, 0 if one would be now."""
        if self._last_trigger is None:
            return 0
        elapsed = self._clock() - self._last_trigger
        return max(0, int(round((self.interval_seconds - elapsed) * 1000)))

    def reset(self) -> None:
        """Forget the last trigger so the next call is accepted."""
        self._last_trigger = None
