"""Rolling window of process creation counts."""

from collections.abc import Sequence

RATE_SCALE = 2


def current_rate(history: Sequence[int], scale: int = RATE_SCALE) -> int:
    """
    Display rate derived from the newest sample.

    With 200ms samples, doubling the latest count is a cheap stand-in for
    processes per second. It is not an average.
    """
    if not history:
        return 0
    return history[-1] * scale


class RateAggregator:
    """Counts events between ticks and keeps a fixed-length sample history."""

    def __init__(self, history_length: int = 80, scale: int = RATE_SCALE) -> None:
        self._history: list[int] = [0] * history_length
        self._pending = 0
        self._scale = scale

    @property
    def pending(self) -> int:
        """Events recorded since the last tick."""
        return self._pending

    @property
    def history(self) -> list[int]:
        """Copy of the sample window, oldest first."""
        return list(self._history)

    @property
    def current_rate(self) -> int:
        return current_rate(self._history, self._scale)

    def record_event(self) -> None:
        self._pending += 1

    def tick(self) -> list[int]:
        """Close the current interval and return the updated history."""
        if self._history:
            self._history = self._history[1:] + [self._pending]
        self._pending = 0
        return self.history
