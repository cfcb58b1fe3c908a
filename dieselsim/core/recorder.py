"""Trend recorder for plotting-oriented plant history.

Keeps bounded sliding windows of power, temperature and efficiency, sampled
once per whole simulated second rather than every tick, so the plotting
cadence does not depend on the tick rate.
"""

import math
from collections import deque

TREND_CHANNELS = ("power", "temperature", "efficiency")


class TrendRecorder:
    """Sliding-window {time, value} samples per channel."""

    def __init__(self, capacity: int = 100, channels: tuple[str, ...] = TREND_CHANNELS):
        self.capacity = capacity
        self._windows: dict[str, deque[dict]] = {
            name: deque(maxlen=capacity) for name in channels
        }
        self._total_samples = 0

    @staticmethod
    def crossed_second(old_time: float, new_time: float) -> bool:
        return math.floor(new_time) > math.floor(old_time)

    def record(self, old_time: float, new_time: float, values: dict[str, float]) -> bool:
        """Append one sample per channel if a whole second was crossed.

        Returns True when a sample was taken.
        """
        if not self.crossed_second(old_time, new_time):
            return False

        for name, window in self._windows.items():
            window.append({"time": new_time, "value": values[name]})
        self._total_samples += 1
        return True

    def history(self, channel: str) -> list[dict]:
        return list(self._windows[channel])

    def clear(self):
        for window in self._windows.values():
            window.clear()
        self._total_samples = 0

    @property
    def total_samples(self) -> int:
        return self._total_samples
