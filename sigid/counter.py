from __future__ import annotations

import math
import threading
import time
import weakref
from typing import Optional, Tuple

from .codec import Clock

DEFAULT_COUNTER_MAX = 65536


class Counter:
    """Per-second sequence: resets on a new second and wraps modulo ``max``."""

    def __init__(self, maximum: float = DEFAULT_COUNTER_MAX, clock: Optional[Clock] = None):
        self._max = max(1, math.floor(maximum))
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._last_second = 0
        self._current = 0

    @property
    def max(self) -> int:
        return self._max

    @property
    def last_second(self) -> int:
        return self._last_second

    def next(self) -> Tuple[int, int]:
        with self._lock:
            now = math.floor(self._clock())
            if self._last_second < now:
                self._current = 0
                self._last_second = now
            value = self._current
            self._current = (self._current + 1) % self._max
            return self._last_second, value


_default_counter = Counter()
_clock_counters: "weakref.WeakKeyDictionary[Clock, Counter]" = weakref.WeakKeyDictionary()
_clock_counters_lock = threading.Lock()


def default_counter(clock: Optional[Clock] = None) -> Counter:
    if clock is None or clock is time.time:
        return _default_counter
    with _clock_counters_lock:
        try:
            counter = _clock_counters.get(clock)
        except TypeError:
            # clock cannot be weakly referenced; count for this call only
            return Counter(clock=clock)
        if counter is None:
            counter = Counter(clock=clock)
            _clock_counters[clock] = counter
        return counter
