"""
Moving-average smoothing of noisy per-frame geometry
"""
import threading
from collections import deque
from typing import Any, Callable, Optional, Sequence, Tuple

import numpy as np

from fretcoach.config.guitar_config import SMOOTHING_WINDOW


def _mean_rows(rows: np.ndarray) -> np.ndarray:
    """
    Column mean taken relative to the first row.

    Identical rows give back exactly that row, which a plain sum-then-divide
    does not guarantee in floating point.
    """
    first = rows[0]
    return first + np.mean(rows - first, axis=0)


class TemporalSmoother:
    """
    Fixed-window moving average over fixed-shape samples.

    Samples are converted to arrays with ``to_array`` for averaging and the
    mean is converted back with ``from_array``. By default, samples with
    ``as_array`` / ``from_array`` (NormalizedPoint, FretboardZone) use those;
    scalars and tuples are averaged as plain numbers.
    """

    def __init__(self,
                 window: int = SMOOTHING_WINDOW,
                 default: Any = None,
                 to_array: Optional[Callable[[Any], Any]] = None,
                 from_array: Optional[Callable[[np.ndarray], Any]] = None):
        """
        Args:
            window: Number of most recent samples averaged
            default: Returned by average() while the buffer is empty
            to_array: Sample -> array-like of floats
            from_array: Averaged array -> sample type
        """
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")

        self.window = window
        self.default = default
        self._to_array = to_array or _sample_array
        self._from_array = from_array
        self._samples = deque(maxlen=window)
        self._lock = threading.Lock()

    def push(self, sample: Any):
        """Append a sample, evicting the oldest once the window is full"""
        with self._lock:
            self._samples.append(sample)

    def average(self) -> Any:
        """Mean of the buffered samples, or the default when empty"""
        with self._lock:
            samples = list(self._samples)

        if not samples:
            return self.default

        rows = np.array([self._to_array(s) for s in samples], dtype=float)
        from_array = self._from_array or getattr(type(samples[0]), 'from_array', _plain_value)
        return from_array(_mean_rows(rows))

    def clear(self):
        with self._lock:
            self._samples.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)


def _sample_array(sample):
    if hasattr(sample, 'as_array'):
        return sample.as_array()
    return np.asarray(sample, dtype=float)


def _plain_value(values: np.ndarray):
    if values.ndim == 0:
        return float(values)
    return tuple(float(v) for v in values)


class LineSmoother:
    """
    Moving average over line-position vectors whose length varies per frame.

    Index ``i`` of the result averages only the buffered vectors that have an
    entry at ``i``; shorter vectors contribute nothing there (no zero
    padding). A frame where fewer lines were found therefore leaves the
    well-detected positions of earlier frames intact.
    """

    def __init__(self, window: int = SMOOTHING_WINDOW, max_lines: Optional[int] = None,
                 default: Tuple[float, ...] = ()):
        """
        Args:
            window: Number of most recent vectors averaged
            max_lines: Cap on the averaged vector length (None = no cap)
            default: Returned by average() while the buffer is empty
        """
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")

        self.window = window
        self.max_lines = max_lines
        self.default = tuple(default)
        self._samples = deque(maxlen=window)
        self._lock = threading.Lock()

    def push(self, positions: Sequence[float]):
        with self._lock:
            self._samples.append(tuple(float(p) for p in positions))

    def average(self) -> Tuple[float, ...]:
        """Index-wise partial average, sorted ascending"""
        with self._lock:
            samples = list(self._samples)

        if not samples:
            return self.default

        longest = max(len(s) for s in samples)
        if self.max_lines is not None:
            longest = min(longest, self.max_lines)

        averaged = []
        for i in range(longest):
            values = [s[i] for s in samples if i < len(s)]
            if values:
                averaged.append(float(_mean_rows(np.array(values, dtype=float))))

        return tuple(sorted(averaged))

    def clear(self):
        with self._lock:
            self._samples.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
