"""
Running Mean
============

Windowed arithmetic mean over a numeric sequence. Output always has the
same length as the input.

Window placement (align):
    right   trailing window [i - width + 1, i]
    center  [i - width // 2, i + (width - 1) // 2]
    left    leading window [i, i + width - 1]

Boundary policy (positions without a full window):
    shrink  average the elements that exist (default)
    nan     leave the position as NaN

Window sums come from prefix sums that are restarted every
max(block_size, width) output positions, so rounding drift is bounded by
the block length rather than by the length of the sequence. Each restart
reads at most twice the block length, which keeps the total work linear in
the length of the sequence for any width.

Usage:
    from day2day.engines.runmean import runmean

    runmean([1, 2, 3, 4, 5], 3)
    # array([1. , 1.5, 2. , 3. , 4. ])
"""

import logging
import math
from collections import deque
from typing import Deque, Tuple

import numpy as np

from day2day.engines.validation import (
    ALIGNMENTS,
    BOUNDARIES,
    InvalidArgument,
    as_vector,
    check_choice,
    check_width,
)

logger = logging.getLogger(__name__)


DEFAULT_ALIGN = 'right'
DEFAULT_BOUNDARY = 'shrink'
DEFAULT_BLOCK_SIZE = 4096


def window_offsets(width: int, align: str = DEFAULT_ALIGN) -> Tuple[int, int]:
    """
    Number of samples before and after position i covered by its window.

    lo + hi + 1 == width for every alignment.
    """
    if align == 'right':
        return width - 1, 0
    if align == 'left':
        return 0, width - 1
    return width // 2, (width - 1) // 2


def runmean(
    a,
    width: int,
    align: str = DEFAULT_ALIGN,
    boundary: str = DEFAULT_BOUNDARY,
    skipna: bool = False,
    block_size: int = DEFAULT_BLOCK_SIZE,
) -> np.ndarray:
    """
    Compute the running mean of a sequence.

    Args:
        a: 1-D numeric sequence (may contain NaN)
        width: Number of samples per window, >= 1
        align: 'right', 'center' or 'left'
        boundary: 'shrink' or 'nan'
        skipna: Drop NaN inside each window instead of propagating it
        block_size: Output positions between prefix-sum restarts (raised
            to width when width is larger)

    Returns:
        New float64 array with len(a) elements

    Raises:
        InvalidArgument: bad width, shape or policy name
    """
    values = as_vector(a)
    width = check_width(width)
    check_choice(align, ALIGNMENTS, 'align')
    check_choice(boundary, BOUNDARIES, 'boundary')
    block_size = check_width(block_size, name='block_size')

    n = values.size
    if n == 0:
        return np.empty(0, dtype=np.float64)

    if width == 1:
        return values.copy()

    if width > n:
        logger.debug(f"width {width} exceeds length {n}, every window is clipped")

    lo, hi = window_offsets(width, align)
    result = np.empty(n, dtype=np.float64)

    step = max(block_size, width)
    for start in range(0, n, step):
        stop = min(start + step, n)
        result[start:stop] = _block_means(values, start, stop, lo, hi, skipna)

    if boundary == 'nan':
        result[:min(lo, n)] = np.nan
        if hi:
            result[max(n - hi, 0):] = np.nan

    return result


def _block_means(
    values: np.ndarray,
    start: int,
    stop: int,
    lo: int,
    hi: int,
    skipna: bool,
) -> np.ndarray:
    """Means for output positions [start, stop) from a fresh prefix sum."""
    n = values.size
    seg_lo = max(start - lo, 0)
    seg_hi = min(stop - 1 + hi, n - 1)
    seg = values[seg_lo:seg_hi + 1]

    finite = np.isfinite(seg)
    nan = np.isnan(seg)
    posinf = np.isposinf(seg)
    neginf = np.isneginf(seg)

    def prefix(x: np.ndarray) -> np.ndarray:
        out = np.zeros(x.size + 1, dtype=np.float64 if x.dtype.kind == 'f' else np.int64)
        np.cumsum(x, out=out[1:])
        return out

    sums = prefix(np.where(finite, seg, 0.0))
    n_finite = prefix(finite.astype(np.int64))
    n_nan = prefix(nan.astype(np.int64))
    n_pos = prefix(posinf.astype(np.int64))
    n_neg = prefix(neginf.astype(np.int64))

    idx = np.arange(start, stop)
    left = np.maximum(idx - lo, 0) - seg_lo
    right = np.minimum(idx + hi, n - 1) + 1 - seg_lo

    total = sums[right] - sums[left]
    count = n_finite[right] - n_finite[left]
    has_nan = (n_nan[right] - n_nan[left]) > 0
    has_pos = (n_pos[right] - n_pos[left]) > 0
    has_neg = (n_neg[right] - n_neg[left]) > 0

    with np.errstate(invalid='ignore', divide='ignore'):
        means = total / count

    means[count == 0] = np.nan
    means[has_pos] = np.inf
    means[has_neg] = -np.inf
    means[has_pos & has_neg] = np.nan
    if not skipna:
        means[has_nan] = np.nan

    return means


# =============================================================================
# STREAMING
# =============================================================================

class RunningMean:
    """
    Streaming trailing mean.

    Feeding a sequence through update() one value at a time gives the same
    values as runmean(a, width) with align='right' and boundary='shrink'.

    Usage:
        rm = RunningMean(width=3)
        [rm.update(v) for v in [1, 2, 3, 4, 5]]
        # [1.0, 1.5, 2.0, 3.0, 4.0]
    """

    def __init__(self, width: int, skipna: bool = False,
                 resum_interval: int = DEFAULT_BLOCK_SIZE):
        self.width = check_width(width)
        self.skipna = skipna
        self.resum_interval = check_width(resum_interval, name='resum_interval')
        self.buffer: Deque[float] = deque()
        self.reset()

    def reset(self) -> None:
        """Drop every buffered sample."""
        self.buffer.clear()
        self._sum = 0.0
        self._n_finite = 0
        self._n_nan = 0
        self._n_pos = 0
        self._n_neg = 0
        self._since_resum = 0

    @property
    def count(self) -> int:
        """Number of samples currently in the window."""
        return len(self.buffer)

    @property
    def mean(self) -> float:
        """Mean of the current window (NaN when empty)."""
        if self._n_nan and not self.skipna:
            return math.nan
        if self._n_pos and self._n_neg:
            return math.nan
        if self._n_pos:
            return math.inf
        if self._n_neg:
            return -math.inf
        if self._n_finite == 0:
            return math.nan
        return self._sum / self._n_finite

    def update(self, value: float) -> float:
        """Push one sample and return the mean of the trailing window."""
        value = float(value)
        self.buffer.append(value)
        self._track(value, +1)

        if len(self.buffer) > self.width:
            self._track(self.buffer.popleft(), -1)

        self._since_resum += 1
        if self._since_resum >= self.resum_interval:
            self._resum()

        return self.mean

    def _track(self, value: float, sign: int) -> None:
        if math.isnan(value):
            self._n_nan += sign
        elif value == math.inf:
            self._n_pos += sign
        elif value == -math.inf:
            self._n_neg += sign
        else:
            self._sum += sign * value
            self._n_finite += sign

    def _resum(self) -> None:
        self._sum = math.fsum(v for v in self.buffer if math.isfinite(v))
        self._since_resum = 0

    def __repr__(self) -> str:
        return f"RunningMean(width={self.width}, count={self.count}, mean={self.mean})"


__all__ = [
    'runmean',
    'window_offsets',
    'RunningMean',
    'InvalidArgument',
    'DEFAULT_ALIGN',
    'DEFAULT_BOUNDARY',
    'DEFAULT_BLOCK_SIZE',
]
