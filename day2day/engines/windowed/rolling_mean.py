"""
Rolling Mean Engine.

Computes mean over rolling windows. Every position gets a value; windows
that run past either end of the signal are clipped unless boundary='nan'.
"""

import numpy as np

from day2day.engines.runmean import runmean, DEFAULT_ALIGN, DEFAULT_BOUNDARY


def compute(
    y: np.ndarray,
    window: int = 50,
    align: str = DEFAULT_ALIGN,
    boundary: str = DEFAULT_BOUNDARY,
    skipna: bool = False,
) -> dict:
    """
    Compute rolling mean.

    Args:
        y: Signal values
        window: Window size
        align: Window placement ('right', 'center', 'left')
        boundary: 'shrink' or 'nan' for positions without a full window
        skipna: Ignore NaN inside each window

    Returns:
        dict with 'rolling_mean' array
    """
    return {
        'rolling_mean': runmean(y, window, align=align, boundary=boundary, skipna=skipna)
    }
