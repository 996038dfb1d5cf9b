"""
day2day Engines Package.

Engine registry for the windowed computations. Engines are plain compute
functions that take a signal array and return a dict of named outputs.

Usage:
    from day2day.engines import get_engine, list_engines

    compute_fn = get_engine("rolling_mean")
    result = compute_fn(values_array, window=7)

    for name in list_engines():
        print(name)
"""

from typing import Callable, Dict, List

import numpy as np

from day2day.engines.runmean import runmean, RunningMean
from day2day.engines.validation import InvalidArgument, EmptyInput
from day2day.engines.windowed import rolling_mean


# =============================================================================
# Observation Engines (one output per sample)
# =============================================================================

OBSERVATION_ENGINES: Dict[str, Callable[..., dict]] = {
    "rolling_mean": rolling_mean.compute,
}

# Unified registry: all engines
ENGINES: Dict[str, Callable[..., dict]] = {
    **OBSERVATION_ENGINES,
}


# =============================================================================
# Public API
# =============================================================================

def get_engine(name: str) -> Callable[[np.ndarray], dict]:
    """
    Get an engine by name.

    Args:
        name: Engine name (e.g., 'rolling_mean')

    Returns:
        compute function (callable)

    Raises:
        KeyError: If engine not found
    """
    if name not in ENGINES:
        available = ", ".join(sorted(ENGINES.keys()))
        raise KeyError(f"Unknown engine: {name}. Available: {available}")
    return ENGINES[name]


def list_engines() -> List[str]:
    """Get sorted list of all available engine names."""
    return sorted(ENGINES.keys())


__all__ = [
    'runmean',
    'RunningMean',
    'InvalidArgument',
    'EmptyInput',
    'ENGINES',
    'OBSERVATION_ENGINES',
    'get_engine',
    'list_engines',
]
