"""
day2day - Day-to-day statistical utilities
==========================================

Architecture:
    - engines/runmean.py:   Running mean (batch and streaming)
    - engines/windowed/:    Observation-level engines (rolling window)
    - engines/frame.py:     Per-signal rolling mean on Polars frames
    - db/:                  Table I/O and data folder summaries
    - simulation/:          Spatial processes and model-based simulation
    - config/:              YAML defaults
    - cli.py:               Command line interface

Usage:
    # CLI
    python -m day2day runmean -i observations.parquet --width 7 -o smoothed.parquet
    python -m day2day summarize -p data/

    # Python
    from day2day import runmean
    runmean([1, 2, 3, 4, 5], 3)
"""

__version__ = "0.2.0"

from day2day.engines.runmean import runmean, RunningMean
from day2day.engines.validation import InvalidArgument, EmptyInput

# Lazy imports keep `import day2day` light
__all__ = [
    'runmean',
    'RunningMean',
    'InvalidArgument',
    'EmptyInput',
    'engines',
    'db',
    'simulation',
    'config',
    '__version__',
]


def __getattr__(name):
    """Lazy import of submodules."""
    if name == 'engines':
        from . import engines
        return engines
    elif name == 'db':
        from . import db
        return db
    elif name == 'simulation':
        from . import simulation
        return simulation
    elif name == 'config':
        from . import config
        return config
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
