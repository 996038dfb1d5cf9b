"""
Argument Validation
===================

Checks shared by the engines and the simulation toolkit.
Bad input fails loudly before any output is produced.

Usage:
    from day2day.engines.validation import check_width, InvalidArgument

    width = check_width(width)
    values = as_vector(a)
"""

import numbers
from typing import Iterable, Optional, Sequence

import numpy as np


class InvalidArgument(ValueError):
    """Raised when an argument is outside its accepted range or shape."""
    pass


class EmptyInput(InvalidArgument):
    """Raised when an operation needs data and receives none."""
    pass


# =============================================================================
# POLICY NAMES
# =============================================================================

ALIGNMENTS = ('right', 'center', 'left')
BOUNDARIES = ('shrink', 'nan')


def check_width(width, name: str = 'width') -> int:
    """
    Validate a window width.

    Accepts Python and NumPy integers (and integral floats such as 3.0).
    Booleans are rejected even though they are ints.

    Returns:
        width as a plain int
    """
    if isinstance(width, (bool, np.bool_)):
        raise InvalidArgument(f"{name} must be an integer, got {width!r}")

    if isinstance(width, numbers.Integral):
        value = int(width)
    elif isinstance(width, numbers.Real) and float(width).is_integer():
        value = int(width)
    else:
        raise InvalidArgument(f"{name} must be an integer, got {width!r}")

    if value < 1:
        raise InvalidArgument(f"{name} must be >= 1, got {value}")

    return value


def check_choice(value: str, choices: Sequence[str], name: str) -> str:
    """Validate that value is one of the allowed policy names."""
    if value not in choices:
        raise InvalidArgument(
            f"Unknown {name}: {value!r}. Options: {list(choices)}"
        )
    return value


def as_vector(a, name: str = 'a') -> np.ndarray:
    """
    Convert an array-like to a 1-D float64 array.

    The caller's object is never modified; a copy is made whenever the
    input is not already a float64 array.
    """
    if a is None:
        raise InvalidArgument(f"{name} must be a sequence, got None")

    try:
        values = np.asarray(a, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"{name} must be numeric: {e}") from e

    if values.ndim != 1:
        raise InvalidArgument(
            f"{name} must be one-dimensional, got shape {values.shape}"
        )

    return values


def require_columns(columns: Iterable[str], available: Iterable[str]) -> None:
    """Raise InvalidArgument listing any column that is not available."""
    available = set(available)
    missing = [c for c in columns if c not in available]
    if missing:
        raise InvalidArgument(
            f"Missing columns: {missing}. Available: {sorted(available)}"
        )


def require_length(values: np.ndarray, n: int, name: str, allow_scalar: bool = True,
                   alternatives: Optional[Sequence[int]] = None) -> np.ndarray:
    """
    Broadcast a scalar to length n, or check that values already has an
    accepted length.
    """
    values = np.atleast_1d(np.asarray(values, dtype=np.float64))
    if values.size == 1 and allow_scalar:
        return np.full(n, float(values[0]))

    accepted = [n] + list(alternatives or [])
    if values.ndim != 1 or values.size not in accepted:
        raise InvalidArgument(
            f"{name} has length {values.size}, expected one of {accepted}"
        )
    return values
