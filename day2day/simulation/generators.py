"""
Response generators for the simulators.

Each generator draws n values given (possibly per-observation) parameters:

    generator(n, rng=rng, **params) -> np.ndarray

Parameters broadcast against n, so scalars and length-n arrays both work.
"""

import inspect
from typing import Callable, Dict, List, Optional, Union

import numpy as np

from day2day.engines.validation import InvalidArgument


def _rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def normal(n: int, mean=0.0, sd=1.0, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Gaussian draws."""
    return _rng(rng).normal(loc=mean, scale=sd, size=n)


def poisson(n: int, lam=1.0, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Poisson counts (as float)."""
    return _rng(rng).poisson(lam=lam, size=n).astype(np.float64)


def binomial(n: int, size=1, prob=0.5, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Binomial counts out of `size` trials (as float)."""
    size = np.asarray(size)
    return _rng(rng).binomial(n=size.astype(np.int64), p=prob, size=n).astype(np.float64)


def gamma(n: int, shape=1.0, scale=1.0, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Gamma draws."""
    return _rng(rng).gamma(shape=shape, scale=scale, size=n)


def uniform(n: int, low=0.0, high=1.0, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Uniform draws on [low, high)."""
    return _rng(rng).uniform(low=low, high=high, size=n)


GENERATORS: Dict[str, Callable[..., np.ndarray]] = {
    'normal': normal,
    'poisson': poisson,
    'binomial': binomial,
    'gamma': gamma,
    'uniform': uniform,
}


def get_generator(generator: Union[str, Callable]) -> Callable[..., np.ndarray]:
    """Look up a generator by name, or pass a callable through."""
    if callable(generator):
        return generator
    if generator not in GENERATORS:
        available = ", ".join(sorted(GENERATORS))
        raise InvalidArgument(f"Unknown generator: {generator}. Available: {available}")
    return GENERATORS[generator]


def generator_parameters(generator: Callable) -> Optional[List[str]]:
    """
    Keyword parameters a generator takes besides n and rng.

    Returns None when the generator accepts arbitrary keywords or its
    signature cannot be read.
    """
    try:
        signature = inspect.signature(generator)
    except (TypeError, ValueError):
        return None

    names = []
    for i, param in enumerate(signature.parameters.values()):
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            return None
        if i == 0 or param.name == 'rng':
            continue
        if param.kind in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY):
            names.append(param.name)
    return names
