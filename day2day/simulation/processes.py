"""
Spatial Process Simulation
==========================

gp    one realisation of a Gaussian process at the points (s1, s2)
mgp   multivariate process from a linear model of coregionalisation
mfe   multivariate fixed effect

Usage:
    rng = np.random.default_rng(1)
    s1, s2 = 2 * rng.random(100), 2 * rng.random(100)
    y = gp(s1, s2, 'exp_cov', {'phi': 0.05, 'sigma2': 1.0}, rng=rng)
"""

from typing import Any, Callable, Dict, Optional, Sequence, Union

import numpy as np
from scipy import linalg

from day2day.engines.validation import InvalidArgument
from day2day.simulation.covariance import (
    CORRELATION_MODELS,
    distance_matrix,
    mk_sp_cov,
    resolve_covariance,
)


def _lower_cholesky(varcov: np.ndarray) -> np.ndarray:
    try:
        return linalg.cholesky(varcov, lower=True)
    except linalg.LinAlgError as e:
        raise InvalidArgument(f"Covariance matrix is not positive definite: {e}") from e


def gp(
    s1,
    s2,
    cov_model: Union[str, Callable] = 'exp_cov',
    cov_params: Optional[Dict[str, Any]] = None,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Simulate a spatial Gaussian process.

    Args:
        s1: First coordinate
        s2: Second coordinate
        cov_model: Covariance function of the distance matrix, or its name
        cov_params: Keyword arguments for cov_model (e.g. phi, sigma2)
        rng: Random generator

    Returns:
        Realisation at each point
    """
    rng = rng if rng is not None else np.random.default_rng()
    cov_fn = resolve_covariance(cov_model)

    distance = distance_matrix(s1, s2)
    varcov = np.asarray(cov_fn(distance, **(cov_params or {})), dtype=np.float64)
    lower = _lower_cholesky(varcov)

    return lower @ rng.standard_normal(distance.shape[0])


def mgp(
    s1,
    s2,
    cov_model: str = 'exponential',
    variance=None,
    nugget=None,
    phi: Optional[Sequence[float]] = None,
    kappa: Optional[Sequence[float]] = None,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Simulate a multivariate spatial Gaussian process Y(s) = A S(s).

    Args:
        s1: First coordinate
        s2: Second coordinate
        cov_model: Correlation family ('exponential', 'gaussian', 'spherical', 'matern')
        variance: q x q non-spatial covariance
        nugget: q x q diagonal matrix of non-spatial noise (default zeros)
        phi: q decay parameters
        kappa: q smoothness parameters (matern only)
        rng: Random generator

    Returns:
        Vector of length n*q; entries [k*n, (k+1)*n) belong to response k+1
    """
    if cov_model not in CORRELATION_MODELS:
        raise InvalidArgument(f"Unknown correlation model: {cov_model}. Options: {list(CORRELATION_MODELS)}")
    if variance is None or phi is None:
        raise InvalidArgument("mgp needs both variance and phi")

    rng = rng if rng is not None else np.random.default_rng()
    variance = np.atleast_2d(np.asarray(variance, dtype=np.float64))
    q = variance.shape[0]
    nugget = np.zeros((q, q)) if nugget is None else nugget

    theta = np.atleast_1d(np.asarray(phi, dtype=np.float64))
    if kappa is not None:
        theta = np.concatenate([theta, np.atleast_1d(np.asarray(kappa, dtype=np.float64))])

    coords = np.column_stack([np.asarray(s1, dtype=np.float64), np.asarray(s2, dtype=np.float64)])
    n = coords.shape[0]

    varcov = mk_sp_cov(coords, variance, nugget, theta, cov_model)
    output = _lower_cholesky(varcov) @ rng.standard_normal(n * q)

    # location-major -> response-major
    return output.reshape(n, q).ravel(order='F')


def mfe(x, beta) -> np.ndarray:
    """
    Multivariate fixed effect.

    Args:
        x: Length-n covariate
        beta: Length-q effect per response

    Returns:
        Vector of length n*q; entries [k*n, (k+1)*n) equal beta[k] * x
    """
    x = np.asarray(x, dtype=np.float64).ravel()
    beta = np.asarray(beta, dtype=np.float64).ravel()
    return np.outer(x, beta).ravel(order='F')
