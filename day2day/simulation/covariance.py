"""
Spatial Covariance Models
=========================

Range-parameterised helpers (exp_cor, exp_cov) used with gp(), and
decay-parameterised correlation families used by the multivariate
coregionalisation model.

Correlation families (phi is a decay, 1 / range):
    exponential   exp(-phi d)
    gaussian      exp(-(phi d)^2)
    spherical     1 - 1.5 phi d + 0.5 (phi d)^3  for d < 1/phi, else 0
    matern        (phi d)^nu K_nu(phi d) / (2^(nu-1) Gamma(nu))
"""

from typing import Callable, Dict, Optional, Sequence, Union

import numpy as np
from scipy import linalg
from scipy.spatial.distance import pdist, squareform
from scipy.special import gamma, kv

from day2day.engines.validation import EmptyInput, InvalidArgument


def exp_cor(dis, phi):
    """Exponential correlation with range phi: exp(-dis / phi)."""
    return np.exp(-np.asarray(dis, dtype=np.float64) / phi)


def exp_cov(dis, phi, sigma2):
    """Exponential covariance with range phi and variance sigma2."""
    return sigma2 * exp_cor(dis, phi)


COVARIANCE_FUNCTIONS: Dict[str, Callable[..., np.ndarray]] = {
    'exp_cor': exp_cor,
    'exp_cov': exp_cov,
}


def resolve_covariance(cov_model: Union[str, Callable]) -> Callable:
    """Look up a covariance function by name, or pass a callable through."""
    if callable(cov_model):
        return cov_model
    if cov_model not in COVARIANCE_FUNCTIONS:
        available = ", ".join(sorted(COVARIANCE_FUNCTIONS))
        raise InvalidArgument(f"Unknown covariance model: {cov_model}. Available: {available}")
    return COVARIANCE_FUNCTIONS[cov_model]


# =============================================================================
# CORRELATION FAMILIES
# =============================================================================

CORRELATION_MODELS = ('exponential', 'gaussian', 'spherical', 'matern')


def spatial_correlation(d: np.ndarray, model: str, phi: float,
                        kappa: Optional[float] = None) -> np.ndarray:
    """
    Evaluate a correlation family on a distance matrix.

    Args:
        d: Distances
        model: One of CORRELATION_MODELS
        phi: Decay parameter (> 0)
        kappa: Smoothness, required for 'matern'
    """
    if phi <= 0:
        raise InvalidArgument(f"phi must be > 0, got {phi}")
    d = np.asarray(d, dtype=np.float64)
    h = phi * d

    if model == 'exponential':
        return np.exp(-h)
    if model == 'gaussian':
        return np.exp(-h ** 2)
    if model == 'spherical':
        return np.where(h < 1.0, 1.0 - 1.5 * h + 0.5 * h ** 3, 0.0)
    if model == 'matern':
        if kappa is None or kappa <= 0:
            raise InvalidArgument("matern correlation needs kappa > 0")
        with np.errstate(invalid='ignore'):
            rho = h ** kappa * kv(kappa, h) / (2.0 ** (kappa - 1.0) * gamma(kappa))
        return np.where(h == 0.0, 1.0, rho)

    raise InvalidArgument(f"Unknown correlation model: {model}. Options: {list(CORRELATION_MODELS)}")


def distance_matrix(s1, s2) -> np.ndarray:
    """Euclidean distance matrix between the points (s1[i], s2[i])."""
    coords = np.column_stack([np.asarray(s1, dtype=np.float64), np.asarray(s2, dtype=np.float64)])
    if coords.shape[0] == 0:
        raise EmptyInput("No coordinates given")
    return squareform(pdist(coords))


def mk_sp_cov(
    coords: np.ndarray,
    K: np.ndarray,
    Psi: np.ndarray,
    theta: Sequence[float],
    cov_model: str,
) -> np.ndarray:
    """
    Covariance of a linear model of coregionalisation.

    Y(s) = A W(s) + e(s), with K = A A^T, W a vector of q independent
    unit-variance processes and e ~ N(0, Psi).

    Args:
        coords: (n, 2) coordinates
        K: (q, q) cross-covariance
        Psi: (q, q) nugget covariance
        theta: q decay parameters, followed by q smoothness values for matern
        cov_model: Correlation family

    Returns:
        (n*q, n*q) covariance, location-major (q x q blocks)
    """
    coords = np.asarray(coords, dtype=np.float64)
    K = np.atleast_2d(np.asarray(K, dtype=np.float64))
    Psi = np.atleast_2d(np.asarray(Psi, dtype=np.float64))
    theta = np.atleast_1d(np.asarray(theta, dtype=np.float64))
    q = K.shape[0]
    n = coords.shape[0]

    if K.shape != (q, q) or Psi.shape != (q, q):
        raise InvalidArgument(f"K and Psi must both be {q}x{q}, got {K.shape} and {Psi.shape}")
    expected = 2 * q if cov_model == 'matern' else q
    if theta.size != expected:
        raise InvalidArgument(f"theta must have {expected} values for {cov_model}, got {theta.size}")

    try:
        A = linalg.cholesky(K, lower=True)
    except linalg.LinAlgError as e:
        raise InvalidArgument(f"K is not positive definite: {e}") from e

    d = distance_matrix(coords[:, 0], coords[:, 1])
    C = np.kron(np.eye(n), Psi)
    for k in range(q):
        kappa = theta[q + k] if cov_model == 'matern' else None
        R = spatial_correlation(d, cov_model, theta[k], kappa)
        C += np.kron(R, np.outer(A[:, k], A[:, k]))

    return C
