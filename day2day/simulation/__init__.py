"""
day2day Simulation Toolkit

Spatial processes and formula-driven dataset simulation.

Usage:
    from day2day.simulation import sim_model, msim_model, gp, mgp, mfe

    data = sim_model({'mean': '5 + 0.5 * x1', 'sd': 'exp(x1)'}, n=100, seed=1)
"""

from day2day.simulation.covariance import (
    exp_cor,
    exp_cov,
    spatial_correlation,
    distance_matrix,
    mk_sp_cov,
    COVARIANCE_FUNCTIONS,
    CORRELATION_MODELS,
)

from day2day.simulation.generators import (
    GENERATORS,
    get_generator,
    generator_parameters,
)

from day2day.simulation.processes import gp, mgp, mfe

from day2day.simulation.models import (
    sim_model,
    msim_model,
    parse_formula,
    formula_predictors,
    simulate_predictors,
)

__all__ = [
    'exp_cor',
    'exp_cov',
    'spatial_correlation',
    'distance_matrix',
    'mk_sp_cov',
    'COVARIANCE_FUNCTIONS',
    'CORRELATION_MODELS',
    'GENERATORS',
    'get_generator',
    'generator_parameters',
    'gp',
    'mgp',
    'mfe',
    'sim_model',
    'msim_model',
    'parse_formula',
    'formula_predictors',
    'simulate_predictors',
]
