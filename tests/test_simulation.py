"""
Tests for the simulation toolkit: covariance models, spatial processes
and formula-driven dataset simulation.
"""

import numpy as np
import polars as pl
import pytest

from day2day.engines.validation import EmptyInput, InvalidArgument
from day2day.simulation import (
    exp_cor,
    exp_cov,
    formula_predictors,
    gp,
    mfe,
    mgp,
    mk_sp_cov,
    msim_model,
    parse_formula,
    sim_model,
    spatial_correlation,
)


# ─────────────────────────────────────────────────────────────────────
# Tests: Covariance models
# ─────────────────────────────────────────────────────────────────────

class TestCovariance:

    def test_exp_cor_and_cov(self):
        d = np.array([0.0, 1.0, 2.0])
        np.testing.assert_allclose(exp_cor(d, 2.0), np.exp(-d / 2.0))
        np.testing.assert_allclose(exp_cov(d, 2.0, 3.0), 3.0 * np.exp(-d / 2.0))

    @pytest.mark.parametrize('model,kappa', [
        ('exponential', None), ('gaussian', None), ('spherical', None), ('matern', 1.5),
    ])
    def test_unit_correlation_at_zero(self, model, kappa):
        rho = spatial_correlation(np.array([0.0, 0.5]), model, phi=1.0, kappa=kappa)
        assert rho[0] == pytest.approx(1.0)
        assert 0.0 < rho[1] < 1.0

    def test_spherical_vanishes_beyond_range(self):
        rho = spatial_correlation(np.array([2.0, 5.0]), 'spherical', phi=0.5)
        np.testing.assert_array_equal(rho, [0.0, 0.0])

    def test_matern_half_is_exponential(self):
        d = np.linspace(0.0, 3.0, 7)
        np.testing.assert_allclose(
            spatial_correlation(d, 'matern', phi=2.0, kappa=0.5),
            spatial_correlation(d, 'exponential', phi=2.0),
            rtol=1e-10,
        )

    def test_matern_needs_kappa(self):
        with pytest.raises(InvalidArgument):
            spatial_correlation(np.array([1.0]), 'matern', phi=1.0)

    def test_unknown_model(self):
        with pytest.raises(InvalidArgument):
            spatial_correlation(np.array([1.0]), 'cubic', phi=1.0)

    def test_coregionalisation_blocks(self):
        coords = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 2.0]])
        K = np.array([[4.0, -1.0], [-1.0, 2.0]])
        Psi = np.diag([0.5, 0.25])
        C = mk_sp_cov(coords, K, Psi, [1.0, 2.0], 'exponential')

        assert C.shape == (6, 6)
        np.testing.assert_allclose(C, C.T)
        # diagonal blocks: K + Psi, since every correlation is 1 at distance 0
        for i in range(3):
            np.testing.assert_allclose(C[2 * i:2 * i + 2, 2 * i:2 * i + 2], K + Psi)

    def test_coregionalisation_bad_theta(self):
        with pytest.raises(InvalidArgument):
            mk_sp_cov(np.array([[0.0, 0.0], [1.0, 1.0]]), np.eye(2), np.zeros((2, 2)), [1.0], 'exponential')


# ─────────────────────────────────────────────────────────────────────
# Tests: Spatial processes
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def coords():
    rng = np.random.default_rng(10)
    return 2 * rng.random(25), 2 * rng.random(25)


class TestProcesses:

    def test_gp_reproducible(self, coords):
        s1, s2 = coords
        params = {'phi': 0.05, 'sigma2': 1.0}
        y1 = gp(s1, s2, 'exp_cov', params, rng=np.random.default_rng(1))
        y2 = gp(s1, s2, exp_cov, params, rng=np.random.default_rng(1))
        assert y1.shape == (25,)
        np.testing.assert_allclose(y1, y2)

    def test_gp_unknown_covariance(self, coords):
        with pytest.raises(InvalidArgument):
            gp(*coords, 'matern_cov', {})

    def test_gp_without_points(self):
        with pytest.raises(EmptyInput):
            gp([], [], 'exp_cov', {'phi': 1.0, 'sigma2': 1.0})

    def test_mgp_is_response_major(self, coords):
        s1, s2 = coords
        # second response is (almost) twice the first at every location
        variance = np.array([[1.0, 2.0], [2.0, 4.0001]])
        y = mgp(s1, s2, 'exponential', variance, np.zeros((2, 2)), [5.0, 5.0],
                rng=np.random.default_rng(2))
        assert y.shape == (50,)
        np.testing.assert_allclose(y[25:], 2 * y[:25], atol=0.1)

    def test_mgp_unknown_model(self, coords):
        with pytest.raises(InvalidArgument):
            mgp(*coords, 'cubic', np.eye(2), None, [1.0, 1.0])

    def test_mfe(self):
        np.testing.assert_allclose(
            mfe([1.0, 2.0, 3.0], [0.1, 0.0, 1.0]),
            [0.1, 0.2, 0.3, 0.0, 0.0, 0.0, 1.0, 2.0, 3.0],
        )


# ─────────────────────────────────────────────────────────────────────
# Tests: Formula handling
# ─────────────────────────────────────────────────────────────────────

class TestFormula:

    def test_predictors_in_order_of_appearance(self):
        parsed = parse_formula({'mean': '5 + 0.5 * x1 + 0.1 * x2 + 0.7 * id1', 'sd': 'exp(x1)'})
        assert formula_predictors(parsed) == ['x1', 'x2', 'id1']

    def test_tilde_strings(self):
        parsed = parse_formula(['mean ~ 1 + 2 * x1', 'sd ~ 1'])
        assert list(parsed) == ['mean', 'sd']

    def test_env_names_are_not_predictors(self):
        parsed = parse_formula({'mean': 'logistic(mgp(s1, s2, "exponential", variance, nugget, phi))'})
        env = {'variance': np.eye(2), 'nugget': np.zeros((2, 2)), 'phi': [1.0, 1.0]}
        assert formula_predictors(parsed, env) == ['s1', 's2']

    @pytest.mark.parametrize('formula', [
        {},
        {'mean': '1 +'},
        {'y': 'x1'},
        {'mean': 'x1.__class__'},
        {'mean': 'np.exp(x1)'},
        {'mean': 'x1[0]'},
        {'mean': 'lambda: 1'},
        {'mean': '[v for v in x1]'},
        {'mean': 'x1 or 1'},
        {'mean': 'exp(**kw)'},
        ['mean = x1'],
    ])
    def test_invalid(self, formula):
        with pytest.raises(InvalidArgument):
            parse_formula(formula)


# ─────────────────────────────────────────────────────────────────────
# Tests: sim_model
# ─────────────────────────────────────────────────────────────────────

class TestSimModel:

    def test_columns_and_parameters(self):
        data = sim_model({'mean': '5 + 0.5 * x1 + 0.1 * x2 + 0.7 * id1', 'sd': 'exp(x1)'}, n=100, seed=1)
        assert data.columns == ['x1', 'x2', 'id1', 'mean', 'sd', 'y']
        assert data.height == 100

        x1, x2, id1 = (data[c].to_numpy() for c in ('x1', 'x2', 'id1'))
        np.testing.assert_allclose(data['mean'].to_numpy(), 5 + 0.5 * x1 + 0.1 * x2 + 0.7 * id1)
        np.testing.assert_allclose(data['sd'].to_numpy(), np.exp(x1))

    def test_default_formula(self):
        data = sim_model(n=10, seed=0)
        assert data.columns == ['x1', 'mean', 'sd', 'y']
        np.testing.assert_array_equal(data['sd'].to_numpy(), np.ones(10))

    def test_seed_reproducible(self):
        a = sim_model(n=20, seed=42)
        b = sim_model(n=20, seed=42)
        c = sim_model(n=20, seed=43)
        assert a.equals(b)
        assert not a.equals(c)

    def test_spatial_predictors_within_extent(self):
        data = sim_model({'mean': 's1 + s2', 'sd': '1'}, n=200, seed=3, extent=5.0)
        for col in ('s1', 's2'):
            values = data[col].to_numpy()
            assert values.min() >= 0.0 and values.max() < 5.0
        assert data['s1'].to_numpy().max() > 1.0

    def test_init_data_is_kept(self):
        init = pl.DataFrame({'x1': [0.0, 1.0, 2.0]})
        data = sim_model({'mean': '2 * x1', 'sd': '1'}, n=3, init_data=init, seed=0)
        assert data['x1'].to_list() == [0.0, 1.0, 2.0]
        np.testing.assert_allclose(data['mean'].to_numpy(), [0.0, 2.0, 4.0])

    def test_init_data_row_mismatch(self):
        with pytest.raises(InvalidArgument):
            sim_model({'mean': 'x1'}, n=5, init_data={'x1': [1.0, 2.0]})

    def test_named_generator(self):
        data = sim_model({'lam': 'exp(x1)'}, generator='poisson', n=50, seed=0)
        y = data['y'].to_numpy()
        assert (y >= 0).all() and np.array_equal(y, np.round(y))

    def test_callable_generator(self):
        def constant(n, rng=None, level=0.0):
            return np.full(n, level)

        data = sim_model({'level': '3'}, generator=constant, n=4, seed=0)
        np.testing.assert_array_equal(data['y'].to_numpy(), [3.0] * 4)

    def test_gp_inside_formula(self):
        data = sim_model(
            {'mean': "gp(s1, s2, 'exp_cov', {'phi': 0.05, 'sigma2': 1.0})", 'sd': '0.1'},
            n=30, seed=5, extent=2.0,
        )
        assert data.columns == ['s1', 's2', 'mean', 'sd', 'y']
        assert np.isfinite(data['mean'].to_numpy()).all()

    def test_unknown_function(self):
        with pytest.raises(InvalidArgument):
            sim_model({'mean': 'frobnicate(x1)'}, n=5, seed=0)

    def test_wrong_parameter_length(self):
        with pytest.raises(InvalidArgument):
            sim_model({'mean': 'mfe(x1, beta)'}, n=5, seed=0, env={'beta': [1.0, 2.0]})

    def test_formula_cannot_reach_numpy_io(self, tmp_path):
        target = tmp_path / 'written.txt'
        for expr in (f"np.savetxt('{target}', [1.0]) or 1", f"savetxt('{target}', [1.0])"):
            with pytest.raises(InvalidArgument):
                sim_model({'mean': expr, 'sd': '1'}, n=5, seed=1)
        assert not target.exists()

    def test_comparisons_and_where(self):
        data = sim_model({'mean': 'where(x1 > 0, 1, -1)', 'sd': '1'}, n=50, seed=4)
        x1 = data['x1'].to_numpy()
        np.testing.assert_array_equal(data['mean'].to_numpy(), np.where(x1 > 0, 1.0, -1.0))

    def test_non_numeric_parameter(self):
        with pytest.raises(InvalidArgument):
            sim_model({'mean': "'abc'", 'sd': '1'}, n=5, seed=0)

    def test_overflowing_power(self):
        with pytest.raises(InvalidArgument):
            sim_model({'mean': '9 ** 9 ** 9', 'sd': '1'}, n=5, seed=0)

    def test_parameter_not_taken_by_generator(self):
        with pytest.raises(InvalidArgument, match='mu'):
            sim_model({'mu': '1', 'sd': '1'}, n=5, seed=0)

    def test_invalid_parameter_value(self):
        with pytest.raises(InvalidArgument):
            sim_model({'mean': '0', 'sd': '-1'}, n=5, seed=0)

    def test_non_positive_extent(self):
        with pytest.raises(InvalidArgument):
            sim_model({'mean': 's1', 'sd': '1'}, n=5, seed=0, extent=0.0)


# ─────────────────────────────────────────────────────────────────────
# Tests: msim_model
# ─────────────────────────────────────────────────────────────────────

class TestMsimModel:

    def test_coregionalised_mean(self):
        var = np.sqrt(np.diag([4.0, 4.0]))
        A = np.array([[1.0, 0.0], [-0.8, 0.6]])
        env = {
            'variance': var @ A @ A.T @ var,
            'nugget': np.zeros((2, 2)),
            'phi': [1 / 0.08, 1 / 0.08],
        }
        formula = {
            'mean': "logistic(mgp(s1, s2, 'exponential', variance, nugget, phi))",
            'sd': '1',
        }
        data = msim_model(formula, n=30, seed=1, extent=2.0, env=env)

        assert data.columns == ['s1', 's2', 'id', 'mean1', 'mean2', 'sd1', 'sd2', 'y1', 'y2']
        assert data['id'].to_list() == list(range(1, 31))
        means = data.select('mean1', 'mean2').to_numpy()
        assert ((means > 0) & (means < 1)).all()
        np.testing.assert_array_equal(data['sd2'].to_numpy(), np.ones(30))

    def test_fixed_effect(self):
        data = msim_model({'mean': 'mfe(x1, beta)', 'sd': '1'}, n=10, seed=2, env={'beta': [0.1, 0.0, 1.0]})
        x1 = data['x1'].to_numpy()
        np.testing.assert_allclose(data['mean1'].to_numpy(), 0.1 * x1)
        np.testing.assert_allclose(data['mean2'].to_numpy(), np.zeros(10))
        np.testing.assert_allclose(data['mean3'].to_numpy(), x1)
        assert {'y1', 'y2', 'y3'} <= set(data.columns)

    def test_univariate_is_single_response(self):
        data = msim_model({'mean': 'x1', 'sd': '1'}, n=8, seed=0)
        assert data.columns == ['x1', 'id', 'mean1', 'sd1', 'y1']

    def test_mismatched_lengths(self):
        with pytest.raises(InvalidArgument):
            msim_model({'mean': 'mfe(x1, beta)', 'sd': 'x1'}, n=10, seed=0, env={'beta': [1.0, 2.0]})
