"""
Model-Based Dataset Simulation
==============================

Simulates a dataset from a set of parameter formulas, in the spirit of
distributional regression: each distribution parameter of the response is
an expression of predictors, and the response is drawn from a generator
given those parameters.

Formulas map a parameter name to an expression:

    formula = {
        'mean': '5 + 0.5 * x1 + 0.1 * x2 + 0.7 * id1',
        'sd': 'exp(x1)',
    }

or, equivalently, a list of 'name ~ expression' strings:

    formula = ['mean ~ 5 + 0.5 * x1', 'sd ~ exp(x1)']

Every free name that is not a known function, not supplied through `env`,
and not already a column of `init_data` is simulated: names like s1, s2
(^s[0-9]+$) as Uniform(0, extent) coordinates, everything else as a
standard normal predictor.

Usage:
    from day2day.simulation import sim_model

    data = sim_model({'mean': '1 + 2 * x1', 'sd': '1'}, n=100, seed=1)
"""

import ast
import logging
import operator
import re
from functools import partial
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import polars as pl
from scipy.special import expit, logit

from day2day.engines.validation import InvalidArgument, check_width, require_length
from day2day.simulation.covariance import exp_cor, exp_cov
from day2day.simulation.generators import generator_parameters, get_generator
from day2day.simulation.processes import gp, mfe, mgp

logger = logging.getLogger(__name__)

SPATIAL_PATTERN = re.compile(r"^s[0-9]+$")
RESERVED_COLUMNS = ('y', 'id')

DEFAULT_FORMULA = {'mean': '1 + 2 * x1', 'sd': '1'}

FormulaLike = Union[Mapping[str, Union[str, float]], Sequence[str]]


# =============================================================================
# FORMULA HANDLING
# =============================================================================

MATH_FUNCTIONS: Dict[str, Any] = {
    'exp': np.exp,
    'log': np.log,
    'log1p': np.log1p,
    'sqrt': np.sqrt,
    'abs': np.abs,
    'sin': np.sin,
    'cos': np.cos,
    'tan': np.tan,
    'tanh': np.tanh,
    'minimum': np.minimum,
    'maximum': np.maximum,
    'where': np.where,
    'logistic': expit,
    'logit': logit,
    'pi': np.pi,
    'exp_cor': exp_cor,
    'exp_cov': exp_cov,
    'mfe': mfe,
}

# Bound to the simulation's random generator at evaluation time
RANDOM_FUNCTIONS: Dict[str, Callable] = {
    'gp': gp,
    'mgp': mgp,
}

BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

COMPARE_OPERATORS = {
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
}

# Everything else (attributes, subscripts, lambdas, comprehensions, ...) is rejected
ALLOWED_NODES = (
    ast.Expression, ast.BinOp, ast.UnaryOp, ast.Compare, ast.Call, ast.keyword,
    ast.Constant, ast.Name, ast.Load, ast.List, ast.Tuple, ast.Dict,
    *BINARY_OPERATORS, *UNARY_OPERATORS, *COMPARE_OPERATORS,
)


def parse_formula(formula: FormulaLike) -> Dict[str, ast.Expression]:
    """
    Parse formulas into {parameter: expression tree}, keeping their order.

    Expressions are limited to arithmetic, comparisons, numeric and string
    constants, lists, dicts and calls of plain function names.

    Raises:
        InvalidArgument: empty formula, bad syntax, unsupported syntax,
            duplicate or reserved names
    """
    if isinstance(formula, Mapping):
        items = [(str(k), str(v)) for k, v in formula.items()]
    elif isinstance(formula, str):
        items = [_split_formula(formula)]
    else:
        items = [_split_formula(f) for f in formula]

    if not items:
        raise InvalidArgument("formula must define at least one parameter")

    parsed: Dict[str, ast.Expression] = {}
    for name, expr in items:
        if not name.isidentifier():
            raise InvalidArgument(f"Invalid parameter name: {name!r}")
        if name in RESERVED_COLUMNS:
            raise InvalidArgument(f"Parameter name {name!r} is reserved")
        if name in parsed:
            raise InvalidArgument(f"Parameter {name!r} defined twice")
        try:
            tree = ast.parse(expr.strip(), mode='eval')
        except SyntaxError as e:
            raise InvalidArgument(f"Invalid expression for {name}: {expr!r} ({e.msg})") from e
        _check_syntax(tree, name)
        parsed[name] = tree

    return parsed


def _split_formula(text: str):
    if '~' not in text:
        raise InvalidArgument(f"Formula must look like 'name ~ expression', got {text!r}")
    name, expr = text.split('~', 1)
    return name.strip(), expr.strip()


def _check_syntax(tree: ast.AST, name: str) -> None:
    for node in ast.walk(tree):
        if not isinstance(node, ALLOWED_NODES):
            raise InvalidArgument(f"Unsupported syntax in formula for {name}: {type(node).__name__}")
        if isinstance(node, ast.Call) and not isinstance(node.func, ast.Name):
            raise InvalidArgument(f"Only named functions can be called in formula for {name}")
        if isinstance(node, ast.keyword) and node.arg is None:
            raise InvalidArgument(f"Keyword unpacking is not allowed in formula for {name}")
        if isinstance(node, ast.Dict) and None in node.keys:
            raise InvalidArgument(f"Dict unpacking is not allowed in formula for {name}")
        if isinstance(node, ast.Constant) and not isinstance(node.value, (int, float, str)):
            raise InvalidArgument(f"Unsupported constant in formula for {name}: {node.value!r}")


class _VariableCollector(ast.NodeVisitor):
    """Free names in source order, skipping names used as functions."""

    def __init__(self):
        self.names: List[str] = []

    def visit_Call(self, node: ast.Call):
        if not isinstance(node.func, ast.Name):
            self.visit(node.func)
        for arg in node.args:
            self.visit(arg)
        for keyword in node.keywords:
            self.visit(keyword.value)

    def visit_Name(self, node: ast.Name):
        if node.id not in self.names:
            self.names.append(node.id)


class _FormulaInterpreter(ast.NodeVisitor):
    """Evaluates a checked expression tree against a namespace."""

    def __init__(self, namespace: Mapping[str, Any]):
        self.namespace = namespace

    def generic_visit(self, node: ast.AST):
        raise InvalidArgument(f"Unsupported syntax: {type(node).__name__}")

    def visit_Expression(self, node: ast.Expression):
        return self.visit(node.body)

    def visit_Constant(self, node: ast.Constant):
        # integer literals evaluate as floats
        if isinstance(node.value, int) and not isinstance(node.value, bool):
            return float(node.value)
        return node.value

    def visit_Name(self, node: ast.Name):
        if node.id not in self.namespace:
            raise InvalidArgument(f"Unknown name: {node.id}")
        return self.namespace[node.id]

    def visit_BinOp(self, node: ast.BinOp):
        return BINARY_OPERATORS[type(node.op)](self.visit(node.left), self.visit(node.right))

    def visit_UnaryOp(self, node: ast.UnaryOp):
        return UNARY_OPERATORS[type(node.op)](self.visit(node.operand))

    def visit_Compare(self, node: ast.Compare):
        left = self.visit(node.left)
        result = None
        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            outcome = COMPARE_OPERATORS[type(op)](left, right)
            result = outcome if result is None else np.logical_and(result, outcome)
            left = right
        return result

    def visit_Call(self, node: ast.Call):
        func = self.namespace.get(node.func.id)
        if func is None:
            raise InvalidArgument(f"Unknown function: {node.func.id}")
        if not callable(func):
            raise InvalidArgument(f"{node.func.id} is not a function")
        args = [self.visit(arg) for arg in node.args]
        kwargs = {keyword.arg: self.visit(keyword.value) for keyword in node.keywords}
        return func(*args, **kwargs)

    def visit_List(self, node: ast.List):
        return [self.visit(element) for element in node.elts]

    def visit_Tuple(self, node: ast.Tuple):
        return tuple(self.visit(element) for element in node.elts)

    def visit_Dict(self, node: ast.Dict):
        return {self.visit(k): self.visit(v) for k, v in zip(node.keys, node.values)}


def formula_variables(tree: ast.AST, known: Sequence[str] = ()) -> List[str]:
    """Free variables of an expression that are not in `known`."""
    collector = _VariableCollector()
    collector.visit(tree)
    return [n for n in collector.names if n not in known]


def formula_predictors(parsed: Dict[str, ast.Expression], env: Optional[Mapping[str, Any]] = None) -> List[str]:
    """Unique predictors across all formulas, in order of first appearance."""
    known = set(MATH_FUNCTIONS) | set(RANDOM_FUNCTIONS) | set(env or {})
    predictors: List[str] = []
    for tree in parsed.values():
        for name in formula_variables(tree, known):
            if name not in predictors:
                predictors.append(name)
    return predictors


def evaluate_formula(
    parsed: Dict[str, ast.Expression],
    data: pl.DataFrame,
    rng: np.random.Generator,
    env: Optional[Mapping[str, Any]] = None,
) -> Dict[str, np.ndarray]:
    """
    Evaluate every parameter expression against the data columns.

    Raises:
        InvalidArgument: unknown names, or an expression that fails or does
            not give numbers
    """
    namespace: Dict[str, Any] = dict(MATH_FUNCTIONS)
    namespace.update({k: partial(fn, rng=rng) for k, fn in RANDOM_FUNCTIONS.items()})
    namespace.update(env or {})
    namespace.update({col: data.get_column(col).to_numpy() for col in data.columns})
    interpreter = _FormulaInterpreter(namespace)

    values = {}
    for name, tree in parsed.items():
        try:
            values[name] = np.asarray(interpreter.visit(tree), dtype=np.float64)
        except InvalidArgument as e:
            raise InvalidArgument(f"Cannot evaluate formula for {name}: {e}") from e
        except (TypeError, ValueError, ArithmeticError) as e:
            raise InvalidArgument(f"Formula for {name} failed: {e}") from e
    return values


def draw_response(
    generator: Callable[..., np.ndarray],
    size: int,
    rng: np.random.Generator,
    params: Mapping[str, np.ndarray],
) -> np.ndarray:
    """
    Draw `size` responses, checking params against the generator's keywords.

    Raises:
        InvalidArgument: parameter the generator does not take, or invalid
            parameter values (e.g. a negative sd)
    """
    accepted = generator_parameters(generator)
    if accepted is not None:
        unknown = [p for p in params if p not in accepted]
        if unknown:
            raise InvalidArgument(
                f"Generator {getattr(generator, '__name__', generator)} does not take {unknown}. "
                f"Parameters: {accepted}"
            )

    try:
        return np.asarray(generator(size, rng=rng, **params), dtype=np.float64)
    except InvalidArgument:
        raise
    except (TypeError, ValueError, ArithmeticError) as e:
        raise InvalidArgument(f"Response generation failed: {e}") from e


# =============================================================================
# PREDICTORS
# =============================================================================

def _as_frame(init_data) -> pl.DataFrame:
    if init_data is None:
        return pl.DataFrame()
    if isinstance(init_data, pl.DataFrame):
        return init_data
    return pl.DataFrame(init_data)


def _hstack(data: pl.DataFrame, columns: Dict[str, np.ndarray]) -> pl.DataFrame:
    if not columns:
        return data
    series = [pl.Series(name, values) for name, values in columns.items()]
    if data.width == 0:
        return pl.DataFrame(series)
    return data.hstack(series)


def simulate_predictors(
    predictors: Sequence[str],
    n: int,
    init_data=None,
    rng: Optional[np.random.Generator] = None,
    extent: float = 1.0,
) -> pl.DataFrame:
    """
    Add the predictors missing from init_data.

    Plain predictors are standard normal; spatial coordinates (s1, s2, ...)
    are Uniform(0, extent).
    """
    if not extent > 0:
        raise InvalidArgument(f"extent must be > 0, got {extent}")

    rng = rng if rng is not None else np.random.default_rng()
    data = _as_frame(init_data)
    if data.width > 0 and data.height != n:
        raise InvalidArgument(f"init_data has {data.height} rows, expected n={n}")

    to_sim = [p for p in predictors if p not in data.columns]
    spatial = [p for p in to_sim if SPATIAL_PATTERN.match(p)]
    plain = [p for p in to_sim if p not in spatial]

    columns: Dict[str, np.ndarray] = {}
    if plain:
        draws = rng.standard_normal((n, len(plain)))
        columns.update({name: draws[:, i] for i, name in enumerate(plain)})
    if spatial:
        draws = rng.random((n, len(spatial))) * extent
        columns.update({name: draws[:, i] for i, name in enumerate(spatial)})

    if to_sim:
        logger.debug(f"Simulated predictors: {plain} normal, {spatial} spatial")

    return _hstack(data, columns)


# =============================================================================
# SIMULATORS
# =============================================================================

def sim_model(
    formula: Optional[FormulaLike] = None,
    generator: Union[str, Callable] = 'normal',
    n: int = 1000,
    init_data=None,
    seed: Optional[int] = None,
    extent: float = 1.0,
    env: Optional[Mapping[str, Any]] = None,
) -> pl.DataFrame:
    """
    Simulate a dataset based on a model.

    Args:
        formula: Parameter formulas (default: mean = 1 + 2 x1, sd = 1)
        generator: Response generator or its name
        n: Number of observations
        init_data: Existing predictors that should not be simulated
        seed: Seed for a local random generator (reproducible results)
        extent: Spatial extent for simulated coordinates
        env: Extra objects visible to the formulas (matrices, constants)

    Returns:
        DataFrame with predictors, parameters and response `y`

    Example:
        >>> sim_model({'mean': '5 + 0.5 * x1 + 0.1 * x2', 'sd': 'exp(x1)'}, n=100, seed=1)
    """
    parsed = parse_formula(formula if formula is not None else DEFAULT_FORMULA)
    n = check_width(n, name='n')
    gen = get_generator(generator)
    rng = np.random.default_rng(seed)

    data = simulate_predictors(formula_predictors(parsed, env), n, init_data, rng, extent)
    values = evaluate_formula(parsed, data, rng, env)
    params = {name: require_length(v, n, name) for name, v in values.items()}

    y = draw_response(gen, n, rng, params)
    logger.info(f"Simulated {n} observations of {list(params)}")

    data = data.drop([*params, 'y'], strict=False)
    return _hstack(data, {**params, 'y': y})


def msim_model(
    formula: FormulaLike,
    generator: Union[str, Callable] = 'normal',
    n: int = 100,
    init_data=None,
    seed: Optional[int] = None,
    extent: float = 1.0,
    env: Optional[Mapping[str, Any]] = None,
) -> pl.DataFrame:
    """
    Simulate a dataset based on a multivariate model.

    Parameters may evaluate to vectors of length n*q (q responses stacked
    response by response, as returned by mgp() and mfe()). The result has
    one row per observation with columns <param>1..<param>q and y1..yq.

    Args:
        formula: Parameter formulas
        generator: Response generator or its name
        n: Number of observations
        init_data: Existing predictors that should not be simulated
        seed: Seed for a local random generator
        extent: Spatial extent for simulated coordinates
        env: Extra objects visible to the formulas

    Returns:
        DataFrame with id, predictors, and per-response parameters and responses
    """
    parsed = parse_formula(formula)
    n = check_width(n, name='n')
    gen = get_generator(generator)
    rng = np.random.default_rng(seed)

    data = simulate_predictors(formula_predictors(parsed, env), n, init_data, rng, extent)
    data = _hstack(data.drop('id', strict=False), {'id': np.arange(1, n + 1, dtype=np.int64)})

    values = evaluate_formula(parsed, data, rng, env)
    nq = max(v.size for v in values.values())
    q = int(round(nq / n))
    if q < 1 or nq != n * q:
        raise InvalidArgument(f"Parameter length {nq} is not a multiple of n={n}")

    params = {name: require_length(v, nq, name) for name, v in values.items()}
    y = draw_response(gen, nq, rng, params)

    stacked = {**params, 'y': y}
    wide: Dict[str, np.ndarray] = {'id': np.arange(1, n + 1, dtype=np.int64)}
    for name in sorted(stacked):
        blocks = stacked[name].reshape(q, n)
        for k in range(q):
            wide[f"{name}{k + 1}"] = blocks[k]

    logger.info(f"Simulated {n} observations x {q} responses of {list(params)}")

    return data.join(pl.DataFrame(wide), on='id', how='left')
