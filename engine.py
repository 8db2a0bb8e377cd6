"""Public operations of the calculator engine.

Every function here accepts expression text or an already parsed tree and
returns plain values: trees, floats, :class:`~linalg.Matrix` objects, lists
or dicts.  Failures are raised as :class:`~errors.MathError` subclasses.

Usage:
    import engine

    engine.evaluate("2 * (3 + 4) - 1")              # 13.0
    engine.to_string(engine.differentiate("x^2", "x"))   # '2 * x'
    engine.solve_linear_system([[1, 1], [1, -1]], [3, 1])  # [2.0, 1.0]
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Optional, TypeVar, Union, cast

import differentiator
import evaluator
import linalg
import rationalizer
import simplifier
from config import get_settings
from errors import DepthExceededError, InvalidInputError
from linalg import Matrix
from parser import parse as parse_text
from utils.ast_utils import ASTNode, check_depth, is_node, is_variable_name
from utils.log_utils import log_execution_time
from utils.print_utils import ast_to_string

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

Expression = Union[str, ASTNode]


def _bounded_recursion(func: F) -> F:
    """Report an interpreter stack overflow as a DepthExceededError."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except DepthExceededError:
            raise
        except RecursionError:
            raise DepthExceededError(
                "Expression is nested too deeply to process",
                {"max_depth": get_settings().max_depth},
            ) from None

    return cast(F, wrapper)


def _as_node(expr: Expression) -> ASTNode:
    if isinstance(expr, str):
        return parse_text(expr)
    if isinstance(expr, tuple):
        if not is_node(expr):
            raise InvalidInputError("Not a valid expression tree", {"value": repr(expr)[:200]})
        return check_depth(expr, get_settings().max_depth)
    raise InvalidInputError(
        f"Expected expression text or a parsed tree, got {type(expr).__name__}",
        {"type": type(expr).__name__},
    )


def _variable_name(variable: Union[str, ASTNode]) -> str:
    if isinstance(variable, tuple) and len(variable) == 2 and variable[0] == "var":
        variable = variable[1]
    if not is_variable_name(variable):
        raise InvalidInputError(
            f"Expected a variable name (a single letter a-z), got {variable!r}",
            {"variable": repr(variable)},
        )
    return cast(str, variable)


# EXPRESSIONS

@log_execution_time
def parse(text: str) -> ASTNode:
    """Parse expression text into a tree."""
    if not isinstance(text, str):
        raise InvalidInputError(
            f"Expected expression text, got {type(text).__name__}",
            {"type": type(text).__name__},
        )
    return parse_text(text)


@log_execution_time
@_bounded_recursion
def to_string(expr: Expression) -> str:
    """Canonical infix rendering, e.g. ``'2 * x ^ 2 + 3 * x + 1'``."""
    return ast_to_string(_as_node(expr))


@log_execution_time
@_bounded_recursion
def evaluate(expr: Expression, scope: Optional[Mapping[str, Any]] = None) -> Union[float, Matrix]:
    """Evaluate *expr* with the variable bindings in *scope*.

    >>> evaluate("x * y", {"x": 3, "y": 4})
    12.0
    """
    return evaluator.evaluate(_as_node(expr), scope)


@log_execution_time
@_bounded_recursion
def calculate(expr: Expression) -> Union[float, Matrix]:
    """Evaluate an expression that uses no variables."""
    return evaluator.evaluate(_as_node(expr), None)


@log_execution_time
@_bounded_recursion
def differentiate(
    expr: Expression,
    variable: Union[str, ASTNode],
    simplify: bool = False,
) -> ASTNode:
    """Derivative of *expr* with respect to *variable*.

    The raw derivative is returned unless *simplify* is set, in which case
    it is canonicalized as well.

    >>> to_string(differentiate("x * x", "x"))
    'x + x'
    >>> to_string(differentiate("x * x", "x", simplify=True))
    '2 * x'
    """
    derivative = differentiator.differentiate(_as_node(expr), _variable_name(variable))
    if simplify:
        return simplifier.canonicalize(derivative)
    return derivative


@log_execution_time
@_bounded_recursion
def simplify(
    expr: Expression,
    scope: Optional[Mapping[str, Any]] = None,
) -> Union[ASTNode, float, Matrix]:
    """Canonical form of *expr*, or its value when *scope* is non-empty."""
    return simplifier.simplify(_as_node(expr), scope)


@log_execution_time
@_bounded_recursion
def expand(expr: Expression) -> ASTNode:
    """Canonical form with products of sums multiplied out."""
    return simplifier.expand(_as_node(expr))


@log_execution_time
@_bounded_recursion
def rationalize(expr: Expression) -> ASTNode:
    """Rewrite *expr* as a single fraction over a common denominator."""
    return rationalizer.rationalize(_as_node(expr))


# MATRICES

@log_execution_time
def create_matrix(data: Any) -> Matrix:
    return linalg.create_matrix(data)


@log_execution_time
def matrix_add(a: Any, b: Any) -> Matrix:
    return linalg.add(a, b)


@log_execution_time
def matrix_subtract(a: Any, b: Any) -> Matrix:
    return linalg.subtract(a, b)


@log_execution_time
def matrix_multiply(a: Any, b: Any) -> Union[Matrix, float]:
    return linalg.multiply(a, b)


@log_execution_time
def solve_linear_system(
    coefficients: Any,
    constants: Any,
    variables: Optional[Sequence[str]] = None,
) -> Union[list[float], dict[str, float]]:
    """Solve ``coefficients @ x = constants``.

    >>> solve_linear_system([[1, 1], [1, -1]], [3, 1], ["x", "y"])
    {'x': 2.0, 'y': 1.0}
    """
    return linalg.solve_linear_system(coefficients, constants, variables)


@log_execution_time
def solve_equation_system(
    equations: Any,
    variables: Optional[Sequence[str]] = None,
) -> Union[list[float], dict[str, float]]:
    return linalg.solve_equation_system(equations, variables)


__all__ = [
    "parse",
    "to_string",
    "evaluate",
    "calculate",
    "differentiate",
    "simplify",
    "expand",
    "rationalize",
    "create_matrix",
    "matrix_add",
    "matrix_subtract",
    "matrix_multiply",
    "solve_linear_system",
    "solve_equation_system",
]
