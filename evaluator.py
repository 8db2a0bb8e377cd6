from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from numbers import Real
from typing import Any, Optional, Union

import numpy as np

from config import get_settings
from errors import (
    InvalidInputError,
    ShapeError,
    UnboundVariableError,
    UnsupportedOperationError,
)
from linalg import Matrix, _matmul, create_matrix
from utils.ast_utils import ASTNode, guard_depth

logger = logging.getLogger(__name__)

Value = Union[np.float64, np.ndarray]

CONSTANT_VALUES = {
    "pi": math.pi,
    "e": math.e,
}

# numpy ufuncs give the IEEE results (nan, -inf) for out-of-domain input
# and apply element-wise to matrices.
FUNCTION_IMPLS = {
    "sin": np.sin,
    "cos": np.cos,
    "tan": np.tan,
    "sqrt": np.sqrt,
    "log": np.log,
}


def bind_scope(scope: Optional[Mapping[str, Any]]) -> dict[str, Value]:
    """Convert caller-supplied variable values to float64 scalars and arrays.

    Parameters
    ----------
    scope : Mapping[str, Any] or None
        Variable name to a real number, a :class:`Matrix` or nested lists.

    Returns
    -------
    dict[str, Value]

    Raises
    ------
    InvalidInputError
        If *scope* is not a mapping or holds a value of another type.
    ShapeError
        If a nested list is not rectangular.
    """
    if scope is None:
        return {}
    if not isinstance(scope, Mapping):
        raise InvalidInputError(
            f"Scope must be a mapping of variable names to values, got {type(scope).__name__}",
            {"type": type(scope).__name__},
        )

    bound: dict[str, Value] = {}
    for name, value in scope.items():
        if isinstance(value, Real) and not isinstance(value, bool):
            bound[name] = np.float64(value)
        elif isinstance(value, Matrix):
            bound[name] = value.to_array()
        elif isinstance(value, (list, tuple, np.ndarray)):
            bound[name] = create_matrix(value).to_array()
        else:
            raise InvalidInputError(
                f"Value for '{name}' must be a number or a matrix, got {type(value).__name__}",
                {"variable": name, "type": type(value).__name__},
            )
    return bound


def evaluate(
    node: ASTNode,
    scope: Optional[Mapping[str, Any]] = None,
    max_depth: Optional[int] = None,
) -> Union[float, Matrix]:
    """Reduce an expression tree to a number (or a matrix) under *scope*.

    Arithmetic follows IEEE float64: ``1/0`` is ``inf``, ``0/0`` and
    ``sqrt(-1)`` are ``nan``, ``log(0)`` is ``-inf``.  None of these raise.

    Parameters
    ----------
    node : ASTNode
        Tree to evaluate.
    scope : Mapping[str, Any], optional
        Variable bindings; values are reals or matrices.
    max_depth : int, optional
        Deepest tree accepted, the configured ``max_depth`` by default.

    Returns
    -------
    float or Matrix

    Raises
    ------
    UnboundVariableError
        If a variable has no binding.
    ShapeError
        On matrix operands whose dimensions do not fit.
    UnsupportedOperationError
        On matrix constructs without a meaning here (division by a matrix,
        a matrix exponent, ...).
    DepthExceededError
        If the tree is deeper than *max_depth*.

    Examples
    --------
    >>> from parser import parse
    >>> evaluate(parse("2 * (3 + 4) - 1"))
    13.0
    >>> evaluate(parse("x ^ 2"), {"x": 3})
    9.0
    >>> evaluate(parse("1 / 0"))
    inf
    """
    if max_depth is None:
        max_depth = get_settings().max_depth
    bound = bind_scope(scope)

    with np.errstate(all="ignore"):
        value = _evaluate(node, bound, 1, max_depth)

    if isinstance(value, np.ndarray):
        return Matrix(value)
    return float(value)


def _evaluate(node: ASTNode, scope: dict[str, Value], depth: int, limit: int) -> Value:
    guard_depth(depth, limit)
    tag = node[0]

    if tag == "num":
        return np.float64(node[1])

    elif tag == "const":
        return np.float64(CONSTANT_VALUES[node[1]])

    elif tag == "var":
        name = node[1]
        if name not in scope:
            raise UnboundVariableError(name)
        return scope[name]

    elif tag == "neg":
        return -_evaluate(node[1], scope, depth + 1, limit)

    elif tag in ("add", "sub", "mul", "div", "pow"):
        left = _evaluate(node[1], scope, depth + 1, limit)
        right = _evaluate(node[2], scope, depth + 1, limit)
        return _binary(tag, left, right)

    elif tag == "call":
        name, args = node[1], node[2]
        impl = FUNCTION_IMPLS.get(name)
        if impl is None:
            raise UnsupportedOperationError(f"Unknown function '{name}'", {"function": name})
        return impl(_evaluate(args[0], scope, depth + 1, limit))

    raise UnsupportedOperationError(f"Cannot evaluate node of kind {tag!r}", {"node": tag})


def _binary(tag: str, left: Value, right: Value) -> Value:
    left_is_matrix = isinstance(left, np.ndarray)
    right_is_matrix = isinstance(right, np.ndarray)

    if tag in ("add", "sub"):
        if left_is_matrix and right_is_matrix and left.shape != right.shape:
            verb = "add" if tag == "add" else "subtract"
            raise ShapeError(
                f"Cannot {verb} matrices of shape {list(left.shape)} and {list(right.shape)}",
                {"left_shape": list(left.shape), "right_shape": list(right.shape)},
            )
        return left + right if tag == "add" else left - right

    if tag == "mul":
        if left_is_matrix and right_is_matrix:
            return _matmul(left, right)
        return left * right

    if tag == "div":
        if right_is_matrix:
            raise UnsupportedOperationError("Division by a matrix is not supported")
        return left / right

    # pow
    if right_is_matrix:
        raise UnsupportedOperationError("A matrix cannot be used as an exponent")
    if left_is_matrix:
        return _matrix_power(left, right)
    return np.power(left, right)


def _matrix_power(base: np.ndarray, exponent: np.float64) -> np.ndarray:
    if base.ndim != 2 or base.shape[0] != base.shape[1]:
        raise ShapeError(
            f"Only square matrices can be raised to a power, got shape {list(base.shape)}",
            {"shape": list(base.shape)},
        )
    if not (math.isfinite(exponent) and float(exponent).is_integer() and exponent >= 0):
        raise UnsupportedOperationError(
            f"Matrix exponent must be a non-negative integer, got {float(exponent)!r}",
            {"exponent": float(exponent)},
        )
    return np.linalg.matrix_power(base, int(exponent))


__all__ = ["evaluate", "bind_scope", "CONSTANT_VALUES", "FUNCTION_IMPLS"]
