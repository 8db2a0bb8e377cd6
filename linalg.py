"""Dense matrix arithmetic and linear-system solving over float64 numpy arrays."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from numbers import Real
from typing import Any, NamedTuple, Optional, Union

import numpy as np

from config import get_settings
from errors import (
    EquationParsingNotImplementedError,
    InvalidInputError,
    ShapeError,
    SingularMatrixError,
)

logger = logging.getLogger(__name__)

MatrixLike = Union["Matrix", Sequence, np.ndarray]


class Matrix:
    """Immutable dense matrix or vector of float64 values.

    A 1-D array is a column vector: ``rows`` is its length and ``cols`` is 1.

    Examples
    --------
    >>> m = Matrix([[1, 2], [3, 4]])
    >>> m.rows, m.cols
    (2, 2)
    >>> m.tolist()
    [[1.0, 2.0], [3.0, 4.0]]
    >>> Matrix([1, 2, 3]).shape
    (3,)
    """

    __slots__ = ("_data",)

    def __init__(self, data: Any) -> None:
        array = np.array(data, dtype=np.float64)
        if array.ndim not in (1, 2):
            raise ShapeError(
                f"Matrices have one or two dimensions, got {array.ndim}",
                {"ndim": array.ndim},
            )
        array.setflags(write=False)
        self._data = array

    @property
    def rows(self) -> int:
        return self._data.shape[0]

    @property
    def cols(self) -> int:
        return 1 if self._data.ndim == 1 else self._data.shape[1]

    @property
    def shape(self) -> tuple[int, ...]:
        return self._data.shape

    @property
    def is_vector(self) -> bool:
        return self._data.ndim == 1

    def tolist(self) -> list:
        return self._data.tolist()

    def to_array(self) -> np.ndarray:
        """Return a writable copy of the underlying array."""
        return self._data.copy()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Matrix):
            return self.shape == other.shape and bool(np.array_equal(self._data, other._data))
        if isinstance(other, list):
            return self.tolist() == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Matrix({self.tolist()!r})"


def _is_scalar(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _describe(shape: tuple[int, ...]) -> str:
    if len(shape) == 1:
        return f"vector of length {shape[0]}"
    return f"{shape[0]}x{shape[1]} matrix"


def create_matrix(data: MatrixLike) -> Matrix:
    """Build a :class:`Matrix` from nested sequences, checking its shape.

    Parameters
    ----------
    data : Matrix, ndarray or sequence
        A flat sequence of numbers (vector) or a sequence of equally long
        rows of numbers.

    Returns
    -------
    Matrix

    Raises
    ------
    ShapeError
        If the rows have different lengths, rows and numbers are mixed, or
        the data has more than two dimensions.
    InvalidInputError
        If an entry is not a real number.

    Examples
    --------
    >>> create_matrix([[1, 2], [3, 4]]).shape
    (2, 2)
    >>> create_matrix([[1, 2], [3]])
    Traceback (most recent call last):
        ...
    errors.ShapeError: Matrix rows must all have the same length, got [2, 1]
    """
    if isinstance(data, Matrix):
        return data

    if isinstance(data, np.ndarray):
        if not (np.issubdtype(data.dtype, np.number) and not np.issubdtype(data.dtype, np.complexfloating)):
            raise InvalidInputError(
                f"Matrix entries must be real numbers, got dtype {data.dtype}",
                {"dtype": str(data.dtype)},
            )
        return Matrix(data)

    if isinstance(data, (str, bytes)) or not isinstance(data, Sequence):
        raise InvalidInputError(
            f"Expected a list of numbers or a list of rows, got {type(data).__name__}",
            {"type": type(data).__name__},
        )

    nested = [isinstance(item, (Sequence, np.ndarray)) and not isinstance(item, (str, bytes)) for item in data]
    if any(nested):
        if not all(nested):
            raise ShapeError("Matrix mixes rows and plain numbers", {"row_kinds": nested})
        lengths = [len(row) for row in data]
        if len(set(lengths)) > 1:
            raise ShapeError(
                f"Matrix rows must all have the same length, got {lengths}",
                {"row_lengths": lengths},
            )
        for i, row in enumerate(data):
            _check_entries(row, i)
    else:
        _check_entries(data, None)

    return Matrix(data)


def _check_entries(values: Sequence, row: Optional[int]) -> None:
    for j, value in enumerate(values):
        if _is_scalar(value):
            continue
        if isinstance(value, (Sequence, np.ndarray)) and not isinstance(value, (str, bytes)):
            raise ShapeError("Matrices have at most two dimensions", {"row": row, "column": j})
        where = f"[{row}][{j}]" if row is not None else f"[{j}]"
        raise InvalidInputError(
            f"Matrix entry {where} is not a number: {value!r}",
            {"row": row, "column": j, "value": repr(value)},
        )


def _as_array(value: MatrixLike) -> np.ndarray:
    return create_matrix(value)._data


def _check_same_shape(a: np.ndarray, b: np.ndarray, verb: str) -> None:
    if a.shape != b.shape:
        raise ShapeError(
            f"Cannot {verb} a {_describe(a.shape)} and a {_describe(b.shape)}",
            {"left_shape": list(a.shape), "right_shape": list(b.shape)},
        )


def add(a: MatrixLike, b: MatrixLike) -> Matrix:
    """Element-wise sum of two matrices of identical shape.

    Examples
    --------
    >>> add([[1, 2], [3, 4]], [[5, 6], [7, 8]]).tolist()
    [[6.0, 8.0], [10.0, 12.0]]
    """
    left, right = _as_array(a), _as_array(b)
    _check_same_shape(left, right, "add")
    return Matrix(left + right)


def subtract(a: MatrixLike, b: MatrixLike) -> Matrix:
    """Element-wise difference ``a - b`` of two matrices of identical shape."""
    left, right = _as_array(a), _as_array(b)
    _check_same_shape(left, right, "subtract")
    return Matrix(left - right)


def multiply(a: Union[MatrixLike, float], b: Union[MatrixLike, float]) -> Union[Matrix, float]:
    """Matrix product, matrix-vector product, dot product or scaling.

    Parameters
    ----------
    a, b : Matrix, sequence or real
        Operands.  A real on either side scales the other operand.

    Returns
    -------
    Matrix or float
        A ``float`` for the dot product of two vectors (or the product of
        two scalars), a :class:`Matrix` otherwise.

    Raises
    ------
    ShapeError
        If the inner dimensions disagree.

    Examples
    --------
    >>> multiply([[1, 2], [3, 4]], [[5, 6], [7, 8]]).tolist()
    [[19.0, 22.0], [43.0, 50.0]]
    >>> multiply(2, [[1, 2]]).tolist()
    [[2.0, 4.0]]
    >>> multiply([1, 2], [3, 4])
    11.0
    """
    if _is_scalar(a) and _is_scalar(b):
        return float(a) * float(b)
    if _is_scalar(a):
        return Matrix(float(a) * _as_array(b))
    if _is_scalar(b):
        return Matrix(_as_array(a) * float(b))

    product = _matmul(_as_array(a), _as_array(b))
    if np.ndim(product) == 0:
        return float(product)
    return Matrix(product)


def _matmul(left: np.ndarray, right: np.ndarray) -> np.ndarray:
    """``left @ right`` with a ShapeError instead of numpy's ValueError."""
    if left.shape[-1] != right.shape[0]:
        raise ShapeError(
            f"Cannot multiply a {_describe(left.shape)} by a {_describe(right.shape)}: "
            f"inner dimensions {left.shape[-1]} and {right.shape[0]} differ",
            {"left_shape": list(left.shape), "right_shape": list(right.shape)},
        )
    return left @ right


class LUDecomposition(NamedTuple):
    """``P @ A == lower @ upper``, where ``P`` reorders rows by ``permutation``.

    Row ``i`` of ``P @ A`` is row ``permutation[i]`` of ``A``.
    """

    lower: Matrix
    upper: Matrix
    permutation: list[int]


def _square(a: MatrixLike, what: str) -> np.ndarray:
    array = _as_array(a)
    if array.ndim != 2 or array.shape[0] != array.shape[1]:
        raise ShapeError(
            f"{what} must be square, got a {_describe(array.shape)}",
            {"shape": list(array.shape)},
        )
    if array.shape[0] == 0:
        raise ShapeError(f"{what} must not be empty", {"shape": list(array.shape)})
    if not np.all(np.isfinite(array)):
        raise InvalidInputError(f"{what} contains non-finite values")
    return array


def _lu(array: np.ndarray, tolerance: float) -> tuple[np.ndarray, np.ndarray, list[int]]:
    n = array.shape[0]
    upper = array.astype(np.float64, copy=True)
    lower = np.eye(n)
    perm = list(range(n))

    for k in range(n):
        # partial pivoting: largest magnitude in column k at or below the diagonal
        pivot = k + int(np.argmax(np.abs(upper[k:, k])))
        if abs(upper[pivot, k]) < tolerance:
            raise SingularMatrixError(
                "Matrix is singular: the system has no unique solution",
                {"column": k, "pivot": float(upper[pivot, k]), "tolerance": tolerance},
            )
        if pivot != k:
            upper[[k, pivot], :] = upper[[pivot, k], :]
            lower[[k, pivot], :k] = lower[[pivot, k], :k]
            perm[k], perm[pivot] = perm[pivot], perm[k]

        factors = upper[k + 1:, k] / upper[k, k]
        lower[k + 1:, k] = factors
        upper[k + 1:, k:] -= np.outer(factors, upper[k, k:])
        upper[k + 1:, k] = 0.0

    return lower, upper, perm


def lu_decompose(a: MatrixLike) -> LUDecomposition:
    """Doolittle LU factorisation with partial pivoting.

    Parameters
    ----------
    a : Matrix or sequence
        Square, non-empty, finite matrix.

    Returns
    -------
    LUDecomposition
        Unit lower triangular ``lower``, upper triangular ``upper`` and the
        row ``permutation``.

    Raises
    ------
    ShapeError
        If *a* is not square.
    SingularMatrixError
        If a pivot's magnitude falls below the configured pivot tolerance.

    Examples
    --------
    >>> lu = lu_decompose([[1, 2], [3, 4]])
    >>> lu.permutation
    [1, 0]
    >>> lu.lower.tolist()
    [[1.0, 0.0], [0.3333333333333333, 1.0]]
    """
    array = _square(a, "Matrix")
    lower, upper, perm = _lu(array, get_settings().pivot_tolerance)
    return LUDecomposition(Matrix(lower), Matrix(upper), perm)


def _constants_vector(constants: MatrixLike, n: int) -> np.ndarray:
    b = _as_array(constants)
    if b.ndim == 2:
        if b.shape[1] != 1:
            raise ShapeError(
                f"Constants must be a vector or a single column, got a {_describe(b.shape)}",
                {"shape": list(b.shape)},
            )
        b = b[:, 0]
    if b.shape[0] != n:
        raise ShapeError(
            f"Expected {n} constants for a {n}x{n} system, got {b.shape[0]}",
            {"expected": n, "actual": int(b.shape[0])},
        )
    if not np.all(np.isfinite(b)):
        raise InvalidInputError("Constants contain non-finite values")
    return b


def _snap(x: np.ndarray, tolerance: float) -> np.ndarray:
    nearest = np.round(x)
    snapped = np.where(np.abs(x - nearest) <= tolerance, nearest, x)
    return snapped + 0.0  # -0.0 -> 0.0


def solve_linear_system(
    coefficients: MatrixLike,
    constants: MatrixLike,
    variables: Optional[Sequence[str]] = None,
) -> Union[list[float], dict[str, float]]:
    """Solve ``A @ x = b`` by LU decomposition with partial pivoting.

    Values within the configured snap tolerance (``1e-10``) of an integer
    are replaced by that integer.

    Parameters
    ----------
    coefficients : Matrix or sequence
        Square coefficient matrix ``A``.
    constants : Matrix or sequence
        Right-hand side ``b``, flat or as an n x 1 column.
    variables : sequence of str, optional
        Names for the unknowns, one per column of ``A``.  An empty sequence
        means no names.

    Returns
    -------
    list[float] or dict[str, float]
        The solution, keyed by name when *variables* is given.

    Raises
    ------
    ShapeError
        Non-square ``A``, wrong number of constants or of variable names.
    SingularMatrixError
        If ``A`` has no unique solution.
    InvalidInputError
        Non-finite input values.

    Examples
    --------
    >>> solve_linear_system([[1, 1], [1, -1]], [3, 1])
    [2.0, 1.0]
    >>> solve_linear_system([[2, 0], [0, 4]], [[2], [2]], ["x", "y"])
    {'x': 1.0, 'y': 0.5}
    """
    settings = get_settings()
    a = _square(coefficients, "Coefficient matrix")
    n = a.shape[0]
    b = _constants_vector(constants, n)

    names = None
    if variables:
        if isinstance(variables, str) or not all(isinstance(v, str) for v in variables):
            raise InvalidInputError("Variable names must be a sequence of strings")
        names = list(variables)
        if len(names) != n:
            raise ShapeError(
                f"Expected {n} variable names, got {len(names)}",
                {"expected": n, "actual": len(names)},
            )

    lower, upper, perm = _lu(a, settings.pivot_tolerance)

    # forward substitution on P b, then back substitution
    pb = b[perm]
    y = np.zeros(n)
    for i in range(n):
        y[i] = pb[i] - lower[i, :i] @ y[:i]
    x = np.zeros(n)
    for i in range(n - 1, -1, -1):
        x[i] = (y[i] - upper[i, i + 1:] @ x[i + 1:]) / upper[i, i]

    solution = [float(v) for v in _snap(x, settings.snap_tolerance)]
    logger.debug("Solved %dx%d linear system", n, n)

    if names is None:
        return solution
    return dict(zip(names, solution))


def solve_equation_system(
    equations: Any,
    variables: Optional[Sequence[str]] = None,
) -> Union[list[float], dict[str, float]]:
    """Solve an equation system given in coefficient form.

    Parameters
    ----------
    equations : Mapping
        ``{"coefficients": A, "constants": b}``.  Equations given as text
        (a string or a sequence of strings) are not supported.
    variables : sequence of str, optional
        Names for the unknowns.

    Raises
    ------
    EquationParsingNotImplementedError
        For textual equations.
    InvalidInputError
        For anything that is neither form.
    """
    if isinstance(equations, Mapping):
        missing = [key for key in ("coefficients", "constants") if key not in equations]
        if missing:
            raise InvalidInputError(
                f"Equation system is missing {', '.join(missing)}",
                {"missing": missing},
            )
        return solve_linear_system(equations["coefficients"], equations["constants"], variables)

    if isinstance(equations, str) or (
        isinstance(equations, Sequence) and equations and all(isinstance(eq, str) for eq in equations)
    ):
        raise EquationParsingNotImplementedError(
            "Solving equations given as text is not implemented; "
            "pass {'coefficients': ..., 'constants': ...} instead",
        )

    raise InvalidInputError(
        "Equation system must be a mapping with 'coefficients' and 'constants'",
        {"type": type(equations).__name__},
    )


__all__ = [
    "Matrix",
    "LUDecomposition",
    "create_matrix",
    "add",
    "subtract",
    "multiply",
    "lu_decompose",
    "solve_linear_system",
    "solve_equation_system",
]
