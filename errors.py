"""Exception types raised by the symcalc engine.

Every engine error derives from :class:`MathError`, which carries a
machine-readable ``code``, a human-readable ``message`` and a ``details``
dict with enough context for the caller to react (offending token and
position, expected shape, variable name, ...).  Each subclass also derives
from the closest builtin exception so callers that only know the builtins
(``SyntaxError``, ``ValueError``, ...) can still catch them.

Division by zero and out-of-domain function calls are *not* errors: the
evaluator follows IEEE float semantics and produces ``inf`` / ``nan``.
"""

from __future__ import annotations

from typing import Any, Optional


class MathError(Exception):
    """Base for all engine errors."""

    code = "MATH_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details) if details else {}

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class MathSyntaxError(MathError, SyntaxError):
    """Malformed expression text.

    ``position`` is the character offset of the offending token (``None``
    when the error is at end of input) and ``expected`` describes the
    construct the parser was looking for.
    """

    code = "SYNTAX_ERROR"

    def __init__(
        self,
        message: str,
        token: Optional[str] = None,
        position: Optional[int] = None,
        expected: Optional[str] = None,
    ) -> None:
        details = {"token": token, "position": position, "expected": expected}
        super().__init__(message, {k: v for k, v in details.items() if v is not None})
        self.token = token
        self.position = position
        self.expected = expected


class UnboundVariableError(MathError, NameError):
    """Evaluation referenced a variable missing from the scope."""

    code = "UNBOUND_VARIABLE"

    def __init__(self, name: str) -> None:
        super().__init__(f"Undefined variable '{name}'", {"variable": name})
        self.name = name


class ShapeError(MathError, ValueError):
    """Matrix or vector dimensions do not fit the operation."""

    code = "SHAPE_ERROR"


class SingularMatrixError(MathError, ArithmeticError):
    """The linear system has no unique solution."""

    code = "SINGULAR_MATRIX"


class DepthExceededError(MathError, RecursionError):
    """Input nested too deeply, or a computation ran over its operation budget."""

    code = "DEPTH_EXCEEDED"


class UnsupportedOperationError(MathError, TypeError):
    """A node kind or operand combination the engine does not handle."""

    code = "UNSUPPORTED_OPERATION"


class InvalidInputError(MathError, ValueError):
    """Input values of the wrong type or outside the accepted range."""

    code = "INVALID_INPUT"


class EquationParsingNotImplementedError(MathError, NotImplementedError):
    """Equation systems given as text cannot be solved yet."""

    code = "NOT_IMPLEMENTED"


__all__ = [
    "MathError",
    "MathSyntaxError",
    "UnboundVariableError",
    "ShapeError",
    "SingularMatrixError",
    "DepthExceededError",
    "UnsupportedOperationError",
    "InvalidInputError",
    "EquationParsingNotImplementedError",
]
