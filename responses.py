"""Tool registry and result envelopes.

Maps tool names to engine operations and converts every outcome into a
:class:`ToolResponse`: engine errors become failure envelopes with a
machine-readable code and a recovery hint, results become plain JSON-able
values (trees as canonical text, matrices as nested lists).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Callable, Optional

import engine
from errors import InvalidInputError, MathError
from linalg import Matrix
from utils.ast_utils import is_node
from utils.print_utils import ast_to_string, format_value

logger = logging.getLogger(__name__)


@dataclass
class ToolResponse:
    """Uniform success/failure envelope returned by :func:`call_tool`."""

    success: bool
    message: str
    data: Any = None
    error_code: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    recovery: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result = {"success": self.success, "message": self.message, "data": self.data}
        if not self.success:
            result["error_code"] = self.error_code
            result["details"] = self.details
            result["recovery"] = self.recovery
        return result


# Recovery hints per error code
RECOVERY_STRATEGIES: dict[str, str] = {
    "SYNTAX_ERROR": "Check the expression near the reported position. Supported: numbers, variables a-z, pi, e, + - * / ^, parentheses and sin, cos, tan, sqrt, log with one argument.",
    "UNBOUND_VARIABLE": "Provide a value for every variable in the scope, or use simplifyExpression without a scope to keep it symbolic.",
    "SHAPE_ERROR": "Check the matrix dimensions: addition needs equal shapes, multiplication needs matching inner dimensions, a system needs one constant per row.",
    "SINGULAR_MATRIX": "The system has no unique solution. Check for dependent or duplicate equations.",
    "DEPTH_EXCEEDED": "The expression is nested too deeply or too large. Split it into smaller parts.",
    "UNSUPPORTED_OPERATION": "The operation is not defined for these operands (for example division by a matrix).",
    "INVALID_INPUT": "Check the argument types and values against the tool description.",
    "NOT_IMPLEMENTED": "Pass the system as {'coefficients': [[...]], 'constants': [...]} instead of equation text.",
    "UNKNOWN_TOOL": "Use one of the registered tool names.",
}


def get_recovery_strategy(error_code: str) -> str:
    return RECOVERY_STRATEGIES.get(
        error_code, "Review the error message, adjust the request, and try again."
    )


def to_plain(value: Any) -> Any:
    """Convert an engine result to JSON-able Python values.

    Examples
    --------
    >>> to_plain(("mul", ("num", 2.0), ("var", "x")))
    '2 * x'
    >>> to_plain(Matrix([[1, 2]]))
    [[1.0, 2.0]]
    """
    if isinstance(value, tuple) and value and is_node(value):
        return ast_to_string(value)
    if isinstance(value, Matrix):
        return value.tolist()
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    if isinstance(value, Real) and not isinstance(value, bool):
        return float(value)
    return value


def _calculate_advanced(operation: str, a: Any, b: Any) -> float:
    for name, value in (("a", a), ("b", b)):
        if not isinstance(value, Real) or isinstance(value, bool):
            raise InvalidInputError(f"'{name}' must be a number", {"argument": name})
    a, b = float(a), float(b)
    if operation == "add":
        return a + b
    if operation == "subtract":
        return a - b
    if operation == "multiply":
        return a * b
    if operation == "divide":
        if b == 0:
            raise InvalidInputError("Cannot divide by zero", {"operation": operation})
        return a / b
    raise InvalidInputError(
        f"Unknown operation {operation!r}; expected add, subtract, multiply or divide",
        {"operation": operation},
    )


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    handler: Callable[..., Any]
    required: tuple[str, ...]
    optional: tuple[str, ...] = field(default=())


TOOLS: dict[str, Tool] = {tool.name: tool for tool in (
    Tool("evaluateMath", "Parse and evaluate an expression, optionally with variable values.",
         lambda expression, scope=None: engine.evaluate(expression, scope),
         ("expression",), ("scope",)),
    Tool("calculateSimple", "Evaluate an expression without variables, e.g. 2+3*4.",
         lambda expr: engine.calculate(expr),
         ("expr",)),
    Tool("calculateAdvanced", "Add, subtract, multiply or divide two numbers.",
         _calculate_advanced,
         ("operation", "a", "b")),
    Tool("simplifyExpression", "Simplify an expression; with a non-empty scope it is evaluated instead.",
         lambda expr, scope=None: engine.simplify(expr, scope),
         ("expr",), ("scope",)),
    Tool("symbolicCompute", "Parse an expression into its canonical symbolic form.",
         lambda expression: engine.parse(expression),
         ("expression",)),
    Tool("derivative", "Differentiate an expression with respect to a variable.",
         lambda expr, variable, simplify=False: engine.differentiate(expr, variable, simplify=bool(simplify)),
         ("expr", "variable"), ("simplify",)),
    Tool("rationalize", "Rewrite an expression as a single fraction.",
         lambda expr: engine.rationalize(expr),
         ("expr",)),
    Tool("createMatrix", "Build a matrix from a list or a list of rows.",
         lambda data: engine.create_matrix(data),
         ("data",)),
    Tool("matrixAdd", "Add two matrices of the same shape.",
         lambda a, b: engine.matrix_add(a, b),
         ("a", "b")),
    Tool("matrixMultiply", "Multiply two matrices (columns of a must equal rows of b).",
         lambda a, b: engine.matrix_multiply(a, b),
         ("a", "b")),
    Tool("solveLinearSystem", "Solve A x = b for a square coefficient matrix.",
         lambda coefficients, constants, variables=None: engine.solve_linear_system(coefficients, constants, variables),
         ("coefficients", "constants"), ("variables",)),
    Tool("solveEquationSystem", "Solve a system given as {'coefficients', 'constants'}.",
         lambda equations, variables=None: engine.solve_equation_system(equations, variables),
         ("equations",), ("variables",)),
)}


def _failure(code: str, message: str, details: Optional[dict[str, Any]] = None) -> ToolResponse:
    return ToolResponse(
        success=False,
        message=message,
        error_code=code,
        details=details or None,
        recovery=get_recovery_strategy(code),
    )


def _check_arguments(tool: Tool, arguments: Mapping[str, Any]) -> None:
    missing = [name for name in tool.required if name not in arguments]
    if missing:
        raise InvalidInputError(
            f"{tool.name} is missing argument(s): {', '.join(missing)}",
            {"missing": missing},
        )
    unknown = sorted(set(arguments) - set(tool.required) - set(tool.optional))
    if unknown:
        raise InvalidInputError(
            f"{tool.name} does not accept argument(s): {', '.join(unknown)}",
            {"unknown": unknown},
        )


def call_tool(name: str, arguments: Optional[Mapping[str, Any]] = None) -> ToolResponse:
    """Run the tool *name* and wrap the outcome in a :class:`ToolResponse`.

    Engine errors never escape; they come back as failure envelopes.

    Examples
    --------
    >>> call_tool("evaluateMath", {"expression": "2 * (3 + 4) - 1"}).data
    13.0
    >>> call_tool("calculateAdvanced", {"operation": "divide", "a": 1, "b": 0}).message
    'Cannot divide by zero'
    """
    tool = TOOLS.get(name)
    if tool is None:
        return _failure(
            "UNKNOWN_TOOL",
            f"Unknown tool {name!r}",
            {"tool": name, "available": sorted(TOOLS)},
        )
    if arguments is None:
        arguments = {}

    try:
        if not isinstance(arguments, Mapping):
            raise InvalidInputError(
                f"Tool arguments must be an object, got {type(arguments).__name__}",
                {"type": type(arguments).__name__},
            )
        _check_arguments(tool, arguments)
        result = tool.handler(**arguments)
    except MathError as e:
        return _failure(e.code, e.message, e.details)
    except Exception as e:
        logger.exception("Tool %s failed unexpectedly", name)
        return _failure("INTERNAL_ERROR", str(e), {"exception_type": type(e).__name__})

    return ToolResponse(success=True, message=format_value(result), data=to_plain(result))


__all__ = ["ToolResponse", "Tool", "TOOLS", "RECOVERY_STRATEGIES", "call_tool", "to_plain"]
