from __future__ import annotations

import math
from typing import Any, Mapping

from utils.ast_utils import ASTNode, non_finite_tree


# Binding strength used for parenthesisation.  Higher binds tighter.
_PRECEDENCE = {
    "add": 1, "sub": 1,
    "mul": 2, "div": 2,
    "neg": 3,
    "pow": 4,
}
_NEG_PRECEDENCE = _PRECEDENCE["neg"]
_ATOM_PRECEDENCE = 5

_SYMBOLS = {"add": "+", "sub": "-", "mul": "*", "div": "/", "pow": "^"}


def format_number(value: float) -> str:
    """Render a float the way it is written in expressions.

    Integral values drop the fractional part, everything else uses the
    shortest round-tripping ``repr``.

    Examples
    --------
    >>> from utils.print_utils import format_number
    >>> format_number(2.0)
    '2'
    >>> format_number(0.25)
    '0.25'
    >>> format_number(float("inf"))
    'Infinity'
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def _precedence(node: ASTNode) -> int:
    tag = node[0]
    if tag == "num" and not math.isfinite(node[1]):
        return _precedence(non_finite_tree(node[1]))
    if tag == "num" and node[1] < 0:
        # Rendered with a leading minus, so it behaves like a unary minus
        # when it sits next to '^'.
        return _NEG_PRECEDENCE
    return _PRECEDENCE.get(tag, _ATOM_PRECEDENCE)


def _wrap(text: str, needed: bool) -> str:
    return f"({text})" if needed else text


def ast_to_string(node: ASTNode) -> str:
    """Convert an expression tree to canonical infix text.

    Multiplication and exponentiation are always explicit (``*``, ``^``),
    binary operators are surrounded by single spaces and parentheses are
    only emitted where the tree structure needs them, so the output parses
    back to the same tree.

    Parameters
    ----------
    node : ASTNode
        A tagged tuple produced by the parser or one of the transforms.

    Returns
    -------
    str
        Infix rendering of *node*.

    Examples
    --------
    >>> from utils.print_utils import ast_to_string
    >>> ast_to_string(("add", ("mul", ("num", 2.0), ("var", "x")), ("num", 1.0)))
    '2 * x + 1'
    >>> ast_to_string(("mul", ("num", 2.0), ("add", ("var", "x"), ("num", 1.0))))
    '2 * (x + 1)'
    >>> ast_to_string(("neg", ("pow", ("var", "x"), ("num", 2.0))))
    '-x ^ 2'
    >>> ast_to_string(("call", "sin", (("var", "x"),)))
    'sin(x)'
    """
    tag = node[0]

    if tag == "num":
        if not math.isfinite(node[1]):
            return ast_to_string(non_finite_tree(node[1]))
        return format_number(node[1])

    elif tag in ("const", "var"):
        return node[1]

    elif tag == "call":
        args = ", ".join(ast_to_string(arg) for arg in node[2])
        return f"{node[1]}({args})"

    elif tag == "neg":
        operand = node[1]
        text = ast_to_string(operand)
        return "-" + _wrap(text, _precedence(operand) <= _NEG_PRECEDENCE)

    elif tag in _SYMBOLS:
        own = _PRECEDENCE[tag]
        left, right = node[1], node[2]
        left_text = ast_to_string(left)
        right_text = ast_to_string(right)

        if tag == "pow":
            # Right-associative; the exponent may carry a unary minus.
            left_text = _wrap(left_text, _precedence(left) <= own)
            right_text = _wrap(right_text, _precedence(right) < _NEG_PRECEDENCE)
        else:
            # Left-associative: an equal-precedence right operand keeps its parens.
            left_text = _wrap(left_text, _precedence(left) < own)
            right_text = _wrap(right_text, _precedence(right) <= own)

        return f"{left_text} {_SYMBOLS[tag]} {right_text}"

    raise ValueError(f"Unknown node: {node!r}")


def format_value(value: Any) -> str:
    """Render an engine result (number, matrix, tree, mapping) for display.

    Examples
    --------
    >>> from utils.print_utils import format_value
    >>> format_value(13.0)
    '13'
    >>> format_value({"x": 1.6, "y": 1.8})
    'x = 1.6, y = 1.8'
    >>> format_value([1.0, 2.5])
    '[1, 2.5]'
    """
    if isinstance(value, tuple) and value and isinstance(value[0], str):
        return ast_to_string(value)
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return format_number(float(value))
    if isinstance(value, Mapping):
        return ", ".join(f"{k} = {format_value(v)}" for k, v in value.items())
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_value(v) for v in value) + "]"
    if hasattr(value, "tolist"):
        return format_value(value.tolist())
    return str(value)


def _pformat(node: ASTNode, indent: int = 0) -> str:
    """Pretty-format an expression tree, one node per line.

    Leaves are printed with their payload, interior nodes with their tag
    followed by their children indented by two spaces.

    Parameters
    ----------
    node : ASTNode
        The tree to format.
    indent : int, default 0
        Current indentation level (each level = 2 spaces).

    Returns
    -------
    str
        A multi-line string.

    Examples
    --------
    >>> from utils.print_utils import _pformat
    >>> print(_pformat(("add", ("num", 1.0), ("call", "sin", (("var", "x"),)))))
    add
      num 1
      call sin
        var x
    """
    prefix = "  " * indent
    tag = node[0]

    if tag == "num":
        return f"{prefix}num {format_number(node[1])}"
    if tag in ("const", "var"):
        return f"{prefix}{tag} {node[1]}"

    if tag == "call":
        head = f"{prefix}call {node[1]}"
        kids = node[2]
    elif tag == "neg":
        head = f"{prefix}neg"
        kids = (node[1],)
    else:
        head = f"{prefix}{tag}"
        kids = (node[1], node[2])

    lines = [head]
    for child in kids:
        lines.append(_pformat(child, indent + 1))
    return "\n".join(lines)
