from __future__ import annotations

import logging
from typing import Optional

from config import get_settings
from errors import InvalidInputError, UnsupportedOperationError
from utils.ast_utils import (
    ASTNode,
    ONE,
    ZERO,
    contains_variable,
    guard_depth,
    is_variable_name,
    number,
)

logger = logging.getLogger(__name__)

TWO: ASTNode = ("num", 2.0)


def differentiate(node: ASTNode, variable: str, max_depth: Optional[int] = None) -> ASTNode:
    """Symbolic derivative of *node* with respect to *variable*.

    A purely structural rewrite with the textbook rules (constant, sum,
    product, quotient, power, exponential and chain rule).  The result is
    not simplified: ``x * x`` differentiates to ``x + x``.  Only the trivial
    cases are folded while building it: a literal factor ``1`` is dropped,
    a numeric exponent ``n - 1`` is computed and ``u ^ 1`` is written ``u``.

    Parameters
    ----------
    node : ASTNode
        Expression to differentiate.
    variable : str
        Name of the variable, a single letter ``a``-``z``.
    max_depth : int, optional
        Deepest tree accepted, the configured ``max_depth`` by default.

    Returns
    -------
    ASTNode
        The derivative tree.

    Raises
    ------
    InvalidInputError
        If *variable* is not a variable name.
    UnsupportedOperationError
        On a node kind the rules do not cover.
    DepthExceededError
        If the tree is deeper than *max_depth*.

    Examples
    --------
    >>> from parser import parse
    >>> from utils.print_utils import ast_to_string
    >>> ast_to_string(differentiate(parse("x^2"), "x"))
    '2 * x'
    >>> ast_to_string(differentiate(parse("sin(x)"), "x"))
    'cos(x)'
    >>> ast_to_string(differentiate(parse("5"), "x"))
    '0'
    """
    if not is_variable_name(variable):
        raise InvalidInputError(
            f"Cannot differentiate with respect to {variable!r}: expected a single letter a-z",
            {"variable": variable},
        )
    if max_depth is None:
        max_depth = get_settings().max_depth
    return _derive(node, variable, 1, max_depth)


def _times(a: ASTNode, b: ASTNode) -> ASTNode:
    if a == ONE:
        return b
    if b == ONE:
        return a
    return ("mul", a, b)


def _numeric_value(node: ASTNode) -> Optional[float]:
    """Value of a literal, possibly negated (``-1`` parses as ``neg(1)``)."""
    if node[0] == "num":
        return node[1]
    if node[0] == "neg":
        inner = _numeric_value(node[1])
        return None if inner is None else -inner
    return None


def _derive(node: ASTNode, x: str, depth: int, limit: int) -> ASTNode:
    guard_depth(depth, limit)
    tag = node[0]

    if tag not in ("num", "const", "var", "neg", "add", "sub", "mul", "div", "pow", "call"):
        raise UnsupportedOperationError(f"Cannot differentiate node of kind {tag!r}", {"node": tag})

    # constant rule
    if not contains_variable(node, x):
        return ZERO

    if tag == "var":
        return ONE

    elif tag == "neg":
        return ("neg", _derive(node[1], x, depth + 1, limit))

    elif tag in ("add", "sub"):
        u, v = node[1], node[2]
        if not contains_variable(u, x):
            dv = _derive(v, x, depth + 1, limit)
            return dv if tag == "add" else ("neg", dv)
        du = _derive(u, x, depth + 1, limit)
        if not contains_variable(v, x):
            return du
        return (tag, du, _derive(v, x, depth + 1, limit))

    elif tag == "mul":
        u, v = node[1], node[2]
        if not contains_variable(u, x):
            return _times(u, _derive(v, x, depth + 1, limit))
        du = _derive(u, x, depth + 1, limit)
        if not contains_variable(v, x):
            return _times(du, v)
        dv = _derive(v, x, depth + 1, limit)
        return ("add", _times(du, v), _times(u, dv))

    elif tag == "div":
        u, v = node[1], node[2]
        if not contains_variable(v, x):
            return ("div", _derive(u, x, depth + 1, limit), v)
        dv = _derive(v, x, depth + 1, limit)
        denominator = ("pow", v, TWO)
        if not contains_variable(u, x):
            return ("div", ("neg", _times(u, dv)), denominator)
        du = _derive(u, x, depth + 1, limit)
        return ("div", ("sub", _times(du, v), _times(u, dv)), denominator)

    elif tag == "pow":
        return _derive_power(node[1], node[2], x, depth, limit)

    # call
    name, u = node[1], node[2][0]
    du = _derive(u, x, depth + 1, limit)
    if name == "sin":
        outer = ("call", "cos", (u,))
    elif name == "cos":
        outer = ("neg", ("call", "sin", (u,)))
    elif name == "tan":
        outer = ("div", ONE, ("pow", ("call", "cos", (u,)), TWO))
    elif name == "sqrt":
        outer = ("div", ONE, ("mul", TWO, ("call", "sqrt", (u,))))
    elif name == "log":
        outer = ("div", ONE, u)
    else:
        raise UnsupportedOperationError(f"Cannot differentiate function '{name}'", {"function": name})
    return _times(outer, du)


def _derive_power(u: ASTNode, v: ASTNode, x: str, depth: int, limit: int) -> ASTNode:
    if not contains_variable(v, x):
        # power rule: n * u ^ (n - 1) * u'
        du = _derive(u, x, depth + 1, limit)
        n = _numeric_value(v)
        if n is None:
            return _times(("mul", v, ("pow", u, ("sub", v, ONE))), du)
        if n == 0:
            return ZERO
        reduced = n - 1
        if reduced == 0:
            powered = ONE
        elif reduced == 1:
            powered = u
        else:
            powered = ("pow", u, number(reduced))
        return _times(_times(number(n), powered), du)

    dv = _derive(v, x, depth + 1, limit)
    if not contains_variable(u, x):
        # exponential rule: a ^ v * log(a) * v'
        result = ("pow", u, v)
        if u != ("const", "e"):
            result = ("mul", result, ("call", "log", (u,)))
        return _times(result, dv)

    # general rule: u ^ v * (v' * log(u) + v * u' / u)
    du = _derive(u, x, depth + 1, limit)
    inner = ("add", _times(dv, ("call", "log", (u,))), ("div", _times(v, du), u))
    return ("mul", ("pow", u, v), inner)


__all__ = ["differentiate"]
