from __future__ import annotations

import logging
from typing import Optional

from config import get_settings
from errors import UnsupportedOperationError
from simplifier import canonicalize, expand
from utils.ast_utils import ASTNode, ONE, ZERO, guard_depth

logger = logging.getLogger(__name__)

# (numerator, denominator); a denominator of None stands for 1
Parts = tuple[ASTNode, Optional[ASTNode]]

_MAX_EXPONENT = 64


def _mul(a: Optional[ASTNode], b: Optional[ASTNode]) -> Optional[ASTNode]:
    if a is None:
        return b
    if b is None:
        return a
    if a == ONE:
        return b
    if b == ONE:
        return a
    return ("mul", a, b)


def _integer_exponent(node: ASTNode) -> Optional[int]:
    sign = 1
    while node[0] == "neg":
        sign = -sign
        node = node[1]
    if node[0] != "num" or not float(node[1]).is_integer() or abs(node[1]) > _MAX_EXPONENT:
        return None
    return sign * int(node[1])


def _split(node: ASTNode, depth: int, limit: int) -> Parts:
    guard_depth(depth, limit)
    tag = node[0]

    if tag in ("num", "const", "var", "call"):
        return node, None

    elif tag == "neg":
        top, bottom = _split(node[1], depth + 1, limit)
        return ("neg", top), bottom

    elif tag in ("add", "sub"):
        a, b = _split(node[1], depth + 1, limit)
        c, d = _split(node[2], depth + 1, limit)
        if b == d:
            return (tag, a, c), b
        return (tag, _mul(a, d), _mul(c, b)), _mul(b, d)

    elif tag == "mul":
        a, b = _split(node[1], depth + 1, limit)
        c, d = _split(node[2], depth + 1, limit)
        return _mul(a, c), _mul(b, d)

    elif tag == "div":
        a, b = _split(node[1], depth + 1, limit)
        c, d = _split(node[2], depth + 1, limit)
        return _mul(a, d), _mul(b, c)

    elif tag == "pow":
        n = _integer_exponent(node[2])
        if n is None:
            return node, None
        if n == 0:
            return ONE, None
        a, b = _split(node[1], depth + 1, limit)
        if n < 0:
            a, b = (b if b is not None else ONE), a
            n = -n
        power = ("num", float(n))
        return ("pow", a, power), (("pow", b, power) if b is not None else None)

    raise UnsupportedOperationError(f"Cannot rationalize node of kind {tag!r}", {"node": tag})


def rationalize(node: ASTNode, max_depth: Optional[int] = None) -> ASTNode:
    """Rewrite *node* as a single fraction ``numerator / denominator``.

    Fractions are brought to a common denominator bottom-up: ``a/b + c/d``
    becomes ``(a*d + c*b) / (b*d)``, or ``(a + c) / b`` when both
    denominators are the same tree.  The denominator is therefore the
    product of the distinct denominators, not their least common multiple.
    Function calls, constants and powers with a symbolic exponent are left
    as they are.  Numerator and denominator are expanded and simplified
    separately; a denominator of 1 leaves just the numerator.

    Parameters
    ----------
    node : ASTNode
        Tree to rewrite.
    max_depth : int, optional
        Deepest tree accepted, the configured ``max_depth`` by default.

    Returns
    -------
    ASTNode

    Raises
    ------
    DepthExceededError
        If the tree is too deep or simplification runs over its budget.

    Examples
    --------
    >>> from parser import parse
    >>> from utils.print_utils import ast_to_string
    >>> ast_to_string(rationalize(parse("1/(x+1) + 1/(x-1)")))
    '2 * x / (-1 + x ^ 2)'
    >>> ast_to_string(rationalize(parse("x + 1/x")))
    '(1 + x ^ 2) / x'
    """
    if max_depth is None:
        max_depth = get_settings().max_depth

    top, bottom = _split(node, 1, max_depth)
    numerator = canonicalize(expand(top, max_depth=max_depth), max_depth=max_depth)
    if bottom is None:
        return numerator

    denominator = canonicalize(expand(bottom, max_depth=max_depth), max_depth=max_depth)
    if denominator == ONE:
        return numerator
    if numerator == ZERO and denominator != ZERO:
        return ZERO
    if numerator == denominator and denominator != ZERO:
        return ONE
    return ("div", numerator, denominator)


__all__ = ["rationalize"]
