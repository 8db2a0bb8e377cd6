"""Canonical simplification of expression trees.

``canonicalize`` turns a tree into a polynomial-like normal form and back:
a sum of terms, each an exact rational coefficient times a product of
powers of atoms.  Atoms are the things the normal form cannot look inside
(variables, constants, function calls, sums used as factors and a few
opaque constructs such as division by zero).  Like terms and like factors
merge in this representation, which gives constant folding, identity
elimination and term combination in one pass; rendering it back with a
fixed ordering makes the result canonical, so simplifying twice gives the
same tree as simplifying once.
"""

from __future__ import annotations

import functools
import logging
import math
from collections.abc import Mapping
from fractions import Fraction
from typing import Any, Optional, Union

from config import get_settings
from errors import DepthExceededError, UnsupportedOperationError
from evaluator import evaluate
from linalg import Matrix
from utils.ast_utils import ASTNode, ONE, ZERO, children, guard_depth, non_finite_tree, number
from utils.print_utils import ast_to_string

logger = logging.getLogger(__name__)

# A monomial is a sorted tuple of (atom, exponent) pairs, the empty tuple
# being the constant monomial.  A polynomial maps monomials to non-zero
# coefficients.
Monomial = tuple
Poly = dict

_EXACT_LIMIT = 2 ** 53       # integers below this are exact as float64
_MAX_INT_EXPONENT = 64       # larger integer powers are left unexpanded


# RATIONAL HELPERS

def _to_float(value: Fraction) -> float:
    try:
        return float(value)
    except OverflowError:
        return math.inf if value > 0 else -math.inf


def _is_decimal(value: Fraction) -> bool:
    """True if *value* is exactly the shortest decimal of some float64."""
    f = _to_float(value)
    return math.isfinite(f) and Fraction(repr(f)) == value


def _fraction(value: float) -> Fraction:
    # Via repr, so 0.1 becomes 1/10 rather than its binary expansion.
    return Fraction(repr(float(value)))


def _coefficient_parts(value: Fraction) -> tuple[float, float]:
    """Split *value* into the numbers written above and below a fraction bar."""
    if _is_decimal(value):
        return float(value), 1.0
    if abs(value.numerator) < _EXACT_LIMIT and value.denominator < _EXACT_LIMIT:
        return float(value.numerator), float(value.denominator)
    return _to_float(value), 1.0


def _rational_tree(value: Fraction) -> ASTNode:
    top, bottom = _coefficient_parts(value)
    if bottom == 1:
        return number(top)
    return ("div", number(top), number(bottom))


def _int_root(value: int, degree: int) -> Optional[int]:
    if value in (0, 1):
        return value
    if value < 0 or value.bit_length() > 1000:
        return None
    guess = round(value ** (1.0 / degree))
    for candidate in (guess - 1, guess, guess + 1):
        if candidate >= 0 and candidate ** degree == value:
            return candidate
    return None


def _exact_power(base: Fraction, exponent: Fraction) -> Optional[Fraction]:
    """``base ** exponent`` if it is rational, else ``None``."""
    if base < 0:
        return None
    if base == 0:
        return Fraction(0) if exponent > 0 else None
    n, d = exponent.numerator, exponent.denominator
    if d > _MAX_INT_EXPONENT or abs(n) > _MAX_INT_EXPONENT:
        return None
    top = _int_root(base.numerator, d)
    bottom = _int_root(base.denominator, d)
    if top is None or bottom is None:
        return None
    return Fraction(top, bottom) ** n


def _is_even(value: Fraction) -> bool:
    return value.denominator == 1 and value.numerator % 2 == 0


def _merges_exponents(inner: Fraction, outer: Fraction) -> bool:
    """True if ``(u ^ inner) ^ outer`` equals ``u ^ (inner * outer)`` for every real ``u``.

    An even inner exponent discards the sign of ``u``, so the merged power
    must be even as well; otherwise a merged integer power would be real
    where the nested power is NaN.
    """
    merged = inner * outer
    if _is_even(inner):
        return _is_even(merged)
    return merged.denominator != 1


def _fold_call(name: str, value: Fraction) -> Optional[Fraction]:
    """Value of a function at a constant, when that is an exact integer."""
    if name == "sqrt":
        root = _exact_power(value, Fraction(1, 2))
        if root is not None and root.denominator == 1:
            return root
    elif value == 0 and name in ("sin", "tan"):
        return Fraction(0)
    elif value == 0 and name == "cos":
        return Fraction(1)
    elif value == 1 and name == "log":
        return Fraction(0)
    return None


# MONOMIALS AND RENDERING

def _factor_key(factor: tuple[ASTNode, Fraction]) -> tuple:
    atom = factor[0]
    # numbers first, then lexical order of the rendering
    return (0 if atom[0] == "num" else 1, ast_to_string(atom), repr(atom))


def _monomial(exponents: dict[ASTNode, Fraction]) -> Monomial:
    return tuple(sorted(((a, e) for a, e in exponents.items() if e != 0), key=_factor_key))


def _mono_mul(left: Monomial, right: Monomial, sign: int = 1) -> Monomial:
    exponents = dict(left)
    for atom, e in right:
        exponents[atom] = exponents.get(atom, 0) + sign * e
    return _monomial(exponents)


def _power_tree(atom: ASTNode, exponent: Fraction) -> ASTNode:
    if exponent == 1:
        return atom
    return ("pow", atom, _rational_tree(exponent))


def _product(items: list[ASTNode]) -> ASTNode:
    tree = items[0]
    for item in items[1:]:
        tree = ("mul", tree, item)
    return tree


def _term_tree(mono: Monomial, coefficient: Fraction) -> ASTNode:
    lead, below = _coefficient_parts(coefficient)
    if not mono:
        tree = number(lead)
        return ("div", tree, number(below)) if below != 1 else tree

    negate = lead == -1
    if negate:
        lead = 1.0
    top = [] if lead == 1 else [number(lead)]
    bottom = [] if below == 1 else [number(below)]
    for atom, e in mono:
        if e > 0:
            top.append(_power_tree(atom, e))
        else:
            bottom.append(_power_tree(atom, -e))

    tree = _product(top) if top else ONE
    if bottom:
        tree = ("div", tree, _product(bottom))
    return ("neg", tree) if negate else tree


@functools.lru_cache(maxsize=4096)
def _mono_text(mono: Monomial) -> str:
    return ast_to_string(_term_tree(mono, Fraction(1)))


def _term_key(mono: Monomial) -> tuple:
    if not mono:
        return (0, "", "")
    return (1, _mono_text(mono), repr(mono))


def render(poly: Poly) -> ASTNode:
    """Build the canonical tree of a normal-form polynomial.

    Terms are ordered constant first, then by the text of their monomial;
    negative terms after the first become subtractions.
    """
    if not poly:
        return ZERO
    tree = None
    for mono, c in sorted(poly.items(), key=lambda item: _term_key(item[0])):
        if tree is None:
            tree = _term_tree(mono, c)
        elif c < 0:
            tree = ("sub", tree, _term_tree(mono, -c))
        else:
            tree = ("add", tree, _term_tree(mono, c))
    return tree


def _is_sum_atom(atom: ASTNode) -> bool:
    return atom[0] in ("add", "sub")


def _constant(poly: Poly) -> Optional[Fraction]:
    """The value of a constant polynomial, ``None`` for anything else."""
    if not poly:
        return Fraction(0)
    if len(poly) == 1 and () in poly:
        return poly[()]
    return None


def _scale(poly: Poly, factor: Fraction) -> Poly:
    if factor == 0:
        return {}
    return {mono: c * factor for mono, c in poly.items()}


def _add_into(poly: Poly, mono: Monomial, coefficient: Fraction) -> None:
    total = poly.get(mono, 0) + coefficient
    if total == 0:
        poly.pop(mono, None)
    else:
        poly[mono] = total


class _Normalizer:
    """Converts trees to normal-form polynomials.

    One instance per call; it holds the operation budget and remembers the
    polynomials behind the sums it turned into atoms.
    """

    def __init__(self, max_depth: int, max_operations: int, expand: bool = False) -> None:
        self.max_depth = max_depth
        self.max_operations = max_operations
        self.expand = expand
        self.operations = 0
        self._sums: dict[ASTNode, Poly] = {}

    def _tick(self, count: int = 1) -> None:
        self.operations += count
        if self.operations > self.max_operations:
            raise DepthExceededError(
                f"Simplification exceeded the budget of {self.max_operations} operations",
                {"max_operations": self.max_operations},
            )

    # atoms

    def _atom(self, atom: ASTNode, exponent: Fraction = Fraction(1)) -> Poly:
        return {((atom, exponent),): Fraction(1)}

    def _sum_atom(self, poly: Poly) -> ASTNode:
        atom = render(poly)
        self._sums[atom] = poly
        return atom

    def _settle(self, poly: Poly) -> Poly:
        # a lone sum to the first power is the sum itself
        result: Poly = {}
        for mono, c in poly.items():
            if len(mono) == 1 and mono[0][1] == 1 and _is_sum_atom(mono[0][0]):
                inner = self._sums.get(mono[0][0])
                if inner is None:
                    inner = self.normalize(mono[0][0], 1)
                for inner_mono, inner_c in inner.items():
                    _add_into(result, inner_mono, inner_c * c)
            else:
                _add_into(result, mono, c)
        return result

    # arithmetic

    def _poly_mul(self, left: Poly, right: Poly) -> Poly:
        self._tick(len(left) * len(right))
        result: Poly = {}
        for m1, c1 in left.items():
            for m2, c2 in right.items():
                _add_into(result, _mono_mul(m1, m2), c1 * c2)
        return result

    def _product(self, factors: list[tuple[Poly, int]]) -> Poly:
        if self.expand:
            acc: Poly = {(): Fraction(1)}
            for poly, sign in factors:
                if sign > 0:
                    acc = self._poly_mul(acc, poly)
                elif len(poly) == 1:
                    (mono, c), = poly.items()
                    acc = self._poly_mul(acc, {_mono_mul((), mono, -1): 1 / c})
                else:
                    acc = self._poly_mul(acc, self._atom(self._sum_atom(poly), Fraction(-1)))
            return self._settle(acc)

        coefficient = Fraction(1)
        exponents: dict[ASTNode, Fraction] = {}
        for poly, sign in factors:
            if len(poly) == 1:
                (mono, c), = poly.items()
                coefficient *= c if sign > 0 else 1 / c
                for atom, e in mono:
                    exponents[atom] = exponents.get(atom, 0) + sign * e
            else:
                atom = self._sum_atom(poly)
                exponents[atom] = exponents.get(atom, 0) + Fraction(sign)
        return self._settle({_monomial(exponents): coefficient})

    def _zero_division(self, numerator: Poly) -> Poly:
        return self._atom(("div", render(numerator), ZERO))

    def _chain(self, node: ASTNode, depth: int) -> Poly:
        # flatten a run of * and / into signed factors
        factors: list[tuple[Poly, int]] = []
        undefined = False
        stack = [(node, 1, depth)]
        while stack:
            current, sign, level = stack.pop()
            if current[0] == "div" and current[2] == ZERO:
                # a division by a literal zero is an atom of its own
                guard_depth(level, self.max_depth)
                undefined = undefined or sign > 0
                factors.append((self._zero_division(self.normalize(current[1], level + 1)), sign))
            elif current[0] in ("mul", "div"):
                guard_depth(level, self.max_depth)
                self._tick()
                right_sign = sign if current[0] == "mul" else -sign
                stack.append((current[2], right_sign, level + 1))
                stack.append((current[1], sign, level + 1))
            else:
                factors.append((self.normalize(current, level), sign))

        zero_above = any(not poly for poly, sign in factors if sign > 0)
        if any(not poly for poly, sign in factors if sign < 0):
            # division by something that folds to zero stays symbolic
            rest = [(poly, sign) for poly, sign in factors if poly]
            if zero_above:
                numerator: Poly = {}
            else:
                numerator = self._product(rest) if rest else {(): Fraction(1)}
            return self._zero_division(numerator)
        if zero_above:
            # zero times an infinity or NaN is NaN
            return self._zero_division({}) if undefined else {}
        return self._product(factors)

    def _power(self, node: ASTNode, depth: int) -> Poly:
        base = self.normalize(node[1], depth + 1)
        exponent = self.normalize(node[2], depth + 1)
        q = _constant(exponent)

        if q is None:
            return self._atom(("pow", render(base), render(exponent)))
        if q == 0:
            return {(): Fraction(1)}
        if q == 1:
            return base

        opaque = self._atom(("pow", render(base), _rational_tree(q)))
        integral = q.denominator == 1
        c = _constant(base)

        if c is not None:
            if c == 0:
                return {} if q > 0 else opaque
            if integral and abs(q) <= _MAX_INT_EXPONENT:
                return {(): c ** int(q)}
            folded = None if integral else _exact_power(c, q)
            return {(): folded} if folded is not None else opaque

        if len(base) == 1:
            (mono, k), = base.items()
            if integral and (abs(q) <= _MAX_INT_EXPONENT or abs(k) == 1):
                scaled = tuple((atom, e * q) for atom, e in mono)
                if all(abs(e) < _EXACT_LIMIT for _, e in scaled):
                    return self._settle({_monomial(dict(scaled)): k ** int(q)})
            elif not integral and k == 1 and len(mono) == 1:
                atom, e = mono[0]
                if _merges_exponents(e, q) and abs(e * q) < _EXACT_LIMIT:
                    return self._settle(self._atom(atom, e * q))
            return opaque

        # a sum
        if self.expand and integral and 0 < q <= _MAX_INT_EXPONENT:
            acc: Poly = {(): Fraction(1)}
            for _ in range(int(q)):
                acc = self._poly_mul(acc, base)
            return self._settle(acc)
        if abs(q) < _EXACT_LIMIT:
            return self._atom(self._sum_atom(base), q)
        return opaque

    def _call(self, node: ASTNode, depth: int) -> Poly:
        name = node[1]
        argument = self.normalize(node[2][0], depth + 1)
        c = _constant(argument)
        if c is not None:
            folded = _fold_call(name, c)
            if folded is not None:
                return {(): folded} if folded != 0 else {}
        rendered = render(argument)
        if name == "log" and rendered == ("const", "e"):
            return {(): Fraction(1)}
        return self._atom(("call", name, (rendered,)))

    def normalize(self, node: ASTNode, depth: int) -> Poly:
        guard_depth(depth, self.max_depth)
        self._tick()
        tag = node[0]

        if tag == "num":
            value = node[1]
            if not math.isfinite(value):
                return self.normalize(non_finite_tree(value), depth)
            return {(): _fraction(value)} if value != 0 else {}

        elif tag in ("var", "const"):
            return self._atom(node)

        elif tag == "neg":
            return _scale(self.normalize(node[1], depth + 1), Fraction(-1))

        elif tag in ("add", "sub"):
            result = dict(self.normalize(node[1], depth + 1))
            right = self.normalize(node[2], depth + 1)
            sign = 1 if tag == "add" else -1
            for mono, c in right.items():
                _add_into(result, mono, sign * c)
            return result

        elif tag in ("mul", "div"):
            return self._chain(node, depth)

        elif tag == "pow":
            return self._power(node, depth)

        elif tag == "call":
            return self._call(node, depth)

        raise UnsupportedOperationError(f"Cannot simplify node of kind {tag!r}", {"node": tag})


def _overflowed(tree: ASTNode) -> bool:
    stack = [tree]
    while stack:
        node = stack.pop()
        if node[0] == "num" and not math.isfinite(node[1]):
            return True
        stack.extend(children(node))
    return False


def _finish(normalizer: _Normalizer, node: ASTNode) -> ASTNode:
    result = render(normalizer.normalize(node, 1))
    if _overflowed(result):
        # a coefficient overflowed float64; normalise its spelled-out form
        result = render(normalizer.normalize(result, 1))
    return result


def _limits(max_depth: Optional[int], max_operations: Optional[int]) -> tuple[int, int]:
    settings = get_settings()
    return (
        settings.max_depth if max_depth is None else max_depth,
        settings.max_operations if max_operations is None else max_operations,
    )


def canonicalize(
    node: ASTNode,
    max_depth: Optional[int] = None,
    max_operations: Optional[int] = None,
) -> ASTNode:
    """Rewrite *node* into its canonical form.

    Folds constants, drops identities (``x + 0``, ``x * 1``, ``x * 0``,
    ``x ^ 1``, ``x ^ 0``), merges like terms and like factors, and
    distributes a numeric factor over a lone sum.  Function calls on
    numbers fold only when the result is an exact integer, and division by
    something that folds to zero is kept as written.  Nested powers merge
    only when that holds for negative bases too, so ``(x ^ 2) ^ 0.5`` stays.

    Examples
    --------
    >>> from parser import parse
    >>> ast_to_string(canonicalize(parse("2*x + 3*x")))
    '5 * x'
    >>> ast_to_string(canonicalize(parse("x * x * 1 + 0")))
    'x ^ 2'
    >>> ast_to_string(canonicalize(parse("2 * (x + 1)")))
    '2 + 2 * x'
    >>> ast_to_string(canonicalize(parse("sqrt(4) + sqrt(2)")))
    '2 + sqrt(2)'
    """
    depth_limit, operations = _limits(max_depth, max_operations)
    normalizer = _Normalizer(depth_limit, operations)
    result = _finish(normalizer, node)
    logger.debug("Canonicalized in %d operations", normalizer.operations)
    return result


def expand(
    node: ASTNode,
    max_depth: Optional[int] = None,
    max_operations: Optional[int] = None,
) -> ASTNode:
    """Canonical form with products and non-negative integer powers of sums multiplied out.

    Examples
    --------
    >>> from parser import parse
    >>> ast_to_string(expand(parse("(x + 1) ^ 2")))
    '1 + 2 * x + x ^ 2'
    """
    depth_limit, operations = _limits(max_depth, max_operations)
    normalizer = _Normalizer(depth_limit, operations, expand=True)
    return _finish(normalizer, node)


def evaluate_in_scope(
    node: ASTNode,
    scope: Mapping[str, Any],
    max_depth: Optional[int] = None,
) -> Union[float, Matrix]:
    """Simplification with bindings: the tree is evaluated outright."""
    return evaluate(node, scope, max_depth=max_depth)


def simplify(
    node: ASTNode,
    scope: Optional[Mapping[str, Any]] = None,
    max_depth: Optional[int] = None,
    max_operations: Optional[int] = None,
) -> Union[ASTNode, float, Matrix]:
    """Simplify *node*; with a non-empty *scope*, evaluate it instead.

    The two behaviours are distinct operations sharing one entry point:
    without bindings the result is the canonical tree from
    :func:`canonicalize`, with bindings it is the number (or matrix) that
    :func:`evaluate_in_scope` computes.

    Parameters
    ----------
    node : ASTNode
        Tree to simplify.
    scope : Mapping[str, Any], optional
        Variable bindings.
    max_depth : int, optional
        Deepest tree accepted.
    max_operations : int, optional
        Budget of normalisation steps.

    Returns
    -------
    ASTNode, float or Matrix

    Raises
    ------
    DepthExceededError
        When the input is too deep or the operation budget runs out.
    UnboundVariableError
        With a scope that misses a variable the tree uses.
    """
    if scope:
        return evaluate_in_scope(node, scope, max_depth=max_depth)
    return canonicalize(node, max_depth=max_depth, max_operations=max_operations)


__all__ = ["simplify", "canonicalize", "expand", "evaluate_in_scope", "render"]
