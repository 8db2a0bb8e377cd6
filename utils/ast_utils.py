from __future__ import annotations

import math
from numbers import Real
from typing import Literal, Union, get_args

from errors import DepthExceededError


# AST TYPE DEFINITIONS
# The parser produces a tree of tagged tuples.  Every node is a tuple whose
# first element is a string tag and whose remaining elements are child nodes
# or scalar leaves.  Tuples are immutable, so transformations always build
# new trees and may share unchanged subtrees with their input.
#
# The type aliases below make the tag vocabulary explicit so that mypy
# can flag typos and missing branches.

LeafTag = Literal[
    "num",      # ("num", 2.0)
    "const",    # ("const", "pi")
    "var",      # ("var", "x")
]

UnaryTag = Literal["neg"]                                 # ("neg", operand)

BinaryTag = Literal["add", "sub", "mul", "div", "pow"]    # (tag, left, right)

CallTag = Literal["call"]                                 # ("call", "sin", (arg,))

ExprTag = Union[LeafTag, UnaryTag, BinaryTag, CallTag]

ConstName = Literal["pi", "e"]
FuncName = Literal["sin", "cos", "tan", "sqrt", "log"]

# Composite node type
ASTNode = tuple

EXPR_TAGS: frozenset[str] = frozenset(
    get_args(LeafTag) + get_args(UnaryTag) + get_args(BinaryTag) + get_args(CallTag)
)
BINARY_TAGS: frozenset[str] = frozenset(get_args(BinaryTag))
CONSTANTS: frozenset[str] = frozenset(get_args(ConstName))
FUNCTIONS: frozenset[str] = frozenset(get_args(FuncName))

ZERO: ASTNode = ("num", 0.0)
ONE: ASTNode = ("num", 1.0)


def number(value: Real) -> ASTNode:
    """Build a ``("num", value)`` node, normalising the value to ``float``.

    ``-0.0`` is stored as ``0.0`` so that structurally equal trees compare
    equal regardless of how the zero was produced.

    Examples
    --------
    >>> from utils.ast_utils import number
    >>> number(3)
    ('num', 3.0)
    >>> number(-0.0)
    ('num', 0.0)
    """
    value = float(value)
    if value == 0.0:
        value = 0.0
    return ("num", value)


def non_finite_tree(value: float) -> ASTNode:
    """Spell an infinite or NaN *value* as the division that produces it.

    There is no literal for these values, so ``inf`` is written ``1 / 0``,
    ``-inf`` is ``-(1 / 0)`` and NaN is ``0 / 0``.
    """
    if math.isnan(value):
        return ("div", ZERO, ZERO)
    tree = ("div", ONE, ZERO)
    return tree if value > 0 else ("neg", tree)


def is_variable_name(name: object) -> bool:
    """Return ``True`` for the single lowercase letters ``a``-``z``."""
    return isinstance(name, str) and len(name) == 1 and "a" <= name <= "z"


def is_node(node: object) -> bool:
    """Check whether *node* is a well-formed expression tree.

    Walks the tree iteratively (no recursion, so arbitrarily deep input is
    safe to validate) and checks every tag, arity and leaf type.

    Parameters
    ----------
    node : object
        Any Python value.

    Returns
    -------
    bool
        ``True`` if *node* and all of its descendants are valid nodes.

    Examples
    --------
    >>> from utils.ast_utils import is_node
    >>> is_node(("add", ("num", 1.0), ("var", "x")))
    True
    >>> is_node(("call", "exp", (("var", "x"),)))
    False
    >>> is_node(("num", "3"))
    False
    """
    stack = [node]
    while stack:
        current = stack.pop()
        if not isinstance(current, tuple) or not current:
            return False
        tag = current[0]
        if tag == "num":
            if len(current) != 2 or isinstance(current[1], bool) or not isinstance(current[1], Real):
                return False
        elif tag == "const":
            if len(current) != 2 or current[1] not in CONSTANTS:
                return False
        elif tag == "var":
            if len(current) != 2 or not isinstance(current[1], str) or not current[1]:
                return False
        elif tag == "neg":
            if len(current) != 2:
                return False
            stack.append(current[1])
        elif tag in BINARY_TAGS:
            if len(current) != 3:
                return False
            stack.append(current[1])
            stack.append(current[2])
        elif tag == "call":
            if len(current) != 3 or current[1] not in FUNCTIONS:
                return False
            args = current[2]
            if not isinstance(args, tuple) or len(args) != 1:
                return False
            stack.extend(args)
        else:
            return False
    return True


def children(node: ASTNode) -> tuple[ASTNode, ...]:
    """Return the child nodes of *node* in left-to-right order."""
    tag = node[0]
    if tag == "neg":
        return (node[1],)
    if tag in BINARY_TAGS:
        return (node[1], node[2])
    if tag == "call":
        return tuple(node[2])
    return ()


def contains_variable(node: ASTNode, name: str) -> bool:
    """Check whether the subtree *node* references the variable *name*.

    This is the test behind the constant rule of differentiation: any
    subtree for which it returns ``False`` differentiates to zero.

    Examples
    --------
    >>> from utils.ast_utils import contains_variable
    >>> contains_variable(("mul", ("num", 2.0), ("var", "x")), "x")
    True
    >>> contains_variable(("call", "sin", (("var", "y"),)), "x")
    False
    """
    stack = [node]
    while stack:
        current = stack.pop()
        if current[0] == "var":
            if current[1] == name:
                return True
        else:
            stack.extend(children(current))
    return False


def collect_variables(node: ASTNode) -> list[str]:
    """Return the sorted, de-duplicated variable names used in *node*.

    Examples
    --------
    >>> from utils.ast_utils import collect_variables
    >>> collect_variables(("add", ("var", "y"), ("mul", ("var", "x"), ("var", "y"))))
    ['x', 'y']
    """
    names: set[str] = set()
    stack = [node]
    while stack:
        current = stack.pop()
        if current[0] == "var":
            names.add(current[1])
        else:
            stack.extend(children(current))
    return sorted(names)


def tree_depth(node: ASTNode) -> int:
    """Return the depth of *node* (a single leaf has depth 1).

    Computed with an explicit stack, so it never hits the interpreter's
    recursion limit.
    """
    deepest = 0
    stack = [(node, 1)]
    while stack:
        current, depth = stack.pop()
        if depth > deepest:
            deepest = depth
        for child in children(current):
            stack.append((child, depth + 1))
    return deepest


def check_depth(node: ASTNode, limit: int) -> ASTNode:
    """Raise ``DepthExceededError`` if *node* is deeper than *limit*.

    Parameters
    ----------
    node : ASTNode
        The tree to check.
    limit : int
        Maximum accepted depth.

    Returns
    -------
    ASTNode
        *node* itself, so the call can be chained.

    Examples
    --------
    >>> from utils.ast_utils import check_depth
    >>> check_depth(("neg", ("num", 1.0)), 5)
    ('neg', ('num', 1.0))
    """
    stack = [(node, 1)]
    while stack:
        current, depth = stack.pop()
        if depth > limit:
            raise DepthExceededError(
                f"Expression is nested deeper than the maximum of {limit} levels",
                {"limit": limit},
            )
        for child in children(current):
            stack.append((child, depth + 1))
    return node


def guard_depth(depth: int, limit: int) -> None:
    """Per-call depth check used by the recursive tree walkers."""
    if depth > limit:
        raise DepthExceededError(
            f"Expression is nested deeper than the maximum of {limit} levels",
            {"limit": limit},
        )

