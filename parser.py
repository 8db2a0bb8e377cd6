from __future__ import annotations

import logging
import sys
import threading
from typing import Optional

import ply.yacc as yacc

from config import get_settings
from errors import MathSyntaxError
from lexer import TokenStream, tokenize, tokens  # noqa: F401
from utils.ast_utils import FUNCTIONS, ASTNode, check_depth, is_variable_name, number
from utils.print_utils import format_number

logger = logging.getLogger(__name__)

start = "expression"

_OPERAND_TOKENS = frozenset({"NUMBER", "ID", "CONST", "FUNC", "LPAREN"})
_EXPECT_OPERAND = "an operand"
_EXPECT_OPERATOR = "an operator or end of input"
_EXPECT_NAME = "a variable (a-z), constant (pi, e) or function call"

_BINARY = {"+": "add", "-": "sub", "*": "mul", "/": "div"}


# GRAMMAR
# One nonterminal per precedence level, lowest first:
#   + -   (left)
#   * /   (left)
#   unary -
#   ^     (right; its exponent is a unary, so 2 ^ -1 parses)
def p_expression_binary(p):
    """expression : expression PLUS term
                  | expression MINUS term"""
    p[0] = (_BINARY[p[2]], p[1], p[3])

def p_expression_term(p):
    """expression : term"""
    p[0] = p[1]

def p_term_binary(p):
    """term : term TIMES unary
            | term DIVIDE unary"""
    p[0] = (_BINARY[p[2]], p[1], p[3])

def p_term_unary(p):
    """term : unary"""
    p[0] = p[1]

def p_unary_neg(p):
    """unary : MINUS unary"""
    p[0] = ("neg", p[2])

def p_unary_power(p):
    """unary : power"""
    p[0] = p[1]

def p_power(p):
    """power : primary POWER unary"""
    # -x ^ 2 is -(x ^ 2): the minus is consumed by unary before primary
    p[0] = ("pow", p[1], p[3])

def p_power_primary(p):
    """power : primary"""
    p[0] = p[1]


# Atoms
def p_primary_number(p):
    """primary : NUMBER"""
    p[0] = number(p[1])

def p_primary_const(p):
    """primary : CONST"""
    p[0] = ("const", p[1])

def p_primary_id(p):
    """primary : ID"""
    name = p[1]
    if not is_variable_name(name):
        raise MathSyntaxError(
            f"Unknown identifier '{name}' at position {p.lexpos(1)}",
            token=name,
            position=p.lexpos(1),
            expected=_EXPECT_NAME,
        )
    p[0] = ("var", name)

def p_primary_bare_func(p):
    """primary : FUNC"""
    _missing_arguments(p[1], p.lexpos(1))

def p_primary_call(p):
    """primary : FUNC LPAREN arglist RPAREN"""
    name, args = p[1], p[3]
    if len(args) != 1:
        raise MathSyntaxError(
            f"Function '{name}' takes exactly one argument ({len(args)} given)",
            token=name,
            position=p.lexpos(1),
            expected="one argument",
        )
    p[0] = ("call", name, tuple(args))

def p_primary_group(p):
    """primary : LPAREN expression RPAREN"""
    p[0] = p[2]

def p_arglist_single(p):
    """arglist : expression"""
    p[0] = [p[1]]

def p_arglist_multi(p):
    """arglist : arglist COMMA expression"""
    p[0] = p[1] + [p[3]]


def _missing_arguments(name, position):
    raise MathSyntaxError(
        f"Function '{name}' requires a parenthesised argument",
        token=name,
        position=position,
        expected="'('",
    )


def p_error(p):
    stream = getattr(_local, "stream", None)
    previous = stream.previous if stream is not None else None

    if previous is not None and previous.type == "FUNC" and (p is None or p.type != "LPAREN"):
        _missing_arguments(previous.value, previous.lexpos)

    if previous is not None and previous.type == "ID" and p is not None and p.type == "LPAREN":
        raise MathSyntaxError(
            f"Unknown function '{previous.value}' at position {previous.lexpos}",
            token=previous.value,
            position=previous.lexpos,
            expected="one of " + ", ".join(sorted(FUNCTIONS)),
        )

    if p is None:
        raise MathSyntaxError(
            "Unexpected end of input",
            expected=_EXPECT_OPERAND,
        )

    text = _token_text(p)
    expected = _EXPECT_OPERATOR if p.type in _OPERAND_TOKENS else _EXPECT_OPERAND
    raise MathSyntaxError(
        f"Unexpected '{text}' at position {p.lexpos}",
        token=text,
        position=p.lexpos,
        expected=expected,
    )


def _token_text(tok) -> str:
    if tok.type == "NUMBER":
        return format_number(tok.value)
    return str(tok.value)


# Parser objects keep their stacks between calls, so each thread gets its own.
_local = threading.local()


def _get_parser():
    parser = getattr(_local, "parser", None)
    if parser is None:
        logger.debug("Building expression parser for thread %s", threading.current_thread().name)
        parser = yacc.yacc(
            module=sys.modules[__name__],
            debug=False,
            write_tables=False,
            errorlog=yacc.NullLogger(),
        )
        _local.parser = parser
    return parser


def parse(text: str, max_depth: Optional[int] = None) -> ASTNode:
    """Parse infix expression text into an expression tree.

    Parameters
    ----------
    text : str
        Expression source, e.g. ``"2*x^2 + 3*x + 1"``.
    max_depth : int or None
        Deepest tree accepted; the configured ``max_depth`` when omitted.

    Returns
    -------
    ASTNode
        The parsed tree.

    Raises
    ------
    MathSyntaxError
        On malformed text; ``token``, ``position`` and ``expected`` describe
        the problem.
    DepthExceededError
        If the tree is deeper than *max_depth*.

    Examples
    --------
    >>> from parser import parse
    >>> parse("-x ^ 2")
    ('neg', ('pow', ('var', 'x'), ('num', 2.0)))
    >>> parse("2 ^ -1")
    ('pow', ('num', 2.0), ('neg', ('num', 1.0)))
    """
    if not isinstance(text, str):
        raise MathSyntaxError(
            f"Expression must be text, got {type(text).__name__}",
            expected="an expression string",
        )
    if max_depth is None:
        max_depth = get_settings().max_depth

    toks = tokenize(text)
    if not toks:
        raise MathSyntaxError("Empty expression", position=0, expected=_EXPECT_OPERAND)

    stream = TokenStream(toks)
    _local.stream = stream
    try:
        tree = _get_parser().parse(lexer=stream)
    finally:
        _local.stream = None

    return check_depth(tree, max_depth)


__all__ = ["parse", "tokens"]
