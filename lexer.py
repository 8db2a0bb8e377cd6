from __future__ import annotations

import ply.lex as lex

from errors import MathSyntaxError

tokens = (
    "NUMBER", "ID", "CONST", "FUNC",
    "PLUS", "MINUS", "TIMES", "DIVIDE", "POWER",
    "LPAREN", "RPAREN", "COMMA",
)

reserved = {
    "sin": "FUNC",
    "cos": "FUNC",
    "tan": "FUNC",
    "sqrt": "FUNC",
    "log": "FUNC",
    "pi": "CONST",
    "e": "CONST",
}

t_PLUS     = r"\+"
t_MINUS    = r"-"
t_TIMES    = r"\*"
t_DIVIDE   = r"/"
t_POWER    = r"\^"
t_LPAREN   = r"\("
t_RPAREN   = r"\)"
t_COMMA    = r","

t_ignore = " \t\r\n"


# Defined before t_ID so that "2e3" is one number and "2e" is 2 followed by e.
def t_NUMBER(t):
    r"(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?"
    t.value = float(t.value)
    return t

def t_ID(t):
    r"[a-zA-Z_][a-zA-Z0-9_]*"
    t.type = reserved.get(t.value, "ID")
    return t

def t_error(t):
    char = t.value[0]
    raise MathSyntaxError(
        f"Illegal character '{char}' at position {t.lexpos}",
        token=char,
        position=t.lexpos,
        expected="a number, name, operator or parenthesis",
    )

_raw_lexer = lex.lex()


def tokenize(text: str) -> list[lex.LexToken]:
    """Split *text* into tokens.

    Every call works on its own clone of the module lexer, so concurrent
    callers never share lexer state.

    Parameters
    ----------
    text : str
        Expression source.

    Returns
    -------
    list[LexToken]
        Tokens in source order; each carries ``type``, ``value`` and
        ``lexpos`` (character offset).

    Raises
    ------
    MathSyntaxError
        On a character that starts no token.

    Examples
    --------
    >>> from lexer import tokenize
    >>> [t.type for t in tokenize("2*sin(x)")]
    ['NUMBER', 'TIMES', 'FUNC', 'LPAREN', 'ID', 'RPAREN']
    >>> tokenize("x ^ 2")[2].lexpos
    4
    """
    lexer = _raw_lexer.clone()
    lexer.input(text)
    return list(iter(lexer.token, None))


class TokenStream:
    """Feeds a token list to the parser and checks parenthesis balance.

    Implements the ``token()`` protocol ply.yacc expects from a lexer.
    """

    def __init__(self, toks):
        self.tokens = list(toks)
        self.index = 0
        self.open_parens = []   # LPAREN tokens not closed yet
        self.current = None     # token most recently handed out
        self.previous = None    # the one before it

    def token(self):
        if self.index >= len(self.tokens):
            if self.open_parens:
                tok = self.open_parens[-1]
                raise MathSyntaxError(
                    f"Unclosed '(' at position {tok.lexpos}",
                    token="(",
                    position=tok.lexpos,
                    expected="')'",
                )
            self.previous, self.current = self.current, None
            return None

        tok = self.tokens[self.index]
        self.index += 1

        if tok.type == "LPAREN":
            self.open_parens.append(tok)
        elif tok.type == "RPAREN":
            if not self.open_parens:
                raise MathSyntaxError(
                    f"Unmatched ')' at position {tok.lexpos}",
                    token=")",
                    position=tok.lexpos,
                    expected="an operator or end of input",
                )
            self.open_parens.pop()

        self.previous, self.current = self.current, tok
        return tok
