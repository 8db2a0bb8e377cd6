import pytest

from errors import (
    DepthExceededError,
    EquationParsingNotImplementedError,
    InvalidInputError,
    MathError,
    MathSyntaxError,
    ShapeError,
    SingularMatrixError,
    UnboundVariableError,
    UnsupportedOperationError,
)


@pytest.mark.parametrize("error, builtin, code", [
    (MathSyntaxError("bad"), SyntaxError, "SYNTAX_ERROR"),
    (UnboundVariableError("x"), NameError, "UNBOUND_VARIABLE"),
    (ShapeError("bad"), ValueError, "SHAPE_ERROR"),
    (SingularMatrixError("bad"), ArithmeticError, "SINGULAR_MATRIX"),
    (DepthExceededError("bad"), RecursionError, "DEPTH_EXCEEDED"),
    (UnsupportedOperationError("bad"), TypeError, "UNSUPPORTED_OPERATION"),
    (InvalidInputError("bad"), ValueError, "INVALID_INPUT"),
    (EquationParsingNotImplementedError("bad"), NotImplementedError, "NOT_IMPLEMENTED"),
])
def test_hierarchy(error, builtin, code):
    assert isinstance(error, MathError)
    assert isinstance(error, builtin)
    assert error.code == code
    assert error.to_dict()["code"] == code


def test_syntax_error_details_skip_missing_fields():
    err = MathSyntaxError("Unexpected end of input", expected="an operand")
    assert err.details == {"expected": "an operand"}
    assert err.position is None
    assert str(err) == "Unexpected end of input"


def test_details_are_copied():
    details = {"shape": [2, 3]}
    err = ShapeError("bad", details)
    details["shape"] = None
    assert err.to_dict() == {"code": "SHAPE_ERROR", "message": "bad", "details": {"shape": [2, 3]}}
