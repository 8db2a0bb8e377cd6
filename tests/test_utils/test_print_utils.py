import math

import pytest

from evaluator import evaluate
from linalg import Matrix
from parser import parse
from utils.print_utils import _pformat, ast_to_string, format_number, format_value


X = ("var", "x")


class TestFormatNumber:
    @pytest.mark.parametrize("value, text", [
        (2.0, "2"),
        (-3.0, "-3"),
        (0.25, "0.25"),
        (0.1, "0.1"),
        (1e20, "1e+20"),
        (math.inf, "Infinity"),
        (-math.inf, "-Infinity"),
        (math.nan, "NaN"),
    ])
    def test_format(self, value, text):
        assert format_number(value) == text


class TestAstToString:
    @pytest.mark.parametrize("tree, text", [
        (("sub", X, ("sub", X, X)), "x - (x - x)"),
        (("sub", ("sub", X, X), X), "x - x - x"),
        (("div", X, ("mul", X, X)), "x / (x * x)"),
        (("mul", ("div", X, X), X), "x / x * x"),
        (("pow", ("pow", X, X), X), "(x ^ x) ^ x"),
        (("pow", X, ("pow", X, X)), "x ^ x ^ x"),
        (("pow", ("num", -2.0), X), "(-2) ^ x"),
        (("pow", X, ("num", -2.0)), "x ^ -2"),
        (("neg", ("neg", X)), "-(-x)"),
        (("neg", ("num", -1.0)), "-(-1)"),
        (("mul", ("num", -1.0), X), "-1 * x"),
        (("call", "sqrt", (("add", X, X),)), "sqrt(x + x)"),
    ])
    def test_minimal_parentheses(self, tree, text):
        assert ast_to_string(tree) == text

    @pytest.mark.parametrize("tree, text", [
        (("num", math.inf), "1 / 0"),
        (("num", -math.inf), "-(1 / 0)"),
        (("num", math.nan), "0 / 0"),
        (("mul", ("num", 2.0), ("num", math.inf)), "2 * (1 / 0)"),
        (("pow", ("num", math.inf), X), "(1 / 0) ^ x"),
        (("pow", X, ("num", -math.inf)), "x ^ -(1 / 0)"),
    ])
    def test_non_finite_numbers_parse_back(self, tree, text):
        assert ast_to_string(tree) == text
        scope = {"x": 2.0}
        expected = evaluate(tree, scope)
        actual = evaluate(parse(text), scope)
        assert actual == expected or (math.isnan(actual) and math.isnan(expected))

    def test_overflowing_literal(self):
        assert ast_to_string(parse("1e400")) == "1 / 0"

    def test_unknown_node(self):
        with pytest.raises(ValueError):
            ast_to_string(("mod", X, X))


class TestFormatValue:
    def test_values(self):
        assert format_value(13.0) == "13"
        assert format_value(("add", X, ("num", 1.0))) == "x + 1"
        assert format_value({"x": 2.0, "y": 0.5}) == "x = 2, y = 0.5"
        assert format_value([1.0, 2.5]) == "[1, 2.5]"
        assert format_value(Matrix([[1, 2], [3, 4]])) == "[[1, 2], [3, 4]]"
        assert format_value(True) == "true"


def test_pformat():
    assert _pformat(("neg", ("pow", X, ("num", 2.0)))) == "neg\n  pow\n    var x\n    num 2"
