import pytest

from errors import DepthExceededError, UnsupportedOperationError
from evaluator import evaluate
from parser import parse
from rationalizer import rationalize
from utils.print_utils import ast_to_string


def rat(text):
    return ast_to_string(rationalize(parse(text)))


class TestRationalize:
    @pytest.mark.parametrize("text, expected", [
        ("1/(x+1) + 1/(x-1)", "2 * x / (-1 + x ^ 2)"),
        ("x + 1/x", "(1 + x ^ 2) / x"),
        ("1 / x", "1 / x"),
        ("x ^ -2", "1 / x ^ 2"),
        ("(1/x) / (1/y)", "y / x"),
        ("(x / y) ^ 2", "x ^ 2 / y ^ 2"),
        ("2 ^ x / x", "2 ^ x / x"),
        ("sin(1/x)", "sin(1 / x)"),
    ])
    def test_single_fraction(self, text, expected):
        assert rat(text) == expected

    @pytest.mark.parametrize("text, expected", [
        ("x ^ 2 + 1", "1 + x ^ 2"),
        ("(x + 1) ^ 2", "1 + 2 * x + x ^ 2"),
        ("x ^ 0", "1"),
    ])
    def test_no_denominator(self, text, expected):
        assert rat(text) == expected

    @pytest.mark.parametrize("text, expected", [
        ("x / x", "1"),
        ("0 / x", "0"),
        ("1/x - 1/x", "0"),
        ("x / 1", "x"),
        ("0 / 0", "0 / 0"),
        ("(x - x) / (y - y)", "0 / 0"),
    ])
    def test_trivial_fractions(self, text, expected):
        assert rat(text) == expected

    def test_shared_denominator_is_not_squared(self):
        assert rat("a / x + b / x") == "(a + b) / x"

    @pytest.mark.parametrize("text", [
        "1/(x+1) + 1/(x-1)",
        "x + 1/x - 2/(x*y)",
        "(x + 1/y) / (y - 1/x)",
        "(1 + 1/x) ^ 3",
        "x ^ -3 + y ^ -1",
    ])
    def test_value_is_preserved(self, text):
        scope = {"x": 1.7, "y": -0.6}
        expected = evaluate(parse(text), scope)
        assert evaluate(rationalize(parse(text)), scope) == pytest.approx(expected, rel=1e-9)


class TestRejections:
    def test_unknown_node(self):
        with pytest.raises(UnsupportedOperationError):
            rationalize(("mod", ("var", "x"), ("num", 2.0)))

    def test_depth_limit(self):
        tree = ("var", "x")
        for _ in range(30):
            tree = ("div", ("num", 1.0), tree)
        with pytest.raises(DepthExceededError):
            rationalize(tree, max_depth=10)
