import pytest

from differentiator import differentiate
from errors import DepthExceededError, InvalidInputError, UnsupportedOperationError
from parser import parse
from utils.print_utils import ast_to_string


def d(text, variable="x"):
    return ast_to_string(differentiate(parse(text), variable))


class TestRules:
    @pytest.mark.parametrize("text, expected", [
        # constant and identity
        ("5", "0"),
        ("x", "1"),
        ("y", "0"),
        # sums
        ("x + 3", "1"),
        ("3 - x", "-1"),
        ("x + x", "1 + 1"),
        # products with a constant factor
        ("3 * x", "3"),
        ("x * 3", "3"),
        ("x / 4", "1 / 4"),
        # power rule
        ("x ^ 2", "2 * x"),
        ("x ^ 3", "3 * x ^ 2"),
        ("x ^ 1", "1"),
        ("x ^ 0", "0"),
        ("sin(x) ^ 0", "0"),
        ("x ^ -1", "-1 * x ^ -2"),
        ("x ^ n", "n * x ^ (n - 1)"),
        # functions
        ("sin(x)", "cos(x)"),
        ("cos(x)", "-sin(x)"),
        ("tan(x)", "1 / cos(x) ^ 2"),
        ("sqrt(x)", "1 / (2 * sqrt(x))"),
        ("log(x)", "1 / x"),
        # exponentials
        ("e ^ x", "e ^ x"),
        ("2 ^ x", "2 ^ x * log(2)"),
    ])
    def test_rule(self, text, expected):
        assert d(text) == expected

    def test_product_rule_is_not_simplified(self):
        assert d("x * x") == "x + x"

    def test_product_rule(self):
        assert d("x * sin(x)") == "sin(x) + x * cos(x)"

    def test_quotient_rule(self):
        assert d("x / sin(x)") == "(sin(x) - x * cos(x)) / sin(x) ^ 2"

    def test_quotient_with_constant_numerator(self):
        assert d("1 / x") == "-1 / x ^ 2"

    def test_chain_rule(self):
        assert d("sin(2 * x)") == "cos(2 * x) * 2"
        assert d("log(x ^ 2)") == "1 / x ^ 2 * (2 * x)"

    def test_general_power(self):
        assert d("x ^ x") == "x ^ x * (log(x) + x / x)"

    def test_negation(self):
        assert d("-x ^ 2") == "-(2 * x)"

    def test_other_variable(self):
        assert d("x * y", "y") == "x"
        assert d("x ^ 2 + y ^ 2", "y") == "2 * y"


class TestRejections:
    @pytest.mark.parametrize("variable", ["xy", "", "X", "1", None])
    def test_invalid_variable(self, variable):
        with pytest.raises(InvalidInputError):
            differentiate(parse("x"), variable)

    def test_unknown_node(self):
        with pytest.raises(UnsupportedOperationError):
            differentiate(("mod", ("var", "x"), ("num", 2.0)), "x")

    def test_depth_limit(self):
        tree = ("var", "x")
        for _ in range(30):
            tree = ("neg", tree)
        with pytest.raises(DepthExceededError):
            differentiate(tree, "x", max_depth=10)
