from typing import get_args

import pytest

from errors import DepthExceededError
from parser import parse
from utils.ast_utils import (
    CONSTANTS,
    EXPR_TAGS,
    FUNCTIONS,
    ExprTag,
    check_depth,
    children,
    collect_variables,
    contains_variable,
    is_node,
    is_variable_name,
    number,
    tree_depth,
)


VALID_TAGS = {tag for literal in get_args(ExprTag) for tag in get_args(literal)}


def walk(node):
    yield node
    for child in children(node):
        yield from walk(child)


SOURCES = [
    "2*x^2 + 3*x + 1",
    "sin(x) * cos(y) / (1 + tan(z))",
    "-(e ^ (pi * t)) - sqrt(log(a))",
    "((1))",
]


class TestVocabulary:
    def test_tags(self):
        assert EXPR_TAGS == VALID_TAGS
        assert EXPR_TAGS == {"num", "const", "var", "neg", "add", "sub", "mul", "div", "pow", "call"}

    def test_names(self):
        assert CONSTANTS == {"pi", "e"}
        assert FUNCTIONS == {"sin", "cos", "tan", "sqrt", "log"}

    @pytest.mark.parametrize("source", SOURCES)
    def test_parser_uses_known_tags(self, source):
        assert all(node[0] in EXPR_TAGS for node in walk(parse(source)))


class TestIsNode:
    @pytest.mark.parametrize("source", SOURCES)
    def test_parsed_trees(self, source):
        assert is_node(parse(source))

    @pytest.mark.parametrize("value", [
        None,
        (),
        ["num", 1.0],
        ("num", True),
        ("num", "1"),
        ("const", "tau"),
        ("var", ""),
        ("neg",),
        ("add", ("num", 1.0)),
        ("call", "sin", ("var", "x")),
        ("call", "sin", (("var", "x"), ("var", "y"))),
        ("call", "exp", (("var", "x"),)),
        ("mod", ("num", 1.0), ("num", 2.0)),
        ("add", ("num", 1.0), ("oops",)),
    ])
    def test_malformed(self, value):
        assert not is_node(value)

    def test_deep_tree_does_not_recurse(self):
        tree = ("var", "x")
        for _ in range(10_000):
            tree = ("neg", tree)
        assert is_node(tree)
        assert tree_depth(tree) == 10_001


class TestQueries:
    def test_number_normalises(self):
        assert number(2) == ("num", 2.0)
        assert number(-0.0) == ("num", 0.0)
        assert str(number(-0.0)[1]) == "0.0"

    @pytest.mark.parametrize("name, ok", [("x", True), ("a", True), ("z", True),
                                          ("X", False), ("xy", False), ("", False), (1, False)])
    def test_variable_names(self, name, ok):
        assert is_variable_name(name) is ok

    def test_contains_variable(self):
        tree = parse("sin(x) + y ^ 2")
        assert contains_variable(tree, "x")
        assert contains_variable(tree, "y")
        assert not contains_variable(tree, "z")

    def test_collect_variables(self):
        assert collect_variables(parse("z * sin(x) + x ^ a")) == ["a", "x", "z"]
        assert collect_variables(parse("pi * e")) == []

    def test_children(self):
        assert children(parse("sin(x)")) == (("var", "x"),)
        assert children(parse("-x")) == (("var", "x"),)
        assert children(parse("x")) == ()

    def test_tree_depth(self):
        assert tree_depth(parse("x")) == 1
        assert tree_depth(parse("1 + sin(x)")) == 3

    def test_check_depth(self):
        tree = parse("1 + sin(x)")
        assert check_depth(tree, 3) is tree
        with pytest.raises(DepthExceededError) as err:
            check_depth(tree, 2)
        assert err.value.details == {"limit": 2}
