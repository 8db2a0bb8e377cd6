import math

import numpy as np
import pytest
import torch

from differentiator import differentiate
from evaluator import evaluate
from gradient_checker import numerical_gradient, scope_function
from parser import parse
from simplifier import canonicalize


r_tol = 1e-6


# Helper
def torch_eval(node, env):
    """Evaluate an expression tree on float64 tensors so autograd can trace it."""
    tag = node[0]
    if tag == "num":
        return torch.tensor(node[1], dtype=torch.float64)
    if tag == "const":
        return torch.tensor(math.pi if node[1] == "pi" else math.e, dtype=torch.float64)
    if tag == "var":
        return env[node[1]]
    if tag == "neg":
        return -torch_eval(node[1], env)
    if tag == "call":
        fn = {"sin": torch.sin, "cos": torch.cos, "tan": torch.tan,
              "sqrt": torch.sqrt, "log": torch.log}[node[1]]
        return fn(torch_eval(node[2][0], env))
    left, right = torch_eval(node[1], env), torch_eval(node[2], env)
    if tag == "add":
        return left + right
    if tag == "sub":
        return left - right
    if tag == "mul":
        return left * right
    if tag == "div":
        return left / right
    return torch.pow(left, right)


def autograd(text, point):
    """d/dx of *text* at x = *point*, computed by torch."""
    x = torch.tensor(point, dtype=torch.float64, requires_grad=True)
    y = torch_eval(parse(text), {"x": x})
    y.backward()
    return x.grad.item()


SINGLE_VARIABLE = [
    ("x ^ 3 - 2 * x", 1.5),
    ("sin(x) * x", 0.7),
    ("cos(x ^ 2)", 1.1),
    ("tan(x)", 0.4),
    ("sqrt(x + 1)", 2.0),
    ("log(x) / x", 2.5),
    ("e ^ (2 * x)", 0.3),
    ("2 ^ x", 1.2),
    ("x ^ x", 1.3),
    ("1 / (x ^ 2 + 1)", 0.5),
    ("(x + 1) / (x - 1)", 3.0),
    ("x ^ -2", 1.5),
    ("x ^ 0.5", 4.0),
    ("pi * x ^ 2", 1.0),
    ("-x ^ 3", 2.0),
    ("sin(cos(log(x)))", 1.7),
    ("3 / x", 0.8),
]
SINGLE_IDS = [text for text, _ in SINGLE_VARIABLE]


class TestAgainstAutograd:
    @pytest.mark.parametrize("text, point", SINGLE_VARIABLE, ids=SINGLE_IDS)
    def test_raw_derivative(self, text, point):
        derivative = differentiate(parse(text), "x")
        assert evaluate(derivative, {"x": point}) == pytest.approx(autograd(text, point), rel=r_tol)

    @pytest.mark.parametrize("text, point", SINGLE_VARIABLE, ids=SINGLE_IDS)
    def test_simplified_derivative(self, text, point):
        derivative = canonicalize(differentiate(parse(text), "x"))
        assert evaluate(derivative, {"x": point}) == pytest.approx(autograd(text, point), rel=r_tol)


class TestAgainstNumerical:
    @pytest.mark.parametrize("text, point", SINGLE_VARIABLE, ids=SINGLE_IDS)
    def test_single_variable(self, text, point):
        f = scope_function(evaluate, parse(text), ["x"])
        num_grad = numerical_gradient(f, np.array([point]))[0]
        derivative = differentiate(parse(text), "x")
        assert evaluate(derivative, {"x": point}) == pytest.approx(num_grad, rel=1e-5, abs=1e-6)

    @pytest.mark.parametrize("text, point", [
        ("x * y ^ 2 + sin(x * y)", (0.5, 1.5)),
        ("x / y - y / x", (2.0, 3.0)),
        ("e ^ (x - y) * log(x + y)", (0.4, 0.9)),
        ("x ^ y", (1.5, 2.5)),
    ])
    def test_partial_derivatives(self, text, point):
        tree = parse(text)
        f = scope_function(evaluate, tree, ["x", "y"])
        num_grad = numerical_gradient(f, np.array(point))
        scope = {"x": point[0], "y": point[1]}
        for i, name in enumerate(["x", "y"]):
            partial = evaluate(differentiate(tree, name), scope)
            assert partial == pytest.approx(num_grad[i], rel=1e-5, abs=1e-6)


class TestConstantRule:
    @pytest.mark.parametrize("text", ["5", "pi", "y ^ 2", "sin(y) * e", "log(z) / y"])
    def test_constant_subtree_is_zero(self, text):
        assert differentiate(parse(text), "x") == ("num", 0.0)

    @pytest.mark.parametrize("point", [-2.0, 0.0, 3.5])
    def test_derivative_of_constant_term_vanishes(self, point):
        derivative = differentiate(parse("x ^ 2 + y"), "x")
        assert evaluate(derivative, {"x": point}) == pytest.approx(2 * point)
