import json

import pytest

from linalg import Matrix
from responses import RECOVERY_STRATEGIES, TOOLS, Tool, ToolResponse, call_tool, to_plain


class TestSuccess:
    @pytest.mark.parametrize("name, arguments, data", [
        ("evaluateMath", {"expression": "2 * (3 + 4) - 1"}, 13.0),
        ("evaluateMath", {"expression": "x ^ 2", "scope": {"x": 3}}, 9.0),
        ("calculateSimple", {"expr": "2+3*4"}, 14.0),
        ("calculateAdvanced", {"operation": "add", "a": 2, "b": 3}, 5.0),
        ("calculateAdvanced", {"operation": "subtract", "a": 2, "b": 3}, -1.0),
        ("calculateAdvanced", {"operation": "multiply", "a": 2, "b": 3}, 6.0),
        ("calculateAdvanced", {"operation": "divide", "a": 3, "b": 2}, 1.5),
        ("simplifyExpression", {"expr": "2*x + 3*x"}, "5 * x"),
        ("simplifyExpression", {"expr": "2*x + 3*x", "scope": {"x": 1}}, 5.0),
        ("symbolicCompute", {"expression": "2*x^2 + 3*x + 1"}, "2 * x ^ 2 + 3 * x + 1"),
        ("derivative", {"expr": "x^2", "variable": "x"}, "2 * x"),
        ("derivative", {"expr": "x*x", "variable": "x", "simplify": True}, "2 * x"),
        ("rationalize", {"expr": "x + 1/x"}, "(1 + x ^ 2) / x"),
        ("createMatrix", {"data": [[1, 2], [3, 4]]}, [[1.0, 2.0], [3.0, 4.0]]),
        ("matrixAdd", {"a": [[1, 2]], "b": [[3, 4]]}, [[4.0, 6.0]]),
        ("matrixMultiply", {"a": [[1, 2], [3, 4]], "b": [[5, 6], [7, 8]]}, [[19.0, 22.0], [43.0, 50.0]]),
        ("solveLinearSystem", {"coefficients": [[1, 1], [1, -1]], "constants": [3, 1]}, [2.0, 1.0]),
        ("solveLinearSystem",
         {"coefficients": [[1, 1], [1, -1]], "constants": [3, 1], "variables": ["x", "y"]},
         {"x": 2.0, "y": 1.0}),
        ("solveEquationSystem",
         {"equations": {"coefficients": [[2, 0], [0, 2]], "constants": [2, 4]}},
         [1.0, 2.0]),
    ])
    def test_tool(self, name, arguments, data):
        response = call_tool(name, arguments)
        assert response.success, response.message
        assert response.data == data
        json.dumps(response.to_dict())

    def test_message_is_display_text(self):
        assert call_tool("evaluateMath", {"expression": "1 + 1"}).message == "2"
        assert call_tool("derivative", {"expr": "sin(x)", "variable": "x"}).message == "cos(x)"

    def test_success_envelope_has_no_error_fields(self):
        assert call_tool("calculateSimple", {"expr": "1"}).to_dict() == {
            "success": True,
            "message": "1",
            "data": 1.0,
        }


class TestFailure:
    @pytest.mark.parametrize("name, arguments, code", [
        ("evaluateMath", {"expression": "2 +"}, "SYNTAX_ERROR"),
        ("evaluateMath", {"expression": "x + 1"}, "UNBOUND_VARIABLE"),
        ("calculateAdvanced", {"operation": "divide", "a": 1, "b": 0}, "INVALID_INPUT"),
        ("calculateAdvanced", {"operation": "modulo", "a": 1, "b": 2}, "INVALID_INPUT"),
        ("calculateAdvanced", {"operation": "add", "a": "1", "b": 2}, "INVALID_INPUT"),
        ("matrixAdd", {"a": [[1, 2]], "b": [[1], [2]]}, "SHAPE_ERROR"),
        ("solveLinearSystem", {"coefficients": [[1, 1], [2, 2]], "constants": [1, 2]}, "SINGULAR_MATRIX"),
        ("solveEquationSystem", {"equations": "x + y = 3"}, "NOT_IMPLEMENTED"),
        ("evaluateMath", {"expression": "-" * 300 + "1"}, "DEPTH_EXCEEDED"),
        ("evaluateMath", {"expression": "1 / a", "scope": {"a": [[1]]}}, "UNSUPPORTED_OPERATION"),
        ("derivative", {"expr": "x"}, "INVALID_INPUT"),
        ("derivative", {"expr": "x", "variable": "x", "order": 2}, "INVALID_INPUT"),
        ("nope", {}, "UNKNOWN_TOOL"),
    ])
    def test_error_code(self, name, arguments, code):
        response = call_tool(name, arguments)
        assert not response.success
        assert response.error_code == code
        assert response.recovery == RECOVERY_STRATEGIES[code]
        assert response.data is None

    def test_divide_by_zero_message(self):
        assert call_tool("calculateAdvanced", {"operation": "divide", "a": 1, "b": 0}).message == "Cannot divide by zero"

    def test_syntax_error_details(self):
        response = call_tool("symbolicCompute", {"expression": "2 * * 3"})
        assert response.details["position"] == 4
        assert response.details["expected"] == "an operand"

    def test_arguments_must_be_an_object(self):
        response = call_tool("calculateSimple", ["1 + 1"])
        assert response.error_code == "INVALID_INPUT"

    def test_missing_arguments_listed(self):
        response = call_tool("matrixAdd", {"a": [[1]]})
        assert response.details == {"missing": ["b"]}

    def test_unknown_tool_lists_available(self):
        response = call_tool("nope")
        assert "evaluateMath" in response.details["available"]

    def test_unexpected_exception(self, monkeypatch):
        def boom():
            raise RuntimeError("kaboom")

        monkeypatch.setitem(TOOLS, "boom", Tool("boom", "Always fails.", boom, ()))
        response = call_tool("boom")
        assert response.error_code == "INTERNAL_ERROR"
        assert response.details == {"exception_type": "RuntimeError"}

    def test_failure_envelope(self):
        payload = call_tool("evaluateMath", {"expression": "x"}).to_dict()
        assert set(payload) == {"success", "message", "data", "error_code", "details", "recovery"}
        assert payload["details"] == {"variable": "x"}


class TestToPlain:
    def test_values(self):
        assert to_plain(("var", "x")) == "x"
        assert to_plain(Matrix([1, 2])) == [1.0, 2.0]
        assert to_plain({"x": 1}) == {"x": 1.0}
        assert to_plain([("num", 2.0), 3]) == ["2", 3.0]
        assert to_plain("text") == "text"


def test_every_tool_has_a_description():
    assert all(isinstance(tool, Tool) and tool.description for tool in TOOLS.values())
    assert set(TOOLS) >= {"evaluateMath", "simplifyExpression", "derivative", "solveLinearSystem"}
