"""Command line interface.

    symcalc eval "2 * (3 + 4) - 1"
    symcalc eval "x ^ 2 + y" --var x=3 --var y=1
    symcalc simplify "2*x + 3*x"
    symcalc derive "sin(x) * x" x --simplify
    symcalc rationalize "1/(x+1) + 1/(x-1)"
    symcalc parse "2*x^2 + 3*x + 1" --tree
    symcalc solve --coefficients "[[2,1],[1,3]]" --constants "[5,7]" --names x,y
    symcalc tool matrixAdd '{"a": [[1,2],[3,4]], "b": [[5,6],[7,8]]}'

Expressions starting with a minus sign go after ``--``:
``symcalc eval --var x=2 -- "-x ^ 2"``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Optional, Sequence

import engine
from config import get_settings
from errors import InvalidInputError, MathError
from responses import call_tool
from utils.log_utils import configure_logging
from utils.print_utils import _pformat, format_value

logger = logging.getLogger(__name__)


def _json_argument(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e.msg}") from None


def _binding(text: str) -> tuple[str, Any]:
    name, sep, raw = text.partition("=")
    name = name.strip()
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {text!r}")
    return name, _json_argument(raw)


def _names(text: str) -> list[str]:
    return [name.strip() for name in text.split(",") if name.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="symcalc",
        description="Parse, evaluate, differentiate and simplify expressions; solve linear systems.",
    )
    parser.add_argument("--log-level", default=None,
                        help="Logging level (default: SYMCALC_LOG_LEVEL or WARNING)")
    parser.add_argument("--log-json", action="store_true",
                        help="Emit log records as JSON lines")
    commands = parser.add_subparsers(dest="command", required=True)

    p = commands.add_parser("eval", help="Evaluate an expression")
    p.add_argument("expression")
    p.add_argument("--var", dest="bindings", type=_binding, action="append", default=[],
                   metavar="NAME=VALUE", help="Variable value (JSON number or nested list)")

    p = commands.add_parser("simplify", help="Simplify an expression (evaluates it when --var is given)")
    p.add_argument("expression")
    p.add_argument("--var", dest="bindings", type=_binding, action="append", default=[],
                   metavar="NAME=VALUE")

    p = commands.add_parser("derive", help="Differentiate an expression")
    p.add_argument("expression")
    p.add_argument("variable")
    p.add_argument("--simplify", action="store_true", help="Simplify the derivative")

    p = commands.add_parser("rationalize", help="Rewrite an expression as a single fraction")
    p.add_argument("expression")

    p = commands.add_parser("parse", help="Parse an expression and print its canonical form")
    p.add_argument("expression")
    p.add_argument("--tree", action="store_true", help="Print the expression tree instead")

    p = commands.add_parser("solve", help="Solve a square linear system A x = b")
    p.add_argument("--coefficients", type=_json_argument, required=True, help="A as JSON")
    p.add_argument("--constants", type=_json_argument, required=True, help="b as JSON")
    p.add_argument("--names", type=_names, default=None, help="Comma separated unknown names")

    p = commands.add_parser("tool", help="Call a tool by name and print its JSON envelope")
    p.add_argument("name")
    p.add_argument("arguments", nargs="?", type=_json_argument, default=None,
                   help="Tool arguments as a JSON object")

    return parser


def run(args: argparse.Namespace) -> str:
    """Execute a parsed command and return the text to print."""
    command = args.command

    if command == "eval":
        return format_value(engine.evaluate(args.expression, dict(args.bindings)))

    elif command == "simplify":
        return format_value(engine.simplify(args.expression, dict(args.bindings)))

    elif command == "derive":
        return format_value(engine.differentiate(args.expression, args.variable, simplify=args.simplify))

    elif command == "rationalize":
        return format_value(engine.rationalize(args.expression))

    elif command == "parse":
        tree = engine.parse(args.expression)
        return _pformat(tree) if args.tree else engine.to_string(tree)

    elif command == "solve":
        return format_value(engine.solve_linear_system(args.coefficients, args.constants, args.names))

    elif command == "tool":
        return json.dumps(call_tool(args.name, args.arguments).to_dict())

    raise InvalidInputError(f"Unknown command {command!r}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 2

    try:
        settings = get_settings()
        configure_logging(args.log_level or settings.log_level, args.log_json or settings.log_json)
        output = run(args)
    except MathError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
