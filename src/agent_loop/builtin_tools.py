"""Built-in tools available to every agent."""

from __future__ import annotations

import ast
import asyncio
import math
import operator
from datetime import datetime, timezone
from typing import Any

from .tools import BaseTool, ParameterSpec


# ---------------------------------------------------------------------------
# get_time
# ---------------------------------------------------------------------------


class GetTimeTool(BaseTool):
    """Returns current UTC time as ISO string."""

    @property
    def name(self) -> str:
        return "get_time"

    @property
    def description(self) -> str:
        return "Get the current UTC date and time in ISO format."

    async def execute(self, params: dict[str, Any]) -> str:
        return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# calculator
# ---------------------------------------------------------------------------


class SafeExpressionEvaluator(ast.NodeVisitor):
    """
    Arithmetic evaluator over a whitelisted AST.

    Accepts numbers, + - * / // % **, unary +/-, and calls to a few math
    functions written either bare (`sqrt(2)`) or qualified (`math.sqrt(2)`).
    """

    BINARY_OPS = {
        ast.Add: operator.add,
        ast.Sub: operator.sub,
        ast.Mult: operator.mul,
        ast.Div: operator.truediv,
        ast.FloorDiv: operator.floordiv,
        ast.Mod: operator.mod,
        ast.Pow: operator.pow,
    }

    UNARY_OPS = {
        ast.UAdd: operator.pos,
        ast.USub: operator.neg,
    }

    FUNCTIONS = {
        "sqrt": math.sqrt,
        "sin": math.sin,
        "cos": math.cos,
        "tan": math.tan,
        "log": math.log,
        "exp": math.exp,
        "abs": abs,
        "round": round,
    }

    CONSTANTS = {"pi": math.pi, "e": math.e}

    MAX_DEPTH = 25
    MAX_EXPONENT = 1000
    MAX_DIGITS = 1000
    MAX_BITS = int(MAX_DIGITS * math.log2(10)) + 1

    def evaluate(self, expression: str) -> int | float:
        try:
            tree = ast.parse(expression.strip(), mode="eval")
        except SyntaxError as e:
            raise ValueError(f"Invalid expression: {expression!r}") from e
        self._check_depth(tree)
        return self.visit(tree.body)

    def _check_depth(self, node: ast.AST, depth: int = 0) -> None:
        if depth > self.MAX_DEPTH:
            raise ValueError("Expression too complex")
        for child in ast.iter_child_nodes(node):
            self._check_depth(child, depth + 1)

    def visit_BinOp(self, node: ast.BinOp) -> int | float:
        op = self.BINARY_OPS.get(type(node.op))
        if op is None:
            raise ValueError(f"Operator not allowed: {type(node.op).__name__}")
        left = self.visit(node.left)
        right = self.visit(node.right)
        if isinstance(node.op, ast.Pow):
            self._check_power(left, right)
        result = op(left, right)
        if isinstance(result, int) and result.bit_length() > self.MAX_BITS:
            raise ValueError("Result too large")
        return result

    def _check_power(self, base: int | float, exponent: int | float) -> None:
        # Estimate the digits of base ** exponent before computing it.
        if abs(exponent) > self.MAX_EXPONENT:
            raise ValueError("Exponent too large")
        if exponent > 0 and abs(base) > 1 and exponent * math.log10(abs(base)) > self.MAX_DIGITS:
            raise ValueError("Result too large")

    def visit_UnaryOp(self, node: ast.UnaryOp) -> int | float:
        op = self.UNARY_OPS.get(type(node.op))
        if op is None:
            raise ValueError(f"Unary operator not allowed: {type(node.op).__name__}")
        return op(self.visit(node.operand))

    def visit_Call(self, node: ast.Call) -> int | float:
        func = node.func
        if isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name) and func.value.id == "math":
            func_name = func.attr
        elif isinstance(func, ast.Name):
            func_name = func.id
        else:
            raise ValueError("Invalid function call")
        if func_name not in self.FUNCTIONS or node.keywords:
            raise ValueError(f"Function '{func_name}' not allowed")
        return self.FUNCTIONS[func_name](*(self.visit(arg) for arg in node.args))

    def visit_Attribute(self, node: ast.Attribute) -> float:
        if isinstance(node.value, ast.Name) and node.value.id == "math" and node.attr in self.CONSTANTS:
            return self.CONSTANTS[node.attr]
        raise ValueError("Attribute access not allowed")

    def visit_Name(self, node: ast.Name) -> float:
        if node.id in self.CONSTANTS:
            return self.CONSTANTS[node.id]
        raise ValueError(f"Unknown name: {node.id}")

    def visit_Constant(self, node: ast.Constant) -> int | float:
        if isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
            return node.value
        raise ValueError("Only numeric constants allowed")

    def generic_visit(self, node: ast.AST) -> Any:
        raise ValueError(f"Unsupported expression: {type(node).__name__}")


class CalculatorTool(BaseTool):
    """Evaluates an arithmetic expression."""

    def __init__(self) -> None:
        self._evaluator = SafeExpressionEvaluator()

    @property
    def name(self) -> str:
        return "calculator"

    @property
    def description(self) -> str:
        return "Evaluate an arithmetic expression, e.g. '2 + 2' or 'sqrt(16) * 3'."

    @property
    def parameters(self) -> dict[str, ParameterSpec]:
        return {
            "expression": ParameterSpec(
                type="string",
                description="Arithmetic expression to evaluate",
                required=True,
            )
        }

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        expression = params["expression"]
        result = await asyncio.to_thread(self._evaluator.evaluate, expression)
        return {"expression": expression, "result": result}


BUILTIN_TOOLS: dict[str, type[BaseTool]] = {
    "get_time": GetTimeTool,
    "calculator": CalculatorTool,
}


def get_builtin_tools(names: list[str] | None = None) -> list[BaseTool]:
    """Instantiate built-in tools by name (all of them when `names` is None)."""
    if names is None:
        return [cls() for cls in BUILTIN_TOOLS.values()]
    unknown = [n for n in names if n not in BUILTIN_TOOLS]
    if unknown:
        raise ValueError(f"Unknown tools: {', '.join(unknown)}")
    return [BUILTIN_TOOLS[n]() for n in dict.fromkeys(names)]


__all__ = [
    "GetTimeTool",
    "CalculatorTool",
    "SafeExpressionEvaluator",
    "BUILTIN_TOOLS",
    "get_builtin_tools",
]
