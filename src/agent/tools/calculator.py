"""
agent.tools.calculator - Arithmetic expression evaluator.

Parses the expression with the ast module and walks only numeric
literals and arithmetic operators. Names, calls and attribute access
are rejected, so nothing in the expression can execute code.
"""

from __future__ import annotations

import ast
import asyncio
import math
import operator

from pydantic import BaseModel, Field

from domain.exceptions import ToolExecutionError
from agent.tools.base import BaseTool, ToolResult

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_MAX_EXPONENT = 1000
# Integer results are bounded before they are computed
_MAX_RESULT_BITS = 4096


class CalculatorInput(BaseModel):
    """Input schema for the calculator tool."""
    expr: str = Field(
        description="Arithmetic expression, e.g. '2 + 2' or '(3.5 * 4) / 7'",
    )


def evaluate(expr: str) -> int | float:
    """Evaluate an arithmetic expression.

    Raises:
        ToolExecutionError: For syntax errors, unsupported syntax, or
            arithmetic errors such as division by zero.
    """
    try:
        tree = ast.parse(expr.strip(), mode="eval")
    except (SyntaxError, ValueError) as exc:
        raise ToolExecutionError(f"Invalid expression: {expr!r}") from exc

    try:
        value = _eval_node(tree.body)
    except (ZeroDivisionError, OverflowError) as exc:
        raise ToolExecutionError(f"Cannot evaluate {expr!r}: {exc}") from exc

    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return value


def _eval_node(node: ast.AST) -> int | float:
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        _check_size(node.op, left, right)
        result = _BINARY_OPS[type(node.op)](left, right)
        if isinstance(result, complex):
            raise ToolExecutionError("Result is not a real number")
        return result
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    raise ToolExecutionError(f"Unsupported syntax: {type(node).__name__}")


def _check_size(op: ast.operator, left: int | float, right: int | float) -> None:
    if isinstance(op, ast.Pow):
        if abs(right) > _MAX_EXPONENT:
            raise ToolExecutionError(f"Exponent too large: {right}")
        if isinstance(left, int) and isinstance(right, int) and right > 0:
            if abs(left).bit_length() * right > _MAX_RESULT_BITS:
                raise ToolExecutionError("Result too large")
    elif isinstance(op, ast.Mult) and isinstance(left, int) and isinstance(right, int):
        if abs(left).bit_length() + abs(right).bit_length() > _MAX_RESULT_BITS:
            raise ToolExecutionError("Result too large")


class CalculatorTool(BaseTool):
    """Evaluate arithmetic expressions."""

    name = "calculator"
    description = (
        "Evaluate an arithmetic expression and return the numeric result. "
        "Supports + - * / // % ** and parentheses. "
        "Use for any calculation instead of computing it yourself."
    )

    def get_schema(self) -> type[BaseModel]:
        return CalculatorInput

    async def execute(self, expr: str = "", **kwargs) -> ToolResult:
        loop = asyncio.get_running_loop()
        value = await loop.run_in_executor(None, evaluate, expr)
        return ToolResult(output=str(value), data={"expr": expr, "value": value})
