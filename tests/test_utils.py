"""
Test utilities for the sharpjava test suite.

Small IR constructors so tests read like the tree they build, plus the
Calculator program used by end-to-end checks.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from sharpjava.ir.nodes import (
    ProgramIR, ClassIR, MethodIR, BlockIR, LiteralIR, VariableIR, BinaryOpIR, UnaryOpIR,
)
from sharpjava.shared.operations import OperationKind


CALCULATOR_SOURCE = """\
namespace Demo
{
    public class Calculator
    {
        public int Calculate()
        {
            int a = 10;
            int b = 5;
            return a + b;
        }
    }
}
"""


def lit(value: str, type_tag: str = "int") -> LiteralIR:
    return LiteralIR(value, type_tag)


def var(name: str, type_tag: str = "int") -> VariableIR:
    return VariableIR(name, type_tag)


def binop(op: OperationKind, left, right, type_tag: str = "int") -> BinaryOpIR:
    return BinaryOpIR(op, left, right, type_tag)


def unop(op: OperationKind, operand, type_tag: str = "int", is_prefix: bool = True) -> UnaryOpIR:
    return UnaryOpIR(op, operand, type_tag, is_prefix=is_prefix)


def program_with_body(*statements, return_type: str = "int", namespace: str = "") -> ProgramIR:
    """One class ``Calculator`` with one method ``Calculate`` holding ``statements``."""
    method = MethodIR("Calculate", return_type, [], BlockIR(statements))
    return ProgramIR([ClassIR("Calculator", [method])], namespace=namespace)


def method_body_lines(java: str) -> list:
    """Non-blank lines strictly inside the first method, stripped of indentation."""
    lines = [l.strip() for l in java.splitlines() if l.strip()]
    start = next(i for i, l in enumerate(lines) if l.startswith("public ") and "(" in l)
    return lines[start + 1:-2]
