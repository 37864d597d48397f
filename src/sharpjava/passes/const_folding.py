"""
Const Folding Pass

Evaluates arithmetic over literal operands at compile time:

    (2 + (3 * 4))  ->  14
    -(5)           ->  -5
    (1.5 * 2)      ->  3.0

Integer arithmetic follows 32-bit two's complement (unchecked) semantics,
shared by C# and Java, so a folded program computes what the unfolded one
would. Comparisons, logical operators and increments are left alone.
"""

import logging
import re
from typing import Optional

import numpy as np

from ..passes.base import BasePass, PassContext
from ..ir.nodes import (
    IRNode, IRVisitor, ExpressionIR, is_known_variant, ProgramIR, ClassIR, MethodIR, ParameterIR,
    BlockIR, VariableDeclarationIR, AssignmentIR, ExpressionStatementIR,
    ReturnStatementIR, IfStatementIR, WhileLoopIR, ForLoopIR,
    LiteralIR, VariableIR, BinaryOpIR, UnaryOpIR, MethodCallIR,
)
from ..shared.operations import OperationKind
from ..shared.types import INT, DOUBLE
from ..utils.config import INT32_MIN, INT32_MAX

logger = logging.getLogger("sharpjava.passes.const_folding")

_INT_TEXT = re.compile(r"^[+-]?\d+$")
_FLOAT_TEXT = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


class ConstFoldingPass(BasePass):
    """
    Constant folding pass.

    - Evaluates constant arithmetic at compile-time
    - Replaces it with literals
    - Only folds pure operations (no side effects)
    - Builds a new tree; the input IR is not touched
    """
    requires = []

    def run(self, ir: ProgramIR, ctx: PassContext) -> ProgramIR:
        folder = ConstantFolder()
        folded = ir.accept(folder)
        logger.debug("folded %d constant expression(s)", folder.fold_count)
        ctx.set_analysis(ConstFoldingPass, folder.fold_count)
        return folded


def fold_constants(node: IRNode) -> IRNode:
    """Fold a single subtree outside of a pass pipeline."""
    return node.accept(ConstantFolder())


def parse_int32(text: str) -> Optional[int]:
    """Parse a decimal integer literal text; None unless it fits in 32 bits."""
    if not _INT_TEXT.match(text):
        return None
    value = int(text)
    if value < INT32_MIN or value > INT32_MAX:
        return None
    return value


def parse_float(text: str) -> Optional[float]:
    """Parse a plain decimal floating-point text (no suffixes, no inf/nan)."""
    if not _FLOAT_TEXT.match(text):
        return None
    return float(text)


def _wrap_int32(value: int) -> int:
    # int64 holds every intermediate of two int32 operands; the cast wraps
    return int(np.int64(value).astype(np.int32))


class ConstantFolder(IRVisitor[IRNode]):
    """
    Rebuilds the tree bottom-up, replacing foldable operations with literals.

    Every visit returns a fresh node, so the folded tree shares nothing
    with its input (nodes of unknown classes are carried over as they are).
    """

    def __init__(self):
        self.fold_count = 0

    def _fold(self, node: Optional[IRNode]) -> Optional[IRNode]:
        if node is None or not is_known_variant(node):
            return node
        return node.accept(self)

    # === Structure ===

    def visit_program(self, node: ProgramIR) -> ProgramIR:
        return ProgramIR([self._fold(c) for c in node.classes], namespace=node.namespace,
                         location=node.location)

    def visit_class(self, node: ClassIR) -> ClassIR:
        return ClassIR(node.name, [self._fold(m) for m in node.methods], location=node.location)

    def visit_method(self, node: MethodIR) -> MethodIR:
        return MethodIR(node.name, node.return_type, [self._fold(p) for p in node.parameters],
                        self._fold(node.body), location=node.location)

    def visit_parameter(self, node: ParameterIR) -> ParameterIR:
        return ParameterIR(node.name, node.type_tag, location=node.location)

    # === Statements ===

    def visit_block(self, node: BlockIR) -> BlockIR:
        return BlockIR([self._fold(s) for s in node.statements], location=node.location)

    def visit_variable_declaration(self, node: VariableDeclarationIR) -> VariableDeclarationIR:
        return VariableDeclarationIR(node.name, node.type_tag, self._fold(node.initializer),
                                     location=node.location)

    def visit_assignment(self, node: AssignmentIR) -> AssignmentIR:
        return AssignmentIR(node.target, self._fold(node.value), location=node.location)

    def visit_return_statement(self, node: ReturnStatementIR) -> ReturnStatementIR:
        return ReturnStatementIR(self._fold(node.expression), location=node.location)

    def visit_expression_statement(self, node: ExpressionStatementIR) -> ExpressionStatementIR:
        return ExpressionStatementIR(self._fold(node.expression), location=node.location)

    def visit_if_statement(self, node: IfStatementIR) -> IfStatementIR:
        return IfStatementIR(self._fold(node.condition), self._fold(node.then_branch),
                             self._fold(node.else_branch), location=node.location)

    def visit_while_loop(self, node: WhileLoopIR) -> WhileLoopIR:
        return WhileLoopIR(self._fold(node.condition), self._fold(node.body), location=node.location)

    def visit_for_loop(self, node: ForLoopIR) -> ForLoopIR:
        return ForLoopIR(
            [self._fold(i) for i in node.initializers],
            self._fold(node.condition),
            [self._fold(i) for i in node.incrementors],
            self._fold(node.body),
            location=node.location,
        )

    # === Expressions ===

    def visit_literal(self, expr: LiteralIR) -> LiteralIR:
        return LiteralIR(expr.value, expr.type_tag, location=expr.location)

    def visit_variable(self, expr: VariableIR) -> VariableIR:
        return VariableIR(expr.name, expr.type_tag, location=expr.location)

    def visit_binary_op(self, expr: BinaryOpIR) -> ExpressionIR:
        """Fold binary operation if both operands are literal and the kind is arithmetic."""
        left = self._fold(expr.left)
        right = self._fold(expr.right)

        if expr.operator.is_arithmetic() and isinstance(left, LiteralIR) and isinstance(right, LiteralIR):
            folded = self._eval_binary_op(expr.operator, left.value, right.value)
            if folded is not None:
                self.fold_count += 1
                value, type_tag = folded
                return LiteralIR(value, type_tag, location=expr.location)

        # Not constant, return (potentially partially-folded) expression
        return BinaryOpIR(expr.operator, left, right, expr.type_tag, location=expr.location)

    def visit_unary_op(self, expr: UnaryOpIR) -> ExpressionIR:
        """Fold unary minus/plus over a literal operand."""
        operand = self._fold(expr.operand)

        if isinstance(operand, LiteralIR) and not expr.operator.has_side_effect():
            if expr.operator == OperationKind.UNARY_PLUS:
                self.fold_count += 1
                return operand
            if expr.operator == OperationKind.UNARY_MINUS:
                folded = self._eval_negate(operand.value)
                if folded is not None:
                    self.fold_count += 1
                    value, type_tag = folded
                    return LiteralIR(value, type_tag, location=expr.location)

        return UnaryOpIR(expr.operator, operand, expr.type_tag, is_prefix=expr.is_prefix,
                         location=expr.location)

    def visit_method_call(self, expr: MethodCallIR) -> MethodCallIR:
        return MethodCallIR(expr.method_name, [self._fold(a) for a in expr.arguments], expr.type_tag,
                            target=self._fold(expr.target), location=expr.location)

    # === Evaluation ===

    def _eval_binary_op(self, op: OperationKind, left: str, right: str):
        """
        Evaluate arithmetic over two literal texts.

        Returns (text, type_tag) or None when the operation must stay unfolded.
        """
        lhs, rhs = parse_int32(left), parse_int32(right)
        if lhs is not None and rhs is not None:
            value = self._eval_int(op, lhs, rhs)
            return (str(value), INT) if value is not None else None

        flhs, frhs = parse_float(left), parse_float(right)
        if flhs is not None and frhs is not None:
            value = self._eval_float(op, flhs, frhs)
            return (repr(value), DOUBLE) if value is not None else None

        return None

    def _eval_int(self, op: OperationKind, lhs: int, rhs: int) -> Optional[int]:
        if op == OperationKind.ADD:
            return _wrap_int32(lhs + rhs)
        if op == OperationKind.SUBTRACT:
            return _wrap_int32(lhs - rhs)
        if op == OperationKind.MULTIPLY:
            return _wrap_int32(lhs * rhs)
        if rhs == 0:
            return None
        if lhs == INT32_MIN and rhs == -1:
            # overflows at runtime in C#; leave it to the program
            return None
        quotient = abs(lhs) // abs(rhs)
        if (lhs < 0) != (rhs < 0):
            quotient = -quotient
        if op == OperationKind.DIVIDE:
            return quotient
        if op == OperationKind.MODULO:
            return lhs - rhs * quotient
        return None

    def _eval_float(self, op: OperationKind, lhs: float, rhs: float) -> Optional[float]:
        a, b = np.float64(lhs), np.float64(rhs)
        if op in (OperationKind.DIVIDE, OperationKind.MODULO) and b == 0.0:
            return None
        with np.errstate(all="ignore"):
            if op == OperationKind.ADD:
                result = a + b
            elif op == OperationKind.SUBTRACT:
                result = a - b
            elif op == OperationKind.MULTIPLY:
                result = a * b
            elif op == OperationKind.DIVIDE:
                result = a / b
            elif op == OperationKind.MODULO:
                result = np.fmod(a, b)
            else:
                return None
        if not np.isfinite(result):
            return None
        return float(result)

    def _eval_negate(self, text: str):
        if text == str(INT32_MAX + 1):
            # -2147483648 reaches the folder as minus over a literal one past INT32_MAX
            return str(INT32_MIN), INT
        value = parse_int32(text)
        if value is not None:
            return str(_wrap_int32(-value)), INT
        fvalue = parse_float(text)
        if fvalue is not None:
            return repr(-fvalue), DOUBLE
        return None
