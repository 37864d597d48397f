"""
IR Validation Pass

Validates that IR is structurally well-formed before the core passes touch it.

This pass checks STRUCTURAL properties only:
1. Required children are present and of the right category
   (statement where a statement is expected, expression where an expression is)
2. Names and type tags are non-empty strings
3. Operators match their node (binary kinds on BinaryOp, unary kinds on UnaryOp)
4. Nesting stays within MAX_NESTING_DEPTH
5. Every node belongs to the closed variant set (lenient runs let
   foreign statement and expression nodes through to the backend)

If this pass fails, it indicates a FRONT-END BUG, not a user error.
"""

import logging
from contextlib import contextmanager
from typing import Optional

from ..passes.base import BasePass, PassContext
from ..ir.nodes import (
    IRNode, IRWalker, StatementIR, ExpressionIR, is_known_variant,
    ProgramIR, ClassIR, MethodIR, ParameterIR,
    BlockIR, VariableDeclarationIR, AssignmentIR, ExpressionStatementIR,
    ReturnStatementIR, IfStatementIR, WhileLoopIR, ForLoopIR,
    LiteralIR, VariableIR, BinaryOpIR, UnaryOpIR, MethodCallIR,
)
from ..shared.errors import IRValidationError, UnsupportedNodeError
from ..shared.operations import OperationKind
from ..utils.config import MAX_NESTING_DEPTH

logger = logging.getLogger("sharpjava.passes.ir_validation")


class IRValidationPass(BasePass):
    """Structural IR validation. Returns the IR unchanged; stores the node count."""
    requires = []

    def __init__(self, max_depth: int = MAX_NESTING_DEPTH):
        self.max_depth = max_depth

    def run(self, ir: ProgramIR, ctx: PassContext) -> ProgramIR:
        if not isinstance(ir, ProgramIR):
            raise IRValidationError(f"expected a Program at the root, got {type(ir).__name__}",
                                    getattr(ir, "node_kind", type(ir).__name__))
        visitor = IRValidationVisitor(self.max_depth, strict=ctx.strict)
        ir.accept(visitor)
        logger.debug("validated %d IR nodes", visitor.nodes_validated)
        ctx.set_analysis(IRValidationPass, visitor.nodes_validated)
        return ir


class IRValidationVisitor(IRWalker):
    """
    Walks the tree and raises IRValidationError on the first malformed node.

    With ``strict`` a statement or expression of an unknown node class raises
    UnsupportedNodeError; otherwise it is accepted unchecked.
    """

    def __init__(self, max_depth: int = MAX_NESTING_DEPTH, strict: bool = True):
        self.max_depth = max_depth
        self.depth = 0
        self.nodes_validated = 0
        self.strict = strict

    @contextmanager
    def _nested(self, node: IRNode):
        self.depth += 1
        self.nodes_validated += 1
        if self.depth > self.max_depth:
            raise IRValidationError(f"nesting deeper than {self.max_depth} levels", node.node_kind, node.location)
        try:
            yield
        finally:
            self.depth -= 1

    # === Checks ===

    def _fail(self, node: IRNode, message: str):
        raise IRValidationError(message, node.node_kind, node.location)

    def _check_name(self, node: IRNode, value, field: str) -> None:
        if not isinstance(value, str) or not value:
            self._fail(node, f"{field} must be a non-empty string, got {value!r}")

    def _check_type(self, node: IRNode, value, field: str = "type_tag") -> None:
        self._check_name(node, value, field)

    def _check_statement(self, node: IRNode, child, field: str, optional: bool = False) -> None:
        if child is None and optional:
            return
        if not isinstance(child, StatementIR):
            self._fail(node, f"{field} must be a statement, got {_describe(child)}")
        self._check_variant(node, child, field)

    def _check_expression(self, node: IRNode, child, field: str, optional: bool = False) -> None:
        if child is None and optional:
            return
        if not isinstance(child, ExpressionIR):
            self._fail(node, f"{field} must be an expression, got {_describe(child)}")
        if self._check_variant(node, child, field):
            self._check_type(child, child.type_tag)

    def _check_variant(self, node: IRNode, child: IRNode, field: str) -> bool:
        """
        False for a node of a class outside the closed variant set.

        Strict runs reject it; lenient runs leave it for the backend to stub out.
        """
        if is_known_variant(child):
            return True
        if self.strict:
            raise UnsupportedNodeError(child.node_kind, f"{node.node_kind} {field}", child.location)
        logger.debug("passing unsupported %s in %s %s through", child.node_kind, node.node_kind, field)
        return False

    # === Structure ===

    def visit_program(self, node: ProgramIR) -> None:
        with self._nested(node):
            if not isinstance(node.namespace, str):
                self._fail(node, f"namespace must be a string, got {node.namespace!r}")
            for cls in node.classes:
                if not isinstance(cls, ClassIR):
                    self._fail(node, f"classes must hold Class nodes, got {_describe(cls)}")
            super().visit_program(node)

    def visit_class(self, node: ClassIR) -> None:
        with self._nested(node):
            self._check_name(node, node.name, "name")
            for method in node.methods:
                if not isinstance(method, MethodIR):
                    self._fail(node, f"methods must hold Method nodes, got {_describe(method)}")
            super().visit_class(node)

    def visit_method(self, node: MethodIR) -> None:
        with self._nested(node):
            self._check_name(node, node.name, "name")
            self._check_type(node, node.return_type, "return_type")
            for param in node.parameters:
                if not isinstance(param, ParameterIR):
                    self._fail(node, f"parameters must hold Parameter nodes, got {_describe(param)}")
            if not isinstance(node.body, BlockIR):
                self._fail(node, f"body must be a Block, got {_describe(node.body)}")
            super().visit_method(node)

    def visit_parameter(self, node: ParameterIR) -> None:
        with self._nested(node):
            self._check_name(node, node.name, "name")
            self._check_type(node, node.type_tag)

    # === Statements ===

    def visit_block(self, node: BlockIR) -> None:
        with self._nested(node):
            for stmt in node.statements:
                self._check_statement(node, stmt, "statements")
            super().visit_block(node)

    def visit_variable_declaration(self, node: VariableDeclarationIR) -> None:
        with self._nested(node):
            self._check_name(node, node.name, "name")
            self._check_type(node, node.type_tag)
            self._check_expression(node, node.initializer, "initializer", optional=True)
            super().visit_variable_declaration(node)

    def visit_assignment(self, node: AssignmentIR) -> None:
        with self._nested(node):
            self._check_name(node, node.target, "target")
            self._check_expression(node, node.value, "value")
            super().visit_assignment(node)

    def visit_return_statement(self, node: ReturnStatementIR) -> None:
        with self._nested(node):
            self._check_expression(node, node.expression, "expression", optional=True)
            super().visit_return_statement(node)

    def visit_expression_statement(self, node: ExpressionStatementIR) -> None:
        with self._nested(node):
            self._check_expression(node, node.expression, "expression")
            super().visit_expression_statement(node)

    def visit_if_statement(self, node: IfStatementIR) -> None:
        with self._nested(node):
            self._check_expression(node, node.condition, "condition")
            self._check_statement(node, node.then_branch, "then_branch")
            self._check_statement(node, node.else_branch, "else_branch", optional=True)
            super().visit_if_statement(node)

    def visit_while_loop(self, node: WhileLoopIR) -> None:
        with self._nested(node):
            self._check_expression(node, node.condition, "condition")
            self._check_statement(node, node.body, "body")
            super().visit_while_loop(node)

    def visit_for_loop(self, node: ForLoopIR) -> None:
        with self._nested(node):
            for init in node.initializers:
                self._check_statement(node, init, "initializers")
            self._check_expression(node, node.condition, "condition", optional=True)
            for inc in node.incrementors:
                self._check_expression(node, inc, "incrementors")
            self._check_statement(node, node.body, "body")
            super().visit_for_loop(node)

    # === Expressions ===

    def visit_literal(self, node: LiteralIR) -> None:
        with self._nested(node):
            self._check_name(node, node.value, "value")

    def visit_variable(self, node: VariableIR) -> None:
        with self._nested(node):
            self._check_name(node, node.name, "name")

    def visit_binary_op(self, node: BinaryOpIR) -> None:
        with self._nested(node):
            if not isinstance(node.operator, OperationKind) or node.operator.is_unary():
                self._fail(node, f"operator must be a binary operation kind, got {node.operator!r}")
            self._check_expression(node, node.left, "left")
            self._check_expression(node, node.right, "right")
            super().visit_binary_op(node)

    def visit_unary_op(self, node: UnaryOpIR) -> None:
        with self._nested(node):
            if not isinstance(node.operator, OperationKind) or not node.operator.is_unary():
                self._fail(node, f"operator must be a unary operation kind, got {node.operator!r}")
            if not isinstance(node.is_prefix, bool):
                self._fail(node, f"is_prefix must be a bool, got {node.is_prefix!r}")
            self._check_expression(node, node.operand, "operand")
            super().visit_unary_op(node)

    def visit_method_call(self, node: MethodCallIR) -> None:
        with self._nested(node):
            self._check_name(node, node.method_name, "method_name")
            self._check_expression(node, node.target, "target", optional=True)
            for arg in node.arguments:
                self._check_expression(node, arg, "arguments")
            super().visit_method_call(node)


def _describe(value: Optional[object]) -> str:
    if value is None:
        return "nothing"
    if isinstance(value, IRNode):
        return value.node_kind
    return type(value).__name__
