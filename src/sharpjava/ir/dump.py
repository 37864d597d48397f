"""
Indented tree view of an IR, one node per line.

    Program namespace=Demo
      Class Calculator
        Method Calculate -> int
          Block
            VariableDeclaration a: int
              Literal 10: int
"""

from typing import List

from .nodes import (
    IRNode, IRVisitor, ProgramIR, ClassIR, MethodIR, ParameterIR,
    BlockIR, VariableDeclarationIR, AssignmentIR, ExpressionStatementIR,
    ReturnStatementIR, IfStatementIR, WhileLoopIR, ForLoopIR,
    LiteralIR, VariableIR, BinaryOpIR, UnaryOpIR, MethodCallIR,
)


class IRTreePrinter(IRVisitor[List[str]]):
    """Each visit returns the lines of its subtree, already indented by depth."""

    def __init__(self, indent: str = "  "):
        self.indent = indent
        self.depth = 0

    def _line(self, text: str) -> List[str]:
        return [self.indent * self.depth + text]

    def _children(self, *nodes: IRNode, label: str = "") -> List[str]:
        lines: List[str] = []
        self.depth += 1
        if label:
            lines.extend(self._line(label))
            self.depth += 1
        for node in nodes:
            if node is not None:
                lines.extend(node.accept(self))
        if label:
            self.depth -= 1
        self.depth -= 1
        return lines

    def visit_program(self, node: ProgramIR) -> List[str]:
        return self._line(f"Program namespace={node.namespace}") + self._children(*node.classes)

    def visit_class(self, node: ClassIR) -> List[str]:
        return self._line(f"Class {node.name}") + self._children(*node.methods)

    def visit_method(self, node: MethodIR) -> List[str]:
        head = self._line(f"Method {node.name} -> {node.return_type}")
        return head + self._children(*node.parameters, node.body)

    def visit_parameter(self, node: ParameterIR) -> List[str]:
        return self._line(f"Parameter {node.name}: {node.type_tag}")

    def visit_block(self, node: BlockIR) -> List[str]:
        return self._line("Block") + self._children(*node.statements)

    def visit_variable_declaration(self, node: VariableDeclarationIR) -> List[str]:
        return self._line(f"VariableDeclaration {node.name}: {node.type_tag}") + self._children(node.initializer)

    def visit_assignment(self, node: AssignmentIR) -> List[str]:
        return self._line(f"Assignment {node.target}") + self._children(node.value)

    def visit_return_statement(self, node: ReturnStatementIR) -> List[str]:
        return self._line("ReturnStatement") + self._children(node.expression)

    def visit_expression_statement(self, node: ExpressionStatementIR) -> List[str]:
        return self._line("ExpressionStatement") + self._children(node.expression)

    def visit_if_statement(self, node: IfStatementIR) -> List[str]:
        lines = self._line("IfStatement") + self._children(node.condition)
        lines += self._children(node.then_branch, label="then:")
        if node.else_branch is not None:
            lines += self._children(node.else_branch, label="else:")
        return lines

    def visit_while_loop(self, node: WhileLoopIR) -> List[str]:
        return self._line("WhileLoop") + self._children(node.condition, node.body)

    def visit_for_loop(self, node: ForLoopIR) -> List[str]:
        lines = self._line("ForLoop")
        if node.initializers:
            lines += self._children(*node.initializers, label="init:")
        if node.condition is not None:
            lines += self._children(node.condition, label="cond:")
        if node.incrementors:
            lines += self._children(*node.incrementors, label="step:")
        return lines + self._children(node.body)

    def visit_literal(self, node: LiteralIR) -> List[str]:
        return self._line(f"Literal {node.value}: {node.type_tag}")

    def visit_variable(self, node: VariableIR) -> List[str]:
        return self._line(f"Variable {node.name}: {node.type_tag}")

    def visit_binary_op(self, node: BinaryOpIR) -> List[str]:
        head = self._line(f"BinaryOp {node.operator.symbol}: {node.type_tag}")
        return head + self._children(node.left, node.right)

    def visit_unary_op(self, node: UnaryOpIR) -> List[str]:
        fixity = "prefix" if node.is_prefix else "postfix"
        head = self._line(f"UnaryOp {node.operator.symbol} ({fixity}): {node.type_tag}")
        return head + self._children(node.operand)

    def visit_method_call(self, node: MethodCallIR) -> List[str]:
        head = self._line(f"MethodCall {node.method_name}: {node.type_tag}")
        lines = head
        if node.target is not None:
            lines += self._children(node.target, label="target:")
        return lines + self._children(*node.arguments)


def dump_ir(node: IRNode) -> str:
    """Render ``node`` and its subtree as an indented tree."""
    return "\n".join(node.accept(IRTreePrinter()))
