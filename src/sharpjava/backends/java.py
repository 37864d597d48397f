"""
Java Backend

Renders IR as Java source. Emission is a pure function of the tree: each
JavaCodeGenerator is immutable and carries its nesting depth in an
EmitContext; nested bodies are rendered by a fresh generator one level
deeper. Statement visits return complete lines (each ending in a newline),
expression visits return inline text.

    package demo;

    public class Calculator {
        public int Calculate() {
            int a = 10;
            return (a + 5);
        }

    }
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .base import Backend
from ..ir.nodes import (
    IRNode, IRVisitor, StatementIR, is_known_variant, ProgramIR, ClassIR, MethodIR, ParameterIR,
    BlockIR, VariableDeclarationIR, AssignmentIR, ExpressionStatementIR,
    ReturnStatementIR, IfStatementIR, WhileLoopIR, ForLoopIR,
    LiteralIR, VariableIR, BinaryOpIR, UnaryOpIR, MethodCallIR,
)
from ..shared.errors import ErrorReporter, UnsupportedNodeError, UNSUPPORTED_NODE
from ..shared.operations import JAVA_SYMBOLS
from ..utils.config import INDENT_UNIT, TARGET_FILE_EXTENSION, DEFAULT_OUTPUT_NAME

logger = logging.getLogger("sharpjava.backends.java")

# Semantic primitives only; anything else is taken as a class name
JAVA_TYPES: Dict[str, str] = {
    "int": "int",
    "double": "double",
    "float": "float",
    "long": "long",
    "void": "void",
    "string": "String",
    "bool": "boolean",
}


def map_type(type_tag: str) -> str:
    """Java spelling of a type tag."""
    return JAVA_TYPES.get(type_tag, type_tag)


@dataclass(frozen=True)
class EmitContext:
    """Emission state threaded through recursive rendering."""
    depth: int = 0
    indent_unit: str = INDENT_UNIT

    @property
    def indent(self) -> str:
        return self.indent_unit * self.depth

    def deeper(self) -> "EmitContext":
        return EmitContext(self.depth + 1, self.indent_unit)


class JavaBackend(Backend):
    """
    Java code generation backend.

    Args:
        strict: Raise UnsupportedNodeError on constructs with no Java rendering.
            When False, emit a ``/* unsupported: Kind */`` placeholder and
            record a warning in ``reporter`` instead.
        reporter: Receives the warnings of non-strict runs.
        indent_unit: Text of one indentation level.
    """

    file_extension = TARGET_FILE_EXTENSION
    default_output_name = DEFAULT_OUTPUT_NAME

    def __init__(self, strict: bool = True, reporter: Optional[ErrorReporter] = None,
                 indent_unit: str = INDENT_UNIT):
        self.strict = strict
        self.reporter = reporter
        self.indent_unit = indent_unit

    def codegen(self, program: ProgramIR, reporter: Optional[ErrorReporter] = None) -> str:
        generator = JavaCodeGenerator(
            EmitContext(0, self.indent_unit),
            strict=self.strict,
            reporter=reporter if reporter is not None else self.reporter,
        )
        text = program.accept(generator)
        logger.debug("generated %d line(s) of Java", text.count("\n"))
        return text


class JavaCodeGenerator(IRVisitor[str]):
    """
    IR to Java text. Never mutated after construction.
    """

    def __init__(self, context: Optional[EmitContext] = None, strict: bool = True,
                 reporter: Optional[ErrorReporter] = None):
        self.context = context if context is not None else EmitContext()
        self.strict = strict
        self.reporter = reporter

    def _nested(self) -> "JavaCodeGenerator":
        return JavaCodeGenerator(self.context.deeper(), self.strict, self.reporter)

    def _line(self, text: str = "") -> str:
        # Blank lines carry no indentation
        if not text:
            return "\n"
        return f"{self.context.indent}{text}\n"

    def _statement(self, node: StatementIR, context: str) -> str:
        if not isinstance(node, StatementIR) or not is_known_variant(node):
            return self._line(self._unsupported(node, context))
        return node.accept(self)

    def _expression(self, node, context: str) -> str:
        if not is_known_variant(node):
            return self._unsupported(node, context)
        return node.accept(self)

    def _unsupported(self, node, context: str) -> str:
        """Reject, or in lenient mode stub out, a construct Java output has no form for."""
        kind = node.node_kind if isinstance(node, IRNode) else type(node).__name__
        location = getattr(node, "location", None)
        if self.strict:
            raise UnsupportedNodeError(kind, context, location)
        logger.warning("emitting placeholder for unsupported %s in %s", kind, context)
        if self.reporter is not None:
            self.reporter.report_warning(f"unsupported {kind} in {context}; emitted a placeholder",
                                         location, code=UNSUPPORTED_NODE)
        return f"/* unsupported: {kind} */"

    def _statements(self, block: BlockIR) -> str:
        """Statements of ``block`` at this generator's depth, without braces."""
        return "".join(self._statement(stmt, "block") for stmt in block.statements)

    def _control(self, header: str, body: StatementIR, context: str) -> str:
        """Header line plus a braced block body, or a single indented statement."""
        inner = self._nested()
        if isinstance(body, BlockIR):
            return self._line(f"{header} {{") + inner._statements(body) + self._line("}")
        return self._line(header) + inner._statement(body, context)

    # === Structure ===

    def visit_program(self, node: ProgramIR) -> str:
        parts: List[str] = []
        if node.namespace:
            parts.append(self._line(f"package {node.namespace.lower()};"))
            parts.append(self._line())
        parts.extend(cls.accept(self) for cls in node.classes)
        return "".join(parts)

    def visit_class(self, node: ClassIR) -> str:
        inner = self._nested()
        parts = [self._line(f"public class {node.name} {{")]
        for method in node.methods:
            parts.append(method.accept(inner))
            parts.append(self._line())
        parts.append(self._line("}"))
        return "".join(parts)

    def visit_method(self, node: MethodIR) -> str:
        params = ", ".join(p.accept(self) for p in node.parameters)
        header = f"public {map_type(node.return_type)} {node.name}({params}) {{"
        return self._line(header) + self._nested()._statements(node.body) + self._line("}")

    def visit_parameter(self, node: ParameterIR) -> str:
        return f"{map_type(node.type_tag)} {node.name}"

    # === Statements ===

    def visit_block(self, node: BlockIR) -> str:
        # A block nested directly in another block keeps its own scope
        return self._line("{") + self._nested()._statements(node) + self._line("}")

    def visit_variable_declaration(self, node: VariableDeclarationIR) -> str:
        return self._line(self._declarator(node, with_type=True) + ";")

    def visit_assignment(self, node: AssignmentIR) -> str:
        return self._line(self._assignment(node) + ";")

    def visit_return_statement(self, node: ReturnStatementIR) -> str:
        if node.expression is None:
            return self._line("return;")
        return self._line(f"return {self._expression(node.expression, 'return')};")

    def visit_expression_statement(self, node: ExpressionStatementIR) -> str:
        return self._line(f"{self._expression(node.expression, 'expression statement')};")

    def visit_if_statement(self, node: IfStatementIR) -> str:
        return self._if_chain(node, "if")

    def _if_chain(self, node: IfStatementIR, keyword: str) -> str:
        condition = self._expression(node.condition, "if condition")
        text = self._control(f"{keyword} ({condition})", node.then_branch, "if body")
        else_branch = node.else_branch
        if else_branch is None:
            return text
        if isinstance(else_branch, IfStatementIR):
            return text + self._if_chain(else_branch, "else if")
        return text + self._control("else", else_branch, "else body")

    def visit_while_loop(self, node: WhileLoopIR) -> str:
        condition = self._expression(node.condition, "while condition")
        return self._control(f"while ({condition})", node.body, "while body")

    def visit_for_loop(self, node: ForLoopIR) -> str:
        inits = self._for_initializers(node.initializers)
        cond = self._expression(node.condition, "for condition") if node.condition is not None else ""
        incs = ", ".join(self._expression(inc, "for incrementor") for inc in node.incrementors)
        header = f"for ({inits};{' ' + cond if cond else ''};{' ' + incs if incs else ''})"
        return self._control(header, node.body, "for body")

    def _for_initializers(self, initializers: Sequence[StatementIR]) -> str:
        """
        Render for-loop initializers inline, without terminators.

        Consecutive declarations of one type share a single type keyword
        (``int i = 0, j = 10``), the only multi-declaration form Java accepts.
        """
        parts: List[str] = []
        previous_type: Optional[str] = None
        for init in initializers:
            if isinstance(init, VariableDeclarationIR):
                if init.type_tag == previous_type:
                    parts[-1] += ", " + self._declarator(init, with_type=False)
                else:
                    parts.append(self._declarator(init, with_type=True))
                previous_type = init.type_tag
                continue
            previous_type = None
            if isinstance(init, AssignmentIR):
                parts.append(self._assignment(init))
            elif isinstance(init, ExpressionStatementIR):
                parts.append(self._expression(init.expression, "for-loop initializer"))
            else:
                parts.append(self._unsupported(init, "for-loop initializer"))
        return ", ".join(parts)

    def _declarator(self, node: VariableDeclarationIR, with_type: bool) -> str:
        text = f"{map_type(node.type_tag)} {node.name}" if with_type else node.name
        if node.initializer is not None:
            text += f" = {self._expression(node.initializer, 'initializer')}"
        return text

    def _assignment(self, node: AssignmentIR) -> str:
        return f"{node.target} = {self._expression(node.value, 'assignment')}"

    # === Expressions ===

    def visit_literal(self, node: LiteralIR) -> str:
        return node.value

    def visit_variable(self, node: VariableIR) -> str:
        return node.name

    def visit_binary_op(self, node: BinaryOpIR) -> str:
        left = self._expression(node.left, "binary operand")
        right = self._expression(node.right, "binary operand")
        return f"({left} {JAVA_SYMBOLS[node.operator]} {right})"

    def visit_unary_op(self, node: UnaryOpIR) -> str:
        operand = self._expression(node.operand, "unary operand")
        symbol = JAVA_SYMBOLS[node.operator]
        if not node.is_prefix:
            return f"{operand}{symbol}"
        if operand[:1] in ("+", "-"):
            # "-" then "-x" must not read as "--x"
            operand = f"({operand})"
        return f"{symbol}{operand}"

    def visit_method_call(self, node: MethodCallIR) -> str:
        args = ", ".join(self._expression(arg, "call argument") for arg in node.arguments)
        prefix = f"{self._expression(node.target, 'call target')}." if node.target is not None else ""
        return f"{prefix}{node.method_name}({args})"


def generate_java(program: ProgramIR, strict: bool = True) -> str:
    """Convenience wrapper: render ``program`` with a default JavaBackend."""
    return JavaBackend(strict=strict).codegen(program)
