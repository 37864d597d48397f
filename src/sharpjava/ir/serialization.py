"""
IR Serialization to S-Expressions
====================================

Converts IR to a canonical S-expression format and back, for golden tests,
``--emit-ir`` dumps, and for feeding IR produced by another front end to the
CLI (``--from-ir``).

    (program "Demo"
      (class "Calculator"
        (method "Calculate" "int" ()
          (block
            (declare "a" "int" (literal "10" "int"))
            (return (binary-op add (variable "a" "int") (literal "5" "int") "int"))))))

Names, type tags and literal texts are quoted strings; node tags and
operators are symbols; an absent optional child is ``()``. With
``include_location`` every node ends with ``:loc ("file" line column)``.

Uses structured sexpr (nested lists + sexpdata.Symbol),
then pretty-prints for readable output.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import sexpdata

from .nodes import (
    IRNode, IRVisitor, ProgramIR, ClassIR, MethodIR, ParameterIR,
    BlockIR, VariableDeclarationIR, AssignmentIR, ExpressionStatementIR,
    ReturnStatementIR, IfStatementIR, WhileLoopIR, ForLoopIR,
    LiteralIR, VariableIR, BinaryOpIR, UnaryOpIR, MethodCallIR,
)
from ..shared.errors import IRValidationError
from ..shared.operations import OperationKind
from ..shared.source_location import SourceLocation
from ..utils.config import DEFAULT_FILE_ENCODING

logger = logging.getLogger("sharpjava.ir.serialization")

_LOC_KEY = ":loc"


def _pretty_dumps(sexpr: Any, indent: int = 0, indent_str: str = "  ", max_line: int = 100) -> str:
    """
    Pretty-print structured sexpr. Keeps short forms on one line; breaks only when needed.
    """
    if isinstance(sexpr, list):
        if not sexpr:
            return "()"
        parts = [_pretty_dumps(e, indent + 1, indent_str, max_line) for e in sexpr]
        one_line = "(" + " ".join(parts) + ")"
        if len(one_line) + len(indent_str) * indent <= max_line and "\n" not in one_line:
            return one_line
        next_prefix = indent_str * (indent + 1)
        # Head symbol and scalar fields stay on the opening line
        head = [parts[0]]
        rest_start = 1
        while rest_start < len(sexpr) and not isinstance(sexpr[rest_start], list):
            head.append(parts[rest_start])
            rest_start += 1
        rest = "\n".join(next_prefix + p for p in parts[rest_start:])
        return "(" + " ".join(head) + ("\n" + rest if rest else "") + ")"
    return sexpdata.dumps(sexpr)


def serialize_ir(node: IRNode, include_location: bool = False, pretty: bool = True) -> str:
    """
    Serialize IR node to S-expression string.

    Args:
        node: IR node to serialize (any node, not only programs)
        include_location: Append ``:loc`` metadata to nodes that carry one
        pretty: Use pretty-printed format (default True). Set False for compact single-line.
    """
    sexpr = node.accept(IRSerializer(include_location=include_location))
    if pretty:
        return _pretty_dumps(sexpr)
    return sexpdata.dumps(sexpr)


class IRSerializer(IRVisitor[list]):
    """IR to structured S-expression (nested lists with sexpdata.Symbol keywords)."""

    def __init__(self, include_location: bool = False):
        self.include_location = include_location

    def _sym(self, s: str) -> sexpdata.Symbol:
        return sexpdata.Symbol(s)

    def _opt(self, node: Optional[IRNode]) -> list:
        return [] if node is None else node.accept(self)

    def _finish(self, node: IRNode, core: list) -> list:
        if self.include_location and node.location is not None:
            loc = node.location
            core.extend([self._sym(_LOC_KEY), [loc.file, loc.line, loc.column]])
        return core

    # === Structure ===

    def visit_program(self, node: ProgramIR) -> list:
        core = [self._sym("program"), node.namespace]
        core.extend(c.accept(self) for c in node.classes)
        return self._finish(node, core)

    def visit_class(self, node: ClassIR) -> list:
        core = [self._sym("class"), node.name]
        core.extend(m.accept(self) for m in node.methods)
        return self._finish(node, core)

    def visit_method(self, node: MethodIR) -> list:
        params = [p.accept(self) for p in node.parameters]
        core = [self._sym("method"), node.name, node.return_type, params, node.body.accept(self)]
        return self._finish(node, core)

    def visit_parameter(self, node: ParameterIR) -> list:
        return self._finish(node, [self._sym("param"), node.name, node.type_tag])

    # === Statements ===

    def visit_block(self, node: BlockIR) -> list:
        core = [self._sym("block")]
        core.extend(s.accept(self) for s in node.statements)
        return self._finish(node, core)

    def visit_variable_declaration(self, node: VariableDeclarationIR) -> list:
        core = [self._sym("declare"), node.name, node.type_tag, self._opt(node.initializer)]
        return self._finish(node, core)

    def visit_assignment(self, node: AssignmentIR) -> list:
        return self._finish(node, [self._sym("assign"), node.target, node.value.accept(self)])

    def visit_return_statement(self, node: ReturnStatementIR) -> list:
        return self._finish(node, [self._sym("return"), self._opt(node.expression)])

    def visit_expression_statement(self, node: ExpressionStatementIR) -> list:
        return self._finish(node, [self._sym("expr-stmt"), node.expression.accept(self)])

    def visit_if_statement(self, node: IfStatementIR) -> list:
        core = [self._sym("if"), node.condition.accept(self), node.then_branch.accept(self),
                self._opt(node.else_branch)]
        return self._finish(node, core)

    def visit_while_loop(self, node: WhileLoopIR) -> list:
        return self._finish(node, [self._sym("while"), node.condition.accept(self), node.body.accept(self)])

    def visit_for_loop(self, node: ForLoopIR) -> list:
        core = [
            self._sym("for"),
            [i.accept(self) for i in node.initializers],
            self._opt(node.condition),
            [i.accept(self) for i in node.incrementors],
            node.body.accept(self),
        ]
        return self._finish(node, core)

    # === Expressions ===

    def visit_literal(self, node: LiteralIR) -> list:
        return self._finish(node, [self._sym("literal"), node.value, node.type_tag])

    def visit_variable(self, node: VariableIR) -> list:
        return self._finish(node, [self._sym("variable"), node.name, node.type_tag])

    def visit_binary_op(self, node: BinaryOpIR) -> list:
        core = [self._sym("binary-op"), self._sym(node.operator.value),
                node.left.accept(self), node.right.accept(self), node.type_tag]
        return self._finish(node, core)

    def visit_unary_op(self, node: UnaryOpIR) -> list:
        fixity = self._sym("prefix" if node.is_prefix else "postfix")
        core = [self._sym("unary-op"), self._sym(node.operator.value), node.operand.accept(self),
                node.type_tag, fixity]
        return self._finish(node, core)

    def visit_method_call(self, node: MethodCallIR) -> list:
        core = [self._sym("method-call"), node.method_name, node.type_tag, self._opt(node.target),
                [a.accept(self) for a in node.arguments]]
        return self._finish(node, core)


# ---------------------------------------------------------------------------
# Deserialization
# ---------------------------------------------------------------------------

def _sym_val(x: Any) -> str:
    if isinstance(x, sexpdata.Symbol):
        return x.value()
    raise TypeError(f"expected a symbol, got {x!r}")


def _text(x: Any) -> str:
    if not isinstance(x, str) or isinstance(x, sexpdata.Symbol):
        raise TypeError(f"expected a quoted string, got {x!r}")
    return x


def _split_location(tail: list) -> Tuple[list, Optional[SourceLocation]]:
    """Strip a trailing ``:loc (file line col)`` pair."""
    if len(tail) >= 2 and isinstance(tail[-2], sexpdata.Symbol) and tail[-2].value() == _LOC_KEY:
        raw = tail[-1]
        try:
            loc = SourceLocation(file=_text(raw[0]), line=int(raw[1]), column=int(raw[2]))
        except (TypeError, ValueError, IndexError) as e:
            raise IRValidationError(f"bad location {raw!r}", "Location") from e
        return tail[:-2], loc
    return tail, None


class IRDeserializer:
    """S-expression (as read by ``sexpdata.loads``) back to IR nodes."""

    def deserialize(self, sexpr: Any) -> Optional[IRNode]:
        if not isinstance(sexpr, list):
            raise IRValidationError(f"expected a node form, got {sexpr!r}", "S-expression")
        if not sexpr:
            return None
        if not isinstance(sexpr[0], sexpdata.Symbol):
            raise IRValidationError(f"expected a node tag, got {sexpr[0]!r}", "S-expression")
        tag = sexpr[0].value()
        method = getattr(self, f"_deserialize_{tag.replace('-', '_')}", None)
        if method is None:
            raise IRValidationError(f"unknown node tag '{tag}'", "S-expression")
        tail, location = _split_location(list(sexpr[1:]))
        try:
            return method(tail, location)
        except (IndexError, TypeError, ValueError) as e:
            raise IRValidationError(f"malformed '{tag}' form: {e}", tag) from e

    def _many(self, items: Any) -> List[Any]:
        if not isinstance(items, list):
            raise TypeError(f"expected a list, got {items!r}")
        return [self.deserialize(i) for i in items]

    def _operator(self, raw: Any) -> OperationKind:
        return OperationKind(_sym_val(raw))

    # === Structure ===

    def _deserialize_program(self, tail: list, loc) -> ProgramIR:
        return ProgramIR([self.deserialize(c) for c in tail[1:]], namespace=_text(tail[0]), location=loc)

    def _deserialize_class(self, tail: list, loc) -> ClassIR:
        return ClassIR(_text(tail[0]), [self.deserialize(m) for m in tail[1:]], location=loc)

    def _deserialize_method(self, tail: list, loc) -> MethodIR:
        name, return_type, params, body = tail
        return MethodIR(_text(name), _text(return_type), self._many(params), self.deserialize(body), location=loc)

    def _deserialize_param(self, tail: list, loc) -> ParameterIR:
        name, type_tag = tail
        return ParameterIR(_text(name), _text(type_tag), location=loc)

    # === Statements ===

    def _deserialize_block(self, tail: list, loc) -> BlockIR:
        return BlockIR([self.deserialize(s) for s in tail], location=loc)

    def _deserialize_declare(self, tail: list, loc) -> VariableDeclarationIR:
        name, type_tag, init = tail
        return VariableDeclarationIR(_text(name), _text(type_tag), self.deserialize(init), location=loc)

    def _deserialize_assign(self, tail: list, loc) -> AssignmentIR:
        target, value = tail
        return AssignmentIR(_text(target), self.deserialize(value), location=loc)

    def _deserialize_return(self, tail: list, loc) -> ReturnStatementIR:
        (expr,) = tail
        return ReturnStatementIR(self.deserialize(expr), location=loc)

    def _deserialize_expr_stmt(self, tail: list, loc) -> ExpressionStatementIR:
        (expr,) = tail
        return ExpressionStatementIR(self.deserialize(expr), location=loc)

    def _deserialize_if(self, tail: list, loc) -> IfStatementIR:
        cond, then_branch, else_branch = tail
        return IfStatementIR(self.deserialize(cond), self.deserialize(then_branch),
                             self.deserialize(else_branch), location=loc)

    def _deserialize_while(self, tail: list, loc) -> WhileLoopIR:
        cond, body = tail
        return WhileLoopIR(self.deserialize(cond), self.deserialize(body), location=loc)

    def _deserialize_for(self, tail: list, loc) -> ForLoopIR:
        inits, cond, incs, body = tail
        return ForLoopIR(self._many(inits), self.deserialize(cond), self._many(incs),
                         self.deserialize(body), location=loc)

    # === Expressions ===

    def _deserialize_literal(self, tail: list, loc) -> LiteralIR:
        value, type_tag = tail
        return LiteralIR(_text(value), _text(type_tag), location=loc)

    def _deserialize_variable(self, tail: list, loc) -> VariableIR:
        name, type_tag = tail
        return VariableIR(_text(name), _text(type_tag), location=loc)

    def _deserialize_binary_op(self, tail: list, loc) -> BinaryOpIR:
        op, left, right, type_tag = tail
        return BinaryOpIR(self._operator(op), self.deserialize(left), self.deserialize(right),
                          _text(type_tag), location=loc)

    def _deserialize_unary_op(self, tail: list, loc) -> UnaryOpIR:
        op, operand, type_tag, fixity = tail
        return UnaryOpIR(self._operator(op), self.deserialize(operand), _text(type_tag),
                         is_prefix=_sym_val(fixity) == "prefix", location=loc)

    def _deserialize_method_call(self, tail: list, loc) -> MethodCallIR:
        name, type_tag, target, args = tail
        return MethodCallIR(_text(name), self._many(args), _text(type_tag),
                            target=self.deserialize(target), location=loc)


def deserialize_ir(sexpr_str: str) -> IRNode:
    """
    Deserialize S-expression string to IR node.
    """
    try:
        parsed = sexpdata.loads(sexpr_str)
    except Exception as e:
        # sexpdata raises assorted exception types (including AssertionError) on bad input
        raise IRValidationError(f"not a well-formed S-expression: {e}", "S-expression") from e
    node = IRDeserializer().deserialize(parsed)
    if node is None:
        raise IRValidationError("empty S-expression", "S-expression")
    return node


def load_ir(filepath: Union[str, Path]) -> IRNode:
    """
    Load and deserialize IR from file.
    """
    logger.debug("loading IR from %s", filepath)
    return deserialize_ir(Path(filepath).read_text(encoding=DEFAULT_FILE_ENCODING))


def save_ir(node: IRNode, filepath: Union[str, Path], include_location: bool = False) -> None:
    """
    Serialize IR node and save to file.
    """
    Path(filepath).write_text(serialize_ir(node, include_location=include_location),
                              encoding=DEFAULT_FILE_ENCODING)
