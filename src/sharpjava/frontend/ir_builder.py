"""
Parse tree to IR

Walks the lark parse tree top-down (lark ``Interpreter``) so that scopes
can be opened before a body is visited and closed after it. Every
expression leaves here with its static type tag resolved:

- locals and parameters from a per-method scope stack
- same-class calls from a per-class method table (collected up front, so
  calls may precede the callee's declaration)
- arithmetic via numeric promotion (double > float > long > int),
  ``string + x`` is ``string``, comparisons and logicals are ``bool``
- anything unresolvable is tagged ``object`` and reported as a warning
"""

import logging
from typing import Dict, List, Optional, Union

from lark import Token, Tree
from lark.visitors import Interpreter

from ..ir.nodes import (
    ExpressionIR, StatementIR, ProgramIR, ClassIR, MethodIR, ParameterIR,
    BlockIR, VariableDeclarationIR, AssignmentIR, ExpressionStatementIR,
    ReturnStatementIR, IfStatementIR, WhileLoopIR, ForLoopIR,
    LiteralIR, VariableIR, BinaryOpIR, UnaryOpIR, MethodCallIR,
)
from ..shared import types
from ..shared.errors import ErrorReporter, TranspileSourceError, UNSUPPORTED_SYNTAX, UNRESOLVED_NAME
from ..shared.operations import OperationKind, COMPOUND_ASSIGNMENTS
from ..shared.source_location import SourceLocation
from ..utils.config import DEFAULT_SOURCE_NAME, UNKNOWN_TYPE

logger = logging.getLogger("sharpjava.frontend.ir_builder")

BINARY_OPERATORS: Dict[str, OperationKind] = {
    "+": OperationKind.ADD,
    "-": OperationKind.SUBTRACT,
    "*": OperationKind.MULTIPLY,
    "/": OperationKind.DIVIDE,
    "%": OperationKind.MODULO,
    "==": OperationKind.EQUAL,
    "!=": OperationKind.NOT_EQUAL,
    ">": OperationKind.GREATER,
    "<": OperationKind.LESS,
    ">=": OperationKind.GREATER_EQUAL,
    "<=": OperationKind.LESS_EQUAL,
    "&&": OperationKind.LOGICAL_AND,
    "||": OperationKind.LOGICAL_OR,
}

# Return types of the framework calls the subset commonly uses
KNOWN_CALLS: Dict[str, str] = {
    "Console.WriteLine": types.VOID,
    "Console.Write": types.VOID,
    "Console.ReadLine": types.STRING,
    "Math.Sqrt": types.DOUBLE,
    "Math.Pow": types.DOUBLE,
    "Math.Floor": types.DOUBLE,
    "Math.Ceiling": types.DOUBLE,
    "Math.Round": types.DOUBLE,
}

# Math.Abs/Max/Min return the promoted type of their arguments
_ARGUMENT_TYPED_CALLS = frozenset({"Math.Abs", "Math.Max", "Math.Min"})


class IRBuilder(Interpreter):
    """
    Builds a ProgramIR from a parse tree of ``grammar.lark``.

    One builder per source file; not reusable across files.
    """

    def __init__(self, source_file: str = DEFAULT_SOURCE_NAME, source_code: Optional[str] = None,
                 reporter: Optional[ErrorReporter] = None):
        super().__init__()
        self.source_file = source_file
        self.source_code = source_code
        self.reporter = reporter
        self._scopes: List[Dict[str, str]] = []
        self._methods: Dict[str, str] = {}
        self._class_name: Optional[str] = None

    # === Helpers ===

    def _loc(self, item: Union[Tree, Token, None]) -> Optional[SourceLocation]:
        if isinstance(item, Token):
            if item.line is None:
                return None
            return SourceLocation(self.source_file, item.line, item.column,
                                  item.end_line or 0, item.end_column or 0)
        if isinstance(item, Tree) and not item.meta.empty:
            meta = item.meta
            return SourceLocation(self.source_file, meta.line, meta.column,
                                  meta.end_line, meta.end_column)
        return None

    def _unsupported(self, what: str, item, help: Optional[str] = None):
        raise TranspileSourceError(
            f"{what} is not supported",
            self._loc(item),
            error_code=UNSUPPORTED_SYNTAX,
            source_code=self.source_code,
            help=help,
        )

    def _warn(self, message: str, item) -> None:
        logger.warning("%s (%s)", message, self._loc(item) or self.source_file)
        if self.reporter is not None:
            self.reporter.report_warning(message, self._loc(item), code=UNRESOLVED_NAME)

    def _declare(self, name: str, type_tag: str) -> None:
        self._scopes[-1][name] = type_tag

    def _lookup(self, name: str) -> Optional[str]:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        return None

    def _push(self) -> None:
        self._scopes.append({})

    def _pop(self) -> None:
        self._scopes.pop()

    def _trees(self, tree: Tree, data: Optional[str] = None) -> List[Tree]:
        return [c for c in tree.children if isinstance(c, Tree) and (data is None or c.data == data)]

    # === Compilation unit ===

    def start(self, tree: Tree) -> ProgramIR:
        namespace = ""
        classes: List[ClassIR] = []
        for child in self._trees(tree):
            if child.data in ("namespace_block", "file_namespace"):
                namespace = self.visit(child.children[0])
                classes.extend(self.visit(c) for c in self._trees(child, "class_decl"))
            elif child.data == "class_decl":
                classes.append(self.visit(child))
        return ProgramIR(classes, namespace=namespace, location=self._loc(tree))

    def qualified_name(self, tree: Tree) -> str:
        return ".".join(str(tok) for tok in tree.children)

    def class_decl(self, tree: Tree) -> ClassIR:
        name_tok = tree.children[0]
        method_trees = self._trees(tree, "method_decl")
        self._class_name = str(name_tok)
        # Collected first so calls can precede the callee
        self._methods = {}
        for method in method_trees:
            self._methods[str(method.children[1])] = self.visit(method.children[0])
        methods = [self.visit(m) for m in method_trees]
        return ClassIR(str(name_tok), methods, location=self._loc(tree))

    def method_decl(self, tree: Tree) -> MethodIR:
        return_type = self.visit(tree.children[0])
        name_tok = tree.children[1]
        param_lists = self._trees(tree, "param_list")
        body_tree = tree.children[-1]

        self._push()
        try:
            params = self.visit(param_lists[0]) if param_lists else []
            body = self._block_body(body_tree)
        finally:
            self._pop()
        return MethodIR(str(name_tok), return_type, params, body, location=self._loc(tree))

    def param_list(self, tree: Tree) -> List[ParameterIR]:
        return [self.visit(p) for p in tree.children]

    def param(self, tree: Tree) -> ParameterIR:
        type_tag = self.visit(tree.children[0])
        name = str(tree.children[1])
        self._declare(name, type_tag)
        return ParameterIR(name, type_tag, location=self._loc(tree))

    def type_ref(self, tree: Tree) -> str:
        if self._trees(tree, "array_rank"):
            self._unsupported("array type", tree, help="only scalar and class types can be transpiled")
        return str(tree.children[0])

    # === Statements ===

    def _block_body(self, tree: Tree) -> BlockIR:
        """Statements of a block in the current scope (the caller owns the scope)."""
        statements: List[StatementIR] = []
        for child in tree.children:
            result = self.visit(child)
            if isinstance(result, list):
                statements.extend(result)
            elif result is not None:
                statements.append(result)
        return BlockIR(statements, location=self._loc(tree))

    def block(self, tree: Tree) -> BlockIR:
        self._push()
        try:
            return self._block_body(tree)
        finally:
            self._pop()

    def _as_statement(self, tree: Tree) -> StatementIR:
        """Body of if/while/for: a lone declaration expands to a block."""
        result = self.visit(tree)
        if isinstance(result, list):
            return BlockIR(result, location=self._loc(tree))
        if result is None:
            return BlockIR([], location=self._loc(tree))
        return result

    def empty_stmt(self, tree: Tree) -> None:
        return None

    def local_decl(self, tree: Tree) -> List[VariableDeclarationIR]:
        """``int a = 1, b;`` expands to one declaration per declarator."""
        declared = self.visit(tree.children[0])
        decls = []
        for declarator in tree.children[1:]:
            name = str(declarator.children[0])
            init = self.visit(declarator.children[1]) if len(declarator.children) > 1 else None
            type_tag = declared
            if declared == "var":
                if init is None:
                    self._unsupported("implicitly typed variable without initializer", declarator)
                type_tag = init.type_tag
            self._declare(name, type_tag)
            decls.append(VariableDeclarationIR(name, type_tag, init, location=self._loc(declarator)))
        return decls

    def assign_stmt(self, tree: Tree) -> AssignmentIR:
        """Plain and compound assignment; ``x += e`` becomes ``x = (x + e)``."""
        target_tok, op_tree, value_tree = tree.children
        target = str(target_tok)
        value = self.visit(value_tree)
        op = str(op_tree.children[0])
        if op != "=":
            kind = COMPOUND_ASSIGNMENTS[op]
            current = self._variable(target_tok)
            value = BinaryOpIR(kind, current, value, self._binary_type(kind, current, value),
                               location=self._loc(tree))
        elif self._lookup(target) is None:
            self._warn(f"assignment to undeclared name '{target}'", target_tok)
        return AssignmentIR(target, value, location=self._loc(tree))

    def expr_stmt(self, tree: Tree) -> ExpressionStatementIR:
        return ExpressionStatementIR(self.visit(tree.children[0]), location=self._loc(tree))

    def return_stmt(self, tree: Tree) -> ReturnStatementIR:
        expr = self.visit(tree.children[0]) if tree.children else None
        return ReturnStatementIR(expr, location=self._loc(tree))

    def if_stmt(self, tree: Tree) -> IfStatementIR:
        condition = self.visit(tree.children[0])
        then_branch = self._as_statement(tree.children[1])
        else_branch = self._as_statement(tree.children[2]) if len(tree.children) > 2 else None
        return IfStatementIR(condition, then_branch, else_branch, location=self._loc(tree))

    def while_stmt(self, tree: Tree) -> WhileLoopIR:
        condition = self.visit(tree.children[0])
        return WhileLoopIR(condition, self._as_statement(tree.children[1]), location=self._loc(tree))

    def for_stmt(self, tree: Tree) -> ForLoopIR:
        init_tree, cond_tree, iter_tree, body_tree = tree.children
        self._push()
        try:
            initializers: List[StatementIR] = []
            for item in init_tree.children:
                result = self.visit(item)
                initializers.extend(result if isinstance(result, list) else [result])
            condition = self.visit(cond_tree.children[0]) if cond_tree.children else None
            incrementors = [self._for_iterator(item) for item in iter_tree.children]
            body = self._as_statement(body_tree)
        finally:
            self._pop()
        return ForLoopIR(initializers, condition, incrementors, body, location=self._loc(tree))

    def _for_iterator(self, item: Tree) -> ExpressionIR:
        if item.data == "assign_stmt":
            self._unsupported("assignment in a for-loop iterator", item,
                              help="use an increment (i++) or move the assignment into the loop body")
        return self.visit(item.children[0])

    # === Expressions ===

    def _binary_type(self, kind: OperationKind, left: ExpressionIR, right: ExpressionIR) -> str:
        if kind.is_comparison() or kind.is_logical():
            return types.BOOL
        if kind == OperationKind.ADD and types.STRING in (left.type_tag, right.type_tag):
            return types.STRING
        promoted = types.promote_numeric(left.type_tag, right.type_tag)
        if promoted is not None:
            return promoted
        return left.type_tag if left.type_tag == right.type_tag else UNKNOWN_TYPE

    def _binary_chain(self, tree: Tree) -> ExpressionIR:
        """``a op b op c`` folds left: ``((a op b) op c)``."""
        children = tree.children
        result = self.visit(children[0])
        for i in range(1, len(children), 2):
            op_tok = children[i]
            right = self.visit(children[i + 1])
            kind = BINARY_OPERATORS[str(op_tok)]
            if result.location is not None and right.location is not None:
                location = SourceLocation(self.source_file, result.location.line, result.location.column,
                                          right.location.end_line, right.location.end_column)
            else:
                location = self._loc(op_tok)
            result = BinaryOpIR(kind, result, right, self._binary_type(kind, result, right), location=location)
        return result

    or_expr = and_expr = eq_expr = rel_expr = add_expr = mul_expr = _binary_chain

    def sign_op(self, tree: Tree) -> UnaryOpIR:
        op_tok, operand_tree = tree.children
        operand = self.visit(operand_tree)
        kind = OperationKind.UNARY_MINUS if str(op_tok) == "-" else OperationKind.UNARY_PLUS
        return UnaryOpIR(kind, operand, types.promote_unary(operand.type_tag), location=self._loc(tree))

    def not_op(self, tree: Tree) -> UnaryOpIR:
        operand = self.visit(tree.children[1])
        return UnaryOpIR(OperationKind.LOGICAL_NOT, operand, types.BOOL, location=self._loc(tree))

    def pre_incdec(self, tree: Tree) -> UnaryOpIR:
        op_tok, operand_tree = tree.children
        operand = self.visit(operand_tree)
        kind = OperationKind.PRE_INCREMENT if str(op_tok) == "++" else OperationKind.PRE_DECREMENT
        return UnaryOpIR(kind, operand, operand.type_tag, is_prefix=True, location=self._loc(tree))

    def post_incdec(self, tree: Tree) -> UnaryOpIR:
        operand_tree, op_tok = tree.children
        operand = self.visit(operand_tree)
        kind = OperationKind.POST_INCREMENT if str(op_tok) == "++" else OperationKind.POST_DECREMENT
        return UnaryOpIR(kind, operand, operand.type_tag, is_prefix=False, location=self._loc(tree))

    def _variable(self, name_tok: Token) -> VariableIR:
        name = str(name_tok)
        type_tag = self._lookup(name)
        if type_tag is None:
            self._warn(f"cannot resolve the type of '{name}'", name_tok)
            type_tag = UNKNOWN_TYPE
        return VariableIR(name, type_tag, location=self._loc(name_tok))

    def var(self, tree: Tree) -> VariableIR:
        return self._variable(tree.children[0])

    def _arguments(self, tree: Tree) -> List[ExpressionIR]:
        args = self._trees(tree, "args")
        return [self.visit(a) for a in args[0].children] if args else []

    def call(self, tree: Tree) -> MethodCallIR:
        name_tok = tree.children[0]
        name = str(name_tok)
        arguments = self._arguments(tree)
        type_tag = self._methods.get(name)
        if type_tag is None:
            self._warn(f"cannot resolve method '{name}' in class '{self._class_name}'", name_tok)
            type_tag = UNKNOWN_TYPE
        return MethodCallIR(name, arguments, type_tag, location=self._loc(tree))

    def member_call(self, tree: Tree) -> MethodCallIR:
        target_tree, name_tok = tree.children[0], tree.children[1]
        if isinstance(target_tree, Tree) and target_tree.data == "var" \
                and self._lookup(str(target_tree.children[0])) is None:
            # Unknown bare name as a receiver: a type reference (Console.WriteLine)
            type_name = str(target_tree.children[0])
            target = VariableIR(type_name, type_name, location=self._loc(target_tree))
        else:
            target = self.visit(target_tree)
        arguments = self._arguments(tree)
        qualified = f"{target.name}.{name_tok}" if isinstance(target, VariableIR) else str(name_tok)
        if qualified in _ARGUMENT_TYPED_CALLS and arguments:
            type_tag = arguments[0].type_tag
            for arg in arguments[1:]:
                type_tag = types.promote_numeric(type_tag, arg.type_tag) or type_tag
        else:
            type_tag = KNOWN_CALLS.get(qualified)
        if type_tag is None:
            logger.debug("no return type known for %s; using %s", qualified, UNKNOWN_TYPE)
            type_tag = UNKNOWN_TYPE
        return MethodCallIR(str(name_tok), arguments, type_tag, target=target, location=self._loc(tree))

    def member_access(self, tree: Tree):
        self._unsupported("member access without a call", tree,
                          help="fields and properties have no IR form; call a method instead")

    def literal(self, tree: Tree) -> LiteralIR:
        tok = tree.children[0]
        text = str(tok)
        return LiteralIR(text, _literal_type(tok.type, text), location=self._loc(tok))


def _literal_type(token_type: str, text: str) -> str:
    if token_type == "INT_LIT":
        body = text.lower()
        if body.startswith("0x"):
            body = body[2:]
        suffix = body.lstrip("0123456789abcdef_")
        if "u" in suffix and "l" in suffix:
            return "ulong"
        if "l" in suffix:
            return types.LONG
        if "u" in suffix:
            return "uint"
        return types.INT
    if token_type == "REAL_LIT":
        suffix = text[-1].lower()
        if suffix == "f":
            return types.FLOAT
        if suffix == "m":
            return types.DECIMAL
        return types.DOUBLE
    if token_type == "STRING":
        return types.STRING
    if token_type == "CHAR_LIT":
        return types.CHAR
    if token_type in ("TRUE", "FALSE"):
        return types.BOOL
    return types.NULL
