"""
IR Nodes

Language-neutral tree between the C# front end and the Java backend:

    ProgramIR
      ClassIR*
        MethodIR*  (ParameterIR*, BlockIR body)
          StatementIR*  -> ExpressionIR*

Nodes are write-once: every slot is assigned in ``__init__`` and cannot be
rebound afterwards. Passes that "change" the tree build new nodes.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Iterable, Optional, Tuple, TypeVar
from ..shared.operations import OperationKind
from ..shared.source_location import SourceLocation


T = TypeVar('T')


class IRNode:
    """
    Base class for all IR nodes.

    - Every node has an optional SourceLocation (None for synthesized nodes)
    - Slots are write-once; child sequences are tuples
    - Structural equality and hashing over all slots

    Design: Regular class (not dataclass) to avoid inheritance issues with defaults
    """
    __slots__ = ('location',)

    def __init__(self, location: Optional[SourceLocation] = None):
        self.location = location

    def __setattr__(self, name: str, value: Any) -> None:
        try:
            object.__getattribute__(self, name)
        except AttributeError:
            object.__setattr__(self, name, value)
            return
        raise AttributeError(f"{type(self).__name__}.{name} is read-only; build a new node instead")

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        """Dispatch to the visitor method for this node's variant."""
        raise NotImplementedError(f"accept() not implemented for {self.__class__.__name__}")

    @property
    def node_kind(self) -> str:
        """Variant name without the IR suffix (``IfStatementIR`` -> ``IfStatement``)."""
        name = type(self).__name__
        return name[:-2] if name.endswith("IR") else name

    def _get_all_attributes(self):
        """Get all attribute values for equality/hashing (works with __slots__)."""
        attrs = {}
        for cls in self.__class__.__mro__:
            slots = getattr(cls, '__slots__', ())
            if isinstance(slots, str):
                slots = (slots,)
            for slot in slots:
                if slot not in attrs:
                    attrs[slot] = getattr(self, slot, None)
        return attrs

    def __eq__(self, other):
        if not isinstance(other, self.__class__) or type(other) is not type(self):
            return False
        return self._get_all_attributes() == other._get_all_attributes()

    def __hash__(self):
        return hash((type(self).__name__, tuple(sorted(self._get_all_attributes().items(), key=lambda kv: kv[0]))))

    def __repr__(self) -> str:
        fields = ", ".join(
            f"{k}={v!r}" for k, v in self._get_all_attributes().items() if k != 'location'
        )
        return f"{type(self).__name__}({fields})"


class StatementIR(IRNode):
    """Statement in IR (performs an action, produces no value)."""
    __slots__ = ()


class ExpressionIR(IRNode):
    """
    Expression in IR.

    ``type_tag`` names the static type resolved by the front end ("int",
    "bool", "string", or a class name).
    """
    __slots__ = ('type_tag',)

    def __init__(self, type_tag: str, location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.type_tag = type_tag


def is_known_variant(node: object) -> bool:
    """True for IR nodes whose class dispatches to an IRVisitor method."""
    return isinstance(node, IRNode) and type(node).accept is not IRNode.accept


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

class LiteralIR(ExpressionIR):
    """
    Literal expression.

    The value is kept as source text ("10", "2.5", "\\"hi\\"", "true");
    numeric interpretation is left to consumers such as constant folding.
    """
    __slots__ = ('value',)

    def __init__(self, value: str, type_tag: str, location: Optional[SourceLocation] = None):
        super().__init__(type_tag, location)
        self.value = value

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_literal(self)


class VariableIR(ExpressionIR):
    """Variable reference by name. No binding resolution is performed."""
    __slots__ = ('name',)

    def __init__(self, name: str, type_tag: str, location: Optional[SourceLocation] = None):
        super().__init__(type_tag, location)
        self.name = name

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_variable(self)


class BinaryOpIR(ExpressionIR):
    """Binary operation"""
    __slots__ = ('operator', 'left', 'right')

    def __init__(self, operator: OperationKind, left: ExpressionIR, right: ExpressionIR,
                 type_tag: str, location: Optional[SourceLocation] = None):
        super().__init__(type_tag, location)
        self.operator = operator
        self.left = left
        self.right = right

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_binary_op(self)


class UnaryOpIR(ExpressionIR):
    """Unary operation. ``is_prefix`` distinguishes ``++x`` from ``x++``."""
    __slots__ = ('operator', 'operand', 'is_prefix')

    def __init__(self, operator: OperationKind, operand: ExpressionIR, type_tag: str,
                 is_prefix: bool = True, location: Optional[SourceLocation] = None):
        super().__init__(type_tag, location)
        self.operator = operator
        self.operand = operand
        self.is_prefix = is_prefix

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_unary_op(self)


class MethodCallIR(ExpressionIR):
    """
    Method call. ``target`` is None for same-class or static calls
    (``Foo(x)``), otherwise the receiver expression (``obj.Foo(x)``).
    """
    __slots__ = ('method_name', 'arguments', 'target')

    def __init__(self, method_name: str, arguments: Iterable[ExpressionIR], type_tag: str,
                 target: Optional[ExpressionIR] = None, location: Optional[SourceLocation] = None):
        super().__init__(type_tag, location)
        self.method_name = method_name
        self.arguments: Tuple[ExpressionIR, ...] = tuple(arguments)
        self.target = target

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_method_call(self)


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

class BlockIR(StatementIR):
    """Brace-delimited statement sequence (method body, branch, loop body)."""
    __slots__ = ('statements',)

    def __init__(self, statements: Iterable[StatementIR] = (), location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.statements: Tuple[StatementIR, ...] = tuple(statements)

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_block(self)


class VariableDeclarationIR(StatementIR):
    """Local variable declaration with optional initializer"""
    __slots__ = ('name', 'type_tag', 'initializer')

    def __init__(self, name: str, type_tag: str, initializer: Optional[ExpressionIR] = None,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.name = name
        self.type_tag = type_tag
        self.initializer = initializer

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_variable_declaration(self)


class AssignmentIR(StatementIR):
    """Assignment to a named variable"""
    __slots__ = ('target', 'value')

    def __init__(self, target: str, value: ExpressionIR, location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.target = target
        self.value = value

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_assignment(self)


class ExpressionStatementIR(StatementIR):
    """Expression evaluated for its effect (call, increment)"""
    __slots__ = ('expression',)

    def __init__(self, expression: ExpressionIR, location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.expression = expression

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_expression_statement(self)


class ReturnStatementIR(StatementIR):
    """Return with optional value"""
    __slots__ = ('expression',)

    def __init__(self, expression: Optional[ExpressionIR] = None, location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.expression = expression

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_return_statement(self)


class IfStatementIR(StatementIR):
    """
    If statement. An ``else if`` chain is an IfStatementIR stored in
    ``else_branch``; there is no separate elif node.
    """
    __slots__ = ('condition', 'then_branch', 'else_branch')

    def __init__(self, condition: ExpressionIR, then_branch: StatementIR,
                 else_branch: Optional[StatementIR] = None, location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.condition = condition
        self.then_branch = then_branch
        self.else_branch = else_branch

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_if_statement(self)


class WhileLoopIR(StatementIR):
    """While loop"""
    __slots__ = ('condition', 'body')

    def __init__(self, condition: ExpressionIR, body: StatementIR, location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.condition = condition
        self.body = body

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_while_loop(self)


class ForLoopIR(StatementIR):
    """C-style for loop: initializers; condition; incrementors"""
    __slots__ = ('initializers', 'condition', 'incrementors', 'body')

    def __init__(self, initializers: Iterable[StatementIR], condition: Optional[ExpressionIR],
                 incrementors: Iterable[ExpressionIR], body: StatementIR,
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.initializers: Tuple[StatementIR, ...] = tuple(initializers)
        self.condition = condition
        self.incrementors: Tuple[ExpressionIR, ...] = tuple(incrementors)
        self.body = body

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_for_loop(self)


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------

class ParameterIR(IRNode):
    """Method parameter (no default values)"""
    __slots__ = ('name', 'type_tag')

    def __init__(self, name: str, type_tag: str, location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.name = name
        self.type_tag = type_tag

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_parameter(self)


class MethodIR(IRNode):
    """Method definition. Overloads are not modeled."""
    __slots__ = ('name', 'return_type', 'parameters', 'body')

    def __init__(self, name: str, return_type: str, parameters: Iterable[ParameterIR],
                 body: BlockIR, location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.name = name
        self.return_type = return_type
        self.parameters: Tuple[ParameterIR, ...] = tuple(parameters)
        self.body = body

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_method(self)


class ClassIR(IRNode):
    """Class with methods. No fields, inheritance or nesting."""
    __slots__ = ('name', 'methods')

    def __init__(self, name: str, methods: Iterable[MethodIR] = (), location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.name = name
        self.methods: Tuple[MethodIR, ...] = tuple(methods)

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_class(self)


class ProgramIR(IRNode):
    """
    Complete program in IR (root). ``namespace`` is "" when the source
    declared none.
    """
    __slots__ = ('classes', 'namespace')

    def __init__(self, classes: Iterable[ClassIR] = (), namespace: str = "",
                 location: Optional[SourceLocation] = None):
        super().__init__(location)
        self.classes: Tuple[ClassIR, ...] = tuple(classes)
        self.namespace = namespace

    def accept(self, visitor: 'IRVisitor[T]') -> 'T':
        return visitor.visit_program(self)


class IRVisitor(ABC, Generic[T]):
    """
    Visitor for IR nodes (no isinstance needed).

    One method per concrete variant; a subclass that misses one cannot be
    instantiated.
    """

    @abstractmethod
    def visit_program(self, node: ProgramIR) -> T:
        """Visit program (root)"""
        raise NotImplementedError

    @abstractmethod
    def visit_class(self, node: ClassIR) -> T:
        """Visit class declaration"""
        raise NotImplementedError

    @abstractmethod
    def visit_method(self, node: MethodIR) -> T:
        """Visit method declaration"""
        raise NotImplementedError

    @abstractmethod
    def visit_parameter(self, node: ParameterIR) -> T:
        """Visit method parameter"""
        raise NotImplementedError

    @abstractmethod
    def visit_block(self, node: BlockIR) -> T:
        """Visit block of statements"""
        raise NotImplementedError

    @abstractmethod
    def visit_variable_declaration(self, node: VariableDeclarationIR) -> T:
        """Visit variable declaration"""
        raise NotImplementedError

    @abstractmethod
    def visit_assignment(self, node: AssignmentIR) -> T:
        """Visit assignment"""
        raise NotImplementedError

    @abstractmethod
    def visit_return_statement(self, node: ReturnStatementIR) -> T:
        """Visit return statement"""
        raise NotImplementedError

    @abstractmethod
    def visit_expression_statement(self, node: ExpressionStatementIR) -> T:
        """Visit expression statement"""
        raise NotImplementedError

    @abstractmethod
    def visit_if_statement(self, node: IfStatementIR) -> T:
        """Visit if/else statement"""
        raise NotImplementedError

    @abstractmethod
    def visit_while_loop(self, node: WhileLoopIR) -> T:
        """Visit while loop"""
        raise NotImplementedError

    @abstractmethod
    def visit_for_loop(self, node: ForLoopIR) -> T:
        """Visit for loop"""
        raise NotImplementedError

    @abstractmethod
    def visit_literal(self, node: LiteralIR) -> T:
        """Visit literal expression"""
        raise NotImplementedError

    @abstractmethod
    def visit_variable(self, node: VariableIR) -> T:
        """Visit variable reference"""
        raise NotImplementedError

    @abstractmethod
    def visit_binary_op(self, node: BinaryOpIR) -> T:
        """Visit binary operation"""
        raise NotImplementedError

    @abstractmethod
    def visit_unary_op(self, node: UnaryOpIR) -> T:
        """Visit unary operation"""
        raise NotImplementedError

    @abstractmethod
    def visit_method_call(self, node: MethodCallIR) -> T:
        """Visit method call"""
        raise NotImplementedError


class IRWalker(IRVisitor[None]):
    """
    Read-only traversal visiting children in declaration order.

    Subclasses override the hooks they care about and call ``super()`` to
    keep descending. Nodes of a class without its own ``accept`` (see
    ``is_known_variant``) are stepped over rather than entered.
    """

    def _descend(self, node: Optional[IRNode]) -> None:
        if node is not None and is_known_variant(node):
            node.accept(self)

    def visit_program(self, node: ProgramIR) -> None:
        for cls in node.classes:
            self._descend(cls)

    def visit_class(self, node: ClassIR) -> None:
        for method in node.methods:
            self._descend(method)

    def visit_method(self, node: MethodIR) -> None:
        for param in node.parameters:
            self._descend(param)
        self._descend(node.body)

    def visit_parameter(self, node: ParameterIR) -> None:
        pass

    def visit_block(self, node: BlockIR) -> None:
        for stmt in node.statements:
            self._descend(stmt)

    def visit_variable_declaration(self, node: VariableDeclarationIR) -> None:
        self._descend(node.initializer)

    def visit_assignment(self, node: AssignmentIR) -> None:
        self._descend(node.value)

    def visit_return_statement(self, node: ReturnStatementIR) -> None:
        self._descend(node.expression)

    def visit_expression_statement(self, node: ExpressionStatementIR) -> None:
        self._descend(node.expression)

    def visit_if_statement(self, node: IfStatementIR) -> None:
        self._descend(node.condition)
        self._descend(node.then_branch)
        self._descend(node.else_branch)

    def visit_while_loop(self, node: WhileLoopIR) -> None:
        self._descend(node.condition)
        self._descend(node.body)

    def visit_for_loop(self, node: ForLoopIR) -> None:
        for init in node.initializers:
            self._descend(init)
        self._descend(node.condition)
        for inc in node.incrementors:
            self._descend(inc)
        self._descend(node.body)

    def visit_literal(self, node: LiteralIR) -> None:
        pass

    def visit_variable(self, node: VariableIR) -> None:
        pass

    def visit_binary_op(self, node: BinaryOpIR) -> None:
        self._descend(node.left)
        self._descend(node.right)

    def visit_unary_op(self, node: UnaryOpIR) -> None:
        self._descend(node.operand)

    def visit_method_call(self, node: MethodCallIR) -> None:
        self._descend(node.target)
        for arg in node.arguments:
            self._descend(arg)
