"""
Operation kinds

Closed enumeration of every operator the IR can carry, together with the
symbol each one is spelled with. The source and target languages share the
same spelling for this operator set, so the Java table is the identity of the
source table.
"""

from enum import Enum
from typing import Dict


class OperationKind(Enum):
    """Operators - compile-time checked enum"""
    # Arithmetic
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    MODULO = "modulo"

    # Comparison
    EQUAL = "equal"
    NOT_EQUAL = "not-equal"
    GREATER = "greater"
    LESS = "less"
    GREATER_EQUAL = "greater-equal"
    LESS_EQUAL = "less-equal"

    # Logical
    LOGICAL_AND = "and"
    LOGICAL_OR = "or"

    # Unary
    UNARY_PLUS = "plus"
    UNARY_MINUS = "minus"
    LOGICAL_NOT = "not"
    PRE_INCREMENT = "pre-increment"
    POST_INCREMENT = "post-increment"
    PRE_DECREMENT = "pre-decrement"
    POST_DECREMENT = "post-decrement"

    @property
    def symbol(self) -> str:
        return SOURCE_SYMBOLS[self]

    def is_arithmetic(self) -> bool:
        return self in _ARITHMETIC

    def is_comparison(self) -> bool:
        return self in _COMPARISON

    def is_logical(self) -> bool:
        return self in (OperationKind.LOGICAL_AND, OperationKind.LOGICAL_OR)

    def is_unary(self) -> bool:
        return self in _UNARY

    def has_side_effect(self) -> bool:
        """Increment/decrement mutate their operand."""
        return self in _MUTATING


_ARITHMETIC = frozenset({
    OperationKind.ADD, OperationKind.SUBTRACT, OperationKind.MULTIPLY,
    OperationKind.DIVIDE, OperationKind.MODULO,
})

_COMPARISON = frozenset({
    OperationKind.EQUAL, OperationKind.NOT_EQUAL, OperationKind.GREATER,
    OperationKind.LESS, OperationKind.GREATER_EQUAL, OperationKind.LESS_EQUAL,
})

_MUTATING = frozenset({
    OperationKind.PRE_INCREMENT, OperationKind.POST_INCREMENT,
    OperationKind.PRE_DECREMENT, OperationKind.POST_DECREMENT,
})

_UNARY = frozenset({
    OperationKind.UNARY_PLUS, OperationKind.UNARY_MINUS, OperationKind.LOGICAL_NOT,
}) | _MUTATING


SOURCE_SYMBOLS: Dict[OperationKind, str] = {
    OperationKind.ADD: "+",
    OperationKind.SUBTRACT: "-",
    OperationKind.MULTIPLY: "*",
    OperationKind.DIVIDE: "/",
    OperationKind.MODULO: "%",
    OperationKind.EQUAL: "==",
    OperationKind.NOT_EQUAL: "!=",
    OperationKind.GREATER: ">",
    OperationKind.LESS: "<",
    OperationKind.GREATER_EQUAL: ">=",
    OperationKind.LESS_EQUAL: "<=",
    OperationKind.LOGICAL_AND: "&&",
    OperationKind.LOGICAL_OR: "||",
    OperationKind.UNARY_PLUS: "+",
    OperationKind.UNARY_MINUS: "-",
    OperationKind.LOGICAL_NOT: "!",
    OperationKind.PRE_INCREMENT: "++",
    OperationKind.POST_INCREMENT: "++",
    OperationKind.PRE_DECREMENT: "--",
    OperationKind.POST_DECREMENT: "--",
}

# Java spells this operator subset exactly like C#.
JAVA_SYMBOLS: Dict[OperationKind, str] = dict(SOURCE_SYMBOLS)

# Compound assignment operator -> arithmetic kind (front-end desugaring)
COMPOUND_ASSIGNMENTS: Dict[str, OperationKind] = {
    "+=": OperationKind.ADD,
    "-=": OperationKind.SUBTRACT,
    "*=": OperationKind.MULTIPLY,
    "/=": OperationKind.DIVIDE,
    "%=": OperationKind.MODULO,
}
