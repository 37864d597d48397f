"""
Type tags

Expressions carry their static type as a plain string tag (``"int"``,
``"bool"``...). This module names the semantic primitives the front end
produces and the numeric promotion rule it applies.
"""

from typing import Optional

INT = "int"
LONG = "long"
FLOAT = "float"
DOUBLE = "double"
DECIMAL = "decimal"
BOOL = "bool"
STRING = "string"
CHAR = "char"
VOID = "void"
NULL = "null"

# Narrow integral types promote to int in arithmetic
_INT_LIKE = frozenset({"byte", "sbyte", "short", "ushort", CHAR, INT})

# Wider wins: double > float > long > int
_NUMERIC_RANK = {INT: 0, "uint": 1, LONG: 2, "ulong": 3, FLOAT: 4, DOUBLE: 5, DECIMAL: 6}


def is_numeric(type_tag: str) -> bool:
    return type_tag in _INT_LIKE or type_tag in _NUMERIC_RANK


def promote_numeric(left: str, right: str) -> Optional[str]:
    """
    Result type of an arithmetic operation over two numeric operands.

    Returns None when either side is not numeric.
    """
    if not (is_numeric(left) and is_numeric(right)):
        return None
    left = INT if left in _INT_LIKE else left
    right = INT if right in _INT_LIKE else right
    return left if _NUMERIC_RANK[left] >= _NUMERIC_RANK[right] else right


def promote_unary(operand: str) -> str:
    """Unary +/- promote narrow integral operands to int."""
    return INT if operand in _INT_LIKE else operand
