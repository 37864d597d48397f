"""
Source Location (Span)

Rough position of an IR node in the C# input, used for diagnostics.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceLocation:
    """
    Source location.

    - File, line, column (+ optional end line/column when the parser knows them)
    - Immutable (frozen) for hashability
    """
    file: str
    line: int
    column: int
    end_line: int = 0
    end_column: int = 0

    def __str__(self) -> str:
        """Format as file:line:column"""
        return f"{self.file}:{self.line}:{self.column}"
