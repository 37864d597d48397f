"""
Parser

C# source text to IR: lark LALR parse, then IRBuilder.
"""

import logging
from pathlib import Path
from typing import Optional

from lark import Lark
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from .ir_builder import IRBuilder
from ..ir.nodes import ProgramIR
from ..shared.errors import ErrorReporter, ParseError
from ..shared.source_location import SourceLocation
from ..utils.config import DEFAULT_PARSER_CACHE_FILE, DEFAULT_SOURCE_NAME

logger = logging.getLogger("sharpjava.frontend.parser")


class Parser:
    """
    Parser for the supported C# subset.

    - Takes source code, returns a ProgramIR with resolved type tags
    - Preserves source locations
    - Wraps lark errors in ParseError
    - Uses Lark parser with caching
    """

    def __init__(self, cache_file: Optional[str] = DEFAULT_PARSER_CACHE_FILE):
        grammar_path = Path(__file__).parent / "grammar.lark"
        self.parser = Lark.open(
            str(grammar_path),
            start='start',
            parser='lalr',              # Required for caching
            cache=cache_file or False,
            propagate_positions=True,   # Enable position tracking for error reporting
            maybe_placeholders=False,
        )

    def parse(self, source: str, source_file: str = DEFAULT_SOURCE_NAME,
              reporter: Optional[ErrorReporter] = None) -> ProgramIR:
        """
        Parse source code to IR.

        Raises:
            ParseError: the text is not in the grammar
            TranspileSourceError: the text parses but uses an unsupported construct
        """
        try:
            tree = self.parser.parse(source)
        except UnexpectedInput as e:
            raise ParseError(_describe(e, source), source_file, _location(e, source_file), source) from e

        logger.debug("parsed %s", source_file)
        return IRBuilder(source_file, source, reporter).visit(tree)


def _describe(error: UnexpectedInput, source: str) -> str:
    if isinstance(error, UnexpectedEOF):
        return "unexpected end of file"
    if isinstance(error, UnexpectedToken):
        if error.token.type == "$END":
            return "unexpected end of file"
        expected = ", ".join(sorted(error.expected)) if error.expected else "nothing"
        return f"unexpected token '{error.token}', expected one of: {expected}"
    if isinstance(error, UnexpectedCharacters):
        return f"unexpected character {source[error.pos_in_stream]!r}"
    return str(error)


def _location(error: UnexpectedInput, source_file: str) -> Optional[SourceLocation]:
    line = getattr(error, "line", None)
    column = getattr(error, "column", None)
    if not isinstance(line, int) or line < 1:
        return None
    return SourceLocation(source_file, line, column if isinstance(column, int) and column > 0 else 1)
