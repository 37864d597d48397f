"""
Shared components: operators, type tags, source locations, diagnostics.
"""

from .source_location import SourceLocation
from .operations import OperationKind, SOURCE_SYMBOLS, JAVA_SYMBOLS
from .errors import (
    Error, ErrorReporter, TranspileError, TranspileSourceError, ParseError,
    IRValidationError, UnsupportedNodeError,
)
