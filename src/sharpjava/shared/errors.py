"""
Error Reporting

Diagnostics are collected in an ErrorReporter and rendered rustc-style:

    error[E0101]: unsupported statement in for-loop initializer
     --> Calc.cs:5:14
      |
    5 |         for (if (x) y = 1; ; ) { }
      |              ^^
      = help: use a declaration or an assignment
"""

import os
import sys
from dataclasses import dataclass
from typing import Optional, List, Dict
from .source_location import SourceLocation
from ..utils.config import COLOR_ENV


# ---------------------------------------------------------------------------
# ANSI color helpers (disabled when NO_COLOR is set or not requested)
# ---------------------------------------------------------------------------

def _use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    explicit = os.environ.get(COLOR_ENV, "").lower()
    if explicit in ("0", "false", "no", "never"):
        return False
    return sys.stderr.isatty()

_BOLD   = "\033[1m"
_RED    = "\033[31m"
_BLUE   = "\033[34m"
_CYAN   = "\033[36m"
_YELLOW = "\033[33m"
_RESET  = "\033[0m"

def _style(text: str, *codes: str, color: bool = True) -> str:
    if not color:
        return text
    prefix = "".join(codes)
    return f"{prefix}{text}{_RESET}" if prefix else text


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

SYNTAX_ERROR = "E0001"
UNSUPPORTED_SYNTAX = "E0002"
UNRESOLVED_NAME = "W0003"
MALFORMED_IR = "E0100"
UNSUPPORTED_NODE = "E0101"
INTERNAL_ERROR = "E9999"


# ---------------------------------------------------------------------------
# Diagnostic dataclass
# ---------------------------------------------------------------------------

@dataclass
class Error:
    """Transpiler diagnostic (error or warning)."""
    message: str
    location: Optional[SourceLocation]
    code: Optional[str] = None
    help: Optional[str] = None
    note: Optional[str] = None
    label: Optional[str] = None
    severity: str = "error"


# ---------------------------------------------------------------------------
# Formatting engine
# ---------------------------------------------------------------------------

def _format_diagnostic(
    error: Error,
    source_files: Dict[str, str],
    color: bool = False,
) -> str:
    """Render a single diagnostic."""
    out: List[str] = []
    head_color = _RED if error.severity == "error" else _YELLOW

    code_str = f"[{error.code}]" if error.code else ""
    out.append(
        _style(f"{error.severity}{code_str}", _BOLD, head_color, color=color)
        + _style(f": {error.message}", _BOLD, color=color)
    )

    if error.location is None:
        out.append(_style(" --> ", _BOLD, _BLUE, color=color) + "<unknown location>")
        _append_annotations(out, error, 1, color)
        return "\n".join(out)

    loc = error.location
    source = source_files.get(loc.file)
    if source is None:
        out.append(
            _style(" --> ", _BOLD, _BLUE, color=color)
            + f"{loc.file}:{loc.line}:{loc.column}"
        )
        _append_annotations(out, error, 1, color)
        return "\n".join(out)

    src_lines = source.split("\n")
    gw = max(len(str(loc.line)), 1)
    idx = loc.line - 1
    code_line = src_lines[idx] if 0 <= idx < len(src_lines) else ""

    out.append(_style(" " * gw + "--> ", _BOLD, _BLUE, color=color) + f"{loc.file}:{loc.line}:{loc.column}")
    out.append(_style(" " * (gw + 1) + "|", _BOLD, _BLUE, color=color))
    out.append(_style(str(loc.line).rjust(gw) + " | ", _BOLD, _BLUE, color=color) + code_line)

    col_start = max(loc.column, 1) - 1
    if loc.end_line == loc.line and loc.end_column > loc.column:
        span_len = loc.end_column - loc.column
    else:
        span_len = _guess_span(code_line, col_start)
    carets = " " * col_start + "^" * max(1, span_len)
    label_suffix = f" {error.label}" if error.label else ""
    out.append(
        _style(" " * (gw + 1) + "| ", _BOLD, _BLUE, color=color)
        + _style(carets + label_suffix, _BOLD, head_color, color=color)
    )

    _append_annotations(out, error, gw, color)
    return "\n".join(out)


def _guess_span(code_line: str, col_start: int) -> int:
    """Guess token length when end_column is unavailable."""
    if col_start >= len(code_line):
        return 1
    length = 0
    for ch in code_line[col_start:]:
        if ch in (" ", "\t", ";", ",", "(", ")", "{", "}"):
            break
        length += 1
    return max(1, length)


def _append_annotations(out: List[str], error: Error, gw: int, color: bool) -> None:
    if not (error.help or error.note):
        return
    out.append(_style(" " * (gw + 1) + "|", _BOLD, _BLUE, color=color))
    pad = " " * (gw + 1)
    if error.help:
        out.append(_style(f"{pad}= ", _BOLD, _CYAN, color=color) + _style("help: ", _BOLD, color=color) + error.help)
    if error.note:
        out.append(_style(f"{pad}= ", _BOLD, _CYAN, color=color) + _style("note: ", _BOLD, color=color) + error.note)


# ---------------------------------------------------------------------------
# ErrorReporter
# ---------------------------------------------------------------------------

class ErrorReporter:
    """Collects diagnostics for one transpilation run."""

    def __init__(self, source_files: Optional[Dict[str, str]] = None):
        self.source_files = source_files if source_files is not None else {}
        self.errors: List[Error] = []
        self.warnings: List[Error] = []

    def report_error(
        self,
        message: str,
        location: Optional[SourceLocation],
        code: Optional[str] = None,
        help: Optional[str] = None,
        note: Optional[str] = None,
        label: Optional[str] = None,
    ) -> None:
        self.errors.append(Error(message, location, code, help, note, label))

    def report_warning(
        self,
        message: str,
        location: Optional[SourceLocation],
        code: Optional[str] = None,
        help: Optional[str] = None,
    ) -> None:
        self.warnings.append(Error(message, location, code, help, severity="warning"))

    def report_exception(self, exc: "TranspileError") -> None:
        """Record a terminal exception as an error diagnostic."""
        self.errors.append(exc.to_error())

    def format_error(self, error: Error, color: Optional[bool] = None) -> str:
        use_color = color if color is not None else _use_color()
        return _format_diagnostic(error, self.source_files, color=use_color)

    def format_all_errors(self, color: Optional[bool] = None) -> str:
        parts = [self.format_error(e, color=color) for e in self.errors]
        use_color = color if color is not None else _use_color()
        count = len(self.errors)
        summary = f"aborting due to {count} previous error{'s' if count != 1 else ''}"
        parts.append(
            _style("error", _BOLD, _RED, color=use_color)
            + _style(f": {summary}", _BOLD, color=use_color)
        )
        return "\n\n".join(parts)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def print_diagnostics(self) -> None:
        color = _use_color()
        for warning in self.warnings:
            print(self.format_error(warning, color=color), file=sys.stderr)
        if self.errors:
            print(self.format_all_errors(color=color), file=sys.stderr)


# ============================================================================
# Exception Classes
# ============================================================================

class TranspileError(Exception):
    """Base exception for all sharpjava errors"""
    error_code = INTERNAL_ERROR

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    def to_error(self) -> Error:
        return Error(message=self.message, location=self.location, code=self.error_code)

    def __str__(self):
        if self.location:
            return f"error[{self.error_code}]: {self.message}\n --> {self.location}"
        return self.message


class TranspileSourceError(TranspileError):
    """
    Error in the user's C# source.

    Use this for syntax errors and for constructs outside the supported subset.
    """
    def __init__(self,
                 message: str,
                 location: Optional[SourceLocation] = None,
                 error_code: str = SYNTAX_ERROR,
                 source_code: Optional[str] = None,
                 help: Optional[str] = None,
                 note: Optional[str] = None):
        super().__init__(message, location)
        self.error_code = error_code
        self.source_code = source_code
        self.help_text = help
        self.note_text = note

    def to_error(self) -> Error:
        return Error(
            message=self.message,
            location=self.location,
            code=self.error_code,
            help=self.help_text,
            note=self.note_text,
        )

    def __str__(self):
        source_files: Dict[str, str] = {}
        if self.source_code and self.location:
            source_files[self.location.file] = self.source_code
        return _format_diagnostic(self.to_error(), source_files, color=False)


class ParseError(TranspileSourceError):
    """Syntax error reported by the parser"""
    def __init__(self, message: str, source_file: str, location: Optional[SourceLocation] = None,
                 source_code: Optional[str] = None):
        super().__init__(message, location, SYNTAX_ERROR, source_code)
        self.source_file = source_file


class IRValidationError(TranspileError):
    """
    Malformed IR handed to the core (missing child, empty type tag, cycle...).

    Indicates a front-end bug, never a user error.
    """
    error_code = MALFORMED_IR

    def __init__(self, message: str, node_kind: str, location: Optional[SourceLocation] = None):
        super().__init__(f"{node_kind}: {message}", location)
        self.node_kind = node_kind


class UnsupportedNodeError(TranspileError):
    """A backend met a construct it has no rendering for."""
    error_code = UNSUPPORTED_NODE

    def __init__(self, node_kind: str, context: str, location: Optional[SourceLocation] = None):
        super().__init__(f"unsupported {node_kind} in {context}", location)
        self.node_kind = node_kind
        self.context = context
