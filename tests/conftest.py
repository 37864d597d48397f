"""
Pytest configuration and shared fixtures for all sharpjava tests.

The parser is the only expensive object (grammar load + LALR tables), so one
instance is shared by the whole session. Drivers, backends and passes hold no
per-run state and are safe to share as well.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from sharpjava.backends.java import JavaBackend
from sharpjava.compiler.driver import TranspilerDriver
from sharpjava.frontend.parser import Parser
from sharpjava.ir.nodes import ProgramIR, VariableDeclarationIR, ReturnStatementIR
from sharpjava.shared.operations import OperationKind
from tests.test_utils import CALCULATOR_SOURCE, lit, var, binop, program_with_body


# =============================================================================
# Session-scoped fixtures
# =============================================================================

@pytest.fixture(scope="session")
def parser():
    """Session-scoped parser; no on-disk cache so tests never touch the temp dir."""
    return Parser(cache_file=None)


@pytest.fixture(scope="session")
def driver(parser):
    """Default driver (validation + folding, strict backend) sharing the session parser."""
    d = TranspilerDriver()
    d._parser = parser
    return d


@pytest.fixture(scope="session")
def backend():
    return JavaBackend()


# =============================================================================
# Helper fixtures
# =============================================================================

@pytest.fixture
def parse(parser):
    """Parse C# text with the session parser."""
    def _parse(source: str, source_file: str = "Test.cs", reporter=None) -> ProgramIR:
        return parser.parse(source, source_file, reporter=reporter)
    return _parse


@pytest.fixture
def calculator_ir() -> ProgramIR:
    """The Calculator program built directly as IR."""
    return program_with_body(
        VariableDeclarationIR("a", "int", lit("10")),
        VariableDeclarationIR("b", "int", lit("5")),
        ReturnStatementIR(binop(OperationKind.ADD, var("a"), var("b"))),
    )


@pytest.fixture
def calculator_source() -> str:
    return CALCULATOR_SOURCE


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers for test organization."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "frontend: marks tests that go through the C# parser"
    )
