"""
Transpiler Driver

Orchestrates one run:

1. Parsing (C# source -> IR), skipped when IR is supplied directly
2. IR validation
3. Constant folding (optional)
4. Java emission
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..backends.base import Backend
from ..backends.java import JavaBackend
from ..ir.nodes import ProgramIR
from ..passes.base import PassContext, PassManager
from ..passes.const_folding import ConstFoldingPass
from ..passes.ir_validation import IRValidationPass
from ..shared.errors import TranspileError, INTERNAL_ERROR
from ..utils.config import DEFAULT_SOURCE_NAME
from ..utils.io_utils import read_source_file, write_output_file

logger = logging.getLogger("sharpjava.compiler.driver")


class CompilationResult:
    """Compilation result"""
    def __init__(
        self,
        ir: Optional[ProgramIR] = None,
        ctx: Optional[PassContext] = None,
        success: bool = False,
        output: Optional[str] = None,
    ):
        self.ir = ir
        self.ctx = ctx
        self.success = success
        self.output = output

    def has_errors(self) -> bool:
        """True if compilation reported errors."""
        if self.ctx and self.ctx.reporter:
            return self.ctx.reporter.has_errors()
        return not self.success

    def get_errors(self) -> list:
        """Formatted error report, empty when the run succeeded."""
        if self.ctx and self.ctx.reporter and self.ctx.reporter.has_errors():
            return [self.ctx.reporter.format_all_errors(color=False)]
        return []

    @property
    def fold_count(self) -> int:
        """Number of folds performed (0 when folding did not run)."""
        if self.ctx is not None and self.ctx.has_analysis(ConstFoldingPass):
            return self.ctx.get_analysis(ConstFoldingPass)
        return 0


class TranspilerDriver:
    """
    Transpiler driver.

    Args:
        optimize: Run constant folding before emission
        validate: Run structural IR validation before any other pass
        strict: Reject constructs the backend cannot render (see JavaBackend)
        backend: Backend to emit with (default: JavaBackend(strict=strict))
    """

    def __init__(self, optimize: bool = True, validate: bool = True, strict: bool = True,
                 backend: Optional[Backend] = None):
        self.optimize = optimize
        self.validate = validate
        self.backend = backend if backend is not None else JavaBackend(strict=strict)
        # The backend decides what it can render; the passes follow its strictness
        self.strict = getattr(self.backend, "strict", strict)
        self._parser = None
        self.pass_manager = PassManager()
        self._register_passes()

    def _register_passes(self) -> None:
        """Register passes; registration order is execution order."""
        if self.validate:
            self.pass_manager.register_pass(IRValidationPass)
        if self.optimize:
            self.pass_manager.register_pass(ConstFoldingPass)

    @property
    def parser(self):
        # Built on first use: IR-only runs never load the grammar
        if self._parser is None:
            from ..frontend.parser import Parser
            self._parser = Parser()
        return self._parser

    def compile(self, source: str, source_file: str = DEFAULT_SOURCE_NAME) -> CompilationResult:
        """C# source text to Java text."""
        ctx = PassContext()
        ctx.add_source(source_file, source)
        try:
            ir = self.parser.parse(source, source_file, reporter=ctx.reporter)
        except TranspileError as e:
            ctx.reporter.report_exception(e)
            return CompilationResult(ctx=ctx, success=False)
        except RecursionError:
            ctx.reporter.report_error("source nests too deeply to parse", None, code=INTERNAL_ERROR)
            return CompilationResult(ctx=ctx, success=False)
        return self._run(ir, ctx)

    def compile_ir(self, program: ProgramIR, ctx: Optional[PassContext] = None) -> CompilationResult:
        """Run the passes and the backend over an already-built IR."""
        return self._run(program, ctx if ctx is not None else PassContext())

    def _run(self, ir: ProgramIR, ctx: PassContext) -> CompilationResult:
        ctx.strict = self.strict
        try:
            ir = self.pass_manager.run_all(ir, ctx)
            output = self.backend.codegen(ir, reporter=ctx.reporter)
        except TranspileError as e:
            ctx.reporter.report_exception(e)
            return CompilationResult(ir=ir, ctx=ctx, success=False)
        return CompilationResult(ir=ir, ctx=ctx, success=True, output=output)

    def compile_path(self, path: Union[str, Path], from_ir: bool = False) -> CompilationResult:
        """Transpile one file (C# source, or serialized IR with ``from_ir``) without writing."""
        source = read_source_file(path)
        if not from_ir:
            return self.compile(source, str(path))

        from ..ir.serialization import deserialize_ir
        ctx = PassContext()
        ctx.add_source(str(path), source)
        try:
            program = deserialize_ir(source)
        except TranspileError as e:
            ctx.reporter.report_exception(e)
            return CompilationResult(ctx=ctx, success=False)
        return self.compile_ir(program, ctx)

    def compile_file(self, path: Union[str, Path], output_path: Optional[Union[str, Path]] = None,
                     from_ir: bool = False) -> CompilationResult:
        """
        Transpile one file and write the result.

        The output goes to ``output_path`` or, by default, next to the input
        with the backend's extension.
        """
        result = self.compile_path(path, from_ir=from_ir)
        if result.success:
            target = Path(output_path) if output_path else self.backend.output_path(path)
            write_output_file(target, result.output)
            logger.info("wrote %s", target)
        return result


def transpile(source: str, source_file: str = DEFAULT_SOURCE_NAME, optimize: bool = True) -> str:
    """
    C# source to Java source in one call.

    Raises the first reported error as a TranspileError.
    """
    result = TranspilerDriver(optimize=optimize).compile(source, source_file)
    if not result.success:
        errors = result.ctx.reporter.errors
        first = errors[0] if errors else None
        raise TranspileError(first.message if first else "transpilation failed",
                             first.location if first else None)
    return result.output
