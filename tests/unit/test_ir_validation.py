"""
Tests for structural IR validation and the pass manager.
"""

import pytest

from sharpjava.ir.nodes import (
    StatementIR, ExpressionIR, ProgramIR, ClassIR, MethodIR, ParameterIR,
    BlockIR, VariableDeclarationIR, AssignmentIR, ExpressionStatementIR,
    ReturnStatementIR, IfStatementIR, WhileLoopIR, ForLoopIR,
    LiteralIR, VariableIR, BinaryOpIR, UnaryOpIR, MethodCallIR,
)
from sharpjava.passes.base import BasePass, PassContext, PassManager
from sharpjava.passes.const_folding import ConstFoldingPass
from sharpjava.passes.ir_validation import IRValidationPass
from sharpjava.shared.errors import IRValidationError, UnsupportedNodeError, MALFORMED_IR
from sharpjava.shared.operations import OperationKind
from sharpjava.shared.source_location import SourceLocation
from tests.test_utils import lit, var, binop, unop, program_with_body


def _validate(program, max_depth=None, strict=True):
    validation = IRValidationPass() if max_depth is None else IRValidationPass(max_depth=max_depth)
    ctx = PassContext(strict=strict)
    return validation.run(program, ctx), ctx


class TestWellFormed:

    def test_calculator_passes_unchanged(self, calculator_ir):
        result, ctx = _validate(calculator_ir)
        assert result is calculator_ir
        assert ctx.get_analysis(IRValidationPass) > 0

    def test_every_statement_kind(self):
        program = program_with_body(
            VariableDeclarationIR("i", "int"),
            AssignmentIR("i", lit("1")),
            ExpressionStatementIR(MethodCallIR("Tick", [var("i")], "void")),
            IfStatementIR(var("c", "bool"), ReturnStatementIR(lit("1")), BlockIR()),
            WhileLoopIR(var("c", "bool"), BlockIR()),
            ForLoopIR([VariableDeclarationIR("j", "int", lit("0"))], None,
                      [unop(OperationKind.POST_INCREMENT, var("j"), is_prefix=False)], BlockIR()),
            ReturnStatementIR(var("i")),
        )
        _validate(program)

    def test_node_count(self):
        program = program_with_body(ReturnStatementIR(lit("1")))
        _, ctx = _validate(program)
        # program, class, method, block, return, literal
        assert ctx.get_analysis(IRValidationPass) == 6


class TestMalformed:

    @pytest.mark.parametrize("program,fragment", [
        (ProgramIR([ClassIR("")]), "name must be a non-empty string"),
        (program_with_body(VariableDeclarationIR("x", "")), "type_tag must be a non-empty string"),
        (program_with_body(ReturnStatementIR(LiteralIR("1", ""))), "type_tag"),
        (program_with_body(AssignmentIR("x", None)), "value must be an expression, got nothing"),
        (program_with_body(IfStatementIR(var("c", "bool"), None)), "then_branch must be a statement"),
        (program_with_body(WhileLoopIR(var("c", "bool"), lit("1"))), "body must be a statement, got Literal"),
        (program_with_body(ExpressionStatementIR(BlockIR())), "expression must be an expression, got Block"),
        (program_with_body(ForLoopIR([lit("0")], None, [], BlockIR())), "initializers must be a statement"),
        (program_with_body(ForLoopIR([], None, [AssignmentIR("i", lit("1"))], BlockIR())),
         "incrementors must be an expression"),
        (program_with_body(ReturnStatementIR(
            BinaryOpIR(OperationKind.UNARY_MINUS, lit("1"), lit("2"), "int"))), "binary operation kind"),
        (program_with_body(ReturnStatementIR(
            UnaryOpIR(OperationKind.ADD, lit("1"), "int"))), "unary operation kind"),
        (program_with_body(ReturnStatementIR(
            UnaryOpIR(OperationKind.UNARY_MINUS, lit("1"), "int", is_prefix=None))), "is_prefix must be a bool"),
        (program_with_body(ReturnStatementIR(MethodCallIR("", [], "int"))), "method_name"),
        (program_with_body(ReturnStatementIR(MethodCallIR("f", [BlockIR()], "int"))), "arguments"),
        (ProgramIR([ClassIR("C", [MethodIR("m", "void", [], ReturnStatementIR())])]), "body must be a Block"),
        (ProgramIR([ClassIR("C", [MethodIR("m", "void", [lit("1")], BlockIR())])]), "Parameter nodes"),
        (ProgramIR([MethodIR("m", "void", [], BlockIR())]), "Class nodes"),
        (ProgramIR([ClassIR("C", [ParameterIR("p", "int")])]), "Method nodes"),
        (ProgramIR([], namespace=None), "namespace must be a string"),
    ])
    def test_rejected(self, program, fragment):
        with pytest.raises(IRValidationError) as exc_info:
            _validate(program)
        assert fragment in exc_info.value.message
        assert exc_info.value.error_code == MALFORMED_IR

    def test_root_must_be_program(self):
        with pytest.raises(IRValidationError, match="Program at the root"):
            _validate(ClassIR("C"))

    def test_error_names_kind_and_location(self):
        loc = SourceLocation("Calc.cs", 9, 5)
        program = program_with_body(AssignmentIR("", lit("1"), location=loc))
        with pytest.raises(IRValidationError) as exc_info:
            _validate(program)
        assert exc_info.value.node_kind == "Assignment"
        assert exc_info.value.location == loc


class TestNestingBound:

    def _deep_expression(self, depth):
        expr = lit("1")
        for _ in range(depth):
            expr = binop(OperationKind.ADD, expr, lit("1"))
        return program_with_body(ReturnStatementIR(expr))

    def test_within_bound(self):
        _validate(self._deep_expression(20), max_depth=50)

    def test_too_deep(self):
        with pytest.raises(IRValidationError, match="nesting deeper than 50"):
            _validate(self._deep_expression(100), max_depth=50)


class _CustomStatementIR(StatementIR):
    __slots__ = ()


class _CustomExpressionIR(ExpressionIR):
    __slots__ = ()


class TestUnknownVariants:

    def test_strict_rejects_unknown_statement(self):
        loc = SourceLocation("Calc.cs", 4, 9)
        program = program_with_body(_CustomStatementIR(location=loc))
        with pytest.raises(UnsupportedNodeError) as exc_info:
            _validate(program)
        assert exc_info.value.node_kind == "_CustomStatement"
        assert exc_info.value.context == "Block statements"
        assert exc_info.value.location == loc

    def test_strict_rejects_unknown_expression(self):
        program = program_with_body(ReturnStatementIR(unop(OperationKind.UNARY_MINUS, _CustomExpressionIR("int"))))
        with pytest.raises(UnsupportedNodeError, match="_CustomExpression in UnaryOp operand"):
            _validate(program)

    def test_lenient_passes_unknown_nodes_through(self):
        program = program_with_body(
            _CustomStatementIR(),
            ReturnStatementIR(binop(OperationKind.ADD, var("a"), _CustomExpressionIR(""))),
        )
        result, ctx = _validate(program, strict=False)
        assert result is program
        # program, class, method, block, return, binary op, variable
        assert ctx.get_analysis(IRValidationPass) == 7

    def test_lenient_still_checks_known_nodes(self):
        program = program_with_body(_CustomStatementIR(), AssignmentIR("", lit("1")))
        with pytest.raises(IRValidationError, match="target must be a non-empty string"):
            _validate(program, strict=False)


class _RecordingPass(BasePass):
    """Appends its class name to a shared log held in the context."""
    requires = []

    def run(self, ir, ctx):
        log = ctx.get_analysis(_RecordingPass) if ctx.has_analysis(_RecordingPass) else []
        ctx.set_analysis(_RecordingPass, log + [type(self).__name__])
        return ir


class _First(_RecordingPass):
    requires = []


class _Second(_RecordingPass):
    requires = [_First]


class _Third(_RecordingPass):
    requires = [_Second]


class TestPassManager:

    def test_dependencies_run_first(self, calculator_ir):
        manager = PassManager()
        for pass_class in (_Third, _Second, _First):
            manager.register_pass(pass_class)
        ctx = PassContext()
        manager.run_all(calculator_ir, ctx, dump_ir=False)
        assert ctx.get_analysis(_RecordingPass) == ["_First", "_Second", "_Third"]

    def test_missing_dependency(self, calculator_ir):
        manager = PassManager()
        manager.register_pass(_Second)
        with pytest.raises(RuntimeError, match="unregistered"):
            manager.run_all(calculator_ir, PassContext())

    def test_cycle(self, calculator_ir):
        class _A(_RecordingPass):
            pass

        class _B(_RecordingPass):
            requires = [_A]

        _A.requires = [_B]
        manager = PassManager()
        manager.register_pass(_A)
        manager.register_pass(_B)
        with pytest.raises(RuntimeError, match="Circular"):
            manager.run_all(calculator_ir, PassContext())

    def test_passes_thread_their_output(self):
        manager = PassManager()
        manager.register_pass(IRValidationPass)
        manager.register_pass(ConstFoldingPass)
        program = program_with_body(ReturnStatementIR(binop(OperationKind.ADD, lit("2"), lit("3"))))
        ctx = PassContext()
        result = manager.run_all(program, ctx, dump_ir=False)
        assert result.classes[0].methods[0].body.statements[0].expression == LiteralIR("5", "int")
        assert ctx.has_analysis(IRValidationPass)
        assert ctx.get_analysis(ConstFoldingPass) == 1

    def test_dump_ir_logs_each_pass(self, calculator_ir, caplog):
        manager = PassManager()
        manager.register_pass(ConstFoldingPass)
        with caplog.at_level("INFO", logger="sharpjava.passes.base"):
            manager.run_all(calculator_ir, PassContext(), dump_ir=True)
        assert "IR after ConstFoldingPass" in caplog.text
        assert "(program" in caplog.text

    def test_dump_ir_from_environment(self, calculator_ir, caplog, monkeypatch):
        monkeypatch.setenv("SHARPJAVA_DUMP_IR_PER_PASS", "1")
        manager = PassManager()
        manager.register_pass(IRValidationPass)
        with caplog.at_level("INFO", logger="sharpjava.passes.base"):
            manager.run_all(calculator_ir, PassContext())
        assert "IR after IRValidationPass" in caplog.text

    def test_missing_analysis(self):
        with pytest.raises(RuntimeError, match="not available"):
            PassContext().get_analysis(ConstFoldingPass)
