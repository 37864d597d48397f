"""
Tests for the C# front end: parsing, scoping and type-tag resolution.
"""

import pytest

from sharpjava.ir.nodes import (
    BlockIR, VariableDeclarationIR, AssignmentIR, ExpressionStatementIR,
    ReturnStatementIR, IfStatementIR, WhileLoopIR, ForLoopIR,
    LiteralIR, VariableIR, BinaryOpIR, UnaryOpIR, MethodCallIR,
)
from sharpjava.ir.serialization import serialize_ir
from sharpjava.shared.errors import (
    ErrorReporter, ParseError, TranspileSourceError, SYNTAX_ERROR, UNSUPPORTED_SYNTAX, UNRESOLVED_NAME,
)
from sharpjava.shared.operations import OperationKind

pytestmark = pytest.mark.frontend


def _wrap(body: str, return_type: str = "int", params: str = "") -> str:
    return "class C {\n    %s M(%s) {\n        %s\n    }\n}\n" % (return_type, params, body)


def _statements(program):
    return program.classes[0].methods[0].body.statements


def _returned(program):
    """Expression of the last statement (a return) of the first method."""
    return _statements(program)[-1].expression


class TestCompilationUnit:

    def test_calculator(self, parse, calculator_source, calculator_ir):
        program = parse(calculator_source)
        assert program.namespace == "Demo"
        assert [c.name for c in program.classes] == ["Calculator"]
        method = program.classes[0].methods[0]
        assert (method.name, method.return_type, method.parameters) == ("Calculate", "int", ())
        expected = calculator_ir.classes[0].methods[0].body
        assert serialize_ir(method.body) == serialize_ir(expected)

    def test_file_scoped_namespace(self, parse):
        program = parse("namespace Demo.App;\nclass A { }\nclass B { }\n")
        assert program.namespace == "Demo.App"
        assert [c.name for c in program.classes] == ["A", "B"]

    def test_usings_and_modifiers_are_dropped(self, parse):
        source = "using System;\nusing System.Text;\npublic sealed class A {\n" \
                 "    private static void Run() { }\n}\n"
        program = parse(source)
        assert program.namespace == ""
        assert program.classes[0].methods[0].name == "Run"
        assert program.classes[0].methods[0].return_type == "void"

    def test_comments_are_ignored(self, parse):
        program = parse(_wrap("// leading\n        return /* inline */ 1;"))
        assert _returned(program) == LiteralIR("1", "int", _returned(program).location)

    def test_parameters(self, parse):
        program = parse(_wrap("return a + b;", params="int a, double b"))
        method = program.classes[0].methods[0]
        assert [(p.name, p.type_tag) for p in method.parameters] == [("a", "int"), ("b", "double")]
        assert _returned(program).type_tag == "double"

    def test_locations(self, parse):
        program = parse("class C { int M() { return 42; } }")
        literal = _returned(program)
        assert (literal.location.file, literal.location.line, literal.location.column) == ("Test.cs", 1, 28)
        assert program.classes[0].location.line == 1


class TestLiterals:

    @pytest.mark.parametrize("text,type_tag", [
        ("42", "int"),
        ("0xFF", "int"),
        ("1_000", "int"),
        ("42L", "long"),
        ("42u", "uint"),
        ("42UL", "ulong"),
        ("2.5", "double"),
        ("2.5d", "double"),
        ("1e3", "double"),
        ("2.5f", "float"),
        ("2.5m", "decimal"),
        ('"hi"', "string"),
        ("'c'", "char"),
        ("'\\n'", "char"),
        ("true", "bool"),
        ("false", "bool"),
        ("null", "null"),
    ])
    def test_literal_types(self, parse, text, type_tag):
        literal = _returned(parse(_wrap("return %s;" % text)))
        assert isinstance(literal, LiteralIR)
        assert (literal.value, literal.type_tag) == (text, type_tag)


class TestDeclarations:

    def test_declarators_split(self, parse):
        stmts = _statements(parse(_wrap("int a = 1, b;\n        return a;")))
        assert [(s.name, s.type_tag) for s in stmts[:2]] == [("a", "int"), ("b", "int")]
        assert stmts[0].initializer.value == "1"
        assert stmts[1].initializer is None

    @pytest.mark.parametrize("init,type_tag", [
        ("2.5", "double"),
        ('"s"', "string"),
        ("1 < 2", "bool"),
        ("Helper()", "long"),
    ])
    def test_var_takes_initializer_type(self, parse, init, type_tag):
        source = "class C {\n    long Helper() { return 1L; }\n" \
                 "    void M() { var x = %s; }\n}\n" % init
        decl = parse(source).classes[0].methods[1].body.statements[0]
        assert decl.type_tag == type_tag

    def test_var_without_initializer(self, parse):
        with pytest.raises(TranspileSourceError) as exc_info:
            parse(_wrap("var x;\n        return 0;"))
        assert exc_info.value.error_code == UNSUPPORTED_SYNTAX

    def test_array_type_rejected(self, parse):
        with pytest.raises(TranspileSourceError, match="array type is not supported") as exc_info:
            parse(_wrap("int[] xs;\n        return 0;"))
        assert exc_info.value.error_code == UNSUPPORTED_SYNTAX
        assert exc_info.value.location.line == 3

    def test_block_scope_ends_at_brace(self, parse):
        reporter = ErrorReporter()
        program = parse(_wrap("{ int x = 1; }\n        return x;"), reporter=reporter)
        assert _returned(program).type_tag == "object"
        assert [w.code for w in reporter.warnings] == [UNRESOLVED_NAME]


class TestAssignments:

    def test_plain_assignment(self, parse):
        stmt = _statements(parse(_wrap("int x;\n        x = 3;\n        return x;")))[1]
        assert isinstance(stmt, AssignmentIR)
        assert stmt.target == "x"
        assert stmt.value.value == "3"

    @pytest.mark.parametrize("op,kind", [
        ("+=", OperationKind.ADD),
        ("-=", OperationKind.SUBTRACT),
        ("*=", OperationKind.MULTIPLY),
        ("/=", OperationKind.DIVIDE),
        ("%=", OperationKind.MODULO),
    ])
    def test_compound_assignment_desugars(self, parse, op, kind):
        stmt = _statements(parse(_wrap("int x = 1;\n        x %s 2;\n        return x;" % op)))[1]
        assert isinstance(stmt, AssignmentIR)
        value = stmt.value
        assert isinstance(value, BinaryOpIR)
        assert value.operator == kind
        assert (value.left.name, value.left.type_tag) == ("x", "int")
        assert value.right.value == "2"
        assert value.type_tag == "int"

    def test_compound_assignment_promotes(self, parse):
        stmt = _statements(parse(_wrap("double d = 1.0;\n        d += 1;\n        return 0;")))[1]
        assert stmt.value.type_tag == "double"

    def test_assignment_to_undeclared_name_warns(self, parse):
        reporter = ErrorReporter()
        parse(_wrap("y = 1;\n        return 0;"), reporter=reporter)
        assert len(reporter.warnings) == 1
        assert "undeclared name 'y'" in reporter.warnings[0].message


class TestExpressions:

    def test_precedence(self, parse):
        expr = _returned(parse(_wrap("return 1 + 2 * 3;")))
        assert expr.operator == OperationKind.ADD
        assert expr.left.value == "1"
        assert expr.right.operator == OperationKind.MULTIPLY

    def test_left_associative(self, parse):
        expr = _returned(parse(_wrap("return 1 - 2 - 3;")))
        assert expr.operator == OperationKind.SUBTRACT
        assert expr.left.operator == OperationKind.SUBTRACT
        assert expr.right.value == "3"

    def test_parentheses_group(self, parse):
        expr = _returned(parse(_wrap("return (1 + 2) * 3;")))
        assert expr.operator == OperationKind.MULTIPLY
        assert expr.left.operator == OperationKind.ADD

    @pytest.mark.parametrize("expression,type_tag", [
        ("1 + 2", "int"),
        ("1 + 2L", "long"),
        ("1L * 2.5f", "float"),
        ("2.5f / 2.0", "double"),
        ("'a' + 1", "int"),
        ('"n=" + 1', "string"),
        ('1 + "n"', "string"),
        ("1 == 2", "bool"),
        ("1 <= 2 && 3 > 2", "bool"),
        ("true || false", "bool"),
    ])
    def test_binary_types(self, parse, expression, type_tag):
        assert _returned(parse(_wrap("return %s;" % expression, return_type="object"))).type_tag == type_tag

    def test_comparison_kinds(self, parse):
        expr = _returned(parse(_wrap("return 1 != 2;", return_type="bool")))
        assert expr.operator == OperationKind.NOT_EQUAL

    def test_unary_operators(self, parse):
        stmts = _statements(parse(_wrap(
            "int i = 0;\n        bool b = !true;\n        ++i;\n        i--;\n        return -i;")))
        assert stmts[1].initializer.operator == OperationKind.LOGICAL_NOT
        assert stmts[1].initializer.type_tag == "bool"
        pre = stmts[2].expression
        assert (pre.operator, pre.is_prefix) == (OperationKind.PRE_INCREMENT, True)
        post = stmts[3].expression
        assert (post.operator, post.is_prefix) == (OperationKind.POST_DECREMENT, False)
        neg = stmts[4].expression
        assert (neg.operator, neg.type_tag) == (OperationKind.UNARY_MINUS, "int")

    def test_unary_minus_promotes_char(self, parse):
        expr = _returned(parse(_wrap("return -'a';")))
        assert isinstance(expr, UnaryOpIR)
        assert expr.type_tag == "int"

    def test_unresolved_variable(self, parse):
        reporter = ErrorReporter()
        expr = _returned(parse(_wrap("return missing;"), reporter=reporter))
        assert expr == VariableIR("missing", "object", expr.location)
        assert reporter.warnings[0].code == UNRESOLVED_NAME
        assert "missing" in reporter.warnings[0].message

    def test_member_access_rejected(self, parse):
        with pytest.raises(TranspileSourceError, match="member access"):
            parse(_wrap('string s = "x";\n        return s.Length;'))


class TestCalls:

    def test_same_class_call_before_declaration(self, parse):
        source = "class C {\n    int A() { return B(1); }\n    int B(int x) { return x; }\n}\n"
        call = _returned(parse(source))
        assert isinstance(call, MethodCallIR)
        assert (call.method_name, call.type_tag, call.target) == ("B", "int", None)
        assert call.arguments[0].value == "1"

    def test_unknown_call_warns(self, parse):
        reporter = ErrorReporter()
        call = _returned(parse(_wrap("return Nope();"), reporter=reporter))
        assert call.type_tag == "object"
        assert "cannot resolve method 'Nope' in class 'C'" in reporter.warnings[0].message

    def test_console_write_line(self, parse):
        stmt = _statements(parse(_wrap('Console.WriteLine("hi", 1);', return_type="void")))[0]
        assert isinstance(stmt, ExpressionStatementIR)
        call = stmt.expression
        assert call.method_name == "WriteLine"
        assert call.type_tag == "void"
        assert call.target == VariableIR("Console", "Console", call.target.location)
        assert [a.value for a in call.arguments] == ['"hi"', "1"]

    @pytest.mark.parametrize("call,type_tag", [
        ("Math.Sqrt(2)", "double"),
        ("Math.Abs(-3)", "int"),
        ("Math.Max(1, 2.0)", "double"),
        ("Math.Min(1L, 2)", "long"),
        ("Console.ReadLine()", "string"),
        ("Other.Thing()", "object"),
    ])
    def test_library_call_types(self, parse, call, type_tag):
        assert _returned(parse(_wrap("return %s;" % call, return_type="object"))).type_tag == type_tag

    def test_call_on_local_receiver(self, parse):
        call = _returned(parse(_wrap('string s = "x";\n        return s.Trim();', return_type="string")))
        assert call.target.type_tag == "string"
        assert call.type_tag == "object"

    def test_chained_calls(self, parse):
        call = _returned(parse(_wrap("return Console.ReadLine().Trim();", return_type="string")))
        assert call.method_name == "Trim"
        assert call.target.method_name == "ReadLine"


class TestControlFlow:

    def test_else_if_chain(self, parse):
        source = _wrap("if (a) return 1;\n        else if (b) return 2;\n        else return 3;",
                       params="bool a, bool b")
        stmt = _statements(parse(source))[0]
        assert isinstance(stmt, IfStatementIR)
        assert isinstance(stmt.then_branch, ReturnStatementIR)
        nested = stmt.else_branch
        assert isinstance(nested, IfStatementIR)
        assert nested.condition.name == "b"
        assert nested.else_branch.expression.value == "3"

    def test_dangling_else_binds_inner(self, parse):
        source = _wrap("if (a) if (b) return 1; else return 2;\n        return 0;", params="bool a, bool b")
        outer = _statements(parse(source))[0]
        assert outer.else_branch is None
        assert outer.then_branch.else_branch.expression.value == "2"

    def test_lone_declaration_body_becomes_block(self, parse):
        stmt = _statements(parse(_wrap("if (a) int x = 1;\n        return 0;", params="bool a")))[0]
        assert isinstance(stmt.then_branch, BlockIR)
        assert isinstance(stmt.then_branch.statements[0], VariableDeclarationIR)

    def test_while_loop(self, parse):
        stmt = _statements(parse(_wrap("int i = 0;\n        while (i < 10) i++;\n        return i;")))[1]
        assert isinstance(stmt, WhileLoopIR)
        assert stmt.condition.type_tag == "bool"
        assert isinstance(stmt.body, ExpressionStatementIR)

    def test_empty_statements_dropped(self, parse):
        assert len(_statements(parse(_wrap(";;\n        return 0;")))) == 1

    def test_for_loop(self, parse):
        source = _wrap("for (int i = 0, j = 10; i < j; i++, j--) { }\n        return 0;")
        loop = _statements(parse(source))[0]
        assert isinstance(loop, ForLoopIR)
        assert [d.name for d in loop.initializers] == ["i", "j"]
        assert loop.condition.operator == OperationKind.LESS
        assert [inc.operator for inc in loop.incrementors] == [
            OperationKind.POST_INCREMENT, OperationKind.POST_DECREMENT,
        ]
        assert loop.body == BlockIR([], loop.body.location)

    def test_empty_for_header(self, parse):
        loop = _statements(parse(_wrap("for (;;) { }\n        return 0;")))[0]
        assert (loop.initializers, loop.condition, loop.incrementors) == ((), None, ())

    def test_for_initializer_assignments(self, parse):
        source = _wrap("int i;\n        for (i = 0, Tick(); i < 3; ++i) { }\n        return i;")
        loop = _statements(parse(source))[1]
        assert isinstance(loop.initializers[0], AssignmentIR)
        assert isinstance(loop.initializers[1], ExpressionStatementIR)

    def test_loop_variable_scoped_to_loop(self, parse):
        reporter = ErrorReporter()
        program = parse(_wrap("for (int i = 0; i < 3; i++) { }\n        return i;"), reporter=reporter)
        assert _returned(program).type_tag == "object"

    def test_assignment_iterator_rejected(self, parse):
        with pytest.raises(TranspileSourceError, match="assignment in a for-loop iterator") as exc_info:
            parse(_wrap("for (int i = 0; i < 3; i = i + 1) { }\n        return 0;"))
        assert exc_info.value.help_text


class TestSyntaxErrors:

    def test_unexpected_token(self, parse):
        with pytest.raises(ParseError) as exc_info:
            parse(_wrap("int x = ;\n        return x;"))
        error = exc_info.value
        assert error.error_code == SYNTAX_ERROR
        assert "unexpected token ';'" in error.message
        assert (error.location.file, error.location.line) == ("Test.cs", 3)

    def test_unexpected_end_of_file(self, parse):
        with pytest.raises(ParseError, match="unexpected end of file"):
            parse("class C { void M() { ")

    def test_unexpected_character(self, parse):
        with pytest.raises(ParseError) as exc_info:
            parse(_wrap("return 1 # 2;"))
        assert "unexpected character '#'" in exc_info.value.message

    def test_rendered_with_snippet(self, parse):
        with pytest.raises(ParseError) as exc_info:
            parse(_wrap("int x = ;\n        return x;"))
        rendered = str(exc_info.value)
        assert rendered.startswith("error[E0001]: unexpected token")
        assert "3 |         int x = ;" in rendered
