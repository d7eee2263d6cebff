"""
Tests for the NovaScript interpreter.
"""

import logging
import math
import sys
import textwrap
from pathlib import Path

import pytest

from novascript import (
    interpret, tokenize, parse, Interpreter, Environment, NovaConfig,
    ExecutionResult, HostError, ErrorValue, Function,
    LexError, ParseError, UnresolvedIdentifier, TypeMismatch, NotCallable,
    NotAnArray, NotAssignable, InvalidLoopStep,
)

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def run(source, bindings=None, config=None):
    """Interpret source, returning the result and the printed lines."""
    output = []
    result = interpret(textwrap.dedent(source), bindings, config=config, write=output.append)
    return result, "".join(output).splitlines()


def value_of(source, bindings=None, config=None):
    """Interpret source that ends in a top-level return and give its value."""
    result, _ = run(source, bindings, config)
    assert result.success, result.format_error()
    return result.return_value


# --- Declarations and expressions ---

class TestVariables:
    """Test var declarations and lookups."""

    def test_declare_and_read(self):
        result, _ = run("var x = 39")
        assert result.success
        assert result.globals.lookup("x") == 39.0

    def test_typed_declaration(self):
        result, _ = run("var y number = 40")
        assert result.globals.lookup("y") == 40.0

    def test_typed_declaration_mismatch(self):
        result, _ = run('var y number = "tenis"')
        assert not result.success
        assert isinstance(result.error, TypeMismatch)
        assert result.diagnostic.code == "E402"
        assert "expected number, got string" in result.error_message

    @pytest.mark.parametrize("annotation, literal", [
        ("string", '"s"'),
        ("number", "1"),
        ("boolean", "false"),
        ("object", "{}"),
        ("object", "[1, 2]"),
    ])
    def test_annotations_accept_matching_values(self, annotation, literal):
        result, _ = run(f"var v {annotation} = {literal}")
        assert result.success

    def test_redeclaration_in_same_scope(self):
        result, _ = run("var x = 1 var x object = {}")
        assert result.globals.lookup("x") == {}

    def test_modifier_has_no_effect(self):
        assert value_of("var k #const = 1 k = 2 return k") == 2.0

    def test_undefined_variable(self):
        result, _ = run("print(missing)")
        assert isinstance(result.error, UnresolvedIdentifier)
        assert "'missing'" in result.error_message

    def test_assign_to_undeclared(self):
        result, _ = run("z = 1")
        assert isinstance(result.error, UnresolvedIdentifier)


class TestOperators:
    """Test operator semantics."""

    def test_addition(self):
        assert value_of("var x = 39 var y = 40 return x + y") == 79.0

    def test_precedence(self):
        assert value_of("return 1 + 2 * 3 - 4 / 2") == 5.0
        assert value_of("return (1 + 2) * 3") == 9.0

    def test_unary(self):
        assert value_of("return -(2 + 3)") == -5.0
        assert value_of("return !0") is True
        assert value_of('return !"text"') is False

    def test_unary_minus_needs_number(self):
        result, _ = run('return -"a"')
        assert isinstance(result.error, TypeMismatch)

    def test_string_concatenation(self):
        assert value_of('return "n=" + 1') == "n=1"
        assert value_of('return 2.5 + "x"') == "2.5x"
        assert value_of('return "ok: " + true') == "ok: true"

    def test_arithmetic_type_mismatch(self):
        result, _ = run("return 1 + true")
        assert isinstance(result.error, TypeMismatch)
        result, _ = run('return "a" * 2')
        assert isinstance(result.error, TypeMismatch)

    def test_division_by_zero(self):
        assert value_of("return 1 / 0") == math.inf
        assert value_of("return -1 / 0") == -math.inf
        assert math.isnan(value_of("return 0 / 0"))

    def test_relational(self):
        assert value_of("return 1 < 2") is True
        assert value_of("return 2 <= 2") is True
        assert value_of("return 1 > 2") is False
        assert value_of('return "apple" < "banana"') is True

    def test_relational_mixed_types(self):
        result, _ = run('return 1 < "2"')
        assert isinstance(result.error, TypeMismatch)

    def test_strict_equality(self):
        assert value_of("return 1 == 1") is True
        assert value_of('return 1 == "1"') is False
        assert value_of('return 1 != "1"') is True
        assert value_of("return true == true") is True

    def test_reference_equality(self):
        assert value_of("var a = {} var b = a return a == b") is True
        assert value_of("return {} == {}") is False
        assert value_of("return [1] == [1]") is False

    def test_logical_operators_return_operands(self):
        assert value_of('return 0 || "fallback"') == "fallback"
        assert value_of('return "a" && 2') == 2.0
        assert value_of('return "" && 2') == ""
        assert value_of("return 1 || 2") == 1.0

    def test_logical_operators_are_eager(self):
        """Both operands are evaluated even when the left decides the result."""
        source = """
            var calls = 0
            func bump()
                calls = calls + 1
                return true
            end
            var a = false && bump()
            var b = true || bump()
            return calls
        """
        assert value_of(source) == 2.0

    def test_short_circuit_option(self):
        source = """
            var calls = 0
            func bump()
                calls = calls + 1
                return true
            end
            var a = false && bump()
            var b = true || bump()
            var c = true && bump()
            return calls
        """
        assert value_of(source, config=NovaConfig(short_circuit=True)) == 1.0

    def test_assignment_yields_value(self):
        assert value_of("var a = 0 var b = 0 a = b = 7 return a + b") == 14.0


class TestObjectsAndArrays:
    """Test object and array values."""

    def test_property_access(self):
        source = "var rect = { size: { width: 30 } } return rect.size.width"
        assert value_of(source) == 30.0

    def test_missing_property_is_undefined(self):
        assert value_of("var rect = { size: {} } return rect.height") is None
        assert value_of("var rect = {} return rect.a.b.c") is None

    def test_property_of_primitive_is_undefined(self):
        assert value_of("var n = 5 return n.size") is None

    def test_array_length(self):
        assert value_of("return [1, 2, 3].length") == 3.0

    def test_string_keys(self):
        assert value_of('var o = { "k": 1 } return o.k') == 1.0

    def test_property_assignment(self):
        assert value_of("var o = {} o.k = 3 return o.k") == 3.0

    def test_aliasing_is_observable(self):
        assert value_of("var a = { x: 1 } var b = a b.x = 2 return a.x") == 2.0

    def test_assign_property_of_non_object(self):
        result, _ = run("var n = 1 n.x = 2")
        assert isinstance(result.error, NotAssignable)

    def test_assign_to_literal(self):
        result, _ = run("1 = 2")
        assert isinstance(result.error, NotAssignable)
        assert result.diagnostic.code == "E405"


# --- Control flow ---

class TestScoping:
    """Test block and function scoping."""

    def test_if_block_does_not_leak(self):
        result, _ = run("if true var inner = 1 end print(inner)")
        assert isinstance(result.error, UnresolvedIdentifier)

    def test_block_assigns_outer_variable(self):
        assert value_of("var n = 0 if true n = 5 end return n") == 5.0

    def test_var_in_block_shadows(self):
        assert value_of("var n = 1 if true var n = 2 end return n") == 1.0

    def test_function_locals_do_not_leak(self):
        result, lines = run("""
            func t()
                var g = 30
                return g
            end
            print(t())
        """)
        assert result.success
        assert lines == ["30"]
        assert not result.globals.contains("g")

        result, _ = run("func t() var g = 30 return g end t() print(g)")
        assert isinstance(result.error, UnresolvedIdentifier)


class TestIf:
    """Test if/else."""

    def test_then_branch(self):
        _, lines = run('if 1 < 2 print("yes") else print("no") end')
        assert lines == ["yes"]

    def test_else_branch(self):
        _, lines = run('if 0 print("yes") else print("no") end')
        assert lines == ["no"]

    def test_no_else(self):
        result, lines = run('if false print("yes") end')
        assert result.success
        assert lines == []


class TestLoops:
    """Test while, for and forEach."""

    def test_for_inclusive(self):
        result, lines = run("for i = 1, 3 do print(i) end")
        assert lines == ["1", "2", "3"]
        assert not result.globals.contains("i")

    def test_for_with_step(self):
        _, lines = run("for i = 0, 10, 5 do print(i) end")
        assert lines == ["0", "5", "10"]

    def test_for_counts_down_with_negative_step(self):
        _, lines = run("for i = 10, 1, -3 do print(i) end")
        assert lines == ["10", "7", "4", "1"]

    def test_for_empty_range(self):
        _, lines = run("for i = 5, 1 do print(i) end")
        assert lines == []

    def test_for_fractional_step(self):
        _, lines = run("for i = 0, 1, 0.5 do print(i) end")
        assert lines == ["0", "0.5", "1"]

    def test_for_variable_rebinding_does_not_change_count(self):
        _, lines = run("for i = 1, 3 do i = 100 print(i) end")
        assert lines == ["100", "100", "100"]

    def test_for_zero_step(self):
        result, _ = run("for i = 1, 3, 0 do end")
        assert isinstance(result.error, InvalidLoopStep)
        assert result.diagnostic.code == "E406"

    def test_for_non_number_bound(self):
        result, _ = run('for i = 1, "3" do end')
        assert isinstance(result.error, TypeMismatch)

    def test_for_body_locals_do_not_leak(self):
        source = """
            var seen = []
            for i = 1, 2 do
                var local = i
            end
            return local
        """
        result, _ = run(source)
        assert isinstance(result.error, UnresolvedIdentifier)

    def test_for_iterations_capture_their_own_variable(self):
        source = """
            var fns = {}
            for i = 1, 2 do
                func get() return i end
                if i == 1 fns.first = get else fns.second = get end
            end
            var first = fns.first
            var second = fns.second
            return [first(), second()]
        """
        assert value_of(source) == [1.0, 2.0]

    def test_for_each_iterations_capture_their_own_variable(self):
        source = """
            var fns = {}
            forEach v in ["a", "b"] do
                func get() return v end
                if v == "a" fns.first = get else fns.second = get end
            end
            var first = fns.first
            var second = fns.second
            return [first(), second()]
        """
        assert value_of(source) == ["a", "b"]

    def test_while_iterations_get_their_own_scope(self):
        source = """
            var i = 0
            var fns = {}
            while i < 2
                i = i + 1
                var snapshot = i
                func get() return snapshot end
                if i == 1 fns.first = get else fns.second = get end
            end
            var first = fns.first
            var second = fns.second
            return [first(), second()]
        """
        assert value_of(source) == [1.0, 2.0]

    def test_for_each(self):
        result, lines = run("forEach v in [1, 2, 3] do print(v) end")
        assert lines == ["1", "2", "3"]
        assert not result.globals.contains("v")

    def test_for_each_over_objects(self):
        _, lines = run('forEach p in [{ n: "a" }, { n: "b" }] do print(p.n) end')
        assert lines == ["a", "b"]

    def test_for_each_non_array(self):
        result, _ = run("forEach v in 5 do print(v) end")
        assert isinstance(result.error, NotAnArray)
        assert result.diagnostic.code == "E404"

    def test_for_each_over_object_is_not_an_array(self):
        result, _ = run("forEach v in {} do end")
        assert isinstance(result.error, NotAnArray)

    def test_while(self):
        source = """
            var i = 0
            var total = 0
            while i < 4
                i = i + 1
                total = total + i
            end
            return total
        """
        assert value_of(source) == 10.0

    def test_while_false(self):
        _, lines = run("while false print(1) end")
        assert lines == []


class TestTry:
    """Test try/errored."""

    def test_catches_circular_json(self):
        source = """
            var o = { name: "loop" }
            o.self = o
            try
                print("%o", o)
            errored E
                return E
            end
        """
        value = value_of(source)
        assert value["name"] == "TypeMismatch"
        assert value["message"] == "cannot convert circular structure to JSON"

    def test_catches_type_mismatch(self):
        source = """
            try
                var y number = "tenis"
            errored E
                print("an error has happened: %s", E)
            end
            print("after")
        """
        result, lines = run(source)
        assert result.success
        assert lines == [
            "an error has happened: TypeMismatch: "
            "type mismatch: expected number, got string (variable 'y')",
            "after",
        ]

    def test_error_value_fields(self):
        source = """
            try
                nope()
            errored E
                return E
            end
        """
        value = value_of(source)
        assert isinstance(value, ErrorValue)
        assert value["name"] == "UnresolvedIdentifier"
        assert value["code"] == "E401"
        assert value["message"] == "undefined variable 'nope'"

    def test_error_fields_readable_from_script(self):
        assert value_of("try 1 = 2 errored E return E.name end") == "NotAssignable"

    def test_try_block_shares_scope(self):
        assert value_of("try var inside = 1 errored E end return inside") == 1.0

    def test_error_name_scoped_to_catch_block(self):
        result, _ = run("try nope() errored E end print(E)")
        assert isinstance(result.error, UnresolvedIdentifier)

    def test_no_error_skips_catch(self):
        _, lines = run('try print("ok") errored E print("caught") end')
        assert lines == ["ok"]

    def test_error_in_catch_propagates(self):
        result, _ = run("try nope() errored E alsonope() end")
        assert isinstance(result.error, UnresolvedIdentifier)
        assert "alsonope" in result.error_message

    def test_nested_try(self):
        source = """
            try
                try
                    nope()
                errored Inner
                    print("inner")
                    missing()
                end
            errored Outer
                print("outer " + Outer.name)
            end
        """
        _, lines = run(source)
        assert lines == ["inner", "outer UnresolvedIdentifier"]

    def test_error_inside_called_function_is_caught(self):
        source = """
            func bad()
                var n number = "x"
            end
            try bad() errored E return E.code end
        """
        assert value_of(source) == "E402"


class TestFunctions:
    """Test function declarations and calls."""

    def test_call_returns_value(self):
        assert value_of("func t() var g = 30 return g end return t()") == 30.0

    def test_no_return_yields_undefined(self):
        assert value_of("func f() var a = 1 end return f()") is None

    def test_bare_return(self):
        assert value_of("func f() return end return f()") is None

    def test_parameters(self):
        assert value_of("func add(a, b) return a + b end return add(2, 3)") == 5.0

    def test_default_parameter(self):
        assert value_of("func f(a = 5) return a end return f()") == 5.0

    def test_default_evaluated_in_defining_environment(self):
        source = """
            var base = 10
            func f(a = base) return a end
            func g()
                var base = 99
                return f()
            end
            return g()
        """
        assert value_of(source) == 10.0

    def test_undefined_argument_selects_default(self):
        source = "func f(a = 3) return a end return f(nothing)"
        assert value_of(source, bindings={"nothing": None}) == 3.0

    def test_missing_argument_without_default(self):
        assert value_of("func f(a, b) return typeof(b) end return f(1)") == "undefined"

    def test_extra_arguments_ignored(self):
        assert value_of("func f(a) return a end return f(1, 2, 3)") == 1.0

    def test_redefinition_last_wins(self):
        assert value_of("func f() return 1 end func f() return 2 end return f()") == 2.0

    def test_recursion(self):
        source = """
            func fact(n)
                if n <= 1
                    return 1
                end
                return n * fact(n - 1)
            end
            return fact(5)
        """
        assert value_of(source) == 120.0

    def test_deep_recursion(self):
        source = """
            func depth(n)
                if n == 0
                    return 0
                end
                return 1 + depth(n - 1)
            end
            return depth(1000)
        """
        assert value_of(source) == 1000.0

    def test_recursion_limit_restored(self):
        before = sys.getrecursionlimit()
        run("func f(n) return f(n + 1) end f(0)")
        assert sys.getrecursionlimit() == before

    def test_lexical_scoping(self):
        source = """
            var x = "global"
            func show() return x end
            func caller()
                var x = "local"
                return show()
            end
            return caller()
        """
        assert value_of(source) == "global"

    def test_closure_keeps_environment_alive(self):
        source = """
            func make()
                var count = 0
                func inc()
                    count = count + 1
                    return count
                end
                return inc
            end
            var counter = make()
            counter()
            return counter()
        """
        assert value_of(source) == 2.0

    def test_return_passes_through_try(self):
        source = """
            func f()
                try
                    return 1
                errored E
                    return 2
                end
                return 3
            end
            return f()
        """
        assert value_of(source) == 1.0

    def test_return_from_nested_loops(self):
        source = """
            func find()
                for i = 1, 10 do
                    forEach j in [1, 2, 3] do
                        if i * j == 6
                            return i
                        end
                    end
                end
                return 0
            end
            return find()
        """
        assert value_of(source) == 2.0

    def test_return_from_while(self):
        source = """
            func f()
                var i = 0
                while true
                    i = i + 1
                    if i == 4 return i end
                end
            end
            return f()
        """
        assert value_of(source) == 4.0

    def test_calling_a_non_function(self):
        result, _ = run("var x = 1 x()")
        assert isinstance(result.error, NotCallable)
        assert result.error_message == "'x' is not a function"

    def test_non_function_rejected_before_arguments_run(self):
        result, lines = run('var x = 5 x(print("side effect"))')
        assert isinstance(result.error, NotCallable)
        assert lines == []

    def test_function_is_a_value(self):
        assert value_of("func f() end return typeof(f)") == "function"


class TestTopLevel:
    """Test program-level behaviour."""

    def test_top_level_return_ends_program(self):
        result, lines = run("print(1) return 5 print(2)")
        assert result.success
        assert result.return_value == 5.0
        assert lines == ["1"]

    def test_uncaught_error_halts(self):
        result, lines = run("print(1) nope() print(2)")
        assert not result.success
        assert lines == ["1"]

    def test_runtime_diagnostic_quotes_source(self):
        result, _ = run("var a = 1\nvar b number = true")
        assert result.diagnostic.span.start.line == 2
        assert result.diagnostic.source_line == "var b number = true"
        assert "^" in result.format_error()

    def test_lex_error_runs_nothing(self):
        result, lines = run('print("hi") @')
        assert not result.success
        assert isinstance(result.error, LexError)
        assert lines == []
        assert result.globals is None

    def test_parse_error_runs_nothing(self):
        result, lines = run('print("hi") if x')
        assert isinstance(result.error, ParseError)
        assert lines == []

    def test_success_result(self):
        result, _ = run("var a = 1")
        assert isinstance(result, ExecutionResult)
        assert result.success
        assert result.error is None
        assert result.format_error() == ""

    def test_uncaught_error_is_logged(self, caplog):
        with caplog.at_level(logging.ERROR, logger="novascript"):
            run("nope()")
        assert any("E401" in r.getMessage() for r in caplog.records)

    def test_no_op_statements(self, caplog):
        source = """
            label top
            import "lib.nova"
            def twice(x) print(x) print(x) end
            jmp "top"
            print("after")
        """
        with caplog.at_level(logging.DEBUG, logger="novascript"):
            result, lines = run(source)
        assert result.success
        assert lines == ["after"]
        messages = [r.getMessage() for r in caplog.records]
        assert any("import" in m for m in messages)
        assert any("macro" in m for m in messages)

    def test_jmp_evaluates_operand(self):
        calls = []
        result, _ = run("jmp mark()", bindings={"mark": lambda: calls.append(1)})
        assert result.success
        assert calls == [1]

    def test_macro_table(self):
        program = parse(tokenize("def m(a) print(a) end"))
        interp = Interpreter()
        interp.run(program, Environment())
        assert "m" in interp.macros
        assert interp.macros["m"].parameters == ["a"]

    def test_macros_are_not_callable(self):
        result, _ = run("def m() end m()")
        assert isinstance(result.error, UnresolvedIdentifier)

    def test_run_raises_uncaught_errors(self):
        program = parse(tokenize("nope()"))
        with pytest.raises(UnresolvedIdentifier):
            Interpreter().run(program, Environment())

    def test_deep_recursion_is_reported(self):
        result, _ = run("func f(n) return f(n + 1) end f(0)")
        assert not result.success
        assert result.diagnostic.code == "E400"


# --- Host bindings ---

class TestHostBindings:
    """Test host callables and values."""

    def test_host_callable_receives_values(self):
        received = []
        result, _ = run('record(1, "a", [true], { k: 2 })', bindings={"record": lambda *a: received.extend(a)})
        assert result.success
        assert received == [1.0, "a", [True], {"k": 2.0}]

    def test_host_return_is_normalised(self):
        assert value_of("return count()", bindings={"count": lambda: 3}) == 3.0
        assert value_of("return pair()", bindings={"pair": lambda: (1, 2)}) == [1.0, 2.0]

    def test_host_values(self):
        assert value_of("return limit * 2", bindings={"limit": 21}) == 42.0

    def test_host_print_override(self):
        seen = []
        result, lines = run('print("x")', bindings={"print": lambda *a: seen.append(a)})
        assert seen == [("x",)]
        assert lines == []

    def test_host_error_value_delivered_verbatim(self):
        payload = {"reason": "disk full"}

        def boom():
            raise HostError(payload)

        value = value_of("try boom() errored E return E end", bindings={"boom": boom})
        assert value is payload

    def test_host_exception_is_wrapped(self):
        def broken():
            raise ValueError("bad input")

        value = value_of("try broken() errored E return E end", bindings={"broken": broken})
        assert value["name"] == "HostError"
        assert "bad input" in value["message"]

    def test_uncaught_host_error(self):
        def boom():
            raise HostError("kaboom")

        result, _ = run("boom()", bindings={"boom": boom})
        assert not result.success
        assert isinstance(result.error, HostError)
        assert result.diagnostic.code == "E400"
        assert "kaboom" in result.error_message

    def test_host_can_call_script_function(self):
        def apply(fn, value):
            assert isinstance(fn, Function)
            return fn(value)

        source = "func double(n) return n * 2 end return apply(double, 21)"
        assert value_of(source, bindings={"apply": apply}) == 42.0

    def test_config_globals(self):
        config = NovaConfig(globals={"width": 30.0})
        assert value_of("return width", config=config) == 30.0

    def test_config_globals_are_copied_per_run(self):
        config = NovaConfig(globals={"limits": {"max": 10.0, "inner": {"depth": 1.0}}})
        first, _ = run("limits.max = 99 limits.inner.depth = 5", config=config)
        assert first.success
        result, lines = run('print("%i %i", limits.max, limits.inner.depth)', config=config)
        assert result.success
        assert lines == ["10 1"]
        assert config.globals == {"limits": {"max": 10.0, "inner": {"depth": 1.0}}}

    def test_bindings_override_config_globals(self):
        config = NovaConfig(globals={"width": 30.0})
        assert value_of("return width", bindings={"width": 1}, config=config) == 1.0


class TestSampleScript:
    """Run the bundled sample program."""

    def test_main_nova(self):
        source = (EXAMPLES / "main.nova").read_text()
        result, lines = run(source)
        assert result.success, result.format_error()
        assert lines == [
            "39 + 40 = 79",
            "[object Object]",
            "30",
            'object: {"size":{"width":30}}',
            "an error has happened: TypeMismatch: "
            "type mismatch: expected number, got string (variable 'y')",
        ]
