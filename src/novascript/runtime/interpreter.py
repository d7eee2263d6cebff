"""
Tree-walking interpreter for NovaScript.

Executes a parsed Program against a chain of Environments. ``return`` is
delivered as a ReturnSignal value handed back up through block execution,
never as an exception, so a ``try`` block can not intercept it.
"""

import logging
import math
import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, TYPE_CHECKING

from .values import (
    Function, ErrorValue,
    type_name, is_number, is_truthy, check_type, to_runtime, display,
    strict_equals,
)
from .environment import Environment
from .builtins import default_bindings

from ..ast import (
    Program, Statement, Block, LabelStatement, VarDecl, TryStatement,
    ForEachStatement, ForStatement, WhileStatement, IfStatement,
    JmpStatement, FunctionDef, MacroDef, ReturnStatement,
    ImportStatement, ExpressionStatement,
    Expression, Literal, Identifier, BinaryOp, UnaryOp, Assignment,
    FunctionCall, MemberAccess, ArrayLiteral, ObjectLiteral,
)
from ..errors import (
    Diagnostic, ErrorSeverity, NovaError, NovaRuntimeError, HostError,
    error_type_mismatch, error_not_callable, error_not_an_array,
    error_not_assignable, error_invalid_loop_step,
)
from ..tokens import SourceSpan

if TYPE_CHECKING:
    from ..config import NovaConfig

logger = logging.getLogger(__name__)

# Python frame limit while a script runs; a script call costs about eight frames
RECURSION_LIMIT = 12000


@dataclass
class ReturnSignal:
    """A pending `return`, carried back to the nearest call boundary."""
    value: Any = None


@dataclass
class ExecutionResult:
    """Result of interpreting a script."""
    success: bool
    error: Optional[Exception] = None
    diagnostic: Optional[Diagnostic] = None
    return_value: Any = None
    globals: Optional[Environment] = None

    @property
    def error_message(self) -> Optional[str]:
        """The diagnostic message alone, without location or source."""
        if self.diagnostic is not None:
            return self.diagnostic.message
        return None

    def format_error(self, show_source: bool = True) -> str:
        """Render the failure for display (empty on success)."""
        if self.diagnostic is None:
            return ""
        return self.diagnostic.format(show_source)


class Interpreter:
    """
    Tree-walking interpreter for NovaScript.

    Evaluates AST nodes by dispatching to type-specific methods. Each
    ``_execute_*`` method returns a ReturnSignal when a `return` was hit
    and None otherwise.

    Args:
        short_circuit: Evaluate the right operand of && and || only when
            needed. Off by default, where both operands are always evaluated.
    """

    ARITHMETIC_OPERATORS = ("-", "*", "/")
    RELATIONAL_OPERATORS = ("<", "<=", ">", ">=")

    def __init__(self, short_circuit: bool = False):
        self.short_circuit = short_circuit
        self.macros: Dict[str, MacroDef] = {}  # Registered by `def`, never expanded

    def run(self, program: Program, env: Environment) -> Any:
        """
        Execute a program's top-level statements in ``env``.

        Returns:
            The value of a top-level `return`, or None

        Raises:
            NovaRuntimeError: An uncaught runtime error
            HostError: A value thrown by a host callable and not caught
        """
        signal = self._execute_statements(program.statements, env)
        return signal.value if signal is not None else None

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_statements(self, statements: List[Statement], env: Environment) -> Optional[ReturnSignal]:
        """Execute statements in order, stopping at the first return."""
        for stmt in statements:
            signal = self._execute_statement(stmt, env)
            if signal is not None:
                return signal
        return None

    def _execute_block(self, block: Block, env: Environment, name: str) -> Optional[ReturnSignal]:
        """Execute a block in a fresh child environment."""
        return self._execute_statements(block.statements, env.child(name))

    def _execute_statement(self, stmt: Statement, env: Environment) -> Optional[ReturnSignal]:
        """Execute a statement."""
        if isinstance(stmt, ExpressionStatement):
            self._evaluate(stmt.expression, env)
        elif isinstance(stmt, VarDecl):
            self._execute_var_decl(stmt, env)
        elif isinstance(stmt, IfStatement):
            return self._execute_if(stmt, env)
        elif isinstance(stmt, WhileStatement):
            return self._execute_while(stmt, env)
        elif isinstance(stmt, ForStatement):
            return self._execute_for(stmt, env)
        elif isinstance(stmt, ForEachStatement):
            return self._execute_for_each(stmt, env)
        elif isinstance(stmt, TryStatement):
            return self._execute_try(stmt, env)
        elif isinstance(stmt, FunctionDef):
            self._execute_function_def(stmt, env)
        elif isinstance(stmt, ReturnStatement):
            value = self._evaluate(stmt.value, env) if stmt.value is not None else None
            return ReturnSignal(value)
        elif isinstance(stmt, MacroDef):
            self.macros[stmt.name] = stmt
            logger.debug("registered macro '%s'", stmt.name)
        elif isinstance(stmt, JmpStatement):
            target = self._evaluate(stmt.target, env)
            logger.debug("jmp %s ignored", display(target))
        elif isinstance(stmt, LabelStatement):
            logger.debug("label '%s'", stmt.name)
        elif isinstance(stmt, ImportStatement):
            logger.debug("import '%s' ignored", stmt.path)
        else:
            raise RuntimeError(f"Unknown statement type: {type(stmt).__name__}")
        return None

    def _execute_var_decl(self, stmt: VarDecl, env: Environment) -> None:
        """Execute a var declaration, always binding in the current scope."""
        value = self._evaluate(stmt.initializer, env)
        if stmt.type_annotation is not None:
            check_type(value, stmt.type_annotation, stmt.span, f"variable '{stmt.name}'")
        env.define(stmt.name, value)

    def _execute_if(self, stmt: IfStatement, env: Environment) -> Optional[ReturnSignal]:
        """Execute an if statement."""
        if is_truthy(self._evaluate(stmt.condition, env)):
            return self._execute_block(stmt.then_branch, env, "if-then")
        if stmt.else_branch is not None:
            return self._execute_block(stmt.else_branch, env, "else")
        return None

    def _execute_while(self, stmt: WhileStatement, env: Environment) -> Optional[ReturnSignal]:
        """Execute a while loop; the condition is evaluated in the enclosing scope."""
        while is_truthy(self._evaluate(stmt.condition, env)):
            signal = self._execute_block(stmt.body, env, "while-loop")
            if signal is not None:
                return signal
        return None

    def _for_bound(self, expr: Expression, env: Environment, what: str) -> float:
        value = self._evaluate(expr, env)
        if not is_number(value):
            raise error_type_mismatch("number", type_name(value), expr.span, f"for loop {what}")
        return value

    def _execute_for(self, stmt: ForStatement, env: Environment) -> Optional[ReturnSignal]:
        """
        Execute a numeric for loop.

        The end bound is inclusive. A negative step counts down; a zero step
        is an error. Bounds and step are evaluated once, before the first
        iteration.
        """
        current = self._for_bound(stmt.start, env, "start")
        end = self._for_bound(stmt.end, env, "end")
        step = 1.0 if stmt.step is None else self._for_bound(stmt.step, env, "step")
        if step == 0:
            raise error_invalid_loop_step(stmt.step.span)

        while (current <= end) if step > 0 else (current >= end):
            loop_env = env.child("for-loop")
            loop_env.define(stmt.variable, current)
            signal = self._execute_statements(stmt.body.statements, loop_env)
            if signal is not None:
                return signal
            current += step
        return None

    def _execute_for_each(self, stmt: ForEachStatement, env: Environment) -> Optional[ReturnSignal]:
        """Execute a forEach loop over an array."""
        items = self._evaluate(stmt.iterable, env)
        if not isinstance(items, list):
            raise error_not_an_array(type_name(items), stmt.iterable.span)

        for item in items:
            loop_env = env.child("forEach")
            loop_env.define(stmt.variable, item)
            signal = self._execute_statements(stmt.body.statements, loop_env)
            if signal is not None:
                return signal
        return None

    def _execute_try(self, stmt: TryStatement, env: Environment) -> Optional[ReturnSignal]:
        """
        Execute try/errored.

        The try block shares the current scope. A runtime error or a value
        thrown by a host callable is bound to the error name in a child
        scope for the catch block.
        """
        try:
            return self._execute_statements(stmt.try_block.statements, env)
        except (NovaRuntimeError, HostError) as exc:
            logger.debug("caught %s: %s", type(exc).__name__, exc)
            catch_env = env.child("errored")
            catch_env.define(stmt.error_name, ErrorValue.from_exception(exc))
            return self._execute_statements(stmt.catch_block.statements, catch_env)

    def _execute_function_def(self, stmt: FunctionDef, env: Environment) -> None:
        """Bind a closure over the defining environment."""
        env.define(stmt.name, Function(
            name=stmt.name,
            parameters=stmt.parameters,
            body=stmt.body,
            closure=env,
            interpreter=self,
        ))

    # =========================================================================
    # Calls
    # =========================================================================

    def call_function(self, func: Function, args: List[Any]) -> Any:
        """
        Invoke a script function.

        Parameters bind positionally in a child of the closure environment.
        A missing or undefined argument takes the parameter's default,
        evaluated in the defining environment. Extra arguments are ignored.
        """
        logger.debug("calling %s with %d argument(s)", func.name, len(args))
        call_env = func.closure.child(f"call {func.name}")
        for index, param in enumerate(func.parameters):
            value = args[index] if index < len(args) else None
            if value is None and param.default_value is not None:
                value = self._evaluate(param.default_value, func.closure)
            call_env.define(param.name, value)

        signal = self._execute_statements(func.body.statements, call_env)
        return signal.value if signal is not None else None

    def _call_host(self, name: str, callee: Callable, args: List[Any]) -> Any:
        """Invoke a host callable and normalise its result."""
        logger.debug("calling host function %s with %d argument(s)", name, len(args))
        try:
            result = callee(*args)
        except (NovaError, HostError):
            raise
        except Exception as e:
            raise HostError(ErrorValue("HostError", f"{name}: {e}")) from e
        return to_runtime(result)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression, env: Environment) -> Any:
        """Evaluate an expression to produce a value."""
        if isinstance(expr, Literal):
            return expr.value
        elif isinstance(expr, Identifier):
            return env.lookup(expr.name, expr.span)
        elif isinstance(expr, BinaryOp):
            return self._eval_binary_op(expr, env)
        elif isinstance(expr, UnaryOp):
            return self._eval_unary_op(expr, env)
        elif isinstance(expr, Assignment):
            return self._eval_assignment(expr, env)
        elif isinstance(expr, FunctionCall):
            return self._eval_function_call(expr, env)
        elif isinstance(expr, MemberAccess):
            return self._eval_member_access(expr, env)
        elif isinstance(expr, ArrayLiteral):
            return [self._evaluate(element, env) for element in expr.elements]
        elif isinstance(expr, ObjectLiteral):
            return {key: self._evaluate(value, env) for key, value in expr.entries.items()}
        else:
            raise RuntimeError(f"Unknown expression type: {type(expr).__name__}")

    def _eval_binary_op(self, op: BinaryOp, env: Environment) -> Any:
        """Evaluate a binary operation."""
        left = self._evaluate(op.left, env)

        if self.short_circuit and op.operator in ("&&", "||"):
            if op.operator == "&&" and not is_truthy(left):
                return left
            if op.operator == "||" and is_truthy(left):
                return left
            return self._evaluate(op.right, env)

        right = self._evaluate(op.right, env)
        return self._apply_binary(op.operator, left, right, op.span)

    def _require_numbers(self, operator: str, left: Any, right: Any, span: SourceSpan) -> None:
        for operand in (left, right):
            if not is_number(operand):
                raise error_type_mismatch("number", type_name(operand), span, f"operator '{operator}'")

    def _apply_binary(self, operator: str, left: Any, right: Any, span: SourceSpan) -> Any:
        # Logical operators yield one of their operands
        if operator == "&&":
            return right if is_truthy(left) else left
        if operator == "||":
            return left if is_truthy(left) else right

        if operator == "==":
            return strict_equals(left, right)
        if operator == "!=":
            return not strict_equals(left, right)

        if operator == "+":
            if isinstance(left, str) or isinstance(right, str):
                return display(left) + display(right)
            self._require_numbers(operator, left, right, span)
            return left + right

        if operator in self.ARITHMETIC_OPERATORS:
            self._require_numbers(operator, left, right, span)
            if operator == "-":
                return left - right
            if operator == "*":
                return left * right
            return _divide(left, right)

        if operator in self.RELATIONAL_OPERATORS:
            if not (isinstance(left, str) and isinstance(right, str)):
                self._require_numbers(operator, left, right, span)
            if operator == "<":
                return left < right
            if operator == "<=":
                return left <= right
            if operator == ">":
                return left > right
            return left >= right

        raise RuntimeError(f"Unknown binary operator: {operator}")

    def _eval_unary_op(self, op: UnaryOp, env: Environment) -> Any:
        """Evaluate a unary operation."""
        operand = self._evaluate(op.operand, env)

        if op.operator == "-":
            if not is_number(operand):
                raise error_type_mismatch("number", type_name(operand), op.span, "unary '-'")
            return -operand
        elif op.operator == "!":
            return not is_truthy(operand)
        else:
            raise RuntimeError(f"Unknown unary operator: {op.operator}")

    def _eval_assignment(self, expr: Assignment, env: Environment) -> Any:
        """Assign to a variable or object property; yields the assigned value."""
        value = self._evaluate(expr.value, env)
        target = expr.target

        if isinstance(target, Identifier):
            env.assign(target.name, value, target.span)
        elif isinstance(target, MemberAccess):
            obj = self._evaluate(target.object, env)
            if not isinstance(obj, dict):
                raise error_not_assignable(f"property '{target.member}' of {type_name(obj)}", target.span)
            obj[target.member] = value
        else:
            raise error_not_assignable(_describe(target), target.span)

        return value

    def _eval_function_call(self, call: FunctionCall, env: Environment) -> Any:
        """Evaluate a call; the callee is always a bare name and is checked before its arguments run."""
        callee = env.lookup(call.name, call.span)
        if not callable(callee):
            raise error_not_callable(call.name, call.span)

        args = [self._evaluate(arg, env) for arg in call.arguments]
        if isinstance(callee, Function):
            return self.call_function(callee, args)
        return self._call_host(call.name, callee, args)

    def _eval_member_access(self, access: MemberAccess, env: Environment) -> Any:
        """Evaluate property access; a missing property is undefined, not an error."""
        obj = self._evaluate(access.object, env)
        if isinstance(obj, dict):
            return obj.get(access.member)
        if isinstance(obj, list) and access.member == "length":
            return float(len(obj))
        return None


def _divide(left: float, right: float) -> float:
    """Division with IEEE results for a zero divisor."""
    try:
        return left / right
    except ZeroDivisionError:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)


def _describe(expr: Expression) -> str:
    if isinstance(expr, Literal):
        return f"literal {display(expr.value)}"
    if isinstance(expr, FunctionCall):
        return f"call to '{expr.name}'"
    return "expression"


def _attach_source(error: NovaError, source: str) -> None:
    """Fill in the quoted source line for diagnostics raised at run time."""
    diag = error.diagnostic
    if diag.span is None or diag.source_line is not None:
        return
    lines = source.splitlines()
    line = diag.span.start.line
    if 1 <= line <= len(lines):
        diag.source_line = lines[line - 1]


def interpret(
    source: str,
    bindings: Optional[Mapping[str, Any]] = None,
    config: Optional["NovaConfig"] = None,
    filename: Optional[str] = None,
    write: Optional[Callable[[str], Any]] = None,
) -> ExecutionResult:
    """
    High-level API to lex, parse and run NovaScript source in one call.

        from novascript import interpret

        result = interpret('print("%i + %i = %i", 39, 40, 39 + 40)')
        if not result.success:
            print(result.format_error())

    The global environment is seeded with the default builtins, then the
    config's globals, then ``bindings`` (later entries win).

    Args:
        source: Script source code
        bindings: Host values and callables to bind globally
        config: Runner configuration (defaults apply when omitted)
        filename: Optional filename for error messages
        write: Output sink for the default print builtin

    Returns:
        ExecutionResult; lex, parse and runtime errors are reported here
        rather than raised
    """
    # Import lexer, parser, config
    from ..lexer import tokenize
    from ..parser import parse
    from ..config import NovaConfig

    if config is None:
        config = NovaConfig()

    # Lex and parse; nothing runs if either fails
    try:
        program = parse(tokenize(source, filename), filename, source)
    except NovaError as e:
        logger.error("[%s] %s", e.code, e.message)
        return ExecutionResult(success=False, error=e, diagnostic=e.diagnostic)

    env = Environment(name="global")
    for name, value in default_bindings(write).items():
        env.define(name, value)
    for name, value in config.globals.items():
        # Each run gets its own copy; scripts may mutate objects in place
        env.define(name, to_runtime(value, deep=True))
    for name, value in (bindings or {}).items():
        env.define(name, to_runtime(value))

    interpreter = Interpreter(short_circuit=config.short_circuit)
    old_limit = sys.getrecursionlimit()
    sys.setrecursionlimit(max(old_limit, RECURSION_LIMIT))
    try:
        return_value = interpreter.run(program, env)
    except NovaError as e:
        _attach_source(e, source)
        logger.error("[%s] %s", e.code, e.message)
        return ExecutionResult(success=False, error=e, diagnostic=e.diagnostic, globals=env)
    except HostError as e:
        diag = Diagnostic(
            code="E400",
            message=f"uncaught error: {display(e.value)}",
            severity=ErrorSeverity.ERROR,
        )
        logger.error("[%s] %s", diag.code, diag.message)
        return ExecutionResult(success=False, error=e, diagnostic=diag, globals=env)
    except RecursionError as e:
        diag = Diagnostic(
            code="E400",
            message="maximum call depth exceeded",
            severity=ErrorSeverity.ERROR,
        )
        logger.error("[%s] %s", diag.code, diag.message)
        return ExecutionResult(success=False, error=e, diagnostic=diag, globals=env)
    finally:
        sys.setrecursionlimit(old_limit)

    return ExecutionResult(success=True, return_value=return_value, globals=env)
