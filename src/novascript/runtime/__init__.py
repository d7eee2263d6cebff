"""
NovaScript runtime - tree-walking interpreter.

This module provides:
- Interpreter: Executes parsed programs against an Environment chain
- Environment: Lexically scoped variable bindings
- Function, ErrorValue: Script-level closure and caught-error values
- BuiltinRegistry: Default host bindings (print, sprintf, len, typeof)
"""

from .values import (
    Function,
    ErrorValue,
    type_name,
    is_truthy,
    check_type,
    to_runtime,
    display,
    to_json,
    strict_equals,
)

from .environment import Environment

from .builtins import (
    BuiltinFunction,
    BuiltinRegistry,
    default_bindings,
    sprintf,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    ReturnSignal,
    interpret,
)

__all__ = [
    # Values
    "Function",
    "ErrorValue",
    "type_name",
    "is_truthy",
    "check_type",
    "to_runtime",
    "display",
    "to_json",
    "strict_equals",
    # Environment
    "Environment",
    # Builtins
    "BuiltinFunction",
    "BuiltinRegistry",
    "default_bindings",
    "sprintf",
    # Interpreter
    "Interpreter",
    "ExecutionResult",
    "ReturnSignal",
    "interpret",
]
