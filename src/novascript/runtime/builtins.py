"""
Built-in function registry for the NovaScript interpreter.

These are the host bindings a script sees by default. Every entry is an
ordinary Python callable taking script values positionally, which is the
same contract any host-supplied binding follows.
"""

import re
import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .values import display, format_number, to_json, type_name
from ..errors import error_type_mismatch


FORMAT_PATTERN = re.compile(r"%[sidfo]")

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?))")


def parse_int(value: Any) -> float:
    """Leading-integer parse of a value's display form; NaN when there is none."""
    match = _INT_PREFIX.match(display(value))
    if match is None:
        return float("nan")
    return float(int(match.group(1)))


def parse_float(value: Any) -> float:
    """Leading-decimal parse of a value's display form; NaN when there is none."""
    match = _FLOAT_PREFIX.match(display(value))
    if match is None:
        return float("nan")
    return float(match.group(1).replace("Infinity", "inf"))


def _format_one(directive: str, value: Any) -> str:
    if directive == "%s":
        return display(value)
    if directive in ("%i", "%d"):
        return format_number(parse_int(value))
    if directive == "%f":
        return format_number(parse_float(value))
    # %o
    text = to_json(value)
    return "undefined" if text is None else text


def sprintf(fmt: str, *args: Any) -> str:
    """
    printf-style formatting.

    Supported directives:
        %s      display form
        %i %d   integer parse (truncates, NaN when unparsable)
        %f      float parse
        %o      compact JSON

    A directive without a matching argument is left in place and extra
    arguments are ignored.
    """
    if not isinstance(fmt, str):
        raise error_type_mismatch("string", type_name(fmt), context="format")
    if not args:
        return fmt

    remaining = list(args)

    def replace(match: "re.Match") -> str:
        if not remaining:
            return match.group(0)
        return _format_one(match.group(0), remaining.pop(0))

    return FORMAT_PATTERN.sub(replace, fmt)


@dataclass
class BuiltinFunction:
    """
    A built-in function with its implementation.
    """
    name: str
    implementation: Callable[..., Any]
    doc: str = ""

    def __call__(self, *args: Any) -> Any:
        return self.implementation(*args)


class BuiltinRegistry:
    """
    Registry of built-in functions.

    Functions are registered by name; ``bindings()`` yields the mapping a
    global environment is seeded with.

    Args:
        write: Output sink for print; defaults to ``sys.stdout.write``
    """

    def __init__(self, write: Optional[Callable[[str], Any]] = None):
        self._functions: Dict[str, BuiltinFunction] = {}
        self.write = write
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name."""
        return self._functions.get(name)

    def register(self, func: BuiltinFunction) -> None:
        """Register a function."""
        self._functions[func.name] = func

    def names(self) -> List[str]:
        return sorted(self._functions)

    def bindings(self) -> Dict[str, BuiltinFunction]:
        """Name to callable mapping for seeding a global environment."""
        return dict(self._functions)

    def _emit(self, text: str) -> None:
        write = self.write if self.write is not None else sys.stdout.write
        write(text + "\n")

    def _register_all(self) -> None:
        """Register all built-in functions."""
        self._register_output_functions()
        self._register_utility_functions()

    # --- Output ---

    def _register_output_functions(self) -> None:

        def _print(*args: Any) -> None:
            if args and isinstance(args[0], str):
                self._emit(sprintf(*args))
            else:
                self._emit(" ".join(display(arg) for arg in args))

        self.register(BuiltinFunction(
            "print", _print,
            "print(format, ...) - write a formatted line to the output"
        ))
        self.register(BuiltinFunction(
            "sprintf", sprintf,
            "sprintf(format, ...) - format values into a string"
        ))

    # --- Utility ---

    def _register_utility_functions(self) -> None:

        def _len(value: Any) -> float:
            if isinstance(value, (str, list, dict)):
                return float(len(value))
            raise error_type_mismatch("string, array or object", type_name(value), context="len")

        def _typeof(value: Any = None) -> str:
            return type_name(value)

        self.register(BuiltinFunction("len", _len, "len(x) - length of a string, array or object"))
        self.register(BuiltinFunction("typeof", _typeof, "typeof(x) - type name of a value"))


def default_bindings(write: Optional[Callable[[str], Any]] = None) -> Dict[str, BuiltinFunction]:
    """Default host bindings, with print routed to ``write``."""
    return BuiltinRegistry(write).bindings()
