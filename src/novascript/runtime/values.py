"""
Runtime values for the NovaScript interpreter.

Script values are plain Python objects:

    number    -> float
    string    -> str
    boolean   -> bool
    object    -> dict (insertion ordered)
    array     -> list
    function  -> Function (script closure) or any Python callable (host)
    undefined -> None

Objects, arrays and functions are shared by reference, so mutating an
object through one binding is visible through every other binding.
"""

import json
import math
from dataclasses import dataclass
from typing import Any, List, Optional, TYPE_CHECKING

from ..errors import NovaError, HostError, error_type_mismatch, error_circular_structure
from ..tokens import SourceSpan

if TYPE_CHECKING:
    from ..ast import Parameter, Block
    from .environment import Environment
    from .interpreter import Interpreter


@dataclass(eq=False)
class Function:
    """
    A script function: parameters and body closed over the defining environment.

    Instances are callable from Python, so a host can receive a script
    function as an argument and invoke it later.
    """
    name: str
    parameters: List["Parameter"]
    body: "Block"
    closure: "Environment"
    interpreter: "Interpreter"

    def __call__(self, *args: Any) -> Any:
        return self.interpreter.call_function(self, list(args))

    def __repr__(self) -> str:
        params = ", ".join(p.name for p in self.parameters)
        return f"Function({self.name}({params}))"


class ErrorValue(dict):
    """
    A caught runtime error as seen by script code.

    It is an ordinary script object with ``name``, ``code`` and ``message``
    keys, so ``E.message`` works inside an ``errored`` block.
    """

    def __init__(self, name: str, message: str, code: Optional[str] = None):
        super().__init__(name=name, code=code, message=message)

    @classmethod
    def from_exception(cls, exc: Exception) -> Any:
        """Build the value bound by an ``errored`` clause."""
        if isinstance(exc, HostError):
            return exc.value
        if isinstance(exc, NovaError):
            return cls(type(exc).__name__, exc.message, exc.code)
        return cls("HostError", str(exc))

    def __str__(self) -> str:
        return f"{self.get('name')}: {self.get('message')}"


def is_number(value: Any) -> bool:
    """bool is an int subclass in Python but a distinct script type."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_function(value: Any) -> bool:
    return isinstance(value, Function) or callable(value)


def type_name(value: Any) -> str:
    """Return the script-level type word for a value."""
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (dict, list)):
        return "object"
    if is_function(value):
        return "function"
    return "object"


def is_truthy(value: Any) -> bool:
    """false, 0, NaN, "" and undefined are falsy; everything else is truthy."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True


def check_type(value: Any, expected: str, span: Optional[SourceSpan] = None,
               context: str = None) -> None:
    """
    Check that a value has the expected script type.

    Raises:
        TypeMismatch: naming the expected and actual type words
    """
    actual = type_name(value)
    if actual != expected:
        raise error_type_mismatch(expected, actual, span, context)


def to_runtime(value: Any, deep: bool = False) -> Any:
    """
    Normalise a host value into a script value.

    ints become floats and tuples become arrays. With ``deep`` the contents
    of lists and dicts are rebuilt as well (used for configuration data);
    otherwise containers are passed through so aliasing is preserved.
    """
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return float(value)
    if isinstance(value, tuple):
        return [to_runtime(item, deep) for item in value]
    if deep and isinstance(value, list):
        return [to_runtime(item, deep) for item in value]
    if deep and isinstance(value, dict) and not isinstance(value, ErrorValue):
        return {str(k): to_runtime(v, deep) for k, v in value.items()}
    return value


def format_number(value: float) -> str:
    """Render a number the way scripts expect to see it (3 not 3.0)."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))
    return repr(float(value))


def display(value: Any) -> str:
    """Convert a value to its display string (used by print and `+`)."""
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, ErrorValue):
        return str(value)
    if isinstance(value, dict):
        return "[object Object]"
    if isinstance(value, list):
        # undefined elements render empty, as in a joined array
        return ",".join("" if item is None else display(item) for item in value)
    if isinstance(value, Function):
        return f"[function {value.name}]"
    if callable(value):
        name = getattr(value, "name", None) or getattr(value, "__name__", "anonymous")
        return f"[function {name}]"
    return str(value)


_OMIT = object()


def _json_compatible(value: Any, in_array: bool, active: Optional[set] = None) -> Any:
    # active holds the ids of the containers on the current path
    if value is None or is_function(value):
        # Dropped from objects, null inside arrays
        return None if in_array else _OMIT
    if isinstance(value, bool) or isinstance(value, str):
        return value
    if is_number(value):
        if math.isnan(value) or math.isinf(value):
            return None
        return int(value) if value == int(value) else value
    if isinstance(value, (list, dict)):
        active = set() if active is None else active
        if id(value) in active:
            raise error_circular_structure()
        active.add(id(value))
        try:
            if isinstance(value, list):
                return [_json_compatible(item, True, active) for item in value]
            result = {}
            for key, item in value.items():
                converted = _json_compatible(item, False, active)
                if converted is not _OMIT:
                    result[str(key)] = converted
            return result
        finally:
            active.discard(id(value))
    return str(value)


def to_json(value: Any) -> Optional[str]:
    """
    Serialise a value as compact JSON.

    Integral numbers are written without a fraction; functions and
    undefined are left out of objects. Returns None when the value itself
    has no JSON form (undefined or a function).

    Raises:
        TypeMismatch: the value contains itself
    """
    converted = _json_compatible(value, False)
    if converted is _OMIT:
        return None
    return json.dumps(converted, separators=(",", ":"), ensure_ascii=False)


def strict_equals(left: Any, right: Any) -> bool:
    """
    Script equality: values of different types are never equal, and
    objects, arrays and functions compare by identity.
    """
    left_type = type_name(left)
    if left_type != type_name(right):
        return False
    if left_type in ("object", "function"):
        return left is right
    return left == right
