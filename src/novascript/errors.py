"""
NovaScript exceptions and diagnostics.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors

Every error carries a ``Diagnostic`` so hosts can render it with a caret
under the offending source line or serialise it for tooling.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, etc.)."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan] = None   # None for errors raised outside the AST
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        loc = f"{self.span.start}: " if self.span is not None else ""
        parts.append(f"{loc}{self.severity.value}[{self.code}]: {self.message}")

        if show_source and self.source_line is not None and self.span is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        result = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": None,
            "hints": self.hints,
        }
        if self.span is not None:
            result["range"] = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return result


class NovaError(Exception):
    """Base exception for NovaScript errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    @property
    def message(self) -> str:
        return self.diagnostic.message

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexError(NovaError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParseError(NovaError):
    """Error during parsing (E1xx)."""
    pass


class NovaRuntimeError(NovaError):
    """Error during evaluation (E4xx). Catchable by a script's try block."""
    pass


class UnresolvedIdentifier(NovaRuntimeError):
    """Lookup or assignment missed at the root environment (E401)."""
    pass


class TypeMismatch(NovaRuntimeError):
    """A value did not have the type an annotation or operator needs (E402)."""
    pass


class NotCallable(NovaRuntimeError):
    """A call named a binding that is not a function (E403)."""
    pass


class NotAnArray(NovaRuntimeError):
    """forEach over a value that is not an array (E404)."""
    pass


class NotAssignable(NovaRuntimeError):
    """Assignment target is neither a variable nor an object property (E405)."""
    pass


class InvalidLoopStep(NovaRuntimeError):
    """A numeric for loop was given a zero step (E406)."""
    pass


class HostError(Exception):
    """
    Raised by host callables to throw a value into the script.

    The carried value is bound verbatim to the identifier of the nearest
    enclosing ``errored`` clause.
    """

    def __init__(self, value: Any):
        self.value = value
        super().__init__(value)


class ConfigError(Exception):
    """Invalid NovaScript configuration file."""
    pass


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}' at {span.start}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=['string literals must be closed with a matching "'],
    )
    return LexError(diag)


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E006: Invalid number literal."""
    diag = Diagnostic(
        code="E006",
        message=f"invalid number literal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["a number may contain at most one decimal point"],
    )
    return LexError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParseError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParseError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParseError:
    """E102: Unexpected end of file."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of file, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return ParseError(diag)


def error_invalid_object_key(found: str, span: SourceSpan, source_line: str = None) -> ParseError:
    """E103: Object literal key is not an identifier or string."""
    diag = Diagnostic(
        code="E103",
        message=f"expected identifier or string as object key, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParseError(diag)


# --- Runtime error codes ---

def error_unresolved_identifier(name: str, span: Optional[SourceSpan] = None) -> UnresolvedIdentifier:
    """E401: Undefined identifier."""
    diag = Diagnostic(
        code="E401",
        message=f"undefined variable '{name}'",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return UnresolvedIdentifier(diag)


def error_type_mismatch(expected: str, found: str, span: Optional[SourceSpan] = None,
                        context: str = None) -> TypeMismatch:
    """E402: Type mismatch."""
    message = f"type mismatch: expected {expected}, got {found}"
    if context:
        message = f"{message} ({context})"
    diag = Diagnostic(
        code="E402",
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return TypeMismatch(diag)


def error_circular_structure(span: Optional[SourceSpan] = None) -> TypeMismatch:
    """E402: Object or array contains itself and has no JSON form."""
    diag = Diagnostic(
        code="E402",
        message="cannot convert circular structure to JSON",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return TypeMismatch(diag)


def error_not_callable(name: str, span: Optional[SourceSpan] = None) -> NotCallable:
    """E403: Called value is not a function."""
    diag = Diagnostic(
        code="E403",
        message=f"'{name}' is not a function",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return NotCallable(diag)


def error_not_an_array(found: str, span: Optional[SourceSpan] = None) -> NotAnArray:
    """E404: forEach target is not an array."""
    diag = Diagnostic(
        code="E404",
        message=f"forEach expects an array, got {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return NotAnArray(diag)


def error_not_assignable(target: str, span: Optional[SourceSpan] = None) -> NotAssignable:
    """E405: Assignment target is not a variable or property."""
    diag = Diagnostic(
        code="E405",
        message=f"cannot assign to {target}",
        severity=ErrorSeverity.ERROR,
        span=span,
        hints=["only variables and object properties can be assigned"],
    )
    return NotAssignable(diag)


def error_invalid_loop_step(span: Optional[SourceSpan] = None) -> InvalidLoopStep:
    """E406: Zero step in a numeric for loop."""
    diag = Diagnostic(
        code="E406",
        message="for loop step must not be zero",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return InvalidLoopStep(diag)


class DiagnosticCollector:
    """Collects diagnostics reported while checking or running a script."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def add_error(self, error: NovaError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"\n{self._error_count} error(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
        }
