"""
Token types for the NovaScript lexer.

NovaScript keeps the token vocabulary deliberately coarse: six value kinds
plus an end-of-input marker. Keywords and operators carry their spelling in
``Token.value`` and the parser matches on that.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token kinds produced by the lexer."""

    NUMBER = auto()         # 42, 3.14
    STRING = auto()         # "hello"
    BOOLEAN = auto()        # true, false
    IDENTIFIER = auto()     # user-defined names
    KEYWORD = auto()        # var, if, func, ...
    OPERATOR = auto()       # + - == && . ( ) ...

    EOF = auto()            # end of input


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # float, str or bool
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def __str__(self) -> str:
        if self.type == TokenType.EOF:
            return "end of file"
        if self.type in (TokenType.KEYWORD, TokenType.OPERATOR):
            return f"'{self.value}'"
        return f"{self.type.name.lower()} {self.lexeme}"


KEYWORDS: frozenset = frozenset({
    "var", "if", "else", "end", "jmp", "func", "label",
    "return", "def", "import", "while", "forEach", "for",
    "do", "in", "try", "errored",
})

BOOLEANS: dict[str, bool] = {
    "true": True,
    "false": False,
}

# Two-character operators, checked before the single-character set
DOUBLE_CHAR_OPERATORS: frozenset = frozenset({"&&", "||", "==", "!=", ">=", "<="})

SINGLE_CHAR_OPERATORS: str = "#+-*/(),{}[]:.=!<>"

# Type words accepted by a `var` annotation; they lex as identifiers
TYPE_NAMES: tuple = ("string", "number", "boolean", "object")

DIGITS: str = "0123456789"
IDENT_START: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz_"
IDENT_CHARS: str = IDENT_START + DIGITS


def is_keyword(token: Token, *words: str) -> bool:
    """Check if a token is one of the given keywords."""
    return token.type == TokenType.KEYWORD and token.value in words


def is_operator(token: Token, *symbols: str) -> bool:
    """Check if a token is one of the given operators."""
    return token.type == TokenType.OPERATOR and token.value in symbols
