"""
Lexer for NovaScript.

Converts source text into a flat list of tokens for the parser.
Supports:
- Line comments (//) and block comments (/* */, not nested, may run to EOF)
- Decimal numerals with at most one decimal point
- Double-quoted strings where a backslash takes the next character literally
- Keywords, identifiers and the boolean literals true/false
- Two-character operators (&& || == != >= <=) and single-character punctuation
"""

from typing import List, Optional, Iterator
from .tokens import (
    Token, TokenType, SourceLocation, SourceSpan,
    KEYWORDS, BOOLEANS, DOUBLE_CHAR_OPERATORS, SINGLE_CHAR_OPERATORS,
    DIGITS, IDENT_START, IDENT_CHARS,
)
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_invalid_number_literal,
)


class Lexer:
    """
    Tokenizer for NovaScript.

    Newlines are insignificant: statements are delimited by their keywords
    and the parser's block terminators, so whitespace is skipped wholesale.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        for token in lexer:
            process(token)
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None  # Cached line list

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Create a span from start to current position."""
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        """Check if we've reached end of source."""
        return self.pos >= len(self.source)

    def _skip_comment(self) -> None:
        """Skip a line comment (// to end of line)."""
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_block_comment(self) -> None:
        """Skip /* ... */; an unclosed comment swallows the rest of the input."""
        self._advance()  # consume '/'
        self._advance()  # consume '*'
        while not self._is_at_end():
            if self._peek() == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                return
            self._advance()

    def _skip_whitespace_and_comments(self) -> None:
        while not self._is_at_end():
            ch = self._peek()
            if ch.isspace():
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                self._skip_comment()
            elif ch == '/' and self._peek(1) == '*':
                self._skip_block_comment()
            else:
                break

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        """Create a token."""
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal."""
        start = self._location()
        self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != '"':
            if self._peek() == '\\' and self.pos + 1 < len(self.source):
                self._advance()  # the escaped character is taken literally
            chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING, ''.join(chars), start)

    def _scan_number(self) -> Token:
        """Scan a decimal numeral."""
        start = self._location()

        while self._peek() in DIGITS or self._peek() == '.':
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        if lexeme.count('.') > 1:
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )
        return self._make_token(TokenType.NUMBER, float(lexeme), start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan an identifier, keyword or boolean literal."""
        start = self._location()

        while self._peek() in IDENT_CHARS:
            self._advance()

        lexeme = self.source[start.offset:self.pos]

        if lexeme in BOOLEANS:
            return self._make_token(TokenType.BOOLEAN, BOOLEANS[lexeme], start, lexeme)
        if lexeme in KEYWORDS:
            return self._make_token(TokenType.KEYWORD, lexeme, start, lexeme)
        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_whitespace_and_comments()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        if ch == '"':
            return self._scan_string()

        if ch in DIGITS:
            return self._scan_number()

        if ch in IDENT_START:
            return self._scan_identifier_or_keyword()

        pair = ch + self._peek(1)
        if pair in DOUBLE_CHAR_OPERATORS:
            self._advance()
            self._advance()
            return self._make_token(TokenType.OPERATOR, pair, start)

        if ch in SINGLE_CHAR_OPERATORS:
            self._advance()
            return self._make_token(TokenType.OPERATOR, ch, start)

        raise error_unexpected_character(
            ch, SourceSpan(start, SourceLocation(start.line, start.column + 1,
                                                 start.offset + 1, start.filename)),
            self.get_source_line(start.line)
        )

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens."""
        while True:
            token = self._scan_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens, always terminated by an EOF token

    Raises:
        LexError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
