"""
Recursive descent parser for NovaScript.

Converts a token list into a ``Program`` AST. Blocks have no delimiters of
their own: each construct parses statements until the next token is one of
its terminator keywords (``else``/``end``, ``errored``, ``end``), which is
left for the construct itself to consume.
"""

from typing import List, Optional, Sequence
from .tokens import (
    Token, TokenType, SourceSpan, TYPE_NAMES, is_keyword, is_operator,
)
from .ast import (
    # Expressions
    Expression, Literal, Identifier, BinaryOp, UnaryOp, Assignment,
    FunctionCall, MemberAccess, ArrayLiteral, ObjectLiteral,
    # Statements
    Statement, Block, LabelStatement, VarDecl, TryStatement,
    ForEachStatement, ForStatement, WhileStatement, IfStatement,
    JmpStatement, Parameter, FunctionDef, MacroDef, ReturnStatement,
    ImportStatement, ExpressionStatement,
    Program,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_object_key,
)


class Parser:
    """
    Recursive descent parser for NovaScript.

    Usage:
        parser = Parser(tokens)
        program = parser.parse_program()

    Expressions use precedence climbing for the binary levels:
        Lowest:  ||
                 &&
                 == !=
                 < <= > >=
                 + -
        Highest: * /
    Assignment sits below all of them and is right-associative; prefix
    unary - and ! bind tighter than any binary operator.
    """

    # Operator precedence levels (higher = tighter binding), all left-associative
    PRECEDENCE = {
        "||": 1,
        "&&": 2,
        "==": 3,
        "!=": 3,
        "<": 4,
        "<=": 4,
        ">": 4,
        ">=": 4,
        "+": 5,
        "-": 5,
        "*": 6,
        "/": 6,
    }

    UNARY_OPERATORS = ("-", "!")

    def __init__(self, tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None):
        if not tokens or tokens[-1].type != TokenType.EOF:
            raise ValueError("token list must end with an EOF token")
        self.tokens = tokens
        self.filename = filename
        self.source_lines = source.splitlines() if source else []
        self.pos = 0
        self.macros: dict = {}
        self.labels: List[str] = []

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token (one token of lookahead)."""
        return self.tokens[self.pos]

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _check_keyword(self, *words: str) -> bool:
        return is_keyword(self._current(), *words)

    def _check_operator(self, *symbols: str) -> bool:
        return is_operator(self._current(), *symbols)

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _consume_keyword(self, word: str) -> Token:
        if self._check_keyword(word):
            return self._advance()
        self._error(f"'{word}'")

    def _consume_operator(self, symbol: str) -> Token:
        if self._check_operator(symbol):
            return self._advance()
        self._error(f"'{symbol}'")

    def _match_operator(self, symbol: str) -> Optional[Token]:
        """Consume the operator if it is next."""
        if self._check_operator(symbol):
            return self._advance()
        return None

    def _source_line(self, token: Token) -> Optional[str]:
        line = token.span.start.line
        if 1 <= line <= len(self.source_lines):
            return self.source_lines[line - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(expected, str(token), token.span, self._source_line(token))

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        end_token = self.tokens[max(0, self.pos - 1)]
        return SourceSpan(start.span.start, end_token.span.end)

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _parse_expression(self) -> Expression:
        """Parse an expression (assignment is the loosest level)."""
        return self._parse_assignment()

    def _parse_assignment(self) -> Expression:
        """Parse `target = value`, right-associative."""
        target = self._parse_binary_expr(1)

        if not self._check_operator("="):
            return target

        self._advance()  # consume '='
        value = self._parse_assignment()
        return Assignment(
            span=SourceSpan(target.span.start, value.span.end),
            target=target,
            value=value,
        )

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            if op_token.type != TokenType.OPERATOR:
                break
            precedence = self.PRECEDENCE.get(op_token.value)
            if precedence is None or precedence < min_precedence:
                break

            self._advance()  # consume operator
            right = self._parse_binary_expr(precedence + 1)

            left = BinaryOp(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.value,
                right=right,
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse prefix unary expressions (- !)."""
        if self._check_operator(*self.UNARY_OPERATORS):
            op = self._advance()
            operand = self._parse_unary_expr()
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.value,
                operand=operand,
            )

        return self._parse_postfix_expr()

    def _parse_postfix_expr(self) -> Expression:
        """Parse a primary followed by any number of `.property` accesses."""
        start = self._current()
        expr = self._parse_primary_expr()

        while self._match_operator("."):
            member = self._consume(TokenType.IDENTIFIER, "property name").value
            expr = MemberAccess(
                span=self._span_from(start),
                object=expr,
                member=member,
            )

        return expr

    def _parse_primary_expr(self) -> Expression:
        """Parse primary expressions (literals, identifiers, calls, grouped)."""
        token = self._current()

        if token.type in (TokenType.NUMBER, TokenType.STRING, TokenType.BOOLEAN):
            self._advance()
            return Literal(span=token.span, value=token.value)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if self._check_operator("("):
                return self._parse_call(token)
            return Identifier(span=token.span, name=token.value)

        if is_operator(token, "("):
            self._advance()
            expr = self._parse_expression()
            self._consume_operator(")")
            return expr

        if is_operator(token, "["):
            return self._parse_array_literal()

        if is_operator(token, "{"):
            return self._parse_object_literal()

        self._error("expression")

    def _parse_arguments(self, closing: str) -> List[Expression]:
        """Parse a comma-separated expression list up to the closing operator."""
        items = []
        if not self._check_operator(closing):
            items.append(self._parse_expression())
            while self._match_operator(","):
                items.append(self._parse_expression())
        self._consume_operator(closing)
        return items

    def _parse_call(self, name_token: Token) -> FunctionCall:
        """Parse call arguments after a bare identifier."""
        self._advance()  # consume '('
        args = self._parse_arguments(")")
        return FunctionCall(
            span=self._span_from(name_token),
            name=name_token.value,
            arguments=args,
        )

    def _parse_array_literal(self) -> ArrayLiteral:
        start = self._advance()  # consume '['
        elements = self._parse_arguments("]")
        return ArrayLiteral(span=self._span_from(start), elements=elements)

    def _parse_object_key(self) -> str:
        token = self._current()
        if token.type not in (TokenType.IDENTIFIER, TokenType.STRING):
            if token.type == TokenType.EOF:
                raise error_unexpected_eof("identifier or string as object key", token.span)
            raise error_invalid_object_key(str(token), token.span, self._source_line(token))
        self._advance()
        return token.value

    def _parse_object_literal(self) -> ObjectLiteral:
        """Parse an object literal { key: value, ... }; keys are identifiers or strings."""
        start = self._advance()  # consume '{'
        entries = {}

        if not self._check_operator("}"):
            while True:
                key = self._parse_object_key()
                self._consume_operator(":")
                entries[key] = self._parse_expression()
                if not self._match_operator(","):
                    break

        self._consume_operator("}")
        return ObjectLiteral(span=self._span_from(start), entries=entries)

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_block(self, terminators: Sequence[str] = ()) -> Block:
        """Parse statements until a terminator keyword (not consumed) or EOF."""
        start = self._current()
        statements = []

        while not self._is_at_end() and not self._check_keyword(*terminators):
            statements.append(self._parse_statement())

        return Block(span=self._span_from(start), statements=statements)

    def _parse_statement(self) -> Statement:
        """Parse a statement."""
        token = self._current()

        if token.type == TokenType.KEYWORD:
            handler = self._STATEMENT_HANDLERS.get(token.value)
            if handler is not None:
                return handler(self)
            # 'end', 'else', 'do', ... out of place
            self._error("statement")

        expr = self._parse_expression()
        return ExpressionStatement(span=expr.span, expression=expr)

    def _parse_label(self) -> LabelStatement:
        start = self._advance()  # consume 'label'
        name = self._consume(TokenType.IDENTIFIER, "label name").value
        self.labels.append(name)
        return LabelStatement(span=self._span_from(start), name=name)

    def _parse_var_decl(self) -> VarDecl:
        """Parse `var name [type] [#modifier] = expr`."""
        start = self._advance()  # consume 'var'
        name = self._consume(TokenType.IDENTIFIER, "variable name").value

        type_annotation = None
        current = self._current()
        if current.type == TokenType.IDENTIFIER and current.value in TYPE_NAMES:
            type_annotation = self._advance().value

        modifier = None
        if self._match_operator("#"):
            modifier = self._consume(TokenType.IDENTIFIER, "modifier name").value

        self._consume_operator("=")
        initializer = self._parse_expression()

        return VarDecl(
            span=self._span_from(start),
            name=name,
            type_annotation=type_annotation,
            modifier=modifier,
            initializer=initializer,
        )

    def _parse_try(self) -> TryStatement:
        start = self._advance()  # consume 'try'
        try_block = self._parse_block(["errored"])
        self._consume_keyword("errored")
        error_name = self._consume(TokenType.IDENTIFIER, "error variable name").value
        catch_block = self._parse_block(["end"])
        self._consume_keyword("end")
        return TryStatement(
            span=self._span_from(start),
            try_block=try_block,
            error_name=error_name,
            catch_block=catch_block,
        )

    def _parse_for_each(self) -> ForEachStatement:
        start = self._advance()  # consume 'forEach'
        variable = self._consume(TokenType.IDENTIFIER, "loop variable name").value
        self._consume_keyword("in")
        iterable = self._parse_expression()
        self._consume_keyword("do")
        body = self._parse_block(["end"])
        self._consume_keyword("end")
        return ForEachStatement(
            span=self._span_from(start),
            variable=variable,
            iterable=iterable,
            body=body,
        )

    def _parse_for(self) -> ForStatement:
        start = self._advance()  # consume 'for'
        variable = self._consume(TokenType.IDENTIFIER, "loop variable name").value
        self._consume_operator("=")
        # Bounds sit below assignment so that `for i = 1, 3` is not read as i = (1, 3)
        start_expr = self._parse_binary_expr(1)
        self._consume_operator(",")
        end_expr = self._parse_binary_expr(1)
        step_expr = None
        if self._match_operator(","):
            step_expr = self._parse_binary_expr(1)
        self._consume_keyword("do")
        body = self._parse_block(["end"])
        self._consume_keyword("end")
        return ForStatement(
            span=self._span_from(start),
            variable=variable,
            start=start_expr,
            end=end_expr,
            step=step_expr,
            body=body,
        )

    def _parse_while(self) -> WhileStatement:
        start = self._advance()  # consume 'while'
        condition = self._parse_expression()
        body = self._parse_block(["end"])
        self._consume_keyword("end")
        return WhileStatement(span=self._span_from(start), condition=condition, body=body)

    def _parse_if(self) -> IfStatement:
        start = self._advance()  # consume 'if'
        condition = self._parse_expression()
        then_branch = self._parse_block(["else", "end"])
        else_branch = None
        if self._check_keyword("else"):
            self._advance()
            else_branch = self._parse_block(["end"])
        self._consume_keyword("end")
        return IfStatement(
            span=self._span_from(start),
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
        )

    def _parse_jmp(self) -> JmpStatement:
        start = self._advance()  # consume 'jmp'
        target = self._parse_expression()
        return JmpStatement(span=self._span_from(start), target=target)

    def _parse_parameter(self) -> Parameter:
        """Parse a function parameter with an optional `= default`."""
        start = self._current()
        name = self._consume(TokenType.IDENTIFIER, "parameter name").value

        default_value = None
        if self._match_operator("="):
            default_value = self._parse_binary_expr(1)

        return Parameter(span=self._span_from(start), name=name, default_value=default_value)

    def _parse_function_def(self) -> FunctionDef:
        """Parse `func name(params) <block> end`."""
        start = self._advance()  # consume 'func'
        name = self._consume(TokenType.IDENTIFIER, "function name").value

        self._consume_operator("(")
        parameters = []
        if not self._check_operator(")"):
            parameters.append(self._parse_parameter())
            while self._match_operator(","):
                parameters.append(self._parse_parameter())
        self._consume_operator(")")

        body = self._parse_block(["end"])
        self._consume_keyword("end")

        return FunctionDef(
            span=self._span_from(start),
            name=name,
            parameters=parameters,
            body=body,
        )

    def _parse_macro_def(self) -> MacroDef:
        """Parse `def name(params) <block> end` into the macro table."""
        start = self._advance()  # consume 'def'
        name = self._consume(TokenType.IDENTIFIER, "macro name").value

        self._consume_operator("(")
        parameters = []
        if not self._check_operator(")"):
            parameters.append(self._consume(TokenType.IDENTIFIER, "parameter name").value)
            while self._match_operator(","):
                parameters.append(self._consume(TokenType.IDENTIFIER, "parameter name").value)
        self._consume_operator(")")

        body = self._parse_block(["end"])
        self._consume_keyword("end")

        macro = MacroDef(span=self._span_from(start), name=name, parameters=parameters, body=body)
        self.macros[name] = macro
        return macro

    def _parse_return(self) -> ReturnStatement:
        """Parse `return [expr]`; a keyword or EOF next means no value."""
        start = self._advance()  # consume 'return'
        value = None
        if not self._is_at_end() and not self._check(TokenType.KEYWORD):
            value = self._parse_expression()
        return ReturnStatement(span=self._span_from(start), value=value)

    def _parse_import(self) -> ImportStatement:
        start = self._advance()  # consume 'import'
        path = self._consume(TokenType.STRING, "string").value
        return ImportStatement(span=self._span_from(start), path=path)

    _STATEMENT_HANDLERS = {
        "label": _parse_label,
        "var": _parse_var_decl,
        "try": _parse_try,
        "forEach": _parse_for_each,
        "for": _parse_for,
        "while": _parse_while,
        "if": _parse_if,
        "jmp": _parse_jmp,
        "func": _parse_function_def,
        "def": _parse_macro_def,
        "return": _parse_return,
        "import": _parse_import,
    }

    # =========================================================================
    # Program
    # =========================================================================

    def parse_program(self) -> Program:
        """Parse the whole token list into a Program."""
        start = self._current()
        block = self._parse_block()
        return Program(
            span=self._span_from(start),
            statements=block.statements,
            macros=self.macros,
            labels=self.labels,
        )


def parse(tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None) -> Program:
    """
    Convenience function to parse tokens into a Program.

    Args:
        tokens: Token list from the lexer (must end with EOF)
        filename: Optional filename for error messages
        source: Original source, used to quote lines in diagnostics

    Returns:
        The parsed Program

    Raises:
        ParseError: If the token list is not a valid program
    """
    parser = Parser(tokens, filename, source)
    return parser.parse_program()
