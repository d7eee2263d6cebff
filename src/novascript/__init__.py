"""
NovaScript - a small dynamically typed scripting language.

This module provides:
- Lexer: Tokenizes NovaScript source
- Parser: Builds an AST from tokens
- Interpreter: Walks the AST against a chain of environments
- Builtins: Default host bindings such as print

Usage:
    from novascript import interpret

    result = interpret('''
        var rect = { size: { width: 30 } }
        func area(w, h = 2)
            return w * h
        end
        print("area: %i", area(rect.size.width))
    ''')
    if not result.success:
        print(result.format_error())

Host callables are passed as bindings and receive script values as
positional arguments:

    result = interpret('log("hi")', bindings={"log": my_logger})
"""

__version__ = "0.3.0"

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    # Base
    AstNode,
    AstVisitor,
    # Expressions
    Expression,
    Literal,
    Identifier,
    BinaryOp,
    UnaryOp,
    Assignment,
    FunctionCall,
    MemberAccess,
    ArrayLiteral,
    ObjectLiteral,
    # Statements
    Statement,
    Block,
    LabelStatement,
    VarDecl,
    TryStatement,
    ForEachStatement,
    ForStatement,
    WhileStatement,
    IfStatement,
    JmpStatement,
    Parameter,
    FunctionDef,
    MacroDef,
    ReturnStatement,
    ImportStatement,
    ExpressionStatement,
    # Program
    Program,
    # Utilities
    PrintVisitor,
    format_ast,
    print_ast,
)

from .errors import (
    Diagnostic,
    ErrorSeverity,
    DiagnosticCollector,
    NovaError,
    LexError,
    ParseError,
    NovaRuntimeError,
    UnresolvedIdentifier,
    TypeMismatch,
    NotCallable,
    NotAnArray,
    NotAssignable,
    InvalidLoopStep,
    HostError,
    ConfigError,
)

from .runtime import (
    Interpreter,
    ExecutionResult,
    Environment,
    Function,
    ErrorValue,
    BuiltinFunction,
    BuiltinRegistry,
    default_bindings,
    sprintf,
    display,
    type_name,
    interpret,
)

from .config import (
    NovaConfig,
    load_config,
)

__all__ = [
    "__version__",
    # Tokens
    "Token",
    "TokenType",
    "SourceLocation",
    "SourceSpan",
    "KEYWORDS",
    # Lexer
    "Lexer",
    "tokenize",
    # Parser
    "Parser",
    "parse",
    # AST
    "AstNode",
    "AstVisitor",
    "Expression",
    "Literal",
    "Identifier",
    "BinaryOp",
    "UnaryOp",
    "Assignment",
    "FunctionCall",
    "MemberAccess",
    "ArrayLiteral",
    "ObjectLiteral",
    "Statement",
    "Block",
    "LabelStatement",
    "VarDecl",
    "TryStatement",
    "ForEachStatement",
    "ForStatement",
    "WhileStatement",
    "IfStatement",
    "JmpStatement",
    "Parameter",
    "FunctionDef",
    "MacroDef",
    "ReturnStatement",
    "ImportStatement",
    "ExpressionStatement",
    "Program",
    "PrintVisitor",
    "format_ast",
    "print_ast",
    # Errors
    "Diagnostic",
    "ErrorSeverity",
    "DiagnosticCollector",
    "NovaError",
    "LexError",
    "ParseError",
    "NovaRuntimeError",
    "UnresolvedIdentifier",
    "TypeMismatch",
    "NotCallable",
    "NotAnArray",
    "NotAssignable",
    "InvalidLoopStep",
    "HostError",
    "ConfigError",
    # Runtime
    "Interpreter",
    "ExecutionResult",
    "Environment",
    "Function",
    "ErrorValue",
    "BuiltinFunction",
    "BuiltinRegistry",
    "default_bindings",
    "sprintf",
    "display",
    "type_name",
    "interpret",
    # Config
    "NovaConfig",
    "load_config",
]
