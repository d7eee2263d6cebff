"""
Abstract Syntax Tree (AST) node definitions for NovaScript.

The AST is a closed set of statement and expression nodes produced by the
parser and walked by the interpreter. Nodes own their children exclusively
and are never mutated after parsing.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Union, Any
from abc import ABC
from .tokens import SourceSpan


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class Literal(Expression):
    """A literal value (number, string, boolean)."""
    value: Union[float, str, bool]


@dataclass
class Identifier(Expression):
    """A variable or function name reference."""
    name: str


@dataclass
class BinaryOp(Expression):
    """A binary operation (e.g., a + b, x && y)."""
    left: Expression
    operator: str
    right: Expression


@dataclass
class UnaryOp(Expression):
    """A prefix unary operation (-n, !x)."""
    operator: str
    operand: Expression


@dataclass
class Assignment(Expression):
    """An assignment (right-associative); yields the assigned value."""
    target: Expression  # Identifier or MemberAccess; anything else fails at run time
    value: Expression


@dataclass
class FunctionCall(Expression):
    """A call by bare name, e.g. print(x). Arbitrary callees are not allowed."""
    name: str
    arguments: List[Expression]


@dataclass
class MemberAccess(Expression):
    """Property access (e.g., rect.size.width)."""
    object: Expression
    member: str


@dataclass
class ArrayLiteral(Expression):
    """An array literal (e.g., [1, 2, 3])."""
    elements: List[Expression]


@dataclass
class ObjectLiteral(Expression):
    """An object literal { key: value, ... } with keys in source order."""
    entries: Dict[str, Expression]


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class Block(AstNode):
    """A sequence of statements ending before a terminator keyword."""
    statements: List[Statement]


@dataclass
class LabelStatement(Statement):
    """label name"""
    name: str


@dataclass
class VarDecl(Statement):
    """A variable declaration.

    Syntax:
        var name [string|number|boolean|object] [#modifier] = expr

    The modifier is carried as metadata only.
    """
    name: str
    type_annotation: Optional[str]
    modifier: Optional[str]
    initializer: Expression


@dataclass
class TryStatement(Statement):
    """try <block> errored name <block> end"""
    try_block: Block
    error_name: str
    catch_block: Block


@dataclass
class ForEachStatement(Statement):
    """forEach name in expr do <block> end"""
    variable: str
    iterable: Expression
    body: Block


@dataclass
class ForStatement(Statement):
    """for name = start, end [, step] do <block> end (end is inclusive)"""
    variable: str
    start: Expression
    end: Expression
    step: Optional[Expression]
    body: Block


@dataclass
class WhileStatement(Statement):
    """while condition <block> end"""
    condition: Expression
    body: Block


@dataclass
class IfStatement(Statement):
    """if condition <block> [else <block>] end"""
    condition: Expression
    then_branch: Block
    else_branch: Optional[Block] = None


@dataclass
class JmpStatement(Statement):
    """jmp expr -- the operand is evaluated, no control transfer happens."""
    target: Expression


@dataclass
class Parameter(AstNode):
    """A function parameter with an optional default expression."""
    name: str
    default_value: Optional[Expression] = None


@dataclass
class FunctionDef(Statement):
    """func name(param [= default], ...) <block> end"""
    name: str
    parameters: List[Parameter]
    body: Block


@dataclass
class MacroDef(Statement):
    """def name(param, ...) <block> end -- registered, never expanded."""
    name: str
    parameters: List[str]
    body: Block


@dataclass
class ReturnStatement(Statement):
    """return [expr]"""
    value: Optional[Expression] = None


@dataclass
class ImportStatement(Statement):
    """import "path" -- accepted and ignored."""
    path: str


@dataclass
class ExpressionStatement(Statement):
    """An expression used as a statement."""
    expression: Expression


# =============================================================================
# Program
# =============================================================================

@dataclass
class Program(AstNode):
    """A complete parsed script.

    ``macros`` is the named table of ``def`` declarations found anywhere in
    the script (last definition wins); ``labels`` lists label names in
    source order.
    """
    statements: List[Statement]
    macros: Dict[str, MacroDef] = field(default_factory=dict)
    labels: List[str] = field(default_factory=list)

    @property
    def functions(self) -> List[FunctionDef]:
        """Top-level function declarations."""
        return [s for s in self.statements if isinstance(s, FunctionDef)]


# =============================================================================
# Visitor Helpers
# =============================================================================

class PrintVisitor(AstVisitor):
    """Debug visitor that renders the AST structure as indented text."""

    def __init__(self, indent: int = 0, lines: Optional[List[str]] = None):
        self.indent = indent
        self.lines = lines if lines is not None else []

    def _emit(self, text: str) -> None:
        self.lines.append("  " * self.indent + text)

    def _child(self) -> "PrintVisitor":
        return PrintVisitor(self.indent + 2, self.lines)

    def generic_visit(self, node: AstNode) -> None:
        self._emit(f"{node.__class__.__name__}")
        for name, value in node.__dict__.items():
            if name == "span":
                continue
            if isinstance(value, AstNode):
                self._emit(f"  {name}:")
                value.accept(self._child())
            elif isinstance(value, list):
                self._emit(f"  {name}: [")
                for item in value:
                    if isinstance(item, AstNode):
                        item.accept(self._child())
                    else:
                        self._emit(f"    {item!r}")
                self._emit("  ]")
            elif isinstance(value, dict):
                self._emit(f"  {name}: {{")
                for key, item in value.items():
                    self._emit(f"    {key!r}:")
                    if isinstance(item, AstNode):
                        item.accept(self._child())
                self._emit("  }")
            else:
                self._emit(f"  {name}: {value!r}")


def format_ast(node: AstNode) -> str:
    """Render an AST node as indented text."""
    visitor = PrintVisitor()
    node.accept(visitor)
    return "\n".join(visitor.lines)


def print_ast(node: AstNode) -> None:
    """Print an AST node for debugging."""
    print(format_ast(node))
