"""
Lexical environments for the NovaScript interpreter.

Environments form a tree through their ``parent`` links. A block, loop
iteration or function call gets a child environment that is dropped when
it finishes, unless a closure created inside it keeps it alive.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..errors import error_unresolved_identifier
from ..tokens import SourceSpan


@dataclass(eq=False)
class Environment:
    """
    A single scope containing variable bindings.

    Lookups and assignments that miss here continue in ``parent``; a miss
    at the root is an ``UnresolvedIdentifier`` error. ``None`` (undefined)
    is a legal bound value, so membership is checked with ``in``.
    """
    bindings: Dict[str, Any] = field(default_factory=dict)
    parent: Optional["Environment"] = None
    name: str = "anonymous"  # For debugging

    def define(self, name: str, value: Any) -> None:
        """Bind a name in this scope (shadowing any outer binding)."""
        self.bindings[name] = value

    def lookup(self, name: str, span: Optional[SourceSpan] = None) -> Any:
        """Look up a name in this scope or parent scopes."""
        if name in self.bindings:
            return self.bindings[name]
        if self.parent is not None:
            return self.parent.lookup(name, span)
        raise error_unresolved_identifier(name, span)

    def assign(self, name: str, value: Any, span: Optional[SourceSpan] = None) -> None:
        """
        Update an existing binding.

        Searches up the scope chain to find where the name is defined and
        rebinds it there.
        """
        if name in self.bindings:
            self.bindings[name] = value
            return
        if self.parent is not None:
            self.parent.assign(name, value, span)
            return
        raise error_unresolved_identifier(name, span)

    def contains(self, name: str) -> bool:
        """Check if a name is bound in this scope or parents."""
        if name in self.bindings:
            return True
        return self.parent is not None and self.parent.contains(name)

    def child(self, name: str = "block") -> "Environment":
        """Create a nested scope."""
        return Environment(parent=self, name=name)

    def __repr__(self) -> str:
        return f"Environment({self.name}, {sorted(self.bindings)})"
