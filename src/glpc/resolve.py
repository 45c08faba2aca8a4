"""GLPC scope resolver — static lexical distances for variable references.

The parser drives a Resolver in lock-step with parsing: every scope the
interpreter will create at runtime (block, loop, function call, class `super`
and `this` layers) is mirrored here by begin()/end(). References found in a
local scope get a distance recorded against their AST node; anything else is
left for the global lookup at runtime.
"""

from __future__ import annotations

from .ast import Expr
from .errors import ParseError
from .tokens import Token


class Resolver:
    def __init__(self) -> None:
        self.stack: list[dict[str, bool]] = []
        self.distances: dict[Expr, int] = {}

    def begin(self) -> None:
        self.stack.append({})

    def end(self) -> None:
        if self.stack:
            self.stack.pop()

    def peek(self) -> dict[str, bool] | None:
        if not self.stack:
            return None
        return self.stack[-1]

    def declare(self, name: Token) -> None:
        """Mark name as declared but not yet initialised in the innermost scope."""
        scope = self.peek()
        if scope is None:
            return
        if name.lexeme in scope:
            raise ParseError.at(
                name, "Variable with this name already declared in this scope."
            )
        scope[name.lexeme] = False

    def define(self, name: Token) -> None:
        scope = self.peek()
        if scope is None:
            return
        scope[name.lexeme] = True

    def declare_defined(self, name: str) -> None:
        """Bind an implicit name such as 'this' or 'super' in the innermost scope."""
        scope = self.peek()
        if scope is not None:
            scope[name] = True

    def check_readable(self, name: Token) -> None:
        scope = self.peek()
        if scope is not None and scope.get(name.lexeme) is False:
            raise ParseError.at(
                name, "Cannot read local variable in its own initializer."
            )

    def local(self, expr: Expr, name: Token) -> None:
        for i in range(len(self.stack) - 1, -1, -1):
            if name.lexeme in self.stack[i]:
                self.distances[expr] = len(self.stack) - 1 - i
                return
        # Not found: resolved against the global scope at runtime.
