"""GLPC AST — parse-time node definitions.

Nodes compare and hash by identity (``eq=False``) so the resolver's distance
table can key on the node object itself: two textually equal references in
different scopes are different entries.
"""

from __future__ import annotations

from dataclasses import dataclass

from .tokens import Token


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass(eq=False)
class Expr:
    """Base for all expressions."""


@dataclass(eq=False)
class Assign(Expr):
    """name = value."""

    name: Token
    value: Expr


@dataclass(eq=False)
class Binary(Expr):
    """left op right: arithmetic, comparison or equality."""

    left: Expr
    op: Token
    right: Expr


@dataclass(eq=False)
class Unary(Expr):
    """op right, with op one of "!" or "-"."""

    op: Token
    right: Expr


@dataclass(eq=False)
class Logical(Expr):
    """left and/or right, short-circuiting."""

    left: Expr
    op: Token
    right: Expr


@dataclass(eq=False)
class Grouping(Expr):
    """( expression )."""

    expression: Expr


@dataclass(eq=False)
class Call(Expr):
    """callee(args). paren is the closing ')' for diagnostics."""

    callee: Expr
    paren: Token
    args: list[Expr]


@dataclass(eq=False)
class Get(Expr):
    """obj.name."""

    obj: Expr
    name: Token


@dataclass(eq=False)
class Set(Expr):
    """obj.name = value, or obj[index] = value when index is present.

    For the index form, name is the '[' token.
    """

    obj: Expr
    name: Token
    value: Expr
    index: Expr | None = None


@dataclass(eq=False)
class Index(Expr):
    """obj[index]. bracket is the '[' token."""

    obj: Expr
    bracket: Token
    index: Expr


@dataclass(eq=False)
class ListLit(Expr):
    """[e1, e2, ...]."""

    bracket: Token
    elements: list[Expr]


@dataclass(eq=False)
class Literal(Expr):
    """Number, string, boolean or null literal.

    value is an int, float, str, bool or None.
    """

    token: Token
    value: int | float | str | bool | None


@dataclass(eq=False)
class Variable(Expr):
    name: Token


@dataclass(eq=False)
class This(Expr):
    keyword: Token


@dataclass(eq=False)
class Super(Expr):
    """super.method."""

    keyword: Token
    method: Token


# ============================================================
# STATEMENTS
# ============================================================


@dataclass(eq=False)
class Stmt:
    """Base for all statements."""


@dataclass(eq=False)
class Block(Stmt):
    statements: list[Stmt]


@dataclass(eq=False)
class Break(Stmt):
    keyword: Token


@dataclass(eq=False)
class Continue(Stmt):
    keyword: Token


@dataclass(eq=False)
class Function(Stmt):
    """fn name(params) { body }; also used for methods."""

    name: Token
    params: list[Token]
    body: list[Stmt]


@dataclass(eq=False)
class Class(Stmt):
    """class name : superclass { methods }."""

    name: Token
    superclass: Variable | None
    methods: list[Function]


@dataclass(eq=False)
class Expression(Stmt):
    expression: Expr


@dataclass(eq=False)
class If(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Stmt | None


@dataclass(eq=False)
class Import(Stmt):
    """import "path"; path is the string token."""

    keyword: Token
    path: Token


@dataclass(eq=False)
class For(Stmt):
    """Unified for / while / do-while loop.

    keyword is the introducing 'for', 'while' or 'do' token; a 'do' loop runs
    its body once before the first condition check. A missing condition
    loops until break.
    """

    keyword: Token
    initializer: Stmt | None
    condition: Expr | None
    body: Stmt
    increment: Expr | None

    @property
    def is_do(self) -> bool:
        return self.keyword.kind == "do"


@dataclass(eq=False)
class Return(Stmt):
    keyword: Token
    value: Expr | None


@dataclass(eq=False)
class Var(Stmt):
    name: Token
    initializer: Expr | None
