"""GLPC emitter — renders the AST as parenthesised prefix notation.

Total over the node classes in `glpc/ast.py`; add a branch here whenever a
node is added there.
"""

from __future__ import annotations

from .ast import (
    Assign,
    Binary,
    Block,
    Break,
    Call,
    Class,
    Continue,
    Expr,
    Expression,
    For,
    Function,
    Get,
    Grouping,
    If,
    Import,
    Index,
    ListLit,
    Literal,
    Logical,
    Return,
    Set,
    Stmt,
    Super,
    This,
    Unary,
    Var,
    Variable,
)


def to_sexpr(expr: Expr) -> str:
    """Render one expression, e.g. `a + b * c` as `(+ a (* b c))`."""
    if isinstance(expr, Literal):
        return _literal(expr.value)
    if isinstance(expr, Variable):
        return expr.name.lexeme
    if isinstance(expr, This):
        return "this"
    if isinstance(expr, Super):
        return "super." + expr.method.lexeme
    if isinstance(expr, Assign):
        return _paren("= " + expr.name.lexeme, expr.value)
    if isinstance(expr, Binary):
        return _paren(expr.op.lexeme, expr.left, expr.right)
    if isinstance(expr, Logical):
        return _paren(expr.op.lexeme, expr.left, expr.right)
    if isinstance(expr, Unary):
        return _paren(expr.op.lexeme, expr.right)
    if isinstance(expr, Grouping):
        return _paren("group", expr.expression)
    if isinstance(expr, Call):
        return _paren("call", expr.callee, *expr.args)
    if isinstance(expr, Get):
        return _paren("." + expr.name.lexeme, expr.obj)
    if isinstance(expr, Index):
        return _paren("[]", expr.obj, expr.index)
    if isinstance(expr, Set):
        if expr.index is None:
            target = _paren("." + expr.name.lexeme, expr.obj)
        else:
            target = _paren("[]", expr.obj, expr.index)
        return "(= " + target + " " + to_sexpr(expr.value) + ")"
    if isinstance(expr, ListLit):
        return _paren("list", *expr.elements)
    raise ValueError("cannot emit " + type(expr).__name__)


def stmt_to_sexpr(stmt: Stmt) -> str:
    if isinstance(stmt, Expression):
        return to_sexpr(stmt.expression)
    if isinstance(stmt, Var):
        if stmt.initializer is None:
            return "(var " + stmt.name.lexeme + ")"
        return "(var " + stmt.name.lexeme + " " + to_sexpr(stmt.initializer) + ")"
    if isinstance(stmt, Block):
        return _group("block", [stmt_to_sexpr(s) for s in stmt.statements])
    if isinstance(stmt, If):
        parts = [to_sexpr(stmt.condition), stmt_to_sexpr(stmt.then_branch)]
        if stmt.else_branch is not None:
            parts.append(stmt_to_sexpr(stmt.else_branch))
        return _group("if", parts)
    if isinstance(stmt, For):
        return _loop(stmt)
    if isinstance(stmt, Function):
        params = "(" + " ".join(p.lexeme for p in stmt.params) + ")"
        body = [stmt_to_sexpr(s) for s in stmt.body]
        return _group("fn " + stmt.name.lexeme + " " + params, body)
    if isinstance(stmt, Class):
        head = "class " + stmt.name.lexeme
        if stmt.superclass is not None:
            head += " : " + stmt.superclass.name.lexeme
        return _group(head, [stmt_to_sexpr(m) for m in stmt.methods])
    if isinstance(stmt, Return):
        if stmt.value is None:
            return "(return)"
        return "(return " + to_sexpr(stmt.value) + ")"
    if isinstance(stmt, Break):
        return "(break)"
    if isinstance(stmt, Continue):
        return "(continue)"
    if isinstance(stmt, Import):
        return '(import "' + stmt.path.lexeme + '")'
    raise ValueError("cannot emit " + type(stmt).__name__)


def program_to_sexpr(stmts: list[Stmt]) -> str:
    return "".join(stmt_to_sexpr(s) + "\n" for s in stmts)


def _literal(value: int | float | str | bool | None) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def _paren(name: str, *exprs: Expr) -> str:
    return _group(name, [to_sexpr(e) for e in exprs])


def _group(name: str, parts: list[str]) -> str:
    if not parts:
        return "(" + name + ")"
    return "(" + name + " " + " ".join(parts) + ")"


def _loop(stmt: For) -> str:
    body = stmt_to_sexpr(stmt.body)
    cond = "_" if stmt.condition is None else to_sexpr(stmt.condition)
    if stmt.is_do:
        return _group("do", [body, cond])
    if stmt.keyword.kind == "while":
        return _group("while", [cond, body])
    init = "_" if stmt.initializer is None else stmt_to_sexpr(stmt.initializer)
    incr = "_" if stmt.increment is None else to_sexpr(stmt.increment)
    return _group("for", [init, cond, incr, body])
