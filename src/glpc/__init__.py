"""GLPC scripting language — public API."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .ast import Expr, Stmt
from .emit import program_to_sexpr, to_sexpr
from .errors import (
    BuiltinError as BuiltinError,
    GlpcError as GlpcError,
    GlpcRuntimeError as GlpcRuntimeError,
    GlpcSyntaxError as GlpcSyntaxError,
    ParseError as ParseError,
)
from .parse import Parser
from .runtime import Interpreter as Interpreter, ModuleCache as ModuleCache
from .runtime import RunResult as RunResult, run as run
from .tokens import Token as Token, tokenize as tokenize

logging.getLogger(__name__).addHandler(logging.NullHandler())


@dataclass
class Program:
    statements: list[Stmt]
    distances: dict[Expr, int]
    errors: list[ParseError]

    @property
    def ok(self) -> bool:
        return not self.errors


def parse(source: str, file: str = "<script>") -> Program:
    """Parse GLPC source; syntax errors are collected, not raised."""
    stmts, distances, errors = Parser(tokenize(source, file)).parse()
    return Program(stmts, distances, errors)


def emit(program: Program) -> str:
    """Render a parsed program as one s-expression per statement."""
    return program_to_sexpr(program.statements)


__all__ = [
    "BuiltinError",
    "GlpcError",
    "GlpcRuntimeError",
    "GlpcSyntaxError",
    "Interpreter",
    "ModuleCache",
    "ParseError",
    "Program",
    "RunResult",
    "Token",
    "emit",
    "parse",
    "run",
    "to_sexpr",
    "tokenize",
]
