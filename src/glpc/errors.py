"""GLPC diagnostics — syntax, resolution and runtime errors."""

from __future__ import annotations

from .tokens import TK_EOF, Token


class ParseError(Exception):
    """Syntax or resolution error with location info.

    where is the offending lexeme, or "at end" when the parser ran out of
    input. The parser collects these rather than letting them escape.
    """

    def __init__(self, msg: str, line: int, where: str):
        self.msg: str = msg
        self.line: int = line
        self.where: str = where
        super().__init__("On line " + str(line) + ": " + where + " - " + msg)

    @classmethod
    def at(cls, token: Token, msg: str) -> ParseError:
        if token.kind == TK_EOF:
            return cls(msg, token.line, "at end")
        return cls(msg, token.line, token.lexeme)


class GlpcError(Exception):
    """Base error for everything raised out of the GLPC pipeline."""


class GlpcSyntaxError(GlpcError):
    """A program failed to parse; carries every collected ParseError."""

    def __init__(self, errors: list[ParseError], file: str | None = None):
        self.errors = errors
        self.file = file
        noun = "error" if len(errors) == 1 else "errors"
        where = f" in {file}" if file else ""
        super().__init__(f"{len(errors)} syntax {noun} found{where}.")


class GlpcRuntimeError(GlpcError):
    """Runtime failure, tied to the token that triggered it."""

    def __init__(self, token: Token | None, msg: str):
        self.token = token
        self.msg = msg
        super().__init__(msg)

    def __str__(self) -> str:
        if self.token is None:
            return f"[Runtime Error] - {self.msg}"
        return f"[Runtime Error] - line {self.token.line} at {self.token.lexeme!r} - {self.msg}"


class BuiltinError(GlpcRuntimeError):
    """Raised by a native built-in; the call site supplies the token."""

    def __init__(self, msg: str, token: Token | None = None):
        super().__init__(token, msg)
