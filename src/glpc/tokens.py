"""GLPC tokenizer — lexes source into a flat token list."""

from __future__ import annotations


# Token kind constants. Operators and keywords use their own text as kind.
TK_INT = "INT"
TK_FLOAT = "FLOAT"
TK_STRING = "STRING"
TK_UNTERMINATED = "UNTERMINATED_STRING"
TK_IDENT = "IDENT"
TK_ILLEGAL = "ILLEGAL"
TK_EOF = "EOF"

KEYWORDS: set[str] = {
    "and",
    "break",
    "class",
    "continue",
    "do",
    "else",
    "false",
    "fn",
    "for",
    "if",
    "import",
    "null",
    "or",
    "print",
    "return",
    "super",
    "this",
    "true",
    "var",
    "while",
}

# Multi-character operators, sorted by length descending for greedy matching
MULTI_OPS: list[str] = [
    "~/=",
    "~/",
    "!=",
    "==",
    ">=",
    "<=",
    "+=",
    "-=",
    "*=",
    "/=",
    "%=",
]

SINGLE_OPS: set[str] = {
    "+",
    "-",
    "*",
    "/",
    "%",
    "!",
    "=",
    "<",
    ">",
    "(",
    ")",
    "[",
    "]",
    "{",
    "}",
    ",",
    ".",
    ":",
    ";",
}

QUOTES: set[str] = {'"', "'"}


class Token:
    """A token with kind, lexeme and origin."""

    __slots__ = ("kind", "lexeme", "file", "line")

    def __init__(self, kind: str, lexeme: str, file: str, line: int):
        self.kind: str = kind
        self.lexeme: str = lexeme
        self.file: str = file
        self.line: int = line

    def __repr__(self) -> str:
        return (
            "Token("
            + self.kind
            + ", "
            + repr(self.lexeme)
            + ", "
            + repr(self.file)
            + ", "
            + str(self.line)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def tokenize(source: str, file: str = "<script>") -> list[Token]:
    """Tokenize GLPC source into a flat list ending with TK_EOF.

    Lexing never fails: a string missing its closing delimiter becomes a
    TK_UNTERMINATED token and an unknown character a TK_ILLEGAL token, both
    left for the parser to report.
    """
    tokens: list[Token] = []
    pos = 0
    line = 1
    length = len(source)

    while pos < length:
        c = source[pos]

        # Newlines
        if c == "\n":
            pos += 1
            line += 1
            continue

        # Whitespace
        if c == " " or c == "\t" or c == "\r":
            pos += 1
            continue

        # Line comment: //
        if c == "/" and pos + 1 < length and source[pos + 1] == "/":
            while pos < length and source[pos] != "\n":
                pos += 1
            continue

        start_pos = pos
        start_line = line

        # Number: int or float (a trailing '.' without digits is not part of it)
        if _is_digit(c):
            while pos < length and _is_digit(source[pos]):
                pos += 1
            is_float = False
            if (
                pos + 1 < length
                and source[pos] == "."
                and _is_digit(source[pos + 1])
            ):
                is_float = True
                pos += 1
                while pos < length and _is_digit(source[pos]):
                    pos += 1
            raw = source[start_pos:pos]
            tokens.append(Token(TK_FLOAT if is_float else TK_INT, raw, file, start_line))
            continue

        # Quoted string: "..." or '...', single line, no escapes
        if c in QUOTES:
            pos += 1
            while pos < length and source[pos] != c and source[pos] != "\n":
                pos += 1
            if pos >= length or source[pos] == "\n":
                raw = source[start_pos:pos]
                tokens.append(Token(TK_UNTERMINATED, raw, file, start_line))
                continue
            pos += 1  # skip closing quote
            tokens.append(Token(TK_STRING, source[start_pos + 1 : pos - 1], file, start_line))
            continue

        # Raw string: `...`, may span lines
        if c == "`":
            pos += 1
            while pos < length and source[pos] != "`":
                if source[pos] == "\n":
                    line += 1
                pos += 1
            if pos >= length:
                raw = source[start_pos:pos]
                tokens.append(Token(TK_UNTERMINATED, raw, file, start_line))
                continue
            pos += 1  # skip closing backtick
            tokens.append(Token(TK_STRING, source[start_pos + 1 : pos - 1], file, start_line))
            continue

        # Identifier or keyword
        if _is_alpha(c):
            while pos < length and _is_alnum(source[pos]):
                pos += 1
            word = source[start_pos:pos]
            if word in KEYWORDS:
                tokens.append(Token(word, word, file, start_line))
            else:
                tokens.append(Token(TK_IDENT, word, file, start_line))
            continue

        # Multi-character operators
        matched = False
        for op in MULTI_OPS:
            op_len = len(op)
            if pos + op_len <= length and source[pos : pos + op_len] == op:
                tokens.append(Token(op, op, file, start_line))
                pos += op_len
                matched = True
                break
        if matched:
            continue

        # Single-character operators
        if c in SINGLE_OPS:
            tokens.append(Token(c, c, file, start_line))
            pos += 1
            continue

        tokens.append(Token(TK_ILLEGAL, c, file, start_line))
        pos += 1

    tokens.append(Token(TK_EOF, "", file, line))
    return tokens
