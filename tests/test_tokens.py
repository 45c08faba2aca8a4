"""Tests for the GLPC tokenizer."""

from glpc.tokens import (
    TK_EOF,
    TK_FLOAT,
    TK_IDENT,
    TK_ILLEGAL,
    TK_INT,
    TK_STRING,
    TK_UNTERMINATED,
    tokenize,
)


def _kinds(source: str) -> list[str]:
    return [t.kind for t in tokenize(source)]


def _lexemes(source: str) -> list[str]:
    return [t.lexeme for t in tokenize(source)]


# ── Basics ──


def test_empty_source_is_just_eof():
    tokens = tokenize("")
    assert len(tokens) == 1
    assert tokens[0].kind == TK_EOF
    assert tokens[0].line == 1


def test_keywords_and_identifiers():
    assert _kinds("var x fn classy class") == [
        "var",
        TK_IDENT,
        "fn",
        TK_IDENT,
        "class",
        TK_EOF,
    ]


def test_print_is_a_keyword():
    assert _kinds("print(1);")[0] == "print"


def test_numbers():
    tokens = tokenize("12 3.5 7.")
    assert [(t.kind, t.lexeme) for t in tokens[:-1]] == [
        (TK_INT, "12"),
        (TK_FLOAT, "3.5"),
        (TK_INT, "7"),
        (".", "."),
    ]


def test_greedy_operators():
    assert _lexemes("a ~/= b ~/ c != d == e <= f >= g")[:-1] == [
        "a",
        "~/=",
        "b",
        "~/",
        "c",
        "!=",
        "d",
        "==",
        "e",
        "<=",
        "f",
        ">=",
        "g",
    ]


def test_compound_assignment_operators():
    assert _kinds("+= -= *= /= %=")[:-1] == ["+=", "-=", "*=", "/=", "%="]


# ── Strings ──


def test_quoted_strings_drop_delimiters():
    tokens = tokenize("\"double\" 'single'")
    assert [(t.kind, t.lexeme) for t in tokens[:-1]] == [
        (TK_STRING, "double"),
        (TK_STRING, "single"),
    ]


def test_backtick_string_spans_lines():
    tokens = tokenize("`one\ntwo` x")
    assert tokens[0].kind == TK_STRING
    assert tokens[0].lexeme == "one\ntwo"
    assert tokens[0].line == 1
    assert tokens[1].line == 2


def test_unterminated_string_stops_at_newline():
    tokens = tokenize('"abc\nvar')
    assert tokens[0].kind == TK_UNTERMINATED
    assert tokens[0].lexeme == '"abc'
    assert tokens[1].kind == "var"
    assert tokens[1].line == 2


def test_unterminated_backtick_runs_to_end():
    tokens = tokenize("`abc\ndef")
    assert tokens[0].kind == TK_UNTERMINATED
    assert tokens[0].lexeme == "`abc\ndef"
    assert tokens[-1].kind == TK_EOF
    assert tokens[-1].line == 2


# ── Layout ──


def test_comments_are_skipped():
    assert _kinds("a // comment ; b\nc") == [TK_IDENT, TK_IDENT, TK_EOF]


def test_line_numbers():
    tokens = tokenize("a\n\nb\r\n  c")
    assert [t.line for t in tokens] == [1, 3, 4, 4]


def test_illegal_character():
    tokens = tokenize("a @ b")
    assert tokens[1].kind == TK_ILLEGAL
    assert tokens[1].lexeme == "@"
    assert tokens[2].kind == TK_IDENT


def test_tokens_carry_file():
    tokens = tokenize("x", "lib/util.gpc")
    assert all(t.file == "lib/util.gpc" for t in tokens)
