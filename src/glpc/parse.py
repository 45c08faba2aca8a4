"""GLPC parser — recursive descent, one method per grammar production.

The parser resolves scopes as it goes: every production that opens a runtime
scope opens the matching resolver scope, so parse() hands back the statement
list together with the finished distance table.
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
from .errors import ParseError
from .resolve import Resolver
from .tokens import (
    TK_EOF,
    TK_FLOAT,
    TK_IDENT,
    TK_ILLEGAL,
    TK_INT,
    TK_STRING,
    TK_UNTERMINATED,
    Token,
)

ASSIGN_OPS: set[str] = {"=", "+=", "-=", "*=", "/=", "%=", "~/="}

EQUALITY_OPS: set[str] = {"==", "!="}

COMPARE_OPS: set[str] = {">", ">=", "<", "<="}

ADDITIVE_OPS: set[str] = {"+", "-"}

MULTIPLICATIVE_OPS: set[str] = {"*", "/", "%", "~/"}

# Keywords that start a statement; recovery stops in front of them.
SYNC_KEYWORDS: set[str] = {
    "class",
    "fn",
    "var",
    "for",
    "if",
    "while",
    "print",
    "return",
    "import",
    "do",
}

MAX_ARGS = 32

INT64_MAX = (1 << 63) - 1

# Function kinds
FN_NONE = "none"
FN_FUNCTION = "function"
FN_METHOD = "method"
FN_INITIALIZER = "initializer"

# Class kinds
CLASS_NONE = "none"
CLASS_CLASS = "class"
CLASS_SUBCLASS = "subclass"


class Parser:
    """Recursive descent parser for GLPC."""

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0
        self.errors: list[ParseError] = []
        self.resolver: Resolver = Resolver()
        self.in_loop: bool = False
        self.function_kind: str = FN_NONE
        self.class_kind: str = CLASS_NONE

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.kind != TK_EOF:
            self.pos += 1
        return tok

    def at(self, kind: str) -> bool:
        return self.current().kind == kind

    def at_end(self) -> bool:
        return self.current().kind == TK_EOF

    def match(self, *kinds: str) -> bool:
        if self.current().kind in kinds:
            self.advance()
            return True
        return False

    def expect(self, kind: str, msg: str) -> Token:
        if self.at(kind):
            return self.advance()
        raise self.error(msg)

    def error(self, msg: str) -> ParseError:
        return ParseError.at(self.current(), msg)

    def report(self, tok: Token, msg: str) -> None:
        """Record an error without unwinding the current production."""
        self.errors.append(ParseError.at(tok, msg))

    def synchronize(self) -> None:
        self.advance()
        while not self.at_end():
            if self.previous().kind == ";":
                return
            if self.current().kind in SYNC_KEYWORDS:
                return
            self.advance()

    # ── Resolver glue ────────────────────────────────────────

    def declare(self, name: Token) -> None:
        try:
            self.resolver.declare(name)
        except ParseError as e:
            self.errors.append(e)
        self.resolver.define(name)

    def resolve_read(self, expr: Expr, name: Token) -> None:
        try:
            self.resolver.check_readable(name)
        except ParseError as e:
            self.errors.append(e)
        self.resolver.local(expr, name)

    # ── Top Level ────────────────────────────────────────────

    def parse(self) -> tuple[list[Stmt], dict[Expr, int], list[ParseError]]:
        stmts: list[Stmt] = []
        while not self.at_end():
            stmt = self.declaration()
            if stmt is not None:
                stmts.append(stmt)
        return stmts, self.resolver.distances, self.errors

    def declaration(self) -> Stmt | None:
        """Declaration = ClassDecl | FnDecl | VarDecl | Statement"""
        try:
            if self.match("class"):
                return self.class_declaration()
            if self.match("fn"):
                return self.function(FN_FUNCTION)
            if self.match("var"):
                return self.var_declaration()
            return self.statement()
        except ParseError as e:
            self.errors.append(e)
            self.synchronize()
            return None

    def class_declaration(self) -> Class:
        """ClassDecl = 'class' IDENT ( ':' IDENT )? '{' Method* '}'"""
        name = self.expect(TK_IDENT, "Expect class name.")
        self.declare(name)

        superclass: Variable | None = None
        if self.match(":"):
            super_name = self.expect(TK_IDENT, "Expect superclass name.")
            superclass = Variable(super_name)
            if super_name.lexeme == name.lexeme:
                self.report(super_name, "A class can't inherit from itself.")
            self.resolver.local(superclass, super_name)

        self.expect("{", "Expect '{' before class body.")

        enclosing_class = self.class_kind
        self.class_kind = CLASS_CLASS if superclass is None else CLASS_SUBCLASS
        if superclass is not None:
            self.resolver.begin()
            self.resolver.declare_defined("super")
        self.resolver.begin()
        self.resolver.declare_defined("this")
        methods: list[Function] = []
        try:
            while not self.at("}") and not self.at_end():
                methods.append(self.function(FN_METHOD))
            self.expect("}", "Expect '}' after class body.")
        finally:
            self.resolver.end()
            if superclass is not None:
                self.resolver.end()
            self.class_kind = enclosing_class
        return Class(name, superclass, methods)

    def function(self, kind: str) -> Function:
        """Function = IDENT '(' Params? ')' '{' Declaration* '}'"""
        name = self.expect(TK_IDENT, "Expect " + kind + " name.")
        if kind == FN_FUNCTION:
            # Bound before the body so the function can call itself.
            self.declare(name)
        elif name.lexeme == "init":
            kind = FN_INITIALIZER

        self.expect("(", "Expect '(' after " + kind_label(kind) + " name.")
        params: list[Token] = []
        if not self.at(")"):
            while True:
                if len(params) >= MAX_ARGS:
                    self.report(
                        self.current(),
                        "Cannot have more than " + str(MAX_ARGS) + " parameters.",
                    )
                params.append(self.expect(TK_IDENT, "Expect parameter name."))
                if not self.match(","):
                    break
        self.expect(")", "Expect ')' after parameters.")
        self.expect("{", "Expect '{' before " + kind_label(kind) + " body.")

        enclosing_fn = self.function_kind
        enclosing_loop = self.in_loop
        self.function_kind = kind
        self.in_loop = False
        self.resolver.begin()
        try:
            for param in params:
                self.declare(param)
            body = self.block()
        finally:
            self.resolver.end()
            self.function_kind = enclosing_fn
            self.in_loop = enclosing_loop
        return Function(name, params, body)

    def var_declaration(self) -> Var:
        """VarDecl = 'var' IDENT ( '=' Expr )? ';'"""
        name = self.expect(TK_IDENT, "Expect variable name.")
        try:
            self.resolver.declare(name)
        except ParseError as e:
            self.errors.append(e)
        initializer: Expr | None = None
        if self.match("="):
            initializer = self.expression()
        self.resolver.define(name)
        self.expect(";", "Expect ';' after variable declaration.")
        return Var(name, initializer)

    # ── Statements ───────────────────────────────────────────

    def statement(self) -> Stmt:
        if self.match("{"):
            self.resolver.begin()
            try:
                return Block(self.block())
            finally:
                self.resolver.end()
        if self.match("break"):
            return self.break_statement()
        if self.match("continue"):
            return self.continue_statement()
        if self.match("do"):
            return self.do_statement()
        if self.match("for"):
            return self.for_statement()
        if self.match("if"):
            return self.if_statement()
        if self.match("import"):
            return self.import_statement()
        if self.match("return"):
            return self.return_statement()
        if self.match("while"):
            return self.while_statement()
        return self.expression_statement()

    def block(self) -> list[Stmt]:
        """Block body after '{'; the caller owns the scope."""
        stmts: list[Stmt] = []
        while not self.at("}") and not self.at_end():
            stmt = self.declaration()
            if stmt is not None:
                stmts.append(stmt)
        self.expect("}", "Expect '}' after block.")
        return stmts

    def break_statement(self) -> Break:
        keyword = self.previous()
        if not self.in_loop:
            self.report(keyword, "Cannot use 'break' outside of a loop.")
        self.expect(";", "Expect ';' after 'break'.")
        return Break(keyword)

    def continue_statement(self) -> Continue:
        keyword = self.previous()
        if not self.in_loop:
            self.report(keyword, "Cannot use 'continue' outside of a loop.")
        self.expect(";", "Expect ';' after 'continue'.")
        return Continue(keyword)

    def loop_body(self) -> Stmt:
        enclosing = self.in_loop
        self.in_loop = True
        try:
            return self.statement()
        finally:
            self.in_loop = enclosing

    def do_statement(self) -> For:
        """DoStmt = 'do' Statement 'while' '(' Expr ')' ';'"""
        keyword = self.previous()
        self.resolver.begin()
        try:
            body = self.loop_body()
            self.expect("while", "Expect 'while' after do-while body.")
            self.expect("(", "Expect '(' after 'while'.")
            condition = self.expression()
            self.expect(")", "Expect ')' after while condition.")
            self.expect(";", "Expect ';' after ')'.")
        finally:
            self.resolver.end()
        return For(keyword, None, condition, body, None)

    def for_statement(self) -> For:
        """ForStmt = 'for' '(' ( VarDecl | ExprStmt | ';' ) Expr? ';' Expr? ')' Statement"""
        keyword = self.previous()
        self.expect("(", "Expect '(' after 'for'.")
        self.resolver.begin()
        try:
            initializer: Stmt | None
            if self.match(";"):
                initializer = None
            elif self.match("var"):
                initializer = self.var_declaration()
            else:
                initializer = self.expression_statement()

            condition: Expr | None = None
            if not self.at(";"):
                condition = self.expression()
            self.expect(";", "Expect ';' after loop condition.")

            increment: Expr | None = None
            if not self.at(")"):
                increment = self.expression()
            self.expect(")", "Expect ')' after for clauses.")

            body = self.loop_body()
        finally:
            self.resolver.end()
        return For(keyword, initializer, condition, body, increment)

    def if_statement(self) -> If:
        self.expect("(", "Expect '(' after 'if'.")
        condition = self.expression()
        self.expect(")", "Expect ')' after if condition.")
        then_branch = self.statement()
        else_branch: Stmt | None = None
        if self.match("else"):
            else_branch = self.statement()
        return If(condition, then_branch, else_branch)

    def import_statement(self) -> Import:
        keyword = self.previous()
        path = self.expect(TK_STRING, "Expect file path after 'import'.")
        self.expect(";", "Expect ';' after import path.")
        return Import(keyword, path)

    def return_statement(self) -> Return:
        keyword = self.previous()
        if self.function_kind == FN_NONE:
            self.report(keyword, "Cannot return from top-level code.")
        value: Expr | None = None
        if not self.at(";"):
            if self.function_kind == FN_INITIALIZER:
                self.report(keyword, "Cannot return a value from an initializer.")
            value = self.expression()
        self.expect(";", "Expect ';' after return value.")
        return Return(keyword, value)

    def while_statement(self) -> For:
        keyword = self.previous()
        self.expect("(", "Expect '(' after 'while'.")
        self.resolver.begin()
        try:
            condition = self.expression()
            self.expect(")", "Expect ')' after while condition.")
            body = self.loop_body()
        finally:
            self.resolver.end()
        return For(keyword, None, condition, body, None)

    def expression_statement(self) -> Expression:
        expr = self.expression()
        self.expect(";", "Expect ';' after value.")
        return Expression(expr)

    # ── Expressions ──────────────────────────────────────────

    def expression(self) -> Expr:
        return self.assignment()

    def assignment(self) -> Expr:
        """Assignment = Target AssignOp Assignment | Or

        Compound forms desugar: a += b becomes a = a + b.
        """
        expr = self.logic_or()
        if self.current().kind not in ASSIGN_OPS:
            return expr
        equals = self.advance()
        value = self.assignment()
        if equals.kind != "=":
            op = Token(equals.kind[:-1], equals.lexeme[:-1], equals.file, equals.line)
            value = Binary(expr, op, value)

        if isinstance(expr, Variable):
            assign = Assign(expr.name, value)
            self.resolver.local(assign, expr.name)
            return assign
        if isinstance(expr, Get):
            return Set(expr.obj, expr.name, value)
        if isinstance(expr, Index):
            return Set(expr.obj, expr.bracket, value, expr.index)
        self.report(equals, "Invalid assignment target.")
        return expr

    def logic_or(self) -> Expr:
        """Or = And ( 'or' And )*"""
        left = self.logic_and()
        while self.match("or"):
            op = self.previous()
            right = self.logic_and()
            left = Logical(left, op, right)
        return left

    def logic_and(self) -> Expr:
        """And = Equality ( 'and' Equality )*"""
        left = self.equality()
        while self.match("and"):
            op = self.previous()
            right = self.equality()
            left = Logical(left, op, right)
        return left

    def equality(self) -> Expr:
        """Equality = Comparison ( ( '==' | '!=' ) Comparison )*"""
        left = self.comparison()
        while self.current().kind in EQUALITY_OPS:
            op = self.advance()
            right = self.comparison()
            left = Binary(left, op, right)
        return left

    def comparison(self) -> Expr:
        """Comparison = Additive ( CompOp Additive )*"""
        left = self.additive()
        while self.current().kind in COMPARE_OPS:
            op = self.advance()
            right = self.additive()
            left = Binary(left, op, right)
        return left

    def additive(self) -> Expr:
        """Additive = Multiplicative ( ( '+' | '-' ) Multiplicative )*"""
        left = self.multiplicative()
        while self.current().kind in ADDITIVE_OPS:
            op = self.advance()
            right = self.multiplicative()
            left = Binary(left, op, right)
        return left

    def multiplicative(self) -> Expr:
        """Multiplicative = Unary ( ( '*' | '/' | '%' | '~/' ) Unary )*"""
        left = self.unary()
        while self.current().kind in MULTIPLICATIVE_OPS:
            op = self.advance()
            right = self.unary()
            left = Binary(left, op, right)
        return left

    def unary(self) -> Expr:
        """Unary = ( '!' | '-' ) Unary | Call"""
        if self.current().kind in ("!", "-"):
            op = self.advance()
            return Unary(op, self.unary())
        return self.call()

    def call(self) -> Expr:
        """Call = Primary ( '(' Args? ')' | '.' IDENT | '[' Expr ']' )*"""
        expr = self.primary()
        while True:
            if self.match("("):
                expr = self.finish_call(expr)
            elif self.match("."):
                name = self.expect(TK_IDENT, "Expect property name after '.'.")
                expr = Get(expr, name)
            elif self.match("["):
                bracket = self.previous()
                index = self.expression()
                self.expect("]", "Expect ']' after index.")
                expr = Index(expr, bracket, index)
            else:
                return expr

    def finish_call(self, callee: Expr) -> Call:
        args: list[Expr] = []
        if not self.at(")"):
            while True:
                if len(args) >= MAX_ARGS:
                    self.report(
                        self.current(),
                        "Cannot have more than " + str(MAX_ARGS) + " arguments.",
                    )
                args.append(self.expression())
                if not self.match(","):
                    break
        paren = self.expect(")", "Expect ')' after arguments.")
        return Call(callee, paren, args)

    def primary(self) -> Expr:
        tok = self.current()
        kind = tok.kind

        if kind == "true" or kind == "false":
            self.advance()
            return Literal(tok, kind == "true")
        if kind == "null":
            self.advance()
            return Literal(tok, None)
        if kind == TK_INT or kind == TK_FLOAT:
            self.advance()
            return self.parse_number(tok)
        if kind == TK_STRING:
            self.advance()
            return Literal(tok, tok.lexeme)
        if kind == TK_UNTERMINATED:
            self.advance()
            self.report(tok, "Unterminated string.")
            return Literal(tok, tok.lexeme[1:])
        if kind == TK_IDENT or kind == "print":
            # 'print' is reserved but names the print built-in
            self.advance()
            var = Variable(tok)
            self.resolve_read(var, tok)
            return var
        if kind == "this":
            self.advance()
            this = This(tok)
            if self.class_kind == CLASS_NONE:
                self.report(tok, "Cannot use 'this' outside of a class.")
            self.resolver.local(this, tok)
            return this
        if kind == "super":
            self.advance()
            self.expect(".", "Expect '.' after 'super'.")
            method = self.expect(TK_IDENT, "Expect superclass method name.")
            sup = Super(tok, method)
            if self.class_kind == CLASS_NONE:
                self.report(tok, "Cannot use 'super' outside of a class.")
            elif self.class_kind != CLASS_SUBCLASS:
                self.report(tok, "Cannot use 'super' in a class with no superclass.")
            self.resolver.local(sup, tok)
            return sup
        if kind == "(":
            self.advance()
            expr = self.expression()
            self.expect(")", "Expect ')' after expression.")
            return Grouping(expr)
        if kind == "[":
            self.advance()
            elements: list[Expr] = []
            if not self.at("]"):
                elements.append(self.expression())
                while self.match(","):
                    elements.append(self.expression())
            self.expect("]", "Expect ']' after list values.")
            return ListLit(tok, elements)
        if kind == TK_ILLEGAL:
            raise self.error("Unexpected character.")
        raise self.error("Expect expression.")

    def parse_number(self, tok: Token) -> Literal:
        if tok.kind == TK_FLOAT:
            return Literal(tok, float(tok.lexeme))
        value = int(tok.lexeme)
        if value > INT64_MAX:
            self.report(tok, "Unable to parse value: " + tok.lexeme + ".")
        return Literal(tok, value)


def kind_label(kind: str) -> str:
    if kind == FN_FUNCTION:
        return "function"
    return "method"
