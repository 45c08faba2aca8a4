"""GLPC runtime — tree-walking evaluation of resolved programs.

Statements return an Outcome rather than raising for break/continue/return;
exceptions are reserved for genuine runtime errors. Variable access uses the
distances the parser recorded; names with no distance are looked up in the
program's top-level scope, then among the builtins.
"""

from __future__ import annotations

import io
import logging
import math
import os
import sys
from dataclasses import dataclass, field
from typing import TextIO

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
from .errors import BuiltinError, GlpcError, GlpcRuntimeError, GlpcSyntaxError
from .objects import (
    INT64_MAX,
    INT64_MIN,
    NULL,
    Environment,
    Value,
    VBool,
    VBuiltin,
    VClass,
    VFunction,
    VInstance,
    VList,
    VNull,
    VNumber,
    VString,
    bool_value,
    float_number,
    int_number,
)
from .parse import Parser
from .tokens import Token, tokenize

logger = logging.getLogger(__name__)

# Each GLPC call costs several Python frames.
RECURSION_LIMIT = 20_000


# ============================================================
# Control flow outcomes
# ============================================================

NORMAL = "normal"
BREAK = "break"
CONTINUE = "continue"
RETURN = "return"


@dataclass
class Outcome:
    kind: str
    value: Value = field(default_factory=lambda: NULL)
    token: Token | None = None


OK = Outcome(NORMAL)


def _stray_outcome(outcome: Outcome) -> GlpcRuntimeError:
    if outcome.kind == RETURN:
        return GlpcRuntimeError(outcome.token, "Cannot return from top-level code.")
    return GlpcRuntimeError(
        outcome.token, "Cannot use '" + outcome.kind + "' outside of a loop."
    )


# ============================================================
# Module cache
# ============================================================


class ModuleCache:
    """Top-level environments of imported files, keyed by absolute path."""

    def __init__(self) -> None:
        self.envs: dict[str, Environment] = {}

    def __contains__(self, path: str) -> bool:
        return path in self.envs

    def __len__(self) -> int:
        return len(self.envs)

    def get(self, path: str) -> Environment | None:
        return self.envs.get(path)

    def put(self, path: str, env: Environment) -> None:
        self.envs[path] = env


# ============================================================
# Value helpers
# ============================================================


def is_truthy(v: Value) -> bool:
    if isinstance(v, VNull):
        return False
    if isinstance(v, VBool):
        return v.value
    return True


def values_equal(a: Value, b: Value) -> bool:
    if isinstance(a, VNull):
        return isinstance(b, VNull)
    if isinstance(a, VNumber):
        if not isinstance(b, VNumber):
            return False
        if a.is_int and b.is_int:
            return a.int_value == b.int_value
        return a.as_float() == b.as_float()
    if isinstance(a, VBool):
        return isinstance(b, VBool) and a.value == b.value
    if isinstance(a, VString):
        return isinstance(b, VString) and a.value == b.value
    return a is b


def _int_divmod_trunc(a: int, b: int) -> tuple[int, int]:
    if b == 0:
        raise ZeroDivisionError
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        q = -q
    r = a - q * b
    return (q, r)


def _float_div(x: float, y: float) -> float:
    if y == 0.0:
        if x == 0.0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1.0, y)
    return x / y


def _cmp(op: str, a: int | float, b: int | float) -> bool:
    if op == "<":
        return a < b
    if op == "<=":
        return a <= b
    if op == ">":
        return a > b
    return a >= b


def _int_arith(op: Token, a: int, b: int) -> Value:
    kind = op.kind
    if kind == "+":
        return int_number(a + b)
    if kind == "-":
        return int_number(a - b)
    if kind == "*":
        return int_number(a * b)
    if kind in ("<", "<=", ">", ">="):
        return bool_value(_cmp(kind, a, b))
    if b == 0:
        raise GlpcRuntimeError(op, "Division by zero.")
    if kind == "/":
        q, r = _int_divmod_trunc(a, b)
        if r == 0:
            return int_number(q)
        return float_number(a / b)
    if kind == "~/":
        return int_number(_int_divmod_trunc(a, b)[0])
    if kind == "%":
        return int_number(_int_divmod_trunc(a, b)[1])
    raise GlpcRuntimeError(op, "Unknown numeric operator '" + op.lexeme + "'.")


def _float_arith(op: Token, x: float, y: float) -> Value:
    kind = op.kind
    if kind == "+":
        return float_number(x + y)
    if kind == "-":
        return float_number(x - y)
    if kind == "*":
        return float_number(x * y)
    if kind == "/":
        return float_number(_float_div(x, y))
    if kind == "~/":
        q = _float_div(x, y)
        if not math.isfinite(q) or not (INT64_MIN <= int(q) <= INT64_MAX):
            raise GlpcRuntimeError(op, "Integer division result out of range.")
        return int_number(int(q))
    if kind == "%":
        raise GlpcRuntimeError(op, "Operands must both be integer values.")
    if kind in ("<", "<=", ">", ">="):
        return bool_value(_cmp(kind, x, y))
    raise GlpcRuntimeError(op, "Unknown numeric operator '" + op.lexeme + "'.")


def binary_op(op: Token, left: Value, right: Value) -> Value:
    if op.kind == "==":
        return bool_value(values_equal(left, right))
    if op.kind == "!=":
        return bool_value(not values_equal(left, right))
    if isinstance(left, VNumber) and isinstance(right, VNumber):
        if left.is_int and right.is_int:
            return _int_arith(op, left.int_value, right.int_value)
        return _float_arith(op, left.as_float(), right.as_float())
    if op.kind == "+" and isinstance(left, VString) and isinstance(right, VString):
        return VString(left.value + right.value)
    raise GlpcRuntimeError(
        op,
        "No known operation for "
        + left.type_name()
        + " "
        + op.lexeme
        + " "
        + right.type_name()
        + ".",
    )


def _list_slot(bracket: Token, target: Value, index: Value) -> tuple[VList, int]:
    if not isinstance(target, VList):
        raise GlpcRuntimeError(
            bracket, "Cannot perform index lookup on anything except a list."
        )
    if not isinstance(index, VNumber):
        raise GlpcRuntimeError(bracket, "Index operand must be a number.")
    if index.is_int:
        i = index.int_value
    elif math.isfinite(index.float_value):
        i = int(index.float_value)
    else:
        raise GlpcRuntimeError(bracket, "Index out of range.")
    if i < 0 or i >= len(target.elements):
        raise GlpcRuntimeError(bracket, "Index out of range.")
    return target, i


# ============================================================
# Interpreter
# ============================================================


class Interpreter:
    def __init__(
        self,
        stdout: TextIO | None = None,
        modules: ModuleCache | None = None,
    ):
        self.stdout: TextIO = stdout if stdout is not None else sys.stdout
        self.modules: ModuleCache = modules if modules is not None else ModuleCache()
        self.globals = Environment()
        for builtin in BUILTINS:
            self.globals.values[builtin.name] = builtin
        self.environment = Environment(self.globals)
        self.locals: dict[Expr, int] = {}
        self._loading: set[str] = set()
        if sys.getrecursionlimit() < RECURSION_LIMIT:
            sys.setrecursionlimit(RECURSION_LIMIT)

    # ---- Running -----------------------------------------------------------

    def interpret(self, stmts: list[Stmt], distances: dict[Expr, int]) -> None:
        """Run a program's top-level statements in the current environment."""
        self.locals.update(distances)
        logger.debug("executing %d top-level statements", len(stmts))
        try:
            for stmt in stmts:
                outcome = self.execute(stmt)
                if outcome.kind != NORMAL:
                    raise _stray_outcome(outcome)
        except RecursionError as e:
            raise GlpcRuntimeError(None, "Stack overflow.") from e

    def run_main(self) -> Value:
        main = self.environment.values.get("main")
        if main is None:
            raise GlpcRuntimeError(None, "Unable to locate main function.")
        if not isinstance(main, (VFunction, VBuiltin)):
            raise GlpcRuntimeError(None, "Found main, but it was not a function.")
        if main.arity > 0:
            raise GlpcRuntimeError(
                None, "Function main must not take any arguments."
            )
        logger.debug("calling main")
        try:
            return self.call_value(main, [], None)
        except RecursionError as e:
            raise GlpcRuntimeError(None, "Stack overflow.") from e

    # ---- Statements --------------------------------------------------------

    def execute(self, stmt: Stmt) -> Outcome:
        if isinstance(stmt, Expression):
            self.evaluate(stmt.expression)
            return OK
        if isinstance(stmt, Var):
            value: Value = NULL
            if stmt.initializer is not None:
                value = self.evaluate(stmt.initializer)
            self.environment.define(stmt.name, value)
            return OK
        if isinstance(stmt, Block):
            return self.execute_block(stmt.statements, Environment(self.environment))
        if isinstance(stmt, If):
            if is_truthy(self.evaluate(stmt.condition)):
                return self.execute(stmt.then_branch)
            if stmt.else_branch is not None:
                return self.execute(stmt.else_branch)
            return OK
        if isinstance(stmt, For):
            return self.execute_loop(stmt)
        if isinstance(stmt, Function):
            fn = VFunction(stmt, self.environment)
            self.environment.define(stmt.name, fn)
            return OK
        if isinstance(stmt, Return):
            value = NULL
            if stmt.value is not None:
                value = self.evaluate(stmt.value)
            return Outcome(RETURN, value, stmt.keyword)
        if isinstance(stmt, Break):
            return Outcome(BREAK, NULL, stmt.keyword)
        if isinstance(stmt, Continue):
            return Outcome(CONTINUE, NULL, stmt.keyword)
        if isinstance(stmt, Class):
            self.execute_class(stmt)
            return OK
        if isinstance(stmt, Import):
            self.execute_import(stmt)
            return OK
        raise GlpcRuntimeError(None, "unsupported statement " + type(stmt).__name__)

    def execute_block(self, stmts: list[Stmt], env: Environment) -> Outcome:
        previous = self.environment
        self.environment = env
        try:
            for stmt in stmts:
                outcome = self.execute(stmt)
                if outcome.kind != NORMAL:
                    return outcome
            return OK
        finally:
            self.environment = previous

    def execute_loop(self, stmt: For) -> Outcome:
        previous = self.environment
        self.environment = Environment(previous)
        try:
            if stmt.initializer is not None:
                self.execute(stmt.initializer)
            skip_condition = stmt.is_do
            while True:
                if not skip_condition and stmt.condition is not None:
                    if not is_truthy(self.evaluate(stmt.condition)):
                        break
                skip_condition = False
                outcome = self.execute(stmt.body)
                if outcome.kind == BREAK:
                    break
                if outcome.kind == RETURN:
                    return outcome
                if stmt.increment is not None:
                    self.evaluate(stmt.increment)
            return OK
        finally:
            self.environment = previous

    def execute_class(self, stmt: Class) -> None:
        superclass: VClass | None = None
        if stmt.superclass is not None:
            sup = self.evaluate(stmt.superclass)
            if not isinstance(sup, VClass):
                raise GlpcRuntimeError(
                    stmt.superclass.name, "Superclass must be a class."
                )
            superclass = sup
        self.environment.define(stmt.name, NULL)

        closure = self.environment
        if superclass is not None:
            closure = Environment(self.environment)
            closure.values["super"] = superclass

        methods: dict[str, VFunction] = {}
        for method in stmt.methods:
            is_init = method.name.lexeme == "init"
            methods[method.name.lexeme] = VFunction(method, closure, is_init)
        klass = VClass(stmt.name.lexeme, superclass, methods)
        self.environment.values[stmt.name.lexeme] = klass

    # ---- Imports -----------------------------------------------------------

    def module_path(self, stmt: Import) -> str:
        importer = stmt.keyword.file
        if importer and not importer.startswith("<"):
            base = os.path.dirname(importer)
        else:
            base = os.getcwd()
        return os.path.normpath(os.path.abspath(os.path.join(base, stmt.path.lexeme)))

    def execute_import(self, stmt: Import) -> None:
        path = self.module_path(stmt)
        env = self.modules.get(path)
        if env is not None:
            logger.debug("module cache hit for %s", path)
        else:
            if path in self._loading:
                raise GlpcRuntimeError(
                    stmt.path, "Circular import of '" + stmt.path.lexeme + "'."
                )
            env = self.load_module(stmt, path)
        # Imported names always land in the program scope, where global reads look.
        self.environment.top_level().copy_missing(env)

    def load_module(self, stmt: Import, path: str) -> Environment:
        logger.debug("importing %s", path)
        try:
            with open(path, encoding="utf-8") as f:
                source = f.read()
        except OSError as e:
            raise GlpcRuntimeError(
                stmt.path,
                "Unable to read '" + stmt.path.lexeme + "': " + str(e.strerror) + ".",
            ) from e
        stmts, distances, errors = Parser(tokenize(source, path)).parse()
        if errors:
            raise GlpcSyntaxError(errors, path)

        module_env = Environment(self.globals)
        previous = self.environment
        self.environment = module_env
        self._loading.add(path)
        try:
            self.interpret(stmts, distances)
        finally:
            self.environment = previous
            self._loading.discard(path)
        self.modules.put(path, module_env)
        return module_env

    # ---- Expressions -------------------------------------------------------

    def evaluate(self, expr: Expr) -> Value:
        if isinstance(expr, Literal):
            return self.literal(expr)
        if isinstance(expr, Grouping):
            return self.evaluate(expr.expression)
        if isinstance(expr, Variable):
            return self.look_up(expr.name, expr)
        if isinstance(expr, Assign):
            value = self.evaluate(expr.value)
            distance = self.locals.get(expr)
            if distance is not None:
                self.environment.assign_at(distance, expr.name, value)
            else:
                self.environment.assign(expr.name, value)
            return value
        if isinstance(expr, Logical):
            left = self.evaluate(expr.left)
            if expr.op.kind == "or":
                if is_truthy(left):
                    return left
            elif not is_truthy(left):
                return left
            return self.evaluate(expr.right)
        if isinstance(expr, Unary):
            right = self.evaluate(expr.right)
            if expr.op.kind == "!":
                return bool_value(not is_truthy(right))
            if not isinstance(right, VNumber):
                raise GlpcRuntimeError(expr.op, "Operand must be a number.")
            if right.is_int:
                return int_number(-right.int_value)
            return float_number(-right.float_value)
        if isinstance(expr, Binary):
            left = self.evaluate(expr.left)
            right = self.evaluate(expr.right)
            return binary_op(expr.op, left, right)
        if isinstance(expr, Call):
            callee = self.evaluate(expr.callee)
            args = [self.evaluate(a) for a in expr.args]
            return self.call_value(callee, args, expr.paren)
        if isinstance(expr, Get):
            obj = self.evaluate(expr.obj)
            if not isinstance(obj, VInstance):
                raise GlpcRuntimeError(expr.name, "Only instances have properties.")
            return obj.get(expr.name)
        if isinstance(expr, Set):
            return self.assign_target(expr)
        if isinstance(expr, Index):
            target = self.evaluate(expr.obj)
            index = self.evaluate(expr.index)
            lst, i = _list_slot(expr.bracket, target, index)
            return lst.elements[i]
        if isinstance(expr, ListLit):
            return VList([self.evaluate(e) for e in expr.elements])
        if isinstance(expr, This):
            return self.look_up(expr.keyword, expr)
        if isinstance(expr, Super):
            return self.super_method(expr)
        raise GlpcRuntimeError(None, "unsupported expression " + type(expr).__name__)

    def literal(self, expr: Literal) -> Value:
        v = expr.value
        if v is None:
            return NULL
        if isinstance(v, bool):
            return bool_value(v)
        if isinstance(v, int):
            return int_number(v)
        if isinstance(v, float):
            return float_number(v)
        return VString(v)

    def look_up(self, name: Token, expr: Expr) -> Value:
        distance = self.locals.get(expr)
        if distance is not None:
            return self.environment.get_at(distance, name)
        return self.environment.get_global(name)

    def assign_target(self, expr: Set) -> Value:
        obj = self.evaluate(expr.obj)
        if expr.index is None:
            if not isinstance(obj, VInstance):
                raise GlpcRuntimeError(expr.name, "Only instances have fields.")
            value = self.evaluate(expr.value)
            obj.set(expr.name, value)
            return value
        index = self.evaluate(expr.index)
        lst, i = _list_slot(expr.name, obj, index)
        value = self.evaluate(expr.value)
        lst.elements[i] = value
        return value

    def super_method(self, expr: Super) -> Value:
        distance = self.locals.get(expr)
        if distance is None:
            raise GlpcRuntimeError(
                expr.keyword, "Cannot use 'super' outside of a class."
            )
        superclass = self.environment.get_at(distance, expr.keyword)
        this = self.environment.ancestor(distance - 1).values.get("this")
        if not isinstance(superclass, VClass) or not isinstance(this, VInstance):
            raise GlpcRuntimeError(expr.keyword, "Invalid use of 'super'.")
        method = superclass.find_method(expr.method.lexeme)
        if method is None:
            raise GlpcRuntimeError(
                expr.method, "Undefined property '" + expr.method.lexeme + "'."
            )
        return method.bind(this)

    # ---- Calls -------------------------------------------------------------

    def call_value(self, callee: Value, args: list[Value], paren: Token | None) -> Value:
        if isinstance(callee, VBuiltin):
            self.check_arity(callee.arity, len(args), paren)
            try:
                return callee.fn(self, args)
            except BuiltinError as e:
                if e.token is None:
                    e.token = paren
                raise
        if isinstance(callee, VFunction):
            self.check_arity(callee.arity, len(args), paren)
            return self.call_function(callee, args)
        if isinstance(callee, VClass):
            self.check_arity(callee.arity, len(args), paren)
            instance = VInstance(callee)
            init = callee.find_method("init")
            if init is not None:
                self.call_function(init.bind(instance), args)
            return instance
        raise GlpcRuntimeError(paren, "Can only call functions and classes.")

    def check_arity(self, arity: int, count: int, paren: Token | None) -> None:
        if arity != -1 and arity != count:
            raise GlpcRuntimeError(
                paren,
                "Expected " + str(arity) + " arguments but got " + str(count) + ".",
            )

    def call_function(self, fn: VFunction, args: list[Value]) -> Value:
        env = Environment(fn.closure)
        for param, arg in zip(fn.declaration.params, args):
            env.define(param, arg)
        outcome = self.execute_block(fn.declaration.body, env)
        if outcome.kind == BREAK or outcome.kind == CONTINUE:
            raise _stray_outcome(outcome)
        if fn.is_initializer:
            return fn.closure.values["this"]
        if outcome.kind == RETURN:
            return outcome.value
        return NULL


# ============================================================
# Built-in functions
# ============================================================


def _bi_len(interp: Interpreter, args: list[Value]) -> Value:
    x = args[0]
    if isinstance(x, VString):
        return int_number(len(x.value))
    if isinstance(x, VList):
        return int_number(len(x.elements))
    raise BuiltinError(
        "'len' argument must be a string or list, not " + x.type_name() + "."
    )


def _bi_print(interp: Interpreter, args: list[Value]) -> Value:
    interp.stdout.write(" ".join(a.to_string() for a in args) + "\n")
    return NULL


BUILTINS: list[VBuiltin] = [
    VBuiltin("len", 1, _bi_len),
    VBuiltin("print", -1, _bi_print),
]


# ============================================================
# Running
# ============================================================


@dataclass
class RunResult:
    exit_code: int
    stdout: str
    stderr: str


def error_lines(e: GlpcError) -> list[str]:
    """User-facing lines for an error, one per syntax error."""
    if isinstance(e, GlpcSyntaxError):
        lines = [str(pe) for pe in e.errors]
        if e.file is not None:
            lines.insert(0, str(e))
        return lines
    return [str(e)]


def run(source: str, file: str = "<script>", call_main: bool = False) -> RunResult:
    """Parse and run GLPC source with captured output."""
    out = io.StringIO()
    stmts, distances, errors = Parser(tokenize(source, file)).parse()
    if errors:
        lines = [str(pe) for pe in errors]
        return RunResult(1, "", "\n".join(lines) + "\n")
    interp = Interpreter(stdout=out)
    try:
        interp.interpret(stmts, distances)
        if call_main:
            interp.run_main()
    except GlpcError as e:
        return RunResult(1, out.getvalue(), "\n".join(error_lines(e)) + "\n")
    return RunResult(0, out.getvalue(), "")
