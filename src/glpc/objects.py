"""GLPC runtime objects — values and environments."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from .ast import Function
from .errors import GlpcRuntimeError
from .tokens import Token

if TYPE_CHECKING:
    from .runtime import Interpreter


INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def wrap_int64(n: int) -> int:
    """Two's-complement wrap into the signed 64-bit range."""
    return ((n - INT64_MIN) % 2**64) + INT64_MIN


# ============================================================
# Values
# ============================================================


class Value:
    """A runtime value."""

    def type_name(self) -> str:
        raise NotImplementedError

    def to_string(self) -> str:
        raise NotImplementedError


@dataclass
class VNull(Value):
    def type_name(self) -> str:
        return "null"

    def to_string(self) -> str:
        return "null"


NULL = VNull()


@dataclass
class VBool(Value):
    value: bool

    def type_name(self) -> str:
        return "boolean"

    def to_string(self) -> str:
        return "true" if self.value else "false"


TRUE = VBool(True)
FALSE = VBool(False)


def bool_value(b: bool) -> VBool:
    return TRUE if b else FALSE


@dataclass
class VNumber(Value):
    """A number carrying both representations; is_int picks the live one."""

    is_int: bool
    int_value: int
    float_value: float

    def type_name(self) -> str:
        return "number"

    def to_string(self) -> str:
        if self.is_int:
            return str(self.int_value)
        return f"{self.float_value:.2f}"

    def as_float(self) -> float:
        if self.is_int:
            return float(self.int_value)
        return self.float_value


def int_number(n: int) -> VNumber:
    n = wrap_int64(n)
    return VNumber(True, n, float(n))


def float_number(x: float) -> VNumber:
    if math.isfinite(x):
        return VNumber(False, int(x), x)
    return VNumber(False, 0, x)


@dataclass
class VString(Value):
    value: str

    def type_name(self) -> str:
        return "string"

    def to_string(self) -> str:
        return self.value


@dataclass(eq=False)
class VList(Value):
    elements: list[Value]

    def type_name(self) -> str:
        return "list"

    def to_string(self) -> str:
        inner = ", ".join(v.to_string() for v in self.elements)
        return f"[{inner}]"


@dataclass(eq=False)
class VFunction(Value):
    """A user function: its declaration plus the environment it closes over."""

    declaration: Function
    closure: Environment
    is_initializer: bool = False

    @property
    def name(self) -> str:
        return self.declaration.name.lexeme

    @property
    def arity(self) -> int:
        return len(self.declaration.params)

    def bind(self, instance: VInstance) -> VFunction:
        env = Environment(self.closure)
        env.values["this"] = instance
        return VFunction(self.declaration, env, self.is_initializer)

    def type_name(self) -> str:
        return "function"

    def to_string(self) -> str:
        return f"<fn {self.name}>"


@dataclass(eq=False)
class VBuiltin(Value):
    """A native function. arity -1 accepts any number of arguments."""

    name: str
    arity: int
    fn: Callable[[Interpreter, list[Value]], Value]

    def type_name(self) -> str:
        return "function"

    def to_string(self) -> str:
        return "<builtin fn>"


@dataclass(eq=False)
class VClass(Value):
    name: str
    superclass: VClass | None
    methods: dict[str, VFunction]

    def find_method(self, name: str) -> VFunction | None:
        if name in self.methods:
            return self.methods[name]
        if self.superclass is not None:
            return self.superclass.find_method(name)
        return None

    @property
    def arity(self) -> int:
        init = self.find_method("init")
        if init is None:
            return 0
        return init.arity

    def type_name(self) -> str:
        return "class"

    def to_string(self) -> str:
        return self.name


@dataclass(eq=False)
class VInstance(Value):
    klass: VClass
    fields: dict[str, Value] = field(default_factory=dict)

    def get(self, name: Token) -> Value:
        """Fields shadow methods; methods come back bound to this instance."""
        if name.lexeme in self.fields:
            return self.fields[name.lexeme]
        method = self.klass.find_method(name.lexeme)
        if method is not None:
            return method.bind(self)
        raise GlpcRuntimeError(name, f"Undefined property '{name.lexeme}'.")

    def set(self, name: Token, value: Value) -> None:
        self.fields[name.lexeme] = value

    def type_name(self) -> str:
        return "instance"

    def to_string(self) -> str:
        return f"{self.klass.name} instance"


# ============================================================
# Environments
# ============================================================


class Environment:
    """One scope frame; enclosing links to the lexical parent."""

    def __init__(self, enclosing: Environment | None = None):
        self.values: dict[str, Value] = {}
        self.enclosing = enclosing

    def __contains__(self, name: str) -> bool:
        return name in self.values

    def define(self, name: Token, value: Value) -> None:
        if name.lexeme in self.values:
            raise GlpcRuntimeError(name, "Variable has already been declared.")
        self.values[name.lexeme] = value

    def ancestor(self, distance: int) -> Environment:
        env = self
        for _ in range(distance):
            if env.enclosing is None:
                break
            env = env.enclosing
        return env

    def top_level(self) -> Environment:
        """The program scope: the outermost frame below the built-ins."""
        env = self
        while env.enclosing is not None and env.enclosing.enclosing is not None:
            env = env.enclosing
        return env

    def get_global(self, name: Token) -> Value:
        return self.top_level().get(name)

    def get(self, name: Token) -> Value:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                return env.values[name.lexeme]
            env = env.enclosing
        raise GlpcRuntimeError(name, f"Undefined variable '{name.lexeme}'.")

    def get_at(self, distance: int, name: Token) -> Value:
        env = self.ancestor(distance)
        if name.lexeme in env.values:
            return env.values[name.lexeme]
        raise GlpcRuntimeError(name, f"Undefined variable '{name.lexeme}'.")

    def assign(self, name: Token, value: Value) -> None:
        """Walk out to the program scope; the outermost built-ins frame is read-only."""
        env: Environment | None = self
        while env is not None and env.enclosing is not None:
            if name.lexeme in env.values:
                env.values[name.lexeme] = value
                return
            env = env.enclosing
        raise GlpcRuntimeError(name, f"Undefined variable '{name.lexeme}'.")

    def assign_at(self, distance: int, name: Token, value: Value) -> None:
        env = self.ancestor(distance)
        if name.lexeme not in env.values:
            raise GlpcRuntimeError(name, f"Undefined variable '{name.lexeme}'.")
        env.values[name.lexeme] = value

    def copy_missing(self, other: Environment) -> None:
        """Add other's bindings; names already bound here are kept."""
        for name, value in other.values.items():
            if name not in self.values:
                self.values[name] = value
