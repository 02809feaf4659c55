"""
Runtime values for the loxi interpreter.

Every runtime value is a `Value` pairing the raw Python data with a
LoxType tag:

    number    float
    string    str
    boolean   bool
    nil       None
    array     tuple of Values (fixed size)
    function  LoxFunction or NativeFunction
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Tuple, Union

if TYPE_CHECKING:
    from ..ast import FunctionDeclaration
    from .environment import Environment


class LoxType(Enum):
    """Runtime type tags. ANY only appears in native signatures."""
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    NIL = "nil"
    ARRAY = "array"
    FUNCTION = "function"
    ANY = "any"


@dataclass(frozen=True)
class Value:
    """
    A runtime value with its type tag.

    The `data` field holds the Python object, `type` says how to read it.
    """
    data: Any
    type: LoxType

    def __repr__(self) -> str:
        return f"Value({self.data!r}, {self.type.value})"

    def __str__(self) -> str:
        return stringify(self)

    def is_truthy(self) -> bool:
        """nil and false are falsy; everything else (0 and "" included) is truthy."""
        if self.type == LoxType.NIL:
            return False
        if self.type == LoxType.BOOLEAN:
            return bool(self.data)
        return True


@dataclass
class LoxFunction:
    """A user-defined function closed over its defining environment."""
    declaration: "FunctionDeclaration"
    closure: "Environment"

    @property
    def name(self) -> str:
        return self.declaration.name

    @property
    def arity(self) -> int:
        return self.declaration.arity

    @property
    def param_types(self) -> Tuple[LoxType, ...]:
        return (LoxType.ANY,) * self.arity

    def __str__(self) -> str:
        return f"<fn {self.name}>"


NIL = Value(None, LoxType.NIL)
TRUE = Value(True, LoxType.BOOLEAN)
FALSE = Value(False, LoxType.BOOLEAN)


# Convenience constructors

def number_val(x: float) -> Value:
    """Create a number value."""
    return Value(float(x), LoxType.NUMBER)


def string_val(s: str) -> Value:
    """Create a string value."""
    return Value(str(s), LoxType.STRING)


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return TRUE if b else FALSE


def array_val(items: Iterable[Value]) -> Value:
    """Create an array value from Values."""
    return Value(tuple(items), LoxType.ARRAY)


def function_val(fn: Any) -> Value:
    """Wrap a LoxFunction or NativeFunction."""
    return Value(fn, LoxType.FUNCTION)


def from_literal(value: Union[float, str, bool, None]) -> Value:
    """Wrap a literal value from the syntax tree."""
    if value is None:
        return NIL
    if isinstance(value, bool):
        return bool_val(value)
    if isinstance(value, str):
        return string_val(value)
    return number_val(value)


# Display and comparison

def format_number(x: float) -> str:
    """Render a number, dropping a trailing '.0'.

    Uses Python's shortest round-trip repr, so large and tiny magnitudes
    come out in Python's exponent form: 1e21 prints as '1e+21' (not
    '1.0E21') and 1e-7 as '1e-07'.
    """
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "Infinity" if x > 0 else "-Infinity"
    text = repr(x)
    if text.endswith(".0"):
        text = text[:-2]
    return text


def stringify(value: Value) -> str:
    """Convert a value to the text `print` shows for it."""
    if value.type == LoxType.NIL:
        return "nil"
    if value.type == LoxType.NUMBER:
        return format_number(value.data)
    if value.type == LoxType.BOOLEAN:
        return "true" if value.data else "false"
    if value.type == LoxType.ARRAY:
        return "[" + ", ".join(stringify(item) for item in value.data) + "]"
    return str(value.data)


def is_equal(a: Value, b: Value) -> bool:
    """Deep equality. Values of different types are never equal."""
    if a.type != b.type:
        return False
    if a.type == LoxType.NIL:
        return True
    if a.type == LoxType.ARRAY:
        return len(a.data) == len(b.data) and all(
            is_equal(x, y) for x, y in zip(a.data, b.data)
        )
    if a.type == LoxType.FUNCTION:
        return a.data is b.data
    return a.data == b.data


def type_name(value: Value) -> str:
    """Name of a value's type as shown in error messages."""
    return value.type.value


def matches_type(value: Value, expected: LoxType) -> bool:
    """Check a value against a declared parameter type."""
    return expected == LoxType.ANY or value.type == expected
