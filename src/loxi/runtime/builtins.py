"""
Native function registry for the loxi interpreter.

Natives are looked up by name when a name is not declared anywhere in
the program. Each one has a fixed parameter type list; the interpreter
checks argument count and types before calling the implementation, so
implementations can trust their arguments.

Implementations raise ExecutionError without a token; the interpreter
attaches the call site.
"""

import logging
import math
import re
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..errors import ExecutionError
from .values import (
    Value, LoxType, number_val, string_val, array_val,
)

logger = logging.getLogger(__name__)


_NUMBER_PATTERN = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


@dataclass
class NativeFunction:
    """
    A host-implemented function with its parameter types.
    """
    name: str
    param_types: Tuple[LoxType, ...]
    implementation: Callable[..., Value]
    doc: str = ""

    @property
    def arity(self) -> int:
        return len(self.param_types)

    def __str__(self) -> str:
        return f"<native fn {self.name}>"


# =============================================================================
# Implementations
# =============================================================================

def _clock() -> Value:
    return number_val(time.time())


def _array_length(array: Value) -> Value:
    return number_val(len(array.data))


def _floor(x: Value) -> Value:
    if not math.isfinite(x.data):
        return x
    return number_val(math.floor(x.data))


def _string_split(text: Value, separator: Value) -> Value:
    if separator.data == "":
        parts = list(text.data)
    else:
        parts = text.data.split(separator.data)
    return array_val(string_val(p) for p in parts)


def _string_to_number(text: Value) -> Value:
    stripped = text.data.strip()
    if not _NUMBER_PATTERN.fullmatch(stripped):
        raise ExecutionError(f"Cannot convert '{text.data}' to number.")
    return number_val(float(stripped))


def _read(path: Value) -> Value:
    try:
        with open(path.data, encoding="utf-8") as f:
            return string_val(f.read())
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("read(%r) failed: %s", path.data, e)
        raise ExecutionError(f"Could not open file {path.data}") from e


# =============================================================================
# Registry
# =============================================================================

class BuiltinRegistry:
    """
    Registry of all native functions.

    Functions are registered by name and can be looked up for execution.
    """

    def __init__(self):
        self._functions: Dict[str, NativeFunction] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[NativeFunction]:
        """Look up a function by name."""
        return self._functions.get(name)

    def register(self, func: NativeFunction) -> None:
        """Register a native function, replacing any of the same name."""
        self._functions[func.name] = func
        logger.debug("registered native %s/%d", func.name, func.arity)

    def names(self) -> List[str]:
        return sorted(self._functions)

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def _register_all(self) -> None:
        self.register(NativeFunction(
            "clock", (), _clock,
            "Seconds since the epoch.",
        ))
        self.register(NativeFunction(
            "arrayLength", (LoxType.ARRAY,), _array_length,
            "Number of elements in an array.",
        ))
        self.register(NativeFunction(
            "floor", (LoxType.NUMBER,), _floor,
            "Largest whole number not greater than x.",
        ))
        self.register(NativeFunction(
            "stringSplit", (LoxType.STRING, LoxType.STRING), _string_split,
            "Split text on a separator; an empty separator splits into characters.",
        ))
        self.register(NativeFunction(
            "stringToNumber", (LoxType.STRING,), _string_to_number,
            "Parse a decimal number.",
        ))
        self.register(NativeFunction(
            "read", (LoxType.STRING,), _read,
            "Contents of a UTF-8 text file.",
        ))


# Global singleton registry
_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global native function registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry
