"""
Slot-addressed environments.

An environment is a growable list of slots plus a link to the
enclosing environment. The resolver decides which slot each name
occupies, so lookups are by (distance, slot) and never by name.

A slot holding UNDEFINED has been declared but not initialized.
"""

from typing import List, Optional, Union

from ..errors import ExecutionError
from ..tokens import Token
from .values import Value


class _Undefined:
    """Marker for a declared but uninitialized slot."""

    def __repr__(self) -> str:
        return "<undefined>"


UNDEFINED = _Undefined()

Slot = Union[Value, _Undefined]


class Environment:
    """One scope's storage."""

    def __init__(self, enclosing: Optional["Environment"] = None):
        self.enclosing = enclosing
        self.values: List[Slot] = []

    def __repr__(self) -> str:
        depth = 0
        env = self.enclosing
        while env is not None:
            depth += 1
            env = env.enclosing
        return f"Environment(slots={len(self.values)}, depth={depth})"

    def define(self, slot: int, value: Slot) -> None:
        """Store `value` in `slot`, growing the slot list if needed."""
        if slot >= len(self.values):
            self.values.extend([UNDEFINED] * (slot + 1 - len(self.values)))
        self.values[slot] = value

    def ancestor(self, distance: int) -> "Environment":
        """Walk `distance` links up the chain."""
        env = self
        for _ in range(distance):
            env = env.enclosing
        return env

    def get(self, slot: int, name: Token) -> Value:
        if slot < len(self.values):
            value = self.values[slot]
            if value is not UNDEFINED:
                return value
        raise ExecutionError(
            f"Variable '{name.lexeme}' is used before being initialized.", name
        )

    def get_at(self, distance: int, slot: int, name: Token) -> Value:
        """Read a resolved variable."""
        return self.ancestor(distance).get(slot, name)

    def assign_at(self, distance: int, slot: int, value: Value) -> None:
        """Write a resolved variable."""
        self.ancestor(distance).define(slot, value)
