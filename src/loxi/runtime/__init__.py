"""
loxi runtime - tree-walking evaluation.

This module provides:
- Interpreter: Executes resolved statement lists
- Session / run: The whole pipeline, source text to printed output
- Value: Runtime values with type tags
- Environment: Slot storage for one scope
- BuiltinRegistry: Native function implementations
"""

from .values import (
    Value,
    LoxType,
    LoxFunction,
    NIL,
    TRUE,
    FALSE,
    number_val,
    string_val,
    bool_val,
    array_val,
    function_val,
    from_literal,
    format_number,
    stringify,
    is_equal,
    type_name,
    matches_type,
)

from .environment import (
    Environment,
    UNDEFINED,
)

from .builtins import (
    NativeFunction,
    BuiltinRegistry,
    get_builtin_registry,
)

from .interpreter import (
    Interpreter,
    Completion,
    CompletionKind,
    RunResult,
    Session,
    run,
)

__all__ = [
    # Values
    'Value',
    'LoxType',
    'LoxFunction',
    'NIL',
    'TRUE',
    'FALSE',
    'number_val',
    'string_val',
    'bool_val',
    'array_val',
    'function_val',
    'from_literal',
    'format_number',
    'stringify',
    'is_equal',
    'type_name',
    'matches_type',

    # Environment
    'Environment',
    'UNDEFINED',

    # Builtins
    'NativeFunction',
    'BuiltinRegistry',
    'get_builtin_registry',

    # Interpreter
    'Interpreter',
    'Completion',
    'CompletionKind',
    'RunResult',
    'Session',
    'run',
]
