"""
toylang runtime - values, scopes and the built-in library.

This module provides:
- Value types: Null, Primitive, Native, Func, Class, Instance, Thrown
- Context: scope frames carrying the control signal
- BuiltinRegistry: the built-in classes and functions

The interpreter facade lives in toylang.runtime.interpreter and the module
loader in toylang.runtime.modules.
"""

from .values import (
    Value,
    Null,
    Void,
    Primitive,
    Native,
    Func,
    Class,
    Instance,
    Thrown,
    boolean,
    number,
    text,
    list_instance,
    call_value,
    values_equal,
)

from .context import (
    Signal,
    StackFrame,
    SourceFile,
    Environment,
    Context,
)

from .builtins import (
    NativeBody,
    BuiltinRegistry,
    display,
    root_context,
)

__all__ = [
    # Values
    "Value",
    "Null",
    "Void",
    "Primitive",
    "Native",
    "Func",
    "Class",
    "Instance",
    "Thrown",
    "boolean",
    "number",
    "text",
    "list_instance",
    "call_value",
    "values_equal",
    # Context
    "Signal",
    "StackFrame",
    "SourceFile",
    "Environment",
    "Context",
    # Builtins
    "NativeBody",
    "BuiltinRegistry",
    "display",
    "root_context",
]
