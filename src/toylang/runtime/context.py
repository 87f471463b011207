"""
Execution context for the toylang interpreter.

A Context is one scope frame: its own variable bindings, a parent link
forming the lexical scope chain, and a control signal. Statements return a
Context; a signal other than NORMAL stops the enclosing statement sequence.

Signal views (returned(), thrown(), broke(), normal()) are new Context
objects sharing the variables dict of the frame they came from, so a
binding made through any view is visible through all of them.
"""

import builtins as host
import sys
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Dict, Optional

from .values import Value, Null, Thrown
from ..errors import error_not_defined


class Signal(Enum):
    """Completion state carried by a Context."""
    NORMAL = auto()
    RETURNED = auto()
    THROWN = auto()
    BROKEN = auto()


@dataclass(frozen=True)
class StackFrame:
    """One stack-trace entry: the first line of a statement sequence."""
    file_name: str
    line_number: int
    statement: str

    def __str__(self) -> str:
        return f"{self.file_name}:{self.line_number} {self.statement}"


@dataclass
class SourceFile:
    """The source text a context executes, indexed by line number."""
    name: str
    lines: Dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_source(cls, name: str, source: str) -> "SourceFile":
        lines = {n: text.strip() for n, text in enumerate(source.splitlines(), start=1)}
        return cls(name, lines)

    def statement(self, line_number: int) -> str:
        return self.lines.get(line_number, "")


def _write_stdout(text: str) -> None:
    sys.stdout.write(text)


@dataclass
class Environment:
    """Host collaborators shared by every context of a run."""
    output: Callable[[str], None] = _write_stdout
    input: Callable[[str], str] = host.input
    loader: Any = None                  # ModuleLoader, or None to disable import


class Context:
    """
    A scope frame plus its control signal.

    Usage:
        ctx = Context(environment=env, source=SourceFile.from_source("<main>", src))
        child = ctx.child()
        child.assign("x", Primitive(1.0))
        child.lookup("x")
    """

    def __init__(self, parent: Optional["Context"] = None,
                 environment: Optional[Environment] = None,
                 source: Optional[SourceFile] = None,
                 variables: Optional[Dict[str, Value]] = None,
                 builtins: Optional[Dict[str, Value]] = None,
                 signal: Signal = Signal.NORMAL,
                 returned_value: Optional[Value] = None,
                 thrown_node: Optional[Thrown] = None):
        self.parent = parent
        self.environment = environment if environment is not None else Environment()
        self.source = source if source is not None else SourceFile("<main>")
        self.variables = variables if variables is not None else {}
        self.builtins = builtins if builtins is not None else {}
        self.signal = signal
        self.returned_value = returned_value
        self.thrown_node = thrown_node

    # --- Scope chain ---

    def child(self) -> "Context":
        """Create a fresh scope whose parent is this frame."""
        return Context(self, self.environment, self.source, builtins=self.builtins)

    def lookup(self, name: str) -> Value:
        """Resolve a name through the scope chain."""
        ctx = self
        while ctx is not None:
            value = ctx.variables.get(name)
            if value is not None:
                return value
            ctx = ctx.parent
        raise error_not_defined(name)

    def assign(self, name: str, value: Value) -> "Context":
        """Bind a name in this frame."""
        self.variables[name] = value
        return self

    def assign_nonlocal(self, name: str, value: Value) -> "Context":
        """Rebind a name in the nearest ancestor frame that defines it."""
        ctx = self.parent
        while ctx is not None:
            if name in ctx.variables:
                ctx.variables[name] = value
                return self
            ctx = ctx.parent
        raise error_not_defined(name)

    def delete(self, name: str) -> "Context":
        self.variables.pop(name, None)
        return self

    def same_frame(self, other: Optional["Context"]) -> bool:
        """True if other is this frame or a signal view of it."""
        return other is not None and other.variables is self.variables

    def builtin_class(self, name: str) -> Value:
        """A built-in class value, unaffected by user rebinding of its name."""
        value = self.builtins.get(name)
        if value is None:
            raise error_not_defined(name)
        return value

    # --- Control signals ---

    def _view(self, signal: Signal, returned_value: Optional[Value] = None,
              thrown_node: Optional[Thrown] = None) -> "Context":
        return Context(self.parent, self.environment, self.source, self.variables,
                       self.builtins, signal, returned_value, thrown_node)

    def returned(self, value: Value) -> "Context":
        return self._view(Signal.RETURNED, returned_value=value)

    def thrown(self, node: Thrown) -> "Context":
        return self._view(Signal.THROWN, thrown_node=node)

    def broke(self) -> "Context":
        return self._view(Signal.BROKEN)

    def normal(self) -> "Context":
        return self._view(Signal.NORMAL)

    @property
    def is_normal(self) -> bool:
        return self.signal is Signal.NORMAL

    @property
    def is_returned(self) -> bool:
        return self.signal is Signal.RETURNED

    @property
    def is_thrown(self) -> bool:
        return self.signal is Signal.THROWN

    @property
    def is_broken(self) -> bool:
        return self.signal is Signal.BROKEN

    def result(self) -> Value:
        """The value a call through this context produces."""
        if self.is_thrown:
            return self.thrown_node
        if self.is_returned:
            return self.returned_value
        return Null

    # --- Host collaborators and traces ---

    def output(self, text: str) -> None:
        self.environment.output(text)

    def input(self, prompt: str) -> str:
        return self.environment.input(prompt)

    def frame(self, line_number: int) -> StackFrame:
        return StackFrame(self.source.name, line_number, self.source.statement(line_number))

    def __repr__(self) -> str:
        return f"Context(signal={self.signal.name}, names={sorted(self.variables)})"
