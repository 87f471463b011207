"""
Runtime value domain for the toylang interpreter.

Value types:
- Null: the "no value" sentinel (Void is the same object)
- Primitive: number (float), text (str) or boolean, immutable
- Native: wraps host data, e.g. the Python list behind a toy List
- Func: parameters, body statement, name and an optional closure Context
- Class: a Func with a static body, a method table and parent class names
- Instance: an object of some class, with mutable own properties
- Thrown: an in-flight language exception plus its stack frames

Func and Class are also AST literals: evaluating one yields an Instance of
the built-in Function/Class class wrapping a copy that captures the
defining context as its closure.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple, Union, TYPE_CHECKING

from ..errors import (
    error_not_defined,
    error_not_callable,
    error_no_properties,
    error_class_hierarchy,
)

if TYPE_CHECKING:
    from .context import Context


class Value:
    """Base class of every runtime value."""

    def evaluate(self, context: "Context") -> "Value":
        return self

    def box(self, context: "Context") -> "Value":
        return self

    @property
    def is_thrown(self) -> bool:
        return False

    def truthy(self) -> bool:
        return True

    def describe(self) -> str:
        """Short human description used in error messages."""
        return str(self)


class _NullValue(Value):
    """The singleton "no value"."""

    def truthy(self) -> bool:
        return False

    def __str__(self) -> str:
        return "null"

    def __repr__(self) -> str:
        return "Null"


Null = _NullValue()
Void = Null


def format_number(value: float) -> str:
    """Render a number the way print() shows it."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return repr(value)


@dataclass(frozen=True, eq=False)
class Primitive(Value):
    """
    Immutable number, text or boolean.

    Equality is strict: values of different Python types never compare
    equal, so Primitive(1.0) != Primitive(True).
    """
    value: Union[float, str, bool]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Primitive):
            return NotImplemented
        return type(self.value) is type(other.value) and self.value == other.value

    def __hash__(self) -> int:
        return hash((type(self.value), self.value))

    @property
    def is_number(self) -> bool:
        return isinstance(self.value, float)

    @property
    def is_text(self) -> bool:
        return isinstance(self.value, str)

    @property
    def is_boolean(self) -> bool:
        return isinstance(self.value, bool)

    def truthy(self) -> bool:
        if isinstance(self.value, float) and math.isnan(self.value):
            return False
        return bool(self.value)

    def box(self, context: "Context") -> Value:
        # only text has a wrapper class
        if self.is_text:
            return Instance(context.builtin_class("String"), {}, self)
        return self

    def describe(self) -> str:
        if self.is_text:
            return repr(self.value)
        return str(self)

    def __str__(self) -> str:
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        if isinstance(self.value, float):
            return format_number(self.value)
        return self.value

    def __repr__(self) -> str:
        return f"Primitive({self.value!r})"


TRUE = Primitive(True)
FALSE = Primitive(False)


def boolean(value: bool) -> Primitive:
    return TRUE if value else FALSE


def number(value: float) -> Primitive:
    return Primitive(float(value))


def text(value: str) -> Primitive:
    return Primitive(value)


@dataclass(eq=False)
class Native(Value):
    """Host data carried as an instance payload."""
    value: Any

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, eq=False)
class Func(Value):
    """
    A function: parameter names, a body statement and an optional closure.

    User functions always carry the context they were defined in; built-in
    natives have no closure and run in a child of the calling context.
    """
    params: Tuple[str, ...] = ()
    body: Any = None
    name: str = ""
    closure: Optional["Context"] = None

    class_name = "Function"

    def with_closure(self, context: "Context") -> "Func":
        return replace(self, closure=context)

    def evaluate(self, context: "Context") -> Value:
        return Instance(context.builtin_class(self.class_name), {}, self.with_closure(context))

    def call(self, context: "Context", args: List[Value],
             this: Optional[Value] = None) -> Value:
        """
        Run the body in a fresh child scope and return its result.

        Parameters without an argument are bound to Null; every call also
        binds 'arguments' (a List of all arguments) and, for method calls,
        'this'. A call without an explicit return yields Void.
        """
        parent = self.closure if self.closure is not None else context
        scope = parent.child()
        for idx, param in enumerate(self.params):
            scope.assign(param, args[idx] if idx < len(args) else Null)
        scope.assign("arguments", list_instance(context, args))
        if this is not None:
            scope.assign("this", this)
        return self.body.evaluate(scope).result()

    def __str__(self) -> str:
        return f"<function {self.name or 'anonymous'}>"


@dataclass(frozen=True, eq=False)
class Class(Func):
    """
    A class: a static body run once at definition, methods and parents.

    Methods are resolved through own methods, then the direct parents' own
    methods in declaration order, then breadth-first through the parents'
    ancestors. Object ends the walk.
    """
    methods: Dict[str, Func] = field(default_factory=dict)
    parent_names: Tuple[str, ...] = ("Object",)

    class_name = "Class"

    def with_closure(self, context: "Context") -> "Class":
        methods = {name: method.with_closure(context) for name, method in self.methods.items()}
        return replace(self, closure=context, methods=methods)

    def evaluate(self, context: "Context") -> Value:
        clz = self.with_closure(context)
        clz.validate_parents(context)
        value = Instance(context.builtin_class(self.class_name), {}, clz)
        if self.body is not None:
            scope = context.child()
            scope.assign("this", value)
            done = self.body.evaluate(scope)
            if done.is_thrown:
                return done.thrown_node
        return value

    def resolve_class(self, context: "Context", name: str) -> "Class":
        """Look up a parent class value by name."""
        scope = self.closure if self.closure is not None else context
        value = scope.lookup(name)
        if not (isinstance(value, Instance) and isinstance(value.internal, Class)):
            raise error_not_defined(f"class {name}")
        return value.internal

    def validate_parents(self, context: "Context") -> None:
        """Every parent must be a class and no ancestor may be this class."""
        seen = set()
        pending = list(self.parent_names)
        while pending:
            name = pending.pop()
            if name == self.name:
                raise error_class_hierarchy(f"class {self.name} inherits from itself")
            if name in seen:
                continue
            seen.add(name)
            parent = self.resolve_class(context, name)
            if parent.name != "Object":
                pending.extend(parent.parent_names)

    def find_method(self, context: "Context", name: str) -> Optional[Func]:
        """Resolve a method, returning None on a miss."""
        method = self.methods.get(name)
        if method is not None or self.name == "Object":
            return method

        visited = {self.name}
        level = [n for n in self.parent_names]
        while level:
            parents = []
            for parent_name in level:
                if parent_name in visited:
                    continue
                visited.add(parent_name)
                parents.append(self.resolve_class(context, parent_name))
            for parent in parents:
                method = parent.methods.get(name)
                if method is not None:
                    return method
            level = [n for parent in parents if parent.name != "Object"
                     for n in parent.parent_names]
        return None

    def has_method(self, context: "Context", name: str) -> bool:
        return self.find_method(context, name) is not None

    def get_method(self, context: "Context", name: str) -> Func:
        method = self.find_method(context, name)
        if method is None:
            raise error_not_defined(name)
        return method

    def instantiate(self, context: "Context", clz_value: "Instance",
                    args: List[Value]) -> Value:
        """Create an instance and run the resolved init with 'this' bound."""
        instance = Instance(clz_value)
        init = self.find_method(context, "init")
        if init is not None:
            result = init.call(context, args, this=instance)
            if result.is_thrown:
                return result
        return instance

    def __str__(self) -> str:
        return f"<class {self.name}>"


@dataclass(eq=False)
class Instance(Value):
    """
    An object: its class value, own properties and an internal payload.

    The payload defaults to the instance itself. Function and class values
    are Instances whose payload is the Func/Class node; boxed text carries
    its Primitive and a List carries a Native list.
    """
    clz: Optional["Instance"] = None
    properties: Dict[str, Value] = field(default_factory=dict)
    internal: Any = None

    def __post_init__(self):
        if self.internal is None:
            self.internal = self

    @property
    def clz_node(self) -> Class:
        return self.clz.internal

    @property
    def class_name(self) -> str:
        return self.clz_node.name

    def has_own_property(self, name: str) -> bool:
        return name in self.properties

    def get_property(self, context: "Context", name: str) -> Value:
        """Own property first, then a method of the class wrapped as a function value."""
        value = self.properties.get(name)
        if value is not None:
            return value
        method = self.clz_node.get_method(context, name)
        return Instance(context.builtin_class("Function"), {}, method)

    def set_property(self, name: str, value: Value) -> None:
        self.properties[name] = value

    def __str__(self) -> str:
        if isinstance(self.internal, (Func, Primitive)):
            return str(self.internal)
        return f"<{self.class_name} object>"


@dataclass(eq=False)
class Thrown(Value):
    """An exception in flight: the thrown value and its stack frames."""
    value: Value
    frames: List[Any] = field(default_factory=list)
    frame_context: Any = None

    @property
    def is_thrown(self) -> bool:
        return True

    def add_frame(self, context: "Context", frame: Any) -> None:
        """Record a frame unless this scope already contributed one."""
        if self.frames and context.same_frame(self.frame_context):
            return
        self.frame_context = context
        self.frames.append(frame)

    def __str__(self) -> str:
        return str(self.value)


def list_instance(context: "Context", items: List[Value]) -> Instance:
    """A new toy List holding items."""
    return Instance(context.builtin_class("List"), {}, Native(list(items)))


def call_value(context: "Context", callee: Value, args: List[Value],
               this: Optional[Value] = None) -> Value:
    """Call a function or class value; classes produce new instances."""
    if isinstance(callee, Instance):
        node = callee.internal
        if isinstance(node, Class):
            return node.instantiate(context, callee, args)
        if isinstance(node, Func):
            return node.call(context, args, this)
    raise error_not_callable(callee.describe())


def property_of(context: "Context", target: Value, name: str) -> Instance:
    """The receiver a property access or method call works on."""
    receiver = target.box(context)
    if not isinstance(receiver, Instance):
        raise error_no_properties(target.describe(), name)
    return receiver


def values_equal(left: Value, right: Value) -> bool:
    """Strict equality: primitives by type and value, everything else by identity."""
    if isinstance(left, Primitive) and isinstance(right, Primitive):
        return left == right
    return left is right
