"""
AST node definitions for toylang.

Every node is an immutable dataclass with an evaluate() method:

- statements: evaluate(context) -> Context, carrying the completion signal
- expressions: evaluate(context) -> Value; a Thrown value means an
  exception escaped the expression and the enclosing statement turns it
  into a thrown signal

Literal values (Primitive, Null, Func, Class) are runtime Values and sit
in the tree directly.
"""

import math
import operator as op
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Union

from .runtime.context import Context
from .runtime.values import (
    Value, Void, Primitive, Instance, Thrown, Native,
    boolean, list_instance, call_value, property_of, values_equal,
)
from .errors import (
    RuntimeFailure,
    error_unsupported_operand,
    error_no_properties,
    error_not_defined,
    error_module_not_found,
)


# =============================================================================
# Operators
# =============================================================================

def _numeric(symbol: str, left: Value, right: Value) -> Tuple[float, float]:
    if (isinstance(left, Primitive) and not left.is_text
            and isinstance(right, Primitive) and not right.is_text):
        return float(left.value), float(right.value)
    raise error_unsupported_operand(symbol, left.describe(), right.describe())


def _int32(value: float) -> int:
    if math.isnan(value) or math.isinf(value):
        return 0
    return ((int(value) + 2 ** 31) % 2 ** 32) - 2 ** 31


def _add(left: Value, right: Value) -> Value:
    if (isinstance(left, Primitive) and left.is_text) or (isinstance(right, Primitive) and right.is_text):
        return Primitive(str(left) + str(right))
    a, b = _numeric("+", left, right)
    return Primitive(a + b)


def _divide(left: Value, right: Value) -> Value:
    a, b = _numeric("/", left, right)
    if b == 0:
        if a == 0 or math.isnan(a):
            return Primitive(math.nan)
        return Primitive(math.copysign(math.inf, a) * math.copysign(1.0, b))
    return Primitive(a / b)


def _modulo(left: Value, right: Value) -> Value:
    a, b = _numeric("%", left, right)
    if b == 0 or math.isinf(a):
        return Primitive(math.nan)
    return Primitive(math.fmod(a, b))


def _arithmetic(symbol: str, fn: Callable[[float, float], float]) -> Callable[[Value, Value], Value]:
    def apply(left: Value, right: Value) -> Value:
        a, b = _numeric(symbol, left, right)
        return Primitive(float(fn(a, b)))
    return apply


def _bitwise(symbol: str, fn: Callable[[int, int], int]) -> Callable[[Value, Value], Value]:
    def apply(left: Value, right: Value) -> Value:
        a, b = _numeric(symbol, left, right)
        return Primitive(float(_int32(fn(_int32(a), _int32(b)))))
    return apply


def _compare(symbol: str, fn: Callable[[object, object], bool]) -> Callable[[Value, Value], Value]:
    def apply(left: Value, right: Value) -> Value:
        if isinstance(left, Primitive) and isinstance(right, Primitive):
            if left.is_text and right.is_text:
                return boolean(fn(left.value, right.value))
            if not left.is_text and not right.is_text:
                return boolean(fn(float(left.value), float(right.value)))
        raise error_unsupported_operand(symbol, left.describe(), right.describe())
    return apply


OPERATORS: Dict[str, Callable[[Value, Value], Value]] = {
    "+": _add,
    "-": _arithmetic("-", op.sub),
    "*": _arithmetic("*", op.mul),
    "/": _divide,
    "%": _modulo,
    "&": _bitwise("&", op.and_),
    "|": _bitwise("|", op.or_),
    "^": _bitwise("^", op.xor),
    "<<": _bitwise("<<", lambda a, b: a << (b & 31)),
    ">>": _bitwise(">>", lambda a, b: a >> (b & 31)),
    "<": _compare("<", op.lt),
    ">": _compare(">", op.gt),
    "<=": _compare("<=", op.le),
    ">=": _compare(">=", op.ge),
    "==": lambda left, right: boolean(values_equal(left, right)),
    "!=": lambda left, right: boolean(not values_equal(left, right)),
}


def apply_operator(symbol: str, left: Value, right: Value) -> Value:
    """Apply a binary operator to two evaluated operands."""
    return OPERATORS[symbol](left, right)


# =============================================================================
# Expressions
# =============================================================================

@dataclass(frozen=True, eq=False)
class Variable:
    """Reference to a name in the scope chain."""
    name: str

    def evaluate(self, context: Context) -> Value:
        return context.lookup(self.name)


@dataclass(frozen=True, eq=False)
class BinaryOp:
    """Binary operation; 'and'/'or' short-circuit and yield booleans."""
    operator: str
    left: "Expr"
    right: "Expr"

    def evaluate(self, context: Context) -> Value:
        left = self.left.evaluate(context)
        if left.is_thrown:
            return left
        if self.operator == "and" and not left.truthy():
            return boolean(False)
        if self.operator == "or" and left.truthy():
            return boolean(True)
        right = self.right.evaluate(context)
        if right.is_thrown:
            return right
        if self.operator in ("and", "or"):
            return boolean(right.truthy())
        return apply_operator(self.operator, left, right)


@dataclass(frozen=True, eq=False)
class UnaryOp:
    """'not' or numeric negation ('neg')."""
    operator: str
    operand: "Expr"

    def evaluate(self, context: Context) -> Value:
        value = self.operand.evaluate(context)
        if value.is_thrown:
            return value
        if self.operator == "not":
            return boolean(not value.truthy())
        if isinstance(value, Primitive) and not value.is_text:
            return Primitive(-float(value.value))
        raise error_unsupported_operand("-", value.describe())


@dataclass(frozen=True, eq=False)
class Property:
    """Property access, target.name."""
    target: "Expr"
    name: str

    def receiver(self, context: Context) -> Value:
        """Evaluate the target and box it into an instance."""
        target = self.target.evaluate(context)
        if target.is_thrown:
            return target
        return property_of(context, target, self.name)

    def evaluate(self, context: Context) -> Value:
        receiver = self.receiver(context)
        if receiver.is_thrown:
            return receiver
        return receiver.get_property(context, self.name)


@dataclass(frozen=True, eq=False)
class FunCall:
    """
    Call of a function, method or class.

    Arguments are evaluated left to right in the caller's context and the
    first thrown argument aborts the call. A call through a property binds
    the receiver as 'this'.
    """
    callee: "Expr"
    args: Tuple["Expr", ...] = ()

    def evaluate(self, context: Context) -> Value:
        this = None
        if isinstance(self.callee, Property):
            this = self.callee.receiver(context)
            if this.is_thrown:
                return this
            callee = this.get_property(context, self.callee.name)
        else:
            callee = self.callee.evaluate(context)
            if callee.is_thrown:
                return callee

        args = []
        for arg in self.args:
            value = arg.evaluate(context)
            if value.is_thrown:
                return value
            args.append(value)
        return call_value(context, callee, args, this)


@dataclass(frozen=True, eq=False)
class ListLiteral:
    """A list literal, [a, b, c]."""
    elements: Tuple["Expr", ...] = ()

    def evaluate(self, context: Context) -> Value:
        items = []
        for element in self.elements:
            value = element.evaluate(context)
            if value.is_thrown:
                return value
            items.append(value)
        return list_instance(context, items)


Expr = Union[Value, Variable, BinaryOp, UnaryOp, Property, FunCall, ListLiteral]


# =============================================================================
# Statements
# =============================================================================

class _Empty:
    """The empty statement that ends every sequence chain."""
    line_number = 0

    def evaluate(self, context: Context) -> Context:
        return context

    def __repr__(self) -> str:
        return "EMPTY"


EMPTY = _Empty()


@dataclass(frozen=True, eq=False)
class Sequence:
    """
    first followed by second, right-leaning.

    The chain is walked in a loop. A thrown signal or runtime failure
    leaving `first` is annotated with this sequence's line, at most once
    per scope, before it propagates.
    """
    first: "Statement"
    second: "Statement"
    line_number: int = 0

    def evaluate(self, context: Context) -> Context:
        node = self
        while isinstance(node, Sequence):
            try:
                done = node.first.evaluate(context)
            except RuntimeFailure as failure:
                failure.add_frame(context, context.frame(node.line_number))
                raise
            if done.is_thrown:
                done.thrown_node.add_frame(context, context.frame(node.line_number))
                return done
            if not done.is_normal:
                return done
            context = done
            node = node.second
        return node.evaluate(context)

    def __iter__(self):
        node = self
        while isinstance(node, Sequence):
            yield node.first
            node = node.second


@dataclass(frozen=True, eq=False)
class ExprStatement:
    """An expression evaluated for its effect (a bare call)."""
    expr: Expr

    def evaluate(self, context: Context) -> Context:
        value = self.expr.evaluate(context)
        if value.is_thrown:
            return context.thrown(value)
        return context


@dataclass(frozen=True, eq=False)
class Assign:
    """name = value, or name op= value, bound in the current frame."""
    name: str
    value: Expr
    operator: str = ""

    def evaluate(self, context: Context) -> Context:
        value = self.value.evaluate(context)
        if value.is_thrown:
            return context.thrown(value)
        if self.operator:
            value = apply_operator(self.operator, context.lookup(self.name), value)
        return context.assign(self.name, value)


@dataclass(frozen=True, eq=False)
class NonlocalAssign:
    """nonlocal name [op]= value, rebinding in the nearest defining ancestor."""
    name: str
    value: Expr
    operator: str = ""

    def evaluate(self, context: Context) -> Context:
        value = self.value.evaluate(context)
        if value.is_thrown:
            return context.thrown(value)
        if self.operator:
            value = apply_operator(self.operator, context.lookup(self.name), value)
        return context.assign_nonlocal(self.name, value)


@dataclass(frozen=True, eq=False)
class PropertyAssign:
    """target.name [op]= value, setting an own property."""
    target: Expr
    name: str
    value: Expr
    operator: str = ""

    def evaluate(self, context: Context) -> Context:
        instance = self.target.evaluate(context)
        if instance.is_thrown:
            return context.thrown(instance)
        if not isinstance(instance, Instance):
            raise error_no_properties(instance.describe(), self.name)
        value = self.value.evaluate(context)
        if value.is_thrown:
            return context.thrown(value)
        if self.operator:
            prior = instance.properties.get(self.name)
            if prior is None:
                raise error_not_defined(self.name)
            value = apply_operator(self.operator, prior, value)
        instance.set_property(self.name, value)
        return context


@dataclass(frozen=True, eq=False)
class If:
    condition: Expr
    then_branch: "Statement"
    else_branch: "Statement" = EMPTY

    def evaluate(self, context: Context) -> Context:
        cond = self.condition.evaluate(context)
        if cond.is_thrown:
            return context.thrown(cond)
        if cond.truthy():
            return self.then_branch.evaluate(context)
        return self.else_branch.evaluate(context)


@dataclass(frozen=True, eq=False)
class While:
    """Condition loop; the only consumer of the break signal."""
    condition: Expr
    body: "Statement"

    def evaluate(self, context: Context) -> Context:
        while True:
            cond = self.condition.evaluate(context)
            if cond.is_thrown:
                return context.thrown(cond)
            if not cond.truthy():
                return context
            done = self.body.evaluate(context)
            if done.is_broken:
                return done.normal()
            if not done.is_normal:
                return done
            context = done


@dataclass(frozen=True, eq=False)
class Switch:
    """First case with a value equal to the subject wins, else the default."""
    subject: Expr
    cases: Tuple[Tuple[Tuple[Expr, ...], "Statement"], ...] = ()
    default: "Statement" = EMPTY

    def evaluate(self, context: Context) -> Context:
        subject = self.subject.evaluate(context)
        if subject.is_thrown:
            return context.thrown(subject)
        for values, body in self.cases:
            for expr in values:
                value = expr.evaluate(context)
                if value.is_thrown:
                    return context.thrown(value)
                if values_equal(subject, value):
                    return body.evaluate(context)
        return self.default.evaluate(context)


@dataclass(frozen=True, eq=False)
class Return:
    value: Optional[Expr] = None

    def evaluate(self, context: Context) -> Context:
        if self.value is None:
            return context.returned(Void)
        value = self.value.evaluate(context)
        if value.is_thrown:
            return context.thrown(value)
        return context.returned(value)


@dataclass(frozen=True, eq=False)
class Throw:
    value: Expr

    def evaluate(self, context: Context) -> Context:
        value = self.value.evaluate(context)
        if value.is_thrown:
            return context.thrown(value)
        return context.thrown(Thrown(value))


def record_trace(context: Context, thrown: Thrown) -> None:
    """Copy the frames of a thrown trace-aware instance into its stackTraceElements list."""
    value = thrown.value
    if not (isinstance(value, Instance) and value.has_own_property("stackTraceElements")):
        return
    elements = value.properties["stackTraceElements"]
    if not (isinstance(elements, Instance) and isinstance(elements.internal, Native)):
        return
    for frame in thrown.frames:
        elements.internal.value.append(Instance(context.builtin_class("Object"), {
            "fileName": Primitive(frame.file_name),
            "lineNumber": Primitive(float(frame.line_number)),
            "statement": Primitive(frame.statement),
        }))


@dataclass(frozen=True, eq=False)
class Try:
    """
    try body, catch(variable) handler.

    The catch variable is bound only while the handler runs.
    """
    body: "Statement"
    variable: str
    handler: "Statement"

    def evaluate(self, context: Context) -> Context:
        done = self.body.evaluate(context)
        if not done.is_thrown:
            return done
        thrown = done.thrown_node
        record_trace(context, thrown)
        scope = done.normal().assign(self.variable, thrown.value)
        done = self.handler.evaluate(scope)
        done.delete(self.variable)
        return done


@dataclass(frozen=True, eq=False)
class Break:
    def evaluate(self, context: Context) -> Context:
        return context.broke()


@dataclass(frozen=True, eq=False)
class Import:
    """import a.b.c [as alias]; binds the module under alias or its last name."""
    module: str
    alias: Optional[str] = None

    @property
    def binding(self) -> str:
        return self.alias or self.module.rsplit(".", 1)[-1]

    def evaluate(self, context: Context) -> Context:
        loader = context.environment.loader
        if loader is None:
            raise error_module_not_found(self.module, [])
        module = loader.load(self.module, context)
        if module.is_thrown:
            return context.thrown(module)
        return context.assign(self.binding, module)


Statement = Union[Sequence, _Empty, ExprStatement, Assign, NonlocalAssign, PropertyAssign,
                  If, While, Switch, Return, Throw, Try, Break, Import]


def statement_count(stmt: Statement) -> int:
    """Number of top-level statements in a sequence chain."""
    if isinstance(stmt, Sequence):
        return sum(1 for _ in stmt)
    return 0 if stmt is EMPTY else 1
