"""
Built-in library for the toylang interpreter.

Classes: Object, Function, Class, String, List, Number, Exception.
Functions: print, println, input, hasValue, noValue, typeof,
currentTimeMillis, loadedModules.

Built-ins are ordinary Func values whose body is a NativeBody, so calls,
methods and property lookups go through the same protocol as user code.
A BuiltinRegistry builds fresh class values each time; nothing is shared
between root contexts.
"""

import functools
import math
import re
import sys
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple

from .values import (
    Value, Null, Void, Primitive, Native, Func, Class, Instance,
    boolean, number, text, list_instance, call_value, values_equal,
)
from .context import Context, Environment, SourceFile
from ..errors import error_bad_argument


@dataclass(frozen=True)
class NativeBody:
    """
    Body of a built-in function.

    Calls the implementation with the context and the bound parameters
    (preceded by 'this' for methods) and turns the result into a returned
    or thrown signal.
    """
    params: Tuple[str, ...]
    implementation: Callable[..., Value]
    method: bool = False

    def evaluate(self, context: Context) -> Context:
        args = [context.variables[param] for param in self.params]
        if self.method:
            args.insert(0, context.variables.get("this", Null))
        result = self.implementation(context, *args)
        if result.is_thrown:
            return context.thrown(result)
        return context.returned(result)


# =============================================================================
# Argument helpers
# =============================================================================

def _text_of(this: Value, where: str) -> str:
    if isinstance(this, Instance) and isinstance(this.internal, Primitive) and this.internal.is_text:
        return this.internal.value
    raise error_bad_argument(where, f"{this.describe()} is not a String")


def _items_of(this: Value, where: str) -> List[Value]:
    if isinstance(this, Instance) and isinstance(this.internal, Native) \
            and isinstance(this.internal.value, list):
        return this.internal.value
    raise error_bad_argument(where, f"{this.describe()} is not a List")


def _int_arg(value: Value, where: str, default: Any = None) -> int:
    if value is Null and default is not None:
        return default
    if isinstance(value, Primitive) and value.is_number and math.isfinite(value.value):
        return int(value.value)
    raise error_bad_argument(where, f"expected a number, got {value.describe()}")


def _str_arg(value: Value, where: str) -> str:
    if isinstance(value, Primitive) and value.is_text:
        return value.value
    raise error_bad_argument(where, f"expected text, got {value.describe()}")


def _index(items: List[Value], value: Value, where: str) -> int:
    idx = _int_arg(value, where)
    if not 0 <= idx < len(items):
        raise error_bad_argument(where, f"index {idx} out of range for length {len(items)}")
    return idx


def display(context: Context, value: Value) -> Value:
    """
    Text form of a value as print() shows it.

    Instances with a resolvable toString method are rendered by calling it;
    the result is a text Primitive, or a Thrown if toString threw.
    """
    if isinstance(value, Instance) and not isinstance(value.internal, (Primitive, Func)):
        method = value.clz_node.find_method(context, "toString")
        if method is not None:
            result = method.call(context, [], this=value)
            if result.is_thrown:
                return result
            return text(str(result))
    return text(str(value))


FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:Infinity|\d+(?:\.\d*)?(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?))"
)


def parse_float(source: str) -> float:
    """Parse the longest numeric prefix, NaN if there is none."""
    matched = FLOAT_PREFIX.match(source)
    if matched is None:
        return math.nan
    return float(matched.group(1).replace("Infinity", "inf"))


def parse_int(source: str, radix: int = 10) -> float:
    """Parse the longest integer prefix in the given radix, NaN if there is none."""
    if not 2 <= radix <= 36:
        return math.nan
    source = source.strip()
    sign = 1
    if source[:1] in ("+", "-"):
        sign = -1 if source[0] == "-" else 1
        source = source[1:]
    if radix == 16 and source[:2].lower() == "0x":
        source = source[2:]
    digits = ""
    for ch in source:
        if not ch.isascii() or not ch.isalnum() or int(ch, 36) >= radix:
            break
        digits += ch
    if not digits:
        return math.nan
    return float(sign * int(digits, radix))


class BuiltinRegistry:
    """
    Registry of all built-in classes and functions.

    Usage:
        registry = BuiltinRegistry()
        registry.install(context)
    """

    def __init__(self):
        self.classes: Dict[str, Instance] = {}
        self.functions: Dict[str, Instance] = {}
        self._bootstrap()
        self._register_all()

    # =========================================================================
    # Registration
    # =========================================================================

    def _bootstrap(self) -> None:
        """Create the class values; the Class class is an instance of itself."""
        class_value = Instance(None, {}, Class(name="Class"))
        class_value.clz = class_value
        self.classes["Class"] = class_value
        self.define_class("Object", parents=())
        for name in ("Function", "String", "List", "Number", "Exception"):
            self.define_class(name)

    def define_class(self, name: str, parents: Tuple[str, ...] = ("Object",)) -> Instance:
        value = Instance(self.classes["Class"], {}, Class(name=name, parent_names=parents))
        self.classes[name] = value
        return value

    def _native(self, name: str, params: Tuple[str, ...], implementation: Callable[..., Value],
                method: bool = False) -> Func:
        return Func(params, NativeBody(params, implementation, method), name)

    def _function_value(self, func: Func) -> Instance:
        return Instance(self.classes["Function"], {}, func)

    def register(self, name: str, params: Tuple[str, ...],
                 implementation: Callable[..., Value]) -> None:
        """Register a global function."""
        self.functions[name] = self._function_value(self._native(name, params, implementation))

    def register_method(self, class_name: str, name: str, params: Tuple[str, ...],
                        implementation: Callable[..., Value]) -> None:
        """Register an instance method; the implementation receives 'this' first."""
        self.classes[class_name].internal.methods[name] = \
            self._native(name, params, implementation, method=True)

    def register_static(self, class_name: str, name: str, params: Tuple[str, ...],
                        implementation: Callable[..., Value]) -> None:
        """Register a function as an own property of a class value."""
        self.classes[class_name].set_property(
            name, self._function_value(self._native(name, params, implementation)))

    def install(self, context: Context) -> Context:
        """Bind every built-in into a root context."""
        context.variables.update(self.classes)
        context.variables.update(self.functions)
        context.builtins.update(self.classes)
        return context

    def _register_all(self) -> None:
        self._register_functions()
        self._register_function_class()
        self._register_string()
        self._register_list()
        self._register_number()
        self._register_exception()

    # =========================================================================
    # Global functions
    # =========================================================================

    def _register_functions(self) -> None:
        """print, println, input, hasValue, noValue, typeof and friends."""

        def _print(context: Context, value: Value) -> Value:
            shown = display(context, value)
            if shown.is_thrown:
                return shown
            context.output(shown.value)
            return Void

        def _println(context: Context, value: Value) -> Value:
            if value is not Null:
                shown = _print(context, value)
                if shown.is_thrown:
                    return shown
            context.output("\n")
            return Void

        def _input(context: Context, prompt: Value) -> Value:
            return text(context.input("" if prompt is Null else str(prompt)))

        def _has_value(context: Context, value: Value) -> Value:
            return boolean(value is not Null)

        def _no_value(context: Context, value: Value) -> Value:
            return boolean(value is Null)

        def _typeof(context: Context, value: Value) -> Value:
            if value is Null:
                raise error_bad_argument("typeof", "no assigned value")
            if isinstance(value, Instance):
                return text(value.class_name)
            if value.is_text:
                return text("string")
            if value.is_boolean:
                return text("boolean")
            return text("number")

        def _current_time_millis(context: Context) -> Value:
            return number(int(time.time() * 1000))

        def _loaded_modules(context: Context) -> Value:
            loader = context.environment.loader
            names = loader.loaded_modules() if loader is not None else []
            return list_instance(context, [text(name) for name in names])

        self.register("print", ("value",), _print)
        self.register("println", ("value",), _println)
        self.register("input", ("prompt",), _input)
        self.register("hasValue", ("value",), _has_value)
        self.register("noValue", ("value",), _no_value)
        self.register("typeof", ("value",), _typeof)
        self.register("currentTimeMillis", (), _current_time_millis)
        self.register("loadedModules", (), _loaded_modules)

    def _register_function_class(self) -> None:
        """Methods of function and class values."""

        def _name(context: Context, this: Value) -> Value:
            return text(this.internal.name)

        def _apply(context: Context, this: Value, args: Value) -> Value:
            items = [] if args is Null else _items_of(args, "Function.apply")
            return call_value(context, this, list(items))

        def _parents(context: Context, this: Value) -> Value:
            return list_instance(context, [text(n) for n in this.internal.parent_names])

        self.register_method("Function", "name", (), _name)
        self.register_method("Function", "apply", ("args",), _apply)
        self.register_method("Class", "name", (), _name)
        self.register_method("Class", "parents", (), _parents)

    # =========================================================================
    # String
    # =========================================================================

    def _register_string(self) -> None:
        """String wraps a text Primitive; text literals are boxed on method calls."""

        def _init(context: Context, this: Value, value: Value) -> Value:
            this.internal = text("" if value is Null else str(value))
            return Void

        def _length(context, this):
            return number(len(_text_of(this, "String.length")))

        def _upper(context, this):
            return text(_text_of(this, "String.toUpperCase").upper())

        def _lower(context, this):
            return text(_text_of(this, "String.toLowerCase").lower())

        def _trim(context, this):
            return text(_text_of(this, "String.trim").strip())

        def _char_at(context, this, index):
            s = _text_of(this, "String.charAt")
            idx = _int_arg(index, "String.charAt", 0)
            return text(s[idx] if 0 <= idx < len(s) else "")

        def _index_of(context, this, sub, start):
            s = _text_of(this, "String.indexOf")
            return number(s.find(_str_arg(sub, "String.indexOf"), max(0, _int_arg(start, "String.indexOf", 0))))

        def _substring(context, this, start, end):
            s = _text_of(this, "String.substring")
            lo = min(max(_int_arg(start, "String.substring", 0), 0), len(s))
            hi = min(max(_int_arg(end, "String.substring", len(s)), 0), len(s))
            if lo > hi:
                lo, hi = hi, lo
            return text(s[lo:hi])

        def _starts_with(context, this, prefix):
            return boolean(_text_of(this, "String.startsWith").startswith(_str_arg(prefix, "String.startsWith")))

        def _ends_with(context, this, suffix):
            return boolean(_text_of(this, "String.endsWith").endswith(_str_arg(suffix, "String.endsWith")))

        def _includes(context, this, sub):
            return boolean(_str_arg(sub, "String.includes") in _text_of(this, "String.includes"))

        def _split(context, this, separator):
            s = _text_of(this, "String.split")
            if separator is Null:
                parts = [s]
            else:
                sep = _str_arg(separator, "String.split")
                parts = list(s) if sep == "" else s.split(sep)
            return list_instance(context, [text(p) for p in parts])

        def _to_string(context, this):
            return text(_text_of(this, "String.toString"))

        def _format(context: Context, template: Value) -> Value:
            fmt = _str_arg(template, "String.format")
            args = context.variables["arguments"].internal.value[1:]
            shown = []
            for arg in args:
                value = display(context, arg)
                if value.is_thrown:
                    return value
                shown.append(value.value)
            try:
                return text(fmt.format(*shown))
            except (IndexError, KeyError, ValueError) as e:
                raise error_bad_argument("String.format", str(e)) from e

        self.register_method("String", "init", ("value",), _init)
        self.register_method("String", "length", (), _length)
        self.register_method("String", "toUpperCase", (), _upper)
        self.register_method("String", "toLowerCase", (), _lower)
        self.register_method("String", "trim", (), _trim)
        self.register_method("String", "charAt", ("index",), _char_at)
        self.register_method("String", "indexOf", ("sub", "start"), _index_of)
        self.register_method("String", "substring", ("start", "end"), _substring)
        self.register_method("String", "startsWith", ("prefix",), _starts_with)
        self.register_method("String", "endsWith", ("suffix",), _ends_with)
        self.register_method("String", "includes", ("sub",), _includes)
        self.register_method("String", "split", ("separator",), _split)
        self.register_method("String", "toString", (), _to_string)
        self.register_static("String", "format", ("template",), _format)

    # =========================================================================
    # List
    # =========================================================================

    def _register_list(self) -> None:
        """List wraps a Python list of Values."""

        def _init(context: Context, this: Value, length: Value) -> Value:
            this.internal = Native([Null] * max(0, _int_arg(length, "List", 0)))
            return Void

        def _add(context, this, value):
            _items_of(this, "List.add").append(value)
            return Void

        def _get(context, this, index):
            items = _items_of(this, "List.get")
            return items[_index(items, index, "List.get")]

        def _set(context, this, index, value):
            items = _items_of(this, "List.set")
            items[_index(items, index, "List.set")] = value
            return Void

        def _length(context, this):
            return number(len(_items_of(this, "List.length")))

        def _is_empty(context, this):
            return boolean(not _items_of(this, "List.isEmpty"))

        def _index_of(context, this, value):
            for idx, item in enumerate(_items_of(this, "List.indexOf")):
                if values_equal(item, value):
                    return number(idx)
            return number(-1)

        def _includes(context, this, value):
            return boolean(_index_of(context, this, value).value >= 0)

        def _join(context, this, separator):
            sep = "," if separator is Null else _str_arg(separator, "List.join")
            shown = []
            for item in _items_of(this, "List.join"):
                value = display(context, item)
                if value.is_thrown:
                    return value
                shown.append(value.value)
            return text(sep.join(shown))

        def _slice(context, this, start, end):
            items = _items_of(this, "List.slice")
            lo = _int_arg(start, "List.slice", 0)
            hi = _int_arg(end, "List.slice", len(items))
            return list_instance(context, items[lo:hi])

        def _reverse(context, this):
            _items_of(this, "List.reverse").reverse()
            return this

        def _swap(context, this, i, j):
            items = _items_of(this, "List.swap")
            a, b = _index(items, i, "List.swap"), _index(items, j, "List.swap")
            items[a], items[b] = items[b], items[a]
            return Void

        def _map(context, this, fn):
            mapped = []
            for item in list(_items_of(this, "List.map")):
                result = call_value(context, fn, [item])
                if result.is_thrown:
                    return result
                mapped.append(result)
            return list_instance(context, mapped)

        def _filter(context, this, fn):
            kept = []
            for item in list(_items_of(this, "List.filter")):
                result = call_value(context, fn, [item])
                if result.is_thrown:
                    return result
                if result.truthy():
                    kept.append(item)
            return list_instance(context, kept)

        def _for_each(context, this, fn):
            for item in list(_items_of(this, "List.forEach")):
                result = call_value(context, fn, [item])
                if result.is_thrown:
                    return result
            return Void

        def _all(context, this, fn):
            for item in list(_items_of(this, "List.all")):
                result = call_value(context, fn, [item])
                if result.is_thrown:
                    return result
                if not result.truthy():
                    return boolean(False)
            return boolean(True)

        def _any(context, this, fn):
            for item in list(_items_of(this, "List.any")):
                result = call_value(context, fn, [item])
                if result.is_thrown:
                    return result
                if result.truthy():
                    return boolean(True)
            return boolean(False)

        def _find(context, this, fn):
            for item in list(_items_of(this, "List.find")):
                result = call_value(context, fn, [item])
                if result.is_thrown:
                    return result
                if result.truthy():
                    return item
            return Null

        def _sort_key(item: Value):
            if isinstance(item, Primitive):
                return item.value
            raise error_bad_argument("List.sort", f"cannot order {item.describe()}")

        def _sort(context, this, comparator):
            items = _items_of(this, "List.sort")
            if comparator is Null:
                try:
                    items.sort(key=_sort_key)
                except TypeError as e:
                    raise error_bad_argument("List.sort", "cannot order mixed values") from e
                return this

            thrown = []

            def compare(a: Value, b: Value) -> float:
                if thrown:
                    return 0
                result = call_value(context, comparator, [a, b])
                if result.is_thrown:
                    thrown.append(result)
                    return 0
                if not (isinstance(result, Primitive) and result.is_number):
                    raise error_bad_argument("List.sort", "comparator must return a number")
                return result.value

            items.sort(key=functools.cmp_to_key(compare))
            return thrown[0] if thrown else this

        def _to_string(context, this):
            shown = []
            for item in _items_of(this, "List.toString"):
                value = display(context, item)
                if value.is_thrown:
                    return value
                shown.append(value.value)
            return text("[" + ", ".join(shown) + "]")

        def _create(context: Context, length: Value, value: Value) -> Value:
            return list_instance(context, [value] * max(0, _int_arg(length, "List.create")))

        self.register_method("List", "init", ("length",), _init)
        self.register_method("List", "add", ("value",), _add)
        self.register_method("List", "get", ("index",), _get)
        self.register_method("List", "set", ("index", "value"), _set)
        self.register_method("List", "length", (), _length)
        self.register_method("List", "isEmpty", (), _is_empty)
        self.register_method("List", "includes", ("value",), _includes)
        self.register_method("List", "indexOf", ("value",), _index_of)
        self.register_method("List", "join", ("separator",), _join)
        self.register_method("List", "slice", ("start", "end"), _slice)
        self.register_method("List", "reverse", (), _reverse)
        self.register_method("List", "swap", ("i", "j"), _swap)
        self.register_method("List", "map", ("fn",), _map)
        self.register_method("List", "filter", ("fn",), _filter)
        self.register_method("List", "forEach", ("fn",), _for_each)
        self.register_method("List", "all", ("fn",), _all)
        self.register_method("List", "any", ("fn",), _any)
        self.register_method("List", "find", ("fn",), _find)
        self.register_method("List", "sort", ("comparator",), _sort)
        self.register_method("List", "toString", (), _to_string)
        self.register_static("List", "create", ("length", "value"), _create)

    # =========================================================================
    # Number
    # =========================================================================

    def _register_number(self) -> None:
        """Number is a namespace of static functions and constants."""

        def _parse_float(context: Context, value: Value) -> Value:
            return number(parse_float(str(value)))

        def _parse_int(context: Context, value: Value, radix: Value) -> Value:
            return number(parse_int(str(value), _int_arg(radix, "Number.parseInt", 10)))

        def _is_nan(context, value):
            return boolean(isinstance(value, Primitive) and value.is_number and math.isnan(value.value))

        def _is_finite(context, value):
            return boolean(isinstance(value, Primitive) and value.is_number and math.isfinite(value.value))

        def _is_integer(context, value):
            return boolean(isinstance(value, Primitive) and value.is_number
                           and math.isfinite(value.value) and value.value.is_integer())

        self.register_static("Number", "parseFloat", ("value",), _parse_float)
        self.register_static("Number", "parseInt", ("value", "radix"), _parse_int)
        self.register_static("Number", "isNaN", ("value",), _is_nan)
        self.register_static("Number", "isFinite", ("value",), _is_finite)
        self.register_static("Number", "isInteger", ("value",), _is_integer)

        constants = {
            "MAX_VALUE": sys.float_info.max,
            "MIN_VALUE": 5e-324,
            "NaN": math.nan,
            "POSITIVE_INFINITY": math.inf,
            "NEGATIVE_INFINITY": -math.inf,
        }
        for name, value in constants.items():
            self.classes["Number"].set_property(name, number(value))

    # =========================================================================
    # Exception
    # =========================================================================

    def _register_exception(self) -> None:
        """
        Exception instances are trace-aware: they own a stackTraceElements
        List that a catching try fills with the frames of the throw.
        """

        def _init(context: Context, this: Value, message: Value) -> Value:
            this.set_property("message", message)
            this.set_property("stackTraceElements", list_instance(context, []))
            return Void

        def _get_message(context, this):
            return this.properties.get("message", Null)

        def _to_string(context, this):
            message = this.properties.get("message", Null)
            if message is Null:
                return text(this.class_name)
            return text(f"{this.class_name}: {message}")

        def _print_stack_trace(context, this):
            shown = display(context, this)
            if shown.is_thrown:
                return shown
            lines = [shown.value]
            elements = this.properties.get("stackTraceElements")
            if elements is not None:
                for element in _items_of(elements, "Exception.printStackTrace"):
                    props = element.properties
                    lines.append(f"  at {props['fileName']}:{props['lineNumber']} {props['statement']}")
            context.output("\n".join(lines) + "\n")
            return Void

        self.register_method("Exception", "init", ("message",), _init)
        self.register_method("Exception", "getMessage", (), _get_message)
        self.register_method("Exception", "toString", (), _to_string)
        self.register_method("Exception", "printStackTrace", (), _print_stack_trace)


def root_context(environment: Environment, source: SourceFile) -> Context:
    """A fresh global context with every built-in installed."""
    return BuiltinRegistry().install(Context(environment=environment, source=source))
