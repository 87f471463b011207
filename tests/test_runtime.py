"""
Tests for runtime values, contexts and the built-in registry.
"""

import math
import pytest

from toylang import ToyReferenceError
from toylang.runtime import (
    Null, Void, Primitive, Native, Func, Class, Instance, Thrown,
    Signal, StackFrame, SourceFile, Environment, Context,
    BuiltinRegistry, root_context, display, values_equal, list_instance,
)
from toylang.runtime.values import format_number
from toylang.runtime.builtins import parse_float, parse_int


@pytest.fixture
def context():
    return root_context(Environment(), SourceFile.from_source("<test>", "x = 1\n  y = 2\n"))


class TestValues:
    """Test the value domain."""

    def test_void_is_null(self):
        """Void and Null are the same sentinel."""
        assert Void is Null
        assert str(Null) == "null"

    def test_primitive_equality_is_strict(self):
        """Equal Python values of different types differ."""
        assert Primitive(1.0) == Primitive(1.0)
        assert Primitive(1.0) != Primitive(True)
        assert Primitive(0.0) != Primitive(False)
        assert hash(Primitive("a")) == hash(Primitive("a"))

    def test_truthiness(self):
        """Null, zero, empty text and NaN are false; instances are true."""
        assert not Null.truthy()
        assert not Primitive(0.0).truthy()
        assert not Primitive("").truthy()
        assert not Primitive(False).truthy()
        assert not Primitive(math.nan).truthy()
        assert Primitive("0").truthy()
        assert Instance(None, {}, Native([])).truthy()

    def test_number_formatting(self):
        """Integral numbers print without a fraction."""
        assert format_number(3.0) == "3"
        assert format_number(-0.5) == "-0.5"
        assert format_number(math.nan) == "NaN"
        assert format_number(-math.inf) == "-Infinity"
        assert str(Primitive(True)) == "true"

    def test_values_equal_identity_for_instances(self):
        """Instances compare by identity."""
        a = Instance(None, {}, Native([]))
        b = Instance(None, {}, Native([]))
        assert values_equal(a, a)
        assert not values_equal(a, b)
        assert values_equal(Primitive("x"), Primitive("x"))

    def test_thrown_frames_once_per_scope(self, context):
        """A scope contributes at most one frame."""
        thrown = Thrown(Primitive(1.0))
        view = context.thrown(thrown)
        thrown.add_frame(view, context.frame(2))
        thrown.add_frame(context, context.frame(1))
        child = context.child()
        thrown.add_frame(child, child.frame(1))
        assert [f.line_number for f in thrown.frames] == [2, 1]


class TestContext:
    """Test scope chains and signals."""

    def test_lookup_walks_parents(self, context):
        """Names resolve through the parent chain."""
        context.assign("a", Primitive(1.0))
        inner = context.child().child()
        assert inner.lookup("a") == Primitive(1.0)

    def test_lookup_miss_raises(self, context):
        """An unresolved name raises ToyReferenceError."""
        with pytest.raises(ToyReferenceError) as exc_info:
            context.lookup("missing")
        assert exc_info.value.code == "E401"
        assert "missing is not defined" in str(exc_info.value)

    def test_assign_shadows(self, context):
        """Assignment binds in the current frame only."""
        context.assign("a", Primitive(1.0))
        inner = context.child()
        inner.assign("a", Primitive(2.0))
        assert context.lookup("a") == Primitive(1.0)
        assert inner.lookup("a") == Primitive(2.0)

    def test_assign_nonlocal(self, context):
        """Nonlocal assignment rebinds in the nearest defining ancestor."""
        context.assign("a", Primitive(1.0))
        middle = context.child()
        inner = middle.child()
        inner.assign("a", Primitive(5.0))
        inner.assign_nonlocal("a", Primitive(2.0))
        assert context.lookup("a") == Primitive(2.0)
        assert inner.lookup("a") == Primitive(5.0)

    def test_assign_nonlocal_miss(self, context):
        """Nonlocal assignment to an unknown name fails."""
        with pytest.raises(ToyReferenceError):
            context.child().assign_nonlocal("nowhere", Primitive(1.0))

    def test_signal_views_share_bindings(self, context):
        """Bindings made through a view are visible in the frame."""
        view = context.returned(Primitive(3.0))
        assert view.signal is Signal.RETURNED
        view.assign("z", Primitive(9.0))
        assert context.lookup("z") == Primitive(9.0)
        assert view.same_frame(context)
        assert not view.same_frame(context.child())

    def test_single_signal(self, context):
        """Each view carries exactly one signal."""
        assert context.is_normal
        assert context.broke().is_broken
        assert context.thrown(Thrown(Null)).is_thrown
        assert context.broke().normal().is_normal

    def test_result(self, context):
        """A context's result is the returned value, the Thrown or Void."""
        assert context.result() is Void
        assert context.returned(Primitive(1.0)).result() == Primitive(1.0)
        thrown = Thrown(Primitive(2.0))
        assert context.thrown(thrown).result() is thrown

    def test_frames_use_source_text(self, context):
        """Stack frames quote the trimmed source line."""
        frame = context.frame(2)
        assert frame == StackFrame("<test>", 2, "y = 2")
        assert str(frame) == "<test>:2 y = 2"

    def test_builtin_class_survives_rebinding(self, context):
        """Rebinding a built-in name does not change the runtime's classes."""
        original = context.lookup("List")
        context.assign("List", Primitive(1.0))
        assert context.builtin_class("List") is original

    def test_output_goes_to_environment(self):
        """Output fragments reach the environment sink in order."""
        chunks = []
        ctx = Context(environment=Environment(output=chunks.append))
        ctx.output("a")
        ctx.child().output("b")
        assert chunks == ["a", "b"]


class TestBuiltinRegistry:
    """Test the built-in class graph."""

    def test_classes_installed(self, context):
        """Every built-in class is bound in a root context."""
        for name in ("Object", "Function", "Class", "String", "List", "Number", "Exception"):
            value = context.lookup(name)
            assert isinstance(value.internal, Class)
            assert value.class_name == "Class"

    def test_class_is_instance_of_itself(self):
        """The Class class value is its own class."""
        registry = BuiltinRegistry()
        clz = registry.classes["Class"]
        assert clz.clz is clz

    def test_object_has_no_parents(self):
        """Object ends the hierarchy."""
        registry = BuiltinRegistry()
        assert registry.classes["Object"].internal.parent_names == ()
        assert registry.classes["List"].internal.parent_names == ("Object",)

    def test_registries_independent(self):
        """Each registry builds fresh class values."""
        assert BuiltinRegistry().classes["List"] is not BuiltinRegistry().classes["List"]

    def test_functions_are_values(self, context):
        """Global built-ins are Function instances."""
        value = context.lookup("println")
        assert value.class_name == "Function"
        assert isinstance(value.internal, Func)

    def test_display_list(self, context):
        """Lists display through their toString method."""
        items = list_instance(context, [Primitive(1.0), Primitive("a"), Null])
        assert display(context, items) == Primitive("[1, a, null]")

    def test_method_resolution_on_builtins(self, context):
        """String methods resolve on the String class."""
        string_class = context.lookup("String").internal
        assert string_class.has_method(context, "toUpperCase")
        assert not string_class.has_method(context, "nope")
        with pytest.raises(ToyReferenceError):
            string_class.get_method(context, "nope")


class TestNumberParsing:
    """Test the parseFloat/parseInt helpers."""

    def test_parse_float_prefix(self):
        """The longest numeric prefix is used."""
        assert parse_float("3.5kg") == 3.5
        assert parse_float("  -2e3") == -2000.0
        assert parse_float("Infinity") == math.inf
        assert math.isnan(parse_float("abc"))

    def test_parse_int_radix(self):
        """Digits are read in the given radix."""
        assert parse_int("42px") == 42.0
        assert parse_int("ff", 16) == 255.0
        assert parse_int("0x1A", 16) == 26.0
        assert parse_int("-101", 2) == -5.0
        assert math.isnan(parse_int("z"))
        assert math.isnan(parse_int("1", 40))
