"""
Tests for braceweave.runtime

Test Coverage:
- attach_template()/template(): record-attachment for python classes
- render_inline()/emit_inline(): scope-capture against caller bindings
- write_formatted(): representation modes
- guard_sink(): sink failures from statements, partial output, nested emission
"""
import io

import pytest

from braceweave.compiler import PlanCache
from braceweave.errors import CompileError, HostEmissionError
from braceweave.runtime import (
    GuardedSink,
    attach_template,
    emit_inline,
    guard_sink,
    render_inline,
    template,
    write_formatted,
)


class FailingSink:
    def write(self, text):
        raise OSError("closed")


class SecondWriteFails:
    def __init__(self):
        self.parts = []

    def write(self, text):
        if self.parts:
            raise OSError("closed")
        self.parts.append(text)
        return len(text)


class TestWriteFormatted:
    @pytest.mark.parametrize(
        "value, spec, mode, expected",
        [
            (7, "03", "display", "007"),
            ("a", ">3", "debug", "'a'"),
            ([1, 2], "", "pretty", "[1, 2]"),
            (3.5, "", "display", "3.5"),
        ],
    )
    def test_write_formatted_when_mode_then_representation(self, value, spec, mode, expected):
        """Display uses format(), debug and pretty format the repr."""
        sink = io.StringIO()

        write_formatted(sink, value, spec, mode)

        assert sink.getvalue() == expected

    def test_write_formatted_when_sink_fails_then_wrapped(self):
        """Sink exceptions are re-raised as HostEmissionError."""
        with pytest.raises(HostEmissionError):
            write_formatted(FailingSink(), 1, "", "display")


class TestAttachTemplate:
    def test_attach_when_fields_bound_then_str_renders(self, write_template):
        """The attached __str__ renders the listed fields."""
        path = write_template("point.tmpl", "({x}, {y:>3})")

        class Point:
            def __init__(self, x, y):
                self.x = x
                self.y = y

        attach_template(Point, path, ["x", ("y", "int")], cache=PlanCache())

        assert str(Point(1, 2)) == "(1,   2)"

    def test_attach_when_render_into_then_writes_to_sink(self, write_template):
        """render_into streams to a caller-supplied sink."""
        path = write_template("name.tmpl", "<{name}>")

        class Tag:
            name = "b"

        attach_template(Tag, path, ["name"], method="render", cache=PlanCache())
        sink = io.StringIO()
        Tag().render_into(sink)

        assert sink.getvalue() == "<b>"
        assert Tag().render() == "<b>"

    def test_attach_when_sink_fails_then_host_emission_error(self, write_template):
        """A failing sink aborts the routine with one error."""
        path = write_template("v.tmpl", "v={v}")

        class V:
            v = 1

        attach_template(V, path, ["v"], cache=PlanCache())

        with pytest.raises(HostEmissionError):
            V().render_into(FailingSink())

    def test_template_decorator_when_applied_then_class_returned(self, write_template):
        """The decorator form returns the same class."""
        path = write_template("dec.tmpl", "{ label = self.kind.upper(); label }:{count:02}")

        @template(path, ["count"])
        class Item:
            kind = "box"
            count = 3

        assert str(Item()) == "BOX:03"

    def test_attach_when_template_invalid_then_compile_error(self, write_template):
        """Compile failures surface when attaching."""
        path = write_template("bad.tmpl", "{x")

        class Broken:
            pass

        with pytest.raises(CompileError):
            attach_template(Broken, path, [], cache=PlanCache())


class TestRenderInline:
    def test_render_inline_when_caller_locals_then_resolved(self, write_template):
        """Free names resolve against the caller's local variables."""
        path = write_template("hi.tmpl", "Hi {name}, you have {count:>2} messages")
        name = "Ada"
        count = 4

        assert render_inline(path, cache=PlanCache()) == "Hi Ada, you have  4 messages"

    def test_render_inline_when_scope_given_then_used_instead(self, write_template):
        """An explicit scope replaces the caller's frame."""
        path = write_template("s.tmpl", "{ doubled = n * 2; doubled }")

        assert render_inline(path, {"n": 21}, cache=PlanCache()) == "42"

    def test_emit_inline_when_sink_given_then_written(self, write_template):
        """emit_inline writes straight to the sink."""
        path = write_template("e.tmpl", "[{ x:? }]")
        sink = io.StringIO()

        emit_inline(path, sink, {"x": "q"}, cache=PlanCache())

        assert sink.getvalue() == "['q']"


class TestGuardSink:
    def test_guard_when_already_guarded_then_same_proxy(self):
        """Nested routines reuse the outer proxy."""
        guarded = guard_sink(io.StringIO())

        assert isinstance(guarded, GuardedSink)
        assert guard_sink(guarded) is guarded

    def test_guard_when_attribute_missing_then_forwarded(self):
        """Other sink attributes pass through to the wrapped sink."""
        buffer = io.StringIO()
        guarded = guard_sink(buffer)

        guarded.write("x")

        assert guarded.getvalue() == "x"

    def test_emit_inline_when_statement_writes_to_failing_sink_then_host_emission_error(self, write_template):
        """A `sink.write` inside a statement block fails like a literal write."""
        path = write_template("loop.tmpl", "{ for i in range(3):\n    sink.write(str(i));\n}!")

        with pytest.raises(HostEmissionError) as exc_info:
            emit_inline(path, FailingSink(), {}, cache=PlanCache())

        assert isinstance(exc_info.value.__cause__, OSError)

    def test_emit_inline_when_second_write_fails_then_first_write_kept(self, write_template):
        """Output before the failure stays in the sink and nothing follows it."""
        path = write_template("partial.tmpl", "a{x}b")
        sink = SecondWriteFails()

        with pytest.raises(HostEmissionError):
            emit_inline(path, sink, {"x": 1}, cache=PlanCache())

        assert sink.parts == ["a"]

    def test_emit_inline_when_statement_emits_other_template_then_depth_first(self, write_template):
        """A nested emission lands between the surrounding literals."""
        inner = write_template("inner.tmpl", "B{n}")
        outer = write_template("outer.tmpl", "A{ emit_inline(inner_path, sink, {'n': 1}); }C")
        scope = {"emit_inline": emit_inline, "inner_path": str(inner)}

        assert render_inline(outer, scope, cache=PlanCache()) == "AB1C"
