"""Tests for the schema walker (core/walker.py).

The prompt and choice sources are fakes from ``conftest``; no terminal
is involved.
"""

from __future__ import annotations

import pytest

from conftest import (
    FakeChoiceSource,
    FakePromptSource,
    color_field,
    message,
    nested,
    oneof_message,
    scalar,
)
from protocall.core.models import CompositeInput, FieldKind, FieldSchema, MessageSchema, ScalarInput
from protocall.core.resolver import ChoiceResolver
from protocall.core.walker import DEFAULT_PROMPT_FORMAT, SchemaWalker, render_label
from protocall.exceptions import SchemaError, UnsupportedKindError


def _walker(
    prompts: FakePromptSource,
    choices: FakeChoiceSource | None = None,
    **kwargs: str,
) -> SchemaWalker:
    return SchemaWalker(prompts, ChoiceResolver(choices or FakeChoiceSource()), **kwargs)


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------

class TestRenderLabel:
    def test_top_level(self) -> None:
        label = render_label(DEFAULT_PROMPT_FORMAT, [], "::", scalar("name"))
        assert label == "name (string) => "

    def test_nested(self) -> None:
        label = render_label(DEFAULT_PROMPT_FORMAT, ["a", "b"], "::", scalar("id", FieldKind.INT64))
        assert label == "id@a::b (int64) => "

    def test_custom_template_and_delimiter(self) -> None:
        label = render_label("[{ancestor}] {name}: ", ["x", "y"], "/", scalar("z"))
        assert label == "[@x/y] z: "

    def test_template_without_placeholders(self) -> None:
        assert render_label("> ", ["a"], "::", scalar("z")) == "> "


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

class TestCollect:
    def test_flat_message_in_declaration_order(self) -> None:
        prompts = FakePromptSource(["1", "2", "3"])
        schema = message("demo.M", scalar("c"), scalar("a"), scalar("b", FieldKind.BOOL))

        collected = _walker(prompts).collect([], schema)

        assert [item.field.name for item in collected] == ["c", "a", "b"]
        assert [item.raw for item in collected] == ["1", "2", "3"]  # type: ignore[union-attr]
        assert prompts.labels == ["c (string) => ", "a (string) => ", "b (bool) => "]

    def test_nested_children_before_siblings(self, greet_procedure) -> None:
        prompts = FakePromptSource(["Ada", "42"])

        collected = _walker(prompts).collect([], greet_procedure.request)

        assert prompts.labels == ["name (string) => ", "count@meta (int32) => "]
        name, meta = collected
        assert isinstance(name, ScalarInput) and name.raw == "Ada"
        assert isinstance(meta, CompositeInput)
        assert meta.children == (ScalarInput(meta.field.message.fields[0], "42"),)  # type: ignore[union-attr]

    def test_depth_first_ordering(self) -> None:
        inner = message("demo.Inner", scalar("x"))
        outer = message("demo.Outer", nested("inner", inner), scalar("y"))
        root = message("demo.Root", nested("outer", outer), scalar("z"))
        prompts = FakePromptSource(["1", "2", "3"])

        _walker(prompts).collect([], root)

        assert prompts.labels == [
            "x@outer::inner (string) => ",
            "y@outer (string) => ",
            "z (string) => ",
        ]

    def test_accent_advances_per_nesting_level(self) -> None:
        inner = message("demo.Inner", scalar("x"))
        outer = message("demo.Outer", nested("inner", inner), scalar("y"))
        root = message("demo.Root", scalar("w"), nested("outer", outer))
        prompts = FakePromptSource(["1", "2", "3"])

        _walker(prompts).collect([], root)

        assert prompts.accents == [0, 2, 1]

    def test_custom_prompt_format(self) -> None:
        prompts = FakePromptSource(["1"])
        schema = message("demo.M", nested("m", message("demo.N", scalar("v"))))

        _walker(prompts, prompt_format="{ancestor}/{name}> ", ancestor_delimiter=".").collect([], schema)

        assert prompts.labels == ["@m/v> "]

    def test_empty_nested_message(self) -> None:
        schema = message("demo.M", nested("e", message("demo.Empty")))
        collected = _walker(FakePromptSource()).collect([], schema)
        assert collected == (CompositeInput(schema.fields[0], ()),)


class TestOneof:
    def test_only_the_chosen_member_is_collected(self) -> None:
        prompts = FakePromptSource(["Ada", "555", "hi"])
        choices = FakeChoiceSource({"channel": "phone"})

        collected = _walker(prompts, choices).collect([], oneof_message())

        assert [item.field.name for item in collected] == ["name", "phone", "note"]
        assert prompts.labels[1] == "phone (string) => "
        assert len(choices.calls) == 1

    def test_nested_levels_resolve_independently(self) -> None:
        node = MessageSchema(full_name="demo.Contact", name="Contact")
        contact = oneof_message()
        for f in contact.fields:
            node.add_field(f)
        node.oneofs.extend(contact.oneofs)
        node.add_field(FieldSchema("child", FieldKind.MESSAGE, message=contact))
        prompts = FakePromptSource(["a", "b", "c", "d", "e", "f"])
        choices = FakeChoiceSource({"child (demo.Contact)": "fill"})

        _walker(prompts, choices).collect([], node)

        assert [title for title, _ in choices.calls] == ["channel", "child (demo.Contact)", "channel"]


class TestEnum:
    def test_enum_is_chosen_not_prompted(self) -> None:
        prompts = FakePromptSource()
        choices = FakeChoiceSource({"Color": "BLUE"})
        schema = message("demo.M", color_field("color"))

        collected = _walker(prompts, choices).collect([], schema)

        assert collected == (ScalarInput(schema.fields[0], "BLUE"),)
        assert prompts.labels == []

    def test_enum_is_asked_once_and_bound_to_every_field(self) -> None:
        choices = FakeChoiceSource({"Color": "GREEN"})
        inner = message("demo.Inner", color_field("tint"))
        schema = message("demo.M", color_field("fg"), color_field("bg"), nested("inner", inner))

        collected = _walker(FakePromptSource(), choices).collect([], schema)

        fg, bg, inner_input = collected
        assert fg.raw == "GREEN" and bg.raw == "GREEN"  # type: ignore[union-attr]
        assert inner_input.children[0].raw == "GREEN"  # type: ignore[union-attr]
        assert len(choices.calls) == 1

    def test_new_pass_asks_again(self) -> None:
        choices = FakeChoiceSource()
        walker = _walker(FakePromptSource(), choices)
        schema = message("demo.M", color_field("fg"))

        walker.collect([], schema)
        walker.collect([], schema)

        assert len(choices.calls) == 2


class TestFailures:
    def test_end_of_input_propagates(self) -> None:
        prompts = FakePromptSource(["only one"])
        schema = message("demo.M", scalar("a"), scalar("b"), scalar("c"))

        with pytest.raises(EOFError):
            _walker(prompts).collect([], schema)
        assert len(prompts.labels) == 2

    def test_end_of_input_inside_nested_message(self, greet_procedure) -> None:
        with pytest.raises(EOFError):
            _walker(FakePromptSource(["Ada"])).collect([], greet_procedure.request)

    @pytest.mark.parametrize("kind", [FieldKind.MAP, FieldKind.GROUP])
    def test_unsupported_kind_fails_the_pass(self, kind: FieldKind) -> None:
        schema = message("demo.M", scalar("a"), FieldSchema("bad", kind))

        with pytest.raises(UnsupportedKindError, match=kind.value):
            _walker(FakePromptSource(["x"])).collect([], schema)

    def test_unsupported_kind_in_nested_message(self) -> None:
        inner = message("demo.Inner", FieldSchema("m", FieldKind.MAP))
        schema = message("demo.M", nested("inner", inner), scalar("after"))
        prompts = FakePromptSource(["x"])

        with pytest.raises(UnsupportedKindError):
            _walker(prompts).collect([], schema)
        assert prompts.labels == []

    def test_message_field_without_schema(self) -> None:
        schema = message("demo.M", FieldSchema("m", FieldKind.MESSAGE))
        with pytest.raises(SchemaError):
            _walker(FakePromptSource()).collect([], schema)


class TestRecursion:
    def test_self_referencing_request_completes(self, demo_provider) -> None:
        node = demo_provider.get_procedure("Walk").request
        prompts = FakePromptSource(["root"])
        choices = FakeChoiceSource()

        collected = _walker(prompts, choices).collect([], node)

        assert [item.field.name for item in collected] == ["value"]
        assert prompts.labels == ["value (string) => "]
        assert choices.calls == [("next (demo.Node)", ("skip", "fill"))]

    def test_each_level_can_be_filled(self, demo_provider) -> None:
        node = demo_provider.get_procedure("Walk").request
        prompts = FakePromptSource(["a", "b", "c"])
        choices = FakeChoiceSource({"next (demo.Node)": "fill", "next::next (demo.Node)": "fill"})

        value, child = _walker(prompts, choices).collect([], node)

        assert prompts.labels == [
            "value (string) => ",
            "value@next (string) => ",
            "value@next::next (string) => ",
        ]
        assert value.raw == "a"  # type: ignore[union-attr]
        assert isinstance(child, CompositeInput)
        grandchild = child.children[1]
        assert isinstance(grandchild, CompositeInput)
        assert [item.field.name for item in grandchild.children] == ["value"]
        assert [title for title, _ in choices.calls][-1] == "next::next::next (demo.Node)"

    def test_mutual_recursion_is_detected(self) -> None:
        a = MessageSchema(full_name="demo.A", name="A")
        b = MessageSchema(full_name="demo.B", name="B")
        a.add_field(nested("b", b))
        b.add_field(scalar("label"))
        b.add_field(nested("a", a))
        prompts = FakePromptSource(["x"])
        choices = FakeChoiceSource()

        collected = _walker(prompts, choices).collect([], a)

        assert prompts.labels == ["label@b (string) => "]
        assert choices.calls == [("b::a (demo.A)", ("skip", "fill"))]
        assert [item.field.name for item in collected[0].children] == ["label"]  # type: ignore[union-attr]

    def test_repeated_sibling_type_is_not_recursion(self) -> None:
        meta = message("demo.Meta", scalar("count", FieldKind.INT32))
        schema = message("demo.M", nested("first", meta), nested("second", meta))
        choices = FakeChoiceSource()

        collected = _walker(FakePromptSource(["1", "2"]), choices).collect([], schema)

        assert len(collected) == 2
        assert choices.calls == []

    def test_end_of_input_while_filling_propagates(self, demo_provider) -> None:
        node = demo_provider.get_procedure("Walk").request
        choices = FakeChoiceSource({"next (demo.Node)": "fill"})

        with pytest.raises(EOFError):
            _walker(FakePromptSource(["a"]), choices).collect([], node)
