# pyright: reportAny=false
from collections.abc import Callable
from dataclasses import dataclass

import pytest

from strtemplate import (
    UNKNOWN_ARGS,
    Aggregate,
    AttributeList,
    AutoIndentWriter,
    ErrorBuffer,
    InvalidAttributeNameError,
    RecursiveApplicationError,
    StringTemplate,
    TemplateGroup,
    UnknownAttributeError,
)

GroupFactory = Callable[..., TemplateGroup]


class TestSetAttribute:
    def test_renders_scalar(self) -> None:
        template = StringTemplate("Hello, <name>!")
        template.set_attribute("name", "World")

        assert template.render() == "Hello, World!"

    def test_repeated_names_promote_to_list(self) -> None:
        template = StringTemplate("<name; separator=\", \">")
        template.set_attribute("name", "a")
        template.set_attribute("name", "b")

        assert template.attributes["name"] == ["a", "b"]
        assert type(template.attributes["name"]) is AttributeList
        assert template.render() == "a, b"

    def test_callers_list_is_copied_before_extending(self) -> None:
        template = StringTemplate("<x>")
        values = [1, 2]
        template.set_attribute("x", values)
        template.set_attribute("x", 3)

        assert template.attributes["x"] == [1, 2, 3]
        assert values == [1, 2]

    def test_list_values_are_flattened_into_existing(self) -> None:
        template = StringTemplate("<x>")
        template.set_attribute("x", 1)
        template.set_attribute("x", [2, 3])

        assert template.attributes["x"] == [1, 2, 3]

    def test_iterators_are_materialized(self) -> None:
        template = StringTemplate("<x>")
        template.set_attribute("x", iter([1, 2]))

        assert template.attributes["x"] == [1, 2]
        assert template.render() == "12"
        assert template.render() == "12"

    def test_none_is_ignored(self) -> None:
        template = StringTemplate("<x>")
        template.set_attribute("x", None)

        assert "x" not in template.attributes

    def test_dot_in_name_is_rejected(self) -> None:
        template = StringTemplate("<x>")

        with pytest.raises(InvalidAttributeNameError, match="cannot have '.'"):
            template.set_attribute("a.b", 1)

    def test_remove_attribute(self) -> None:
        template = StringTemplate("<x>")
        template.set_attribute("x", 1)
        template.remove_attribute("x")
        template.remove_attribute("never-set")

        assert template.render() == ""

    def test_template_value_gets_enclosing_instance(self) -> None:
        outer = StringTemplate("[<inner>]")
        inner = StringTemplate("<name>")
        outer.set_attribute("name", "x")
        outer.set_attribute("inner", inner)

        assert inner.enclosing_instance is outer
        assert outer.render() == "[x]"

    def test_cannot_enclose_itself(self) -> None:
        template = StringTemplate("<x>")

        with pytest.raises(ValueError, match="in itself"):
            template.enclosing_instance = template

    def test_initial_attributes(self) -> None:
        template = StringTemplate("<a><b>", attributes={"a": 1, "b": 2})

        assert template.render() == "12"


class TestAggregates:
    def test_builds_aggregate_per_call(self) -> None:
        template = StringTemplate(
            '<items:{p|<p.name>=<p.price>}; separator=",">'
        )
        template.set_attribute("items.{name,price}", "a", 1)
        template.set_attribute("items.{ name, price }", "b", 2)

        assert template.render() == "a=1,b=2"
        assert isinstance(template.attributes["items"][0], Aggregate)

    def test_value_count_must_match(self) -> None:
        template = StringTemplate("<items>")

        with pytest.raises(InvalidAttributeNameError, match="mismatch"):
            template.set_attribute("items.{name,price}", "a")

    def test_malformed_spec(self) -> None:
        template = StringTemplate("<items>")

        with pytest.raises(InvalidAttributeNameError, match="invalid aggregate"):
            template.set_attribute("items.{}", "a")

    def test_plain_names_take_one_value(self) -> None:
        template = StringTemplate("<items>")

        with pytest.raises(InvalidAttributeNameError):
            template.set_attribute("items", "a", "b")


class TestFormalArguments:
    def test_undeclared_attribute_is_rejected(self, make_group: GroupFactory) -> None:
        group = make_group('group g;\nt(x) ::= "<x>"\n')
        template = group.get_instance_of("t")

        with pytest.raises(UnknownAttributeError) as exc_info:
            template.set_attribute("y", 1)

        assert exc_info.value.name == "y"
        assert "no such attribute: y" in str(exc_info.value)

    def test_templates_without_argument_list_accept_anything(self) -> None:
        template = StringTemplate("<y>")

        assert template.formal_arguments is UNKNOWN_ARGS
        template.set_attribute("y", 1)
        assert template.render() == "1"

    def test_define_formal_arguments_programmatically(self) -> None:
        template = StringTemplate("<a><b>")
        template.define_formal_arguments(["a", "b"])

        argument = template.get_formal_argument("a")
        assert argument is not None
        assert argument.name == "a"
        assert not argument.has_default
        assert template.get_formal_argument("c") is None
        with pytest.raises(UnknownAttributeError):
            template.set_attribute("c", 1)

    def test_string_default(self, make_group: GroupFactory) -> None:
        group = make_group('group g;\nt(x="dflt") ::= "<x>"\n')

        assert group.lookup_template("t").get_formal_argument("x").has_default  # pyright: ignore[reportOptionalMemberAccess]
        assert group.get_instance_of("t").render() == "dflt"
        assert group.get_instance_of("t", {"x": "set"}).render() == "set"

    def test_template_default_sees_other_arguments(self, make_group: GroupFactory) -> None:
        group = make_group('group g;\nt(a, b={<a>!}) ::= "<b>"\n')

        assert group.get_instance_of("t", {"a": "hi"}).render() == "hi!"

    def test_single_action_default_keeps_the_list(self, make_group: GroupFactory) -> None:
        group = make_group(
            'group g;\nt(names, x={<names>}) ::= "<x; separator=\\",\\"> <length(x)>"\n'
        )

        assert group.get_instance_of("t", {"names": ["a", "b"]}).render() == "a,b 2"

    def test_default_is_evaluated_per_render(self, make_group: GroupFactory) -> None:
        group = make_group('group g;\nt(a, b={[<a>]}) ::= "<b>"\n')
        first = group.get_instance_of("t", {"a": 1})
        second = group.get_instance_of("t", {"a": 2})

        assert first.render() == "[1]"
        assert second.render() == "[2]"

    def test_declared_but_unset_argument_hides_outer_value(
        self, make_group: GroupFactory
    ) -> None:
        group = make_group(
            """group g;
outer(x) ::= "<inner()>"
inner(x) ::= "[<x>]"
"""
        )

        assert group.get_instance_of("outer", {"x": 1}).render() == "[]"


class TestScopeResolution:
    def test_reference_resolves_through_enclosing_instances(
        self, make_group: GroupFactory
    ) -> None:
        group = make_group(
            """group g;
page(title) ::= "<body()>"
body() ::= "Title: <title>"
"""
        )

        assert group.get_instance_of("page", {"title": "Hi"}).render() == "Title: Hi"

    def test_unknown_reference_in_nested_template_raises(
        self, make_group: GroupFactory
    ) -> None:
        group = make_group(
            """group g;
outer() ::= "<inner()>"
inner() ::= "<nope>"
"""
        )

        with pytest.raises(UnknownAttributeError, match="no such attribute: nope") as exc_info:
            _ = group.get_instance_of("outer").render()

        assert exc_info.value.context == "[outer inner]"

    def test_top_level_unset_reference_renders_nothing(self, make_group: GroupFactory) -> None:
        group = make_group('group g;\nt() ::= "a<nope>b"\n')

        assert group.get_instance_of("t").render() == "ab"

    def test_pass_through_arguments(self, make_group: GroupFactory) -> None:
        group = make_group(
            """group g;
outer(x) ::= "<inner(...)>"
inner(x) ::= "[<x>]"
"""
        )

        assert group.get_instance_of("outer", {"x": 1}).render() == "[1]"

    def test_named_arguments(self, make_group: GroupFactory) -> None:
        group = make_group(
            """group g;
outer() ::= <<
<inner(x="v")>
>>
inner(x) ::= "[<x>]"
"""
        )

        assert group.get_instance_of("outer").render() == "[v]"

    def test_positional_argument_binds_single_parameter(self, make_group: GroupFactory) -> None:
        group = make_group(
            """group g;
outer(y) ::= "<inner(y)>"
inner(x) ::= "[<x>]"
"""
        )

        assert group.get_instance_of("outer", {"y": "v"}).render() == "[v]"

    def test_arguments_are_evaluated_in_callers_scope(self, make_group: GroupFactory) -> None:
        group = make_group(
            """group g;
outer(name) ::= <<
<inner(x=name)>
>>
inner(x) ::= "[<x>]"
"""
        )

        assert group.get_instance_of("outer", {"name": "n"}).render() == "[n]"

    def test_unknown_named_argument_raises(self, make_group: GroupFactory) -> None:
        group = make_group(
            """group g;
outer() ::= <<
<inner(y="v")>
>>
inner(x) ::= "[<x>]"
"""
        )

        with pytest.raises(UnknownAttributeError, match="template inner has no such attribute: y"):
            _ = group.get_instance_of("outer").render()

    def test_maps_are_the_last_resort(self, make_group: GroupFactory) -> None:
        group = make_group(
            """group g;
colors ::= ["red":"#f00", "green":key, default:"?"]
t(c) ::= "<colors.(c)>|<colors.green>"
"""
        )

        assert group.get_instance_of("t", {"c": "red"}).render() == "#f00|green"
        assert group.get_instance_of("t", {"c": "blue"}).render() == "?|green"

    def test_enclosing_instance_stack_string(self, make_group: GroupFactory) -> None:
        group = make_group('group g;\nt() ::= "x"\n')
        outer = group.get_instance_of("t")
        inner = StringTemplate("<x>", group, name="inner")
        inner.enclosing_instance = outer

        assert inner.get_enclosing_instance_stack_string() == "[t inner]"


class TestInstances:
    def test_instances_share_definition_not_attributes(self, make_group: GroupFactory) -> None:
        group = make_group('group g;\nt(x) ::= "<x>"\n')
        first = group.get_instance_of("t", {"x": 1})
        second = group.get_instance_of("t")

        assert first.chunks is second.chunks
        assert second.attributes == {}
        assert first.render() == "1"
        assert second.render() == ""

    def test_template_ids_increase(self) -> None:
        first = StringTemplate("a")
        second = first.get_instance_of()

        assert second.template_id > first.template_id

    def test_repr_shows_declarator(self, make_group: GroupFactory) -> None:
        group = make_group('group g;\nt(a, b) ::= "x"\n')
        template = group.lookup_template("t")

        assert repr(template) == f"<t([a, b])@{template.template_id}>"


class TestRenderers:
    class Upper:
        def format(self, value: object, format_string: str | None = None) -> str:
            text = str(value)
            return text.upper() if format_string == "upper" else text

    def test_group_renderer_applies_format_option(self) -> None:
        group = TemplateGroup("g")
        group.register_renderer(str, self.Upper())
        template = StringTemplate('<x; format="upper">/<x>', group)
        template.set_attribute("x", "abc")

        assert template.render() == "ABC/abc"

    def test_instance_renderer_wins_over_group(self) -> None:
        class Brackets:
            def format(self, value: object, format_string: str | None = None) -> str:
                return f"[{value}]"

        group = TemplateGroup("g")
        group.register_renderer(int, self.Upper())
        template = StringTemplate("<x>", group)
        template.register_renderer(int, Brackets())
        template.set_attribute("x", 7)

        assert template.render() == "[7]"

    def test_instance_registration_leaves_prototype_alone(self) -> None:
        group = TemplateGroup("g")
        prototype = group.define_template("t", "<x>")
        prototype.register_renderer(str, self.Upper())
        instance = prototype.get_instance_of()

        instance.register_renderer(int, self.Upper())

        assert prototype.get_attribute_renderer(int) is None
        assert isinstance(instance.get_attribute_renderer(str), self.Upper)

    def test_renderer_applies_to_subclasses(self) -> None:
        class Brackets:
            def format(self, value: object, format_string: str | None = None) -> str:
                return f"[{value}]"

        group = TemplateGroup("g")
        group.register_renderer(int, Brackets())
        template = StringTemplate("<x>", group)
        template.set_attribute("x", True)

        assert template.render() == "[True]"

    def test_nested_templates_inherit_instance_renderers(self) -> None:
        class Brackets:
            def format(self, value: object, format_string: str | None = None) -> str:
                return f"[{value}]"

        outer = StringTemplate("<inner>")
        inner = StringTemplate("<n>")
        inner.set_attribute("n", 1)
        outer.register_renderer(int, Brackets())
        outer.set_attribute("inner", inner)

        assert outer.render() == "[1]"


class TestLint:
    def test_reports_unused_attributes(
        self, lint_group: TemplateGroup, error_buffer: ErrorBuffer
    ) -> None:
        template = StringTemplate("<x>", lint_group, name="t")
        template.set_attribute("x", 1)
        template.set_attribute("y", 2)

        assert template.render() == "1"
        assert error_buffer.errors == ["t: set but not used: y"]

    def test_detects_recursive_application(self, lint_group: TemplateGroup) -> None:
        first = StringTemplate("<x>", lint_group, name="a")
        second = StringTemplate("<x>", lint_group, name="b")
        first.set_attribute("x", second)
        second.set_attribute("x", first)

        with pytest.raises(RecursiveApplicationError, match="infinite recursion") as exc_info:
            _ = first.render()

        assert "start of recursive cycle" in exc_info.value.trace

    def test_recursion_is_reported_before_any_output(self, lint_group: TemplateGroup) -> None:
        first = StringTemplate("A<x>", lint_group, name="a")
        second = StringTemplate("B<y>", lint_group, name="b")
        first.set_attribute("x", second)
        second.set_attribute("y", ["z", first])
        writer = AutoIndentWriter()

        with pytest.raises(RecursiveApplicationError, match="infinite recursion"):
            _ = first.write(writer)

        assert writer.getvalue() == ""

    def test_shared_attribute_is_not_recursion(self, lint_group: TemplateGroup) -> None:
        shared = StringTemplate("s", lint_group, name="s")
        template = StringTemplate("<x><y>", lint_group, name="t")
        template.set_attribute("x", shared)
        template.set_attribute("y", [shared, shared])

        assert template.render() == "sss"


@dataclass
class _User:
    name: str
    admin: bool = False


class TestPropertyAccess:
    def test_reads_object_attributes(self) -> None:
        template = StringTemplate("<user.name><if(user.admin)>!<endif>")
        template.set_attribute("user", _User("ann", admin=True))

        assert template.render() == "ann!"

    def test_reads_mapping_keys(self) -> None:
        template = StringTemplate("<m.a>")
        template.set_attribute("m", {"a": 1})

        assert template.render() == "1"

    def test_reads_template_attributes(self) -> None:
        inner = StringTemplate("")
        inner.set_attribute("a", "x")
        template = StringTemplate("<t.a>")
        template.set_attribute("t", inner)

        assert template.render() == "x"

    def test_uses_property_provider(self) -> None:
        class Provider:
            def get_property(self, name: str) -> str:
                return name * 2

        template = StringTemplate("<p.ab>")
        template.set_attribute("p", Provider())

        assert template.render() == "abab"

    def test_missing_property_is_reported(self) -> None:
        buffer = ErrorBuffer()
        template = StringTemplate("[<user.nope>]", TemplateGroup("g", error_listener=buffer))
        template.set_attribute("user", _User("ann"))

        assert template.render() == "[]"
        assert "_User has no such attribute: nope" in str(buffer)

    def test_private_names_are_not_exposed(self) -> None:
        buffer = ErrorBuffer()
        template = StringTemplate("[<user._secret>]", TemplateGroup("g", error_listener=buffer))
        template.set_attribute("user", _User("ann"))

        assert template.render() == "[]"
        assert buffer
