import string

from hypothesis import given, strategies as st

from strtemplate import StringTemplate, TemplateGroup

values = st.text(alphabet=string.ascii_letters + string.digits, min_size=1, max_size=8)
separators = st.sampled_from([",", ", ", ";", " | ", "-"])


@given(items=st.lists(values, min_size=1, max_size=10), separator=separators)
def test_separator_render_matches_join(items: list[str], separator: str) -> None:
    template = StringTemplate(f'<xs; separator="{separator}">')
    template.set_attribute("xs", items)

    assert template.render() == separator.join(items)


@given(items=st.lists(values, min_size=1, max_size=10))
def test_repeated_set_attribute_collects_values(items: list[str]) -> None:
    template = StringTemplate("<xs>")
    for item in items:
        template.set_attribute("xs", item)

    expected = items if len(items) > 1 else items[0]
    assert template.get_attribute("xs") == expected
    assert template.render() == "".join(items)


@given(items=st.lists(values, min_size=1, max_size=5), extra=values)
def test_caller_list_is_never_extended(items: list[str], extra: str) -> None:
    original = list(items)
    template = StringTemplate("<xs>")

    template.set_attribute("xs", items)
    template.set_attribute("xs", extra)

    assert items == original
    assert template.get_attribute("xs") == [*original, extra]


@given(first=values, second=values)
def test_instances_share_definition_not_attributes(first: str, second: str) -> None:
    group = TemplateGroup("g")
    _ = group.define_template("t", "[<x>]")

    one = group.get_instance_of("t", {"x": first})
    two = group.get_instance_of("t", {"x": second})

    assert one.render() == f"[{first}]"
    assert two.render() == f"[{second}]"
    assert one.chunks is two.chunks
    assert group.lookup_template("t").attributes == {}


@given(items=st.lists(values, min_size=1, max_size=6))
def test_anonymous_application_visits_every_item(items: list[str]) -> None:
    template = StringTemplate('<xs:{x|(<x>)}; separator=",">')
    template.set_attribute("xs", items)

    assert template.render() == ",".join(f"({item})" for item in items)


@given(value=values)
def test_fresh_instance_has_no_enclosing_instance(value: str) -> None:
    outer = StringTemplate("<x>", name="outer")
    embedded = StringTemplate("<y>", name="inner")
    outer.set_attribute("x", embedded)
    embedded.set_attribute("y", value)

    copy = embedded.get_instance_of()

    assert embedded.enclosing_instance is outer
    assert copy.enclosing_instance is None
    assert copy.attributes == {}
