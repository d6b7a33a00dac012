import string

from hypothesis import given, strategies as st

from strtemplate import AutoIndentWriter

line_text = st.text(alphabet=string.ascii_letters + " .", max_size=12)
words = st.text(alphabet=string.ascii_lowercase, min_size=1, max_size=6)


@given(lines=st.lists(line_text, min_size=1, max_size=8), indent=st.sampled_from(["  ", "\t", "    "]))
def test_indentation_applied_to_every_non_empty_line(lines: list[str], indent: str) -> None:
    writer = AutoIndentWriter()
    writer.push_indentation(indent)

    _ = writer.write("\n".join(lines))

    assert writer.getvalue() == "\n".join(indent + line if line else "" for line in lines)


@given(lines=st.lists(line_text, min_size=1, max_size=8))
def test_newline_conventions_are_normalized(lines: list[str]) -> None:
    writer = AutoIndentWriter(newline="\r\n")

    _ = writer.write("\n".join(lines))

    assert writer.getvalue() == "\r\n".join(lines)


@given(items=st.lists(words, min_size=1, max_size=20), width=st.integers(min_value=1, max_value=30))
def test_wrap_preserves_content(items: list[str], width: int) -> None:
    writer = AutoIndentWriter(line_width=width)

    for index, item in enumerate(items):
        if index:
            _ = writer.write_separator(",")
        _ = writer.write(item, wrap="\n")

    output = writer.getvalue()
    assert output.replace("\n", "") == ",".join(items)
    for line in output.split("\n")[:-1]:
        assert len(line) >= width


@given(items=st.lists(words, min_size=1, max_size=10))
def test_wrap_is_inert_without_line_width(items: list[str]) -> None:
    writer = AutoIndentWriter()

    for item in items:
        _ = writer.write(item, wrap="\n")

    assert writer.getvalue() == "".join(items)
