import io

import pytest

from strtemplate import AutoIndentWriter, NoIndentWriter, TemplateWriter


class TestAutoIndentWriter:
    def test_writes_plain_text(self) -> None:
        writer = AutoIndentWriter()

        n = writer.write("abc")

        assert n == 3
        assert writer.getvalue() == "abc"

    def test_indents_every_line(self) -> None:
        writer = AutoIndentWriter()
        writer.push_indentation("  ")

        n = writer.write("a\nb")

        assert writer.getvalue() == "  a\n  b"
        assert n == 7

    def test_indentation_stack_concatenates(self) -> None:
        writer = AutoIndentWriter()
        writer.push_indentation("  ")
        writer.push_indentation(None)
        writer.push_indentation("\t")

        _ = writer.write("x\ny")

        assert writer.getvalue() == "  \tx\n  \ty"

    def test_pop_returns_pushed_indentation(self) -> None:
        writer = AutoIndentWriter()
        writer.push_indentation("    ")

        assert writer.pop_indentation() == "    "
        assert writer.indents == [None]

    def test_indentation_is_written_lazily(self) -> None:
        writer = AutoIndentWriter()
        writer.push_indentation("  ")

        _ = writer.write("a\n\nb")

        assert writer.getvalue() == "  a\n\n  b"

    def test_normalizes_newlines(self) -> None:
        writer = AutoIndentWriter(newline="\r\n")

        _ = writer.write("a\r\nb\rc\nd")

        assert writer.getvalue() == "a\r\nb\r\nc\r\nd"

    def test_tracks_char_position(self) -> None:
        writer = AutoIndentWriter()

        _ = writer.write("ab\ncde")

        assert writer.char_position == 3
        assert not writer.at_start_of_line

    def test_wraps_once_line_width_is_reached(self) -> None:
        writer = AutoIndentWriter(line_width=3)

        for ch in "abcde":
            _ = writer.write(ch, "\n")

        assert writer.getvalue() == "abc\nde"

    def test_no_wrap_without_line_width(self) -> None:
        writer = AutoIndentWriter()
        _ = writer.write("a" * 100)

        assert writer.write_wrap("\n") == 0
        assert writer.getvalue() == "a" * 100

    def test_no_wrap_at_start_of_line(self) -> None:
        writer = AutoIndentWriter(line_width=1)

        assert writer.write_wrap("\n") == 0

    def test_wrapped_lines_align_to_anchor(self) -> None:
        writer = AutoIndentWriter(line_width=6)
        _ = writer.write("x = ")
        writer.push_anchor_point()

        _ = writer.write("ab", "\n")
        _ = writer.write("cd", "\n")
        writer.pop_anchor_point()

        assert writer.getvalue() == "x = ab\n    cd"

    def test_nested_anchors_use_innermost_column(self) -> None:
        writer = AutoIndentWriter(line_width=6)
        _ = writer.write("a:")
        writer.push_anchor_point()
        _ = writer.write("b:")
        writer.push_anchor_point()

        _ = writer.write("cc", "\n")
        _ = writer.write("dd", "\n")
        writer.pop_anchor_point()
        _ = writer.write("ee", "\n")
        writer.pop_anchor_point()

        assert writer.getvalue() == "a:b:cc\n    dd\n  ee"

    def test_newline_unit_is_not_doubled_by_wrap(self) -> None:
        writer = AutoIndentWriter(line_width=2)
        _ = writer.write("ab")

        _ = writer.write("\n", "\n")
        _ = writer.write("c")

        assert writer.getvalue() == "ab\nc"

    def test_wrapped_lines_keep_indentation(self) -> None:
        writer = AutoIndentWriter(line_width=4)
        writer.push_indentation("  ")

        _ = writer.write("ab", "\n")
        _ = writer.write("cd", "\n")

        assert writer.getvalue() == "  ab\n  cd"

    def test_separators_never_wrap(self) -> None:
        writer = AutoIndentWriter(line_width=1)
        _ = writer.write("a")

        _ = writer.write_separator(",")

        assert writer.getvalue() == "a,"

    def test_fork_is_empty_writer_of_same_kind(self) -> None:
        writer = AutoIndentWriter(newline="\r\n")
        _ = writer.write("abc")

        forked = writer.fork()

        assert type(forked) is AutoIndentWriter
        assert forked.getvalue() == ""
        assert forked.newline == "\r\n"

    def test_writes_to_given_stream(self) -> None:
        out = io.StringIO()
        writer = AutoIndentWriter(out)

        _ = writer.write("hi")

        assert out.getvalue() == "hi"

    def test_getvalue_requires_buffered_stream(self) -> None:
        writer = AutoIndentWriter(io.TextIOWrapper(io.BytesIO()))

        with pytest.raises(TypeError, match="does not buffer"):
            _ = writer.getvalue()

    def test_satisfies_writer_protocol(self) -> None:
        assert isinstance(AutoIndentWriter(), TemplateWriter)


class TestNoIndentWriter:
    def test_ignores_indentation(self) -> None:
        writer = NoIndentWriter()
        writer.push_indentation("  ")

        n = writer.write("a\nb")

        assert writer.getvalue() == "a\nb"
        assert n == 3

    def test_fork_keeps_kind(self) -> None:
        assert type(NoIndentWriter().fork()) is NoIndentWriter
