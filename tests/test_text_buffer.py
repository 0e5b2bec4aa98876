"""
Tests for the text buffer: encoding validation, offset conversion and
token/sentence boundaries.
"""

import pytest

from exceptions import InvalidEncoding
from text_buffer import TextBuffer, on_word_boundaries


class TestConstruction:
    """Tests for input validation"""

    def test_str_input(self):
        buffer = TextBuffer("hello")

        assert buffer.text == "hello"
        assert buffer.codepoint_length == 5
        assert buffer.byte_length == 5
        assert buffer.is_ascii is True

    def test_bytes_input_is_decoded(self):
        buffer = TextBuffer("café".encode("utf-8"))

        assert buffer.text == "café"
        assert buffer.codepoint_length == 4
        assert buffer.byte_length == 5
        assert buffer.is_ascii is False

    def test_invalid_utf8_raises(self):
        with pytest.raises(InvalidEncoding) as exc_info:
            TextBuffer(b"abc\xff")

        assert exc_info.value.position == 3

    def test_lone_surrogate_raises(self):
        with pytest.raises(InvalidEncoding):
            TextBuffer("a\ud800b")

    def test_non_text_input_raises(self):
        with pytest.raises(TypeError):
            TextBuffer(123)

    def test_empty_text(self):
        buffer = TextBuffer("")

        assert len(buffer) == 0
        assert buffer.tokens() == []
        assert buffer.sentences() == []


class TestOffsets:
    """Tests for codepoint/byte conversion"""

    def test_ascii_offsets_are_identical(self):
        buffer = TextBuffer("plain text")

        assert buffer.byte_offset(6) == 6
        assert buffer.codepoint_index(6) == 6

    def test_multibyte_offsets(self):
        buffer = TextBuffer("naïve café")

        assert buffer.byte_length == 12
        assert buffer.byte_offset(3) == 4
        assert buffer.codepoint_index(4) == 3
        assert buffer.byte_offset(len(buffer)) == buffer.byte_length

    def test_four_byte_codepoint(self):
        buffer = TextBuffer("a😀b")

        assert buffer.byte_offset(1) == 1
        assert buffer.byte_offset(2) == 5
        assert buffer.span_to_bytes(1, 2) == (1, 5)

    def test_offset_inside_codepoint_raises(self):
        buffer = TextBuffer("naïve")

        with pytest.raises(ValueError):
            buffer.codepoint_index(3)

    def test_out_of_range_raises(self):
        buffer = TextBuffer("abc")

        with pytest.raises(ValueError):
            buffer.byte_offset(4)
        with pytest.raises(ValueError):
            buffer.codepoint_index(-1)

    def test_check_span(self):
        buffer = TextBuffer("abc")

        buffer.check_span(0, 3)
        buffer.check_span(1, 1)
        with pytest.raises(ValueError):
            buffer.check_span(2, 1)
        with pytest.raises(ValueError):
            buffer.check_span(0, 4)

    def test_slice_and_window(self):
        buffer = TextBuffer("abcdef")

        assert buffer.slice(2, 4) == "cd"
        assert buffer.window(2, 4, 1) == ("b", "e")
        assert buffer.window(0, 6, 10) == ("", "")


class TestBoundaries:
    """Tests for tokens, sentences and word boundaries"""

    def test_tokens_keep_inner_apostrophes_and_hyphens(self):
        buffer = TextBuffer("Don't stop-now")

        assert buffer.tokens() == [(0, 5), (6, 14)]

    def test_sentences(self):
        buffer = TextBuffer("Hello there. How are you?\n\nFine")

        assert buffer.sentences() == [(0, 11), (13, 24), (27, 31)]
        assert buffer.sentence_starts() == [0, 13, 27]

    def test_word_boundaries(self):
        text = "Parisian Paris"

        assert on_word_boundaries(text, 9, 14) is True
        assert on_word_boundaries(text, 0, 5) is False
        assert on_word_boundaries("C++ code", 0, 3) is True
