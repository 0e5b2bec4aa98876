"""
Immutable text buffer with codepoint-safe offset indexing

Every span emitted by the matcher, the extractor and the scorer is a
half-open ``[start, end)`` range of codepoint indices into a TextBuffer.
Byte offsets are only produced on request, through the conversion methods.
"""
import re
from array import array
from typing import List, Optional, Tuple, Union

from exceptions import InvalidEncoding

TextInput = Union[str, bytes, bytearray, memoryview]

Span = Tuple[int, int]

# Words with inner hyphens/apostrophes count as one token
TOKEN_PATTERN = re.compile(r"\w+(?:[-'’]\w+)*")

# Sentence ends at terminal punctuation followed by whitespace, or a blank line
SENTENCE_BREAK_PATTERN = re.compile(r"[.!?]+[\"'’”)\]]*\s+|\n\s*\n")


def _utf8_width(char: str) -> int:
    code = ord(char)
    if code < 0x80:
        return 1
    if code < 0x800:
        return 2
    if code < 0x10000:
        return 3
    return 4


def _is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def on_word_boundaries(text: str, start: int, end: int) -> bool:
    """True unless a non-empty span cuts through a word at either edge"""
    if start > 0 and _is_word_char(text[start]) and _is_word_char(text[start - 1]):
        return False
    if end < len(text) and _is_word_char(text[end - 1]) and _is_word_char(text[end]):
        return False
    return True


class TextBuffer:
    """
    Read-only view over one input text

    Construction validates the encoding and precomputes a codepoint/byte
    index (skipped for pure ASCII, where both are identical) so every later
    offset conversion is O(1).

    Example:
        buffer = TextBuffer("naïve café")
        buffer.byte_offset(3)        # 4
        buffer.codepoint_index(4)    # 3
    """

    def __init__(self, text: TextInput):
        if isinstance(text, (bytes, bytearray, memoryview)):
            raw = bytes(text)
            try:
                decoded = raw.decode("utf-8", errors="strict")
            except UnicodeDecodeError as e:
                raise InvalidEncoding(
                    f"Input is not valid UTF-8 at byte {e.start}: {e.reason}",
                    position=e.start,
                    original_error=e
                ) from e
            byte_length = len(raw)
        elif isinstance(text, str):
            decoded = text
            try:
                byte_length = len(text.encode("utf-8", errors="strict"))
            except UnicodeEncodeError as e:
                raise InvalidEncoding(
                    f"Input holds a codepoint that cannot be encoded as UTF-8 at index {e.start}: {e.reason}",
                    position=e.start,
                    original_error=e
                ) from e
        else:
            raise TypeError(f"TextBuffer expects str or bytes, got {type(text).__name__}")

        self._text = decoded
        self._byte_length = byte_length
        self._byte_offsets: Optional[array] = None
        self._codepoint_at_byte: Optional[array] = None
        self._tokens: Optional[List[Span]] = None
        self._sentences: Optional[List[Span]] = None

        if byte_length != len(decoded):
            self._build_offset_index()

    def _build_offset_index(self) -> None:
        """Precompute codepoint -> byte and byte -> codepoint tables"""
        byte_offsets = array('q', [0]) * (len(self._text) + 1)
        codepoint_at_byte = array('q', [-1]) * (self._byte_length + 1)

        position = 0
        for index, char in enumerate(self._text):
            byte_offsets[index] = position
            codepoint_at_byte[position] = index
            position += _utf8_width(char)

        byte_offsets[len(self._text)] = position
        codepoint_at_byte[position] = len(self._text)

        self._byte_offsets = byte_offsets
        self._codepoint_at_byte = codepoint_at_byte

    @property
    def text(self) -> str:
        return self._text

    @property
    def codepoint_length(self) -> int:
        return len(self._text)

    @property
    def byte_length(self) -> int:
        return self._byte_length

    @property
    def is_ascii(self) -> bool:
        return self._byte_offsets is None

    def __len__(self) -> int:
        return len(self._text)

    def __repr__(self) -> str:
        return f"TextBuffer(codepoints={len(self._text)}, bytes={self._byte_length})"

    def byte_offset(self, index: int) -> int:
        """Convert a codepoint index (0..length inclusive) to a byte offset"""
        if not 0 <= index <= len(self._text):
            raise ValueError(f"Codepoint index {index} outside buffer of length {len(self._text)}")
        if self._byte_offsets is None:
            return index
        return self._byte_offsets[index]

    def codepoint_index(self, offset: int) -> int:
        """Convert a byte offset to a codepoint index; the offset must sit on a boundary"""
        if not 0 <= offset <= self._byte_length:
            raise ValueError(f"Byte offset {offset} outside buffer of {self._byte_length} bytes")
        if self._codepoint_at_byte is None:
            return offset
        index = self._codepoint_at_byte[offset]
        if index < 0:
            raise ValueError(f"Byte offset {offset} falls inside a multi-byte codepoint")
        return index

    def check_span(self, start: int, end: int) -> None:
        """Raise ValueError unless 0 <= start <= end <= length"""
        if not 0 <= start <= end <= len(self._text):
            raise ValueError(f"Invalid span [{start}, {end}) for buffer of length {len(self._text)}")

    def slice(self, start: int, end: int) -> str:
        self.check_span(start, end)
        return self._text[start:end]

    def span_to_bytes(self, start: int, end: int) -> Span:
        self.check_span(start, end)
        return self.byte_offset(start), self.byte_offset(end)

    def window(self, start: int, end: int, size: int) -> Tuple[str, str]:
        """Return up to ``size`` codepoints of context before and after a span"""
        self.check_span(start, end)
        return (
            self._text[max(0, start - size):start],
            self._text[end:min(len(self._text), end + size)]
        )

    def tokens(self) -> List[Span]:
        """Word token spans, derived from word characters only"""
        if self._tokens is None:
            self._tokens = [m.span() for m in TOKEN_PATTERN.finditer(self._text)]
        return self._tokens

    def sentences(self) -> List[Span]:
        """Sentence spans split on terminal punctuation and blank lines"""
        if self._sentences is None:
            spans: List[Span] = []
            start = 0
            for match in SENTENCE_BREAK_PATTERN.finditer(self._text):
                if self._text[start:match.start()].strip():
                    spans.append((start, match.start()))
                start = match.end()
            if self._text[start:].strip():
                spans.append((start, len(self._text.rstrip())))
            self._sentences = spans
        return self._sentences

    def sentence_starts(self) -> List[int]:
        """Index of the first non-space codepoint of every sentence"""
        starts = []
        for start, end in self.sentences():
            segment = self._text[start:end]
            starts.append(start + (len(segment) - len(segment.lstrip())))
        return starts
