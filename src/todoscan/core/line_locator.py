"""
Line tracking for a single forward pass over a byte buffer.
"""

from todoscan.core.matcher import ENCODING

LF = 0x0A
CR = 0x0D


def count_chars(buffer: bytes, start: int, end: int) -> int:
    """
    Count decoded characters in ``buffer[start:end]``.

    Malformed byte sequences decode to replacement characters, so a
    count is always produced.
    """
    if end <= start:
        return 0
    return len(buffer[start:end].decode(ENCODING, errors="replace"))


class LineLocator:
    """
    Tracks line starts while a buffer is consumed in order.

    Only LF terminates a line. A CR before it stays part of the line's
    bytes but sits after every column on that line, so CRLF and LF
    content yield identical line numbers and columns.
    """

    def __init__(self) -> None:
        self._line = 0
        self._line_start = 0

    @property
    def line(self) -> int:
        """0-based number of the current line."""
        return self._line

    @property
    def line_start(self) -> int:
        """Byte offset of the first byte of the current line."""
        return self._line_start

    def observe_terminator(self, offset: int) -> None:
        """Record an LF at ``offset``; the next line starts right after it."""
        self._line += 1
        self._line_start = offset + 1

    def column(self, buffer: bytes, offset: int) -> int:
        """
        Character column of ``offset`` on the current line.

        Derived by decoding the line prefix, not by subtracting byte
        offsets, so multi-byte characters count once.
        """
        return count_chars(buffer, self._line_start, offset)
