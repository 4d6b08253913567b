"""
Preview messages for findings.

A preview is the rest of the source line starting at the keyword,
cut to a maximum number of characters.
"""

from todoscan.core.line_locator import CR, LF
from todoscan.core.matcher import ENCODING

TRUNCATION_MARKER = "..."


def line_end(buffer: bytes, start: int) -> int:
    """
    Offset where the line containing ``start`` ends, excluding its terminator.

    A CR directly before the LF is excluded as well.
    """
    end = buffer.find(LF, start)
    if end == -1:
        return len(buffer)
    if end > start and buffer[end - 1] == CR:
        end -= 1
    return end


def build_preview(start: int, buffer: bytes, max_length: int) -> str:
    """
    Build the preview message for a match starting at ``start``.

    Args:
        start: Byte offset of the match's first byte
        buffer: Raw file content
        max_length: Maximum preview length in characters, not counting the marker

    Returns:
        The decoded remainder of the line, or its first ``max_length``
        characters followed by TRUNCATION_MARKER when it is longer

    Raises:
        ValueError: If max_length is negative
    """
    if max_length < 0:
        raise ValueError(f"max_length must be non-negative, got {max_length}")

    text = buffer[start : line_end(buffer, start)].decode(ENCODING, errors="replace")
    if len(text) > max_length:
        return text[:max_length] + TRUNCATION_MARKER
    return text
