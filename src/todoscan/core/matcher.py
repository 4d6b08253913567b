"""
Keyword pattern compiler.

Turns configured keywords into matchers that answer a single question:
does the keyword end exactly at this byte offset of this buffer?

Matchers work on UTF-8 encoded content but always compare whole
characters, so a multi-byte keyword never matches part of a character.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass

ENCODING = "utf-8"


class PatternCompileError(ValueError):
    """Raised when a keyword cannot be turned into a matcher."""

    pass


@dataclass(frozen=True)
class KeywordPattern:
    """
    A keyword to detect.

    Attributes:
        text: Literal text of the keyword (e.g. "TODO")
        case_sensitive: Whether matching must respect letter case
    """

    text: str
    case_sensitive: bool = False


class Matcher(ABC):
    """
    Compiled test for "keyword ends at offset P".

    Implementations hold only data derived from their pattern, which keeps
    them safe to share across threads and to send to worker processes.
    """

    def __init__(self, pattern: KeywordPattern):
        if not pattern.text:
            raise PatternCompileError(
                "Keyword must not be empty: an empty keyword would match at every position"
            )
        self._pattern = pattern

    @property
    def pattern(self) -> KeywordPattern:
        """The pattern this matcher was compiled from."""
        return self._pattern

    @property
    def keyword(self) -> str:
        """The keyword text."""
        return self._pattern.text

    @abstractmethod
    def match_end(self, buffer: bytes, end: int) -> int | None:
        """
        Test whether the keyword occurs ending exactly at ``end``.

        Args:
            buffer: Raw file content
            end: Offset of the last byte of the candidate occurrence (inclusive)

        Returns:
            Length of the occurrence in bytes, or None if there is no match
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._pattern.text!r})"


class CaseSensitiveMatcher(Matcher):
    """Exact byte-for-byte comparison against the keyword's UTF-8 encoding."""

    def __init__(self, pattern: KeywordPattern):
        super().__init__(pattern)
        self._encoded = pattern.text.encode(ENCODING)
        self._last = self._encoded[-1]

    def match_end(self, buffer: bytes, end: int) -> int | None:
        length = len(self._encoded)
        if end < length - 1 or end >= len(buffer):
            return None
        if buffer[end] != self._last:
            return None
        if buffer[end - length + 1 : end + 1] == self._encoded:
            return length
        return None


def _case_variants(char: str) -> tuple[bytes, ...]:
    """
    Encoded forms a character may take when case is ignored.

    Only single-code-point case mappings are used; a mapping such as
    "ß" -> "SS" would change the character count and is skipped.
    """
    variants: list[bytes] = []
    for candidate in (char, char.upper(), char.lower()):
        if len(candidate) != 1:
            continue
        encoded = candidate.encode(ENCODING)
        if encoded not in variants:
            variants.append(encoded)
    return tuple(variants)


class CaseInsensitiveMatcher(Matcher):
    """
    Compares each keyword character against its upper- and lower-case forms.

    Comparison is per character, never a case fold of the whole buffer,
    so byte offsets in the buffer stay untouched. Upper- and lower-case
    forms may differ in encoded length, which is why the match length is
    the number of bytes actually consumed.
    """

    def __init__(self, pattern: KeywordPattern):
        super().__init__(pattern)
        # Stored last character first, since comparison walks backwards
        self._reversed_variants = tuple(_case_variants(c) for c in reversed(pattern.text))
        self._min_length = sum(min(len(v) for v in vs) for vs in self._reversed_variants)
        self._last_bytes = frozenset(v[-1] for v in self._reversed_variants[0])

    def match_end(self, buffer: bytes, end: int) -> int | None:
        if end < self._min_length - 1 or end >= len(buffer):
            return None
        if buffer[end] not in self._last_bytes:
            return None

        pos = end + 1
        for variants in self._reversed_variants:
            for encoded in variants:
                start = pos - len(encoded)
                if start >= 0 and buffer[start:pos] == encoded:
                    pos = start
                    break
            else:
                return None

        return end + 1 - pos


def compile_pattern(pattern: KeywordPattern) -> Matcher:
    """
    Compile one keyword pattern into a matcher.

    Raises:
        PatternCompileError: If the keyword is empty
    """
    if pattern.case_sensitive:
        return CaseSensitiveMatcher(pattern)
    return CaseInsensitiveMatcher(pattern)


def compile_patterns(patterns: Iterable[KeywordPattern]) -> tuple[Matcher, ...]:
    """
    Compile keyword patterns, preserving configured order.

    Order decides which finding is reported first when several keywords
    end at the same offset.
    """
    return tuple(compile_pattern(p) for p in patterns)
