"""Split chat messages into plain-text and fenced-code segments."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

FENCE = '```'
DEFAULT_LANGUAGE = 'plaintext'

_WORD_CHARS = frozenset('abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_')


class SegmentKind(Enum):
    TEXT = 'text'
    CODE = 'code'


@dataclass(frozen=True)
class Segment:
    """One contiguous piece of a message."""

    kind: SegmentKind
    content: str
    language: Optional[str] = None

    @property
    def is_code(self) -> bool:
        return self.kind is SegmentKind.CODE

    @classmethod
    def text(cls, content: str) -> 'Segment':
        return cls(SegmentKind.TEXT, content)

    @classmethod
    def code(cls, content: str, language: Optional[str] = None) -> 'Segment':
        return cls(SegmentKind.CODE, content, language or DEFAULT_LANGUAGE)


@dataclass(frozen=True)
class FenceMatch:
    """Offsets of a complete fenced block inside a message."""

    start: int
    end: int
    body_start: int
    body_end: int
    language: Optional[str]


def _match_opener(message: str, pos: int) -> Optional[Tuple[int, Optional[str]]]:
    """Validate a fence opener at ``pos``.

    Returns ``(body_start, language)`` when ``pos`` holds three backticks, an
    optional tag of word characters and a newline; ``None`` otherwise.
    """
    if not message.startswith(FENCE, pos):
        return None
    i = pos + len(FENCE)
    n = len(message)
    while i < n and message[i] in _WORD_CHARS:
        i += 1
    if i >= n or message[i] != '\n':
        return None
    tag = message[pos + len(FENCE):i]
    return i + 1, (tag or None)


def find_fence(message: str, start: int = 0) -> Optional[FenceMatch]:
    """Return the first complete fenced block at or after ``start``.

    Candidate openers that fail validation are skipped one character at a
    time, so runs of four or more backticks resolve the same way a
    left-to-right pattern search would.
    """
    pos = message.find(FENCE, start)
    while pos != -1:
        opened = _match_opener(message, pos)
        if opened is not None:
            body_start, language = opened
            close = message.find(FENCE, body_start)
            if close == -1:
                # No closer anywhere after this opener, so no later opener can close either.
                return None
            return FenceMatch(
                start=pos,
                end=close + len(FENCE),
                body_start=body_start,
                body_end=close,
                language=language,
            )
        pos = message.find(FENCE, pos + 1)
    return None


def parse_message(message: str) -> List[Segment]:
    """Parse ``message`` into an ordered list of segments.

    Text segments are exact slices of the input. Code segments carry the
    stripped body of a complete fence and its language tag, defaulting to
    ``plaintext``. An opener without a matching closer stays plain text.
    Never raises; empty input yields an empty list.
    """
    if not message:
        return []

    parts: List[Segment] = []
    last_index = 0
    match = find_fence(message, 0)
    while match is not None:
        if match.start > last_index:
            parts.append(Segment.text(message[last_index:match.start]))
        body = message[match.body_start:match.body_end]
        parts.append(Segment.code(body.strip(), match.language))
        last_index = match.end
        match = find_fence(message, last_index)

    if last_index < len(message):
        parts.append(Segment.text(message[last_index:]))

    return parts


def code_blocks(message: str) -> List[Segment]:
    """Return only the code segments of ``message``."""
    return [part for part in parse_message(message) if part.is_code]
