"""Splitting of long outgoing messages into transmission-safe parts.

Text is split on paragraph boundaries and packed greedily into parts of at
most ``limit`` characters. Code blocks and inline code are never cut;
paragraphs that are too long on their own are force-split at the best
sentence, line or word boundary that lies outside any code span.
"""

import re
import zlib
from dataclasses import dataclass, field

DEFAULT_LIMIT = 3000
MIN_PART_SIZE = 500  # Break points closer to the start than this are rejected

CODE_BLOCK_RE = re.compile(r"```[\s\S]*?```")
INLINE_CODE_RE = re.compile(r"`[^`\n]+`")  # single line only
PARAGRAPH_BREAK_RE = re.compile(r"\n{2,}")

# Break point candidates, best first
_BREAK_PATTERNS = (
    re.compile(r"[.!?] "),  # sentence end
    re.compile(r"\n"),
    re.compile(r" "),
)

Span = tuple[int, int]  # [start, end)


@dataclass(frozen=True)
class MessagePart:
    """One part of a split message."""

    content: str
    part_number: int  # 1-based
    total_parts: int

    @property
    def is_first(self) -> bool:
        return self.part_number == 1

    @property
    def is_last(self) -> bool:
        return self.part_number == self.total_parts

    @property
    def is_single(self) -> bool:
        return self.total_parts == 1

    @property
    def progress_indicator(self) -> str:
        return f"{self.part_number}/{self.total_parts}"


@dataclass(frozen=True)
class SplitResult:
    """All parts of one outgoing message, sharing a content-derived batch id."""

    original_content: str
    batch_id: str
    parts: list[MessagePart] = field(default_factory=list)

    @property
    def needs_split(self) -> bool:
        return len(self.parts) > 1

    @property
    def total_parts(self) -> int:
        return len(self.parts)

    @classmethod
    def single(cls, content: str, batch_id: str) -> "SplitResult":
        return cls(
            original_content=content,
            batch_id=batch_id,
            parts=[MessagePart(content, 1, 1)],
        )


def generate_batch_id(content: str) -> str:
    """Stable id for identical content: hash plus length."""
    checksum = zlib.crc32(content.encode("utf-8"))
    return f"batch_{checksum:08x}_{len(content)}"


def find_protected_spans(text: str) -> list[Span]:
    """Character ranges of code blocks and inline code.

    Inline code is only matched between fenced blocks, so the closing fence
    of one block never pairs with the opening fence of the next.
    """
    blocks = [m.span() for m in CODE_BLOCK_RE.finditer(text)]
    spans = list(blocks)

    outside = 0
    for start, end in blocks + [(len(text), len(text))]:
        spans += [m.span() for m in INLINE_CODE_RE.finditer(text, outside, start)]
        outside = end
    return sorted(spans)


def _cuts_span(offset: int, spans: list[Span]) -> bool:
    """Whether cutting the text at *offset* would sever a protected span."""
    return any(start < offset < end for start, end in spans)


class MessageSplitter:
    """Splits long messages without breaking code."""

    def split(self, content: str, limit: int = DEFAULT_LIMIT) -> SplitResult:
        batch_id = generate_batch_id(content)
        if len(content) <= limit:
            return SplitResult.single(content, batch_id)

        spans = find_protected_spans(content)
        paragraphs = self._split_paragraphs(content, spans)

        texts: list[str] = []
        for part in self._pack(paragraphs, limit):
            if len(part) <= limit:
                texts.append(part)
            else:
                texts.extend(self._force_split(part, limit))

        parts = [
            MessagePart(text, index + 1, len(texts))
            for index, text in enumerate(texts)
        ]
        return SplitResult(original_content=content, batch_id=batch_id, parts=parts)

    @staticmethod
    def _split_paragraphs(content: str, spans: list[Span]) -> list[str]:
        """Split on blank lines, except those inside code blocks."""
        paragraphs = []
        last = 0
        for match in PARAGRAPH_BREAK_RE.finditer(content):
            if _cuts_span(match.start(), spans):
                continue
            paragraph = content[last:match.start()].strip()
            if paragraph:
                paragraphs.append(paragraph)
            last = match.end()

        tail = content[last:].strip()
        if tail:
            paragraphs.append(tail)
        return paragraphs

    @staticmethod
    def _pack(paragraphs: list[str], limit: int) -> list[str]:
        """Greedily join paragraphs (with a blank line) into parts."""
        parts: list[str] = []
        current: list[str] = []
        length = 0

        for paragraph in paragraphs:
            if current and length + len(paragraph) + 2 > limit:
                parts.append("\n\n".join(current).strip())
                current, length = [], 0
            if current:
                length += 2
            current.append(paragraph)
            length += len(paragraph)

        if current:
            parts.append("\n\n".join(current).strip())
        return parts

    def _force_split(self, text: str, limit: int) -> list[str]:
        pieces = []
        remaining = text

        while len(remaining) > limit:
            cut = self._find_break_point(remaining, limit)
            if cut <= MIN_PART_SIZE:
                cut = limit
            head = remaining[:cut].strip()
            if head:
                pieces.append(head)
            remaining = remaining[cut:].strip()

        if remaining:
            pieces.append(remaining)
        return pieces

    @staticmethod
    def _find_break_point(text: str, limit: int) -> int:
        """Offset of the best cut at or before *limit*, or -1 if none qualifies."""
        spans = find_protected_spans(text)
        for pattern in _BREAK_PATTERNS:
            matches = list(pattern.finditer(text, 0, limit))
            for match in reversed(matches):
                if match.start() <= MIN_PART_SIZE:
                    break
                if not _cuts_span(match.end(), spans):
                    return match.end()
        return -1
