"""Text helpers for Markdown bodies and request keywords."""

from __future__ import annotations

import re
from typing import Iterator, List

_WORD_RE = re.compile(r"[a-z0-9][a-z0-9_\-]*")
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")

STOP_WORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "can", "do", "for",
        "from", "how", "i", "in", "into", "is", "it", "me", "my", "of", "on",
        "or", "our", "please", "should", "that", "the", "this", "to", "we",
        "what", "when", "which", "with", "you", "your",
        # request filler
        "assess", "check", "evaluate", "help", "improve", "need", "review", "use", "using", "want",
    }
)


def tokenize(text: str, *, drop_stop_words: bool = True) -> List[str]:
    """Lowercase word tokens in order of first appearance, without duplicates."""
    seen: dict[str, None] = {}
    for match in _WORD_RE.finditer(text.lower()):
        word = match.group(0).strip("-_")
        if not word or (drop_stop_words and word in STOP_WORDS):
            continue
        seen.setdefault(word, None)
    return list(seen)


def iter_headings(body: str, *, max_level: int = 6) -> Iterator[tuple[int, str]]:
    """Yield `(level, text)` for ATX headings outside fenced code blocks."""
    in_fence = False
    for line in body.splitlines():
        if _FENCE_RE.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _HEADING_RE.match(line)
        if match and len(match.group(1)) <= max_level:
            yield len(match.group(1)), match.group(2).strip()


def first_heading(body: str) -> str | None:
    for level, text in iter_headings(body, max_level=1):
        return text
    return None


def count_code_blocks(body: str) -> int:
    fences = sum(1 for line in body.splitlines() if _FENCE_RE.match(line))
    return fences // 2


def first_paragraph(body: str) -> str:
    """Return the first prose paragraph, skipping headings and code."""
    paragraph: list[str] = []
    in_fence = False
    for line in body.splitlines():
        if _FENCE_RE.match(line):
            in_fence = not in_fence
            if paragraph:
                break
            continue
        stripped = line.strip()
        if in_fence or stripped.startswith("#"):
            if paragraph:
                break
            continue
        if not stripped:
            if paragraph:
                break
            continue
        paragraph.append(stripped)
    return " ".join(paragraph)


def excerpt(body: str, *, max_chars: int = 400) -> str:
    """Whitespace-collapsed prefix of a body, cut at a word boundary."""
    flat = " ".join(body.split())
    if len(flat) <= max_chars:
        return flat
    cut = flat[:max_chars]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut + "..."
