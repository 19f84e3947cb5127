"""Token-bounded chunking of long documents for the context budget.

Strategy: split on blank lines into paragraphs, pack greedily up to
``max_tokens``, fall back to sentence boundaries for paragraphs that
alone exceed the budget, and seed each new chunk with a tail of the
previous one when ``overlap_tokens > 0``.
"""

from __future__ import annotations

import re

from live_context.tokens.base import DEFAULT_MODEL, TokenCounter

DEFAULT_MAX_TOKENS = 500
DEFAULT_OVERLAP_TOKENS = 80

PARAGRAPH_SEP = "\n\n"
SENTENCE_SEP = " "

_PARAGRAPH_SPLIT = re.compile(r"\n{2,}")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_WORD = re.compile(r"\S+")


def tail_overlap(
    text: str,
    overlap_tokens: int,
    counter: TokenCounter,
    model: str = DEFAULT_MODEL,
) -> str:
    """Shortest word-aligned suffix of *text* with at least *overlap_tokens*.

    Scans backward word by word.  Returns ``""`` when overlap is disabled
    or the whole text is shorter than the target.
    """
    if overlap_tokens <= 0:
        return ""
    starts = [m.start() for m in _WORD.finditer(text)]
    for start in reversed(starts):
        candidate = text[start:]
        if counter.count(candidate, model) >= overlap_tokens:
            return candidate
    return ""


class _Packer:
    def __init__(
        self,
        max_tokens: int,
        overlap_tokens: int,
        counter: TokenCounter,
        model: str,
    ) -> None:
        self.max_tokens = max_tokens
        self.overlap_tokens = overlap_tokens
        self.counter = counter
        self.model = model
        self.chunks: list[str] = []
        self.current = ""

    def _count(self, text: str) -> int:
        return self.counter.count(text, self.model)

    def add(self, piece: str, sep: str) -> None:
        if not self.current:
            self.current = piece
            return

        candidate = self.current + sep + piece
        if self._count(candidate) <= self.max_tokens:
            self.current = candidate
            return

        self.close()
        seed = tail_overlap(
            self.chunks[-1], self.overlap_tokens, self.counter, self.model
        )
        # A seed that would push the new chunk over budget is dropped.
        if seed and self._count(seed + sep + piece) <= self.max_tokens:
            self.current = seed + sep + piece
        else:
            self.current = piece

    def close(self) -> None:
        if self.current.strip():
            self.chunks.append(self.current)
        self.current = ""


def chunk_text(
    text: str,
    counter: TokenCounter,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    overlap_tokens: int = DEFAULT_OVERLAP_TOKENS,
    model: str = DEFAULT_MODEL,
) -> list[str]:
    """Split *text* into an ordered list of non-empty token-bounded chunks.

    Every chunk counts at most *max_tokens* tokens, except a chunk made of
    a single sentence that alone exceeds the budget.  With overlap enabled,
    the seeded head of chunk *n+1* is a literal suffix of chunk *n*.
    """
    cleaned = (text or "").replace("\r\n", "\n").replace("\r", "\n").strip()
    if not cleaned:
        return []

    paragraphs = [p.strip() for p in _PARAGRAPH_SPLIT.split(cleaned)]
    packer = _Packer(max_tokens, overlap_tokens, counter, model)

    for para in paragraphs:
        if not para:
            continue
        if counter.count(para, model) <= max_tokens:
            packer.add(para, PARAGRAPH_SEP)
            continue
        sentences = [s for s in _SENTENCE_SPLIT.split(para) if s.strip()]
        for i, sentence in enumerate(sentences):
            packer.add(sentence, PARAGRAPH_SEP if i == 0 else SENTENCE_SEP)

    packer.close()
    return packer.chunks
