from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

CHARS_PER_TOKEN = 4


def heuristic_count(text: str) -> int:
    """Coarse estimate: roughly four characters per token, at least 1."""
    rough = (text or "").strip()
    if not rough:
        return 0
    return max(1, math.ceil(len(rough) / CHARS_PER_TOKEN))


class TokenCounter(ABC):
    """Counts tokens for a ``(text, model)`` pair.

    :meth:`count` never raises: if :meth:`_count` fails for any reason
    the coarse :func:`heuristic_count` is returned instead.  Results must
    be deterministic for a given pair.
    """

    def count(self, text: str, model: str = DEFAULT_MODEL) -> int:
        if not text:
            return 0
        try:
            return self._count(text, model)
        except Exception:
            logger.warning(
                "Token counting failed for model %s, using heuristic",
                model,
                exc_info=True,
            )
            return heuristic_count(text)

    @abstractmethod
    def _count(self, text: str, model: str) -> int: ...


class HeuristicTokenCounter(TokenCounter):
    """Character-length estimate; used when no tokenizer is installed."""

    def _count(self, text: str, model: str) -> int:
        return heuristic_count(text)
