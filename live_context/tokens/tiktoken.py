"""Token counting with tiktoken, using the encoding the chat model uses."""

from __future__ import annotations

import logging

import tiktoken

from live_context.tokens.base import TokenCounter

logger = logging.getLogger(__name__)

O200K_BASE = "o200k_base"
CL100K_BASE = "cl100k_base"


def encoding_for_model(model: str) -> str:
    """Minimal model → encoding mapping for OpenAI chat models."""
    m = (model or "").lower()
    if "gpt-4o" in m or "o200k" in m:
        return O200K_BASE
    return CL100K_BASE


class TiktokenCounter(TokenCounter):
    """Exact counts via tiktoken; encoders are loaded once and cached."""

    def __init__(self) -> None:
        self._encoders: dict[str, tiktoken.Encoding] = {}

    def _encoder(self, encoding_name: str) -> tiktoken.Encoding:
        encoder = self._encoders.get(encoding_name)
        if encoder is None:
            encoder = tiktoken.get_encoding(encoding_name)
            self._encoders[encoding_name] = encoder
            logger.debug("Loaded tiktoken encoding %s", encoding_name)
        return encoder

    def _count(self, text: str, model: str) -> int:
        encoder = self._encoder(encoding_for_model(model))
        return len(encoder.encode(text, disallowed_special=()))
