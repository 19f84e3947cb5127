from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

import litellm
from litellm.exceptions import APIConnectionError, APIError, RateLimitError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from live_context.assembly import ChatMessage
from live_context.exceptions import CapabilityUnavailableError, MalformedResponseError
from live_context.llm.base import BaseLLMClient
from live_context.llm.models import (
    OpenAIEmbeddingModel,
    OpenAIModel,
    qualified_model_name,
)

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (APIError, APIConnectionError, RateLimitError)

_retry_transient = retry(
    retry=retry_if_exception_type(_TRANSIENT_ERRORS),
    stop=stop_after_attempt(3),
    wait=wait_exponential_jitter(initial=1, max=10, jitter=1),
    reraise=True,
)


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj[name]
    return getattr(obj, name)


def extract_message_text(response: Any) -> str:
    """Pull ``choices[0].message.content`` out of a completion response."""
    try:
        choices = _field(response, "choices")
        message = _field(choices[0], "message")
        content = _field(message, "content")
    except (AttributeError, IndexError, KeyError, TypeError) as exc:
        raise MalformedResponseError("completion has no message content") from exc
    if not isinstance(content, str):
        raise MalformedResponseError("completion content is not text")
    return content


def extract_delta(chunk: Any) -> str:
    """Pull ``choices[0].delta.content`` out of a stream chunk, or ``""``."""
    try:
        choices = _field(chunk, "choices")
        if not choices:
            return ""
        delta = _field(choices[0], "delta")
        content = _field(delta, "content")
    except (AttributeError, IndexError, KeyError, TypeError):
        logger.debug("Ignoring malformed stream chunk: %.200r", chunk)
        return ""
    return content if isinstance(content, str) else ""


def extract_embeddings(response: Any, expected: int) -> list[list[float]]:
    try:
        data = _field(response, "data")
        vectors = [list(_field(item, "embedding")) for item in data]
    except (AttributeError, KeyError, TypeError) as exc:
        raise MalformedResponseError("embedding response has no vectors") from exc
    if len(vectors) != expected:
        raise MalformedResponseError(
            f"expected {expected} embeddings, got {len(vectors)}"
        )
    return vectors


class LiteLLMClient(BaseLLMClient):
    """OpenAI-compatible chat, streaming and embeddings through litellm."""

    def __init__(
        self,
        api_key: str = "",
        model: str = OpenAIModel.GPT_4O_MINI,
        embedding_model: str = OpenAIEmbeddingModel.TEXT_EMBEDDING_3_SMALL,
    ) -> None:
        self._api_key = api_key
        self._model = str(model)
        self._embedding_model = str(embedding_model)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> LiteLLMClient:
        kwargs = {
            k: config[k]
            for k in ("api_key", "model", "embedding_model")
            if config.get(k)
        }
        return cls(**kwargs)

    @property
    def model(self) -> str:
        return self._model

    def _require_key(self, capability: str) -> None:
        if not self._api_key:
            raise CapabilityUnavailableError(capability, "no API key configured")

    @_retry_transient
    async def _acompletion(self, **kwargs: Any) -> Any:
        return await litellm.acompletion(api_key=self._api_key, **kwargs)

    async def completion(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        self._require_key("completion")
        kwargs: dict[str, Any] = {}
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        response = await self._acompletion(
            model=qualified_model_name(model or self._model),
            messages=list(messages),
            **kwargs,
        )
        return extract_message_text(response).strip()

    async def stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str | None = None,
    ) -> AsyncIterator[str]:
        self._require_key("chat")
        response = await self._acompletion(
            model=qualified_model_name(model or self._model),
            messages=list(messages),
            stream=True,
        )
        async for chunk in response:
            delta = extract_delta(chunk)
            if delta:
                yield delta

    @_retry_transient
    async def embed(
        self,
        texts: Sequence[str],
        *,
        model: str | None = None,
    ) -> list[list[float]]:
        self._require_key("embeddings")
        if not texts:
            return []
        response = await litellm.aembedding(
            model=qualified_model_name(model or self._embedding_model),
            input=list(texts),
            api_key=self._api_key,
        )
        return extract_embeddings(response, len(texts))
