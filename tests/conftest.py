from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from live_context import LiveContext
from live_context.assembly import ChatMessage
from live_context.llm.base import BaseLLMClient
from live_context.models import ContextUnit, UnitType
from live_context.storage.disk import DiskStorage
from live_context.tokens.base import TokenCounter

T0 = datetime(2024, 3, 2, 9, 0, tzinfo=UTC)


def at(minutes: int) -> datetime:
    """A fixed timestamp *minutes* after ``T0``."""
    return T0 + timedelta(minutes=minutes)


def unit(
    type: UnitType | str,
    content: str,
    minute: int,
    **kwargs: Any,
) -> ContextUnit:
    return ContextUnit(
        type=UnitType(type), content=content, timestamp=at(minute), **kwargs
    )


class WordCountTokenCounter(TokenCounter):
    """One token per whitespace-separated word; deterministic and offline."""

    def _count(self, text: str, model: str) -> int:
        return len(text.split())


Script = list[str] | Exception


class FakeLLMClient(BaseLLMClient):
    """Scripted stand-in for the remote LLM.

    ``completions`` and ``replies`` are consumed in order; an ``Exception``
    entry is raised instead of returned.  Setting ``gate`` to an unset
    :class:`asyncio.Event` holds every stream before each fragment;
    ``completion_gate`` holds completions the same way, after the call
    is recorded.
    """

    def __init__(
        self,
        *,
        completions: list[str | Exception] | None = None,
        replies: list[Script] | None = None,
        embeddings: list[list[float]] | Exception | None = None,
    ) -> None:
        self.completions = list(completions or [])
        self.replies = list(replies or [])
        self.embeddings = embeddings
        self.gate: asyncio.Event | None = None
        self.completion_gate: asyncio.Event | None = None
        self.completion_calls: list[dict[str, Any]] = []
        self.stream_calls: list[list[ChatMessage]] = []
        self.embed_calls: list[list[str]] = []

    @property
    def model(self) -> str:
        return "gpt-4o-mini"

    async def completion(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        self.completion_calls.append(
            {
                "messages": list(messages),
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if self.completion_gate is not None:
            await self.completion_gate.wait()
        result = self.completions.pop(0) if self.completions else "A short summary."
        if isinstance(result, Exception):
            raise result
        return result

    async def stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str | None = None,
    ) -> AsyncIterator[str]:
        self.stream_calls.append(list(messages))
        script = self.replies.pop(0) if self.replies else ["Hello", " there"]
        if isinstance(script, Exception):
            raise script
        for fragment in script:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(0)
            yield fragment

    async def embed(
        self,
        texts: Sequence[str],
        *,
        model: str | None = None,
    ) -> list[list[float]]:
        self.embed_calls.append(list(texts))
        if isinstance(self.embeddings, Exception):
            raise self.embeddings
        if self.embeddings is not None:
            return self.embeddings
        return [[float(i), 1.0] for i in range(len(texts))]


@pytest.fixture()
def counter() -> WordCountTokenCounter:
    return WordCountTokenCounter()


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture()
def storage(tmp_path: Path) -> DiskStorage:
    return DiskStorage(str(tmp_path / "data"))


def make_ctx(storage: DiskStorage, llm: FakeLLMClient, **kwargs: Any) -> LiveContext:
    """A LiveContext with short delays so tests settle quickly."""
    options: dict[str, Any] = {
        "counter": WordCountTokenCounter(),
        "summary_debounce": 0.01,
        "token_delay": 0.01,
        "autosave_delay": 0.01,
        "flush_interval": 0.001,
    }
    options.update(kwargs)
    return LiveContext(storage, llm, **options)


@pytest.fixture()
async def ctx(storage: DiskStorage, llm: FakeLLMClient) -> AsyncGenerator[LiveContext]:
    context = make_ctx(storage, llm)
    yield context
    await context.aclose()
