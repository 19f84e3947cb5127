from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence

from live_context.assembly import ChatMessage

ERROR_REPLY = "[Error: failed to get response]"


class BaseLLMClient(ABC):
    """The remote text-generation and embedding capability.

    Implementations raise :class:`~live_context.exceptions.CapabilityUnavailableError`
    when they cannot be used at all (e.g. missing credentials) and
    :class:`~live_context.exceptions.MalformedResponseError` for responses
    of the wrong shape.  Callers own the conversion of those errors into
    user-visible placeholders.
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Default chat model id."""
        ...

    @abstractmethod
    async def completion(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Return the full text of a single chat completion."""
        ...

    @abstractmethod
    def stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str | None = None,
    ) -> AsyncIterator[str]:
        """Yield reply fragments as they arrive; ends at the end marker.

        Malformed fragments are skipped, never raised.
        """
        ...

    @abstractmethod
    async def embed(
        self,
        texts: Sequence[str],
        *,
        model: str | None = None,
    ) -> list[list[float]]:
        """Return one vector per input text, in input order."""
        ...
