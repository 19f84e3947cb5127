from __future__ import annotations

import logging
from enum import StrEnum

from live_context.exceptions import MalformedResponseError
from live_context.llm.base import BaseLLMClient
from live_context.models import utcnow
from live_context.scheduling import Debouncer
from live_context.settings import Settings
from live_context.store import ConversationStore
from live_context.summary.prompt import (
    SUMMARY_MAX_TOKENS,
    SUMMARY_MODEL,
    build_summary_messages,
)
from live_context.summary.source import (
    SUMMARY_SCHEMA_VERSION,
    SummarySource,
    build_summary_source,
)
from live_context.tokens.base import TokenCounter

logger = logging.getLogger(__name__)

SUMMARY_DEBOUNCE_SECONDS = 0.5
SUMMARY_ERROR_MESSAGE = "Failed to generate summary"


class RefreshOutcome(StrEnum):
    missing = "missing"
    empty = "empty"
    cached = "cached"
    in_flight = "in_flight"
    generated = "generated"
    failed = "failed"


class Summarizer:
    """Keeps each conversation's continuation brief up to date.

    Refreshes are debounced per conversation and skipped when the stored
    summary was produced from an identical digest (same cache key and
    schema version).  A failed refresh leaves the previous summary in
    place and records the error.
    """

    def __init__(
        self,
        store: ConversationStore,
        llm_client: BaseLLMClient,
        counter: TokenCounter,
        settings: Settings,
        *,
        debounce_seconds: float = SUMMARY_DEBOUNCE_SECONDS,
        schema_version: int = SUMMARY_SCHEMA_VERSION,
        summary_model: str = SUMMARY_MODEL,
    ) -> None:
        self._store = store
        self._llm = llm_client
        self._counter = counter
        self._settings = settings
        self._schema_version = schema_version
        self._summary_model = summary_model
        self._debouncer = Debouncer(debounce_seconds)
        self._in_flight: dict[str, str] = {}

    @property
    def schema_version(self) -> int:
        return self._schema_version

    def source_for(self, conversation_id: str) -> SummarySource | None:
        conv = self._store.get_conversation(conversation_id)
        if conv is None:
            return None
        return build_summary_source(
            conv,
            self._counter,
            model=self._settings.model,
            schema_version=self._schema_version,
        )

    # ── Scheduling ───────────────────────────────────────────────────

    def request_refresh(
        self,
        conversation_id: str,
        *,
        immediate: bool = False,
        force: bool = False,
    ) -> None:
        """Schedule a refresh; repeated requests inside the window coalesce."""

        async def job() -> None:
            await self.generate_summary(conversation_id, force=force)

        self._debouncer.schedule(conversation_id, job, immediate=immediate)

    def is_pending(self, conversation_id: str) -> bool:
        return self._debouncer.is_pending(conversation_id)

    def cancel(self, conversation_id: str) -> None:
        self._debouncer.cancel(conversation_id)

    def cancel_all(self) -> None:
        self._debouncer.cancel_all()

    def flush(self) -> None:
        self._debouncer.flush()

    async def drain(self) -> None:
        await self._debouncer.drain()

    # ── Generation ───────────────────────────────────────────────────

    async def generate_summary(
        self, conversation_id: str, *, force: bool = False
    ) -> RefreshOutcome:
        source = self.source_for(conversation_id)
        if source is None:
            return RefreshOutcome.missing

        if not source.has_content:
            self._store.update_summary_state(
                conversation_id,
                summary="",
                summary_cache_key=source.cache_key,
                summary_updated_at=utcnow(),
                summary_loading=False,
                summary_error=None,
                last_summary_schema_version=self._schema_version,
            )
            return RefreshOutcome.empty

        conv = self._store.get_conversation(conversation_id)
        assert conv is not None
        if not force:
            if (
                conv.summary
                and conv.summary_cache_key == source.cache_key
                and conv.last_summary_schema_version == self._schema_version
            ):
                logger.debug("[%s] Summary cache hit", conversation_id)
                return RefreshOutcome.cached
            if self._in_flight.get(conversation_id) == source.cache_key:
                return RefreshOutcome.in_flight

        self._in_flight[conversation_id] = source.cache_key
        self._store.update_summary_state(
            conversation_id, summary_loading=True, summary_error=None
        )
        try:
            text = await self._llm.completion(
                build_summary_messages(source.text),
                model=self._summary_model,
                temperature=0,
                max_tokens=SUMMARY_MAX_TOKENS,
            )
            text = text.strip()
            if not text:
                raise MalformedResponseError("empty summary")
        except Exception:
            logger.warning(
                "[%s] Summary generation failed", conversation_id, exc_info=True
            )
            self._store.update_summary_state(
                conversation_id,
                summary_loading=False,
                summary_error=SUMMARY_ERROR_MESSAGE,
            )
            return RefreshOutcome.failed
        finally:
            if self._in_flight.get(conversation_id) == source.cache_key:
                del self._in_flight[conversation_id]

        written = self._store.update_summary_state(
            conversation_id,
            summary=text,
            summary_cache_key=source.cache_key,
            summary_updated_at=utcnow(),
            summary_loading=False,
            summary_error=None,
            last_summary_schema_version=self._schema_version,
        )
        if not written:
            logger.debug("[%s] Conversation gone; summary dropped", conversation_id)
            return RefreshOutcome.missing
        logger.info("[%s] Summary refreshed (%d chars)", conversation_id, len(text))
        return RefreshOutcome.generated
