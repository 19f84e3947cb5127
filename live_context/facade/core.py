"""Main facade for the live_context library."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from live_context.attachments import AttachmentLibrary
from live_context.chat import STREAM_FLUSH_INTERVAL, ChatSession
from live_context.chat.session import ReplyListener
from live_context.exceptions import UnknownConversationError
from live_context.facade.types import ConversationOverview, SummaryView, UploadResult
from live_context.llm.models import ModelInfo
from live_context.models import ContextUnit, Conversation, TokenTotals, UnitType
from live_context.persistence import StateRepository
from live_context.scheduling import Debouncer
from live_context.settings import ContextUsage, Settings, context_usage
from live_context.store import ChangeKind, ConversationStore, StoreEvent
from live_context.summary import RefreshOutcome, Summarizer
from live_context.summary.summarizer import SUMMARY_DEBOUNCE_SECONDS
from live_context.tokens import TokenCounter, compute_token_totals

if TYPE_CHECKING:
    from live_context.llm.base import BaseLLMClient
    from live_context.storage.base import StorageBackend

logger = logging.getLogger(__name__)

TOKEN_RECOMPUTE_DELAY = 0.1
AUTOSAVE_DELAY = 1.0

_AUTOSAVE_KEY = "state"

# Transient store state that is never persisted.
_UNSAVED_CHANGES = frozenset(
    {ChangeKind.pending_changed, ChangeKind.regeneration_requested}
)


def _default_counter() -> TokenCounter:
    from live_context.tokens.tiktoken import TiktokenCounter

    return TiktokenCounter()


class LiveContext:
    """Main entry point for the live_context library.

    Owns one :class:`ConversationStore` and reacts to its change events:
    context changes schedule a summary refresh and a token recount,
    switching conversations cancels the reply stream of the one being
    left, edit decisions that ask for regeneration start a new reply,
    and every persistent change schedules an autosave.

    Usage::

        from live_context.storage import DiskStorage
        from live_context.llm import LiteLLMClient

        ctx = LiveContext(DiskStorage("./data"), LiteLLMClient(api_key="sk-..."))
        await ctx.send("What should I pack for Lisbon?")
        await ctx.aclose()

    Scheduling needs a running event loop, so mutate the store from
    inside one.
    """

    def __init__(
        self,
        storage: StorageBackend,
        llm_client: BaseLLMClient,
        *,
        counter: TokenCounter | None = None,
        summary_debounce: float = SUMMARY_DEBOUNCE_SECONDS,
        token_delay: float = TOKEN_RECOMPUTE_DELAY,
        autosave_delay: float = AUTOSAVE_DELAY,
        flush_interval: float = STREAM_FLUSH_INTERVAL,
        on_reply_update: ReplyListener | None = None,
        autosave: bool = True,
        model: str | None = None,
    ) -> None:
        self._storage = storage
        self._llm_client = llm_client
        self._repository = StateRepository(storage)
        self._counter = counter or _default_counter()
        self._autosave_enabled = autosave

        conversations, active_id = self._repository.load_conversations()
        self.settings: Settings = self._repository.load_settings()
        # *model* applies to this session only; saves keep the stored choice.
        self._saved_model: str | None = None
        if model:
            self._saved_model = self.settings.model
            self.settings.set_model(model)
        self.store = ConversationStore(conversations, active_id)
        self.attachments = AttachmentLibrary(self._counter)
        self.attachments.replace_all(*self._repository.load_attachments())

        self.summarizer = Summarizer(
            self.store,
            llm_client,
            self._counter,
            self.settings,
            debounce_seconds=summary_debounce,
        )
        self.chat = ChatSession(
            self.store,
            self.attachments,
            llm_client,
            self.settings,
            flush_interval=flush_interval,
            on_update=on_reply_update,
        )

        self._tokens = Debouncer(token_delay)
        self._autosave = Debouncer(autosave_delay)
        self._background: set[asyncio.Task[Any]] = set()
        self._closed = False
        self._unsubscribe = self.store.subscribe(self._on_store_event)

    @classmethod
    def from_config(cls, config: dict[str, Any], **kwargs: Any) -> LiveContext:
        """Build from a config dict; see :func:`live_context.config.parse_config`."""
        from live_context.config import parse_config

        storage, llm_client = parse_config(config)
        return cls(storage, llm_client, **kwargs)

    # ── Store events ─────────────────────────────────────────────────

    def _on_store_event(self, event: StoreEvent) -> None:
        cid = event.conversation_id

        if event.kind == ChangeKind.conversation_deleted:
            self.summarizer.cancel(cid)
            self._tokens.cancel(cid)
            self.chat.cancel(cid)
        elif event.kind == ChangeKind.active_changed:
            if event.previous_conversation_id:
                self.chat.cancel(event.previous_conversation_id)
        elif event.kind == ChangeKind.regeneration_requested:
            self._spawn(self.chat.process_regeneration_request())

        if event.affects_context:
            self.summarizer.request_refresh(cid, immediate=event.immediate)
            self._schedule_token_recompute(cid, immediate=event.immediate)

        if event.kind not in _UNSAVED_CHANGES:
            self._schedule_autosave()

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _schedule_token_recompute(self, cid: str, *, immediate: bool = False) -> None:
        async def job() -> None:
            self.recompute_token_totals(cid)

        self._tokens.schedule(cid, job, immediate=immediate)

    def _schedule_autosave(self) -> None:
        if not self._autosave_enabled or self._closed:
            return

        async def job() -> None:
            self.save()

        self._autosave.schedule(_AUTOSAVE_KEY, job)

    # ── Persistence ──────────────────────────────────────────────────

    def save(self) -> None:
        """Write conversations, settings and attachments to storage."""
        self._repository.save_conversations(
            self.store.conversations, self.store.active_conversation_id
        )
        self._repository.save_settings(self._persisted_settings())
        self._repository.save_attachments(
            self.attachments.attachments, self.attachments.chunks_by_attachment_id
        )
        logger.debug("Saved %d conversations", len(self.store.conversations))

    def _persisted_settings(self) -> Settings:
        if self._saved_model is None:
            return self.settings
        return replace(self.settings, model=self._saved_model)

    async def wait_idle(self, *, flush: bool = False) -> None:
        """Wait for in-flight background work to settle.

        With *flush*, debounced summary refreshes and token recounts that
        are still waiting on their timers are started first.
        """
        while True:
            if flush:
                self.summarizer.flush()
                self._tokens.flush()
            if self._background:
                await asyncio.gather(*list(self._background), return_exceptions=True)
            await self.chat.wait()
            await self.summarizer.drain()
            await self._tokens.drain()
            if not self._background:
                return

    async def aclose(self) -> None:
        """Stop background work, save once more, and release storage."""
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        self.summarizer.cancel_all()
        self._tokens.cancel_all()
        self._autosave.cancel_all()
        self.chat.cancel_all()
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*list(self._background), return_exceptions=True)
        await self.summarizer.drain()
        await self._tokens.drain()
        await self._autosave.drain()
        self.save()
        self._storage.close()

    # ── Conversations ────────────────────────────────────────────────

    def require_conversation(self, conversation_id: str | None = None) -> Conversation:
        """Return the conversation (the active one by default) or raise."""
        if conversation_id is None:
            return self.store.active_conversation
        conv = self.store.get_conversation(conversation_id)
        if conv is None:
            raise UnknownConversationError(f"Unknown conversation: {conversation_id}")
        return conv

    def list_conversations(self) -> list[ConversationOverview]:
        active = self.store.active_conversation_id
        return [
            ConversationOverview(
                id=c.id,
                title=c.title,
                created_at=c.created_at,
                unit_count=len(c.units),
                visible_count=len(c.visible_units),
                total_tokens=c.total_tokens,
                is_active=c.id == active,
                parent_conversation_id=c.parent_conversation_id,
            )
            for c in self.store.conversations
        ]

    def create_conversation(
        self, title: str | None = None, *, system_prompt: str | None = None
    ) -> str:
        """Create and activate a conversation, seeded with a pinned system prompt."""
        base_units: list[ContextUnit] = []
        if system_prompt and system_prompt.strip():
            base_units.append(
                ContextUnit(
                    type=UnitType.system, content=system_prompt.strip(), pinned=True
                )
            )
        return self.store.create_conversation(title, base_units)

    def add_unit(
        self,
        type: UnitType | str,
        content: str,
        *,
        pinned: bool = False,
        conversation_id: str | None = None,
    ) -> str:
        """Append a unit (a system prompt or note, usually) without sending it."""
        conv = self.require_conversation(conversation_id)
        unit = ContextUnit(type=UnitType(type), content=content, pinned=pinned)
        self.store.add_unit(unit, conversation_id=conv.id)
        return unit.id

    async def send(self, content: str, *, conversation_id: str | None = None) -> str | None:
        """Send a user turn and wait for the committed reply unit id."""
        return await self.chat.send(content, conversation_id=conversation_id)

    # ── Token totals ─────────────────────────────────────────────────

    def recompute_token_totals(self, conversation_id: str) -> TokenTotals | None:
        conv = self.store.get_conversation(conversation_id)
        if conv is None:
            return None
        totals = compute_token_totals(
            conv.units,
            self.attachments.chunks_for(conv.attachment_ids),
            self._counter,
            self.settings.model,
        )
        self.store.set_token_totals(conversation_id, totals)
        return totals

    def context_usage(self, conversation_id: str | None = None) -> ContextUsage:
        conv = self.require_conversation(conversation_id)
        info = self.settings.model_info
        return context_usage(conv.token_totals, info.context_window if info else 0)

    # ── Summary ──────────────────────────────────────────────────────

    async def refresh_summary(
        self, conversation_id: str | None = None, *, force: bool = False
    ) -> RefreshOutcome:
        conv = self.require_conversation(conversation_id)
        self.summarizer.cancel(conv.id)
        return await self.summarizer.generate_summary(conv.id, force=force)

    def summary(self, conversation_id: str | None = None) -> SummaryView:
        conv = self.require_conversation(conversation_id)
        source = self.summarizer.source_for(conv.id)
        stale = source is not None and (
            conv.summary_cache_key != source.cache_key
            or conv.last_summary_schema_version != self.summarizer.schema_version
        )
        return SummaryView(
            content=conv.summary,
            updated_at=conv.summary_updated_at,
            loading=conv.summary_loading,
            error=conv.summary_error,
            stale=stale,
        )

    # ── Attachments ──────────────────────────────────────────────────

    async def upload_files(
        self,
        paths: Iterable[str | Path],
        *,
        select: bool = False,
        embed: bool = True,
        conversation_id: str | None = None,
    ) -> UploadResult:
        """Ingest files into the library; optionally select and embed them."""
        conv = self.require_conversation(conversation_id) if select else None
        paths = list(paths)
        added = self.attachments.upload_files(paths)
        result = UploadResult(attachments=added, skipped=len(paths) - len(added))
        self._save_attachments()

        if conv is not None and added:
            self.store.set_attachment_selection(
                conv.id, [*conv.attachment_ids, *(m.id for m in added)]
            )
        if embed:
            for meta in added:
                result.embedded_chunks += await self.attachments.generate_embeddings(
                    meta.id, self._llm_client, self.settings.embedding_model
                )
            if result.embedded_chunks:
                self._save_attachments()
        return result

    def rename_attachment(self, attachment_id: str, name: str) -> bool:
        renamed = self.attachments.rename(attachment_id, name)
        if renamed:
            self._save_attachments()
        return renamed

    def delete_attachment(self, attachment_id: str) -> bool:
        """Remove an attachment from the library and from every selection."""
        if not self.attachments.delete(attachment_id):
            return False
        self.store.forget_attachment(attachment_id)
        self._save_attachments()
        return True

    def _save_attachments(self) -> None:
        self._repository.save_attachments(
            self.attachments.attachments, self.attachments.chunks_by_attachment_id
        )

    # ── Settings ─────────────────────────────────────────────────────

    def set_model(self, model_id: str) -> None:
        self.settings.set_model(model_id)
        self._saved_model = None
        self._settings_changed()

    def add_custom_model(self, model_id: str, info: ModelInfo) -> None:
        self.settings.add_custom_model(model_id, info)
        self._saved_model = None
        self._settings_changed()

    def remove_custom_model(self, model_id: str) -> None:
        self.settings.remove_custom_model(model_id)
        self._settings_changed()

    def _settings_changed(self) -> None:
        self._repository.save_settings(self._persisted_settings())
        # Token counts depend on the selected model's encoding.
        self._schedule_token_recompute(self.store.active_conversation_id)
