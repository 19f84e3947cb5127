from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from live_context.assembly import ChatMessage, assemble
from live_context.attachments import AttachmentLibrary
from live_context.chat.stream import STREAM_FLUSH_INTERVAL, ReplyStream
from live_context.llm.base import ERROR_REPLY, BaseLLMClient
from live_context.models import user_unit
from live_context.settings import Settings
from live_context.store import ConversationStore

logger = logging.getLogger(__name__)

ReplyListener = Callable[[str, str], None]
"""Receives ``(conversation_id, visible_text)`` on every flush."""


class ChatSession:
    """Sends user turns and streams assistant replies into the store.

    At most one reply stream runs per conversation.  Starting another one
    for the same conversation cancels the first and throws away its
    unflushed text.  A finished stream commits its full text as an
    assistant unit right after the turn it answers; a stream that fails or
    yields nothing commits :data:`ERROR_REPLY` instead, and a cancelled
    stream commits nothing.
    """

    def __init__(
        self,
        store: ConversationStore,
        attachments: AttachmentLibrary,
        llm_client: BaseLLMClient,
        settings: Settings,
        *,
        flush_interval: float = STREAM_FLUSH_INTERVAL,
        on_update: ReplyListener | None = None,
    ) -> None:
        self._store = store
        self._attachments = attachments
        self._llm = llm_client
        self._settings = settings
        self._flush_interval = flush_interval
        self._on_update = on_update
        self._streams: dict[str, asyncio.Task[str | None]] = {}

    # ── Public API ───────────────────────────────────────────────────

    async def send(
        self, content: str, *, conversation_id: str | None = None
    ) -> str | None:
        """Append a user turn and wait for the reply.

        Returns the id of the committed assistant unit, or ``None`` when
        nothing was committed (blank input, unknown conversation, empty
        assembly or a cancelled stream).
        """
        content = content.strip()
        if not content:
            return None
        cid = conversation_id or self._store.active_conversation_id
        unit = user_unit(content)
        if not self._store.add_unit(unit, conversation_id=cid):
            return None
        task = self._start_reply(cid, unit.id, cut_unit_id=None)
        return await self._wait_for(task)

    async def process_regeneration_request(self) -> str | None:
        """Consume the one-shot regeneration request, if any, and reply to it."""
        request = self._store.take_regeneration_request()
        if request is None:
            return None
        logger.info(
            "[%s] Regenerating (%s) after unit %s",
            request.target_conversation_id,
            request.mode,
            request.edited_unit_id,
        )
        task = self._start_reply(
            request.target_conversation_id,
            request.edited_unit_id,
            cut_unit_id=request.edited_unit_id,
        )
        return await self._wait_for(task)

    def is_streaming(self, conversation_id: str) -> bool:
        task = self._streams.get(conversation_id)
        return task is not None and not task.done()

    def cancel(self, conversation_id: str) -> bool:
        task = self._streams.pop(conversation_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug("[%s] Cancelled reply stream", conversation_id)
        return True

    def cancel_all(self) -> None:
        for conversation_id in list(self._streams):
            self.cancel(conversation_id)

    async def wait(self) -> None:
        """Wait until every running stream has committed or been cancelled."""
        while self._streams:
            await asyncio.wait(list(self._streams.values()))

    # ── Internals ────────────────────────────────────────────────────

    def build_messages(
        self, conversation_id: str, cut_unit_id: str | None = None
    ) -> list[ChatMessage]:
        """Selected attachment chunks first, then the assembled conversation.

        Returns an empty list when the conversation contributes nothing,
        even if attachments are selected.
        """
        conv = self._store.get_conversation(conversation_id)
        if conv is None:
            return []
        messages = assemble(conv.units, cut_unit_id)
        if not messages:
            return []
        return [*self._attachments.context_messages(conv.attachment_ids), *messages]

    def _start_reply(
        self, conversation_id: str, after_unit_id: str, *, cut_unit_id: str | None
    ) -> asyncio.Task[str | None]:
        self.cancel(conversation_id)
        task = asyncio.get_running_loop().create_task(
            self._reply(conversation_id, after_unit_id, cut_unit_id),
            name=f"reply:{conversation_id}",
        )
        self._streams[conversation_id] = task
        task.add_done_callback(lambda t: self._forget(conversation_id, t))
        return task

    def _forget(self, conversation_id: str, task: asyncio.Task[str | None]) -> None:
        if self._streams.get(conversation_id) is task:
            del self._streams[conversation_id]

    async def _wait_for(self, task: asyncio.Task[str | None]) -> str | None:
        await asyncio.wait([task])
        if task.cancelled():
            return None
        return task.result()

    async def _reply(
        self, conversation_id: str, after_unit_id: str, cut_unit_id: str | None
    ) -> str | None:
        messages = self.build_messages(conversation_id, cut_unit_id)
        if not messages:
            logger.debug("[%s] Nothing to send", conversation_id)
            return None

        def publish(text: str) -> None:
            if self._on_update is not None:
                self._on_update(conversation_id, text)

        stream = ReplyStream(
            self._llm.stream(messages, model=self._settings.model),
            flush_interval=self._flush_interval,
            on_update=publish,
        )
        try:
            text = await stream.run()
        except Exception:
            logger.warning(
                "[%s] Failed to get response", conversation_id, exc_info=True
            )
            text = ""

        if not text.strip():
            text = ERROR_REPLY
        return self._store.insert_assistant_after(conversation_id, after_unit_id, text)
