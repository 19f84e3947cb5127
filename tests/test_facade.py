"""End-to-end tests of LiveContext wiring with a fake LLM and disk storage."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from live_context import LiveContext
from live_context.exceptions import UnknownConversationError
from live_context.models import UnitType, user_unit
from live_context.persistence import ATTACHMENTS_KEY, CONVERSATIONS_KEY
from live_context.settings import DEFAULT_MODEL
from live_context.storage.disk import DiskStorage
from live_context.store import ChangePolicy

from tests.conftest import FakeLLMClient, make_ctx


class TestSend:
    async def test_send_commits_reply_and_settles_derived_state(
        self, ctx: LiveContext, llm: FakeLLMClient
    ):
        reply_id = await ctx.send("Plan a weekend in Lisbon")
        await ctx.wait_idle(flush=True)

        conv = ctx.store.active_conversation
        assert conv.find_unit(reply_id).content == "Hello there"
        assert conv.summary == "A short summary."
        assert conv.total_tokens == conv.total_user_tokens + conv.total_assistant_tokens
        assert conv.total_user_tokens == 5

    async def test_unchanged_conversation_is_not_resummarised(
        self, ctx: LiveContext, llm: FakeLLMClient
    ):
        await ctx.send("Hello")
        await ctx.wait_idle(flush=True)
        calls = len(llm.completion_calls)
        ctx.store.create_snapshot(ctx.store.active_conversation_id)
        await ctx.wait_idle(flush=True)
        assert await ctx.refresh_summary() == "cached"
        assert len(llm.completion_calls) == calls

    async def test_new_conversation_summary_is_immediate(self, ctx: LiveContext):
        cid = ctx.store.create_conversation("Fresh")
        await ctx.wait_idle()
        assert ctx.require_conversation(cid).summary_cache_key is not None

    async def test_context_usage(self, ctx: LiveContext):
        await ctx.send("one two three")
        await ctx.wait_idle(flush=True)
        usage = ctx.context_usage()
        assert usage.capacity == 128_000
        assert usage.used == ctx.store.active_conversation.total_tokens
        assert 0 < usage.remaining_pct < 100


class TestEventWiring:
    async def test_edit_with_trim_regenerates(self, ctx: LiveContext, llm: FakeLLMClient):
        llm.replies = [["Lyon"], ["Rome"]]
        await ctx.send("Capital of France?")
        conv = ctx.store.active_conversation
        question = conv.units[0]

        ctx.store.open_edit(conv.id, question.id, "Capital of Italy?")
        ctx.store.apply_pending(ChangePolicy.trim)
        await ctx.wait_idle()

        assert [(u.type, u.content) for u in conv.units] == [
            (UnitType.user, "Capital of Italy?"),
            (UnitType.assistant, "Rome"),
        ]

    async def test_edit_without_regeneration(self, ctx: LiveContext, llm: FakeLLMClient):
        await ctx.send("Hi")
        conv = ctx.store.active_conversation
        ctx.store.open_edit(conv.id, conv.units[0].id, "Hello")
        ctx.store.apply_pending(ChangePolicy.do_nothing)
        await ctx.wait_idle()
        assert len(llm.stream_calls) == 1

    async def test_switching_away_cancels_stream(self, ctx: LiveContext, llm: FakeLLMClient):
        llm.gate = asyncio.Event()
        first = ctx.store.active_conversation_id
        pending = asyncio.create_task(ctx.send("Hi"))
        await asyncio.sleep(0.01)
        assert ctx.chat.is_streaming(first)

        ctx.store.create_conversation()
        assert await pending is None
        units = ctx.require_conversation(first).units
        assert [u.type for u in units] == [UnitType.user]

    async def test_deleting_conversation_cancels_its_work(self, ctx: LiveContext):
        cid = ctx.store.active_conversation_id
        ctx.store.add_unit(user_unit("x"))
        assert ctx.summarizer.is_pending(cid)
        ctx.store.delete_conversation(cid)
        assert not ctx.summarizer.is_pending(cid)

    async def test_require_unknown_conversation(self, ctx: LiveContext):
        with pytest.raises(UnknownConversationError):
            ctx.require_conversation("missing")


class TestSystemPrompt:
    async def test_new_conversation_pins_prompt_into_payload(
        self, ctx: LiveContext, llm: FakeLLMClient
    ):
        cid = ctx.create_conversation("Travel", system_prompt="  Answer in French.  ")
        conv = ctx.require_conversation(cid)
        assert ctx.store.active_conversation_id == cid
        prompt = conv.units[0]
        assert (prompt.type, prompt.content, prompt.pinned) == (
            UnitType.system,
            "Answer in French.",
            True,
        )

        await ctx.send("Hello")
        assert llm.stream_calls[0][0] == {"role": "system", "content": "Answer in French."}
        assert llm.stream_calls[0][-1] == {"role": "user", "content": "Hello"}

    async def test_blank_prompt_adds_nothing(self, ctx: LiveContext):
        cid = ctx.create_conversation(system_prompt="   ")
        assert ctx.require_conversation(cid).units == []

    async def test_add_note_to_active_conversation(
        self, ctx: LiveContext, llm: FakeLLMClient
    ):
        uid = ctx.add_unit("note", "The user is vegetarian.", pinned=True)
        unit = ctx.store.active_conversation.find_unit(uid)
        assert unit.type == UnitType.note
        assert unit.pinned

        await ctx.send("Dinner ideas?")
        assert {"role": "system", "content": "The user is vegetarian."} in llm.stream_calls[0]

    async def test_add_unit_to_unknown_conversation(self, ctx: LiveContext):
        with pytest.raises(UnknownConversationError):
            ctx.add_unit(UnitType.system, "x", conversation_id="missing")


class TestAttachments:
    async def test_upload_select_and_embed(
        self, ctx: LiveContext, llm: FakeLLMClient, tmp_path: Path
    ):
        doc = tmp_path / "facts.md"
        doc.write_text("The office is in Porto.", encoding="utf-8")

        result = await ctx.upload_files([doc, tmp_path / "missing.txt"], select=True)
        assert result.skipped == 1
        assert result.embedded_chunks == 1
        meta = result.attachments[0]
        assert ctx.store.active_conversation.attachment_ids == [meta.id]

        await ctx.send("Where is the office?")
        assert llm.stream_calls[0][0]["content"].startswith("Attachment 'facts.md'")

    async def test_delete_attachment_clears_selections(
        self, ctx: LiveContext, tmp_path: Path
    ):
        doc = tmp_path / "a.txt"
        doc.write_text("text", encoding="utf-8")
        result = await ctx.upload_files([doc], select=True, embed=False)
        aid = result.attachments[0].id

        assert ctx.delete_attachment(aid)
        assert ctx.store.active_conversation.attachment_ids == []
        assert ctx.attachments.get(aid) is None
        assert ctx.delete_attachment(aid) is False

    async def test_unknown_conversation_rejected_before_ingest(
        self, ctx: LiveContext, storage: DiskStorage, tmp_path: Path
    ):
        doc = tmp_path / "a.txt"
        doc.write_text("text", encoding="utf-8")
        with pytest.raises(UnknownConversationError):
            await ctx.upload_files([doc], select=True, conversation_id="missing")
        assert ctx.attachments.attachments == []
        assert storage.read(ATTACHMENTS_KEY) is None


class TestSummaryView:
    @pytest.fixture()
    async def manual(self, storage: DiskStorage, llm: FakeLLMClient):
        # Debounced refreshes never fire on their own here.
        context = make_ctx(storage, llm, summary_debounce=60)
        yield context
        await context.aclose()

    async def test_stale_after_change(self, manual: LiveContext):
        await manual.send("Hello")
        assert manual.summary().stale
        await manual.refresh_summary()
        assert not manual.summary().stale

        manual.store.rename_conversation(manual.store.active_conversation_id, "Renamed")
        assert manual.summary().stale

    async def test_failure_is_reported(self, manual: LiveContext, llm: FakeLLMClient):
        llm.completions = [RuntimeError("down")]
        await manual.send("Hello")
        assert await manual.refresh_summary() == "failed"
        view = manual.summary()
        assert view.error == "Failed to generate summary"
        assert not view.loading
        assert view.content == ""


class TestPersistence:
    async def test_state_survives_reopen(self, storage: DiskStorage, llm: FakeLLMClient):
        first = make_ctx(storage, llm)
        await first.send("Remember the milk")
        first.set_model("gpt-4-turbo")
        await first.wait_idle(flush=True)
        await first.aclose()

        second = make_ctx(storage, llm)
        try:
            conv = second.store.active_conversation
            assert [u.content for u in conv.units] == ["Remember the milk", "Hello there"]
            assert second.settings.model == "gpt-4-turbo"
            assert conv.summary == "A short summary."
        finally:
            await second.aclose()

    async def test_session_model_is_not_saved(
        self, storage: DiskStorage, llm: FakeLLMClient
    ):
        first = make_ctx(storage, llm, model="gpt-4-turbo")
        assert first.settings.model == "gpt-4-turbo"
        await first.aclose()

        second = make_ctx(storage, llm)
        try:
            assert second.settings.model == DEFAULT_MODEL
        finally:
            await second.aclose()

    async def test_explicit_model_choice_replaces_session_model(
        self, storage: DiskStorage, llm: FakeLLMClient
    ):
        first = make_ctx(storage, llm, model="gpt-4-turbo")
        first.set_model("gpt-4o-mini")
        await first.aclose()

        second = make_ctx(storage, llm)
        try:
            assert second.settings.model == "gpt-4o-mini"
        finally:
            await second.aclose()

    async def test_conversation_deleted_during_summary_is_not_saved(
        self, ctx: LiveContext, llm: FakeLLMClient, storage: DiskStorage
    ):
        llm.completion_gate = asyncio.Event()
        cid = ctx.store.active_conversation_id
        ctx.store.add_unit(user_unit("Remember the milk"))
        ctx.summarizer.flush()
        await asyncio.sleep(0.01)
        assert ctx.require_conversation(cid).summary_loading

        ctx.store.delete_conversation(cid)
        llm.completion_gate.set()
        await ctx.wait_idle(flush=True)
        ctx.save()

        assert ctx.store.get_conversation(cid) is None
        assert cid not in (storage.read(CONVERSATIONS_KEY) or "")

    async def test_autosave_is_debounced(self, storage: DiskStorage, llm: FakeLLMClient):
        context = make_ctx(storage, llm, autosave_delay=0.01)
        try:
            context.store.create_conversation("Saved")
            await asyncio.sleep(0.05)
            await context.wait_idle()
            assert "Saved" in (storage.read("live-context-conversations") or "")
        finally:
            await context.aclose()

    async def test_from_config(self, tmp_path: Path):
        context = LiveContext.from_config(
            {"storage": {"provider": "disk", "config": {"base_path": str(tmp_path)}}},
            counter=None,
            autosave=False,
        )
        try:
            assert len(context.list_conversations()) == 1
            assert context.list_conversations()[0].is_active
        finally:
            await context.aclose()
