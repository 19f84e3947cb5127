"""Unit tests for the summary digest and the Summarizer."""

from __future__ import annotations

import asyncio

from live_context.exceptions import CapabilityUnavailableError
from live_context.models import Conversation
from live_context.settings import Settings
from live_context.store import ConversationStore, StoreEvent
from live_context.summary import (
    SUMMARY_SCHEMA_VERSION,
    RefreshOutcome,
    Summarizer,
    build_summary_messages,
    build_summary_source,
)
from live_context.summary.prompt import SUMMARY_MAX_TOKENS, SUMMARY_MODEL
from live_context.summary.source import clip
from live_context.summary.summarizer import SUMMARY_ERROR_MESSAGE

from tests.conftest import FakeLLMClient, WordCountTokenCounter, unit

counter = WordCountTokenCounter()


def _conversation() -> Conversation:
    return Conversation(
        title="Trip planning",
        units=[
            unit("system", "You are a travel assistant.", 0),
            unit("user", "Budget is 1200 EUR", 1, pinned=True),
            unit("user", "Plan three days in Lisbon", 2),
            unit("assistant", "Day one: Alfama", 3),
            unit("user", "I hate museums", 4, removed=True),
        ],
    )


class TestSource:
    def test_empty_conversation_has_no_content(self):
        source = build_summary_source(Conversation(title="Empty"), counter)
        assert not source.has_content
        assert "Title: Empty" in source.text

    def test_partitions(self):
        source = build_summary_source(_conversation(), counter, model="gpt-4o")
        text = source.text

        assert "## System & notes\n- [System] You are a travel assistant." in text
        assert "## Pinned\n- [User] Budget is 1200 EUR" in text
        assert "## Recent conversation\n- [User] Plan three days in Lisbon\n" in text
        assert "Model: gpt-4o" in text
        assert "museums" not in text
        assert text.count("1200 EUR") == 1
        assert (source.system_count, source.pinned_count, source.recent_count) == (1, 1, 2)

    def test_recent_window_keeps_newest_within_budget(self):
        conv = Conversation(
            title="Long",
            units=[unit("user", f"message number {i}", i) for i in range(10)],
        )
        # Each rendered line is 5 words: "- [User] message number N".
        source = build_summary_source(conv, counter, recent_token_budget=12)
        assert source.recent_count == 2
        assert "message number 9" in source.text
        assert "message number 7" not in source.text

    def test_newest_line_always_included(self):
        conv = Conversation(title="T", units=[unit("user", "one two three four", 0)])
        source = build_summary_source(conv, counter, recent_token_budget=1)
        assert source.recent_count == 1

    def test_branch_lineage_in_metadata(self):
        conv = Conversation(
            title="Alt",
            parent_conversation_id="parent-1",
            forked_from_unit_id="unit-9",
            units=[unit("user", "hi", 0)],
        )
        text = build_summary_source(conv, counter).text
        assert "Branched from: parent-1 at unit unit-9" in text

    def test_oversized_source_keeps_tail(self):
        conv = Conversation(
            title="Big",
            units=[unit("user", "word " * 100, i) for i in range(20)],
        )
        source = build_summary_source(
            conv, counter, recent_token_budget=10_000, max_chars=500
        )
        assert len(source.text) == 500
        assert source.text.startswith("…")

    def test_clip(self):
        assert clip("a   b\n c", 10) == "a b c"
        assert clip("abcdefghij", 5) == "abcd…"


class TestCacheKey:
    def test_stable_for_same_state(self):
        conv = _conversation()
        assert (
            build_summary_source(conv, counter).cache_key
            == build_summary_source(conv, counter).cache_key
        )

    def test_title_changes_key(self):
        conv = _conversation()
        before = build_summary_source(conv, counter).cache_key
        conv.title = "Renamed"
        assert build_summary_source(conv, counter).cache_key != before

    def test_schema_version_changes_key(self):
        conv = _conversation()
        assert (
            build_summary_source(conv, counter, schema_version=1).cache_key
            != build_summary_source(conv, counter, schema_version=2).cache_key
        )

    def test_new_unit_changes_key(self):
        conv = _conversation()
        before = build_summary_source(conv, counter).cache_key
        conv.units.append(unit("assistant", "Day two: Belem", 5))
        assert build_summary_source(conv, counter).cache_key != before

    def test_key_is_32_hex_chars(self):
        key = build_summary_source(_conversation(), counter).cache_key
        assert len(key) == 32
        int(key, 16)


class TestPrompt:
    def test_messages_shape(self):
        messages = build_summary_messages("## Conversation\nTitle: X", target_words=50)
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert "Stay under 50 words." in messages[0]["content"]
        assert messages[-1]["content"].endswith("Title: X")


def _summarizer(llm: FakeLLMClient, **kwargs) -> tuple[Summarizer, Conversation]:
    conv = _conversation()
    store = ConversationStore([conv], conv.id)
    return Summarizer(store, llm, counter, Settings(), **kwargs), conv


class TestSummarizer:
    async def test_generates_and_caches(self):
        llm = FakeLLMClient(completions=["Brief one."])
        summarizer, conv = _summarizer(llm)

        assert await summarizer.generate_summary(conv.id) == RefreshOutcome.generated
        assert conv.summary == "Brief one."
        assert conv.summary_cache_key == summarizer.source_for(conv.id).cache_key
        assert conv.last_summary_schema_version == SUMMARY_SCHEMA_VERSION
        assert conv.summary_updated_at is not None
        assert not conv.summary_loading

        assert await summarizer.generate_summary(conv.id) == RefreshOutcome.cached
        assert len(llm.completion_calls) == 1

    async def test_request_parameters(self):
        llm = FakeLLMClient()
        summarizer, conv = _summarizer(llm)
        await summarizer.generate_summary(conv.id)

        call = llm.completion_calls[0]
        assert call["model"] == SUMMARY_MODEL
        assert call["temperature"] == 0
        assert call["max_tokens"] == SUMMARY_MAX_TOKENS

    async def test_force_bypasses_cache(self):
        llm = FakeLLMClient(completions=["One.", "Two."])
        summarizer, conv = _summarizer(llm)
        await summarizer.generate_summary(conv.id)
        assert await summarizer.generate_summary(conv.id, force=True) == RefreshOutcome.generated
        assert conv.summary == "Two."

    async def test_schema_bump_misses_cache(self):
        llm = FakeLLMClient(completions=["Old.", "New."])
        summarizer, conv = _summarizer(llm)
        await summarizer.generate_summary(conv.id)

        store = ConversationStore([conv], conv.id)
        bumped = Summarizer(
            store, llm, counter, Settings(), schema_version=SUMMARY_SCHEMA_VERSION + 1
        )
        assert await bumped.generate_summary(conv.id) == RefreshOutcome.generated
        assert conv.summary == "New."
        assert conv.last_summary_schema_version == SUMMARY_SCHEMA_VERSION + 1

    async def test_failure_keeps_previous_summary(self):
        llm = FakeLLMClient(
            completions=["Good.", CapabilityUnavailableError("completion")]
        )
        summarizer, conv = _summarizer(llm)
        await summarizer.generate_summary(conv.id)
        key = conv.summary_cache_key

        outcome = await summarizer.generate_summary(conv.id, force=True)
        assert outcome == RefreshOutcome.failed
        assert conv.summary == "Good."
        assert conv.summary_cache_key == key
        assert conv.summary_error == SUMMARY_ERROR_MESSAGE
        assert not conv.summary_loading

    async def test_empty_response_is_a_failure(self):
        llm = FakeLLMClient(completions=["   "])
        summarizer, conv = _summarizer(llm)
        assert await summarizer.generate_summary(conv.id) == RefreshOutcome.failed
        assert conv.summary == ""

    async def test_no_content_writes_empty_summary_without_calling(self):
        llm = FakeLLMClient()
        conv = Conversation(title="Empty", summary="stale")
        summarizer = Summarizer(
            ConversationStore([conv], conv.id), llm, counter, Settings()
        )
        assert await summarizer.generate_summary(conv.id) == RefreshOutcome.empty
        assert conv.summary == ""
        assert conv.summary_cache_key is not None
        assert llm.completion_calls == []

    async def test_unknown_conversation(self):
        summarizer, _ = _summarizer(FakeLLMClient())
        assert await summarizer.generate_summary("missing") == RefreshOutcome.missing

    async def test_burst_of_requests_coalesces(self):
        llm = FakeLLMClient()
        summarizer, conv = _summarizer(llm, debounce_seconds=0.01)
        for _ in range(5):
            summarizer.request_refresh(conv.id)
        assert summarizer.is_pending(conv.id)

        await asyncio.sleep(0.05)
        await summarizer.drain()
        assert len(llm.completion_calls) == 1
        assert conv.summary

    async def test_flush_runs_pending_refresh_now(self):
        llm = FakeLLMClient()
        summarizer, conv = _summarizer(llm, debounce_seconds=60)
        summarizer.request_refresh(conv.id)
        summarizer.flush()
        await summarizer.drain()
        assert len(llm.completion_calls) == 1

    async def test_cancel(self):
        llm = FakeLLMClient()
        summarizer, conv = _summarizer(llm, debounce_seconds=0.01)
        summarizer.request_refresh(conv.id)
        summarizer.cancel(conv.id)
        await asyncio.sleep(0.03)
        assert llm.completion_calls == []

    async def test_duplicate_refresh_while_in_flight(self):
        llm = FakeLLMClient(completions=["Only once."])
        llm.completion_gate = asyncio.Event()
        summarizer, conv = _summarizer(llm)

        first = asyncio.create_task(summarizer.generate_summary(conv.id))
        await asyncio.sleep(0)
        assert conv.summary_loading

        assert await summarizer.generate_summary(conv.id) == RefreshOutcome.in_flight
        llm.completion_gate.set()
        assert await first == RefreshOutcome.generated
        assert len(llm.completion_calls) == 1
        assert conv.summary == "Only once."

    async def test_conversation_deleted_during_refresh(self):
        llm = FakeLLMClient(completions=["Too late."])
        llm.completion_gate = asyncio.Event()
        conv = _conversation()
        store = ConversationStore([conv], conv.id)
        summarizer = Summarizer(store, llm, counter, Settings())
        events: list[StoreEvent] = []
        store.subscribe(events.append)

        pending = asyncio.create_task(summarizer.generate_summary(conv.id))
        await asyncio.sleep(0)
        assert store.delete_conversation(conv.id)
        events.clear()

        llm.completion_gate.set()
        assert await pending == RefreshOutcome.missing
        assert store.get_conversation(conv.id) is None
        assert store.update_summary_state(conv.id, summary="x") is False
        assert [c.id for c in store.conversations] == [store.active_conversation_id]
        assert store.active_conversation.summary == ""
        assert all(e.conversation_id != conv.id for e in events)
