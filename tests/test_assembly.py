"""Unit tests for context assembly."""

from __future__ import annotations

from live_context.assembly import assemble, attachment_messages, forget_notice
from live_context.models import AttachmentChunk

from tests.conftest import unit


class TestAssemble:
    def test_empty_conversation(self):
        assert assemble([]) == []

    def test_orders_by_timestamp_and_maps_roles(self):
        units = [
            unit("assistant", "hi there", 2),
            unit("system", "be brief", 0),
            unit("user", "hello", 1),
            unit("note", "remember: metric units", 3),
        ]
        assert assemble(units) == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "hi there"},
            {"role": "system", "content": "remember: metric units"},
        ]

    def test_ties_keep_insertion_order(self):
        units = [unit("user", "first", 1), unit("assistant", "second", 1)]
        assert [m["content"] for m in assemble(units)] == ["first", "second"]

    def test_removed_before_last_user_becomes_forget_notice(self):
        units = [
            unit("user", "I live in Paris", 0, removed=True),
            unit("assistant", "Noted", 1),
            unit("user", "Where do I live?", 2),
        ]
        messages = assemble(units)
        assert messages[0] == forget_notice("I live in Paris")
        assert messages[1:] == [
            {"role": "assistant", "content": "Noted"},
            {"role": "user", "content": "Where do I live?"},
        ]

    def test_forget_notice_text(self):
        notice = forget_notice("X")
        assert notice["role"] == "system"
        assert notice["content"] == (
            "Note: Forget any earlier mention of 'X'. It is incorrect or irrelevant."
        )

    def test_removed_after_last_user_needs_no_notice(self):
        units = [
            unit("user", "question", 0),
            unit("assistant", "wrong answer", 1, removed=True),
        ]
        assert assemble(units) == [{"role": "user", "content": "question"}]

    def test_no_user_turn_means_no_notices(self):
        units = [
            unit("system", "old rule", 0, removed=True),
            unit("assistant", "greeting", 1),
        ]
        assert assemble(units) == [{"role": "assistant", "content": "greeting"}]

    def test_notices_precede_all_content(self):
        units = [
            unit("system", "be brief", 0),
            unit("user", "a", 1, removed=True),
            unit("user", "b", 2, removed=True),
            unit("user", "c", 3),
        ]
        roles = [m["content"] for m in assemble(units)]
        assert roles[:2] == [forget_notice("a")["content"], forget_notice("b")["content"]]
        assert roles[2:] == ["be brief", "c"]


class TestCut:
    def test_cut_is_inclusive(self):
        units = [
            unit("user", "one", 0),
            unit("assistant", "two", 1),
            unit("user", "three", 2),
        ]
        messages = assemble(units, cut_unit_id=units[1].id)
        assert [m["content"] for m in messages] == ["one", "two"]

    def test_unknown_cut_uses_everything(self):
        units = [unit("user", "one", 0), unit("assistant", "two", 1)]
        assert len(assemble(units, cut_unit_id="missing")) == 2

    def test_cut_bounds_the_last_user_turn(self):
        units = [
            unit("user", "draft", 0, removed=True),
            unit("user", "edited", 1),
            unit("assistant", "reply", 2),
            unit("user", "later", 3),
        ]
        messages = assemble(units, cut_unit_id=units[1].id)
        assert messages == [
            forget_notice("draft"),
            {"role": "user", "content": "edited"},
        ]


class TestAttachmentMessages:
    def test_header_names_part_and_total(self):
        chunks = [
            AttachmentChunk(attachment_id="a1", index=0, text="alpha", token_count=1),
            AttachmentChunk(attachment_id="a1", index=1, text="beta", token_count=1),
        ]
        messages = attachment_messages(chunks, {"a1": "notes.md"})
        assert messages == [
            {"role": "system", "content": "Attachment 'notes.md' (part 1/2):\nalpha"},
            {"role": "system", "content": "Attachment 'notes.md' (part 2/2):\nbeta"},
        ]

    def test_unknown_name_falls_back_to_id(self):
        chunks = [AttachmentChunk(attachment_id="a9", index=0, text="x", token_count=1)]
        assert attachment_messages(chunks)[0]["content"].startswith("Attachment 'a9'")
