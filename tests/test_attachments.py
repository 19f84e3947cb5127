"""Unit tests for attachment extraction, chunking and embeddings."""

from __future__ import annotations

from pathlib import Path

import pytest

from live_context.attachments import AttachmentLibrary, extract_text
from live_context.exceptions import (
    CapabilityUnavailableError,
    ExtractionFailedException,
    UnsupportedFileTypeError,
)

from tests.conftest import FakeLLMClient, WordCountTokenCounter


def _library(**kwargs) -> AttachmentLibrary:
    return AttachmentLibrary(WordCountTokenCounter(), **kwargs)


class TestExtractors:
    def test_markdown_is_read_as_text(self, tmp_path: Path):
        path = tmp_path / "notes.md"
        path.write_text("# Title\n\nBody", encoding="utf-8")
        assert extract_text(path) == "# Title\n\nBody"

    def test_unknown_suffix_tried_as_text(self, tmp_path: Path):
        path = tmp_path / "data.csv"
        path.write_text("a,b", encoding="utf-8")
        assert extract_text(path) == "a,b"

    def test_binary_is_unsupported(self, tmp_path: Path):
        path = tmp_path / "blob.txt"
        path.write_bytes(b"\xff\xfe\x00bad")
        with pytest.raises(UnsupportedFileTypeError):
            extract_text(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ExtractionFailedException):
            extract_text(tmp_path / "missing.txt")


class TestUpload:
    def test_failed_file_is_skipped(self, tmp_path: Path):
        good = tmp_path / "good.txt"
        good.write_text("some useful text", encoding="utf-8")
        bad = tmp_path / "bad.txt"
        bad.write_bytes(b"\xff\xfe")

        library = _library()
        added = library.upload_files([bad, good, tmp_path / "missing.md"])

        assert [m.name for m in added] == ["good.txt"]
        assert added[0].mime_type == "text/plain"
        assert added[0].size_bytes == good.stat().st_size
        assert len(library.attachments) == 1

    def test_chunks_carry_token_counts(self):
        library = _library(max_tokens=4, overlap_tokens=0)
        meta = library.add_text("doc.txt", "a b c\n\nd e f\n\ng h")
        chunks = library.chunks(meta.id)

        assert [c.index for c in chunks] == [0, 1, 2]
        assert [c.token_count for c in chunks] == [3, 3, 2]
        assert all(c.attachment_id == meta.id for c in chunks)
        assert library.token_total([meta.id]) == 8

    def test_chunks_for_follows_selection_order(self):
        library = _library()
        first = library.add_text("one.txt", "one")
        second = library.add_text("two.txt", "two")
        texts = [c.text for c in library.chunks_for([second.id, "missing", first.id])]
        assert texts == ["two", "one"]

    def test_context_messages(self):
        library = _library()
        meta = library.add_text("facts.md", "The sky is green.")
        messages = library.context_messages([meta.id])
        assert messages == [
            {
                "role": "system",
                "content": "Attachment 'facts.md' (part 1/1):\nThe sky is green.",
            }
        ]

    def test_rename_and_delete(self):
        library = _library()
        meta = library.add_text("old.txt", "text")
        assert library.rename(meta.id, "new.txt")
        assert library.get(meta.id).name == "new.txt"
        assert library.delete(meta.id)
        assert library.chunks(meta.id) == []
        assert library.delete(meta.id) is False


class TestEmbeddings:
    async def test_vectors_are_stored(self):
        library = _library(max_tokens=2, overlap_tokens=0)
        meta = library.add_text("doc.txt", "a b\n\nc d")
        llm = FakeLLMClient()

        assert await library.generate_embeddings(meta.id, llm, "text-embedding-3-small") == 2
        chunks = library.chunks(meta.id)
        assert [c.embedding for c in chunks] == [[0.0, 1.0], [1.0, 1.0]]
        assert chunks[0].embedding_model == "text-embedding-3-small"
        assert llm.embed_calls == [["a b", "c d"]]

    async def test_count_mismatch_leaves_chunks_unembedded(self):
        library = _library(max_tokens=2, overlap_tokens=0)
        meta = library.add_text("doc.txt", "a b\n\nc d")
        llm = FakeLLMClient(embeddings=[[1.0]])

        assert await library.generate_embeddings(meta.id, llm) == 0
        assert all(c.embedding is None for c in library.chunks(meta.id))

    async def test_unavailable_capability_is_logged_not_raised(self):
        library = _library()
        meta = library.add_text("doc.txt", "text")
        llm = FakeLLMClient(embeddings=CapabilityUnavailableError("embeddings"))
        assert await library.generate_embeddings(meta.id, llm) == 0

    async def test_unknown_attachment(self):
        assert await _library().generate_embeddings("missing", FakeLLMClient()) == 0
