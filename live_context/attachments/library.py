from __future__ import annotations

import logging
import mimetypes
from collections.abc import Iterable
from dataclasses import replace
from pathlib import Path

from live_context.assembly import ChatMessage, attachment_messages
from live_context.attachments.extractors import Extractor, extract_text
from live_context.chunking import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_OVERLAP_TOKENS,
    chunk_text,
)
from live_context.exceptions import ExtractionFailedException, MalformedResponseError
from live_context.llm.base import BaseLLMClient
from live_context.models import AttachmentChunk, AttachmentMeta
from live_context.tokens.base import DEFAULT_MODEL, TokenCounter

logger = logging.getLogger(__name__)


class AttachmentLibrary:
    """Uploaded reference documents and their immutable chunks.

    Conversations select attachments by id; :meth:`chunks_for` resolves a
    selection to a flat, ordered chunk sequence.
    """

    def __init__(
        self,
        counter: TokenCounter,
        *,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        overlap_tokens: int = DEFAULT_OVERLAP_TOKENS,
        extractor: Extractor = extract_text,
    ) -> None:
        self._counter = counter
        self._model = model
        self._max_tokens = max_tokens
        self._overlap_tokens = overlap_tokens
        self._extractor = extractor
        self._attachments: list[AttachmentMeta] = []
        self._chunks: dict[str, list[AttachmentChunk]] = {}

    # ── Lookups ──────────────────────────────────────────────────────

    @property
    def attachments(self) -> list[AttachmentMeta]:
        return list(self._attachments)

    def get(self, attachment_id: str) -> AttachmentMeta | None:
        for meta in self._attachments:
            if meta.id == attachment_id:
                return meta
        return None

    def chunks(self, attachment_id: str) -> list[AttachmentChunk]:
        return list(self._chunks.get(attachment_id, []))

    def all_chunks(self) -> list[AttachmentChunk]:
        return [c for meta in self._attachments for c in self._chunks.get(meta.id, [])]

    def chunks_for(self, attachment_ids: Iterable[str]) -> list[AttachmentChunk]:
        """Chunks of every selected attachment, selection order then chunk index.

        Unknown ids are skipped.
        """
        return [c for aid in attachment_ids for c in self._chunks.get(aid, [])]

    def context_messages(self, attachment_ids: Iterable[str]) -> list[ChatMessage]:
        names = {m.id: m.name for m in self._attachments}
        return attachment_messages(self.chunks_for(attachment_ids), names)

    def token_total(self, attachment_ids: Iterable[str]) -> int:
        return sum(c.token_count for c in self.chunks_for(attachment_ids))

    # ── Ingestion ────────────────────────────────────────────────────

    def add_text(
        self,
        name: str,
        text: str,
        *,
        mime_type: str | None = None,
        size_bytes: int | None = None,
    ) -> AttachmentMeta:
        """Chunk already-extracted *text* and register it as an attachment."""
        meta = AttachmentMeta(
            name=name,
            mime_type=mime_type or mimetypes.guess_type(name)[0] or "text/plain",
            size_bytes=size_bytes if size_bytes is not None else len(text.encode()),
        )
        pieces = chunk_text(
            text,
            self._counter,
            max_tokens=self._max_tokens,
            overlap_tokens=self._overlap_tokens,
            model=self._model,
        )
        self._chunks[meta.id] = [
            AttachmentChunk(
                attachment_id=meta.id,
                index=i,
                text=piece,
                token_count=self._counter.count(piece, self._model),
            )
            for i, piece in enumerate(pieces)
        ]
        self._attachments.append(meta)
        logger.info(
            "[%s] Ingested %s (%d chunks)", meta.id, name, len(self._chunks[meta.id])
        )
        return meta

    def upload_files(self, paths: Iterable[str | Path]) -> list[AttachmentMeta]:
        """Extract, chunk and register each file.

        A file that fails extraction is skipped; the rest proceed.
        """
        added: list[AttachmentMeta] = []
        for raw in paths:
            path = Path(raw)
            try:
                text = self._extractor(path)
                size = path.stat().st_size
            except (ExtractionFailedException, OSError):
                logger.warning("Failed to extract text for %s", path, exc_info=True)
                continue
            added.append(
                self.add_text(
                    path.name,
                    text,
                    mime_type=mimetypes.guess_type(path.name)[0],
                    size_bytes=size,
                )
            )
        return added

    # ── Edits ────────────────────────────────────────────────────────

    def rename(self, attachment_id: str, name: str) -> bool:
        meta = self.get(attachment_id)
        if meta is None:
            return False
        renamed = replace(meta, name=name.strip() or meta.name)
        self._attachments = [renamed if m.id == attachment_id else m for m in self._attachments]
        return True

    def delete(self, attachment_id: str) -> bool:
        if self.get(attachment_id) is None:
            return False
        self._attachments = [m for m in self._attachments if m.id != attachment_id]
        self._chunks.pop(attachment_id, None)
        return True

    def replace_all(
        self,
        attachments: Iterable[AttachmentMeta],
        chunks_by_attachment_id: dict[str, list[AttachmentChunk]],
    ) -> None:
        self._attachments = list(attachments)
        self._chunks = {k: list(v) for k, v in chunks_by_attachment_id.items()}

    @property
    def chunks_by_attachment_id(self) -> dict[str, list[AttachmentChunk]]:
        return {k: list(v) for k, v in self._chunks.items()}

    # ── Embeddings ───────────────────────────────────────────────────

    async def generate_embeddings(
        self,
        attachment_id: str,
        llm_client: BaseLLMClient,
        embedding_model: str | None = None,
    ) -> int:
        """Embed every chunk of an attachment in one batched call.

        Returns the number of chunks embedded.  On any failure (no
        credentials, API error, length mismatch) the chunks stay
        unembedded and a warning is logged.
        """
        chunks = self._chunks.get(attachment_id, [])
        if not chunks:
            return 0
        try:
            vectors = await llm_client.embed(
                [c.text for c in chunks], model=embedding_model
            )
            if len(vectors) != len(chunks):
                raise MalformedResponseError(
                    f"expected {len(chunks)} embeddings, got {len(vectors)}"
                )
        except Exception:
            logger.warning(
                "[%s] Failed to generate embeddings", attachment_id, exc_info=True
            )
            return 0

        if attachment_id not in self._chunks:
            return 0
        self._chunks[attachment_id] = [
            replace(c, embedding=v, embedding_model=embedding_model)
            for c, v in zip(chunks, vectors, strict=True)
        ]
        logger.info("[%s] Stored %d embeddings", attachment_id, len(vectors))
        return len(vectors)
