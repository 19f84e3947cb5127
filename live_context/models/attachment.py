from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from live_context.models.utils import generate_id, utcnow


@dataclass(frozen=True)
class AttachmentMeta:
    """An uploaded reference document."""

    name: str
    mime_type: str = "application/octet-stream"
    size_bytes: int = 0

    id: str = field(default_factory=generate_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class AttachmentChunk:
    """One token-bounded slice of an attachment, addressed by ``(attachment_id, index)``."""

    attachment_id: str
    index: int
    text: str
    token_count: int

    id: str = field(default_factory=generate_id)
    embedding: list[float] | None = None
    embedding_model: str | None = None
