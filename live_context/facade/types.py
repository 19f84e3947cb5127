"""Public return types for the live_context API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from live_context.models import AttachmentMeta


@dataclass
class ConversationOverview:
    """One row of :meth:`LiveContext.list_conversations`."""

    id: str
    title: str
    created_at: datetime
    unit_count: int
    visible_count: int
    total_tokens: int
    is_active: bool = False
    parent_conversation_id: str | None = None


@dataclass
class SummaryView:
    """Current summary state of a conversation.

    ``stale`` is set when the stored summary was produced from a digest
    that no longer matches the conversation.
    """

    content: str
    updated_at: datetime | None
    loading: bool = False
    error: str | None = None
    stale: bool = False


@dataclass
class UploadResult:
    """Result from :meth:`LiveContext.upload_files`."""

    attachments: list[AttachmentMeta] = field(default_factory=list)
    skipped: int = 0
    embedded_chunks: int = 0
