from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from live_context.models.unit import ContextUnit
from live_context.models.utils import generate_id, utcnow


@dataclass(frozen=True)
class TokenTotals:
    """Token counts derived from a full re-assembly of a conversation."""

    total: int = 0
    user: int = 0
    assistant: int = 0
    attachments: int = 0


@dataclass(frozen=True)
class Snapshot:
    """An immutable capture of a conversation's unit list."""

    units: tuple[ContextUnit, ...]
    title: str = "Snapshot"

    id: str = field(default_factory=generate_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Conversation:
    """An ordered set of context units plus derived and cached state.

    ``parent_conversation_id`` / ``forked_from_unit_id`` record branch
    lineage (a tree: at most one parent).  Token totals and the summary
    fields are derived state written back by the engine, never by callers.
    """

    title: str

    id: str = field(default_factory=generate_id)
    created_at: datetime = field(default_factory=utcnow)
    units: list[ContextUnit] = field(default_factory=list)
    parent_conversation_id: str | None = None
    forked_from_unit_id: str | None = None

    total_tokens: int = 0
    total_user_tokens: int = 0
    total_assistant_tokens: int = 0
    total_attachment_tokens: int = 0

    summary: str = ""
    summary_updated_at: datetime | None = None
    summary_loading: bool = False
    summary_error: str | None = None
    summary_cache_key: str | None = None
    last_summary_schema_version: int | None = None

    attachment_ids: list[str] = field(default_factory=list)
    snapshots: list[Snapshot] = field(default_factory=list)

    @property
    def token_totals(self) -> TokenTotals:
        return TokenTotals(
            total=self.total_tokens,
            user=self.total_user_tokens,
            assistant=self.total_assistant_tokens,
            attachments=self.total_attachment_tokens,
        )

    @property
    def visible_units(self) -> list[ContextUnit]:
        return [u for u in self.units if not u.removed]

    def find_unit(self, unit_id: str) -> ContextUnit | None:
        for unit in self.units:
            if unit.id == unit_id:
                return unit
        return None

    def index_of(self, unit_id: str) -> int:
        for i, unit in enumerate(self.units):
            if unit.id == unit_id:
                return i
        return -1

    def find_snapshot(self, snapshot_id: str) -> Snapshot | None:
        for snapshot in self.snapshots:
            if snapshot.id == snapshot_id:
                return snapshot
        return None
