"""Pydantic schemas for persisted state.

Persisted JSON uses camelCase keys.  Every field is lenient: a missing
or wrongly-typed value is replaced by a safe default (empty string or
list, ``False``, a fresh id, the epoch) so that one damaged field never
rejects the whole payload.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from live_context.llm.models import ModelInfo
from live_context.models import (
    EPOCH,
    AttachmentChunk,
    AttachmentMeta,
    ContextUnit,
    Conversation,
    Snapshot,
    UnitType,
    generate_id,
)
from live_context.settings import DEFAULT_EMBEDDING_MODEL, DEFAULT_MODEL, Settings

# ---------------------------------------------------------------------------
# Lenient field types
# ---------------------------------------------------------------------------


def _str_or_empty(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _id_or_new(value: Any) -> str:
    return value if isinstance(value, str) and value else generate_id()


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _or_default(default: str) -> Callable[[Any], str]:
    def validate(value: Any) -> str:
        return value if isinstance(value, str) and value else default

    return validate


def _bool_or_false(value: Any) -> bool:
    return value if isinstance(value, bool) else False


def _int_or_zero(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    return max(0, int(value))


def _number_or_zero(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0.0
    return float(value)


def _int_or_none(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _dict_list(value: Any) -> list[Any]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict | BaseModel)]


def _dict_or_empty(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _float_list_or_none(value: Any) -> list[float] | None:
    if not isinstance(value, list):
        return None
    if not all(isinstance(v, int | float) and not isinstance(v, bool) for v in value):
        return None
    return [float(v) for v in value]


def parse_timestamp(value: Any) -> datetime | None:
    """ISO-8601 string or datetime to an aware datetime; ``None`` if unreadable."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _timestamp_or_epoch(value: Any) -> datetime:
    return parse_timestamp(value) or EPOCH


def _unit_type(value: Any) -> UnitType:
    try:
        return UnitType(value)
    except (TypeError, ValueError):
        return UnitType.note


LenientStr = Annotated[str, BeforeValidator(_str_or_empty)]
RecordId = Annotated[str, BeforeValidator(_id_or_new)]
OptionalStr = Annotated[str | None, BeforeValidator(_str_or_none)]
LenientBool = Annotated[bool, BeforeValidator(_bool_or_false)]
Count = Annotated[int, BeforeValidator(_int_or_zero)]
Price = Annotated[float, BeforeValidator(_number_or_zero)]
OptionalInt = Annotated[int | None, BeforeValidator(_int_or_none)]
StrList = Annotated[list[str], BeforeValidator(_str_list)]
Timestamp = Annotated[datetime, BeforeValidator(_timestamp_or_epoch)]
OptionalTimestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]
Embedding = Annotated[list[float] | None, BeforeValidator(_float_list_or_none)]
LenientUnitType = Annotated[UnitType, BeforeValidator(_unit_type)]


class PersistedModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------


class UnitRecord(PersistedModel):
    id: RecordId = Field(default_factory=generate_id)
    type: LenientUnitType = UnitType.note
    content: LenientStr = ""
    tags: StrList = Field(default_factory=list)
    pinned: LenientBool = False
    removed: LenientBool = False
    timestamp: Timestamp = EPOCH

    @classmethod
    def from_domain(cls, unit: ContextUnit) -> UnitRecord:
        return cls(
            id=unit.id,
            type=unit.type,
            content=unit.content,
            tags=sorted(unit.tags),
            pinned=unit.pinned,
            removed=unit.removed,
            timestamp=unit.timestamp,
        )

    def to_domain(self) -> ContextUnit:
        return ContextUnit(
            id=self.id,
            type=self.type,
            content=self.content,
            tags=frozenset(self.tags),
            # A removed unit is never pinned.
            pinned=self.pinned and not self.removed,
            removed=self.removed,
            timestamp=self.timestamp,
        )


UnitList = Annotated[list[UnitRecord], BeforeValidator(_dict_list)]


class SnapshotRecord(PersistedModel):
    id: RecordId = Field(default_factory=generate_id)
    title: LenientStr = "Snapshot"
    created_at: Timestamp = EPOCH
    units: UnitList = Field(default_factory=list)

    @classmethod
    def from_domain(cls, snapshot: Snapshot) -> SnapshotRecord:
        return cls(
            id=snapshot.id,
            title=snapshot.title,
            created_at=snapshot.created_at,
            units=[UnitRecord.from_domain(u) for u in snapshot.units],
        )

    def to_domain(self) -> Snapshot:
        return Snapshot(
            id=self.id,
            title=self.title or "Snapshot",
            created_at=self.created_at,
            units=tuple(u.to_domain() for u in self.units),
        )


class ConversationRecord(PersistedModel):
    id: RecordId = Field(default_factory=generate_id)
    title: LenientStr = ""
    created_at: Timestamp = EPOCH
    units: UnitList = Field(default_factory=list)
    parent_conversation_id: OptionalStr = None
    forked_from_unit_id: OptionalStr = None

    total_tokens: Count = 0
    total_user_tokens: Count = 0
    total_assistant_tokens: Count = 0
    total_attachment_tokens: Count = 0

    summary: LenientStr = ""
    summary_updated_at: OptionalTimestamp = None
    summary_error: OptionalStr = None
    summary_cache_key: OptionalStr = None
    last_summary_schema_version: OptionalInt = None

    attachment_ids: StrList = Field(default_factory=list)
    snapshots: Annotated[list[SnapshotRecord], BeforeValidator(_dict_list)] = Field(
        default_factory=list
    )

    @classmethod
    def from_domain(cls, conv: Conversation) -> ConversationRecord:
        return cls(
            id=conv.id,
            title=conv.title,
            created_at=conv.created_at,
            units=[UnitRecord.from_domain(u) for u in conv.units],
            parent_conversation_id=conv.parent_conversation_id,
            forked_from_unit_id=conv.forked_from_unit_id,
            total_tokens=conv.total_tokens,
            total_user_tokens=conv.total_user_tokens,
            total_assistant_tokens=conv.total_assistant_tokens,
            total_attachment_tokens=conv.total_attachment_tokens,
            summary=conv.summary,
            summary_updated_at=conv.summary_updated_at,
            summary_error=conv.summary_error,
            summary_cache_key=conv.summary_cache_key,
            last_summary_schema_version=conv.last_summary_schema_version,
            attachment_ids=list(conv.attachment_ids),
            snapshots=[SnapshotRecord.from_domain(s) for s in conv.snapshots],
        )

    def to_domain(self, position: int = 0) -> Conversation:
        # summary_loading is transient and always starts out False.
        return Conversation(
            id=self.id,
            title=self.title.strip() or f"Conversation {position + 1}",
            created_at=self.created_at,
            units=[u.to_domain() for u in self.units],
            parent_conversation_id=self.parent_conversation_id,
            forked_from_unit_id=self.forked_from_unit_id,
            total_tokens=self.total_tokens,
            total_user_tokens=self.total_user_tokens,
            total_assistant_tokens=self.total_assistant_tokens,
            total_attachment_tokens=self.total_attachment_tokens,
            summary=self.summary,
            summary_updated_at=self.summary_updated_at,
            summary_error=self.summary_error,
            summary_cache_key=self.summary_cache_key,
            last_summary_schema_version=self.last_summary_schema_version,
            attachment_ids=list(dict.fromkeys(self.attachment_ids)),
            snapshots=[s.to_domain() for s in self.snapshots],
        )


class ConversationsState(PersistedModel):
    conversations: Annotated[
        list[ConversationRecord], BeforeValidator(_dict_list)
    ] = Field(default_factory=list)
    active_conversation_id: OptionalStr = None

    def to_domain(self) -> tuple[list[Conversation], str | None]:
        convs = [c.to_domain(i) for i, c in enumerate(self.conversations)]
        return convs, self.active_conversation_id


# ---------------------------------------------------------------------------
# Legacy single-conversation shape
# ---------------------------------------------------------------------------


class LegacyMessageRecord(PersistedModel):
    id: RecordId = Field(default_factory=generate_id)
    role: LenientUnitType = UnitType.note
    content: LenientStr = ""
    timestamp: Timestamp = EPOCH

    def to_unit(self) -> UnitRecord:
        return UnitRecord(
            id=self.id,
            type=self.role,
            content=self.content,
            timestamp=self.timestamp,
        )


class LegacyAppState(PersistedModel):
    """``{messages, contextUnits}`` as written before multi-conversation support."""

    messages: Annotated[list[LegacyMessageRecord], BeforeValidator(_dict_list)] = (
        Field(default_factory=list)
    )
    context_units: UnitList = Field(default_factory=list)

    def to_conversations_state(self) -> ConversationsState:
        units = self.context_units or [m.to_unit() for m in self.messages]
        if not units:
            return ConversationsState()
        conv = ConversationRecord(
            title="Imported conversation",
            created_at=min(u.timestamp for u in units),
            units=units,
        )
        return ConversationsState(conversations=[conv], active_conversation_id=conv.id)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class ModelInfoRecord(PersistedModel):
    display_name: LenientStr = ""
    context_window: Count = 0
    input_price_per_m: Price = 0.0
    output_price_per_m: Price = 0.0

    @classmethod
    def from_domain(cls, info: ModelInfo) -> ModelInfoRecord:
        return cls(
            display_name=info.display_name,
            context_window=info.context_window,
            input_price_per_m=info.input_price_per_m,
            output_price_per_m=info.output_price_per_m,
        )

    def to_domain(self, model_id: str) -> ModelInfo:
        return ModelInfo(
            display_name=self.display_name or model_id,
            context_window=self.context_window,
            input_price_per_m=self.input_price_per_m,
            output_price_per_m=self.output_price_per_m,
        )


def _model_info_map(value: Any) -> dict[str, Any]:
    return {
        k: v
        for k, v in _dict_or_empty(value).items()
        if isinstance(v, dict | BaseModel)
    }


class SettingsState(PersistedModel):
    model: Annotated[str, BeforeValidator(_or_default(DEFAULT_MODEL))] = DEFAULT_MODEL
    embedding_model: Annotated[
        str, BeforeValidator(_or_default(DEFAULT_EMBEDDING_MODEL))
    ] = DEFAULT_EMBEDDING_MODEL
    custom_models: Annotated[
        dict[str, ModelInfoRecord], BeforeValidator(_model_info_map)
    ] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, settings: Settings) -> SettingsState:
        return cls(
            model=settings.model,
            embedding_model=settings.embedding_model,
            custom_models={
                k: ModelInfoRecord.from_domain(v)
                for k, v in settings.custom_models.items()
            },
        )

    def to_domain(self) -> Settings:
        return Settings(
            model=self.model,
            embedding_model=self.embedding_model,
            custom_models={k: v.to_domain(k) for k, v in self.custom_models.items()},
        )


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------


class AttachmentMetaRecord(PersistedModel):
    id: RecordId = Field(default_factory=generate_id)
    name: LenientStr = ""
    mime_type: Annotated[
        str, BeforeValidator(_or_default("application/octet-stream"))
    ] = "application/octet-stream"
    size_bytes: Count = 0
    created_at: Timestamp = EPOCH

    @classmethod
    def from_domain(cls, meta: AttachmentMeta) -> AttachmentMetaRecord:
        return cls(
            id=meta.id,
            name=meta.name,
            mime_type=meta.mime_type,
            size_bytes=meta.size_bytes,
            created_at=meta.created_at,
        )

    def to_domain(self) -> AttachmentMeta:
        return AttachmentMeta(
            id=self.id,
            name=self.name or "Untitled",
            mime_type=self.mime_type,
            size_bytes=self.size_bytes,
            created_at=self.created_at,
        )


class AttachmentChunkRecord(PersistedModel):
    id: RecordId = Field(default_factory=generate_id)
    attachment_id: LenientStr = ""
    index: Count = 0
    text: LenientStr = ""
    token_count: Count = 0
    embedding: Embedding = None
    embedding_model: OptionalStr = None

    @classmethod
    def from_domain(cls, chunk: AttachmentChunk) -> AttachmentChunkRecord:
        return cls(
            id=chunk.id,
            attachment_id=chunk.attachment_id,
            index=chunk.index,
            text=chunk.text,
            token_count=chunk.token_count,
            embedding=chunk.embedding,
            embedding_model=chunk.embedding_model,
        )

    def to_domain(self, attachment_id: str) -> AttachmentChunk:
        return AttachmentChunk(
            id=self.id,
            attachment_id=self.attachment_id or attachment_id,
            index=self.index,
            text=self.text,
            token_count=self.token_count,
            embedding=self.embedding,
            embedding_model=self.embedding_model,
        )


def _chunk_map(value: Any) -> dict[str, list[Any]]:
    return {k: _dict_list(v) for k, v in _dict_or_empty(value).items()}


class AttachmentsState(PersistedModel):
    attachments: Annotated[
        list[AttachmentMetaRecord], BeforeValidator(_dict_list)
    ] = Field(default_factory=list)
    chunks_by_attachment_id: Annotated[
        dict[str, list[AttachmentChunkRecord]], BeforeValidator(_chunk_map)
    ] = Field(default_factory=dict)

    @classmethod
    def from_domain(
        cls,
        attachments: list[AttachmentMeta],
        chunks: dict[str, list[AttachmentChunk]],
    ) -> AttachmentsState:
        return cls(
            attachments=[AttachmentMetaRecord.from_domain(m) for m in attachments],
            chunks_by_attachment_id={
                k: [AttachmentChunkRecord.from_domain(c) for c in v]
                for k, v in chunks.items()
            },
        )

    def to_domain(
        self,
    ) -> tuple[list[AttachmentMeta], dict[str, list[AttachmentChunk]]]:
        metas = [a.to_domain() for a in self.attachments]
        chunks = {
            k: sorted((c.to_domain(k) for c in v), key=lambda c: c.index)
            for k, v in self.chunks_by_attachment_id.items()
        }
        return metas, chunks


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class Envelope(BaseModel):
    """``{"version": n, "state": {...}}`` wrapper around every stored document."""

    version: Annotated[int, BeforeValidator(_int_or_zero)] = 0
    state: Annotated[dict[str, Any], BeforeValidator(_dict_or_empty)] = Field(
        default_factory=dict
    )
