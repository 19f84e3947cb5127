"""Domain models: pure Python dataclasses with no infrastructure dependencies.

These are the canonical types shared by the store, the assembly and
summary algorithms, and the persistence layer.  The persisted JSON
shapes (pydantic records) live separately in ``persistence/schemas.py``
and map to/from these models.
"""

from live_context.models.attachment import AttachmentChunk, AttachmentMeta
from live_context.models.conversation import Conversation, Snapshot, TokenTotals
from live_context.models.unit import (
    ContextUnit,
    UnitType,
    assistant_unit,
    note_unit,
    system_unit,
    user_unit,
)
from live_context.models.utils import EPOCH, generate_id, utcnow

__all__ = [
    "EPOCH",
    "AttachmentChunk",
    "AttachmentMeta",
    "ContextUnit",
    "Conversation",
    "Snapshot",
    "TokenTotals",
    "UnitType",
    "assistant_unit",
    "generate_id",
    "note_unit",
    "system_unit",
    "user_unit",
    "utcnow",
]
