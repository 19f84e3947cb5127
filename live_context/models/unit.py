from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime

from live_context.models.utils import generate_id, utcnow


class UnitType(enum.StrEnum):
    user = "user"
    assistant = "assistant"
    system = "system"
    note = "note"


@dataclass(frozen=True)
class ContextUnit:
    """One atomic turn or fact in a conversation.

    Units are immutable; store commands swap in modified copies.
    ``timestamp`` is the sole ordering key.  ``removed`` is a tombstone:
    removed units stay in the conversation so forget notices can be
    generated for them.
    """

    type: UnitType
    content: str

    id: str = field(default_factory=generate_id)
    tags: frozenset[str] = frozenset()
    pinned: bool = False
    removed: bool = False
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def visible(self) -> bool:
        return not self.removed

    def with_content(self, content: str) -> ContextUnit:
        return replace(self, content=content)

    def toggled_pin(self) -> ContextUnit:
        if self.removed:
            return self
        return replace(self, pinned=not self.pinned)

    def toggled_removed(self) -> ContextUnit:
        # Removing clears the pin; restoring does not bring it back.
        if self.removed:
            return replace(self, removed=False)
        return replace(self, removed=True, pinned=False)

    def tombstoned(self) -> ContextUnit:
        if self.removed:
            return self
        return replace(self, removed=True, pinned=False)


def user_unit(content: str, **kwargs) -> ContextUnit:
    return ContextUnit(type=UnitType.user, content=content, **kwargs)


def assistant_unit(content: str, **kwargs) -> ContextUnit:
    return ContextUnit(type=UnitType.assistant, content=content, **kwargs)


def system_unit(content: str, **kwargs) -> ContextUnit:
    return ContextUnit(type=UnitType.system, content=content, **kwargs)


def note_unit(content: str, **kwargs) -> ContextUnit:
    return ContextUnit(type=UnitType.note, content=content, **kwargs)
