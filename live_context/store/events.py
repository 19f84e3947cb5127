from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass


class ChangeKind(enum.StrEnum):
    conversation_created = "conversation_created"
    conversation_deleted = "conversation_deleted"
    conversation_renamed = "conversation_renamed"
    active_changed = "active_changed"
    units_changed = "units_changed"
    attachments_changed = "attachments_changed"
    snapshots_changed = "snapshots_changed"
    summary_changed = "summary_changed"
    tokens_changed = "tokens_changed"
    regeneration_requested = "regeneration_requested"
    pending_changed = "pending_changed"


# Changes that alter what gets assembled for the model.
CONTEXT_CHANGES = frozenset(
    {
        ChangeKind.conversation_created,
        ChangeKind.units_changed,
        ChangeKind.attachments_changed,
    }
)


@dataclass(frozen=True)
class StoreEvent:
    """Emitted after a store command has been fully applied.

    ``previous_conversation_id`` is set for ``active_changed`` events.
    ``immediate`` asks listeners to skip debouncing (new conversations).
    """

    kind: ChangeKind
    conversation_id: str
    previous_conversation_id: str | None = None
    immediate: bool = False

    @property
    def affects_context(self) -> bool:
        return self.kind in CONTEXT_CHANGES


StoreListener = Callable[[StoreEvent], None]
