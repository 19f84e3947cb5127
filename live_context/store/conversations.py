from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any

from live_context.models import (
    ContextUnit,
    Conversation,
    Snapshot,
    TokenTotals,
    UnitType,
    utcnow,
)
from live_context.store.events import ChangeKind, StoreEvent, StoreListener
from live_context.store.pending import (
    ChangeAction,
    ChangePolicy,
    PendingChange,
    RegenerationMode,
    RegenerationRequest,
)

logger = logging.getLogger(__name__)

_SUMMARY_FIELDS = frozenset(
    {
        "summary",
        "summary_updated_at",
        "summary_loading",
        "summary_error",
        "summary_cache_key",
        "last_summary_schema_version",
    }
)


class ConversationStore:
    """Owns every conversation and applies all mutations to them.

    Commands are synchronous and fully applied before listeners are
    notified, so observers never see partial state.  Commands addressing
    an unknown conversation, unit or snapshot id are no-ops: they return
    ``False`` / ``None`` instead of raising.  The store is never left
    without a conversation.

    Unit commands without an explicit ``conversation_id`` act on the
    active conversation.
    """

    def __init__(
        self,
        conversations: Iterable[Conversation] | None = None,
        active_conversation_id: str | None = None,
    ) -> None:
        self._conversations: list[Conversation] = list(conversations or [])
        self._listeners: list[StoreListener] = []
        self._pending: PendingChange | None = None
        self._regeneration: RegenerationRequest | None = None

        if not self._conversations:
            self._conversations.append(Conversation(title="Conversation 1"))
        if active_conversation_id is None or not self._has(active_conversation_id):
            active_conversation_id = self._conversations[0].id
        self._active_id: str = active_conversation_id

    # ── Observers ────────────────────────────────────────────────────

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(
        self,
        kind: ChangeKind,
        conversation_id: str,
        *,
        previous_conversation_id: str | None = None,
        immediate: bool = False,
    ) -> None:
        event = StoreEvent(
            kind=kind,
            conversation_id=conversation_id,
            previous_conversation_id=previous_conversation_id,
            immediate=immediate,
        )
        for listener in list(self._listeners):
            listener(event)

    # ── Lookups ──────────────────────────────────────────────────────

    @property
    def conversations(self) -> list[Conversation]:
        return list(self._conversations)

    @property
    def active_conversation_id(self) -> str:
        return self._active_id

    @property
    def active_conversation(self) -> Conversation:
        conv = self.get_conversation(self._active_id)
        return conv if conv is not None else self._conversations[0]

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        for conv in self._conversations:
            if conv.id == conversation_id:
                return conv
        return None

    def _has(self, conversation_id: str) -> bool:
        return self.get_conversation(conversation_id) is not None

    # ── Conversations ────────────────────────────────────────────────

    def create_conversation(
        self,
        title: str | None = None,
        base_units: Iterable[ContextUnit] | None = None,
        *,
        parent_conversation_id: str | None = None,
        forked_from_unit_id: str | None = None,
    ) -> str:
        """Create a conversation and make it active.

        *base_units* are copied with their ids preserved, so a unit can be
        followed across branch lineage.
        """
        title = (title or "").strip() or f"Conversation {len(self._conversations) + 1}"
        conv = Conversation(
            title=title,
            units=[replace(u) for u in base_units or []],
            parent_conversation_id=parent_conversation_id,
            forked_from_unit_id=forked_from_unit_id,
        )
        previous = self._active_id
        self._conversations.append(conv)
        self._active_id = conv.id

        logger.debug(
            "[%s] Created conversation %r (%d units)", conv.id, title, len(conv.units)
        )
        self._notify(ChangeKind.conversation_created, conv.id, immediate=True)
        self._notify(
            ChangeKind.active_changed, conv.id, previous_conversation_id=previous
        )
        return conv.id

    def delete_conversation(self, conversation_id: str) -> bool:
        conv = self.get_conversation(conversation_id)
        if conv is None:
            return False

        previous = self._active_id
        self._conversations = [c for c in self._conversations if c.id != conversation_id]
        if self._pending and self._pending.conversation_id == conversation_id:
            self._pending = None
        if (
            self._regeneration
            and self._regeneration.target_conversation_id == conversation_id
        ):
            self._regeneration = None

        created: Conversation | None = None
        if not self._conversations:
            created = Conversation(title="Conversation 1")
            self._conversations.append(created)
        if previous == conversation_id:
            self._active_id = self._conversations[0].id

        logger.debug("[%s] Deleted conversation", conversation_id)
        self._notify(ChangeKind.conversation_deleted, conversation_id)
        if created is not None:
            self._notify(ChangeKind.conversation_created, created.id, immediate=True)
        if self._active_id != previous:
            self._notify(
                ChangeKind.active_changed,
                self._active_id,
                previous_conversation_id=previous,
            )
        return True

    def rename_conversation(self, conversation_id: str, title: str) -> bool:
        conv = self.get_conversation(conversation_id)
        if conv is None:
            return False
        conv.title = title.strip() or conv.title
        self._notify(ChangeKind.conversation_renamed, conversation_id)
        return True

    def set_active_conversation(self, conversation_id: str) -> bool:
        if not self._has(conversation_id):
            return False
        if conversation_id == self._active_id:
            return True
        previous = self._active_id
        self._active_id = conversation_id
        self._notify(
            ChangeKind.active_changed,
            conversation_id,
            previous_conversation_id=previous,
        )
        return True

    # ── Units ────────────────────────────────────────────────────────

    def _set_units(self, conv: Conversation, units: list[ContextUnit]) -> None:
        conv.units = units
        self._notify(ChangeKind.units_changed, conv.id)

    def _map_unit(
        self,
        conversation_id: str | None,
        unit_id: str,
        fn: Callable[[ContextUnit], ContextUnit],
    ) -> bool:
        conv = self.get_conversation(conversation_id or self._active_id)
        if conv is None or conv.index_of(unit_id) == -1:
            return False
        self._set_units(conv, [fn(u) if u.id == unit_id else u for u in conv.units])
        return True

    def add_unit(
        self, unit: ContextUnit, *, conversation_id: str | None = None
    ) -> bool:
        conv = self.get_conversation(conversation_id or self._active_id)
        if conv is None:
            return False
        self._set_units(conv, [*conv.units, unit])
        return True

    def update_unit(
        self, unit_id: str, content: str, *, conversation_id: str | None = None
    ) -> bool:
        return self._map_unit(conversation_id, unit_id, lambda u: u.with_content(content))

    def toggle_pin(self, unit_id: str, *, conversation_id: str | None = None) -> bool:
        conv = self.get_conversation(conversation_id or self._active_id)
        unit = conv.find_unit(unit_id) if conv else None
        if unit is None or unit.removed:
            return False
        return self._map_unit(conv.id, unit_id, ContextUnit.toggled_pin)

    def toggle_removed(
        self, unit_id: str, *, conversation_id: str | None = None
    ) -> bool:
        return self._map_unit(conversation_id, unit_id, ContextUnit.toggled_removed)

    def restore_all(self, conversation_id: str | None = None) -> bool:
        conv = self.get_conversation(conversation_id or self._active_id)
        if conv is None:
            return False
        self._set_units(
            conv, [replace(u, removed=False) if u.removed else u for u in conv.units]
        )
        return True

    def trim_after(self, conversation_id: str, unit_id: str) -> bool:
        """Discard every unit after *unit_id*, keeping *unit_id* itself."""
        conv = self.get_conversation(conversation_id)
        if conv is None:
            return False
        cut = conv.index_of(unit_id)
        if cut == -1:
            return False
        self._set_units(conv, conv.units[: cut + 1])
        return True

    def branch_from(
        self,
        conversation_id: str,
        unit_id: str,
        title: str | None = None,
    ) -> str | None:
        """Fork the prefix ending at *unit_id* (inclusive) into a new conversation.

        An unknown *unit_id* forks the whole unit list.
        """
        conv = self.get_conversation(conversation_id)
        if conv is None:
            return None
        cut = conv.index_of(unit_id)
        base = conv.units if cut == -1 else conv.units[: cut + 1]
        return self.create_conversation(
            title,
            base,
            parent_conversation_id=conversation_id,
            forked_from_unit_id=unit_id,
        )

    def insert_assistant_after(
        self,
        conversation_id: str,
        after_unit_id: str,
        content: str,
    ) -> str | None:
        """Splice a new assistant unit directly after *after_unit_id*."""
        conv = self.get_conversation(conversation_id)
        if conv is None:
            return None
        idx = conv.index_of(after_unit_id)
        if idx == -1:
            return None
        unit = ContextUnit(type=UnitType.assistant, content=content, timestamp=utcnow())
        units = list(conv.units)
        units.insert(idx + 1, unit)
        self._set_units(conv, units)
        return unit.id

    # ── Snapshots ────────────────────────────────────────────────────

    def create_snapshot(
        self, conversation_id: str, title: str | None = None
    ) -> str | None:
        conv = self.get_conversation(conversation_id)
        if conv is None:
            return None
        snapshot = Snapshot(
            units=tuple(conv.units),
            title=(title or "").strip() or f"Snapshot {len(conv.snapshots) + 1}",
        )
        conv.snapshots = [*conv.snapshots, snapshot]
        self._notify(ChangeKind.snapshots_changed, conversation_id)
        return snapshot.id

    def list_snapshots(self, conversation_id: str) -> list[Snapshot]:
        """Snapshots of a conversation, newest first."""
        conv = self.get_conversation(conversation_id)
        if conv is None:
            return []
        return sorted(conv.snapshots, key=lambda s: s.created_at, reverse=True)

    def restore_snapshot(self, conversation_id: str, snapshot_id: str) -> bool:
        """Replace the live unit list in place; no new conversation."""
        conv = self.get_conversation(conversation_id)
        snapshot = conv.find_snapshot(snapshot_id) if conv else None
        if conv is None or snapshot is None:
            return False
        self._set_units(conv, list(snapshot.units))
        return True

    def branch_from_snapshot(
        self,
        conversation_id: str,
        snapshot_id: str,
        title: str | None = None,
    ) -> str | None:
        conv = self.get_conversation(conversation_id)
        snapshot = conv.find_snapshot(snapshot_id) if conv else None
        if conv is None or snapshot is None:
            return None
        return self.create_conversation(
            title or snapshot.title,
            snapshot.units,
            parent_conversation_id=conversation_id,
            forked_from_unit_id=snapshot.units[-1].id if snapshot.units else None,
        )

    def delete_snapshot(self, conversation_id: str, snapshot_id: str) -> bool:
        conv = self.get_conversation(conversation_id)
        if conv is None or conv.find_snapshot(snapshot_id) is None:
            return False
        conv.snapshots = [s for s in conv.snapshots if s.id != snapshot_id]
        self._notify(ChangeKind.snapshots_changed, conversation_id)
        return True

    # ── Attachment selection ─────────────────────────────────────────

    def set_attachment_selection(
        self, conversation_id: str, attachment_ids: Iterable[str]
    ) -> bool:
        conv = self.get_conversation(conversation_id)
        if conv is None:
            return False
        conv.attachment_ids = list(dict.fromkeys(attachment_ids))
        self._notify(ChangeKind.attachments_changed, conversation_id)
        return True

    def toggle_attachment(self, conversation_id: str, attachment_id: str) -> bool:
        conv = self.get_conversation(conversation_id)
        if conv is None:
            return False
        if attachment_id in conv.attachment_ids:
            selection = [a for a in conv.attachment_ids if a != attachment_id]
        else:
            selection = [*conv.attachment_ids, attachment_id]
        return self.set_attachment_selection(conversation_id, selection)

    def forget_attachment(self, attachment_id: str) -> None:
        """Drop a deleted attachment from every conversation's selection."""
        for conv in self._conversations:
            if attachment_id in conv.attachment_ids:
                self.set_attachment_selection(
                    conv.id, [a for a in conv.attachment_ids if a != attachment_id]
                )

    # ── Derived state ────────────────────────────────────────────────

    def set_token_totals(self, conversation_id: str, totals: TokenTotals) -> bool:
        conv = self.get_conversation(conversation_id)
        if conv is None:
            return False
        conv.total_tokens = totals.total
        conv.total_user_tokens = totals.user
        conv.total_assistant_tokens = totals.assistant
        conv.total_attachment_tokens = totals.attachments
        self._notify(ChangeKind.tokens_changed, conversation_id)
        return True

    def update_summary_state(self, conversation_id: str, **changes: Any) -> bool:
        """Write summary fields; a no-op if the conversation is gone."""
        unknown = set(changes) - _SUMMARY_FIELDS
        if unknown:
            raise TypeError(f"Unknown summary fields: {sorted(unknown)}")
        conv = self.get_conversation(conversation_id)
        if conv is None:
            return False
        for name, value in changes.items():
            setattr(conv, name, value)
        self._notify(ChangeKind.summary_changed, conversation_id)
        return True

    # ── Edit / removal decisions ─────────────────────────────────────

    @property
    def pending_change(self) -> PendingChange | None:
        return self._pending

    def open_edit(self, conversation_id: str, unit_id: str, draft_content: str) -> bool:
        return self._open(ChangeAction.edit, conversation_id, unit_id, draft_content)

    def open_removal(self, conversation_id: str, unit_id: str) -> bool:
        return self._open(ChangeAction.remove, conversation_id, unit_id, "")

    def _open(
        self,
        action: ChangeAction,
        conversation_id: str,
        unit_id: str,
        draft_content: str,
    ) -> bool:
        if self._pending is not None:
            return False
        conv = self.get_conversation(conversation_id)
        if conv is None or conv.find_unit(unit_id) is None:
            return False
        self._pending = PendingChange(action, conversation_id, unit_id, draft_content)
        self._notify(ChangeKind.pending_changed, conversation_id)
        return True

    def close_pending(self) -> None:
        if self._pending is None:
            return
        conversation_id = self._pending.conversation_id
        self._pending = None
        self._notify(ChangeKind.pending_changed, conversation_id)

    def apply_pending(
        self, policy: ChangePolicy, title: str | None = None
    ) -> str | None:
        """Resolve the pending change with *policy*.

        Returns the id of the conversation that holds the result (the new
        branch for :attr:`ChangePolicy.branch`), or ``None`` if nothing was
        pending or its target has disappeared.  Edits resolved with trim or
        branch leave a :class:`RegenerationRequest`; removals never do.
        """
        pending = self._pending
        if pending is None:
            return None
        self._pending = None
        self._notify(ChangeKind.pending_changed, pending.conversation_id)

        cid, uid = pending.conversation_id, pending.unit_id
        conv = self.get_conversation(cid)
        if conv is None or conv.find_unit(uid) is None:
            return None

        if pending.action == ChangeAction.edit:
            self.update_unit(uid, pending.draft_content, conversation_id=cid)
        else:
            self._map_unit(cid, uid, ContextUnit.tombstoned)

        target = cid
        if policy == ChangePolicy.trim:
            self.trim_after(cid, uid)
        elif policy == ChangePolicy.branch:
            branched = self.branch_from(cid, uid, title)
            assert branched is not None
            target = branched

        if pending.action == ChangeAction.edit and policy != ChangePolicy.do_nothing:
            self._regeneration = RegenerationRequest(
                mode=RegenerationMode(policy.value),
                target_conversation_id=target,
                edited_unit_id=uid,
            )
            self._notify(ChangeKind.regeneration_requested, target)
        return target

    @property
    def regeneration_request(self) -> RegenerationRequest | None:
        return self._regeneration

    def take_regeneration_request(self) -> RegenerationRequest | None:
        """Return and clear the pending regeneration request."""
        request, self._regeneration = self._regeneration, None
        return request
