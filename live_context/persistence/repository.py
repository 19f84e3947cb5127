from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from live_context.models import AttachmentChunk, AttachmentMeta, Conversation, utcnow
from live_context.persistence.schemas import (
    AttachmentsState,
    ConversationRecord,
    ConversationsState,
    Envelope,
    LegacyAppState,
    SettingsState,
)
from live_context.settings import Settings
from live_context.storage.base import StorageBackend

logger = logging.getLogger(__name__)

CONVERSATIONS_KEY = "live-context-conversations"
CONVERSATIONS_VERSION = 2
SETTINGS_KEY = "live-context-settings"
SETTINGS_VERSION = 1
ATTACHMENTS_KEY = "live-context-attachments"
ATTACHMENTS_VERSION = 1

LEGACY_KEY = "live-context-store"
LEGACY_MARKER_KEY = "live-context-legacy-imported"


class StateRepository:
    """Loads and saves engine state as versioned JSON documents.

    Every document is stored as ``{"version": n, "state": {...}}``.  Loading
    never rejects a payload: unreadable documents are treated as absent and
    damaged fields are default-filled by the record schemas.
    """

    def __init__(self, storage: StorageBackend) -> None:
        self._storage = storage

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    # ── Documents ────────────────────────────────────────────────────

    def _read_json(self, key: str) -> Any | None:
        raw = self._storage.read(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable document %s", key, exc_info=True)
            return None

    def _read_envelope(self, key: str, current_version: int) -> Envelope | None:
        data = self._read_json(key)
        if data is None:
            return None
        if isinstance(data, dict) and "state" in data:
            envelope = Envelope.model_validate(data)
        else:
            # Unversioned document: the state itself.
            envelope = Envelope(version=0, state=data if isinstance(data, dict) else {})
        if envelope.version > current_version:
            logger.warning(
                "%s has version %d, newer than %d; loading what is recognised",
                key,
                envelope.version,
                current_version,
            )
        return envelope

    def _write_envelope(self, key: str, version: int, state: BaseModel) -> None:
        document = {
            "version": version,
            "state": state.model_dump(mode="json", by_alias=True),
        }
        self._storage.write(key, json.dumps(document, ensure_ascii=False))

    # ── Conversations ────────────────────────────────────────────────

    def load_conversations(self) -> tuple[list[Conversation], str | None]:
        """Stored conversations and the active id.

        When nothing is stored yet, a legacy store is imported once.
        """
        envelope = self._read_envelope(CONVERSATIONS_KEY, CONVERSATIONS_VERSION)
        state = (
            ConversationsState.model_validate(envelope.state)
            if envelope is not None
            else ConversationsState()
        )
        if not state.conversations:
            imported = self._import_legacy()
            if imported is not None:
                state = imported
                self._write_envelope(CONVERSATIONS_KEY, CONVERSATIONS_VERSION, state)
        return state.to_domain()

    def save_conversations(
        self, conversations: list[Conversation], active_conversation_id: str
    ) -> None:
        state = ConversationsState(
            conversations=[ConversationRecord.from_domain(c) for c in conversations],
            active_conversation_id=active_conversation_id,
        )
        self._write_envelope(CONVERSATIONS_KEY, CONVERSATIONS_VERSION, state)

    def _import_legacy(self) -> ConversationsState | None:
        if self._storage.exists(LEGACY_MARKER_KEY):
            return None
        data = self._read_json(LEGACY_KEY)
        if not isinstance(data, dict):
            return None
        if isinstance(data.get("state"), dict):
            data = data["state"]

        try:
            if "conversations" in data:
                state = ConversationsState.model_validate(data)
            else:
                state = LegacyAppState.model_validate(data).to_conversations_state()
        except ValidationError:
            logger.warning("Legacy store could not be read", exc_info=True)
            return None

        self._storage.write(
            LEGACY_MARKER_KEY, json.dumps({"importedAt": utcnow().isoformat()})
        )
        if not state.conversations:
            return None
        logger.info("Imported %d legacy conversation(s)", len(state.conversations))
        return state

    # ── Settings ─────────────────────────────────────────────────────

    def load_settings(self) -> Settings:
        envelope = self._read_envelope(SETTINGS_KEY, SETTINGS_VERSION)
        if envelope is None:
            return Settings()
        return SettingsState.model_validate(envelope.state).to_domain()

    def save_settings(self, settings: Settings) -> None:
        self._write_envelope(
            SETTINGS_KEY, SETTINGS_VERSION, SettingsState.from_domain(settings)
        )

    # ── Attachments ──────────────────────────────────────────────────

    def load_attachments(
        self,
    ) -> tuple[list[AttachmentMeta], dict[str, list[AttachmentChunk]]]:
        envelope = self._read_envelope(ATTACHMENTS_KEY, ATTACHMENTS_VERSION)
        if envelope is None:
            return [], {}
        return AttachmentsState.model_validate(envelope.state).to_domain()

    def save_attachments(
        self,
        attachments: list[AttachmentMeta],
        chunks_by_attachment_id: dict[str, list[AttachmentChunk]],
    ) -> None:
        self._write_envelope(
            ATTACHMENTS_KEY,
            ATTACHMENTS_VERSION,
            AttachmentsState.from_domain(attachments, chunks_by_attachment_id),
        )
