from live_context.store.conversations import ConversationStore
from live_context.store.events import ChangeKind, StoreEvent, StoreListener
from live_context.store.pending import (
    ChangeAction,
    ChangePolicy,
    PendingChange,
    RegenerationMode,
    RegenerationRequest,
)

__all__ = [
    "ChangeAction",
    "ChangeKind",
    "ChangePolicy",
    "ConversationStore",
    "PendingChange",
    "RegenerationMode",
    "RegenerationRequest",
    "StoreEvent",
    "StoreListener",
]
