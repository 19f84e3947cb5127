from live_context.facade import (
    ConversationOverview,
    LiveContext,
    SummaryView,
    UploadResult,
)
from live_context.store import ChangePolicy, ConversationStore

__all__ = [
    "ChangePolicy",
    "ConversationOverview",
    "ConversationStore",
    "LiveContext",
    "SummaryView",
    "UploadResult",
]
