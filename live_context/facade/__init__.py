from live_context.facade.core import LiveContext
from live_context.facade.types import ConversationOverview, SummaryView, UploadResult

__all__ = [
    "ConversationOverview",
    "LiveContext",
    "SummaryView",
    "UploadResult",
]
