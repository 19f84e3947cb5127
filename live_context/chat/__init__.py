from live_context.chat.session import ChatSession
from live_context.chat.stream import STREAM_FLUSH_INTERVAL, ReplyStream

__all__ = [
    "STREAM_FLUSH_INTERVAL",
    "ChatSession",
    "ReplyStream",
]
