from live_context.attachments.extractors import EXTRACTORS, extract_text
from live_context.attachments.library import AttachmentLibrary

__all__ = [
    "EXTRACTORS",
    "AttachmentLibrary",
    "extract_text",
]
