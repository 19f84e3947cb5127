from live_context.persistence.repository import (
    ATTACHMENTS_KEY,
    CONVERSATIONS_KEY,
    LEGACY_KEY,
    LEGACY_MARKER_KEY,
    SETTINGS_KEY,
    StateRepository,
)

__all__ = [
    "ATTACHMENTS_KEY",
    "CONVERSATIONS_KEY",
    "LEGACY_KEY",
    "LEGACY_MARKER_KEY",
    "SETTINGS_KEY",
    "StateRepository",
]
