"""Shared ID and clock helpers for all domain models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime


def generate_id() -> str:
    """Return a new random UUID string (v4).

    Units, conversations, snapshots and attachments all draw their ids
    from here so the generation strategy can be changed in one place.
    """
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
