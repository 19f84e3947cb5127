"""The single pending edit/removal decision.

Lifecycle::

    Idle ──open──▶ Pending(unit_id, draft) ──apply(policy) / close──▶ Idle

Only one pending change exists at a time; a new one cannot be opened
until the current one is applied or explicitly closed.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ChangeAction(enum.StrEnum):
    edit = "edit"
    remove = "remove"


class ChangePolicy(enum.StrEnum):
    """What happens to the units after the changed one."""

    do_nothing = "do_nothing"
    trim = "trim"
    branch = "branch"


class RegenerationMode(enum.StrEnum):
    trim = "trim"
    branch = "branch"


@dataclass(frozen=True)
class PendingChange:
    action: ChangeAction
    conversation_id: str
    unit_id: str
    draft_content: str = ""


@dataclass(frozen=True)
class RegenerationRequest:
    """One-shot request for a fresh assistant reply after an edit.

    Consumed exactly once via :meth:`ConversationStore.take_regeneration_request`.
    """

    mode: RegenerationMode
    target_conversation_id: str
    edited_unit_id: str
