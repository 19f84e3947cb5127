"""Turns a conversation's unit list into the ordered chat API payload.

Removed units that were retracted before the user's latest turn are
turned into "forget" directives placed ahead of all real content; the
model otherwise has no way to know that a fact it saw earlier was
withdrawn.  Removals at or after the latest user turn need no notice
because they never entered that turn's visible context.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Literal, TypedDict

from live_context.models import AttachmentChunk, ContextUnit, UnitType

Role = Literal["system", "user", "assistant"]


class ChatMessage(TypedDict):
    role: Role
    content: str


_ROLE_BY_TYPE: dict[UnitType, Role] = {
    UnitType.user: "user",
    UnitType.assistant: "assistant",
    UnitType.system: "system",
    UnitType.note: "system",
}


def forget_notice(content: str) -> ChatMessage:
    return {
        "role": "system",
        "content": (
            f"Note: Forget any earlier mention of '{content}'. "
            "It is incorrect or irrelevant."
        ),
    }


def sort_units(units: Iterable[ContextUnit]) -> list[ContextUnit]:
    """Chronological order; ``sorted`` is stable so ties keep their order."""
    return sorted(units, key=lambda u: u.timestamp)


def assemble(
    units: Sequence[ContextUnit],
    cut_unit_id: str | None = None,
) -> list[ChatMessage]:
    """Build the ordered message list for *units*.

    When *cut_unit_id* is given the sorted list is sliced to end at the
    first unit with that id (inclusive); an unknown id falls back to the
    whole list.  An empty slice yields an empty list, in which case the
    caller must not call the completion API.
    """
    ordered = sort_units(units)

    if cut_unit_id is not None:
        for i, unit in enumerate(ordered):
            if unit.id == cut_unit_id:
                ordered = ordered[: i + 1]
                break

    if not ordered:
        return []

    last_user: ContextUnit | None = None
    for unit in ordered:
        if unit.type == UnitType.user:
            last_user = unit

    forget: list[ChatMessage] = []
    if last_user is not None:
        forget = [
            forget_notice(u.content)
            for u in ordered
            if u.removed and u.timestamp < last_user.timestamp
        ]

    main: list[ChatMessage] = [
        {"role": _ROLE_BY_TYPE[u.type], "content": u.content}
        for u in ordered
        if not u.removed
    ]

    return forget + main


def attachment_messages(
    chunks: Sequence[AttachmentChunk],
    names: dict[str, str] | None = None,
) -> list[ChatMessage]:
    """One system message per selected attachment chunk, in the given order."""
    names = names or {}
    counts: dict[str, int] = {}
    for chunk in chunks:
        counts[chunk.attachment_id] = counts.get(chunk.attachment_id, 0) + 1

    messages: list[ChatMessage] = []
    for chunk in chunks:
        name = names.get(chunk.attachment_id, chunk.attachment_id)
        header = (
            f"Attachment '{name}' "
            f"(part {chunk.index + 1}/{counts[chunk.attachment_id]}):"
        )
        messages.append({"role": "system", "content": f"{header}\n{chunk.text}"})
    return messages
