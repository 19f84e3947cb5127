"""Bounded textual digest of a conversation, plus its cache key.

The digest is what the summarization call sees.  Its cache key covers
only the inputs that decide whether a stored summary is still right,
so an unchanged key means the network call can be skipped.
"""

from __future__ import annotations

import hashlib
import json
import re
from dataclasses import dataclass

from live_context.assembly import sort_units
from live_context.models import ContextUnit, Conversation, UnitType
from live_context.tokens.base import DEFAULT_MODEL, TokenCounter

# Bump whenever the digest layout or the summary prompt changes shape;
# every stored summary then misses the cache on its next refresh.
SUMMARY_SCHEMA_VERSION = 3

SYSTEM_CHAR_CAP = 600
PINNED_CHAR_CAP = 800
USER_CHAR_CAP = 600
ASSISTANT_CHAR_CAP = 900
RECENT_TOKEN_BUDGET = 1800
MAX_SOURCE_CHARS = 12_000

_LABELS: dict[UnitType, str] = {
    UnitType.user: "User",
    UnitType.assistant: "Assistant",
    UnitType.system: "System",
    UnitType.note: "Note",
}

_CAPS: dict[UnitType, int] = {
    UnitType.user: USER_CHAR_CAP,
    UnitType.assistant: ASSISTANT_CHAR_CAP,
    UnitType.system: SYSTEM_CHAR_CAP,
    UnitType.note: SYSTEM_CHAR_CAP,
}

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class SummarySource:
    text: str
    cache_key: str
    has_content: bool
    system_count: int = 0
    pinned_count: int = 0
    recent_count: int = 0


def clip(text: str, limit: int) -> str:
    flat = _WHITESPACE.sub(" ", text).strip()
    if len(flat) <= limit:
        return flat
    return flat[: max(0, limit - 1)].rstrip() + "…"


def render_unit(unit: ContextUnit, cap: int | None = None) -> str:
    limit = cap if cap is not None else _CAPS[unit.type]
    return f"- [{_LABELS[unit.type]}] {clip(unit.content, limit)}"


def compute_cache_key(
    *,
    schema_version: int,
    visible_count: int,
    last_visible_timestamp: str | None,
    system_count: int,
    pinned_count: int,
    recent_count: int,
    title: str,
) -> str:
    payload = json.dumps(
        [
            schema_version,
            visible_count,
            last_visible_timestamp,
            system_count,
            pinned_count,
            recent_count,
            title,
        ],
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:32]


def _metadata_block(
    conv: Conversation, last_activity: str | None, model: str | None
) -> list[str]:
    lines = [
        "## Conversation",
        f"Title: {conv.title}",
        f"Created: {conv.created_at.isoformat()}",
        f"Last activity: {last_activity or 'none'}",
    ]
    if conv.parent_conversation_id:
        lineage = f"Branched from: {conv.parent_conversation_id}"
        if conv.forked_from_unit_id:
            lineage += f" at unit {conv.forked_from_unit_id}"
        lines.append(lineage)
    if model:
        lines.append(f"Model: {model}")
    return lines


def _recent_window(
    units: list[ContextUnit],
    counter: TokenCounter,
    token_model: str,
    budget: int,
) -> list[str]:
    window: list[str] = []
    used = 0
    for unit in reversed(units):
        line = render_unit(unit)
        cost = counter.count(line, token_model)
        if window and used + cost > budget:
            break
        window.append(line)
        used += cost
    window.reverse()
    return window


def build_summary_source(
    conv: Conversation,
    counter: TokenCounter,
    *,
    model: str | None = None,
    token_model: str = DEFAULT_MODEL,
    schema_version: int = SUMMARY_SCHEMA_VERSION,
    recent_token_budget: int = RECENT_TOKEN_BUDGET,
    max_chars: int = MAX_SOURCE_CHARS,
) -> SummarySource:
    """Digest the visible units of *conv*.

    Pinned units (of any type) are rendered verbatim in their own block;
    unpinned system and note units in another; unpinned user/assistant
    units fill a recent window, newest first, until the token budget runs
    out.  The joined text keeps its tail if it exceeds *max_chars*.
    """
    visible = [u for u in sort_units(conv.units) if not u.removed]
    pinned = [u for u in visible if u.pinned]
    system = [
        u
        for u in visible
        if not u.pinned and u.type in (UnitType.system, UnitType.note)
    ]
    remainder = [
        u
        for u in visible
        if not u.pinned and u.type in (UnitType.user, UnitType.assistant)
    ]

    recent = _recent_window(remainder, counter, token_model, recent_token_budget)
    last_activity = visible[-1].timestamp.isoformat() if visible else None

    blocks = ["\n".join(_metadata_block(conv, last_activity, model))]
    if system:
        blocks.append("\n".join(["## System & notes", *(render_unit(u) for u in system)]))
    if pinned:
        blocks.append(
            "\n".join(["## Pinned", *(render_unit(u, PINNED_CHAR_CAP) for u in pinned)])
        )
    if recent:
        blocks.append("\n".join(["## Recent conversation", *recent]))

    text = "\n\n".join(blocks)
    if len(text) > max_chars:
        text = "…" + text[-(max_chars - 1) :]

    cache_key = compute_cache_key(
        schema_version=schema_version,
        visible_count=len(visible),
        last_visible_timestamp=last_activity,
        system_count=len(system),
        pinned_count=len(pinned),
        recent_count=len(recent),
        title=conv.title,
    )
    return SummarySource(
        text=text,
        cache_key=cache_key,
        has_content=bool(system or pinned or remainder),
        system_count=len(system),
        pinned_count=len(pinned),
        recent_count=len(recent),
    )
