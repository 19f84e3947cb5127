from __future__ import annotations

from collections.abc import Sequence

from live_context.assembly import assemble
from live_context.models import AttachmentChunk, ContextUnit, TokenTotals
from live_context.tokens.base import TokenCounter


def compute_token_totals(
    units: Sequence[ContextUnit],
    chunks: Sequence[AttachmentChunk],
    counter: TokenCounter,
    model: str,
) -> TokenTotals:
    """Re-derive token totals from a full re-assembly of *units*.

    Forget notices and system/note messages count toward ``total`` but
    not toward the user or assistant figures.  Attachment tokens use
    the per-chunk counts recorded at ingestion.
    """
    user = assistant = other = 0
    for message in assemble(units):
        n = counter.count(message["content"], model)
        if message["role"] == "user":
            user += n
        elif message["role"] == "assistant":
            assistant += n
        else:
            other += n

    attachments = sum(c.token_count for c in chunks)
    return TokenTotals(
        total=user + assistant + other + attachments,
        user=user,
        assistant=assistant,
        attachments=attachments,
    )
