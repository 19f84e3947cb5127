from __future__ import annotations

from live_context.assembly import ChatMessage

SUMMARY_MODEL = "gpt-4o-mini"
SUMMARY_MAX_TOKENS = 400
SUMMARY_TARGET_WORDS = 180

SUMMARY_SYSTEM_PROMPT = (
    """\
You maintain a **continuation brief** for an ongoing conversation between \
a user and an AI assistant. The brief is read by someone (or a model) who \
must pick the conversation up cold, without scrolling back.

You are given a digest of the conversation: its metadata, any system \
instructions and notes, the pinned messages the user marked as important, \
and the most recent exchanges.

### Rules

- Lead with the user's current goal in one sentence.
- Then cover, as short bullet lists: decisions and facts established, \
open questions, and constraints the assistant must keep honouring.
- Pinned messages are authoritative. Never drop or contradict them.
- Only state what the digest supports. Do not fabricate.
- Be specific: names, numbers, file names, technologies.
- Stay under {{TARGET_WORDS}} words.
- Output only the brief, with no preamble or meta-commentary.
"""
)

EXAMPLE_SOURCE = """\
## Conversation
Title: Trip planning
Created: 2024-03-02T09:14:00+00:00
Last activity: 2024-03-02T09:31:00+00:00
Model: gpt-4o

## System & notes
- [System] You are a concise travel assistant.

## Pinned
- [User] Budget is 1500 EUR total, flights included.

## Recent conversation
- [User] I want 5 days in Portugal in May, mostly food and walking.
- [Assistant] Lisbon (3 days) plus Porto (2 days) works well by train. Flights from Berlin run ~180 EUR return.
- [User] Skip Porto, I'd rather do a day trip to Sintra. Where should I stay?"""

EXAMPLE_SUMMARY = """\
Goal: plan a 5-day, food-and-walking trip to Portugal in May.

Established:
- Budget 1500 EUR total including flights (pinned).
- Flying from Berlin, roughly 180 EUR return.
- All 5 days based in Lisbon; Porto dropped in favour of a Sintra day trip.

Open:
- Where to stay in Lisbon (the question awaiting an answer).

Constraints:
- Keep answers concise."""


def build_summary_messages(
    source_text: str, *, target_words: int = SUMMARY_TARGET_WORDS
) -> list[ChatMessage]:
    """System prompt, one worked example, then the real digest."""
    system = SUMMARY_SYSTEM_PROMPT.replace("{{TARGET_WORDS}}", str(target_words))
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": EXAMPLE_SOURCE},
        {"role": "assistant", "content": EXAMPLE_SUMMARY},
        {"role": "user", "content": source_text},
    ]
