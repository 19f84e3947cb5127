from live_context.summary.prompt import build_summary_messages
from live_context.summary.source import (
    SUMMARY_SCHEMA_VERSION,
    SummarySource,
    build_summary_source,
)
from live_context.summary.summarizer import RefreshOutcome, Summarizer

__all__ = [
    "SUMMARY_SCHEMA_VERSION",
    "RefreshOutcome",
    "Summarizer",
    "SummarySource",
    "build_summary_messages",
    "build_summary_source",
]
