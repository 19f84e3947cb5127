from live_context.tokens.base import (
    DEFAULT_MODEL,
    HeuristicTokenCounter,
    TokenCounter,
    heuristic_count,
)
from live_context.tokens.totals import compute_token_totals

__all__ = [
    "DEFAULT_MODEL",
    "HeuristicTokenCounter",
    "TokenCounter",
    "compute_token_totals",
    "heuristic_count",
]
