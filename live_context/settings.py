from __future__ import annotations

from dataclasses import dataclass, field

from live_context.llm.models import (
    MODEL_INFO,
    ModelInfo,
    OpenAIEmbeddingModel,
    OpenAIModel,
)
from live_context.models import TokenTotals

DEFAULT_MODEL = OpenAIModel.GPT_4O.value
DEFAULT_EMBEDDING_MODEL = OpenAIEmbeddingModel.TEXT_EMBEDDING_3_SMALL.value


@dataclass
class Settings:
    """User-level settings shared by every conversation.

    The engine treats these as a read-only dependency: the selected
    model is read at evaluation time, never captured when work is
    scheduled.
    """

    model: str = DEFAULT_MODEL
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    custom_models: dict[str, ModelInfo] = field(default_factory=dict)

    def set_model(self, model_id: str) -> None:
        self.model = model_id

    def add_custom_model(self, model_id: str, info: ModelInfo) -> None:
        """Register a custom catalog entry and select it."""
        self.custom_models = {**self.custom_models, model_id: info}
        self.model = model_id

    def remove_custom_model(self, model_id: str) -> None:
        self.custom_models = {
            k: v for k, v in self.custom_models.items() if k != model_id
        }
        if self.model == model_id:
            self.model = DEFAULT_MODEL

    def all_models(self) -> dict[str, ModelInfo]:
        """Built-in catalog merged with (and overridden by) custom entries."""
        return {**MODEL_INFO, **self.custom_models}

    @property
    def model_info(self) -> ModelInfo | None:
        return self.all_models().get(self.model)


@dataclass(frozen=True)
class ContextUsage:
    """Share of the model's context window used, as percentages."""

    used: int
    capacity: int
    user_pct: float
    assistant_pct: float
    remaining_pct: float


def context_usage(totals: TokenTotals, capacity: int) -> ContextUsage:
    if capacity <= 0 or totals.total <= 0:
        return ContextUsage(totals.total, capacity, 0.0, 0.0, 100.0)
    user_pct = min(100.0, totals.user / capacity * 100)
    assistant_pct = min(100.0 - user_pct, totals.assistant / capacity * 100)
    remaining_pct = max(0.0, 100.0 - user_pct - assistant_pct)
    return ContextUsage(totals.total, capacity, user_pct, assistant_pct, remaining_pct)
