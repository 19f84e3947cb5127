from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class OpenAIModel(StrEnum):
    GPT_4O = "gpt-4o"
    GPT_4O_MINI = "gpt-4o-mini"
    O1_PREVIEW = "o1-preview"
    GPT_35_TURBO_16K = "gpt-3.5-turbo-16k"
    GPT_4_TURBO = "gpt-4-turbo"


class OpenAIEmbeddingModel(StrEnum):
    TEXT_EMBEDDING_3_SMALL = "text-embedding-3-small"
    TEXT_EMBEDDING_3_LARGE = "text-embedding-3-large"


@dataclass(frozen=True)
class ModelInfo:
    display_name: str
    context_window: int
    input_price_per_m: float
    output_price_per_m: float


MODEL_INFO: dict[str, ModelInfo] = {
    OpenAIModel.GPT_4O.value: ModelInfo("GPT-4o", 128_000, 2.5, 10.0),
    OpenAIModel.GPT_4O_MINI.value: ModelInfo("GPT-4o Mini", 128_000, 0.15, 0.6),
    OpenAIModel.O1_PREVIEW.value: ModelInfo("O1 Preview", 200_000, 15.0, 60.0),
    OpenAIModel.GPT_35_TURBO_16K.value: ModelInfo("GPT-3.5 Turbo 16k", 16_000, 3.0, 4.0),
    OpenAIModel.GPT_4_TURBO.value: ModelInfo("GPT-4 Turbo", 128_000, 10.0, 30.0),
}


def qualified_model_name(model: str, provider: str = "openai") -> str:
    """``gpt-4o`` → ``openai/gpt-4o``; already-qualified names pass through."""
    if "/" in model:
        return model
    return f"{provider}/{model}"
