from live_context.llm.base import ERROR_REPLY, BaseLLMClient
from live_context.llm.litellm import LiteLLMClient
from live_context.llm.models import (
    MODEL_INFO,
    ModelInfo,
    OpenAIEmbeddingModel,
    OpenAIModel,
)

__all__ = [
    "ERROR_REPLY",
    "MODEL_INFO",
    "BaseLLMClient",
    "LiteLLMClient",
    "ModelInfo",
    "OpenAIEmbeddingModel",
    "OpenAIModel",
]
