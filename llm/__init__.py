"""Judge model provider adapters."""

from .base import LLMProvider, LLMRequest, LLMResponse
from .backend import BackendJudgeProvider
from .openai_chat import ChatCompletionsProvider
from .factory import JudgeProviderFactory

__all__ = [
    "LLMProvider",
    "LLMRequest",
    "LLMResponse",
    "BackendJudgeProvider",
    "ChatCompletionsProvider",
    "JudgeProviderFactory",
]
