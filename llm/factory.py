"""Factory for creating judge provider instances."""

from typing import Dict, List, Type
import logging

from core.config import EvaluationConfig
from core.errors import ConfigError
from .base import LLMProvider
from .backend import BackendJudgeProvider
from .openai_chat import ChatCompletionsProvider

logger = logging.getLogger(__name__)


class JudgeProviderFactory:
    """Factory for creating the judge provider named in the configuration.

        config = load_config()
        provider = JudgeProviderFactory.create(config)
    """

    PROVIDERS: Dict[str, Type[LLMProvider]] = {
        "backend": BackendJudgeProvider,
        "openai": ChatCompletionsProvider,
    }

    @classmethod
    def create(cls, config: EvaluationConfig) -> LLMProvider:
        """Create the configured judge provider."""
        provider_name = config.judge_provider
        if provider_name not in cls.PROVIDERS:
            available = ", ".join(cls.PROVIDERS.keys())
            raise ConfigError(f"Unknown judge provider: {provider_name}. Available: {available}")
        if not config.backend_api_endpoint:
            raise ConfigError("Judge endpoint is not configured. Set BACKEND_API_ENDPOINT.")

        provider = cls.PROVIDERS[provider_name](config)
        logger.debug(f"Created judge provider {provider.provider_name} ({provider.model})")
        return provider

    @classmethod
    def list_providers(cls) -> List[str]:
        return sorted(cls.PROVIDERS.keys())
