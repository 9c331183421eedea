"""Abstract base classes for judge model providers."""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List
from pydantic import BaseModel
import asyncio
import logging

from core.config import EvaluationConfig

logger = logging.getLogger(__name__)


class LLMRequest(BaseModel):
    """Standardized request format for all judge providers."""
    prompt: str
    system_prompt: Optional[str] = None
    temperature: float = 0.1
    max_tokens: int = 1000
    stop_sequences: Optional[List[str]] = None
    metadata: Dict[str, Any] = {}


class LLMResponse(BaseModel):
    """Standardized response format for all judge providers."""
    content: str
    provider: str
    model: str
    usage: Dict[str, int] = {}
    metadata: Dict[str, Any] = {}
    error: Optional[str] = None
    status_code: Optional[int] = None


class LLMProvider(ABC):
    """Abstract base class for judge providers.

    Providers never raise on transport or HTTP failures; they report them in
    ``LLMResponse.error`` so callers can decide how to degrade.
    """

    def __init__(self, config: EvaluationConfig):
        self.config = config
        self.provider_name = self.__class__.__name__.replace("Provider", "").lower()
        self.model = config.judge_model
        self.api_key = config.judge_api_key

    @abstractmethod
    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate a response from the judge model."""
        pass

    async def generate_with_retry(
        self,
        request: LLMRequest,
        max_retries: int = 0,
        retry_delay: float = 1.0
    ) -> LLMResponse:
        """Generate a response, retrying only when ``max_retries`` > 0."""
        last_error = None
        last_status = None

        for attempt in range(max_retries + 1):
            try:
                response = await self.generate(request)
                if response.error is None:
                    return response
                last_error = response.error
                last_status = response.status_code
                if max_retries:
                    logger.warning(f"Attempt {attempt + 1} failed: {last_error}")
            except Exception as e:
                last_error = str(e)
                last_status = None
                logger.warning(f"Attempt {attempt + 1} failed: {last_error}")

            if attempt < max_retries:
                await asyncio.sleep(retry_delay * (2 ** attempt))

        if max_retries == 0:
            message = last_error
        else:
            message = f"Failed after {max_retries + 1} attempts. Last error: {last_error}"
        return LLMResponse(
            content="",
            provider=self.provider_name,
            model=self.model,
            error=message,
            status_code=last_status,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _error_response(self, message: str, status_code: Optional[int] = None) -> LLMResponse:
        return LLMResponse(
            content="",
            provider=self.provider_name,
            model=self.model,
            error=message,
            status_code=status_code,
        )

    async def aclose(self) -> None:
        """Release any network resources held by the provider."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
