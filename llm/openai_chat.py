"""OpenAI-compatible chat completions judge provider."""

import httpx
from typing import Optional
from .base import LLMProvider, LLMRequest, LLMResponse
from core.config import EvaluationConfig
import logging

logger = logging.getLogger(__name__)


class ChatCompletionsProvider(LLMProvider):
    """Judge provider speaking the OpenAI ``/chat/completions`` dialect."""

    def __init__(self, config: EvaluationConfig, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self.base_url = config.backend_api_endpoint.rstrip("/")
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=config.timeout_seconds,
        )
        self.provider_name = "openai"

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate response using a chat completions API."""
        messages = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "stream": False
        }

        if request.stop_sequences:
            payload["stop"] = request.stop_sequences

        try:
            response = await self.client.post("/chat/completions", json=payload)
            response.raise_for_status()

            data = response.json()
            content = data["choices"][0]["message"]["content"] or ""
            usage = data.get("usage", {})

            return LLMResponse(
                content=content,
                provider=self.provider_name,
                model=self.model,
                usage={
                    "prompt_tokens": usage.get("prompt_tokens", 0),
                    "completion_tokens": usage.get("completion_tokens", 0),
                    "total_tokens": usage.get("total_tokens", 0)
                },
                metadata={
                    "finish_reason": data["choices"][0].get("finish_reason"),
                    "request_id": response.headers.get("x-request-id")
                }
            )

        except httpx.HTTPStatusError as e:
            error_msg = f"HTTP {e.response.status_code}: {e.response.text}"
            logger.error(f"Chat judge API error: {error_msg}")
            return self._error_response(error_msg, e.response.status_code)
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            error_msg = f"Chat judge provider error: {str(e)}"
            logger.error(error_msg)
            return self._error_response(error_msg)

    async def aclose(self) -> None:
        await self.client.aclose()
