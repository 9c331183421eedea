"""Judge provider for the tutor backend's ``/ai/evaluate`` endpoint."""

import httpx
import json
from typing import Any, Optional
from .base import LLMProvider, LLMRequest, LLMResponse
from core.config import EvaluationConfig
import logging

logger = logging.getLogger(__name__)

# Keys the backend has used for the judge text, in lookup order
RESPONSE_KEYS = ("evaluation", "response", "content")


class BackendJudgeProvider(LLMProvider):
    """Posts rubric prompts to the backend AI judge (``POST /ai/evaluate``)."""

    def __init__(self, config: EvaluationConfig, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self.base_url = config.backend_api_endpoint.rstrip("/")
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=config.timeout_seconds,
        )
        self.provider_name = "backend"

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate an evaluation via the backend judge."""
        payload = {
            "prompt": request.prompt,
            "model": self.model,
            "temperature": request.temperature,
            "maxTokens": request.max_tokens,
            "systemPrompt": request.system_prompt,
        }

        try:
            response = await self.client.post("/ai/evaluate", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            error_msg = f"HTTP {e.response.status_code}: {e.response.text}"
            logger.error(f"Backend judge API error: {error_msg}")
            return self._error_response(error_msg, e.response.status_code)
        except httpx.TimeoutException:
            error_msg = f"Backend judge timed out after {self.config.timeout_seconds}s"
            logger.error(error_msg)
            return self._error_response(error_msg)
        except (httpx.HTTPError, ValueError) as e:
            error_msg = f"Backend judge provider error: {e}"
            logger.error(error_msg)
            return self._error_response(error_msg)

        content = self._extract_content(data)
        if content is None:
            return self._error_response("No evaluation response received from backend AI judge")

        return LLMResponse(
            content=content,
            provider=self.provider_name,
            model=self.model,
            metadata={
                "model_info": data.get("modelInfo", {}) if isinstance(data, dict) else {},
                "backend_error": data.get("error") if isinstance(data, dict) else None,
            },
        )

    @staticmethod
    def _extract_content(data: Any) -> Optional[str]:
        if not isinstance(data, dict):
            return None
        for key in RESPONSE_KEYS:
            value = data.get(key)
            if value is None or value == "":
                continue
            if isinstance(value, (dict, list)):
                return json.dumps(value)
            return str(value)
        return None

    async def aclose(self) -> None:
        await self.client.aclose()
