"""Persona chat backend: POST {base_url}/api/synthetic/chat.

The backend keeps its own persona profiles and retrieval context, so the
request carries the archetype next to the prompt. Response body:
{"response": "...", "confidence": 0.9}.
"""

import logging
import time

import httpx

from config.config_loader import ModelConfig
from focus_group.models import ModelResponse
from focus_group.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)

_CHAT_PATH = "/api/synthetic/chat"


class SyntheticChatProvider(AIProvider):
    def __init__(self, config: ModelConfig, client: httpx.AsyncClient | None = None) -> None:
        if not config.base_url:
            raise ProviderError(config.name, "base_url is required for the synthetic chat backend")
        self._config = config
        self._url = config.base_url.rstrip("/") + _CHAT_PATH
        self._client = client or httpx.AsyncClient(timeout=float(config.timeout_sec))

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _build_body(self, prompt: str, archetype: str | None) -> dict:
        return {
            "user_message": prompt,
            "archetype": archetype,
            "conversation_history": [],
            "creativity_level": 85,
            "language": "spanish",
        }

    async def generate(
        self,
        prompt: str,
        round_number: int,
        archetype: str | None = None,
    ) -> ModelResponse:
        start = time.monotonic()
        try:
            response = await self._client.post(self._url, json=self._build_body(prompt, archetype))
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                self._config.name,
                f"Backend error {exc.response.status_code}: {exc.response.text[:200]}",
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(self._config.name, f"Request failed: {exc}") from exc

        content = str(data.get("response") or "").strip()
        if not content:
            raise ProviderError(self._config.name, "Empty response content")

        latency = time.monotonic() - start
        logger.debug("Synthetic round %d (%s): %.2fs", round_number, archetype, latency)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            round_number=round_number,
            content=content,
            latency_sec=latency,
            token_count=None,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
