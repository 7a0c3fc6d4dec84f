"""Google Gemini backend via the google-genai SDK."""

import logging
import os
import time

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from focus_group.models import ModelResponse
from focus_group.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(
        self,
        prompt: str,
        round_number: int,
        archetype: str | None = None,
    ) -> ModelResponse:
        start = time.monotonic()
        try:
            response = await self._client.aio.models.generate_content(
                model=self._config.model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    max_output_tokens=self._config.max_tokens,
                ),
            )
        except genai_errors.APIError as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")

        latency = time.monotonic() - start
        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.debug("Gemini round %d (%s): %.2fs, %s tokens", round_number, archetype, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            round_number=round_number,
            content=response.text.strip(),
            latency_sec=latency,
            token_count=token_count,
        )
