"""OpenAI chat-completions backend; also serves OpenAI-compatible endpoints via base_url."""

import logging
import os
import time

from openai import APIError, APITimeoutError, AsyncOpenAI

from config.config_loader import ModelConfig
from focus_group.models import ModelResponse
from focus_group.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


class OpenAIProvider(AIProvider):
    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=config.base_url,
            timeout=float(config.timeout_sec),
            max_retries=0,
        )

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
            response = await self._client.chat.completions.create(
                model=self._config.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self._config.max_tokens,
            )
        except APITimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except APIError as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        latency = time.monotonic() - start
        token_count = response.usage.total_tokens if response.usage else None

        logger.debug("OpenAI round %d (%s): %.2fs, %s tokens", round_number, archetype, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            round_number=round_number,
            content=choice.message.content.strip(),
            latency_sec=latency,
            token_count=token_count,
        )
