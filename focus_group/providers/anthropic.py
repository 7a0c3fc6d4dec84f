"""Anthropic Claude backend for participant turns."""

import logging
import os
import time

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from focus_group.models import ModelResponse
from focus_group.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


class AnthropicProvider(AIProvider):
    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(
            api_key=api_key,
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
            response = await self._client.messages.create(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic_sdk.APITimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except anthropic_sdk.APIError as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        text = "\n".join(b.text for b in response.content if b.type == "text").strip()
        if not text:
            raise ProviderError(self._config.name, "No text blocks in response")

        latency = time.monotonic() - start
        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.debug("Claude round %d (%s): %.2fs, %s tokens", round_number, archetype, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            round_number=round_number,
            content=text,
            latency_sec=latency,
            token_count=token_count,
        )
