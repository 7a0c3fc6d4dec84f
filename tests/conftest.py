"""Shared pytest fixtures."""

import random
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AppConfig,
    DefaultsConfig,
    ModelConfig,
    ProfileConfig,
    PromptsConfig,
    SessionConfig,
)
from focus_group.models import Concept, ModelResponse, PriorEvaluation
from focus_group.providers.base import AIProvider


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        turn=(
            "Concept: {concept_title}\n{concept_description}\n"
            "You are {name} ({archetype}), {age}, {location}. Score {score}/10. Style {style}.\n"
            "History:\n{history}\n"
            "Topic: {topic}\n{position_instruction}\n{style_instruction}"
        ),
        styles={
            "leader": "Take the initiative",
            "follower": "Build on what others said",
            "contrarian": "Present a differing view",
            "neutral": "Stay balanced",
        },
        opener="You speak first",
        reactor="React to the others",
        moderator_name="Moderator",
        intro="Welcome, today we discuss {title}.",
        closing="Thank you all.",
        topics=["First reaction to {title}", "Price perception", "Would you buy {title}?"],
    )


@pytest.fixture
def sample_fallbacks() -> dict[str, list[str]]:
    return {
        "COSTENA_EMPRENDEDORA": ["Costeña fallback A", "Costeña fallback B"],
        "default": ["Generic fallback A", "Generic fallback B", "Generic fallback C"],
    }


@pytest.fixture
def sample_app_config(
    tmp_path: Path,
    sample_prompts_config: PromptsConfig,
    sample_fallbacks: dict[str, list[str]],
) -> AppConfig:
    model_cfg = ModelConfig(
        name="claude",
        sdk="anthropic",
        model="claude-sonnet-4-5",
        api_key_env="ANTHROPIC_API_KEY",
        timeout_sec=60,
        max_tokens=300,
    )
    return AppConfig(
        defaults=DefaultsConfig(provider="claude", output_dir=tmp_path / "output"),
        session=SessionConfig(context_size=6, topic_limit=2, turn_timeout_sec=5.0),
        models={"claude": model_cfg},
        prompts=sample_prompts_config,
        profiles={"PAISA_TRADICIONAL": ProfileConfig(age=45, location="Medellín", personality="Tradicional")},
        fallbacks=sample_fallbacks,
        available_providers={"claude"},
    )


@pytest.fixture
def sample_concept() -> Concept:
    return Concept(
        title="Fruco Ahumada",
        description="Tomato sauce with a natural smoked flavour.",
        category="Sauces",
    )


@pytest.fixture
def sample_evaluations() -> list[PriorEvaluation]:
    """Archetypes without overrides, so styles follow the score thresholds."""
    return [
        PriorEvaluation(archetype="CALENA_MODERNA", score=9, display_name="Valeria"),
        PriorEvaluation(archetype="HOMBRE_MODERNO", score=6, display_name="Andrés"),
        PriorEvaluation(archetype="AMA_CASA_TRADICIONAL", score=3, display_name="Rosa"),
    ]


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(7)


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(side_effect=self._reply)  # type: ignore[assignment]

    async def _reply(self, prompt: str, round_number: int, archetype: str | None = None) -> ModelResponse:
        return ModelResponse(
            provider=self._name,
            model="mock-model",
            round_number=round_number,
            content=self._response_content,
            latency_sec=0.1,
            token_count=10,
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(  # type: ignore[override]
        self, prompt: str, round_number: int, archetype: str | None = None
    ) -> ModelResponse:
        """Default implementation; replaced by AsyncMock in __init__."""
        return await self._reply(prompt, round_number, archetype)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()
