"""Load settings.yaml into typed dataclasses. Checks API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class PromptsConfig:
    turn: str
    styles: dict[str, str]
    opener: str
    reactor: str
    moderator_name: str
    intro: str
    closing: str
    topics: list[str] = field(default_factory=list)


@dataclass
class SessionConfig:
    context_size: int = 6
    topic_limit: int = 5
    turn_timeout_sec: float = 45.0
    turn_delay_sec: float = 0.0
    round_delay_sec: float = 0.0
    fallback_seed: int | None = None


@dataclass
class ProfileConfig:
    age: int | None = None
    location: str = ""
    personality: str = ""


@dataclass
class DefaultsConfig:
    provider: str
    output_dir: Path


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    session: SessionConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    profiles: dict[str, ProfileConfig] = field(default_factory=dict)
    fallbacks: dict[str, list[str]] = field(default_factory=dict)
    available_providers: set[str] = field(default_factory=set)


def _load_session(raw: dict | None) -> SessionConfig:
    raw = raw or {}
    seed = raw.get("fallback_seed")
    return SessionConfig(
        context_size=int(raw.get("context_size", 6)),
        topic_limit=int(raw.get("topic_limit", 5)),
        turn_timeout_sec=float(raw.get("turn_timeout_sec", 45.0)),
        turn_delay_sec=float(raw.get("turn_delay_sec", 0.0)),
        round_delay_sec=float(raw.get("round_delay_sec", 0.0)),
        fallback_seed=int(seed) if seed is not None else None,
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs providers without API keys but does not raise; callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        provider=str(defaults_raw["provider"]),
        output_dir=Path(defaults_raw["output_dir"]),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        turn=prompts_raw["turn"],
        styles={k: str(v) for k, v in prompts_raw["styles"].items()},
        opener=prompts_raw["opener"],
        reactor=prompts_raw["reactor"],
        moderator_name=prompts_raw.get("moderator_name", "Moderador"),
        intro=prompts_raw["intro"],
        closing=prompts_raw["closing"],
        topics=[str(t) for t in raw.get("topics", [])],
    )

    profiles = {
        archetype: ProfileConfig(
            age=profile.get("age"),
            location=profile.get("location", ""),
            personality=profile.get("personality", ""),
        )
        for archetype, profile in (raw.get("profiles") or {}).items()
    }
    fallbacks = {
        archetype: [str(line) for line in lines]
        for archetype, lines in (raw.get("fallbacks") or {}).items()
    }

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw.get("api_key_env", ""),
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        # Keyless backends (the synthetic persona API) are always available
        if not model_cfg.api_key_env:
            available_providers.add(provider_name)
            continue
        api_key = os.environ.get(model_cfg.api_key_env, "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s, set %s in .env",
                provider_name,
                model_cfg.api_key_env,
            )

    return AppConfig(
        defaults=defaults,
        session=_load_session(raw.get("session")),
        models=models,
        prompts=prompts,
        profiles=profiles,
        fallbacks=fallbacks,
        available_providers=available_providers,
    )
