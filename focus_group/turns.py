"""Per-participant turn generation with canned fallback content."""

import asyncio
import logging
import random

from config.config_loader import PromptsConfig
from focus_group.models import Concept, Participant, TranscriptEntry
from focus_group.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_SIZE = 6
_DEFAULT_POOL = "default"


def _format_history(recent: list[TranscriptEntry]) -> str:
    return "\n".join(f"{e.speaker_name}: {e.text}" for e in recent)


class TurnGenerator:
    """Turns one (participant, topic) pair into exactly one transcript entry.

    Generation failures never escape: a provider error, timeout or empty
    reply is replaced by a line from the participant's fallback pool.
    """

    def __init__(
        self,
        provider: AIProvider,
        concept: Concept,
        prompts: PromptsConfig,
        fallbacks: dict[str, list[str]],
        timeout_sec: float | None = None,
        context_size: int = DEFAULT_CONTEXT_SIZE,
        rng: random.Random | None = None,
    ) -> None:
        if not fallbacks.get(_DEFAULT_POOL):
            raise ValueError(f"Fallback pools must include a non-empty '{_DEFAULT_POOL}' pool")
        self._provider = provider
        self._concept = concept
        self._prompts = prompts
        self._fallbacks = fallbacks
        self._timeout_sec = timeout_sec
        self.context_size = context_size
        self._rng = rng or random.Random()

    def build_prompt(
        self,
        participant: Participant,
        topic: str,
        recent: list[TranscriptEntry],
        position: int = 0,
    ) -> str:
        style = participant.speaking_style.value
        style_instruction = self._prompts.styles.get(style) or self._prompts.styles.get("neutral", "")
        return self._prompts.turn.format(
            concept_title=self._concept.title,
            concept_description=self._concept.description,
            name=participant.name,
            archetype=participant.archetype.replace("_", " "),
            age=participant.age if participant.age is not None else "-",
            location=participant.location or "-",
            score=f"{participant.score:g}",
            style=style,
            style_instruction=style_instruction,
            position_instruction=self._prompts.opener if position == 0 else self._prompts.reactor,
            history=_format_history(recent[-self.context_size:] if self.context_size > 0 else []),
            topic=topic,
        )

    def fallback_line(self, participant: Participant) -> str:
        pool = self._fallbacks.get(participant.archetype) or self._fallbacks[_DEFAULT_POOL]
        return self._rng.choice(pool)

    async def _call_provider(self, prompt: str, participant: Participant, round_number: int) -> str:
        call = self._provider.generate(prompt, round_number, archetype=participant.archetype)
        if self._timeout_sec:
            response = await asyncio.wait_for(call, timeout=self._timeout_sec)
        else:
            response = await call
        content = response.content.strip()
        if not content:
            raise ProviderError(self._provider.name(), "Empty response content")
        return content

    async def generate_turn(
        self,
        participant: Participant,
        topic: str,
        recent: list[TranscriptEntry],
        position: int = 0,
        round_number: int = 1,
    ) -> TranscriptEntry:
        """Generate one participant entry; the caller appends it."""
        prompt = self.build_prompt(participant, topic, recent, position)
        logger.debug("Prompt for %s:\n%s", participant.name, prompt)

        is_fallback = False
        try:
            text = await self._call_provider(prompt, participant, round_number)
        except TimeoutError:
            logger.warning(
                "Turn for %s timed out after %ss in round %d, using fallback",
                participant.name, self._timeout_sec, round_number,
            )
            text, is_fallback = self.fallback_line(participant), True
        except ProviderError as exc:
            logger.warning("Turn for %s failed in round %d: %s, using fallback", participant.name, round_number, exc)
            text, is_fallback = self.fallback_line(participant), True
        except Exception as exc:
            logger.warning(
                "Unexpected failure for %s in round %d: %s, using fallback",
                participant.name, round_number, exc,
            )
            text, is_fallback = self.fallback_line(participant), True

        return TranscriptEntry(
            speaker_id=participant.id,
            speaker_name=participant.name,
            text=text,
            topic=topic,
            is_fallback=is_fallback,
        )
