"""Participant roster: opinion-style classification and speaking order."""

import logging

from config.config_loader import ProfileConfig
from focus_group.models import Participant, PriorEvaluation, SpeakingStyle

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2

# archetype -> (style, score ceiling). A ceiling applies the override only
# when the prior score is strictly below it.
STYLE_OVERRIDES: dict[str, tuple[SpeakingStyle, float | None]] = {
    "COSTENA_EMPRENDEDORA": (SpeakingStyle.LEADER, None),
    "BOGOTANA_PROFESIONAL": (SpeakingStyle.CONTRARIAN, 7.0),
    "MADRE_MODERNA": (SpeakingStyle.NEUTRAL, None),
    "PAISA_TRADICIONAL": (SpeakingStyle.FOLLOWER, None),
}

SPEAKING_RANK: dict[SpeakingStyle, int] = {
    SpeakingStyle.LEADER: 1,
    SpeakingStyle.NEUTRAL: 2,
    SpeakingStyle.CONTRARIAN: 3,
    SpeakingStyle.FOLLOWER: 4,
}


class InsufficientParticipants(Exception):
    """Raised when a roster has fewer than two evaluations."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(
            f"A focus group needs at least {MIN_PARTICIPANTS} participants, got {count}"
        )


def classify_speaking_style(
    archetype: str,
    score: float,
    overrides: dict[str, tuple[SpeakingStyle, float | None]] = STYLE_OVERRIDES,
) -> SpeakingStyle:
    """Archetype overrides first, then score thresholds."""
    override = overrides.get(archetype)
    if override is not None:
        style, ceiling = override
        if ceiling is None or score < ceiling:
            return style

    if score >= 8:
        return SpeakingStyle.LEADER
    if score <= 5:
        return SpeakingStyle.CONTRARIAN
    return SpeakingStyle.NEUTRAL


def build_participants(
    evaluations: list[PriorEvaluation],
    profiles: dict[str, ProfileConfig] | None = None,
) -> list[Participant]:
    """Build the fixed roster, one participant per prior evaluation.

    Output keeps input order; see speaking_order() for the order of turns.

    Raises:
        InsufficientParticipants: fewer than two evaluations.
        ValueError: a score outside 0-10.
    """
    if len(evaluations) < MIN_PARTICIPANTS:
        raise InsufficientParticipants(len(evaluations))

    profiles = profiles or {}
    participants: list[Participant] = []
    for index, evaluation in enumerate(evaluations):
        if not 0 <= evaluation.score <= 10:
            raise ValueError(
                f"Score for {evaluation.display_name} must be within 0-10, got {evaluation.score}"
            )
        profile = profiles.get(evaluation.archetype, ProfileConfig())
        participants.append(
            Participant(
                id=f"participant_{index}",
                name=evaluation.display_name,
                archetype=evaluation.archetype,
                score=evaluation.score,
                speaking_style=classify_speaking_style(evaluation.archetype, evaluation.score),
                age=profile.age,
                location=profile.location,
                personality=profile.personality or "Personalidad equilibrada",
            )
        )

    logger.info("Focus group roster built with %d participants", len(participants))
    return participants


def speaking_order(participants: list[Participant]) -> list[Participant]:
    """Leader, neutral, contrarian, follower. sorted() is stable, so ties keep input order."""
    return sorted(participants, key=lambda p: SPEAKING_RANK[p.speaking_style])
