"""Focus group orchestration: round loop, pause/resume/stop, question injection."""

import asyncio
import logging
import random
from collections.abc import Callable
from dataclasses import asdict
from datetime import datetime, timezone

from config.config_loader import AppConfig, PromptsConfig
from focus_group.models import (
    MODERATOR_ID,
    Concept,
    Participant,
    PriorEvaluation,
    SessionPhase,
    TranscriptEntry,
)
from focus_group.providers.base import AIProvider
from focus_group.registry import build_participants, speaking_order
from focus_group.topics import TopicSequencer, predefined_topics
from focus_group.transcript import Transcript
from focus_group.turns import TurnGenerator

logger = logging.getLogger(__name__)

INTRO_TOPIC = "Introducción"
CLOSING_TOPIC = "Cierre"

_ACTIVE_PHASES = frozenset({SessionPhase.RUNNING, SessionPhase.AWAITING_RESPONSES})
_OPEN_PHASES = frozenset(SessionPhase) - {SessionPhase.ENDED}


class InvalidTransition(Exception):
    """Raised when a lifecycle call is not legal in the current phase."""

    def __init__(self, action: str, phase: SessionPhase) -> None:
        self.action = action
        self.phase = phase
        super().__init__(f"Cannot {action} a session that is {phase.value}")


class FocusGroupSession:
    """Drives a fixed panel through the topic sequence, one round per topic.

    Turns within a round run strictly in sequence because each prompt quotes
    the transcript so far. Every round loop carries a run token; a loop whose
    token is no longer current (after pause/resume or stop) never starts
    another turn or round.

    Pausing mid-round lets the in-flight turn finish and be appended, then
    marks the topic consumed: resume() continues with the next topic.
    """

    def __init__(
        self,
        concept: Concept,
        participants: list[Participant],
        topics: TopicSequencer,
        turn_generator: TurnGenerator,
        prompts: PromptsConfig,
        turn_delay_sec: float = 0.0,
        round_delay_sec: float = 0.0,
        on_entry: Callable[[TranscriptEntry], None] | None = None,
    ) -> None:
        ids = [p.id for p in participants]
        if len(set(ids)) != len(ids):
            raise ValueError("Participant ids must be unique")
        self._concept = concept
        self._participants = tuple(participants)
        self._topics = topics
        self._turns = turn_generator
        self._prompts = prompts
        self._turn_delay_sec = turn_delay_sec
        self._round_delay_sec = round_delay_sec
        self._on_entry = on_entry

        self._transcript = Transcript()
        self._phase = SessionPhase.IDLE
        self._round_index = 0
        self._active_participant_id: str | None = None
        self._current_topic: str | None = None
        self._run_id = 0
        self._task: asyncio.Task | None = None
        self._started_at: datetime | None = None

    # --- read-only observers ---

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def round_index(self) -> int:
        return self._round_index

    @property
    def active_participant_id(self) -> str | None:
        return self._active_participant_id

    @property
    def current_topic(self) -> str | None:
        return self._current_topic

    @property
    def participants(self) -> tuple[Participant, ...]:
        return self._participants

    @property
    def transcript(self) -> tuple[TranscriptEntry, ...]:
        return self._transcript.export()

    # --- lifecycle ---

    def start(self) -> asyncio.Task:
        """Open the session and schedule the round loop. Needs a running event loop."""
        self._require("start", {SessionPhase.IDLE})
        self._started_at = datetime.now(timezone.utc)
        self._post_moderator(self._prompts.intro.format(title=self._concept.title), INTRO_TOPIC)
        self._phase = SessionPhase.RUNNING
        logger.info("Focus group started: %s (%d participants)", self._concept.title, len(self._participants))
        return self._schedule()

    def pause(self) -> None:
        self._require("pause", _ACTIVE_PHASES)
        self._phase = SessionPhase.PAUSED
        logger.info("Focus group paused at round %d", self._round_index)

    def resume(self) -> asyncio.Task:
        self._require("resume", {SessionPhase.PAUSED})
        self._phase = SessionPhase.RUNNING
        logger.info("Focus group resumed")
        return self._schedule()

    def stop(self) -> None:
        self._require("stop", _OPEN_PHASES)
        logger.info("Focus group stopped by operator")
        self._end()

    def inject_question(self, text: str) -> None:
        """Queue an operator question as a future topic."""
        self._require("inject a question into", _OPEN_PHASES)
        self._topics.inject(text)

    async def wait(self) -> None:
        """Wait for the current round loop to return (paused or ended)."""
        if self._task is not None:
            await self._task

    # --- round loop ---

    def _require(self, action: str, allowed: set[SessionPhase] | frozenset[SessionPhase]) -> None:
        if self._phase not in allowed:
            raise InvalidTransition(action, self._phase)

    def _schedule(self) -> asyncio.Task:
        self._run_id += 1
        self._task = asyncio.create_task(self._run_rounds(self._run_id, self._task))
        return self._task

    def _is_current(self, run_id: int, phase: SessionPhase) -> bool:
        return run_id == self._run_id and self._phase is phase

    async def _run_rounds(self, run_id: int, previous: asyncio.Task | None) -> None:
        # A loop left over from before a pause may still be awaiting its
        # in-flight turn; let it append and exit first.
        if previous is not None and not previous.done():
            await asyncio.wait([previous])

        while self._is_current(run_id, SessionPhase.RUNNING):
            topic = self._topics.next()
            if topic is None:
                logger.info("All %d topics discussed", self._topics.cursor)
                self._end()
                return

            completed = await self._run_round(run_id, topic)
            if self._phase is SessionPhase.ENDED:
                return
            self._topics.advance()
            if not completed:
                return
            self._phase = SessionPhase.RUNNING

            if self._round_delay_sec > 0:
                await asyncio.sleep(self._round_delay_sec)

    async def _run_round(self, run_id: int, topic: str) -> bool:
        """Run one topic across the panel. Returns False if interrupted."""
        self._round_index += 1
        self._current_topic = topic
        self._post_moderator(topic, topic)
        self._phase = SessionPhase.AWAITING_RESPONSES
        logger.info("Round %d: %s", self._round_index, topic)

        ordered = speaking_order(list(self._participants))
        for position, participant in enumerate(ordered):
            if not self._is_current(run_id, SessionPhase.AWAITING_RESPONSES):
                logger.info("Round %d interrupted before %s", self._round_index, participant.name)
                return False

            self._active_participant_id = participant.id
            participant.is_speaking = True
            try:
                entry = await self._turns.generate_turn(
                    participant,
                    topic,
                    self._transcript.recent(self._turns.context_size),
                    position=position,
                    round_number=self._round_index,
                )
            finally:
                participant.is_speaking = False
                self._active_participant_id = None

            if self._phase is SessionPhase.ENDED:
                logger.info("Discarding turn for %s, session already ended", participant.name)
                return False
            self._append(entry)

            if self._turn_delay_sec > 0 and position < len(ordered) - 1:
                await asyncio.sleep(self._turn_delay_sec)

        return self._is_current(run_id, SessionPhase.AWAITING_RESPONSES)

    def _end(self) -> None:
        self._phase = SessionPhase.ENDED
        self._active_participant_id = None
        self._post_moderator(self._prompts.closing, CLOSING_TOPIC)

    def _post_moderator(self, text: str, topic: str) -> None:
        self._append(
            TranscriptEntry(
                speaker_id=MODERATOR_ID,
                speaker_name=self._prompts.moderator_name,
                text=text,
                topic=topic,
            )
        )

    def _append(self, entry: TranscriptEntry) -> None:
        self._transcript.append(entry)
        if self._on_entry is not None:
            self._on_entry(entry)

    # --- export ---

    def export(self) -> dict:
        """JSON-serialisable snapshot of the session."""
        entries = self._transcript.export()
        duration = 0.0
        if entries:
            duration = (datetime.now(timezone.utc) - entries[0].timestamp).total_seconds()
        return {
            "concept": asdict(self._concept),
            "participants": [
                {
                    "id": p.id,
                    "name": p.name,
                    "archetype": p.archetype,
                    "score": p.score,
                    "speaking_style": p.speaking_style.value,
                    "age": p.age,
                    "location": p.location,
                    "personality": p.personality,
                }
                for p in self._participants
            ],
            "transcript": [e.to_dict() for e in entries],
            "topics_completed": self._topics.completed(),
            "total_rounds": self._round_index,
            "session_date": (self._started_at or datetime.now(timezone.utc)).isoformat(),
            "session_duration_sec": round(duration, 3),
        }


def create_session(
    concept: Concept,
    evaluations: list[PriorEvaluation],
    provider: AIProvider,
    config: AppConfig,
    topic_limit: int | None = None,
    rng: random.Random | None = None,
    pace: bool = True,
    on_entry: Callable[[TranscriptEntry], None] | None = None,
) -> FocusGroupSession:
    """Wire roster, topics and turn generator from configuration.

    Raises:
        InsufficientParticipants: fewer than two evaluations; no session is built.
    """
    participants = build_participants(evaluations, config.profiles)
    session_cfg = config.session
    limit = topic_limit if topic_limit is not None else session_cfg.topic_limit
    topics = TopicSequencer(predefined_topics(concept, config.prompts.topics, limit))

    if rng is None:
        rng = random.Random(session_cfg.fallback_seed)
    turns = TurnGenerator(
        provider=provider,
        concept=concept,
        prompts=config.prompts,
        fallbacks=config.fallbacks,
        timeout_sec=session_cfg.turn_timeout_sec,
        context_size=session_cfg.context_size,
        rng=rng,
    )
    return FocusGroupSession(
        concept=concept,
        participants=participants,
        topics=topics,
        turn_generator=turns,
        prompts=config.prompts,
        turn_delay_sec=session_cfg.turn_delay_sec if pace else 0.0,
        round_delay_sec=session_cfg.round_delay_sec if pace else 0.0,
        on_entry=on_entry,
    )
