"""Pure dataclasses for the focus group engine. No logic, no deps."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

MODERATOR_ID = "moderator"


class SpeakingStyle(str, Enum):
    LEADER = "leader"
    FOLLOWER = "follower"
    CONTRARIAN = "contrarian"
    NEUTRAL = "neutral"


class SessionPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    AWAITING_RESPONSES = "awaiting_responses"
    PAUSED = "paused"
    ENDED = "ended"


@dataclass
class Concept:
    title: str
    description: str = ""
    type: str = "product"      # "product" or "campaign"
    category: str = ""
    target_audience: str = ""


@dataclass
class PriorEvaluation:
    archetype: str
    score: float               # 0-10 from the individual evaluation
    display_name: str


@dataclass
class Participant:
    id: str
    name: str
    archetype: str
    score: float
    speaking_style: SpeakingStyle
    age: int | None = None
    location: str = ""
    personality: str = ""
    is_speaking: bool = False


@dataclass
class ModelResponse:
    provider: str
    model: str
    round_number: int
    content: str
    latency_sec: float
    token_count: int | None


@dataclass(frozen=True)
class TranscriptEntry:
    speaker_id: str            # MODERATOR_ID or a participant id
    speaker_name: str
    text: str
    topic: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_fallback: bool = field(default=False, repr=False)

    @property
    def is_moderator(self) -> bool:
        return self.speaker_id == MODERATOR_ID

    def to_dict(self) -> dict:
        return {
            "speaker_id": self.speaker_id,
            "speaker_name": self.speaker_name,
            "text": self.text,
            "topic": self.topic,
            "timestamp": self.timestamp.isoformat(),
        }
