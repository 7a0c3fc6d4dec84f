"""Tests for focus_group/models.py dataclasses."""

from datetime import timezone

from focus_group.models import (
    MODERATOR_ID,
    Concept,
    Participant,
    SessionPhase,
    SpeakingStyle,
    TranscriptEntry,
)


def test_concept_defaults():
    concept = Concept(title="Savital")
    assert concept.type == "product"
    assert concept.description == ""


def test_participant_starts_silent():
    p = Participant(id="participant_0", name="Rosa", archetype="AMA_CASA_TRADICIONAL",
                    score=4, speaking_style=SpeakingStyle.CONTRARIAN)
    assert p.is_speaking is False
    assert p.age is None


def test_transcript_entry_timestamp_is_utc():
    entry = TranscriptEntry(speaker_id=MODERATOR_ID, speaker_name="Moderador", text="Hola", topic="Introducción")
    assert entry.timestamp.tzinfo is timezone.utc
    assert entry.is_moderator


def test_transcript_entry_public_shape_hides_fallback_flag():
    entry = TranscriptEntry("participant_0", "Rosa", "Pues no sé.", "Precio", is_fallback=True)
    data = entry.to_dict()
    assert set(data) == {"speaker_id", "speaker_name", "text", "topic", "timestamp"}
    assert not entry.is_moderator


def test_enums_serialise_as_strings():
    assert SpeakingStyle.LEADER.value == "leader"
    assert SessionPhase.AWAITING_RESPONSES.value == "awaiting_responses"
