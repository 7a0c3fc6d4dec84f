"""Tests for focus_group/session.py: the round loop and lifecycle controls."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from focus_group.models import MODERATOR_ID, ModelResponse, PriorEvaluation, SessionPhase
from focus_group.providers.base import ProviderError
from focus_group.registry import InsufficientParticipants
from focus_group.session import CLOSING_TOPIC, INTRO_TOPIC, InvalidTransition, create_session
from tests.conftest import MockProvider


class GatedProvider(MockProvider):
    """Blocks every call until `release` is set; `called` fires on the first call."""

    def __init__(self) -> None:
        super().__init__("gated", "Gated reply")
        self.called = asyncio.Event()
        self.release = asyncio.Event()
        self.generate = AsyncMock(side_effect=self._gated)

    async def _gated(self, prompt: str, round_number: int, archetype: str | None = None) -> ModelResponse:
        self.called.set()
        await self.release.wait()
        return await self._reply(prompt, round_number, archetype)


def _participant_entries(session):
    return [e for e in session.transcript if e.speaker_id != MODERATOR_ID]


def _topic_entries(session):
    return [
        e for e in session.transcript
        if e.speaker_id == MODERATOR_ID and e.topic not in (INTRO_TOPIC, CLOSING_TOPIC)
    ]


@pytest.fixture
def make_session(sample_concept, sample_evaluations, sample_app_config, seeded_rng):
    def _make(provider, evaluations=None, **kwargs):
        return create_session(
            concept=sample_concept,
            evaluations=evaluations if evaluations is not None else sample_evaluations,
            provider=provider,
            config=sample_app_config,
            rng=seeded_rng,
            pace=False,
            **kwargs,
        )
    return _make


async def test_two_topics_produce_expected_transcript(make_session, mock_provider):
    session = make_session(mock_provider)
    assert session.phase is SessionPhase.IDLE

    await session.start()

    assert session.phase is SessionPhase.ENDED
    transcript = session.transcript
    assert len(transcript) == 10
    assert transcript[0].topic == INTRO_TOPIC
    assert transcript[-1].topic == CLOSING_TOPIC
    assert len(_participant_entries(session)) == 6
    assert [e.text for e in _topic_entries(session)] == [
        "First reaction to Fruco Ahumada",
        "Price perception",
    ]
    assert session.round_index == 2


async def test_intro_mentions_concept(make_session, mock_provider):
    session = make_session(mock_provider)
    await session.start()
    assert "Fruco Ahumada" in session.transcript[0].text
    assert session.transcript[0].speaker_name == "Moderator"


async def test_participants_speak_in_style_order(make_session, mock_provider):
    evaluations = [
        PriorEvaluation(archetype="AMA_CASA_TRADICIONAL", score=3, display_name="Rosa"),
        PriorEvaluation(archetype="HOMBRE_MODERNO", score=6, display_name="Andrés"),
        PriorEvaluation(archetype="CALENA_MODERNA", score=9, display_name="Valeria"),
        PriorEvaluation(archetype="PAISA_TRADICIONAL", score=7, display_name="Luz Elena"),
    ]
    session = make_session(mock_provider, evaluations=evaluations)
    await session.start()

    names = [e.speaker_name for e in _participant_entries(session)]
    expected_round = ["Valeria", "Andrés", "Rosa", "Luz Elena"]
    assert names == expected_round * 2


async def test_order_is_stable_across_runs(make_session):
    first = make_session(MockProvider())
    second = make_session(MockProvider())
    await first.start()
    await second.start()
    assert [e.speaker_id for e in first.transcript] == [e.speaker_id for e in second.transcript]


async def test_failing_provider_still_fills_every_turn(make_session):
    provider = MockProvider("down")
    provider.generate = AsyncMock(side_effect=ProviderError("down", "503 Service Unavailable"))
    session = make_session(provider)

    await session.start()

    entries = _participant_entries(session)
    assert len(session.transcript) == 10
    assert len(entries) == 6
    assert all(e.is_fallback for e in entries)
    assert [e.speaker_name for e in entries] == ["Valeria", "Andrés", "Rosa"] * 2


async def test_prompt_quotes_previous_turn_in_same_round(make_session):
    provider = MockProvider()
    replies = iter(f"Reply {i}" for i in range(100))

    async def numbered(prompt, round_number, archetype=None):
        return ModelResponse("mock", "mock-model", round_number, next(replies), 0.1, 5)

    provider.generate = AsyncMock(side_effect=numbered)
    session = make_session(provider)
    await session.start()

    second_prompt = provider.generate.call_args_list[1].args[0]
    assert "Valeria: Reply 0" in second_prompt


async def test_pause_right_after_start_keeps_only_intro(make_session, mock_provider):
    session = make_session(mock_provider)
    task = session.start()
    session.pause()
    await task

    assert session.phase is SessionPhase.PAUSED
    assert [e.topic for e in session.transcript] == [INTRO_TOPIC]
    mock_provider.generate.assert_not_called()

    await session.resume()

    topics = _topic_entries(session)
    assert topics[0].text == "First reaction to Fruco Ahumada"
    assert len(_participant_entries(session)) == 6
    assert session.phase is SessionPhase.ENDED


async def test_pause_during_turn_lets_it_finish_then_stops(make_session):
    provider = GatedProvider()
    session = make_session(provider)
    task = session.start()

    await provider.called.wait()
    assert session.phase is SessionPhase.AWAITING_RESPONSES
    assert session.active_participant_id == "participant_0"
    assert session.participants[0].is_speaking is True

    session.pause()
    before = len(session.transcript)
    provider.release.set()
    await task

    assert session.phase is SessionPhase.PAUSED
    assert len(session.transcript) == before + 1
    assert session.transcript[-1].speaker_id == "participant_0"
    assert session.active_participant_id is None
    assert session.participants[0].is_speaking is False
    assert provider.generate.call_count == 1


async def test_resume_skips_rest_of_interrupted_round(make_session):
    provider = GatedProvider()
    session = make_session(provider)
    task = session.start()
    await provider.called.wait()
    session.pause()
    provider.release.set()
    await task

    await session.resume()

    assert [e.text for e in _topic_entries(session)] == [
        "First reaction to Fruco Ahumada",
        "Price perception",
    ]
    # one in-flight turn from round 1, a full round 2
    assert len(_participant_entries(session)) == 4
    assert len(session.transcript) == 8
    assert session.phase is SessionPhase.ENDED


async def test_resume_before_in_flight_turn_resolves_keeps_order(make_session):
    provider = GatedProvider()
    session = make_session(provider)
    session.start()
    await provider.called.wait()

    session.pause()
    resumed = session.resume()
    provider.release.set()
    await resumed

    transcript = session.transcript
    assert transcript[2].speaker_id == "participant_0"
    assert transcript[3].text == "Price perception"
    assert len(_participant_entries(session)) == 4


async def test_stop_discards_in_flight_turn(make_session):
    provider = GatedProvider()
    session = make_session(provider)
    task = session.start()
    await provider.called.wait()

    session.stop()
    assert session.phase is SessionPhase.ENDED
    closing_len = len(session.transcript)
    assert session.transcript[-1].topic == CLOSING_TOPIC

    provider.release.set()
    await task

    assert len(session.transcript) == closing_len
    assert _participant_entries(session) == []


async def test_stop_while_paused(make_session, mock_provider):
    session = make_session(mock_provider)
    task = session.start()
    session.pause()
    await task
    session.stop()
    assert session.phase is SessionPhase.ENDED
    assert [e.topic for e in session.transcript] == [INTRO_TOPIC, CLOSING_TOPIC]


async def test_ended_session_rejects_every_lifecycle_call(make_session, mock_provider):
    session = make_session(mock_provider)
    await session.start()
    length = len(session.transcript)

    with pytest.raises(InvalidTransition):
        session.start()
    with pytest.raises(InvalidTransition):
        session.pause()
    with pytest.raises(InvalidTransition):
        session.resume()
    with pytest.raises(InvalidTransition):
        session.stop()
    with pytest.raises(InvalidTransition):
        session.inject_question("One more?")

    assert len(session.transcript) == length
    assert session.phase is SessionPhase.ENDED


async def test_resume_while_running_is_rejected(make_session):
    provider = GatedProvider()
    session = make_session(provider)
    task = session.start()
    await provider.called.wait()

    with pytest.raises(InvalidTransition, match="resume"):
        session.resume()
    assert session.phase is SessionPhase.AWAITING_RESPONSES

    provider.release.set()
    await task
    assert session.phase is SessionPhase.ENDED


def test_pause_before_start_is_rejected(make_session, mock_provider):
    session = make_session(mock_provider)
    with pytest.raises(InvalidTransition):
        session.pause()
    assert session.phase is SessionPhase.IDLE
    assert session.transcript == ()


async def test_injected_question_runs_after_predefined_topics(make_session, mock_provider):
    holder = {}
    participant_entries = []

    def on_entry(entry):
        if entry.speaker_id != MODERATOR_ID:
            participant_entries.append(entry)
            if len(participant_entries) == 3:
                holder["session"].inject_question("¿Precio justo?")

    session = make_session(mock_provider, on_entry=on_entry)
    holder["session"] = session
    await session.start()

    assert [e.text for e in _topic_entries(session)] == [
        "First reaction to Fruco Ahumada",
        "Price perception",
        "¿Precio justo?",
    ]
    assert len(_participant_entries(session)) == 9
    assert session.transcript[-2].topic == "¿Precio justo?"


async def test_inject_while_idle_appends_to_tail(make_session, mock_provider):
    session = make_session(mock_provider)
    session.inject_question("What about the packaging?")
    await session.start()
    assert _topic_entries(session)[-1].text == "What about the packaging?"


def test_build_with_no_evaluations_creates_no_session(make_session, mock_provider):
    with pytest.raises(InsufficientParticipants):
        make_session(mock_provider, evaluations=[])


async def test_turn_delay_is_applied_between_participants(
    sample_concept, sample_evaluations, sample_app_config, mock_provider, monkeypatch
):
    sample_app_config.session.turn_delay_sec = 0.25
    sleeps = []
    real_sleep = asyncio.sleep

    async def fake_sleep(delay, *args, **kwargs):
        sleeps.append(delay)
        await real_sleep(0)

    monkeypatch.setattr("focus_group.session.asyncio.sleep", fake_sleep)
    session = create_session(sample_concept, sample_evaluations, mock_provider, sample_app_config, pace=True)
    await session.start()

    # two pauses per three-person round, no pause after the last speaker
    assert sleeps.count(0.25) == 4


async def test_export_is_json_serialisable(make_session, mock_provider):
    session = make_session(mock_provider)
    await session.start()

    export = session.export()
    decoded = json.loads(json.dumps(export))

    assert decoded["concept"]["title"] == "Fruco Ahumada"
    assert [p["speaking_style"] for p in decoded["participants"]] == ["leader", "neutral", "contrarian"]
    assert len(decoded["transcript"]) == 10
    assert decoded["topics_completed"] == ["First reaction to Fruco Ahumada", "Price perception"]
    assert decoded["total_rounds"] == 2
    assert "is_fallback" not in decoded["transcript"][0]


async def test_on_entry_sees_every_append(make_session, mock_provider):
    seen = []
    session = make_session(mock_provider, on_entry=seen.append)
    await session.start()
    assert tuple(seen) == session.transcript
