"""Tests for a full coach turn: history, prompt, completion and staging."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from models.chat_message import Origin
from services.coach.chat_session import CoachSession, ReplyStatus
from services.coach.completion import CoachCompletionClient
from services.coach.config import CoachConfig
from services.coach.prompts import WELCOME_MESSAGE
from services.coach.session_store import CoachSessionStore
from services.errors import MalformedResponseError, UpstreamError


def _session(config: CoachConfig, raw: str = "", side_effect=None) -> CoachSession:
    completion = MagicMock(spec=CoachCompletionClient)
    completion.configured = True
    completion.complete = AsyncMock(return_value=raw, side_effect=side_effect)
    return CoachSession(config, completion)


@pytest.mark.asyncio
async def test_end_to_end_turn(coach_config):
    session = _session(coach_config, "Try a sulfate-free shampoo twice a week. It keeps your scalp balanced.")
    session.seed_welcome()

    reply = await session.send_message("What shampoo should I use?")
    assert reply.status is ReplyStatus.OK
    assert len(session.history) == 2

    bubbles = await reply.delivery.collect()

    assert [b.text for b in bubbles] == [
        "Try a sulfate-free shampoo twice a week.",
        "It keeps your scalp balanced.",
    ]
    texts = [m.text for m in session.messages]
    assert texts == [
        WELCOME_MESSAGE,
        "What shampoo should I use?",
        "Try a sulfate-free shampoo twice a week.",
        "It keeps your scalp balanced.",
    ]
    assert [m.origin for m in session.messages] == [Origin.ASSISTANT, Origin.USER, Origin.ASSISTANT, Origin.ASSISTANT]


@pytest.mark.asyncio
async def test_prompt_context_includes_current_utterance(coach_config):
    session = _session(coach_config, "Sure.")
    session.seed_welcome()
    await session.send_message("Hi")

    prompt = session.completion.complete.call_args.args[0]
    assert prompt.endswith(
        f"Recent conversation context:\nAssistant: {WELCOME_MESSAGE}\nUser: Hi\n\nUser: Hi\nAssistant:"
    )


@pytest.mark.asyncio
async def test_context_window_is_bounded(tmp_path):
    config = CoachConfig(api_key="k", bubble_delay_ms=0, context_window=2, database_dir=tmp_path)
    session = _session(config, "Ok.")
    for text in ("one", "two", "three"):
        reply = await session.send_message(text)
        await reply.delivery.collect()

    await session.send_message("four")
    prompt = session.completion.complete.call_args.args[0]
    assert prompt.endswith("Recent conversation context:\nAssistant: Ok.\nUser: four\n\nUser: four\nAssistant:")
    assert "User: three" not in prompt


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, status",
    [
        (UpstreamError("boom"), ReplyStatus.UPSTREAM_ERROR),
        (MalformedResponseError("bad payload"), ReplyStatus.MALFORMED_RESPONSE),
    ],
)
async def test_failed_completion_only_appends_user_message(coach_config, error, status):
    session = _session(coach_config, side_effect=error)
    session.seed_welcome()
    before = len(session.history)

    reply = await session.send_message("Help?")

    assert reply.status is status
    assert reply.delivery is None
    assert reply.notice == "Sorry, I encountered an error. Please try again."
    assert len(session.history) == before + 1
    assert session.history.last().origin is Origin.USER


@pytest.mark.asyncio
async def test_unconfigured_session_reports_typed_result(tmp_path):
    config = CoachConfig(api_key=None, database_dir=tmp_path)
    session = _session(config, "never used")

    reply = await session.send_message("Hi")

    assert reply.status is ReplyStatus.UNCONFIGURED
    assert "OPENAI_API_KEY" in reply.notice
    assert len(session.history) == 0
    session.completion.complete.assert_not_called()


@pytest.mark.asyncio
async def test_blank_message_rejected(coach_config):
    session = _session(coach_config, "x")
    with pytest.raises(ValueError):
        await session.send_message("   ")


@pytest.mark.asyncio
async def test_capacity_enforced_across_turns(tmp_path):
    config = CoachConfig(api_key="k", bubble_delay_ms=0, max_history=10, database_dir=tmp_path)
    session = _session(config, "First. Second. Third.")
    for i in range(5):
        reply = await session.send_message(f"question {i}")
        await reply.delivery.collect()

    assert len(session.history) == 10
    assert session.messages[-1].text == "Third."
    assert session.messages[-4].text == "question 4"


@pytest.mark.asyncio
async def test_empty_completion_is_a_valid_empty_delivery(coach_config):
    session = _session(coach_config, "   ")
    reply = await session.send_message("Anything?")
    assert reply.ok
    assert await reply.delivery.collect() == []
    assert len(session.history) == 1


def test_store_creates_and_finds_sessions(coach_config, completion_client):
    store = CoachSessionStore(coach_config, completion_client)
    session = store.create()
    assert store.get(session.session_id) is session
    assert [m.text for m in session.messages] == [WELCOME_MESSAGE]
    assert session.seed_welcome() is None
    store.delete(session.session_id)
    with pytest.raises(KeyError):
        store.get(session.session_id)
