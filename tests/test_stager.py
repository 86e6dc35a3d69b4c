"""Tests for staged, paced delivery of assistant bubbles."""

import asyncio

import pytest

from models.chat_message import Message, Origin
from services.coach.history import ConversationHistory
from services.coach.stager import ResponseStager

REPLY = "Try a sulfate-free shampoo twice a week. It keeps your scalp balanced."


@pytest.mark.asyncio
async def test_stage_delivers_units_in_order_and_appends_them():
    history = ConversationHistory()
    history.append(Message.assistant("Welcome!"))
    history.append(Message.user("What shampoo should I use?"))
    stager = ResponseStager(history, delay_ms=0)

    delivered = await stager.stage(REPLY).collect()

    assert [m.text for m in delivered] == [
        "Try a sulfate-free shampoo twice a week.",
        "It keeps your scalp balanced.",
    ]
    assert all(m.origin is Origin.ASSISTANT for m in delivered)
    assert len(history) == 4
    assert list(history)[-2:] == delivered


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["", "   ", "\n\n"])
async def test_empty_completion_yields_nothing(raw):
    history = ConversationHistory()
    delivery = ResponseStager(history, delay_ms=0).stage(raw)
    assert await delivery.collect() == []
    assert delivery.finished
    assert len(history) == 0


@pytest.mark.asyncio
async def test_pacing_waits_between_units_but_not_after_last():
    history = ConversationHistory()
    delivery = ResponseStager(history, delay_ms=50).stage("One. Two. Three.")
    loop = asyncio.get_running_loop()

    stamps = []
    start = loop.time()
    async for _ in delivery:
        stamps.append(loop.time() - start)
    finished_at = loop.time() - start

    assert len(stamps) == 3
    assert stamps[0] < 0.04
    assert stamps[1] - stamps[0] >= 0.04
    assert stamps[2] - stamps[1] >= 0.04
    assert finished_at - stamps[2] < 0.04


@pytest.mark.asyncio
async def test_cancel_stops_delivery_immediately_and_keeps_delivered():
    history = ConversationHistory()
    delivery = ResponseStager(history, delay_ms=5000).stage("One. Two. Three.")

    first = await delivery.__anext__()
    asyncio.get_running_loop().call_later(0.01, delivery.cancel)

    with pytest.raises(StopAsyncIteration):
        await asyncio.wait_for(delivery.__anext__(), timeout=1.0)

    assert delivery.cancelled
    assert delivery.finished
    assert delivery.delivered == [first]
    assert list(history) == [first]
    assert delivery.total == 3


@pytest.mark.asyncio
async def test_history_trimmed_once_after_whole_batch():
    history = ConversationHistory(capacity=3)
    history.append(Message.user("old one"))
    history.append(Message.user("old two"))
    delivery = ResponseStager(history, delay_ms=0).stage("A. B. C.")

    lengths = []
    async for _ in delivery:
        lengths.append(len(history))

    assert lengths == [3, 4, 3]
    assert [m.text for m in history] == ["A.", "B.", "C."]


@pytest.mark.asyncio
async def test_cancel_before_iteration_trims_and_delivers_nothing():
    history = ConversationHistory(capacity=2)
    for i in range(4):
        history.append(Message.user(f"m{i}"))
    delivery = ResponseStager(history, delay_ms=0).stage("A. B.")
    delivery.cancel()

    assert await delivery.collect() == []
    assert [m.text for m in history] == ["m2", "m3"]


def test_segment_has_no_side_effects():
    history = ConversationHistory()
    stager = ResponseStager(history)
    assert stager.segment("**Hi** there. 2 tips") == ["Hi there.", "2 tips."]
    assert len(history) == 0


@pytest.mark.asyncio
async def test_joined_text_matches_delivered_units():
    history = ConversationHistory()
    delivery = ResponseStager(history, delay_ms=0).stage("Short. Sweet")
    await delivery.collect()
    assert delivery.joined_text() == "Short. \nSweet."
