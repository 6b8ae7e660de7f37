import datetime
from types import SimpleNamespace

import pytest

from conftest import BOT_USER, OTHER_USER, FakeChannel, FakeMessage
from streamcord.restart.restart_correlator import (
    CorrelationOutcome,
    CorrelationState,
    find_restart_message,
    interaction_name,
)

T0 = datetime.datetime(2024, 5, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)


def restart_response(message_id: int = 10) -> FakeMessage:
    return FakeMessage(message_id, interaction=SimpleNamespace(name="forcerestart"), created_at=T0)


def reply_to(message_id: int, target: FakeMessage, *, resolved: bool = True) -> FakeMessage:
    reference = SimpleNamespace(message_id=target.id, resolved=target if resolved else None)
    return FakeMessage(message_id, reference=reference, created_at=T0 + datetime.timedelta(seconds=30))


def clock(seconds: float):
    return lambda: T0 + datetime.timedelta(seconds=seconds)


@pytest.mark.asyncio
async def test_pending_restart_gets_a_completion_reply() -> None:
    restart = restart_response()
    unrelated = FakeMessage(11, interaction=SimpleNamespace(name="stream"))
    channel = FakeChannel([unrelated, restart])

    result = await find_restart_message(channel, BOT_USER, now=clock(12.5))

    assert result.state is CorrelationState.DONE
    assert result.outcome is CorrelationOutcome.NEEDS_REPLY
    assert result.elapsed_seconds == pytest.approx(12.5)
    restart.reply.assert_awaited_once()
    embed = restart.reply.await_args.kwargs["embed"]
    assert embed.description == "Restart complete! Took 12.50 seconds."


@pytest.mark.asyncio
async def test_second_run_finds_the_restart_already_replied() -> None:
    restart = restart_response()
    completion = reply_to(12, restart)
    channel = FakeChannel([completion, restart])

    result = await find_restart_message(channel, BOT_USER, now=clock(60))

    assert result.outcome is CorrelationOutcome.ALREADY_REPLIED
    assert result.restart_message is completion
    restart.reply.assert_not_awaited()
    completion.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_unresolved_reference_is_fetched_from_the_channel() -> None:
    restart = restart_response()
    completion = reply_to(12, restart, resolved=False)
    channel = FakeChannel([completion, restart])

    result = await find_restart_message(channel, BOT_USER)

    assert result.outcome is CorrelationOutcome.ALREADY_REPLIED
    restart.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_reply_to_a_missing_message_is_examined_directly() -> None:
    ghost = FakeMessage(1)
    dangling = reply_to(12, ghost, resolved=False)
    restart = restart_response()
    channel = FakeChannel([dangling, restart])

    result = await find_restart_message(channel, BOT_USER, now=clock(3))

    assert result.outcome is CorrelationOutcome.NEEDS_REPLY
    restart.reply.assert_awaited_once()


@pytest.mark.asyncio
async def test_restart_response_replying_to_a_deleted_message_still_matches() -> None:
    ghost = FakeMessage(1)
    restart = FakeMessage(
        10,
        interaction=SimpleNamespace(name="forcerestart"),
        reference=SimpleNamespace(message_id=ghost.id, resolved=None),
        created_at=T0,
    )
    channel = FakeChannel([restart])

    result = await find_restart_message(channel, BOT_USER, now=clock(4))

    assert result.outcome is CorrelationOutcome.NEEDS_REPLY
    assert result.restart_message is restart
    restart.reply.assert_awaited_once()


@pytest.mark.asyncio
async def test_messages_from_other_users_are_ignored() -> None:
    foreign = FakeMessage(20, author=OTHER_USER, interaction=SimpleNamespace(name="forcerestart"))
    channel = FakeChannel([foreign])

    result = await find_restart_message(channel, BOT_USER)

    assert result.outcome is CorrelationOutcome.NOT_FOUND
    assert result.state is CorrelationState.DONE
    foreign.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_nothing_found_posts_nothing() -> None:
    messages = [FakeMessage(i) for i in range(1, 5)]
    channel = FakeChannel(messages)

    result = await find_restart_message(channel, BOT_USER)

    assert result.outcome is CorrelationOutcome.NOT_FOUND
    assert result.restart_message is None
    for message in messages:
        message.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_scan_is_limited_to_fifty_messages() -> None:
    filler = [FakeMessage(100 + i) for i in range(50)]
    restart = restart_response()
    channel = FakeChannel(filler + [restart])

    result = await find_restart_message(channel, BOT_USER)

    assert result.outcome is CorrelationOutcome.NOT_FOUND
    restart.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_scan_stops_at_first_match() -> None:
    newer = restart_response(30)
    older = restart_response(10)
    channel = FakeChannel([newer, older])

    await find_restart_message(channel, BOT_USER, now=clock(1))

    newer.reply.assert_awaited_once()
    older.reply.assert_not_awaited()


def test_interaction_name_prefers_metadata() -> None:
    message = SimpleNamespace(
        interaction_metadata=SimpleNamespace(name="forcerestart"),
        interaction=SimpleNamespace(name="other"),
    )

    assert interaction_name(message) == "forcerestart"
    assert interaction_name(SimpleNamespace()) is None
