"""Report how long a ``/forcerestart`` took once the bot is back.

Nothing survives the restart, so the response to the restart command is found
again by scanning the admin channel. The bot's recent messages are walked
newest first; a reply is resolved to the message it replies to. The first
message that turns out to be the restart command's response ends the scan:

- if the candidate was a reply, the completion notice was already posted;
- otherwise the candidate is the response itself and gets a reply with the
  elapsed time.
"""

from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass
from typing import Callable, Optional

import discord

from streamcord.util.discord_utils import fetch_own_history
from streamcord.util.logger import get_logger

logger = get_logger("restart_correlator")

FORCE_RESTART_COMMAND_NAME = "forcerestart"
RESTART_HISTORY_LIMIT = 50


class CorrelationState(enum.Enum):
    SCANNING = "scanning"
    MATCHED = "matched"
    DONE = "done"


class CorrelationOutcome(enum.Enum):
    NOT_FOUND = "not_found"
    NEEDS_REPLY = "needs_reply"
    ALREADY_REPLIED = "already_replied"


@dataclass(slots=True)
class RestartCorrelation:
    """Result of one scan of the admin channel."""

    state: CorrelationState = CorrelationState.SCANNING
    outcome: CorrelationOutcome = CorrelationOutcome.NOT_FOUND
    restart_message: Optional[discord.Message] = None
    elapsed_seconds: Optional[float] = None


def interaction_name(message: discord.Message) -> Optional[str]:
    """Name of the application command a message is the response to, if any."""
    metadata = getattr(message, "interaction_metadata", None)
    name = getattr(metadata, "name", None)
    if name:
        return name
    interaction = getattr(message, "interaction", None)
    return getattr(interaction, "name", None)


async def resolve_referenced_message(message: discord.Message) -> Optional[discord.Message]:
    """Return the message ``message`` replies to, or None if it is not a reply.

    A reference to a deleted or unreachable message also yields None.
    """
    reference = getattr(message, "reference", None)
    if reference is None or reference.message_id is None:
        return None

    resolved = getattr(reference, "resolved", None)
    if isinstance(resolved, discord.DeletedReferencedMessage):
        return None
    if resolved is not None:
        return resolved

    try:
        return await message.channel.fetch_message(reference.message_id)
    except discord.HTTPException as exc:
        logger.debug("[RESTART] Referenced message %s unavailable: %s", reference.message_id, exc)
        return None


async def match_restart_message(candidate: discord.Message) -> Optional[CorrelationOutcome]:
    """Classify one candidate: None when it is unrelated to a restart."""
    referenced = await resolve_referenced_message(candidate)
    is_reply = referenced is not None
    target = referenced if is_reply else candidate
    if interaction_name(target) != FORCE_RESTART_COMMAND_NAME:
        return None
    return CorrelationOutcome.ALREADY_REPLIED if is_reply else CorrelationOutcome.NEEDS_REPLY


def build_restart_complete_embed(elapsed_seconds: float) -> discord.Embed:
    return discord.Embed(
        description=f"Restart complete! Took {elapsed_seconds:,.2f} seconds.",
        color=discord.Color.blue(),
    )


async def find_restart_message(
    channel: discord.abc.Messageable,
    bot_user: Optional[discord.abc.User],
    *,
    now: Callable[[], datetime.datetime] = discord.utils.utcnow,
) -> RestartCorrelation:
    """Scan the admin channel and reply to a pending restart response.

    Args:
        channel: Admin channel the restart command was issued in.
        bot_user: The connected bot user.
        now: Clock used for the elapsed time.

    Returns:
        RestartCorrelation: Final state of the scan.
    """
    result = RestartCorrelation()
    messages = await fetch_own_history(channel, bot_user, limit=RESTART_HISTORY_LIMIT)

    for candidate in messages:
        outcome = await match_restart_message(candidate)
        if outcome is None:
            continue

        result.state = CorrelationState.MATCHED
        result.outcome = outcome
        result.restart_message = candidate
        break

    if result.outcome is CorrelationOutcome.NEEDS_REPLY:
        restart_message = result.restart_message
        result.elapsed_seconds = (now() - restart_message.created_at).total_seconds()
        await restart_message.reply(embed=build_restart_complete_embed(result.elapsed_seconds))
        logger.info("[RESTART] Restart completed in %.2f seconds", result.elapsed_seconds)
    elif result.outcome is CorrelationOutcome.ALREADY_REPLIED:
        logger.debug("[RESTART] Last restart was already reported")

    result.state = CorrelationState.DONE
    return result
