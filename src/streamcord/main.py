"""
Streamcord
==========

A Discord bot that keeps one announcement per live Twitch stream of a game in
a channel, and offers administrators restart and ban commands.
"""

import os
import sys
from pathlib import Path

def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. STREAMCORD_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("STREAMCORD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]

BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
from dataclasses import dataclass

import discord
from dotenv import load_dotenv

from streamcord.configuration.app_configuration import AppConfig, app_config
from streamcord.restart.runtime_control import RESTART_EXIT_CODE, RuntimeControl, close_bot_instance
from streamcord.stream.stream_monitor import StreamMonitorService
from streamcord.twitch.twitch_api import TwitchApiService
from streamcord.util.logger import get_logger, install_exception_hook


logger = get_logger("main")


@dataclass(slots=True)
class Secrets:
    discord_token: str
    twitch_client_id: str
    twitch_client_secret: str


def load_environment() -> Secrets:
    """Load environment variables and return the bot and Twitch credentials.

    Raises
    ------
    SystemExit
        If any of ``DISCORD_BOT_TOKEN``, ``TWITCH_CLIENT_ID`` or
        ``TWITCH_CLIENT_SECRET`` is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    values = {name: os.getenv(name) for name in ("DISCORD_BOT_TOKEN", "TWITCH_CLIENT_ID", "TWITCH_CLIENT_SECRET")}
    missing = [name for name, value in values.items() if not value]
    if missing:
        logger.critical("Environment variable(s) %s not set. Bot cannot start.", ", ".join(missing))
        sys.exit(1)
    return Secrets(
        discord_token=values["DISCORD_BOT_TOKEN"],
        twitch_client_id=values["TWITCH_CLIENT_ID"],
        twitch_client_secret=values["TWITCH_CLIENT_SECRET"],
    )


def build_intents() -> discord.Intents:
    """Construct the Discord intents Streamcord needs.

    Reading message history and embeds does not require the privileged
    message content intent for the bot's own messages.
    """
    intents = discord.Intents.default()
    intents.guilds = True
    intents.messages = True
    return intents


def load_cogs(
    discord_bot_instance: discord.Bot,
    stream_monitor: StreamMonitorService,
    config: AppConfig,
    control: RuntimeControl,
) -> None:
    """Register all cogs with the provided Discord bot instance."""
    from streamcord.bot.cogs import admin_cmds, events_listener

    events_listener.setup(discord_bot_instance, stream_monitor, config)
    admin_cmds.setup(discord_bot_instance, stream_monitor, config, control)

    logger.info("All cogs loaded successfully.")


def create_bot(config: AppConfig, secrets: Secrets, control: RuntimeControl) -> tuple[discord.Bot, StreamMonitorService]:
    """Instantiate the Discord bot, its services, and register all cogs."""
    debug_guilds = [config.guild_id] if config.guild_id else None
    bot = discord.Bot(intents=build_intents(), debug_guilds=debug_guilds)

    twitch = TwitchApiService(
        secrets.twitch_client_id,
        secrets.twitch_client_secret,
        config.stream_monitor.game_name,
    )
    stream_monitor = StreamMonitorService(bot, config, twitch)

    load_cogs(bot, stream_monitor, config, control)
    control.set_bot(bot)
    return bot, stream_monitor


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, stream_monitor: StreamMonitorService | None) -> None:
    """Stop the stream monitor, close the Twitch session and the Discord bot."""
    if stream_monitor is not None:
        try:
            await stream_monitor.shutdown()
        except Exception as exc:
            logger.exception("Error during stream monitor shutdown: %s", exc)
        try:
            await stream_monitor.twitch.close()
        except Exception as exc:
            logger.exception("Error while closing the Twitch session: %s", exc)

    await close_bot_instance(bot, log_close=True)
    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the bot and its services, returning an exit code."""
    secrets = load_environment()
    control = RuntimeControl()

    try:
        bot, stream_monitor = create_bot(app_config, secrets, control)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        return 1

    exit_code = 0
    try:
        await start_bot(bot, secrets.discord_token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        control.set_bot(None)
        await shutdown_runtime(bot, stream_monitor)

    if control.is_restart_requested():
        logger.info("Restart requested, returning exit code %d to trigger restart", RESTART_EXIT_CODE)
        return RESTART_EXIT_CODE

    return exit_code


def main() -> int:
    """Entrypoint that orchestrates the async runtime and returns the process code.

    Returns
    -------
    int
        Exit code propagated to the operating system. A restart request
        replaces the current process instead of returning.
    """
    install_exception_hook()
    logger.info("Starting Streamcord…")
    try:
        exit_code = asyncio.run(async_main())

        if exit_code == RESTART_EXIT_CODE:
            logger.info("Restart requested; replacing current process with new instance.")
            os.execv(sys.executable, [sys.executable] + sys.argv)
            return 0  # pragma: no cover

        return exit_code
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
