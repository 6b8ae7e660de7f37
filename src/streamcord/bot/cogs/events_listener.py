"""Event listener Cog for Streamcord.

This cog handles bot lifecycle events (on_ready) and command error handling.
"""

import discord
from discord.ext import commands

from streamcord.configuration.app_configuration import AppConfig
from streamcord.restart.restart_correlator import find_restart_message
from streamcord.stream.stream_monitor import StreamMonitorService
from streamcord.util.discord_utils import describe_user, find_text_channel
from streamcord.util.logger import get_logger

logger = get_logger("events_listener_cog")


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle and command error handlers."""

    def __init__(self, discord_bot_instance, stream_monitor: StreamMonitorService, config: AppConfig):
        """Initialize the events listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        stream_monitor:
            Stream monitor started once the bot is ready.
        config:
            Application configuration, used for the admin channel.
        """
        self.bot = discord_bot_instance
        self.stream_monitor = stream_monitor
        self.config = config
        self._monitor_started = False
        self._restart_checked = False
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name='on_ready')
    async def on_ready(self):
        """Handle bot startup: start the stream monitor and report a finished restart.

        ``on_ready`` fires again after every gateway reconnect. The restart
        report runs on the first call only; starting the monitor is retried
        until it succeeds, since the announcement channel may not be cached yet.
        """
        if self.bot.user:
            logger.info(f"Bot connected as {self.bot.user} (ID: {self.bot.user.id})")
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        if not self._monitor_started:
            try:
                self._monitor_started = await self.stream_monitor.start()
            except Exception as exc:
                logger.exception("Failed to start the stream monitor: %s", exc)

        if self._restart_checked:
            return
        self._restart_checked = True

        logger.info("--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--")

        admin_channel = find_text_channel(self.bot, self.config.admin_channel_id)
        if admin_channel is None:
            return
        try:
            await find_restart_message(admin_channel, self.bot.user)
        except discord.HTTPException as exc:
            logger.warning("Could not look for a pending restart message: %s", exc)

    @commands.Cog.listener(name='on_application_command_error')
    async def on_application_command_error(self, application_context: discord.ApplicationContext, error: Exception):
        """Handle errors from application commands.

        Failed checks are answered with an "Access Denied" embed. Anything else
        is logged, acknowledged to the user and reported to the admin channel.
        """
        if isinstance(error, commands.CommandNotFound):
            return

        original = getattr(error, "original", None) or error

        if isinstance(original, (discord.CheckFailure, commands.CheckFailure)):
            embed = discord.Embed(
                title="Access Denied",
                description=str(original) or "You do not have permission to use this command.",
                color=discord.Color.red(),
            )
            logger.debug("Denied '%s' to %s: %s", self._command_name(application_context), application_context.user, original)
            await self._respond(application_context, embed=embed)
            return

        command_name = self._command_name(application_context)
        report = (
            f"{describe_user(application_context.user)} tried executing '{command_name}' but it errored:\n\n"
            f"{type(original).__name__}: {original}"
        )
        logger.error(report, exc_info=original)

        await self._respond(application_context, content="A :bug: showed up while running this command.")
        await self.report_to_admin_channel(report)

    async def report_to_admin_channel(self, report: str) -> None:
        """Post a "Bot Error" embed to the admin channel, never raising."""
        admin_channel = find_text_channel(self.bot, self.config.admin_channel_id)
        if admin_channel is None:
            return

        embed = discord.Embed(title="Bot Error", description=report[:4096], color=discord.Color.red())
        try:
            await admin_channel.send(embed=embed)
        except Exception as exc:
            logger.error("Tried posting an error message in the admin channel, but it errored: %s", exc)

    @staticmethod
    def _command_name(application_context: discord.ApplicationContext) -> str:
        command = getattr(application_context, "command", None)
        return getattr(command, "qualified_name", None) or getattr(command, "name", None) or "<unknown command>"

    @staticmethod
    async def _respond(application_context: discord.ApplicationContext, **kwargs) -> None:
        try:
            await application_context.respond(ephemeral=True, **kwargs)
        except discord.InteractionResponded:
            await application_context.followup.send(ephemeral=True, **kwargs)
        except discord.HTTPException as exc:
            logger.warning("Could not answer the failed command: %s", exc)


def setup(discord_bot_instance, stream_monitor: StreamMonitorService, config: AppConfig):
    """Register the EventsListenerCog with the bot."""
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, stream_monitor, config))
