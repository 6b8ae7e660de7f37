"""
Admin commands cog: process restart and stream monitor moderation.

Every command here requires the administrator permission. Failed permission
checks surface as ``CheckFailure`` and are answered by the events listener
with an "Access Denied" embed.

Commands
- ``/forcerestart``: answer in the channel, then restart the process. The
  answer is what the restart correlator looks for once the bot is back.
- ``/stream update``: run a reconciliation pass now.
- ``/stream ban`` / ``/stream unban``: edit the Twitch user ban list.
- ``/stream bans``: list banned Twitch user ids.
- ``/stream status``: show the monitor's current state.
"""

import discord
from discord import Option
from discord.ext import commands

from streamcord.configuration.app_configuration import AppConfig
from streamcord.restart.restart_correlator import FORCE_RESTART_COMMAND_NAME
from streamcord.restart.runtime_control import RuntimeControl
from streamcord.stream.stream_monitor import StreamMonitorService
from streamcord.twitch.twitch_api import StreamerNotFoundError
from streamcord.util.logger import get_logger

logger = get_logger("admin_cog")


class AdminCog(commands.Cog):
    """Cog containing administrator-only slash commands."""

    stream = discord.SlashCommandGroup(
        "stream",
        "Manage the live stream announcements",
        default_member_permissions=discord.Permissions(administrator=True),
    )

    def __init__(
        self,
        discord_bot_instance,
        stream_monitor: StreamMonitorService,
        config: AppConfig,
        control: RuntimeControl,
    ):
        self.bot = discord_bot_instance
        self.stream_monitor = stream_monitor
        self.config = config
        self.control = control
        logger.info("Admin cog loaded")

    @discord.slash_command(name=FORCE_RESTART_COMMAND_NAME, description="Forces the bot to restart")
    @discord.default_permissions(administrator=True)
    @commands.has_permissions(administrator=True)
    async def forcerestart(self, ctx: discord.ApplicationContext) -> None:
        """Answer publicly, then restart the process."""
        embed = discord.Embed(description="Restarting...", color=discord.Color.orange())
        await ctx.respond(embed=embed)
        logger.info("Restart requested by %s", ctx.user)
        await self.control.request_restart()

    @stream.command(name="update", description="Update the stream announcements now")
    @commands.has_permissions(administrator=True)
    async def update(self, ctx: discord.ApplicationContext) -> None:
        await ctx.defer(ephemeral=True)
        if await self.stream_monitor.tick():
            await ctx.send_followup(f"Stream announcements updated ({len(self.stream_monitor.state.cache)} live).")
        else:
            await ctx.send_followup("The update was skipped, check the logs for details.")

    @stream.command(name="ban", description="Never announce the streams of a Twitch user")
    @commands.has_permissions(administrator=True)
    async def ban(
        self,
        ctx: discord.ApplicationContext,
        username: Option(str, "Twitch username or user id", required=True),  # type: ignore
    ) -> None:
        await ctx.defer(ephemeral=True)
        try:
            user_id = await self.stream_monitor.get_twitch_id(username)
        except StreamerNotFoundError:
            await ctx.send_followup(f"Could not find a Twitch user named `{discord.utils.escape_markdown(username)}`.")
            return

        if not self.config.add_twitch_ban(user_id):
            await ctx.send_followup(f"Twitch user `{user_id}` is already banned.")
            return

        await self.stream_monitor.tick()
        await ctx.send_followup(f"Banned Twitch user `{user_id}` from stream announcements.")

    @stream.command(name="unban", description="Announce the streams of a banned Twitch user again")
    @commands.has_permissions(administrator=True)
    async def unban(
        self,
        ctx: discord.ApplicationContext,
        username: Option(str, "Twitch username or user id", required=True),  # type: ignore
    ) -> None:
        await ctx.defer(ephemeral=True)
        try:
            user_id = await self.stream_monitor.get_twitch_id(username)
        except StreamerNotFoundError:
            await ctx.send_followup(f"Could not find a Twitch user named `{discord.utils.escape_markdown(username)}`.")
            return

        if not self.config.remove_twitch_ban(user_id):
            await ctx.send_followup(f"Twitch user `{user_id}` is not banned.")
            return

        await ctx.send_followup(f"Unbanned Twitch user `{user_id}`; their streams show up on the next update.")

    @stream.command(name="bans", description="List the Twitch users banned from announcements")
    @commands.has_permissions(administrator=True)
    async def bans(self, ctx: discord.ApplicationContext) -> None:
        bans = sorted(self.config.twitch_user_bans)
        embed = discord.Embed(
            title="Banned Twitch Users",
            description="\n".join(f"`{user_id}`" for user_id in bans) if bans else "No Twitch users are banned.",
            color=discord.Color.purple(),
        )
        await ctx.respond(embed=embed, ephemeral=True)

    @stream.command(name="status", description="Show the state of the stream monitor")
    @commands.has_permissions(administrator=True)
    async def status(self, ctx: discord.ApplicationContext) -> None:
        state = self.stream_monitor.state
        scheduler = self.stream_monitor.scheduler
        settings = self.config.stream_monitor
        embed = discord.Embed(title="Stream Monitor", color=discord.Color.purple())
        embed.add_field(name="Running", value="Yes" if scheduler.is_running else "No", inline=True)
        embed.add_field(name="Interval", value=f"{settings.update_interval_seconds / 60:g} min", inline=True)
        embed.add_field(name="Announced", value=str(len(state.cache)), inline=True)
        embed.add_field(name="Soft banned", value=str(len(state.soft_bans)), inline=True)
        embed.add_field(name="Passes", value=f"{scheduler.runs} ({scheduler.failures} failed)", inline=True)
        if scheduler.last_error is not None:
            embed.add_field(name="Last error", value=str(scheduler.last_error)[:1024], inline=False)
        await ctx.respond(embed=embed, ephemeral=True)


def setup(discord_bot_instance, stream_monitor: StreamMonitorService, config: AppConfig, control: RuntimeControl):
    """Register the admin cog with the bot."""
    discord_bot_instance.add_cog(AdminCog(discord_bot_instance, stream_monitor, config, control))
