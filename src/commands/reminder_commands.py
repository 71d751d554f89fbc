# remindbot - Discord Reminder Bot
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
Reminder Slash Commands

Discord slash commands for creating, listing and clearing reminders.
"""

import logging
from datetime import datetime
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from analytics import track
from reminders import (
    InvalidIntervalError,
    PastTimeError,
    ReminderConfig,
    ReminderLifecycle,
    TimeParseError,
)

logger = logging.getLogger("remindbot.commands.reminder")

HELP_TEXT = (
    "**Reminder Bot Commands**\n\n"
    "**Natural language:**\n"
    "`/remind set call mom tomorrow at 5pm`\n"
    "`/remind set meeting in 2 hours`\n"
    "`/remind set dentist next friday at 3pm`\n\n"
    "**Other commands:**\n"
    "`/remind add [task]` - Save a reminder without a time\n"
    "`/remind schedule [task]` - Quick delayed reminder\n"
    "`/remind recur [task]` - Recurring reminder\n"
    "`/remind stop` - Stop your recurring reminder\n"
    "`/remind list` - View your reminders\n"
    "`/remind clear` - Clear all your reminders\n"
    "`/remind help` - Show this message"
)


def format_instant(instant: datetime) -> str:
    return instant.strftime("%a, %b %d %Y %I:%M:%S %p")


class ReminderCommands(commands.Cog):
    """
    Slash commands for reminder management.

    Commands:
    - /remind set - Schedule from natural language
    - /remind add - Save a reminder without scheduling it
    - /remind schedule - Quick delayed reminder
    - /remind recur - Start a recurring reminder
    - /remind stop - Stop your recurring reminder
    - /remind list - List your reminders
    - /remind clear - Delete all your reminders
    - /remind help - Show usage
    """

    remind_group = app_commands.Group(
        name="remind",
        description="Manage your reminders",
    )

    def __init__(
        self,
        bot: commands.Bot,
        lifecycle: ReminderLifecycle,
        config: Optional[ReminderConfig] = None,
    ):
        self.bot = bot
        self.lifecycle = lifecycle
        self.config = config or lifecycle.config

    def _track_command(self, interaction: discord.Interaction, subcommand: str) -> None:
        track(
            "command_used",
            "command",
            user_id=interaction.user.id,
            channel_id=interaction.channel_id,
            properties={"command_name": "remind", "subcommand": subcommand},
        )

    # =========================================================================
    # /remind set
    # =========================================================================

    @remind_group.command(name="set")
    @app_commands.describe(
        text="What and when, e.g. 'call mom tomorrow at 5pm' or 'standup in 10 minutes'",
    )
    async def set_reminder(self, interaction: discord.Interaction, text: str):
        """Schedule a reminder from natural language."""
        self._track_command(interaction, "set")
        await interaction.response.defer(ephemeral=True)

        try:
            scheduled = await self.lifecycle.schedule_from_text(
                interaction.user.id, interaction.channel_id, text
            )
        except PastTimeError:
            await interaction.followup.send(
                '⚠️ That time is in the past! Try a future time like "tomorrow at 3pm".',
                ephemeral=True,
            )
            return
        except TimeParseError:
            await interaction.followup.send(
                "🤔 **I didn't catch the time.**\n"
                "Try typing: `/remind set Check servers tomorrow at 9am`",
                ephemeral=True,
            )
            return

        await interaction.followup.send(
            f'🧠 **Smart Schedule:**\nI understood: **"{text}"**\n'
            f"📅 **Target Date:** {format_instant(scheduled.fire_at)}",
            ephemeral=True,
        )

    # =========================================================================
    # /remind add
    # =========================================================================

    @remind_group.command(name="add")
    @app_commands.describe(task="What would you like to be reminded about?")
    async def add_reminder(self, interaction: discord.Interaction, task: str):
        """Save a reminder without a time."""
        self._track_command(interaction, "add")
        await interaction.response.defer(ephemeral=True)

        record = await self.lifecycle.add_reminder(interaction.user.id, task)
        await interaction.followup.send(f'✅ Reminder saved: "{record.task_text}"', ephemeral=True)

    # =========================================================================
    # /remind schedule
    # =========================================================================

    @remind_group.command(name="schedule")
    @app_commands.describe(task="What to be reminded about")
    async def schedule_reminder(self, interaction: discord.Interaction, task: Optional[str] = None):
        """Quick delayed reminder."""
        self._track_command(interaction, "schedule")
        await interaction.response.defer(ephemeral=True)

        task = task or self.config.default_task
        await self.lifecycle.schedule_in(interaction.user.id, interaction.channel_id, task)

        await interaction.followup.send(
            f"⏳ I will remind you in **{self.config.quick_delay_seconds} seconds** "
            f'about: "{task}". Watch this space...',
            ephemeral=True,
        )

    # =========================================================================
    # /remind recur, /remind stop
    # =========================================================================

    @remind_group.command(name="recur")
    @app_commands.describe(task="What to keep reminding you about")
    async def recur_reminder(self, interaction: discord.Interaction, task: Optional[str] = None):
        """Start a recurring reminder."""
        self._track_command(interaction, "recur")

        task = task or self.config.default_recurring_task
        try:
            self.lifecycle.start_recurring(interaction.user.id, interaction.channel_id, task)
        except InvalidIntervalError as e:
            logger.error(f"Cannot start recurring reminder for {interaction.user.id}: {e}")
            await interaction.response.send_message(
                "❌ Recurring reminders are misconfigured on this bot.", ephemeral=True
            )
            return

        await interaction.response.send_message(
            f'🔄 **Recurring reminder started!** I\'ll keep reminding you about: "{task}"\n\n'
            "Use `/remind stop` to make it stop.",
            ephemeral=True,
        )

    @remind_group.command(name="stop")
    async def stop_reminder(self, interaction: discord.Interaction):
        """Stop your recurring reminder."""
        self._track_command(interaction, "stop")

        if self.lifecycle.stop_recurring(interaction.user.id):
            message = "🛑 Recurring reminder stopped. Peace at last!"
        else:
            message = "❌ No active recurring reminder found."
        await interaction.response.send_message(message, ephemeral=True)

    # =========================================================================
    # /remind list, /remind clear
    # =========================================================================

    @remind_group.command(name="list")
    async def list_reminders(self, interaction: discord.Interaction):
        """List your reminders."""
        self._track_command(interaction, "list")
        await interaction.response.defer(ephemeral=True)

        try:
            reminders = await self.lifecycle.list_reminders(
                interaction.user.id, limit=self.config.list_limit
            )
        except Exception as e:
            logger.error(f"Failed to list reminders for {interaction.user.id}: {e}", exc_info=True)
            await interaction.followup.send("❌ Error fetching reminders.", ephemeral=True)
            return

        if not reminders:
            await interaction.followup.send("You have no saved reminders.", ephemeral=True)
            return

        lines = [f"📋 **Your Reminders** ({len(reminders)} total)\n"]
        for index, reminder in enumerate(reminders, start=1):
            status = "✅" if reminder.completed else "-"
            created = reminder.created_at.strftime("%b %d %H:%M")
            lines.append(f"{index}. {status} **{reminder.task_text}**\n   _Created: {created}_\n")

        await interaction.followup.send("\n".join(lines), ephemeral=True)

    @remind_group.command(name="clear")
    async def clear_reminders(self, interaction: discord.Interaction):
        """Delete all your reminders."""
        self._track_command(interaction, "clear")
        await interaction.response.defer(ephemeral=True)

        try:
            count = await self.lifecycle.clear_reminders(interaction.user.id)
        except Exception as e:
            logger.error(f"Failed to clear reminders for {interaction.user.id}: {e}", exc_info=True)
            await interaction.followup.send("❌ Error clearing reminders.", ephemeral=True)
            return

        if count == 0:
            await interaction.followup.send("You have no reminders to clear.", ephemeral=True)
            return

        await interaction.followup.send(
            f"🗑️ Successfully cleared {count} reminder{'' if count == 1 else 's'}.",
            ephemeral=True,
        )

    # =========================================================================
    # /remind help
    # =========================================================================

    @remind_group.command(name="help")
    async def show_help(self, interaction: discord.Interaction):
        """Show reminder commands."""
        await interaction.response.send_message(HELP_TEXT, ephemeral=True)


async def setup(bot: commands.Bot, lifecycle: ReminderLifecycle):
    """Register the reminder commands cog."""
    await bot.add_cog(ReminderCommands(bot, lifecycle))
