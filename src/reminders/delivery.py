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
Discord Delivery Module

Looks up users and channels by id at fire time and sends reminder messages.
A user or channel that no longer exists (or that the bot cannot see) is
reported as None, never raised.
"""

import logging
from typing import Optional

import discord

logger = logging.getLogger("remindbot.reminders.delivery")

# Discord message length limit
DISCORD_MAX_LENGTH = 2000


class DiscordGateway:
    """Entity lookup and message delivery backed by a discord.py client."""

    def __init__(self, client: discord.Client):
        self.client = client

    async def lookup_user(self, user_id: int) -> Optional[discord.abc.User]:
        user = self.client.get_user(user_id)
        if user is not None:
            return user
        try:
            return await self.client.fetch_user(user_id)
        except discord.NotFound:
            logger.info(f"User {user_id} not found")
        except discord.HTTPException as e:
            logger.warning(f"Failed to fetch user {user_id}: {e}")
        return None

    async def lookup_destination(self, channel_id: int) -> Optional[discord.abc.Messageable]:
        channel = self.client.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await self.client.fetch_channel(channel_id)
        except discord.NotFound:
            logger.info(f"Channel {channel_id} not found (deleted)")
        except discord.Forbidden:
            logger.info(f"No access to channel {channel_id}")
        except discord.HTTPException as e:
            logger.warning(f"Failed to fetch channel {channel_id}: {e}")
        return None

    async def deliver(self, destination: discord.abc.Messageable, text: str) -> bool:
        """
        Send a message. Failures are logged and reported, not retried.

        Returns:
            True if Discord accepted the message
        """
        if len(text) > DISCORD_MAX_LENGTH:
            text = text[: DISCORD_MAX_LENGTH - 20] + "\n\n[...truncated]"
        try:
            await destination.send(text)
            return True
        except discord.HTTPException as e:
            logger.warning(f"Failed to deliver to {getattr(destination, 'id', '?')}: {e}")
            return False
