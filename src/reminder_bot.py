"""
remindbot Discord Bot

Maintains the Discord connection, owns the trigger scheduler and registers
the /remind commands. Reminders live in Postgres; armed triggers live only
in this process.
"""

import asyncio
import os
from typing import Optional

import asyncpg
import discord
from discord.ext import commands
from dotenv import load_dotenv

import analytics
from commands.reminder_commands import setup as setup_reminder_commands
from reminders import ReminderConfig, ReminderLifecycle, ReminderManager, TriggerScheduler
from reminders.delivery import DiscordGateway

load_dotenv()

import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("remindbot")


class ReminderBot(commands.Bot):
    """Discord bot that schedules and delivers reminders."""

    def __init__(self, config: Optional[ReminderConfig] = None):
        intents = discord.Intents.default()
        intents.guilds = True

        super().__init__(command_prefix="!", intents=intents)

        self.config = config or ReminderConfig.from_env()
        self.db_pool: Optional[asyncpg.Pool] = None
        self.scheduler: Optional[TriggerScheduler] = None
        self.lifecycle: Optional[ReminderLifecycle] = None

    async def setup_hook(self):
        """Called when the bot is starting up."""
        database_url = os.getenv("DATABASE_URL")
        logger.info(f"Setup: DATABASE_URL={'set' if database_url else 'missing'}")

        if not database_url:
            logger.warning("No DATABASE_URL, reminder commands disabled")
            return

        self.db_pool = await asyncpg.create_pool(database_url)
        analytics.configure(self.db_pool, enabled=self.config.analytics_enabled)
        self.scheduler = TriggerScheduler(
            tick_seconds=self.config.tick_seconds,
            wait_until_ready=self.wait_until_ready,
        )

        gateway = DiscordGateway(self)
        self.lifecycle = ReminderLifecycle(
            scheduler=self.scheduler,
            store=ReminderManager(self.db_pool),
            directory=gateway,
            delivery=gateway,
            config=self.config,
        )

        self.scheduler.start()

        await setup_reminder_commands(self, self.lifecycle)
        synced = await self.tree.sync()
        logger.info(f"Reminder system initialized ({len(synced)} command(s) synced)")

    async def on_ready(self):
        """Called when the bot has connected to Discord."""
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")

    async def close(self):
        """Clean up resources on shutdown."""
        if self.scheduler:
            await self.scheduler.shutdown()
        await analytics.shutdown()
        if self.db_pool:
            await self.db_pool.close()
        await super().close()


async def main():
    """Run the bot."""
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        print("Error: DISCORD_BOT_TOKEN environment variable not set")
        print("Please set it in your .env file")
        return

    bot = ReminderBot()
    async with bot:
        await bot.start(token)


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
