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
Reminder System Configuration

Tunable parameters for scheduling and the /remind commands.
Values can be overridden via environment variables.
"""

import os
from dataclasses import dataclass


@dataclass
class ReminderConfig:
    """Configuration for the reminder system."""

    # Delay used by `/remind schedule`
    quick_delay_seconds: int = 10

    # Default recurring interval (CRON, every minute)
    recurring_interval: str = "* * * * *"

    # How often the scheduler loop looks for due triggers
    tick_seconds: float = 1.0

    # Maximum reminders shown by `/remind list`
    list_limit: int = 25

    # Fallback task text for commands invoked without one
    default_task: str = "Take a break"
    default_recurring_task: str = "Nagging reminder"

    # Write events to analytics_events
    analytics_enabled: bool = True

    @classmethod
    def from_env(cls) -> "ReminderConfig":
        """Create config from environment variables with defaults."""
        return cls(
            quick_delay_seconds=int(os.getenv("REMINDER_QUICK_DELAY_SECONDS", "10")),
            recurring_interval=os.getenv("REMINDER_RECURRING_INTERVAL", "* * * * *"),
            tick_seconds=float(os.getenv("REMINDER_TICK_SECONDS", "1")),
            list_limit=int(os.getenv("REMINDER_LIST_LIMIT", "25")),
            analytics_enabled=os.getenv("ANALYTICS_ENABLED", "true").lower() == "true",
        )
