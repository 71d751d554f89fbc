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
Reminder Manager Module

Handles database operations for stored reminder records.
Every query is scoped to the owning user.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import asyncpg

logger = logging.getLogger("remindbot.reminders.manager")


@dataclass
class ReminderRecord:
    """A stored reminder."""

    id: int
    owner_id: int
    task_text: str
    created_at: datetime
    destination_id: Optional[int] = None
    completed: bool = False

    @classmethod
    def from_row(cls, row) -> "ReminderRecord":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            task_text=row["task_text"],
            created_at=row["created_at"],
            destination_id=row["destination_id"],
            completed=row["completed"],
        )


class ReminderManager:
    """
    Manages database operations for reminder records.

    Records are inert data: listing and clearing work whether or not a
    trigger is still armed for them.
    """

    def __init__(self, db_pool: asyncpg.Pool):
        """
        Initialize the reminder manager.

        Args:
            db_pool: asyncpg connection pool
        """
        self.db = db_pool

    async def create(
        self,
        owner_id: int,
        task_text: str,
        destination_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> ReminderRecord:
        """
        Create a new reminder record.

        Args:
            owner_id: Discord user ID of the requester
            task_text: What to remind about
            destination_id: Channel ID to deliver into (None for manual entries)
            created_at: Creation instant (defaults to now)

        Returns:
            The stored record
        """
        row = await self.db.fetchrow(
            """
            INSERT INTO reminders (owner_id, destination_id, task_text, created_at, completed)
            VALUES ($1, $2, $3, $4, FALSE)
            RETURNING id, owner_id, destination_id, task_text, created_at, completed
            """,
            owner_id,
            destination_id,
            task_text,
            created_at or datetime.now(),
        )

        record = ReminderRecord.from_row(row)
        logger.info(f"Created reminder {record.id} for user {owner_id}")
        return record

    async def list_by_owner(self, owner_id: int, limit: Optional[int] = None) -> list[ReminderRecord]:
        """
        List a user's reminders, oldest first.

        Args:
            owner_id: Discord user ID
            limit: Maximum number of records (None for all)

        Returns:
            List of records
        """
        rows = await self.db.fetch(
            """
            SELECT id, owner_id, destination_id, task_text, created_at, completed
            FROM reminders
            WHERE owner_id = $1
            ORDER BY created_at ASC, id ASC
            LIMIT $2
            """,
            owner_id,
            limit,
        )
        return [ReminderRecord.from_row(row) for row in rows]

    async def delete_all_by_owner(self, owner_id: int) -> list[int]:
        """
        Delete all of a user's reminders.

        Returns:
            IDs of the deleted records
        """
        rows = await self.db.fetch(
            """
            DELETE FROM reminders
            WHERE owner_id = $1
            RETURNING id
            """,
            owner_id,
        )

        deleted = [row["id"] for row in rows]
        if deleted:
            logger.info(f"Cleared {len(deleted)} reminder(s) for user {owner_id}")
        return deleted

    async def mark_completed(self, reminder_id: int, owner_id: int) -> bool:
        """
        Mark a fired one-shot reminder as completed.

        Returns:
            True if updated, False if the record no longer exists
        """
        result = await self.db.execute(
            """
            UPDATE reminders
            SET completed = TRUE
            WHERE id = $1 AND owner_id = $2
            """,
            reminder_id,
            owner_id,
        )

        updated = result == "UPDATE 1"
        if updated:
            logger.info(f"Reminder {reminder_id} completed")
        return updated
