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
Reminder Lifecycle Module

Ties stored reminder records to scheduler triggers.

One-shot reminders:  PENDING -> FIRED      (trigger fired)
                     PENDING -> CANCELLED  (record cleared)
Recurring reminders: ACTIVE  -> STOPPED    (cancelled); never persisted

At fire time only ids are available. The owner and destination are looked
up again and the fire is skipped quietly if either is gone.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol

from analytics import track

from .config import ReminderConfig
from .manager import ReminderRecord
from .scheduler import (
    Interval,
    Trigger,
    TriggerKind,
    TriggerPayload,
    TriggerScheduler,
    job_id_for,
)
from .time_parser import ParsedTime, parse_time_expression

logger = logging.getLogger("remindbot.reminders.lifecycle")

REMINDER_MESSAGE = '⏰ **BEEP BEEP!** This is your reminder: "{task}"'
RECURRING_MESSAGE = '🔄 **Reminder:** "{task}"\n\nUse `/remind stop` to make it stop.'


class ReminderState(str, Enum):
    PENDING = "pending"
    FIRED = "fired"
    CANCELLED = "cancelled"
    ACTIVE = "active"
    STOPPED = "stopped"


class ReminderStore(Protocol):
    async def create(
        self,
        owner_id: int,
        task_text: str,
        destination_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> ReminderRecord: ...

    async def list_by_owner(self, owner_id: int, limit: Optional[int] = None) -> list[ReminderRecord]: ...

    async def delete_all_by_owner(self, owner_id: int) -> list[int]: ...

    async def mark_completed(self, reminder_id: int, owner_id: int) -> bool: ...


class EntityDirectory(Protocol):
    async def lookup_user(self, user_id: int) -> Optional[Any]: ...

    async def lookup_destination(self, destination_id: int) -> Optional[Any]: ...


class Delivery(Protocol):
    async def deliver(self, destination: Any, text: str) -> bool: ...


@dataclass
class ScheduledReminder:
    """A stored record and the one-shot trigger armed for it."""

    record: ReminderRecord
    trigger: Trigger
    parsed: Optional[ParsedTime] = None

    @property
    def fire_at(self) -> datetime:
        return self.trigger.fire_at


class ReminderLifecycle:
    """
    Creates, arms, fires and clears reminders.

    Registers itself as the scheduler's fire handler on construction.
    """

    def __init__(
        self,
        scheduler: TriggerScheduler,
        store: ReminderStore,
        directory: EntityDirectory,
        delivery: Delivery,
        config: Optional[ReminderConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.scheduler = scheduler
        self.store = store
        self.directory = directory
        self.delivery = delivery
        self.config = config or ReminderConfig()
        self._clock = clock or datetime.now

        self.scheduler.register_handler(self.handle_fire)

    # =========================================================================
    # One-shot reminders
    # =========================================================================

    async def add_reminder(self, owner_id: int, task_text: str) -> ReminderRecord:
        """Store a reminder without scheduling it (manual entry)."""
        return await self.store.create(owner_id, task_text, created_at=self._clock())

    async def schedule_from_text(
        self, owner_id: int, destination_id: int, text: str
    ) -> ScheduledReminder:
        """
        Resolve a natural-language request and arm a one-shot trigger for it.

        The whole text is kept as the task, e.g. "call mom tomorrow at 5pm".

        Raises:
            TimeParseError: If no time could be found in the text
            PastTimeError: If the time was understood but already passed
        """
        now = self._clock()
        parsed = parse_time_expression(text, now)

        record = await self.store.create(owner_id, text, destination_id, created_at=now)
        trigger = self._arm_once(record, parsed.fire_at)

        track(
            "reminder_created",
            "reminder",
            user_id=owner_id,
            channel_id=destination_id,
            properties={"reminder_id": record.id, "matched_by": parsed.matched_by},
        )
        return ScheduledReminder(record=record, trigger=trigger, parsed=parsed)

    async def schedule_in(
        self,
        owner_id: int,
        destination_id: int,
        task_text: str,
        delay: Optional[timedelta] = None,
    ) -> ScheduledReminder:
        """Store a reminder and fire it after a fixed delay."""
        if delay is None:
            delay = timedelta(seconds=self.config.quick_delay_seconds)

        now = self._clock()
        record = await self.store.create(owner_id, task_text, destination_id, created_at=now)
        trigger = self._arm_once(record, now + delay)

        track(
            "reminder_created",
            "reminder",
            user_id=owner_id,
            channel_id=destination_id,
            properties={"reminder_id": record.id, "delay_seconds": delay.total_seconds()},
        )
        return ScheduledReminder(record=record, trigger=trigger)

    def _arm_once(self, record: ReminderRecord, fire_at: datetime) -> Trigger:
        payload = TriggerPayload(
            owner_id=record.owner_id,
            destination_id=record.destination_id,
            task_text=record.task_text,
            reminder_id=record.id,
        )
        job_id = job_id_for(record.owner_id, TriggerKind.ONE_SHOT, record.id)
        return self.scheduler.schedule_once(job_id, fire_at, payload)

    async def list_reminders(self, owner_id: int, limit: Optional[int] = None) -> list[ReminderRecord]:
        return await self.store.list_by_owner(owner_id, limit=limit)

    async def clear_reminders(self, owner_id: int) -> int:
        """
        Delete all of a user's reminders and disarm their pending triggers.

        Returns:
            Number of records deleted
        """
        deleted_ids = await self.store.delete_all_by_owner(owner_id)
        for reminder_id in deleted_ids:
            job_id = job_id_for(owner_id, TriggerKind.ONE_SHOT, reminder_id)
            if job_id in self.scheduler:
                self.scheduler.cancel(job_id)
        return len(deleted_ids)

    async def reminder_state(self, owner_id: int, reminder_id: int) -> ReminderState:
        """State of one of the owner's one-shot reminders; cleared records are CANCELLED."""
        records = await self.store.list_by_owner(owner_id)
        for record in records:
            if record.id == reminder_id:
                return ReminderState.FIRED if record.completed else ReminderState.PENDING
        return ReminderState.CANCELLED

    # =========================================================================
    # Recurring reminders
    # =========================================================================

    def start_recurring(
        self,
        owner_id: int,
        destination_id: int,
        task_text: str,
        interval: Optional[Interval] = None,
    ) -> Trigger:
        """Start (or replace) the owner's recurring reminder."""
        if interval is None:
            interval = self.config.recurring_interval

        payload = TriggerPayload(
            owner_id=owner_id, destination_id=destination_id, task_text=task_text
        )
        job_id = job_id_for(owner_id, TriggerKind.RECURRING)
        trigger = self.scheduler.schedule_recurring(job_id, interval, payload)

        track(
            "recurring_started",
            "reminder",
            user_id=owner_id,
            channel_id=destination_id,
            properties={"interval": str(interval)},
        )
        return trigger

    def stop_recurring(self, owner_id: int) -> bool:
        """
        Stop the owner's recurring reminder.

        Returns:
            False if there was nothing to stop
        """
        return self.scheduler.cancel(job_id_for(owner_id, TriggerKind.RECURRING))

    def recurring_state(self, owner_id: int) -> ReminderState:
        if job_id_for(owner_id, TriggerKind.RECURRING) in self.scheduler:
            return ReminderState.ACTIVE
        return ReminderState.STOPPED

    # =========================================================================
    # Fire handling
    # =========================================================================

    async def _lookup(self, lookup: Callable[[int], Awaitable[Optional[Any]]], entity_id: int, what: str):
        try:
            return await lookup(entity_id)
        except Exception as e:
            logger.warning(f"Lookup of {what} {entity_id} failed: {e}")
            return None

    async def handle_fire(self, job_id: str, payload: TriggerPayload) -> None:
        """
        Deliver a fired reminder.

        Owner and destination are resolved from their ids; if either is gone
        the fire is skipped with only a log entry. Delivery is attempted once.
        """
        user = await self._lookup(self.directory.lookup_user, payload.owner_id, "user")
        destination = None
        if user is not None:
            destination = await self._lookup(
                self.directory.lookup_destination, payload.destination_id, "destination"
            )

        if user is None or destination is None:
            logger.info(
                f"Skipping trigger {job_id}: "
                f"{'owner' if user is None else 'destination'} no longer exists"
            )
            track(
                "reminder_skipped",
                "reminder",
                user_id=payload.owner_id,
                properties={"job_id": job_id, "missing": "owner" if user is None else "destination"},
            )
        else:
            template = REMINDER_MESSAGE if payload.reminder_id is not None else RECURRING_MESSAGE
            text = template.format(task=payload.task_text)
            try:
                delivered = await self.delivery.deliver(destination, text)
            except Exception as e:
                logger.error(f"Delivery for trigger {job_id} raised: {e}", exc_info=True)
                delivered = False

            if delivered:
                logger.info(f"Delivered trigger {job_id} to {payload.destination_id}")
                track(
                    "reminder_delivered",
                    "reminder",
                    user_id=payload.owner_id,
                    channel_id=payload.destination_id,
                    properties={"job_id": job_id, "is_recurring": payload.reminder_id is None},
                )
            else:
                logger.warning(f"Delivery failed for trigger {job_id}; not retrying")

        if payload.reminder_id is not None:
            await self.store.mark_completed(payload.reminder_id, payload.owner_id)
