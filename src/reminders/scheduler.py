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
Trigger Scheduler Module

In-process timer dispatch for reminders. Registrations live in memory; a
single discord.ext.tasks loop polls them and hands each due trigger payload
to the registered fire handler, one fire at a time.

Identity rules:
- job_id is the only handle; scheduling an id that is already armed replaces
  the previous registration (last write wins).
- Fires never overlap, so neither do fires for the same job_id.
- Cancelling only prevents future fires; a fire already running completes.

Nothing here is persisted. Registrations die with the process.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from croniter import CroniterBadDateError, croniter
from discord.ext import tasks

from analytics import error_properties, track

logger = logging.getLogger("remindbot.reminders.scheduler")

Interval = Union[timedelta, str]


class TriggerKind(str, Enum):
    ONE_SHOT = "once"
    RECURRING = "recurring"


class InvalidPayloadError(ValueError):
    """Raised when a trigger payload is missing fields or has the wrong shape."""

    pass


class InvalidIntervalError(ValueError):
    """Raised when a recurring interval is neither a positive timedelta nor valid CRON."""

    pass


def _is_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class TriggerPayload:
    """
    Ids needed to rebuild delivery context when a trigger fires.

    Only ids are carried; the owner and destination are looked up again at
    fire time because either may be gone by then.
    """

    owner_id: int
    destination_id: int
    task_text: str
    reminder_id: Optional[int] = None  # Set for one-shots backed by a stored record

    def __post_init__(self):
        if not _is_id(self.owner_id):
            raise InvalidPayloadError(f"owner_id must be an int, got {self.owner_id!r}")
        if not _is_id(self.destination_id):
            raise InvalidPayloadError(
                f"destination_id must be an int, got {self.destination_id!r}"
            )
        if not isinstance(self.task_text, str):
            raise InvalidPayloadError(f"task_text must be a str, got {self.task_text!r}")
        if self.reminder_id is not None and not _is_id(self.reminder_id):
            raise InvalidPayloadError(
                f"reminder_id must be an int or None, got {self.reminder_id!r}"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TriggerPayload":
        """Build a payload from untrusted mapping data, rejecting unknown keys."""
        required = {"owner_id", "destination_id", "task_text"}
        allowed = required | {"reminder_id"}

        missing = required - set(data)
        if missing:
            raise InvalidPayloadError(f"Payload missing fields: {sorted(missing)}")
        unknown = set(data) - allowed
        if unknown:
            raise InvalidPayloadError(f"Payload has unknown fields: {sorted(unknown)}")

        return cls(**dict(data))


def _coerce_payload(payload: Union[TriggerPayload, Mapping[str, Any]]) -> TriggerPayload:
    if isinstance(payload, TriggerPayload):
        return payload
    if isinstance(payload, Mapping):
        return TriggerPayload.from_mapping(payload)
    raise InvalidPayloadError(f"Unsupported payload type: {type(payload).__name__}")


def job_id_for(owner_id: int, kind: TriggerKind, reminder_id: Optional[int] = None) -> str:
    """
    Derive a scheduler job id from its owner.

    Recurring jobs get one id per owner, so users never clobber each other.
    One-shot jobs are keyed by their stored reminder as well.
    """
    if kind is TriggerKind.RECURRING:
        return f"recurring:{owner_id}"
    if reminder_id is None:
        raise ValueError("One-shot job ids require a reminder_id")
    return f"once:{owner_id}:{reminder_id}"


@dataclass
class Trigger:
    """A scheduler registration."""

    job_id: str
    kind: TriggerKind
    payload: TriggerPayload
    fire_at: Optional[datetime] = None  # One-shot only
    interval: Optional[Interval] = None  # Recurring only
    anchor: Optional[datetime] = None  # Registration instant, for timedelta intervals
    next_fire_at: Optional[datetime] = None
    fire_count: int = 0

    def next_boundary(self, now: datetime) -> datetime:
        """
        Next instant this trigger should fire, strictly after `now` for recurring jobs.

        Boundaries that already passed are skipped, not replayed.
        """
        if self.kind is TriggerKind.ONE_SHOT:
            return self.fire_at

        if isinstance(self.interval, timedelta):
            ticks = (now - self.anchor) // self.interval + 1
            return self.anchor + ticks * self.interval

        return croniter(self.interval, now).get_next(datetime)


def _validate_interval(interval: Any) -> Interval:
    if isinstance(interval, timedelta):
        if interval <= timedelta(0):
            raise InvalidIntervalError(f"Interval must be positive, got {interval}")
        return interval
    if isinstance(interval, str):
        if not croniter.is_valid(interval):
            raise InvalidIntervalError(f"Invalid CRON expression: {interval!r}")
        # Syntactically valid expressions can still name a date that never occurs
        try:
            croniter(interval, datetime.now()).get_next(datetime)
        except CroniterBadDateError as e:
            raise InvalidIntervalError(f"CRON expression never fires: {interval!r}") from e
        return interval
    raise InvalidIntervalError(f"Unsupported interval type: {type(interval).__name__}")


FireHandler = Callable[[str, TriggerPayload], Awaitable[None]]
ReadyWaiter = Callable[[], Awaitable[Any]]


class TriggerScheduler:
    """
    Background scheduler for one-shot and recurring triggers.

    A single dispatcher loop wakes every `tick_seconds`, collects the
    registrations whose instant has come and fires them one at a time.
    Registration methods return immediately and may be called before
    start(); nothing fires until the loop is running.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        tick_seconds: float = 1.0,
        wait_until_ready: Optional[ReadyWaiter] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            clock: Returns the current local instant (defaults to datetime.now)
            tick_seconds: How often the dispatcher looks for due triggers
            wait_until_ready: Awaited once before the first dispatch, e.g. bot.wait_until_ready
        """
        self._clock = clock or datetime.now
        self._wait_until_ready = wait_until_ready
        self._handler: Optional[FireHandler] = None
        self._registrations: dict[str, Trigger] = {}
        self._started = False
        self._dispatch_due.change_interval(seconds=tick_seconds)

    def register_handler(self, handler: FireHandler) -> None:
        """Install the callback invoked as handler(job_id, payload) on every fire."""
        self._handler = handler

    def start(self) -> None:
        """Start the dispatcher loop."""
        if not self._started:
            self._dispatch_due.start()
            self._started = True
            logger.info("Trigger scheduler started")

    def stop(self) -> None:
        """Stop the dispatcher loop. Registrations are kept."""
        if self._started:
            self._dispatch_due.cancel()
            self._started = False
            logger.info("Trigger scheduler stopped")

    async def shutdown(self) -> None:
        """Drop every registration and stop the loop, including a fire in progress."""
        count = len(self._registrations)
        self._registrations.clear()

        task = self._dispatch_due.get_task()
        self.stop()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        logger.info(f"Scheduler shut down ({count} trigger(s) dropped)")

    # =========================================================================
    # Registration
    # =========================================================================

    def schedule_once(
        self,
        job_id: str,
        fire_at: datetime,
        payload: Union[TriggerPayload, Mapping[str, Any]],
    ) -> Trigger:
        """
        Fire once at `fire_at`, or on the next tick if it already passed.

        Args:
            job_id: Registration key; replaces any armed trigger with the same id
            fire_at: Naive instant on the local clock
            payload: TriggerPayload or a mapping with the same fields

        Returns:
            The registered trigger
        """
        if fire_at.tzinfo is not None:
            raise ValueError(f"fire_at must be a naive local datetime, got {fire_at!r}")

        trigger = Trigger(
            job_id=job_id,
            kind=TriggerKind.ONE_SHOT,
            payload=_coerce_payload(payload),
            fire_at=fire_at,
            next_fire_at=fire_at,
        )
        self._register(trigger)
        logger.info(f"Scheduled one-shot trigger {job_id} at {fire_at}")
        return trigger

    def schedule_recurring(
        self,
        job_id: str,
        interval: Interval,
        payload: Union[TriggerPayload, Mapping[str, Any]],
    ) -> Trigger:
        """
        Fire on every interval boundary until cancelled.

        Args:
            job_id: Registration key; replaces any armed trigger with the same id
            interval: Positive timedelta, or a 5-field CRON expression
            payload: TriggerPayload or a mapping with the same fields

        Returns:
            The registered trigger
        """
        now = self._clock()
        trigger = Trigger(
            job_id=job_id,
            kind=TriggerKind.RECURRING,
            payload=_coerce_payload(payload),
            interval=_validate_interval(interval),
            anchor=now,
        )
        trigger.next_fire_at = trigger.next_boundary(now)
        self._register(trigger)
        logger.info(f"Scheduled recurring trigger {job_id} every {interval}")
        return trigger

    def cancel(self, job_id: str) -> bool:
        """
        Cancel a trigger. Safe to call for ids that are not scheduled.

        A fire already in progress is not interrupted.

        Returns:
            True if a trigger was cancelled, False if none was found
        """
        if self._registrations.pop(job_id, None) is None:
            logger.info(f"No trigger to cancel for {job_id}")
            return False

        logger.info(f"Cancelled trigger {job_id}")
        return True

    def get(self, job_id: str) -> Optional[Trigger]:
        return self._registrations.get(job_id)

    def job_ids(self) -> list[str]:
        return list(self._registrations)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._registrations

    def __len__(self) -> int:
        return len(self._registrations)

    def _register(self, trigger: Trigger) -> None:
        if not trigger.job_id:
            raise ValueError("job_id must be a non-empty string")

        if trigger.job_id in self._registrations:
            logger.info(f"Replacing armed trigger {trigger.job_id}")
        self._registrations[trigger.job_id] = trigger

    def _is_current(self, trigger: Trigger) -> bool:
        return self._registrations.get(trigger.job_id) is trigger

    def _release(self, trigger: Trigger) -> None:
        if self._is_current(trigger):
            del self._registrations[trigger.job_id]

    # =========================================================================
    # Dispatch
    # =========================================================================

    @tasks.loop(seconds=60)
    async def _dispatch_due(self) -> None:
        """Fire every trigger whose instant has come, earliest first."""
        try:
            now = self._clock()
            due = sorted(
                (t for t in self._registrations.values() if t.next_fire_at <= now),
                key=lambda t: t.next_fire_at,
            )

            for trigger in due:
                # An earlier callback in this pass may have cancelled or replaced it
                if self._is_current(trigger):
                    await self._fire(trigger)

        except Exception as e:
            logger.error(f"Error in trigger dispatch loop: {e}", exc_info=True)
            track("scheduler_error", "error", properties=error_properties(e))

    @_dispatch_due.before_loop
    async def _before_dispatch(self) -> None:
        if self._wait_until_ready is not None:
            await self._wait_until_ready()
        logger.info("Trigger scheduler ready, starting loop")

    async def _fire(self, trigger: Trigger) -> None:
        job_id = trigger.job_id

        # Consumed before the callback runs, so a failing callback is not retried
        if trigger.kind is TriggerKind.ONE_SHOT:
            self._release(trigger)

        trigger.fire_count += 1
        if self._handler is None:
            logger.warning(f"Trigger {job_id} fired with no handler registered")
        else:
            try:
                await self._handler(job_id, trigger.payload)
            except Exception as e:
                logger.error(f"Trigger {job_id} handler failed: {e}", exc_info=True)
                self._track_error(trigger, e)

        if trigger.kind is TriggerKind.RECURRING and self._is_current(trigger):
            # Boundaries that passed while the callback ran are skipped
            try:
                trigger.next_fire_at = trigger.next_boundary(self._clock())
            except Exception as e:
                logger.error(f"Trigger {job_id} has no next fire, dropping it: {e}", exc_info=True)
                self._track_error(trigger, e)
                self._release(trigger)

    def _track_error(self, trigger: Trigger, error: Exception) -> None:
        track(
            "trigger_error",
            "error",
            user_id=trigger.payload.owner_id,
            properties=error_properties(error, job_id=trigger.job_id, kind=trigger.kind.value),
        )
