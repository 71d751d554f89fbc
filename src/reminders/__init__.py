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
Reminders Package

Natural-language time resolution, in-process trigger scheduling, and the
lifecycle that delivers reminders when their triggers fire.
"""

from .config import ReminderConfig
from .time_parser import (
    ParsedTime,
    PastTimeError,
    TimeParseError,
    parse_time_expression,
    resolve,
)
from .scheduler import (
    InvalidIntervalError,
    InvalidPayloadError,
    Trigger,
    TriggerKind,
    TriggerPayload,
    TriggerScheduler,
    job_id_for,
)
from .manager import ReminderManager, ReminderRecord
from .lifecycle import ReminderLifecycle, ReminderState, ScheduledReminder

__all__ = [
    "ReminderConfig",
    "ParsedTime",
    "PastTimeError",
    "TimeParseError",
    "parse_time_expression",
    "resolve",
    "InvalidIntervalError",
    "InvalidPayloadError",
    "Trigger",
    "TriggerKind",
    "TriggerPayload",
    "TriggerScheduler",
    "job_id_for",
    "ReminderManager",
    "ReminderRecord",
    "ReminderLifecycle",
    "ReminderState",
    "ScheduledReminder",
]
