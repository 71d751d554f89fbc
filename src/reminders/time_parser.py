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
Time Parser Module

Resolves human-written time expressions ("in 2 hours", "tomorrow at 5pm",
"next friday", "9:30am") into a concrete instant on the bot's local clock.

Resolution runs an ordered list of matcher strategies. The first strategy
that recognises the expression wins; later strategies are never consulted:

    1. relative duration  - "in N days|hours|minutes|seconds"
    2. today              - "today [at TIME]"
    3. tomorrow           - "tomorrow [at TIME]" (09:00 by default)
    4. weekday            - "[next] friday [at TIME]" (09:00 by default)
    5. bare time of day   - "5pm" (rolls to tomorrow if already passed)

All instants are naive datetimes in a single local reference frame.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

logger = logging.getLogger("remindbot.reminders.time_parser")

# Time applied to date-only expressions ("tomorrow", "friday")
DEFAULT_HOUR = 9
DEFAULT_MINUTE = 0

TODAY_WORDS = frozenset({"today"})
TOMORROW_WORDS = frozenset({"tomorrow", "tommorow", "tomorow", "tmrw", "tmr"})
NEXT_WORD = "next"

# Index matches datetime.weekday()
WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

# Checked in order; only the first unit found is honoured
RELATIVE_UNITS = [
    (re.compile(r"\bin\s+(\d+)\s+days?\b"), "days"),
    (re.compile(r"\bin\s+(\d+)\s+hours?\b"), "hours"),
    (re.compile(r"\bin\s+(\d+)\s+(?:minutes?|mins?)\b"), "minutes"),
    (re.compile(r"\bin\s+(\d+)\s+(?:seconds?|secs?)\b"), "seconds"),
]

TIME_OF_DAY_PATTERN = re.compile(r"(?<!\d)(\d{1,2})(?::(\d{2}))?(?!\d)(?:\s*(am|pm)\b)?")
WORD_PATTERN = re.compile(r"[a-z]+")


class TimeParseError(Exception):
    """Raised when a time expression cannot be understood."""

    pass


class PastTimeError(TimeParseError):
    """Raised when an expression was understood but resolves to the past."""

    def __init__(self, message: str, resolved: datetime):
        super().__init__(message)
        self.resolved = resolved


class _Unresolvable(Exception):
    """A matcher recognised the expression but its values are out of range."""


@dataclass(frozen=True)
class Expression:
    """A normalized time expression: lower-cased text plus its word tokens."""

    text: str
    words: frozenset

    @classmethod
    def normalize(cls, raw: str) -> "Expression":
        text = " ".join(raw.lower().split())
        return cls(text=text, words=frozenset(WORD_PATTERN.findall(text)))


@dataclass
class ParsedTime:
    """Result of parsing a time expression."""

    fire_at: datetime
    matched_by: str  # Name of the strategy that recognised the input
    original_input: str


def _extract_time_of_day(expr: Expression) -> Optional[tuple[int, int]]:
    """
    Find the first H[:MM][am|pm] in the expression.

    Without a meridiem the digits are taken as a 24-hour clock value.

    Raises:
        _Unresolvable: If the hour or minute is out of range
    """
    match = TIME_OF_DAY_PATTERN.search(expr.text)
    if not match:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2)) if match.group(2) else 0
    meridiem = match.group(3)

    if meridiem == "pm" and hour < 12:
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0

    if hour > 23 or minute > 59:
        raise _Unresolvable(f"time of day {match.group(0)!r} is out of range")

    return hour, minute


def _at(moment: datetime, hour: int, minute: int) -> datetime:
    return moment.replace(hour=hour, minute=minute, second=0, microsecond=0)


def _at_time_or_default(expr: Expression, moment: datetime) -> datetime:
    time_of_day = _extract_time_of_day(expr)
    if time_of_day is None:
        return _at(moment, DEFAULT_HOUR, DEFAULT_MINUTE)
    return _at(moment, *time_of_day)


# =============================================================================
# Matcher strategies
# =============================================================================


def match_relative_duration(expr: Expression, now: datetime) -> Optional[datetime]:
    """'in N <unit>' -> now + N units. Time of day is never consulted."""
    for pattern, unit in RELATIVE_UNITS:
        match = pattern.search(expr.text)
        if match:
            amount = int(match.group(1))
            try:
                return now + timedelta(**{unit: amount})
            except OverflowError:
                raise _Unresolvable(f"{amount} {unit} is too far in the future")
    return None


def match_today(expr: Expression, now: datetime) -> Optional[datetime]:
    if not expr.words & TODAY_WORDS:
        return None
    time_of_day = _extract_time_of_day(expr)
    if time_of_day is None:
        return now
    return _at(now, *time_of_day)


def match_tomorrow(expr: Expression, now: datetime) -> Optional[datetime]:
    if not expr.words & TOMORROW_WORDS:
        return None
    return _at_time_or_default(expr, now + timedelta(days=1))


def match_weekday(expr: Expression, now: datetime) -> Optional[datetime]:
    """
    Next occurrence of a named weekday.

    Naming today's weekday, or saying "next", pushes the result a week out.
    """
    for target, name in enumerate(WEEKDAYS):
        if name not in expr.words:
            continue
        days_ahead = target - now.weekday()
        if days_ahead <= 0 or NEXT_WORD in expr.words:
            days_ahead += 7
        return _at_time_or_default(expr, now + timedelta(days=days_ahead))
    return None


def match_bare_time(expr: Expression, now: datetime) -> Optional[datetime]:
    time_of_day = _extract_time_of_day(expr)
    if time_of_day is None:
        return None
    result = _at(now, *time_of_day)
    if result <= now:
        result += timedelta(days=1)
    return result


Matcher = Callable[[Expression, datetime], Optional[datetime]]

# Priority order matters: first match wins
MATCHERS: tuple[tuple[str, Matcher], ...] = (
    ("relative_duration", match_relative_duration),
    ("today", match_today),
    ("tomorrow", match_tomorrow),
    ("weekday", match_weekday),
    ("bare_time", match_bare_time),
)


def resolve_with_strategy(text: str, now: datetime) -> Optional[tuple[str, datetime]]:
    """
    Resolve an expression, also reporting which strategy matched.

    Returns:
        (strategy name, instant) or None if nothing matched
    """
    expr = Expression.normalize(text)
    if not expr.text:
        return None

    for name, matcher in MATCHERS:
        try:
            result = matcher(expr, now)
        except _Unresolvable as e:
            logger.debug(f"Strategy {name} rejected {text!r}: {e}")
            return None
        if result is not None:
            return name, result

    return None


def resolve(text: str, now: datetime) -> Optional[datetime]:
    """
    Resolve a time expression against a reference instant.

    Pure and deterministic given `now`. Does not enforce futurity: "today"
    without a time returns `now` itself, and callers must reject instants
    that are not after `now`.

    Args:
        text: Free-form text such as "call mom tomorrow at 5pm"
        now: Reference instant (naive, local clock)

    Returns:
        The resolved instant, or None if the expression was not understood
    """
    resolved = resolve_with_strategy(text, now)
    return resolved[1] if resolved else None


def parse_time_expression(expr: str, now: Optional[datetime] = None) -> ParsedTime:
    """
    Parse a time expression that must land strictly in the future.

    Args:
        expr: The time expression to parse
        now: Reference instant (defaults to the local clock)

    Returns:
        ParsedTime with the resolved instant

    Raises:
        TimeParseError: If the expression cannot be understood
        PastTimeError: If the expression resolves to `now` or earlier
    """
    if now is None:
        now = datetime.now()

    if not expr or not expr.strip():
        raise TimeParseError("Empty time expression")

    resolved = resolve_with_strategy(expr, now)
    if resolved is None:
        raise TimeParseError(
            f"Could not find a time in '{expr}'. "
            "Try formats like 'in 2 hours', 'tomorrow at 10am' or 'next friday at 3pm'."
        )

    matched_by, fire_at = resolved
    if fire_at <= now:
        raise PastTimeError(
            f"Time '{expr}' is in the past. Try a future time like 'tomorrow at 3pm'.",
            fire_at,
        )

    return ParsedTime(fire_at=fire_at, matched_by=matched_by, original_input=expr)
