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

"""Tests for natural-language time resolution."""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reminders.time_parser import (
    PastTimeError,
    TimeParseError,
    parse_time_expression,
    resolve,
    resolve_with_strategy,
)

MONDAY = datetime(2026, 10, 19, 14, 0, 0)
WEDNESDAY = datetime(2026, 10, 21, 14, 0, 0)


def test_reference_weekdays():
    assert MONDAY.weekday() == 0
    assert WEDNESDAY.weekday() == 2


class TestRelativeDuration:
    """'in N <unit>' expressions."""

    @pytest.mark.parametrize("n", [1, 2, 17, 48])
    def test_hours(self, n):
        assert resolve(f"in {n} hours", MONDAY) == MONDAY + timedelta(hours=n)

    @pytest.mark.parametrize(
        "text,delta",
        [
            ("in 1 day", timedelta(days=1)),
            ("in 3 days", timedelta(days=3)),
            ("in 1 hour", timedelta(hours=1)),
            ("in 45 minutes", timedelta(minutes=45)),
            ("in 1 minute", timedelta(minutes=1)),
            ("in 5 mins", timedelta(minutes=5)),
            ("in 1 min", timedelta(minutes=1)),
            ("in 30 seconds", timedelta(seconds=30)),
            ("in 10 secs", timedelta(seconds=10)),
            ("in 1 sec", timedelta(seconds=1)),
        ],
    )
    def test_units(self, text, delta):
        assert resolve(text, MONDAY) == MONDAY + delta

    def test_keeps_seconds_of_now(self):
        now = datetime(2026, 10, 19, 14, 7, 33, 250000)
        assert resolve("in 2 hours", now) == now + timedelta(hours=2)

    def test_number_not_taken_as_time_of_day(self):
        # "2" must not become 02:00
        assert resolve("water plants in 2 days", MONDAY) == MONDAY + timedelta(days=2)

    def test_first_unit_in_priority_order_wins(self):
        assert resolve("in 2 days in 3 hours", MONDAY) == MONDAY + timedelta(days=2)
        assert resolve("in 10 minutes or in 2 hours", MONDAY) == MONDAY + timedelta(hours=2)

    def test_beats_other_cues(self):
        assert resolve("tomorrow, no wait, in 5 minutes", MONDAY) == MONDAY + timedelta(minutes=5)

    def test_requires_in(self):
        # Falls through to bare time: "2" -> 02:00, already passed -> tomorrow
        assert resolve("2 hours", MONDAY) == datetime(2026, 10, 20, 2, 0)

    def test_within_is_not_in(self):
        assert resolve_with_strategy("within 2 days", MONDAY)[0] == "bare_time"

    def test_huge_amount_is_unparseable(self):
        assert resolve("in 99999999999 days", MONDAY) is None


class TestToday:
    def test_with_time(self):
        assert resolve("today at 5pm", MONDAY) == datetime(2026, 10, 19, 17, 0)

    def test_without_time_returns_now(self):
        assert resolve("today", MONDAY) == MONDAY

    def test_earlier_time_is_not_rolled(self):
        # Caller rejects it
        assert resolve("today at 9am", MONDAY) == datetime(2026, 10, 19, 9, 0)


class TestTomorrow:
    def test_defaults_to_nine(self):
        assert resolve("tomorrow", MONDAY) == datetime(2026, 10, 20, 9, 0, 0)

    @pytest.mark.parametrize(
        "now",
        [
            datetime(2026, 10, 19, 0, 0, 0),
            datetime(2026, 10, 19, 8, 59, 59, 999999),
            datetime(2026, 10, 19, 23, 59, 59),
        ],
    )
    def test_default_ignores_time_of_now(self, now):
        assert resolve("tomorrow", now) == datetime(2026, 10, 20, 9, 0, 0)

    @pytest.mark.parametrize("word", ["tomorrow", "tommorow", "tomorow", "tmrw", "tmr"])
    def test_spellings(self, word):
        assert resolve(f"call mom {word} at 5pm", MONDAY) == datetime(2026, 10, 20, 17, 0)

    def test_minutes(self):
        assert resolve("tomorrow 10:30am", MONDAY) == datetime(2026, 10, 20, 10, 30)

    def test_month_rollover(self):
        now = datetime(2026, 10, 31, 20, 0)
        assert resolve("tomorrow at 8am", now) == datetime(2026, 11, 1, 8, 0)

    def test_today_has_priority(self):
        assert resolve_with_strategy("today or tomorrow", MONDAY)[0] == "today"


class TestWeekday:
    def test_same_day_means_next_week(self):
        assert resolve("monday", MONDAY) == datetime(2026, 10, 26, 9, 0)

    def test_upcoming_day(self):
        assert resolve("friday", WEDNESDAY) == datetime(2026, 10, 23, 9, 0)

    def test_next_pushes_a_week(self):
        assert resolve("next friday", WEDNESDAY) == datetime(2026, 10, 30, 9, 0)

    def test_day_already_passed_this_week(self):
        assert resolve("monday", WEDNESDAY) == datetime(2026, 10, 26, 9, 0)

    def test_with_time(self):
        assert resolve("dentist next Friday at 3pm", WEDNESDAY) == datetime(2026, 10, 30, 15, 0)

    def test_tomorrow_has_priority(self):
        assert resolve("tomorrow (friday)", WEDNESDAY) == datetime(2026, 10, 22, 9, 0)


class TestBareTime:
    def test_later_today(self):
        assert resolve("5pm", MONDAY) == datetime(2026, 10, 19, 17, 0)

    def test_rolls_to_tomorrow(self):
        now = datetime(2026, 10, 19, 18, 0)
        assert resolve("5pm", now) == datetime(2026, 10, 20, 17, 0)

    def test_exactly_now_rolls(self):
        now = datetime(2026, 10, 19, 17, 0)
        assert resolve("5pm", now) == datetime(2026, 10, 20, 17, 0)

    def test_twenty_four_hour(self):
        assert resolve("standup 17:45", MONDAY) == datetime(2026, 10, 19, 17, 45)

    def test_midnight_and_noon(self):
        assert resolve("12am", MONDAY) == datetime(2026, 10, 20, 0, 0)
        assert resolve("12pm", MONDAY) == datetime(2026, 10, 20, 12, 0)
        assert resolve("12:30pm", datetime(2026, 10, 19, 8, 0)) == datetime(2026, 10, 19, 12, 30)

    def test_meridiem_with_space(self):
        assert resolve("at 5 pm", MONDAY) == datetime(2026, 10, 19, 17, 0)

    def test_case_insensitive(self):
        assert resolve("TOMORROW AT 5PM", MONDAY) == datetime(2026, 10, 20, 17, 0)


class TestUnresolvable:
    @pytest.mark.parametrize("text", ["", "   ", "buy milk", "someday"])
    def test_no_cue(self, text):
        assert resolve(text, MONDAY) is None

    @pytest.mark.parametrize("text", ["at 25", "tomorrow at 24", "10:75", "friday at 99"])
    def test_out_of_range_time(self, text):
        assert resolve(text, MONDAY) is None

    def test_pure(self):
        assert resolve("tomorrow at 5pm", MONDAY) == resolve("tomorrow at 5pm", MONDAY)


class TestParseTimeExpression:
    def test_success(self):
        parsed = parse_time_expression("call mom tomorrow at 5pm", MONDAY)
        assert parsed.fire_at == datetime(2026, 10, 20, 17, 0)
        assert parsed.matched_by == "tomorrow"
        assert parsed.original_input == "call mom tomorrow at 5pm"

    def test_unparseable(self):
        with pytest.raises(TimeParseError) as exc_info:
            parse_time_expression("buy milk", MONDAY)
        assert not isinstance(exc_info.value, PastTimeError)

    def test_empty(self):
        with pytest.raises(TimeParseError):
            parse_time_expression("  ", MONDAY)

    def test_today_without_time_is_past(self):
        with pytest.raises(PastTimeError):
            parse_time_expression("today", MONDAY)

    def test_earlier_today_is_past(self):
        with pytest.raises(PastTimeError) as exc_info:
            parse_time_expression("today at 9am", MONDAY)
        assert exc_info.value.resolved == datetime(2026, 10, 19, 9, 0)

    def test_zero_delay_is_past(self):
        with pytest.raises(PastTimeError):
            parse_time_expression("in 0 minutes", MONDAY)
