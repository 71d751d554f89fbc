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

"""Tests for reminder event tracking."""

import asyncio
import json
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import analytics


@pytest.fixture
def pool(monkeypatch):
    mock = MagicMock()
    mock.execute = AsyncMock()
    mock.close = AsyncMock()
    monkeypatch.setattr(analytics, "_pool", None)
    monkeypatch.setattr(analytics, "_owns_pool", False)
    analytics.configure(mock, enabled=True)
    return mock


class TestErrorProperties:
    def test_shape(self):
        props = analytics.error_properties(RuntimeError("boom"), job_id="once:1:2")
        assert props == {"job_id": "once:1:2", "error_type": "RuntimeError", "error_message": "boom"}

    def test_message_truncated(self):
        props = analytics.error_properties(ValueError("x" * 500))
        assert len(props["error_message"]) == 200


class TestTrackAsync:
    @pytest.mark.asyncio
    async def test_disabled(self, pool):
        analytics.configure(enabled=False)
        assert await analytics.track_async("reminder_delivered", "reminder") is False
        pool.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_writes_to_shared_pool(self, pool):
        recorded = await analytics.track_async(
            "reminder_delivered", "reminder", user_id=1, channel_id=10, properties={"job_id": "once:1:2"}
        )

        assert recorded is True
        args = pool.execute.call_args.args
        assert args[1:5] == ("reminder_delivered", "reminder", 1, 10)
        assert json.loads(args[5]) == {"job_id": "once:1:2"}

    @pytest.mark.asyncio
    async def test_unknown_category_dropped(self, pool):
        assert await analytics.track_async("something", "memory") is False
        pool.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_database_error_is_swallowed(self, pool):
        pool.execute.side_effect = OSError("connection reset")
        assert await analytics.track_async("reminder_delivered", "reminder") is False


class TestTrack:
    def test_no_running_loop(self, pool):
        analytics.track("reminder_delivered", "reminder")
        pool.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_background_write(self, pool):
        analytics.track("command_used", "command", user_id=1)
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        pool.execute.assert_awaited_once()


class TestShutdown:
    @pytest.mark.asyncio
    async def test_borrowed_pool_is_not_closed(self, pool):
        analytics.track("command_used", "command", user_id=1)
        await analytics.shutdown()

        pool.execute.assert_awaited_once()
        pool.close.assert_not_called()
        assert analytics._pool is None

    @pytest.mark.asyncio
    async def test_own_pool_is_closed(self, monkeypatch):
        own = MagicMock()
        own.execute = AsyncMock()
        own.close = AsyncMock()
        monkeypatch.setattr(analytics, "_pool", None)
        monkeypatch.setattr(analytics, "_owns_pool", False)
        monkeypatch.setattr(analytics, "_enabled", True)

        with patch.dict("os.environ", {"DATABASE_URL": "postgresql://localhost/remindbot"}):
            with patch("analytics.asyncpg.create_pool", AsyncMock(return_value=own)):
                assert await analytics.track_async("reminder_delivered", "reminder") is True

        await analytics.shutdown()
        own.close.assert_awaited_once()
