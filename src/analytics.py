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
Reminder event tracking for remindbot.

Events land in the analytics_events table. The bot hands over its own pool
with configure(); without one a small pool is created on first use.

Usage:
    from analytics import track, error_properties

    # Fire-and-forget from anywhere on the event loop
    track("reminder_delivered", "reminder", user_id=123, properties={"job_id": "once:123:7"})

    # Failures carry a uniform error shape
    track("trigger_error", "error", user_id=123, properties=error_properties(e, job_id="recurring:123"))
"""

import asyncio
import json
import logging
import os
from typing import Any, Optional

import asyncpg

logger = logging.getLogger("remindbot.analytics")

EVENT_CATEGORIES = ("reminder", "command", "error", "system")

_pool: Optional[asyncpg.Pool] = None
_owns_pool = False
_enabled: bool = os.getenv("ANALYTICS_ENABLED", "true").lower() == "true"

# Strong references to in-flight tracking tasks
_pending: set[asyncio.Task] = set()


def configure(pool: Optional[asyncpg.Pool] = None, enabled: Optional[bool] = None) -> None:
    """
    Point tracking at an existing pool and/or override the enabled flag.

    Called by the bot once its environment is loaded and its pool exists.
    """
    global _pool, _owns_pool, _enabled
    if pool is not None:
        _pool = pool
        _owns_pool = False
    if enabled is not None:
        _enabled = enabled


def error_properties(error: BaseException, **extra: Any) -> dict[str, Any]:
    """Build the properties dict recorded for an `error` event."""
    return {
        **extra,
        "error_type": type(error).__name__,
        "error_message": str(error)[:200],
    }


async def _get_pool() -> Optional[asyncpg.Pool]:
    global _pool, _owns_pool
    if _pool is None and _enabled:
        database_url = os.getenv("DATABASE_URL")
        if database_url:
            try:
                _pool = await asyncpg.create_pool(database_url, min_size=1, max_size=3)
                _owns_pool = True
            except Exception as e:
                logger.warning(f"Analytics pool creation failed: {e}")
                return None
    return _pool


async def track_async(
    event_name: str,
    event_category: str,
    user_id: Optional[int] = None,
    channel_id: Optional[int] = None,
    properties: Optional[dict[str, Any]] = None,
) -> bool:
    """
    Record one event.

    Args:
        event_name: Specific event identifier (e.g., "reminder_delivered")
        event_category: One of EVENT_CATEGORIES
        user_id: Owner the event concerns (optional)
        channel_id: Destination channel (optional)
        properties: Additional event data, stored as JSON

    Returns:
        True if the event was recorded, False otherwise
    """
    if not _enabled:
        return False

    if event_category not in EVENT_CATEGORIES:
        logger.warning(f"Dropping {event_name!r}: unknown category {event_category!r}")
        return False

    pool = await _get_pool()
    if pool is None:
        return False

    try:
        await pool.execute(
            """
            INSERT INTO analytics_events
                (event_name, event_category, user_id, channel_id, properties)
            VALUES ($1, $2, $3, $4, $5)
            """,
            event_name,
            event_category,
            user_id,
            channel_id,
            json.dumps(properties or {}, default=str),
        )
        return True
    except Exception as e:
        logger.debug(f"Analytics tracking failed: {e}")
        return False


def track(
    event_name: str,
    event_category: str,
    user_id: Optional[int] = None,
    channel_id: Optional[int] = None,
    properties: Optional[dict[str, Any]] = None,
) -> None:
    """Record an event in the background. No-op outside a running event loop."""
    if not _enabled:
        return

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return

    task = loop.create_task(
        track_async(event_name, event_category, user_id, channel_id, properties)
    )
    _pending.add(task)
    task.add_done_callback(_pending.discard)


async def shutdown() -> None:
    """Wait for queued events, then close the pool if analytics created it."""
    global _pool, _owns_pool
    if _pending:
        await asyncio.gather(*_pending, return_exceptions=True)

    if _pool is not None and _owns_pool:
        await _pool.close()
    _pool = None
    _owns_pool = False
