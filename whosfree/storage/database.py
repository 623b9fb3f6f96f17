"""SQLite persistence for busy blocks, calendar uploads and group membership."""

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import aiosqlite
from pydantic import ValidationError

from whosfree.calendar.models import BusyBlock, BusyBlockInput
from whosfree.domain.models import GroupMember

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS profiles (
        user_id TEXT PRIMARY KEY,
        display_name TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS group_members (
        group_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        joined_at TEXT NOT NULL,
        PRIMARY KEY (group_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS calendar_uploads (
        user_id TEXT PRIMARY KEY,
        uploaded_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS weekday_busy_blocks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        weekday INTEGER NOT NULL CHECK (weekday BETWEEN 1 AND 5),
        start_time TEXT NOT NULL,
        end_time TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_busy_blocks_weekday_user
    ON weekday_busy_blocks(weekday, user_id)
    """,
)


def _placeholders(count: int) -> str:
    return ",".join("?" for _ in range(count))


class BusyBlockStore:
    """Async SQLite store standing in for the relational backend.

    Every operation opens its own connection, so one store can serve
    concurrent requests without shared cursor state.
    """

    def __init__(self, database_path: Union[Path, str]):
        """Initialize the store (schema is created lazily on first use).

        Args:
            database_path: Path to SQLite database file
        """
        self.database_path = Path(database_path)
        self._initialized = False
        self._initialization_lock: Optional[asyncio.Lock] = None

        logger.info("Busy block store initialized (lazy): %s", self.database_path)

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return

        if self._initialization_lock is None:
            self._initialization_lock = asyncio.Lock()

        async with self._initialization_lock:
            if self._initialized:
                return
            await self.initialize()

    async def initialize(self) -> None:
        """Create tables and indexes if they do not exist."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self.database_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL")
            for statement in _SCHEMA:
                await db.execute(statement)
            await db.commit()
        self._initialized = True
        logger.debug("Database schema ready at %s", self.database_path)

    async def upsert_profile(self, user_id: str, display_name: Optional[str]) -> None:
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self.database_path)) as db:
            await db.execute(
                """
                INSERT INTO profiles (user_id, display_name) VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET display_name = excluded.display_name
                """,
                (user_id, display_name),
            )
            await db.commit()

    async def add_group_member(self, group_id: str, user_id: str) -> None:
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self.database_path)) as db:
            await db.execute(
                "INSERT OR IGNORE INTO group_members (group_id, user_id, joined_at) VALUES (?, ?, ?)",
                (group_id, user_id, datetime.now(timezone.utc).isoformat()),
            )
            await db.commit()

    async def is_group_member(self, group_id: str, user_id: str) -> bool:
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self.database_path)) as db:
            async with db.execute(
                "SELECT 1 FROM group_members WHERE group_id = ? AND user_id = ?",
                (group_id, user_id),
            ) as cursor:
                return await cursor.fetchone() is not None

    async def fetch_group_members(self, group_id: str) -> list[GroupMember]:
        """Return the group's members joined with their profile names, in join order."""
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self.database_path)) as db:
            async with db.execute(
                """
                SELECT gm.user_id, p.display_name
                FROM group_members gm
                LEFT JOIN profiles p ON p.user_id = gm.user_id
                WHERE gm.group_id = ?
                ORDER BY gm.rowid
                """,
                (group_id,),
            ) as cursor:
                rows = await cursor.fetchall()
        return [GroupMember(user_id=row[0], display_name=row[1]) for row in rows]

    async def fetch_uploaded_user_ids(self, user_ids: Iterable[str]) -> set[str]:
        """Return which of the given users have uploaded a calendar."""
        ids = list(user_ids)
        if not ids:
            return set()

        await self._ensure_initialized()
        async with aiosqlite.connect(str(self.database_path)) as db:
            async with db.execute(
                f"SELECT user_id FROM calendar_uploads WHERE user_id IN ({_placeholders(len(ids))})",  # nosec: B608 - placeholders only
                ids,
            ) as cursor:
                rows = await cursor.fetchall()
        return {row[0] for row in rows}

    async def fetch_busy_blocks(self, weekday: int, user_ids: Iterable[str]) -> list[BusyBlock]:
        """Return the busy blocks of the given users on one weekday."""
        ids = list(user_ids)
        if not ids:
            return []

        await self._ensure_initialized()
        async with aiosqlite.connect(str(self.database_path)) as db:
            async with db.execute(
                f"""
                SELECT user_id, weekday, start_time, end_time
                FROM weekday_busy_blocks
                WHERE weekday = ? AND user_id IN ({_placeholders(len(ids))})
                """,  # nosec: B608 - placeholders only
                [weekday, *ids],
            ) as cursor:
                rows = await cursor.fetchall()

        blocks: list[BusyBlock] = []
        for user_id, row_weekday, start_time, end_time in rows:
            try:
                blocks.append(
                    BusyBlock(
                        user_id=user_id,
                        weekday=row_weekday,
                        start_time=start_time,
                        end_time=end_time,
                    )
                )
            except ValidationError:
                logger.warning("Ignoring malformed busy block row for user %s", user_id)
        return blocks

    async def replace_busy_blocks(self, user_id: str, blocks: Iterable[BusyBlockInput]) -> int:
        """Atomically replace all of a user's blocks and mark them as uploaded.

        Returns:
            Number of blocks written
        """
        rows = [(user_id, b.weekday, b.start_time, b.end_time) for b in blocks]

        await self._ensure_initialized()
        async with aiosqlite.connect(str(self.database_path)) as db:
            # Uncommitted work rolls back when the connection closes on error
            await db.execute("DELETE FROM weekday_busy_blocks WHERE user_id = ?", (user_id,))
            await db.executemany(
                "INSERT INTO weekday_busy_blocks (user_id, weekday, start_time, end_time) "
                "VALUES (?, ?, ?, ?)",
                rows,
            )
            await db.execute(
                """
                INSERT INTO calendar_uploads (user_id, uploaded_at) VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET uploaded_at = excluded.uploaded_at
                """,
                (user_id, datetime.now(timezone.utc).isoformat()),
            )
            await db.commit()

        logger.info("Stored %d busy blocks for user %s", len(rows), user_id)
        return len(rows)

    async def delete_calendar(self, user_id: str) -> bool:
        """Remove a user's blocks and upload marker.

        Returns:
            True if the user had uploaded a calendar
        """
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self.database_path)) as db:
            await db.execute("DELETE FROM weekday_busy_blocks WHERE user_id = ?", (user_id,))
            cursor = await db.execute("DELETE FROM calendar_uploads WHERE user_id = ?", (user_id,))
            removed = cursor.rowcount > 0
            await db.commit()

        if removed:
            logger.info("Removed calendar for user %s", user_id)
        return removed
