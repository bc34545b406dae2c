"""aiosqlite connection holder for the event log and its projections."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

from arbor.db.schema import SCHEMA_SQL


class Database:
    """One shared aiosqlite connection. Rows come back as ``aiosqlite.Row``."""

    def __init__(self, connection: aiosqlite.Connection) -> None:
        self._conn = connection

    @classmethod
    async def connect(cls, path: str = "arbor.db") -> "Database":
        """Open path (or ":memory:"), set pragmas and create any missing tables."""
        connection = await aiosqlite.connect(path)
        connection.row_factory = aiosqlite.Row
        for pragma in ("journal_mode=WAL", "foreign_keys=ON", "busy_timeout=5000"):
            await connection.execute(f"PRAGMA {pragma}")
        database = cls(connection)
        await database._ensure_schema()
        return database

    async def _ensure_schema(self) -> None:
        await self._conn.executescript(SCHEMA_SQL)
        await self._conn.commit()

    async def execute(self, sql: str, params: tuple = ()) -> aiosqlite.Cursor:
        """Run one write statement and commit it."""
        cursor = await self._conn.execute(sql, params)
        await self._conn.commit()
        return cursor

    async def fetchone(self, sql: str, params: tuple = ()) -> aiosqlite.Row | None:
        async with self._conn.execute(sql, params) as cursor:
            return await cursor.fetchone()

    async def fetchall(self, sql: str, params: tuple = ()) -> list[aiosqlite.Row]:
        async with self._conn.execute(sql, params) as cursor:
            return list(await cursor.fetchall())

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run several statements under one commit. Rolls back if the block raises."""
        try:
            yield self._conn
        except BaseException:
            await self._conn.rollback()
            raise
        await self._conn.commit()

    async def close(self) -> None:
        await self._conn.close()
