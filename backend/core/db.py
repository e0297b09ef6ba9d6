import abc
import logging
from collections.abc import AsyncGenerator, Mapping
from typing import Any

import psycopg
import psycopg.rows
import psycopg_pool
from psycopg import sql

from grid.queries import STATEMENTS


log = logging.getLogger(__name__)

pool: psycopg_pool.AsyncConnectionPool | None = None

# Schema name template for one survey year, e.g. "survey_{year}".
year_schema: str = "survey_{year}"


class StoreError(Exception):
    """A named statement failed or is unknown."""

    def __init__(self, statement: str, message: str):
        super().__init__(f"{statement}: {message}")
        self.statement = statement


async def init_pool(conninfo: str) -> None:
    """Initialize the async connection pool."""
    global pool
    pool = psycopg_pool.AsyncConnectionPool(
        conninfo=conninfo,
        min_size=2,
        max_size=10,
        open=False,
    )
    await pool.open()
    await pool.wait()


async def close_pool() -> None:
    """Close the connection pool."""
    global pool
    if pool:
        await pool.close()
        pool = None


async def provide_connection() -> AsyncGenerator[psycopg.AsyncConnection, None]:
    """Litestar dependency provider for database connections."""
    if not pool:
        raise RuntimeError("Database pool not initialized")
    async with pool.connection() as conn:
        yield conn


def year_from_schema(name: str, template: str | None = None) -> int | None:
    """Inverse of the year schema template: ``survey_2025`` -> 2025."""
    prefix, marker, suffix = (template or year_schema).partition("{year}")
    if not marker or not name.startswith(prefix) or not name.endswith(suffix):
        return None
    digits = name[len(prefix):len(name) - len(suffix)]
    return int(digits) if digits.isdigit() else None


async def available_years(conn: psycopg.AsyncConnection) -> list[int]:
    """Survey years that have a schema in the connected database."""
    async with conn.cursor() as cur:
        await cur.execute("SELECT schema_name FROM information_schema.schemata")
        names = [row[0] for row in await cur.fetchall()]
    return sorted(y for y in map(year_from_schema, names) if y is not None)


class StatementStore(abc.ABC):
    """Runs statements by name against one survey year's data."""

    @abc.abstractmethod
    async def fetch_all(self, name: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        ...

    @abc.abstractmethod
    async def fetch_one(self, name: str, params: dict[str, Any] | None = None) -> dict[str, Any] | None:
        ...

    @abc.abstractmethod
    async def execute(self, name: str, params: dict[str, Any] | None = None) -> int:
        ...


class YearStore(StatementStore):
    """Statement store bound to a connection and a year's schema.

    Each statement runs inside the connection's current transaction with
    ``search_path`` pinned to the year schema, so the SQL stays unqualified.
    """

    def __init__(
        self,
        conn: psycopg.AsyncConnection,
        year: int,
        schema: str | None = None,
        statements: Mapping[str, str] = STATEMENTS,
    ):
        self.conn = conn
        self.year = year
        self.schema = schema or year_schema.format(year=year)
        self.statements = statements

    def _statement(self, name: str) -> str:
        try:
            return self.statements[name]
        except KeyError:
            raise StoreError(name, "unknown statement") from None

    async def _pin_schema(self, cur: psycopg.AsyncCursor) -> None:
        await cur.execute(
            sql.SQL("SET LOCAL search_path TO {}").format(sql.Identifier(self.schema))
        )

    async def fetch_all(self, name: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        query = self._statement(name)
        try:
            async with self.conn.cursor(row_factory=psycopg.rows.dict_row) as cur:
                await self._pin_schema(cur)
                await cur.execute(query, params or {})
                rows = await cur.fetchall()
        except psycopg.Error as e:
            raise StoreError(name, str(e)) from e
        log.debug("%s returned %d rows from %s", name, len(rows), self.schema)
        return [dict(row) for row in rows]

    async def fetch_one(self, name: str, params: dict[str, Any] | None = None) -> dict[str, Any] | None:
        query = self._statement(name)
        try:
            async with self.conn.cursor(row_factory=psycopg.rows.dict_row) as cur:
                await self._pin_schema(cur)
                await cur.execute(query, params or {})
                row = await cur.fetchone()
        except psycopg.Error as e:
            raise StoreError(name, str(e)) from e
        return dict(row) if row else None

    async def execute(self, name: str, params: dict[str, Any] | None = None) -> int:
        query = self._statement(name)
        try:
            async with self.conn.cursor() as cur:
                await self._pin_schema(cur)
                await cur.execute(query, params or {})
                return cur.rowcount
        except psycopg.Error as e:
            raise StoreError(name, str(e)) from e


async def provide_year_store(conn: psycopg.AsyncConnection, year: int) -> StatementStore:
    """Litestar dependency provider binding the request's year to a store."""
    return YearStore(conn, year)
