"""
Async database access helpers (raw SQL) using asyncpg.

The pool is created once in the FastAPI lifespan (see `api/main.py`) and then
handed to the repositories that need it. Nothing here keeps a module-level
pool, so tests can build repositories against any pool or connection.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import os
from typing import Any, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

# Anything with fetchrow/fetch/execute: a pool or a single connection.
Executor = Union[asyncpg.Pool, asyncpg.Connection]

DEFAULT_POOL_MAX_SIZE = 15


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


def pool_max_size() -> int:
    raw = os.environ.get("DB_POOL_MAX_SIZE", "").strip()
    if not raw:
        return DEFAULT_POOL_MAX_SIZE
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError("Invalid DB_POOL_MAX_SIZE. It must be an integer.")
    if value <= 0:
        raise RuntimeError("Invalid DB_POOL_MAX_SIZE. It must be > 0.")
    return value


async def create_pool(dsn: str | None = None) -> asyncpg.Pool:
    """
    Open a connection pool. The caller owns it and must close it.
    """
    return await asyncpg.create_pool(
        dsn=dsn or database_url(),
        min_size=1,
        max_size=pool_max_size(),
        command_timeout=30,
    )


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(executor: Executor, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await executor.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(executor: Executor, sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    rows = await executor.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]
