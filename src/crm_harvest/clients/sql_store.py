"""
SQL-backed store using the SQLAlchemy 2.0 async engine.

Production runs against Postgres through asyncpg; tests and local runs can
use SQLite through aiosqlite. One row per record type holds the JSON
payload and a version counter. Writes are compare-and-set:
- first write: INSERT, a concurrent first write fails on the primary key
- later writes: UPDATE ... WHERE version = :expected, zero rows = lost race
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import structlog
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..errors import StoreConflictError, StoreDecodeError, StoreError, wrap_store_error
from ..models.records import RecordType
from .base import StoredDocument

logger = structlog.get_logger(__name__)

TABLE_NAME = 'crm_collections'

_CREATE_TABLE = f"""
    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
        record_type VARCHAR(32) PRIMARY KEY,
        payload TEXT NOT NULL,
        version INTEGER NOT NULL
    )
"""


def _sanitize_url(url: str) -> str:
    """Remove URL query params that asyncpg does not understand.

    Hosted Postgres URLs often include ``channel_binding=require`` and
    ``sslmode=require`` which are libpq parameters. asyncpg rejects unknown
    connection params.
    """
    _STRIP_PARAMS = {'channel_binding', 'sslmode'}
    parsed = urlparse(url)
    if not parsed.query:
        return url
    params = parse_qs(parsed.query)
    filtered = {k: v for k, v in params.items() if k not in _STRIP_PARAMS}
    new_query = urlencode(filtered, doseq=True)
    return urlunparse(parsed._replace(query=new_query))


def normalize_url(url: str) -> str:
    """Point plain Postgres URLs at the asyncpg driver."""
    url = _sanitize_url(url)
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql+asyncpg://', 1)
    elif url.startswith('postgresql://') and '+asyncpg' not in url:
        url = url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    return url


class SqlStore:
    """
    Async SQL store with versioned, compare-and-set documents.

    Call ``connect()`` before use; it creates the engine and the table.
    """

    def __init__(self, database_url: str | None = None):
        """
        Initialize with a database URL.

        Args:
            database_url: SQLAlchemy async URL (postgresql+asyncpg://...,
                          sqlite+aiosqlite:///...). Plain postgres:// and
                          postgresql:// URLs are converted to asyncpg.
        """
        self._engine: AsyncEngine | None = None
        self._database_url = database_url

    async def connect(self, database_url: str | None = None) -> None:
        """
        Create the async engine and ensure the table exists.
        Idempotent: no-op if already connected.
        """
        if self._engine is not None:
            return

        url = database_url or self._database_url
        if not url:
            raise ValueError('database_url is required')
        url = normalize_url(url)

        kwargs: dict[str, Any] = {'pool_pre_ping': True}
        if '+asyncpg' in url:
            kwargs.update(pool_size=5, max_overflow=5, pool_timeout=30)

        try:
            self._engine = create_async_engine(url, **kwargs)
            async with self._engine.begin() as conn:
                await conn.execute(text(_CREATE_TABLE))
        except SQLAlchemyError as exc:
            raise wrap_store_error(exc, {'operation': 'connect'}) from exc
        logger.info('sql_store.connected', dialect=self._engine.dialect.name)

    async def close(self) -> None:
        """Dispose of the engine and connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info('sql_store.closed')

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StoreError('SqlStore is not connected')
        return self._engine

    async def get(self, record_type: RecordType) -> StoredDocument:
        engine = self._require_engine()
        try:
            async with engine.connect() as conn:
                result = await conn.execute(
                    text(f'SELECT payload, version FROM {TABLE_NAME} WHERE record_type = :rt'),
                    {'rt': record_type.value},
                )
                row = result.first()
        except SQLAlchemyError as exc:
            raise wrap_store_error(
                exc, {'operation': 'get', 'record_type': record_type.value}
            ) from exc

        if row is None:
            return StoredDocument(payload=None, version=0)
        try:
            payload = json.loads(row.payload)
        except (ValueError, TypeError) as exc:
            raise StoreDecodeError(
                f"Stored {record_type.value} document is not valid JSON",
                context={'record_type': record_type.value, 'original_error': str(exc)},
            ) from exc
        return StoredDocument(payload=payload, version=row.version)

    async def set(
        self,
        record_type: RecordType,
        payload: dict[str, Any],
        expected_version: int,
    ) -> int:
        engine = self._require_engine()
        params = {
            'rt': record_type.value,
            'payload': json.dumps(payload),
            'expected': expected_version,
        }
        conflict_context = {
            'record_type': record_type.value,
            'expected_version': expected_version,
        }

        try:
            async with engine.begin() as conn:
                if expected_version == 0:
                    await conn.execute(
                        text(
                            f'INSERT INTO {TABLE_NAME} (record_type, payload, version) '
                            'VALUES (:rt, :payload, 1)'
                        ),
                        params,
                    )
                else:
                    result = await conn.execute(
                        text(
                            f'UPDATE {TABLE_NAME} SET payload = :payload, version = version + 1 '
                            'WHERE record_type = :rt AND version = :expected'
                        ),
                        params,
                    )
                    if result.rowcount != 1:
                        raise StoreConflictError(
                            'Stored version changed since read',
                            context=conflict_context,
                        )
        except IntegrityError as exc:
            raise StoreConflictError(
                'Concurrent first write',
                context={**conflict_context, 'original_error': str(exc)},
            ) from exc
        except SQLAlchemyError as exc:
            raise wrap_store_error(
                exc, {'operation': 'set', 'record_type': record_type.value}
            ) from exc

        return expected_version + 1
