"""AsyncPG pool lifecycle and connection helper for the PostgreSQL store."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from gourmap.settings import settings

_pool: Optional[asyncpg.pool.Pool] = None


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=settings.postgres_url,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			command_timeout=settings.postgres_command_timeout_seconds,
			server_settings={
				"application_name": settings.service_name,
				# Read-only listing queries; a runaway plan is cut off server side.
				"statement_timeout": str(settings.postgres_statement_timeout_ms),
			},
		)
	return _pool


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	assert _pool is not None
	return _pool


@asynccontextmanager
async def connection() -> AsyncIterator[asyncpg.Connection]:
	"""Borrow a pooled connection for the duration of one store call."""

	pool = await get_pool()
	async with pool.acquire() as conn:
		yield conn


async def close_pool() -> None:
	global _pool
	if _pool is not None:
		await _pool.close()
		_pool = None
