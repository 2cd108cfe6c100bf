"""Process-wide asyncpg pool shared by the feed insights reads."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import asyncpg

from gigvora.settings import settings

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.pool.Pool] = None
_pool_lock: Optional[asyncio.Lock] = None


def _pool_options() -> dict[str, Any]:
	return {
		"dsn": settings.postgres_url,
		"min_size": settings.postgres_min_pool_size,
		"max_size": max(settings.postgres_min_pool_size, settings.postgres_max_pool_size),
		"ssl": "require" if settings.postgres_ssl else "disable",
	}


def _lock() -> asyncio.Lock:
	global _pool_lock
	if _pool_lock is None:
		_pool_lock = asyncio.Lock()
	return _pool_lock


async def init_pool() -> asyncpg.pool.Pool:
	"""Create the pool once; concurrent first callers share the same pool."""
	global _pool
	if _pool is not None:
		return _pool
	async with _lock():
		if _pool is None:
			options = _pool_options()
			_pool = await asyncpg.create_pool(**options)
			logger.info(
				"postgres.pool_ready",
				extra={"min_size": options["min_size"], "max_size": options["max_size"]},
			)
	return _pool


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	return _pool if _pool is not None else await init_pool()


async def close_pool() -> None:
	global _pool
	pool, _pool = _pool, None
	if pool is not None:
		await pool.close()
		logger.info("postgres.pool_closed")
