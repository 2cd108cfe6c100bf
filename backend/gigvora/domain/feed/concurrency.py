"""Fail-fast fan-out for independent store reads."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable


async def gather_all(*aws: Awaitable[Any]) -> list[Any]:
	"""Await all awaitables concurrently; on the first failure cancel the rest and re-raise."""
	tasks = [asyncio.ensure_future(aw) for aw in aws]
	try:
		return list(await asyncio.gather(*tasks))
	except BaseException:
		for task in tasks:
			if not task.done():
				task.cancel()
		await asyncio.gather(*tasks, return_exceptions=True)
		raise
