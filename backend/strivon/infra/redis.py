"""Redis client used by the finalize stream worker and readiness checks.

`redis_client` is a proxy so modules can import it once while tests swap the
underlying connection for fakeredis.
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as redis

from strivon.settings import settings


class RedisProxy:
	"""Forwards attribute access to the current client."""

	def __init__(self, client: Optional[redis.Redis] = None):
		self._client = client

	@property
	def client(self) -> redis.Redis:
		if self._client is None:
			# from_url does not connect until the first command is issued
			self._client = redis.from_url(settings.redis_url, decode_responses=True)
		return self._client

	def set_client(self, client: Optional[redis.Redis]) -> None:
		self._client = client

	def __getattr__(self, item):
		return getattr(self.client, item)


redis_client: RedisProxy = RedisProxy()


def set_redis_client(client: Optional[redis.Redis]) -> None:
	redis_client.set_client(client)


async def close_redis() -> None:
	client, redis_client._client = redis_client._client, None
	if client is not None:
		await client.aclose()
