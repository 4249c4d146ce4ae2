import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from strivon.infra import postgres
from strivon.main import app
from strivon.moderation.domain import container
from strivon.settings import settings


# Ensure a selector-based event loop policy on Windows to avoid Proactor issues with async IO
if hasattr(asyncio, "WindowsSelectorEventLoopPolicy"):
	try:
		asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
	except Exception:
		# Non-fatal; proceed with default policy
		pass


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from strivon.infra.redis import redis_client, set_redis_client
	original = redis_client._client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via X-User-Id/X-User-Email headers, which are only
	accepted in dev mode. Every test starts from an empty in-memory container.
	"""
	original_env = settings.environment
	original_admins = settings.admin_emails
	original_store = settings.moderation_store
	original_workers = settings.moderation_workers_enabled
	original_token = settings.storage_webhook_token
	settings.environment = "dev"
	settings.admin_emails = ()
	settings.moderation_store = "memory"
	settings.moderation_workers_enabled = False
	settings.storage_webhook_token = None
	container.reset()
	try:
		yield
	finally:
		settings.environment = original_env
		settings.admin_emails = original_admins
		settings.moderation_store = original_store
		settings.moderation_workers_enabled = original_workers
		settings.storage_webhook_token = original_token
		container.reset()


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
