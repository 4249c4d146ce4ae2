"""FastAPI application entrypoint."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from strivon.api import ops
from strivon.api.errors import install_error_handlers
from strivon.infra import postgres
from strivon.infra.redis import close_redis, redis_client
from strivon.moderation import configure_postgres as configure_moderation
from strivon.moderation import router as moderation_router
from strivon.moderation import spawn_workers as spawn_moderation_workers
from strivon.obs import init as obs_init
from strivon.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	use_postgres = settings.moderation_store.lower() == "postgres"
	if use_postgres:
		pool = await postgres.init_pool()
		configure_moderation(pool)
	worker_tasks: list[asyncio.Task] = []
	if settings.moderation_workers_enabled:
		worker_tasks.extend(spawn_moderation_workers(redis_client))
		logger.info("moderation workers started", extra={"stream": settings.finalize_stream})
	try:
		yield
	finally:
		for task in worker_tasks:
			task.cancel()
		if worker_tasks:
			await asyncio.gather(*worker_tasks, return_exceptions=True)
			await close_redis()
		if use_postgres:
			await postgres.close_pool()


app = FastAPI(title="Strivon Media Moderation", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
obs_init(app)

app.include_router(ops.router)
app.include_router(moderation_router)
