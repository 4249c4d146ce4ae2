"""Operations endpoints providing health checks and metrics."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from strivon.infra.postgres import get_pool
from strivon.infra.redis import redis_client
from strivon.settings import settings

router = APIRouter(prefix="", tags=["ops"])


async def require_metrics_access(
	X_Admin_Token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
) -> None:
	if settings.obs_metrics_public:
		return
	token = settings.obs_admin_token
	if not token:
		# Fail closed: if no token is configured, no admin access is allowed.
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	if X_Admin_Token != token:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return {"status": "ok", "service": settings.service_name, "version": settings.git_commit}


@router.get("/health/ready")
async def health_ready() -> Response:
	checks: dict[str, str] = {}
	if settings.moderation_store.lower() == "postgres":
		try:
			pool = await get_pool()
			async with pool.acquire() as conn:
				await conn.execute("SELECT 1")
			checks["postgres"] = "ok"
		except Exception:
			checks["postgres"] = "error"
	if settings.moderation_workers_enabled:
		try:
			await redis_client.ping()
			checks["redis"] = "ok"
		except Exception:
			checks["redis"] = "error"
	healthy = all(value == "ok" for value in checks.values())
	payload = {"status": "ok" if healthy else "degraded", "checks": checks}
	status_code = status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
	return JSONResponse(content=payload, status_code=status_code)


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	payload = generate_latest()
	return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
