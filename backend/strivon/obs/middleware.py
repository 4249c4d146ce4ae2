"""Per-request observability: request ids, context binding, latency metrics and access logs."""

from __future__ import annotations

import time
from uuid import uuid4

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from strivon.obs import logging as obs_logging
from strivon.obs import metrics
from strivon.settings import settings

REQUEST_ID_HEADER = "X-Request-Id"

# Probes and scrapes hit these constantly; they still get metrics but no access log.
_QUIET_PATHS = frozenset({"/health/live", "/health/ready", "/metrics"})

_SLOW_REQUEST_SECONDS = 2.0

_access_log = obs_logging.get_logger("strivon.http")


def _route_template(request: Request) -> str:
	route = request.scope.get("route")
	return getattr(route, "path", None) or request.url.path


class ObservabilityMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		if not settings.obs_enabled:
			return await call_next(request)

		request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
		request.state.request_id = request_id
		tokens = obs_logging.bind_context(
			request_id=request_id,
			actor_id=request.headers.get("X-User-Id"),
		)
		started = time.perf_counter()
		try:
			response = await call_next(request)
		except Exception:
			# Route is only resolved once the router ran, so read it here.
			metrics.observe_request(_route_template(request), request.method, 500, time.perf_counter() - started)
			_access_log.exception("http_request_failed", extra={"method": request.method, "path": request.url.path})
			obs_logging.reset_context(tokens)
			raise

		elapsed = time.perf_counter() - started
		route = _route_template(request)
		metrics.observe_request(route, request.method, response.status_code, elapsed)
		if request.url.path not in _QUIET_PATHS:
			level = "warning" if elapsed >= _SLOW_REQUEST_SECONDS else "info"
			getattr(_access_log, level)(
				"http_request",
				extra={
					"route": route,
					"method": request.method,
					"status": response.status_code,
					"latency_ms": round(elapsed * 1000, 3),
				},
			)
		obs_logging.reset_context(tokens)
		response.headers.setdefault(REQUEST_ID_HEADER, request_id)
		return response


def install(app: FastAPI) -> None:
	app.add_middleware(ObservabilityMiddleware)
