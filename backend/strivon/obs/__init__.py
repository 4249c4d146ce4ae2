"""Observability bootstrap: JSON logs, request middleware and build info."""

from __future__ import annotations

from fastapi import FastAPI

from strivon.obs import logging as obs_logging
from strivon.obs import metrics, middleware
from strivon.settings import settings


def init(app: FastAPI) -> None:
	"""Wire observability into ``app`` once; no-op when OBS_ENABLED is false."""
	if not settings.obs_enabled or getattr(app.state, "obs_initialised", False):
		return
	obs_logging.configure_logging()
	middleware.install(app)
	metrics.set_build_info(settings.service_name, settings.git_commit, settings.environment)
	app.state.obs_initialised = True


__all__ = ["init"]
