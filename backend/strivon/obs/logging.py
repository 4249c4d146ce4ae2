"""Structured JSON logging for the moderation service.

Request-scoped fields (request id, acting user, media id) live in
contextvars so any logger call inside a request or a worker iteration picks
them up without threading them through every function.
"""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from strivon.settings import settings

_LOGGER_NAME = "strivon"
_HANDLER_MARKER = "_strivon_json_handler"

_CONTEXT: Mapping[str, ContextVar[Optional[str]]] = {
	"request_id": ContextVar("obs_request_id", default=None),
	"actor_id": ContextVar("obs_actor_id", default=None),
	"media_id": ContextVar("obs_media_id", default=None),
}

# Admin decisions and bans form the moderation audit trail; never sample them out.
_UNSAMPLED_PREFIXES = ("strivon.moderation",)

_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "asyncio")

_SECRET_KEYWORDS = ("token", "secret", "authorization", "password", "cookie")
_EMAIL_KEYWORDS = ("email",)

_MAX_STRING_LENGTH = 256
_MAX_COLLECTION_ITEMS = 10

_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "taskName"}


def bind_context(**fields: Optional[str]) -> Dict[str, Token]:
	"""Bind known context fields and return the tokens needed to reset them."""
	tokens: Dict[str, Token] = {}
	for key, value in fields.items():
		var = _CONTEXT.get(key)
		if var is None or value is None:
			continue
		tokens[key] = var.set(value)
	return tokens


def reset_context(tokens: Dict[str, Token]) -> None:
	for key, token in tokens.items():
		_CONTEXT[key].reset(token)


def current_request_id() -> Optional[str]:
	return _CONTEXT["request_id"].get()


def mask_email(value: str) -> str:
	"""Keep the domain and first character so operators can still tell admins apart."""
	local, at, domain = value.partition("@")
	if not at:
		return "[redacted]"
	return f"{local[:1]}***@{domain}"


def _scrub(key: str, value: Any) -> Any:
	lowered = key.lower()
	if any(keyword in lowered for keyword in _SECRET_KEYWORDS):
		return "[redacted]"
	if any(keyword in lowered for keyword in _EMAIL_KEYWORDS) and isinstance(value, str):
		return mask_email(value)
	if isinstance(value, str):
		return value if len(value) <= _MAX_STRING_LENGTH else f"{value[:_MAX_STRING_LENGTH]}..."
	if isinstance(value, Mapping):
		items = list(value.items())
		scrubbed = {str(k): _scrub(str(k), v) for k, v in items[:_MAX_COLLECTION_ITEMS]}
		if len(items) > _MAX_COLLECTION_ITEMS:
			scrubbed["..."] = f"+{len(items) - _MAX_COLLECTION_ITEMS} keys"
		return scrubbed
	if isinstance(value, (list, tuple, set, frozenset)):
		values = [_scrub(key, item) for item in list(value)[:_MAX_COLLECTION_ITEMS]]
		if len(value) > _MAX_COLLECTION_ITEMS:
			values.append(f"+{len(value) - _MAX_COLLECTION_ITEMS} items")
		return values
	return value


class JSONLogFormatter(logging.Formatter):
	"""One JSON object per line: event, level, service identity, context and extras."""

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		payload: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"event": record.getMessage(),
			"logger": record.name,
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		for key, var in _CONTEXT.items():
			value = var.get()
			if value:
				payload[key] = value
		for key, value in record.__dict__.items():
			if key in _RESERVED_ATTRS or key in payload or key.startswith("_"):
				continue
			payload[key] = _scrub(key, value)
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		return json.dumps(payload, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Sample info-level noise; warnings, errors and moderation records always pass."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO or record.name.startswith(_UNSAMPLED_PREFIXES):
			return True
		rate = max(0.0, min(1.0, settings.obs_log_sampling_rate_info))
		return rate >= 1.0 or random.random() < rate


def configure_logging() -> logging.Logger:
	"""Install the JSON handler on the root logger, replacing a previous install."""
	root = logging.getLogger()
	for handler in list(root.handlers):
		if getattr(handler, _HANDLER_MARKER, False):
			root.removeHandler(handler)
	handler = logging.StreamHandler()
	setattr(handler, _HANDLER_MARKER, True)
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root.addHandler(handler)
	root.setLevel(settings.obs_log_level)
	for name in _NOISY_LOGGERS:
		logging.getLogger(name).setLevel(logging.WARNING)
	return logging.getLogger(_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
