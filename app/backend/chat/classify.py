"""Failure classification for upstream model errors.

Both decisions live here so the text heuristic can be swapped for structured
status handling without touching the dispatcher.
"""
from __future__ import annotations

from typing import Any, Optional

from app.backend.chat.types import ErrorKind


_RATE_LIMIT_MARKERS = ("rate limit", "quota")
_AUTH_MARKERS = ("api key", "authentication")
_RETRYABLE_CLIENT_STATUSES = {404, 429}
_UNKNOWN_ERROR = "Unknown error"


def is_retryable(status: Optional[int]) -> bool:
	"""Client errors stop the chain, except 429 (quota) and 404 (one missing model)."""
	if status is None:
		return True
	if 400 <= status < 500:
		return status in _RETRYABLE_CLIENT_STATUSES
	return True


def classify_failure(message: str | None, *, stopped_early: bool = False) -> ErrorKind:
	lowered = (message or "").lower()
	if any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
		return "rate_limited"
	if any(marker in lowered for marker in _AUTH_MARKERS):
		return "unauthenticated"
	if stopped_early:
		return "non_retryable_upstream"
	return "upstream_failure"


def error_status(exc: BaseException) -> Optional[int]:
	# google-genai exposes ``code``; other SDKs use ``status_code`` or ``status``.
	for attr in ("status_code", "code", "status"):
		value = getattr(exc, attr, None)
		if isinstance(value, int) and not isinstance(value, bool):
			return value
	return None


def _message_of(value: Any) -> str | None:
	if isinstance(value, dict):
		candidate = value.get("message")
	else:
		candidate = getattr(value, "message", None)
	if isinstance(candidate, str) and candidate.strip():
		return candidate.strip()
	return None


def error_message(exc: BaseException) -> str:
	nested = getattr(exc, "error", None)
	if nested is not None:
		message = _message_of(nested)
		if message:
			return message
	message = _message_of(exc)
	if message:
		return message
	text = str(exc).strip()
	return text or _UNKNOWN_ERROR
