from __future__ import annotations

import base64
import logging
import math
import os
from typing import Any, Dict, List, Optional, Sequence

from google import genai
from google.genai import types
from pydantic import ValidationError

from app.backend import constants
from app.backend.chat import (
	Attachment,
	ContentPart,
	DispatchFailed,
	DispatcherHooks,
	DispatchResult,
	EmptyRequestError,
	FallbackDispatcher,
	ImagePart,
	assemble_parts,
)
from app.backend.chat.dispatcher import SleepFn
from app.backend.chat.types import ERROR_STATUS, ERROR_SUMMARY, ErrorKind
from app.backend.schemas import ChatRequest


logger = logging.getLogger(__name__)


class ChatServiceError(Exception):
	def __init__(self, *, status_code: int, code: str, message: str, details: str | None = None):
		super().__init__(message)
		self.status_code = status_code
		self.code = code
		self.message = message
		self.details = details or ""


def _service_error(kind: ErrorKind, details: str | None = None, message: str | None = None) -> ChatServiceError:
	return ChatServiceError(
		status_code=ERROR_STATUS[kind],
		code=kind,
		message=message or ERROR_SUMMARY[kind],
		details=details,
	)


def api_key() -> str:
	key = os.getenv("GEMINI_API_KEY", "").strip()
	if not key:
		logger.error("GEMINI_API_KEY is not configured")
		raise _service_error("configuration_error")
	return key


def provider_ready() -> bool:
	return bool(os.getenv("GEMINI_API_KEY", "").strip())


def _float_env(name: str, default: float | None, *, allow_zero: bool) -> float | None:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = float(raw)
	except ValueError as exc:
		raise _service_error(
			"configuration_error",
			message=f"{name} must be numeric.",
		) from exc
	if not math.isfinite(value):
		raise _service_error(
			"configuration_error",
			message=f"{name} must be a finite number.",
		)
	if value < 0 or (value == 0 and not allow_zero):
		bound = "zero or greater" if allow_zero else "greater than zero"
		raise _service_error(
			"configuration_error",
			message=f"{name} must be {bound}.",
		)
	return value


def retry_base_delay() -> float:
	value = _float_env("CHAT_RETRY_BASE_DELAY_S", constants.DEFAULT_RETRY_BASE_DELAY_S, allow_zero=True)
	return constants.DEFAULT_RETRY_BASE_DELAY_S if value is None else value


def retry_max_delay() -> float | None:
	return _float_env("CHAT_RETRY_MAX_DELAY_S", None, allow_zero=True)


def upstream_timeout() -> float:
	value = _float_env("CHAT_UPSTREAM_TIMEOUT_S", constants.DEFAULT_UPSTREAM_TIMEOUT_S, allow_zero=False)
	return constants.DEFAULT_UPSTREAM_TIMEOUT_S if value is None else value


def model_chain() -> List[str]:
	raw = os.getenv("CHAT_MODELS", "").strip()
	models = [item.strip() for item in raw.split(",") if item.strip()]
	if not models:
		models = list(constants.DEFAULT_MODEL_CHAIN)
	seen: set[str] = set()
	unique: List[str] = []
	for model in models:
		if model in seen:
			continue
		seen.add(model)
		unique.append(model)
	return unique


def list_models() -> Dict[str, object]:
	return {
		"models": model_chain(),
		"retry_base_delay_s": retry_base_delay(),
		"provider_ready": provider_ready(),
	}


def parse_request(raw: bytes | str) -> ChatRequest:
	try:
		return ChatRequest.model_validate_json(raw)
	except ValidationError as exc:
		errors = exc.errors()
		if any(issue.get("type") == "json_invalid" for issue in errors):
			logger.error("Failed to parse request body: %s", exc)
			raise _service_error("malformed_input") from exc
		issues = []
		for issue in errors:
			loc = ".".join(str(part) for part in issue.get("loc", []))
			msg = issue.get("msg", "Invalid value.")
			issues.append(f"{loc}: {msg}" if loc else msg)
		raise _service_error(
			"malformed_input",
			details="; ".join(issues),
			message="Invalid request payload.",
		) from exc


def attachments_from(payload: ChatRequest) -> List[Attachment]:
	return [
		Attachment(name=item.name, mime_type=item.type or "", data=item.data)
		for item in payload.files or []
	]


def _build_genai_client(*, api_key: str, timeout_s: float):
	return genai.Client(
		api_key=api_key,
		http_options=types.HttpOptions(timeout=int(timeout_s * 1000)),
	)


def _genai_part(part: ContentPart) -> types.Part:
	if isinstance(part, ImagePart):
		return types.Part.from_bytes(data=base64.b64decode(part.data), mime_type=part.mime_type)
	return types.Part.from_text(text=part.value)


def _generate_with(client: Any):
	config = types.GenerateContentConfig(system_instruction=constants.FORMATTING_INSTRUCTION)

	async def generate(model: str, parts: Sequence[ContentPart]) -> Optional[str]:
		response = await client.aio.models.generate_content(
			model=model,
			contents=[_genai_part(part) for part in parts],
			config=config,
		)
		return response.text

	return generate


def build_dispatcher(*, api_key: str, sleep: SleepFn | None = None) -> FallbackDispatcher:
	client = _build_genai_client(api_key=api_key, timeout_s=upstream_timeout())
	hooks = DispatcherHooks(generate=_generate_with(client))
	if sleep is not None:
		hooks.sleep = sleep
	return FallbackDispatcher(
		model_chain(),
		hooks,
		base_delay_s=retry_base_delay(),
		max_delay_s=retry_max_delay(),
	)


async def respond(
	*,
	message: str | None,
	attachments: Sequence[Attachment] = (),
	key: str | None = None,
	sleep: SleepFn | None = None,
) -> DispatchResult:
	resolved_key = key or api_key()
	try:
		parts = assemble_parts(message, attachments)
	except EmptyRequestError as exc:
		raise _service_error("empty_request") from exc

	try:
		dispatcher = build_dispatcher(api_key=resolved_key, sleep=sleep)
		return await dispatcher.dispatch(parts)
	except DispatchFailed as exc:
		raise _service_error(exc.kind, details=exc.outcome.message) from exc
	except ChatServiceError:
		raise
	except Exception as exc:
		logger.exception("Unexpected error in chat pipeline")
		raise _service_error("internal_error", details=str(exc) or "Unknown error") from exc
