from __future__ import annotations

from typing import Dict, List

from app.backend import constants
from app.backend.services import chat_service


def get_summary() -> Dict[str, object]:
	warnings: List[str] = []
	ready = chat_service.provider_ready()
	if not ready:
		warnings.append("Gemini API key not configured. Set GEMINI_API_KEY.")
	try:
		models = chat_service.model_chain()
		base_delay = chat_service.retry_base_delay()
	except chat_service.ChatServiceError as exc:
		warnings.append(exc.message)
		models = list(constants.DEFAULT_MODEL_CHAIN)
		base_delay = constants.DEFAULT_RETRY_BASE_DELAY_S
	return {
		"status": "ok",
		"app": {"name": constants.APP_NAME, "version": constants.APP_VERSION},
		"provider": {
			"ready": ready,
			"warnings": warnings,
			"model_count": len(models),
			"primary_model": models[0],
			"retry_base_delay_s": base_delay,
		},
	}
