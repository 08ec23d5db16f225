from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Optional, Tuple, Union


ErrorKind = Literal[
	"configuration_error",
	"malformed_input",
	"empty_request",
	"rate_limited",
	"unauthenticated",
	"non_retryable_upstream",
	"upstream_failure",
	"internal_error",
]

ERROR_STATUS: Dict[str, int] = {
	"configuration_error": 500,
	"malformed_input": 400,
	"empty_request": 400,
	"rate_limited": 429,
	"unauthenticated": 401,
	"non_retryable_upstream": 500,
	"upstream_failure": 500,
	"internal_error": 500,
}

ERROR_SUMMARY: Dict[str, str] = {
	"configuration_error": "API key not configured. Please add GEMINI_API_KEY to your environment variables.",
	"malformed_input": "Invalid request format. Expected JSON.",
	"empty_request": "No content provided. Please include a message or image.",
	"rate_limited": "Rate limit exceeded. Please wait a moment and try again.",
	"unauthenticated": "API authentication failed. Please check your API key configuration.",
	"non_retryable_upstream": "Failed to generate response from API.",
	"upstream_failure": "Failed to generate response from API.",
	"internal_error": "An unexpected error occurred.",
}


@dataclass(frozen=True)
class Attachment:
	name: str
	mime_type: str
	data: Optional[str]


@dataclass(frozen=True)
class TextPart:
	value: str
	kind: Literal["text"] = "text"


@dataclass(frozen=True)
class ImagePart:
	mime_type: str
	data: str
	kind: Literal["image"] = "image"


ContentPart = Union[TextPart, ImagePart]


@dataclass(frozen=True)
class AttemptOutcome:
	model: str
	ok: bool
	text: Optional[str] = None
	status: Optional[int] = None
	message: str = ""


@dataclass(frozen=True)
class DispatchResult:
	text: str
	model: str
	attempts: int


ModelChain = Tuple[str, ...]
