from app.backend.chat.assembler import EmptyRequestError, assemble_parts, clean_base64
from app.backend.chat.classify import classify_failure, is_retryable
from app.backend.chat.dispatcher import DispatchFailed, DispatcherHooks, FallbackDispatcher
from app.backend.chat.types import Attachment, AttemptOutcome, ContentPart, DispatchResult, ImagePart, TextPart

__all__ = [
	"Attachment",
	"AttemptOutcome",
	"ContentPart",
	"DispatchFailed",
	"DispatchResult",
	"DispatcherHooks",
	"EmptyRequestError",
	"FallbackDispatcher",
	"ImagePart",
	"TextPart",
	"assemble_parts",
	"classify_failure",
	"clean_base64",
	"is_retryable",
]
