from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Iterable, List

from app.backend import constants
from app.backend.chat.types import Attachment, ContentPart, ImagePart, TextPart


logger = logging.getLogger(__name__)

_DATA_URL_PREFIX_RE = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


class EmptyRequestError(ValueError):
	pass


def clean_base64(data: str) -> str:
	"""Strip a ``data:<mime>;base64,`` prefix and every whitespace character."""
	return _WHITESPACE_RE.sub("", _DATA_URL_PREFIX_RE.sub("", data.strip(), count=1))


def _decodes(data: str) -> bool:
	try:
		return bool(base64.b64decode(data, validate=True))
	except (binascii.Error, ValueError):
		return False


def _image_part(attachment: Attachment) -> ImagePart | None:
	mime_type = attachment.mime_type or ""
	if not mime_type.startswith("image/"):
		return None
	if not attachment.data:
		logger.warning("Skipping file %s: no data", attachment.name)
		return None
	cleaned = clean_base64(attachment.data)
	if not cleaned or not _decodes(cleaned):
		logger.warning("Skipping file %s: invalid base64 data", attachment.name)
		return None
	return ImagePart(mime_type=mime_type, data=cleaned)


def assemble_parts(message: str | None, attachments: Iterable[Attachment] = ()) -> List[ContentPart]:
	parts: List[ContentPart] = []
	for attachment in attachments:
		part = _image_part(attachment)
		if part is not None:
			parts.append(part)

	prompt = (message or "").strip()
	if not prompt and parts:
		prompt = constants.DEFAULT_IMAGE_PROMPT
	if prompt:
		parts.append(TextPart(value=prompt))

	if not parts:
		raise EmptyRequestError("No content provided. Please include a message or image.")
	return parts
