from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiEnvelope(BaseModel):
	model_config = ConfigDict(extra="allow")

	ok: bool
	generated_at: str
	request_id: Optional[str] = None
	data: Optional[Dict[str, Any]] = None


class ChatFile(BaseModel):
	model_config = ConfigDict(extra="ignore")

	name: str = Field(default="", description="Original file name.")
	type: Optional[str] = Field(default=None, description="Declared MIME type, e.g. image/png.")
	size: Optional[int] = Field(default=None, ge=0)
	data: Optional[str] = Field(default=None, description="Base64 payload, optionally a data URL.")


class ChatRequest(BaseModel):
	model_config = ConfigDict(extra="ignore")

	message: Optional[str] = Field(default=None, description="User message text.")
	files: Optional[List[ChatFile]] = Field(default=None, description="Attached files in input order.")


class ChatResponse(BaseModel):
	model_config = ConfigDict(extra="allow")

	response: str
	model: Optional[str] = None
	attempts: Optional[int] = None
	request_id: Optional[str] = None
