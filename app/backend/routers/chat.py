from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from app.backend.response import chat_response, success_response
from app.backend.schemas import ApiEnvelope, ChatResponse
from app.backend.services import chat_service


router = APIRouter(prefix="/api/chat", tags=["chat"])


def _http_error(exc: chat_service.ChatServiceError) -> HTTPException:
	return HTTPException(
		status_code=exc.status_code,
		detail={"code": exc.code, "message": exc.message, "details": exc.details},
	)


@router.get("/models", response_model=ApiEnvelope)
def models(request: Request):
	try:
		catalog = chat_service.list_models()
	except chat_service.ChatServiceError as exc:
		raise _http_error(exc) from exc
	return success_response(request=request, data=catalog)


@router.post("", response_model=ChatResponse)
async def chat(request: Request):
	try:
		key = chat_service.api_key()
		payload = chat_service.parse_request(await request.body())
		result = await chat_service.respond(
			message=payload.message,
			attachments=chat_service.attachments_from(payload),
			key=key,
		)
	except chat_service.ChatServiceError as exc:
		raise _http_error(exc) from exc

	return chat_response(
		request=request,
		text=result.text,
		model=result.model,
		attempts=result.attempts,
	)
