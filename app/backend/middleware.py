from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.backend.response import error_response


logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next) -> Response:
		request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
		request.state.request_id = request_id
		start = time.perf_counter()
		try:
			response = await call_next(request)
		except Exception as exc:
			# Unhandled faults keep the request id headers.
			logger.exception("Unexpected error in API route")
			response = JSONResponse(
				status_code=500,
				content=error_response(
					code="internal_error",
					message="An unexpected error occurred.",
					request=request,
					details=str(exc) or "Unknown error",
				),
			)
		process_time = time.perf_counter() - start
		response.headers["X-Request-ID"] = request_id
		response.headers["X-Process-Time"] = f"{process_time:.6f}"
		logger.info(
			"%s %s -> %d in %.3fs (request_id=%s)",
			request.method,
			request.url.path,
			response.status_code,
			process_time,
			request_id,
		)
		return response
