import base64
import os
from unittest import IsolatedAsyncioTestCase, TestCase
from unittest.mock import MagicMock, patch

from google.genai import errors

from app.backend import constants
from app.backend.chat import Attachment
from app.backend.services import chat_service


_PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(16))
_PNG_B64 = base64.b64encode(_PNG_BYTES).decode("ascii")


class _UpstreamError(Exception):
	def __init__(self, code: int, message: str):
		super().__init__(message)
		self.code = code
		self.message = message


class _FakeModels:
	def __init__(self, *steps):
		self._steps = list(steps)
		self.calls = []

	async def generate_content(self, *, model, contents, config=None):
		self.calls.append({"model": model, "contents": contents, "config": config})
		step = self._steps.pop(0)
		if isinstance(step, Exception):
			raise step
		return type("FakeResponse", (), {"text": step})()


class _FakeClient:
	def __init__(self, *steps):
		self.models = _FakeModels(*steps)
		self.aio = type("FakeAio", (), {"models": self.models})()


def _env(**overrides):
	values = {
		"GEMINI_API_KEY": "test-key",
		"CHAT_MODELS": "model-a,model-b,model-c",
		"CHAT_RETRY_BASE_DELAY_S": "0",
	}
	values.update(overrides)
	return patch.dict(os.environ, values, clear=False)


def _client_patch(client):
	return patch("app.backend.services.chat_service._build_genai_client", return_value=client)


class ChatServiceRespondTests(IsolatedAsyncioTestCase):
	async def test_success_returns_text_and_sends_multipart_contents(self) -> None:
		client = _FakeClient("A tiny PNG.")
		with _env(), _client_patch(client):
			result = await chat_service.respond(
				message="",
				attachments=[Attachment(name="pic.png", mime_type="image/png", data="data:image/png;base64," + _PNG_B64)],
			)
		self.assertEqual(result.text, "A tiny PNG.")
		self.assertEqual(result.model, "model-a")
		self.assertEqual(result.attempts, 1)

		call = client.models.calls[0]
		self.assertEqual(call["model"], "model-a")
		image, text = call["contents"]
		self.assertEqual(image.inline_data.data, _PNG_BYTES)
		self.assertEqual(image.inline_data.mime_type, "image/png")
		self.assertEqual(text.text, constants.DEFAULT_IMAGE_PROMPT)
		self.assertEqual(call["config"].system_instruction, constants.FORMATTING_INSTRUCTION)

	async def test_falls_back_across_configured_models(self) -> None:
		client = _FakeClient(
			_UpstreamError(503, "The model is overloaded."),
			_UpstreamError(429, "Resource has been exhausted"),
			"hello from c",
		)
		with _env(), _client_patch(client):
			result = await chat_service.respond(message="hi")
		self.assertEqual(result.text, "hello from c")
		self.assertEqual([call["model"] for call in client.models.calls], ["model-a", "model-b", "model-c"])

	async def test_missing_api_key_is_configuration_error(self) -> None:
		with _env():
			os.environ.pop("GEMINI_API_KEY", None)
			with self.assertRaises(chat_service.ChatServiceError) as ctx:
				await chat_service.respond(message="hi")
		self.assertEqual(ctx.exception.status_code, 500)
		self.assertEqual(ctx.exception.code, "configuration_error")
		self.assertIn("GEMINI_API_KEY", ctx.exception.message)

	async def test_empty_request_makes_no_upstream_call(self) -> None:
		builder = MagicMock()
		with _env(), patch("app.backend.services.chat_service._build_genai_client", builder):
			with self.assertRaises(chat_service.ChatServiceError) as ctx:
				await chat_service.respond(message="   ", attachments=[])
		self.assertEqual(ctx.exception.status_code, 400)
		self.assertEqual(ctx.exception.code, "empty_request")
		builder.assert_not_called()

	async def test_quota_message_on_final_failure_maps_to_429(self) -> None:
		client = _FakeClient(
			_UpstreamError(500, "Internal error"),
			_UpstreamError(500, "Internal error"),
			_UpstreamError(429, "Quota exceeded for quota metric"),
		)
		with _env(), _client_patch(client):
			with self.assertRaises(chat_service.ChatServiceError) as ctx:
				await chat_service.respond(message="hi")
		self.assertEqual(ctx.exception.status_code, 429)
		self.assertEqual(ctx.exception.code, "rate_limited")
		self.assertEqual(ctx.exception.details, "Quota exceeded for quota metric")

	async def test_invalid_api_key_stops_chain_and_maps_to_401(self) -> None:
		client = _FakeClient(_UpstreamError(400, "API key not valid. Please pass a valid API key."))
		with _env(), _client_patch(client):
			with self.assertRaises(chat_service.ChatServiceError) as ctx:
				await chat_service.respond(message="hi")
		self.assertEqual(len(client.models.calls), 1)
		self.assertEqual(ctx.exception.status_code, 401)
		self.assertEqual(ctx.exception.code, "unauthenticated")

	async def test_sdk_client_error_stops_chain(self) -> None:
		sdk_error = errors.ClientError(
			403,
			{"error": {"code": 403, "message": "Permission denied on resource.", "status": "PERMISSION_DENIED"}},
		)
		client = _FakeClient(sdk_error, "unused")
		with _env(), _client_patch(client):
			with self.assertRaises(chat_service.ChatServiceError) as ctx:
				await chat_service.respond(message="hi")
		self.assertEqual(len(client.models.calls), 1)
		self.assertEqual(ctx.exception.status_code, 500)
		self.assertEqual(ctx.exception.code, "non_retryable_upstream")
		self.assertIn("Permission denied", ctx.exception.details)

	async def test_empty_text_everywhere_is_upstream_failure(self) -> None:
		client = _FakeClient(None, "", None)
		with _env(), _client_patch(client):
			with self.assertRaises(chat_service.ChatServiceError) as ctx:
				await chat_service.respond(message="hi")
		self.assertEqual(ctx.exception.status_code, 500)
		self.assertEqual(ctx.exception.code, "upstream_failure")
		self.assertEqual(ctx.exception.details, "No text response received from API")

	async def test_non_finite_timeout_is_configuration_error_not_internal(self) -> None:
		builder = MagicMock()
		for raw in ("nan", "inf"):
			with _env(CHAT_UPSTREAM_TIMEOUT_S=raw), patch("app.backend.services.chat_service._build_genai_client", builder):
				with self.assertRaises(chat_service.ChatServiceError) as ctx:
					await chat_service.respond(message="hi")
			self.assertEqual(ctx.exception.status_code, 500)
			self.assertEqual(ctx.exception.code, "configuration_error")
		builder.assert_not_called()

	async def test_backoff_uses_configured_base_delay(self) -> None:
		delays = []

		async def record(delay: float) -> None:
			delays.append(delay)

		client = _FakeClient(_UpstreamError(503, "x"), _UpstreamError(503, "y"), "ok")
		with _env(CHAT_RETRY_BASE_DELAY_S="2.5"), _client_patch(client):
			await chat_service.respond(message="hi", sleep=record)
		self.assertEqual(delays, [2.5, 5.0])


class ChatServiceConfigTests(TestCase):
	def test_default_model_chain(self) -> None:
		with patch.dict(os.environ, {}, clear=False):
			os.environ.pop("CHAT_MODELS", None)
			self.assertEqual(chat_service.model_chain(), list(constants.DEFAULT_MODEL_CHAIN))

	def test_model_chain_env_is_deduplicated_in_order(self) -> None:
		with _env(CHAT_MODELS=" b , a,b,, c "):
			self.assertEqual(chat_service.model_chain(), ["b", "a", "c"])

	def test_invalid_numeric_env_is_configuration_error(self) -> None:
		with _env(CHAT_RETRY_BASE_DELAY_S="soon"):
			with self.assertRaises(chat_service.ChatServiceError) as ctx:
				chat_service.retry_base_delay()
		self.assertEqual(ctx.exception.code, "configuration_error")
		with _env(CHAT_UPSTREAM_TIMEOUT_S="0"):
			with self.assertRaises(chat_service.ChatServiceError):
				chat_service.upstream_timeout()

	def test_non_finite_numeric_env_is_configuration_error(self) -> None:
		for raw in ("nan", "inf", "-inf", "NaN", "Infinity"):
			with _env(CHAT_RETRY_BASE_DELAY_S=raw):
				with self.assertRaises(chat_service.ChatServiceError) as ctx:
					chat_service.retry_base_delay()
			self.assertEqual(ctx.exception.code, "configuration_error")
			self.assertEqual(ctx.exception.status_code, 500)
			with _env(CHAT_UPSTREAM_TIMEOUT_S=raw):
				with self.assertRaises(chat_service.ChatServiceError) as ctx:
					chat_service.upstream_timeout()
			self.assertEqual(ctx.exception.code, "configuration_error")
		with _env(CHAT_RETRY_MAX_DELAY_S="inf"):
			with self.assertRaises(chat_service.ChatServiceError):
				chat_service.retry_max_delay()

	def test_list_models_reports_readiness(self) -> None:
		with _env():
			catalog = chat_service.list_models()
		self.assertEqual(catalog["models"], ["model-a", "model-b", "model-c"])
		self.assertEqual(catalog["retry_base_delay_s"], 0.0)
		self.assertTrue(catalog["provider_ready"])


class ChatServiceParseTests(TestCase):
	def test_invalid_json_is_malformed_input(self) -> None:
		with self.assertRaises(chat_service.ChatServiceError) as ctx:
			chat_service.parse_request(b"{not json")
		self.assertEqual(ctx.exception.status_code, 400)
		self.assertEqual(ctx.exception.code, "malformed_input")
		self.assertEqual(ctx.exception.message, "Invalid request format. Expected JSON.")

	def test_wrong_shape_is_malformed_input(self) -> None:
		with self.assertRaises(chat_service.ChatServiceError) as ctx:
			chat_service.parse_request(b'{"message": "hi", "files": "nope"}')
		self.assertEqual(ctx.exception.code, "malformed_input")
		self.assertIn("files", ctx.exception.details)

	def test_files_become_attachments(self) -> None:
		payload = chat_service.parse_request(
			b'{"message": "hi", "files": [{"name": "a.png", "type": "image/png", "size": 3, "data": "QUJD"}, {"name": "b"}]}'
		)
		attachments = chat_service.attachments_from(payload)
		self.assertEqual(attachments[0], Attachment(name="a.png", mime_type="image/png", data="QUJD"))
		self.assertEqual(attachments[1], Attachment(name="b", mime_type="", data=None))

	def test_missing_files_means_no_attachments(self) -> None:
		payload = chat_service.parse_request(b'{"message": "hi", "files": null}')
		self.assertEqual(chat_service.attachments_from(payload), [])
