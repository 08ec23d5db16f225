APP_NAME = "FlashChat"
APP_VERSION = "1.0.0"
DEFAULT_CORS_ALLOW_ORIGINS = [
	"http://localhost",
	"http://127.0.0.1",
	"http://localhost:3000",
]
DEFAULT_TRUSTED_HOSTS = [
	"127.0.0.1",
	"localhost",
	"testserver",
]

# Priority order is attempt order.
DEFAULT_MODEL_CHAIN = (
	"gemini-3-flash-preview",
	"gemini-2.5-flash",
	"gemini-2.5-flash-lite",
	"gemini-2.5-flash-tts",
	"gemma-3-27b-it",
)
DEFAULT_RETRY_BASE_DELAY_S = 1.0
DEFAULT_UPSTREAM_TIMEOUT_S = 60.0

DEFAULT_IMAGE_PROMPT = "What is in this image?"

FORMATTING_INSTRUCTION = """You can use the following Markdown formatting in your responses:
- Bold text: **text** or __text__
- Italic text: *text* or _text_
- Inline code: `code`
- Links: [text](url)
- Line breaks: Use regular line breaks

Please use these formatting options naturally in your responses to emphasize important points and improve readability."""
