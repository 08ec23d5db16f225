from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from app.backend.chat.classify import classify_failure, error_message, error_status, is_retryable
from app.backend.chat.types import AttemptOutcome, ContentPart, DispatchResult, ErrorKind, ModelChain


logger = logging.getLogger(__name__)

GenerateFn = Callable[[str, Sequence[ContentPart]], Awaitable[Optional[str]]]
SleepFn = Callable[[float], Awaitable[None]]

_NO_TEXT_MESSAGE = "No text response received from API"


class DispatchFailed(Exception):
	def __init__(self, *, kind: ErrorKind, outcome: AttemptOutcome, attempts: int, stopped_early: bool):
		super().__init__(outcome.message)
		self.kind = kind
		self.outcome = outcome
		self.attempts = attempts
		self.stopped_early = stopped_early


@dataclass
class DispatcherHooks:
	generate: GenerateFn
	sleep: SleepFn = asyncio.sleep


class FallbackDispatcher:
	"""Try each model in priority order until one returns text.

	Attempts are sequential. A failed attempt is followed by a wait of
	``base_delay_s * (index + 1)`` seconds (optionally capped) before the next
	model, unless the failure was a non-retryable client error or the chain
	is exhausted.
	"""

	def __init__(
		self,
		models: Sequence[str],
		hooks: DispatcherHooks,
		*,
		base_delay_s: float = 1.0,
		max_delay_s: float | None = None,
	):
		chain: ModelChain = tuple(models)
		if not chain:
			raise ValueError("FallbackDispatcher requires at least one model.")
		if base_delay_s < 0:
			raise ValueError("base_delay_s must not be negative.")
		self._models = chain
		self._hooks = hooks
		self._base_delay_s = base_delay_s
		self._max_delay_s = max_delay_s

	@property
	def models(self) -> ModelChain:
		return self._models

	def backoff_delay(self, index: int) -> float:
		delay = self._base_delay_s * (index + 1)
		if self._max_delay_s is not None:
			delay = min(delay, self._max_delay_s)
		return delay

	async def _attempt(self, model: str, parts: Sequence[ContentPart]) -> AttemptOutcome:
		try:
			text = await self._hooks.generate(model, parts)
		except Exception as exc:
			return AttemptOutcome(model=model, ok=False, status=error_status(exc), message=error_message(exc))
		if not text:
			return AttemptOutcome(model=model, ok=False, message=_NO_TEXT_MESSAGE)
		return AttemptOutcome(model=model, ok=True, text=text)

	async def dispatch(self, parts: Sequence[ContentPart]) -> DispatchResult:
		total = len(self._models)
		last_failure: AttemptOutcome | None = None
		stopped_early = False
		attempts = 0

		for index, model in enumerate(self._models):
			if index > 0:
				logger.info("Retry attempt %d/%d using model: %s", index, total - 1, model)
			attempts += 1
			outcome = await self._attempt(model, parts)
			if outcome.ok:
				return DispatchResult(text=outcome.text or "", model=model, attempts=attempts)

			last_failure = outcome
			logger.warning(
				"Model %s failed (attempt %d/%d): %s",
				model,
				index + 1,
				total,
				outcome.message,
			)
			if not is_retryable(outcome.status):
				logger.warning("Stopping retries due to client error %s", outcome.status)
				stopped_early = True
				break
			if index + 1 < total:
				await self._hooks.sleep(self.backoff_delay(index))

		if last_failure is None:
			raise RuntimeError("Fallback chain finished without attempting a model.")
		kind = classify_failure(last_failure.message, stopped_early=stopped_early)
		logger.error(
			"All retry attempts failed after %d attempt(s); last model %s: %s",
			attempts,
			last_failure.model,
			last_failure.message,
		)
		raise DispatchFailed(kind=kind, outcome=last_failure, attempts=attempts, stopped_early=stopped_early)
