"""
Retrying transport to the generative backend.

One OpenAI-compatible chat completion per request. The SDK's own retries
are disabled; this layer owns the policy:

- each attempt is bounded by ``asyncio.wait_for(request_timeout_s)``
- timeouts, connection failures and retryable status codes are retried with
  exponential backoff (tenacity), up to ``max_attempts`` attempts in total
- any other failure surfaces at once as ``UpstreamError``
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import structlog
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI
from pydantic import BaseModel, ConfigDict
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from meal_processor.config import Settings
from meal_processor.domain.analysis.prompt_assembler import PromptPayload
from meal_processor.domain.shared.errors import UpstreamError

logger = structlog.get_logger(__name__)


class TransportReply(BaseModel):
    """Raw, untrusted reply text plus how many attempts it took."""

    model_config = ConfigDict(frozen=True)

    text: str
    attempts: int
    status_code: Optional[int] = None


class TransientBackendError(Exception):
    """A failed attempt that may succeed if repeated."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def build_messages(payload: PromptPayload) -> List[Dict[str, Any]]:
    """Chat messages for ``payload``; the image travels as its own content part."""
    if payload.image is None:
        return [{"role": "user", "content": payload.text}]
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": payload.text},
                {"type": "image_url", "image_url": {"url": payload.image.data_url()}},
            ],
        }
    ]


class RetryingTransport:
    """
    Send one prompt to the backend with bounded timeout and retries.

    Example:
        >>> transport = RetryingTransport(load_settings())
        >>> reply = await transport.send(payload)
        >>> reply.attempts
        1
    """

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None) -> None:
        """
        Args:
            settings: Process configuration (credential, model, retry policy)
            client: Optional pre-configured AsyncOpenAI client (for testing);
                when given it is used as-is and not closed
        """
        self._settings = settings
        self._client = client

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncOpenAI]:
        if self._client is not None:
            yield self._client
            return
        client = AsyncOpenAI(
            api_key=self._settings.require_api_key(),
            base_url=self._settings.base_url,
            timeout=self._settings.request_timeout_s,
            max_retries=0,
        )
        async with client:
            yield client

    async def send(self, payload: PromptPayload) -> TransportReply:
        """
        Perform the outbound call.

        Returns:
            TransportReply with the reply text and attempts consumed

        Raises:
            UpstreamError: Non-retryable failure, empty reply, or retry
                budget exhausted (carries the last failure's message)
        """
        s = self._settings
        messages = build_messages(payload)
        attempts = 0

        retrying = AsyncRetrying(
            stop=stop_after_attempt(s.max_attempts),
            wait=wait_exponential(multiplier=s.retry_backoff_s, max=s.retry_backoff_max_s),
            retry=retry_if_exception_type(TransientBackendError),
            before_sleep=self._log_retry,
            reraise=True,
        )

        async with self._session() as client:
            try:
                async for attempt in retrying:
                    with attempt:
                        attempts = attempt.retry_state.attempt_number
                        text = await self._attempt(client, messages, attempts)
            except TransientBackendError as exc:
                logger.warning(
                    "ai_retries_exhausted",
                    attempts=attempts,
                    status_code=exc.status_code,
                    error=exc.message,
                )
                raise UpstreamError(exc.message, status_code=exc.status_code, attempts=attempts) from exc

        logger.info("ai_reply_received", attempts=attempts, reply_chars=len(text))
        return TransportReply(text=text, attempts=attempts, status_code=200)

    async def _attempt(self, client: AsyncOpenAI, messages: List[Dict[str, Any]], attempt: int) -> str:
        s = self._settings
        try:
            completion = await asyncio.wait_for(
                client.chat.completions.create(
                    model=s.model,
                    messages=messages,
                    max_tokens=s.max_tokens,
                    temperature=s.temperature,
                ),
                timeout=s.request_timeout_s,
            )
        except (asyncio.TimeoutError, APITimeoutError) as exc:
            raise TransientBackendError(
                f"AI backend timeout after {s.request_timeout_s}s"
            ) from exc
        except APIConnectionError as exc:
            raise TransientBackendError(f"AI backend connection error: {exc}") from exc
        except APIStatusError as exc:
            code = exc.status_code
            if code in s.retryable_status_codes:
                raise TransientBackendError(f"AI backend error: {code}", status_code=code) from exc
            logger.warning("ai_request_rejected", status_code=code, attempt=attempt)
            raise UpstreamError(f"AI backend error: {code}", status_code=code, attempts=attempt) from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            raise UpstreamError("No text in AI backend response", status_code=200, attempts=attempt)
        return content

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "ai_attempt_failed",
            attempt=retry_state.attempt_number,
            status_code=getattr(exc, "status_code", None),
            error=str(exc),
            retry_in_s=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
        )
