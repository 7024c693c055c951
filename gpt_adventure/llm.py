"""LLM client: HTTP connection to a chat-completion backend.

The game injects an LLM callable matching the protocol:

    async def __call__(self, transcript: Transcript,
                       registry: FunctionRegistry | None = None) -> Turn: ...

The transcript is sent in full on every call; the registry, when non-empty,
is offered to the model as callable functions. The returned Turn is either
prose or a function call, never both.

Production code constructs an HttpChatLLM from Settings and hands it to
Game. Tests use ScriptedLLM (defined in the test helpers) instead.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

import httpx

from gpt_adventure.functions import FunctionRegistry, validate_arguments
from gpt_adventure.models import Turn
from gpt_adventure.transcript import Transcript
from gpt_adventure.wire import build_request, parse_response

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com"
DEFAULT_MODEL = "gpt-3.5-turbo-0613"


# ---------------------------------------------------------------------------
# Protocol: every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class ChatLLM(Protocol):
    async def __call__(
        self, transcript: Transcript, registry: FunctionRegistry | None = None
    ) -> Turn: ...


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the chat backend cannot produce a usable turn."""


class LLMStatusError(LLMError):
    """The backend answered with a status other than 200."""

    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f"OpenAI API returned status code {status_code}: {reason}")
        self.status_code = status_code
        self.reason = reason


# ---------------------------------------------------------------------------
# HttpChatLLM: connects to a real backend
# ---------------------------------------------------------------------------

class HttpChatLLM:
    """Async HTTP client for OpenAI-compatible chat completions.

    POST {base_url}/v1/chat/completions
        {"model": ..., "temperature": 1, "messages": [...], "functions"?: [...]}
    Response: {"choices": [{"message": {"content": ...} | {"function_call": ...}}]}

    Each call makes up to max_attempts requests. A non-200 status, a
    transport error, or a reply that cannot be decoded (including function
    arguments that are not valid JSON or do not match the FunctionSpec)
    counts as one failed attempt. When every attempt fails the last error is
    raised: an LLMStatusError for a bad status, otherwise the original
    exception.

    Args:
        api_key:      Bearer token. Sent as-is, even when empty.
        base_url:     Backend root, e.g. "https://api.openai.com".
        model:        Model identifier.
        max_attempts: Total attempts per call. Defaults to 3.
        timeout:      Per-attempt HTTP timeout in seconds. Defaults to 120.
        retry_delay:  Seconds to wait between attempts. Defaults to 0.
        sleep:        Awaitable used for retry_delay; injectable for tests.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        max_attempts: int = 3,
        timeout: float = 120.0,
        retry_delay: float = 0.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/v1/chat/completions"
        self._model = model
        self._max_attempts = max_attempts
        self._timeout = timeout
        self._retry_delay = retry_delay
        self._sleep = sleep

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def _attempt(self, body: dict, registry: FunctionRegistry | None) -> Turn:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(self._url, json=body, headers=self._headers())
        if resp.status_code != 200:
            raise LLMStatusError(resp.status_code, resp.reason_phrase)

        turn = parse_response(resp.json())
        if turn.is_function_call and registry is not None:
            call = turn.function_call
            spec = registry.get(call.name)
            if spec is not None:
                validate_arguments(spec, call.arguments)
        return turn

    async def __call__(
        self, transcript: Transcript, registry: FunctionRegistry | None = None
    ) -> Turn:
        body = build_request(self._model, transcript, registry)
        logger.debug(
            "llm call url=%s turns=%d functions=%d",
            self._url, len(transcript), len(body.get("functions", [])),
        )

        last_error: Exception | None = None
        for attempt in range(1, self._max_attempts + 1):
            if attempt > 1 and self._retry_delay > 0:
                await self._sleep(self._retry_delay)
            try:
                turn = await self._attempt(body, registry)
            except (httpx.HTTPError, LLMError, ValueError) as e:
                logger.warning(
                    "llm attempt %d/%d failed: %s: %s",
                    attempt, self._max_attempts, type(e).__name__, e,
                )
                last_error = e
                continue
            logger.debug(
                "llm response attempt=%d function_call=%s",
                attempt, turn.function_call.name if turn.is_function_call else None,
            )
            return turn

        assert last_error is not None
        raise last_error
