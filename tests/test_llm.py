"""Tests for gpt_adventure.llm: HttpChatLLM request and retry behaviour."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from gpt_adventure.functions import FunctionArgumentError, INVENTORY_FUNCTIONS
from gpt_adventure.llm import HttpChatLLM, LLMStatusError
from gpt_adventure.models import Turn
from gpt_adventure.transcript import Transcript
from gpt_adventure.wire import WireFormatError


def _mock_response(body: dict, status: int = 200, reason: str = "OK") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.reason_phrase = reason
    resp.json.return_value = body
    return resp


def _prose(text: str) -> MagicMock:
    return _mock_response({"choices": [{"message": {"role": "assistant", "content": text}}]})


def _call(name: str, arguments: str) -> MagicMock:
    return _mock_response({"choices": [{"message": {
        "role": "assistant",
        "content": None,
        "function_call": {"name": name, "arguments": arguments},
    }}]})


@pytest.fixture
def transcript() -> Transcript:
    t = Transcript("You are a text adventure.")
    t.append(Turn.user("look around"))
    return t


@pytest.fixture
def llm() -> HttpChatLLM:
    return HttpChatLLM(api_key="sk-test", model="gpt-test")


# ---------------------------------------------------------------------------
# Request shape
# ---------------------------------------------------------------------------

class TestRequest:
    async def test_posts_to_chat_completions(self, llm, transcript) -> None:
        mock_post = AsyncMock(return_value=_prose("ok"))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(transcript)
        assert mock_post.call_args[0][0] == "https://api.openai.com/v1/chat/completions"

    async def test_trailing_slash_stripped_from_url(self, transcript) -> None:
        llm = HttpChatLLM(api_key="k", base_url="http://localhost:8080/")
        mock_post = AsyncMock(return_value=_prose("ok"))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(transcript)
        assert mock_post.call_args[0][0] == "http://localhost:8080/v1/chat/completions"

    async def test_bearer_token_sent(self, llm, transcript) -> None:
        mock_post = AsyncMock(return_value=_prose("ok"))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(transcript)
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"

    async def test_empty_api_key_still_sent(self, transcript) -> None:
        llm = HttpChatLLM(api_key="")
        mock_post = AsyncMock(return_value=_prose("ok"))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(transcript)
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer "

    async def test_body_carries_transcript_and_temperature(self, llm, transcript) -> None:
        mock_post = AsyncMock(return_value=_prose("ok"))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(transcript)
        body = mock_post.call_args.kwargs["json"]
        assert body["model"] == "gpt-test"
        assert body["temperature"] == 1
        assert body["messages"] == [
            {"role": "system", "content": "You are a text adventure."},
            {"role": "user", "content": "look around"},
        ]
        assert "functions" not in body

    async def test_functions_sent_with_registry(self, llm, transcript) -> None:
        mock_post = AsyncMock(return_value=_prose("ok"))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(transcript, INVENTORY_FUNCTIONS)
        body = mock_post.call_args.kwargs["json"]
        assert len(body["functions"]) == 3

    async def test_transcript_not_mutated(self, llm, transcript) -> None:
        mock_post = AsyncMock(return_value=_prose("ok"))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(transcript)
        assert len(transcript) == 2

    def test_max_attempts_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            HttpChatLLM(api_key="k", max_attempts=0)


# ---------------------------------------------------------------------------
# Response interpretation
# ---------------------------------------------------------------------------

class TestResponse:
    async def test_prose_reply(self, llm, transcript) -> None:
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=_prose("You see a dark room."))):
            turn = await llm(transcript)
        assert turn == Turn.assistant("You see a dark room.")

    async def test_function_call_reply(self, llm, transcript) -> None:
        resp = _call("add_inventory", json.dumps({"name": "sword"}))
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=resp)):
            turn = await llm(transcript, INVENTORY_FUNCTIONS)
        assert turn.content is None
        assert turn.function_call.name == "add_inventory"
        assert turn.function_call.arguments == {"name": "sword"}

    async def test_unknown_function_passes_through(self, llm, transcript) -> None:
        resp = _call("cast_spell", '{"power": 9000}')
        with patch("httpx.AsyncClient.post", AsyncMock(return_value=resp)):
            turn = await llm(transcript, INVENTORY_FUNCTIONS)
        assert turn.function_call.name == "cast_spell"


# ---------------------------------------------------------------------------
# Retries
# ---------------------------------------------------------------------------

class TestRetry:
    async def test_succeeds_on_third_attempt(self, llm, transcript) -> None:
        mock_post = AsyncMock(side_effect=[
            httpx.ConnectError("refused"),
            _mock_response({}, status=503, reason="Service Unavailable"),
            _prose("Third time lucky."),
        ])
        with patch("httpx.AsyncClient.post", mock_post):
            turn = await llm(transcript)
        assert turn.content == "Third time lucky."
        assert mock_post.call_count == 3

    async def test_no_retry_after_success(self, llm, transcript) -> None:
        mock_post = AsyncMock(return_value=_prose("ok"))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(transcript)
        assert mock_post.call_count == 1

    async def test_status_error_after_exhaustion(self, llm, transcript) -> None:
        mock_post = AsyncMock(return_value=_mock_response({}, status=429, reason="Too Many Requests"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMStatusError) as exc_info:
                await llm(transcript)
        assert mock_post.call_count == 3
        assert exc_info.value.status_code == 429
        assert str(exc_info.value) == "OpenAI API returned status code 429: Too Many Requests"

    async def test_last_error_wins(self, llm, transcript) -> None:
        timeout = httpx.ReadTimeout("too slow")
        mock_post = AsyncMock(side_effect=[
            _mock_response({}, status=500, reason="Internal Server Error"),
            httpx.ConnectError("refused"),
            timeout,
        ])
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(httpx.ReadTimeout) as exc_info:
                await llm(transcript)
        assert exc_info.value is timeout

    async def test_transport_error_reraised_verbatim(self, llm, transcript) -> None:
        error = httpx.ConnectError("refused")
        with patch("httpx.AsyncClient.post", AsyncMock(side_effect=error)):
            with pytest.raises(httpx.ConnectError) as exc_info:
                await llm(transcript)
        assert exc_info.value is error

    async def test_malformed_arguments_retried(self, llm, transcript) -> None:
        mock_post = AsyncMock(side_effect=[
            _call("add_inventory", "{not json"),
            _call("add_inventory", '{"name": "lamp"}'),
        ])
        with patch("httpx.AsyncClient.post", mock_post):
            turn = await llm(transcript, INVENTORY_FUNCTIONS)
        assert turn.function_call.arguments == {"name": "lamp"}
        assert mock_post.call_count == 2

    async def test_malformed_arguments_exhausted(self, llm, transcript) -> None:
        mock_post = AsyncMock(return_value=_call("add_inventory", "{not json"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(json.JSONDecodeError):
                await llm(transcript, INVENTORY_FUNCTIONS)
        assert mock_post.call_count == 3

    async def test_mistyped_arguments_retried(self, llm, transcript) -> None:
        mock_post = AsyncMock(side_effect=[
            _call("remove_inventory", '{"name": 42}'),
            _call("remove_inventory", '{"name": "coin"}'),
        ])
        with patch("httpx.AsyncClient.post", mock_post):
            turn = await llm(transcript, INVENTORY_FUNCTIONS)
        assert turn.function_call.arguments == {"name": "coin"}

    async def test_mistyped_arguments_exhausted(self, llm, transcript) -> None:
        mock_post = AsyncMock(return_value=_call("add_inventory", "{}"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(FunctionArgumentError, match="missing required"):
                await llm(transcript, INVENTORY_FUNCTIONS)

    @pytest.mark.parametrize("body", [
        {"unexpected": "format"},
        {"choices": {"0": {}}},
        {"choices": [{"message": {
            "role": "assistant",
            "function_call": {"name": "add_inventory", "arguments": {"name": "x"}},
        }}]},
        {"choices": [{"message": {"role": "user", "content": "I am the player now."}}]},
    ])
    async def test_malformed_body_retried(self, llm, transcript, body) -> None:
        mock_post = AsyncMock(side_effect=[_mock_response(body), _prose("ok")])
        with patch("httpx.AsyncClient.post", mock_post):
            turn = await llm(transcript, INVENTORY_FUNCTIONS)
        assert turn == Turn.assistant("ok")
        assert mock_post.call_count == 2

    async def test_malformed_body_exhausted(self, llm, transcript) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"unexpected": "format"}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(WireFormatError):
                await llm(transcript)
        assert mock_post.call_count == 3

    async def test_custom_attempt_bound(self, transcript) -> None:
        llm = HttpChatLLM(api_key="k", max_attempts=5)
        mock_post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(httpx.ConnectError):
                await llm(transcript)
        assert mock_post.call_count == 5

    async def test_no_delay_by_default(self, transcript) -> None:
        sleep = AsyncMock()
        llm = HttpChatLLM(api_key="k", sleep=sleep)
        with patch("httpx.AsyncClient.post", AsyncMock(side_effect=httpx.ConnectError("x"))):
            with pytest.raises(httpx.ConnectError):
                await llm(transcript)
        sleep.assert_not_called()

    async def test_retry_delay_between_attempts_only(self, transcript) -> None:
        sleep = AsyncMock()
        llm = HttpChatLLM(api_key="k", retry_delay=0.5, sleep=sleep)
        with patch("httpx.AsyncClient.post", AsyncMock(side_effect=httpx.ConnectError("x"))):
            with pytest.raises(httpx.ConnectError):
                await llm(transcript)
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)

    async def test_failed_attempts_logged(self, llm, transcript, caplog) -> None:
        mock_post = AsyncMock(side_effect=[httpx.ConnectError("refused"), _prose("ok")])
        with caplog.at_level("WARNING", logger="gpt_adventure.llm"):
            with patch("httpx.AsyncClient.post", mock_post):
                await llm(transcript)
        assert "attempt 1/3 failed" in caplog.text
