"""Chat-completion wire format.

Converts between Turns and the provider's JSON shapes:

    request   {"model", "temperature", "messages": [...], "functions"?: [...]}
    response  {"choices": [{"message": {"role", "content"?, "function_call"?}}]}

Function-call arguments travel as a JSON-encoded string, not a nested object.
"""

from __future__ import annotations

import json
from typing import Any

from gpt_adventure.functions import FunctionRegistry
from gpt_adventure.models import FunctionCall, FunctionSpec, Turn
from gpt_adventure.transcript import Transcript


class WireFormatError(ValueError):
    """Raised when a response body does not have the expected shape."""


def turn_to_wire(turn: Turn) -> dict[str, Any]:
    if turn.function_call is not None:
        return {
            "role": turn.role,
            "content": None,
            "function_call": {
                "name": turn.function_call.name,
                "arguments": json.dumps(turn.function_call.arguments),
            },
        }
    return {"role": turn.role, "content": turn.content}


def turn_from_wire(message: dict[str, Any]) -> Turn:
    """Build a Turn from a wire message.

    A message with a function_call never keeps its content, so the result
    satisfies the content-xor-function_call rule even when the provider sends
    both.
    """
    if not isinstance(message, dict):
        raise WireFormatError(f"Message must be an object, got {type(message).__name__}")
    role = message.get("role", "assistant")
    call = message.get("function_call")
    if call:
        if not isinstance(call, dict):
            raise WireFormatError("function_call must be an object")
        raw_arguments = call.get("arguments") or "{}"
        if not isinstance(raw_arguments, str):
            raise WireFormatError(
                f"Function arguments must be a JSON string, got {type(raw_arguments).__name__}"
            )
        arguments = json.loads(raw_arguments)
        if not isinstance(arguments, dict):
            raise WireFormatError(
                f"Function arguments must decode to an object, got {type(arguments).__name__}"
            )
        return Turn(
            role=role,
            function_call=FunctionCall(name=call.get("name", ""), arguments=arguments),
        )
    return Turn(role=role, content=message.get("content") or "")


def function_spec_to_wire(spec: FunctionSpec) -> dict[str, Any]:
    return {
        "name": spec.name,
        "description": spec.description,
        "parameters": {
            "type": "object",
            "properties": {
                p.name: {"type": p.type, "description": p.description}
                for p in spec.parameters
            },
            "required": [p.name for p in spec.parameters if p.required],
        },
    }


def build_request(
    model: str,
    transcript: Transcript,
    registry: FunctionRegistry | None = None,
    temperature: float = 1,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": model,
        "temperature": temperature,
        "messages": [turn_to_wire(t) for t in transcript],
    }
    if registry:
        body["functions"] = [function_spec_to_wire(spec) for spec in registry]
    return body


def parse_response(data: Any) -> Turn:
    """Extract the first choice's message from a response body as an assistant Turn."""
    if not isinstance(data, dict):
        raise WireFormatError("Unexpected response format from chat completion backend")
    choices = data.get("choices")
    if (
        not isinstance(choices, list)
        or not choices
        or not isinstance(choices[0], dict)
        or "message" not in choices[0]
    ):
        raise WireFormatError("Unexpected response format from chat completion backend")
    turn = turn_from_wire(choices[0]["message"])
    if turn.role != "assistant":
        raise WireFormatError(f"Reply must come from the assistant, got role {turn.role!r}")
    return turn
