"""Core domain models.

Turns are the unit of the conversation transcript; FunctionSpecs describe the
local operations the model may call. Pydantic validates both at every
boundary (wire decoding, dispatch, tests).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

Role = Literal["system", "user", "assistant"]

ParameterType = Literal["string", "number", "integer", "boolean"]

ArgumentValue = str | int | float | bool


class FunctionCall(BaseModel):
    """A request from the model to run a named local function."""

    model_config = ConfigDict(frozen=True)

    name: str
    arguments: dict[str, ArgumentValue] = Field(default_factory=dict)


class Turn(BaseModel):
    """A single entry in the append-only transcript.

    Assistant turns carry either prose or a function call, never both.
    System and user turns always carry prose.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str | None = None
    function_call: FunctionCall | None = None

    @model_validator(mode="after")
    def check_content_xor_function_call(self) -> Turn:
        if self.role == "assistant":
            if (self.content is None) == (self.function_call is None):
                raise ValueError("assistant turn needs exactly one of content or function_call")
        else:
            if self.function_call is not None:
                raise ValueError(f"{self.role} turn cannot carry a function_call")
            if self.content is None:
                raise ValueError(f"{self.role} turn needs content")
        return self

    @classmethod
    def system(cls, content: str) -> Turn:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> Turn:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> Turn:
        return cls(role="assistant", content=content)

    @classmethod
    def call(cls, function: str, /, **arguments: ArgumentValue) -> Turn:
        return cls(role="assistant", function_call=FunctionCall(name=function, arguments=arguments))

    @property
    def is_function_call(self) -> bool:
        return self.function_call is not None


class Parameter(BaseModel):
    """One typed parameter of a FunctionSpec."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: ParameterType
    description: str
    required: bool = True


class FunctionSpec(BaseModel):
    """A locally dispatchable operation offered to the model."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: tuple[Parameter, ...] = ()

    def parameter(self, name: str) -> Parameter | None:
        for p in self.parameters:
            if p.name == name:
                return p
        return None
