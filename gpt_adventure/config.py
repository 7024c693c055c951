"""Runtime settings read from the environment.

A `.env` file in the project root is loaded first; variables already set in
the process environment take precedence.

    OPENAI_API_KEY           bearer credential (not validated)
    OPENAI_BASE_URL          endpoint root
    ADVENTURE_MODEL          chat model id
    ADVENTURE_VARIANT        "base" (prose only) or "inventory" (functions on)
    ADVENTURE_MAX_ATTEMPTS   attempts per completion call
    ADVENTURE_TIMEOUT        per-attempt HTTP timeout, seconds
    LOG_LEVEL                root logging level
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from gpt_adventure.llm import DEFAULT_BASE_URL, DEFAULT_MODEL
from gpt_adventure.prompts import Variant

ROOT = Path(__file__).parent.parent

_ENV_FIELDS: dict[str, str] = {
    "OPENAI_API_KEY": "api_key",
    "OPENAI_BASE_URL": "base_url",
    "ADVENTURE_MODEL": "model",
    "ADVENTURE_VARIANT": "variant",
    "ADVENTURE_MAX_ATTEMPTS": "max_attempts",
    "ADVENTURE_TIMEOUT": "timeout",
    "LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    variant: Variant = "inventory"
    max_attempts: int = Field(default=3, ge=1)
    timeout: float = Field(default=120.0, gt=0)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from env (defaults to os.environ after loading .env)."""
    if env is None:
        load_dotenv(ROOT / ".env")
        env = os.environ
    fields = {field: env[var] for var, field in _ENV_FIELDS.items() if var in env}
    if "log_level" in fields:
        fields["log_level"] = fields["log_level"].upper()
    return Settings.model_validate(fields)
