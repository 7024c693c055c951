"""GPT Adventure: play a text adventure narrated by a chat model.

Reads settings from the environment (and `.env`), then runs the game loop on
stdin/stdout until end of input or Ctrl-C. Logs go to stderr.
"""

import asyncio
import logging
import sys

from gpt_adventure import console
from gpt_adventure.config import Settings, load_settings
from gpt_adventure.functions import EMPTY_REGISTRY, INVENTORY_FUNCTIONS
from gpt_adventure.game import Game
from gpt_adventure.llm import HttpChatLLM
from gpt_adventure.prompts import persona_for


def build_game(settings: Settings) -> Game:
    llm = HttpChatLLM(
        api_key=settings.api_key,
        base_url=settings.base_url,
        model=settings.model,
        max_attempts=settings.max_attempts,
        timeout=settings.timeout,
    )
    registry = INVENTORY_FUNCTIONS if settings.variant == "inventory" else EMPTY_REGISTRY
    return Game(
        llm=llm,
        persona=persona_for(settings.variant),
        read_line=console.read_line,
        display=console.display,
        registry=registry,
    )


def main():
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        asyncio.run(build_game(settings).run())
    except KeyboardInterrupt:
        print("\nShutting down...")


if __name__ == "__main__":
    main()
