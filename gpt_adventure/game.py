"""Game loop: drives the conversation one state transition at a time.

States:
  GENERATING_MODEL_TURN       send the full transcript to the LLM and append
                              its reply. Prose is displayed and the game waits
                              for the player; a function call is dispatched
                              first.
  DISPATCHING_FUNCTION_CALL   run the last function call against the
                              inventory, append the synthetic system turn if
                              the function produced one, then ask the model
                              again without waiting for the player. The model
                              may chain several calls before it writes prose.
  AWAITING_USER_INPUT         read one line from the player and append it as
                              a user turn.

There is no terminal state: run() only returns when the input source is
exhausted. LLM errors (after the client's own retries) propagate unchanged.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable

from gpt_adventure.functions import (
    EMPTY_REGISTRY,
    FunctionDispatcher,
    FunctionRegistry,
    Inventory,
)
from gpt_adventure.llm import ChatLLM
from gpt_adventure.models import Turn
from gpt_adventure.transcript import Transcript

logger = logging.getLogger(__name__)

ReadLine = Callable[[], Awaitable[str | None]]
Display = Callable[[str], None]

DEFAULT_MAX_FUNCTION_CHAIN = 20


class GameState(enum.Enum):
    AWAITING_USER_INPUT = "awaiting_user_input"
    GENERATING_MODEL_TURN = "generating_model_turn"
    DISPATCHING_FUNCTION_CALL = "dispatching_function_call"


class FunctionChainError(RuntimeError):
    """Raised when the model keeps calling functions without writing prose."""


class Game:
    """One interactive session. Owns the transcript and the inventory."""

    def __init__(
        self,
        *,
        llm: ChatLLM,
        persona: str,
        read_line: ReadLine,
        display: Display,
        registry: FunctionRegistry = EMPTY_REGISTRY,
        inventory: Inventory | None = None,
        initial_state: GameState = GameState.GENERATING_MODEL_TURN,
        max_function_chain: int = DEFAULT_MAX_FUNCTION_CHAIN,
    ) -> None:
        self.transcript = Transcript(persona)
        self.inventory = inventory if inventory is not None else Inventory()
        self.state = initial_state
        self._llm = llm
        self.registry = registry
        self._read_line = read_line
        self._display = display
        self._dispatcher = FunctionDispatcher(self.inventory, display, registry)
        self._max_function_chain = max_function_chain
        self._chain = 0

    async def step(self) -> bool:
        """Perform one transition. Returns False once input is exhausted."""
        if self.state is GameState.GENERATING_MODEL_TURN:
            await self._generate()
        elif self.state is GameState.DISPATCHING_FUNCTION_CALL:
            self._dispatch()
        else:
            line = await self._read_line()
            if line is None:
                logger.info("input closed, ending session")
                return False
            self.transcript.append(Turn.user(line))
            self.state = GameState.GENERATING_MODEL_TURN
        return True

    async def run(self) -> None:
        while await self.step():
            pass

    async def _generate(self) -> None:
        turn = await self._llm(self.transcript, self.registry)
        self.transcript.append(turn)
        if turn.is_function_call:
            self._chain += 1
            if self._chain > self._max_function_chain:
                raise FunctionChainError(
                    f"Model made {self._chain} function calls in a row without a reply"
                )
            self.state = GameState.DISPATCHING_FUNCTION_CALL
            return
        self._chain = 0
        self._display(turn.content or "")
        self.state = GameState.AWAITING_USER_INPUT

    def _dispatch(self) -> None:
        call = self.transcript.last.function_call
        assert call is not None
        result = self._dispatcher.dispatch(call)
        if result.system_turn is not None:
            self.transcript.append(result.system_turn)
        self.state = GameState.GENERATING_MODEL_TURN
