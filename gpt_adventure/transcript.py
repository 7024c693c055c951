"""Append-only conversation transcript.

Insertion order is conversation order and is sent verbatim as the prompt on
every completion call, so turns are never edited, removed or reordered.
"""

from __future__ import annotations

from collections.abc import Iterator

from gpt_adventure.models import Turn


class Transcript:
    def __init__(self, persona: str) -> None:
        self._turns: list[Turn] = [Turn.system(persona)]

    def append(self, turn: Turn) -> Turn:
        self._turns.append(turn)
        return turn

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def last(self) -> Turn:
        return self._turns[-1]

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))

    def __getitem__(self, index: int) -> Turn:
        return self._turns[index]

    def __repr__(self) -> str:
        return f"Transcript({len(self._turns)} turns)"
