"""Terminal I/O for the game loop."""

from __future__ import annotations

import asyncio
import sys


async def read_line() -> str | None:
    """Read one line from stdin without blocking the event loop.

    Returns the stripped line, or None at end of input.
    """
    line = await asyncio.to_thread(sys.stdin.readline)
    if not line:
        return None
    return line.strip()


def display(text: str) -> None:
    print(text, flush=True)
