"""Append-only conversation transcript for a single query."""

from __future__ import annotations

from typing import Iterator

from mcp_bridge.types import Turn

__all__ = ["Conversation"]


class Conversation:
    """
    Ordered, append-only sequence of turns.

    Role alternation is not enforced here; the orchestrator appends turns in an
    order the model endpoint accepts.
    """

    def __init__(self) -> None:
        self._turns: list[Turn] = []

    def append(self, turn: Turn) -> None:
        if not isinstance(turn, Turn):
            raise TypeError(f"Conversation accepts Turn objects; got {type(turn).__name__}")
        self._turns.append(turn)

    def snapshot(self) -> tuple[Turn, ...]:
        """Read-only view handed to the request builder."""
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        roles = ", ".join(t.role.value for t in self._turns)
        return f"{self.__class__.__name__}([{roles}])"
