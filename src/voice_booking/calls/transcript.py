"""
Append-only record of conversational turns.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

from voice_booking.calls.models import SpeakerRole, Turn


class TranscriptLog:
    """Ordered, append-only sequence of turns.

    There is no delete or update API. ``read`` returns a tuple snapshot taken
    under the lock, so a reader never observes an append half way through.
    """

    def __init__(self, turns: Iterable[Turn] = ()) -> None:
        self._turns: list[Turn] = list(turns)
        self._lock = threading.Lock()

    def append(self, turn: Turn) -> None:
        with self._lock:
            self._turns.append(turn)

    def extend(self, turns: Iterable[Turn]) -> None:
        items = list(turns)
        with self._lock:
            self._turns.extend(items)

    def add(self, role: SpeakerRole, text: str) -> Turn:
        turn = Turn(role=role, text=text)
        self.append(turn)
        return turn

    def read(self) -> tuple[Turn, ...]:
        with self._lock:
            return tuple(self._turns)

    def to_list(self) -> list[dict[str, str]]:
        return [turn.to_dict() for turn in self.read()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)
