"""Shared test helpers and utilities for all test files."""

from datetime import datetime, timezone
from typing import List, Sequence

from game2048.core import GameState
from game2048.storage import InMemoryGameStore

CREATED_AT = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

# Full board with no equal neighbours in any row or column.
LOCKED_BOARD = [
    [4, 8, 16, 2],
    [2, 4, 8, 16],
    [4, 8, 16, 2],
    [2, 4, 8, 16],
]


def make_state(board: List[List[int]], score: int = 0, game_over: bool = False,
               won: bool = False, game_id: str = "game-1") -> GameState:
    """Helper to create a game state around a given board."""
    return GameState(
        id=game_id,
        board=[list(row) for row in board],
        score=score,
        game_over=game_over,
        won=won,
        created_at=CREATED_AT,
    )


def board_with_row(row: Sequence[int], index: int = 0) -> List[List[int]]:
    """A board that is empty apart from one row."""
    board = [[0] * 4 for _ in range(4)]
    board[index] = list(row)
    return board


def board_with_column(column: Sequence[int], index: int = 0) -> List[List[int]]:
    """A board that is empty apart from one column (listed top to bottom)."""
    board = [[0] * 4 for _ in range(4)]
    for r, value in enumerate(column):
        board[r][index] = value
    return board


class ScriptedRandom:
    """
    Stand-in for random.Random with scripted results.

    choice() returns seq[i] for the next scripted index i, random() returns the
    next scripted roll. Both fall back to index 0 / roll 0.5 once exhausted.
    """

    def __init__(self, picks: Sequence[int] = (), rolls: Sequence[float] = ()):
        self.picks = list(picks)
        self.rolls = list(rolls)

    def choice(self, seq):
        index = self.picks.pop(0) if self.picks else 0
        return seq[index]

    def random(self):
        return self.rolls.pop(0) if self.rolls else 0.5


class RecordingStore(InMemoryGameStore):
    """In-memory store that remembers every state it was asked to save."""

    def __init__(self):
        super().__init__(ttl_seconds=None)
        self.saved: List[GameState] = []

    def put(self, state: GameState) -> None:
        self.saved.append(state.model_copy(deep=True))
        super().put(state)


class FakeClock:
    def __init__(self, now: datetime = CREATED_AT):
        self.now = now

    def __call__(self) -> datetime:
        return self.now
