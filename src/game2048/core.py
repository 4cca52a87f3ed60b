# core.py
# Board engine for a 4x4 game of 2048: moves, merges, tile spawns and
# terminal-state checks. Board helpers are pure; the GameState operations
# commit their results onto the state they are given.

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple
import random

from pydantic import BaseModel, ConfigDict, Field, field_validator

BOARD_SIZE = 4
WIN_TILE = 2048

Board = List[List[int]]


class DIRECTION(str, Enum):
    """Represents the possible move directions."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


class GameState(BaseModel):
    """A single game session, serialized with its wire field names."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Opaque unique identifier of the game.")
    board: Board = Field(..., description="The 4 x 4 board, 0 for an empty cell.")
    score: int = Field(default=0, ge=0, description="Sum of every merged tile value.")
    game_over: bool = Field(default=False, alias="gameOver",
                            description="True once no legal move remains.")
    won: bool = Field(default=False, description="True once a 2048 tile has appeared.")
    created_at: datetime = Field(..., alias="createdAt",
                                 description="When the game was created.")

    @field_validator("board")
    @classmethod
    def _check_board(cls, board: Board) -> Board:
        if len(board) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in board):
            raise ValueError(f"Board must be a {BOARD_SIZE}x{BOARD_SIZE} matrix.")
        for row in board:
            for value in row:
                if value != 0 and (value < 2 or value & (value - 1)):
                    raise ValueError(f"Invalid tile value: {value}")
        return board


# --- Board Helper Functions ---

def new_board() -> Board:
    """Returns an empty 4 x 4 board."""
    return [[0] * BOARD_SIZE for _ in range(BOARD_SIZE)]

def copy_board(board: Board) -> Board:
    return [list(row) for row in board]

def get_empty_cells(board: Board) -> List[Tuple[int, int]]:
    """
    Get coordinates of empty (0-value) cells in the given board.
    Args:
        board (Board): The board to check.
    Returns:
        List[Tuple[int, int]]: List of (row, col) tuples for empty cells, in row-major order.
    """
    empty_cells = []
    for row in range(BOARD_SIZE):
        for col in range(BOARD_SIZE):
            if board[row][col] == 0:
                empty_cells.append((row, col))
    return empty_cells

def add_random_tile(board: Board, rng: Optional[random.Random] = None) -> Tuple[Board, bool]:
    """
    Adds a new tile (90% chance of 2, 10% chance of 4) to an empty cell on a copy of the board.
    Args:
        board (Board): The current game board.
        rng (random.Random): Source of randomness. Defaults to the module-level generator.
    Returns:
        Tuple[Board, bool]: A new board with the added tile and a boolean
                            indicating if a tile was successfully added.
                            If no empty cells, returns a copy of the board and False.
    """
    rng = rng or random
    updated = copy_board(board)
    empty_cells = get_empty_cells(board)
    if not empty_cells:
        return updated, False

    row, col = rng.choice(empty_cells)
    updated[row][col] = 4 if rng.random() < 0.1 else 2
    return updated, True

def contains_tile(board: Board, value: int) -> bool:
    return any(cell == value for row in board for cell in row)

# --- Board Transformations ---

def rotate_right(board: Board) -> Board:
    """Returns a copy of the board rotated 90 degrees clockwise."""
    n = BOARD_SIZE
    rotated = new_board()
    for r in range(n):
        for c in range(n):
            rotated[c][n - 1 - r] = board[r][c]
    return rotated

def rotate_left(board: Board) -> Board:
    """Returns a copy of the board rotated 90 degrees counter-clockwise."""
    n = BOARD_SIZE
    rotated = new_board()
    for r in range(n):
        for c in range(n):
            rotated[n - 1 - c][r] = board[r][c]
    return rotated

def rotate_180(board: Board) -> Board:
    return rotate_right(rotate_right(board))

def _identity(board: Board) -> Board:
    return copy_board(board)

# (into canonical "compact left" orientation, back out of it)
_ORIENTATION = {
    DIRECTION.LEFT: (_identity, _identity),
    DIRECTION.UP: (rotate_left, rotate_right),
    DIRECTION.DOWN: (rotate_right, rotate_left),
    DIRECTION.RIGHT: (rotate_180, rotate_180),
}

# --- Line Compaction ---

def _compact_line(line: List[int]) -> Tuple[List[int], int]:
    """
    Slides the tiles of a line towards index 0 and merges adjacent equal pairs.
    A tile produced by a merge is not merged again in the same pass, so
    [2, 2, 2, 0] becomes [4, 2, 0, 0].
    Args:
        line (List[int]): The line to compact.
    Returns:
        Tuple[List[int], int]: The compacted line and the score gained from merges.
    """
    tiles = [value for value in line if value != 0]
    score_gained = 0
    i = 0
    while i < len(tiles) - 1:
        if tiles[i] == tiles[i + 1]:
            tiles[i] *= 2
            score_gained += tiles[i]
            del tiles[i + 1]
        i += 1
    tiles += [0] * (len(line) - len(tiles))
    return tiles, score_gained

def slide_board(board: Board, direction: DIRECTION) -> Tuple[Board, int, bool]:
    """
    Computes the result of a move without touching the given board.
    Args:
        board (Board): The current game board.
        direction (DIRECTION): The direction to move.
    Returns:
        Tuple[Board, int, bool]:
            - The board after the move.
            - The score gained from merges.
            - Whether any cell changed.
    """
    into, back = _ORIENTATION[DIRECTION(direction)]
    oriented = into(board)
    moved = False
    score_gained = 0

    for r_idx in range(BOARD_SIZE):
        compacted, line_score = _compact_line(oriented[r_idx])
        if compacted != oriented[r_idx]:
            moved = True
        oriented[r_idx] = compacted
        score_gained += line_score

    return back(oriented), score_gained, moved

def has_legal_move(board: Board) -> bool:
    """True if the board has an empty cell or two equal neighbours in a row or column."""
    for r in range(BOARD_SIZE):
        for c in range(BOARD_SIZE):
            value = board[r][c]
            if value == 0:
                return True
            if r < BOARD_SIZE - 1 and value == board[r + 1][c]:
                return True
            if c < BOARD_SIZE - 1 and value == board[r][c + 1]:
                return True
    return False

# --- Game State Operations ---

def spawn_tile(state: GameState, rng: Optional[random.Random] = None) -> None:
    """Places a 2 or 4 on a random empty cell of the state's board. No-op on a full board."""
    board, added = add_random_tile(state.board, rng)
    if added:
        state.board = board

def apply_move(state: GameState, direction: DIRECTION) -> bool:
    """
    Applies a move to the state, adding any merged tile values to its score.
    Args:
        state (GameState): The game to update.
        direction (DIRECTION): The direction to move.
    Returns:
        bool: True if at least one cell changed. When False the state is left untouched.
    """
    board, score_gained, moved = slide_board(state.board, direction)
    if moved:
        state.board = board
        state.score += score_gained
    return moved

def can_move(state: GameState) -> bool:
    return has_legal_move(state.board)

def check_win(state: GameState, win_tile: int = WIN_TILE) -> None:
    """Sets state.won once a win_tile is on the board. The flag is never cleared."""
    if state.won:
        return
    if contains_tile(state.board, win_tile):
        state.won = True

def new_game(game_id: str, rng: Optional[random.Random] = None,
             created_at: Optional[datetime] = None) -> GameState:
    """
    Creates a game with two tiles on an otherwise empty board.
    Args:
        game_id (str): Identifier for the new game.
        rng (random.Random): Source of randomness for the initial tiles.
        created_at (datetime): Creation timestamp. Defaults to now.
    Returns:
        GameState: The new game, score 0, not over and not won.
    """
    state = GameState(id=game_id, board=new_board(), created_at=created_at or datetime.now(timezone.utc))
    spawn_tile(state, rng)
    spawn_tile(state, rng)
    return state
