"""Tests for the board engine: moves, merges, spawns, win and game over checks."""

import random

import pytest
from pydantic import ValidationError

from game2048 import core
from game2048.core import DIRECTION, GameState
from tests.helpers import (
    CREATED_AT, LOCKED_BOARD, ScriptedRandom, board_with_column, board_with_row, make_state
)


def random_board(rng: random.Random, fill: float = 0.6):
    return [
        [2 ** rng.randint(1, 4) if rng.random() < fill else 0 for _ in range(4)]
        for _ in range(4)
    ]


def board_sum(board):
    return sum(sum(row) for row in board)


class TestNewGame:
    """Scenario A: a new game."""

    def test_new_game_has_two_small_tiles(self):
        state = core.new_game("abc", rng=random.Random(7), created_at=CREATED_AT)

        tiles = [v for row in state.board for v in row if v != 0]
        assert len(tiles) == 2
        assert all(v in (2, 4) for v in tiles)
        assert state.score == 0
        assert state.game_over is False
        assert state.won is False
        assert state.id == "abc"
        assert state.created_at == CREATED_AT

    def test_new_game_is_deterministic_for_a_seed(self):
        first = core.new_game("a", rng=random.Random(42), created_at=CREATED_AT)
        second = core.new_game("b", rng=random.Random(42), created_at=CREATED_AT)
        assert first.board == second.board


class TestCompaction:
    """Single-line merge rules, applied with a left move."""

    @pytest.mark.parametrize("row, expected, gained", [
        ([2, 2, 0, 0], [4, 0, 0, 0], 4),       # Scenario B
        ([2, 2, 2, 2], [4, 4, 0, 0], 8),       # Scenario C
        ([2, 2, 2, 0], [4, 2, 0, 0], 4),       # Scenario D
        ([0, 0, 0, 2], [2, 0, 0, 0], 0),
        ([2, 0, 2, 0], [4, 0, 0, 0], 4),
        ([4, 4, 8, 0], [8, 8, 0, 0], 8),
        ([2, 2, 4, 4], [4, 8, 0, 0], 12),
        ([2, 4, 2, 4], [2, 4, 2, 4], 0),
        ([8, 0, 8, 8], [16, 8, 0, 0], 16),
    ])
    def test_move_left_row(self, row, expected, gained):
        state = make_state(board_with_row(row), score=10)

        moved = core.apply_move(state, DIRECTION.LEFT)

        assert state.board[0] == expected
        assert state.score == 10 + gained
        assert moved is (expected != row)

    def test_three_equal_tiles_merge_leftmost_pair_only(self):
        state = make_state(board_with_row([2, 2, 2, 0]))
        core.apply_move(state, DIRECTION.LEFT)
        assert state.board[0] == [4, 2, 0, 0]
        assert state.board[0] != [4, 4, 0, 0]

    def test_merged_tile_is_not_merged_again_in_the_same_move(self):
        state = make_state(board_with_row([4, 4, 8, 0]))
        assert core.apply_move(state, DIRECTION.LEFT) is True
        assert state.board[0] == [8, 8, 0, 0]
        # the next move is what merges the pair produced above
        assert core.apply_move(state, DIRECTION.LEFT) is True
        assert state.board[0] == [16, 0, 0, 0]


class TestDirections:

    def test_move_right(self):
        state = make_state(board_with_row([2, 2, 2, 0]))
        assert core.apply_move(state, DIRECTION.RIGHT) is True
        assert state.board[0] == [0, 0, 2, 4]
        assert state.score == 4

    def test_move_up(self):
        state = make_state(board_with_column([2, 2, 2, 0], index=1))
        assert core.apply_move(state, DIRECTION.UP) is True
        assert [row[1] for row in state.board] == [4, 2, 0, 0]
        assert state.score == 4

    def test_move_down(self):
        state = make_state(board_with_column([2, 2, 2, 0], index=3))
        assert core.apply_move(state, DIRECTION.DOWN) is True
        assert [row[3] for row in state.board] == [0, 0, 2, 4]
        assert state.score == 4

    def test_moves_only_touch_their_own_lines(self):
        board = [
            [2, 0, 0, 2],
            [0, 0, 0, 0],
            [0, 4, 0, 0],
            [0, 4, 0, 8],
        ]
        state = make_state(board)
        core.apply_move(state, DIRECTION.DOWN)
        assert state.board == [
            [0, 0, 0, 0],
            [0, 0, 0, 0],
            [0, 0, 0, 2],
            [2, 8, 0, 8],
        ]
        assert state.score == 8

    def test_direction_accepts_string_values(self):
        state = make_state(board_with_row([0, 0, 2, 2]))
        assert core.apply_move(state, "left") is True
        assert state.board[0] == [4, 0, 0, 0]

    def test_unchanged_board_reports_no_move_and_keeps_score(self):
        state = make_state(LOCKED_BOARD, score=100)
        for direction in DIRECTION:
            assert core.apply_move(state, direction) is False
        assert state.board == LOCKED_BOARD
        assert state.score == 100

    def test_already_compacted_row_does_not_move_left(self):
        state = make_state(board_with_row([2, 4, 8, 0]))
        assert core.apply_move(state, DIRECTION.LEFT) is False
        assert core.apply_move(state, DIRECTION.RIGHT) is True


class TestSlideBoard:
    """Properties of the pure move function."""

    def test_slide_does_not_modify_its_input(self):
        board = board_with_row([2, 2, 0, 4])
        snapshot = [list(row) for row in board]
        core.slide_board(board, DIRECTION.UP)
        core.slide_board(board, DIRECTION.LEFT)
        assert board == snapshot

    @pytest.mark.parametrize("direction", list(DIRECTION))
    def test_tile_sum_is_conserved_and_score_counts_merges(self, direction):
        rng = random.Random(1234)
        for _ in range(200):
            board = random_board(rng)
            after, gained, moved = core.slide_board(board, direction)
            assert board_sum(after) == board_sum(board)
            assert gained % 4 == 0
            if not moved:
                assert after == board
                assert gained == 0

    @pytest.mark.parametrize("direction", list(DIRECTION))
    def test_second_move_is_a_no_op_without_new_pairs(self, direction):
        rng = random.Random(99)
        for _ in range(200):
            board = random_board(rng)
            once, _, _ = core.slide_board(board, direction)
            twice, gained, moved = core.slide_board(once, direction)
            # a merge can only leave a new equal pair next to itself, never a gap
            if moved:
                assert gained > 0
            else:
                assert twice == once

    def test_every_tile_is_a_power_of_two_after_moves(self):
        rng = random.Random(5)
        state = core.new_game("p", rng=rng, created_at=CREATED_AT)
        for _ in range(300):
            direction = rng.choice(list(DIRECTION))
            if core.apply_move(state, direction):
                core.spawn_tile(state, rng)
        for row in state.board:
            for value in row:
                assert value == 0 or (value >= 2 and value & (value - 1) == 0)


class TestRotation:

    def test_rotate_right_is_clockwise(self):
        board = [
            [1, 2, 3, 4],
            [5, 6, 7, 8],
            [9, 10, 11, 12],
            [13, 14, 15, 16],
        ]
        assert core.rotate_right(board)[0] == [13, 9, 5, 1]
        assert core.rotate_left(board)[0] == [4, 8, 12, 16]
        assert core.rotate_180(board)[0] == [16, 15, 14, 13]

    def test_rotations_round_trip(self):
        board = random_board(random.Random(3), fill=0.9)
        assert core.rotate_left(core.rotate_right(board)) == board
        assert core.rotate_right(core.rotate_left(board)) == board
        assert core.rotate_180(core.rotate_180(board)) == board

        rotated = board
        for _ in range(4):
            rotated = core.rotate_right(rotated)
        assert rotated == board


class TestSpawnTile:

    def test_spawn_fills_the_chosen_empty_cell_with_a_two(self):
        state = make_state(board_with_row([2, 0, 0, 0]))
        core.spawn_tile(state, ScriptedRandom(picks=[0], rolls=[0.1]))
        assert state.board[0] == [2, 2, 0, 0]

    def test_spawn_places_a_four_on_a_low_roll(self):
        state = make_state(board_with_row([2, 0, 0, 0]))
        core.spawn_tile(state, ScriptedRandom(picks=[2], rolls=[0.05]))
        assert state.board[0] == [2, 0, 0, 4]

    def test_spawn_on_full_board_is_a_no_op(self):
        state = make_state(LOCKED_BOARD)
        core.spawn_tile(state, ScriptedRandom())
        assert state.board == LOCKED_BOARD

    def test_spawn_keeps_adding_until_full(self):
        state = make_state([[0] * 4 for _ in range(4)])
        rng = random.Random(11)
        for _ in range(20):
            core.spawn_tile(state, rng)
        assert core.get_empty_cells(state.board) == []

    def test_four_appears_about_one_time_in_ten(self):
        rng = random.Random(2048)
        fours = 0
        trials = 2000
        for _ in range(trials):
            board, added = core.add_random_tile(core.new_board(), rng)
            assert added
            fours += sum(row.count(4) for row in board)
        assert 0.06 < fours / trials < 0.14


class TestCanMove:
    """Scenario E and the can-move rule."""

    def test_locked_board_cannot_move(self):
        assert core.can_move(make_state(LOCKED_BOARD)) is False

    def test_empty_cell_allows_a_move(self):
        board = [list(row) for row in LOCKED_BOARD]
        board[3][3] = 0
        assert core.can_move(make_state(board)) is True

    def test_horizontal_pair_allows_a_move(self):
        board = [list(row) for row in LOCKED_BOARD]
        board[2][3] = 16
        assert core.can_move(make_state(board)) is True

    def test_vertical_pair_allows_a_move(self):
        board = [list(row) for row in LOCKED_BOARD]
        board[3][0] = 4
        assert core.can_move(make_state(board)) is True

    def test_can_move_agrees_with_trying_every_direction(self):
        rng = random.Random(8)
        for _ in range(300):
            board = random_board(rng, fill=0.97)
            any_moves = any(core.slide_board(board, d)[2] for d in DIRECTION)
            assert core.has_legal_move(board) is any_moves


class TestCheckWin:
    """Scenario F: the won flag."""

    def test_2048_tile_wins(self):
        state = make_state(board_with_row([2048, 0, 0, 0]))
        core.check_win(state)
        assert state.won is True

    def test_no_2048_tile_does_not_win(self):
        state = make_state(board_with_row([1024, 512, 0, 0]))
        core.check_win(state)
        assert state.won is False

    def test_won_stays_true_after_the_tile_merges_away(self):
        state = make_state(board_with_row([1024, 1024, 0, 0]))
        core.apply_move(state, DIRECTION.LEFT)
        core.check_win(state)
        assert state.won is True

        state.board = board_with_row([2048, 2048, 0, 0])
        core.apply_move(state, DIRECTION.LEFT)
        assert state.board[0] == [4096, 0, 0, 0]
        core.check_win(state)
        assert state.won is True


class TestGameState:

    def test_serializes_with_wire_field_names(self):
        data = make_state(LOCKED_BOARD, score=12).model_dump(by_alias=True, mode="json")
        assert set(data) == {"id", "board", "score", "gameOver", "won", "createdAt"}
        assert data["board"] == LOCKED_BOARD
        assert data["gameOver"] is False

    def test_loads_from_wire_field_names(self):
        state = GameState.model_validate({
            "id": "x",
            "board": LOCKED_BOARD,
            "score": 4,
            "gameOver": True,
            "won": False,
            "createdAt": "2026-01-01T12:00:00Z",
        })
        assert state.game_over is True
        assert state.created_at == CREATED_AT

    @pytest.mark.parametrize("board", [
        [[0] * 4 for _ in range(3)],
        [[0] * 5 for _ in range(4)],
        board_with_row([3, 0, 0, 0]),
        board_with_row([1, 0, 0, 0]),
        board_with_row([-2, 0, 0, 0]),
    ])
    def test_rejects_malformed_boards(self, board):
        with pytest.raises(ValidationError):
            make_state(board)

    def test_rejects_negative_score(self):
        with pytest.raises(ValidationError):
            make_state(LOCKED_BOARD, score=-1)
