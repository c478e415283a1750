"""
Unit tests for the board and move rules.
"""

import pytest

from tourney.errors import InvalidMove
from tourney.game.board import (
    Piece, empty_board, initial_board, place, piece_at,
    square_name, move_notation, board_to_fen
)
from tourney.game.rules import validate_move, apply_move, require_valid_move, is_path_clear
from tourney.utils.constants import (
    WHITE, BLACK, PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING, INITIAL_FEN
)


def board_with(placements):
    return place(empty_board(), placements)


class TestBoard:
    """Tests for board setup and notation."""

    def test_initial_position(self):
        """White back rank is row 7, black pawns on row 1."""
        board = initial_board()
        assert piece_at(board, (7, 4)) == Piece(KING, WHITE)
        assert piece_at(board, (0, 3)) == Piece(QUEEN, BLACK)
        assert all(piece_at(board, (1, c)) == Piece(PAWN, BLACK) for c in range(8))
        assert all(piece_at(board, (4, c)) is None for c in range(8))

    def test_square_names(self):
        assert square_name((6, 4)) == "e2"
        assert square_name((0, 0)) == "a8"
        assert square_name((7, 7)) == "h1"
        assert move_notation((6, 4), (4, 4)) == "e2e4"

    def test_initial_fen(self):
        assert board_to_fen(initial_board()) == INITIAL_FEN

    def test_fen_after_moves(self):
        """Moved king loses castling rights; side to move is reported."""
        board = apply_move(initial_board(), (6, 4), (4, 4))
        fen = board_to_fen(board, BLACK, 0, 1)
        assert fen == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"

        board = apply_move(board, (7, 4), (6, 4))
        assert " kq " in board_to_fen(board, BLACK)


class TestPathBlocking:
    """Sliding pieces cannot pass through occupied squares."""

    def test_rook_blocked(self):
        board = board_with({
            (7, 0): Piece(ROOK, WHITE),
            (5, 0): Piece(PAWN, BLACK),
        })
        assert not validate_move(board, (7, 0), (3, 0), WHITE)
        # Capturing the blocker itself is fine
        assert validate_move(board, (7, 0), (5, 0), WHITE)

    def test_bishop_blocked(self):
        board = board_with({
            (7, 2): Piece(BISHOP, WHITE),
            (6, 3): Piece(PAWN, WHITE),
        })
        assert not validate_move(board, (7, 2), (4, 5), WHITE)

    def test_queen_open_lines(self):
        board = board_with({(4, 4): Piece(QUEEN, WHITE)})
        for target in [(0, 4), (4, 0), (0, 0), (7, 7), (1, 7)]:
            assert validate_move(board, (4, 4), target, WHITE)
        assert not validate_move(board, (4, 4), (2, 5), WHITE)

    def test_initial_position_sliders_blocked(self):
        board = initial_board()
        assert not validate_move(board, (7, 0), (5, 0), WHITE)
        assert not validate_move(board, (7, 2), (5, 4), WHITE)
        assert not validate_move(board, (7, 3), (5, 3), WHITE)

    def test_is_path_clear_adjacent(self):
        """Adjacent squares have nothing between them."""
        assert is_path_clear(initial_board(), (7, 0), (6, 0))


class TestPieceGeometry:
    """Per-piece movement rules."""

    def test_knight_jumps(self):
        board = initial_board()
        assert validate_move(board, (7, 6), (5, 5), WHITE)
        assert validate_move(board, (7, 1), (5, 0), WHITE)
        assert not validate_move(board, (7, 6), (5, 6), WHITE)

    def test_king_one_square(self):
        board = board_with({(4, 4): Piece(KING, WHITE)})
        assert validate_move(board, (4, 4), (3, 3), WHITE)
        assert validate_move(board, (4, 4), (4, 5), WHITE)
        assert not validate_move(board, (4, 4), (4, 6), WHITE)

    def test_no_castling(self):
        board = board_with({
            (7, 4): Piece(KING, WHITE),
            (7, 7): Piece(ROOK, WHITE),
        })
        assert not validate_move(board, (7, 4), (7, 6), WHITE)

    def test_pawn_pushes(self):
        board = initial_board()
        assert validate_move(board, (6, 4), (5, 4), WHITE)
        assert validate_move(board, (6, 4), (4, 4), WHITE)
        assert validate_move(board, (1, 4), (3, 4), BLACK)
        assert not validate_move(board, (6, 4), (7, 4), WHITE)

    def test_pawn_double_step_only_from_start(self):
        board = apply_move(initial_board(), (6, 4), (5, 4))
        assert not validate_move(board, (5, 4), (3, 4), WHITE)

    def test_pawn_double_step_ignores_jumped_square(self):
        """Only the destination is checked on the two-square advance."""
        board = board_with({
            (6, 4): Piece(PAWN, WHITE),
            (5, 4): Piece(KNIGHT, BLACK),
        })
        assert validate_move(board, (6, 4), (4, 4), WHITE)
        assert not validate_move(board, (6, 4), (5, 4), WHITE)

    def test_pawn_captures_diagonally(self):
        board = board_with({
            (4, 4): Piece(PAWN, WHITE),
            (3, 5): Piece(PAWN, BLACK),
            (3, 4): Piece(PAWN, BLACK),
        })
        assert validate_move(board, (4, 4), (3, 5), WHITE)
        assert not validate_move(board, (4, 4), (3, 3), WHITE)
        assert not validate_move(board, (4, 4), (3, 4), WHITE)

    def test_cannot_capture_own_piece(self):
        board = initial_board()
        assert not validate_move(board, (7, 0), (6, 0), WHITE)

    def test_wrong_color_and_empty_source(self):
        board = initial_board()
        assert not validate_move(board, (1, 4), (3, 4), WHITE)
        assert not validate_move(board, (4, 4), (3, 4), WHITE)

    def test_out_of_bounds(self):
        board = initial_board()
        assert not validate_move(board, (6, 0), (-1, 0), WHITE)
        assert not validate_move(board, (8, 0), (6, 0), WHITE)


class TestApplyMove:
    """Tests for applying moves."""

    def test_apply_does_not_mutate_input(self):
        board = initial_board()
        new_board = apply_move(board, (6, 4), (4, 4))

        assert piece_at(board, (6, 4)) == Piece(PAWN, WHITE)
        assert piece_at(board, (4, 4)) is None
        assert piece_at(new_board, (6, 4)) is None
        assert piece_at(new_board, (4, 4)) == Piece(PAWN, WHITE, has_moved=True)

    def test_capture_replaces_target(self):
        board = board_with({
            (4, 4): Piece(ROOK, WHITE),
            (1, 4): Piece(KNIGHT, BLACK),
        })
        new_board = apply_move(board, (4, 4), (1, 4))
        assert piece_at(new_board, (1, 4)).color == WHITE

    def test_apply_from_empty_square(self):
        with pytest.raises(InvalidMove):
            apply_move(empty_board(), (4, 4), (3, 4))

    def test_require_valid_move(self):
        with pytest.raises(InvalidMove):
            require_valid_move(initial_board(), (7, 0), (5, 0), WHITE)
        require_valid_move(initial_board(), (6, 0), (4, 0), WHITE)
