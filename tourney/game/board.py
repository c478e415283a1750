"""
Chess board representation.

The board is an immutable 8x8 grid (tuple of row tuples) of optional pieces,
indexed [row][col]. Row 0 is rank 8 and column 0 is file a, so the white
pieces start on rows 6 and 7. Every change produces a new board.
"""
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from tourney.utils.constants import (
    BOARD_SIZE, WHITE, BLACK, PAWN, KING, ROOK,
    BACK_RANK, BACK_RANK_ROW, PAWN_START_ROW, FEN_LETTERS
)

Position = Tuple[int, int]


@dataclass(frozen=True)
class Piece:
    """A piece on the board."""
    type: str
    color: str
    has_moved: bool = False

    def moved(self) -> "Piece":
        """Return a copy of this piece flagged as having moved."""
        return replace(self, has_moved=True)


Board = Tuple[Tuple[Optional[Piece], ...], ...]


def empty_board() -> Board:
    """Return a board with no pieces."""
    return tuple(tuple(None for _ in range(BOARD_SIZE)) for _ in range(BOARD_SIZE))


def initial_board() -> Board:
    """Return the standard starting position."""
    rows = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]
    for color in (WHITE, BLACK):
        for col, piece_type in enumerate(BACK_RANK):
            rows[BACK_RANK_ROW[color]][col] = Piece(piece_type, color)
            rows[PAWN_START_ROW[color]][col] = Piece(PAWN, color)
    return tuple(tuple(row) for row in rows)


def place(board: Board, placements: Dict[Position, Optional[Piece]]) -> Board:
    """Return a new board with the given squares overwritten."""
    rows = [list(row) for row in board]
    for (row, col), piece in placements.items():
        rows[row][col] = piece
    return tuple(tuple(r) for r in rows)


def in_bounds(pos: Position) -> bool:
    """Check that a (row, col) position lies on the board."""
    row, col = pos
    return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE


def piece_at(board: Board, pos: Position) -> Optional[Piece]:
    """Get the piece on a square, or None."""
    return board[pos[0]][pos[1]]


def square_name(pos: Position) -> str:
    """Algebraic name of a square: file a+col, rank 8-row."""
    row, col = pos
    return f"{chr(ord('a') + col)}{BOARD_SIZE - row}"


def move_notation(from_pos: Position, to_pos: Position) -> str:
    """Source and destination squares concatenated, e.g. 'e2e4'."""
    return square_name(from_pos) + square_name(to_pos)


def _castling_field(board: Board) -> str:
    # Rights are inferred from unmoved kings and rooks on their home squares.
    rights = ""
    for color, king_side, queen_side in ((WHITE, "K", "Q"), (BLACK, "k", "q")):
        home = BACK_RANK_ROW[color]
        king = board[home][4]
        if not king or king.type != KING or king.color != color or king.has_moved:
            continue
        for col, letter in ((7, king_side), (0, queen_side)):
            rook = board[home][col]
            if rook and rook.type == ROOK and rook.color == color and not rook.has_moved:
                rights += letter
    return rights or "-"


def board_to_fen(board: Board, current_player: str = WHITE,
                 halfmove_clock: int = 0, fullmove_number: int = 1) -> str:
    """
    Encode a position as a FEN string.

    En passant is never available, so that field is always '-'.
    """
    ranks = []
    for row in board:
        empty = 0
        rank = ""
        for piece in row:
            if piece is None:
                empty += 1
                continue
            if empty:
                rank += str(empty)
                empty = 0
            letter = FEN_LETTERS[piece.type]
            rank += letter.upper() if piece.color == WHITE else letter
        if empty:
            rank += str(empty)
        ranks.append(rank)

    side = "w" if current_player == WHITE else "b"
    return f"{'/'.join(ranks)} {side} {_castling_field(board)} - {halfmove_clock} {fullmove_number}"
