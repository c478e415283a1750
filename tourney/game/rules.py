"""
Move rules for tournament chess.

Pure functions over a board snapshot. Piece geometry and blocking are checked;
check, checkmate, castling, en passant and promotion are not.
"""
from tourney.errors import InvalidMove
from tourney.game.board import Board, Position, in_bounds, piece_at, place
from tourney.utils.constants import (
    PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING,
    PAWN_DIRECTION, PAWN_START_ROW
)


def _step(delta: int) -> int:
    return (delta > 0) - (delta < 0)


def is_path_clear(board: Board, from_pos: Position, to_pos: Position) -> bool:
    """
    Check that every square strictly between two squares is empty.

    The squares must share a row, a column or a diagonal.

    Args:
        board: Board snapshot
        from_pos: (row, col) start square
        to_pos: (row, col) end square

    Returns:
        True if no piece stands between the two squares
    """
    row_step = _step(to_pos[0] - from_pos[0])
    col_step = _step(to_pos[1] - from_pos[1])

    row, col = from_pos[0] + row_step, from_pos[1] + col_step
    while (row, col) != tuple(to_pos):
        if board[row][col] is not None:
            return False
        row += row_step
        col += col_step
    return True


def _valid_pawn_move(board: Board, from_pos: Position, to_pos: Position, color: str) -> bool:
    direction = PAWN_DIRECTION[color]
    row_delta = to_pos[0] - from_pos[0]
    col_diff = abs(to_pos[1] - from_pos[1])
    target = piece_at(board, to_pos)

    if col_diff == 0:
        if target is not None:
            return False
        if row_delta == direction:
            return True
        # The square jumped over is not inspected on the double step.
        return from_pos[0] == PAWN_START_ROW[color] and row_delta == 2 * direction

    if col_diff == 1 and row_delta == direction:
        return target is not None and target.color != color
    return False


def validate_move(board: Board, from_pos: Position, to_pos: Position, mover_color: str) -> bool:
    """
    Check if a move is valid for the given color.

    Args:
        board: Board snapshot
        from_pos: (row, col) square to move from
        to_pos: (row, col) square to move to
        mover_color: Color of the player making the move

    Returns:
        True if the move is valid, False otherwise
    """
    if not in_bounds(from_pos) or not in_bounds(to_pos):
        return False

    piece = piece_at(board, from_pos)
    if piece is None or piece.color != mover_color:
        return False

    target = piece_at(board, to_pos)
    if target is not None and target.color == mover_color:
        return False

    row_diff = abs(to_pos[0] - from_pos[0])
    col_diff = abs(to_pos[1] - from_pos[1])

    if piece.type == PAWN:
        return _valid_pawn_move(board, from_pos, to_pos, mover_color)
    if piece.type == ROOK:
        return (row_diff == 0 or col_diff == 0) and is_path_clear(board, from_pos, to_pos)
    if piece.type == BISHOP:
        return row_diff == col_diff and is_path_clear(board, from_pos, to_pos)
    if piece.type == QUEEN:
        straight = row_diff == 0 or col_diff == 0
        return (straight or row_diff == col_diff) and is_path_clear(board, from_pos, to_pos)
    if piece.type == KNIGHT:
        return (row_diff, col_diff) in ((2, 1), (1, 2))
    if piece.type == KING:
        return row_diff <= 1 and col_diff <= 1
    return False


def apply_move(board: Board, from_pos: Position, to_pos: Position) -> Board:
    """
    Move a piece and return the resulting board.

    Whatever stood on the destination is captured. The input board is left
    untouched.

    Args:
        board: Board snapshot
        from_pos: (row, col) square to move from
        to_pos: (row, col) square to move to

    Returns:
        New board with the piece moved and flagged as having moved
    """
    piece = piece_at(board, from_pos)
    if piece is None:
        raise InvalidMove(f"No piece on {from_pos}")
    return place(board, {from_pos: None, to_pos: piece.moved()})


def require_valid_move(board: Board, from_pos: Position, to_pos: Position, mover_color: str):
    """Raise InvalidMove unless validate_move accepts the move."""
    if not validate_move(board, from_pos, to_pos, mover_color):
        raise InvalidMove(f"Illegal move for {mover_color}: {tuple(from_pos)} -> {tuple(to_pos)}")
