"""
Serialization utilities for chess game state.

Converts boards and sessions to/from JSON-serializable structures for:
- Persistent storage
- Web API responses
- WebSocket pushes
"""
from typing import Dict, List, Tuple, Any, Optional

from tourney.game.board import Board, Piece, Position
from tourney.game.clock import TimeControl, format_clock
from tourney.game.session import GameSession, GameStatus
from tourney.utils.constants import WHITE, BLACK


def serialize_position(pos: Position) -> Dict[str, int]:
    """Convert a (row, col) tuple to the wire shape {row, col}."""
    return {"row": pos[0], "col": pos[1]}


def deserialize_position(pos: Dict[str, int]) -> Position:
    """Convert a {row, col} dict back to a tuple."""
    return (int(pos["row"]), int(pos["col"]))


def serialize_piece(piece: Optional[Piece]) -> Optional[Dict[str, Any]]:
    if piece is None:
        return None
    return {"type": piece.type, "color": piece.color, "has_moved": piece.has_moved}


def deserialize_piece(data: Optional[Dict[str, Any]]) -> Optional[Piece]:
    if data is None:
        return None
    return Piece(data["type"], data["color"], bool(data.get("has_moved", False)))


def serialize_board(board: Board) -> List[List[Optional[Dict[str, Any]]]]:
    """
    Serialize a board to nested lists.

    Args:
        board: 8x8 board of optional pieces

    Returns:
        List of rows, each a list of piece dicts or None
    """
    return [[serialize_piece(piece) for piece in row] for row in board]


def deserialize_board(rows: List[List[Optional[Dict[str, Any]]]]) -> Board:
    """
    Deserialize a board from nested lists.

    Args:
        rows: List of rows as produced by serialize_board

    Returns:
        Immutable 8x8 board
    """
    return tuple(tuple(deserialize_piece(cell) for cell in row) for row in rows)


def serialize_time_control(time_control: TimeControl) -> Dict[str, int]:
    return {
        "initial_seconds": time_control.initial_seconds,
        "increment_seconds": time_control.increment_seconds
    }


def deserialize_time_control(data: Dict[str, int]) -> TimeControl:
    return TimeControl(data["initial_seconds"], data["increment_seconds"])


def serialize_session(session: GameSession, now: Optional[int] = None) -> Dict[str, Any]:
    """
    Serialize complete session state for API consumers.

    Args:
        session: Game session
        now: Optional server time; when given, the running clock is projected

    Returns:
        Dict containing board, turn, status, clocks and history
    """
    if now is None:
        white_live, black_live = session.white_remaining, session.black_remaining
    else:
        white_live = session.live_remaining(WHITE, now)
        black_live = session.live_remaining(BLACK, now)

    return {
        "session_id": session.id,
        "match_id": session.match_id,
        "board": serialize_board(session.board),
        "fen": session.fen(),
        "current_player": session.current_player,
        "game_status": session.game_status.value,
        "white_player_id": session.white_player_id,
        "black_player_id": session.black_player_id,
        "time_control": serialize_time_control(session.time_control),
        "white_remaining": session.white_remaining,
        "black_remaining": session.black_remaining,
        "white_clock": format_clock(white_live),
        "black_clock": format_clock(black_live),
        "last_move_timestamp": session.last_move_timestamp,
        "move_history": list(session.move_history),
        "draw_offered_by": session.draw_offered_by,
    }


def session_from_record(record: Dict[str, Any]) -> GameSession:
    """Rebuild a GameSession from a storage record with decoded JSON fields."""
    return GameSession(
        id=record["id"],
        match_id=record["match_id"],
        white_player_id=record["white_player_id"],
        black_player_id=record["black_player_id"],
        time_control=deserialize_time_control(record["time_control"]),
        white_remaining=record["white_remaining"],
        black_remaining=record["black_remaining"],
        last_move_timestamp=record["last_move_timestamp"],
        board=deserialize_board(record["board"]),
        current_player=record["current_player"],
        game_status=GameStatus(record["game_status"]),
        move_history=list(record["move_history"]),
        halfmove_clock=record.get("halfmove_clock", 0),
        draw_offered_by=record.get("draw_offered_by"),
        draw_offered_at=record.get("draw_offered_at"),
        version=record.get("version", 0),
    )


def parse_move_positions(from_data: Dict[str, int], to_data: Dict[str, int]) -> Tuple[Position, Position]:
    """Convert a wire move's from/to objects into position tuples."""
    return deserialize_position(from_data), deserialize_position(to_data)
