"""
Game session for a single chess game embedded in a match.

A session owns the board, the turn, both clocks and the move history. All
operations check their preconditions before touching any field, so a failed
call leaves the session exactly as it was.
"""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from tourney.errors import AuthorizationDenied, InvalidState
from tourney.game.board import Board, Position, initial_board, board_to_fen, move_notation, piece_at
from tourney.game.clock import TimeControl, ClockDebit, commit_move, is_flagged, projected_remaining
from tourney.game.rules import apply_move, require_valid_move
from tourney.utils.constants import WHITE, BLACK, PAWN, opposite


class GameStatus(Enum):
    """Status of an embedded game."""
    ACTIVE = "active"
    CHECKMATE = "checkmate"      # never set by the engine
    STALEMATE = "stalemate"      # never set by the engine
    DRAW = "draw"
    RESIGNATION = "resignation"
    TIMEOUT = "timeout"


@dataclass
class GameSession:
    """A live chess game tied to one match."""
    id: str
    match_id: str
    white_player_id: str
    black_player_id: str
    time_control: TimeControl
    white_remaining: int
    black_remaining: int
    last_move_timestamp: int
    board: Board = field(default_factory=initial_board)
    current_player: str = WHITE
    game_status: GameStatus = GameStatus.ACTIVE
    move_history: List[str] = field(default_factory=list)
    halfmove_clock: int = 0
    draw_offered_by: Optional[str] = None
    draw_offered_at: Optional[int] = None
    version: int = 0

    @classmethod
    def create(
        cls,
        match_id: str,
        white_player_id: str,
        black_player_id: str,
        time_control: Optional[TimeControl] = None,
        now: int = 0
    ) -> "GameSession":
        """
        Start a new game from the initial position.

        Args:
            match_id: Owning match
            white_player_id: User playing white
            black_player_id: User playing black
            time_control: Optional time control (defaults to 600s + 5s)
            now: Creation time in epoch milliseconds

        Returns:
            New GameSession with white to move
        """
        time_control = time_control or TimeControl()
        return cls(
            id=str(uuid.uuid4()),
            match_id=match_id,
            white_player_id=white_player_id,
            black_player_id=black_player_id,
            time_control=time_control,
            white_remaining=time_control.initial_seconds,
            black_remaining=time_control.initial_seconds,
            last_move_timestamp=now,
        )

    # -- queries ---------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.game_status == GameStatus.ACTIVE

    def color_of(self, user_id: str) -> Optional[str]:
        """Color played by a user, or None for non-players."""
        if user_id == self.white_player_id:
            return WHITE
        if user_id == self.black_player_id:
            return BLACK
        return None

    def player_for(self, color: str) -> str:
        return self.white_player_id if color == WHITE else self.black_player_id

    def remaining(self, color: str) -> int:
        return self.white_remaining if color == WHITE else self.black_remaining

    def live_remaining(self, color: str, now: int) -> int:
        """Remaining time including the running clock of the side to move."""
        if self.is_active and color == self.current_player:
            return projected_remaining(self.remaining(color), self.last_move_timestamp, now)
        return self.remaining(color)

    def fen(self) -> str:
        return board_to_fen(
            self.board,
            self.current_player,
            self.halfmove_clock,
            len(self.move_history) // 2 + 1
        )

    # -- mutations -------------------------------------------------------

    def _require_active(self):
        if not self.is_active:
            raise InvalidState(f"Game is over ({self.game_status.value})")

    def _require_player(self, user_id: str) -> str:
        color = self.color_of(user_id)
        if color is None:
            raise AuthorizationDenied("You are not a player in this game")
        return color

    def play_move(self, from_pos: Position, to_pos: Position, now: int) -> Tuple[str, ClockDebit]:
        """
        Play a move for the side to move.

        Runs the rules engine, then the clock ledger, records the move and
        passes the turn.

        Args:
            from_pos: (row, col) square to move from
            to_pos: (row, col) square to move to
            now: Server time of the move in epoch milliseconds

        Returns:
            (move notation, ClockDebit)
        """
        self._require_active()
        from_pos, to_pos = tuple(from_pos), tuple(to_pos)
        mover = self.current_player
        require_valid_move(self.board, from_pos, to_pos, mover)

        resets_halfmove = (
            piece_at(self.board, from_pos).type == PAWN
            or piece_at(self.board, to_pos) is not None
        )
        new_board = apply_move(self.board, from_pos, to_pos)
        clocks, debit = commit_move(
            {WHITE: self.white_remaining, BLACK: self.black_remaining},
            mover,
            self.last_move_timestamp,
            now,
            self.time_control.increment_seconds
        )
        notation = move_notation(from_pos, to_pos)

        self.board = new_board
        self.white_remaining = clocks[WHITE]
        self.black_remaining = clocks[BLACK]
        self.last_move_timestamp = now
        self.move_history = self.move_history + [notation]
        self.halfmove_clock = 0 if resets_halfmove else self.halfmove_clock + 1
        self.current_player = opposite(mover)
        # A move implicitly declines any pending draw offer
        self.draw_offered_by = None
        self.draw_offered_at = None
        return notation, debit

    def resign(self, user_id: str) -> str:
        """Resign the game. Returns the winner's user id."""
        color = self._require_player(user_id)
        self._require_active()
        self.game_status = GameStatus.RESIGNATION
        self.draw_offered_by = None
        self.draw_offered_at = None
        return self.player_for(opposite(color))

    def offer_draw(self, user_id: str, now: int):
        """Record a draw offer from a player."""
        self._require_player(user_id)
        self._require_active()
        if self.draw_offered_by is not None:
            raise InvalidState("A draw offer is already pending")
        self.draw_offered_by = user_id
        self.draw_offered_at = now

    def _require_offer_to(self, user_id: str):
        self._require_player(user_id)
        self._require_active()
        if self.draw_offered_by is None:
            raise InvalidState("No draw offer is pending")
        if self.draw_offered_by == user_id:
            raise AuthorizationDenied("Only the opponent can answer a draw offer")

    def accept_draw(self, user_id: str):
        """Accept the opponent's pending draw offer."""
        self._require_offer_to(user_id)
        self.game_status = GameStatus.DRAW
        self.draw_offered_by = None
        self.draw_offered_at = None

    def decline_draw(self, user_id: str):
        """Decline the opponent's pending draw offer."""
        self._require_offer_to(user_id)
        self.draw_offered_by = None
        self.draw_offered_at = None

    def flag(self, now: int) -> Optional[str]:
        """
        Check the running clock on the server.

        If the side to move has run out of time the game ends on timeout.

        Returns:
            The flagged color, or None if time remains
        """
        self._require_active()
        color = self.current_player
        if not is_flagged(self.remaining(color), self.last_move_timestamp, now):
            return None
        if color == WHITE:
            self.white_remaining = 0
        else:
            self.black_remaining = 0
        self.game_status = GameStatus.TIMEOUT
        self.draw_offered_by = None
        self.draw_offered_at = None
        return color
