"""
Match lifecycle.

Owns every status transition of a match and the embedded game session that
goes with it:

    scheduled -> active -> completed | cancelled

Nothing leaves completed or cancelled. Each mutating call takes a per-match
lock, reloads the records, checks authorization and state, applies the change
to the in-memory copies and persists them in one transaction. Any error
raised before the final write leaves storage untouched.
"""
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from tourney.errors import (
    AuthenticationRequired, AuthorizationDenied, NotFound, InvalidState, AlreadyExists
)
from tourney.game.board import Position
from tourney.game.clock import TimeControl, ClockDebit, now_ms
from tourney.game.serialization import serialize_session
from tourney.game.session import GameSession
from tourney.tournament.models import Match, MatchStatus, Score, Tournament
from tourney.tournament.storage import TournamentStorage

logger = logging.getLogger(__name__)


@dataclass
class MoveOutcome:
    """Result of an accepted move."""
    match: Match
    session: GameSession
    notation: str
    debit: ClockDebit


class MatchLocks:
    """
    Registry of one mutex per match id.

    An entry only lives while some caller holds or waits for it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, match_id: str):
        with self._guard:
            lock = self._locks.get(match_id)
            if lock is None:
                lock = self._locks[match_id] = threading.Lock()
            self._users[match_id] = self._users.get(match_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[match_id] -= 1
                if not self._users[match_id]:
                    del self._users[match_id]
                    del self._locks[match_id]


class MatchLifecycle:
    """
    Entry point for every match and game session mutation.

    Usage:
        lifecycle = MatchLifecycle(storage)
        match = lifecycle.create(owner_id, tournament_id, 1, 1, p1, p2)
        lifecycle.start(p1, match.id)
        lifecycle.apply_move(p1, match.id, (6, 4), (4, 4), payload)
    """

    def __init__(
        self,
        storage: TournamentStorage,
        clock: Optional[Callable[[], int]] = None,
        default_time_control: Optional[TimeControl] = None
    ):
        """
        Initialize the lifecycle.

        Args:
            storage: Persistent store for matches and sessions
            clock: Callable returning epoch milliseconds (defaults to wall time)
            default_time_control: Time control for new sessions (600s + 5s if None)
        """
        self.storage = storage
        self.clock = clock or now_ms
        self.default_time_control = default_time_control or TimeControl()
        self.locks = MatchLocks()

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _require_caller(caller_id: Optional[str]) -> str:
        if not caller_id:
            raise AuthenticationRequired("Not authenticated")
        return caller_id

    def _load(self, match_id: str) -> Tuple[Match, Tournament]:
        match = self.storage.get_match(match_id)
        if match is None:
            raise NotFound(f"Match {match_id} not found")
        tournament = self.storage.require_tournament(match.tournament_id)
        return match, tournament

    def _load_session(self, match_id: str) -> GameSession:
        session = self.storage.get_session_by_match(match_id)
        if session is None:
            raise NotFound(f"No game session for match {match_id}")
        return session

    @staticmethod
    def _require_owner(caller_id: str, tournament: Tournament, action: str):
        if tournament.owner_id != caller_id:
            raise AuthorizationDenied(f"Only the tournament owner can {action}")

    @staticmethod
    def _require_player(caller_id: str, match: Match):
        if not match.involves(caller_id):
            raise AuthorizationDenied("You are not a player in this match")

    @staticmethod
    def _require_status(match: Match, *allowed: MatchStatus):
        if match.status not in allowed:
            expected = " or ".join(s.value for s in allowed)
            raise InvalidState(f"Match is {match.status.value}, expected {expected}")

    def _complete(self, match: Match, winner_id: Optional[str], score: Optional[Score] = None):
        match.status = MatchStatus.COMPLETED
        match.winner_id = winner_id
        match.end_time = self.clock()
        if score is not None:
            match.score = score

    # =========================================================================
    # Lifecycle transitions
    # =========================================================================

    def create(
        self,
        caller_id: Optional[str],
        tournament_id: str,
        round: int,
        match_number: int,
        player1_id: str,
        player2_id: str,
        start_time: Optional[int] = None
    ) -> Match:
        """
        Create a scheduled match.

        Args:
            caller_id: Resolved user id of the caller (must own the tournament)
            tournament_id: Tournament the match belongs to
            round: Round number, starting at 1
            match_number: Position within the round, starting at 1
            player1_id: First player (plays white)
            player2_id: Second player (plays black)
            start_time: Optional planned start in epoch milliseconds

        Returns:
            The new Match in scheduled state
        """
        caller_id = self._require_caller(caller_id)
        tournament = self.storage.require_tournament(tournament_id)
        self._require_owner(caller_id, tournament, "create matches")

        match = self._new_match(tournament_id, round, match_number, player1_id, player2_id, start_time)
        self.storage.insert_match(match)
        logger.info("Created match %s (round %d, match %d) in tournament %s",
                    match.id, round, match_number, tournament_id)
        return match

    def create_round(
        self,
        caller_id: Optional[str],
        tournament_id: str,
        round: int,
        slots: List[Tuple[int, str, str]]
    ) -> List[Match]:
        """
        Create every match of a round in one transaction.

        Args:
            caller_id: Resolved user id of the caller (must own the tournament)
            tournament_id: Tournament the matches belong to
            round: Round number, starting at 1
            slots: (match_number, player1_id, player2_id) per match

        Returns:
            The new scheduled matches, in slot order. If any slot is taken
            none of them is stored.
        """
        caller_id = self._require_caller(caller_id)
        tournament = self.storage.require_tournament(tournament_id)
        self._require_owner(caller_id, tournament, "create matches")

        matches = [
            self._new_match(tournament_id, round, number, player1_id, player2_id)
            for number, player1_id, player2_id in slots
        ]
        self.storage.insert_matches(matches)
        logger.info("Created %d matches for round %d in tournament %s",
                    len(matches), round, tournament_id)
        return matches

    @staticmethod
    def _new_match(
        tournament_id: str,
        round: int,
        match_number: int,
        player1_id: str,
        player2_id: str,
        start_time: Optional[int] = None
    ) -> Match:
        if round < 1 or match_number < 1:
            raise ValueError("round and match_number must be positive")
        if not player1_id or not player2_id or player1_id == player2_id:
            raise ValueError("A match needs two different players")

        return Match(
            id=str(uuid.uuid4()),
            tournament_id=tournament_id,
            round=round,
            match_number=match_number,
            player1_id=player1_id,
            player2_id=player2_id,
            status=MatchStatus.SCHEDULED,
            start_time=start_time
        )

    def start(
        self,
        caller_id: Optional[str],
        match_id: str,
        time_control: Optional[TimeControl] = None
    ) -> Match:
        """
        Start a scheduled match.

        For game types with an embedded game a session is created with
        white = player1 and black = player2.
        """
        caller_id = self._require_caller(caller_id)
        with self.locks.hold(match_id):
            match, tournament = self._load(match_id)
            if tournament.owner_id != caller_id and not match.involves(caller_id):
                raise AuthorizationDenied("Not authorized to start this match")
            self._require_status(match, MatchStatus.SCHEDULED)

            session = None
            if tournament.requires_embedded_game:
                if self.storage.get_session_by_match(match_id) is not None:
                    raise AlreadyExists(f"A game session already exists for match {match_id}")

            now = self.clock()
            match.status = MatchStatus.ACTIVE
            match.start_time = now
            if tournament.requires_embedded_game:
                session = GameSession.create(
                    match_id=match.id,
                    white_player_id=match.player1_id,
                    black_player_id=match.player2_id,
                    time_control=time_control or self.default_time_control,
                    now=now
                )

            self.storage.save_match_and_session(match, session, new_session=True)
            logger.info("Started match %s (embedded game: %s)", match_id, session is not None)
            return match

    def apply_move(
        self,
        caller_id: Optional[str],
        match_id: str,
        from_pos: Position,
        to_pos: Position,
        payload: Optional[str] = None
    ) -> MoveOutcome:
        """
        Play a move in an active match.

        The payload is an opaque client blob mirrored onto the match record;
        it is stored as-is without structural validation.

        Args:
            caller_id: Resolved user id of the mover
            match_id: Match to play in
            from_pos: (row, col) square to move from
            to_pos: (row, col) square to move to
            payload: Opaque client game data

        Returns:
            MoveOutcome with the updated match, session, notation and clock debit
        """
        caller_id = self._require_caller(caller_id)
        with self.locks.hold(match_id):
            match, _ = self._load(match_id)
            self._require_status(match, MatchStatus.ACTIVE)
            session = self._load_session(match_id)
            if not session.is_active:
                raise InvalidState(f"Game is over ({session.game_status.value})")

            color = session.color_of(caller_id)
            if color is None:
                raise AuthorizationDenied("You are not a player in this game")
            if color != session.current_player:
                raise AuthorizationDenied("It's not your turn")

            notation, debit = session.play_move(from_pos, to_pos, self.clock())
            match.game_data = payload

            self.storage.save_match_and_session(match, session)
            logger.debug("Match %s: %s played %s (%ss elapsed, %ss left)",
                         match_id, color, notation, debit.elapsed_seconds, debit.remaining_after)
            return MoveOutcome(match, session, notation, debit)

    def resign(self, caller_id: Optional[str], match_id: str) -> Match:
        """Resign; the other player is recorded as the winner."""
        caller_id = self._require_caller(caller_id)
        with self.locks.hold(match_id):
            match, _ = self._load(match_id)
            self._require_player(caller_id, match)
            self._require_status(match, MatchStatus.ACTIVE)

            session = self.storage.get_session_by_match(match_id)
            if session is not None and session.is_active:
                winner_id = session.resign(caller_id)
            else:
                winner_id = match.opponent_of(caller_id)
                session = None

            self._complete(match, winner_id)
            self.storage.save_match_and_session(match, session)
            logger.info("Match %s: %s resigned, winner %s", match_id, caller_id, winner_id)
            return match

    def end(
        self,
        caller_id: Optional[str],
        match_id: str,
        winner_id: Optional[str] = None,
        score: Optional[Score] = None
    ) -> Match:
        """
        Complete a match with an owner-declared result.

        Args:
            caller_id: Resolved user id (must own the tournament)
            match_id: Match to end
            winner_id: Optional winner; must be one of the two players
            score: Optional final score

        Returns:
            The completed Match
        """
        caller_id = self._require_caller(caller_id)
        with self.locks.hold(match_id):
            match, tournament = self._load(match_id)
            self._require_owner(caller_id, tournament, "end matches")
            self._require_status(match, MatchStatus.SCHEDULED, MatchStatus.ACTIVE)
            if winner_id is not None and not match.involves(winner_id):
                raise ValueError("Winner must be one of the match players")

            self._complete(match, winner_id, score)
            self.storage.update_match(match)
            logger.info("Match %s ended by owner, winner %s", match_id, winner_id)
            return match

    def cancel(self, caller_id: Optional[str], match_id: str) -> Match:
        """Cancel a scheduled or active match (owner only)."""
        caller_id = self._require_caller(caller_id)
        with self.locks.hold(match_id):
            match, tournament = self._load(match_id)
            self._require_owner(caller_id, tournament, "cancel matches")
            self._require_status(match, MatchStatus.SCHEDULED, MatchStatus.ACTIVE)

            match.status = MatchStatus.CANCELLED
            match.end_time = self.clock()
            self.storage.update_match(match)
            logger.info("Match %s cancelled", match_id)
            return match

    # =========================================================================
    # Draws, timeouts and streams
    # =========================================================================

    def _active_game(self, caller_id: str, match_id: str) -> Tuple[Match, GameSession]:
        match, _ = self._load(match_id)
        self._require_player(caller_id, match)
        self._require_status(match, MatchStatus.ACTIVE)
        return match, self._load_session(match_id)

    def offer_draw(self, caller_id: Optional[str], match_id: str) -> GameSession:
        """Offer a draw to the opponent."""
        caller_id = self._require_caller(caller_id)
        with self.locks.hold(match_id):
            _, session = self._active_game(caller_id, match_id)
            session.offer_draw(caller_id, self.clock())
            self.storage.update_session(session)
            logger.info("Match %s: draw offered by %s", match_id, caller_id)
            return session

    def respond_to_draw(self, caller_id: Optional[str], match_id: str, accept: bool) -> Match:
        """
        Accept or decline the opponent's draw offer.

        Acceptance completes the match with no winner and a half point each.
        """
        caller_id = self._require_caller(caller_id)
        with self.locks.hold(match_id):
            match, session = self._active_game(caller_id, match_id)
            if accept:
                session.accept_draw(caller_id)
                self._complete(match, None, Score(0.5, 0.5))
                self.storage.save_match_and_session(match, session)
                logger.info("Match %s drawn by agreement", match_id)
            else:
                session.decline_draw(caller_id)
                self.storage.update_session(session)
            return match

    def claim_timeout(self, caller_id: Optional[str], match_id: str) -> Match:
        """
        Confirm a clock expiry on the server.

        The running clock is recomputed from server time; the claim only
        succeeds when the side to move really has no time left.
        """
        caller_id = self._require_caller(caller_id)
        with self.locks.hold(match_id):
            match, tournament = self._load(match_id)
            if tournament.owner_id != caller_id and not match.involves(caller_id):
                raise AuthorizationDenied("Not authorized to claim a timeout in this match")
            self._require_status(match, MatchStatus.ACTIVE)
            session = self._load_session(match_id)

            flagged = session.flag(self.clock())
            if flagged is None:
                raise InvalidState("Clock has not run out")

            winner_id = match.opponent_of(session.player_for(flagged))
            self._complete(match, winner_id)
            self.storage.save_match_and_session(match, session)
            logger.info("Match %s: %s flagged, winner %s", match_id, flagged, winner_id)
            return match

    def start_stream(self, caller_id: Optional[str], match_id: str) -> Match:
        """Mark the match as streaming video (players only)."""
        return self._set_stream(caller_id, match_id, True)

    def stop_stream(self, caller_id: Optional[str], match_id: str) -> Match:
        return self._set_stream(caller_id, match_id, False)

    def _set_stream(self, caller_id: Optional[str], match_id: str, active: bool) -> Match:
        caller_id = self._require_caller(caller_id)
        with self.locks.hold(match_id):
            match, _ = self._load(match_id)
            if not match.involves(caller_id):
                raise AuthorizationDenied("Only players can control the stream")
            match.stream_active = active
            match.stream_started_by = caller_id if active else None
            self.storage.update_match(match)
            return match

    # =========================================================================
    # Reads
    # =========================================================================

    def get_match(self, caller_id: Optional[str], match_id: str) -> Match:
        self._require_caller(caller_id)
        match, _ = self._load(match_id)
        return match

    def get_session(self, caller_id: Optional[str], match_id: str) -> Optional[GameSession]:
        self._require_caller(caller_id)
        self._load(match_id)
        return self.storage.get_session_by_match(match_id)

    def list_matches(self, caller_id: Optional[str], tournament_id: str) -> List[Match]:
        self._require_caller(caller_id)
        self.storage.require_tournament(tournament_id)
        return self.storage.list_matches(tournament_id)

    def match_view(self, caller_id: Optional[str], match_id: str) -> Dict[str, Any]:
        """
        Snapshot of a match for UI consumers.

        Returns:
            Dict with the match record and, when present, the game session
            (board, turn, status, both clocks, history)
        """
        self._require_caller(caller_id)
        match, _ = self._load(match_id)
        session = self.storage.get_session_by_match(match_id)
        return serialize_match(match, session, self.clock())


def serialize_match(match: Match, session: Optional[GameSession] = None,
                    now: Optional[int] = None) -> Dict[str, Any]:
    """
    Serialize a match (and its session) to a JSON-compatible dictionary.

    The running clock is only projected to `now` while the match is active.
    """
    if match.status != MatchStatus.ACTIVE:
        now = None
    return {
        "id": match.id,
        "tournament_id": match.tournament_id,
        "round": match.round,
        "match_number": match.match_number,
        "player1_id": match.player1_id,
        "player2_id": match.player2_id,
        "status": match.status.value,
        "winner_id": match.winner_id,
        "start_time": match.start_time,
        "end_time": match.end_time,
        "score": (
            {"player1_score": match.score.player1_score, "player2_score": match.score.player2_score}
            if match.score else None
        ),
        "game_data": match.game_data,
        "stream_active": match.stream_active,
        "stream_started_by": match.stream_started_by,
        "game": serialize_session(session, now) if session else None,
    }
