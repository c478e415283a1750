"""
Storage backend for tournaments, matches and game sessions.

Uses SQLite for all records. Every write runs in a single transaction, and
match/session updates compare-and-swap on a version column so a stale copy
can never overwrite a newer one.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional, Dict, Any

from tourney.errors import AlreadyExists, InvalidState, NotFound
from tourney.game.serialization import serialize_board, serialize_time_control, session_from_record
from tourney.game.session import GameSession
from tourney.tournament.models import (
    Tournament, TournamentStatus, Participant, ParticipantRole, ParticipantStatus,
    Match, MatchStatus, Score
)

logger = logging.getLogger(__name__)


def _match_from_row(row: sqlite3.Row) -> Match:
    score = json.loads(row['score']) if row['score'] else None
    return Match(
        id=row['id'],
        tournament_id=row['tournament_id'],
        round=row['round'],
        match_number=row['match_number'],
        player1_id=row['player1_id'],
        player2_id=row['player2_id'],
        status=MatchStatus(row['status']),
        winner_id=row['winner_id'],
        start_time=row['start_time'],
        end_time=row['end_time'],
        score=Score(score['player1_score'], score['player2_score']) if score else None,
        game_data=row['game_data'],
        stream_active=bool(row['stream_active']),
        stream_started_by=row['stream_started_by'],
        version=row['version']
    )


def _session_from_row(row: sqlite3.Row) -> GameSession:
    record = dict(row)
    record['board'] = json.loads(record['board'])
    record['time_control'] = json.loads(record['time_control'])
    record['move_history'] = json.loads(record['move_history'])
    return session_from_record(record)


def _score_json(score: Optional[Score]) -> Optional[str]:
    if score is None:
        return None
    return json.dumps({'player1_score': score.player1_score, 'player2_score': score.player2_score})


class TournamentStorage:
    """
    Handles persistent storage of tournament records.

    Uses SQLite tables in the tourney.db database.
    """

    def __init__(self, data_dir: str = "data"):
        """
        Initialize storage backend.

        Args:
            data_dir: Base directory for data storage
        """
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / "tourney.db"

        # Ensure directory exists
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Initialize database tables
        self._init_db()

    @contextmanager
    def _transaction(self):
        """Yield a connection whose work commits on success and rolls back on error."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self):
        """Initialize SQLite database schema."""
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tournaments (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    game_type TEXT NOT NULL,
                    max_participants INTEGER NOT NULL,
                    status TEXT DEFAULT 'upcoming',
                    name TEXT DEFAULT ''
                )
            """)

            # seq preserves registration order
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tournament_participants (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    tournament_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    role TEXT NOT NULL,
                    status TEXT NOT NULL,
                    registered_at INTEGER,
                    UNIQUE (tournament_id, user_id),
                    FOREIGN KEY (tournament_id) REFERENCES tournaments(id)
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS matches (
                    id TEXT PRIMARY KEY,
                    tournament_id TEXT NOT NULL,
                    round INTEGER NOT NULL,
                    match_number INTEGER NOT NULL,
                    player1_id TEXT NOT NULL,
                    player2_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    winner_id TEXT,
                    start_time INTEGER,
                    end_time INTEGER,
                    score TEXT,
                    game_data TEXT,
                    stream_active INTEGER DEFAULT 0,
                    stream_started_by TEXT,
                    version INTEGER DEFAULT 0,
                    UNIQUE (tournament_id, round, match_number),
                    FOREIGN KEY (tournament_id) REFERENCES tournaments(id)
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS game_sessions (
                    id TEXT PRIMARY KEY,
                    match_id TEXT NOT NULL UNIQUE,
                    white_player_id TEXT NOT NULL,
                    black_player_id TEXT NOT NULL,
                    board TEXT NOT NULL,
                    current_player TEXT NOT NULL,
                    game_status TEXT NOT NULL,
                    time_control TEXT NOT NULL,
                    white_remaining INTEGER NOT NULL,
                    black_remaining INTEGER NOT NULL,
                    last_move_timestamp INTEGER NOT NULL,
                    move_history TEXT NOT NULL,
                    halfmove_clock INTEGER DEFAULT 0,
                    draw_offered_by TEXT,
                    draw_offered_at INTEGER,
                    version INTEGER DEFAULT 0,
                    FOREIGN KEY (match_id) REFERENCES matches(id)
                )
            """)

            # Indexes
            conn.execute("CREATE INDEX IF NOT EXISTS idx_participants_tournament ON tournament_participants(tournament_id, role)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_matches_tournament ON matches(tournament_id, round)")

    # =========================================================================
    # Tournaments and participants
    # =========================================================================

    def add_tournament(self, tournament: Tournament) -> str:
        """Insert a tournament record. Returns its id."""
        try:
            with self._transaction() as conn:
                conn.execute("""
                    INSERT INTO tournaments (id, owner_id, game_type, max_participants, status, name)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (
                    tournament.id,
                    tournament.owner_id,
                    tournament.game_type,
                    tournament.max_participants,
                    tournament.status.value,
                    tournament.name
                ))
        except sqlite3.IntegrityError:
            raise AlreadyExists(f"Tournament {tournament.id} already exists")
        return tournament.id

    def get_tournament(self, tournament_id: str) -> Optional[Tournament]:
        """Load a tournament by ID."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM tournaments WHERE id = ?", (tournament_id,)
            ).fetchone()
        if not row:
            return None
        return Tournament(
            id=row['id'],
            owner_id=row['owner_id'],
            game_type=row['game_type'],
            max_participants=row['max_participants'],
            status=TournamentStatus(row['status']),
            name=row['name'] or ""
        )

    def require_tournament(self, tournament_id: str) -> Tournament:
        tournament = self.get_tournament(tournament_id)
        if tournament is None:
            raise NotFound(f"Tournament {tournament_id} not found")
        return tournament

    def add_participant(self, participant: Participant):
        """Register a user in a tournament."""
        try:
            with self._transaction() as conn:
                conn.execute("""
                    INSERT INTO tournament_participants
                    (tournament_id, user_id, role, status, registered_at)
                    VALUES (?, ?, ?, ?, ?)
                """, (
                    participant.tournament_id,
                    participant.user_id,
                    participant.role.value,
                    participant.status.value,
                    participant.registered_at
                ))
        except sqlite3.IntegrityError:
            raise AlreadyExists(
                f"User {participant.user_id} already registered for {participant.tournament_id}"
            )

    def list_participants(
        self,
        tournament_id: str,
        role: Optional[ParticipantRole] = None,
        status: Optional[ParticipantStatus] = None
    ) -> List[Participant]:
        """List registrations in registration order, optionally filtered."""
        query = "SELECT * FROM tournament_participants WHERE tournament_id = ?"
        params: List[Any] = [tournament_id]
        if role is not None:
            query += " AND role = ?"
            params.append(role.value)
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY seq ASC"

        with self._transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            Participant(
                tournament_id=r['tournament_id'],
                user_id=r['user_id'],
                role=ParticipantRole(r['role']),
                status=ParticipantStatus(r['status']),
                registered_at=r['registered_at'] or 0
            )
            for r in rows
        ]

    # =========================================================================
    # Matches
    # =========================================================================

    @staticmethod
    def _insert_match_row(conn: sqlite3.Connection, match: Match):
        try:
            conn.execute("""
                INSERT INTO matches
                (id, tournament_id, round, match_number, player1_id, player2_id,
                 status, winner_id, start_time, end_time, score, game_data,
                 stream_active, stream_started_by, version)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                match.id,
                match.tournament_id,
                match.round,
                match.match_number,
                match.player1_id,
                match.player2_id,
                match.status.value,
                match.winner_id,
                match.start_time,
                match.end_time,
                _score_json(match.score),
                match.game_data,
                int(match.stream_active),
                match.stream_started_by,
                match.version
            ))
        except sqlite3.IntegrityError:
            raise AlreadyExists(
                f"Round {match.round} match {match.match_number} already exists"
            )

    def insert_match(self, match: Match):
        """Insert a new match; its (tournament, round, number) slot must be free."""
        with self._transaction() as conn:
            self._insert_match_row(conn, match)

    def insert_matches(self, matches: List[Match]):
        """Insert several matches in one transaction; nothing is stored if any slot is taken."""
        with self._transaction() as conn:
            for match in matches:
                self._insert_match_row(conn, match)

    def get_match(self, match_id: str) -> Optional[Match]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM matches WHERE id = ?", (match_id,)).fetchone()
        return _match_from_row(row) if row else None

    def list_matches(self, tournament_id: str, round: Optional[int] = None) -> List[Match]:
        """List matches of a tournament ordered by round then match number."""
        query = "SELECT * FROM matches WHERE tournament_id = ?"
        params: List[Any] = [tournament_id]
        if round is not None:
            query += " AND round = ?"
            params.append(round)
        query += " ORDER BY round ASC, match_number ASC"

        with self._transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_match_from_row(r) for r in rows]

    def _update_match_row(self, conn: sqlite3.Connection, match: Match):
        cursor = conn.execute("""
            UPDATE matches
            SET status = ?, winner_id = ?, start_time = ?, end_time = ?, score = ?,
                game_data = ?, stream_active = ?, stream_started_by = ?,
                version = version + 1
            WHERE id = ? AND version = ?
        """, (
            match.status.value,
            match.winner_id,
            match.start_time,
            match.end_time,
            _score_json(match.score),
            match.game_data,
            int(match.stream_active),
            match.stream_started_by,
            match.id,
            match.version
        ))
        if cursor.rowcount == 0:
            logger.warning("Stale write rejected for match %s (version %s)", match.id, match.version)
            raise InvalidState(f"Match {match.id} was modified concurrently")

    def update_match(self, match: Match):
        """Persist a match if nobody else changed it since it was read."""
        with self._transaction() as conn:
            self._update_match_row(conn, match)
        match.version += 1

    # =========================================================================
    # Game sessions
    # =========================================================================

    def _session_values(self, session: GameSession) -> Dict[str, Any]:
        return {
            'board': json.dumps(serialize_board(session.board)),
            'current_player': session.current_player,
            'game_status': session.game_status.value,
            'time_control': json.dumps(serialize_time_control(session.time_control)),
            'white_remaining': session.white_remaining,
            'black_remaining': session.black_remaining,
            'last_move_timestamp': session.last_move_timestamp,
            'move_history': json.dumps(session.move_history),
            'halfmove_clock': session.halfmove_clock,
            'draw_offered_by': session.draw_offered_by,
            'draw_offered_at': session.draw_offered_at,
        }

    def _insert_session_row(self, conn: sqlite3.Connection, session: GameSession):
        values = self._session_values(session)
        try:
            conn.execute("""
                INSERT INTO game_sessions
                (id, match_id, white_player_id, black_player_id, board, current_player,
                 game_status, time_control, white_remaining, black_remaining,
                 last_move_timestamp, move_history, halfmove_clock,
                 draw_offered_by, draw_offered_at, version)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                session.id,
                session.match_id,
                session.white_player_id,
                session.black_player_id,
                values['board'],
                values['current_player'],
                values['game_status'],
                values['time_control'],
                values['white_remaining'],
                values['black_remaining'],
                values['last_move_timestamp'],
                values['move_history'],
                values['halfmove_clock'],
                values['draw_offered_by'],
                values['draw_offered_at'],
                session.version
            ))
        except sqlite3.IntegrityError:
            raise AlreadyExists(f"A game session already exists for match {session.match_id}")

    def _update_session_row(self, conn: sqlite3.Connection, session: GameSession):
        values = self._session_values(session)
        cursor = conn.execute("""
            UPDATE game_sessions
            SET board = ?, current_player = ?, game_status = ?, white_remaining = ?,
                black_remaining = ?, last_move_timestamp = ?, move_history = ?,
                halfmove_clock = ?, draw_offered_by = ?, draw_offered_at = ?,
                version = version + 1
            WHERE id = ? AND version = ?
        """, (
            values['board'],
            values['current_player'],
            values['game_status'],
            values['white_remaining'],
            values['black_remaining'],
            values['last_move_timestamp'],
            values['move_history'],
            values['halfmove_clock'],
            values['draw_offered_by'],
            values['draw_offered_at'],
            session.id,
            session.version
        ))
        if cursor.rowcount == 0:
            logger.warning("Stale write rejected for session %s (version %s)", session.id, session.version)
            raise InvalidState(f"Game session {session.id} was modified concurrently")

    def get_session_by_match(self, match_id: str) -> Optional[GameSession]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM game_sessions WHERE match_id = ?", (match_id,)
            ).fetchone()
        return _session_from_row(row) if row else None

    def insert_session(self, session: GameSession):
        """Insert a session; at most one may exist per match."""
        with self._transaction() as conn:
            self._insert_session_row(conn, session)

    def update_session(self, session: GameSession):
        with self._transaction() as conn:
            self._update_session_row(conn, session)
        session.version += 1

    def save_match_and_session(
        self,
        match: Match,
        session: Optional[GameSession] = None,
        new_session: bool = False
    ):
        """
        Persist a match together with its session in one transaction.

        Either both records are written or neither is.

        Args:
            match: Match to update
            session: Optional session to insert or update alongside
            new_session: Insert the session instead of updating it
        """
        with self._transaction() as conn:
            self._update_match_row(conn, match)
            if session is not None:
                if new_session:
                    self._insert_session_row(conn, session)
                else:
                    self._update_session_row(conn, session)
        match.version += 1
        if session is not None and not new_session:
            session.version += 1
