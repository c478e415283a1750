"""
Data model for tournaments, participants and matches.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from tourney.utils.constants import EMBEDDED_GAME_TYPES


class TournamentStatus(Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ParticipantRole(Enum):
    OWNER = "owner"
    PARTICIPANT = "participant"
    SPECTATOR = "spectator"


class ParticipantStatus(Enum):
    REGISTERED = "registered"
    PAID = "paid"
    ACTIVE = "active"
    KICKED = "kicked"


class MatchStatus(Enum):
    """Match lifecycle states."""
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"



@dataclass
class Tournament:
    """The parts of a tournament the match core reads."""
    id: str
    owner_id: str
    game_type: str
    max_participants: int
    status: TournamentStatus = TournamentStatus.UPCOMING
    name: str = ""

    @property
    def requires_embedded_game(self) -> bool:
        return self.game_type in EMBEDDED_GAME_TYPES


@dataclass
class Participant:
    """A user's registration in a tournament."""
    tournament_id: str
    user_id: str
    role: ParticipantRole = ParticipantRole.PARTICIPANT
    status: ParticipantStatus = ParticipantStatus.REGISTERED
    registered_at: int = 0


@dataclass
class Score:
    player1_score: float
    player2_score: float


@dataclass
class Match:
    """A single pairing within a tournament round."""
    id: str
    tournament_id: str
    round: int
    match_number: int
    player1_id: str
    player2_id: str
    status: MatchStatus = MatchStatus.SCHEDULED
    winner_id: Optional[str] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    score: Optional[Score] = None
    game_data: Optional[str] = None
    stream_active: bool = False
    stream_started_by: Optional[str] = None
    version: int = 0

    def involves(self, user_id: str) -> bool:
        return user_id in (self.player1_id, self.player2_id)

    def opponent_of(self, user_id: str) -> str:
        return self.player2_id if user_id == self.player1_id else self.player1_id
