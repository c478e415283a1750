"""
Tournament module for running bracketed matches with an embedded game.

Provides:
- MatchLifecycle: Match state machine and game session owner
- BracketGenerator: First-round pairing
- TournamentStorage: Persists tournaments, matches and sessions
"""

from tourney.tournament.models import (
    Tournament, TournamentStatus, Participant, ParticipantRole, ParticipantStatus,
    Match, MatchStatus, Score
)
from tourney.tournament.storage import TournamentStorage
from tourney.tournament.lifecycle import MatchLifecycle, MoveOutcome, serialize_match
from tourney.tournament.bracket import BracketGenerator, FirstRound, Pairing, pair_first_round
from tourney.tournament.standings import ParticipantStats, compute_standings
from tourney.tournament.display import format_bracket, format_standings

__all__ = [
    'Tournament',
    'TournamentStatus',
    'Participant',
    'ParticipantRole',
    'ParticipantStatus',
    'Match',
    'MatchStatus',
    'Score',
    'TournamentStorage',
    'MatchLifecycle',
    'MoveOutcome',
    'serialize_match',
    'BracketGenerator',
    'FirstRound',
    'Pairing',
    'pair_first_round',
    'ParticipantStats',
    'compute_standings',
    'format_bracket',
    'format_standings',
]
