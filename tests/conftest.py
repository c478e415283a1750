"""
Shared fixtures: a controllable clock and a seeded chess tournament.
"""

import tempfile

import pytest

from tourney.tournament.models import Participant, ParticipantStatus, Tournament
from tourney.tournament.storage import TournamentStorage
from tourney.utils.constants import CHESS

OWNER = "owner"
PLAYER_X = "x"
PLAYER_Y = "y"
OUTSIDER = "z"
TOURNAMENT_ID = "t1"

START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float):
        self.now += int(seconds * 1000)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def temp_storage():
    """Create storage in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield TournamentStorage(data_dir=tmpdir)


def seed_tournament(storage: TournamentStorage, participants=(PLAYER_X, PLAYER_Y),
                    game_type: str = CHESS, tournament_id: str = TOURNAMENT_ID):
    """Insert a tournament owned by OWNER with active participants."""
    storage.add_tournament(Tournament(
        id=tournament_id,
        owner_id=OWNER,
        game_type=game_type,
        max_participants=max(len(participants), 2)
    ))
    for i, user_id in enumerate(participants):
        storage.add_participant(Participant(
            tournament_id=tournament_id,
            user_id=user_id,
            status=ParticipantStatus.ACTIVE,
            registered_at=i
        ))
    return tournament_id


@pytest.fixture
def seeded_storage(temp_storage):
    seed_tournament(temp_storage)
    return temp_storage
