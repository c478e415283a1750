"""
Tests for tournament storage, bracket generation, standings and display.
"""

import pytest

from tourney.errors import AlreadyExists, AuthenticationRequired, AuthorizationDenied, InvalidState, NotFound
from tourney.game.session import GameSession
from tourney.tournament.bracket import BracketGenerator, Pairing, pair_first_round
from tourney.tournament.display import format_bracket, format_standings, format_board, format_session
from tourney.tournament.lifecycle import MatchLifecycle
from tourney.tournament.models import (
    Match, MatchStatus, Participant, ParticipantRole, ParticipantStatus, Score
)
from tourney.tournament.standings import compute_standings
from tourney.game.board import initial_board

from conftest import OWNER, TOURNAMENT_ID, seed_tournament


def make_match(match_number, p1, p2, status=MatchStatus.SCHEDULED, winner=None, round=1):
    return Match(
        id=f"m{round}-{match_number}",
        tournament_id=TOURNAMENT_ID,
        round=round,
        match_number=match_number,
        player1_id=p1,
        player2_id=p2,
        status=status,
        winner_id=winner
    )


class TestPairing:
    """Tests for first-round pairing."""

    def test_odd_count(self):
        """Five participants: two matches and one left over."""
        pairings, unpaired = pair_first_round(['A', 'B', 'C', 'D', 'E'])

        assert pairings == [Pairing(1, 'A', 'B'), Pairing(2, 'C', 'D')]
        assert unpaired == 'E'

    def test_even_count(self):
        pairings, unpaired = pair_first_round(['A', 'B', 'C', 'D'])
        assert [p.pairing_id for p in pairings] == ['A_vs_B', 'C_vs_D']
        assert unpaired is None

    def test_too_few(self):
        with pytest.raises(ValueError):
            pair_first_round(['A'])
        with pytest.raises(ValueError):
            pair_first_round([])


class TestTournamentStorage:
    """Tests for SQLite persistence."""

    def test_participants_in_registration_order(self, temp_storage):
        seed_tournament(temp_storage, participants=['c', 'a', 'b'])
        temp_storage.add_participant(Participant(TOURNAMENT_ID, 'watcher', role=ParticipantRole.SPECTATOR))
        temp_storage.add_participant(Participant(TOURNAMENT_ID, 'late'))

        active = temp_storage.list_participants(
            TOURNAMENT_ID, role=ParticipantRole.PARTICIPANT, status=ParticipantStatus.ACTIVE
        )
        assert [p.user_id for p in active] == ['c', 'a', 'b']
        assert len(temp_storage.list_participants(TOURNAMENT_ID)) == 5

    def test_duplicate_participant(self, seeded_storage):
        with pytest.raises(AlreadyExists):
            seeded_storage.add_participant(Participant(TOURNAMENT_ID, 'x'))

    def test_missing_tournament(self, temp_storage):
        assert temp_storage.get_tournament('nope') is None
        with pytest.raises(NotFound):
            temp_storage.require_tournament('nope')

    def test_match_roundtrip(self, seeded_storage):
        match = make_match(1, 'x', 'y')
        match.score = Score(1.0, 0.0)
        seeded_storage.insert_match(match)

        loaded = seeded_storage.get_match(match.id)
        assert loaded == match

    def test_duplicate_slot(self, seeded_storage):
        seeded_storage.insert_match(make_match(1, 'x', 'y'))
        other = make_match(1, 'y', 'x')
        other.id = 'other'
        with pytest.raises(AlreadyExists):
            seeded_storage.insert_match(other)

    def test_insert_matches_all_or_nothing(self, seeded_storage):
        seeded_storage.insert_match(make_match(2, 'a', 'b'))
        batch = [make_match(1, 'x', 'y'), make_match(2, 'c', 'd')]
        batch[1].id = 'other'
        with pytest.raises(AlreadyExists):
            seeded_storage.insert_matches(batch)

        assert [m.match_number for m in seeded_storage.list_matches(TOURNAMENT_ID)] == [2]

    def test_list_matches_ordering(self, seeded_storage):
        seeded_storage.insert_match(make_match(2, 'a', 'b'))
        seeded_storage.insert_match(make_match(1, 'c', 'd', round=2))
        seeded_storage.insert_match(make_match(1, 'x', 'y'))

        matches = seeded_storage.list_matches(TOURNAMENT_ID)
        assert [(m.round, m.match_number) for m in matches] == [(1, 1), (1, 2), (2, 1)]
        assert len(seeded_storage.list_matches(TOURNAMENT_ID, round=2)) == 1

    def test_stale_update_rejected(self, seeded_storage):
        """A copy read before another write cannot overwrite it."""
        seeded_storage.insert_match(make_match(1, 'x', 'y'))
        first = seeded_storage.get_match('m1-1')
        second = seeded_storage.get_match('m1-1')

        first.status = MatchStatus.CANCELLED
        seeded_storage.update_match(first)

        second.status = MatchStatus.ACTIVE
        with pytest.raises(InvalidState):
            seeded_storage.update_match(second)
        assert seeded_storage.get_match('m1-1').status == MatchStatus.CANCELLED

    def test_session_roundtrip(self, seeded_storage):
        seeded_storage.insert_match(make_match(1, 'x', 'y'))
        session = GameSession.create('m1-1', 'x', 'y', now=1000)
        session.play_move((6, 4), (4, 4), 3000)
        seeded_storage.insert_session(session)

        loaded = seeded_storage.get_session_by_match('m1-1')
        assert loaded.board == session.board
        assert loaded.move_history == ['e2e4']
        assert loaded.white_remaining == session.white_remaining
        assert loaded.current_player == session.current_player

        with pytest.raises(AlreadyExists):
            seeded_storage.insert_session(GameSession.create('m1-1', 'x', 'y'))

    def test_failed_pair_write_is_atomic(self, seeded_storage):
        """A stale session aborts the match write that shares its transaction."""
        seeded_storage.insert_match(make_match(1, 'x', 'y'))
        seeded_storage.insert_session(GameSession.create('m1-1', 'x', 'y'))

        stale = seeded_storage.get_session_by_match('m1-1')
        fresh = seeded_storage.get_session_by_match('m1-1')
        fresh.resign('x')
        seeded_storage.update_session(fresh)

        match = seeded_storage.get_match('m1-1')
        match.status = MatchStatus.ACTIVE
        with pytest.raises(InvalidState):
            seeded_storage.save_match_and_session(match, stale)
        assert seeded_storage.get_match('m1-1').status == MatchStatus.SCHEDULED


class TestBracketGenerator:
    """Tests for creating round-one matches."""

    @pytest.fixture
    def generator(self, temp_storage, clock):
        seed_tournament(temp_storage, participants=['A', 'B', 'C', 'D', 'E'])
        return BracketGenerator(temp_storage, MatchLifecycle(temp_storage, clock=clock))

    def test_generate_first_round(self, generator):
        result = generator.generate_first_round(OWNER, TOURNAMENT_ID)

        assert [(m.match_number, m.player1_id, m.player2_id) for m in result.matches] == [
            (1, 'A', 'B'), (2, 'C', 'D')
        ]
        assert result.unpaired == 'E'
        assert all(m.round == 1 and m.status == MatchStatus.SCHEDULED for m in result.matches)
        assert len(generator.storage.list_matches(TOURNAMENT_ID)) == 2

    def test_inactive_participants_skipped(self, generator):
        generator.storage.add_participant(Participant(TOURNAMENT_ID, 'F'))
        assert generator.active_participants(TOURNAMENT_ID) == ['A', 'B', 'C', 'D', 'E']

    def test_generate_twice(self, generator):
        generator.generate_first_round(OWNER, TOURNAMENT_ID)
        with pytest.raises(AlreadyExists):
            generator.generate_first_round(OWNER, TOURNAMENT_ID)

    def test_owner_only(self, generator):
        with pytest.raises(AuthorizationDenied):
            generator.generate_first_round('A', TOURNAMENT_ID)
        with pytest.raises(AuthenticationRequired):
            generator.generate_first_round(None, TOURNAMENT_ID)

    def test_slot_taken_during_generation(self, generator):
        """A match created into round one mid-generation leaves no partial round."""
        lifecycle = generator.lifecycle
        participants = generator.active_participants

        def racing_participants(tournament_id):
            lifecycle.create(OWNER, tournament_id, 1, 2, 'E', 'A')
            return participants(tournament_id)

        generator.active_participants = racing_participants
        with pytest.raises(AlreadyExists):
            generator.generate_first_round(OWNER, TOURNAMENT_ID)

        round_one = generator.storage.list_matches(TOURNAMENT_ID, round=1)
        assert [(m.player1_id, m.player2_id) for m in round_one] == [('E', 'A')]

    def test_too_few_participants(self, temp_storage, clock):
        seed_tournament(temp_storage, participants=['A'])
        generator = BracketGenerator(temp_storage, MatchLifecycle(temp_storage, clock=clock))
        with pytest.raises(ValueError):
            generator.generate_first_round(OWNER, TOURNAMENT_ID)


class TestStandings:
    """Tests for ranking participants."""

    def test_points_and_order(self):
        matches = [
            make_match(1, 'a', 'b', MatchStatus.COMPLETED, winner='b'),
            make_match(2, 'c', 'd', MatchStatus.COMPLETED),
            make_match(1, 'b', 'c', MatchStatus.ACTIVE, round=2),
        ]
        standings = compute_standings(['a', 'b', 'c', 'd'], matches)

        assert [s.participant for s in standings] == ['b', 'c', 'd', 'a']
        assert [s.rank for s in standings] == [1, 2, 3, 4]
        assert standings[0].points == 1.0
        assert standings[1].draws == 1
        assert standings[3].losses == 1

    def test_cancelled_ignored(self):
        matches = [make_match(1, 'a', 'b', MatchStatus.CANCELLED, winner='a')]
        standings = compute_standings(['a', 'b'], matches)
        assert all(s.games_played == 0 for s in standings)
        assert standings[0].win_rate == 0.0


class TestDisplay:

    def test_format_bracket(self):
        matches = [
            make_match(1, 'A', 'B', MatchStatus.COMPLETED, winner='A'),
            make_match(2, 'C', 'D'),
        ]
        text = format_bracket(matches, unpaired='E')
        assert "=== ROUND 1 ===" in text
        assert "winner: A" in text
        assert text.endswith("Unpaired: E")

    def test_format_bracket_empty(self):
        assert format_bracket([]) == "No matches yet."

    def test_format_standings(self):
        standings = compute_standings(['a', 'b'], [make_match(1, 'a', 'b', MatchStatus.COMPLETED, winner='a')])
        text = format_standings(standings)
        assert "=== STANDINGS ===" in text
        assert "1-0-0" in text

    def test_format_board_and_session(self):
        lines = format_board(initial_board()).splitlines()
        assert lines[0] == "8 r n b q k b n r"
        assert lines[7] == "1 R N B Q K B N R"

        text = format_session(GameSession.create('m', 'x', 'y'))
        assert "To move: white" in text
        assert "White 10:00" in text
