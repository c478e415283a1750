"""
First-round bracket generation.

Pairs active participants in registration order and creates the round-one
matches through the match lifecycle.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from tourney.errors import AlreadyExists, AuthenticationRequired, AuthorizationDenied
from tourney.tournament.lifecycle import MatchLifecycle
from tourney.tournament.models import Match, ParticipantRole, ParticipantStatus
from tourney.tournament.storage import TournamentStorage

logger = logging.getLogger(__name__)

FIRST_ROUND = 1


@dataclass
class Pairing:
    """Two participants drawn against each other."""
    match_number: int
    player1_id: str
    player2_id: str

    @property
    def pairing_id(self) -> str:
        """Generate a readable ID for this pairing."""
        return f"{self.player1_id}_vs_{self.player2_id}"


def pair_first_round(participant_ids: List[str]) -> Tuple[List[Pairing], Optional[str]]:
    """
    Pair participants sequentially: 0 vs 1, 2 vs 3, ...

    With an odd count the last participant is left out; no bye is recorded.

    Args:
        participant_ids: User ids in registration order

    Returns:
        (pairings numbered from 1, unpaired participant or None)

    Raises:
        ValueError: If fewer than 2 participants
    """
    if len(participant_ids) < 2:
        raise ValueError("Need at least 2 active participants to generate matches")

    pairings = []
    for i in range(0, len(participant_ids) - 1, 2):
        pairings.append(Pairing(
            match_number=i // 2 + 1,
            player1_id=participant_ids[i],
            player2_id=participant_ids[i + 1]
        ))

    unpaired = participant_ids[-1] if len(participant_ids) % 2 == 1 else None
    return pairings, unpaired


@dataclass
class FirstRound:
    """Matches created for round one and who sat out."""
    matches: List[Match]
    unpaired: Optional[str] = None


class BracketGenerator:
    """
    Feeds round-one pairings into the match lifecycle.

    Later rounds are not derived here.
    """

    def __init__(self, storage: TournamentStorage, lifecycle: MatchLifecycle):
        self.storage = storage
        self.lifecycle = lifecycle

    def active_participants(self, tournament_id: str) -> List[str]:
        """User ids of active participants in registration order."""
        participants = self.storage.list_participants(
            tournament_id,
            role=ParticipantRole.PARTICIPANT,
            status=ParticipantStatus.ACTIVE
        )
        return [p.user_id for p in participants]

    def generate_first_round(self, caller_id: Optional[str], tournament_id: str) -> FirstRound:
        """
        Create the round-one matches of a tournament.

        Args:
            caller_id: Resolved user id (must own the tournament)
            tournament_id: Tournament to pair

        Returns:
            FirstRound with the created matches in pairing order
        """
        if not caller_id:
            raise AuthenticationRequired("Not authenticated")
        tournament = self.storage.require_tournament(tournament_id)
        if tournament.owner_id != caller_id:
            raise AuthorizationDenied("Only the tournament owner can generate matches")
        if self.storage.list_matches(tournament_id, round=FIRST_ROUND):
            raise AlreadyExists("First round matches already generated")

        pairings, unpaired = pair_first_round(self.active_participants(tournament_id))
        if unpaired is not None:
            logger.info("Tournament %s: %s left unpaired in round %d",
                        tournament_id, unpaired, FIRST_ROUND)
        for pairing in pairings:
            logger.debug("Tournament %s: match %d is %s",
                         tournament_id, pairing.match_number, pairing.pairing_id)

        matches = self.lifecycle.create_round(
            caller_id,
            tournament_id,
            FIRST_ROUND,
            [(p.match_number, p.player1_id, p.player2_id) for p in pairings]
        )

        logger.info("Tournament %s: generated %d first-round matches", tournament_id, len(matches))
        return FirstRound(matches, unpaired)
