"""
Tournament standings computed from completed matches.
"""

from dataclasses import dataclass
from typing import Dict, List

from tourney.tournament.models import Match, MatchStatus
from tourney.utils.constants import WIN_POINTS, DRAW_POINTS, LOSS_POINTS


@dataclass
class ParticipantStats:
    """Aggregate results for a tournament participant."""
    participant: str
    wins: int = 0
    losses: int = 0
    draws: int = 0
    rank: int = 0

    @property
    def games_played(self) -> int:
        return self.wins + self.losses + self.draws

    @property
    def points(self) -> float:
        return self.wins * WIN_POINTS + self.draws * DRAW_POINTS + self.losses * LOSS_POINTS

    @property
    def win_rate(self) -> float:
        if self.games_played == 0:
            return 0.0
        return self.wins / self.games_played


def compute_standings(participants: List[str], matches: List[Match]) -> List[ParticipantStats]:
    """
    Rank participants by their completed matches.

    A completed match without a winner counts as a draw. Ties on points are
    broken by wins, then by registration order.

    Args:
        participants: User ids in registration order
        matches: All matches of the tournament

    Returns:
        ParticipantStats sorted by rank
    """
    stats: Dict[str, ParticipantStats] = {p: ParticipantStats(p) for p in participants}

    for match in matches:
        if match.status != MatchStatus.COMPLETED:
            continue
        for player in (match.player1_id, match.player2_id):
            if player not in stats:
                stats[player] = ParticipantStats(player)
        if match.winner_id is None:
            stats[match.player1_id].draws += 1
            stats[match.player2_id].draws += 1
        else:
            stats[match.winner_id].wins += 1
            stats[match.opponent_of(match.winner_id)].losses += 1

    order = {p: i for i, p in enumerate(stats)}
    ranked = sorted(stats.values(), key=lambda s: (-s.points, -s.wins, order[s.participant]))
    for i, s in enumerate(ranked, 1):
        s.rank = i
    return ranked
