"""
Display formatting for brackets and standings.

Provides ASCII tables for terminal output.
"""

from itertools import groupby
from typing import List, Optional

from tourney.game.board import Board
from tourney.game.clock import format_clock
from tourney.game.session import GameSession
from tourney.tournament.models import Match
from tourney.tournament.standings import ParticipantStats
from tourney.utils.constants import WHITE, FEN_LETTERS


def _short_name(name: str, max_len: int = 14) -> str:
    if len(name) <= max_len:
        return name
    return name[:max_len-2] + ".."


def format_match_line(match: Match) -> str:
    """Format a single match line."""
    line = (f"  #{match.match_number:<3}"
            f"{_short_name(match.player1_id):<16} vs {_short_name(match.player2_id):<16}"
            f"{match.status.value:<11}")
    if match.winner_id:
        line += f"winner: {match.winner_id}"
    elif match.score:
        line += f"{match.score.player1_score:g}-{match.score.player2_score:g}"
    return line.rstrip()


def format_bracket(matches: List[Match], unpaired: Optional[str] = None) -> str:
    """
    Format matches grouped by round.

    Args:
        matches: Matches sorted by round then match number
        unpaired: Optional participant left without an opponent

    Returns:
        Formatted string for terminal display
    """
    if not matches:
        return "No matches yet."

    lines = []
    for round_number, round_matches in groupby(matches, key=lambda m: m.round):
        lines.append(f"=== ROUND {round_number} ===")
        for match in round_matches:
            lines.append(format_match_line(match))
        lines.append("")

    if unpaired:
        lines.append(f"Unpaired: {unpaired}")
    return "\n".join(lines).rstrip()


def format_standings(standings: List[ParticipantStats]) -> str:
    """
    Format standings as an ASCII table.

    Args:
        standings: Ranked participant stats

    Returns:
        Formatted string for terminal display
    """
    lines = []
    lines.append("=== STANDINGS ===")
    lines.append("")

    # Header
    lines.append(f"{'Rank':<6}{'Participant':<28}{'Pts':<7}{'W-L-D':<10}{'Win%':<8}")
    lines.append("-" * 59)

    for stats in standings:
        wld = f"{stats.wins}-{stats.losses}-{stats.draws}"
        lines.append(
            f"{stats.rank:<6}{_short_name(stats.participant, 26):<28}"
            f"{stats.points:<7g}{wld:<10}{stats.win_rate:.1%}"
        )

    return "\n".join(lines)


def format_board(board: Board) -> str:
    """ASCII diagram of a board, rank 8 at the top."""
    lines = []
    for row_index, row in enumerate(board):
        cells = []
        for piece in row:
            if piece is None:
                cells.append(".")
            else:
                letter = FEN_LETTERS[piece.type]
                cells.append(letter.upper() if piece.color == WHITE else letter)
        lines.append(f"{8 - row_index} " + " ".join(cells))
    lines.append("  a b c d e f g h")
    return "\n".join(lines)


def format_session(session: GameSession) -> str:
    """Board, turn, clocks and history of a game session."""
    lines = [format_board(session.board), ""]
    lines.append(f"To move: {session.current_player}   Status: {session.game_status.value}")
    lines.append(f"White {format_clock(session.white_remaining)}   "
                 f"Black {format_clock(session.black_remaining)}")
    if session.move_history:
        lines.append("Moves: " + " ".join(session.move_history))
    return "\n".join(lines)
