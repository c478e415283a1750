"""
Embedded chess game: board, move rules, clock ledger and game session.
"""
from tourney.game.board import Piece, Board, initial_board, board_to_fen, move_notation
from tourney.game.rules import validate_move, apply_move, is_path_clear
from tourney.game.clock import TimeControl, ClockDebit, commit_move
from tourney.game.session import GameSession, GameStatus

__all__ = [
    'Piece',
    'Board',
    'initial_board',
    'board_to_fen',
    'move_notation',
    'validate_move',
    'apply_move',
    'is_path_clear',
    'TimeControl',
    'ClockDebit',
    'commit_move',
    'GameSession',
    'GameStatus',
]
