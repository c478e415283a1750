"""
Utilities module for tournament chess.
"""
from tourney.utils.constants import (
    BOARD_SIZE, WHITE, BLACK, COLORS,
    PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING, PIECE_TYPES,
    DEFAULT_INITIAL_SECONDS, DEFAULT_INCREMENT_SECONDS,
    CHESS, EMBEDDED_GAME_TYPES, INITIAL_FEN, opposite
)

__all__ = [
    'BOARD_SIZE', 'WHITE', 'BLACK', 'COLORS',
    'PAWN', 'KNIGHT', 'BISHOP', 'ROOK', 'QUEEN', 'KING', 'PIECE_TYPES',
    'DEFAULT_INITIAL_SECONDS', 'DEFAULT_INCREMENT_SECONDS',
    'CHESS', 'EMBEDDED_GAME_TYPES', 'INITIAL_FEN', 'opposite'
]
