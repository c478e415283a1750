"""
Constants for tournament chess.
"""

# Board dimensions
BOARD_SIZE = 8

# Colors
WHITE = "white"
BLACK = "black"
COLORS = [WHITE, BLACK]

# Piece types
PAWN = "pawn"
KNIGHT = "knight"
BISHOP = "bishop"
ROOK = "rook"
QUEEN = "queen"
KING = "king"
PIECE_TYPES = [PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING]

# Back rank from column 0 (file a) to column 7 (file h)
BACK_RANK = [ROOK, KNIGHT, BISHOP, QUEEN, KING, BISHOP, KNIGHT, ROOK]

# Row 0 is rank 8 (black's back rank), row 7 is rank 1 (white's back rank).
# Pawns move toward the opponent: white up the board (-1), black down (+1).
PAWN_DIRECTION = {WHITE: -1, BLACK: 1}
PAWN_START_ROW = {WHITE: 6, BLACK: 1}
BACK_RANK_ROW = {WHITE: 7, BLACK: 0}

# FEN letters, uppercase for white
FEN_LETTERS = {
    PAWN: "p",
    KNIGHT: "n",
    BISHOP: "b",
    ROOK: "r",
    QUEEN: "q",
    KING: "k",
}

INITIAL_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

# Default time control: 10 minutes plus 5 seconds per move
DEFAULT_INITIAL_SECONDS = 600
DEFAULT_INCREMENT_SECONDS = 5

# Tournament game types that embed a live game session
CHESS = "chess"
EMBEDDED_GAME_TYPES = {CHESS}

# Points awarded per result in standings
WIN_POINTS = 1.0
DRAW_POINTS = 0.5
LOSS_POINTS = 0.0


def opposite(color: str) -> str:
    """Return the other color."""
    return BLACK if color == WHITE else WHITE
