"""
Tourney: bracketed tournaments with an embedded, clocked chess game.
"""

__version__ = "0.1.0"
