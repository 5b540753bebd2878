"""
bgengine - backgammon rules engine: legal move generation, turns, games and matches.
"""

from loguru import logger

__version__ = "0.1.0"

# Core exports
from bgengine.core import (
    AllowedMoves,
    Board,
    Color,
    Event,
    Game,
    GameOptions,
    Match,
    MatchOptions,
    Move,
    MoveCoords,
    Turn,
    compute_allowed_moves,
)
from bgengine.core.errors import GameError, IllegalMoveError, IllegalStateError

# Library logging is opt-in: logger.enable("bgengine")
logger.disable("bgengine")

__all__ = [
    "AllowedMoves",
    "Board",
    "Color",
    "Event",
    "Game",
    "GameOptions",
    "Match",
    "MatchOptions",
    "Move",
    "MoveCoords",
    "Turn",
    "compute_allowed_moves",
    "GameError",
    "IllegalMoveError",
    "IllegalStateError",
]
