"""Core game logic and data structures."""

from bgengine.core.types import (
    Color,
    Event,
    GameOptions,
    MatchOptions,
    MoveCoords,
    Piece,
)
from bgengine.core.board import Board
from bgengine.core.moves import Move, MoveKind
from bgengine.core.trees import AllowedMoves, DepthTree, SequenceTree, compute_allowed_moves
from bgengine.core.turn import Turn
from bgengine.core.game import Game
from bgengine.core.match import Match

__all__ = [
    "Color",
    "Event",
    "GameOptions",
    "MatchOptions",
    "MoveCoords",
    "Piece",
    "Board",
    "Move",
    "MoveKind",
    "AllowedMoves",
    "SequenceTree",
    "DepthTree",
    "compute_allowed_moves",
    "Turn",
    "Game",
    "Match",
]
