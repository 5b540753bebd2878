"""Doubling cube for match play.

This module implements the doubling cube mechanics, including:
- Cube state management (value, ownership)
- Cube decision rules (can_double, apply_double)
- Game value from the cube and the gammon/backgammon multiplier
- Crawford rule scheduling for matches
"""

from dataclasses import dataclass
from typing import Dict, Optional

from bgengine.core.errors import DoubleNotAllowedError
from bgengine.core.types import Color


# ==============================================================================
# CUBE STATE
# ==============================================================================

MAX_CUBE_VALUE = 64

GAMMON_MULTIPLIER = 2
BACKGAMMON_MULTIPLIER = 4


@dataclass
class CubeState:
    """Doubling cube.

    Attributes:
        value: Current stake multiplier (1, 2, 4, ..., 64)
        owner: Color that may redouble, or None while centered
    """
    value: int = 1
    owner: Optional[Color] = None

    def __post_init__(self):
        """Validate cube value."""
        assert self.value in (1, 2, 4, 8, 16, 32, 64), f"Invalid cube value: {self.value}"

    @property
    def is_centered(self) -> bool:
        return self.owner is None


def initial_cube() -> CubeState:
    """Create initial cube state (centered, value 1)."""
    return CubeState(value=1, owner=None)


# ==============================================================================
# CUBE RULES
# ==============================================================================


def can_double(
    cube: CubeState,
    color: Color,
    cube_enabled: bool = True,
    is_crawford: bool = False,
) -> bool:
    """Check if a color can offer a double.

    A color can double if:
    - The cube is in use and this is not the Crawford game
    - The cube value hasn't reached the maximum (64)
    - The cube is centered, or the color owns it

    Args:
        cube: Current cube state
        color: Color wanting to double
        cube_enabled: Whether the cube is in use at all
        is_crawford: Whether this is the Crawford game

    Returns:
        True if the color can legally double
    """
    if not cube_enabled or is_crawford:
        return False
    if cube.value >= MAX_CUBE_VALUE:
        return False
    return cube.owner is None or cube.owner is color


def apply_double(cube: CubeState, color: Color, **rules) -> CubeState:
    """Double the cube for `color` and hand it to the opponent.

    Raises:
        DoubleNotAllowedError: If the color may not double
    """
    if not can_double(cube, color, **rules):
        raise DoubleNotAllowedError(
            f"{color} cannot double: cube value={cube.value}, owner={cube.owner}"
        )
    return CubeState(value=cube.value * 2, owner=color.opponent)


# ==============================================================================
# GAME VALUE
# ==============================================================================


def game_value(
    cube_value: int,
    is_gammon: bool,
    is_backgammon: bool,
    is_jacoby: bool = False,
) -> int:
    """Points won for a finished game.

    Under the Jacoby rule, gammons and backgammons only count once the cube
    has been turned.

    Args:
        cube_value: Current cube value
        is_gammon: Loser bore off no pieces
        is_backgammon: Gammon with a loser's piece on the bar or in the winner's home board
        is_jacoby: Apply the Jacoby rule

    Returns:
        cube_value times 1, 2 (gammon) or 4 (backgammon)
    """
    if is_gammon and (cube_value > 1 or not is_jacoby):
        if is_backgammon:
            return cube_value * BACKGAMMON_MULTIPLIER
        return cube_value * GAMMON_MULTIPLIER
    return cube_value


# ==============================================================================
# MATCH PLAY
# ==============================================================================


def is_crawford_due(scores: Dict[Color, int], total: int) -> bool:
    """Check if the next game should be the Crawford game.

    The Crawford game follows the game in which exactly one color reaches
    match point minus one. Callers track that it is played only once.

    Args:
        scores: Current score per color
        total: Points needed to win the match

    Returns:
        True if exactly one color is one point away from the match
    """
    at_match_point = [color for color in Color if scores[color] + 1 == total]
    return len(at_match_point) == 1
