"""Dice utilities for backgammon.

This module handles dice rolling, face derivation, face orderings for the
move search, and validation of dice input.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import numpy as np

from bgengine.core.errors import InvalidRollDataError, InvalidRollError
from bgengine.core.types import Color

Dice = Tuple[int, int]  # (die1, die2) where 1 <= die1, die2 <= 6

_default_rng = np.random.default_rng()


# ==============================================================================
# ROLLING
# ==============================================================================

def roll_one(rng: Optional[np.random.Generator] = None) -> int:
    """Roll one die."""
    rng = rng if rng is not None else _default_rng
    return int(rng.integers(1, 7))


def roll_two(rng: Optional[np.random.Generator] = None) -> Dice:
    """Roll two dice.

    Args:
        rng: NumPy random generator (module default when omitted)

    Returns:
        Tuple of (die1, die2) where each is 1-6
    """
    rng = rng if rng is not None else _default_rng
    die1, die2 = rng.integers(1, 7, size=2)
    return (int(die1), int(die2))


def create_roller(rolls: Sequence[Sequence[int]]) -> Callable[[], Dice]:
    """Build a roller that plays back `rolls` in order, cycling at the end.

    Examples:
        >>> roller = create_roller([(6, 1), (3, 3)])
        >>> roller(), roller(), roller()
        ((6, 1), (3, 3), (6, 1))
    """
    rolls = [tuple(dice) for dice in rolls]
    if not rolls:
        raise InvalidRollDataError("Rolls cannot be empty")
    position = 0

    def roller() -> Dice:
        nonlocal position
        dice = rolls[position % len(rolls)]
        position += 1
        return dice

    return roller


# ==============================================================================
# FACES
# ==============================================================================

def is_doubles(dice: Sequence[int]) -> bool:
    """Check if dice roll is doubles."""
    return dice[0] == dice[1]


def faces(dice: Sequence[int]) -> List[int]:
    """Get the faces to play for a roll.

    For doubles, you get 4 moves. For non-doubles, you get 2 moves.

    Examples:
        >>> faces((3, 5))
        [3, 5]
        >>> faces((4, 4))
        [4, 4, 4, 4]
    """
    if is_doubles(dice):
        return [dice[0]] * 4
    return [dice[0], dice[1]]


def sequences_for_faces(face_list: Sequence[int]) -> List[List[int]]:
    """Every ordering in which the faces can be played.

    Two distinct faces give both orders; four equal faces give one sequence.
    """
    if len(face_list) == 2:
        return [
            [face_list[0], face_list[1]],
            [face_list[1], face_list[0]],
        ]
    return [list(face_list)]


def first_roll_winner(dice: Sequence[int]) -> Optional[Color]:
    """Color that moves first for an opening roll (White holds the first die)."""
    if is_doubles(dice):
        return None
    return Color.WHITE if dice[0] > dice[1] else Color.RED


# ==============================================================================
# VALIDATION
# ==============================================================================

def check_one(face: Any) -> None:
    """Validate a single die face.

    Raises:
        InvalidRollError: if the face is not an integer in 1-6
    """
    if isinstance(face, bool) or not isinstance(face, (int, np.integer)):
        raise InvalidRollError("die face must be an integer")
    if face > 6:
        raise InvalidRollError("die face cannot be greater than 6")
    if face < 1:
        raise InvalidRollError("die face cannot be less than 1")


def check_two(dice: Any) -> None:
    """Validate a roll of two dice.

    Raises:
        InvalidRollError: if not exactly two valid faces
    """
    if not isinstance(dice, (list, tuple)):
        raise InvalidRollError("dice must be a list of two faces")
    if len(dice) > 2:
        raise InvalidRollError("more than two dice not allowed")
    if len(dice) < 2:
        raise InvalidRollError("two dice are required")
    check_one(dice[0])
    check_one(dice[1])


def check_faces(face_list: Sequence[int]) -> None:
    """Validate a face list: two faces, or four equal faces.

    Raises:
        InvalidRollError: on a malformed face list
    """
    if len(face_list) == 4:
        check_one(face_list[0])
        if any(face != face_list[0] for face in face_list[1:]):
            raise InvalidRollError("4 faces must be equal")
    else:
        if len(face_list) != 2:
            raise InvalidRollError("faces must be length 2 or 4")
        check_one(face_list[0])
        check_one(face_list[1])


def validate_rolls_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate scripted rolls data of the form {"rolls": [[a, b], ...]}.

    At least one roll must be a non-double so that a game can be started.

    Raises:
        InvalidRollDataError: on any invalid roll or missing non-double
    """
    rolls = data.get("rolls") if isinstance(data, dict) else None
    if not isinstance(rolls, list):
        raise InvalidRollDataError("Rolls key must be an array")
    if not rolls:
        raise InvalidRollDataError("Rolls cannot be empty")
    is_unique_found = False
    for i, dice in enumerate(rolls):
        try:
            check_two(dice)
        except InvalidRollError as err:
            raise InvalidRollDataError(
                f"Invalid roll found at index {i}: {err.message}"
            ) from err
        if not is_doubles(dice):
            is_unique_found = True
    if not is_unique_found:
        raise InvalidRollDataError("Cannot find one unique roll")
    return data


# ==============================================================================
# ENUMERATION
# ==============================================================================

def all_dice_rolls() -> List[Dice]:
    """Generate all 21 unique dice outcomes.

    In backgammon, (2,3) and (3,2) are equivalent, so there are 21 unique rolls.
    """
    rolls = []
    for die1 in range(1, 7):
        for die2 in range(die1, 7):
            rolls.append((die1, die2))
    return rolls


def dice_to_string(dice: Sequence[int]) -> str:
    """Convert dice to readable string.

    Examples:
        >>> dice_to_string((3, 5))
        '3-5'
        >>> dice_to_string((4, 4))
        'Double 4s'
    """
    if is_doubles(dice):
        return f"Double {dice[0]}s"
    return f"{dice[0]}-{dice[1]}"


ALL_DICE_ROLLS = all_dice_rolls()
