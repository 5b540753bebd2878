"""Exception hierarchy for the rules engine.

IllegalMoveError is raised for move requests a player may retry with different
parameters. IllegalStateError signals a protocol violation by the caller.
"""

from typing import Iterable, Union


class GameError(Exception):
    """Base class for all rules engine errors.

    The message may be given as a list of parts, which are joined with spaces.
    """

    def __init__(self, message: Union[str, Iterable] = "", *args):
        if isinstance(message, (list, tuple)):
            message = " ".join(str(part) for part in message)
        super().__init__(message, *args)

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""

    @property
    def name(self) -> str:
        return type(self).__name__


# ==============================================================================
# ERROR KINDS
# ==============================================================================

class IllegalStateError(GameError):
    """Operation not permitted in the current turn/game/match state."""


class IllegalMoveError(GameError):
    """Move request not permitted by the rules."""


class ArgumentError(GameError, ValueError):
    """Malformed input."""


class InvalidRollError(GameError, ValueError):
    """Die face outside 1-6 or malformed dice."""


# ==============================================================================
# ARGUMENT ERRORS
# ==============================================================================

class InvalidColorError(ArgumentError):
    pass


class InvalidRollDataError(ArgumentError):
    pass


class InvalidStateStringError(ArgumentError):
    pass


class MaxDepthExceededError(ArgumentError):
    pass


# ==============================================================================
# STATE ERRORS
# ==============================================================================

class AlreadyRolledError(IllegalStateError):
    pass


class DoubleNotAllowedError(IllegalStateError):
    pass


class HasNotDoubledError(IllegalStateError):
    pass


class HasNotRolledError(IllegalStateError):
    pass


class GameAlreadyStartedError(IllegalStateError):
    pass


class GameFinishedError(IllegalStateError):
    pass


class GameNotFinishedError(IllegalStateError):
    pass


class GameNotStartedError(IllegalStateError):
    pass


class IllegalBoardError(IllegalStateError):
    pass


class MatchFinishedError(IllegalStateError):
    pass


class TurnAlreadyFinishedError(IllegalStateError):
    pass


class TurnCanceledError(IllegalStateError):
    pass


class TurnNotFinishedError(IllegalStateError):
    pass


# ==============================================================================
# MOVE ERRORS
# ==============================================================================

class IllegalBearoffError(IllegalMoveError):
    pass


class MayNotBearoffError(IllegalMoveError):
    pass


class MoveOutOfRangeError(IllegalMoveError):
    pass


class MovesRemainingError(IllegalMoveError):
    pass


class NoMovesMadeError(IllegalMoveError):
    pass


class NoMovesRemainingError(IllegalMoveError):
    pass


class NoPieceOnBarError(IllegalMoveError):
    pass


class NoPieceOnSlotError(IllegalMoveError):
    pass


class OccupiedSlotError(IllegalMoveError):
    pass


class PieceOnBarError(IllegalMoveError):
    pass
