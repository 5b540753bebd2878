"""Single checker moves.

A Move is one of three variants, told apart by its `kind`:
- COME_IN: a piece on the bar enters the opponent's home board
- REGULAR: a piece moves from one slot to another
- BEAROFF: a piece leaves the board from its home board

Moves are only built through `build_move`, which checks legality first.
`Move.do()` and `Move.undo()` dispatch on the kind; undo restores the board
exactly, including a hit piece sent to the bar.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple, Type

from bgengine.core.dice import check_one
from bgengine.core.errors import (
    IllegalBearoffError,
    IllegalMoveError,
    MayNotBearoffError,
    MoveOutOfRangeError,
    NoPieceOnBarError,
    NoPieceOnSlotError,
    OccupiedSlotError,
    PieceOnBarError,
)
from bgengine.core.types import BAR_ORIGIN, Color, MoveCoords, Origin, come_in_origin, origin_to_point

if TYPE_CHECKING:
    from bgengine.core.board import Board


class MoveKind(Enum):
    """Move variants."""
    COME_IN = "comein"
    REGULAR = "regular"
    BEAROFF = "bearoff"


# (error class, message) when a move is not allowed
MoveError = Tuple[Type[IllegalMoveError], str]


@dataclass(eq=False)
class Move:
    """A legality-checked move bound to the board it was built against.

    Attributes:
        board: The board this move reads and mutates
        color: Moving color
        origin: Starting slot, or -1 for the bar
        face: Die value used (1-6)
        kind: Move variant
        dest: Destination slot, or None for a bearoff
        is_hit: Whether an opponent blot on `dest` is sent to the bar
    """
    board: "Board" = field(repr=False)
    color: Color
    origin: Origin
    face: int
    kind: MoveKind
    dest: Optional[Origin] = None
    is_hit: bool = False

    @classmethod
    def create(cls, board: "Board", color: Color, origin: Origin, face: int, kind: MoveKind) -> "Move":
        """Construct an already-checked move of a known kind."""
        dest = destination(color, origin, face) if kind is not MoveKind.BEAROFF else None
        is_hit = dest is not None and board.pieces_on_origin(color.opponent, dest) == 1
        return cls(board=board, color=color, origin=origin, face=face, kind=kind, dest=dest, is_hit=is_hit)

    @property
    def coords(self) -> MoveCoords:
        return MoveCoords(self.origin, self.face)

    @property
    def hash(self) -> str:
        return self.coords.hash

    @property
    def is_come_in(self) -> bool:
        return self.kind is MoveKind.COME_IN

    @property
    def is_regular(self) -> bool:
        return self.kind is MoveKind.REGULAR

    @property
    def is_bearoff(self) -> bool:
        return self.kind is MoveKind.BEAROFF

    def copy_for_board(self, board: "Board") -> "Move":
        """The same move rebound to another board (usually a copy)."""
        return Move.create(board, self.color, self.origin, self.face, self.kind)

    def do(self) -> None:
        _APPLY[self.kind](self)

    def undo(self) -> None:
        _REVERT[self.kind](self)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Move):
            return NotImplemented
        return (self.color, self.kind, self.origin, self.face) == (
            other.color, other.kind, other.origin, other.face
        )

    def __hash__(self) -> int:
        return hash((self.color, self.kind, self.origin, self.face))


def destination(color: Color, origin: Origin, face: int) -> Origin:
    """Slot reached from an origin, which is off the board for a bearoff."""
    if origin == BAR_ORIGIN:
        return come_in_origin(color, face)
    return origin + face * color.direction


# ==============================================================================
# LEGALITY
# ==============================================================================

def check_move(board: "Board", color: Color, origin: Origin, face: int) -> Tuple[Optional[MoveKind], Optional[MoveError]]:
    """Classify a move request and check it against the board.

    Returns:
        (kind, error) where error is None iff the move is legal. The kind may
        be None when the request could not be classified.

    Raises:
        InvalidRollError: if the face is not an integer 1-6
    """
    check_one(face)
    if origin == BAR_ORIGIN:
        return MoveKind.COME_IN, _check_come_in(board, color, face)
    if board.has_bar(color):
        return None, (PieceOnBarError, f"{color} has a piece on the bar")
    if not board.occupies_origin(color, origin):
        return None, (NoPieceOnSlotError, f"{color} does not have a piece on origin {origin}")
    dest = destination(color, origin, face)
    if dest < 0 or dest > 23:
        return MoveKind.BEAROFF, _check_bearoff(board, color, origin, face)
    return MoveKind.REGULAR, _check_regular(board, color, origin, face)


def build_move(board: "Board", color: Color, origin: Origin, face: int) -> Move:
    """Build a move after checking it; nothing on the board changes.

    Raises:
        IllegalMoveError: (a subclass) naming why the move is not allowed
        InvalidRollError: if the face is not an integer 1-6
    """
    kind, error = check_move(board, color, origin, face)
    if error is not None:
        error_class, message = error
        raise error_class(message)
    return Move.create(board, color, origin, face, kind)


def _check_come_in(board: "Board", color: Color, face: int) -> Optional[MoveError]:
    if not board.has_bar(color):
        return NoPieceOnBarError, f"{color} does not have a piece on the bar"
    dest = come_in_origin(color, face)
    if not board.can_occupy_origin(color, dest):
        return OccupiedSlotError, f"{color} cannot come in on space {dest + 1}"
    return None


def _check_regular(board: "Board", color: Color, origin: Origin, face: int) -> Optional[MoveError]:
    dest = destination(color, origin, face)
    if dest < 0 or dest > 23:
        return MoveOutOfRangeError, f"invalid destination {dest}"
    if not board.occupies_origin(color, origin):
        return NoPieceOnSlotError, f"{color} does not have a piece on origin {origin}"
    if not board.can_occupy_origin(color, dest):
        return OccupiedSlotError, f"{color} may not occupy {dest}"
    return None


def _check_bearoff(board: "Board", color: Color, origin: Origin, face: int) -> Optional[MoveError]:
    if not board.may_bearoff(color):
        return MayNotBearoffError, f"{color} may not bear off"
    # Taking more than the distance home needs every piece to be in front
    if face > origin_to_point(color, origin) and board.has_piece_behind(color, origin):
        return IllegalBearoffError, "cannot bear off with a piece behind"
    return None


# ==============================================================================
# APPLICATION
# ==============================================================================

def _do_come_in(move: Move) -> None:
    board = move.board
    if move.is_hit:
        board.push_bar(move.color.opponent, board.pop_origin(move.dest))
    board.push_origin(move.dest, board.pop_bar(move.color))


def _undo_come_in(move: Move) -> None:
    board = move.board
    board.push_bar(move.color, board.pop_origin(move.dest))
    if move.is_hit:
        board.push_origin(move.dest, board.pop_bar(move.color.opponent))


def _do_regular(move: Move) -> None:
    board = move.board
    if move.is_hit:
        board.push_bar(move.color.opponent, board.pop_origin(move.dest))
    board.push_origin(move.dest, board.pop_origin(move.origin))


def _undo_regular(move: Move) -> None:
    board = move.board
    board.push_origin(move.origin, board.pop_origin(move.dest))
    if move.is_hit:
        board.push_origin(move.dest, board.pop_bar(move.color.opponent))


def _do_bearoff(move: Move) -> None:
    move.board.push_home(move.color, move.board.pop_origin(move.origin))


def _undo_bearoff(move: Move) -> None:
    move.board.push_origin(move.origin, move.board.pop_home(move.color))


_APPLY: Dict[MoveKind, Callable[[Move], None]] = {
    MoveKind.COME_IN: _do_come_in,
    MoveKind.REGULAR: _do_regular,
    MoveKind.BEAROFF: _do_bearoff,
}

_REVERT: Dict[MoveKind, Callable[[Move], None]] = {
    MoveKind.COME_IN: _undo_come_in,
    MoveKind.REGULAR: _undo_regular,
    MoveKind.BEAROFF: _undo_bearoff,
}
