"""Board representation and game rules.

This module implements the board state and everything that reads it:
- Board setup, copying and inversion
- Move construction and application (delegated to moves.py)
- Board queries (occupancy, bear-off eligibility, pip counts)
- Win, gammon and backgammon detection
- State string and state28 (de)serialization

Board Layout (origins):

    White moves 0 → 23 → off (home board: origins 18-23)
    Red moves 23 → 0 → off (home board: origins 0-5)

    11 10  9  8  7  6     5  4  3  2  1  0
    +------------------+------------------+
    |                  |                  |  Red home
    |                  |                  |
    |                  |                  |
    |                  |                  |  White home
    +------------------+------------------+
    12 13 14 15 16 17    18 19 20 21 22 23
"""

from typing import Dict, List, Optional, Sequence, Union
import numpy as np
from numpy.typing import NDArray

from bgengine.core.errors import IllegalBoardError, InvalidStateStringError
from bgengine.core.moves import Move, build_move, check_move
from bgengine.core.types import (
    BAR_ORIGIN,
    INSIDE_ORIGINS,
    OUTSIDE_ORIGINS,
    PIECES_PER_COLOR,
    Color,
    Origin,
    Piece,
    State28,
    origin_to_point,
)

Stack = List[Piece]

INITIAL_STATE = (
    "0|0|2:White|0:|0:|0:|0:|5:Red|0:|3:Red|0:|0:|0:|5:White|"
    "5:Red|0:|0:|0:|3:White|0:|5:White|0:|0:|0:|0:|2:Red|0|0"
)


class Board:
    """Canonical game state: 24 slots, a bar and a home per color.

    Attributes:
        slots: 24 stacks of pieces, indexed by origin
        bars: Stack of hit (or not yet entered) pieces per color
        homes: Stack of borne-off pieces per color
    """

    def __init__(self):
        self.clear()

    # ==========================================================================
    # CONSTRUCTION
    # ==========================================================================

    def clear(self) -> "Board":
        """Remove every piece."""
        self.slots: List[Stack] = [[] for _ in range(24)]
        self.bars: Dict[Color, Stack] = {Color.WHITE: [], Color.RED: []}
        self.homes: Dict[Color, Stack] = {Color.WHITE: [], Color.RED: []}
        return self

    def setup(self) -> "Board":
        """Arrange the standard starting position.

        Standard setup (origins):
        - White: 2 on 0, 5 on 11, 3 on 16, 5 on 18
        - Red: 2 on 23, 5 on 12, 3 on 7, 5 on 5
        """
        self.clear()
        self.slots[0] = Piece.make(2, Color.WHITE)
        self.slots[5] = Piece.make(5, Color.RED)
        self.slots[7] = Piece.make(3, Color.RED)
        self.slots[11] = Piece.make(5, Color.WHITE)
        self.slots[12] = Piece.make(5, Color.RED)
        self.slots[16] = Piece.make(3, Color.WHITE)
        self.slots[18] = Piece.make(5, Color.WHITE)
        self.slots[23] = Piece.make(2, Color.RED)
        return self

    def copy(self) -> "Board":
        """Independent copy: new stacks, no state shared with this board."""
        board = Board.__new__(Board)
        board.slots = [list(slot) for slot in self.slots]
        board.bars = {color: list(stack) for color, stack in self.bars.items()}
        board.homes = {color: list(stack) for color, stack in self.homes.items()}
        return board

    def inverted(self) -> "Board":
        """Board with colors swapped and slots mirrored."""
        board = Board()
        for color in Color:
            board.bars[color] = Piece.make(len(self.bars[color.opponent]), color)
            board.homes[color] = Piece.make(len(self.homes[color.opponent]), color)
        for origin, slot in enumerate(self.slots):
            if slot:
                board.slots[23 - origin] = Piece.make(len(slot), slot[0].color.opponent)
        return board

    @classmethod
    def from_setup(cls) -> "Board":
        return cls().setup()

    @classmethod
    def from_state_string(cls, state: str) -> "Board":
        return cls().set_state_string(state)

    @classmethod
    def from_state28(cls, state28: Union[Sequence[int], NDArray]) -> "Board":
        return cls().set_state28(state28)

    # ==========================================================================
    # MOVES
    # ==========================================================================

    def build_move(self, color: Color, origin: Origin, face: int) -> Move:
        """Build a legality-checked move against this board.

        Raises:
            IllegalMoveError: (a subclass) if the move is not allowed
            InvalidRollError: if the face is not 1-6
        """
        return build_move(self, color, origin, face)

    def move(self, color: Color, origin: Origin, face: int) -> Move:
        """Build and apply a move, returning it."""
        move = self.build_move(color, origin, face)
        move.do()
        return move

    def possible_moves_for_face(self, color: Color, face: int) -> List[Move]:
        """All legal single moves for one face.

        A color with a piece on the bar can only come in.
        """
        if self.bars[color]:
            origins = [BAR_ORIGIN]
        else:
            origins = self.origins_occupied(color)
        moves = []
        for origin in origins:
            kind, error = check_move(self, color, origin, face)
            if error is None:
                moves.append(Move.create(self, color, origin, face, kind))
        return moves

    # ==========================================================================
    # MOVE PRIMITIVES
    # ==========================================================================
    # No checks; only for use by already-validated moves.

    def pop_bar(self, color: Color) -> Piece:
        return self.bars[color].pop()

    def push_bar(self, color: Color, piece: Optional[Piece] = None) -> None:
        self.bars[color].append(piece or Piece(color))

    def pop_home(self, color: Color) -> Piece:
        return self.homes[color].pop()

    def push_home(self, color: Color, piece: Optional[Piece] = None) -> None:
        self.homes[color].append(piece or Piece(color))

    def pop_origin(self, origin: Origin) -> Piece:
        return self.slots[origin].pop()

    def push_origin(self, origin: Origin, piece: Union[Piece, Color]) -> None:
        if not isinstance(piece, Piece):
            piece = Piece(Color.parse(piece))
        self.slots[origin].append(piece)

    # ==========================================================================
    # BOARD QUERIES
    # ==========================================================================

    def origin_occupier(self, origin: Origin) -> Optional[Color]:
        slot = self.slots[origin]
        return slot[0].color if slot else None

    def occupies_origin(self, color: Color, origin: Origin) -> bool:
        return 0 <= origin < 24 and self.origin_occupier(origin) is color

    def can_occupy_origin(self, color: Color, origin: Origin) -> bool:
        """A slot is open unless it holds two or more enemy pieces."""
        slot = self.slots[origin]
        return len(slot) < 2 or slot[0].color is color

    def pieces_on_origin(self, color: Color, origin: Origin) -> int:
        slot = self.slots[origin]
        return len(slot) if slot and slot[0].color is color else 0

    def pieces_on_bar(self, color: Color) -> int:
        return len(self.bars[color])

    def pieces_home(self, color: Color) -> int:
        return len(self.homes[color])

    def has_bar(self, color: Color) -> bool:
        return len(self.bars[color]) > 0

    def origins_occupied(self, color: Color) -> List[Origin]:
        """Occupied origins, ascending."""
        return [i for i, slot in enumerate(self.slots) if slot and slot[0].color is color]

    def max_point_occupied(self, color: Color) -> int:
        """Highest point number occupied from the color's perspective, or 0."""
        points = [origin_to_point(color, origin) for origin in self.origins_occupied(color)]
        return max(points, default=0)

    def may_bearoff(self, color: Color) -> bool:
        """True if the color has no piece on the bar or outside its home board."""
        if self.has_bar(color):
            return False
        return not any(self.occupies_origin(color, i) for i in OUTSIDE_ORIGINS[color])

    def has_piece_behind(self, color: Color, origin: Origin) -> bool:
        """True if the color has a piece further from home than the origin."""
        if color.direction == 1:
            behind = range(0, origin)
        else:
            behind = range(origin + 1, 24)
        return any(self.occupies_origin(color, i) for i in behind)

    def is_all_home(self, color: Color) -> bool:
        return len(self.homes[color]) == PIECES_PER_COLOR

    def pip_count(self, color: Color) -> int:
        """Pips to bear off every piece; a piece on the bar counts 25."""
        total = 25 * len(self.bars[color])
        for origin in self.origins_occupied(color):
            total += origin_to_point(color, origin) * len(self.slots[origin])
        return total

    def piece_count(self, color: Color) -> int:
        """Pieces of a color across slots, bar and home."""
        on_slots = sum(self.pieces_on_origin(color, i) for i in range(24))
        return on_slots + len(self.bars[color]) + len(self.homes[color])

    # ==========================================================================
    # WIN CONDITIONS
    # ==========================================================================

    def get_winner(self) -> Optional[Color]:
        """The color with all 15 pieces home, if any."""
        if self.is_all_home(Color.RED):
            return Color.RED
        if self.is_all_home(Color.WHITE):
            return Color.WHITE
        return None

    def has_winner(self) -> bool:
        return self.get_winner() is not None

    def is_gammon(self) -> bool:
        """The loser has borne off no pieces."""
        winner = self.get_winner()
        if winner is None:
            return False
        return self.pieces_home(winner.opponent) == 0

    def is_backgammon(self) -> bool:
        """Gammon, and the loser still has a piece on the bar or in the winner's home board."""
        if not self.is_gammon():
            return False
        winner = self.get_winner()
        loser = winner.opponent
        if self.has_bar(loser):
            return True
        return any(self.occupies_origin(loser, i) for i in INSIDE_ORIGINS[winner])

    # ==========================================================================
    # VALIDATION
    # ==========================================================================

    def validate_legal_board(self) -> None:
        """Check piece conservation and slot consistency.

        Raises:
            IllegalBoardError: on any violation
        """
        if len(self.slots) != 24:
            raise IllegalBoardError(f"Board has {len(self.slots)} slots")
        counts = {Color.WHITE: 0, Color.RED: 0}
        for origin, slot in enumerate(self.slots):
            colors = {piece.color for piece in slot}
            if len(colors) > 1:
                raise IllegalBoardError(f"Different colors on origin {origin}")
            for piece in slot:
                counts[piece.color] += 1
        for color in Color:
            for area, stack in (("home", self.homes[color]), ("bar", self.bars[color])):
                for piece in stack:
                    if piece.color is not color:
                        raise IllegalBoardError(f"{color} {area} has {piece.color} piece")
                counts[color] += len(stack)
            if counts[color] != PIECES_PER_COLOR:
                raise IllegalBoardError(f"{color} has {counts[color]} pieces on the board")
        if self.is_all_home(Color.RED) and self.is_all_home(Color.WHITE):
            raise IllegalBoardError("both colors have 15 on home")
        if all(len(self.bars[color]) == PIECES_PER_COLOR for color in Color):
            raise IllegalBoardError("both colors have 15 on the bar")

    # ==========================================================================
    # SERIALIZATION
    # ==========================================================================

    def state_string(self) -> str:
        """Pipe-delimited state.

        <WhiteBar>|<RedBar>|<count>:<Color>|... x24 ...|<WhiteHome>|<RedHome>
        """
        parts = [str(len(self.bars[Color.WHITE])), str(len(self.bars[Color.RED]))]
        for slot in self.slots:
            parts.append(f"{len(slot)}:{slot[0].color.value if slot else ''}")
        parts.append(str(len(self.homes[Color.WHITE])))
        parts.append(str(len(self.homes[Color.RED])))
        return "|".join(parts)

    def set_state_string(self, state: str) -> "Board":
        """Load a state string.

        Empty slots may be written as "0:" or "0"; colors as full names or
        their first letter.

        Raises:
            InvalidStateStringError: on a malformed string
        """
        locs = str(state).split("|")
        if len(locs) != 28:
            raise InvalidStateStringError(f"Expected 28 fields, got {len(locs)}")
        try:
            bars = {
                Color.WHITE: Piece.make(locs[0], Color.WHITE),
                Color.RED: Piece.make(locs[1], Color.RED),
            }
            slots = [_parse_slot(loc) for loc in locs[2:26]]
            homes = {
                Color.WHITE: Piece.make(locs[26], Color.WHITE),
                Color.RED: Piece.make(locs[27], Color.RED),
            }
        except ValueError as err:
            raise InvalidStateStringError(f"Invalid state string: {err}") from err
        self.slots = slots
        self.bars = bars
        self.homes = homes
        return self

    def state28_array(self) -> NDArray[np.int8]:
        """Fixed-width positional encoding.

        [white bar, red bar, 24 signed slots (+White, -Red), white home, red home]
        """
        arr = np.zeros(28, dtype=np.int8)
        arr[0] = len(self.bars[Color.WHITE])
        arr[1] = len(self.bars[Color.RED])
        for origin, slot in enumerate(self.slots):
            if slot:
                arr[origin + 2] = len(slot) * slot[0].color.direction
        arr[26] = len(self.homes[Color.WHITE])
        arr[27] = len(self.homes[Color.RED])
        return arr

    def state28(self) -> State28:
        """Hashable positional key; independent of piece identity and order."""
        return tuple(int(value) for value in self.state28_array())

    def set_state28(self, state28: Union[Sequence[int], NDArray]) -> "Board":
        """Load a state28 encoding.

        Raises:
            InvalidStateStringError: if the encoding is not 28 values long
        """
        arr = np.asarray(state28, dtype=np.int64)
        if arr.shape != (28,):
            raise InvalidStateStringError(f"Expected 28 values, got shape {arr.shape}")
        self.bars = {
            Color.WHITE: Piece.make(arr[0], Color.WHITE),
            Color.RED: Piece.make(arr[1], Color.RED),
        }
        self.slots = []
        for value in arr[2:26]:
            color = Color.WHITE if value > 0 else Color.RED
            self.slots.append(Piece.make(abs(value), color))
        self.homes = {
            Color.WHITE: Piece.make(arr[26], Color.WHITE),
            Color.RED: Piece.make(arr[27], Color.RED),
        }
        return self

    def __eq__(self, other) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self.state28() == other.state28()

    def __str__(self) -> str:
        return self.state_string()

    def __repr__(self) -> str:
        return f"Board({self.state_string()!r})"


def _parse_slot(loc: str) -> Stack:
    count, _, color = loc.partition(":")
    count = int(count)
    if count < 0:
        raise ValueError(f"negative count {count}")
    if count and not color:
        raise ValueError(f"slot {loc!r} has pieces but no color")
    return Piece.make(count, color) if count else []


def board_to_string(board: Board) -> str:
    """Convert board to a plain text table (for debugging).

    Args:
        board: Board to display

    Returns:
        One line per origin with its occupier and count
    """
    lines = []
    lines.append("=" * 40)
    lines.append(f"White pip count: {board.pip_count(Color.WHITE)}")
    lines.append(f"Red pip count: {board.pip_count(Color.RED)}")
    lines.append("")
    lines.append("Origin | White | Red")
    lines.append("-------+-------+------")
    lines.append(f"BAR    |  {board.pieces_on_bar(Color.WHITE):2d}   |  {board.pieces_on_bar(Color.RED):2d}")
    for origin in range(24):
        w = board.pieces_on_origin(Color.WHITE, origin)
        r = board.pieces_on_origin(Color.RED, origin)
        lines.append(f"{origin:2d}     |  {w:2d}   |  {r:2d}")
    lines.append(f"HOME   |  {board.pieces_home(Color.WHITE):2d}   |  {board.pieces_home(Color.RED):2d}")
    lines.append("=" * 40)
    return "\n".join(lines)
