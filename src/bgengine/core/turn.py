"""Turn state machine.

A turn moves through: unrolled → rolled → finished, or
unrolled → double offered → finished (declined).

On roll the allowed plays are computed once. Each `move` must then follow
one of the allowed move series, so a player can only ever reach an allowed
end state.
"""

from typing import Any, Dict, List, Optional, Sequence, Union

from loguru import logger

from bgengine.core.board import Board
from bgengine.core.dice import check_two, faces as dice_faces, roll_two
from bgengine.core.errors import (
    AlreadyRolledError,
    HasNotDoubledError,
    HasNotRolledError,
    IllegalMoveError,
    MovesRemainingError,
    NoMovesMadeError,
    NoMovesRemainingError,
    TurnAlreadyFinishedError,
    TurnCanceledError,
)
from bgengine.core.moves import Move, build_move
from bgengine.core.trees import AllowedMoves, compute_allowed_moves
from bgengine.core.types import Color, Event, GameOptions, MoveCoords, MoveSeries, State28

# What Turn.move accepts in place of an origin
MoveRequest = Union[int, MoveCoords, Move, Dict[str, int]]


class Turn:
    """One color's turn on a shared board.

    Attributes:
        board: Board the turn plays on (shared with the game)
        color: Moving color
        start_state: state28 of the board when the turn was created
        end_state: state28 when the turn finished, else None
        dice: Dice as rolled, None before the roll
        moves: Moves made so far, in order
        remaining_faces: Faces still to play, highest first
    """

    def __init__(self, board: Board, color: Any, opts: Optional[GameOptions] = None):
        self.board = board
        self.color = Color.parse(color)
        self.opponent = self.color.opponent
        self.opts = opts if opts is not None else GameOptions()
        self.start_state: State28 = board.state28()
        self.end_state: Optional[State28] = None

        self.dice: Optional[List[int]] = None
        self.dice_sorted: Optional[List[int]] = None
        self.faces: Optional[List[int]] = None

        self.is_canceled = False
        self.is_cant_move = False
        self.is_double_declined = False
        self.is_double_offered = False
        self.is_finished = False
        self.is_first_turn = False
        self.is_force_move = False
        self.is_rolled = False

        self.allowed: Optional[AllowedMoves] = None
        self.allowed_move_count = 0
        self.allowed_faces: List[int] = []
        self.allowed_end_states: List[State28] = []
        self.allowed_move_series: List[MoveSeries] = []
        self.end_states_to_series: Dict[State28, MoveSeries] = {}
        self.remaining_faces: List[int] = []

        self.moves: List[Move] = []
        # Face taken from remaining_faces by each move, None if it took none
        self.used_faces: List[Optional[int]] = []

    # ==========================================================================
    # DOUBLING
    # ==========================================================================

    def set_double_offered(self) -> "Turn":
        self.assert_not_finished()
        self.assert_not_rolled()
        self.is_double_offered = True
        logger.debug(f"{self.color} offers a double")
        self._emit(Event.DOUBLE_OFFERED)
        return self

    def set_double_declined(self) -> "Turn":
        """Decline the offered double, which finishes the turn.

        Declining twice is a no-op.
        """
        if self.is_double_declined:
            return self
        self.assert_not_finished()
        self.assert_not_rolled()
        if not self.is_double_offered:
            raise HasNotDoubledError([self.color, "has not doubled"])
        self.is_double_declined = True
        logger.debug(f"{self.opponent} declines the double from {self.color}")
        self._emit(Event.DOUBLE_DECLINED)
        self.finish()
        return self

    # ==========================================================================
    # ROLLING
    # ==========================================================================

    def set_roll(self, *args) -> "Turn":
        """Use the given dice, as `set_roll(3, 5)` or `set_roll([3, 5])`."""
        self.assert_not_finished()
        self.assert_not_rolled()
        dice = list(args[0]) if len(args) == 1 else list(args)
        check_two(dice)
        self.dice = dice
        self.is_rolled = True
        self._after_roll()
        return self

    def roll(self) -> "Turn":
        self.assert_not_finished()
        self.assert_not_rolled()
        roller = self.opts.roller or roll_two
        dice = list(roller())
        check_two(dice)
        self.dice = dice
        self.is_rolled = True
        self._after_roll()
        return self

    def _after_roll(self) -> None:
        self.dice_sorted = sorted(self.dice, reverse=True)
        self.faces = dice_faces(self.dice_sorted)

        result = compute_allowed_moves(self.board, self.color, self.faces, self.opts.breadth_trees)
        self.allowed = result
        self.allowed_move_count = result.max_depth
        self.allowed_faces = list(result.allowed_faces)
        self.allowed_end_states = list(result.allowed_end_states)
        self.allowed_move_series = list(result.allowed_move_series)
        self.end_states_to_series = dict(result.end_states_to_series)

        self.is_cant_move = result.max_depth == 0
        self.is_force_move = len(self.allowed_move_series) == 1
        self.remaining_faces = list(self.allowed_faces)

        logger.debug(f"{self.color} rolled {self.dice}, {len(self.allowed_move_series)} plays allowed")
        self._emit(Event.TURN_ROLLED)

        if self.is_cant_move:
            logger.debug(f"{self.color} cannot move")
            self._emit(Event.TURN_CANT_MOVE)
            self.finish()

    @property
    def is_breadth_tree(self) -> bool:
        return self.opts.breadth_trees

    # ==========================================================================
    # MOVING
    # ==========================================================================

    def get_next_available_moves(self) -> List[Move]:
        """Moves that continue some allowed series from the moves made so far.

        The returned moves are built against the turn's board but not applied.
        """
        self.assert_is_rolled()
        made = tuple(move.coords for move in self.moves)
        depth = len(made)
        next_coords: List[MoveCoords] = []
        for series in self.allowed_move_series:
            if len(series) > depth and series[:depth] == made:
                coords = series[depth]
                if coords not in next_coords:
                    next_coords.append(coords)
        return [build_move(self.board, self.color, c.origin, c.face) for c in next_coords]

    def move(self, origin: MoveRequest, face: Optional[int] = None) -> Move:
        """Make the next move of this turn.

        Args:
            origin: Origin (-1 for the bar), or a MoveCoords, Move or
                {"origin", "face"} mapping carrying both coordinates
            face: Die face, when `origin` is a plain origin

        Returns:
            The applied Move

        Raises:
            NoMovesRemainingError: If every allowed series is complete
            IllegalMoveError: If the move does not continue an allowed series.
                A subclass names the reason when the board forbids the move.
        """
        self.assert_not_finished()
        self.assert_is_rolled()
        origin, face = _coords_of(origin, face)

        next_moves = self.get_next_available_moves()
        if not next_moves:
            raise NoMovesRemainingError([self.color, "has no more moves to do"])
        if not any(m.origin == origin and m.face == face for m in next_moves):
            # Raises the specific reason if the board itself forbids it
            self.board.build_move(self.color, origin, face)
            raise IllegalMoveError(["move not available for", self.color])

        move = self.board.move(self.color, origin, face)
        self.moves.append(move)
        # A short winning play may use a face outside allowed_faces
        if face in self.remaining_faces:
            self.remaining_faces.remove(face)
            self.used_faces.append(face)
        else:
            self.used_faces.append(None)
        self._emit(Event.TURN_MOVED, move)
        return move

    def unmove(self) -> Move:
        """Undo the last move and give its face back."""
        self.assert_not_finished()
        if not self.moves:
            raise NoMovesMadeError([self.color, "has no moves to undo"])
        move = self.moves.pop()
        move.undo()
        used = self.used_faces.pop()
        if used is not None:
            self.remaining_faces.append(used)
            self.remaining_faces.sort(reverse=True)
        self._emit(Event.TURN_UNMOVED, move)
        return move

    # ==========================================================================
    # FINISHING
    # ==========================================================================

    def finish(self) -> "Turn":
        """Finish the turn; a finished turn is returned unchanged.

        Raises:
            HasNotRolledError: If the turn has not been rolled (and no double was declined)
            MovesRemainingError: If fewer moves than required were made without winning
        """
        if self.is_finished:
            return self
        if not self.is_double_declined:
            self.assert_is_rolled()
            if len(self.moves) != self.allowed_move_count and self.board.get_winner() is not self.color:
                raise MovesRemainingError([self.color, "has more moves to do"])
        self.end_state = self.board.state28()
        self.is_finished = True
        self.allowed = None
        logger.debug(f"{self.color} finished turn with {len(self.moves)} moves")
        self._emit(Event.TURN_FINISHED)
        return self

    def cancel(self) -> "Turn":
        """Finish the turn without checks. Later changes raise TurnCanceledError."""
        if self.is_finished:
            return self
        self.end_state = self.board.state28()
        self.is_finished = True
        self.is_canceled = True
        self.allowed = None
        self._emit(Event.TURN_CANCELED)
        return self

    def fetch_board(self, state28: State28) -> Board:
        """Board for an allowed end state."""
        if self.allowed is not None and state28 in self.allowed.end_boards:
            return self.allowed.end_boards[state28].copy()
        return Board.from_state28(state28)

    # ==========================================================================
    # GUARDS
    # ==========================================================================

    def assert_not_finished(self) -> "Turn":
        if self.is_finished:
            if self.is_canceled:
                raise TurnCanceledError(["turn has been canceled for", self.color])
            raise TurnAlreadyFinishedError(["turn is already finished for", self.color])
        return self

    def assert_is_rolled(self) -> "Turn":
        if not self.is_rolled:
            raise HasNotRolledError([self.color, "has not rolled"])
        return self

    def assert_not_rolled(self) -> "Turn":
        if self.is_rolled:
            raise AlreadyRolledError([self.color, "has already rolled"])
        return self

    def _emit(self, event: Event, subject: Any = None) -> None:
        if self.opts.on_event is not None:
            self.opts.on_event(event, subject if subject is not None else self)

    # ==========================================================================
    # SERIALIZATION
    # ==========================================================================

    def meta(self) -> Dict[str, Any]:
        return {
            "color": self.color.value,
            "dice": list(self.dice) if self.dice is not None else None,
            "is_canceled": self.is_canceled,
            "is_cant_move": self.is_cant_move,
            "is_double_declined": self.is_double_declined,
            "is_double_offered": self.is_double_offered,
            "is_finished": self.is_finished,
            "is_first_turn": self.is_first_turn,
            "is_force_move": self.is_force_move,
            "is_rolled": self.is_rolled,
            "start_state": list(self.start_state),
            "end_state": list(self.end_state) if self.end_state is not None else None,
            "moves": [move.coords.to_dict() for move in self.moves],
            "opts": self.opts.to_dict(),
        }

    def serialize(self) -> Dict[str, Any]:
        data = self.meta()
        data.update({
            "allowed_move_count": self.allowed_move_count,
            "allowed_faces": list(self.allowed_faces),
            "allowed_end_states": [list(state) for state in self.allowed_end_states],
            "allowed_move_series": [
                [coords.to_dict() for coords in series] for series in self.allowed_move_series
            ],
        })
        return data

    @classmethod
    def unserialize(cls, data: Dict[str, Any], board: Optional[Board] = None,
                    opts: Optional[GameOptions] = None) -> "Turn":
        """Rebuild a turn by replaying its roll and moves.

        Args:
            data: Output of `meta()` or `serialize()`
            board: Board to play on; built from the start state when omitted
            opts: Options to use; built from the recorded options when omitted
        """
        if board is None:
            board = Board.from_state28(data["start_state"])
        if opts is None:
            opts = GameOptions.from_dict(data.get("opts"))
        turn = cls(board, data["color"], opts)
        turn.is_first_turn = bool(data.get("is_first_turn"))

        if data.get("is_double_offered"):
            turn.is_double_offered = True
        if data.get("is_rolled"):
            turn.set_roll(data["dice"])
        for coords in data.get("moves", []):
            turn.move(coords["origin"], coords["face"])

        if data.get("is_canceled"):
            turn.cancel()
        elif data.get("is_double_declined"):
            turn.set_double_declined()
        elif data.get("is_finished"):
            turn.finish()
        return turn

    def __repr__(self) -> str:
        return (f"Turn(color={self.color}, dice={self.dice}, moves={len(self.moves)}, "
                f"finished={self.is_finished})")


def _coords_of(origin: MoveRequest, face: Optional[int]):
    """Split a move request into (origin, face)."""
    if isinstance(origin, dict):
        return origin["origin"], origin["face"]
    if isinstance(origin, (MoveCoords, Move)):
        return origin.origin, origin.face
    return origin, face


def replay_series(turn: Turn, series: Sequence[MoveCoords]) -> List[Move]:
    """Play a whole series of move coordinates on a rolled turn."""
    return [turn.move(coords) for coords in series]
