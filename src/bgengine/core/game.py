"""Game state machine.

A game owns the board and the doubling cube and hands out turns, alternating
colors, until a turn ends in a win or a declined double.
"""

import uuid
from typing import Any, Dict, List, Optional

from loguru import logger

from bgengine.core.board import Board
from bgengine.core.cube import CubeState, apply_double, can_double, game_value, initial_cube
from bgengine.core.dice import first_roll_winner, roll_two
from bgengine.core.errors import (
    GameAlreadyStartedError,
    GameFinishedError,
    GameNotStartedError,
    TurnNotFinishedError,
)
from bgengine.core.turn import Turn
from bgengine.core.types import Color, Event, GameOptions, State28


class Game:
    """A single game of backgammon.

    Attributes:
        uuid: Unique id of the game
        opts: Game options
        board: The board shared by every turn
        cube: Doubling cube
        this_turn: Current turn, None before the first turn
        turn_history: meta() of every finished turn
        winner: Winning color once finished
        final_value: Points won once finished
    """

    def __init__(self, opts: Optional[GameOptions] = None):
        self.opts = opts if opts is not None else GameOptions()
        self.uuid = str(uuid.uuid4())

        self.cube: CubeState = initial_cube()
        self.end_state: Optional[State28] = None
        self.final_value: Optional[int] = None
        self.is_finished = False
        self.is_canceled = False
        self.is_pass = False
        self.is_gammon = False
        self.is_backgammon = False
        self.winner: Optional[Color] = None

        self.turn_history: List[Dict[str, Any]] = []
        self.this_turn: Optional[Turn] = None

        if self.opts.start_state:
            self.board = Board.from_state_string(self.opts.start_state)
        else:
            self.board = Board.from_setup()

    @property
    def cube_value(self) -> int:
        return self.cube.value

    @property
    def cube_owner(self) -> Optional[Color]:
        return self.cube.owner

    # ==========================================================================
    # DOUBLING
    # ==========================================================================

    def can_double(self, color: Any) -> bool:
        return can_double(
            self.cube,
            Color.parse(color),
            cube_enabled=self.opts.cube_enabled,
            is_crawford=self.opts.is_crawford,
        )

    def double(self) -> "Game":
        """Double the cube for the color on turn; the opponent now owns it.

        Raises:
            GameFinishedError: If the game is over
            GameNotStartedError: If there is no current turn
            AlreadyRolledError: If the current turn has rolled
            DoubleNotAllowedError: If the color on turn may not double
        """
        self._assert_not_finished()
        if self.this_turn is None:
            raise GameNotStartedError("The game has not started")
        self.this_turn.assert_not_rolled()
        color = self.this_turn.color
        self.cube = apply_double(
            self.cube,
            color,
            cube_enabled=self.opts.cube_enabled,
            is_crawford=self.opts.is_crawford,
        )
        logger.debug(f"{color.opponent} accepts the double, cube is now {self.cube.value}")
        self._emit(Event.DOUBLE_ACCEPTED)
        return self

    # ==========================================================================
    # TURNS
    # ==========================================================================

    def first_turn(self) -> Turn:
        """Roll for the first turn and return it already rolled.

        Tied opening rolls are rolled again, unless `force_first` names the
        first color.
        """
        self._assert_not_finished()
        if self.this_turn is not None:
            raise GameAlreadyStartedError("The game has already started")

        roller = self.opts.roller or roll_two
        dice = list(roller())
        while dice[0] == dice[1] and self.opts.force_first is None:
            dice = list(roller())
        first_color = self.opts.force_first or first_roll_winner(dice)

        self.this_turn = Turn(self.board, first_color, self.opts)
        self.this_turn.is_first_turn = True
        logger.debug(f"Game {self.uuid} started, {first_color} goes first with {dice}")
        self._emit(Event.GAME_STARTED)
        self.this_turn.set_roll(dice)
        return self.this_turn

    def next_turn(self) -> Optional[Turn]:
        """Start the opponent's turn.

        Returns None once, when the previous turn finished the game. Calls
        after that raise GameFinishedError.
        """
        self._assert_not_finished()
        if self.this_turn is None:
            raise GameNotStartedError("The game has not started")
        if not self.this_turn.is_finished:
            raise TurnNotFinishedError([self.this_turn.color, "has not finished the current turn"])
        if self.check_finished():
            return None
        self.turn_history.append(self.this_turn.meta())
        self.this_turn = Turn(self.board, self.this_turn.opponent, self.opts)
        return self.this_turn

    def get_turn_count(self) -> int:
        # The current turn joins the history when the game finishes
        if self.this_turn is None or self.is_finished:
            return len(self.turn_history)
        return len(self.turn_history) + 1

    # ==========================================================================
    # RESULT
    # ==========================================================================

    def check_finished(self) -> bool:
        """Settle the game if the current turn ended it.

        A declined double awards the current cube value to the doubling color.
        A board win is worth the cube value times 1, 2 for a gammon or 4 for a
        backgammon (under Jacoby, gammons count only with a turned cube).
        """
        if self.is_finished:
            return True
        turn = self.this_turn
        if turn is None or not turn.is_finished:
            return False
        if turn.is_double_declined:
            self.is_pass = True
            self.winner = turn.color
            self.final_value = self.cube.value
            self.is_finished = True
        elif self.board.has_winner():
            self.is_gammon = self.board.is_gammon()
            self.is_backgammon = self.board.is_backgammon()
            self.winner = self.board.get_winner()
            self.final_value = game_value(
                self.cube.value, self.is_gammon, self.is_backgammon, self.opts.is_jacoby
            )
            self.is_finished = True
        if self.is_finished:
            self.end_state = self.board.state28()
            self.turn_history.append(turn.meta())
            logger.debug(f"Game {self.uuid} finished, {self.winner} wins {self.final_value}")
            self._emit(Event.GAME_FINISHED)
        return self.is_finished

    def has_winner(self) -> bool:
        return self.get_winner() is not None

    def get_winner(self) -> Optional[Color]:
        self.check_finished()
        return self.winner

    def get_loser(self) -> Optional[Color]:
        winner = self.get_winner()
        return winner.opponent if winner else None

    def cancel(self) -> "Game":
        """End the game without a winner; a finished game is left as is."""
        if self.check_finished():
            return self
        self.is_canceled = True
        self.is_finished = True
        self.end_state = self.board.state28()
        if self.this_turn is not None:
            self.this_turn.cancel()
            self.turn_history.append(self.this_turn.meta())
        self._emit(Event.GAME_CANCELED)
        return self

    def _assert_not_finished(self) -> None:
        if self.is_finished:
            raise GameFinishedError("The game is already over")

    def _emit(self, event: Event) -> None:
        if self.opts.on_event is not None:
            self.opts.on_event(event, self)

    # ==========================================================================
    # SERIALIZATION
    # ==========================================================================

    def meta(self) -> Dict[str, Any]:
        winner = self.get_winner()
        return {
            "uuid": self.uuid,
            "opts": self.opts.to_dict(),
            "board": self.board.state_string(),
            "winner": winner.value if winner else None,
            "loser": winner.opponent.value if winner else None,
            "final_value": self.final_value,
            "cube_owner": self.cube.owner.value if self.cube.owner else None,
            "cube_value": self.cube.value,
            "is_finished": self.is_finished,
            "is_canceled": self.is_canceled,
            "is_pass": self.is_pass,
            "is_gammon": self.is_gammon,
            "is_backgammon": self.is_backgammon,
            "end_state": list(self.end_state) if self.end_state is not None else None,
            "turn_count": self.get_turn_count(),
        }

    def serialize(self) -> Dict[str, Any]:
        data = self.meta()
        data["turn_history"] = list(self.turn_history)
        if self.this_turn is not None:
            data["this_turn"] = self.this_turn.serialize()
        return data

    @classmethod
    def unserialize(cls, data: Dict[str, Any], opts: Optional[GameOptions] = None) -> "Game":
        """Rebuild a game from `serialize()` output.

        The current turn is replayed on its recorded start board, then the
        board is set to the recorded position.
        """
        game = cls(opts if opts is not None else GameOptions.from_dict(data.get("opts")))
        game.uuid = data["uuid"]

        owner = data.get("cube_owner")
        game.cube = CubeState(
            value=data.get("cube_value", 1),
            owner=Color.parse(owner) if owner else None,
        )
        game.end_state = tuple(data["end_state"]) if data.get("end_state") else None
        game.final_value = data.get("final_value")
        game.is_finished = data.get("is_finished", False)
        game.is_canceled = data.get("is_canceled", False)
        game.is_pass = data.get("is_pass", False)
        game.is_gammon = data.get("is_gammon", False)
        game.is_backgammon = data.get("is_backgammon", False)
        game.winner = Color.parse(data["winner"]) if data.get("winner") else None
        game.turn_history = list(data.get("turn_history", []))

        if data.get("this_turn"):
            turn_data = data["this_turn"]
            game.board.set_state28(turn_data["start_state"])
            game.this_turn = Turn.unserialize(turn_data, game.board, game.opts)
        game.board.set_state_string(data["board"])
        return game

    def __repr__(self) -> str:
        return (f"Game(uuid={self.uuid}, cube={self.cube.value}, "
                f"turns={self.get_turn_count()}, winner={self.winner})")
