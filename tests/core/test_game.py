"""Tests for the game state machine."""

import json

import pytest
from bgengine.core.dice import create_roller
from bgengine.core.errors import (
    AlreadyRolledError,
    DoubleNotAllowedError,
    GameAlreadyStartedError,
    GameFinishedError,
    GameNotStartedError,
    TurnNotFinishedError,
)
from bgengine.core.game import Game
from bgengine.core.types import Color, Event, GameOptions

from tests.positions import STATES


def won_game(name, **kwargs):
    """A game whose start position is already a win for white."""
    opts = GameOptions(
        start_state=STATES[name],
        force_first=Color.WHITE,
        roller=create_roller([(6, 1)]),
        **kwargs,
    )
    game = Game(opts)
    game.first_turn()
    return game


@pytest.fixture
def opening(roller_of):
    """A game where white opens 6-1 and plays 11/17 16/17."""
    game = Game(GameOptions(roller=roller_of([(6, 1)])))
    turn = game.first_turn()
    turn.move(11, 6)
    turn.move(16, 1)
    turn.finish()
    return game


# ==============================================================================
# TURNS
# ==============================================================================


class TestTurns:
    """Tests for handing out turns."""

    def test_new_game(self):
        """Test a new game starts from the setup with a centered cube."""
        game = Game()
        assert game.this_turn is None
        assert game.cube_value == 1
        assert game.cube_owner is None
        assert game.get_turn_count() == 0
        assert not game.is_finished

    def test_first_turn(self, roller_of):
        """Test the higher die moves first using the opening roll."""
        game = Game(GameOptions(roller=roller_of([(2, 5)])))
        turn = game.first_turn()
        assert turn.color is Color.RED
        assert turn.dice == [2, 5]
        assert turn.is_first_turn
        assert turn.is_rolled
        assert game.get_turn_count() == 1

    def test_first_turn_reroll_tie(self, roller_of):
        """Test tied opening rolls are rolled again."""
        game = Game(GameOptions(roller=roller_of([(3, 3), (4, 4), (5, 2)])))
        turn = game.first_turn()
        assert turn.color is Color.WHITE
        assert turn.dice == [5, 2]

    def test_force_first(self, roller_of):
        """Test force_first accepts a tied roll."""
        game = Game(GameOptions(roller=roller_of([(3, 3)]), force_first=Color.RED))
        turn = game.first_turn()
        assert turn.color is Color.RED
        assert turn.faces == [3, 3, 3, 3]

    def test_already_started(self, opening):
        """Test first_turn can only be called once."""
        with pytest.raises(GameAlreadyStartedError):
            opening.first_turn()

    def test_next_turn_not_started(self):
        """Test next_turn needs a first turn."""
        with pytest.raises(GameNotStartedError):
            Game().next_turn()

    def test_next_turn_unfinished(self, roller_of):
        """Test next_turn waits for the current turn."""
        game = Game(GameOptions(roller=roller_of([(6, 1)])))
        game.first_turn()
        with pytest.raises(TurnNotFinishedError):
            game.next_turn()

    def test_next_turn_alternates(self, opening):
        """Test turns alternate colors on the same board."""
        turn = opening.next_turn()
        assert turn.color is Color.RED
        assert turn.board is opening.board
        assert list(turn.start_state) == opening.turn_history[0]["end_state"]
        assert not turn.is_rolled
        assert opening.get_turn_count() == 2

    def test_turns_share_roller(self, opening):
        """Test later turns roll with the configured roller."""
        turn = opening.next_turn().roll()
        assert turn.dice == [6, 1]


# ==============================================================================
# DOUBLING
# ==============================================================================


class TestDoubling:
    """Tests for offering, accepting and declining doubles."""

    def test_accept(self, opening):
        """Test accepting gives the cube to the opponent at twice the value."""
        opening.next_turn()
        opening.double()
        assert opening.cube_value == 2
        assert opening.cube_owner is Color.WHITE
        assert opening.can_double(Color.WHITE)
        assert not opening.can_double(Color.RED)

    def test_decline(self, opening):
        """Test declining gives the doubling color the cube value."""
        turn = opening.next_turn()
        turn.set_double_offered()
        turn.set_double_declined()
        assert opening.next_turn() is None
        assert opening.is_finished
        assert opening.is_pass
        assert opening.get_winner() is Color.RED
        assert opening.get_loser() is Color.WHITE
        assert opening.final_value == 1

    def test_decline_redouble(self, opening):
        """Test a declined redouble is worth the cube as it stands."""
        opening.next_turn()
        opening.double()
        turn = opening.this_turn.roll()
        for coords in turn.allowed_move_series[0]:
            turn.move(coords)
        turn.finish()
        turn = opening.next_turn()
        assert turn.color is Color.WHITE
        turn.set_double_offered()
        turn.set_double_declined()
        assert opening.check_finished()
        assert opening.get_winner() is Color.WHITE
        assert opening.final_value == 2

    def test_double_after_roll(self, opening):
        """Test the cube can't be turned after rolling."""
        opening.next_turn().roll()
        with pytest.raises(AlreadyRolledError):
            opening.double()

    def test_redouble(self, opening):
        """Test the cube owner redoubles."""
        opening.next_turn()
        opening.double()
        turn = opening.this_turn.roll()
        for coords in turn.allowed_move_series[0]:
            turn.move(coords)
        turn.finish()
        opening.next_turn()
        opening.double()
        assert opening.cube_value == 4
        assert opening.cube_owner is Color.RED

    def test_double_not_started(self):
        """Test doubling needs a turn."""
        with pytest.raises(GameNotStartedError):
            Game().double()

    @pytest.mark.parametrize("opts", [
        {"cube_enabled": False},
        {"is_crawford": True},
    ])
    def test_cube_disabled(self, roller_of, opts):
        """Test no doubling without a cube or in the Crawford game."""
        game = Game(GameOptions(roller=roller_of([(6, 1)]), **opts))
        turn = game.first_turn()
        turn.move(11, 6)
        turn.move(16, 1)
        turn.finish()
        game.next_turn()
        assert not game.can_double(Color.RED)
        with pytest.raises(DoubleNotAllowedError):
            game.double()


# ==============================================================================
# RESULTS
# ==============================================================================


class TestResult:
    """Tests for finishing a game."""

    @pytest.mark.parametrize("name,value,gammon,backgammon", [
        ("WhiteNoGammon1", 1, False, False),
        ("WhiteGammon1", 2, True, False),
        ("WhiteBackgammon1", 4, True, True),
    ])
    def test_board_win(self, name, value, gammon, backgammon):
        """Test wins are worth 1, 2 or 4 times the cube."""
        game = won_game(name)
        assert game.this_turn.is_cant_move
        assert game.check_finished()
        assert game.get_winner() is Color.WHITE
        assert game.final_value == value
        assert game.is_gammon is gammon
        assert game.is_backgammon is backgammon
        assert not game.is_pass

    def test_jacoby(self):
        """Test a gammon counts single with a centered cube under Jacoby."""
        game = won_game("WhiteGammon1", is_jacoby=True)
        assert game.check_finished()
        assert game.is_gammon
        assert game.final_value == 1

    def test_next_turn_after_win(self):
        """Test next_turn returns None once, then raises."""
        game = won_game("WhiteGammon1")
        assert game.next_turn() is None
        with pytest.raises(GameFinishedError):
            game.next_turn()

    def test_turn_count_after_win(self):
        """Test the finishing turn is counted once."""
        game = won_game("WhiteGammon1")
        game.check_finished()
        assert len(game.turn_history) == 1
        assert game.get_turn_count() == 1

    def test_meta(self):
        """Test game meta after a win."""
        meta = won_game("WhiteGammon1").meta()
        assert meta["winner"] == "White"
        assert meta["loser"] == "Red"
        assert meta["final_value"] == 2
        assert json.dumps(meta)

    def test_cancel(self, opening):
        """Test cancel ends the game with no winner."""
        opening.next_turn()
        opening.cancel()
        assert opening.is_canceled
        assert opening.is_finished
        assert opening.this_turn.is_canceled
        assert opening.get_winner() is None
        with pytest.raises(GameFinishedError):
            opening.next_turn()

    def test_cancel_finished(self):
        """Test cancel leaves a won game alone."""
        game = won_game("WhiteGammon1")
        game.cancel()
        assert not game.is_canceled
        assert game.get_winner() is Color.WHITE


# ==============================================================================
# EVENTS AND SERIALIZATION
# ==============================================================================


class TestEvents:
    """Tests for game lifecycle callbacks."""

    def test_game_events(self, roller_of):
        """Test start, double and cancel are reported with the game."""
        events = []
        opts = GameOptions(
            roller=roller_of([(6, 1)]),
            on_event=lambda event, subject: events.append((event, subject)),
        )
        game = Game(opts)
        turn = game.first_turn()
        turn.move(11, 6)
        turn.move(16, 1)
        turn.finish()
        turn = game.next_turn()
        turn.set_double_offered()
        game.double()
        game.cancel()

        game_events = [event for event, subject in events if subject is game]
        assert game_events == [
            Event.GAME_STARTED,
            Event.DOUBLE_ACCEPTED,
            Event.GAME_CANCELED,
        ]
        assert events[0][0] is Event.GAME_STARTED
        assert events[1][0] is Event.TURN_ROLLED
        assert (Event.DOUBLE_OFFERED, turn) in events

    def test_finished_once(self):
        """Test the finish event fires once."""
        events = []
        game = won_game("WhiteGammon1", on_event=lambda event, subject: events.append(event))
        game.check_finished()
        game.get_winner()
        game.meta()
        assert events.count(Event.GAME_FINISHED) == 1


class TestSerialization:
    """Tests for game serialize and unserialize."""

    def test_round_trip_in_play(self, opening, roller_of):
        """Test a game in play restores its board and current turn."""
        turn = opening.next_turn().roll()
        turn.move(12, 6)
        data = json.loads(json.dumps(opening.serialize()))

        game = Game.unserialize(data, GameOptions(roller=roller_of([(6, 1)])))
        assert game.uuid == opening.uuid
        assert game.board == opening.board
        assert game.this_turn.color is Color.RED
        assert [move.coords for move in game.this_turn.moves] == [(12, 6)]
        assert game.this_turn.remaining_faces == [1]
        assert len(game.turn_history) == 1
        assert game.get_turn_count() == 2

        game.this_turn.move(game.this_turn.get_next_available_moves()[0])
        game.this_turn.finish()

    def test_round_trip_finished(self):
        """Test a finished game keeps its result."""
        original = won_game("WhiteBackgammon1")
        original.check_finished()
        game = Game.unserialize(json.loads(json.dumps(original.serialize())))
        assert game.is_finished
        assert game.get_winner() is Color.WHITE
        assert game.final_value == 4
        assert game.is_backgammon
        assert game.board == original.board

    def test_round_trip_cube(self, opening):
        """Test the cube survives a round trip."""
        opening.next_turn()
        opening.double()
        game = Game.unserialize(opening.serialize())
        assert game.cube_value == 2
        assert game.cube_owner is Color.WHITE
