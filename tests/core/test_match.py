"""Tests for match play."""

import json

import pytest
from bgengine.core.errors import ArgumentError, GameNotFinishedError, MatchFinishedError
from bgengine.core.match import Match
from bgengine.core.types import Color, Event, MatchOptions

from tests.positions import STATES


@pytest.fixture
def gammon_opts(roller_of):
    """Every game starts with white already home and on roll: white wins a gammon."""
    return MatchOptions(
        start_state=STATES["WhiteGammon1"],
        force_first=Color.WHITE,
        roller=roller_of([(6, 1)]),
    )


def play(match):
    """Start the next game; it finishes on the first turn."""
    game = match.next_game()
    game.first_turn()
    assert game.check_finished()
    return game


class TestCreate:
    """Tests for creating a match."""

    @pytest.mark.parametrize("total", [0, -1, 1.5, "3", True, None])
    def test_bad_total(self, total):
        """Test the total must be a positive integer."""
        with pytest.raises(ArgumentError):
            Match(total)

    def test_new_match(self):
        """Test a new match has no games and no score."""
        match = Match(5)
        assert match.this_game is None
        assert match.scores == {Color.WHITE: 0, Color.RED: 0}
        assert not match.has_winner()
        assert match.opts.is_crawford
        assert match.create_date.tzinfo is not None


class TestGames:
    """Tests for playing games in a match."""

    def test_first_game(self, gammon_opts):
        """Test the first game gets the match options."""
        match = Match(5, gammon_opts)
        game = match.next_game()
        assert match.this_game is game
        assert match.games == [game]
        assert not game.opts.is_crawford
        assert game.opts.start_state == STATES["WhiteGammon1"]

    def test_game_not_finished(self):
        """Test the next game waits for the current one."""
        match = Match(5)
        match.next_game()
        with pytest.raises(GameNotFinishedError):
            match.next_game()

    def test_scores(self, gammon_opts):
        """Test scores add the final value of each game won."""
        match = Match(7, gammon_opts)
        play(match)
        play(match)
        match.update_score()
        assert match.scores == {Color.WHITE: 4, Color.RED: 0}
        assert not match.check_finished()

    def test_match_finished(self, gammon_opts):
        """Test a color reaching the total wins the match."""
        match = Match(3, gammon_opts)
        play(match)
        play(match)
        assert match.check_finished()
        assert match.get_winner() is Color.WHITE
        assert match.get_loser() is Color.RED
        with pytest.raises(MatchFinishedError):
            match.next_game()

    def test_one_point_match(self, gammon_opts):
        """Test a single game can end a one point match."""
        match = Match(1, gammon_opts)
        game = play(match)
        assert not game.opts.is_crawford
        assert match.check_finished()


class TestCrawford:
    """Tests for the Crawford rule."""

    def test_crawford_game(self, gammon_opts):
        """Test the game after reaching one away is played without the cube."""
        match = Match(3, gammon_opts)
        first = play(match)
        assert match.scores[Color.WHITE] == 0
        second = match.next_game()
        assert match.scores[Color.WHITE] == 2
        assert not first.opts.is_crawford
        assert second.opts.is_crawford
        assert match.has_crawforded
        assert not second.can_double(Color.WHITE)
        assert not second.can_double(Color.RED)

    def test_crawford_once(self, gammon_opts):
        """Test the Crawford game is not repeated."""
        match = Match(3, gammon_opts)
        play(match)
        match.has_crawforded = True
        game = match.next_game()
        assert not game.opts.is_crawford
        assert game.can_double(Color.WHITE)

    def test_crawford_off(self, gammon_opts):
        """Test the rule can be turned off."""
        gammon_opts.is_crawford = False
        match = Match(3, gammon_opts)
        play(match)
        game = match.next_game()
        assert not game.opts.is_crawford
        assert not match.has_crawforded

    def test_not_one_away(self, gammon_opts):
        """Test no Crawford while both are more than one away."""
        match = Match(5, gammon_opts)
        play(match)
        game = match.next_game()
        assert match.scores[Color.WHITE] == 2
        assert not game.opts.is_crawford


class TestLifecycle:
    """Tests for cancel, events and serialization."""

    def test_cancel(self):
        """Test cancel ends the match and its game."""
        match = Match(3)
        game = match.next_game()
        match.cancel()
        assert match.is_canceled
        assert match.is_finished
        assert game.is_canceled
        assert match.get_winner() is None

    def test_no_game_after_cancel(self):
        """Test a canceled match starts no more games."""
        match = Match(3)
        match.next_game()
        match.cancel()
        with pytest.raises(MatchFinishedError):
            match.next_game()
        assert len(match.games) == 1

    def test_events(self, gammon_opts):
        """Test game starts and the match finish are reported."""
        events = []
        gammon_opts.on_event = lambda event, subject: events.append((event, subject))
        match = Match(2, gammon_opts)
        game = play(match)
        match.check_finished()
        match.check_finished()

        match_events = [
            (event, subject) for event, subject in events
            if event in (Event.MATCH_GAME_STARTED, Event.MATCH_FINISHED)
        ]
        assert match_events == [
            (Event.MATCH_GAME_STARTED, game),
            (Event.MATCH_FINISHED, match),
        ]
        assert (Event.GAME_FINISHED, game) in events

    def test_meta(self, gammon_opts):
        """Test match meta is JSON safe."""
        match = Match(3, gammon_opts)
        play(match)
        match.update_score()
        meta = json.loads(json.dumps(match.meta()))
        assert meta["total"] == 3
        assert meta["scores"] == {"White": 2, "Red": 0}
        assert meta["game_count"] == 1
        assert meta["winner"] is None

    def test_round_trip(self, gammon_opts):
        """Test a match restores its games and scores."""
        match = Match(3, gammon_opts)
        play(match)
        match.next_game()
        data = json.loads(json.dumps(match.serialize()))

        restored = Match.unserialize(data, gammon_opts)
        assert restored.uuid == match.uuid
        assert restored.create_date == match.create_date
        assert restored.total == 3
        assert restored.scores == match.scores
        assert restored.has_crawforded
        assert len(restored.games) == 2
        assert restored.games[0].get_winner() is Color.WHITE
        assert restored.this_game.opts.is_crawford
        assert restored.this_game.this_turn is None

        restored.this_game.first_turn()
        with pytest.raises(MatchFinishedError):
            restored.next_game()
