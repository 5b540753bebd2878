"""Match state machine.

A match is a series of games played until one color reaches the match total.
The game after one color first comes within one point of the total is played
without the cube (the Crawford game), at most once per match.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from loguru import logger

from bgengine.core.cube import is_crawford_due
from bgengine.core.errors import ArgumentError, GameNotFinishedError, MatchFinishedError
from bgengine.core.game import Game
from bgengine.core.types import Color, Event, MatchOptions


class Match:
    """A match to `total` points.

    Attributes:
        uuid: Unique id of the match
        create_date: When the match was created (UTC)
        total: Points needed to win
        opts: Match options, handed to every game
        scores: Points per color
        games: Every game of the match, in order
        this_game: The latest game, None before the first
        has_crawforded: Whether the Crawford game has been scheduled
    """

    def __init__(self, total: int, opts: Optional[MatchOptions] = None):
        if isinstance(total, bool) or not isinstance(total, int) or total < 1:
            raise ArgumentError("Total must be integer > 0")

        self.create_date = datetime.now(timezone.utc)
        self.uuid = str(uuid.uuid4())
        self.total = total
        self.opts = opts if opts is not None else MatchOptions()

        self.scores: Dict[Color, int] = {Color.WHITE: 0, Color.RED: 0}
        self.is_canceled = False
        self.is_finished = False
        self.has_crawforded = False

        self.games: List[Game] = []
        self.this_game: Optional[Game] = None

    def next_game(self) -> Game:
        """Create the next game.

        Raises:
            GameNotFinishedError: If the current game is still in play
            MatchFinishedError: If the match was won or canceled
        """
        if self.is_finished:
            raise MatchFinishedError("Match is already finished")
        if self.this_game is not None and not self.this_game.check_finished():
            raise GameNotFinishedError("Current game has not finished")
        self.update_score()
        if self.has_winner():
            raise MatchFinishedError("Match is already finished")

        should_crawford = (
            self.opts.is_crawford
            and not self.has_crawforded
            and is_crawford_due(self.scores, self.total)
        )
        if should_crawford:
            self.has_crawforded = True
            logger.debug(f"Match {self.uuid}: Crawford game")

        self.this_game = Game(self.opts.game_options(is_crawford=should_crawford))
        self.games.append(self.this_game)
        logger.debug(f"Match {self.uuid}: game {len(self.games)} started, score {self._score_text()}")
        self._emit(Event.MATCH_GAME_STARTED, self.this_game)
        return self.this_game

    def update_score(self) -> "Match":
        """Recompute scores as the sum of the final values of games won."""
        for color in Color:
            self.scores[color] = sum(
                game.final_value for game in self.games
                if game.get_winner() is color
            )
        return self

    def check_finished(self) -> bool:
        if self.is_finished:
            return True
        self.update_score()
        self.is_finished = self.has_winner()
        if self.is_finished:
            logger.debug(f"Match {self.uuid} finished, {self.get_winner()} wins {self._score_text()}")
            self._emit(Event.MATCH_FINISHED, self)
        return self.is_finished

    def cancel(self) -> "Match":
        if self.check_finished():
            return self
        self.is_canceled = True
        self.is_finished = True
        if self.this_game is not None:
            self.this_game.cancel()
        self._emit(Event.MATCH_CANCELED, self)
        return self

    def has_winner(self) -> bool:
        return self.get_winner() is not None

    def get_winner(self) -> Optional[Color]:
        for color in Color:
            if self.scores[color] >= self.total:
                return color
        return None

    def get_loser(self) -> Optional[Color]:
        winner = self.get_winner()
        return winner.opponent if winner else None

    def _score_text(self) -> str:
        return f"{self.scores[Color.WHITE]}-{self.scores[Color.RED]}"

    def _emit(self, event: Event, subject: Any) -> None:
        if self.opts.on_event is not None:
            self.opts.on_event(event, subject)

    # ==========================================================================
    # SERIALIZATION
    # ==========================================================================

    def meta(self) -> Dict[str, Any]:
        winner = self.get_winner()
        return {
            "uuid": self.uuid,
            "create_date": self.create_date.isoformat(),
            "total": self.total,
            "scores": {color.value: score for color, score in self.scores.items()},
            "winner": winner.value if winner else None,
            "loser": winner.opponent.value if winner else None,
            "has_crawforded": self.has_crawforded,
            "is_canceled": self.is_canceled,
            "is_finished": self.is_finished,
            "game_count": len(self.games),
            "opts": self.opts.to_dict(),
        }

    def serialize(self) -> Dict[str, Any]:
        data = self.meta()
        data["games"] = [game.serialize() for game in self.games]
        return data

    @classmethod
    def unserialize(cls, data: Dict[str, Any], opts: Optional[MatchOptions] = None) -> "Match":
        """Rebuild a match from `serialize()` output.

        Callables such as `roller` and `on_event` are not serialized; pass
        `opts` to restore them.
        """
        if opts is None:
            opts = MatchOptions.from_dict(data.get("opts"))
        match = cls(data["total"], opts)
        match.uuid = data["uuid"]
        try:
            match.create_date = datetime.fromisoformat(data["create_date"])
        except (KeyError, TypeError, ValueError):
            match.create_date = datetime.now(timezone.utc)

        for name, score in data.get("scores", {}).items():
            match.scores[Color.parse(name)] = score
        match.is_finished = data.get("is_finished", False)
        match.is_canceled = data.get("is_canceled", False)
        match.has_crawforded = data.get("has_crawforded", False)

        for game_data in data.get("games", []):
            game_opts = opts.game_options(is_crawford=game_data.get("opts", {}).get("is_crawford", False))
            match.games.append(Game.unserialize(game_data, game_opts))
        match.this_game = match.games[-1] if match.games else None
        return match

    def __repr__(self) -> str:
        return f"Match(total={self.total}, score={self._score_text()}, games={len(self.games)})"
