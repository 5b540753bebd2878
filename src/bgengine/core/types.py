"""Core type definitions for the backgammon rules engine.

Board geometry:
    Origins 0-23 are a fixed, color-independent numbering of the 24 slots.
    White moves up the origins (0 → 23 → off), Red moves down (23 → 0 → off).

    White point p is origin 24 - p, so White's 24-point is origin 0.
    Red point p is origin p - 1, so Red's 1-point is origin 0.

    Origin -1 is reserved for "from the bar".
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

from bgengine.core.errors import InvalidColorError


# ==============================================================================
# COLORS AND PIECES
# ==============================================================================

Origin = int  # -1 (bar) or 0-23
Face = int  # 1-6

BAR_ORIGIN: Origin = -1
PIECES_PER_COLOR = 15


class Color(Enum):
    """Checker colors."""
    WHITE = "White"
    RED = "Red"

    @property
    def opponent(self) -> "Color":
        """Return the opposing color."""
        return Color.RED if self is Color.WHITE else Color.WHITE

    @property
    def abbr(self) -> str:
        return self.value[0]

    @property
    def direction(self) -> int:
        """+1 if the color moves up the origins, -1 if down."""
        return 1 if self is Color.WHITE else -1

    @staticmethod
    def parse(value: Any) -> "Color":
        """Normalize a color name, abbreviation or Color to a Color.

        Raises:
            InvalidColorError: if the value names no color
        """
        if isinstance(value, Color):
            return value
        color = _COLOR_NAMES.get(str(value).strip().lower())
        if color is None:
            raise InvalidColorError(f"Invalid color: {value!r}")
        return color

    def __str__(self) -> str:
        return self.value


_COLOR_NAMES = {
    "white": Color.WHITE,
    "w": Color.WHITE,
    "red": Color.RED,
    "r": Color.RED,
}


@dataclass(frozen=True)
class Piece:
    """A single checker."""
    color: Color

    def __str__(self) -> str:
        return self.color.value

    @staticmethod
    def make(count: int, color: Any) -> list:
        """Build a stack of `count` pieces of one color."""
        count = int(count)
        if count == 0:
            return []
        color = Color.parse(color)
        return [Piece(color) for _ in range(count)]


class MoveCoords(NamedTuple):
    """Coordinates of a move: where it starts and which die it uses."""
    origin: Origin
    face: Face

    @property
    def hash(self) -> str:
        return f"{self.origin}:{self.face}"

    def to_dict(self) -> Dict[str, int]:
        return {"origin": self.origin, "face": self.face}


# A move series as played, e.g. ((7, 3), (5, 1))
MoveSeries = Tuple[MoveCoords, ...]

# Compact positional encoding: 2 bar counts, 24 signed slots, 2 home counts
State28 = Tuple[int, ...]


# ==============================================================================
# ORIGIN / POINT TABLES
# ==============================================================================

INSIDE_ORIGINS: Dict[Color, Tuple[Origin, ...]] = {
    Color.WHITE: tuple(range(18, 24)),
    Color.RED: tuple(range(5, -1, -1)),
}

OUTSIDE_ORIGINS: Dict[Color, Tuple[Origin, ...]] = {
    Color.WHITE: tuple(range(0, 18)),
    Color.RED: tuple(range(23, 5, -1)),
}


def origin_to_point(color: Color, origin: Origin) -> int:
    """Point number (1-24) of an origin from one color's perspective."""
    if origin == BAR_ORIGIN:
        return BAR_ORIGIN
    if color is Color.WHITE:
        return 24 - origin
    return origin + 1


def point_to_origin(color: Color, point: int) -> Origin:
    """Origin (0-23) of a point number from one color's perspective."""
    if point == BAR_ORIGIN:
        return BAR_ORIGIN
    if color is Color.WHITE:
        return 24 - point
    return point - 1


def come_in_origin(color: Color, face: Face) -> Origin:
    """Slot a checker on the bar enters on for a face."""
    return face - 1 if color is Color.WHITE else 24 - face


# ==============================================================================
# LIFECYCLE EVENTS
# ==============================================================================

class Event(Enum):
    """State machine transitions reported to an `on_event` callback."""
    TURN_ROLLED = "turnRolled"
    TURN_CANT_MOVE = "turnCantMove"
    TURN_MOVED = "turnMoved"
    TURN_UNMOVED = "turnUnmoved"
    TURN_FINISHED = "turnFinished"
    TURN_CANCELED = "turnCanceled"
    DOUBLE_OFFERED = "doubleOffered"
    DOUBLE_DECLINED = "doubleDeclined"
    DOUBLE_ACCEPTED = "doubleAccepted"
    GAME_STARTED = "gameStarted"
    GAME_FINISHED = "gameFinished"
    GAME_CANCELED = "gameCanceled"
    MATCH_GAME_STARTED = "matchGameStarted"
    MATCH_FINISHED = "matchFinished"
    MATCH_CANCELED = "matchCanceled"


EventCallback = Callable[[Event, Any], None]
Roller = Callable[[], Tuple[int, int]]


# ==============================================================================
# CONFIGURATION
# ==============================================================================

@dataclass
class GameOptions:
    """Options for a single game and its turns."""

    # Doubling cube
    cube_enabled: bool = True
    is_crawford: bool = False  # Cube is disabled for this game
    is_jacoby: bool = False  # Gammons count single with a centered cube

    # Search builder: breadth-first SequenceTree, or the pruning DepthTree
    breadth_trees: bool = True

    # Dice source; None rolls with a numpy Generator
    roller: Optional[Roller] = None

    # Starting board as a state string; None is the standard setup
    start_state: Optional[str] = None

    # Give the first turn to this color; a tied opening roll is accepted
    force_first: Optional[Color] = None

    on_event: Optional[EventCallback] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe view of the options (callables are dropped)."""
        return {
            "cube_enabled": self.cube_enabled,
            "is_crawford": self.is_crawford,
            "is_jacoby": self.is_jacoby,
            "breadth_trees": self.breadth_trees,
            "start_state": self.start_state,
            "force_first": self.force_first.value if self.force_first else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GameOptions":
        data = dict(data or {})
        if data.get("force_first"):
            data["force_first"] = Color.parse(data["force_first"])
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class MatchOptions(GameOptions):
    """Options for a match; handed down to each game it creates."""

    is_crawford: bool = True  # Apply the Crawford rule once per match

    def game_options(self, is_crawford: bool) -> GameOptions:
        """Options for the next game, with its own Crawford flag."""
        values = {f.name: getattr(self, f.name) for f in fields(GameOptions)}
        values["is_crawford"] = is_crawford
        return GameOptions(**values)
