"""Move sequence search.

For one fixed ordering of dice faces, a SequenceTree enumerates every board
reachable by playing the faces in that order. Nodes live in a flat list and
refer to their parent and children by index.

`compute_allowed_moves` runs one tree per face ordering and reduces the
leaves to the plays the rules allow:
- use as many faces as possible
- when only one face can be used, use the higher one
- a play that wins the game is always allowed, even if it uses fewer
  faces or skips the higher face

Two builders share this interface:
- SequenceTree: breadth-first, level by level
- DepthTree: depth-first, skipping subtrees that cannot reach the maximum
  depth when collecting leaves

Both must give identical results for any input.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Type

from bgengine.core.board import Board
from bgengine.core.dice import check_faces, sequences_for_faces
from bgengine.core.errors import MaxDepthExceededError
from bgengine.core.moves import Move
from bgengine.core.types import Color, MoveSeries, State28

MAX_SEQUENCE_LENGTH = 4


# ==============================================================================
# TREE NODES
# ==============================================================================

@dataclass(eq=False)
class BoardNode:
    """A board reached after `depth` moves of one face sequence.

    Attributes:
        board: Board after this node's move (the root holds the input board)
        depth: Number of moves from the root
        index: Position in the tree's node list
        parent: Index of the parent node, None for the root
        this_move: Move that produced this node, bound to `board`
        this_face: Face used by `this_move`
        is_winner: Whether `board` is a win for the moving color
        children: Indexes of child nodes
        max_depth: Deepest depth reached in this node's subtree
        has_winner: Whether this node's subtree holds a winning node
    """
    board: Board
    depth: int
    index: int
    parent: Optional[int] = None
    this_move: Optional[Move] = None
    this_face: Optional[int] = None
    is_winner: bool = False
    children: List[int] = field(default_factory=list)
    max_depth: int = 0
    has_winner: bool = False


class SequenceTree:
    """Breadth-first search over one ordering of faces.

    Attributes:
        board: Input board (never mutated)
        color: Moving color
        sequence: Faces in play order (2, or 4 equal faces)
        nodes: All nodes; nodes[0] is the root
        max_depth: Greatest depth reached by any node
        has_winner: Whether any node is a win for `color`
    """

    def __init__(self, board: Board, color: Color, sequence: Sequence[int]):
        if len(sequence) > MAX_SEQUENCE_LENGTH:
            raise MaxDepthExceededError(f"sequence of {len(sequence)} faces is too long")
        self.board = board
        self.color = color
        self.sequence = list(sequence)
        self.nodes: List[BoardNode] = []
        self.depth_index: Dict[int, List[int]] = {}
        self.winners: List[int] = []
        self.max_depth = 0
        self.has_winner = False

    @property
    def root(self) -> BoardNode:
        return self.nodes[0]

    def build(self) -> "SequenceTree":
        level = [self._add_node(self.board, 0).index]
        for face in self.sequence:
            next_level = []
            for index in level:
                node = self.nodes[index]
                if node.is_winner:
                    continue
                for move in node.board.possible_moves_for_face(self.color, face):
                    next_level.append(self._expand(node, move, face).index)
            if not next_level:
                break
            level = next_level
        return self

    # ==========================================================================
    # NODE INTAKE
    # ==========================================================================

    def _expand(self, parent: BoardNode, move: Move, face: int) -> BoardNode:
        """Child node for a move, played on a copy of the parent's board."""
        board = parent.board.copy()
        applied = move.copy_for_board(board)
        applied.do()
        node = self._add_node(board, parent.depth + 1, parent, applied, face)
        parent.children.append(node.index)
        return node

    def _add_node(self, board: Board, depth: int, parent: Optional[BoardNode] = None,
                  move: Optional[Move] = None, face: Optional[int] = None) -> BoardNode:
        node = BoardNode(
            board=board,
            depth=depth,
            index=len(self.nodes),
            parent=parent.index if parent else None,
            this_move=move,
            this_face=face,
            is_winner=depth > 0 and board.get_winner() is self.color,
            max_depth=depth,
        )
        node.has_winner = node.is_winner
        self.nodes.append(node)
        self.depth_index.setdefault(depth, []).append(node.index)
        if depth > self.max_depth:
            self.max_depth = depth
        if node.is_winner:
            self.has_winner = True
            self.winners.append(node.index)
        self._propagate(node)
        return node

    def _propagate(self, node: BoardNode) -> None:
        """Carry max_depth and has_winner up to the root."""
        parent_index = node.parent
        while parent_index is not None:
            parent = self.nodes[parent_index]
            changed = False
            if node.depth > parent.max_depth:
                parent.max_depth = node.depth
                changed = True
            if node.is_winner and not parent.has_winner:
                parent.has_winner = True
                changed = True
            if not changed:
                break
            parent_index = parent.parent

    # ==========================================================================
    # LEAVES AND BRANCHES
    # ==========================================================================

    def passes(self, max_depth: int) -> bool:
        """Whether this tree can contribute a play: it is full depth or wins."""
        return self.has_winner or self.max_depth == max_depth

    def leaves(self) -> List[BoardNode]:
        """Nodes at this tree's own max depth."""
        if self.max_depth == 0:
            return []
        return [self.nodes[i] for i in self.depth_index[self.max_depth]]

    def fullest_nodes(self, max_depth: int) -> Iterator[BoardNode]:
        """End nodes of every branch of `max_depth` moves or ending in a win."""
        for node in self.nodes[1:]:
            if node.depth == max_depth or node.is_winner:
                yield node

    def branch(self, node: BoardNode) -> List[Move]:
        """Moves from the root to a node, in play order."""
        moves = []
        while node.parent is not None:
            moves.append(node.this_move)
            node = self.nodes[node.parent]
        moves.reverse()
        return moves

    def branches(self) -> List[List[Move]]:
        return [self.branch(node) for node in self.leaves()]


class DepthTree(SequenceTree):
    """Depth-first search over one ordering of faces.

    Collecting end nodes walks only subtrees that reach the requested depth
    or hold a win.
    """

    def build(self) -> "DepthTree":
        self._build_from(self._add_node(self.board, 0), self.sequence)
        return self

    def _build_from(self, node: BoardNode, faces: Sequence[int]) -> None:
        if node.is_winner or not faces:
            return
        face = faces[0]
        for move in node.board.possible_moves_for_face(self.color, face):
            self._build_from(self._expand(node, move, face), faces[1:])

    def fullest_nodes(self, max_depth: int) -> Iterator[BoardNode]:
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.depth > 0 and (node.depth == max_depth or node.is_winner):
                yield node
            for index in reversed(node.children):
                child = self.nodes[index]
                if child.max_depth < max_depth and not child.has_winner:
                    continue
                stack.append(child)


# ==============================================================================
# ALLOWED MOVES
# ==============================================================================

@dataclass
class AllowedMoves:
    """The plays the rules allow for one roll.

    Attributes:
        max_depth: Most faces playable in any ordering (0 = cannot move)
        allowed_move_series: Distinct allowed plays, as move coordinates
        allowed_faces: Faces of the longest allowed play, highest first
        allowed_end_states: Distinct state28 of the boards the plays reach
        end_states_to_series: One play for each end state
        end_boards: Board for each end state
    """
    max_depth: int = 0
    allowed_move_series: List[MoveSeries] = field(default_factory=list)
    allowed_faces: List[int] = field(default_factory=list)
    allowed_end_states: List[State28] = field(default_factory=list)
    end_states_to_series: Dict[State28, MoveSeries] = field(default_factory=dict)
    end_boards: Dict[State28, Board] = field(default_factory=dict, repr=False)


class TurnBuilder:
    """Build the trees for a roll and reduce them to the allowed plays."""

    tree_class: Type[SequenceTree] = SequenceTree

    def __init__(self, board: Board, color: Color, faces: Sequence[int]):
        check_faces(faces)
        self.board = board
        self.color = color
        self.faces = list(faces)
        self.trees: List[SequenceTree] = []
        self.max_depth = 0

    def build_trees(self) -> List[SequenceTree]:
        self.trees = [
            self.tree_class(self.board, self.color, sequence).build()
            for sequence in sequences_for_faces(self.faces)
        ]
        self.max_depth = max(tree.max_depth for tree in self.trees)
        return self.trees

    def compute(self) -> AllowedMoves:
        self.build_trees()
        result = AllowedMoves(max_depth=self.max_depth)
        if self.max_depth == 0:
            return result

        branches = []
        for tree in self.trees:
            if not tree.passes(self.max_depth):
                continue
            for node in tree.fullest_nodes(self.max_depth):
                branches.append((tree.branch(node), node))

        max_face = max(move.face for moves, _ in branches for move in moves)

        seen = set()
        for moves, node in branches:
            if not node.is_winner and all(move.face != max_face for move in moves):
                continue
            series = tuple(move.coords for move in moves)
            if series in seen:
                continue
            seen.add(series)
            result.allowed_move_series.append(series)
            end_state = node.board.state28()
            if end_state not in result.end_states_to_series:
                result.end_states_to_series[end_state] = series
                result.allowed_end_states.append(end_state)
                result.end_boards[end_state] = node.board

        # A short winning play may skip the high face; prefer one that uses it
        longest = max(len(series) for series in result.allowed_move_series)
        result.allowed_faces = max(
            sorted((coords.face for coords in series), reverse=True)
            for series in result.allowed_move_series
            if len(series) == longest
        )
        return result


class BreadthBuilder(TurnBuilder):
    tree_class = SequenceTree


class DepthBuilder(TurnBuilder):
    tree_class = DepthTree


def compute_allowed_moves(board: Board, color: Color, faces: Sequence[int],
                          breadth_trees: bool = True) -> AllowedMoves:
    """Allowed plays for a color on a board with the given faces.

    Args:
        board: Board to move on (not mutated)
        color: Moving color
        faces: Faces to play: 2, or 4 equal faces for doubles
        breadth_trees: Use the breadth-first builder (else depth-first)

    Returns:
        AllowedMoves for the roll
    """
    builder_class = BreadthBuilder if breadth_trees else DepthBuilder
    return builder_class(board, color, faces).compute()
