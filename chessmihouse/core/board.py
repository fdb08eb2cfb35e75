"""Immutable 6x6 board stored as a flat tuple of 36 cells."""

from typing import Dict, Iterator, List, Optional, Sequence, Tuple

BOARD_SIZE = 6
NUM_SQUARES = BOARD_SIZE * BOARD_SIZE


def square_index(row: int, col: int) -> int:
    return row * BOARD_SIZE + col


def in_bounds(row: int, col: int) -> bool:
    return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE


class Board:
    """Read-only grid of pieces, index = row * 6 + col.

    Changes go through ``replace`` which returns a new board. Legality
    checks that need to try moves work on ``scratch()``, a plain list they
    may modify and restore.
    """

    __slots__ = ("_cells",)

    def __init__(self, cells: Optional[Sequence] = None):
        """Initialize from 36 cells or as an empty board."""
        if cells is None:
            cells = (None,) * NUM_SQUARES
        if len(cells) != NUM_SQUARES:
            raise ValueError(f"Board needs {NUM_SQUARES} cells, got {len(cells)}")
        self._cells: Tuple = tuple(cells)

    @classmethod
    def empty(cls) -> "Board":
        return cls()

    @property
    def cells(self) -> Tuple:
        return self._cells

    def __getitem__(self, index: int):
        return self._cells[index]

    def at(self, row: int, col: int):
        """Piece at (row, col), None for an empty or off-board square."""
        if not in_bounds(row, col):
            return None
        return self._cells[square_index(row, col)]

    def scratch(self) -> List:
        """Mutable copy for apply/test/undo simulations."""
        return list(self._cells)

    def replace(self, changes: Dict[int, object]) -> "Board":
        """Return a new board with the given index -> piece (or None) changes."""
        cells = list(self._cells)
        for index, piece in changes.items():
            cells[index] = piece
        return Board(cells)

    def occupied(self) -> Iterator[Tuple[int, object]]:
        """Yield (index, piece) for every non-empty square."""
        for index, piece in enumerate(self._cells):
            if piece is not None:
                yield index, piece

    def find(self, piece_id: str) -> Optional[int]:
        for index, piece in self.occupied():
            if piece.id == piece_id:
                return index
        return None

    def __eq__(self, other) -> bool:
        return isinstance(other, Board) and self._cells == other._cells

    def __hash__(self) -> int:
        return hash(self._cells)

    def __str__(self) -> str:
        """ASCII diagram, rank 6 on top, White in upper case."""
        lines = []
        for row in range(BOARD_SIZE - 1, -1, -1):
            cells = [self._cells[square_index(row, col)] for col in range(BOARD_SIZE)]
            lines.append(f"{row + 1} " + " ".join(p.symbol if p else "." for p in cells))
        lines.append("  " + " ".join("abcdef"))
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"Board({sum(1 for _ in self.occupied())} pieces)"
