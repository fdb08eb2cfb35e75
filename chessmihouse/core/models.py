"""Value types shared by the rules engine, the search and the interfaces.

Everything here is immutable: a new ``GameState`` is produced for every
applied move or drop, and no state is ever modified after construction.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from chessmihouse.core.board import BOARD_SIZE, Board

FILES = "abcdef"

_piece_ids = itertools.count(1)


def new_piece_id(prefix: str) -> str:
    """Mint an identifier that no other piece instance has used."""
    return f"{prefix}-{next(_piece_ids)}"


class Color(str, Enum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def forward(self) -> int:
        """Row direction pawns of this colour move in."""
        return 1 if self is Color.WHITE else -1

    @property
    def pawn_start_row(self) -> int:
        return 1 if self is Color.WHITE else BOARD_SIZE - 2

    @property
    def promotion_row(self) -> int:
        return BOARD_SIZE - 1 if self is Color.WHITE else 0


class PieceKind(str, Enum):
    KING = "king"
    QUEEN = "queen"
    ROOK = "rook"
    KNIGHT = "knight"
    BISHOP = "bishop"
    PAWN = "pawn"

    @property
    def letter(self) -> str:
        return "N" if self is PieceKind.KNIGHT else self.name[0]

    @staticmethod
    def from_letter(letter: str) -> "PieceKind":
        for kind in PieceKind:
            if kind.letter == letter.upper():
                return kind
        raise ValueError(f"Unknown piece letter: {letter!r}")


PROMOTION_KINDS = (PieceKind.QUEEN, PieceKind.ROOK, PieceKind.BISHOP, PieceKind.KNIGHT)


@dataclass(frozen=True)
class Position:
    row: int
    col: int

    def in_bounds(self) -> bool:
        return 0 <= self.row < BOARD_SIZE and 0 <= self.col < BOARD_SIZE

    @property
    def index(self) -> int:
        return self.row * BOARD_SIZE + self.col

    @staticmethod
    def from_index(index: int) -> "Position":
        return Position(*divmod(index, BOARD_SIZE))

    def to_algebraic(self) -> str:
        return f"{FILES[self.col]}{self.row + 1}"

    @staticmethod
    def from_algebraic(text: str) -> "Position":
        if len(text) != 2 or text[0] not in FILES or not text[1].isdigit():
            raise ValueError(f"Invalid square: {text!r}")
        pos = Position(int(text[1]) - 1, FILES.index(text[0]))
        if not pos.in_bounds():
            raise ValueError(f"Square off the board: {text!r}")
        return pos

    def __str__(self) -> str:
        return self.to_algebraic()


@dataclass(frozen=True)
class Piece:
    id: str
    kind: PieceKind
    color: Color
    has_moved: bool = False

    @property
    def symbol(self) -> str:
        return self.kind.letter if self.color is Color.WHITE else self.kind.letter.lower()


@dataclass(frozen=True)
class PieceBank:
    """Captured pieces per colour, already recoloured to their new owner.

    Order is capture order, so removing "the first piece of a kind" always
    hands out the oldest capture.
    """

    white: Tuple[Piece, ...] = ()
    black: Tuple[Piece, ...] = ()

    def pieces(self, color: Color) -> Tuple[Piece, ...]:
        return self.white if color is Color.WHITE else self.black

    def count(self, color: Color, kind: PieceKind) -> int:
        return sum(1 for p in self.pieces(color) if p.kind is kind)

    def kinds(self, color: Color) -> Tuple[PieceKind, ...]:
        """Distinct kinds held by ``color``, in first-captured order."""
        return tuple(dict.fromkeys(p.kind for p in self.pieces(color)))

    def add(self, color: Color, piece: Piece) -> "PieceBank":
        if color is Color.WHITE:
            return PieceBank(self.white + (piece,), self.black)
        return PieceBank(self.white, self.black + (piece,))

    def remove_first(self, color: Color, kind: PieceKind) -> Optional["PieceBank"]:
        """Bank without the oldest piece of ``kind``; None if there is none."""
        held = self.pieces(color)
        for i, p in enumerate(held):
            if p.kind is kind:
                rest = held[:i] + held[i + 1:]
                return PieceBank(rest, self.black) if color is Color.WHITE else PieceBank(self.white, rest)
        return None


@dataclass(frozen=True)
class BoardMove:
    from_pos: Position
    to: Position
    piece: Piece
    captured_piece: Optional[Piece] = None
    is_promotion: bool = False
    promote_to: Optional[PieceKind] = None
    is_check: bool = False
    is_checkmate: bool = False

    is_drop = False

    def notation(self) -> str:
        promo = self.promote_to.letter.lower() if self.is_promotion and self.promote_to else ""
        return f"{self.from_pos}{self.to}{promo}"


@dataclass(frozen=True)
class Drop:
    to: Position
    piece: Piece
    is_check: bool = False
    is_checkmate: bool = False

    is_drop = True

    def notation(self) -> str:
        return f"{self.piece.kind.letter}@{self.to}"


Move = Union[BoardMove, Drop]


@dataclass(frozen=True)
class GameState:
    board: Board
    current_player: Color = Color.WHITE
    move_history: Tuple[Move, ...] = ()
    piece_bank: PieceBank = field(default_factory=PieceBank)
    is_check: bool = False
    is_checkmate: bool = False
    is_stalemate: bool = False

    @property
    def last_move(self) -> Optional[Move]:
        return self.move_history[-1] if self.move_history else None

    def piece_at(self, pos: Position) -> Optional[Piece]:
        return self.board[pos.index] if pos.in_bounds() else None


def create_initial_board() -> Board:
    """White holds the a1 corner, Black the f6 corner."""
    placement = {
        (0, 0): ("white-king", PieceKind.KING, Color.WHITE),
        (0, 1): ("white-rook", PieceKind.ROOK, Color.WHITE),
        (0, 2): ("white-knight", PieceKind.KNIGHT, Color.WHITE),
        (0, 3): ("white-bishop", PieceKind.BISHOP, Color.WHITE),
        (1, 0): ("white-pawn-0", PieceKind.PAWN, Color.WHITE),
        (5, 5): ("black-king", PieceKind.KING, Color.BLACK),
        (5, 4): ("black-rook", PieceKind.ROOK, Color.BLACK),
        (5, 3): ("black-knight", PieceKind.KNIGHT, Color.BLACK),
        (5, 2): ("black-bishop", PieceKind.BISHOP, Color.BLACK),
        (4, 5): ("black-pawn-0", PieceKind.PAWN, Color.BLACK),
    }
    return Board.empty().replace(
        {Position(r, c).index: Piece(pid, kind, color) for (r, c), (pid, kind, color) in placement.items()}
    )


def create_initial_game_state() -> GameState:
    return GameState(board=create_initial_board())


def parse_move_text(text: str) -> Tuple[Optional[Position], Position, Optional[PieceKind]]:
    """Split ``a2a3`` / ``a5a6q`` / ``N@c3`` into (origin, target, kind).

    ``kind`` is the promotion piece for board moves and the dropped piece
    for drops; origin is None for drops.
    """
    text = text.strip()
    if "@" in text:
        letter, _, square = text.partition("@")
        if len(letter) != 1:
            raise ValueError(f"Invalid drop: {text!r}")
        return None, Position.from_algebraic(square), PieceKind.from_letter(letter)
    if len(text) not in (4, 5):
        raise ValueError(f"Invalid move: {text!r}")
    promote_to = PieceKind.from_letter(text[4]) if len(text) == 5 else None
    return Position.from_algebraic(text[:2]), Position.from_algebraic(text[2:4]), promote_to
