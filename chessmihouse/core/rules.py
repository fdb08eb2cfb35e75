"""Rules engine for 6x6 chess with a piece bank.

All functions are pure: they read a ``GameState`` and either answer a
question or return a brand-new state. Invalid requests never raise; they
return the input state unchanged (or an empty list) and log at DEBUG.

Check detection scans raw attack patterns outward from the king's square
and never goes through the legal-move path, so king-move legality and
check detection cannot recurse into each other.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Set, Union

from chessmihouse.core.board import BOARD_SIZE, NUM_SQUARES, Board, in_bounds, square_index
from chessmihouse.core.models import (
    PROMOTION_KINDS,
    BoardMove,
    Color,
    Drop,
    GameState,
    Move,
    Piece,
    PieceBank,
    PieceKind,
    Position,
    new_piece_id,
)

logger = logging.getLogger(__name__)

KNIGHT_OFFSETS = ((-2, -1), (-2, 1), (-1, -2), (-1, 2), (1, -2), (1, 2), (2, -1), (2, 1))
KING_OFFSETS = ((-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1))
ROOK_DIRECTIONS = ((1, 0), (-1, 0), (0, 1), (0, -1))
BISHOP_DIRECTIONS = ((1, 1), (1, -1), (-1, 1), (-1, -1))
QUEEN_DIRECTIONS = ROOK_DIRECTIONS + BISHOP_DIRECTIONS

SLIDER_DIRECTIONS = {
    PieceKind.ROOK: ROOK_DIRECTIONS,
    PieceKind.BISHOP: BISHOP_DIRECTIONS,
    PieceKind.QUEEN: QUEEN_DIRECTIONS,
}

# Pawns may never be dropped onto the first or last rank.
PAWN_DROP_FORBIDDEN_ROWS = (0, BOARD_SIZE - 1)


# ---------------------------------------------------------------------------
# Pseudo-legal generation and attack detection (work on raw cell sequences)
# ---------------------------------------------------------------------------

def _step_targets(cells: Sequence, row: int, col: int, color: Color, offsets) -> List[int]:
    targets = []
    for dr, dc in offsets:
        r, c = row + dr, col + dc
        if not in_bounds(r, c):
            continue
        occupant = cells[square_index(r, c)]
        if occupant is None or occupant.color is not color:
            targets.append(square_index(r, c))
    return targets


def _slide_targets(cells: Sequence, row: int, col: int, color: Color, directions) -> List[int]:
    targets = []
    for dr, dc in directions:
        r, c = row + dr, col + dc
        while in_bounds(r, c):
            occupant = cells[square_index(r, c)]
            if occupant is None:
                targets.append(square_index(r, c))
            else:
                if occupant.color is not color:
                    targets.append(square_index(r, c))
                break
            r += dr
            c += dc
    return targets


def _pawn_targets(cells: Sequence, row: int, col: int, color: Color) -> List[int]:
    targets = []
    forward = color.forward
    r = row + forward
    if in_bounds(r, col) and cells[square_index(r, col)] is None:
        targets.append(square_index(r, col))
        r2 = r + forward
        if row == color.pawn_start_row and in_bounds(r2, col) and cells[square_index(r2, col)] is None:
            targets.append(square_index(r2, col))
    for dc in (-1, 1):
        if in_bounds(r, col + dc):
            occupant = cells[square_index(r, col + dc)]
            if occupant is not None and occupant.color is not color:
                targets.append(square_index(r, col + dc))
    return targets


def pseudo_legal_targets(cells: Sequence, index: int) -> List[int]:
    """Target indices for the piece on ``index`` ignoring king safety."""
    piece = cells[index]
    if piece is None:
        return []
    row, col = divmod(index, BOARD_SIZE)
    kind = piece.kind
    if kind is PieceKind.PAWN:
        return _pawn_targets(cells, row, col, piece.color)
    if kind is PieceKind.KNIGHT:
        return _step_targets(cells, row, col, piece.color, KNIGHT_OFFSETS)
    if kind is PieceKind.KING:
        return _step_targets(cells, row, col, piece.color, KING_OFFSETS)
    return _slide_targets(cells, row, col, piece.color, SLIDER_DIRECTIONS[kind])


def iter_attackers(cells: Sequence, index: int, by_color: Color) -> Iterator[int]:
    """Yield indices of ``by_color`` pieces whose attack pattern covers ``index``."""
    row, col = divmod(index, BOARD_SIZE)

    # A pawn attacks diagonally forward, so look one row "behind" the target.
    pr = row - by_color.forward
    for dc in (-1, 1):
        if in_bounds(pr, col + dc):
            p = cells[square_index(pr, col + dc)]
            if p is not None and p.color is by_color and p.kind is PieceKind.PAWN:
                yield square_index(pr, col + dc)

    for offsets, kind in ((KNIGHT_OFFSETS, PieceKind.KNIGHT), (KING_OFFSETS, PieceKind.KING)):
        for dr, dc in offsets:
            r, c = row + dr, col + dc
            if in_bounds(r, c):
                p = cells[square_index(r, c)]
                if p is not None and p.color is by_color and p.kind is kind:
                    yield square_index(r, c)

    for directions, kinds in (
        (ROOK_DIRECTIONS, (PieceKind.ROOK, PieceKind.QUEEN)),
        (BISHOP_DIRECTIONS, (PieceKind.BISHOP, PieceKind.QUEEN)),
    ):
        for dr, dc in directions:
            r, c = row + dr, col + dc
            while in_bounds(r, c):
                p = cells[square_index(r, c)]
                if p is not None:
                    if p.color is by_color and p.kind in kinds:
                        yield square_index(r, c)
                    break
                r += dr
                c += dc


def _is_attacked(cells: Sequence, index: int, by_color: Color) -> bool:
    return next(iter_attackers(cells, index, by_color), None) is not None


def king_index(cells: Sequence, color: Color) -> Optional[int]:
    for index, piece in enumerate(cells):
        if piece is not None and piece.kind is PieceKind.KING and piece.color is color:
            return index
    return None


def _between(a: int, b: int) -> List[int]:
    """Squares strictly between two indices on a shared rank, file or diagonal."""
    ra, ca = divmod(a, BOARD_SIZE)
    rb, cb = divmod(b, BOARD_SIZE)
    dr, dc = rb - ra, cb - ca
    if not (dr == 0 or dc == 0 or abs(dr) == abs(dc)):
        return []
    step_r = (dr > 0) - (dr < 0)
    step_c = (dc > 0) - (dc < 0)
    squares = []
    r, c = ra + step_r, ca + step_c
    while (r, c) != (rb, cb):
        squares.append(square_index(r, c))
        r += step_r
        c += step_c
    return squares


def _exposes_king(scratch: List, origin: int, target: int, king: Optional[int], color: Color) -> bool:
    """Try origin -> target on ``scratch`` and report whether the king ends up attacked.

    ``king`` is the king's index when a non-king piece moves; pass None when
    the king itself is moving. The scratch list is restored before returning.
    """
    moving = scratch[origin]
    captured = scratch[target]
    scratch[target] = moving
    scratch[origin] = None
    try:
        king_square = target if king is None else king
        return _is_attacked(scratch, king_square, color.opponent)
    finally:
        scratch[origin] = moving
        scratch[target] = captured


def legal_targets(cells: Sequence, index: int) -> List[int]:
    """Target indices for the piece on ``index`` that keep its own king safe."""
    piece = cells[index]
    color = piece.color
    targets = pseudo_legal_targets(cells, index)
    scratch = list(cells)

    if piece.kind is PieceKind.KING:
        return [t for t in targets if not _exposes_king(scratch, index, t, None, color)]

    king = king_index(cells, color)
    if king is None:
        logger.error("No %s king on the board; skipping king-safety filter", color.value)
        return targets

    checkers = list(iter_attackers(cells, king, color.opponent))
    if len(checkers) >= 2:
        return []
    if checkers:
        allowed = _resolving_squares(cells, checkers[0], king)
        targets = [t for t in targets if t in allowed]
    return [t for t in targets if not _exposes_king(scratch, index, t, king, color)]


def _resolving_squares(cells: Sequence, checker: int, king: int) -> Set[int]:
    """Squares a non-king piece may move to while ``checker`` gives check."""
    if cells[checker].kind is PieceKind.KNIGHT:
        return {checker}
    return {checker, *_between(checker, king)}


def _drop_targets(cells: Sequence, color: Color, kind: PieceKind) -> List[int]:
    empty = [
        i for i in range(NUM_SQUARES)
        if cells[i] is None and not (kind is PieceKind.PAWN and i // BOARD_SIZE in PAWN_DROP_FORBIDDEN_ROWS)
    ]
    king = king_index(cells, color)
    if king is None:
        logger.error("No %s king on the board; drop squares are unrestricted", color.value)
        return empty

    checkers = list(iter_attackers(cells, king, color.opponent))
    if not checkers:
        return empty
    if len(checkers) >= 2 or cells[checkers[0]].kind is PieceKind.KNIGHT:
        return []

    line = set(_between(checkers[0], king))
    probe = Piece("drop-probe", kind, color, has_moved=True)
    scratch = list(cells)
    squares = []
    for i in empty:
        if i not in line:
            continue
        scratch[i] = probe
        if not _is_attacked(scratch, king, color.opponent):
            squares.append(i)
        scratch[i] = None
    return squares


# ---------------------------------------------------------------------------
# Public queries
# ---------------------------------------------------------------------------

def attackers(board: Board, position: Position, by_color: Color) -> List[Position]:
    """Positions of ``by_color`` pieces attacking ``position``."""
    return [Position.from_index(i) for i in iter_attackers(board.cells, position.index, by_color)]


def pseudo_legal_moves(board: Board, position: Position) -> List[Position]:
    if not position.in_bounds():
        return []
    return [Position.from_index(i) for i in pseudo_legal_targets(board.cells, position.index)]


def get_valid_moves(state: GameState, position: Position) -> List[Position]:
    """Legal destinations for the piece on ``position``.

    Empty when the square is empty, off the board, or holds a piece of the
    side not to move.
    """
    if not position.in_bounds():
        return []
    cells = state.board.cells
    piece = cells[position.index]
    if piece is None or piece.color is not state.current_player:
        return []
    return [Position.from_index(t) for t in legal_targets(cells, position.index)]


def get_valid_drop_squares(state: GameState, piece: Piece) -> List[Position]:
    """Squares where ``state.current_player`` may drop a piece of ``piece.kind``."""
    return [Position.from_index(i) for i in _drop_targets(state.board.cells, state.current_player, piece.kind)]


def is_in_check(state: GameState, color: Optional[Color] = None) -> bool:
    color = color or state.current_player
    cells = state.board.cells
    king = king_index(cells, color)
    if king is None:
        logger.error("No %s king on the board; treating as not in check", color.value)
        return False
    return _is_attacked(cells, king, color.opponent)


is_king_in_check = is_in_check


def has_legal_action(state: GameState) -> bool:
    """True if the side to move has at least one legal move or drop."""
    cells = state.board.cells
    color = state.current_player
    for index, piece in state.board.occupied():
        if piece.color is color and legal_targets(cells, index):
            return True
    return any(_drop_targets(cells, color, kind) for kind in state.piece_bank.kinds(color))


def _has_escape(state: GameState) -> bool:
    """Simulate every king move, piece move and drop; True if one ends the check."""
    cells = state.board.cells
    color = state.current_player
    king = king_index(cells, color)
    if king is None:
        return False
    scratch = list(cells)

    for t in legal_targets(cells, king):
        if not _exposes_king(scratch, king, t, None, color):
            return True

    for index, piece in state.board.occupied():
        if piece.color is not color or index == king:
            continue
        for t in legal_targets(cells, index):
            if not _exposes_king(scratch, index, t, king, color):
                return True

    for kind in state.piece_bank.kinds(color):
        probe = Piece("drop-probe", kind, color, has_moved=True)
        for i in _drop_targets(cells, color, kind):
            scratch[i] = probe
            escaped = not _is_attacked(scratch, king, color.opponent)
            scratch[i] = None
            if escaped:
                return True
    return False


def is_checkmate(state: GameState) -> bool:
    if not is_in_check(state):
        return False
    return not _has_escape(state)


def is_stalemate(state: GameState) -> bool:
    if is_in_check(state):
        return False
    return not has_legal_action(state)


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------

def refresh_status(state: GameState) -> GameState:
    """Recompute check / checkmate / stalemate for the side to move."""
    in_check = is_in_check(state)
    checkmate = in_check and not _has_escape(state)
    stalemate = not in_check and not has_legal_action(state)
    return replace(state, is_check=in_check, is_checkmate=checkmate, is_stalemate=stalemate)


def _finish(state: GameState, record: Move) -> GameState:
    """Append ``record`` (stamped with the resulting check flags) and set status."""
    state = refresh_status(state)
    record = replace(record, is_check=state.is_check, is_checkmate=state.is_checkmate)
    return replace(state, move_history=state.move_history + (record,))


def make_move(
    state: GameState,
    from_pos: Position,
    to_pos: Position,
    promote_to: Optional[PieceKind] = None,
) -> GameState:
    """Move a piece; callers are expected to pick ``to_pos`` from ``get_valid_moves``."""
    piece = state.piece_at(from_pos)
    mover = state.current_player
    if piece is None or piece.color is not mover:
        logger.debug("Ignoring move from %s: no %s piece there", from_pos, mover.value)
        return state
    if not to_pos.in_bounds():
        logger.debug("Ignoring move to off-board square %s", to_pos)
        return state
    target = state.piece_at(to_pos)
    if target is not None and (target.color is mover or target.kind is PieceKind.KING):
        logger.debug("Ignoring move %s%s onto %s", from_pos, to_pos, target.id)
        return state
    if promote_to is not None and promote_to not in PROMOTION_KINDS:
        logger.debug("Ignoring promotion to %s", promote_to.value)
        return state

    bank = state.piece_bank
    if target is not None:
        converted = Piece(new_piece_id(f"captured-{target.id}"), target.kind, mover, has_moved=True)
        bank = bank.add(mover, converted)

    is_promotion = piece.kind is PieceKind.PAWN and to_pos.row == mover.promotion_row
    new_kind = (promote_to or PieceKind.QUEEN) if is_promotion else piece.kind
    moved = replace(piece, kind=new_kind, has_moved=True)
    board = state.board.replace({from_pos.index: None, to_pos.index: moved})

    record = BoardMove(
        from_pos=from_pos,
        to=to_pos,
        piece=piece,
        captured_piece=target,
        is_promotion=is_promotion,
        promote_to=new_kind if is_promotion else None,
    )
    return _finish(replace(state, board=board, piece_bank=bank, current_player=mover.opponent), record)


def drop_piece(state: GameState, piece: Piece, position: Position) -> GameState:
    """Drop the oldest banked piece of ``piece.kind`` onto an empty square."""
    mover = state.current_player
    if not position.in_bounds() or state.piece_at(position) is not None:
        logger.debug("Ignoring drop on %s: square unavailable", position)
        return state
    bank = state.piece_bank.remove_first(mover, piece.kind)
    if bank is None:
        logger.debug("Ignoring drop: %s holds no %s", mover.value, piece.kind.value)
        return state

    dropped = Piece(new_piece_id(f"dropped-{piece.kind.value}"), piece.kind, mover, has_moved=True)
    board = state.board.replace({position.index: dropped})
    return _finish(
        replace(state, board=board, piece_bank=bank, current_player=mover.opponent),
        Drop(to=position, piece=dropped),
    )


def setup_position(
    placements: Mapping[Union[Position, str], Piece],
    current_player: Color = Color.WHITE,
    piece_bank: Optional[PieceBank] = None,
) -> GameState:
    """Build a state from square -> piece placements and compute its status.

    Squares may be ``Position`` objects or algebraic strings such as ``"c3"``.
    """
    changes: Dict[int, Piece] = {}
    for square, piece in placements.items():
        pos = Position.from_algebraic(square) if isinstance(square, str) else square
        if not pos.in_bounds():
            raise ValueError(f"Square off the board: {pos!r}")
        changes[pos.index] = piece
    state = GameState(
        board=Board.empty().replace(changes),
        current_player=current_player,
        piece_bank=piece_bank or PieceBank(),
    )
    return refresh_status(state)
