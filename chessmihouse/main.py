"""Engine facade: one game, its undo stack and a text move notation.

Moves are written ``a2a3`` (with an optional promotion letter, ``a5a6n``)
and drops ``N@c3``.
"""

import logging
from typing import List, Optional, Tuple

from chessmihouse.core.board import Board
from chessmihouse.core.evaluator import Evaluator
from chessmihouse.core.models import Color, GameState, PieceKind, create_initial_game_state, parse_move_text
from chessmihouse.core.rules import drop_piece, get_valid_drop_squares, get_valid_moves, make_move
from chessmihouse.core.search import SearchEngine, apply_action, enumerate_actions

logger = logging.getLogger(__name__)


class Engine:
    def __init__(self, depth: Optional[int] = None, state: Optional[GameState] = None):
        self.state = state or create_initial_game_state()
        self.history: List[GameState] = []
        self.search = SearchEngine(Evaluator(), depth=depth)

    @property
    def board(self) -> Board:
        return self.state.board

    def reset(self):
        """Reset to the initial position."""
        self.search.stop()
        self.state = create_initial_game_state()
        self.history.clear()

    def load(self, state: GameState):
        """Continue from an arbitrary position, dropping the undo history."""
        self.state = state
        self.history.clear()

    def make_move(self, move_str: str) -> bool:
        """Play a move or drop given in text form. Returns True if legal."""
        try:
            origin, target, kind = parse_move_text(move_str)
        except ValueError as exc:
            logger.debug("Rejected move %r: %s", move_str, exc)
            return False

        state = self.state
        if origin is None:
            banked = next((p for p in state.piece_bank.pieces(state.current_player) if p.kind is kind), None)
            if banked is None or target not in get_valid_drop_squares(state, banked):
                return False
            new_state = drop_piece(state, banked, target)
        else:
            if target not in get_valid_moves(state, origin):
                return False
            piece = state.piece_at(origin)
            if kind is not None and not (piece.kind is PieceKind.PAWN and target.row == piece.color.promotion_row):
                logger.debug("Rejected move %r: %s cannot promote there", move_str, piece.kind.value)
                return False
            new_state = make_move(state, origin, target, kind)

        if new_state is state:
            return False
        self._push(new_state)
        return True

    def undo_move(self, plies: int = 1):
        """Step back ``plies`` half-moves (fewer if the history is shorter)."""
        for _ in range(min(plies, len(self.history))):
            self.state = self.history.pop()

    def legal_moves(self) -> List[str]:
        """Return legal moves and drops in text form."""
        return [a.notation() for a in enumerate_actions(self.state)]

    def get_best_move(self) -> Tuple[Optional[str], int]:
        action, score = self.search.search_best_move(self.state)
        return (action.notation() if action else None), score

    def play_best_move(self) -> Optional[str]:
        """Let the search pick and play a move for the side to move."""
        action, _score = self.search.search_best_move(self.state)
        if action is None:
            return None
        self._push(apply_action(self.state, action))
        return action.notation()

    def is_game_over(self) -> bool:
        return self.state.is_checkmate or self.state.is_stalemate

    def result(self) -> str:
        """``1-0``, ``0-1``, ``1/2-1/2`` or ``*`` while the game is running."""
        if self.state.is_checkmate:
            return "0-1" if self.state.current_player is Color.WHITE else "1-0"
        if self.state.is_stalemate:
            return "1/2-1/2"
        return "*"

    def print_board(self):
        """Print ASCII representation with both banks."""
        print(self.render())

    def render(self) -> str:
        bank = self.state.piece_bank
        lines = [str(self.state.board)]
        for color in Color:
            held = " ".join(p.kind.letter for p in bank.pieces(color)) or "-"
            lines.append(f"{color.value} bank: {held}")
        lines.append(f"{self.state.current_player.value} to move")
        return "\n".join(lines)

    def _push(self, new_state: GameState):
        self.history.append(self.state)
        self.state = new_state
