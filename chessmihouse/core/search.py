import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from chessmihouse.config import CONFIG, SearchConfig
from chessmihouse.core.evaluator import CHECKMATE_SCORE, Evaluator
from chessmihouse.core.models import Color, GameState, Piece, PieceKind, Position
from chessmihouse.core.rules import drop_piece, get_valid_drop_squares, get_valid_moves, make_move
from chessmihouse.core.transposition import TT_EXACT, TT_LOWER, TT_UPPER, TranspositionTable
from chessmihouse.core.utils import format_info

logger = logging.getLogger(__name__)

INF = 1000000
# Anything beyond this is a mate score carrying a distance nudge.
MATE_BOUND = CHECKMATE_SCORE - 1000


def score_to_tt(score: int, depth: int) -> int:
    """Strip the remaining-depth nudge so a cached mate is valid at any depth."""
    if score >= MATE_BOUND:
        return score - depth
    if score <= -MATE_BOUND:
        return score + depth
    return score


def score_from_tt(score: int, depth: int) -> int:
    if score >= MATE_BOUND:
        return score + depth
    if score <= -MATE_BOUND:
        return score - depth
    return score


@dataclass(frozen=True)
class Action:
    """A move (``origin`` set) or a drop (``origin`` None) the search can play."""

    to: Position
    piece: Piece
    origin: Optional[Position] = None
    captured: Optional[Piece] = None
    promote_to: Optional[PieceKind] = None

    @property
    def is_drop(self) -> bool:
        return self.origin is None

    def notation(self) -> str:
        if self.is_drop:
            return f"{self.piece.kind.letter}@{self.to}"
        promo = self.promote_to.letter.lower() if self.promote_to else ""
        return f"{self.origin}{self.to}{promo}"

    def __str__(self) -> str:
        return self.notation()


def enumerate_actions(state: GameState) -> List[Action]:
    """Every legal move of every piece, then every legal drop, for the side to move."""
    color = state.current_player
    actions: List[Action] = []
    for index, piece in state.board.occupied():
        if piece.color is not color:
            continue
        origin = Position.from_index(index)
        for to in get_valid_moves(state, origin):
            promote = (
                PieceKind.QUEEN
                if piece.kind is PieceKind.PAWN and to.row == color.promotion_row
                else None
            )
            actions.append(Action(to, piece, origin, state.piece_at(to), promote))

    # Banked pieces of one kind are interchangeable; drop_piece always
    # consumes the oldest, so one candidate per kind is enough.
    first_of_kind: Dict[PieceKind, Piece] = {}
    for piece in state.piece_bank.pieces(color):
        first_of_kind.setdefault(piece.kind, piece)
    for piece in first_of_kind.values():
        for to in get_valid_drop_squares(state, piece):
            actions.append(Action(to, piece))
    return actions


def order_actions(
    actions: Iterable[Action],
    piece_values: Optional[Dict[str, int]] = None,
    first: Optional[Action] = None,
) -> List[Action]:
    """Captures of valuable pieces first, then moves of valuable pieces.

    The sort is stable, so equal keys keep enumeration order. ``first``
    (typically the cached best action) is moved to the front when present.
    """
    values = piece_values or CONFIG.eval.piece_values

    def _key(action: Action) -> Tuple[int, int]:
        captured = values.get(action.captured.kind.name, 0) if action.captured else 0
        return -captured, -values.get(action.piece.kind.name, 0)

    ordered = sorted(actions, key=_key)
    if first is not None and first in ordered:
        ordered.remove(first)
        ordered.insert(0, first)
    return ordered


def apply_action(state: GameState, action: Action) -> GameState:
    if action.is_drop:
        return drop_piece(state, action.piece, action.to)
    return make_move(state, action.origin, action.to, action.promote_to)


class SearchEngine:
    def __init__(self, evaluator: Optional[Evaluator] = None, depth: Optional[int] = None,
                 cfg: Optional[SearchConfig] = None):
        self.cfg = cfg or CONFIG.search
        self.evaluator = evaluator or Evaluator()
        self.max_depth = depth if depth is not None else self.cfg.depth
        self.tt = TranspositionTable(size_mb=self.cfg.hash_size_mb)

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.nodes = 0

    # Public API
    def find_best_move(self, state: GameState) -> Optional[Action]:
        """Best action for ``state.current_player``, or None if there is none."""
        action, _score = self.search_best_move(state)
        return action

    def search_best_move(self, state: GameState, depth: Optional[int] = None) -> Tuple[Optional[Action], int]:
        """Returns (best_action, score), score in centipawns from White's view."""
        self._stop_event.clear()
        return self._search(state, self.max_depth if depth is None else depth)

    def start_search(self, state: GameState, callback: Callable[[Optional[Action], int], None],
                     depth: Optional[int] = None, delay_ms: Optional[int] = None) -> bool:
        """Search on a daemon thread after ``delay_ms`` and hand the result to ``callback``.

        Returns False if a search is already running. ``stop()`` cancels both
        the delay and the search; a cancelled search does not call back.
        """
        if self._thread and self._thread.is_alive():
            return False
        self._stop_event.clear()
        target_depth = self.max_depth if depth is None else depth
        delay = (self.cfg.ai_move_delay_ms if delay_ms is None else delay_ms) / 1000.0

        def worker():
            if self._stop_event.wait(delay):
                return
            action, score = self._search(state, target_depth)
            if not self._stop_event.is_set():
                callback(action, score)

        self._thread = threading.Thread(target=worker, daemon=True)
        self._thread.start()
        return True

    def stop(self):
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=0.2)

    @property
    def is_searching(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    # -------------------------
    # Root search
    # -------------------------
    def _search(self, state: GameState, depth: int) -> Tuple[Optional[Action], int]:
        self.tt.clear()
        self.nodes = 0
        start_time = time.monotonic()

        actions = enumerate_actions(state)
        if not actions:
            logger.info("No legal action for %s", state.current_player.value)
            return None, self.evaluator.evaluate(state)

        maximizing = state.current_player is Color.WHITE
        best_action: Optional[Action] = None
        best_score = -INF if maximizing else INF
        alpha, beta = -INF, INF

        # Root candidates stay in enumeration order: the first of equal scores wins.
        for action in actions:
            if best_action is not None and self._stop_event.is_set():
                logger.info("Search stopped after %d nodes", self.nodes)
                break
            child = apply_action(state, action)
            score = self.minimax(child, depth, alpha, beta, not maximizing)
            if maximizing:
                if score > best_score:
                    best_score, best_action = score, action
                    alpha = max(alpha, score)
            elif score < best_score:
                best_score, best_action = score, action
                beta = min(beta, score)

        elapsed = time.monotonic() - start_time
        logger.info(format_info(depth, best_score, self.nodes, elapsed, best_action, len(actions)))
        return best_action, best_score

    # -------------------------
    # Minimax with alpha-beta
    # -------------------------
    def minimax(self, state: GameState, depth: int, alpha: int, beta: int,
                maximizing: bool, null_move: bool = False) -> int:
        """White maximizes, Black minimizes. Scores are from White's view."""
        self.nodes += 1
        alpha_orig, beta_orig = alpha, beta

        # The passed-turn position inside a null-move probe is not a real
        # position, so nothing under it is cached.
        use_tt = self.cfg.use_transposition and not null_move
        tt_action = None
        if use_tt:
            entry = self.tt.get(state)
            if entry is not None:
                tt_action = entry.best_action
                if entry.depth >= depth:
                    cached = score_from_tt(entry.value, depth)
                    if entry.flag == TT_EXACT:
                        return cached
                    if entry.flag == TT_LOWER:
                        alpha = max(alpha, cached)
                    elif entry.flag == TT_UPPER:
                        beta = min(beta, cached)
                    if alpha >= beta:
                        return cached

        if depth <= 0 or state.is_checkmate or state.is_stalemate:
            score = self._leaf_score(state, depth)
            if use_tt:
                self.tt.store(state, depth, score_to_tt(score, depth), TT_EXACT)
            return score

        # Null Move Pruning
        if (self.cfg.use_null_move and not null_move and not state.is_check
                and depth >= self.cfg.null_move_min_depth):
            passed = replace(state, current_player=state.current_player.opponent)
            reduced = depth - 1 - self.cfg.null_move_reduction
            if maximizing:
                score = self.minimax(passed, reduced, beta - 1, beta, False, True)
                if score >= beta:
                    return beta
            else:
                score = self.minimax(passed, reduced, alpha, alpha + 1, True, True)
                if score <= alpha:
                    return alpha

        actions = order_actions(enumerate_actions(state), self.evaluator.cfg.piece_values, tt_action)
        if not actions:
            return self._leaf_score(state, depth)

        best_action = None
        if maximizing:
            value = -INF
            for action in actions:
                score = self.minimax(apply_action(state, action), depth - 1, alpha, beta, False, null_move)
                if score > value:
                    value, best_action = score, action
                alpha = max(alpha, value)
                if beta <= alpha:
                    break
        else:
            value = INF
            for action in actions:
                score = self.minimax(apply_action(state, action), depth - 1, alpha, beta, True, null_move)
                if score < value:
                    value, best_action = score, action
                beta = min(beta, value)
                if beta <= alpha:
                    break

        if use_tt:
            if value <= alpha_orig:
                flag = TT_UPPER
            elif value >= beta_orig:
                flag = TT_LOWER
            else:
                flag = TT_EXACT
            self.tt.store(state, depth, score_to_tt(value, depth), flag, best_action)
        return value

    def _leaf_score(self, state: GameState, depth: int) -> int:
        score = self.evaluator.evaluate(state)
        # Prefer the quicker mate: more remaining depth means closer to the root.
        if state.is_checkmate:
            return score + depth if score > 0 else score - depth
        return score
