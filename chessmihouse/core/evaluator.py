"""Static evaluator: material, piece-square tables, mobility, centre and king safety."""

from chessmihouse.config import CONFIG, EvalConfig
from chessmihouse.core.board import BOARD_SIZE
from chessmihouse.core.models import Color, GameState, PieceKind
from chessmihouse.core.rules import iter_attackers, king_index, legal_targets

CHECKMATE_SCORE = 10000
STALEMATE_SCORE = 0

CENTER_SQUARES = frozenset(
    r * BOARD_SIZE + c for r in range(1, BOARD_SIZE - 1) for c in range(1, BOARD_SIZE - 1)
)


class Evaluator:
    def __init__(self, cfg: EvalConfig = None):
        self.cfg = cfg or CONFIG.eval

    def piece_value(self, kind: PieceKind) -> int:
        return self.cfg.piece_values.get(kind.name, 0)

    def evaluate(self, state: GameState) -> int:
        """Return static eval in centipawns, positive favors White.

        A mated side to move scores -CHECKMATE_SCORE for White and
        +CHECKMATE_SCORE for Black, which no positional term can reach.
        """
        if state.is_checkmate:
            return -CHECKMATE_SCORE if state.current_player is Color.WHITE else CHECKMATE_SCORE
        if state.is_stalemate:
            return STALEMATE_SCORE

        cells = state.board.cells
        score = 0.0

        # Material + PST + centre on the board.
        for index, piece in state.board.occupied():
            sign = 1 if piece.color is Color.WHITE else -1
            row, col = divmod(index, BOARD_SIZE)
            pst_row = row if piece.color is Color.WHITE else BOARD_SIZE - 1 - row
            table = self.cfg.piece_square_tables.get(piece.kind.name)
            pst = table[pst_row][col] if table else 0

            piece_score = self.piece_value(piece.kind) + pst * self.cfg.pst_weight
            if index in CENTER_SQUARES:
                piece_score += self.cfg.center_bonus
            score += sign * piece_score

        # Banked material counts too: it can be dropped back in.
        for color, sign in ((Color.WHITE, 1), (Color.BLACK, -1)):
            banked = sum(self.piece_value(p.kind) for p in state.piece_bank.pieces(color))
            score += sign * banked * self.cfg.bank_weight

        score += self._eval_mobility(cells)
        score += self._eval_king_safety(cells)
        return int(round(score))

    def _eval_mobility(self, cells) -> int:
        """Reward legal move counts for both sides; pinned pieces add nothing."""
        score = 0
        for index, piece in enumerate(cells):
            if piece is None:
                continue
            mob = len(legal_targets(cells, index))
            score += mob if piece.color is Color.WHITE else -mob
        return score * self.cfg.mobility_weight

    def _eval_king_safety(self, cells) -> int:
        """Penalize each piece bearing down on a king."""
        score = 0
        for color, sign in ((Color.WHITE, 1), (Color.BLACK, -1)):
            king = king_index(cells, color)
            if king is None:
                continue
            attackers = sum(1 for _ in iter_attackers(cells, king, color.opponent))
            score -= sign * attackers * self.cfg.king_attack_penalty
        return score
