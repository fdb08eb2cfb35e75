"""Core engine components: board, models, rules, evaluator, search, and transposition table."""

from .board import Board
from .evaluator import Evaluator
from .models import Color, GameState, Piece, PieceBank, PieceKind, Position, create_initial_game_state
from .search import Action, SearchEngine
from .transposition import TranspositionTable
