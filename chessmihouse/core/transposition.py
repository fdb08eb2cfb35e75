"""Zobrist hashing and a thread-safe transposition table.

This module provides two main classes:

- Zobrist: builds random zobrist keys and computes a 64-bit key for any
  GameState from its board (kind/colour/square), the piece-bank counts and
  the side to move. Piece ids are deliberately left out: a captured piece
  gets a fresh id, but the position it leaves behind is the same position.

- TranspositionTable: a small thread-safe, size-bounded dict keyed by
  zobrist keys. Each entry stores the full position signature for
  collision detection, the search depth, stored value and bound flag, plus
  the best action found.

Usage (example):

    tt = TranspositionTable()
    entry = tt.get(state)
    if entry is not None and entry.depth >= depth:
        ...
    tt.store(state, depth=3, value=120, flag=TT_EXACT, best_action=action)
"""
from __future__ import annotations

import random
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from chessmihouse.core.board import NUM_SQUARES
from chessmihouse.core.models import Color, GameState, PieceKind

TT_EXACT = 0
TT_LOWER = 1  # value is a lower bound (search failed high)
TT_UPPER = 2  # value is an upper bound (search failed low)

# No bank can hold more pieces of one kind than there are pieces in play.
MAX_BANK_COUNT = NUM_SQUARES + 1

# Rough per-entry footprint used to turn a megabyte budget into a count.
ENTRY_BYTES = 256

Signature = Tuple[Any, ...]


def position_signature(state: GameState) -> Signature:
    """Exact, id-free description of board + bank + side to move."""
    board = tuple(
        (p.kind, p.color) if p is not None else None for p in state.board.cells
    )
    bank = tuple(
        state.piece_bank.count(color, kind) for color in Color for kind in PieceKind
    )
    return board, bank, state.current_player


@dataclass
class TTEntry:
    signature: Signature
    depth: int
    value: int
    flag: int
    best_action: Optional[Any]

    def __iter__(self):
        return iter((self.signature, self.depth, self.value, self.flag, self.best_action))


class Zobrist:
    """Zobrist hash utilities.

    Keys are computed from scratch per state; states are immutable and the
    board only has 36 squares, so there is no incremental bookkeeping.
    """

    def __init__(self, seed: Optional[int] = None):
        rng = random.Random(seed)
        self.piece: Dict[Tuple[Color, PieceKind], List[int]] = {
            (color, kind): [rng.getrandbits(64) for _ in range(NUM_SQUARES)]
            for color in Color
            for kind in PieceKind
        }
        self.bank: Dict[Tuple[Color, PieceKind], List[int]] = {
            (color, kind): [rng.getrandbits(64) for _ in range(MAX_BANK_COUNT)]
            for color in Color
            for kind in PieceKind
        }
        self.side = rng.getrandbits(64)

    def hash(self, state: GameState) -> int:
        h = 0
        for index, piece in state.board.occupied():
            h ^= self.piece[(piece.color, piece.kind)][index]
        for color in Color:
            for kind in state.piece_bank.kinds(color):
                count = min(state.piece_bank.count(color, kind), MAX_BANK_COUNT - 1)
                h ^= self.bank[(color, kind)][count]
        # side: xor when black to move (convention)
        if state.current_player is Color.BLACK:
            h ^= self.side
        return h


class TranspositionTable:
    """Thread-safe transposition table keyed by zobrist hash.

    Replacement is depth-preferred: an existing entry is only overwritten by
    one searched at least as deep. When the table is full the oldest entry
    is evicted.
    """

    def __init__(self, size_mb: int = 16, seed: Optional[int] = None):
        self.z = Zobrist(seed)
        self.max_entries = max(1, size_mb * 1024 * 1024 // ENTRY_BYTES)
        self._table: Dict[int, TTEntry] = {}
        self._lock = threading.Lock()

    def key(self, state: GameState) -> int:
        return self.z.hash(state)

    def get(self, state: GameState) -> Optional[TTEntry]:
        k = self.key(state)
        with self._lock:
            entry = self._table.get(k)
        if entry is None:
            return None
        # verify signature to avoid rare collisions
        if entry.signature != position_signature(state):
            return None
        return entry

    def store(self, state: GameState, depth: int, value: int, flag: int, best_action: Optional[Any] = None):
        k = self.key(state)
        entry = TTEntry(position_signature(state), depth, value, flag, best_action)
        with self._lock:
            existing = self._table.get(k)
            if existing is not None and existing.depth > depth and existing.signature == entry.signature:
                return
            if existing is None and len(self._table) >= self.max_entries:
                self._table.pop(next(iter(self._table)))
            self._table[k] = entry

    def clear(self):
        with self._lock:
            self._table.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._table)
