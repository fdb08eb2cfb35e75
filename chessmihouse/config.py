# chessmihouse/config.py
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging
import os
import tomllib  # python >=3.11

logger = logging.getLogger(__name__)

# Defaults (centipawns). The king is never captured, so it carries no material.
PIECE_VALUES = {
    "PAWN": 100,
    "KNIGHT": 300,
    "BISHOP": 300,
    "ROOK": 500,
    "QUEEN": 900,
    "KING": 0,
}

# 6x6 piece-square tables from WHITE's point of view, row 0 first.
# Left/right symmetric so mirrored positions score the same for both colours.
PIECE_SQUARE_TABLES = {
    "KING": [
        [20, 30, 10, 10, 30, 20],
        [10, 10, 0, 0, 10, 10],
        [-10, -20, -20, -20, -20, -10],
        [-20, -30, -30, -30, -30, -20],
        [-30, -40, -40, -40, -40, -30],
        [-30, -40, -40, -40, -40, -30],
    ],
    "QUEEN": [
        [-20, -10, -5, -5, -10, -20],
        [-10, 0, 5, 5, 0, -10],
        [-5, 5, 5, 5, 5, -5],
        [-5, 5, 5, 5, 5, -5],
        [-10, 0, 5, 5, 0, -10],
        [-20, -10, -5, -5, -10, -20],
    ],
    "ROOK": [
        [0, 0, 5, 5, 0, 0],
        [-5, 0, 0, 0, 0, -5],
        [-5, 0, 0, 0, 0, -5],
        [-5, 0, 0, 0, 0, -5],
        [5, 10, 10, 10, 10, 5],
        [0, 0, 0, 0, 0, 0],
    ],
    "BISHOP": [
        [-20, -10, -10, -10, -10, -20],
        [-10, 5, 0, 0, 5, -10],
        [-10, 10, 10, 10, 10, -10],
        [-10, 5, 10, 10, 5, -10],
        [-10, 0, 5, 5, 0, -10],
        [-20, -10, -10, -10, -10, -20],
    ],
    "KNIGHT": [
        [-50, -30, -20, -20, -30, -50],
        [-30, 0, 10, 10, 0, -30],
        [-20, 10, 20, 20, 10, -20],
        [-20, 10, 20, 20, 10, -20],
        [-30, 0, 10, 10, 0, -30],
        [-50, -30, -20, -20, -30, -50],
    ],
    "PAWN": [
        [0, 0, 0, 0, 0, 0],
        [5, 5, -10, -10, 5, 5],
        [5, 10, 20, 20, 10, 5],
        [10, 20, 30, 30, 20, 10],
        [50, 50, 50, 50, 50, 50],
        [0, 0, 0, 0, 0, 0],
    ],
}


@dataclass
class SearchConfig:
    depth: int = 2
    use_transposition: bool = True
    hash_size_mb: int = 16
    use_null_move: bool = True
    null_move_min_depth: int = 3
    null_move_reduction: int = 2
    ai_move_delay_ms: int = 800  # pause before a background search starts


@dataclass
class EvalConfig:
    piece_values: Dict[str, int] = field(default_factory=lambda: PIECE_VALUES.copy())
    piece_square_tables: Dict[str, List[List[int]]] = field(
        default_factory=lambda: {k: [row[:] for row in v] for k, v in PIECE_SQUARE_TABLES.items()}
    )
    pst_weight: float = 0.5
    mobility_weight: int = 4  # per legal move
    center_bonus: int = 10  # per piece on the inner 4x4
    king_attack_penalty: int = 40  # per piece attacking the king
    bank_weight: float = 1.0  # banked pieces keep their full value


@dataclass
class UIConfig:
    engine_name: str = "Chessmihouse"
    api_port: int = 8000


@dataclass
class Config:
    search: SearchConfig = field(default_factory=SearchConfig)
    eval: EvalConfig = field(default_factory=EvalConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    log_level: str = "INFO"

    @staticmethod
    def load_from_toml(path: str = "config.toml") -> "Config":
        cfg = Config()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        for section in ("search", "eval", "ui"):
            target = getattr(cfg, section)
            for k, v in raw.get(section, {}).items():
                if hasattr(target, k):
                    setattr(target, k, v)
                else:
                    logger.warning("Unknown config key [%s] %s ignored", section, k)
        if "log_level" in raw:
            cfg.log_level = str(raw["log_level"]).upper()
        return cfg


# single globally importable config instance
CONFIG = Config.load_from_toml(os.environ.get("CHESSMIHOUSE_CONFIG_TOML", "config.toml"))
# allow env override of depth for quick debugging
override_depth: Optional[str] = os.environ.get("CHESSMIHOUSE_SEARCH_DEPTH")
if override_depth:
    try:
        CONFIG.search.depth = int(override_depth)
    except ValueError:
        logger.warning("Ignoring non-integer CHESSMIHOUSE_SEARCH_DEPTH=%r", override_depth)
