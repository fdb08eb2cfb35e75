"""
Chessmihouse: a 6x6 chess variant with a Crazyhouse-style piece bank.

Captured pieces change colour, join the capturer's bank and can be dropped
back onto any empty square on a later turn.

Modules:
    config     : Dataclass configuration (TOML file + environment overrides)
    core.models: Positions, pieces, piece bank, move records, game state
    core.board : Flat 6x6 board
    core.rules : Legal moves, check / checkmate / stalemate, drops, move application
    core.evaluator   : Static position evaluation
    core.transposition: Zobrist hashing and transposition table
    core.search: Minimax with alpha-beta, move ordering, null-move pruning
    main       : Engine facade with history, undo and text notation
"""

__version__ = "1.0.0"
