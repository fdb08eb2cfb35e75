"""FastAPI REST interface for the engine."""

import logging
import threading
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from chessmihouse.config import CONFIG
from chessmihouse.core.models import Color
from chessmihouse.main import Engine

app = FastAPI(title=CONFIG.ui.engine_name, version="1.0.0")

# Shared game (one local game per process).
engine = Engine(depth=CONFIG.search.depth)
_engine_lock = threading.Lock()


class MoveRequest(BaseModel):
    move: str  # e.g. "a2a3", "a5a6q" or "N@c3"


class SearchRequest(BaseModel):
    depth: Optional[int] = Field(default=None, ge=0, le=6)
    play: bool = False  # also play the move found


class UndoRequest(BaseModel):
    plies: int = Field(default=1, ge=1)


def _snapshot():
    state = engine.state
    last = state.last_move
    return {
        "board": str(state.board).splitlines(),
        "turn": state.current_player.value,
        "legal_moves": engine.legal_moves(),
        "bank": {
            color.value: [p.kind.value for p in state.piece_bank.pieces(color)] for color in Color
        },
        "history": [m.notation() for m in state.move_history],
        "last_move": last.notation() if last else None,
        "is_check": state.is_check,
        "is_checkmate": state.is_checkmate,
        "is_stalemate": state.is_stalemate,
        "is_game_over": engine.is_game_over(),
        "result": engine.result() if engine.is_game_over() else None,
    }


@app.get("/board")
def get_board():
    with _engine_lock:
        return _snapshot()


@app.post("/move")
def make_move(req: MoveRequest):
    with _engine_lock:
        if engine.is_game_over():
            raise HTTPException(status_code=400, detail="Game is already over")
        if not engine.make_move(req.move):
            raise HTTPException(status_code=400, detail=f"Illegal move: {req.move}")
        return {"move": req.move, **_snapshot()}


@app.post("/search")
def search_move(req: SearchRequest = SearchRequest()):
    with _engine_lock:
        if engine.is_game_over():
            raise HTTPException(status_code=400, detail="Game is already over")
        state = engine.state

    depth = CONFIG.search.depth if req.depth is None else req.depth
    action, score = engine.search.search_best_move(state, depth=depth)
    best = action.notation() if action else None

    with _engine_lock:
        played = bool(req.play and best and engine.state is state and engine.make_move(best))
        return {"best_move": best, "score": score, "played": played, **_snapshot()}


@app.post("/undo")
def undo(req: UndoRequest = UndoRequest()):
    with _engine_lock:
        engine.undo_move(req.plies)
        return _snapshot()


@app.post("/reset")
def reset_board():
    with _engine_lock:
        engine.reset()
        return _snapshot()


def serve():
    """Run the API with uvicorn on the configured port."""
    import uvicorn

    logging.basicConfig(level=CONFIG.log_level, format="%(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="127.0.0.1", port=CONFIG.ui.api_port, reload=False)


if __name__ == "__main__":
    serve()
