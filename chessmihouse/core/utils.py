from chessmihouse.core.evaluator import CHECKMATE_SCORE


def format_info(depth, score, nodes, elapsed, best_action, candidates):
    """One-line search summary, e.g. ``info depth 2 score cp 35 nodes 812 ...``."""
    nps = int(nodes / elapsed) if elapsed > 0 else 0
    best_str = best_action.notation() if best_action else "-"

    if abs(score) >= CHECKMATE_SCORE:
        score_str = f"mate {'white' if score > 0 else 'black'}"
    else:
        score_str = f"cp {score}"

    return (
        f"info depth {depth} score {score_str} nodes {nodes} nps {nps} "
        f"time {int(elapsed * 1000)} candidates {candidates} best {best_str}"
    )
