import logging

from chessmihouse.config import CONFIG
from chessmihouse.core.models import Color
from chessmihouse.main import Engine

HELP = "Enter a move (a2a3, a5a6q) or a drop (N@c3); 'moves', 'undo', 'quit'."


def main(depth=None):
    logging.basicConfig(level=CONFIG.log_level, format="%(levelname)s %(name)s: %(message)s")
    engine = Engine(depth=depth)
    print(HELP)

    while not engine.is_game_over():
        engine.print_board()
        print("----------------------------")

        if engine.state.current_player is Color.WHITE:  # human plays White
            user_move = input("Your move: ").strip()
            if user_move == "quit":
                return engine
            if user_move == "moves":
                print(" ".join(engine.legal_moves()))
                continue
            if user_move == "undo":
                # take back the engine's reply and our own move
                engine.undo_move(2)
                continue
            if not engine.make_move(user_move):
                print("Illegal move, try again.")
        else:
            move, score = engine.get_best_move()
            if move is None:
                break
            engine.make_move(move)
            print(f"Engine plays: {move} | Eval: {score}")

    engine.print_board()
    print("Game Over")
    print(f"Result: {engine.result()}")
    return engine


if __name__ == "__main__":
    main()
