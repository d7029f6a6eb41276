"""
Connect Four CLI - Command-line interface for the arena.

Usage:
    connectfour serve [--host HOST] [--port PORT] [--reload]   Run the API server
    connectfour play [--first {1,2}]                            Hot-seat game in the terminal
"""

import argparse
import logging
import os
import sys

from .engine_core import Board, COLS, GameState, PLAYER_ONE, PLAYER_TWO, play, reset

DISC_SYMBOLS = {None: ".", PLAYER_ONE: "X", PLAYER_TWO: "O"}


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Connect Four Arena - games, lobby and tournaments",
        prog="connectfour",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a local two-player game")
    play_parser.add_argument(
        "--first", type=int, choices=[PLAYER_ONE, PLAYER_TWO], default=PLAYER_ONE,
        help="Player who opens",
    )

    args = parser.parse_args(argv)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "play":
        cmd_play(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args):
    """Run the FastAPI app under uvicorn."""
    import uvicorn

    level = os.getenv("CONNECTFOUR_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "connectfour.api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=level.lower(),
    )


def render_board(board: Board, highlight=None) -> str:
    """Text rendering, top row first. Cells in `highlight` are shown as '*'."""
    highlight = set(highlight or [])
    lines = [" ".join(str(c + 1) for c in range(COLS))]
    for r, row in enumerate(board.cells):
        lines.append(" ".join(
            "*" if (r, c) in highlight else DISC_SYMBOLS[cell]
            for c, cell in enumerate(row)
        ))
    return "\n".join(lines)


def cmd_play(args, input_fn=input):
    """Hot-seat game: both players share the terminal."""
    state = GameState.new(first_player=args.first)
    print("Columns are numbered 1-7. 'q' quits, 'r' restarts.")

    while True:
        print()
        print(render_board(state.board))
        symbol = DISC_SYMBOLS[state.current_player]
        try:
            answer = input_fn(f"Player {state.current_player} ({symbol}), column: ").strip().lower()
        except EOFError:
            print()
            return state

        if answer == "q":
            return state
        if answer == "r":
            state = reset(state)
            continue
        if not answer.isdigit():
            print(f"Enter a column number between 1 and {COLS}")
            continue

        result = play(state, int(answer) - 1, state.current_player)
        if not result.success:
            print(f"Illegal move: {result.error}")
            continue

        state = result.state
        if state.is_over:
            print()
            if state.win:
                print(render_board(state.board, highlight=state.win.line))
                print(f"Player {state.winner} ({DISC_SYMBOLS[state.winner]}) wins!")
            else:
                print(render_board(state.board))
                print("Draw - the board is full.")
            return state


if __name__ == "__main__":
    main()
