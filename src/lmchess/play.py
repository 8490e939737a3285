"""Interactive terminal game: you vs. the configured move source."""
from __future__ import annotations

import argparse
import logging

import chess

from .config import SETTINGS
from .connection import ConnectionMonitor
from .errors import InvalidPosition
from .game import GameConfig, GameOrchestrator, GamePhase
from .llm_client import LLMClient
from .rules import PROMOTION_PIECES, piece_name
from .saved_games import SavedGame, SavedGameStore

HELP = "Commands: <move> (SAN or UCI), undo, redo, reset, save <name>, games, load <n>, delete <n>, quit"


def _print_board(game: GameOrchestrator) -> None:
    board = game.position.board()
    print()
    print(board if game.cfg.human_color == "w" else board.transform(chess.flip_vertical).transform(chess.flip_horizontal))
    print("FEN:", game.position.fen)
    if game.move_log:
        print("Moves:", " ".join(r.san for r in game.move_log))
    for side, label in (("w", "White captured"), ("b", "Black captured")):
        taken = game.captured.by_side(side)
        if taken:
            print(f"{label}:", ", ".join(f"{piece_name(p)} x{n}" for p, n in taken))
    print(game.status_text)


def _print_ai_move(game: GameOrchestrator) -> None:
    report = game.last_ai_move
    if not report:
        return
    print(f"AI plays {report.san}  [{report.label}]  quality: {report.quality.upper()}")
    print(f"  {report.reasoning}")


def _undo_to_human(game: GameOrchestrator) -> None:
    # one ply back lands on the AI's turn; keep going to the human's previous move
    if not game.undo():
        print("Nothing to undo.")
        return
    if game.phase == GamePhase.REMOTE_TO_MOVE:
        game.undo()


def _ask_promotion(game: GameOrchestrator) -> None:
    while game.phase == GamePhase.AWAITING_PROMOTION:
        choice = input("Promote to (q, r, b, n; empty cancels): ").strip().lower()
        if not choice:
            game.cancel_promotion()
            return
        if choice not in PROMOTION_PIECES or not game.choose_promotion(choice):
            print("Invalid promotion piece.")


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(description="Play chess against an OpenAI-compatible LLM server.")
    ap.add_argument("--base-url", default=None, help="OpenAI-compatible base URL (default from settings)")
    ap.add_argument("--human", choices=["white", "black"], default=None, help="Which side you play")
    ap.add_argument("--fen", default=None, help="Optional starting FEN")
    ap.add_argument("--delay", type=float, default=None, help="Pause before each AI move, in seconds")
    ap.add_argument("--saved-games", default=None, help="Path of the saved games JSON file")
    ap.add_argument("--log-level", default="WARNING", help="Python logging level (e.g., INFO, DEBUG)")
    args = ap.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    log = logging.getLogger("play")

    client = LLMClient(base_url=args.base_url)
    monitor = ConnectionMonitor(client)
    state = monitor.refresh()
    if state.connected:
        print(f"Connected to {client.base_url} (model: {state.model_id})")
    else:
        print(f"Move source at {client.base_url} is not reachable; the AI will use its fallback strategy.")
        log.info("Probe error: %s", state.error)

    cfg = GameConfig(
        human_color=args.human or SETTINGS.human_color,
        ai_move_delay_s=args.delay if args.delay is not None else SETTINGS.ai_move_delay_s,
    )
    game = GameOrchestrator(client=client, connection=lambda: monitor.state, cfg=cfg)
    if args.fen:
        try:
            game.load(args.fen)
        except InvalidPosition:
            print("Error loading game. The starting position might be invalid.")
            return
    store = SavedGameStore(args.saved_games or SETTINGS.saved_games_path)

    monitor.start()
    print(HELP)
    try:
        while True:
            if game.phase == GamePhase.REMOTE_TO_MOVE:
                print("AI is thinking...")
                game.play_remote_turn()
                _print_ai_move(game)
                continue
            _print_board(game)
            if game.phase == GamePhase.GAME_OVER:
                raw = input("Game over. reset, undo, or quit: ").strip()
            else:
                raw = input("Your move: ").strip()
            if not raw:
                continue
            cmd, _, arg = raw.partition(" ")
            cmd = cmd.lower()
            if cmd in ("quit", "exit", "q"):
                break
            if cmd == "help":
                print(HELP)
            elif cmd == "undo":
                _undo_to_human(game)
            elif cmd == "redo":
                if not game.redo():
                    print("Nothing to redo.")
            elif cmd == "reset":
                game.reset()
            elif cmd == "save":
                if not arg.strip():
                    print("Usage: save <name>")
                    continue
                store.save(SavedGame.now(arg.strip(), game.position.fen))
                print(f'Game "{arg.strip()}" saved.')
            elif cmd == "games":
                for i, g in enumerate(store.list()):
                    print(f"  [{i}] {g.name}  {g.fen}")
            elif cmd in ("load", "delete") and arg.strip().isdigit():
                idx = int(arg.strip())
                try:
                    if cmd == "load":
                        game.load(store.get(idx).fen)
                    else:
                        store.delete(idx)
                except IndexError:
                    print(f"No saved game at index {idx}.")
                except InvalidPosition:
                    print("Error loading game. The saved position might be invalid.")
            elif game.phase == GamePhase.HUMAN_TO_MOVE:
                if not game.submit_san(raw):
                    print("Illegal move. Please try again with a legal move.")
                _ask_promotion(game)
            else:
                print(HELP)
    except (KeyboardInterrupt, EOFError):
        print()
    finally:
        monitor.stop(timeout=1.0)


if __name__ == "__main__":
    main()
