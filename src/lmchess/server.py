"""
Minimal Flask API around a single human vs. AI game.

Endpoints:
- GET    /api/connection                  -> latest probe result (connected, model_id, error)
- GET    /api/game                        -> game snapshot
- POST   /api/game/move                   -> {"from","to"} or {"move"}; AI replies when due
- POST   /api/game/promotion              -> {"piece"} resolves a pending promotion
- POST   /api/game/undo | /redo           -> optional {"plies"}; AI replies when due
- POST   /api/game/reset                  -> new game
- GET    /api/saved-games                 -> list saved games
- POST   /api/saved-games                 -> {"name"} saves the current FEN
- DELETE /api/saved-games/<index>         -> delete one
- POST   /api/saved-games/<index>/load    -> load into the game

All game mutations are serialized by one lock; the connection monitor runs on its own thread.
"""
from __future__ import annotations

import argparse
import logging
import threading

from flask import Flask, jsonify, request

from .config import SETTINGS
from .connection import ConnectionMonitor
from .errors import InvalidPosition
from .game import GameConfig, GameOrchestrator, GamePhase
from .llm_client import LLMClient
from .saved_games import SavedGame, SavedGameStore

log = logging.getLogger("server")


def create_app(
    orchestrator: GameOrchestrator | None = None,
    monitor: ConnectionMonitor | None = None,
    store: SavedGameStore | None = None,
) -> Flask:
    if monitor is None:
        monitor = ConnectionMonitor(LLMClient())
    if orchestrator is None:
        orchestrator = GameOrchestrator(
            client=monitor.client,
            connection=lambda: monitor.state,
            cfg=GameConfig(human_color=SETTINGS.human_color, ai_move_delay_s=SETTINGS.ai_move_delay_s),
        )
    store = store or SavedGameStore(SETTINGS.saved_games_path)

    app = Flask(__name__)
    game_lock = threading.Lock()
    app.config["ORCHESTRATOR"] = orchestrator
    app.config["MONITOR"] = monitor
    app.config["SAVED_GAMES"] = store

    def _advance() -> None:
        if orchestrator.phase == GamePhase.REMOTE_TO_MOVE:
            orchestrator.play_remote_turn()

    def _plies(data: dict) -> int:
        try:
            return max(1, int(data.get("plies", 1)))
        except (TypeError, ValueError):
            return 1

    @app.route("/api/connection", methods=["GET"])
    def connection_status():
        return jsonify(monitor.state.to_dict())

    @app.route("/api/game", methods=["GET"])
    def game_state():
        with game_lock:
            return jsonify(orchestrator.snapshot())

    @app.route("/api/game/move", methods=["POST"])
    def game_move():
        data = request.get_json(silent=True) or {}
        with game_lock:
            if orchestrator.phase == GamePhase.GAME_OVER:
                return jsonify({"error": "game_over", **orchestrator.snapshot()}), 409
            if orchestrator.phase != GamePhase.HUMAN_TO_MOVE:
                return jsonify({"error": "not_human_turn", "phase": orchestrator.phase.value}), 409
            if data.get("from") and data.get("to"):
                ok = orchestrator.submit_move(str(data["from"]), str(data["to"]))
            elif data.get("move"):
                ok = orchestrator.submit_san(str(data["move"]))
            else:
                return jsonify({"error": "from/to or move is required"}), 400
            if not ok:
                return jsonify({"error": "illegal_move"}), 400
            _advance()
            return jsonify(orchestrator.snapshot())

    @app.route("/api/game/promotion", methods=["POST"])
    def game_promotion():
        data = request.get_json(silent=True) or {}
        with game_lock:
            if orchestrator.phase != GamePhase.AWAITING_PROMOTION:
                return jsonify({"error": "no_pending_promotion"}), 409
            if data.get("cancel"):
                orchestrator.cancel_promotion()
                return jsonify(orchestrator.snapshot())
            if not orchestrator.choose_promotion(data.get("piece")):
                return jsonify({"error": "invalid_promotion_piece"}), 400
            _advance()
            return jsonify(orchestrator.snapshot())

    @app.route("/api/game/undo", methods=["POST"])
    def game_undo():
        data = request.get_json(silent=True) or {}
        with game_lock:
            for _ in range(_plies(data)):
                if not orchestrator.undo():
                    break
            _advance()
            return jsonify(orchestrator.snapshot())

    @app.route("/api/game/redo", methods=["POST"])
    def game_redo():
        data = request.get_json(silent=True) or {}
        with game_lock:
            for _ in range(_plies(data)):
                if not orchestrator.redo():
                    break
            _advance()
            return jsonify(orchestrator.snapshot())

    @app.route("/api/game/reset", methods=["POST"])
    def game_reset():
        with game_lock:
            orchestrator.reset()
            _advance()
            return jsonify(orchestrator.snapshot())

    @app.route("/api/saved-games", methods=["GET"])
    def saved_games_list():
        return jsonify([
            {"index": i, "name": g.name, "fen": g.fen, "timestamp": g.timestamp}
            for i, g in enumerate(store.list())
        ])

    @app.route("/api/saved-games", methods=["POST"])
    def saved_games_create():
        data = request.get_json(silent=True) or {}
        name = str(data.get("name") or "").strip()
        if not name:
            return jsonify({"error": "name is required"}), 400
        with game_lock:
            record = SavedGame.now(name, orchestrator.position.fen)
        store.save(record)
        return jsonify({"name": record.name, "fen": record.fen, "timestamp": record.timestamp}), 201

    @app.route("/api/saved-games/<int:index>", methods=["DELETE"])
    def saved_games_delete(index: int):
        try:
            removed = store.delete(index)
        except IndexError:
            return jsonify({"error": "not found"}), 404
        return jsonify({"deleted": removed.name})

    @app.route("/api/saved-games/<int:index>/load", methods=["POST"])
    def saved_games_load(index: int):
        try:
            record = store.get(index)
        except IndexError:
            return jsonify({"error": "not found"}), 404
        with game_lock:
            try:
                orchestrator.load(record.fen)
            except InvalidPosition:
                log.exception("Error loading game %r", record.name)
                return jsonify({"error": "invalid_saved_position"}), 400
            _advance()
            return jsonify(orchestrator.snapshot())

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
        response.headers["Cache-Control"] = "no-store, max-age=0"
        return response

    @app.route("/api/<path:path>", methods=["OPTIONS"])
    def cors_preflight(path: str):
        return app.make_response(("", 204))

    return app


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(description="Serve a human vs. LLM chess game over HTTP.")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    ap.add_argument("--base-url", default=None, help="OpenAI-compatible base URL (default from settings)")
    ap.add_argument("--log-level", default="INFO", help="Python logging level (e.g., INFO, DEBUG)")
    args = ap.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    monitor = ConnectionMonitor(LLMClient(base_url=args.base_url))
    app = create_app(monitor=monitor)
    monitor.start()
    try:
        app.run(host=args.host, port=args.port)
    finally:
        monitor.stop()


if __name__ == "__main__":
    main()
