#!/usr/bin/env python3
"""
todoboard server
----------------
Serves a JSON API over one board document. A rendering surface polls the
board snapshot, posts UI messages, and answers title prompts.

Usage:
    todoboard --file ./todo.json
    todoboard --config todoboard.yaml --port 3001

API:
    GET    /api/board          → {"type": "data", "data": Board, "revision": n}
    POST   /api/messages       → queue a UI message (see protocol.MessageType)
    GET    /api/prompts        → {"prompts": [{id, label, created_at}, ...]}
    POST   /api/prompts/<id>   → JSON body: {"value": "title"}
    DELETE /api/prompts/<id>   → cancel the prompt
    GET    /health
"""
import argparse
import logging
import sys
from pathlib import Path

from flask import Flask, jsonify, request

from .config import Config
from .host import BoardHost

logger = logging.getLogger(__name__)


def create_app(host: BoardHost) -> Flask:
    app = Flask(__name__)

    @app.route("/api/board")
    def api_board():
        return jsonify({
            "type": "data",
            "data": host.snapshot(),
            "revision": host.revision,
        })

    @app.route("/api/messages", methods=["POST"])
    def api_message():
        data = request.get_json(force=True, silent=True)
        if not isinstance(data, dict) or not isinstance(data.get("type"), str):
            return jsonify({"error": "body must be a JSON object with a 'type'"}), 400
        host.submit(data)
        return jsonify({"queued": True, "type": data["type"]}), 202

    @app.route("/api/prompts", methods=["GET"])
    def api_prompts():
        return jsonify({"prompts": host.prompts.pending()})

    @app.route("/api/prompts/<prompt_id>", methods=["POST"])
    def api_answer_prompt(prompt_id):
        data = request.get_json(force=True, silent=True) or {}
        value = data.get("value")
        if value is not None and not isinstance(value, str):
            return jsonify({"error": "value must be a string"}), 400
        if not host.prompts.answer(prompt_id, value):
            return jsonify({"error": "Prompt not found"}), 404
        return jsonify({"answered": prompt_id})

    @app.route("/api/prompts/<prompt_id>", methods=["DELETE"])
    def api_cancel_prompt(prompt_id):
        if not host.prompts.cancel(prompt_id):
            return jsonify({"error": "Prompt not found"}), 404
        return jsonify({"cancelled": prompt_id})

    @app.route("/health")
    def health():
        return jsonify({
            "status": "ok",
            "document": host.cfg.document_path,
            "revision": host.revision,
            "last_error": host.last_error,
        })

    return app


# ── Main ─────────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(description="todoboard document server")
    parser.add_argument("--config", help="Path to todoboard.yaml (overrides TODOBOARD_CONFIG)")
    parser.add_argument("--file", help="Board document path (overrides config and TODOBOARD_DOCUMENT)")
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("--port", type=int)
    args = parser.parse_args(argv)

    cfg = Config.load(args.config)
    if args.file:
        cfg.document_path = str(Path(args.file).expanduser().resolve())
    if args.host:
        cfg.host = args.host
    if args.port:
        cfg.port = args.port

    logging.basicConfig(
        level=getattr(logging, str(cfg.log_level).upper(), logging.INFO),
        format="%(asctime)s [todoboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    host = BoardHost(cfg)
    host.start()
    print(f"""
╔═══════════════════════════════════════╗
║  todoboard                            ║
╠═══════════════════════════════════════╣
║  URL:  http://{cfg.host}:{cfg.port:<20}║
║  Doc:  {Path(cfg.document_path).name:<31}║
╚═══════════════════════════════════════╝
""")
    try:
        create_app(host).run(host=cfg.host, port=cfg.port, debug=False, threaded=True)
    finally:
        host.stop()


if __name__ == "__main__":
    main()
