#!/usr/bin/env python3
"""
Bounty Board Data Service
-------------------------
Fronts the key-value store that holds the board document. Clients read
and write the whole board as one JSON value.

Usage:
    python board_server.py
    python board_server.py --host 0.0.0.0 --port 3000 --db /var/lib/bountyboard/board.db

API:
    GET    /api/data         → JSON: { tasks, developers, version }
    POST   /api/data         → JSON body: { tasks: [...], developers: [...] }
                               Returns: { success } or { success: false, error }
    DELETE /api/data         → { success }
    GET    /api/leaderboard  → { ranking, totals }
    GET    /api/backups      → { backups }  (corrupted documents kept for inspection)
    GET    /health           → { status, db }

If BOUNTYBOARD_API_SECRET (or api_secret in the config file) is set,
POST/DELETE require a matching X-API-Key header.
"""

import hmac
import logging
import sys
from functools import wraps
from typing import Optional

from flask import Flask, jsonify, request

from bountyboard.config import BoardConfig
from bountyboard.document import build_state, has_collections
from bountyboard.gateway import KVGateway, StorageQuotaError, TransportError
from bountyboard.kv import KVStore, SQLiteKVStore
from bountyboard.reconcile import leaderboard
from bountyboard.recovery import corrupted_backups

logger = logging.getLogger("board_server")


def create_app(config: Optional[BoardConfig] = None, store: Optional[KVStore] = None) -> Flask:
    """Build the Flask app around a KV store (SQLite at config.db_path by default)."""
    cfg = config or BoardConfig.load()
    kv = store if store is not None else SQLiteKVStore(cfg.db_path)
    gateway = KVGateway(kv, cfg.storage_key, cfg.max_document_bytes)

    app = Flask(__name__)

    # ── Auth ─────────────────────────────────────────────────────────────────

    def require_api_key(f):
        """Decorator: when a secret is configured, reject requests without a valid X-API-Key header."""
        @wraps(f)
        def decorated(*args, **kwargs):
            if cfg.api_secret:
                provided = request.headers.get("X-API-Key", "").strip()
                if not hmac.compare_digest(provided, cfg.api_secret):
                    code = 401 if not provided else 403
                    return jsonify({"success": False, "error": "Unauthorized"}), code
            return f(*args, **kwargs)
        return decorated

    # ── Routes ───────────────────────────────────────────────────────────────

    @app.route("/api/data", methods=["GET"])
    def api_data_get():
        try:
            state = gateway.fetch()
        except TransportError as e:
            app.logger.error(f"Error loading data from store: {e}")
            return jsonify({"error": "Failed to load data"}), 503
        return jsonify(state.to_dict())

    @app.route("/api/data", methods=["POST"])
    @require_api_key
    def api_data_post():
        data = request.get_json(force=True, silent=True)
        if not has_collections(data):
            return jsonify({"success": False, "error": "Invalid state structure"}), 400
        state = build_state(data)
        try:
            gateway.push(state)
        except StorageQuotaError as e:
            app.logger.warning(f"Rejected oversized board document: {e}")
            return jsonify({"success": False, "error": "Failed to save data: storage limit exceeded"}), 413
        except TransportError as e:
            app.logger.error(f"Error saving data to store: {e}")
            return jsonify({"success": False, "error": "Failed to save data"}), 500
        return jsonify({"success": True})

    @app.route("/api/data", methods=["DELETE"])
    @require_api_key
    def api_data_delete():
        if not gateway.clear():
            return jsonify({"success": False, "error": "Failed to clear data"}), 500
        return jsonify({"success": True})

    @app.route("/api/leaderboard")
    def api_leaderboard():
        try:
            state = gateway.fetch()
        except TransportError as e:
            app.logger.error(f"Error loading data from store: {e}")
            return jsonify({"error": "Failed to load data"}), 503
        return jsonify(leaderboard(state).to_dict())

    @app.route("/api/backups")
    def api_backups():
        return jsonify({"backups": corrupted_backups(kv, cfg.storage_key)})

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "db": getattr(kv, "db_path", "memory")})

    return app


# ── Main ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Bounty Board Data Service")
    parser.add_argument("--config", help="Path to bountyboard.yaml")
    parser.add_argument("--host", help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int)
    parser.add_argument("--db", help="Path to board.db (overrides BOUNTYBOARD_DB env var)")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [bounty-board] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    cfg = BoardConfig.load(args.config)
    if args.db:
        cfg.db_path = args.db
        cfg.resolve_paths()
    host = args.host or cfg.host
    port = args.port or cfg.port

    logger.info(f"Bounty board data service on http://{host}:{port} (db: {cfg.db_path})")
    create_app(cfg).run(host=host, port=port, debug=False, threaded=True)
