#!/usr/bin/env python3
"""
casedb - Test case repository with bulk import
===============================================

Single-command run:  python main.py

See config.py for all environment-variable tunables.
"""

import logging

from flask import Flask, jsonify

import config
from db import init_db
from api import api_bp


def create_app(db_url: str | None = None) -> Flask:
    """Flask application factory."""

    app = Flask(__name__)
    app.secret_key = config.SECRET

    # ── Initialise database ─────────────────────────────────────────
    init_db(db_url or config.DB_URL)

    # ── Register blueprints ─────────────────────────────────────────
    app.register_blueprint(api_bp)

    # ── Error handlers ──────────────────────────────────────────────
    @app.errorhandler(404)
    def _404(e):
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(500)
    def _500(e):
        return jsonify({"error": "internal server error"}), 500

    return app


def main():
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)

    print("=" * 56)
    print("  casedb - Test Case Repository")
    print("=" * 56)

    app = create_app()
    print(f"  Database: {config.DB_URL}")
    print(f"\n  http://{config.HOST}:{config.PORT}")
    print("  Import:   POST /api/v1/repository/import")
    print("=" * 56)

    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG)


if __name__ == "__main__":
    main()
