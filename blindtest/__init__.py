"""
Blind-test Game Backend — Application Factory
"""

import logging
import os
from flask import Flask
from flask_cors import CORS

from blindtest.config import config_map
from blindtest.extensions import db, migrate, cache, ma, login_manager


def create_app(config_name: str | None = None) -> Flask:
    """Create and configure the Flask application."""

    if config_name is None:
        config_name = os.getenv("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_map[config_name])

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ── Initialise extensions ──────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    cache.init_app(app)
    ma.init_app(app)
    login_manager.init_app(app)
    CORS(app)

    # ── Register blueprints ────────────────────────────────────────────
    from blindtest.api.games import games_bp
    from blindtest.api.players import players_bp
    from blindtest.errors import register_error_handlers
    import blindtest.auth  # noqa: F401  (registers the login_manager loaders)

    app.register_blueprint(games_bp, url_prefix="/games")
    app.register_blueprint(players_bp, url_prefix="/players")
    register_error_handlers(app)

    # ── Health check ───────────────────────────────────────────────────
    @app.route("/health")
    def health():
        return {"status": "ok"}, 200

    return app
