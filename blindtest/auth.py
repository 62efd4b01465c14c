"""
Bearer-token authentication through Flask-Login.

Clients send ``Authorization: Bearer <token>``; the request loader resolves
the token to a ``Player`` which views read as ``current_user``.  Protected
views use ``@login_required``, whose failures are answered with the JSON
error envelope (401 ``unauthorized``, or ``invalid_token`` when a token was
sent but not recognised).
"""

from __future__ import annotations

import logging

from flask import g, jsonify

from blindtest.errors import ErrorEntry, format_errors
from blindtest.extensions import db, login_manager
from blindtest.models import Player
from blindtest.services.game_store import find_player_by_token

logger = logging.getLogger(__name__)


@login_manager.user_loader
def load_player(player_id: str) -> Player | None:
    return db.session.get(Player, int(player_id))


@login_manager.request_loader
def load_player_from_request(request) -> Player | None:
    g.auth_error = None
    header = request.headers.get("Authorization", "")
    if not header:
        return None

    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        g.auth_error = "Malformed Authorization header"
        return None

    player = find_player_by_token(token)
    if player is None:
        g.auth_error = "Unknown access token"
    return player


@login_manager.unauthorized_handler
def unauthorized():
    description = g.get("auth_error")
    if description:
        logger.info("Authentication failed: %s", description)
        entry = ErrorEntry("invalid_token", description)
    else:
        entry = ErrorEntry("unauthorized", "Authentication required")
    return jsonify(format_errors(entry)), 401
