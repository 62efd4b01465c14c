"""
Players API

POST   /players         — register a player, returns its access token
GET    /players/<id>    — player details
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from blindtest.errors import handle_api_errors
from blindtest.schemas import CreatePlayerSchema, PlayerSchema
from blindtest.services import game_store

players_bp = Blueprint("players", __name__)
logger = logging.getLogger(__name__)

_create_schema = CreatePlayerSchema()
_player_response = PlayerSchema()


@players_bp.route("/", methods=["POST"], strict_slashes=False)
@handle_api_errors
def create_player():
    """
    POST /players
    Body: { "name": "Alice" }

    Response 201: { "id": 1, "token": "..." }
    The token goes in ``Authorization: Bearer <token>``.
    """
    data = _create_schema.load(request.get_json(silent=True) or {})

    player = game_store.create_player(data["name"].strip())
    logger.info("Player %s registered", player.player_id)

    return jsonify({"id": player.player_id, "token": player.token}), 201


@players_bp.route("/<int:player_id>", methods=["GET"])
@handle_api_errors
def get_player(player_id: int):
    player = game_store.get_player(player_id)
    return jsonify({"player": _player_response.dump(player)}), 200
