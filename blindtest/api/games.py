"""
Games API

GET    /games                                   — list games (players resolved)
GET    /games/<id>                              — game details
GET    /games/<id>/scoreboard                   — ranked scoreboard (cached)
POST   /games                                   — create a game        [auth]
PUT    /games/<id>/join                         — join a game          [auth]
POST   /games/<id>/tracks                       — add a track
PUT    /games/<id>/tracks/<track_id>/score      — score a track        [auth]
PUT    /games/<id>/tracks/<track_id>/played     — set/toggle played
"""

from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify
from flask_login import current_user, login_required

from blindtest.errors import handle_api_errors
from blindtest.schemas import (
    AddScoreSchema, AddTrackSchema, CreateGameSchema, GameSchema, SetPlayedSchema,
)
from blindtest.services import game_store
from blindtest.services.scoreboard import get_scoreboard

games_bp = Blueprint("games", __name__)
logger = logging.getLogger(__name__)

_create_schema = CreateGameSchema()
_track_schema = AddTrackSchema()
_score_schema = AddScoreSchema()
_played_schema = SetPlayedSchema()
_game_response = GameSchema()


def _body() -> dict:
    return request.get_json(silent=True) or {}


@games_bp.route("/", methods=["GET"], strict_slashes=False)
@handle_api_errors
def list_games():
    games = game_store.find_games()
    return jsonify({"games": _game_response.dump(games, many=True)}), 200


@games_bp.route("/", methods=["POST"], strict_slashes=False)
@login_required
@handle_api_errors
def create_game():
    """
    POST /games
    Body: { "name": "Quiz Night", "description": "...", "image": "https://..." }

    The authenticated player becomes the game's first player.
    """
    data = _create_schema.load(_body())

    game = game_store.create_game(
        name=data["name"],
        description=data["description"],
        image=data["image"],
        player_id=current_user.player_id,
    )
    return jsonify({"id": game.game_id}), 201


@games_bp.route("/<int:game_id>", methods=["GET"])
@handle_api_errors
def get_game(game_id: int):
    game = game_store.get_game(game_id, resolve=True)
    return jsonify({"game": _game_response.dump(game)}), 200


@games_bp.route("/<int:game_id>/scoreboard", methods=["GET"])
@handle_api_errors
def get_game_scoreboard(game_id: int):
    scoreboard, cached = get_scoreboard(game_id)
    return jsonify({"scoreboard": scoreboard, "cached": cached}), 200


@games_bp.route("/<int:game_id>/join", methods=["PUT"])
@login_required
@handle_api_errors
def join_game(game_id: int):
    """Rejoining adds the player a second time."""

    game = game_store.join_game(game_id, current_user.player_id)
    logger.info("Player %s joined game %s", current_user.player_id, game_id)
    return jsonify({"id": game.game_id}), 200


@games_bp.route("/<int:game_id>/tracks", methods=["POST"])
@handle_api_errors
def add_track(game_id: int):
    """
    POST /games/<id>/tracks
    Body: { "name": "Song1", "artists": ["Band1"] }

    Response 200: { "id": <track id> }
    """
    data = _track_schema.load(_body())

    track = game_store.add_track(game_id, data["name"], data["artists"])
    logger.info("Track %s added to game %s", track.track_id, game_id)
    return jsonify({"id": track.track_id}), 200


@games_bp.route("/<int:game_id>/tracks/<int:track_id>/score", methods=["PUT"])
@login_required
@handle_api_errors
def add_score(game_id: int, track_id: int):
    """
    PUT /games/<id>/tracks/<track_id>/score
    Body: { "score": 7 }

    Records a score for the authenticated player.  The 0–10 range is checked
    when the game is saved.
    """
    data = _score_schema.load(_body())

    track = game_store.add_score(game_id, track_id, current_user.player_id, data["score"])
    logger.info(
        "Player %s scored %s on track %s of game %s",
        current_user.player_id, data["score"], track_id, game_id,
    )
    return jsonify({"id": track.track_id}), 200


@games_bp.route("/<int:game_id>/tracks/<int:track_id>/played", methods=["PUT"])
@handle_api_errors
def set_played(game_id: int, track_id: int):
    """
    PUT /games/<id>/tracks/<track_id>/played
    Body: { "played": true }   or no body to toggle
    """
    data = _played_schema.load(_body())

    track = game_store.set_played(game_id, track_id, data["played"])
    logger.info("Track %s of game %s played=%s", track_id, game_id, track.played)
    return jsonify({"id": track.track_id, "played": track.played}), 200
