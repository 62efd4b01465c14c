"""
Record validation — the rules every game must satisfy before it is written.

The in-memory game (with any pending tracks/scores) is serialised to a plain
record and checked against marshmallow record schemas.  Violations come back
as ``FieldViolation(field, message)`` with dotted paths (``tracks.0.artists``)
so that each one can be reported to the client separately.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate

from blindtest.errors import FieldViolation, flatten_messages
from blindtest.models import Game

PLAYERS_REQUIRED = "Game players are required"
TRACK_NAME_REQUIRED = "Game track name is required"
TRACK_ARTISTS_REQUIRED = "Game track artists are required"
SCORE_PLAYER_REQUIRED = "Game track score player is required"
SCORE_REQUIRED = "Game track score is required"
SCORE_RANGE = "Game track score must be between 0 and 10"
SCORE_MIN = 0
SCORE_MAX = 10


def _required(message: str) -> dict:
    return {"required": message, "null": message}


class ScoreRecordSchema(Schema):
    player = fields.Integer(required=True, strict=True, error_messages=_required(SCORE_PLAYER_REQUIRED))
    score = fields.Float(
        required=True,
        validate=validate.Range(min=SCORE_MIN, max=SCORE_MAX, error=SCORE_RANGE),
        error_messages=_required(SCORE_REQUIRED),
    )


class TrackRecordSchema(Schema):
    name = fields.String(
        required=True,
        validate=validate.Length(min=1, error=TRACK_NAME_REQUIRED),
        error_messages=_required(TRACK_NAME_REQUIRED),
    )
    artists = fields.List(
        fields.String(),
        required=True,
        validate=validate.Length(min=1, error=TRACK_ARTISTS_REQUIRED),
        error_messages=_required(TRACK_ARTISTS_REQUIRED),
    )
    scores = fields.List(fields.Nested(ScoreRecordSchema), required=True)
    played = fields.Boolean(required=True)


class GameRecordSchema(Schema):
    name = fields.String(allow_none=True)
    description = fields.String(allow_none=True)
    image = fields.String(allow_none=True)
    players = fields.List(
        fields.Integer(strict=True),
        required=True,
        validate=validate.Length(min=1, error=PLAYERS_REQUIRED),
        error_messages=_required(PLAYERS_REQUIRED),
    )
    tracks = fields.List(fields.Nested(TrackRecordSchema), required=True)


_game_record_schema = GameRecordSchema()


def game_to_record(game: Game) -> dict:
    """Plain-data view of a game as it would be written."""
    return {
        "name": game.name,
        "description": game.description,
        "image": game.image,
        "players": game.player_ids,
        "tracks": [
            {
                "name": track.name,
                "artists": track.artists,
                "scores": [
                    {"player": s.player_id, "score": s.score}
                    for s in track.scores
                ],
                "played": bool(track.played),
            }
            for track in game.tracks
        ],
    }


def validate_record(record: dict, min_track_scores: int = 0) -> list[FieldViolation]:
    try:
        _game_record_schema.load(record)
        violations: list[FieldViolation] = []
    except ValidationError as err:
        violations = flatten_messages(err.messages)

    if min_track_scores > 0:
        for index, track in enumerate(record.get("tracks") or []):
            if len(track.get("scores") or []) < min_track_scores:
                violations.append(FieldViolation(
                    f"tracks.{index}.scores",
                    f"Game track scores must be >= {min_track_scores}",
                ))

    return violations


def validate_game(game: Game, min_track_scores: int = 0) -> list[FieldViolation]:
    """Return every invariant the game currently breaks (empty when valid)."""
    return validate_record(game_to_record(game), min_track_scores)
