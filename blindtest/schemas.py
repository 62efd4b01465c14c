"""
Marshmallow schemas for request parsing and response serialisation.

Request schemas only check presence and types.  The game rules (player
count, track name/artists, score range) are checked on the whole record when
it is saved, see ``blindtest.validation``.
"""

from marshmallow import EXCLUDE, Schema, fields, validate

from blindtest.extensions import ma


# ────────────────────────────────────────────────────────────────────────────
# Request Schemas
# ────────────────────────────────────────────────────────────────────────────

class _RequestSchema(Schema):
    class Meta:
        unknown = EXCLUDE


class CreateGameSchema(_RequestSchema):
    """POST /games"""

    name = fields.String(load_default=None, allow_none=True)
    description = fields.String(load_default=None, allow_none=True)
    image = fields.String(load_default=None, allow_none=True)


class AddTrackSchema(_RequestSchema):
    """POST /games/<id>/tracks"""

    name = fields.String(load_default=None, allow_none=True)
    artists = fields.List(fields.String(), load_default=None, allow_none=True)


class AddScoreSchema(_RequestSchema):
    """PUT /games/<id>/tracks/<track_id>/score"""

    score = fields.Float(
        required=True,
        error_messages={"required": "Score is required", "null": "Score is required"},
    )


class SetPlayedSchema(_RequestSchema):
    """PUT /games/<id>/tracks/<track_id>/played (omit ``played`` to toggle)"""

    played = fields.Boolean(load_default=None, allow_none=True)


class CreatePlayerSchema(_RequestSchema):
    """POST /players"""

    name = fields.String(
        required=True,
        validate=validate.Regexp(r"\s*\S", error="Player name is required"),
        error_messages={
            "required": "Player name is required",
            "null": "Player name is required",
        },
    )


# ────────────────────────────────────────────────────────────────────────────
# Response Schemas
# ────────────────────────────────────────────────────────────────────────────

class PlayerSchema(ma.Schema):
    id = fields.Integer(attribute="player_id")
    name = fields.String()


class TrackScoreSchema(ma.Schema):
    id = fields.Integer(attribute="score_id")
    player = fields.Nested(PlayerSchema, allow_none=True)
    score = fields.Float()


class TrackSchema(ma.Schema):
    id = fields.Integer(attribute="track_id")
    name = fields.String()
    artists = fields.List(fields.String())
    scores = fields.List(fields.Nested(TrackScoreSchema))
    played = fields.Boolean()


class GameSchema(ma.Schema):
    id = fields.Integer(attribute="game_id")
    name = fields.String(allow_none=True)
    description = fields.String(allow_none=True)
    image = fields.String(allow_none=True)
    players = fields.List(fields.Nested(PlayerSchema))
    tracks = fields.List(fields.Nested(TrackSchema))
    created_at = fields.DateTime()
    updated_at = fields.DateTime()


class ScoreboardEntrySchema(ma.Schema):
    player = fields.Nested(PlayerSchema, allow_none=True)
    score = fields.Float()
    position = fields.Integer()


class ScoreboardSchema(ma.Schema):
    game_id = fields.Integer()
    board = fields.List(fields.Nested(ScoreboardEntrySchema))
