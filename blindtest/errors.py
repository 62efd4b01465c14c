"""
Domain exceptions and the JSON error envelope.

Every error response body has the shape::

    {"error": "<code>", "error_description": "<text>"[, "field": "<path>"]}

or, when several errors are reported at once (e.g. a record failing more
than one validation rule)::

    {"errors": [{...}, {...}]}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Iterable, Optional

from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from blindtest.extensions import db

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldViolation:
    field: str
    message: str


@dataclass(frozen=True)
class ErrorEntry:
    error: str
    error_description: str
    field: Optional[str] = None

    def to_dict(self) -> dict:
        entry = {"error": self.error, "error_description": self.error_description}
        if self.field is not None:
            entry["field"] = self.field
        return entry


# ────────────────────────────────────────────────────────────────────────────
# Exceptions
# ────────────────────────────────────────────────────────────────────────────

class NotFoundError(LookupError):
    pass


class GameNotFoundError(NotFoundError):
    def __init__(self, game_id: int):
        super().__init__(f"Game {game_id} not found")
        self.game_id = game_id


class TrackNotFoundError(NotFoundError):
    def __init__(self, game_id: int, track_id: int):
        super().__init__(f"Track {track_id} not found in game {game_id}")
        self.game_id = game_id
        self.track_id = track_id


class PlayerNotFoundError(NotFoundError):
    def __init__(self, player_id: int):
        super().__init__(f"Player {player_id} not found")
        self.player_id = player_id


class GameValidationError(ValueError):
    """A game record broke one or more invariants at save time."""

    def __init__(self, violations: list[FieldViolation]):
        super().__init__("; ".join(f"{v.field}: {v.message}" for v in violations))
        self.violations = violations


class ConcurrentUpdateError(RuntimeError):
    pass


# ────────────────────────────────────────────────────────────────────────────
# Formatting
# ────────────────────────────────────────────────────────────────────────────

def format_errors(*entries: ErrorEntry) -> dict:
    if len(entries) == 1:
        return entries[0].to_dict()
    return {"errors": [e.to_dict() for e in entries]}


def format_server_error() -> dict:
    return format_errors(ErrorEntry("server_error", "Internal server error"))


def translate_validation_error(err: GameValidationError | ValidationError) -> list[ErrorEntry]:
    """Turn record or request validation failures into one entry per field."""

    if isinstance(err, GameValidationError):
        violations: Iterable[FieldViolation] = err.violations
    else:
        violations = flatten_messages(err.messages)
    return [ErrorEntry("invalid_request", v.message, v.field) for v in violations]


def flatten_messages(messages, prefix: str = "") -> list[FieldViolation]:
    """
    Flatten marshmallow's nested error dict into dotted field paths:

        {"tracks": {0: {"artists": ["..."]}}}  ->  tracks.0.artists
    """
    if isinstance(messages, str):
        messages = [messages]
    if isinstance(messages, (list, tuple)):
        return [FieldViolation(prefix or "_schema", str(m)) for m in messages]

    violations: list[FieldViolation] = []
    for key, value in messages.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        violations.extend(flatten_messages(value, path))
    return violations


# ────────────────────────────────────────────────────────────────────────────
# View boundary: every exception a handler raises is translated here
# ────────────────────────────────────────────────────────────────────────────

def handle_api_errors(view):
    view_logger = logging.getLogger(view.__module__)

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)

        except (ValidationError, GameValidationError) as err:
            view_logger.info("%s rejected: %s", view.__name__, err)
            return jsonify(format_errors(*translate_validation_error(err))), 400

        except NotFoundError as err:
            view_logger.info("%s: %s", view.__name__, err)
            return jsonify(format_errors(ErrorEntry("not_found", str(err)))), 404

        except ConcurrentUpdateError as err:
            view_logger.error("%s failed: %s", view.__name__, err)
            return jsonify(format_errors(
                ErrorEntry("conflict", "Concurrent update conflict. Please retry.")
            )), 409

        except Exception:
            view_logger.exception("Unexpected error in %s", view.__name__)
            db.session.rollback()
            return jsonify(format_server_error()), 500

    return wrapper


# ────────────────────────────────────────────────────────────────────────────
# App-wide handlers for errors raised outside of the API views
# ────────────────────────────────────────────────────────────────────────────

def register_error_handlers(app: Flask) -> None:

    @app.errorhandler(404)
    def not_found(err):
        return jsonify(format_errors(ErrorEntry("not_found", "Resource not found"))), 404

    @app.errorhandler(405)
    def method_not_allowed(err):
        return jsonify(format_errors(ErrorEntry("method_not_allowed", "Method not allowed"))), 405

    @app.errorhandler(HTTPException)
    def http_error(err: HTTPException):
        return jsonify(format_errors(ErrorEntry("http_error", err.description or err.name))), err.code

    @app.errorhandler(Exception)
    def unhandled(err):
        logger.exception("Unhandled error")
        return jsonify(format_server_error()), 500
