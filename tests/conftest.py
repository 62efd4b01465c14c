"""
Shared fixtures: an app on in-memory SQLite, its test client, and two
registered players (Alice created first, then Bob).
"""

from __future__ import annotations

import pytest
from flask import g

from blindtest import create_app
from blindtest.extensions import db
from blindtest.models import Player


@pytest.fixture()
def app():
    app = create_app("testing")

    # Test requests share the app context pushed below, and with it ``g``,
    # where Flask-Login keeps the player of the previous request.
    @app.before_request
    def _reset_login_state():
        g.pop("_login_user", None)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def players(app):
    alice = Player(name="Alice")
    bob = Player(name="Bob")
    db.session.add_all([alice, bob])
    db.session.commit()

    return {
        "alice": {"id": alice.player_id, "token": alice.token},
        "bob": {"id": bob.player_id, "token": bob.token},
    }


@pytest.fixture()
def auth(players):
    """auth("alice") -> Authorization header for that player."""

    def _headers(name: str) -> dict:
        return {"Authorization": f"Bearer {players[name]['token']}"}

    return _headers
