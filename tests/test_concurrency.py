"""
Optimistic locking — a game saved by someone else between load and save.

Validates:
  • A stale version is detected on save and the mutation is re-applied to
    the fresh game, exactly once in the final state.
  • Exhausted retries surface as ConcurrentUpdateError / HTTP 409.
"""

from __future__ import annotations

import pytest
from sqlalchemy import update

from blindtest.errors import ConcurrentUpdateError
from blindtest.extensions import db
from blindtest.models import Game, Track
from blindtest.services import game_store


def _bump_version_behind_session(game_id: int) -> None:
    """Simulate a concurrent writer: bump the row without touching the loaded object."""
    db.session.execute(
        update(Game).where(Game.game_id == game_id).values(version=Game.version + 1),
        execution_options={"synchronize_session": False},
    )


@pytest.fixture()
def game(app, players):
    return game_store.create_game("Quiz Night", None, None, players["alice"]["id"])


class TestOptimisticLock:

    def test_version_increments_on_every_save(self, game, players):
        assert game.version == 1
        game_store.join_game(game.game_id, players["bob"]["id"])
        game_store.add_track(game.game_id, "Song1", ["Band1"])
        assert game_store.get_game(game.game_id).version == 3

    def test_stale_save_is_retried(self, game):
        attempts = []

        def mutation(loaded: Game) -> Game:
            attempts.append(loaded.version)
            if len(attempts) == 1:
                _bump_version_behind_session(loaded.game_id)
            loaded.tracks.append(Track(name="Song1", artists=["Band1"], played=False))
            return loaded

        game_store.mutate_game(game.game_id, mutation)

        assert len(attempts) == 2
        tracks = game_store.get_game(game.game_id).tracks
        assert [t.name for t in tracks] == ["Song1"]

    def test_retries_exhausted(self, app, game):
        attempts = []

        def mutation(loaded: Game) -> Game:
            attempts.append(loaded.version)
            _bump_version_behind_session(loaded.game_id)
            loaded.name = "Renamed"
            return loaded

        with pytest.raises(ConcurrentUpdateError):
            game_store.mutate_game(game.game_id, mutation)

        assert len(attempts) == app.config["SAVE_MAX_RETRIES"]
        assert game_store.get_game(game.game_id).name == "Quiz Night"

    def test_conflict_maps_to_409(self, client, auth, game, monkeypatch):
        def always_conflicting(game_id, mutation):
            raise ConcurrentUpdateError(f"Could not save game {game_id}")

        monkeypatch.setattr(game_store, "mutate_game", always_conflicting)

        resp = client.put(f"/games/{game.game_id}/join", headers=auth("bob"))
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "conflict"

    def test_non_positive_retry_setting_still_saves_once(self, app, game, players):
        app.config["SAVE_MAX_RETRIES"] = 0

        game_store.join_game(game.game_id, players["bob"]["id"])

        assert game_store.get_game(game.game_id).player_ids == [
            players["alice"]["id"], players["bob"]["id"],
        ]
