"""
Game Store — persistence of games and the mutations the API applies to them.

Write pipeline (every mutation):
  1. Load the game by id (``GameNotFoundError`` → 404).
  2. Apply the mutation to the in-memory record.  Player references are set
     as plain identifiers; nothing is resolved on the write path.
  3. ``save_game`` validates the whole record (players, tracks, scores) and
     raises ``GameValidationError`` before anything is flushed.
  4. Commit.  ``games.version`` is SQLAlchemy's version counter, so the UPDATE
     only matches if nobody else saved the game since step 1.  On a stale
     version the session is rolled back and steps 1–4 are retried.
  5. The scoreboard cached for the version the game had before the write
     is dropped.  Cache keys carry the version, so a scoreboard computed
     from an older version is never served once the write has committed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from flask import current_app
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from blindtest.errors import (
    ConcurrentUpdateError, GameNotFoundError, GameValidationError,
    PlayerNotFoundError, TrackNotFoundError,
)
from blindtest.extensions import db, cache
from blindtest.models import Game, GamePlayer, Player, Track, TrackScore
from blindtest.validation import validate_game

logger = logging.getLogger(__name__)

SCOREBOARD_CACHE_KEY = "scoreboard:game:{game_id}:v{version}"

T = TypeVar("T")


# ────────────────────────────────────────────────────────────────────────────
# READS
# ────────────────────────────────────────────────────────────────────────────

def _with_resolved_players():
    """Eager-load the player records behind every reference of a game."""
    return (
        selectinload(Game.player_links).selectinload(GamePlayer.player),
        selectinload(Game.tracks).selectinload(Track.scores).selectinload(TrackScore.player),
    )


def find_games() -> list[Game]:
    return list(
        db.session.execute(
            select(Game).options(*_with_resolved_players()).order_by(Game.game_id)
        ).scalars()
    )


def find_game(game_id: int, resolve: bool = False) -> Optional[Game]:
    if not resolve:
        return db.session.get(Game, game_id)
    return db.session.execute(
        select(Game).where(Game.game_id == game_id).options(*_with_resolved_players())
    ).scalar_one_or_none()


def get_game(game_id: int, resolve: bool = False) -> Game:
    game = find_game(game_id, resolve=resolve)
    if game is None:
        raise GameNotFoundError(game_id)
    return game


def get_track(game: Game, track_id: int) -> Track:
    track = game.find_track(track_id)
    if track is None:
        raise TrackNotFoundError(game.game_id, track_id)
    return track


def get_player(player_id: int) -> Player:
    player = db.session.get(Player, player_id)
    if player is None:
        raise PlayerNotFoundError(player_id)
    return player


def find_player_by_token(token: str) -> Optional[Player]:
    return db.session.execute(
        select(Player).where(Player.token == token)
    ).scalar_one_or_none()


# ────────────────────────────────────────────────────────────────────────────
# WRITES
# ────────────────────────────────────────────────────────────────────────────

def save_game(game: Game) -> None:
    """Validate and commit a new or modified game."""

    with db.session.no_autoflush:
        violations = validate_game(
            game, current_app.config.get("TRACK_MIN_SCORES", 0)
        )

    if violations:
        db.session.rollback()
        logger.info("Game %s rejected: %s", game.game_id, violations)
        raise GameValidationError(violations)

    previous_version = game.version
    # Dirty the games row so the version check runs even when only children changed
    game.updated_at = datetime.now(timezone.utc)
    db.session.add(game)
    db.session.commit()

    if previous_version is not None:
        _invalidate_scoreboard_cache(game.game_id, previous_version)


def create_game(
    name: Optional[str],
    description: Optional[str],
    image: Optional[str],
    player_id: int,
) -> Game:
    game = Game(name=name, description=description, image=image)
    game.player_links.append(GamePlayer(player_id=player_id))
    save_game(game)
    logger.info("Game %s created by player %s", game.game_id, player_id)
    return game


def mutate_game(game_id: int, mutation: Callable[[Game], T]) -> T:
    """
    Load → mutate → save under the game's optimistic lock.

    The mutation may run more than once: on a stale version the session is
    rolled back and the mutation is re-applied to a freshly loaded game.
    """
    max_retries = max(1, current_app.config.get("SAVE_MAX_RETRIES", 3))

    for attempt in range(1, max_retries + 1):
        game = get_game(game_id)
        result = mutation(game)
        try:
            save_game(game)
            return result

        except StaleDataError as exc:
            db.session.rollback()
            logger.warning(
                "Optimistic lock conflict (attempt %d/%d) game=%s: %s",
                attempt, max_retries, game_id, exc,
            )
            if attempt == max_retries:
                raise ConcurrentUpdateError(
                    f"Could not save game {game_id} after {max_retries} attempts"
                ) from exc


def join_game(game_id: int, player_id: int) -> Game:
    """Append the player. Rejoining appends a second reference."""

    def _join(game: Game) -> Game:
        game.player_links.append(GamePlayer(player_id=player_id))
        return game

    return mutate_game(game_id, _join)


def add_track(game_id: int, name: Optional[str], artists: Optional[list[str]]) -> Track:
    def _add(game: Game) -> Track:
        track = Track(name=name, artists=list(artists or []), played=False)
        game.tracks.append(track)
        return track

    return mutate_game(game_id, _add)


def add_score(game_id: int, track_id: int, player_id: int, score: float) -> Track:
    def _score(game: Game) -> Track:
        track = get_track(game, track_id)
        track.scores.append(TrackScore(player_id=player_id, score=score))
        return track

    return mutate_game(game_id, _score)


def set_played(game_id: int, track_id: int, played: Optional[bool] = None) -> Track:
    """Set the played flag, or toggle it when ``played`` is None."""

    def _played(game: Game) -> Track:
        track = get_track(game, track_id)
        track.played = (not track.played) if played is None else bool(played)
        return track

    return mutate_game(game_id, _played)


def create_player(name: str) -> Player:
    player = Player(name=name)
    db.session.add(player)
    db.session.commit()
    return player


# ────────────────────────────────────────────────────────────────────────────
# CACHE INVALIDATION
# ────────────────────────────────────────────────────────────────────────────

def _invalidate_scoreboard_cache(game_id: int, version: int) -> None:
    cache.delete(SCOREBOARD_CACHE_KEY.format(game_id=game_id, version=version))
    logger.debug("Scoreboard cache invalidated for game %s v%s", game_id, version)
