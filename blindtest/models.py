"""
SQLAlchemy ORM Models — players, games, tracks and track scores.

A game owns its player references (``game_players``, ordered, duplicates
allowed) and its tracks; a track owns its scores.  Write paths only ever set
player identifiers; the ``player`` relationships exist for the read paths
that resolve references (list, get, scoreboard).
"""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Optional

from flask_login import UserMixin
from sqlalchemy import (
    String, Text, Integer, BigInteger, Boolean, Float,
    DateTime, JSON, ForeignKey, Index, CheckConstraint,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blindtest.extensions import db


# ────────────────────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────────────────────
def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_token() -> str:
    return secrets.token_urlsafe(32)


# SQLite only autoincrements INTEGER PRIMARY KEY columns
_Id = BigInteger().with_variant(Integer, "sqlite")


# ────────────────────────────────────────────────────────────────────────────
# 1. Player
# ────────────────────────────────────────────────────────────────────────────
class Player(UserMixin, db.Model):
    __tablename__ = "players"

    player_id: Mapped[int] = mapped_column(_Id, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, default=_new_token)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)

    def get_id(self) -> str:
        return str(self.player_id)

    def __repr__(self) -> str:
        return f"<Player {self.name}>"


# ────────────────────────────────────────────────────────────────────────────
# 2. Game
# ────────────────────────────────────────────────────────────────────────────
class Game(db.Model):
    __tablename__ = "games"

    game_id: Mapped[int] = mapped_column(_Id, primary_key=True, autoincrement=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    description: Mapped[Optional[str]] = mapped_column(Text, default=None)
    image: Mapped[Optional[str]] = mapped_column(String(1024))

    # Optimistic locking version, checked by every UPDATE of the row
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    player_links: Mapped[list["GamePlayer"]] = relationship(
        back_populates="game",
        order_by="GamePlayer.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )
    tracks: Mapped[list["Track"]] = relationship(
        back_populates="game",
        order_by="Track.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def player_ids(self) -> list[int]:
        return [link.player_id for link in self.player_links]

    @property
    def players(self) -> list[Player]:
        """Resolved player records, in join order."""
        return [link.player for link in self.player_links]

    def find_track(self, track_id: int) -> Optional["Track"]:
        return next((t for t in self.tracks if t.track_id == track_id), None)

    def __repr__(self) -> str:
        return f"<Game {self.game_id} {self.name!r}>"


class GamePlayer(db.Model):
    """One entry of a game's ordered player list."""

    __tablename__ = "game_players"

    link_id: Mapped[int] = mapped_column(_Id, primary_key=True, autoincrement=True)
    game_id: Mapped[int] = mapped_column(_Id, ForeignKey("games.game_id"), nullable=False)
    player_id: Mapped[int] = mapped_column(_Id, ForeignKey("players.player_id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    game: Mapped["Game"] = relationship(back_populates="player_links")
    player: Mapped["Player"] = relationship()

    __table_args__ = (
        Index("idx_game_players_game", "game_id", "position"),
    )

    def __repr__(self) -> str:
        return f"<GamePlayer game={self.game_id} player={self.player_id}>"


# ────────────────────────────────────────────────────────────────────────────
# 3. Track
# ────────────────────────────────────────────────────────────────────────────
class Track(db.Model):
    __tablename__ = "tracks"

    track_id: Mapped[int] = mapped_column(_Id, primary_key=True, autoincrement=True)
    game_id: Mapped[int] = mapped_column(_Id, ForeignKey("games.game_id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    artists: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    played: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    game: Mapped["Game"] = relationship(back_populates="tracks")
    scores: Mapped[list["TrackScore"]] = relationship(
        back_populates="track",
        order_by="TrackScore.score_id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_tracks_game", "game_id", "position"),
    )

    def __repr__(self) -> str:
        return f"<Track {self.track_id} {self.name!r}>"


# ────────────────────────────────────────────────────────────────────────────
# 4. Track Score
# ────────────────────────────────────────────────────────────────────────────
class TrackScore(db.Model):
    __tablename__ = "track_scores"

    score_id: Mapped[int] = mapped_column(_Id, primary_key=True, autoincrement=True)
    track_id: Mapped[int] = mapped_column(_Id, ForeignKey("tracks.track_id"), nullable=False)
    player_id: Mapped[int] = mapped_column(_Id, ForeignKey("players.player_id"), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)

    track: Mapped["Track"] = relationship(back_populates="scores")
    player: Mapped["Player"] = relationship()

    __table_args__ = (
        CheckConstraint("score >= 0 AND score <= 10", name="chk_score_range"),
    )

    def __repr__(self) -> str:
        return f"<TrackScore track={self.track_id} player={self.player_id} score={self.score}>"
