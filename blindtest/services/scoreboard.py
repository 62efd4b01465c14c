"""
Scoreboard — per-player aggregation of track scores, ranked.

Scoring Formula
───────────────
For each player reference p in the game's players (join order):

    aggregate_p = Σ over tracks t, over scores s of t with s.player == p:
                      +s.score   if t.played
                      −s.score   otherwise

An unplayed track holds guesses, which count against the player until the
track is confirmed played.

Ranking: aggregate DESC.  The sort is stable, so equal aggregates keep the
players' join order.  Positions are 1-based and unique (no shared ranks).

A player that joined twice appears twice, each entry carrying the full
aggregate.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import select

from blindtest.errors import GameNotFoundError
from blindtest.extensions import cache, db
from blindtest.models import Game, Player
from blindtest.schemas import ScoreboardSchema
from blindtest.services.game_store import SCOREBOARD_CACHE_KEY, get_game

logger = logging.getLogger(__name__)


@dataclass
class BoardEntry:
    player_id: int
    score: float
    position: int = 0


@dataclass
class GameScoreboard:
    game_id: int
    board: list[BoardEntry] = field(default_factory=list)


# ────────────────────────────────────────────────────────────────────────────
# SCORING ALGORITHM
# ────────────────────────────────────────────────────────────────────────────

def compute_scoreboard(game: Game) -> GameScoreboard:
    board = []
    for player_id in game.player_ids:
        aggregate = 0
        for track in game.tracks:
            sign = 1 if track.played else -1
            for entry in track.scores:
                if entry.player_id == player_id:
                    aggregate += sign * entry.score
        board.append(BoardEntry(player_id=player_id, score=aggregate))

    board.sort(key=lambda e: e.score, reverse=True)
    for index, entry in enumerate(board):
        entry.position = index + 1

    return GameScoreboard(game_id=game.game_id, board=board)


# ────────────────────────────────────────────────────────────────────────────
# READ PATH (cached)
# ────────────────────────────────────────────────────────────────────────────

def serialise_scoreboard(scoreboard: GameScoreboard, players: dict[int, Player]) -> dict:
    """Resolve player references and shape the scoreboard for the API."""

    return ScoreboardSchema().dump({
        "game_id": scoreboard.game_id,
        "board": [
            {
                "player": players.get(entry.player_id),
                "score": entry.score,
                "position": entry.position,
            }
            for entry in scoreboard.board
        ],
    })


def get_scoreboard(game_id: int) -> tuple[dict, bool]:
    """
    Returns ``(scoreboard, cached)``.

    Entries are keyed by the game version read before computing, so a
    write that commits while the board is being computed moves readers to
    a new key instead of leaving them on the older result.

    Raises ``GameNotFoundError`` when the game does not exist; nothing is
    cached in that case.
    """
    version = db.session.scalar(select(Game.version).where(Game.game_id == game_id))
    if version is None:
        raise GameNotFoundError(game_id)

    cache_key = SCOREBOARD_CACHE_KEY.format(game_id=game_id, version=version)
    cached_data = cache.get(cache_key)
    if cached_data is not None:
        return json.loads(cached_data), True

    game = get_game(game_id, resolve=True)
    players = {link.player_id: link.player for link in game.player_links}
    result = serialise_scoreboard(compute_scoreboard(game), players)

    ttl = current_app.config.get("SCOREBOARD_CACHE_TTL", 5)
    cache.set(cache_key, json.dumps(result), timeout=ttl)
    logger.debug("Scoreboard cached for game %s v%s (ttl=%ss)", game_id, version, ttl)

    return result, False
