"""
Scoreboard algorithm — sign by played flag, ranking, tie order.

Runs on unsaved model instances; no database involved.
"""

from __future__ import annotations

from blindtest.models import Game, GamePlayer, Track, TrackScore
from blindtest.services.scoreboard import compute_scoreboard


def make_game(player_ids, tracks=()):
    game = Game(game_id=1, name="Quiz Night")
    for pid in player_ids:
        game.player_links.append(GamePlayer(player_id=pid))
    for played, scores in tracks:
        track = Track(name="Song", artists=["Band"], played=played)
        for pid, value in scores:
            track.scores.append(TrackScore(player_id=pid, score=value))
        game.tracks.append(track)
    return game


def board_of(game):
    return [(e.player_id, e.score, e.position) for e in compute_scoreboard(game).board]


class TestAggregation:

    def test_no_tracks_gives_zero_for_everyone(self):
        assert board_of(make_game([1, 2])) == [(1, 0, 1), (2, 0, 2)]

    def test_unplayed_track_counts_negative(self):
        game = make_game([1, 2], tracks=[(False, [(2, 7)])])
        assert board_of(game) == [(1, 0, 1), (2, -7, 2)]

    def test_played_track_counts_positive(self):
        game = make_game([1, 2], tracks=[(True, [(2, 7)])])
        assert board_of(game) == [(2, 7, 1), (1, 0, 2)]

    def test_sums_across_tracks_with_signs(self):
        game = make_game([1, 2], tracks=[
            (True, [(1, 8), (2, 3)]),
            (False, [(1, 2), (2, 1)]),
            (True, [(1, 0), (2, 10)]),
        ])
        # p1: 8 - 2 + 0 = 6 ; p2: 3 - 1 + 10 = 12
        assert board_of(game) == [(2, 12, 1), (1, 6, 2)]

    def test_scores_of_players_outside_the_game_are_ignored(self):
        game = make_game([1], tracks=[(True, [(1, 4), (99, 10)])])
        assert board_of(game) == [(1, 4, 1)]

    def test_several_scores_by_same_player_on_one_track_add_up(self):
        game = make_game([1], tracks=[(True, [(1, 4), (1, 5)])])
        assert board_of(game) == [(1, 9, 1)]


class TestRanking:

    def test_sorted_descending_with_one_based_positions(self):
        game = make_game([1, 2, 3], tracks=[(True, [(1, 2), (2, 9), (3, 5)])])
        assert board_of(game) == [(2, 9, 1), (3, 5, 2), (1, 2, 3)]

    def test_ties_keep_join_order(self):
        game = make_game([3, 1, 2], tracks=[(True, [(3, 5), (1, 5), (2, 5)])])
        assert [pid for pid, _, _ in board_of(game)] == [3, 1, 2]
        assert [pos for _, _, pos in board_of(game)] == [1, 2, 3]

    def test_negative_scores_rank_below_zero(self):
        game = make_game([1, 2, 3], tracks=[
            (False, [(1, 3)]),
            (True, [(3, 1)]),
        ])
        assert board_of(game) == [(3, 1, 1), (2, 0, 2), (1, -3, 3)]

    def test_duplicate_player_reference_appears_twice_with_full_total(self):
        game = make_game([1, 2, 1], tracks=[(True, [(1, 6), (2, 4)])])
        assert board_of(game) == [(1, 6, 1), (1, 6, 2), (2, 4, 3)]

    def test_repeated_calls_are_identical(self):
        game = make_game([4, 2, 7, 1], tracks=[
            (True, [(4, 3), (2, 3), (7, 8)]),
            (False, [(1, 1), (2, 0)]),
        ])
        first = board_of(game)
        assert board_of(game) == first

    def test_scoreboard_carries_game_id(self):
        assert compute_scoreboard(make_game([1])).game_id == 1
