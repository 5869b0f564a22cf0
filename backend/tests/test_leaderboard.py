import pytest

from winey.services.games import ErrorKind, GameError, Leaderboard
from winey.services.games.leaderboard import rank_entries


def _scores(board):
    return {e['uid']: e['score'] for e in board['leaderboard']}


@pytest.fixture()
def played(games, rounds, started_game):
    """Round 1 closed: Alice scores 4, Bob 2, the host is backfilled with 4."""
    g = started_game
    rounds.submit(g['code'], 1, g['alice'], '', ['a', 'c', 'b', 'd'])
    rounds.submit(g['code'], 1, g['bob'], '', ['a', 'd', 'b', 'c'])
    rounds.close(g['code'], g['host'], 1)
    return g


def test_equal_scores_share_a_rank():
    ranked = rank_entries([
        {'uid': 'x', 'score': 3},
        {'uid': 'y', 'score': 5},
        {'uid': 'z', 'score': 3},
        {'uid': 'w', 'score': 1},
    ])
    assert [(e['uid'], e['rank']) for e in ranked] == [('y', 1), ('x', 2), ('z', 2), ('w', 4)]


def test_open_rounds_do_not_count(repo, started_game):
    g = started_game
    board = Leaderboard(repo).standings(g['code'])
    assert board['last_completed_round'] is None
    assert board['delta_source'] is None
    assert set(_scores(board).values()) == {0}


def test_round_points_after_close(repo, played):
    g = played
    board = Leaderboard(repo).standings(g['code'], g['alice'])
    assert _scores(board) == {g['host']: 4, g['alice']: 4, g['bob']: 2}
    assert board['last_completed_round'] == 1
    assert board['delta_source'] == 'round'
    assert board['is_host'] is False
    bob = next(e for e in board['leaderboard'] if e['uid'] == g['bob'])
    assert bob['delta'] == 2
    assert bob['rank'] == 3


def test_gambit_does_not_leak_before_finish(games, repo, played):
    g = played
    games.advance_round(g['code'], g['host'])
    games.submit_gambit(g['code'], g['bob'], 'd', 'a', ['b'])

    board = Leaderboard(repo).standings(g['code'])
    assert board['status'] == 'gambit'
    assert _scores(board)[g['bob']] == 2
    assert board['delta_source'] == 'round'

    games.finish_game(g['code'], g['host'])
    board = Leaderboard(repo).standings(g['code'])
    assert _scores(board) == {g['host']: 4, g['alice']: 4, g['bob']: 5}
    assert board['delta_source'] == 'gambit'
    bob = next(e for e in board['leaderboard'] if e['uid'] == g['bob'])
    assert bob['delta'] == 3
    assert bob['rank'] == 1


def test_booted_players_leave_the_leaderboard(games, repo, played):
    g = played
    games.boot_player(g['code'], g['host'], g['bob'])
    board = Leaderboard(repo).standings(g['code'])
    assert g['bob'] not in _scores(board)
    assert repo.get_submission(g['code'], 1, g['bob']) is not None


def test_final_reveal_requires_finished_game(games, repo, played):
    g = played
    with pytest.raises(GameError) as excinfo:
        Leaderboard(repo).final_reveal(g['code'], g['alice'])
    assert excinfo.value.kind == ErrorKind.GAME_WRONG_STATUS

    games.advance_round(g['code'], g['host'])
    games.finish_game(g['code'], g['host'])
    reveal = Leaderboard(repo).final_reveal(g['code'], g['alice'])
    assert [r['round_number'] for r in reveal['rounds']] == [1]
    assert reveal['rounds'][0]['max_points'] == 4
    assert {r['uid']: r['points'] for r in reveal['rounds'][0]['results']}[g['bob']] == 2
    assert reveal['gambit']['cheapest_wine_ids'] == ['d']
    assert all(p['total_points'] == 0 for p in reveal['gambit']['picks'])
