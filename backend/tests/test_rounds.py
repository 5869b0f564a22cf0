import pytest

from winey.services.games import ErrorKind, GameError


def _kind(excinfo):
    return excinfo.value.kind


def test_submit_requires_exact_permutation(rounds, started_game):
    g = started_game
    with pytest.raises(GameError) as excinfo:
        rounds.submit(g['code'], 1, g['alice'], '', ['a', 'b', 'c'])
    assert _kind(excinfo) == ErrorKind.INVALID_RANKING

    with pytest.raises(GameError) as excinfo:
        rounds.submit(g['code'], 1, g['alice'], '', ['a', 'a', 'c', 'd'])
    assert _kind(excinfo) == ErrorKind.INVALID_RANKING

    assert rounds.submit(g['code'], 1, g['alice'], 'tannic', ['a', 'b', 'c', 'd']) == {'ok': True}


def test_resubmit_replaces_previous_ranking(rounds, repo, started_game):
    g = started_game
    rounds.submit(g['code'], 1, g['alice'], 'first', ['d', 'c', 'b', 'a'])
    rounds.submit(g['code'], 1, g['alice'], 'second', ['a', 'b', 'c', 'd'])
    subs = repo.list_submissions(g['code'], 1)
    assert len(subs) == 1
    assert subs[0].notes == 'second'
    assert subs[0].ranking == ['a', 'b', 'c', 'd']


def test_submit_from_outsider_is_refused(rounds, started_game):
    with pytest.raises(GameError) as excinfo:
        rounds.submit(started_game['code'], 1, 'stranger', '', ['a', 'b', 'c', 'd'])
    assert _kind(excinfo) == ErrorKind.NOT_IN_GAME


def test_submit_to_unconfigured_round(games, rounds):
    created = games.create_game(total_rounds=1)
    code, host = created['game_code'], created['host_uid']
    games.upsert_wines(code, host, [{'id': 'a', 'price': 5}])
    games.start(code, host)
    with pytest.raises(GameError) as excinfo:
        rounds.submit(code, 1, host, '', ['a'])
    assert _kind(excinfo) == ErrorKind.ROUND_NOT_CONFIGURED


def test_close_backfills_every_missing_player_once(rounds, repo, started_game):
    g = started_game
    rounds.submit(g['code'], 1, g['alice'], 'mine', ['a', 'c', 'b', 'd'])

    result = rounds.close(g['code'], g['host'], 1)
    assert result['already_closed'] is False
    assert sorted(result['backfilled']) == sorted([g['host'], g['bob']])

    subs = {s.uid: s for s in repo.list_submissions(g['code'], 1)}
    assert set(subs) == {g['host'], g['alice'], g['bob']}
    assert subs[g['alice']].ranking == ['a', 'c', 'b', 'd']
    assert subs[g['bob']].ranking == ['a', 'b', 'c', 'd']
    assert subs[g['bob']].notes == ''


def test_close_twice_is_idempotent(rounds, repo, started_game):
    g = started_game
    rounds.close(g['code'], g['host'], 1)
    again = rounds.close(g['code'], g['host'], 1)
    assert again['already_closed'] is True
    assert again['backfilled'] == []
    assert len(repo.list_submissions(g['code'], 1)) == 3


def test_close_uses_valid_draft(rounds, repo, started_game):
    g = started_game
    rounds.save_draft(g['code'], 1, g['bob'], 'half done', ['d', 'c', 'b', 'a'])
    rounds.save_draft(g['code'], 1, g['alice'], 'scribbles', ['d', 'zz'])
    rounds.close(g['code'], g['host'], 1)

    bob = repo.get_submission(g['code'], 1, g['bob'])
    assert bob.ranking == ['d', 'c', 'b', 'a']
    assert bob.notes == 'half done'
    alice = repo.get_submission(g['code'], 1, g['alice'])
    assert alice.ranking == ['a', 'b', 'c', 'd']
    assert alice.notes == ''


def test_close_requires_host(rounds, started_game):
    with pytest.raises(GameError) as excinfo:
        rounds.close(started_game['code'], started_game['alice'], 1)
    assert _kind(excinfo) == ErrorKind.NOT_HOST


def test_late_submit_after_close_is_refused(rounds, repo, started_game):
    g = started_game
    rounds.close(g['code'], g['host'], 1)
    backfilled = repo.get_submission(g['code'], 1, g['alice'])

    with pytest.raises(GameError) as excinfo:
        rounds.submit(g['code'], 1, g['alice'], 'too late', ['d', 'c', 'b', 'a'])
    assert _kind(excinfo) == ErrorKind.ROUND_WRONG_STATE
    assert repo.get_submission(g['code'], 1, g['alice']) == backfilled


def test_reveal_marks_tied_positions(rounds, started_game):
    g = started_game
    rounds.submit(g['code'], 1, g['alice'], '', ['a', 'd', 'b', 'c'])
    rounds.close(g['code'], g['host'], 1)

    reveal = rounds.reveal(g['code'], 1, g['alice'])
    assert reveal['points'] == 2
    assert reveal['max_points'] == 4
    assert reveal['has_ties'] is True
    assert [p['correct'] for p in reveal['positions']] == [True, False, True, False]
    assert reveal['positions'][1]['acceptable_wine_ids'] == ['b', 'c']
    assert [w['id'] for w in reveal['wines']] == ['a', 'b', 'c', 'd']
    assert reveal['wines'][0]['price'] == 10.0


def test_reveal_before_close_is_refused(rounds, started_game):
    g = started_game
    rounds.submit(g['code'], 1, g['alice'], '', ['a', 'b', 'c', 'd'])
    with pytest.raises(GameError) as excinfo:
        rounds.reveal(g['code'], 1, g['alice'])
    assert _kind(excinfo) == ErrorKind.ROUND_WRONG_STATE


def test_get_round_hides_prices_and_counts_progress(rounds, started_game):
    g = started_game
    rounds.submit(g['code'], 1, g['alice'], '', ['a', 'b', 'c', 'd'])

    view = rounds.get_round(g['code'], 1, g['bob'])
    assert view['state'] == 'open'
    assert view['players_done_count'] == 1
    assert view['players_total_count'] == 3
    assert all('price' not in w for w in view['round_wines'])
    assert 'submitted_uids' not in view

    host_view = rounds.get_round(g['code'], 1, g['host'])
    assert host_view['submitted_uids'] == [g['alice']]
