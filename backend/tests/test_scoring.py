from decimal import Decimal

from winey.services.games.scoring import (
    build_acceptable_by_position, credit_positions, get_gambit_min_max_sets, is_valid_ranking,
    rank_by_price, score_gambit_picks, score_ranking, should_include_gambit_points, to_cents,
)


def test_acceptable_sets_group_tied_prices():
    acceptable = build_acceptable_by_position([('A', 30), ('B', 20), ('C', 20), ('D', 10)])
    assert acceptable == [{'A'}, {'B', 'C'}, {'B', 'C'}, {'D'}]


def test_distinct_prices_need_exact_order():
    acceptable = build_acceptable_by_position([('A', 30), ('B', 20), ('C', 10)])
    assert acceptable == [{'A'}, {'B'}, {'C'}]
    assert score_ranking(acceptable, ['A', 'B', 'C']) == 3
    assert score_ranking(acceptable, ['C', 'B', 'A']) == 1


def test_all_equal_prices_accept_any_order():
    wines = [('A', 12), ('B', 12), ('C', 12)]
    acceptable = build_acceptable_by_position(wines)
    for ranking in (['A', 'B', 'C'], ['C', 'A', 'B'], ['B', 'C', 'A']):
        assert score_ranking(acceptable, ranking) == 3


def test_tie_aware_ranking_scores_two():
    acceptable = build_acceptable_by_position([('A', 10), ('B', 4), ('C', 4), ('D', 2)])
    assert score_ranking(acceptable, ['A', 'D', 'B', 'C']) == 2


def test_either_order_of_a_tie_scores_full_marks():
    acceptable = build_acceptable_by_position([('A', 10), ('B', 4), ('C', 4), ('D', 2)])
    assert score_ranking(acceptable, ['A', 'B', 'C', 'D']) == 4
    assert score_ranking(acceptable, ['A', 'C', 'B', 'D']) == 4


def test_duplicate_ids_are_credited_once():
    acceptable = build_acceptable_by_position([('A', 10), ('B', 4), ('C', 4), ('D', 2)])
    assert credit_positions(acceptable, ['A', 'B', 'B', 'D']) == [True, True, False, True]
    assert score_ranking(acceptable, ['A', 'A', 'A', 'A']) == 1


def test_short_or_garbage_rankings_score_partially():
    acceptable = build_acceptable_by_position([('A', 10), ('B', 4)])
    assert score_ranking(acceptable, ['A']) == 1
    assert score_ranking(acceptable, [None, 7]) == 0
    assert score_ranking(acceptable, []) == 0


def test_missing_prices_rank_last_and_tie_with_each_other():
    ordered = rank_by_price([('X', None), ('A', 5), ('Y', None)])
    assert [wine_id for wine_id, _ in ordered] == ['A', 'X', 'Y']
    acceptable = build_acceptable_by_position([('X', None), ('A', 5), ('Y', None)])
    assert acceptable == [{'A'}, {'X', 'Y'}, {'X', 'Y'}]


def test_unpriced_wines_are_interchangeable_when_scoring():
    acceptable = build_acceptable_by_position([('A', 30), ('B', None), ('C', None)])
    assert score_ranking(acceptable, ['A', 'B', 'C']) == 3
    assert score_ranking(acceptable, ['A', 'C', 'B']) == 3
    assert score_ranking(acceptable, ['B', 'A', 'C']) == 1


def test_prices_compare_at_cent_precision():
    assert to_cents(Decimal('18.50')) == to_cents(18.5) == 1850
    assert to_cents(float('nan')) is None
    assert to_cents(True) is None
    acceptable = build_acceptable_by_position([('A', Decimal('9.999')), ('B', 10)])
    assert acceptable == [{'A', 'B'}, {'A', 'B'}]


def test_valid_ranking_is_exact_permutation():
    assert is_valid_ranking(['b', 'a'], ['a', 'b'])
    assert not is_valid_ranking(['a'], ['a', 'b'])
    assert not is_valid_ranking(['a', 'a'], ['a', 'b'])
    assert not is_valid_ranking(['a', 'z'], ['a', 'b'])
    assert not is_valid_ranking([], [])


def test_gambit_scoring_without_ties():
    sets = get_gambit_min_max_sets([('A', 10), ('B', 20), ('C', 30)])
    assert score_gambit_picks('A', 'C', sets).total_points == 3
    assert score_gambit_picks('A', 'B', sets).total_points == 1
    assert score_gambit_picks('B', 'C', sets).total_points == 2
    assert score_gambit_picks('B', 'A', sets).total_points == 0


def test_gambit_scoring_with_ties():
    sets = get_gambit_min_max_sets([('A', 10), ('B', 10), ('C', 30), ('D', 30), ('E', 20)])
    assert sets.cheapest_ids == {'A', 'B'}
    assert sets.most_expensive_ids == {'C', 'D'}
    assert score_gambit_picks('B', 'D', sets).total_points == 3
    assert score_gambit_picks('A', 'C', sets).max_points == 3
    # E is priced in the middle, so it earns nothing in either slot
    assert score_gambit_picks('E', 'C', sets) == (0, 2, 2, 3)
    assert score_gambit_picks('A', 'E', sets) == (1, 0, 1, 3)
    assert score_gambit_picks('E', 'E', sets).total_points == 0


def test_gambit_same_wine_for_both_picks_is_void():
    sets = get_gambit_min_max_sets([('A', 10)])
    assert sets.cheapest_ids == sets.most_expensive_ids == {'A'}
    assert score_gambit_picks('A', 'A', sets).total_points == 0


def test_gambit_without_prices_scores_nothing():
    sets = get_gambit_min_max_sets([('A', None), ('B', None)])
    assert not sets.has_prices
    assert score_gambit_picks('A', 'B', sets).total_points == 0
    assert score_gambit_picks(None, None, sets).total_points == 0


def test_gambit_points_only_count_once_finished():
    assert should_include_gambit_points('finished')
    for status in ('setup', 'lobby', 'in_progress', 'gambit'):
        assert not should_include_gambit_points(status)
