"""Tie-aware scoring for rounds and the Sommelier's Gambit.

Rounds: wines are ranked by price, most expensive first. Wines that share a
price are interchangeable at the positions their tie occupies, so a player
earns a point at a position whenever the wine they put there belongs to the
acceptable set for that position.

Gambit: +1 for picking a cheapest wine, +2 for picking a most expensive wine,
over the whole wine list. Favorites are never scored.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import FrozenSet, Iterable, List, NamedTuple, Optional, Sequence, Tuple

GAMBIT_MAX_POINTS = 3
GAMBIT_CHEAPEST_POINTS = 1
GAMBIT_MOST_EXPENSIVE_POINTS = 2


class GambitSets(NamedTuple):
    has_prices: bool
    cheapest_ids: FrozenSet[str]
    most_expensive_ids: FrozenSet[str]


class GambitScore(NamedTuple):
    cheapest_points: int
    most_expensive_points: int
    total_points: int
    max_points: int = GAMBIT_MAX_POINTS


def to_cents(value) -> Optional[int]:
    """Round a price to integer cents, or None when it is not a usable number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        try:
            return int((value * 100).to_integral_value())
        except InvalidOperation:
            return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        return int(round(value * 100))
    return None


def _pairs(wines) -> List[tuple]:
    pairs = []
    for w in wines or []:
        if isinstance(w, tuple):
            wine_id, price = w
        else:
            wine_id, price = getattr(w, 'wine_id', None), getattr(w, 'price', None)
        if not isinstance(wine_id, str) or not wine_id:
            continue
        pairs.append((wine_id, to_cents(price)))
    return pairs


def rank_by_price(wines: Iterable) -> List[Tuple[str, Optional[int]]]:
    """``(wine_id, cents)`` pairs, most expensive first, unpriced last.

    ``wines`` holds ``(wine_id, price)`` pairs or objects exposing ``wine_id``
    and ``price``. Entries without an id are dropped.
    """
    return sorted(
        _pairs(wines),
        # id only keeps the order deterministic; ties are grouped by the callers
        key=lambda p: (-p[1] if p[1] is not None else math.inf, p[0]),
    )


def build_acceptable_by_position(wines: Iterable) -> List[FrozenSet[str]]:
    """Acceptable wine ids for each 0-based position of the price ranking.

    A missing price ranks last, tied with the other missing prices.
    Prices A=30, B=20, C=20, D=10 give ``[{A}, {B, C}, {B, C}, {D}]``.
    """
    ordered = rank_by_price(wines)

    acceptable: List[FrozenSet[str]] = []
    i = 0
    while i < len(ordered):
        price = ordered[i][1]
        j = i
        while j < len(ordered) and ordered[j][1] == price:
            j += 1
        group = frozenset(wine_id for wine_id, _ in ordered[i:j])
        acceptable.extend([group] * (j - i))
        i = j
    return acceptable


def credit_positions(acceptable_by_position: Sequence[FrozenSet[str]], submitted: Sequence[str]) -> List[bool]:
    """Per-position credit for a submitted ranking.

    Scans left to right; each wine id is credited at most once, so a
    duplicated id cannot earn two points.
    """
    credited = []
    used = set()
    for acceptable, wine_id in zip(acceptable_by_position or [], submitted or []):
        ok = isinstance(wine_id, str) and bool(wine_id) and wine_id not in used and wine_id in acceptable
        if ok:
            used.add(wine_id)
        credited.append(ok)
    return credited


def score_ranking(acceptable_by_position: Sequence[FrozenSet[str]], submitted: Sequence[str]) -> int:
    return sum(credit_positions(acceptable_by_position, submitted))


def is_valid_ranking(ranking: Sequence[str], assigned_ids: Sequence[str]) -> bool:
    """True when ``ranking`` is exactly a permutation of ``assigned_ids``."""
    if not isinstance(ranking, (list, tuple)) or not assigned_ids:
        return False
    if len(ranking) != len(assigned_ids):
        return False
    unique = set(ranking)
    return len(unique) == len(ranking) and unique == set(assigned_ids)


def get_gambit_min_max_sets(wines: Iterable) -> GambitSets:
    priced = [(wine_id, cents) for wine_id, cents in _pairs(wines) if cents is not None]
    if not priced:
        return GambitSets(False, frozenset(), frozenset())

    low = min(cents for _, cents in priced)
    high = max(cents for _, cents in priced)
    return GambitSets(
        True,
        frozenset(wine_id for wine_id, cents in priced if cents == low),
        frozenset(wine_id for wine_id, cents in priced if cents == high),
    )


def score_gambit_picks(cheapest_pick: Optional[str], most_expensive_pick: Optional[str], sets: GambitSets) -> GambitScore:
    # one wine cannot be both answers; such a bet is void
    if cheapest_pick and cheapest_pick == most_expensive_pick:
        return GambitScore(0, 0, 0)
    cheapest = GAMBIT_CHEAPEST_POINTS if cheapest_pick and cheapest_pick in sets.cheapest_ids else 0
    most_expensive = (
        GAMBIT_MOST_EXPENSIVE_POINTS if most_expensive_pick and most_expensive_pick in sets.most_expensive_ids else 0
    )
    return GambitScore(cheapest, most_expensive, cheapest + most_expensive)


def should_include_gambit_points(status: str) -> bool:
    """Gambit points stay hidden until the host finishes the game."""
    return status == 'finished'
