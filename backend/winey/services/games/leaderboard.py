"""Standings built from completed rounds and, once revealed, the Gambit.

A round counts once it is closed *and* holds at least one ranking. Rounds are
created closed before they are ever played, so the state alone cannot tell a
finished round from one that has not started.
"""

from collections import defaultdict
from typing import Dict, List

from .directory import is_host, normalize_code, require_game, require_seated
from .errors import ErrorKind, GameError
from .scoring import (
    build_acceptable_by_position, get_gambit_min_max_sets, rank_by_price, score_gambit_picks,
    score_ranking, should_include_gambit_points,
)


def rank_entries(entries: List[dict]) -> List[dict]:
    """Sort by score (stable) and attach display ranks; equal scores share a rank."""
    ordered = sorted(entries, key=lambda e: -e['score'])
    for entry in ordered:
        entry['rank'] = 1 + sum(1 for other in ordered if other['score'] > entry['score'])
    return ordered


class Leaderboard:

    def __init__(self, repo):
        self.repo = repo

    def _round_wines(self, code, wines_by_id) -> Dict[int, list]:
        by_round = defaultdict(list)
        for rw in self.repo.list_round_wines(code):
            wine = wines_by_id.get(rw.wine_id)
            by_round[rw.round_number].append((rw.wine_id, wine.price if wine else None))
        return by_round

    def round_points(self, code, wines_by_id=None) -> Dict[int, Dict[str, int]]:
        """Points per completed round, keyed by round number then uid."""
        if wines_by_id is None:
            wines_by_id = {w.wine_id: w for w in self.repo.list_wines(code)}
        submissions = defaultdict(list)
        for s in self.repo.list_submissions(code):
            submissions[s.round_number].append(s)

        wines_by_round = self._round_wines(code, wines_by_id)
        points = {}
        for rnd in self.repo.list_rounds(code):
            subs = submissions.get(rnd.round_number)
            if rnd.state != 'closed' or not subs:
                continue
            acceptable = build_acceptable_by_position(wines_by_round.get(rnd.round_number, []))
            points[rnd.round_number] = {s.uid: score_ranking(acceptable, s.ranking) for s in subs}
        return points

    def gambit_points(self, code, wines=None) -> Dict[str, int]:
        if wines is None:
            wines = self.repo.list_wines(code)
        sets = get_gambit_min_max_sets(wines)
        return {
            g.uid: score_gambit_picks(g.cheapest_wine_id, g.most_expensive_wine_id, sets).total_points
            for g in self.repo.list_gambit_submissions(code)
        }

    def standings(self, game_code, uid=None):
        code = normalize_code(game_code)
        game = require_game(self.repo, code)
        players = self.repo.list_players(code)
        wines = self.repo.list_wines(code)

        per_round = self.round_points(code, {w.wine_id: w for w in wines})
        totals = defaultdict(int)
        for scores in per_round.values():
            for player_uid, pts in scores.items():
                totals[player_uid] += pts

        last_round = max(per_round) if per_round else None
        delta = dict(per_round[last_round]) if last_round else {}
        delta_source = 'round' if last_round else None

        # Gambit points stay out of totals and delta until the host finishes the game
        if should_include_gambit_points(game.status):
            gambit = self.gambit_points(code, wines)
            for player_uid, pts in gambit.items():
                totals[player_uid] += pts
            if gambit:
                delta = gambit
                delta_source = 'gambit'

        entries = [
            {
                'uid': p.uid,
                'name': p.name,
                'score': totals.get(p.uid, 0),
                'delta': delta.get(p.uid, 0),
            }
            for p in players
        ]
        return {
            'game_code': code,
            'status': game.status,
            'is_host': is_host(game, uid),
            'last_completed_round': last_round,
            'delta_source': delta_source,
            'leaderboard': rank_entries(entries),
        }

    def final_reveal(self, game_code, uid):
        """Everything at once, for the end-of-game export."""
        code = normalize_code(game_code)
        game = require_game(self.repo, code)
        if game.status != 'finished':
            raise GameError(
                ErrorKind.GAME_WRONG_STATUS,
                'Please wait for the host to finalize the game before viewing the full reveal.',
            )
        require_seated(self.repo, game, uid)

        players = self.repo.list_players(code)
        names = {p.uid: p.name for p in players}
        wines = self.repo.list_wines(code)
        wines_by_id = {w.wine_id: w for w in wines}
        wines_by_round = self._round_wines(code, wines_by_id)
        per_round = self.round_points(code, wines_by_id)

        rounds = []
        for number in sorted(per_round):
            price_order = rank_by_price(wines_by_round.get(number, []))
            results = [
                {
                    'uid': s.uid,
                    'name': names[s.uid],
                    'ranking': list(s.ranking),
                    'notes': s.notes,
                    'points': per_round[number].get(s.uid, 0),
                }
                for s in self.repo.list_submissions(code, number)
                if s.uid in names
            ]
            rounds.append({
                'round_number': number,
                'wines': [
                    wines_by_id[wine_id].to_dict() if wine_id in wines_by_id else {'id': wine_id, 'price': None}
                    for wine_id, _ in price_order
                ],
                'max_points': len(price_order),
                'results': results,
            })

        sets = get_gambit_min_max_sets(wines)
        picks = []
        for g in self.repo.list_gambit_submissions(code):
            if g.uid not in names:
                continue
            score = score_gambit_picks(g.cheapest_wine_id, g.most_expensive_wine_id, sets)
            picks.append(dict(g.to_dict(), name=names[g.uid], **score._asdict()))

        return {
            'game_code': code,
            'rounds': rounds,
            'gambit': {
                'has_prices': sets.has_prices,
                'cheapest_wine_ids': sorted(sets.cheapest_ids),
                'most_expensive_wine_ids': sorted(sets.most_expensive_ids),
                'picks': picks,
            },
            'leaderboard': self.standings(code, uid)['leaderboard'],
        }
