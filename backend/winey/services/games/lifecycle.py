"""Game lifecycle: setup -> lobby -> in_progress -> gambit -> finished.

The transitions are linear. Host actions that may be double-clicked
(advance, finish) report ``already_finished`` instead of failing once the
game has moved past them.
"""

import logging
import secrets
import uuid
from decimal import Decimal
from typing import Iterable, List

from .directory import (
    is_host, normalize_code, require_game, require_host, require_seated,
)
from .errors import DuplicateGameCode, ErrorKind, GameError
from .locks import game_locks
from .records import GameRecord, GambitRecord, PlayerRecord, RoundWineRecord, WineRecord, utcnow
from .scoring import get_gambit_min_max_sets, score_gambit_picks, to_cents

log = logging.getLogger(__name__)

CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
PRE_GAME_STATUSES = ('setup', 'lobby')
CREATE_ATTEMPTS = 5


def generate_game_code(length=6):
    """Random code without look-alike characters (no I, O, 0, 1)."""
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def new_uid():
    return uuid.uuid4().hex


def price_from_input(value):
    """Dollar amount normalized to cents precision, or None."""
    cents = to_cents(value)
    return Decimal(cents) / 100 if cents is not None else None


class GameController:

    def __init__(self, repo, locks=None, default_total_rounds=3):
        self.repo = repo
        self.locks = locks if locks is not None else game_locks
        self.default_total_rounds = default_total_rounds

    # ---- setup and lobby ----

    def create_game(self, host_name=None, total_rounds=None, setup_players=None,
                    setup_bottles=None, setup_bottles_per_round=None):
        rounds = int(total_rounds or self.default_total_rounds)
        host_uid = new_uid()
        host = PlayerRecord(uid=host_uid, name=(host_name or '').strip() or 'Host')

        for attempt in range(1, CREATE_ATTEMPTS + 1):
            code = generate_game_code()
            if self.repo.game_code_exists(code):
                continue
            game = GameRecord(
                game_code=code,
                host_uid=host_uid,
                status='setup',
                current_round=1,
                total_rounds=rounds,
                setup_players=setup_players,
                setup_bottles=setup_bottles,
                setup_bottles_per_round=setup_bottles_per_round,
            )
            try:
                with self.locks.hold(code), self.repo.transaction(code):
                    self.repo.create_game(game, host)
            except DuplicateGameCode:
                # another request took the code between the check and the insert
                log.warning(f"[create] code collision game={code} attempt={attempt}")
                if attempt == CREATE_ATTEMPTS:
                    raise
                continue
            log.info(f"[create] game={code} rounds={rounds}")
            return {'game_code': code, 'host_uid': host_uid}
        raise DuplicateGameCode('no free game code')

    def join_game(self, game_code, player_name):
        code = normalize_code(game_code)
        with self.locks.hold(code), self.repo.transaction(code):
            game = require_game(self.repo, code, for_update=True)
            if game.status not in PRE_GAME_STATUSES:
                raise GameError(ErrorKind.GAME_WRONG_STATUS, 'This game has already started.')
            if game.setup_players and len(self.repo.list_players(code)) >= game.setup_players:
                raise GameError(ErrorKind.GAME_FULL)

            uid = new_uid()
            self.repo.add_player(code, PlayerRecord(uid=uid, name=(player_name or '').strip() or 'Player'))
            if game.status == 'setup':
                self.repo.update_game(code, status='lobby')
        log.info(f"[join] game={code} uid={uid}")
        return {'game_code': code, 'uid': uid}

    def get_game(self, game_code, uid=None):
        code = normalize_code(game_code)
        game = require_game(self.repo, code)
        players = self.repo.list_players(code)
        if uid and not is_host(game, uid) and not any(p.uid == uid for p in players):
            raise GameError(ErrorKind.NOT_IN_GAME, 'You were removed from the lobby.')
        return {
            'game_code': game.game_code,
            'status': game.status,
            'current_round': game.current_round,
            'total_rounds': game.total_rounds,
            'created_at': game.created_at.isoformat() if game.created_at else None,
            'started_at': game.started_at.isoformat() if game.started_at else None,
            'setup_players': game.setup_players,
            'setup_bottles': game.setup_bottles,
            'setup_bottles_per_round': game.setup_bottles_per_round,
            'players': [p.to_dict() for p in players],
            'host_uid': game.host_uid,
            'is_host': is_host(game, uid),
        }

    def boot_player(self, game_code, host_uid, player_uid):
        code = normalize_code(game_code)
        with self.locks.hold(code), self.repo.transaction(code):
            game = require_game(self.repo, code, for_update=True)
            require_host(game, host_uid)
            if player_uid == game.host_uid:
                raise GameError(ErrorKind.CANNOT_BOOT_HOST)
            # submissions stay in storage; the player just leaves the seat list
            removed = self.repo.remove_player(code, player_uid)
        log.info(f"[boot] game={code} uid={player_uid} removed={removed}")
        return {'ok': True, 'removed': removed}

    # ---- wine list and round assignments (host-only) ----

    def list_wines(self, game_code, host_uid):
        code = normalize_code(game_code)
        require_host(require_game(self.repo, code), host_uid)
        return [w.to_dict() for w in self.repo.list_wines(code)]

    def upsert_wines(self, game_code, host_uid, wines: Iterable[dict]):
        code = normalize_code(game_code)
        with self.locks.hold(code), self.repo.transaction(code):
            game = require_game(self.repo, code, for_update=True)
            require_host(game, host_uid)
            if game.status == 'finished':
                raise GameError(ErrorKind.GAME_WRONG_STATUS, 'This game is finished.')
            wines = list(wines)
            if game.status not in PRE_GAME_STATUSES:
                # the list Start validated stays complete: same wines, all priced
                existing = {w.wine_id for w in self.repo.list_wines(code)}
                for w in wines:
                    if w['id'] not in existing:
                        raise GameError(ErrorKind.GAME_WRONG_STATUS, 'Wines cannot be added once the game has started.')
                    if price_from_input(w.get('price')) is None:
                        raise GameError(ErrorKind.WINE_LIST_INCOMPLETE, f"Wine {w['id']} needs a price.")
            self.repo.upsert_wines(code, [
                WineRecord(
                    wine_id=w['id'],
                    letter=w.get('letter') or '',
                    label_blinded=w.get('label_blinded') or '',
                    nickname=w.get('nickname') or '',
                    price=price_from_input(w.get('price')),
                )
                for w in wines
            ])
        return {'ok': True}

    def delete_wine(self, game_code, host_uid, wine_id):
        code = normalize_code(game_code)
        with self.locks.hold(code), self.repo.transaction(code):
            game = require_game(self.repo, code, for_update=True)
            require_host(game, host_uid)
            if game.status not in PRE_GAME_STATUSES:
                raise GameError(ErrorKind.GAME_WRONG_STATUS, 'Wines cannot be removed once the game has started.')
            removed = self.repo.delete_wine(code, wine_id)
            remaining = [rw for rw in self.repo.list_round_wines(code) if rw.wine_id != wine_id]
            self.repo.replace_round_wines(code, remaining)
        return {'ok': True, 'removed': removed}

    def get_assignments(self, game_code, host_uid):
        code = normalize_code(game_code)
        game = require_game(self.repo, code)
        require_host(game, host_uid)
        by_round = {n: [] for n in range(1, game.total_rounds + 1)}
        for rw in self.repo.list_round_wines(code):
            by_round.setdefault(rw.round_number, []).append(rw.wine_id)
        return [{'round_number': n, 'wine_ids': ids} for n, ids in sorted(by_round.items())]

    def set_assignments(self, game_code, host_uid, assignments: Iterable[dict]):
        """Replace round assignments. Rounds that already hold rankings keep theirs."""
        code = normalize_code(game_code)
        with self.locks.hold(code), self.repo.transaction(code):
            game = require_game(self.repo, code, for_update=True)
            require_host(game, host_uid)
            if game.status in ('gambit', 'finished'):
                raise GameError(ErrorKind.GAME_WRONG_STATUS, 'Round play is over.')

            known = {w.wine_id for w in self.repo.list_wines(code)}
            frozen = {s.round_number for s in self.repo.list_submissions(code)}
            if game.status == 'in_progress':
                frozen.update(range(1, game.current_round + 1))

            rows = [rw for rw in self.repo.list_round_wines(code) if rw.round_number in frozen]
            placed = {rw.wine_id: rw.round_number for rw in rows}
            seen_rounds = set()
            for a in assignments:
                number = a['round_number']
                if number < 1 or number > game.total_rounds or number in frozen:
                    continue
                if number in seen_rounds:
                    raise GameError(ErrorKind.INVALID_ASSIGNMENT, f'Round {number} is listed twice.')
                seen_rounds.add(number)
                for position, wine_id in enumerate(a.get('wine_ids') or [], start=1):
                    if wine_id not in known:
                        raise GameError(ErrorKind.NOT_FOUND, f'Unknown wine {wine_id}.')
                    if wine_id in placed:
                        raise GameError(
                            ErrorKind.INVALID_ASSIGNMENT, f'Wine {wine_id} is already in round {placed[wine_id]}.',
                        )
                    placed[wine_id] = number
                    rows.append(RoundWineRecord(round_number=number, wine_id=wine_id, position=position))
            self.repo.replace_round_wines(code, rows)
        return {'ok': True}

    # ---- round play ----

    def _wine_list_complete(self, game) -> bool:
        wines = self.repo.list_wines(game.game_code)
        if not wines:
            return False
        if game.setup_bottles and len(wines) != game.setup_bottles:
            return False
        return all(w.price is not None for w in wines)

    def start(self, game_code, host_uid):
        code = normalize_code(game_code)
        with self.locks.hold(code), self.repo.transaction(code):
            game = require_game(self.repo, code, for_update=True)
            require_host(game, host_uid)
            if game.status not in PRE_GAME_STATUSES:
                raise GameError(ErrorKind.GAME_WRONG_STATUS, 'This game has already started.')
            if not self._wine_list_complete(game):
                raise GameError(ErrorKind.WINE_LIST_INCOMPLETE)

            self.repo.update_game(code, status='in_progress', started_at=utcnow(), current_round=1)
            for rnd in self.repo.list_rounds(code):
                self.repo.set_round_state(code, rnd.round_number, 'open' if rnd.round_number == 1 else 'closed')
        log.info(f"[start] game={code}")
        return {'ok': True, 'current_round': 1}

    def advance_round(self, game_code, host_uid):
        code = normalize_code(game_code)
        with self.locks.hold(code), self.repo.transaction(code):
            game = require_game(self.repo, code, for_update=True)
            require_host(game, host_uid)
            if game.status in ('gambit', 'finished'):
                return {'ok': True, 'finished': True, 'already_finished': True, 'next_round': None}
            if game.status != 'in_progress':
                raise GameError(ErrorKind.GAME_WRONG_STATUS, 'This game has not started yet.')

            current = self.repo.get_round(code, game.current_round)
            if not current:
                raise GameError(ErrorKind.NOT_FOUND, 'Round not found.')
            if current.state != 'closed':
                raise GameError(ErrorKind.ROUND_WRONG_STATE, 'Please close the current round before proceeding.')

            if game.current_round >= game.total_rounds:
                self.repo.update_game(code, status='gambit')
                log.info(f"[advance] game={code} round={game.current_round} -> gambit")
                return {'ok': True, 'finished': True, 'already_finished': False, 'next_round': None}

            next_round = game.current_round + 1
            self.repo.update_game(code, current_round=next_round)
            self.repo.set_round_state(code, next_round, 'open')
        log.info(f"[advance] game={code} round {game.current_round} -> {next_round}")
        return {'ok': True, 'finished': False, 'already_finished': False, 'next_round': next_round}

    # ---- Sommelier's Gambit ----

    def submit_gambit(self, game_code, uid, cheapest_wine_id, most_expensive_wine_id, favorite_wine_ids):
        code = normalize_code(game_code)
        with self.locks.hold(code), self.repo.transaction(code):
            game = require_game(self.repo, code, for_update=True)
            if game.status != 'gambit':
                raise GameError(ErrorKind.GAME_WRONG_STATUS, "Sommelier's Gambit is not open.")
            require_seated(self.repo, game, uid)

            known = {w.wine_id for w in self.repo.list_wines(code)}
            favorites = list(dict.fromkeys(favorite_wine_ids or []))
            if cheapest_wine_id not in known or most_expensive_wine_id not in known:
                raise GameError(ErrorKind.INVALID_GAMBIT_PICK, 'Pick wines from the wine list.')
            if cheapest_wine_id == most_expensive_wine_id:
                raise GameError(ErrorKind.INVALID_GAMBIT_PICK)
            if not favorites or any(f not in known for f in favorites):
                raise GameError(ErrorKind.INVALID_GAMBIT_PICK, 'Choose at least one favorite from the wine list.')

            self.repo.upsert_gambit_submission(code, GambitRecord(
                uid=uid,
                cheapest_wine_id=cheapest_wine_id,
                most_expensive_wine_id=most_expensive_wine_id,
                favorite_wine_ids=favorites,
            ))
        log.info(f"[gambit] game={code} uid={uid}")
        return {'ok': True}

    def get_gambit(self, game_code, uid):
        code = normalize_code(game_code)
        game = require_game(self.repo, code)
        if game.status not in ('gambit', 'finished'):
            raise GameError(ErrorKind.GAME_WRONG_STATUS, "Sommelier's Gambit isn't available yet.")
        require_seated(self.repo, game, uid)

        finished = game.status == 'finished'
        wines = self.repo.list_wines(code)
        seated = {p.uid for p in self.repo.list_players(code)}
        submissions = [g for g in self.repo.list_gambit_submissions(code) if g.uid in seated]
        mine = next((g for g in submissions if g.uid == uid), None)

        payload = {
            'game_code': code,
            'status': game.status,
            'wines': [w.to_dict(include_price=finished) for w in wines],
            'my_submission': mine.to_dict() if mine else None,
            'submitted_count': len(submissions),
            'players_total_count': len(seated),
        }
        if finished:
            sets = get_gambit_min_max_sets(wines)
            score = score_gambit_picks(
                mine.cheapest_wine_id if mine else None,
                mine.most_expensive_wine_id if mine else None,
                sets,
            )
            payload['cheapest_wine_ids'] = sorted(sets.cheapest_ids)
            payload['most_expensive_wine_ids'] = sorted(sets.most_expensive_ids)
            payload['my_result'] = score._asdict()
        return payload

    def finish_game(self, game_code, host_uid):
        code = normalize_code(game_code)
        with self.locks.hold(code), self.repo.transaction(code):
            game = require_game(self.repo, code, for_update=True)
            require_host(game, host_uid)
            if game.status == 'finished':
                return {'ok': True, 'already_finished': True, 'backfilled': []}
            if game.status != 'gambit':
                raise GameError(ErrorKind.GAME_WRONG_STATUS, 'This game is not in the Gambit phase.')

            backfilled = self._backfill_gambit(code)
            self.repo.update_game(code, status='finished')
        log.info(f"[finish] game={code} backfilled={len(backfilled)}")
        return {'ok': True, 'already_finished': False, 'backfilled': backfilled}

    def _backfill_gambit(self, code) -> List[str]:
        """Blank picks for seated players who never bet; they score zero, never a guess."""
        have = {g.uid for g in self.repo.list_gambit_submissions(code)}
        filled = []
        for player in self.repo.list_players(code):
            if player.uid in have:
                continue
            self.repo.upsert_gambit_submission(code, GambitRecord(uid=player.uid))
            filled.append(player.uid)
        return filled
