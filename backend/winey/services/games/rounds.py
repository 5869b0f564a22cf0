"""Round lifecycle: submissions, drafts, closing with backfill, and reveal.

Submissions are stored unscored. Scoring happens when a round is revealed or
the leaderboard is read, against the wine prices at that moment.
"""

import logging
from typing import List

from .directory import is_host, normalize_code, require_game, require_host, require_seated
from .errors import ErrorKind, GameError
from .locks import game_locks
from .records import SubmissionRecord, utcnow
from .scoring import build_acceptable_by_position, credit_positions, is_valid_ranking, rank_by_price

log = logging.getLogger(__name__)


def _clean_ids(ranking) -> List[str]:
    if not isinstance(ranking, (list, tuple)):
        return []
    return [x for x in ranking if isinstance(x, str)]


class RoundController:

    def __init__(self, repo, locks=None):
        self.repo = repo
        self.locks = locks if locks is not None else game_locks

    def assigned_wine_ids(self, game_code: str, round_number: int) -> List[str]:
        """The round's wines in assignment order."""
        return [rw.wine_id for rw in self.repo.list_round_wines(game_code, round_number) if rw.wine_id]

    def _require_open_current_round(self, game, round_number):
        if game.status != 'in_progress':
            raise GameError(ErrorKind.GAME_WRONG_STATUS, 'This game is not in progress.')
        if round_number != game.current_round:
            raise GameError(ErrorKind.ROUND_WRONG_STATE, 'This round is no longer active.')
        rnd = self.repo.get_round(game.game_code, round_number)
        if not rnd:
            raise GameError(ErrorKind.NOT_FOUND, 'Round not found.')
        if rnd.state != 'open':
            raise GameError(ErrorKind.ROUND_WRONG_STATE, 'This round is closed.')

    def submit(self, game_code, round_number, uid, notes, ranking):
        code = normalize_code(game_code)
        with self.locks.hold(code), self.repo.transaction(code):
            game = require_game(self.repo, code, for_update=True)
            self._require_open_current_round(game, round_number)
            require_seated(self.repo, game, uid)

            assigned = self.assigned_wine_ids(code, round_number)
            if not assigned:
                raise GameError(ErrorKind.ROUND_NOT_CONFIGURED)
            if not is_valid_ranking(ranking, assigned):
                raise GameError(ErrorKind.INVALID_RANKING)

            self.repo.upsert_submission(code, SubmissionRecord(
                round_number=round_number, uid=uid, notes=notes or '', ranking=list(ranking),
            ))
        log.info(f"[submit] game={code} round={round_number} uid={uid}")
        return {'ok': True}

    def save_draft(self, game_code, round_number, uid, notes, ranking):
        """Keep a player's in-progress order; only the close-time backfill reads it."""
        code = normalize_code(game_code)
        with self.locks.hold(code), self.repo.transaction(code):
            game = require_game(self.repo, code, for_update=True)
            self._require_open_current_round(game, round_number)
            require_seated(self.repo, game, uid)
            self.repo.upsert_draft(code, SubmissionRecord(
                round_number=round_number, uid=uid, notes=notes or '', ranking=_clean_ids(ranking),
            ))
        return {'ok': True}

    def close(self, game_code, host_uid, round_number):
        code = normalize_code(game_code)
        with self.locks.hold(code), self.repo.transaction(code):
            game = require_game(self.repo, code, for_update=True)
            require_host(game, host_uid)

            already = {'ok': True, 'round_number': round_number, 'already_closed': True, 'backfilled': []}
            if game.status in ('gambit', 'finished'):
                return already
            if game.status != 'in_progress':
                raise GameError(ErrorKind.GAME_WRONG_STATUS, 'This game has not started yet.')

            rnd = self.repo.get_round(code, round_number)
            if not rnd:
                raise GameError(ErrorKind.NOT_FOUND, 'Round not found.')
            if round_number > game.current_round:
                raise GameError(ErrorKind.ROUND_WRONG_STATE, 'This round has not started yet.')
            if round_number < game.current_round or rnd.state == 'closed':
                return already

            assigned = self.assigned_wine_ids(code, round_number)
            if not assigned:
                raise GameError(ErrorKind.ROUND_NOT_CONFIGURED)

            backfilled = self._backfill(code, round_number, assigned)
            self.repo.set_round_state(code, round_number, 'closed')

        log.info(f"[close] game={code} round={round_number} backfilled={len(backfilled)}")
        return {'ok': True, 'round_number': round_number, 'already_closed': False, 'backfilled': backfilled}

    def _backfill(self, code, round_number, assigned) -> List[str]:
        """Give every seated player without a submission exactly one.

        A saved draft is used when it is a legal ranking of the round's wines;
        otherwise the player gets the assignment order with empty notes.
        """
        submitted = {s.uid for s in self.repo.list_submissions(code, round_number)}
        drafts = {d.uid: d for d in self.repo.list_drafts(code, round_number)}
        filled = []
        for player in self.repo.list_players(code):
            if player.uid in submitted:
                continue
            draft = drafts.get(player.uid)
            if draft and is_valid_ranking(draft.ranking, assigned):
                notes, ranking, source = draft.notes, list(draft.ranking), 'draft'
            else:
                notes, ranking, source = '', list(assigned), 'default'
            self.repo.upsert_submission(code, SubmissionRecord(
                round_number=round_number, uid=player.uid, notes=notes, ranking=ranking, submitted_at=utcnow(),
            ))
            log.info(f"[backfill] game={code} round={round_number} uid={player.uid} source={source}")
            filled.append(player.uid)
        return filled

    def reveal(self, game_code, round_number, uid):
        code = normalize_code(game_code)
        game = require_game(self.repo, code)
        rnd = self.repo.get_round(code, round_number)
        if not rnd:
            raise GameError(ErrorKind.NOT_FOUND, 'Round not found.')
        if rnd.state != 'closed':
            raise GameError(ErrorKind.ROUND_WRONG_STATE, 'This round has not been closed yet.')
        require_seated(self.repo, game, uid)
        submission = self.repo.get_submission(code, round_number, uid)
        if not submission:
            raise GameError(ErrorKind.NOT_FOUND, 'You have no ranking for this round.')

        wines_by_id = {w.wine_id: w for w in self.repo.list_wines(code)}
        assigned = [
            (wine_id, wines_by_id[wine_id].price if wine_id in wines_by_id else None)
            for wine_id in self.assigned_wine_ids(code, round_number)
        ]
        acceptable = build_acceptable_by_position(assigned)
        credited = credit_positions(acceptable, submission.ranking)

        positions = []
        for i, ids in enumerate(acceptable):
            positions.append({
                'position': i + 1,
                'submitted_wine_id': submission.ranking[i] if i < len(submission.ranking) else None,
                'acceptable_wine_ids': sorted(ids),
                'correct': credited[i] if i < len(credited) else False,
                'tied': len(ids) > 1,
            })

        wines = []
        for rank, (wine_id, _) in enumerate(rank_by_price(assigned), start=1):
            wine = wines_by_id.get(wine_id)
            data = wine.to_dict() if wine else {'id': wine_id, 'price': None}
            data['rank'] = rank
            wines.append(data)

        return {
            'game_code': code,
            'round_number': round_number,
            'wines': wines,
            'positions': positions,
            'has_ties': any(p['tied'] for p in positions),
            'notes': submission.notes,
            'ranking': list(submission.ranking),
            'points': sum(1 for ok in credited if ok),
            'max_points': len(acceptable),
        }

    def get_round(self, game_code, round_number, uid):
        code = normalize_code(game_code)
        game = require_game(self.repo, code)
        require_seated(self.repo, game, uid)
        host = is_host(game, uid)
        if not host and game.status in ('setup', 'lobby'):
            raise GameError(ErrorKind.GAME_WRONG_STATUS, 'This game has not started yet.')
        rnd = self.repo.get_round(code, round_number)
        if not rnd:
            raise GameError(ErrorKind.NOT_FOUND, 'Round not found.')

        seated = {p.uid for p in self.repo.list_players(code)}
        done = [s for s in self.repo.list_submissions(code, round_number) if s.uid in seated]
        mine = next((s for s in done if s.uid == uid), None)
        draft = self.repo.get_draft(code, round_number, uid)

        wines_by_id = {w.wine_id: w for w in self.repo.list_wines(code)}
        round_wines = []
        for wine_id in self.assigned_wine_ids(code, round_number):
            wine = wines_by_id.get(wine_id)
            round_wines.append({
                'id': wine_id,
                'letter': wine.letter if wine else '',
                'nickname': wine.nickname if wine else '',
            })

        payload = {
            'game_code': code,
            'round_number': rnd.round_number,
            'total_rounds': game.total_rounds,
            'game_status': game.status,
            'current_round': game.current_round,
            'state': rnd.state,
            'is_host': host,
            'round_wines': round_wines,
            'players_done_count': len(done),
            'players_total_count': len(seated),
            'my_submission': mine.to_dict() if mine else None,
            'my_draft': draft.to_dict() if draft else None,
        }
        if host:
            payload['submitted_uids'] = [s.uid for s in done]
        return payload
