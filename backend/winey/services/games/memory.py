"""In-memory ``GameRepository`` used by the service tests.

Each instance owns its own state; nothing is process-global.
"""

import copy
from contextlib import contextmanager
from dataclasses import replace

from .records import RoundRecord
from .errors import DuplicateGameCode
from .repository import GameRepository, _sort_round_wines


class _GameState:
    def __init__(self, game):
        self.game = game
        self.players = []
        self.wines = {}
        self.rounds = {}
        self.round_wines = []
        self.submissions = {}
        self.drafts = {}
        self.gambit = {}


class InMemoryRepository(GameRepository):

    def __init__(self):
        self._games = {}

    @contextmanager
    def transaction(self, game_code=None):
        # on error only the named game is restored
        if game_code is None:
            snapshot = copy.deepcopy(self._games)
        else:
            snapshot = copy.deepcopy(self._games.get(game_code))
        try:
            yield
        except Exception:
            if game_code is None:
                self._games = snapshot
            elif snapshot is None:
                self._games.pop(game_code, None)
            else:
                self._games[game_code] = snapshot
            raise

    def _state(self, game_code):
        return self._games.get(game_code)

    # games
    def get_game(self, game_code):
        state = self._state(game_code)
        return replace(state.game) if state else None

    def lock_game(self, game_code):
        return self.get_game(game_code)

    def game_code_exists(self, game_code):
        return game_code in self._games

    def create_game(self, game, host):
        if game.game_code in self._games:
            raise DuplicateGameCode(game.game_code)
        state = _GameState(replace(game))
        state.players.append(replace(host))
        for number in range(1, game.total_rounds + 1):
            state.rounds[number] = RoundRecord(round_number=number, state='closed')
        self._games[game.game_code] = state

    def update_game(self, game_code, **fields):
        state = self._state(game_code)
        state.game = replace(state.game, **fields)

    # players
    def list_players(self, game_code):
        return [replace(p) for p in self._state(game_code).players]

    def get_player(self, game_code, uid):
        for p in self._state(game_code).players:
            if p.uid == uid:
                return replace(p)
        return None

    def add_player(self, game_code, player):
        self._state(game_code).players.append(replace(player))

    def remove_player(self, game_code, uid):
        state = self._state(game_code)
        before = len(state.players)
        state.players = [p for p in state.players if p.uid != uid]
        return len(state.players) != before

    # wines
    def list_wines(self, game_code):
        return [replace(w) for w in self._state(game_code).wines.values()]

    def upsert_wines(self, game_code, wines):
        state = self._state(game_code)
        for wine in wines:
            state.wines[wine.wine_id] = replace(wine)

    def delete_wine(self, game_code, wine_id):
        return self._state(game_code).wines.pop(wine_id, None) is not None

    # rounds
    def list_rounds(self, game_code):
        state = self._state(game_code)
        return [replace(state.rounds[n]) for n in sorted(state.rounds)]

    def get_round(self, game_code, round_number):
        found = self._state(game_code).rounds.get(round_number)
        return replace(found) if found else None

    def set_round_state(self, game_code, round_number, state):
        rounds = self._state(game_code).rounds
        if round_number in rounds:
            rounds[round_number] = replace(rounds[round_number], state=state)

    def list_round_wines(self, game_code, round_number=None):
        rows = self._state(game_code).round_wines
        if round_number is not None:
            rows = [rw for rw in rows if rw.round_number == round_number]
        return _sort_round_wines(replace(rw) for rw in rows)

    def replace_round_wines(self, game_code, rows):
        self._state(game_code).round_wines = [replace(rw) for rw in rows]

    # round submissions and drafts
    def list_submissions(self, game_code, round_number=None):
        subs = self._state(game_code).submissions.values()
        return [replace(s) for s in subs if round_number is None or s.round_number == round_number]

    def get_submission(self, game_code, round_number, uid):
        found = self._state(game_code).submissions.get((round_number, uid))
        return replace(found) if found else None

    def upsert_submission(self, game_code, submission):
        self._state(game_code).submissions[(submission.round_number, submission.uid)] = replace(
            submission, ranking=list(submission.ranking),
        )

    def list_drafts(self, game_code, round_number):
        drafts = self._state(game_code).drafts.values()
        return [replace(d) for d in drafts if d.round_number == round_number]

    def get_draft(self, game_code, round_number, uid):
        found = self._state(game_code).drafts.get((round_number, uid))
        return replace(found) if found else None

    def upsert_draft(self, game_code, draft):
        self._state(game_code).drafts[(draft.round_number, draft.uid)] = replace(draft, ranking=list(draft.ranking))

    # gambit
    def list_gambit_submissions(self, game_code):
        return [replace(g) for g in self._state(game_code).gambit.values()]

    def get_gambit_submission(self, game_code, uid):
        found = self._state(game_code).gambit.get(uid)
        return replace(found) if found else None

    def upsert_gambit_submission(self, game_code, submission):
        self._state(game_code).gambit[submission.uid] = replace(
            submission, favorite_wine_ids=list(submission.favorite_wine_ids),
        )
