"""Storage seam for the game services.

``GameRepository`` is the CRUD surface the controllers consume. The
SQLAlchemy implementation below is used by the Flask app; tests may use
``winey.services.games.memory.InMemoryRepository`` which implements the same
interface.
"""

import json
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError

from winey import db
from winey.models import (
    Game, Player, Wine, Round, RoundWine, RoundSubmission, RoundDraft, GambitSubmission,
)
from .records import (
    GameRecord, PlayerRecord, WineRecord, RoundRecord, RoundWineRecord,
    SubmissionRecord, GambitRecord, utcnow,
)
from .errors import DuplicateGameCode
from .scoring import to_cents


class GameRepository(ABC):

    @contextmanager
    def transaction(self, game_code=None):
        """Run a unit of work; ``game_code`` names the game it mutates, when known."""
        yield

    # games
    @abstractmethod
    def get_game(self, game_code: str) -> Optional[GameRecord]: ...

    @abstractmethod
    def lock_game(self, game_code: str) -> Optional[GameRecord]:
        """Read the game for a mutation, holding a row lock where the store has one."""

    @abstractmethod
    def game_code_exists(self, game_code: str) -> bool: ...

    @abstractmethod
    def create_game(self, game: GameRecord, host: PlayerRecord) -> None:
        """Insert the game, its host seat and ``total_rounds`` closed rounds.

        Raises ``DuplicateGameCode`` when the code is already taken.
        """

    @abstractmethod
    def update_game(self, game_code: str, **fields) -> None: ...

    # players
    @abstractmethod
    def list_players(self, game_code: str) -> List[PlayerRecord]:
        """Seated players in join order."""

    @abstractmethod
    def get_player(self, game_code: str, uid: str) -> Optional[PlayerRecord]: ...

    @abstractmethod
    def add_player(self, game_code: str, player: PlayerRecord) -> None: ...

    @abstractmethod
    def remove_player(self, game_code: str, uid: str) -> bool: ...

    # wines
    @abstractmethod
    def list_wines(self, game_code: str) -> List[WineRecord]: ...

    @abstractmethod
    def upsert_wines(self, game_code: str, wines: Iterable[WineRecord]) -> None: ...

    @abstractmethod
    def delete_wine(self, game_code: str, wine_id: str) -> bool: ...

    # rounds
    @abstractmethod
    def list_rounds(self, game_code: str) -> List[RoundRecord]: ...

    @abstractmethod
    def get_round(self, game_code: str, round_number: int) -> Optional[RoundRecord]: ...

    @abstractmethod
    def set_round_state(self, game_code: str, round_number: int, state: str) -> None: ...

    @abstractmethod
    def list_round_wines(self, game_code: str, round_number: int = None) -> List[RoundWineRecord]:
        """Assignments ordered by round, then position, then wine id."""

    @abstractmethod
    def replace_round_wines(self, game_code: str, rows: Iterable[RoundWineRecord]) -> None: ...

    # round submissions and drafts
    @abstractmethod
    def list_submissions(self, game_code: str, round_number: int = None) -> List[SubmissionRecord]: ...

    @abstractmethod
    def get_submission(self, game_code: str, round_number: int, uid: str) -> Optional[SubmissionRecord]: ...

    @abstractmethod
    def upsert_submission(self, game_code: str, submission: SubmissionRecord) -> None: ...

    @abstractmethod
    def list_drafts(self, game_code: str, round_number: int) -> List[SubmissionRecord]: ...

    @abstractmethod
    def get_draft(self, game_code: str, round_number: int, uid: str) -> Optional[SubmissionRecord]: ...

    @abstractmethod
    def upsert_draft(self, game_code: str, draft: SubmissionRecord) -> None: ...

    # gambit
    @abstractmethod
    def list_gambit_submissions(self, game_code: str) -> List[GambitRecord]: ...

    @abstractmethod
    def get_gambit_submission(self, game_code: str, uid: str) -> Optional[GambitRecord]: ...

    @abstractmethod
    def upsert_gambit_submission(self, game_code: str, submission: GambitRecord) -> None: ...


def _sort_round_wines(rows):
    return sorted(
        rows,
        key=lambda r: (r.round_number, r.position if r.position is not None else float('inf'), r.wine_id),
    )


class SqlAlchemyRepository(GameRepository):
    """Flask-SQLAlchemy backed repository; one commit per ``transaction()``."""

    def __init__(self, session=None):
        self.session = session or db.session

    @contextmanager
    def transaction(self, game_code=None):
        try:
            yield
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _game(self, game_code):
        return Game.query.filter_by(game_code=game_code).first()

    def _game_id(self, game_code):
        game = self._game(game_code)
        return game.id if game else None

    # games
    def get_game(self, game_code):
        game = self._game(game_code)
        return game.to_record() if game else None

    def lock_game(self, game_code):
        # Postgres holds the row until commit; SQLite ignores FOR UPDATE
        game = Game.query.filter_by(game_code=game_code).with_for_update().first()
        return game.to_record() if game else None

    def game_code_exists(self, game_code):
        return Game.query.filter_by(game_code=game_code).first() is not None

    def create_game(self, game, host):
        row = Game(
            game_code=game.game_code,
            host_uid=game.host_uid,
            status=game.status,
            current_round=game.current_round,
            total_rounds=game.total_rounds,
            setup_players=game.setup_players,
            setup_bottles=game.setup_bottles,
            setup_bottles_per_round=game.setup_bottles_per_round,
            created_at=game.created_at,
        )
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateGameCode(game.game_code) from exc
        self.session.add(Player(game_id=row.id, uid=host.uid, name=host.name, joined_at=host.joined_at))
        for number in range(1, game.total_rounds + 1):
            # rounds stay locked until the game starts
            self.session.add(Round(game_id=row.id, round_number=number, state='closed'))
        self.session.flush()

    def update_game(self, game_code, **fields):
        game = self._game(game_code)
        for name, value in fields.items():
            setattr(game, name, value)
        self.session.add(game)
        self.session.flush()

    # players
    def list_players(self, game_code):
        game_id = self._game_id(game_code)
        rows = Player.query.filter_by(game_id=game_id).order_by(Player.joined_at, Player.id).all()
        return [p.to_record() for p in rows]

    def get_player(self, game_code, uid):
        player = Player.query.filter_by(game_id=self._game_id(game_code), uid=uid).first()
        return player.to_record() if player else None

    def add_player(self, game_code, player):
        self.session.add(Player(
            game_id=self._game_id(game_code), uid=player.uid, name=player.name, joined_at=player.joined_at,
        ))
        self.session.flush()

    def remove_player(self, game_code, uid):
        deleted = Player.query.filter_by(game_id=self._game_id(game_code), uid=uid).delete()
        self.session.flush()
        return bool(deleted)

    # wines
    def list_wines(self, game_code):
        rows = Wine.query.filter_by(game_id=self._game_id(game_code)).order_by(Wine.created_at, Wine.id).all()
        return [w.to_record() for w in rows]

    def upsert_wines(self, game_code, wines):
        game_id = self._game_id(game_code)
        for wine in wines:
            row = Wine.query.filter_by(game_id=game_id, wine_id=wine.wine_id).first()
            if not row:
                row = Wine(game_id=game_id, wine_id=wine.wine_id)
            row.letter = wine.letter or ''
            row.label_blinded = wine.label_blinded or ''
            row.nickname = wine.nickname or ''
            row.price_cents = to_cents(wine.price)
            self.session.add(row)
        self.session.flush()

    def delete_wine(self, game_code, wine_id):
        deleted = Wine.query.filter_by(game_id=self._game_id(game_code), wine_id=wine_id).delete()
        self.session.flush()
        return bool(deleted)

    # rounds
    def list_rounds(self, game_code):
        rows = Round.query.filter_by(game_id=self._game_id(game_code)).order_by(Round.round_number).all()
        return [r.to_record() for r in rows]

    def get_round(self, game_code, round_number):
        row = Round.query.filter_by(game_id=self._game_id(game_code), round_number=round_number).first()
        return row.to_record() if row else None

    def set_round_state(self, game_code, round_number, state):
        Round.query.filter_by(game_id=self._game_id(game_code), round_number=round_number).update({'state': state})
        self.session.flush()

    def list_round_wines(self, game_code, round_number=None):
        query = RoundWine.query.filter_by(game_id=self._game_id(game_code))
        if round_number is not None:
            query = query.filter_by(round_number=round_number)
        return _sort_round_wines(rw.to_record() for rw in query.all())

    def replace_round_wines(self, game_code, rows):
        game_id = self._game_id(game_code)
        RoundWine.query.filter_by(game_id=game_id).delete()
        for rw in rows:
            self.session.add(RoundWine(
                game_id=game_id, round_number=rw.round_number, wine_id=rw.wine_id, position=rw.position,
            ))
        self.session.flush()

    # round submissions and drafts
    def list_submissions(self, game_code, round_number=None):
        query = RoundSubmission.query.filter_by(game_id=self._game_id(game_code))
        if round_number is not None:
            query = query.filter_by(round_number=round_number)
        return [s.to_record() for s in query.order_by(RoundSubmission.round_number, RoundSubmission.id).all()]

    def get_submission(self, game_code, round_number, uid):
        row = RoundSubmission.query.filter_by(
            game_id=self._game_id(game_code), round_number=round_number, uid=uid,
        ).first()
        return row.to_record() if row else None

    def upsert_submission(self, game_code, submission):
        game_id = self._game_id(game_code)
        row = RoundSubmission.query.filter_by(
            game_id=game_id, round_number=submission.round_number, uid=submission.uid,
        ).first()
        if not row:
            row = RoundSubmission(game_id=game_id, round_number=submission.round_number, uid=submission.uid)
        row.notes = submission.notes or ''
        row.ranking = json.dumps(list(submission.ranking))
        row.submitted_at = submission.submitted_at or utcnow()
        self.session.add(row)
        self.session.flush()

    def list_drafts(self, game_code, round_number):
        rows = RoundDraft.query.filter_by(game_id=self._game_id(game_code), round_number=round_number).all()
        return [d.to_record() for d in rows]

    def get_draft(self, game_code, round_number, uid):
        row = RoundDraft.query.filter_by(
            game_id=self._game_id(game_code), round_number=round_number, uid=uid,
        ).first()
        return row.to_record() if row else None

    def upsert_draft(self, game_code, draft):
        game_id = self._game_id(game_code)
        row = RoundDraft.query.filter_by(game_id=game_id, round_number=draft.round_number, uid=draft.uid).first()
        if not row:
            row = RoundDraft(game_id=game_id, round_number=draft.round_number, uid=draft.uid)
        row.notes = draft.notes or ''
        row.ranking = json.dumps(list(draft.ranking))
        row.updated_at = draft.submitted_at or utcnow()
        self.session.add(row)
        self.session.flush()

    # gambit
    def list_gambit_submissions(self, game_code):
        rows = GambitSubmission.query.filter_by(game_id=self._game_id(game_code)).order_by(GambitSubmission.id).all()
        return [g.to_record() for g in rows]

    def get_gambit_submission(self, game_code, uid):
        row = GambitSubmission.query.filter_by(game_id=self._game_id(game_code), uid=uid).first()
        return row.to_record() if row else None

    def upsert_gambit_submission(self, game_code, submission):
        game_id = self._game_id(game_code)
        row = GambitSubmission.query.filter_by(game_id=game_id, uid=submission.uid).first()
        if not row:
            row = GambitSubmission(game_id=game_id, uid=submission.uid)
        row.cheapest_wine_id = submission.cheapest_wine_id
        row.most_expensive_wine_id = submission.most_expensive_wine_id
        row.favorite_wine_ids = json.dumps(list(submission.favorite_wine_ids))
        row.submitted_at = submission.submitted_at or utcnow()
        self.session.add(row)
        self.session.flush()
