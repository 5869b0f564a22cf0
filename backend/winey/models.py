from winey import db
from winey.services.games.records import (
    GameRecord, PlayerRecord, WineRecord, RoundRecord, RoundWineRecord,
    SubmissionRecord, GambitRecord, utcnow,
)
from decimal import Decimal
import json


def _load_id_list(raw):
    """Decode a JSON-encoded list of wine ids; anything malformed reads as []."""
    try:
        value = json.loads(raw) if raw else []
    except (TypeError, ValueError):
        return []
    if not isinstance(value, list):
        return []
    return [x for x in value if isinstance(x, str)]


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    game_code = db.Column(db.String(10), unique=True, index=True, nullable=False)
    host_uid = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(32), default='setup', nullable=False)  # setup, lobby, in_progress, gambit, finished
    current_round = db.Column(db.Integer, default=1, nullable=False)
    total_rounds = db.Column(db.Integer, default=3, nullable=False)
    # Setup Tasting parameters
    setup_players = db.Column(db.Integer, nullable=True)
    setup_bottles = db.Column(db.Integer, nullable=True)
    setup_bottles_per_round = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)

    players = db.relationship('Player', back_populates='game', lazy='dynamic')

    def to_record(self):
        return GameRecord(
            game_code=self.game_code,
            host_uid=self.host_uid,
            status=self.status,
            current_round=self.current_round,
            total_rounds=self.total_rounds,
            setup_players=self.setup_players,
            setup_bottles=self.setup_bottles,
            setup_bottles_per_round=self.setup_bottles_per_round,
            created_at=self.created_at,
            started_at=self.started_at,
        )


class Player(db.Model):
    __tablename__ = 'player'
    __table_args__ = (db.UniqueConstraint('game_id', 'uid', name='uq_player_game_uid'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    uid = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(64), nullable=False)
    joined_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    game = db.relationship('Game', back_populates='players')

    def to_record(self):
        return PlayerRecord(uid=self.uid, name=self.name, joined_at=self.joined_at)


class Wine(db.Model):
    __tablename__ = 'wine'
    __table_args__ = (db.UniqueConstraint('game_id', 'wine_id', name='uq_wine_game_wine'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    wine_id = db.Column(db.String(100), nullable=False)
    letter = db.Column(db.String(3), default='', nullable=False)
    label_blinded = db.Column(db.String(120), default='', nullable=False)
    nickname = db.Column(db.String(120), default='', nullable=False)
    # Stored in cents so equal prices compare equal
    price_cents = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def to_record(self):
        price = Decimal(self.price_cents) / 100 if self.price_cents is not None else None
        return WineRecord(
            wine_id=self.wine_id,
            letter=self.letter,
            label_blinded=self.label_blinded,
            nickname=self.nickname,
            price=price,
        )


class Round(db.Model):
    __tablename__ = 'round'
    __table_args__ = (db.UniqueConstraint('game_id', 'round_number', name='uq_round_game_number'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    state = db.Column(db.String(16), default='closed', nullable=False)  # open, closed

    def to_record(self):
        return RoundRecord(round_number=self.round_number, state=self.state)


class RoundWine(db.Model):
    __tablename__ = 'round_wine'
    # a wine is poured in exactly one round
    __table_args__ = (db.UniqueConstraint('game_id', 'wine_id', name='uq_round_wine_game_wine'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    wine_id = db.Column(db.String(100), nullable=False)
    position = db.Column(db.Integer, nullable=True)

    def to_record(self):
        return RoundWineRecord(round_number=self.round_number, wine_id=self.wine_id, position=self.position)


class RoundSubmission(db.Model):
    __tablename__ = 'round_submission'
    __table_args__ = (db.UniqueConstraint('game_id', 'round_number', 'uid', name='uq_submission_round_uid'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    uid = db.Column(db.String(64), nullable=False)
    notes = db.Column(db.Text, default='', nullable=False)
    ranking = db.Column(db.Text, nullable=False)  # JSON-encoded list of wine ids
    submitted_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def to_record(self):
        return SubmissionRecord(
            round_number=self.round_number,
            uid=self.uid,
            notes=self.notes or '',
            ranking=_load_id_list(self.ranking),
            submitted_at=self.submitted_at,
        )


class RoundDraft(db.Model):
    __tablename__ = 'round_draft'
    __table_args__ = (db.UniqueConstraint('game_id', 'round_number', 'uid', name='uq_draft_round_uid'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    uid = db.Column(db.String(64), nullable=False)
    notes = db.Column(db.Text, default='', nullable=False)
    ranking = db.Column(db.Text, nullable=True)  # JSON-encoded, not validated
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def to_record(self):
        return SubmissionRecord(
            round_number=self.round_number,
            uid=self.uid,
            notes=self.notes or '',
            ranking=_load_id_list(self.ranking),
            submitted_at=self.updated_at,
        )


class GambitSubmission(db.Model):
    __tablename__ = 'gambit_submission'
    __table_args__ = (db.UniqueConstraint('game_id', 'uid', name='uq_gambit_game_uid'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    uid = db.Column(db.String(64), nullable=False)
    cheapest_wine_id = db.Column(db.String(100), nullable=True)
    most_expensive_wine_id = db.Column(db.String(100), nullable=True)
    favorite_wine_ids = db.Column(db.Text, nullable=False, default='[]')
    submitted_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def to_record(self):
        return GambitRecord(
            uid=self.uid,
            cheapest_wine_id=self.cheapest_wine_id,
            most_expensive_wine_id=self.most_expensive_wine_id,
            favorite_wine_ids=_load_id_list(self.favorite_wine_ids),
            submitted_at=self.submitted_at,
        )
