"""Plain records exchanged between the game services and a repository."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

GAME_STATUSES = ('setup', 'lobby', 'in_progress', 'gambit', 'finished')
ROUND_STATES = ('open', 'closed')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class GameRecord:
    game_code: str
    host_uid: str
    status: str = 'setup'
    current_round: int = 1
    total_rounds: int = 3
    setup_players: Optional[int] = None
    setup_bottles: Optional[int] = None
    setup_bottles_per_round: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None


@dataclass
class PlayerRecord:
    uid: str
    name: str
    joined_at: datetime = field(default_factory=utcnow)

    def to_dict(self):
        return {'uid': self.uid, 'name': self.name, 'joined_at': _iso(self.joined_at)}


@dataclass
class WineRecord:
    wine_id: str
    letter: str = ''
    label_blinded: str = ''
    nickname: str = ''
    price: Optional[Decimal] = None

    def to_dict(self, include_price=True):
        data = {
            'id': self.wine_id,
            'letter': self.letter,
            'label_blinded': self.label_blinded,
            'nickname': self.nickname,
        }
        if include_price:
            data['price'] = float(self.price) if self.price is not None else None
        return data


@dataclass
class RoundRecord:
    round_number: int
    state: str = 'closed'


@dataclass
class RoundWineRecord:
    round_number: int
    wine_id: str
    position: Optional[int] = None


@dataclass
class SubmissionRecord:
    """A round ranking. Drafts use the same shape."""
    round_number: int
    uid: str
    notes: str = ''
    ranking: List[str] = field(default_factory=list)
    submitted_at: datetime = field(default_factory=utcnow)

    def to_dict(self):
        return {
            'uid': self.uid,
            'notes': self.notes,
            'ranking': list(self.ranking),
            'submitted_at': _iso(self.submitted_at),
        }


@dataclass
class GambitRecord:
    uid: str
    cheapest_wine_id: Optional[str] = None
    most_expensive_wine_id: Optional[str] = None
    favorite_wine_ids: List[str] = field(default_factory=list)
    submitted_at: datetime = field(default_factory=utcnow)

    def to_dict(self):
        return {
            'uid': self.uid,
            'cheapest_wine_id': self.cheapest_wine_id,
            'most_expensive_wine_id': self.most_expensive_wine_id,
            'favorite_wine_ids': list(self.favorite_wine_ids),
            'submitted_at': _iso(self.submitted_at),
        }
