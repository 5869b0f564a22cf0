"""Game domain services: scoring, round and game lifecycle, leaderboard.

This package contains the game rules. HTTP routes and socket handlers import
from here, keeping transport concerns separated from core game mechanics.
"""

from .errors import ErrorKind, GameError
from .leaderboard import Leaderboard
from .lifecycle import GameController
from .locks import GameLocks, game_locks
from .rounds import RoundController

__all__ = [
    'ErrorKind', 'GameError', 'GameController', 'GameLocks', 'Leaderboard', 'RoundController', 'game_locks',
]
