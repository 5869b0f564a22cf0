from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = 'NOT_FOUND'
    NOT_HOST = 'NOT_HOST'
    NOT_IN_GAME = 'NOT_IN_GAME'
    GAME_WRONG_STATUS = 'GAME_WRONG_STATUS'
    GAME_FULL = 'GAME_FULL'
    ROUND_WRONG_STATE = 'ROUND_WRONG_STATE'
    ROUND_NOT_CONFIGURED = 'ROUND_NOT_CONFIGURED'
    INVALID_RANKING = 'INVALID_RANKING'
    INVALID_GAMBIT_PICK = 'INVALID_GAMBIT_PICK'
    WINE_LIST_INCOMPLETE = 'WINE_LIST_INCOMPLETE'
    CANNOT_BOOT_HOST = 'CANNOT_BOOT_HOST'
    INVALID_ASSIGNMENT = 'INVALID_ASSIGNMENT'


DEFAULT_MESSAGES = {
    ErrorKind.NOT_FOUND: 'Not found.',
    ErrorKind.NOT_HOST: 'Only the host can do that.',
    ErrorKind.NOT_IN_GAME: 'You are not a player in this game.',
    ErrorKind.GAME_WRONG_STATUS: 'That is not possible at this point of the game.',
    ErrorKind.GAME_FULL: 'This game lobby is full.',
    ErrorKind.ROUND_WRONG_STATE: 'This round is no longer active.',
    ErrorKind.ROUND_NOT_CONFIGURED: 'This round has not been configured yet (host needs to assign wines).',
    ErrorKind.INVALID_RANKING: 'Your ranking is invalid for this round. Please refresh and try again.',
    ErrorKind.INVALID_GAMBIT_PICK: 'Cheapest and most expensive must be different wines from the wine list.',
    ErrorKind.WINE_LIST_INCOMPLETE: 'Please complete your wine list and enter prices for every wine before starting the game.',
    ErrorKind.CANNOT_BOOT_HOST: 'The host cannot be removed from the game.',
    ErrorKind.INVALID_ASSIGNMENT: 'Each wine can be assigned to only one round, once.',
}


class GameError(Exception):
    """A game operation was refused. ``kind`` is the stable machine-readable code."""

    def __init__(self, kind: ErrorKind, message: str = None):
        self.kind = ErrorKind(kind)
        self.message = message or DEFAULT_MESSAGES[self.kind]
        super().__init__(f"{self.kind.value}: {self.message}")

    def to_dict(self):
        return {'code': self.kind.value, 'error': self.message}


class DuplicateGameCode(Exception):
    """The generated game code is already taken."""
