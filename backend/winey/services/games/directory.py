"""Who is the host, and who is seated at a game."""

from .errors import ErrorKind, GameError
from .records import GameRecord


def is_host(game: GameRecord, uid) -> bool:
    return bool(uid) and uid == game.host_uid


def is_seated(repo, game: GameRecord, uid) -> bool:
    if not uid:
        return False
    return repo.get_player(game.game_code, uid) is not None


def require_game(repo, game_code, for_update=False) -> GameRecord:
    game = repo.lock_game(game_code) if for_update else repo.get_game(game_code)
    if not game:
        raise GameError(ErrorKind.NOT_FOUND, 'Game not found.')
    return game


def require_host(game: GameRecord, uid) -> None:
    if not is_host(game, uid):
        raise GameError(ErrorKind.NOT_HOST)


def require_seated(repo, game: GameRecord, uid) -> None:
    if not is_seated(repo, game, uid):
        raise GameError(ErrorKind.NOT_IN_GAME)


def normalize_code(game_code) -> str:
    return (game_code or '').strip().upper()
