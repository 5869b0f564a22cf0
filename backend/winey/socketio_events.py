import logging

from flask import request
from flask_socketio import join_room, leave_room, emit
from winey import socketio
from winey.services.games.directory import normalize_code
from winey.services.games.repository import SqlAlchemyRepository

log = logging.getLogger(__name__)


def _room(game_code: str) -> str:
    return f"game:{game_code}"


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect():
    log.debug(f"[ws] disconnect sid={getattr(request, 'sid', None)}")


def handle_join_game(data):
    """Subscribe this socket to state_update broadcasts for one game.

    Clients are expected to refetch over HTTP whenever an update arrives;
    nothing game-specific is pushed over the socket.
    """
    game_code = normalize_code((data or {}).get('game_code'))
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    if not SqlAlchemyRepository().game_code_exists(game_code):
        emit('error', {'message': 'Game not found', 'game_code': game_code})
        return
    room = _room(game_code)
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_game(data):
    game_code = normalize_code((data or {}).get('game_code'))
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    room = _room(game_code)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for namespace in ('/ws', '/') if testing else ('/ws',):
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_game', handle_join_game, namespace=namespace)
        socketio.on_event('leave_game', handle_leave_game, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
