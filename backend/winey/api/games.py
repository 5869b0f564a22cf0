from flask import Blueprint, jsonify, request, current_app
from winey import socketio
from winey.services.games import GameController, GameError, Leaderboard, RoundController
from winey.services.games.errors import ErrorKind
from winey.services.games.repository import SqlAlchemyRepository
from winey.services.games.scoring import to_cents


games = Blueprint('games', __name__)

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.NOT_HOST: 403,
    ErrorKind.NOT_IN_GAME: 403,
    ErrorKind.CANNOT_BOOT_HOST: 400,
    ErrorKind.INVALID_GAMBIT_PICK: 400,
    ErrorKind.INVALID_ASSIGNMENT: 400,
}


@games.errorhandler(GameError)
def handle_game_error(exc):
    current_app.logger.info(f"[refused] {request.method} {request.path} code={exc.kind.value}")
    return jsonify(exc.to_dict()), ERROR_STATUS.get(exc.kind, 409)


def _bad_input(message):
    return jsonify({'code': 'INVALID_INPUT', 'error': message}), 400


def _unauthorized():
    return jsonify({'code': 'UNAUTHORIZED', 'error': 'A player id is required'}), 401


def _request_uid(data=None):
    """uid from the JSON body, falling back to the X-Uid header.

    When both are present they must agree.
    """
    header_uid = (request.headers.get('X-Uid') or '').strip()
    body_uid = str((data or {}).get('uid') or '').strip()
    if header_uid and body_uid and header_uid != body_uid:
        return None
    return body_uid or header_uid or None


def _optional_int(data, key, low, high):
    value = data.get(key)
    if value is None or value == '':
        return None, None
    try:
        value = int(value)
    except (TypeError, ValueError):
        return None, f'{key} must be an integer'
    if not low <= value <= high:
        return None, f'{key} must be between {low} and {high}'
    return value, None


def _is_id_list(value):
    return isinstance(value, list) and all(isinstance(x, str) and x.strip() for x in value)


def _notify(game_code):
    socketio.emit('state_update', {'game_code': game_code}, to=f"game:{game_code}", namespace='/ws')


def _repo():
    return SqlAlchemyRepository()


def _game_controller():
    return GameController(_repo(), default_total_rounds=current_app.config.get('DEFAULT_TOTAL_ROUNDS', 3))


def _round_controller():
    return RoundController(_repo())


@games.route('/create', methods=['POST'])
def create_game():
    data = request.get_json(silent=True) or {}
    max_rounds = int(current_app.config.get('MAX_TOTAL_ROUNDS', 50))
    total_rounds, error = _optional_int(data, 'total_rounds', 1, max_rounds)
    if error:
        return _bad_input(error)
    players, error = _optional_int(data, 'players', 2, 50)
    if error:
        return _bad_input(error)
    bottles, error = _optional_int(data, 'bottles', 1, 200)
    if error:
        return _bad_input(error)
    bottles_per_round, error = _optional_int(data, 'bottles_per_round', 1, 20)
    if error:
        return _bad_input(error)

    host_name = data.get('host_name')
    if host_name is not None and (not isinstance(host_name, str) or len(host_name.strip()) > 40):
        return _bad_input('host_name must be at most 40 characters')

    created = _game_controller().create_game(
        host_name=host_name,
        total_rounds=total_rounds,
        setup_players=players,
        setup_bottles=bottles,
        setup_bottles_per_round=bottles_per_round,
    )
    return jsonify({'message': 'New game created!', **created}), 201


@games.route('/join', methods=['POST'])
def join_game():
    data = request.get_json(silent=True) or {}
    game_code = data.get('game_code')
    name = data.get('name')
    if not all([game_code, name]) or not isinstance(name, str) or len(name.strip()) > 40:
        return _bad_input('Game code and player name are required')

    joined = _game_controller().join_game(game_code, name)
    _notify(joined['game_code'])
    return jsonify(joined), 201


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    return jsonify(_game_controller().get_game(game_code, _request_uid()))


@games.route('/<string:game_code>/start', methods=['POST'])
def start_game(game_code):
    data = request.get_json(silent=True) or {}
    uid = _request_uid(data)
    if not uid:
        return _unauthorized()
    result = _game_controller().start(game_code, uid)
    _notify(game_code.upper())
    return jsonify(result)


@games.route('/<string:game_code>/players/<string:player_uid>/boot', methods=['POST'])
def boot_player(game_code, player_uid):
    data = request.get_json(silent=True) or {}
    uid = _request_uid(data)
    if not uid:
        return _unauthorized()
    result = _game_controller().boot_player(game_code, uid, player_uid)
    _notify(game_code.upper())
    return jsonify(result)


@games.route('/<string:game_code>/wines', methods=['GET'])
def list_wines(game_code):
    uid = _request_uid()
    if not uid:
        return _unauthorized()
    return jsonify({'wines': _game_controller().list_wines(game_code, uid)})


@games.route('/<string:game_code>/wines', methods=['POST'])
def upsert_wines(game_code):
    data = request.get_json(silent=True) or {}
    uid = _request_uid(data)
    if not uid:
        return _unauthorized()
    wines = data.get('wines')
    if not isinstance(wines, list):
        return _bad_input('wines must be a list')
    for wine in wines:
        if not isinstance(wine, dict) or not isinstance(wine.get('id'), str) or not wine['id'].strip():
            return _bad_input('every wine needs an id')
        price = wine.get('price')
        if price is not None and (to_cents(price) is None or price < 0):
            return _bad_input(f"invalid price for {wine['id']}")

    result = _game_controller().upsert_wines(game_code, uid, wines)
    return jsonify(result)


@games.route('/<string:game_code>/wines/<string:wine_id>', methods=['DELETE'])
def delete_wine(game_code, wine_id):
    uid = _request_uid(request.get_json(silent=True))
    if not uid:
        return _unauthorized()
    return jsonify(_game_controller().delete_wine(game_code, uid, wine_id))


@games.route('/<string:game_code>/assignments', methods=['GET'])
def get_assignments(game_code):
    uid = _request_uid()
    if not uid:
        return _unauthorized()
    return jsonify({'assignments': _game_controller().get_assignments(game_code, uid)})


@games.route('/<string:game_code>/assignments', methods=['POST'])
def set_assignments(game_code):
    data = request.get_json(silent=True) or {}
    uid = _request_uid(data)
    if not uid:
        return _unauthorized()
    assignments = data.get('assignments')
    if not isinstance(assignments, list):
        return _bad_input('assignments must be a list')
    for a in assignments:
        if not isinstance(a, dict) or not isinstance(a.get('round_number'), int) or not _is_id_list(a.get('wine_ids')):
            return _bad_input('each assignment needs a round_number and wine_ids')

    result = _game_controller().set_assignments(game_code, uid, assignments)
    return jsonify(result)


@games.route('/<string:game_code>/rounds/<int:round_number>', methods=['GET'])
def get_round(game_code, round_number):
    uid = _request_uid()
    if not uid:
        return _unauthorized()
    return jsonify(_round_controller().get_round(game_code, round_number, uid))


def _ranking_payload(data):
    notes = data.get('notes') or ''
    ranking = data.get('ranking')
    if ranking is None:
        ranking = []
    if not isinstance(notes, str) or len(notes) > int(current_app.config.get('MAX_NOTES_LENGTH', 5000)):
        return None, None, 'notes are too long'
    if not _is_id_list(ranking):
        return None, None, 'ranking must be a list of wine ids'
    return notes, [x.strip() for x in ranking], None


@games.route('/<string:game_code>/rounds/<int:round_number>/draft', methods=['POST'])
def save_draft(game_code, round_number):
    data = request.get_json(silent=True) or {}
    uid = _request_uid(data)
    if not uid:
        return _unauthorized()
    notes, ranking, error = _ranking_payload(data)
    if error:
        return _bad_input(error)
    return jsonify(_round_controller().save_draft(game_code, round_number, uid, notes, ranking))


@games.route('/<string:game_code>/rounds/<int:round_number>/submit', methods=['POST'])
def submit_ranking(game_code, round_number):
    data = request.get_json(silent=True) or {}
    uid = _request_uid(data)
    if not uid:
        return _unauthorized()
    notes, ranking, error = _ranking_payload(data)
    if error:
        return _bad_input(error)
    result = _round_controller().submit(game_code, round_number, uid, notes, ranking)
    _notify(game_code.upper())
    return jsonify(result)


@games.route('/<string:game_code>/rounds/<int:round_number>/close', methods=['POST'])
def close_round(game_code, round_number):
    data = request.get_json(silent=True) or {}
    uid = _request_uid(data)
    if not uid:
        return _unauthorized()
    result = _round_controller().close(game_code, uid, round_number)
    if not result['already_closed']:
        _notify(game_code.upper())
    return jsonify(result)


@games.route('/<string:game_code>/rounds/<int:round_number>/reveal', methods=['GET'])
def reveal_round(game_code, round_number):
    uid = _request_uid()
    if not uid:
        return _unauthorized()
    response = jsonify(_round_controller().reveal(game_code, round_number, uid))
    response.headers['Cache-Control'] = 'no-store'
    return response


@games.route('/<string:game_code>/advance', methods=['POST'])
def advance_round(game_code):
    data = request.get_json(silent=True) or {}
    uid = _request_uid(data)
    if not uid:
        return _unauthorized()
    result = _game_controller().advance_round(game_code, uid)
    if not result['already_finished']:
        _notify(game_code.upper())
    return jsonify(result)


@games.route('/<string:game_code>/gambit', methods=['GET'])
def get_gambit(game_code):
    uid = _request_uid()
    if not uid:
        return _unauthorized()
    return jsonify(_game_controller().get_gambit(game_code, uid))


@games.route('/<string:game_code>/gambit', methods=['POST'])
def submit_gambit(game_code):
    data = request.get_json(silent=True) or {}
    uid = _request_uid(data)
    if not uid:
        return _unauthorized()
    favorites = data.get('favorite_wine_ids') or []
    if not _is_id_list(favorites):
        return _bad_input('favorite_wine_ids must be a list of wine ids')
    result = _game_controller().submit_gambit(
        game_code,
        uid,
        data.get('cheapest_wine_id'),
        data.get('most_expensive_wine_id'),
        favorites,
    )
    _notify(game_code.upper())
    return jsonify(result)


@games.route('/<string:game_code>/finish', methods=['POST'])
def finish_game(game_code):
    data = request.get_json(silent=True) or {}
    uid = _request_uid(data)
    if not uid:
        return _unauthorized()
    result = _game_controller().finish_game(game_code, uid)
    if not result['already_finished']:
        _notify(game_code.upper())
    return jsonify(result)


@games.route('/<string:game_code>/leaderboard', methods=['GET'])
def get_leaderboard(game_code):
    return jsonify(Leaderboard(_repo()).standings(game_code, _request_uid()))


@games.route('/<string:game_code>/final-reveal', methods=['GET'])
def final_reveal(game_code):
    uid = _request_uid()
    if not uid:
        return _unauthorized()
    response = jsonify(Leaderboard(_repo()).final_reveal(game_code, uid))
    response.headers['Cache-Control'] = 'no-store'
    return response
