import os
import sys
import pytest

# Ensure the backend root (containing the `winey` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from winey import create_app, db, socketio
from winey.services.games import GameController, GameLocks, RoundController
from winey.services.games.memory import InMemoryRepository


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:3000']
    DEFAULT_TOTAL_ROUNDS = 3
    MAX_TOTAL_ROUNDS = 50
    MAX_NOTES_LENGTH = 5000
    LOG_LEVEL = 'DEBUG'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import winey.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


# ---- service-level fixtures, no Flask app needed ----

@pytest.fixture()
def repo():
    return InMemoryRepository()


@pytest.fixture()
def games(repo):
    return GameController(repo, locks=GameLocks())


@pytest.fixture()
def rounds(repo):
    return RoundController(repo, locks=GameLocks())


WINES = [
    {'id': 'a', 'letter': 'A', 'nickname': 'Big Red', 'price': 10},
    {'id': 'b', 'letter': 'B', 'nickname': 'Honeyed', 'price': 4},
    {'id': 'c', 'letter': 'C', 'nickname': 'Dusty', 'price': 4},
    {'id': 'd', 'letter': 'D', 'nickname': 'Jammy', 'price': 2},
]


@pytest.fixture()
def started_game(games):
    """A one-round game with Alice and Bob seated and round 1 open.

    Round 1 holds wines a, b, c, d priced 10, 4, 4, 2.
    """
    created = games.create_game(host_name='Hana', total_rounds=1, setup_bottles=len(WINES))
    code, host = created['game_code'], created['host_uid']
    alice = games.join_game(code, 'Alice')['uid']
    bob = games.join_game(code, 'Bob')['uid']
    games.upsert_wines(code, host, WINES)
    games.set_assignments(code, host, [{'round_number': 1, 'wine_ids': ['a', 'b', 'c', 'd']}])
    games.start(code, host)
    return {'code': code, 'host': host, 'alice': alice, 'bob': bob}
