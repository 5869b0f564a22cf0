from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

DEMO_WINES = [
    ('wine-a', 'A', 'Napa Cabernet', 'Big Red', 42.00),
    ('wine-b', 'B', 'Loire Chenin', 'Honeyed', 18.50),
    ('wine-c', 'C', 'Rioja Crianza', 'Dusty', 18.50),
    ('wine-d', 'D', 'Supermarket Merlot', 'Jammy', 7.99),
    ('wine-e', 'E', 'Barolo', 'Tar & Roses', 65.00),
    ('wine-f', 'F', 'Vinho Verde', 'Spritzy', 9.00),
]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from winey.api.games import games
    # Mount game routes under /api to match frontend API client
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Register Socket.IO event handlers
    from winey.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with a demo tasting."""
        from winey.services.games import GameController
        from winey.services.games.repository import SqlAlchemyRepository
        with flask_app.app_context():
            import winey.models  # noqa: F401
            db.drop_all()
            db.create_all()

            controller = GameController(SqlAlchemyRepository())
            created = controller.create_game(host_name='Host', total_rounds=2, setup_bottles=len(DEMO_WINES))
            code, host_uid = created['game_code'], created['host_uid']
            controller.upsert_wines(code, host_uid, [
                {'id': wine_id, 'letter': letter, 'label_blinded': label, 'nickname': nickname, 'price': price}
                for wine_id, letter, label, nickname, price in DEMO_WINES
            ])
            controller.set_assignments(code, host_uid, [
                {'round_number': 1, 'wine_ids': ['wine-a', 'wine-b', 'wine-c']},
                {'round_number': 2, 'wine_ids': ['wine-d', 'wine-e', 'wine-f']},
            ])
            print(f'Database has been reset and seeded! game={code} host_uid={host_uid}')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
