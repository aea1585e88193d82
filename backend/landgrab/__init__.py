from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from landgrab.config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

EXTENSION_KEY = 'landgrab'


def get_game_service():
    """The GameService bound to the current application."""
    return current_app.extensions[EXTENSION_KEY]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from landgrab.services.territory.feed import RealtimeFeed
    from landgrab.services.territory.game import GameService
    from landgrab.services.territory.repository import PlayerRepository

    flask_app.extensions[EXTENSION_KEY] = GameService.from_config(
        flask_app.config,
        PlayerRepository(),
        RealtimeFeed(socketio),
        logger=flask_app.logger,
    )

    from landgrab.main import main
    flask_app.register_blueprint(main)

    from landgrab.api.players import players
    flask_app.register_blueprint(players, url_prefix='/api/players')

    # Register Socket.IO event handlers
    try:
        from landgrab.socketio_events import register_socketio_handlers
        register_socketio_handlers(testing=flask_app.config.get('TESTING', False))
    except Exception as exc:
        flask_app.logger.warning(f"SocketIO events not loaded: {exc}")

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from landgrab.models import Player
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed players
            for name in ['alice', 'bob', 'cara']:
                db.session.add(Player(username=name, territory=[], current_path=[]))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
