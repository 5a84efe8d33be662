import random

import click
from flask import Flask, current_app
from flask_cors import CORS
from flask_socketio import SocketIO

from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Room state lives with the app, one registry per app instance
    from primechain.services.rooms import RoomEngine, RoomRegistry
    seed = flask_app.config.get('ROOM_RNG_SEED')
    registry = RoomRegistry(
        code_length=int(flask_app.config.get('ROOM_CODE_LENGTH', 6)),
        rng=random.Random(seed) if seed not in (None, '') else None,
    )
    flask_app.extensions['primechain'] = RoomEngine(registry)

    from primechain.main import main
    flask_app.register_blueprint(main)

    from primechain.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Register Socket.IO event handlers against the freshly initialized server
    from primechain.socketio_events import register_socketio_handlers
    register_socketio_handlers(flask_app.config.get('SOCKETIO_NAMESPACE', '/ws'))

    @click.command('check-move')
    @click.argument('current', type=int)
    @click.argument('digit', type=click.IntRange(0, 9))
    def check_move_command(current, digit):
        """Show whether appending DIGIT to CURRENT keeps the chain prime."""
        from primechain.services.rooms import validate_move
        verdict = validate_move(current, digit, allow_exception=False)
        status = 'prime' if verdict.accepted else 'not prime'
        click.echo(f'{verdict.candidate} is {status}')

    flask_app.cli.add_command(check_move_command)

    return flask_app


def get_engine(flask_app=None):
    return (flask_app or current_app).extensions['primechain']
