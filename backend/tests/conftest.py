import os
import random
import sys
import pytest

# Ensure the backend root (containing the `primechain` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from primechain import create_app, get_engine, socketio
from primechain.services.rooms import RoomEngine, RoomRegistry

NAMESPACE = '/ws'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:5173']
    SOCKETIO_NAMESPACE = NAMESPACE
    ROOM_CODE_LENGTH = 6
    ROOM_IDLE_TTL_SEC = 60
    ROOM_REAPER_INTERVAL_SEC = 5
    ROOM_RNG_SEED = '1234'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def registry(flask_app):
    return get_engine(flask_app).registry


@pytest.fixture()
def sio_factory(flask_app):
    """Connect any number of Socket.IO test clients; all are closed afterwards."""
    clients = []

    def _connect():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace=NAMESPACE,
        )
        # Flush the connect ack
        test_client.get_received(NAMESPACE)
        clients.append(test_client)
        return test_client

    yield _connect
    for c in clients:
        try:
            if c.is_connected(NAMESPACE):
                c.disconnect(namespace=NAMESPACE)
        except Exception:
            pass


@pytest.fixture()
def engine():
    """Engine on its own registry, no Flask involved."""
    return RoomEngine(RoomRegistry(rng=random.Random(42)))
