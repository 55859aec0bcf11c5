import os
import sys
import pytest

# Ensure the project root (containing the `ludo_server` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from ludo_server import create_app, socketio
from ludo_server.registry import RoomRegistry
from ludo_server.rooms import RoomManager
from ludo_server.services.game.turns import TurnController


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = '*'
    SOCKETIO_NAMESPACE = '/'
    MIN_PLAYERS = 2
    MAX_PLAYERS = 4
    ROOM_CODE_LENGTH = 6
    LOG_LEVEL = 'DEBUG'


class ScriptedDice:
    """Stands in for random.Random: returns queued rolls in order."""

    def __init__(self, *rolls):
        self.rolls = list(rolls)

    def push(self, *rolls):
        self.rolls.extend(rolls)

    def randint(self, low, high):
        value = self.rolls.pop(0)
        assert low <= value <= high
        return value


@pytest.fixture()
def dice():
    return ScriptedDice()


@pytest.fixture()
def manager(dice):
    return RoomManager(RoomRegistry(), turns=TurnController(rng=dice))


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio_client(flask_app):
    created = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except RuntimeError:
            pass


@pytest.fixture()
def sio_client(make_sio_client):
    return make_sio_client()
