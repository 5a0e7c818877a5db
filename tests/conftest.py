import os
import sys
import pytest

# Ensure the project root (containing the `unoreverse` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from unoreverse import create_app, db, socketio
from unoreverse.services.uno.cards import Card


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    BOT_THINK_DELAY_SEC = 0
    UNO_HAND_SIZE = 7
    UNO_DEFAULT_COLOR = 'red'
    UNO_DEFAULT_DIFFICULTY = 'medium'
    UNO_CONSERVE_DECK = False
    ROOM_WRITE_RETRIES = 3
    INVITE_BASE_URL = 'http://test.local/uno'
    LOCAL_GAME_IDLE_SEC = 1800


@pytest.fixture()
def flask_app():
    from unoreverse.api import rooms as rooms_api, uno as uno_api
    from unoreverse.services.uno.store import room_store

    application = create_app(TestConfig)
    with application.app_context():
        import unoreverse.models  # noqa: F401
        db.create_all()
    # Yield outside the context so each test request gets its own `g`
    yield application
    with application.app_context():
        rooms_api.reset_sessions()
        uno_api._local_games.clear()
        room_store.reset()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    """App context for tests that call the store and sessions directly."""
    with flask_app.app_context():
        yield flask_app


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
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


def card(color, value, card_id=None):
    """Shorthand for building a card in tests; the id defaults to color-value."""
    return Card(card_id or f"{color}-{value}", color, value)
