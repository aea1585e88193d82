import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Ensure the backend root (containing the `landgrab` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from landgrab import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MIN_CLAIM_AREA_SQ_METERS = 100.0
    RESPAWN_DELAY_SECONDS = 10
    SCORE_AREA_DIVISOR = 1000.0
    METERS_PER_DEGREE = 111000.0
    # Always read opponents from the database so tests see rows they insert
    OPPONENT_VIEW_MAX_AGE_SECONDS = 0.0
    CORS_ORIGINS = ['http://localhost:5173']


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import landgrab.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def service(flask_app, clock):
    svc = flask_app.extensions['landgrab']
    svc.clock = clock
    return svc


@pytest.fixture()
def client(flask_app, service):
    return flask_app.test_client()


@pytest.fixture()
def make_player(flask_app):
    """Insert a player row directly, bypassing the engine."""
    from landgrab.models import Player
    from landgrab.services.territory.scoring import score_territory
    from landgrab.services.territory.state import territory_from_json

    def _make(username, territory=None, path=None, alive=True, last_killed_at=None):
        territory = territory or []
        player = Player(
            username=username,
            territory=territory,
            current_path=path or [],
            is_alive=alive,
            last_killed_at=last_killed_at,
            score=score_territory(territory_from_json(territory)) if alive else 0,
            version=1,
        )
        db.session.add(player)
        db.session.commit()
        return player.to_state()

    return _make


@pytest.fixture()
def sio_client(flask_app, service):
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
