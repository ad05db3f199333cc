import os
import sys
import pytest

# Ensure the backend root (containing the `poker` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from poker import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    CORS_ORIGINS = ['http://localhost:3000']
    DEFAULT_TIME_LIMIT_MINUTES = 5
    MAX_TIME_LIMIT_MINUTES = 60
    TICK_INTERVAL_SEC = 1
    POLL_INTERVAL_SEC = 5


PASSWORD = 'password'

SEED_USERS = {
    'pm': ('Paula PM', 'pm@example.com', 'project_manager'),
    'dev1': ('Dana Dev', 'dev1@example.com', 'developer'),
    'dev2': ('Eli Dev', 'dev2@example.com', 'developer'),
    'outsider': ('Olga Outside', 'outsider@example.com', 'developer'),
}


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    # No app context is held while tests run: requests would reuse it and
    # share `g`, including the logged-in user, across test clients.
    with application.app_context():
        # Ensure models are imported so tables are created
        import poker.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
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
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def users(flask_app):
    """Seeded accounts, keyed by a short alias -> user id."""
    from poker.models import User
    ids = {}
    with flask_app.app_context():
        for alias, (name, email, role) in SEED_USERS.items():
            user = User(name=name, email=email, role=role)
            user.set_password(PASSWORD)
            db.session.add(user)
            db.session.commit()
            ids[alias] = user.id
    return ids


@pytest.fixture()
def login(flask_app, users):
    """Return a factory producing a test client logged in as ``alias``."""
    def _login(alias):
        c = flask_app.test_client()
        res = c.post('/api/auth/login', json={'email': SEED_USERS[alias][1], 'password': PASSWORD})
        assert res.status_code == 200, res.get_json()
        return c
    return _login


@pytest.fixture()
def pm(login):
    return login('pm')


@pytest.fixture()
def dev1(login):
    return login('dev1')


@pytest.fixture()
def dev2(login):
    return login('dev2')


@pytest.fixture()
def session_id(pm, users):
    res = pm.post('/api/sessions', json={
        'name': 'Sprint 14',
        'description': 'Backlog grooming',
        'participants': [users['dev1'], users['dev2']],
    })
    assert res.status_code == 201, res.get_json()
    return res.get_json()['session']['id']


@pytest.fixture()
def story_id(pm, session_id):
    res = pm.post('/api/stories', json={
        'session_id': session_id,
        'title': 'Login page',
        'description': 'As a user I can log in',
        'time_limit_minutes': 2,
    })
    assert res.status_code == 201, res.get_json()
    return res.get_json()['story']['id']


@pytest.fixture()
def voting_story_id(pm, story_id):
    res = pm.post(f'/api/stories/{story_id}/start')
    assert res.status_code == 200, res.get_json()
    return story_id
