import os
import sys
import threading
from datetime import datetime, timedelta, timezone
import pytest

# Ensure the backend root (containing the `charads` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from charads import create_app, db, socketio
from charads.exceptions import PersistenceError, RecordNotFound
from charads.services.records import Participant, ResultRecord, RoundRecord, Verification


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    ROUND_DURATION_SEC = 45
    MAX_ROUNDS = 3
    TICK_INTERVAL_SEC = 0.1
    LETTER_ALPHABET = 'ABCDEFGHIJKLMNOPRSTUVW'
    BATCH_MAX_WORKERS = 1
    SESSION_IDLE_GRACE_SEC = 0
    REVIEWER_USERNAME = 'admin'
    REVIEWER_PASSWORD = 'secret'


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class MemoryGateway:
    """In-memory result store with switchable write failures."""

    def __init__(self, records=(), fail_updates=()):
        self.rows = {}
        self.fail_updates = set(fail_updates)
        self.updates = []
        self._next_id = 1
        self._lock = threading.Lock()
        for r in records:
            self.create(r)

    def create(self, record):
        with self._lock:
            record.id = self._next_id
            self._next_id += 1
            self.rows[record.id] = record.copy()
            return record.id

    def list_all(self):
        with self._lock:
            rows = sorted(self.rows.values(), key=lambda r: (r.created_at, r.id), reverse=True)
            return [r.copy() for r in rows]

    def list_ids(self):
        return [r.id for r in self.list_all()]

    def get(self, record_id, for_update=False):
        with self._lock:
            if record_id not in self.rows:
                raise RecordNotFound(record_id)
            return self.rows[record_id].copy()

    def update(self, record_id, fields):
        with self._lock:
            if record_id in self.fail_updates:
                raise PersistenceError('disk on fire', record_id=record_id)
            row = self.rows[record_id]
            if 'rounds' in fields:
                row.rounds = [RoundRecord(**vars(r)) for r in fields['rounds']]
            if 'verifiedScore' in fields:
                row.verified_score = fields['verifiedScore']
            self.updates.append(record_id)

    def release(self):
        pass


def make_round(index, term, points, verification=Verification.UNSET, letter=None):
    return RoundRecord(
        round_index=index,
        letter=letter or (term[:1].upper() if term else 'A'),
        submitted_term=term,
        time_remaining=points,
        points_awarded=points,
        verification=verification,
    )


def make_result(name, rounds, minutes_ago=0, verified_score=None):
    return ResultRecord(
        participant=Participant(name=name, secondary_id=f'{name.lower()}@example.com'),
        auto_score=sum(r.points_awarded for r in rounds),
        rounds=rounds,
        created_at=datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago),
        verified_score=verified_score,
    )


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import charads.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def reviewer_client(flask_app):
    from charads.models import Reviewer

    reviewer = Reviewer(username='reviewer')
    reviewer.set_password('password')
    db.session.add(reviewer)
    db.session.commit()
    test_client = flask_app.test_client()
    res = test_client.post('/api/review/login', json={'username': 'reviewer', 'password': 'password'})
    assert res.status_code == 200
    return test_client


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
