"""
Pytest fixtures and configuration for SmartExam tests
"""
import os
import sys
import tempfile
import threading
import pytest
from unittest.mock import MagicMock

# Add app directory to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'app'))

# Keep config and data files of the test run out of the source tree
_scratch_dir = tempfile.mkdtemp(prefix='smartexam-tests-')
os.environ.setdefault('SMARTEXAM_CONFIG_DIR', os.path.join(_scratch_dir, 'config'))
os.environ.setdefault('SMARTEXAM_DATA_DIR', os.path.join(_scratch_dir, 'data'))

from document_service import Document, DocumentService  # noqa: E402
from exceptions import RemoteServiceError  # noqa: E402


class FakeDocumentService(DocumentService):
    """
    In-memory document service. Paths listed in `failing` raise
    RemoteServiceError; every call is counted.
    """

    def __init__(self):
        self.documents = {}
        self.failing = set()
        self.reads = 0
        self.writes = 0
        self.calls = []
        self._lock = threading.Lock()

    @property
    def call_count(self):
        return self.reads + self.writes

    def _record(self, kind, path):
        with self._lock:
            if kind == 'write':
                self.writes += 1
            else:
                self.reads += 1
            self.calls.append((kind, path))
        if path in self.failing:
            raise RemoteServiceError(f"Simulated failure for {path}")

    def put(self, path, data):
        self.documents[path.strip('/')] = dict(data)

    def read_document(self, path):
        path = path.strip('/')
        self._record('read', path)
        data = self.documents.get(path)
        if data is None:
            return None
        return Document(path.rsplit('/', 1)[-1], path, dict(data))

    def read_collection(self, path, filters=None):
        path = path.strip('/')
        self._record('list', path)
        depth = path.count('/') + 1
        result = []
        for doc_path, data in sorted(self.documents.items()):
            if not doc_path.startswith(path + '/') or doc_path.count('/') != depth:
                continue
            if filters and any(data.get(k) != v for k, v in filters.items()):
                continue
            result.append(Document(doc_path.rsplit('/', 1)[-1], doc_path, dict(data)))
        return result

    def write_document(self, path, data):
        path = path.strip('/')
        self._record('write', path)
        self.documents[path] = dict(data)
        return Document(path.rsplit('/', 1)[-1], path, dict(data))


class FakeClock:
    """Callable clock in seconds that only moves when told to"""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def seed_pack(remote, pack_id, question_count, user_id=None, marks=2, subject='Mathematics', grade=10,
              published=True):
    """Store a pack manifest with its questions and, if user_id is given, that user's purchase of it"""
    question_ids = [f'{pack_id}-q{i}' for i in range(1, question_count + 1)]
    remote.put(f'question_packs/{pack_id}', {
        'title': f'Pack {pack_id}',
        'subject': subject,
        'grade': grade,
        'questionIds': question_ids,
        'questionCount': question_count,
        'totalMarks': marks * question_count,
        'priceCents': 4999,
        'isPublished': published,
    })
    for question_id in question_ids:
        remote.put(f'questions/{question_id}', {
            'subject': subject,
            'grade': grade,
            'topic': 'Algebra',
            'type': 'MULTIPLE_CHOICE',
            'cognitiveLevel': 'RECALL',
            'marks': marks,
            'questionText': f'Question {question_id}',
            'content': {'options': ['a', 'b', 'c'], 'answer': 'a'},
            'tags': ['algebra'],
        })
    if user_id:
        remote.put(f'users/{user_id}/purchased_packs/{pack_id}', {
            'packId': pack_id,
            'transactionId': f'txn-{pack_id}',
            'purchasedAt': 1_700_000_000_000,
        })
    return question_ids


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing"""
    logger = MagicMock()
    logger.info = MagicMock()
    logger.error = MagicMock()
    logger.warning = MagicMock()
    logger.debug = MagicMock()
    return logger


@pytest.fixture
def remote():
    return FakeDocumentService()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def enqueue():
    return MagicMock(name='enqueue_pack_sync')


@pytest.fixture
def app(tmp_path, remote, enqueue):
    """Application wired to the fake document service and an in-memory database"""
    from app import create_app
    from db import db

    _app = create_app(
        config={
            'TESTING': True,
            'SECRET_KEY': 'test-secret-key',
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
            'SETTINGS_FILE': str(tmp_path / 'settings.yaml'),
            'TRIAL_STATE_FILE': str(tmp_path / 'trial_state.json'),
        },
        remote=remote,
        enqueue=enqueue,
    )

    with _app.app_context():
        yield _app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def services(app):
    return app.extensions['smartexam']


@pytest.fixture
def user(app):
    from repositories.user_repository import UserRepository
    return UserRepository.get_or_create('u1', 'teacher@example.com')


@pytest.fixture
def client(app, user):
    """Flask test client sending a valid bearer token for user u1"""
    from repositories.user_repository import UserRepository

    token = UserRepository.create_token(user, 'tests').token
    test_client = app.test_client()
    test_client.environ_base['HTTP_AUTHORIZATION'] = f'Bearer {token}'
    return test_client
