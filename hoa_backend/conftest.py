# conftest.py
"""
pytest 공용 픽스처

Firestore / Firebase Storage를 대신하는 메모리 기반 가짜 구현을 제공합니다.
서비스 코드가 실제로 사용하는 클라이언트 API만 흉내 냅니다.
- 컬렉션/하위 컬렉션, where/order_by/limit/start_after, count()
- WriteBatch, firestore.Increment, firestore.DELETE_FIELD
- 낙관적 충돌 감지와 재시도를 포함한 트랜잭션, 커밋 직전 훅(동시 실행 흉내)
"""
import copy
import itertools
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from firebase_admin import firestore
from flask_jwt_extended import create_access_token
from google.api_core.exceptions import NotFound

from app import create_app
from app.api.comments.services import CommentService
from app.api.contributions.services import ContributionService
from app.api.dashboard.services import DashboardService
from app.api.expenses.services import ExpenseService
from app.api.posts.services import PostService
from app.core.context import CallerContext
from app.core.errors import TransactionConflictError
from app.services.identity_service import IdentityService
from app.services.migration_service import MigrationService
from app.services.storage_service import StorageService, UploadedFile

TEST_BUCKET_NAME = 'hoa-testing.appspot.com'

_OPERATORS = {
    '==': lambda a, b: a == b,
    '!=': lambda a, b: a != b,
    '<': lambda a, b: a < b,
    '<=': lambda a, b: a <= b,
    '>': lambda a, b: a > b,
    '>=': lambda a, b: a >= b,
    'in': lambda a, b: a in b,
}


def _apply_write(current, data, merge=False):
    """set/update 값에 Increment / DELETE_FIELD 변환을 적용한 새 문서를 만듭니다."""
    result = dict(current or {}) if merge else {}
    for key, value in data.items():
        if value is firestore.DELETE_FIELD:
            result.pop(key, None)
        elif isinstance(value, firestore.Increment):
            result[key] = (result.get(key) or 0) + value.value
        else:
            result[key] = copy.deepcopy(value)
    return result


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = copy.deepcopy(data) if data is not None else None

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, db, path):
        self._db = db
        self.path = path
        self.id = path.rsplit('/', 1)[-1]

    def collection(self, name):
        return FakeCollection(self._db, f"{self.path}/{name}")

    def get(self, transaction=None):
        if transaction is not None:
            transaction._record_read(self.path)
        return FakeSnapshot(self, self._db.docs.get(self.path))

    def set(self, data, merge=False):
        self._db._check_writable(self.path)
        self._db._write(self.path, _apply_write(self._db.docs.get(self.path), data, merge=merge))

    def update(self, data):
        self._db._check_writable(self.path)
        if self.path not in self._db.docs:
            raise NotFound(f"No document to update: {self.path}")
        self._db._write(self.path, _apply_write(self._db.docs[self.path], data, merge=True))

    def delete(self):
        self._db._delete(self.path)


class FakeAggregateQuery:
    def __init__(self, query):
        self._query = query

    def get(self):
        return [[SimpleNamespace(alias='count', value=len(self._query.get()))]]


class FakeQuery:
    def __init__(self, db, path, filters=(), orders=(), limit_count=None, start_after_id=None):
        self._db = db
        self._path = path
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._limit = limit_count
        self._start_after_id = start_after_id

    def _copy(self, **changes):
        params = dict(filters=self._filters, orders=self._orders,
                      limit_count=self._limit, start_after_id=self._start_after_id)
        params.update(changes)
        return FakeQuery(self._db, self._path, **params)

    def where(self, field_path, op_string, value):
        return self._copy(filters=self._filters + ((field_path, op_string, value),))

    def order_by(self, field_path, direction='ASCENDING'):
        return self._copy(orders=self._orders + ((field_path, direction),))

    def limit(self, count):
        return self._copy(limit_count=count)

    def start_after(self, snapshot):
        return self._copy(start_after_id=snapshot.id)

    def count(self):
        return FakeAggregateQuery(self)

    def _matches(self, data):
        for field_path, op_string, value in self._filters:
            # Firestore는 필드가 없는 문서를 모든 비교 조건에서 제외합니다.
            if field_path not in data:
                return False
            if not _OPERATORS[op_string](data[field_path], value):
                return False
        return True

    def stream(self):
        prefix = self._path + '/'
        rows = [
            (path, data) for path, data in self._db.docs.items()
            if path.startswith(prefix) and '/' not in path[len(prefix):] and self._matches(data)
        ]
        rows.sort(key=lambda row: self._db.sequence[row[0]])
        for field_path, direction in reversed(self._orders):
            rows = [row for row in rows if field_path in row[1]]
            rows.sort(key=lambda row: row[1][field_path], reverse=(direction == firestore.Query.DESCENDING))

        if self._start_after_id is not None:
            ids = [path.rsplit('/', 1)[-1] for path, _ in rows]
            if self._start_after_id in ids:
                rows = rows[ids.index(self._start_after_id) + 1:]
        if self._limit is not None:
            rows = rows[:self._limit]

        for path, data in rows:
            yield FakeSnapshot(FakeDocumentReference(self._db, path), data)

    def get(self):
        return list(self.stream())


class FakeCollection(FakeQuery):
    def __init__(self, db, path, **kwargs):
        super().__init__(db, path, **kwargs)
        self.id = path.rsplit('/', 1)[-1]

    def document(self, document_id=None):
        return FakeDocumentReference(self._db, f"{self._path}/{document_id or uuid.uuid4().hex[:20]}")


class FakeWriteBatch:
    def __init__(self, db):
        self._db = db
        self._writes = []

    def set(self, reference, data, merge=False):
        self._writes.append(('set', reference, data, merge))

    def update(self, reference, data):
        self._writes.append(('update', reference, data, True))

    def delete(self, reference):
        self._writes.append(('delete', reference, None, False))

    def commit(self):
        self._db.batch_commits += 1
        if self._db.fail_batch_commits:
            raise RuntimeError("batch commit failed")
        self._db._apply_writes(self._writes)


class FakeTransaction:
    def __init__(self, db):
        self._db = db
        self._read_versions = {}
        self._writes = []

    def _record_read(self, path):
        self._read_versions.setdefault(path, self._db.versions.get(path, 0))

    def set(self, reference, data, merge=False):
        self._writes.append(('set', reference, data, merge))

    def update(self, reference, data):
        self._writes.append(('update', reference, data, True))

    def delete(self, reference):
        self._writes.append(('delete', reference, None, False))

    def _commit(self) -> bool:
        for path, version in self._read_versions.items():
            if self._db.versions.get(path, 0) != version:
                return False
        self._db._apply_writes(self._writes)
        return True


class FakeFirestore:
    """
    FirestoreStore와 같은 인터페이스(collection / batch / run_transaction)를 제공하는 가짜 저장소.
    before_commit_hooks에 넣은 함수는 트랜잭션 커밋 직전에 한 번씩 실행됩니다.
    """

    def __init__(self, max_attempts=5):
        self.max_attempts = max_attempts
        self.docs = {}
        self.versions = {}
        self.sequence = {}
        self._counter = itertools.count()
        self.before_commit_hooks = []
        self.transaction_attempts = 0
        self.batch_commits = 0
        self.fail_batch_commits = False
        self.failing_collections = set()

    # --- FirestoreStore 인터페이스 ---

    def collection(self, path):
        return FakeCollection(self, path)

    def batch(self):
        return FakeWriteBatch(self)

    def run_transaction(self, callback, *args, **kwargs):
        for _ in range(self.max_attempts):
            self.transaction_attempts += 1
            transaction = FakeTransaction(self)
            result = callback(transaction, *args, **kwargs)
            if self.before_commit_hooks:
                self.before_commit_hooks.pop(0)()
            if transaction._commit():
                return result
        raise TransactionConflictError("동시 수정으로 인해 요청을 처리하지 못했습니다.",
                                       details={"attempts": self.max_attempts})

    # --- 테스트 보조 ---

    def document(self, path):
        return FakeDocumentReference(self, path)

    def data(self, path):
        return copy.deepcopy(self.docs.get(path))

    def children(self, path):
        prefix = path + '/'
        return sorted(p for p in self.docs if p.startswith(prefix) and '/' not in p[len(prefix):])

    def _check_writable(self, path):
        if path.split('/', 1)[0] in self.failing_collections:
            raise RuntimeError(f"write failed: {path}")

    def _write(self, path, data):
        if path not in self.sequence:
            self.sequence[path] = next(self._counter)
        self.docs[path] = data
        self.versions[path] = self.versions.get(path, 0) + 1

    def _delete(self, path):
        self.docs.pop(path, None)
        self.sequence.pop(path, None)
        self.versions[path] = self.versions.get(path, 0) + 1

    def _apply_writes(self, writes):
        for op, reference, data, merge in writes:
            if op == 'delete':
                self._delete(reference.path)
            elif op == 'update':
                if reference.path not in self.docs:
                    raise NotFound(f"No document to update: {reference.path}")
                self._write(reference.path, _apply_write(self.docs[reference.path], data, merge=True))
            else:
                self._write(reference.path, _apply_write(self.docs.get(reference.path), data, merge=merge))


class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name

    def upload_from_string(self, data, content_type=None):
        if self.bucket.fail_uploads:
            raise RuntimeError("upload failed")
        self.bucket.blobs[self.name] = (data, content_type)

    def make_public(self):
        self.bucket.public.add(self.name)

    @property
    def public_url(self):
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}"

    def exists(self):
        return self.name in self.bucket.blobs

    def delete(self):
        if self.bucket.fail_deletes:
            raise RuntimeError("delete failed")
        if self.name not in self.bucket.blobs:
            raise NotFound(f"No such object: {self.name}")
        del self.bucket.blobs[self.name]


class FakeBucket:
    def __init__(self, name=TEST_BUCKET_NAME):
        self.name = name
        self.blobs = {}
        self.public = set()
        self.fail_uploads = False
        self.fail_deletes = False

    def blob(self, name):
        return FakeBlob(self, name)


# =====================================================================================
# 픽스처
# =====================================================================================

@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def fake_bucket():
    return FakeBucket()


@pytest.fixture
def storage_service(fake_bucket):
    return StorageService(bucket=fake_bucket)


@pytest.fixture
def identity_service(fake_db):
    return IdentityService(fake_db)


@pytest.fixture
def contribution_service(fake_db, storage_service):
    return ContributionService(fake_db, storage_service, timezone_name='UTC')


@pytest.fixture
def expense_service(fake_db, storage_service):
    return ExpenseService(fake_db, storage_service, timezone_name='UTC')


@pytest.fixture
def dashboard_service(contribution_service, expense_service):
    return DashboardService(contribution_service, expense_service)


@pytest.fixture
def post_service(fake_db, storage_service, identity_service):
    return PostService(fake_db, storage_service, identity_service)


@pytest.fixture
def comment_service(fake_db, identity_service):
    return CommentService(fake_db, identity_service)


@pytest.fixture
def migration_service(fake_db):
    return MigrationService(fake_db, timezone_name='UTC')


@pytest.fixture
def caller():
    return CallerContext(uid='user-1', display_name='Juan', photo_url='https://example.com/juan.png')


@pytest.fixture
def other_caller():
    return CallerContext(uid='user-2', display_name='Maria')


@pytest.fixture
def upload_file():
    def _make(filename='proof.jpg', content=b'binary-content', content_type='image/jpeg'):
        return UploadedFile(filename=filename, content=content, content_type=content_type)
    return _make


@pytest.fixture
def add_member(fake_db):
    """members/{uid} 문서를 만드는 헬퍼"""
    def _add(uid, account_number, surname='Dela Cruz', first_name='Juan', middle_name='',
             status='Active', default_dues=None, created_at=None):
        data = {
            'accountNumber': account_number,
            'surname': surname,
            'firstName': first_name,
            'middleName': middle_name,
            'status': status,
            'createdAt': created_at or datetime(2024, 1, 10, tzinfo=timezone.utc),
        }
        if default_dues is not None:
            data['defaultDues'] = default_dues
        fake_db.document(f"members/{uid}").set(data)
        return uid
    return _add


@pytest.fixture
def add_post(fake_db):
    """posts/{id} 문서를 만드는 헬퍼"""
    def _add(post_id='post-1', author_id='admin-1', reacts_count=0, comments_count=0,
             media_url=None, media_path=None, created_at=None, **extra):
        data = {
            'authorId': author_id,
            'authorName': 'Admin',
            'authorPhotoUrl': None,
            'category': 'announcement',
            'content': 'Water interruption on Saturday',
            'mediaUrl': media_url,
            'mediaType': 'image' if media_url else None,
            'mediaPath': media_path,
            'commentsCount': comments_count,
            'reactsCount': reacts_count,
            'pinned': False,
            'createdAt': created_at or datetime(2025, 6, 1, tzinfo=timezone.utc),
            'updatedAt': created_at or datetime(2025, 6, 1, tzinfo=timezone.utc),
        }
        data.update(extra)
        fake_db.document(f"posts/{post_id}").set(data)
        return post_id
    return _add


@pytest.fixture
def app(fake_db, fake_bucket):
    app = create_app('testing', store=fake_db, bucket=fake_bucket)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    with app.app_context():
        token = create_access_token(identity='user-1', additional_claims={'name': 'Juan'})
    return {'Authorization': f'Bearer {token}'}
