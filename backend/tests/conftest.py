"""
Pytest fixtures for billbook backend tests.

Provides the test database, seeded users and products, a manual timer for
the sync debounce, and an in-memory Drive served through httpx.MockTransport.
"""

import base64
import json
import uuid
from decimal import Decimal

import httpx
import pytest

from billbook import create_app
from billbook.extensions import db
from billbook.models import Product, SyncSession, SINGLETON_ID
from billbook.services.auth_service import create_user
from billbook.services.cloud_storage import DriveDocumentStore

API_BASE = "https://drive.test/drive/v3"
UPLOAD_BASE = "https://drive.test/upload/drive/v3"

ADMIN_PASSWORD = "Admin123!"
EMPLOYEE_PASSWORD = "Staff123!"


class ManualTimer:
    """Stand-in for threading.Timer; fires only when the test says so."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


class FakeDrive:
    """
    Just enough of the Drive v3 files API for DriveDocumentStore:
    list by name, create, multipart update, media download.
    """

    def __init__(self):
        self.files = {}
        self.requests = []
        self.fail_status = None

    def add_file(self, name, document=None):
        file_id = uuid.uuid4().hex[:12]
        content = json.dumps(document).encode("utf-8") if document is not None else b""
        self.files[file_id] = {"name": name, "content": content}
        return file_id

    def document(self, file_id):
        return json.loads(self.files[file_id]["content"])

    def only_document(self):
        assert len(self.files) == 1
        return self.document(next(iter(self.files)))

    @property
    def writes(self):
        return [r for r in self.requests if r.method == "PATCH"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, json={"error": {"message": "backend error"}})

        path = request.url.path
        if request.method == "GET" and path == "/drive/v3/files":
            query = request.url.params["q"]
            files = [
                {"id": file_id, "name": f["name"]}
                for file_id, f in self.files.items()
                if f"name='{f['name']}'" in query
            ]
            return httpx.Response(200, json={"files": files})

        if request.method == "POST" and path == "/drive/v3/files":
            body = json.loads(request.content)
            return httpx.Response(200, json={"id": self.add_file(body["name"])})

        if request.method == "PATCH" and path.startswith("/upload/drive/v3/files/"):
            file_id = path.rsplit("/", 1)[1]
            if file_id not in self.files:
                return httpx.Response(404, json={"error": {"message": "File not found"}})
            self.files[file_id]["content"] = _multipart_file_part(request)
            return httpx.Response(200, json={"id": file_id})

        if request.method == "GET" and path.startswith("/drive/v3/files/"):
            file_id = path.rsplit("/", 1)[1]
            if file_id not in self.files:
                return httpx.Response(404, json={"error": {"message": "File not found"}})
            return httpx.Response(200, content=self.files[file_id]["content"])

        return httpx.Response(400, json={"error": {"message": f"unexpected {request.method} {path}"}})


def _multipart_file_part(request: httpx.Request) -> bytes:
    boundary = request.headers["Content-Type"].split("boundary=", 1)[1].encode("ascii")
    for part in request.content.split(b"--" + boundary):
        headers, _, body = part.partition(b"\r\n\r\n")
        if b'name="file"' in headers:
            return body.rstrip(b"\r\n")
    raise AssertionError("multipart body has no file part")


def basic_auth(username, password):
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'SYNC_QUIET_INTERVAL_SECONDS': 0.01,
        'DRIVE_API_BASE': API_BASE,
        'DRIVE_UPLOAD_BASE': UPLOAD_BASE,
        'INVOICE_PREFIX': 'TE',
        'INVOICE_SEQUENCE_BASELINE': 1001,
        'LOW_STOCK_THRESHOLD': 500,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    db.session.rollback()
    db.session.expunge_all()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def drive():
    return FakeDrive()


@pytest.fixture(scope='function')
def timers():
    return []


@pytest.fixture(autouse=True)
def reconciler(app, db_session, drive, timers):
    """The app's SyncReconciler, wired to ManualTimer and FakeDrive."""
    sync = app.extensions["sync"]

    def timer_factory(interval, callback):
        timer = ManualTimer(interval, callback)
        timers.append(timer)
        return timer

    def store_factory(access_token):
        return DriveDocumentStore(
            access_token,
            api_base=API_BASE,
            upload_base=UPLOAD_BASE,
            transport=httpx.MockTransport(drive.handler),
        )

    sync.cancel_pending()
    sync.timer_factory = timer_factory
    sync.store_factory = store_factory
    yield sync
    sync.cancel_pending()


@pytest.fixture(scope='function')
def cloud_linked(db_session):
    """Cloud mode on with a linked token; no remote file resolved yet."""
    session = SyncSession(id=SINGLETON_ID, cloud_enabled=True, access_token="test-token")
    db_session.add(session)
    db_session.commit()
    return session


@pytest.fixture(scope='function')
def admin_user(db_session):
    user = create_user("admin", ADMIN_PASSWORD, "admin", first_name="Asha", last_name="Admin")
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def employee_user(db_session):
    user = create_user("staff", EMPLOYEE_PASSWORD, "employee", first_name="Ravi")
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return basic_auth("admin", ADMIN_PASSWORD)


@pytest.fixture(scope='function')
def employee_headers(employee_user):
    return basic_auth("staff", EMPLOYEE_PASSWORD)


@pytest.fixture(scope='function')
def products(db_session):
    """
    P1: 10 in stock, Rs 1000 + 18% GST (cost 700)
    P2: 100 in stock, Rs 2500 + 12% GST (cost 1800)
    P3: none in stock, Rs 450 + 5% GST (cost 300)
    """
    rows = [
        Product(id="P1", name="50W Panel", category="Panels", price=Decimal("1000.00"),
                cost_price=Decimal("700.00"), gst_rate=Decimal("18.00"), stock=10, hsn_code="8541"),
        Product(id="P2", name="100W Panel", category="Panels", price=Decimal("2500.00"),
                cost_price=Decimal("1800.00"), gst_rate=Decimal("12.00"), stock=100, hsn_code="8541"),
        Product(id="P3", name="Charge Controller", category="Controllers", price=Decimal("450.00"),
                cost_price=Decimal("300.00"), gst_rate=Decimal("5.00"), stock=0),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return {p.id: p for p in rows}
