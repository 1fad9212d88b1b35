from __future__ import annotations

import os
import tempfile

# Settings are read at import time, so the environment must be ready first.
os.environ.setdefault("PUBLIC_SHARE_SECRET", "test-share-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="ledgr-uploads-"))
os.environ.setdefault("FRONTEND_ORIGIN", "http://app.test")

from typing import Dict, List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import ledgr.models  # noqa: E402,F401
from ledgr.core.deps import get_blob_store, get_current_user_id, get_mailer  # noqa: E402
from ledgr.core.errors import NotFound  # noqa: E402
from ledgr.db.base import Base  # noqa: E402
from ledgr.db.session import build_engine, build_sessionmaker, get_db  # noqa: E402
from ledgr.main import app  # noqa: E402
from ledgr.services.email import EmailSendError, EmailSendResult, Mailer, Sender  # noqa: E402

USER_ID = "11111111-1111-4111-8111-111111111111"
OTHER_USER_ID = "22222222-2222-4222-8222-222222222222"


class MemoryBlobStore:
    def __init__(self) -> None:
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.buckets: set[str] = set()
        self.ensure_calls = 0
        self.puts: List[str] = []

    def ensure_bucket(self, bucket: str) -> None:
        self.ensure_calls += 1
        self.buckets.add(bucket)

    def list(self, bucket: str, prefix: str, *, search: Optional[str] = None) -> List[str]:
        names = []
        for (obj_bucket, path) in self.objects:
            folder, _, name = path.rpartition("/")
            if obj_bucket == bucket and folder == prefix and (not search or search in name):
                names.append(name)
        return sorted(names)

    def exists(self, bucket: str, path: str) -> bool:
        return (bucket, path) in self.objects

    def put(self, bucket: str, path: str, data: bytes, *, content_type: str, upsert: bool = True) -> None:
        self.objects[(bucket, path)] = data
        self.puts.append(path)

    def get(self, bucket: str, path: str) -> bytes:
        try:
            return self.objects[(bucket, path)]
        except KeyError:
            raise NotFound("File not found") from None

    def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        return f"memory://{bucket}/{path}?ttl={ttl_seconds}"


class RecordingMailer(Mailer):
    def __init__(self) -> None:
        self.sent: List[dict] = []
        self.fail_with: Optional[str] = None

    def send(self, to, subject, html, text=None, *, sender: Optional[Sender] = None) -> EmailSendResult:
        if self.fail_with:
            raise EmailSendError(self.fail_with)
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text, "sender": sender})
        return EmailSendResult(provider="memory", message_id=f"msg-{len(self.sent)}")


@pytest.fixture()
def db_session():
    engine = build_engine("sqlite+pysqlite://", poolclass=StaticPool)
    TestingSessionLocal = build_sessionmaker(engine)
    Base.metadata.create_all(bind=engine)
    db: Session = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture()
def blob_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def current_user() -> dict:
    return {"id": USER_ID}


@pytest.fixture()
def client(db_session, blob_store, mailer, current_user):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user_id] = lambda: current_user["id"]
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_mailer] = lambda: mailer

    client_instance = TestClient(app)
    try:
        yield client_instance
    finally:
        client_instance.close()
        app.dependency_overrides.clear()
