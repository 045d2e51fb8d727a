import os
from io import BytesIO

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings
from app.core.database import Base, get_db
from app.core.exceptions import CollaboratorError
from app.core.security import ADMIN_ROLE, STUDENT_ROLE, create_access_token
from app.core.storage import StoredAsset, get_object_storage
from app.main import app
from app.models import Exam, Question, Student


def _make_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite needs explicit BEGIN for SAVEPOINT to behave
    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def png_bytes(size=(120, 85)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, "white").save(buf, "PNG")
    return buf.getvalue()


class FakeObjectStorage:
    """Records uploads and deletes instead of talking to a bucket."""

    def __init__(self, fetch_content: bytes | None = None):
        self.uploads: list[tuple[str, str, bytes]] = []
        self.deleted: list[str] = []
        self.fetched: list[str] = []
        self.fetch_content = fetch_content if fetch_content is not None else png_bytes()
        self.fail_delete = False
        self.on_upload = None

    def upload(self, content, filename, folder, content_type=None):
        asset_id = f"{folder}/asset-{len(self.uploads) + 1}"
        self.uploads.append((asset_id, filename, content))
        if self.on_upload:
            self.on_upload()
        return StoredAsset(url=f"https://assets.test/{asset_id}", id=asset_id)

    def delete(self, asset_id):
        if self.fail_delete:
            raise CollaboratorError("Failed to delete file", error="bucket unavailable")
        self.deleted.append(asset_id)

    def fetch(self, url):
        self.fetched.append(url)
        return self.fetch_content


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def db():
    engine = _make_engine()
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, class_=Session, expire_on_commit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def storage():
    return FakeObjectStorage()


@pytest.fixture
def client(db, storage):
    def override_get_db():
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(settings):
    def make(subject_id, role=STUDENT_ROLE):
        token = create_access_token(settings, subject_id, email=f"user{subject_id}@example.com", role=role)
        return {"Authorization": f"Bearer {token}"}

    return make


@pytest.fixture
def admin_headers(auth_headers):
    return auth_headers(1, role=ADMIN_ROLE)


@pytest.fixture
def make_exam(db):
    """Create an exam whose questions have options A-D.

    ``answers`` lists the correct option of each question.
    """

    def make(answers=("A", "B", "C", "D"), ques_mark=1, name="Physics Basics", certificate_bg=None):
        exam = Exam(
            name=name,
            type="mcq",
            ques_mark=ques_mark,
            num_of_ques=len(answers),
            certificate_bg=certificate_bg,
        )
        db.add(exam)
        db.flush()
        for i, correct in enumerate(answers, start=1):
            db.add(Question(
                exam_id=exam.exam_id,
                question=f"Question {i}?",
                options=["A", "B", "C", "D"],
                correct=correct,
            ))
        db.flush()
        db.refresh(exam)
        return exam

    return make


@pytest.fixture
def make_student(db):
    def make(name="Asha Verma", email=None):
        student = Student(name=name, email=email or f"{name.replace(' ', '.').lower()}@example.com")
        db.add(student)
        db.flush()
        return student

    return make
