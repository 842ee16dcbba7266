import os

# In-memory DB for the app module's own engine; must be set before conteo.db is imported
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import conteo.models  # noqa: E402,F401
from conteo.db import Base  # noqa: E402
from conteo.dependencies import get_db  # noqa: E402
from conteo.main import app  # noqa: E402
from conteo.schemas.attendance_record import HistoricalRecordInput  # noqa: E402
from conteo.services.tally.clock import today_local  # noqa: E402
from conteo.services.tally.engine import build_engine  # noqa: E402
from conteo.services.tally.errors import RecordNotFoundError  # noqa: E402
from conteo.services.tally.persistence import MemoryKeyValueStore, create_tally_store  # noqa: E402


class FakeArchive:
    """In-memory ArchiveClient; `fail` makes the next calls raise."""

    def __init__(self):
        self.records = {}
        self.updates = []
        self.fail = None

    def create_record(self, record: HistoricalRecordInput) -> str:
        if self.fail:
            raise self.fail
        record_id = f"rec{len(self.records) + 1}"
        self.records[record_id] = record
        return record_id

    def update_record(self, record_id, patch):
        if self.fail:
            raise self.fail
        if record_id not in self.records:
            raise RecordNotFoundError(record_id)
        self.updates.append((record_id, patch))
        self.records[record_id] = HistoricalRecordInput.model_validate(patch)

    def get_record_by_id(self, record_id):
        if self.fail:
            raise self.fail
        if record_id not in self.records:
            raise RecordNotFoundError(record_id)
        return self.records[record_id]


@pytest.fixture
def today() -> date:
    return date(2025, 1, 5)


@pytest.fixture
def store(today):
    return create_tally_store(MemoryKeyValueStore(), today=today)


@pytest.fixture
def archive():
    return FakeArchive()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def client(session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    previous = app.state.conteo
    app.state.conteo = build_engine(
        session_factory, storage=MemoryKeyValueStore(), today=today_local()
    )
    try:
        yield TestClient(app)
    finally:
        app.state.conteo = previous
        app.dependency_overrides.clear()
