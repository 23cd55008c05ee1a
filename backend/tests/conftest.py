"""
Shared pytest setup.

The settings object is cached at first import, so the environment is pinned
here before any ``app`` module is imported: a throwaway SQLite database, a
known API key and credential master key, and no LLM keys (report generation
therefore exercises the fallback path unless a test injects a client).
"""
import os
import tempfile
import uuid

_DB_DIR = tempfile.mkdtemp(prefix="offmarket-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["ENV"] = "test"
os.environ["API_AUTH_KEY"] = "test-api-key"
os.environ["CREDENTIALS_MASTER_KEY"] = "test-master-key"
os.environ["REDIS_URL"] = "redis://localhost:6399/0"
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("OPENROUTER_API_KEY", None)
os.environ.pop("CLAY_WEBHOOK_URL", None)
os.environ.pop("CLAY_WEBHOOK_SECRET", None)

import pytest  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402
from sqlalchemy.exc import OperationalError  # noqa: E402

from app.core.db import Base, SessionLocal, engine  # noqa: E402
from app import models  # noqa: E402,F401
from app.models.company import Company  # noqa: E402
from app.models.enrichment_source import EnrichmentSource, SourcePriority  # noqa: E402
from app.models.search import Search  # noqa: E402
from app.services import caching  # noqa: E402


class _NullRedis:
    """Stand-in Redis client: every read misses, writes are dropped."""

    def get(self, key):
        return None

    def set(self, key, value, ex=None):
        return True

    def close(self):
        pass


@pytest.fixture(scope="session", autouse=True)
def _create_schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    db = SessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _no_redis(monkeypatch):
    monkeypatch.setattr(caching, "_get_sync_redis", lambda: _NullRedis())


@pytest.fixture(autouse=True)
def notify_mock(monkeypatch):
    mock = MagicMock()
    monkeypatch.setattr("app.services.reports.notify_report_ready", mock)
    return mock


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_company(db):
    """Factory: a company attached to a search owned by ``user_id``."""

    def _make(
        name="Acme Plumbing",
        website="https://www.acmeplumbing.com",
        industry="Plumbing",
        city="Austin",
        state="TX",
        user_id=None,
        **fields,
    ):
        search = Search(
            user_id=user_id or uuid.uuid4(),
            query=f"{industry} in {city}",
            industry=industry,
            city=city,
            state=state,
        )
        db.add(search)
        db.flush()
        company = Company(
            search_id=search.id,
            name=name,
            website=website,
            phone=fields.pop("phone", "(512) 555-0100"),
            address=fields.pop("address", f"100 Main St, {city}, {state}"),
            rating=fields.pop("rating", 4.6),
            review_count=fields.pop("review_count", 87),
            **fields,
        )
        db.add(company)
        db.commit()
        db.refresh(company)
        return company

    return _make


@pytest.fixture
def seed_sources(db):
    """Default vendor ranking, as seeded by the migration."""
    rows = [
        ("hunter", "Hunter.io", SourcePriority.FIRST, True),
        ("apollo", "Apollo.io", SourcePriority.SECOND, True),
        ("zoominfo", "ZoomInfo", SourcePriority.THIRD, True),
        ("clay", "Clay", SourcePriority.DO_NOT_USE, False),
    ]
    for name, display, priority, enabled in rows:
        db.add(
            EnrichmentSource(
                source_name=name,
                display_name=display,
                priority=priority,
                is_enabled=enabled,
            )
        )
    db.commit()
    return [r[0] for r in rows]


class _CommitFailsSession:
    """Session stand-in whose commit always fails, as when the audit DB is down."""

    def add(self, obj):
        pass

    def commit(self):
        raise OperationalError("INSERT INTO audit_log", {}, Exception("database is locked"))

    def rollback(self):
        pass

    def close(self):
        pass


@pytest.fixture
def broken_audit_sink(monkeypatch):
    monkeypatch.setattr("app.services.audit.SessionLocal", _CommitFailsSession)
