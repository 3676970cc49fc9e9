"""
Shared fixtures.

Settings are read at import time, so the database and log locations are put
in the environment before anything from shopwise is imported.
"""
import os
import tempfile
import uuid

_tmp_dir = tempfile.mkdtemp(prefix="shopwise-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_tmp_dir, 'shopwise_test.db')}")
os.environ.setdefault("LOG_DIR", os.path.join(_tmp_dir, "logs"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _create_tables():
    from shopwise.models.base import init_db
    init_db()


@pytest.fixture
def db():
    from shopwise.models.base import SessionLocal
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user_id():
    """Fresh owner per test so rows never leak between tests."""
    return f"user-{uuid.uuid4().hex[:12]}"


@pytest.fixture
def headers(user_id):
    return {"X-User-Id": user_id}


@pytest.fixture
def client():
    from shopwise.main import app
    return TestClient(app)
