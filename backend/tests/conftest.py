# SPDX-License-Identifier: Apache-2.0
"""pytest fixtures for backend tests.

Each test runs against a fresh in-memory SQLite database. The BFV context and
the oracle signing key are generated once per session in a temp dir.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

import app.database as database
from app.config import settings
from app.core.security import get_limiter
from app.main import app
from app.services import registry_service
from app.services.fhe_service import get_fhe_keys
from app.services.oracle_service import get_oracle
from identities import ADMIN, ALICE, BOB


@pytest.fixture(scope="session", autouse=True)
def key_dir(tmp_path_factory):
    """Point key storage at a temp dir and build the cached keys once."""
    original = settings.fhe_key_dir
    settings.fhe_key_dir = str(tmp_path_factory.mktemp("keys"))
    get_fhe_keys.cache_clear()
    get_oracle.cache_clear()
    get_fhe_keys()
    get_oracle()
    yield settings.fhe_key_path
    settings.fhe_key_dir = original
    get_fhe_keys.cache_clear()
    get_oracle.cache_clear()


@pytest.fixture
def fhe_keys():
    return get_fhe_keys()


@pytest.fixture
def oracle():
    return get_oracle()


@pytest.fixture
def engine(monkeypatch):
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    monkeypatch.setattr(database, "engine", eng)
    database.create_db_and_tables(eng)
    return eng


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def client(engine):
    """FastAPI test client on the per-test database."""
    get_limiter().reset()
    return TestClient(app)


@pytest.fixture
def participants(session):
    """Authorize Alice and Bob."""
    registry_service.authorize(session, ALICE, ADMIN)
    registry_service.authorize(session, BOB, ADMIN)
    return [ALICE, BOB]


@pytest.fixture
def entries(session):
    """Three proposed entries, ids 1..3."""
    return [
        registry_service.propose(session, f"Project {i}", f"Description {i}", "infrastructure", ALICE)
        for i in (1, 2, 3)
    ]
