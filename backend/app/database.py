# SPDX-License-Identifier: Apache-2.0
"""DB connection and session management."""
from __future__ import annotations

from contextlib import contextmanager

from sqlmodel import Session, SQLModel, create_engine, select

from app.config import settings
from app.core.security import normalize_address
from app.models import AuthorizedParticipant  # importing app.models registers every table


def make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = make_engine(settings.database_url)


def get_session():
    """Yield a DB session (for FastAPI Depends)."""
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope():
    """Context manager for use outside request handlers (background oracle delivery)."""
    with Session(engine) as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


def create_db_and_tables(bind=None):
    """Create all tables and authorize the administrator as a participant."""
    bind = bind if bind is not None else engine
    SQLModel.metadata.create_all(bind)
    with Session(bind) as session:
        admin = normalize_address(settings.admin_address)
        existing = session.exec(
            select(AuthorizedParticipant).where(AuthorizedParticipant.address == admin)
        ).first()
        if existing is None:
            session.add(AuthorizedParticipant(address=admin))
            session.commit()
