# SPDX-License-Identifier: Apache-2.0
"""Registry: catalog of entries and the set of authorized participants."""
from __future__ import annotations

import logging

from sqlalchemy import func
from sqlmodel import select

from app.config import settings
from app.core.exceptions import EmptyFieldError, EntryNotFoundError, UnauthorizedError
from app.core.security import normalize_address, sanitize_text
from app.core.serial import serialized
from app.models import AuthorizedParticipant, Entry
from app.services.audit_service import write_audit_log

logger = logging.getLogger("sealedtally")


def is_admin(identity: str) -> bool:
    return normalize_address(identity) == normalize_address(settings.admin_address)


def require_admin(caller: str) -> None:
    if not is_admin(caller):
        raise UnauthorizedError(f"{caller} is not the administrator")


@serialized
def propose(session, name: str, description: str, category: str, proposer: str) -> int:
    """Register a new entry and return its sequential id."""
    fields = {
        "name": sanitize_text(name, max_len=200),
        "description": sanitize_text(description),
        "category": sanitize_text(category, max_len=200),
        "proposer": normalize_address(proposer),
    }
    for field_name, value in fields.items():
        if not value:
            raise EmptyFieldError(f"{field_name} must not be empty")
    entry = Entry(**fields)
    session.add(entry)
    session.flush()
    write_audit_log(session, None, "entry_proposed", entry.proposer, {"entry_id": entry.id, "name": entry.name})
    logger.info("Entry %s proposed by %s", entry.id, entry.proposer)
    return entry.id


@serialized
def deactivate(session, entry_id: int, caller: str) -> None:
    require_admin(caller)
    entry = session.get(Entry, entry_id)
    if entry is None:
        raise EntryNotFoundError(f"Entry {entry_id} not found")
    if not entry.is_active:
        return
    entry.is_active = False
    session.add(entry)
    write_audit_log(session, None, "entry_deactivated", normalize_address(caller), {"entry_id": entry_id})
    logger.info("Entry %s deactivated", entry_id)


def _participant(session, identity: str) -> AuthorizedParticipant | None:
    stmt = select(AuthorizedParticipant).where(AuthorizedParticipant.address == normalize_address(identity))
    return session.exec(stmt).first()


@serialized
def authorize(session, identity: str, caller: str) -> None:
    require_admin(caller)
    if _participant(session, identity) is not None:
        return
    address = normalize_address(identity)
    session.add(AuthorizedParticipant(address=address))
    write_audit_log(session, None, "participant_authorized", normalize_address(caller), {"address": address})
    logger.info("Participant %s authorized", address)


@serialized
def revoke(session, identity: str, caller: str) -> None:
    require_admin(caller)
    existing = _participant(session, identity)
    if existing is None:
        return
    session.delete(existing)
    write_audit_log(session, None, "participant_revoked", normalize_address(caller), {"address": existing.address})
    logger.info("Participant %s revoked", existing.address)


def is_authorized(session, identity: str) -> bool:
    return _participant(session, identity) is not None


def get_entry(session, entry_id: int) -> Entry:
    entry = session.get(Entry, entry_id)
    if entry is None:
        raise EntryNotFoundError(f"Entry {entry_id} not found")
    return entry


def total_entries(session) -> int:
    return session.exec(select(func.count(Entry.id))).one()


def list_entries(session, active_only: bool = False) -> list[Entry]:
    stmt = select(Entry).order_by(Entry.id)
    if active_only:
        stmt = stmt.where(Entry.is_active == True)  # noqa: E712
    return list(session.exec(stmt))
