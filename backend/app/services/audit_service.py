# SPDX-License-Identifier: Apache-2.0
"""Append-only audit trail with chained hashes."""
from __future__ import annotations

import json
from datetime import datetime

from sqlmodel import select

from app.config import INITIAL_HASH
from app.core.security import sha3_256_hex
from app.models import AuditLog


def _entry_payload(action_type: str, actor: str, details_json: str, ts_str: str, previous_hash: str) -> str:
    return f"{action_type}{actor}{details_json}{ts_str}{previous_hash}"


def write_audit_log(
    session,
    round_number: int | None,
    action_type: str,
    actor: str,
    details: dict,
) -> AuditLog:
    """Append-only event log: previous_hash chain over the whole log, entry_hash = SHA3-256(...)."""
    last = session.exec(select(AuditLog).order_by(AuditLog.id.desc()).limit(1)).first()
    previous_hash = last.entry_hash if last else INITIAL_HASH
    now = datetime.utcnow()
    details_json = json.dumps(details, sort_keys=True)
    entry_hash = sha3_256_hex(_entry_payload(action_type, actor, details_json, now.isoformat(), previous_hash))
    entry = AuditLog(
        round_number=round_number,
        action_type=action_type,
        actor=actor,
        details=details_json,
        previous_hash=previous_hash,
        entry_hash=entry_hash,
        created_at=now,
    )
    session.add(entry)
    # Flush so the next event in the same transaction chains onto this one.
    session.flush()
    return entry


def verify_audit_chain(session) -> bool:
    """Recompute every entry hash and check each link points at its predecessor."""
    previous_hash = INITIAL_HASH
    for entry in session.exec(select(AuditLog).order_by(AuditLog.id)):
        if entry.previous_hash != previous_hash:
            return False
        expected = sha3_256_hex(
            _entry_payload(entry.action_type, entry.actor, entry.details, entry.created_at.isoformat(), entry.previous_hash)
        )
        if expected != entry.entry_hash:
            return False
        previous_hash = entry.entry_hash
    return True


def round_audit_trail(session, round_number: int) -> list[dict]:
    entries = session.exec(
        select(AuditLog).where(AuditLog.round_number == round_number).order_by(AuditLog.id)
    ).all()
    return [
        {
            "id": e.id,
            "action_type": e.action_type,
            "actor": e.actor,
            "details": json.loads(e.details) if e.details else {},
            "previous_hash": e.previous_hash,
            "entry_hash": e.entry_hash,
            "created_at": e.created_at.isoformat(),
        }
        for e in entries
    ]
