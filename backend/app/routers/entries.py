# SPDX-License-Identifier: Apache-2.0
"""Entry endpoints: propose, list, get, deactivate."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.models import Entry
from app.schemas import CallerBody, EntryCreate
from app.services import registry_service, round_service

router = APIRouter(prefix="/entries", tags=["entries"])


def _entry_out(session: Session, entry: Entry) -> dict:
    return {
        "id": entry.id,
        "name": entry.name,
        "description": entry.description,
        "category": entry.category,
        "proposer": entry.proposer,
        "is_active": entry.is_active,
        "created_at": entry.created_at.isoformat(),
        "submission_count": round_service.entry_submission_count(session, entry.id),
    }


@router.post("", status_code=201)
def entries_propose(body: EntryCreate, session: Session = Depends(get_session)):
    entry_id = registry_service.propose(session, body.name, body.description, body.category, body.proposer)
    return {"entry_id": entry_id}


@router.get("")
def entries_list(active_only: bool = False, session: Session = Depends(get_session)):
    """All entries in id order; submission counts refer to the current round."""
    return {
        "total": registry_service.total_entries(session),
        "entries": [_entry_out(session, e) for e in registry_service.list_entries(session, active_only)],
    }


@router.get("/{entry_id}")
def entries_get(entry_id: int, session: Session = Depends(get_session)):
    return _entry_out(session, registry_service.get_entry(session, entry_id))


@router.post("/{entry_id}/deactivate")
def entries_deactivate(entry_id: int, body: CallerBody, session: Session = Depends(get_session)):
    registry_service.deactivate(session, entry_id, body.caller)
    return {"entry_id": entry_id, "is_active": False}
