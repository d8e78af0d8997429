# SPDX-License-Identifier: Apache-2.0
"""Participant authorization endpoints (administrator-only changes, public lookup)."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.security import normalize_address
from app.database import get_session
from app.schemas import ParticipantChange
from app.services import registry_service

router = APIRouter(prefix="/participants", tags=["participants"])


@router.post("/authorize")
def participants_authorize(body: ParticipantChange, session: Session = Depends(get_session)):
    registry_service.authorize(session, body.identity, body.caller)
    return {"address": normalize_address(body.identity), "authorized": True}


@router.post("/revoke")
def participants_revoke(body: ParticipantChange, session: Session = Depends(get_session)):
    registry_service.revoke(session, body.identity, body.caller)
    return {"address": normalize_address(body.identity), "authorized": False}


@router.get("/{address}")
def participants_get(address: str, session: Session = Depends(get_session)):
    return {"address": normalize_address(address), "authorized": registry_service.is_authorized(session, address)}
