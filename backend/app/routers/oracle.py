# SPDX-License-Identifier: Apache-2.0
"""Decryption oracle endpoints: public key and result callback."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.schemas import OracleCallback
from app.services import tally_service
from app.services.oracle_service import get_oracle

router = APIRouter(prefix="/oracle", tags=["oracle"])


@router.get("/public-key")
def oracle_public_key():
    """Ed25519 key that tally callbacks must be signed with."""
    return {"algorithm": "ed25519", "public_key": get_oracle().public_key_hex}


@router.post("/callback")
def oracle_callback(body: OracleCallback, session: Session = Depends(get_session)):
    winner, value = tally_service.on_tally_result(
        session, body.request_id, body.plaintexts, body.signatures, get_oracle()
    )
    return {"request_id": body.request_id, "winner_entry_id": winner, "winning_value": value}
