# SPDX-License-Identifier: Apache-2.0
"""Encrypted-value substrate endpoints: public context, input registration, user decryption."""
import base64
import binascii

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from sqlmodel import Session

from app.config import settings
from app.core.exceptions import InvalidProofError
from app.core.security import normalize_address, rate_limit
from app.core.serial import serialized
from app.database import get_session
from app.schemas import InputRegister, UserDecrypt
from app.services.fhe_service import EncryptedScalars, get_fhe_keys
from app.services.oracle_service import get_oracle

router = APIRouter(prefix="/fhe", tags=["fhe"])


@router.get("/public-context")
def fhe_public_context():
    """Serialized TenSEAL context without the secret key; clients encrypt with it."""
    return Response(content=get_fhe_keys().public_context_bytes, media_type="application/octet-stream")


@serialized
def _register(session, data: bytes, user: str) -> tuple[str, str]:
    return EncryptedScalars(session, get_fhe_keys()).register_input(data, settings.contract_address, user)


@router.post("/inputs", status_code=201)
@rate_limit(settings.submit_rate_limit)
def fhe_register_input(request: Request, body: InputRegister, session: Session = Depends(get_session)):
    """Verify and store a client ciphertext. The returned proof binds it to this service and the user."""
    try:
        data = base64.b64decode(body.ciphertext, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidProofError("ciphertext is not valid base64") from e
    handle, proof = _register(session, data, body.user)
    return {"handle": handle, "proof": proof, "contract": normalize_address(settings.contract_address)}


@router.post("/user-decrypt")
def fhe_user_decrypt(body: UserDecrypt, session: Session = Depends(get_session)):
    return {"handle": body.handle, "value": get_oracle().user_decrypt(session, body.handle, body.user)}
