# SPDX-License-Identifier: Apache-2.0
"""Health and audit-chain verification endpoints."""
import sys

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from app.core.security import rate_limit
from app.database import get_session
from app.services.audit_service import verify_audit_chain

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/health")
def health():
    """Liveness/readiness."""
    return {"status": "ok"}


@router.get("/versions")
@rate_limit("100/hour")
def system_versions(request: Request):
    """Library versions backing the deployment."""
    import fastapi
    import tenseal as ts

    return {
        "tenseal_version": getattr(ts, "__version__", "unknown"),
        "fastapi_version": getattr(fastapi, "__version__", "unknown"),
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    }


@router.get("/audit/verify")
def system_audit_verify(session: Session = Depends(get_session)):
    """Recompute the audit hash chain."""
    return {"valid": verify_audit_chain(session)}
