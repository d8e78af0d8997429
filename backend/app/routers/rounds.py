# SPDX-License-Identifier: Apache-2.0
"""Round endpoints: open, close, current info, submissions, results, audit trail."""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlmodel import Session

from app.config import settings
from app.core.exceptions import RoundNotFoundError
from app.core.security import rate_limit
from app.database import get_session
from app.schemas import CallerBody, RoundOpen, SubmissionCreate
from app.services import round_service, tally_service
from app.services.audit_service import round_audit_trail
from app.services.fhe_service import get_fhe_keys
from app.services.oracle_service import get_oracle

logger = logging.getLogger("sealedtally")

router = APIRouter(prefix="/rounds", tags=["rounds"])


@router.post("/open", status_code=201)
def rounds_open(body: RoundOpen, session: Session = Depends(get_session)):
    number = round_service.open_round(session, body.entry_ids, body.caller, body.tally_mode)
    return round_service.current_round_info(session) | {"round": number}


@router.post("/close")
def rounds_close(body: CallerBody, background_tasks: BackgroundTasks, session: Session = Depends(get_session)):
    """Close the open round. With in-process delivery the tally is revealed after the response is sent."""
    result = round_service.close_round(session, body.caller, get_oracle())
    if result["request_id"] is not None and settings.oracle_auto_fulfill:
        background_tasks.add_task(tally_service.deliver_tally, result["request_id"])
        logger.info("Scheduled in-process delivery of tally request %s", result["request_id"])
    return result


@router.get("/current")
def rounds_current(session: Session = Depends(get_session)):
    return round_service.current_round_info(session)


@router.post("/current/submissions", status_code=201)
@rate_limit(settings.submit_rate_limit)
def rounds_submit(request: Request, body: SubmissionCreate, session: Session = Depends(get_session)):
    """Submit a cleartext score (encrypted server-side) or a registered encrypted input."""
    keys = get_fhe_keys()
    if body.score is not None:
        submission = round_service.submit_score(session, body.entry_id, body.participant, body.score, keys=keys)
    else:
        submission = round_service.submit_encrypted(
            session, body.entry_id, body.participant, body.handle, body.proof, keys=keys
        )
    return {
        "round": submission.round_number,
        "entry_id": submission.entry_id,
        "participant": submission.participant,
        "handle": submission.handle,
        "submitted_at": submission.submitted_at.isoformat(),
    }


@router.get("/current/submissions/{entry_id}/{participant}")
def rounds_submission_status(entry_id: int, participant: str, session: Session = Depends(get_session)):
    return {"entry_id": entry_id} | round_service.submission_status(session, entry_id, participant)


@router.get("/{round_number}/results")
def rounds_results(round_number: int, session: Session = Depends(get_session)):
    return round_service.get_round_results(session, round_number)


@router.get("/{round_number}/audit_trail")
def rounds_audit_trail(round_number: int, session: Session = Depends(get_session)):
    if round_number < 1 or round_number > round_service.current_round_number(session):
        raise RoundNotFoundError(f"Round {round_number} not found")
    return round_audit_trail(session, round_number)
