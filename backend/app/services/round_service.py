# SPDX-License-Identifier: Apache-2.0
"""Round controller: Idle -> Open -> Closed-Pending -> (oracle callback) -> Idle.

The current round number is 1 + the number of revealed rounds, so revealing a
round is what advances the counter.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func
from sqlmodel import select

from app.config import settings
from app.core.exceptions import (
    AlreadyActiveError,
    DuplicateSubmissionError,
    EmptySelectionError,
    EntryNotInRoundError,
    NotActiveError,
    RoundNotFoundError,
    ScoreOutOfRangeError,
    TallyPendingError,
    UnauthorizedError,
    UnknownEntryError,
    ValidationError,
)
from app.core.security import normalize_address
from app.core.serial import serialized
from app.models import Entry, Round, RoundEntry, RoundParticipant, Submission
from app.services import registry_service, tally_service
from app.services.audit_service import write_audit_log
from app.services.fhe_service import EncryptedScalars, FheKeys

logger = logging.getLogger("sealedtally")

IDLE = "idle"
OPEN = "open"
CLOSED_PENDING = "closed_pending"


def current_round_number(session) -> int:
    revealed = session.exec(select(func.count(Round.number)).where(Round.results_revealed == True)).one()  # noqa: E712
    return revealed + 1


def get_current_round(session) -> Round | None:
    return session.get(Round, current_round_number(session))


def round_state(rnd: Round | None) -> str:
    if rnd is None or rnd.results_revealed:
        return IDLE
    return OPEN if rnd.active else CLOSED_PENDING


def score_range(mode: str) -> tuple[int, int]:
    if mode == tally_service.MAX:
        return 1, settings.bid_max
    return settings.score_min, settings.score_max


@serialized
def open_round(session, entry_ids: list[int], caller: str, tally_mode: str | None = None) -> int:
    """Open a round over a non-empty set of active entries. Returns the round number."""
    registry_service.require_admin(caller)
    current = get_current_round(session)
    state = round_state(current)
    if state == OPEN:
        raise AlreadyActiveError("A round is already open")
    if state == CLOSED_PENDING:
        raise TallyPendingError(f"Round {current.number} is waiting for its tally")
    if not entry_ids:
        raise EmptySelectionError("No entries selected")
    mode = tally_mode or settings.default_tally_mode
    if mode not in (tally_service.SUM, tally_service.MAX):
        raise ValidationError(f"Unknown tally mode {mode}")

    snapshot = list(dict.fromkeys(int(e) for e in entry_ids))
    for entry_id in snapshot:
        entry = session.get(Entry, entry_id)
        if entry is None or not entry.is_active:
            raise UnknownEntryError(f"Entry {entry_id} is not a registered active entry")

    number = current_round_number(session)
    session.add(Round(number=number, tally_mode=mode, active=True, start_time=datetime.utcnow()))
    session.flush()
    for position, entry_id in enumerate(snapshot):
        session.add(RoundEntry(round_number=number, entry_id=entry_id, position=position))
    write_audit_log(
        session, number, "round_opened", normalize_address(caller),
        {"entry_ids": snapshot, "tally_mode": mode},
    )
    logger.info("Round %s opened over entries %s (%s)", number, snapshot, mode)
    return number


def _accepting_round(session, participant: str) -> Round:
    """Checks shared by every submission form, in rejection order."""
    rnd = get_current_round(session)
    if round_state(rnd) != OPEN:
        raise NotActiveError("No round is accepting submissions")
    if not registry_service.is_authorized(session, participant):
        raise UnauthorizedError(f"{participant} is not authorized to submit")
    return rnd


def _check_target(session, rnd: Round, entry_id: int, participant: str) -> None:
    if entry_id not in tally_service.round_entry_ids(session, rnd.number):
        raise EntryNotInRoundError(f"Entry {entry_id} is not in round {rnd.number}")
    if _find_submission(session, rnd.number, entry_id, participant) is not None:
        raise DuplicateSubmissionError(f"{participant} already submitted for entry {entry_id}")


def _find_submission(session, round_number: int, entry_id: int, participant: str) -> Submission | None:
    stmt = select(Submission).where(
        Submission.round_number == round_number,
        Submission.entry_id == entry_id,
        Submission.participant == normalize_address(participant),
    )
    return session.exec(stmt).first()


def _record(session, rnd: Round, scalars: EncryptedScalars, entry_id: int, participant: str, handle: str) -> Submission:
    participant = normalize_address(participant)
    scalars.allow_this(handle)
    scalars.allow(handle, participant)
    submission = Submission(round_number=rnd.number, entry_id=entry_id, participant=participant, handle=handle)
    session.add(submission)
    known = tally_service.round_participants(session, rnd.number)
    if participant not in known:
        session.add(RoundParticipant(round_number=rnd.number, address=participant, position=len(known)))
    session.flush()
    write_audit_log(session, rnd.number, "submission_recorded", participant, {"entry_id": entry_id})
    logger.info("Round %s: %s submitted for entry %s", rnd.number, participant, entry_id)
    return submission


@serialized
def submit(session, entry_id: int, participant: str, encrypted_value: str, keys: FheKeys) -> Submission:
    """Record a stored handle the participant already has a grant on."""
    rnd = _accepting_round(session, participant)
    _check_target(session, rnd, entry_id, participant)
    scalars = EncryptedScalars(session, keys)
    handle = scalars.require_held(encrypted_value, participant)
    return _record(session, rnd, scalars, entry_id, participant, handle)


@serialized
def submit_score(session, entry_id: int, participant: str, score: int, keys: FheKeys) -> Submission:
    """Range-check a cleartext score, encrypt it and record it."""
    rnd = _accepting_round(session, participant)
    low, high = score_range(rnd.tally_mode)
    if not low <= score <= high:
        raise ScoreOutOfRangeError(f"Score must be between {low}-{high}")
    _check_target(session, rnd, entry_id, participant)
    scalars = EncryptedScalars(session, keys)
    return _record(session, rnd, scalars, entry_id, participant, scalars.encrypt(score))


@serialized
def submit_encrypted(session, entry_id: int, participant: str, handle: str, proof: str, keys: FheKeys) -> Submission:
    """Verify an external input, clamp it to the allowed range obliviously and record it."""
    rnd = _accepting_round(session, participant)
    _check_target(session, rnd, entry_id, participant)
    scalars = EncryptedScalars(session, keys)
    verified = scalars.from_external_input(handle, proof, settings.contract_address, participant)
    low, high = score_range(rnd.tally_mode)
    return _record(session, rnd, scalars, entry_id, participant, scalars.clamp_to_range(verified, low, high))


@serialized
def close_round(session, caller: str, oracle) -> dict:
    """Stop submissions and request the tally. An empty round is revealed at once with no winner."""
    registry_service.require_admin(caller)
    rnd = get_current_round(session)
    if round_state(rnd) != OPEN:
        raise NotActiveError("No round is open")
    rnd.active = False
    rnd.end_time = datetime.utcnow()
    session.add(rnd)
    write_audit_log(session, rnd.number, "round_closed", normalize_address(caller), {})
    logger.info("Round %s closed", rnd.number)
    request_id = tally_service.request_tally(session, rnd, oracle)
    return {"round": rnd.number, "request_id": request_id, "results_revealed": rnd.results_revealed}


# queries

def current_round_info(session) -> dict:
    number = current_round_number(session)
    rnd = session.get(Round, number)
    return {
        "round": number,
        "state": round_state(rnd),
        "voting_active": bool(rnd and rnd.active),
        "results_revealed": bool(rnd and rnd.results_revealed),
        "tally_mode": rnd.tally_mode if rnd else settings.default_tally_mode,
        "start_time": rnd.start_time.isoformat() if rnd else None,
        "end_time": rnd.end_time.isoformat() if rnd and rnd.end_time else None,
        "entry_ids": tally_service.round_entry_ids(session, number),
    }


def get_round_results(session, round_number: int) -> dict:
    current = current_round_number(session)
    if round_number < 1 or round_number > current:
        raise RoundNotFoundError(f"Round {round_number} not found")
    rnd = session.get(Round, round_number)
    return {
        "round": round_number,
        "results_revealed": bool(rnd and rnd.results_revealed),
        "winner_entry_id": rnd.winner_entry_id if rnd else 0,
        "winning_value": rnd.winning_value if rnd else 0,
        "participant_count": len(tally_service.round_participants(session, round_number)),
        "tally_request_id": rnd.tally_request_id if rnd else None,
    }


def submission_status(session, entry_id: int, participant: str) -> dict:
    submission = _find_submission(session, current_round_number(session), entry_id, participant)
    return {
        "submitted": bool(submission and submission.submitted),
        "submitted_at": submission.submitted_at.isoformat() if submission else None,
        "handle": submission.handle if submission else None,
    }


def has_submitted(session, entry_id: int, participant: str) -> bool:
    return submission_status(session, entry_id, participant)["submitted"]


def entry_submission_count(session, entry_id: int) -> int:
    stmt = select(func.count(Submission.id)).where(
        Submission.round_number == current_round_number(session), Submission.entry_id == entry_id
    )
    return session.exec(stmt).one()
