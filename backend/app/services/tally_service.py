# SPDX-License-Identifier: Apache-2.0
"""Tally requester and callback.

A closed round's submissions are enumerated in one fixed order (entries in
snapshot order, participants in insertion order within each entry). That
order defines the decryption batch, and the same order is walked again when
the oracle reports back. The winner is the first entry whose aggregate is
strictly greater than everything before it.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime

from sqlmodel import select

from app.config import TALLY_CALLBACK_ID, settings
from app.core.exceptions import (
    AlreadyProcessedError,
    InvalidSignatureError,
    MismatchError,
    RequestNotFoundError,
    SealedTallyError,
)
from app.core.serial import serialized
from app.models import DecryptionRequest, Round, RoundEntry, RoundParticipant, Submission
from app.services.audit_service import write_audit_log

logger = logging.getLogger("sealedtally")

SUM = "sum"
MAX = "max"


def round_entry_ids(session, round_number: int) -> list[int]:
    stmt = select(RoundEntry).where(RoundEntry.round_number == round_number).order_by(RoundEntry.position)
    return [re.entry_id for re in session.exec(stmt)]


def round_participants(session, round_number: int) -> list[str]:
    stmt = (
        select(RoundParticipant)
        .where(RoundParticipant.round_number == round_number)
        .order_by(RoundParticipant.position)
    )
    return [rp.address for rp in session.exec(stmt)]


def submission_order(session, round_number: int) -> list[tuple[int, str, str]]:
    """(entry_id, participant, handle) for every submission, in batch order."""
    submissions = session.exec(select(Submission).where(Submission.round_number == round_number))
    by_key = {(s.entry_id, s.participant): s.handle for s in submissions}
    participants = round_participants(session, round_number)
    order = []
    for entry_id in round_entry_ids(session, round_number):
        for participant in participants:
            handle = by_key.get((entry_id, participant))
            if handle is not None:
                order.append((entry_id, participant, handle))
    return order


def reduce_tally(entry_order: list[int], plaintexts: list[int], mode: str = SUM) -> tuple[int, int]:
    """Reduce plaintexts (aligned with entry_order) to (winner_entry_id, winning_value).

    ``sum`` accumulates per entry, ``max`` keeps the largest single value per
    entry. Ties go to the entry seen first; an all-zero tally has no winner.
    """
    aggregates: dict[int, int] = {}
    for entry_id, value in zip(entry_order, plaintexts):
        value = int(value)
        if mode == MAX:
            aggregates[entry_id] = max(aggregates.get(entry_id, 0), value)
        else:
            aggregates[entry_id] = aggregates.get(entry_id, 0) + value
    winner, best = 0, 0
    for entry_id, total in aggregates.items():
        if total > best:
            winner, best = entry_id, total
    return winner, best


def _reveal(session, rnd: Round, winner: int, value: int) -> None:
    rnd.winner_entry_id = winner
    rnd.winning_value = value
    rnd.results_revealed = True
    session.add(rnd)
    write_audit_log(
        session, rnd.number, "results_revealed", "oracle",
        {"winner_entry_id": winner, "winning_value": value},
    )
    logger.info("Round %s revealed: winner entry %s with %s", rnd.number, winner, value)


def request_tally(session, rnd: Round, oracle) -> int | None:
    """Hand the round's batch to the oracle. Runs inside close_round's transaction."""
    order = submission_order(session, rnd.number)
    if not order:
        _reveal(session, rnd, 0, 0)
        return None
    handles = [handle for _, _, handle in order]
    request_id = oracle.request_decryption(session, rnd.number, handles, TALLY_CALLBACK_ID)
    rnd.tally_request_id = request_id
    session.add(rnd)
    write_audit_log(
        session, rnd.number, "tally_requested", settings.contract_address,
        {"request_id": request_id, "batch_size": len(handles)},
    )
    return request_id


@serialized
def on_tally_result(session, request_id: int, plaintexts: list[int], signatures: list[str], oracle) -> tuple[int, int]:
    """Oracle callback: verify, reduce, publish the winner and advance the round."""
    req = session.get(DecryptionRequest, request_id)
    if req is None or req.callback_id != TALLY_CALLBACK_ID:
        raise RequestNotFoundError(f"Tally request {request_id} not found")
    if req.status == "processed":
        raise AlreadyProcessedError(f"Tally request {request_id} was already processed")
    if not oracle.verify(request_id, plaintexts, signatures):
        logger.warning("Rejected tally callback %s: bad oracle signature", request_id)
        raise InvalidSignatureError("Oracle signatures do not verify")
    batch = json.loads(req.handles or "[]")
    if len(plaintexts) != len(batch):
        raise MismatchError(f"Expected {len(batch)} plaintexts, got {len(plaintexts)}")

    rnd = session.get(Round, req.round_number)
    entry_order = [entry_id for entry_id, _, _ in submission_order(session, rnd.number)]
    winner, value = reduce_tally(entry_order, plaintexts, rnd.tally_mode)

    req.status = "processed"
    req.plaintexts = json.dumps([int(p) for p in plaintexts])
    req.processed_at = datetime.utcnow()
    session.add(req)
    _reveal(session, rnd, winner, value)
    return winner, value


def deliver_tally(request_id: int) -> None:
    """Fulfil a tally request with the in-process oracle and feed it back (background task)."""
    from app.database import session_scope
    from app.services.oracle_service import get_oracle

    oracle = get_oracle()
    try:
        with session_scope() as session:
            plaintexts, signatures = oracle.fulfill(session, request_id)
        with session_scope() as session:
            on_tally_result(session, request_id, plaintexts, signatures, oracle)
    except SealedTallyError as e:
        logger.warning("Tally request %s not delivered (%s): round stays pending", request_id, e.code)
