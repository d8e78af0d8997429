# SPDX-License-Identifier: Apache-2.0
"""Round controller: lifecycle, submission rules and queries."""
import pytest
from sqlmodel import select

from app.config import settings
from app.core.exceptions import (
    AlreadyActiveError,
    DuplicateSubmissionError,
    EmptySelectionError,
    EntryNotInRoundError,
    InvalidProofError,
    NotActiveError,
    RoundNotFoundError,
    ScoreOutOfRangeError,
    TallyPendingError,
    UnauthorizedError,
    UnknownEntryError,
    ValidationError,
)
from app.models import Submission
from app.services import registry_service, round_service, tally_service
from app.services.fhe_service import EncryptedScalars
from identities import ADMIN, ALICE, BOB, MALLORY


def _open(session, entry_ids, mode=None):
    return round_service.open_round(session, entry_ids, ADMIN, mode)


def test_initial_state_is_idle(session):
    info = round_service.current_round_info(session)
    assert info["round"] == 1
    assert info["state"] == round_service.IDLE
    assert info["voting_active"] is False
    assert info["entry_ids"] == []


def test_open_round(session, entries):
    assert _open(session, [entries[0], entries[1]]) == 1
    info = round_service.current_round_info(session)
    assert info["state"] == round_service.OPEN
    assert info["voting_active"] is True
    assert info["entry_ids"] == [1, 2]
    assert info["tally_mode"] == "sum"
    assert info["start_time"] is not None
    assert info["end_time"] is None


def test_open_round_requires_admin(session, entries):
    with pytest.raises(UnauthorizedError):
        round_service.open_round(session, entries, ALICE)
    assert round_service.current_round_info(session)["state"] == round_service.IDLE


def test_open_round_empty_selection(session, entries):
    with pytest.raises(EmptySelectionError):
        _open(session, [])
    assert round_service.current_round_info(session)["state"] == round_service.IDLE


def test_open_round_unknown_entry(session, entries):
    with pytest.raises(UnknownEntryError):
        _open(session, [1, 99])
    assert round_service.get_current_round(session) is None


def test_open_round_rejects_inactive_entry(session, entries):
    registry_service.deactivate(session, 2, ADMIN)
    with pytest.raises(UnknownEntryError):
        _open(session, [1, 2])


def test_open_round_rejects_unknown_mode(session, entries):
    with pytest.raises(ValidationError):
        _open(session, [1], mode="median")


def test_open_round_deduplicates_keeping_first_order(session, entries):
    _open(session, [3, 1, 3, 1])
    assert round_service.current_round_info(session)["entry_ids"] == [3, 1]


def test_open_round_twice(session, entries):
    _open(session, [1])
    with pytest.raises(AlreadyActiveError):
        _open(session, [2])
    assert round_service.current_round_info(session)["entry_ids"] == [1]


def test_submit_score(session, entries, participants, fhe_keys):
    _open(session, [1, 2])
    submission = round_service.submit_score(session, 1, ALICE, 8, keys=fhe_keys)
    assert submission.handle.startswith("0x")
    assert round_service.has_submitted(session, 1, ALICE)
    assert not round_service.has_submitted(session, 2, ALICE)
    assert round_service.entry_submission_count(session, 1) == 1
    status = round_service.submission_status(session, 1, ALICE.upper().replace("0X", "0x"))
    assert status["submitted"] is True
    assert status["handle"] == submission.handle


def test_submission_grants_contract_and_submitter(session, entries, participants, fhe_keys):
    _open(session, [1])
    handle = round_service.submit_score(session, 1, ALICE, 5, keys=fhe_keys).handle
    scalars = EncryptedScalars(session, fhe_keys)
    assert scalars.is_allowed(handle, ALICE)
    assert scalars.is_allowed(handle, settings.contract_address)
    assert not scalars.is_allowed(handle, BOB)


def test_submit_when_idle(session, entries, participants, fhe_keys):
    with pytest.raises(NotActiveError):
        round_service.submit_score(session, 1, ALICE, 5, keys=fhe_keys)


def test_submit_unauthorized(session, entries, participants, fhe_keys):
    _open(session, [1])
    with pytest.raises(UnauthorizedError):
        round_service.submit_score(session, 1, MALLORY, 5, keys=fhe_keys)
    assert session.exec(select(Submission)).all() == []
    assert tally_service.round_participants(session, 1) == []


def test_submit_revoked_participant(session, entries, participants, fhe_keys):
    _open(session, [1])
    registry_service.revoke(session, BOB, ADMIN)
    with pytest.raises(UnauthorizedError):
        round_service.submit_score(session, 1, BOB, 5, keys=fhe_keys)


def test_submit_entry_not_in_round(session, entries, participants, fhe_keys):
    _open(session, [1, 2])
    with pytest.raises(EntryNotInRoundError):
        round_service.submit_score(session, 3, ALICE, 5, keys=fhe_keys)


def test_duplicate_submission(session, entries, participants, fhe_keys):
    _open(session, [1, 2])
    round_service.submit_score(session, 1, BOB, 9, keys=fhe_keys)
    round_service.submit_score(session, 2, BOB, 9, keys=fhe_keys)
    with pytest.raises(DuplicateSubmissionError):
        round_service.submit_score(session, 1, BOB, 3, keys=fhe_keys)
    assert round_service.entry_submission_count(session, 1) == 1
    assert tally_service.round_participants(session, 1) == [BOB]


@pytest.mark.parametrize("score", [0, 11, -3])
def test_score_out_of_range(session, entries, participants, fhe_keys, score):
    _open(session, [1])
    with pytest.raises(ScoreOutOfRangeError):
        round_service.submit_score(session, 1, ALICE, score, keys=fhe_keys)
    assert not round_service.has_submitted(session, 1, ALICE)


def test_unauthorized_is_reported_before_range(session, entries, participants, fhe_keys):
    _open(session, [1])
    with pytest.raises(UnauthorizedError):
        round_service.submit_score(session, 1, MALLORY, 50, keys=fhe_keys)


def test_max_mode_accepts_bids(session, entries, participants, fhe_keys):
    _open(session, [1], mode="max")
    round_service.submit_score(session, 1, ALICE, 5000, keys=fhe_keys)
    with pytest.raises(ScoreOutOfRangeError):
        round_service.submit_score(session, 1, BOB, settings.bid_max + 1, keys=fhe_keys)


def test_submit_existing_handle(session, entries, participants, fhe_keys):
    _open(session, [1])
    scalars = EncryptedScalars(session, fhe_keys)
    handle = scalars.encrypt(7)
    scalars.allow(handle, ALICE)
    session.commit()
    submission = round_service.submit(session, 1, ALICE, handle, keys=fhe_keys)
    assert submission.handle == handle


def test_submit_unknown_handle(session, entries, participants, fhe_keys):
    _open(session, [1])
    with pytest.raises(InvalidProofError):
        round_service.submit(session, 1, ALICE, "0xdeadbeef", keys=fhe_keys)
    assert session.exec(select(Submission)).all() == []
    assert round_service.current_round_info(session)["state"] == round_service.OPEN


def test_submit_handle_held_by_someone_else(session, entries, participants, fhe_keys):
    _open(session, [1, 2])
    alice = round_service.submit_score(session, 1, ALICE, 8, keys=fhe_keys)
    with pytest.raises(InvalidProofError):
        round_service.submit(session, 2, BOB, alice.handle, keys=fhe_keys)
    assert not EncryptedScalars(session, fhe_keys).is_allowed(alice.handle, BOB)


def test_participants_keep_insertion_order(session, entries, participants, fhe_keys):
    _open(session, [1, 2])
    round_service.submit_score(session, 2, BOB, 4, keys=fhe_keys)
    round_service.submit_score(session, 1, ALICE, 4, keys=fhe_keys)
    round_service.submit_score(session, 1, BOB, 4, keys=fhe_keys)
    assert tally_service.round_participants(session, 1) == [BOB, ALICE]
    order = tally_service.submission_order(session, 1)
    assert [(e, p) for e, p, _ in order] == [(1, BOB), (1, ALICE), (2, BOB)]


def test_close_round_requires_admin(session, entries, oracle):
    _open(session, [1])
    with pytest.raises(UnauthorizedError):
        round_service.close_round(session, ALICE, oracle)
    assert round_service.current_round_info(session)["state"] == round_service.OPEN


def test_close_round_when_idle(session, oracle):
    with pytest.raises(NotActiveError):
        round_service.close_round(session, ADMIN, oracle)


def test_close_empty_round_reveals_immediately(session, entries, oracle):
    _open(session, [1, 2])
    result = round_service.close_round(session, ADMIN, oracle)
    assert result == {"round": 1, "request_id": None, "results_revealed": True}
    assert round_service.current_round_number(session) == 2
    results = round_service.get_round_results(session, 1)
    assert results["results_revealed"] is True
    assert results["winner_entry_id"] == 0
    assert results["winning_value"] == 0
    assert round_service.current_round_info(session)["state"] == round_service.IDLE


def test_close_round_requests_tally(session, entries, participants, fhe_keys, oracle):
    _open(session, [1])
    round_service.submit_score(session, 1, ALICE, 3, keys=fhe_keys)
    result = round_service.close_round(session, ADMIN, oracle)
    assert result["request_id"] is not None
    assert result["results_revealed"] is False
    info = round_service.current_round_info(session)
    assert info["state"] == round_service.CLOSED_PENDING
    assert info["end_time"] is not None
    assert round_service.current_round_number(session) == 1


def test_no_submissions_while_pending(session, entries, participants, fhe_keys, oracle):
    _open(session, [1])
    round_service.submit_score(session, 1, ALICE, 3, keys=fhe_keys)
    round_service.close_round(session, ADMIN, oracle)
    with pytest.raises(NotActiveError):
        round_service.submit_score(session, 1, BOB, 3, keys=fhe_keys)


def test_open_while_pending(session, entries, participants, fhe_keys, oracle):
    _open(session, [1])
    round_service.submit_score(session, 1, ALICE, 3, keys=fhe_keys)
    round_service.close_round(session, ADMIN, oracle)
    with pytest.raises(TallyPendingError):
        _open(session, [2])


def test_round_results_bounds(session, entries):
    with pytest.raises(RoundNotFoundError):
        round_service.get_round_results(session, 0)
    with pytest.raises(RoundNotFoundError):
        round_service.get_round_results(session, 2)
    results = round_service.get_round_results(session, 1)
    assert results == {
        "round": 1,
        "results_revealed": False,
        "winner_entry_id": 0,
        "winning_value": 0,
        "participant_count": 0,
        "tally_request_id": None,
    }


def test_next_round_starts_fresh(session, entries, participants, fhe_keys, oracle):
    _open(session, [1])
    round_service.close_round(session, ADMIN, oracle)
    assert _open(session, [2, 3]) == 2
    round_service.submit_score(session, 2, ALICE, 6, keys=fhe_keys)
    assert not round_service.has_submitted(session, 1, ALICE)
    assert round_service.get_round_results(session, 2)["participant_count"] == 1
    assert round_service.get_round_results(session, 1)["participant_count"] == 0
