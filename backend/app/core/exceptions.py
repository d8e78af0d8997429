# SPDX-License-Identifier: Apache-2.0
"""Custom exception classes.

Every rejection carries a stable ``code`` (what went wrong) and a
``category`` (how a caller should react). Categories map to HTTP status codes
in ``app.core.security``.
"""
from __future__ import annotations

AUTHORIZATION = "Authorization"
STATE_CONFLICT = "StateConflict"
NOT_FOUND = "NotFound"
INPUT_INVALID = "InputInvalid"
EXTERNAL_CONTRACT_VIOLATION = "ExternalContractViolation"


class SealedTallyError(Exception):
    """Base exception for SealedTally."""

    code = "SealedTallyError"
    category = STATE_CONFLICT

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


# Authorization

class UnauthorizedError(SealedTallyError):
    """Caller lacks the required role or grant."""

    code = "Unauthorized"
    category = AUTHORIZATION


# StateConflict

class AlreadyActiveError(SealedTallyError):
    code = "AlreadyActive"


class NotActiveError(SealedTallyError):
    code = "NotActive"


class DuplicateSubmissionError(SealedTallyError):
    code = "DuplicateSubmission"


class AlreadyProcessedError(SealedTallyError):
    code = "AlreadyProcessed"


class TallyPendingError(SealedTallyError):
    """Round is closed and still waiting on the oracle callback."""

    code = "TallyPending"


# NotFound

class NotFoundError(SealedTallyError):
    """Resource not found."""

    code = "NotFound"
    category = NOT_FOUND


class UnknownEntryError(NotFoundError):
    code = "UnknownEntry"


class EntryNotInRoundError(NotFoundError):
    code = "EntryNotInRound"


class EntryNotFoundError(NotFoundError):
    code = "EntryNotFound"


class RoundNotFoundError(NotFoundError):
    code = "RoundNotFound"


class RequestNotFoundError(NotFoundError):
    code = "RequestNotFound"


# InputInvalid

class ValidationError(SealedTallyError):
    """Input validation failed."""

    code = "InputInvalid"
    category = INPUT_INVALID


class EmptySelectionError(ValidationError):
    code = "EmptySelection"


class ScoreOutOfRangeError(ValidationError):
    code = "ScoreOutOfRange"


class EmptyFieldError(ValidationError):
    code = "EmptyField"


# ExternalContractViolation

class ExternalContractViolation(SealedTallyError):
    """An external party (client proof, oracle) broke its contract."""

    code = "ExternalContractViolation"
    category = EXTERNAL_CONTRACT_VIOLATION


class InvalidProofError(ExternalContractViolation):
    code = "InvalidProof"


class MismatchError(ExternalContractViolation):
    code = "Mismatch"


class InvalidSignatureError(ExternalContractViolation):
    code = "InvalidSignature"
