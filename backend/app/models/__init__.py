# SPDX-License-Identifier: Apache-2.0
"""SQLModel table definitions."""
from app.models.audit import AuditLog
from app.models.ciphertext import Ciphertext, CiphertextGrant
from app.models.decryption import DecryptionRequest
from app.models.entry import Entry
from app.models.participant import AuthorizedParticipant
from app.models.round import Round, RoundEntry, RoundParticipant
from app.models.submission import Submission

__all__ = [
    "AuditLog",
    "AuthorizedParticipant",
    "Ciphertext",
    "CiphertextGrant",
    "DecryptionRequest",
    "Entry",
    "Round",
    "RoundEntry",
    "RoundParticipant",
    "Submission",
]
