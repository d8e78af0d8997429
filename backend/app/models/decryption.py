# SPDX-License-Identifier: Apache-2.0
"""Decryption request model (one batch handed to the oracle)."""
from datetime import datetime

from sqlmodel import Field, SQLModel


class DecryptionRequest(SQLModel, table=True):
    __tablename__ = "decryption_requests"
    id: int | None = Field(default=None, primary_key=True)
    round_number: int = Field(foreign_key="rounds.number", index=True)
    callback_id: str = ""
    handles: str = "[]"
    status: str = "pending"
    plaintexts: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    processed_at: datetime | None = None
