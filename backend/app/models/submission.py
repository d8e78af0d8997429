# SPDX-License-Identifier: Apache-2.0
"""Submission model: one encrypted value per (round, entry, participant)."""
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class Submission(SQLModel, table=True):
    __tablename__ = "submissions"
    __table_args__ = (UniqueConstraint("round_number", "entry_id", "participant"),)
    id: int | None = Field(default=None, primary_key=True)
    round_number: int = Field(foreign_key="rounds.number", index=True)
    entry_id: int = Field(foreign_key="entries.id")
    participant: str = ""
    handle: str = ""
    submitted: bool = True
    submitted_at: datetime = Field(default_factory=datetime.utcnow)
