# SPDX-License-Identifier: Apache-2.0
"""Round, RoundEntry, RoundParticipant models."""
from datetime import datetime

from sqlmodel import Field, SQLModel


class Round(SQLModel, table=True):
    __tablename__ = "rounds"
    number: int = Field(primary_key=True)
    tally_mode: str = "sum"
    active: bool = False
    results_revealed: bool = False
    start_time: datetime = Field(default_factory=datetime.utcnow)
    end_time: datetime | None = None
    winner_entry_id: int = 0
    winning_value: int = 0
    tally_request_id: int | None = None


class RoundEntry(SQLModel, table=True):
    __tablename__ = "round_entries"
    id: int | None = Field(default=None, primary_key=True)
    round_number: int = Field(foreign_key="rounds.number", index=True)
    entry_id: int = Field(foreign_key="entries.id")
    position: int = 0


class RoundParticipant(SQLModel, table=True):
    __tablename__ = "round_participants"
    id: int | None = Field(default=None, primary_key=True)
    round_number: int = Field(foreign_key="rounds.number", index=True)
    address: str = ""
    position: int = 0
